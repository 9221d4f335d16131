"""Weighted multi-field scoring of candidate records.

A candidate's aggregate score is ``max(field_score + field_weight)`` over
the fields that matched. The transliterated pass matches a latinized query
against the latinized composite of all fields instead, then maps the
matched characters back onto the original field texts.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
import logging
from typing import Any

from easy_search.deployment_config import FieldSpec
from easy_search.domain.errors import MalformedRichTextError
from easy_search.domain.model import FieldMatch, NormalizedRecord, Record, ScoredCandidate
from easy_search.search.fuzzy import NO_MATCH, fuzzy_match
from easy_search.search.normalizer import normalize_record, transliterate


logger = logging.getLogger(__name__)

RECORD_ID_KEY = "id"

# Per-record failures that exclude the record instead of the collection
RECORD_ERRORS = (MalformedRichTextError, TypeError, ValueError, AttributeError)


def score_record(
    query: str,
    normalized: NormalizedRecord,
    field_specs: Sequence[FieldSpec],
    threshold: float,
) -> tuple[dict[str, FieldMatch], float] | None:
    """Score one record against ``query`` field by field.

    Returns:
        ``(matches, aggregate)`` or ``None`` when no field matched or the
        aggregate falls below ``threshold``.
    """
    matches: dict[str, FieldMatch] = {}
    aggregate = NO_MATCH
    for spec in field_specs:
        match = fuzzy_match(query, normalized.fields.get(spec.name, ""), spec.name)
        if match is None:
            continue
        matches[spec.name] = match
        aggregate = max(aggregate, match.score + spec.weight)

    if not matches or aggregate < threshold:
        return None
    return matches, aggregate


def score_transliterated(
    query: str,
    normalized: NormalizedRecord,
    field_specs: Sequence[FieldSpec],
    threshold: float,
) -> tuple[dict[str, FieldMatch], float] | None:
    """Score the latinized composite of a record against a latinized query.

    The weight of the field holding the first matched character is added to
    the composite score, keeping both passes on the same scale.
    """
    composite = normalized.composite
    if composite is None:
        return None

    match = fuzzy_match(query, composite.text)
    if match is None:
        return None

    per_field: dict[str, set[int]] = {}
    for index in match.indices:
        position = composite.positions[index]
        if position is None:
            continue
        field_name, source_index = position
        per_field.setdefault(field_name, set()).add(source_index)
    if not per_field:
        return None

    first_field = next(
        position[0] for index in match.indices if (position := composite.positions[index]) is not None
    )
    weights = {spec.name: spec.weight for spec in field_specs}
    aggregate = match.score + weights.get(first_field, 0.0)
    if aggregate < threshold:
        return None

    matches = {
        name: FieldMatch(field=name, score=match.score, indices=tuple(sorted(indices)))
        for name, indices in per_field.items()
    }
    return matches, aggregate


def score_pass(
    query: str,
    records: Iterable[Record],
    field_specs: Sequence[FieldSpec],
    threshold: float,
    *,
    transliterated: bool = False,
    collection: str = "",
) -> list[ScoredCandidate]:
    """Score every record, keeping retrieval order on each candidate.

    Records that fail to normalize or score are logged and excluded.
    """
    if transliterated:
        query = transliterate(query)
    scorer = score_transliterated if transliterated else score_record

    candidates: list[ScoredCandidate] = []
    for order, record in enumerate(records):
        record_id: Any = None
        try:
            record_id = record.get(RECORD_ID_KEY)
            normalized = normalize_record(record, field_specs, record_id=record_id, with_composite=transliterated)
            scored = scorer(query, normalized, field_specs, threshold)
        except RECORD_ERRORS as exc:
            logger.warning("Skipping record %s in %s: %s", record_id, collection or "collection", exc)
            continue
        if scored is None:
            continue
        matches, aggregate = scored
        candidates.append(
            ScoredCandidate(record_id=record_id, record=record, matches=matches, score=aggregate, order=order)
        )

    logger.debug(
        "Scored %s pass for %s: %d candidates",
        "transliterated" if transliterated else "original",
        collection or "collection",
        len(candidates),
    )
    return candidates
