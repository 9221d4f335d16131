"""Reconcile the original-text and transliterated scoring passes."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from easy_search.domain.model import MatchPass, MergedResult, ScoredCandidate


def merge(
    original: Sequence[ScoredCandidate],
    transliterated: Sequence[ScoredCandidate] = (),
) -> list[MergedResult]:
    """Merge both passes into one ranked list with one entry per record id.

    A record present in both passes keeps the higher score (the original
    pass wins ties). The result is sorted by score descending; equal scores
    keep retrieval order.
    """
    merged: dict[Any, MergedResult] = {}
    for source, candidates in (("original", original), ("transliterated", transliterated)):
        _absorb(merged, candidates, source)

    return sorted(merged.values(), key=lambda result: (-result.score, result.candidate.order))


def _absorb(merged: dict[Any, MergedResult], candidates: Sequence[ScoredCandidate], source: MatchPass) -> None:
    for candidate in candidates:
        existing = merged.get(candidate.record_id)
        if existing is None or candidate.score > existing.score:
            merged[candidate.record_id] = MergedResult(candidate=candidate, source=source)
