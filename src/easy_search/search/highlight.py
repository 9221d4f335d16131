"""Highlight matched characters inside field texts.

Every contiguous run of matched characters is wrapped in the configured
markers (``<mark>``/``</mark>`` by default). Only fields that matched get
an entry in the highlight map.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from easy_search.deployment_config import HighlightConfig
from easy_search.domain.model import ScoredCandidate


DEFAULT_MARKERS = HighlightConfig()


def merge_runs(indices: Iterable[int]) -> list[tuple[int, int]]:
    """Group character indices into half-open ``(start, end)`` runs.

    Examples:
        >>> merge_runs([0, 1, 2, 5, 6, 9])
        [(0, 3), (5, 7), (9, 10)]
        >>> merge_runs([])
        []
    """
    runs: list[tuple[int, int]] = []
    for index in sorted(set(indices)):
        if runs and runs[-1][1] == index:
            runs[-1] = (runs[-1][0], index + 1)
        else:
            runs.append((index, index + 1))
    return runs


def highlight_field(
    text: str,
    indices: Iterable[int],
    markers: HighlightConfig = DEFAULT_MARKERS,
) -> str:
    """Wrap every matched run of ``text`` in the highlight markers.

    Indices outside ``text`` are ignored.
    """
    runs = [(start, min(end, len(text))) for start, end in merge_runs(indices) if 0 <= start < len(text)]
    if not runs:
        return text

    # Apply highlights from end to start (to preserve positions)
    result = text
    for start, end in reversed(runs):
        result = result[:start] + markers.open_marker + result[start:end] + markers.close_marker + result[end:]
    return result


def build_highlights(
    candidate: ScoredCandidate,
    field_texts: Mapping[str, str],
    markers: HighlightConfig = DEFAULT_MARKERS,
) -> dict[str, str]:
    """Return ``{field: highlighted text}`` for fields that actually matched."""
    highlights: dict[str, str] = {}
    for name, match in candidate.matches.items():
        text = field_texts.get(name, "")
        if not text or not match.indices:
            continue
        highlighted = highlight_field(text, match.indices, markers)
        if highlighted != text:
            highlights[name] = highlighted
    return highlights
