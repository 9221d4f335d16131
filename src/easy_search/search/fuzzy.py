"""Fuzzy matching for typo-tolerant search.

This module scores how well a query matches a single piece of text and
reports which characters matched, so callers can highlight them.

Matching runs three passes, stopping at the first that succeeds:
1. Case-insensitive substring (best scores, 0 for an exact full match)
2. In-order subsequence, penalised per gap between matched characters
3. Typo tolerance: edit distance against windows of whole words

Smart Defaults (no per-collection config needed):
- No typo tolerance for very short queries (1-2 chars)
- Max edit distance of 1 for short queries (3-5 chars)
- Max edit distance of 2 for longer queries (6+ chars)

Scores are non-positive floats; higher is better. ``NO_MATCH`` is the
sentinel used when a field does not match at all.
"""

from __future__ import annotations

import re

from easy_search.domain.model import FieldMatch


NO_MATCH = float("-inf")
# Extra cost per discontinuity in a subsequence match
GAP_PENALTY = 10
# Cost per edit when the match needed typo tolerance
TYPO_PENALTY = 250

WORD_PATTERN = re.compile(r"\w+")


def levenshtein_distance(s1: str, s2: str, max_distance: int | None = None) -> int:
    """Calculate the Levenshtein (edit) distance between two strings.

    Uses dynamic programming for O(m*n) time complexity, with optional
    early termination when distance exceeds max_distance.

    Args:
        s1: First string.
        s2: Second string.
        max_distance: If provided, return max_distance+1 early when
            distance is guaranteed to exceed this threshold.

    Returns:
        The minimum number of single-character edits (insertions,
        deletions, substitutions) needed to change s1 into s2.
        If max_distance is set and exceeded, returns max_distance+1.

    Examples:
        >>> levenshtein_distance("kitten", "sitting")
        3
        >>> levenshtein_distance("caat", "cat")
        1
        >>> levenshtein_distance("", "abc")
        3
    """
    if not s1:
        return len(s2)
    if not s2:
        return len(s1)

    # Use shorter string as columns for space efficiency
    if len(s1) > len(s2):
        s1, s2 = s2, s1

    m, n = len(s1), len(s2)

    if max_distance is not None and abs(m - n) > max_distance:
        return max_distance + 1

    prev_row = list(range(m + 1))
    curr_row = [0] * (m + 1)

    for j in range(1, n + 1):
        curr_row[0] = j
        row_min = curr_row[0]
        for i in range(1, m + 1):
            cost = 0 if s1[i - 1] == s2[j - 1] else 1
            curr_row[i] = min(
                prev_row[i] + 1,  # deletion
                curr_row[i - 1] + 1,  # insertion
                prev_row[i - 1] + cost,  # substitution
            )
            row_min = min(row_min, curr_row[i])

        if max_distance is not None and row_min > max_distance:
            return max_distance + 1

        prev_row, curr_row = curr_row, prev_row

    return prev_row[m]


def get_max_edit_distance(term_length: int) -> int:
    """Get the maximum allowed edit distance for a query based on its length.

    Args:
        term_length: Length of the search query.

    Returns:
        Maximum allowed edit distance.
    """
    if term_length <= 2:
        return 0  # No fuzzy for very short terms
    if term_length <= 5:
        return 1  # 1 typo for short terms
    return 2  # 2 typos for longer terms


def fold_case(text: str) -> str:
    """Lower-case ``text`` without changing its length.

    ``str.lower`` expands a few characters (e.g. ``"İ"``) into two code
    points, which would shift every highlight index after them.
    """
    folded = text.lower()
    if len(folded) == len(text):
        return folded
    return "".join(lowered if len(lowered := char.lower()) == 1 else char for char in text)


def _base_score(start: int, target_length: int, query_length: int) -> float:
    return 0.0 - start - max(target_length - query_length, 0)


def _substring_match(query: str, target: str) -> tuple[float, tuple[int, ...]] | None:
    start = target.find(query)
    if start == -1:
        return None
    return _base_score(start, len(target), len(query)), tuple(range(start, start + len(query)))


def _subsequence_match(query: str, target: str) -> tuple[float, tuple[int, ...]] | None:
    indices: list[int] = []
    position = 0
    for char in query:
        if char.isspace():
            continue
        found = target.find(char, position)
        if found == -1:
            return None
        indices.append(found)
        position = found + 1

    if not indices:
        return None

    score = _base_score(indices[0], len(target), len(query))
    for previous, current in zip(indices, indices[1:]):
        gap = current - previous - 1
        if gap:
            score -= gap + GAP_PENALTY
    return score, tuple(indices)


def _typo_match(query: str, target: str) -> tuple[float, tuple[int, ...]] | None:
    max_distance = get_max_edit_distance(len(query))
    if max_distance == 0:
        return None

    words = list(WORD_PATTERN.finditer(target))
    window_size = max(len(query.split()), 1)
    compact_query = " ".join(query.split())

    best: tuple[float, tuple[int, ...]] | None = None
    for first in range(len(words) - window_size + 1):
        window_words = words[first : first + window_size]
        window = " ".join(match.group(0) for match in window_words)

        # Quick check: if length difference exceeds max_distance, skip
        if abs(len(window) - len(compact_query)) > max_distance:
            continue

        distance = levenshtein_distance(compact_query, window, max_distance)
        if distance > max_distance:
            continue

        start = window_words[0].start()
        score = _base_score(start, len(target), len(query)) - TYPO_PENALTY * distance
        if best is None or score > best[0]:
            indices = tuple(index for match in window_words for index in range(match.start(), match.end()))
            best = (score, indices)
    return best


def fuzzy_match(query: str, target: str, field: str = "") -> FieldMatch | None:
    """Match ``query`` against ``target``.

    Args:
        query: The search text (may contain typos).
        target: Normalized text of one field.
        field: Field name recorded on the returned match.

    Returns:
        A ``FieldMatch`` carrying the score and matched character indices
        of ``target``, or ``None`` when the query does not match.

    Examples:
        >>> fuzzy_match("cat", "cat").score
        0.0
        >>> fuzzy_match("caat", "cat").indices
        (0, 1, 2)
        >>> fuzzy_match("dog", "cat") is None
        True
    """
    query = query.strip()
    if not query or not target:
        return None

    folded_query = fold_case(query)
    folded_target = fold_case(target)

    for strategy in (_substring_match, _subsequence_match, _typo_match):
        result = strategy(folded_query, folded_target)
        if result is not None:
            score, indices = result
            return FieldMatch(field=field, score=score, indices=indices)
    return None
