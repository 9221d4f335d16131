"""Flatten record attributes into searchable text and latinize it.

Rich-text attributes arrive as block trees::

    [{"type": "paragraph", "children": [{"type": "text", "text": "Hello"}]}]

Leaf texts are joined with single spaces in document order. Relations,
media and other structured values contribute no text.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from unidecode import unidecode

from easy_search.domain.errors import MalformedRichTextError
from easy_search.domain.model import Composite, NormalizedRecord, Record, TransliteratedText


FIELD_SEPARATOR = " "


def truncate(text: str, limit: int | None) -> str:
    """Clamp ``text`` to at most ``limit`` characters.

    Examples:
        >>> truncate("searchable", 6)
        'search'
        >>> truncate("", 3)
        ''
        >>> truncate("kept", None)
        'kept'
    """
    if limit is None or not text:
        return text
    return text[: max(limit, 0)]


def _collect_leaf_text(node: Any, parts: list[str]) -> None:
    if isinstance(node, str):
        if node:
            parts.append(node)
        return
    if not isinstance(node, Mapping):
        raise MalformedRichTextError(f"Unexpected rich-text node of type {type(node).__name__}")

    text = node.get("text")
    if isinstance(text, str) and text:
        parts.append(text)

    children = node.get("children")
    if children is None:
        return
    if not isinstance(children, list):
        raise MalformedRichTextError("Rich-text 'children' must be a list")
    for child in children:
        _collect_leaf_text(child, parts)


def _is_rich_text(value: Sequence[Any]) -> bool:
    return any(isinstance(node, Mapping) and ("children" in node or "text" in node) for node in value)


def flatten_rich_text(blocks: Iterable[Any]) -> str:
    """Concatenate every text leaf of a block tree with single spaces."""
    parts: list[str] = []
    for block in blocks:
        _collect_leaf_text(block, parts)
    return FIELD_SEPARATOR.join(parts)


def flatten_value(value: Any) -> str:
    """Convert a raw attribute value into flat searchable text."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, list):
        if not value:
            return ""
        if all(isinstance(item, (str, int, float)) for item in value):
            return FIELD_SEPARATOR.join(str(item) for item in value if item != "")
        if any(not isinstance(item, Mapping) for item in value):
            raise MalformedRichTextError("List attribute mixes block nodes with other values")
        if _is_rich_text(value):
            return flatten_rich_text(value)
        return ""
    # Relations, media references and components carry no searchable text
    return ""


def flatten(record: Record, field_specs: Iterable[Any]) -> dict[str, str]:
    """Return ``{field_name: text}`` for every configured field spec."""
    return {spec.name: truncate(flatten_value(record.get(spec.name)), spec.character_limit) for spec in field_specs}


def transliterate_with_offsets(text: str) -> TransliteratedText:
    """Latinize ``text`` character by character, keeping a source-index map."""
    pieces: list[str] = []
    offsets: list[int] = []
    for index, char in enumerate(text):
        latin = char if char.isascii() else unidecode(char)
        pieces.append(latin)
        offsets.extend([index] * len(latin))
    return TransliteratedText(text="".join(pieces), offsets=tuple(offsets))


def transliterate(text: str) -> str:
    """Return the latinized form of ``text``.

    Examples:
        >>> transliterate("café")
        'cafe'
        >>> transliterate("Москва")
        'Moskva'
    """
    return transliterate_with_offsets(text).text


def build_composite(fields: Mapping[str, str]) -> Composite:
    """Join transliterated field texts, remembering where each character came from."""
    chunks: list[str] = []
    positions: list[tuple[str, int] | None] = []
    for name, text in fields.items():
        if chunks:
            chunks.append(FIELD_SEPARATOR)
            positions.append(None)
        latin = transliterate_with_offsets(text)
        chunks.append(latin.text)
        positions.extend((name, offset) for offset in latin.offsets)
    return Composite(text="".join(chunks), positions=tuple(positions))


def normalize_record(
    record: Record,
    field_specs: Sequence[Any],
    *,
    record_id: Any,
    with_composite: bool = False,
) -> NormalizedRecord:
    """Build the ephemeral searchable view of ``record``."""
    fields = flatten(record, field_specs)
    composite = build_composite(fields) if with_composite else None
    return NormalizedRecord(record_id=record_id, fields=fields, composite=composite)
