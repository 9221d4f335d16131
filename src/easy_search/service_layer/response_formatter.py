"""Shape matched records into response entries.

Handles the ``fields`` selection and ``populate`` directives accepted by
the REST surface.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from easy_search.domain.model import CollectionSchema, Record, ResultEntry


def parse_populate(populate: str | Mapping[str, Any] | None) -> dict[str, Any] | None:
    """Parse a populate directive into a nested mapping.

    Examples:
        >>> parse_populate("author,cover[image]")
        {'author': True, 'cover': {'image': True}}
        >>> parse_populate("") is None
        True
    """
    if populate is None:
        return None
    if isinstance(populate, Mapping):
        return dict(populate) or None

    tree: dict[str, Any] = {}
    for item in populate.split(","):
        keys = [key.replace("]", "").strip() for key in item.split("[")]
        keys = [key for key in keys if key]
        level = tree
        for position, key in enumerate(keys):
            last = position == len(keys) - 1
            existing = level.get(key)
            if last:
                level.setdefault(key, True)
                break
            if not isinstance(existing, dict):
                existing = {}
                level[key] = existing
            level = existing
    return tree or None


def parse_fields(fields: str | Sequence[str] | None) -> list[str] | None:
    """Split a comma-separated field selection."""
    if fields is None:
        return None
    items = fields.split(",") if isinstance(fields, str) else list(fields)
    selected = [item.strip() for item in items if item and item.strip()]
    return selected or None


def select_attributes(
    record: Record,
    schema: CollectionSchema,
    fields: Sequence[str] | None = None,
    populate: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Pick the attributes of ``record`` that belong in a response entry.

    With ``fields`` only those attributes are returned. Otherwise every
    attribute the schema declares is returned, except relation, component
    and media attributes that were not asked for via ``populate``.
    """
    attributes: dict[str, Any] = {}
    populated = set(populate or {})

    if fields:
        for name in fields:
            if name in record:
                attributes[name] = record[name]
    else:
        hidden = set(schema.populatable_fields()) - populated
        for name in schema.attributes:
            if name in record and name not in hidden:
                attributes[name] = record[name]

    for name in populated:
        if name in record:
            attributes[name] = _prune(record[name], populate[name])
    return attributes


def _prune(value: Any, directive: Any) -> Any:
    # A nested directive ({"image": {"url": True}}) limits the keys kept
    if not isinstance(directive, Mapping) or not directive:
        return value
    if isinstance(value, list):
        return [_prune(item, directive) for item in value]
    if not isinstance(value, Mapping):
        return value
    pruned: dict[str, Any] = {}
    if "id" in value:
        pruned["id"] = value["id"]
    for key, nested in directive.items():
        if key in value:
            pruned[key] = _prune(value[key], nested)
    return pruned


def build_entry(
    record: Record,
    schema: CollectionSchema,
    highlights: Mapping[str, str] | None = None,
    fields: Sequence[str] | None = None,
    populate: Mapping[str, Any] | None = None,
) -> ResultEntry:
    return ResultEntry(
        id=record.get("id"),
        attributes=select_attributes(record, schema, fields, populate),
        highlights=dict(highlights or {}),
    )
