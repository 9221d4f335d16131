"""Record store abstractions and implementations.

The store owns records and their schemas; the search engine only reads
through this interface and never mutates it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
import copy
from dataclasses import dataclass
import json
import logging
from pathlib import Path
from typing import Any

import anyio

from easy_search.domain.errors import MalformedRichTextError
from easy_search.domain.model import PUBLICATION_ATTRIBUTE, CollectionSchema, Record
from easy_search.search.normalizer import flatten_value, transliterate


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoreFilter:
    """Filter predicate pushed down to the store.

    ``contains_any`` is a disjunction: a record passes when any listed field
    contains any of ``terms`` (case-insensitive). With ``transliterate`` set,
    stores must also match accent- and script-insensitively, so that ``cafe``
    finds ``café``. ``published_only`` keeps records whose publication
    timestamp is set.
    """

    contains_any: tuple[str, ...] = ()
    terms: tuple[str, ...] = ()
    published_only: bool = False
    transliterate: bool = False

    def matches(self, record: Record) -> bool:
        if self.published_only and record.get(PUBLICATION_ATTRIBUTE) is None:
            return False
        if not self.contains_any or not self.terms:
            return True
        needles = [term.casefold() for term in self.terms if term]
        for field_name in self.contains_any:
            try:
                text = flatten_value(record.get(field_name))
            except MalformedRichTextError:
                continue
            haystacks = [text.casefold()]
            if self.transliterate:
                haystacks.append(transliterate(text).casefold())
            if any(needle in haystack for haystack in haystacks for needle in needles):
                return True
        return False


@dataclass(frozen=True)
class OrderBy:
    field: str = "createdAt"
    descending: bool = True


MOST_RECENT_FIRST = OrderBy()


class AbstractRecordStore(ABC):
    """Abstract query interface over the collections a store owns."""

    @abstractmethod
    async def get_schema(self, uid: str) -> CollectionSchema | None:
        """Return the schema of ``uid`` or ``None`` when the collection is unknown."""
        raise NotImplementedError

    @abstractmethod
    async def count(self, uid: str, where: StoreFilter) -> int:
        """Count records of ``uid`` passing ``where``."""
        raise NotImplementedError

    @abstractmethod
    async def find_many(
        self,
        uid: str,
        where: StoreFilter,
        order_by: OrderBy | None = None,
        limit: int | None = None,
        offset: int = 0,
        populate: Mapping[str, Any] | None = None,
    ) -> list[Record]:
        """Fetch records of ``uid`` passing ``where``.

        Args:
            uid: Collection identifier
            where: Filter predicate
            order_by: Sort order; store order when omitted
            limit: Maximum number of records, unbounded when omitted
            offset: Number of matching records to skip
            populate: Relation/component/media attributes to expand

        Returns:
            Records as plain mappings keyed by attribute name
        """
        raise NotImplementedError

    async def list_schemas(self) -> list[CollectionSchema]:
        """Optional hook returning every schema the store knows about."""

        return []


class InMemoryRecordStore(AbstractRecordStore):
    """Dictionary-backed store for tests and small deployments."""

    def __init__(
        self,
        schemas: Iterable[CollectionSchema] = (),
        records: Mapping[str, Iterable[Record]] | None = None,
    ) -> None:
        self._schemas: dict[str, CollectionSchema] = {schema.uid: schema for schema in schemas}
        self._records: dict[str, list[dict[str, Any]]] = {
            uid: [dict(record) for record in items] for uid, items in (records or {}).items()
        }
        self.calls: list[tuple[str, str]] = []

    def add_collection(self, schema: CollectionSchema, records: Iterable[Record] = ()) -> None:
        self._schemas[schema.uid] = schema
        self._records[schema.uid] = [dict(record) for record in records]

    async def get_schema(self, uid: str) -> CollectionSchema | None:
        self.calls.append(("get_schema", uid))
        return self._schemas.get(uid)

    async def list_schemas(self) -> list[CollectionSchema]:
        return list(self._schemas.values())

    async def count(self, uid: str, where: StoreFilter) -> int:
        self.calls.append(("count", uid))
        return sum(1 for record in self._records.get(uid, []) if where.matches(record))

    async def find_many(
        self,
        uid: str,
        where: StoreFilter,
        order_by: OrderBy | None = None,
        limit: int | None = None,
        offset: int = 0,
        populate: Mapping[str, Any] | None = None,
    ) -> list[Record]:
        self.calls.append(("find_many", uid))
        matching = [record for record in self._records.get(uid, []) if where.matches(record)]
        if order_by is not None:
            matching = self._sort(matching, order_by)
        end = None if limit is None else offset + limit
        window = matching[offset:end]
        return [self._project(uid, record, populate) for record in window]

    def _sort(self, records: list[dict[str, Any]], order_by: OrderBy) -> list[dict[str, Any]]:
        present = [record for record in records if record.get(order_by.field) is not None]
        missing = [record for record in records if record.get(order_by.field) is None]
        present.sort(key=lambda record: record[order_by.field], reverse=order_by.descending)
        return present + missing

    def _project(self, uid: str, record: dict[str, Any], populate: Mapping[str, Any] | None) -> Record:
        schema = self._schemas.get(uid)
        hidden = set(schema.populatable_fields()) if schema else set()
        hidden -= set(populate or {})
        return {key: copy.deepcopy(value) for key, value in record.items() if key not in hidden}


class JsonFileRecordStore(InMemoryRecordStore):
    """Read-only store loaded from a JSON document.

    Expected layout::

        {
            "collections": [
                {
                    "uid": "api::article.article",
                    "attributes": {"title": "string", "publishedAt": "datetime"},
                    "records": [{"id": 1, "title": "..."}]
                }
            ]
        }
    """

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = path

    async def load(self) -> None:
        """Load (or reload) schemas and records from disk."""
        if not self.path.exists():
            raise FileNotFoundError(f"Record data file not found: {self.path}")

        raw = await anyio.Path(self.path).read_text(encoding="utf-8")
        payload = json.loads(raw)
        for entry in payload.get("collections", []):
            schema = CollectionSchema(uid=entry["uid"], attributes=entry.get("attributes", {}))
            self.add_collection(schema, entry.get("records", []))
        logger.info("Loaded %d collections from %s", len(self._schemas), self.path)
