"""Domain models for collection search.

Schema and response types are immutable Pydantic value objects; the
per-record scoring types are frozen dataclasses because thousands of them
are created per request.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
import math
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_serializer


PUBLICATION_ATTRIBUTE = "publishedAt"
POPULATABLE_TYPES = frozenset({"relation", "component", "media", "dynamiczone"})

Record = Mapping[str, Any]


class AttributeSpec(BaseModel):
    """Declared type of a single schema attribute."""

    model_config = ConfigDict(frozen=True)

    type: str


class CollectionSchema(BaseModel):
    """Static description of the attributes a collection declares."""

    model_config = ConfigDict(frozen=True)

    uid: str
    attributes: dict[str, AttributeSpec] = Field(default_factory=dict)

    @field_validator("attributes", mode="before")
    @classmethod
    def _coerce_attribute_shorthand(cls, value: object) -> object:
        # {"title": "string"} is accepted as shorthand for {"title": {"type": "string"}}
        if isinstance(value, Mapping):
            return {name: {"type": spec} if isinstance(spec, str) else spec for name, spec in value.items()}
        return value

    @property
    def has_publication(self) -> bool:
        return PUBLICATION_ATTRIBUTE in self.attributes

    def declares(self, name: str) -> bool:
        return name in self.attributes

    def populatable_fields(self) -> list[str]:
        """Return attributes that hold relations, components or media."""
        return [name for name, spec in self.attributes.items() if spec.type in POPULATABLE_TYPES]


@dataclass(frozen=True)
class TransliteratedText:
    """Latinized text plus, for every output character, its source index."""

    text: str
    offsets: tuple[int, ...] = ()


@dataclass(frozen=True)
class Composite:
    """Transliterated concatenation of all searchable fields of a record.

    ``positions[i]`` is ``(field_name, source_index)`` for the composite
    character ``i``, or ``None`` for the separators between fields.
    """

    text: str
    positions: tuple[tuple[str, int] | None, ...] = ()


@dataclass(frozen=True)
class NormalizedRecord:
    record_id: Any
    fields: dict[str, str]
    composite: Composite | None = None


@dataclass(frozen=True)
class FieldMatch:
    """Fuzzy match of the query against one field's normalized text."""

    field: str
    score: float
    indices: tuple[int, ...] = ()


@dataclass(frozen=True)
class ScoredCandidate:
    record_id: Any
    record: Record
    matches: dict[str, FieldMatch]
    score: float
    order: int = 0


MatchPass = Literal["original", "transliterated"]


@dataclass(frozen=True)
class MergedResult:
    candidate: ScoredCandidate
    source: MatchPass = "original"

    @property
    def record_id(self) -> Any:
        return self.candidate.record_id

    @property
    def score(self) -> float:
        return self.candidate.score


@dataclass(frozen=True)
class Retrieval:
    """Records fetched for one collection.

    ``total`` is set only when the store count is authoritative (pre-filtering).
    """

    records: list[Record] = field(default_factory=list)
    total: int | None = None


class PageInfo(BaseModel):
    """Pagination metadata for one collection."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    total: int = Field(ge=0)
    page: int = Field(ge=1)
    page_size: int = Field(ge=1, alias="pageSize")
    page_count: int = Field(ge=0, alias="pageCount")

    @classmethod
    def build(cls, total: int, page: int, page_size: int) -> PageInfo:
        return cls(total=total, page=page, page_size=page_size, page_count=math.ceil(total / page_size))


class ResultEntry(BaseModel):
    """A single formatted hit, serialised flat as ``{id, ...attributes, highlights}``."""

    model_config = ConfigDict(frozen=True)

    id: Any
    attributes: dict[str, Any] = Field(default_factory=dict)
    highlights: dict[str, str] = Field(default_factory=dict)

    @model_serializer(mode="plain")
    def _serialize(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"id": self.id}
        payload.update({key: value for key, value in self.attributes.items() if key != "id"})
        if self.highlights:
            payload["highlights"] = dict(self.highlights)
        return payload


class SearchRequest(BaseModel):
    """Parameters handed over by the transport layer."""

    model_config = ConfigDict(frozen=True)

    query: str
    page: int = 1
    page_size: int = 10
    fields: list[str] | None = None
    populate: dict[str, Any] | None = None


class SearchResponse(BaseModel):
    """Per-collection result pages and pagination metadata."""

    model_config = ConfigDict(frozen=True)

    results: dict[str, list[ResultEntry]] = Field(default_factory=dict)
    page_info: dict[str, PageInfo] = Field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        """Render the REST envelope ``{"data": ..., "meta": {"pageInfo": ...}}``."""
        return {
            "data": {key: [entry.model_dump() for entry in entries] for key, entries in self.results.items()},
            "meta": {
                "pageInfo": {key: info.model_dump(by_alias=True) for key, info in self.page_info.items()},
            },
        }
