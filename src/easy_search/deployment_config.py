"""Search deployment configuration using Pydantic.

This module defines the schema for serving fuzzy search over several
independently configured record collections from one process.

Architecture:
- Each collection gets its own field list, weights and retrieval strategy
- Results are keyed by a short collection key derived from the uid
- Configuration validates at startup (fail fast)
"""

from collections.abc import Iterable, Mapping
import json
from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from easy_search.domain.errors import ConfigurationError
from easy_search.domain.model import CollectionSchema


RetrievalStrategy = Literal["pre-filtering", "fuzzysort", "hybrid"]
LogLevel = Literal["debug", "info", "warning", "error", "critical"]

DEFAULT_THRESHOLD = -10000.0


def derive_collection_key(uid: str) -> str:
    """Derive the response key for a namespaced uid.

    Examples:
        >>> derive_collection_key("api::article.article")
        'article'
        >>> derive_collection_key("plugin::users-permissions.user")
        'users-permissions'
        >>> derive_collection_key("page")
        'page'
    """
    local = uid.split("::")[-1]
    key = local.split(".")[0]
    if not key:
        raise ConfigurationError(f"Cannot derive a collection key from uid '{uid}'")
    return key


class FieldSpec(BaseModel):
    """One searchable field of a collection."""

    model_config = {"extra": "forbid", "frozen": True, "populate_by_name": True}

    name: Annotated[
        str,
        Field(min_length=1, description="Attribute name as declared by the collection schema"),
    ]

    weight: Annotated[
        float,
        Field(
            description="Added to the raw match score of this field; negative values demote incidental fields",
            examples=[0, -50, 100],
        ),
    ] = 0.0

    character_limit: Annotated[
        int | None,
        Field(
            ge=0,
            alias="characterLimit",
            description="Only the first N characters of the flattened field are searched",
        ),
    ] = None


class HighlightConfig(BaseModel):
    """Markers wrapped around every matched character run."""

    model_config = {"extra": "forbid", "frozen": True}

    open_marker: Annotated[str, Field(description="Inserted before each matched run")] = "<mark>"
    close_marker: Annotated[str, Field(description="Inserted after each matched run")] = "</mark>"


class CollectionConfig(BaseModel):
    """Configuration for a single searchable collection.

    Immutable for the lifetime of the process; the engine only reads it.
    """

    model_config = {"extra": "forbid", "frozen": True, "populate_by_name": True}

    uid: Annotated[
        str,
        Field(
            min_length=1,
            description="Namespaced schema identifier of the collection",
            examples=["api::article.article"],
        ),
    ]

    fields: Annotated[
        tuple[FieldSpec, ...],
        Field(
            min_length=1,
            description="Weighted fields to search; plain strings are accepted as weight-0 fields",
        ),
    ]

    transliterate: Annotated[
        bool,
        Field(description="Also match a latinized form of the record against a latinized query"),
    ] = False

    threshold: Annotated[
        float,
        Field(description="Candidates whose aggregate score falls below this value are dropped"),
    ] = DEFAULT_THRESHOLD

    limit: Annotated[
        int | None,
        Field(ge=1, description="Maximum number of ranked results kept before pagination"),
    ] = None

    strategy: Annotated[
        RetrievalStrategy,
        Field(description="How candidates are fetched from the store"),
    ] = "hybrid"

    @model_validator(mode="before")
    @classmethod
    def _accept_search_fields_shorthand(cls, data: object) -> object:
        # {"uid": ..., "searchFields": ["title", "body"]}
        if isinstance(data, Mapping) and "searchFields" in data and "fields" not in data:
            data = dict(data)
            data["fields"] = data.pop("searchFields")
        return data

    @field_validator("fields", mode="before")
    @classmethod
    def _coerce_field_names(cls, value: object) -> object:
        if isinstance(value, (list, tuple)):
            return tuple({"name": item} if isinstance(item, str) else item for item in value)
        return value

    @model_validator(mode="after")
    def _check_unique_fields(self) -> "CollectionConfig":
        names = [spec.name for spec in self.fields]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Collection '{self.uid}' lists fields more than once: {duplicates}")
        derive_collection_key(self.uid)
        return self

    @property
    def collection_key(self) -> str:
        return derive_collection_key(self.uid)

    @property
    def field_names(self) -> list[str]:
        return [spec.name for spec in self.fields]


class LogProfileConfig(BaseModel):
    """Named logging setup; the active one is chosen by ``log_profile``."""

    model_config = {"extra": "forbid"}

    level: Annotated[LogLevel, Field(description="Root log level")] = "info"

    json_output: Annotated[bool, Field(description="One JSON object per line instead of plain text")] = True

    logger_levels: Annotated[
        dict[str, LogLevel],
        Field(
            description="Per-logger level overrides (logger name -> level)",
            examples=[{"easy_search.search.scorer": "debug"}],
        ),
    ] = Field(default_factory=dict)


class InfrastructureConfig(BaseModel):
    """Process-wide settings shared by every collection."""

    model_config = {"extra": "forbid"}

    host: Annotated[str, Field(description="Server bind address (0.0.0.0 for containers)")] = "127.0.0.1"

    port: Annotated[int, Field(ge=1, le=65535, description="Server listen port")] = 8000

    default_page_size: Annotated[
        int,
        Field(ge=1, le=1000, description="Page size used when the request does not specify one"),
    ] = 10

    max_page_size: Annotated[
        int,
        Field(ge=1, le=1000, description="Upper bound for the requested page size"),
    ] = 100

    highlight: Annotated[
        HighlightConfig,
        Field(description="Highlight markers"),
    ] = Field(default_factory=HighlightConfig)

    log_profile: Annotated[
        str,
        Field(description="Active logging profile name (must exist in log_profiles)"),
    ] = "default"

    log_profiles: Annotated[
        dict[str, LogProfileConfig],
        Field(description="Named logging profiles for different operational modes"),
    ] = Field(default_factory=lambda: {"default": LogProfileConfig()})

    @model_validator(mode="after")
    def validate_log_profile_exists(self) -> "InfrastructureConfig":
        """Ensure the selected log_profile exists in log_profiles."""
        if self.log_profile not in self.log_profiles:
            available = ", ".join(sorted(self.log_profiles.keys()))
            raise ValueError(f"log_profile '{self.log_profile}' not found in log_profiles. Available: {available}")
        if self.default_page_size > self.max_page_size:
            raise ValueError("default_page_size cannot exceed max_page_size")
        return self

    def get_active_log_profile(self) -> LogProfileConfig:
        """Return the currently active logging profile configuration."""
        return self.log_profiles[self.log_profile]


class SearchDeploymentConfig(BaseModel):
    """Complete configuration for the search engine.

    Example:
        {
            "infrastructure": {"port": 8000, "default_page_size": 10},
            "collections": [
                {
                    "uid": "api::article.article",
                    "fields": [
                        {"name": "title", "weight": 0},
                        {"name": "content", "weight": -50, "characterLimit": 2000}
                    ],
                    "transliterate": true,
                    "strategy": "hybrid"
                },
                {"uid": "api::page.page", "searchFields": ["title"]}
            ]
        }
    """

    infrastructure: InfrastructureConfig = Field(default_factory=InfrastructureConfig)
    collections: Annotated[
        list[CollectionConfig],
        Field(description="Collections searched by every request, in response order"),
    ] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_unique_collection_keys(self) -> "SearchDeploymentConfig":
        """Reject collections that collapse onto the same response key."""
        keys = [collection.collection_key for collection in self.collections]
        duplicates = sorted({key for key in keys if keys.count(key) > 1})
        if duplicates:
            raise ValueError(f"Duplicate collection keys derived from uids: {duplicates}")
        return self

    @classmethod
    def from_json_file(cls, path: Path) -> "SearchDeploymentConfig":
        """Load configuration from JSON file.

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValidationError: If config is invalid
        """
        if not path.exists():
            raise FileNotFoundError(f"Search config not found: {path}")

        with path.open() as f:
            data = json.load(f)

        return cls.model_validate(data)

    def get_collection(self, key: str) -> CollectionConfig | None:
        """Get collection configuration by its response key."""
        for collection in self.collections:
            if collection.collection_key == key:
                return collection
        return None

    def list_collection_keys(self) -> list[str]:
        return [collection.collection_key for collection in self.collections]

    def validate_against_schemas(self, schemas: Iterable[CollectionSchema]) -> None:
        """Fail fast when a configured collection or field is not declared by its schema.

        Raises:
            ConfigurationError: Listing every missing collection and field.
        """
        by_uid = {schema.uid: schema for schema in schemas}
        problems: list[str] = []
        for collection in self.collections:
            schema = by_uid.get(collection.uid)
            if schema is None:
                problems.append(f"collection '{collection.uid}' has no schema")
                continue
            missing = [name for name in collection.field_names if not schema.declares(name)]
            if missing:
                problems.append(f"collection '{collection.uid}' does not declare fields {missing}")
        if problems:
            raise ConfigurationError("; ".join(problems))
