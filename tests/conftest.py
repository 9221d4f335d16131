"""Shared test fixtures and configuration."""

from collections.abc import Callable
from typing import Any

import pytest

from easy_search.adapters.store import InMemoryRecordStore
from easy_search.deployment_config import CollectionConfig, SearchDeploymentConfig
from easy_search.domain.model import CollectionSchema


ARTICLE_UID = "api::article.article"
PAGE_UID = "api::page.page"
PLACE_UID = "api::place.place"


def blocks(*paragraphs: str) -> list[dict[str, Any]]:
    """Build a rich-text block tree with one paragraph per argument."""
    return [
        {"type": "paragraph", "children": [{"type": "text", "text": text}] if text else []} for text in paragraphs
    ]


@pytest.fixture
def article_schema() -> CollectionSchema:
    return CollectionSchema(
        uid=ARTICLE_UID,
        attributes={
            "title": "string",
            "content": "blocks",
            "author": "relation",
            "publishedAt": "datetime",
            "createdAt": "datetime",
        },
    )


@pytest.fixture
def page_schema() -> CollectionSchema:
    """Collection without publication support."""
    return CollectionSchema(uid=PAGE_UID, attributes={"title": "string", "body": "text", "createdAt": "datetime"})


@pytest.fixture
def place_schema() -> CollectionSchema:
    return CollectionSchema(uid=PLACE_UID, attributes={"name": "string", "createdAt": "datetime"})


@pytest.fixture
def article_records() -> list[dict[str, Any]]:
    return [
        {
            "id": "a1",
            "title": "cat",
            "content": blocks("A story about dogs"),
            "author": {"id": 7, "name": "Ada"},
            "publishedAt": "2024-03-01T00:00:00Z",
            "createdAt": "2024-03-01T00:00:00Z",
        },
        {
            "id": "a2",
            "title": "dog",
            "content": blocks("bird"),
            "author": {"id": 8, "name": "Grace"},
            "publishedAt": "2024-02-01T00:00:00Z",
            "createdAt": "2024-02-01T00:00:00Z",
        },
        {
            "id": "a3",
            "title": "draft about a cat",
            "content": blocks(),
            "author": None,
            "publishedAt": None,
            "createdAt": "2024-04-01T00:00:00Z",
        },
    ]


@pytest.fixture
def page_records() -> list[dict[str, Any]]:
    return [
        {"id": 1, "title": "About the cat shelter", "body": "Opening hours", "createdAt": "2024-01-02T00:00:00Z"},
        {"id": 2, "title": "Contact", "body": "Write to the cat team", "createdAt": "2024-01-03T00:00:00Z"},
        {"id": 3, "title": "Imprint", "body": "Legal notice", "createdAt": "2024-01-01T00:00:00Z"},
    ]


@pytest.fixture
def place_records() -> list[dict[str, Any]]:
    return [
        {"id": "c1", "name": "cafe", "createdAt": "2024-05-02T00:00:00Z"},
        {"id": "c2", "name": "café", "createdAt": "2024-05-01T00:00:00Z"},
        {"id": "c3", "name": "bakery", "createdAt": "2024-05-03T00:00:00Z"},
    ]


@pytest.fixture
def store(
    article_schema, page_schema, place_schema, article_records, page_records, place_records
) -> InMemoryRecordStore:
    return InMemoryRecordStore(
        schemas=[article_schema, page_schema, place_schema],
        records={ARTICLE_UID: article_records, PAGE_UID: page_records, PLACE_UID: place_records},
    )


@pytest.fixture
def article_collection() -> CollectionConfig:
    return CollectionConfig(
        uid=ARTICLE_UID,
        fields=[{"name": "title", "weight": 0}, {"name": "content", "weight": -50}],
        threshold=-10000,
        strategy="fuzzysort",
    )


@pytest.fixture
def page_collection() -> CollectionConfig:
    return CollectionConfig(uid=PAGE_UID, fields=["title", "body"])


@pytest.fixture
def make_config() -> Callable[..., SearchDeploymentConfig]:
    """Factory building a deployment config from collection payloads."""

    def _make(*collections: CollectionConfig | dict[str, Any], **infrastructure: Any) -> SearchDeploymentConfig:
        return SearchDeploymentConfig(
            infrastructure=infrastructure,
            collections=list(collections),
        )

    return _make
