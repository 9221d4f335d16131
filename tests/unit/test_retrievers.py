"""Unit tests for candidate retrieval strategies."""

import pytest

from easy_search.adapters.retrievers import (
    PRE_FILTER_CANDIDATE_FACTOR,
    HybridRetriever,
    InMemoryRetriever,
    PreFilterRetriever,
    build_retriever,
    load_schema,
    resolve_search_fields,
)
from easy_search.adapters.store import InMemoryRecordStore
from easy_search.deployment_config import CollectionConfig
from easy_search.domain.errors import RetrievalError, ScoringDegenerateError
from easy_search.domain.model import CollectionSchema


pytestmark = pytest.mark.unit

NOTE_SCHEMA = CollectionSchema(
    uid="api::note.note",
    attributes={"title": "string", "publishedAt": "datetime", "createdAt": "datetime"},
)


def note_store(count: int) -> InMemoryRecordStore:
    records = [
        {
            "id": index,
            "title": f"note {index}",
            "publishedAt": "2024-01-01T00:00:00Z",
            "createdAt": f"2024-01-01T00:00:{index:02d}Z",
        }
        for index in range(count)
    ]
    return InMemoryRecordStore([NOTE_SCHEMA], {"api::note.note": records})


class BrokenStore(InMemoryRecordStore):
    async def find_many(self, uid, where, order_by=None, limit=None, offset=0, populate=None):
        raise ConnectionError("store unreachable")


class TestResolveSearchFields:
    def test_unknown_fields_are_dropped(self, article_schema):
        collection = CollectionConfig(uid="api::article.article", fields=["title", "subtitle"])

        assert [spec.name for spec in resolve_search_fields(collection, article_schema)] == ["title"]

    def test_no_valid_field(self, article_schema):
        collection = CollectionConfig(uid="api::article.article", fields=["subtitle"])

        with pytest.raises(ScoringDegenerateError) as exc_info:
            resolve_search_fields(collection, article_schema)

        assert exc_info.value.collection == "article"


class TestLoadSchema:
    @pytest.mark.asyncio
    async def test_missing_schema(self, store):
        collection = CollectionConfig(uid="api::missing.missing", fields=["title"])

        with pytest.raises(RetrievalError, match="not found"):
            await load_schema(store, collection)

    @pytest.mark.asyncio
    async def test_store_failure_is_wrapped(self):
        class FailingSchemaStore(InMemoryRecordStore):
            async def get_schema(self, uid):
                raise TimeoutError("too slow")

        collection = CollectionConfig(uid="api::note.note", fields=["title"])

        with pytest.raises(RetrievalError, match="too slow"):
            await load_schema(FailingSchemaStore(), collection)


class TestPreFilterRetriever:
    @pytest.mark.asyncio
    async def test_caps_candidates_and_counts_total(self):
        store = note_store(25)
        collection = CollectionConfig(uid="api::note.note", fields=["title"], strategy="pre-filtering")
        retriever = PreFilterRetriever(store)

        retrieval = await retriever.fetch(collection, NOTE_SCHEMA, list(collection.fields), "note", 2)

        assert len(retrieval.records) == 2 * PRE_FILTER_CANDIDATE_FACTOR
        assert retrieval.total == 25
        assert retrieval.records[0]["id"] == 24
        assert ("count", "api::note.note") in store.calls
        assert retriever.scores_in_memory is False


class TestInMemoryRetriever:
    @pytest.mark.asyncio
    async def test_fetches_every_published_record(self, store, article_schema):
        collection = CollectionConfig(uid="api::article.article", fields=["title"], strategy="fuzzysort")

        retrieval = await InMemoryRetriever(store).fetch(
            collection, article_schema, list(collection.fields), "unrelated query", 10
        )

        assert [record["id"] for record in retrieval.records] == ["a1", "a2"]
        assert retrieval.total is None

    @pytest.mark.asyncio
    async def test_collections_without_publication_include_everything(self, store, page_schema):
        collection = CollectionConfig(uid="api::page.page", fields=["title"], strategy="fuzzysort")

        retrieval = await InMemoryRetriever(store).fetch(collection, page_schema, list(collection.fields), "x", 10)

        assert len(retrieval.records) == 3

    @pytest.mark.asyncio
    async def test_populates_relations_by_default(self, store, article_schema):
        collection = CollectionConfig(uid="api::article.article", fields=["title"], strategy="fuzzysort")

        retrieval = await InMemoryRetriever(store).fetch(collection, article_schema, list(collection.fields), "x", 10)

        assert retrieval.records[0]["author"] == {"id": 7, "name": "Ada"}


class TestHybridRetriever:
    @pytest.mark.asyncio
    async def test_filters_without_cap(self):
        store = note_store(25)
        collection = CollectionConfig(uid="api::note.note", fields=["title"])

        retrieval = await HybridRetriever(store).fetch(collection, NOTE_SCHEMA, list(collection.fields), "note 1", 1)

        # note 1, note 10 .. note 19
        assert len(retrieval.records) == 11
        assert retrieval.total is None
        assert ("count", "api::note.note") not in store.calls

    @pytest.mark.asyncio
    async def test_transliterated_query_widens_filter(self, store, place_schema):
        plain = CollectionConfig(uid="api::place.place", fields=["name"])
        latin = CollectionConfig(uid="api::place.place", fields=["name"], transliterate=True)

        without = await HybridRetriever(store).fetch(plain, place_schema, list(plain.fields), "café", 10)
        with_latin = await HybridRetriever(store).fetch(latin, place_schema, list(latin.fields), "café", 10)

        assert [record["id"] for record in without.records] == ["c2"]
        assert sorted(record["id"] for record in with_latin.records) == ["c1", "c2"]

    @pytest.mark.asyncio
    async def test_store_failure_becomes_retrieval_error(self, page_schema):
        collection = CollectionConfig(uid="api::page.page", fields=["title"])

        with pytest.raises(RetrievalError) as exc_info:
            await HybridRetriever(BrokenStore()).fetch(collection, page_schema, list(collection.fields), "cat", 10)

        assert exc_info.value.collection == "page"
        assert isinstance(exc_info.value.__cause__, ConnectionError)


def test_build_retriever(store):
    assert isinstance(build_retriever("pre-filtering", store), PreFilterRetriever)
    assert isinstance(build_retriever("fuzzysort", store), InMemoryRetriever)
    assert isinstance(build_retriever("hybrid", store), HybridRetriever)

    with pytest.raises(ValueError, match="Unknown retrieval strategy"):
        build_retriever("elastic", store)
