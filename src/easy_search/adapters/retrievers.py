"""Candidate retrieval strategies.

Each strategy is one ``Retriever`` implementation, chosen once per
collection from its configuration:

- ``pre-filtering``: store-side containment filter, capped at
  ``page_size * 10``; the store order is the ranking and its count the total
- ``fuzzysort``: every published record, scored in memory
- ``hybrid``: store-side containment filter without a cap, scored in memory
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
import logging
from typing import Any, ClassVar

from easy_search.adapters.store import MOST_RECENT_FIRST, AbstractRecordStore, StoreFilter
from easy_search.deployment_config import CollectionConfig, FieldSpec, RetrievalStrategy
from easy_search.domain.errors import RetrievalError, ScoringDegenerateError
from easy_search.domain.model import CollectionSchema, Retrieval
from easy_search.search.normalizer import transliterate


logger = logging.getLogger(__name__)

PRE_FILTER_CANDIDATE_FACTOR = 10


def resolve_search_fields(collection: CollectionConfig, schema: CollectionSchema) -> list[FieldSpec]:
    """Keep the configured fields the schema declares.

    Raises:
        ScoringDegenerateError: If none of the configured fields exist.
    """
    valid = [spec for spec in collection.fields if schema.declares(spec.name)]
    dropped = [spec.name for spec in collection.fields if not schema.declares(spec.name)]
    if dropped:
        logger.warning("Collection %s does not declare fields %s; ignoring them", collection.uid, dropped)
    if not valid:
        raise ScoringDegenerateError(collection.collection_key, "no configured field exists in the schema")
    return valid


async def load_schema(store: AbstractRecordStore, collection: CollectionConfig) -> CollectionSchema:
    """Fetch the schema of ``collection``, wrapping store failures.

    Raises:
        RetrievalError: If the store fails or does not know the collection.
    """
    try:
        schema = await store.get_schema(collection.uid)
    except Exception as exc:
        raise RetrievalError(collection.collection_key, f"schema lookup failed: {exc}") from exc
    if schema is None:
        raise RetrievalError(collection.collection_key, f"schema '{collection.uid}' not found")
    return schema


class Retriever(ABC):
    """Fetches candidate records for one collection."""

    strategy: ClassVar[RetrievalStrategy]
    #: Whether fetched records go through in-memory fuzzy scoring
    scores_in_memory: ClassVar[bool] = True

    def __init__(self, store: AbstractRecordStore) -> None:
        self.store = store

    async def fetch(
        self,
        collection: CollectionConfig,
        schema: CollectionSchema,
        fields: list[FieldSpec],
        query: str,
        page_size: int,
        populate: Mapping[str, Any] | None = None,
    ) -> Retrieval:
        """Fetch candidates, converting any store failure into ``RetrievalError``."""
        try:
            return await self._fetch(collection, schema, fields, query, page_size, populate)
        except RetrievalError:
            raise
        except Exception as exc:
            raise RetrievalError(collection.collection_key, f"store query failed: {exc}") from exc

    @abstractmethod
    async def _fetch(
        self,
        collection: CollectionConfig,
        schema: CollectionSchema,
        fields: list[FieldSpec],
        query: str,
        page_size: int,
        populate: Mapping[str, Any] | None,
    ) -> Retrieval:
        raise NotImplementedError

    def _populate_for(self, schema: CollectionSchema, populate: Mapping[str, Any] | None) -> dict[str, Any]:
        if populate:
            return dict(populate)
        return dict.fromkeys(schema.populatable_fields(), True)

    def _containment_filter(
        self,
        collection: CollectionConfig,
        schema: CollectionSchema,
        fields: list[FieldSpec],
        query: str,
    ) -> StoreFilter:
        terms = [query]
        if collection.transliterate:
            latin = transliterate(query)
            if latin != query:
                terms.append(latin)
        return StoreFilter(
            contains_any=tuple(spec.name for spec in fields),
            terms=tuple(terms),
            published_only=schema.has_publication,
            transliterate=collection.transliterate,
        )


class PreFilterRetriever(Retriever):
    """Store-side filtering only; results are not re-ranked."""

    strategy = "pre-filtering"
    scores_in_memory = False

    async def _fetch(self, collection, schema, fields, query, page_size, populate):
        where = self._containment_filter(collection, schema, fields, query)
        total = await self.store.count(collection.uid, where)
        records = await self.store.find_many(
            collection.uid,
            where,
            order_by=MOST_RECENT_FIRST,
            limit=page_size * PRE_FILTER_CANDIDATE_FACTOR,
            populate=self._populate_for(schema, populate),
        )
        return Retrieval(records=list(records), total=total)


class InMemoryRetriever(Retriever):
    """Fetch every eligible record and let the scorer rank them."""

    strategy = "fuzzysort"

    async def _fetch(self, collection, schema, fields, query, page_size, populate):
        where = StoreFilter(published_only=schema.has_publication)
        records = await self.store.find_many(
            collection.uid,
            where,
            order_by=MOST_RECENT_FIRST,
            populate=self._populate_for(schema, populate),
        )
        return Retrieval(records=list(records))


class HybridRetriever(Retriever):
    """Bound I/O with a store-side filter, then rank in memory."""

    strategy = "hybrid"

    async def _fetch(self, collection, schema, fields, query, page_size, populate):
        where = self._containment_filter(collection, schema, fields, query)
        records = await self.store.find_many(
            collection.uid,
            where,
            order_by=MOST_RECENT_FIRST,
            populate=self._populate_for(schema, populate),
        )
        return Retrieval(records=list(records))


RETRIEVERS: dict[str, type[Retriever]] = {
    retriever.strategy: retriever for retriever in (PreFilterRetriever, InMemoryRetriever, HybridRetriever)
}


def build_retriever(strategy: RetrievalStrategy, store: AbstractRecordStore) -> Retriever:
    """Instantiate the retriever for ``strategy``."""
    try:
        retriever_cls = RETRIEVERS[strategy]
    except KeyError:
        raise ValueError(f"Unknown retrieval strategy: {strategy}") from None
    return retriever_cls(store)
