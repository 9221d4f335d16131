"""Search aggregation across configured collections.

Runs one retrieval -> scoring -> merge -> pagination cycle per collection,
concurrently and independently. A failing collection contributes an empty
page and zero-valued page info; it never aborts its siblings.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field
import logging
from typing import Any

from opentelemetry.trace import SpanKind

from easy_search.adapters.retrievers import Retriever, build_retriever, load_schema, resolve_search_fields
from easy_search.adapters.store import AbstractRecordStore
from easy_search.deployment_config import CollectionConfig, FieldSpec, SearchDeploymentConfig
from easy_search.domain.errors import (
    CollectionError,
    ConfigurationMissingError,
    InvalidQueryError,
)
from easy_search.domain.model import (
    CollectionSchema,
    MergedResult,
    PageInfo,
    Record,
    ResultEntry,
    SearchRequest,
    SearchResponse,
)
from easy_search.observability.context import bind_collection
from easy_search.observability.metrics import (
    COLLECTION_FAILURES,
    COLLECTION_LATENCY,
    COLLECTION_RESULTS,
    SEARCH_LATENCY,
    SEARCH_REQUESTS,
    track_latency,
)
from easy_search.observability.tracing import create_span
from easy_search.search.highlight import build_highlights
from easy_search.search.merger import merge
from easy_search.search.normalizer import flatten
from easy_search.search.pagination import build_page_info, empty_page_info, paginate, validate_paging
from easy_search.search.scorer import score_pass
from easy_search.service_layer.response_formatter import build_entry


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CollectionOutcome:
    key: str
    entries: list[ResultEntry]
    page_info: PageInfo


@dataclass(frozen=True)
class CollectionFailure:
    key: str
    error: Exception
    page_info: PageInfo
    entries: list[ResultEntry] = field(default_factory=list)


CollectionResult = CollectionOutcome | CollectionFailure


class SearchAggregator:
    """High-level search orchestration service.

    Coordinates retrieval, ranking and pagination for every configured
    collection and assembles the per-collection response.
    """

    def __init__(self, config: SearchDeploymentConfig, store: AbstractRecordStore) -> None:
        """Initialize the aggregator with its dependencies.

        Args:
            config: Validated deployment configuration
            store: Record store shared by all collections
        """
        self.config = config
        self.store = store
        self.markers = config.infrastructure.highlight
        self._retrievers: dict[str, Retriever] = {
            collection.collection_key: build_retriever(collection.strategy, store) for collection in config.collections
        }

    def prepare_request(self, request: SearchRequest) -> SearchRequest:
        """Validate a request before any store call is made.

        Raises:
            InvalidQueryError: Empty query or non-positive paging values
            ConfigurationMissingError: No collections configured
        """
        query = (request.query or "").strip()
        if not query:
            raise InvalidQueryError("Query parameter is required.")
        validate_paging(request.page, request.page_size)
        if not self.config.collections:
            raise ConfigurationMissingError("No collections are configured for search.")

        max_page_size = self.config.infrastructure.max_page_size
        page_size = request.page_size
        if page_size > max_page_size:
            logger.debug("Clamping page size %d to %d", page_size, max_page_size)
            page_size = max_page_size
        return request.model_copy(update={"query": query, "page_size": page_size})

    async def search(self, request: SearchRequest) -> SearchResponse:
        """Search every configured collection.

        Waits for all collections to finish (or fail) before returning.

        Args:
            request: Query and paging parameters from the transport layer

        Returns:
            SearchResponse keyed by collection, in configuration order
        """
        try:
            request = self.prepare_request(request)
        except InvalidQueryError:
            SEARCH_REQUESTS.labels(status="invalid").inc()
            raise
        except ConfigurationMissingError:
            SEARCH_REQUESTS.labels(status="not_configured").inc()
            raise

        logger.info("Searching %d collections for %r", len(self.config.collections), request.query)

        with (
            create_span(
                "search.request",
                kind=SpanKind.INTERNAL,
                attributes={"search.query": request.query[:100], "search.page": request.page},
            ) as span,
            track_latency(SEARCH_LATENCY),
        ):
            outcomes: Sequence[CollectionResult] = await asyncio.gather(
                *(self._run_collection(collection, request) for collection in self.config.collections)
            )
            failures = sum(1 for outcome in outcomes if isinstance(outcome, CollectionFailure))
            span.set_attribute("search.failed_collections", failures)

        SEARCH_REQUESTS.labels(status="degraded" if failures else "ok").inc()
        return SearchResponse(
            results={outcome.key: outcome.entries for outcome in outcomes},
            page_info={outcome.key: outcome.page_info for outcome in outcomes},
        )

    async def _run_collection(self, collection: CollectionConfig, request: SearchRequest) -> CollectionResult:
        key = collection.collection_key
        bind_collection(key)
        try:
            return await self.search_collection(collection, request)
        except CollectionError as exc:
            logger.warning("Collection %s degraded to empty results: %s", key, exc.reason)
            error = exc
        except Exception as exc:
            logger.exception("Unexpected error while searching collection %s", key)
            error = exc
        COLLECTION_FAILURES.labels(collection=key, error_type=type(error).__name__).inc()
        return CollectionFailure(key=key, error=error, page_info=empty_page_info(request.page, request.page_size))

    async def search_collection(self, collection: CollectionConfig, request: SearchRequest) -> CollectionOutcome:
        """Run the full pipeline for one collection.

        Raises:
            RetrievalError: Store unreachable or schema missing
            ScoringDegenerateError: No configured field exists in the schema
        """
        key = collection.collection_key
        retriever = self._retrievers[key]
        with (
            create_span(
                "search.collection",
                attributes={"search.collection": key, "search.strategy": collection.strategy},
            ) as span,
            track_latency(COLLECTION_LATENCY, collection=key, strategy=collection.strategy),
        ):
            schema = await load_schema(self.store, collection)
            fields = resolve_search_fields(collection, schema)
            retrieval = await retriever.fetch(
                collection, schema, fields, request.query, request.page_size, request.populate
            )

            if retriever.scores_in_memory:
                ranked = self.rank(collection, fields, request.query, retrieval.records)
                page_results, total = paginate(ranked, request.page, request.page_size)
                entries = [self._entry(result, schema, fields, request) for result in page_results]
            else:
                page_records, fetched = paginate(retrieval.records, request.page, request.page_size)
                total = retrieval.total if retrieval.total is not None else fetched
                entries = [self._plain_entry(record, schema, request) for record in page_records]

            span.set_attribute("search.total", total)
            logger.info("Found %d matches in %s (%d on page %d)", total, key, len(entries), request.page)
            return CollectionOutcome(
                key=key,
                entries=entries,
                page_info=build_page_info(total, request.page, request.page_size),
            )

    def rank(
        self,
        collection: CollectionConfig,
        fields: list[FieldSpec],
        query: str,
        records: Sequence[Record],
    ) -> list[MergedResult]:
        """Score, reconcile and cap the candidates of one collection."""
        key = collection.collection_key
        original = score_pass(query, records, fields, collection.threshold, collection=key)
        transliterated = (
            score_pass(query, records, fields, collection.threshold, transliterated=True, collection=key)
            if collection.transliterate
            else []
        )
        ranked = merge(original, transliterated)
        if collection.limit is not None:
            ranked = ranked[: collection.limit]
        COLLECTION_RESULTS.labels(collection=key).observe(len(ranked))
        return ranked

    def _entry(
        self,
        result: MergedResult,
        schema: CollectionSchema,
        fields: list[FieldSpec],
        request: SearchRequest,
    ) -> ResultEntry:
        candidate = result.candidate
        highlights = build_highlights(candidate, flatten(candidate.record, fields), self.markers)
        return build_entry(candidate.record, schema, highlights, request.fields, request.populate)

    def _plain_entry(self, record: Record, schema: CollectionSchema, request: SearchRequest) -> ResultEntry:
        return build_entry(record, schema, None, request.fields, request.populate)


async def perform_search(
    aggregator: SearchAggregator,
    query: str,
    page: int = 1,
    page_size: int | None = None,
    fields: list[str] | None = None,
    populate: dict[str, Any] | None = None,
) -> SearchResponse:
    """Convenience wrapper building the request from loose parameters."""
    request = SearchRequest(
        query=query,
        page=page,
        page_size=page_size or aggregator.config.infrastructure.default_page_size,
        fields=fields,
        populate=populate,
    )
    return await aggregator.search(request)
