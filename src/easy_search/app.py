"""Main ASGI application entry point.

Exposes the search aggregator over a small REST surface:

    GET /search?query=...&page=1&pageSize=10&fields=title&populate=author
    GET /health
    GET /metrics

Usage:
    # Load from search.json
    python -m easy_search.app

    # Or specify custom config and data files
    SEARCH_CONFIG=/path/to/search.json SEARCH_DATA_FILE=/path/to/data.json python -m easy_search.app
"""

from contextlib import asynccontextmanager
import logging

from pydantic import ValidationError
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from .adapters.store import AbstractRecordStore, InMemoryRecordStore, JsonFileRecordStore
from .config import Settings
from .deployment_config import SearchDeploymentConfig
from .domain.errors import ConfigurationMissingError, InvalidQueryError
from .domain.model import SearchRequest
from .observability import TraceContextMiddleware, configure_logging, get_metrics, get_metrics_content_type, init_tracing
from .service_layer.response_formatter import parse_fields, parse_populate
from .service_layer.search_service import SearchAggregator


logger = logging.getLogger(__name__)


def _error_response(status: int, exc: Exception) -> JSONResponse:
    return JSONResponse(
        {"data": None, "error": {"status": status, "name": type(exc).__name__, "message": str(exc)}},
        status_code=status,
    )


def _parse_positive_int(raw: str | None, default: int, name: str) -> int:
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise InvalidQueryError(f"{name} must be an integer, got '{raw}'") from None
    if value < 1:
        raise InvalidQueryError(f"{name} must be >= 1, got {value}")
    return value


def parse_search_request(request: Request, default_page_size: int) -> SearchRequest:
    """Build a ``SearchRequest`` from query string parameters.

    Raises:
        InvalidQueryError: Missing query or malformed paging parameters
    """
    params = request.query_params
    query = params.get("query", "")
    if not query.strip():
        raise InvalidQueryError("Query parameter is required.")
    return SearchRequest(
        query=query,
        page=_parse_positive_int(params.get("page"), 1, "page"),
        page_size=_parse_positive_int(params.get("pageSize"), default_page_size, "pageSize"),
        fields=parse_fields(params.get("fields")),
        populate=parse_populate(params.get("populate")),
    )


def create_app(config: SearchDeploymentConfig, store: AbstractRecordStore) -> Starlette:
    """Create ASGI application.

    Args:
        config: Validated search configuration
        store: Record store searched by every request

    Returns:
        Starlette application serving the REST surface
    """
    infra = config.infrastructure
    aggregator = SearchAggregator(config, store)

    @asynccontextmanager
    async def lifespan(app: Starlette):
        """Load store data and check configured fields before serving traffic."""
        if isinstance(store, JsonFileRecordStore):
            await store.load()
        schemas = await store.list_schemas()
        if schemas:
            config.validate_against_schemas(schemas)
        else:
            logger.warning("Store does not list schemas; field checks deferred to request time")
        app.state.aggregator = aggregator
        logger.info("Serving %d collections: %s", len(config.collections), ", ".join(config.list_collection_keys()))
        yield

    async def search_endpoint(request: Request) -> JSONResponse:
        try:
            search_request = parse_search_request(request, infra.default_page_size)
            response = await aggregator.search(search_request)
        except InvalidQueryError as exc:
            return _error_response(400, exc)
        except ConfigurationMissingError as exc:
            return _error_response(404, exc)
        return JSONResponse(response.to_payload())

    async def health_check(request: Request) -> JSONResponse:
        """Health check endpoint listing the configured collections."""
        return JSONResponse(
            {
                "status": "healthy" if config.collections else "degraded",
                "collection_count": len(config.collections),
                "collections": {
                    collection.collection_key: {"uid": collection.uid, "strategy": collection.strategy}
                    for collection in config.collections
                },
            }
        )

    async def metrics_endpoint(request: Request) -> Response:
        return Response(get_metrics(), media_type=get_metrics_content_type())

    routes = [
        Route("/search", endpoint=search_endpoint, methods=["GET"]),
        Route("/health", endpoint=health_check, methods=["GET"]),
        Route("/metrics", endpoint=metrics_endpoint, methods=["GET"]),
    ]

    app = Starlette(
        debug=infra.get_active_log_profile().level == "debug",
        routes=routes,
        middleware=[Middleware(TraceContextMiddleware)],
        lifespan=lifespan,
    )
    app.state.aggregator = aggregator
    return app


def main() -> None:
    """Main entry point for the search server."""
    import uvicorn

    settings = Settings()

    try:
        config = SearchDeploymentConfig.from_json_file(settings.config)
    except ValidationError as exc:
        logger.error("Search configuration is invalid: %s", exc)
        return
    infra = config.infrastructure

    profile = infra.get_active_log_profile()
    log_level = settings.log_level or profile.level
    configure_logging(log_level, profile.json_output, logger_levels=profile.logger_levels)

    if settings.tracing_enabled:
        init_tracing()

    store: AbstractRecordStore
    if settings.data_file is not None:
        store = JsonFileRecordStore(settings.data_file)
    else:
        logger.warning("SEARCH_DATA_FILE not set; serving an empty in-memory store")
        store = InMemoryRecordStore()

    host = settings.host or infra.host
    port = settings.port or infra.port

    logger.info("Starting easy-search on %s:%d with config %s", host, port, settings.config)
    logger.info("Health check: http://%s:%d/health", host, port)

    uvicorn.run(
        create_app(config, store),
        host=host,
        port=port,
        log_level=log_level.lower(),
        log_config=None,  # Don't let uvicorn override our logging config
    )


if __name__ == "__main__":
    main()
