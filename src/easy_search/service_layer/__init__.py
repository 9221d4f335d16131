"""Service layer - search orchestration across collections.

- search_service runs the per-collection pipelines and assembles the response
- response_formatter applies field selection and populate directives
"""

from .response_formatter import build_entry, parse_fields, parse_populate
from .search_service import (
    CollectionFailure,
    CollectionOutcome,
    SearchAggregator,
    perform_search,
)


__all__ = [
    "CollectionFailure",
    "CollectionOutcome",
    "SearchAggregator",
    "build_entry",
    "parse_fields",
    "parse_populate",
    "perform_search",
]
