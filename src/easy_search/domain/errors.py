"""Error taxonomy for the search engine.

Request-level errors (``InvalidQueryError``, ``ConfigurationMissingError``)
reach the caller. Collection-level errors (``RetrievalError``,
``ScoringDegenerateError``) are converted into empty results by the
aggregator. ``MalformedRichTextError`` only ever excludes a single record.
"""

from __future__ import annotations


class SearchError(Exception):
    """Base error for the search domain."""


class InvalidQueryError(SearchError):
    """Raised when the query string or paging parameters are unusable."""


class ConfigurationMissingError(SearchError):
    """Raised when no collections are configured for searching."""


class ConfigurationError(ValueError):
    """Raised when the deployment configuration fails validation."""


class CollectionError(SearchError):
    """Base error scoped to a single collection."""

    def __init__(self, collection: str, message: str) -> None:
        super().__init__(f"{collection}: {message}")
        self.collection = collection
        self.reason = message


class RetrievalError(CollectionError):
    """Raised when the store is unreachable or the collection schema is absent."""


class ScoringDegenerateError(CollectionError):
    """Raised when none of the configured fields exist in the collection schema."""


class MalformedRichTextError(SearchError):
    """Raised when a rich-text attribute does not have the expected block structure."""
