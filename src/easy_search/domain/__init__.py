"""Domain layer - search value objects and the error taxonomy.

No dependencies on the record store or the transport layer live here.
"""

from easy_search.domain.errors import (
    CollectionError,
    ConfigurationError,
    ConfigurationMissingError,
    InvalidQueryError,
    MalformedRichTextError,
    RetrievalError,
    ScoringDegenerateError,
    SearchError,
)
from easy_search.domain.model import (
    AttributeSpec,
    CollectionSchema,
    Composite,
    FieldMatch,
    MergedResult,
    NormalizedRecord,
    PageInfo,
    Record,
    ResultEntry,
    Retrieval,
    ScoredCandidate,
    SearchRequest,
    SearchResponse,
    TransliteratedText,
)


__all__ = [
    "AttributeSpec",
    "CollectionError",
    "CollectionSchema",
    "Composite",
    "ConfigurationError",
    "ConfigurationMissingError",
    "FieldMatch",
    "InvalidQueryError",
    "MalformedRichTextError",
    "MergedResult",
    "NormalizedRecord",
    "PageInfo",
    "Record",
    "ResultEntry",
    "Retrieval",
    "RetrievalError",
    "ScoredCandidate",
    "ScoringDegenerateError",
    "SearchError",
    "SearchRequest",
    "SearchResponse",
    "TransliteratedText",
]
