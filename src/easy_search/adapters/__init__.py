"""Adapters layer - record store access and candidate retrieval."""

from .retrievers import (
    HybridRetriever,
    InMemoryRetriever,
    PreFilterRetriever,
    Retriever,
    build_retriever,
)
from .store import (
    AbstractRecordStore,
    InMemoryRecordStore,
    JsonFileRecordStore,
    OrderBy,
    StoreFilter,
)


__all__ = [
    "AbstractRecordStore",
    "HybridRetriever",
    "InMemoryRecordStore",
    "InMemoryRetriever",
    "JsonFileRecordStore",
    "OrderBy",
    "PreFilterRetriever",
    "Retriever",
    "StoreFilter",
    "build_retriever",
]
