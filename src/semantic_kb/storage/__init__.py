"""
Embedding store implementations.
"""

from .embedding_store import (
    EmbeddingStore,
    JsonFileEmbeddingStore,
    InMemoryEmbeddingStore,
    StoreSummary,
    summarize_store,
)

__all__ = [
    "EmbeddingStore",
    "JsonFileEmbeddingStore",
    "InMemoryEmbeddingStore",
    "StoreSummary",
    "summarize_store",
]
