"""
Data contracts for passages, similarity results and policies.
"""

from .passage_contracts import (
    MetadataValue,
    Metadata,
    PassageRecord,
    SimilarityResult,
    ChunkingPolicy,
    RetrievalPolicy,
    validate_metadata,
)

__all__ = [
    "MetadataValue",
    "Metadata",
    "PassageRecord",
    "SimilarityResult",
    "ChunkingPolicy",
    "RetrievalPolicy",
    "validate_metadata",
]
