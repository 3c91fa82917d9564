"""
Retrieval Search - Find the stored passages most relevant to a query.

Implements:
- Query embedding through the injected Embedder
- Cosine scoring against every stored record (linear scan)
- Strict threshold filtering (similarity > threshold)
- Ranking by similarity with store insertion order as the tie-break
- Truncation to top-K
"""

import logging
import math
import time
from typing import List, Optional

from ..contracts.passage_contracts import RetrievalPolicy, SimilarityResult
from ..core.exceptions import (
    DimensionMismatchError,
    EmbeddingUnavailableError,
    InvalidInputError,
    KBError,
)
from ..providers.base import Embedder
from ..storage.embedding_store import EmbeddingStore
from .similarity import cosine_similarity


logger = logging.getLogger(__name__)


def validate_query(query: str, threshold: float, top_k: int) -> None:
    """
    Reject invalid retrieval arguments.
    
    Raises:
        InvalidInputError: If the query is blank, threshold is outside [-1, 1]
            or not a number, or top_k is not a non-negative integer
    """
    if not isinstance(query, str) or not query.strip():
        raise InvalidInputError("Query must be a non-empty string")
    
    if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
        raise InvalidInputError(f"threshold must be a number, got {threshold!r}")
    if math.isnan(threshold) or not -1.0 <= threshold <= 1.0:
        raise InvalidInputError(f"threshold must be within [-1, 1], got {threshold}")
    
    if isinstance(top_k, bool) or not isinstance(top_k, int):
        raise InvalidInputError(f"top_k must be an integer, got {top_k!r}")
    if top_k < 0:
        raise InvalidInputError(f"top_k must be >= 0, got {top_k}")


def embed_query(embedder: Embedder, query: str) -> List[float]:
    """
    Embed a query, normalizing provider failures.
    
    Raises:
        EmbeddingUnavailableError: If the embedder fails or returns an empty vector
    """
    try:
        vector = embedder.embed(query)
    except KBError:
        raise
    except Exception as e:
        raise EmbeddingUnavailableError(f"Failed to embed query: {e}") from e
    
    if not vector:
        raise EmbeddingUnavailableError("Embedder returned an empty vector for the query")
    if not all(math.isfinite(value) for value in vector):
        raise EmbeddingUnavailableError("Embedder returned non-finite values for the query")
    return list(vector)


class RetrievalEngine:
    """
    Answers "which stored passages are most relevant to this query".
    
    Each call reads the store's current snapshot; nothing is cached between
    calls.
    
    Example:
        >>> engine = RetrievalEngine(JsonFileEmbeddingStore(path), embedder)
        >>> for result in engine.find_relevant("yield strength of SS316"):
        ...     print(f"{result.similarity:.3f} {result.content}")
    """
    
    def __init__(
        self,
        store: EmbeddingStore,
        embedder: Embedder,
        policy: Optional[RetrievalPolicy] = None,
    ):
        """
        Initialize the engine.
        
        Args:
            store: Record store to scan
            embedder: Embedding provider for queries
            policy: Default threshold and top_k (uses default if not provided)
        """
        self.store = store
        self.embedder = embedder
        self.policy = policy or RetrievalPolicy()
    
    def find_relevant(
        self,
        query: str,
        threshold: Optional[float] = None,
        top_k: Optional[int] = None,
    ) -> List[SimilarityResult]:
        """
        Return the top-K passages scoring strictly above threshold.
        
        Args:
            query: Query text
            threshold: Minimum similarity, exclusive (default from policy)
            top_k: Maximum results (default from policy)
            
        Returns:
            Results ordered by similarity descending; equal scores keep store
            insertion order. Empty if nothing clears the threshold.
            
        Raises:
            InvalidInputError: On invalid arguments
            EmbeddingUnavailableError: If the query cannot be embedded
            StoreCorruptError: If the store cannot be read
            DimensionMismatchError: If any record's embedding length differs
                from the query embedding's
        """
        threshold = self.policy.threshold if threshold is None else threshold
        top_k = self.policy.top_k if top_k is None else top_k
        validate_query(query, threshold, top_k)
        
        start_time = time.time()
        
        query_embedding = embed_query(self.embedder, query)
        records = self.store.load_all()
        
        scored = []
        for index, record in enumerate(records):
            if record.dimension != len(query_embedding):
                raise DimensionMismatchError(
                    f"Record {record.id} has embedding dimension {record.dimension}, "
                    f"query embedding has {len(query_embedding)}",
                    expected=len(query_embedding),
                    actual=record.dimension,
                )
            
            score = cosine_similarity(query_embedding, record.embedding)
            if score > threshold:
                scored.append((score, index, record))
        
        # Descending score, then insertion order
        scored.sort(key=lambda item: (-item[0], item[1]))
        
        results = [
            SimilarityResult.from_record(record, score)
            for score, _, record in scored[:top_k]
        ]
        
        duration_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"Retrieved {len(results)} of {len(scored)} passages above {threshold} "
            f"from {len(records)} candidates (query: {query[:50]}...)",
            extra={
                "operation": "find_relevant",
                "record_count": len(records),
                "duration_ms": duration_ms,
            },
        )
        
        return results


def find_relevant(
    store: EmbeddingStore,
    embedder: Embedder,
    query: str,
    threshold: float = 0.5,
    top_k: int = 4,
) -> List[SimilarityResult]:
    """
    Functional form of RetrievalEngine.find_relevant.
    
    Args:
        store: Record store to scan
        embedder: Embedding provider for the query
        query: Query text
        threshold: Minimum similarity, exclusive
        top_k: Maximum number of results
        
    Returns:
        Ranked list of SimilarityResult
    """
    engine = RetrievalEngine(store, embedder, RetrievalPolicy(threshold=threshold, top_k=top_k))
    return engine.find_relevant(query)
