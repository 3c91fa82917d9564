"""
Ingestion - Chunk text, embed each passage, append the records.

A batch lands in the store through a single ``append`` call, after every
embedding has been obtained. If any embedding fails nothing is written.

When ``max_workers`` > 1, passages are embedded in batches of
``batch_size`` on a thread pool; results are reassembled in passage order.
"""

import copy
import logging
import math
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence

from ..contracts.passage_contracts import Metadata, PassageRecord, validate_metadata
from ..core.exceptions import (
    DimensionMismatchError,
    EmbeddingUnavailableError,
    InvalidInputError,
    KBError,
)
from ..core.utils import generate_passage_id
from ..providers.base import Embedder
from ..storage.embedding_store import EmbeddingStore
from .chunker import ChunkingStrategy, SentenceChunker


logger = logging.getLogger(__name__)


@dataclass
class Document:
    """
    A source text to ingest.
    
    Attributes:
        text: Full source text
        source: Provenance tag stored on every passage
        metadata: Optional metadata copied onto every passage
    """
    text: str
    source: str
    metadata: Optional[Metadata] = None


class Ingestor:
    """
    Write-side companion to RetrievalEngine.
    
    Example:
        >>> ingestor = Ingestor(store, embedder)
        >>> records = ingestor.ingest_text(specs_text, source="material-specs.json",
        ...                                metadata={"type": "material-spec"})
    """
    
    def __init__(
        self,
        store: EmbeddingStore,
        embedder: Embedder,
        chunker: Optional[ChunkingStrategy] = None,
        id_factory: Callable[[], str] = generate_passage_id,
        batch_size: int = 32,
        max_workers: int = 1,
    ):
        """
        Initialize the ingestor.
        
        Args:
            store: Record store to append to
            embedder: Embedding provider for passages
            chunker: Chunking strategy (SentenceChunker if not provided)
            id_factory: Callable returning a fresh passage id per call
            batch_size: Passages per embed_batch call
            max_workers: Concurrent embed_batch calls
        """
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        
        self.store = store
        self.embedder = embedder
        self.chunker = chunker or SentenceChunker()
        self.id_factory = id_factory
        self.batch_size = batch_size
        self.max_workers = max_workers
    
    def ingest_text(
        self,
        text: str,
        source: str,
        metadata: Optional[Metadata] = None,
    ) -> List[PassageRecord]:
        """
        Chunk, embed and store one source text.
        
        Args:
            text: Source text
            source: Provenance tag
            metadata: Optional metadata copied onto every passage
            
        Returns:
            The records appended (empty if the text yields no passages)
        """
        return self.ingest_documents([Document(text=text, source=source, metadata=metadata)])
    
    def ingest_documents(self, documents: Iterable[Document]) -> List[PassageRecord]:
        """
        Chunk, embed and store several documents in one append.
        
        Args:
            documents: Documents to ingest, in order
            
        Returns:
            The records appended, in passage order
            
        Raises:
            InvalidInputError: If a source tag or metadata is invalid
            EmbeddingUnavailableError: If any embedding fails
            DimensionMismatchError: If embeddings disagree in length with each
                other or with the store
        """
        start_time = time.time()
        
        passages = []
        for document in documents:
            if not isinstance(document.source, str):
                raise InvalidInputError("Document source must be a string")
            validate_metadata(document.metadata)
            
            for content in self.chunker.chunk(document.text, source=document.source):
                passages.append((content, document))
        
        if not passages:
            logger.info("No passages produced, store left untouched", extra={"operation": "ingest"})
            return []
        
        embeddings = self._embed_all([content for content, _ in passages])
        
        records = [
            PassageRecord(
                id=self.id_factory(),
                content=content,
                embedding=embedding,
                source=document.source,
                metadata=copy.deepcopy(document.metadata),
            )
            for (content, document), embedding in zip(passages, embeddings)
        ]
        
        self.store.append(records)
        
        duration_ms = int((time.time() - start_time) * 1000)
        sources = sorted({record.source for record in records})
        logger.info(
            f"Ingested {len(records)} passages from {len(sources)} source(s)",
            extra={
                "operation": "ingest",
                "source": ",".join(sources),
                "record_count": len(records),
                "duration_ms": duration_ms,
            },
        )
        return records
    
    def _embed_all(self, texts: List[str]) -> List[List[float]]:
        """Embed every text, in order, failing as a whole on any error."""
        batches = [
            texts[i:i + self.batch_size]
            for i in range(0, len(texts), self.batch_size)
        ]
        
        if self.max_workers == 1 or len(batches) == 1:
            results = [self._embed_batch(batch) for batch in batches]
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                results = list(executor.map(self._embed_batch, batches))
        
        embeddings = [vector for batch in results for vector in batch]
        
        dimension = len(embeddings[0])
        if dimension == 0:
            raise EmbeddingUnavailableError("Embedder returned an empty vector")
        for index, vector in enumerate(embeddings):
            if len(vector) != dimension:
                raise DimensionMismatchError(
                    f"Embedding {index} has dimension {len(vector)}, expected {dimension}",
                    expected=dimension,
                    actual=len(vector),
                )
            if not all(math.isfinite(value) for value in vector):
                raise EmbeddingUnavailableError(f"Embedding {index} contains non-finite values")
        
        return embeddings
    
    def _embed_batch(self, batch: Sequence[str]) -> List[List[float]]:
        try:
            vectors = self.embedder.embed_batch(batch)
        except KBError:
            raise
        except Exception as e:
            raise EmbeddingUnavailableError(f"Failed to embed passages: {e}") from e
        
        if len(vectors) != len(batch):
            raise EmbeddingUnavailableError(
                f"Embedder returned {len(vectors)} vectors for {len(batch)} passages"
            )
        return [list(vector) for vector in vectors]
