"""
Chunker - Split documents into passages for embedding.

Every strategy honours the same contract: text in, an ordered sequence of
non-empty, whitespace-trimmed strings out. Iteration is lazy and each call
to ``split`` starts a fresh pass over the text.

Strategies:
- SentenceChunker: splits on a sentence delimiter (reference policy: ".")
- CharacterWindowChunker: fixed-size overlapping windows on word boundaries
"""

import logging
from abc import ABC, abstractmethod
from itertools import islice
from typing import Iterator, List, Optional

from ..contracts.passage_contracts import ChunkingPolicy


logger = logging.getLogger(__name__)


class ChunkingStrategy(ABC):
    """Interface for splitting text into passages."""
    
    @abstractmethod
    def split(self, text: str) -> Iterator[str]:
        """Yield non-empty trimmed passages in source order."""
        pass
    
    def chunk(self, text: str, source: Optional[str] = None) -> List[str]:
        """
        Materialize passages for one source, honouring the per-source cap.
        
        Args:
            text: Source text
            source: Source tag (used for logging only)
            
        Returns:
            List of passages, truncated to max_chunks_per_source when set
        """
        limit = self.max_chunks_per_source
        if limit is None:
            return list(self.split(text))
        
        passages = list(islice(self.split(text), limit + 1))
        
        if len(passages) > limit:
            logger.warning(
                f"Source {source or '<unnamed>'} produced more than {limit} passages, "
                f"limiting to {limit}",
                extra={"operation": "chunk", "source": source},
            )
            passages = passages[:limit]
        
        return passages
    
    @property
    def max_chunks_per_source(self) -> Optional[int]:
        """Maximum passages kept per source, or None for no cap."""
        return ChunkingPolicy().max_chunks_per_source


class SentenceChunker(ChunkingStrategy):
    """
    Splits text on a sentence delimiter.
    
    Naive by design: decimals ("2.5"), abbreviations and serialized records
    are split too. Swap in another strategy if that matters.
    
    Example:
        >>> list(SentenceChunker().split("First one. Second one."))
        ['First one', 'Second one']
    """
    
    def __init__(self, policy: Optional[ChunkingPolicy] = None):
        """
        Initialize the chunker.
        
        Args:
            policy: Chunking policy (uses default if not provided)
        """
        self.policy = policy or ChunkingPolicy()
        if not self.policy.delimiter:
            raise ValueError("delimiter must not be empty")
    
    @property
    def max_chunks_per_source(self) -> Optional[int]:
        return self.policy.max_chunks_per_source
    
    def split(self, text: str) -> Iterator[str]:
        delimiter = self.policy.delimiter
        start = 0
        while True:
            end = text.find(delimiter, start)
            piece = text[start:] if end == -1 else text[start:end]
            piece = piece.strip()
            if piece:
                yield piece
            if end == -1:
                return
            start = end + len(delimiter)


class CharacterWindowChunker(ChunkingStrategy):
    """
    Splits text into overlapping fixed-size windows.
    
    Windows are pulled back to the last space when one falls in the second
    half of the window, so words are rarely cut.
    """
    
    def __init__(
        self,
        chunk_size: int = 2000,
        overlap: int = 200,
        max_chunks_per_source: Optional[int] = None,
    ):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if overlap < 0:
            raise ValueError("overlap must be non-negative")
        if overlap >= chunk_size:
            raise ValueError("overlap must be less than chunk_size")
        
        self.chunk_size = chunk_size
        self.overlap = overlap
        self._max_chunks = max_chunks_per_source
    
    @property
    def max_chunks_per_source(self) -> Optional[int]:
        return self._max_chunks
    
    def split(self, text: str) -> Iterator[str]:
        text_len = len(text)
        start = 0
        
        while start < text_len:
            end = min(start + self.chunk_size, text_len)
            
            if end < text_len:
                last_space = text.rfind(" ", start, end)
                if last_space - start > self.chunk_size // 2:
                    end = last_space
            
            piece = text[start:end].strip()
            if piece:
                yield piece
            
            if end >= text_len:
                return
            # Resume one overlap before where this window actually ended
            start = max(end - self.overlap, start + 1)


def chunk_text(text: str, delimiter: str = ".") -> List[str]:
    """
    Split text into sentence passages with the reference policy.
    
    Args:
        text: Text content to chunk
        delimiter: Sentence delimiter
        
    Returns:
        Ordered list of non-empty trimmed passages
    """
    return list(SentenceChunker(ChunkingPolicy(delimiter=delimiter)).split(text))
