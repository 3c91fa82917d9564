"""
Passage Contracts - Data models for the embedding store and retrieval.

Passage records are what the store persists; similarity results are what
retrieval hands back to callers. Results deliberately omit the record id and
raw embedding.

Metadata is restricted to JSON-representable values (None, bool, int, float,
str, lists and string-keyed mappings of those) so the store's serialization
contract stays explicit.
"""

import copy
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from ..core.exceptions import InvalidInputError


MetadataValue = Union[
    None, bool, int, float, str, List["MetadataValue"], Dict[str, "MetadataValue"]
]
Metadata = Dict[str, MetadataValue]


def _check_metadata_value(value: Any, path: str) -> None:
    if value is None or isinstance(value, (bool, int, str)):
        return
    if isinstance(value, float):
        if not math.isfinite(value):
            raise InvalidInputError(f"Metadata value at {path} must be finite, got {value}")
        return
    if isinstance(value, (list, tuple)):
        for i, item in enumerate(value):
            _check_metadata_value(item, f"{path}[{i}]")
        return
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise InvalidInputError(f"Metadata keys must be strings, got {key!r} at {path}")
            _check_metadata_value(item, f"{path}.{key}")
        return
    raise InvalidInputError(
        f"Unsupported metadata value at {path}: {type(value).__name__}"
    )


def validate_metadata(metadata: Optional[Dict[str, Any]]) -> Optional[Metadata]:
    """
    Check that metadata only holds supported value kinds.
    
    Args:
        metadata: Mapping to check, or None
        
    Returns:
        The same mapping (or None)
        
    Raises:
        InvalidInputError: If a key is not a string or a value is unsupported
    """
    if metadata is None:
        return None
    if not isinstance(metadata, dict):
        raise InvalidInputError(f"Metadata must be a mapping, got {type(metadata).__name__}")
    _check_metadata_value(metadata, "metadata")
    return metadata


@dataclass
class PassageRecord:
    """
    A stored passage with its embedding.
    
    Attributes:
        id: Unique identifier, never reused within a store
        content: Passage text (non-empty after trimming)
        embedding: Embedding vector; all records in a store share its length
        source: Provenance tag (e.g. originating document name)
        metadata: Optional caller-supplied mapping, carried through unchanged
    """
    id: str
    content: str
    embedding: List[float]
    source: str
    metadata: Optional[Metadata] = None
    
    def __post_init__(self):
        if not isinstance(self.id, str) or not self.id:
            raise InvalidInputError("Passage id must be a non-empty string")
        if not isinstance(self.content, str) or not self.content.strip():
            raise InvalidInputError(f"Passage {self.id} has empty content")
        if not isinstance(self.source, str):
            raise InvalidInputError(f"Passage {self.id} source must be a string")
        if not all(math.isfinite(value) for value in self.embedding):
            raise InvalidInputError(f"Passage {self.id} embedding contains non-finite values")
        validate_metadata(self.metadata)
    
    @property
    def dimension(self) -> int:
        """Length of the embedding vector."""
        return len(self.embedding)
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        result = {
            "id": self.id,
            "content": self.content,
            "embedding": list(self.embedding),
            "source": self.source,
        }
        if self.metadata is not None:
            result["metadata"] = self.metadata
        return result
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PassageRecord":
        """
        Create from dictionary.
        
        Raises:
            KeyError: If a required field is missing
            TypeError, ValueError: If a field has the wrong shape
        """
        embedding = data["embedding"]
        if not isinstance(embedding, list):
            raise TypeError("embedding must be a list of numbers")
        vector = []
        for value in embedding:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise TypeError(f"embedding values must be numbers, got {value!r}")
            vector.append(float(value))
        
        return cls(
            id=data["id"],
            content=data["content"],
            embedding=vector,
            source=data["source"],
            metadata=data.get("metadata"),
        )


@dataclass
class SimilarityResult:
    """
    A passage that matched a query, projected for callers.
    
    Attributes:
        content: Passage text
        similarity: Cosine similarity to the query, in [-1, 1]
        source: Provenance tag of the passage
        metadata: Passage metadata, unchanged
    """
    content: str
    similarity: float
    source: str
    metadata: Optional[Metadata] = None
    
    @classmethod
    def from_record(cls, record: PassageRecord, similarity: float) -> "SimilarityResult":
        """Project a stored record and its score; metadata is copied."""
        return cls(
            content=record.content,
            similarity=similarity,
            source=record.source,
            metadata=copy.deepcopy(record.metadata),
        )
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        result = {
            "content": self.content,
            "similarity": self.similarity,
            "source": self.source,
        }
        if self.metadata is not None:
            result["metadata"] = self.metadata
        return result


@dataclass
class ChunkingPolicy:
    """
    Policy for splitting source text into passages.
    
    Attributes:
        delimiter: Sentence-terminal string the reference chunker splits on
        max_chunks_per_source: Maximum passages kept per source (None: no cap)
        version: Policy version identifier
    """
    delimiter: str = "."
    max_chunks_per_source: Optional[int] = None
    version: str = "1.0"
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "delimiter": self.delimiter,
            "max_chunks_per_source": self.max_chunks_per_source,
            "version": self.version,
        }
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChunkingPolicy":
        """Create from dictionary."""
        return cls(
            delimiter=data.get("delimiter", "."),
            max_chunks_per_source=data.get("max_chunks_per_source"),
            version=data.get("version", "1.0"),
        )


@dataclass
class RetrievalPolicy:
    """
    Default retrieval parameters.
    
    Attributes:
        threshold: Results must score strictly above this
        top_k: Maximum number of results returned
        scoring_method: Scoring function name (cosine_similarity)
    """
    threshold: float = 0.5
    top_k: int = 4
    scoring_method: str = "cosine_similarity"
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "threshold": self.threshold,
            "top_k": self.top_k,
            "scoring_method": self.scoring_method,
        }
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RetrievalPolicy":
        """Create from dictionary."""
        return cls(
            threshold=data.get("threshold", 0.5),
            top_k=data.get("top_k", 4),
            scoring_method=data.get("scoring_method", "cosine_similarity"),
        )
