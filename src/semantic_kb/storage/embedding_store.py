"""
Embedding Store - Durable collection of passage records.

The store is the only component that knows the persisted representation.
Every read loads the whole collection; every append rewrites it. This is
meant for hundreds to low thousands of records and a single writer.

On-disk layout (JSON):

    {
      "chunks": [
        {"id": "...", "content": "...", "embedding": [0.1, ...],
         "source": "...", "metadata": {...}}
      ]
    }
"""

import copy
import json
import logging
import os
from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

from ..contracts.passage_contracts import PassageRecord
from ..core.exceptions import (
    DimensionMismatchError,
    InvalidInputError,
    KBError,
    StorageError,
    StoreCorruptError,
)


logger = logging.getLogger(__name__)


COLLECTION_KEY = "chunks"


class EmbeddingStore(ABC):
    """
    Interface for passage record persistence.
    
    Subclasses implement load_all and save_all; append is a read-modify-write
    of the whole collection built on top of them.
    """
    
    @abstractmethod
    def load_all(self) -> List[PassageRecord]:
        """
        Return every persisted record in insertion order.
        
        Returns an empty list when nothing has been persisted yet.
        
        Raises:
            StoreCorruptError: If the backing data cannot be read as records
        """
        pass
    
    @abstractmethod
    def save_all(self, records: Sequence[PassageRecord]) -> None:
        """
        Replace the persisted collection with exactly these records.
        
        Raises:
            StorageError: If the backing medium cannot be written
        """
        pass
    
    def append(self, new_records: Iterable[PassageRecord]) -> List[PassageRecord]:
        """
        Append records and persist the whole collection.
        
        Validates the batch against the existing collection before writing:
        ids must be unused and every embedding must match the store's
        dimension (set by the first record ever stored).
        
        Args:
            new_records: Records to add, in order
            
        Returns:
            The full collection as persisted
            
        Raises:
            InvalidInputError: If an id is already taken or repeated in the batch
            DimensionMismatchError: If an embedding length differs from the store's
        """
        new_records = list(new_records)
        existing = self.load_all()
        
        check_consistency(existing, new_records)
        
        records = existing + new_records
        self.save_all(records)
        
        logger.info(
            f"Appended {len(new_records)} records ({len(records)} total)",
            extra={"operation": "append", "record_count": len(records)},
        )
        return records


def check_consistency(
    existing: Sequence[PassageRecord],
    new_records: Sequence[PassageRecord],
) -> None:
    """
    Check that new records can join an existing collection.
    
    Raises:
        InvalidInputError: On id reuse
        DimensionMismatchError: On embedding length mismatch
    """
    seen_ids = {record.id for record in existing}
    dimension = existing[0].dimension if existing else None
    
    for record in new_records:
        if record.id in seen_ids:
            raise InvalidInputError(f"Passage id already in use: {record.id}")
        seen_ids.add(record.id)
        
        if dimension is None:
            dimension = record.dimension
        elif record.dimension != dimension:
            raise DimensionMismatchError(
                f"Passage {record.id} has embedding dimension {record.dimension}, "
                f"store dimension is {dimension}",
                expected=dimension,
                actual=record.dimension,
            )


class JsonFileEmbeddingStore(EmbeddingStore):
    """
    Embedding store backed by one JSON file.
    
    Writes go to a sibling temporary file that is then renamed over the
    target, so a reader never observes a half-written collection. Concurrent
    writers are not coordinated: the last rename wins.
    
    Example:
        >>> store = JsonFileEmbeddingStore("data/embeddings.json")
        >>> store.append(records)
        >>> store.load_all()
    """
    
    def __init__(self, path: Union[str, Path], pretty_print: bool = True):
        """
        Initialize the store.
        
        Args:
            path: Path of the JSON file (need not exist yet)
            pretty_print: Whether to indent the written JSON
        """
        self.path = Path(path)
        self.pretty_print = pretty_print
        
        logger.debug(f"Initialized JsonFileEmbeddingStore: path={self.path}")
    
    def load_all(self) -> List[PassageRecord]:
        if not self.path.exists():
            logger.debug(
                "Store file does not exist yet, returning empty collection",
                extra={"store_path": str(self.path)},
            )
            return []
        
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise StoreCorruptError(
                f"Cannot read embedding store {self.path}: {e}", path=str(self.path)
            ) from e
        
        records = _parse_collection(data, str(self.path))
        
        logger.debug(
            f"Loaded {len(records)} records",
            extra={"store_path": str(self.path), "record_count": len(records)},
        )
        return records
    
    def save_all(self, records: Sequence[PassageRecord]) -> None:
        content = {COLLECTION_KEY: [record.to_dict() for record in records]}
        indent = 2 if self.pretty_print else None
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(content, f, indent=indent, ensure_ascii=False, allow_nan=False)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            if tmp_path.exists():
                tmp_path.unlink()
            logger.error(f"Failed to write embedding store {self.path}: {e}")
            raise StorageError(f"Failed to write embedding store {self.path}: {e}") from e
        
        logger.debug(
            f"Wrote {len(records)} records",
            extra={"store_path": str(self.path), "record_count": len(records)},
        )


class InMemoryEmbeddingStore(EmbeddingStore):
    """
    Embedding store held in process memory.
    
    Keeps the same full-overwrite semantics as the file store; useful for
    tests and short-lived sessions. Records are copied on the way in and out,
    so callers never share state with the store.
    """
    
    def __init__(self, records: Optional[Iterable[PassageRecord]] = None):
        self._records: List[PassageRecord] = copy.deepcopy(list(records or []))
    
    def load_all(self) -> List[PassageRecord]:
        return copy.deepcopy(self._records)
    
    def save_all(self, records: Sequence[PassageRecord]) -> None:
        self._records = copy.deepcopy(list(records))


def _parse_collection(data: object, path: str) -> List[PassageRecord]:
    """Turn decoded JSON into records, raising StoreCorruptError on bad shape."""
    if not isinstance(data, dict) or not isinstance(data.get(COLLECTION_KEY), list):
        raise StoreCorruptError(
            f"Embedding store {path} must be an object with a '{COLLECTION_KEY}' list",
            path=path,
        )
    
    records = []
    for index, item in enumerate(data[COLLECTION_KEY]):
        if not isinstance(item, dict):
            raise StoreCorruptError(f"Record {index} in {path} is not an object", path=path)
        try:
            records.append(PassageRecord.from_dict(item))
        except (KeyError, TypeError, ValueError, KBError) as e:
            raise StoreCorruptError(
                f"Record {index} in {path} is malformed: {e}", path=path
            ) from e
    
    return records


@dataclass
class StoreSummary:
    """
    Aggregate view of a store's contents.
    
    Attributes:
        record_count: Number of records
        dimension: Shared embedding length, or None if the store is empty
        sources: Record count per source tag, in first-seen order
    """
    record_count: int
    dimension: Optional[int]
    sources: Dict[str, int] = field(default_factory=dict)
    
    def to_dict(self) -> Dict[str, object]:
        """Convert to dictionary for serialization."""
        return {
            "record_count": self.record_count,
            "dimension": self.dimension,
            "sources": self.sources,
        }


def summarize_store(records: Sequence[PassageRecord]) -> StoreSummary:
    """Count records per source and report the embedding dimension."""
    return StoreSummary(
        record_count=len(records),
        dimension=records[0].dimension if records else None,
        sources=dict(Counter(record.source for record in records)),
    )
