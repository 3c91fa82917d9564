"""
Custom exceptions for the semantic knowledge base.
"""

from typing import Optional


class KBError(Exception):
    """Base exception for all knowledge base errors."""
    pass


class DimensionMismatchError(KBError, ValueError):
    """
    Two vectors that must be compared or stored together differ in length.
    
    Raised when:
    - Cosine similarity is asked for vectors of unequal length
    - A stored record's embedding differs from the query embedding's length
    - An appended record does not match the store's established dimension
    """
    
    def __init__(self, message: str, expected: Optional[int] = None, actual: Optional[int] = None):
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class StoreCorruptError(KBError):
    """
    Backing medium exists but cannot be read as a record collection.
    
    A store that does not exist yet is not corrupt; it reads as empty.
    """
    
    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class EmbeddingUnavailableError(KBError):
    """
    The embedding capability failed, timed out or returned an unusable vector.
    
    The enclosing ingestion or retrieval call fails as a whole.
    """
    
    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message)
        self.provider = provider


class InvalidInputError(KBError, ValueError):
    """
    Caller supplied an argument outside its valid domain.
    
    Raised when:
    - Query text is empty after trimming
    - top_k is negative or not an integer
    - threshold is outside [-1, 1]
    - A passage id is reused or metadata is not serializable
    """
    pass


class ProviderError(KBError):
    """
    Error communicating with an HTTP model provider.
    
    Raised when:
    - Provider is unreachable
    - Request times out
    - Provider returns an error response or malformed JSON
    """
    
    def __init__(self, message: str, provider: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class StorageError(KBError):
    """Writing the record collection to its backing medium failed."""
    pass


class ConfigError(KBError):
    """
    Error in knowledge base configuration.
    
    Raised when:
    - Configuration file is missing or not valid YAML
    - Configuration values are out of valid range
    """
    pass
