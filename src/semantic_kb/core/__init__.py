"""
Core subpackage for the semantic knowledge base.

Contains exceptions, logging utilities, configuration and shared helpers.
"""

from .exceptions import (
    KBError,
    DimensionMismatchError,
    StoreCorruptError,
    EmbeddingUnavailableError,
    InvalidInputError,
    ProviderError,
    StorageError,
    ConfigError,
)
from .config import KBConfig, load_config

__all__ = [
    # Exceptions
    "KBError",
    "DimensionMismatchError",
    "StoreCorruptError",
    "EmbeddingUnavailableError",
    "InvalidInputError",
    "ProviderError",
    "StorageError",
    "ConfigError",
    # Config
    "KBConfig",
    "load_config",
]
