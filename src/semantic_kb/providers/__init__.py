"""
Embedding and text-generation providers.
"""

from .base import Embedder, TextGenerator
from .ollama_client import (
    OllamaClient,
    OllamaEmbedder,
    OllamaTextGenerator,
    OllamaResponse,
    EmbeddingResponse,
)
from .deterministic import StaticEmbedder, HashEmbedder, EchoGenerator

__all__ = [
    "Embedder",
    "TextGenerator",
    "OllamaClient",
    "OllamaEmbedder",
    "OllamaTextGenerator",
    "OllamaResponse",
    "EmbeddingResponse",
    "StaticEmbedder",
    "HashEmbedder",
    "EchoGenerator",
]
