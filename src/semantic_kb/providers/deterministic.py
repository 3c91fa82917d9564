"""
Deterministic providers for tests and offline runs.

None of these touch the network. ``StaticEmbedder`` returns vectors from a
fixed lookup, ``HashEmbedder`` derives a reproducible vector from the text's
SHA256 digest, and ``EchoGenerator`` returns canned text.
"""

import hashlib
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..core.exceptions import EmbeddingUnavailableError
from ..core.utils import compute_content_hash
from .base import Embedder, TextGenerator


class StaticEmbedder(Embedder):
    """
    Embedder that looks vectors up in a fixed table.
    
    Unknown texts fall back to ``default`` if given, otherwise the call fails
    with EmbeddingUnavailableError. Every text embedded is recorded in
    ``calls`` for assertions.
    
    Example:
        >>> embedder = StaticEmbedder({"steel": [1.0, 0.0]})
        >>> embedder.embed("steel")
        [1.0, 0.0]
    """
    
    def __init__(
        self,
        vectors: Mapping[str, Sequence[float]],
        default: Optional[Sequence[float]] = None,
    ):
        self.vectors = {text: list(vector) for text, vector in vectors.items()}
        self.default = list(default) if default is not None else None
        self.calls: List[str] = []
    
    def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        if text in self.vectors:
            return list(self.vectors[text])
        if self.default is not None:
            return list(self.default)
        raise EmbeddingUnavailableError(f"No static vector for text: {text[:50]!r}", provider="static")


class HashEmbedder(Embedder):
    """
    Embedder producing reproducible pseudo-random vectors from text.
    
    Identical texts always map to identical vectors; distinct texts map to
    (almost surely) distinct ones. Values lie in [-1, 1].
    """
    
    def __init__(self, dimension: int = 64):
        if dimension < 1:
            raise ValueError("dimension must be >= 1")
        self.dimension = dimension
    
    def embed(self, text: str) -> List[float]:
        vector: List[float] = []
        seed = compute_content_hash(text)
        counter = 0
        
        while len(vector) < self.dimension:
            digest = hashlib.sha256(f"{seed}:{counter}".encode("utf-8")).digest()
            for i in range(0, len(digest), 4):
                value = int.from_bytes(digest[i:i + 4], "big")
                vector.append((value / 2**32) * 2 - 1)
            counter += 1
        
        return vector[:self.dimension]


class EchoGenerator(TextGenerator):
    """
    TextGenerator returning canned replies and recording prompts.
    
    Attributes:
        reply: Text returned by generate_text
        structured_reply: Value returned by generate_structured
        prompts: Every prompt received, in order
    """
    
    def __init__(self, reply: str = "", structured_reply: Any = None):
        self.reply = reply
        self.structured_reply = structured_reply
        self.prompts: List[str] = []
    
    def generate_text(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.reply
    
    def generate_structured(self, prompt: str, schema: Dict[str, Any]) -> Any:
        self.prompts.append(prompt)
        return self.structured_reply
