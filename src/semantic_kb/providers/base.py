"""
Provider interfaces consumed by the knowledge base.

Retrieval and ingestion depend only on ``Embedder``. ``TextGenerator`` is
used by grounded answering and never by the retrieval path itself.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Sequence


class Embedder(ABC):
    """Turns text into fixed-length vectors."""
    
    @abstractmethod
    def embed(self, text: str) -> List[float]:
        """
        Embed a single text.
        
        Raises:
            EmbeddingUnavailableError: If the provider fails
        """
        pass
    
    def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        """
        Embed several texts, preserving order.
        
        The default issues one ``embed`` call per text; providers with a
        native batch endpoint should override this.
        """
        return [self.embed(text) for text in texts]


class TextGenerator(ABC):
    """Produces free text or structured values from a prompt."""
    
    @abstractmethod
    def generate_text(self, prompt: str) -> str:
        """Generate unstructured text."""
        pass
    
    @abstractmethod
    def generate_structured(self, prompt: str, schema: Dict[str, Any]) -> Any:
        """Generate a value conforming to a JSON schema."""
        pass
