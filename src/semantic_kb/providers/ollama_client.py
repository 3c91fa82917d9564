"""
Ollama provider client.

Thin HTTP client for Ollama's native REST API, plus adapters that expose it
through the ``Embedder`` and ``TextGenerator`` interfaces.

Endpoints used:
- /api/embed     (batched embeddings)
- /api/generate  (free text)
- /api/chat      (structured output via the ``format`` schema parameter)
- /api/tags      (health check)
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from ..core.config import (
    DEFAULT_BASE_URL,
    DEFAULT_EMBED_MODEL,
    DEFAULT_GENERATION_MODEL,
    KBConfig,
)
from ..core.exceptions import EmbeddingUnavailableError, ProviderError
from .base import Embedder, TextGenerator


logger = logging.getLogger(__name__)


@dataclass
class OllamaResponse:
    """
    Response from an Ollama generation endpoint.
    
    Attributes:
        content: The generated text content
        model: Model that generated the response
        raw_response: Full response JSON
        prompt_tokens: Number of prompt tokens (if available)
        completion_tokens: Number of completion tokens (if available)
        done: Whether generation is complete
    """
    content: Optional[str] = None
    model: Optional[str] = None
    raw_response: Optional[Dict[str, Any]] = None
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    done: bool = True


@dataclass
class EmbeddingResponse:
    """
    Response from the Ollama embeddings API.
    
    Attributes:
        embeddings: List of embedding vectors (each is list of floats)
        model: Model that generated the embeddings
        raw_response: Full response JSON
        total_duration: Total time in nanoseconds
        load_duration: Model load time in nanoseconds
    """
    embeddings: List[List[float]] = field(default_factory=list)
    model: Optional[str] = None
    raw_response: Optional[Dict[str, Any]] = None
    total_duration: Optional[int] = None
    load_duration: Optional[int] = None


class OllamaClient:
    """
    HTTP client for the Ollama provider.
    
    Non-streaming only; every call returns one complete response.
    
    Example:
        >>> client = OllamaClient(embed_model="nomic-embed-text")
        >>> response = client.embed(["Hello world", "Test text"])
        >>> len(response.embeddings)
        2
    """
    
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_GENERATION_MODEL,
        embed_model: str = DEFAULT_EMBED_MODEL,
        timeout_seconds: float = 120.0,
        temperature: Optional[float] = 0.0,
    ):
        """
        Initialize the Ollama client.
        
        Args:
            base_url: Base URL of the Ollama server
            model: Generation model name
            embed_model: Embedding model name
            timeout_seconds: Per-request timeout
            temperature: Sampling temperature (None leaves the server default)
        """
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.embed_model = embed_model
        self.timeout = timeout_seconds
        self.temperature = temperature
        
        logger.debug(
            f"Initialized OllamaClient: base_url={self.base_url}, "
            f"model={self.model}, embed_model={self.embed_model}"
        )
    
    @classmethod
    def from_config(cls, config: KBConfig) -> "OllamaClient":
        """Create a client from resolved configuration."""
        return cls(
            base_url=config.base_url,
            model=config.generation_model,
            embed_model=config.embed_model,
            timeout_seconds=config.timeout_seconds,
            temperature=config.temperature,
        )
    
    def _options(self) -> Dict[str, Any]:
        if self.temperature is None:
            return {}
        return {"options": {"temperature": self.temperature}}
    
    def generate(self, prompt: str, system_prompt: Optional[str] = None) -> OllamaResponse:
        """
        Generate a response using the native /api/generate endpoint.
        
        Args:
            prompt: The user prompt
            system_prompt: Optional system prompt
            
        Returns:
            OllamaResponse with the generated content
            
        Raises:
            ProviderError: If the request fails
        """
        payload = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            **self._options(),
        }
        if system_prompt:
            payload["system"] = system_prompt
        
        result = self._post("/api/generate", payload)
        return OllamaResponse(
            content=result.get("response"),
            model=result.get("model"),
            raw_response=result,
            prompt_tokens=result.get("prompt_eval_count"),
            completion_tokens=result.get("eval_count"),
            done=result.get("done", True),
        )
    
    def chat_with_structured_output(
        self,
        messages: list,
        output_schema: Dict[str, Any],
    ) -> OllamaResponse:
        """
        Chat with the reply constrained to a JSON schema.
        
        Args:
            messages: List of message dicts with 'role' and 'content'
            output_schema: JSON schema passed as the ``format`` parameter
            
        Returns:
            OllamaResponse whose content is the JSON text
            
        Raises:
            ProviderError: If the request fails
        """
        payload = {
            "model": self.model,
            "messages": messages,
            "stream": False,
            "format": output_schema,
            **self._options(),
        }
        
        result = self._post("/api/chat", payload)
        message = result.get("message") or {}
        return OllamaResponse(
            content=message.get("content"),
            model=result.get("model"),
            raw_response=result,
            prompt_tokens=result.get("prompt_eval_count"),
            completion_tokens=result.get("eval_count"),
            done=result.get("done", True),
        )
    
    def embed(self, texts: Sequence[str], model: Optional[str] = None) -> EmbeddingResponse:
        """
        Generate embeddings for a list of texts using /api/embed.
        
        Args:
            texts: List of texts to embed
            model: Embedding model to use (defaults to self.embed_model)
            
        Returns:
            EmbeddingResponse with one vector per input text, in order
            
        Raises:
            ProviderError: If the request fails or the reply is malformed
        """
        embed_model = model or self.embed_model
        payload = {
            "model": embed_model,
            "input": list(texts),
        }
        
        result = self._post("/api/embed", payload)
        embeddings = result.get("embeddings")
        
        if not isinstance(embeddings, list) or len(embeddings) != len(texts):
            count = len(embeddings) if isinstance(embeddings, list) else 0
            raise ProviderError(
                f"Ollama embed returned {count} vectors for {len(texts)} inputs",
                provider="ollama",
            )
        
        return EmbeddingResponse(
            embeddings=embeddings,
            model=result.get("model", embed_model),
            raw_response=result,
            total_duration=result.get("total_duration"),
            load_duration=result.get("load_duration"),
        )
    
    def health_check(self) -> bool:
        """
        Check if Ollama is reachable and the embedding model is available.
        
        Returns:
            True if Ollama is healthy, False otherwise
        """
        try:
            request = Request(f"{self.base_url}/api/tags", method="GET")
            with urlopen(request, timeout=10) as response:
                data = json.loads(response.read().decode("utf-8"))
        except (URLError, OSError, ValueError) as e:
            logger.warning(f"Health check failed: {e}")
            return False
        
        names = [m.get("name", "") for m in data.get("models", [])]
        bases = [name.split(":")[0] for name in names]
        if self.embed_model in names or self.embed_model.split(":")[0] in bases:
            logger.debug(f"Health check passed: model {self.embed_model} available")
            return True
        
        logger.warning(f"Model {self.embed_model} not found. Available: {bases}")
        return False
    
    def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST a JSON payload and decode the JSON reply.
        
        Raises:
            ProviderError: On HTTP errors, connection failures, timeouts or
                invalid JSON
        """
        url = f"{self.base_url}{path}"
        data = json.dumps(payload).encode("utf-8")
        request = Request(
            url,
            data=data,
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        
        logger.debug(f"Making request to {url}")
        
        try:
            with urlopen(request, timeout=self.timeout) as response:
                result = json.loads(response.read().decode("utf-8"))
        except HTTPError as e:
            error_body = e.read().decode("utf-8") if e.fp else str(e)
            logger.error(f"HTTP error from Ollama: {e.code} - {error_body}")
            raise ProviderError(
                f"Ollama API error: {e.code} - {error_body}",
                provider="ollama",
                status_code=e.code,
            ) from e
        except URLError as e:
            logger.error(f"Failed to connect to Ollama: {e}")
            raise ProviderError(
                f"Failed to connect to Ollama at {self.base_url}: {e}",
                provider="ollama",
            ) from e
        except TimeoutError as e:
            logger.error(f"Ollama request timed out after {self.timeout}s: {url}")
            raise ProviderError(
                f"Ollama request timed out after {self.timeout}s",
                provider="ollama",
            ) from e
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON response from Ollama: {e}")
            raise ProviderError(
                f"Invalid JSON response from Ollama: {e}",
                provider="ollama",
            ) from e
        
        if not isinstance(result, dict):
            raise ProviderError("Ollama response is not a JSON object", provider="ollama")
        return result


class OllamaEmbedder(Embedder):
    """
    Embedder backed by Ollama's /api/embed.
    
    Provider failures surface as EmbeddingUnavailableError.
    """
    
    def __init__(self, client: OllamaClient):
        self.client = client
    
    def embed(self, text: str) -> List[float]:
        return self.embed_batch([text])[0]
    
    def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        if not texts:
            return []
        try:
            return self.client.embed(texts).embeddings
        except ProviderError as e:
            raise EmbeddingUnavailableError(
                f"Embedding provider failed: {e}", provider="ollama"
            ) from e


class OllamaTextGenerator(TextGenerator):
    """TextGenerator backed by Ollama's generate and chat endpoints."""
    
    def __init__(self, client: OllamaClient, system_prompt: Optional[str] = None):
        self.client = client
        self.system_prompt = system_prompt
    
    def generate_text(self, prompt: str) -> str:
        response = self.client.generate(prompt, system_prompt=self.system_prompt)
        return (response.content or "").strip()
    
    def generate_structured(self, prompt: str, schema: Dict[str, Any]) -> Any:
        messages = []
        if self.system_prompt:
            messages.append({"role": "system", "content": self.system_prompt})
        messages.append({"role": "user", "content": prompt})
        
        response = self.client.chat_with_structured_output(messages, schema)
        try:
            return json.loads(response.content or "")
        except json.JSONDecodeError as e:
            raise ProviderError(
                f"Structured output is not valid JSON: {e}", provider="ollama"
            ) from e
