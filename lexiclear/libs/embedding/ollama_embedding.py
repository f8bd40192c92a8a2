"""Embeddings from a local Ollama server.

Ollama's ``/api/embeddings`` endpoint takes a single prompt, so a batch is
sent as one request per text over a shared HTTP connection.
"""

from __future__ import annotations

import os
from typing import Any, List, Optional

from lexiclear.core.exceptions import CapabilityError, is_retryable_status
from lexiclear.libs.embedding.base_embedding import BaseEmbedding


class OllamaEmbeddingError(CapabilityError):
    """Raised when the Ollama embeddings endpoint cannot produce a vector."""


class OllamaEmbedding(BaseEmbedding):
    """Embedding provider for models served by Ollama (e.g. ``nomic-embed-text``).

    Attributes:
        base_url: Server URL; explicit argument, then ``OLLAMA_BASE_URL``, then
            the local default.
        timeout: Per-request timeout; explicit argument, then
            ``retrieval.request_timeout``, then 120 seconds.
        dimension: Vector length reported by :meth:`get_dimension`.
    """

    DEFAULT_BASE_URL = "http://localhost:11434"
    DEFAULT_TIMEOUT = 120.0
    DEFAULT_DIMENSION = 768

    def __init__(
        self,
        settings: Any,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        **kwargs: Any,
    ) -> None:
        embedding = settings.embedding
        self.model = embedding.model
        self.dimension = getattr(embedding, "dimensions", self.DEFAULT_DIMENSION)
        self.base_url = base_url or os.environ.get("OLLAMA_BASE_URL") or self.DEFAULT_BASE_URL

        configured_timeout = getattr(getattr(settings, "retrieval", None), "request_timeout", None)
        self.timeout = timeout or configured_timeout or self.DEFAULT_TIMEOUT
        self._extra_config = kwargs

    def embed(
        self,
        texts: List[str],
        trace: Optional[Any] = None,
        **kwargs: Any,
    ) -> List[List[float]]:
        """Embed ``texts`` in order.

        Raises:
            ValueError: If the batch is invalid.
            OllamaEmbeddingError: On connection, timeout, HTTP or format errors.
        """
        self.validate_texts(texts)

        try:
            import httpx
        except ImportError as e:
            raise OllamaEmbeddingError(
                "httpx library is required for Ollama Embedding. Install with: pip install httpx",
                retryable=False,
            ) from e

        url = f"{self.base_url.rstrip('/')}/api/embeddings"
        with httpx.Client(timeout=self.timeout) as client:
            return [self._embed_one(client, url, text) for text in texts]

    def _embed_one(self, client: Any, url: str, text: str) -> List[float]:
        import httpx

        try:
            response = client.post(url, json={"model": self.model, "prompt": text})
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise OllamaEmbeddingError(
                f"Ollama API request failed with status {status} for model '{self.model}'",
                retryable=is_retryable_status(status),
            ) from e
        except httpx.ConnectError as e:
            raise OllamaEmbeddingError(
                "Failed to connect to Ollama server; is 'ollama serve' running?"
            ) from e
        except httpx.TimeoutException as e:
            raise OllamaEmbeddingError(f"Ollama API request timed out after {self.timeout}s") from e
        except httpx.RequestError as e:
            raise OllamaEmbeddingError(f"Ollama API request failed: {type(e).__name__}") from e
        except ValueError as e:
            raise OllamaEmbeddingError(
                f"Failed to parse Ollama API response: {e}", retryable=False
            ) from e

        vector = body.get("embedding") if isinstance(body, dict) else None
        if vector is None:
            found = sorted(body) if isinstance(body, dict) else type(body).__name__
            raise OllamaEmbeddingError(
                f"Unexpected response format from Ollama API: no 'embedding' in {found}",
                retryable=False,
            )
        return vector

    def get_dimension(self) -> int:
        return self.dimension
