"""OpenAI-compatible Embedding implementation.

Works with the OpenAI ``/embeddings`` endpoint and any server exposing the
same contract (set ``OPENAI_BASE_URL``). A whole batch is sent in one request.
"""

from __future__ import annotations

import os
from typing import Any, Dict, List, Optional

from lexiclear.core.exceptions import CapabilityError, is_retryable_status
from lexiclear.libs.embedding.base_embedding import BaseEmbedding


class OpenAIEmbeddingError(CapabilityError):
    """Raised when the OpenAI Embeddings API call fails."""


class OpenAIEmbedding(BaseEmbedding):
    """OpenAI Embedding provider.

    Attributes:
        model: Embedding model identifier (e.g., 'text-embedding-3-small').
        base_url: API base URL (default: https://api.openai.com/v1).
        timeout: Request timeout in seconds.
        dimension: Configured vector dimension.
    """

    DEFAULT_BASE_URL = "https://api.openai.com/v1"
    DEFAULT_TIMEOUT = 30.0
    DEFAULT_DIMENSION = 1536

    def __init__(
        self,
        settings: Any,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        **kwargs: Any,
    ) -> None:
        self.model = settings.embedding.model
        self.api_key = api_key or os.environ.get("OPENAI_API_KEY")
        self.base_url = base_url or os.environ.get("OPENAI_BASE_URL") or self.DEFAULT_BASE_URL

        retrieval = getattr(settings, "retrieval", None)
        self.timeout = (
            timeout
            or getattr(retrieval, "request_timeout", None)
            or self.DEFAULT_TIMEOUT
        )
        self.dimension = getattr(settings.embedding, "dimensions", self.DEFAULT_DIMENSION)
        self._extra_config = kwargs

    def embed(
        self,
        texts: List[str],
        trace: Optional[Any] = None,
        **kwargs: Any,
    ) -> List[List[float]]:
        """Embed a batch of texts with a single API request.

        Raises:
            ValueError: If texts list is empty or contains invalid entries.
            OpenAIEmbeddingError: If the API key is missing or the call fails.
        """
        self.validate_texts(texts)

        if not self.api_key:
            raise OpenAIEmbeddingError(
                "OPENAI_API_KEY is not configured", retryable=False
            )

        try:
            import httpx
        except ImportError as e:
            raise OpenAIEmbeddingError(
                "httpx library is required for OpenAI Embedding. "
                "Install with: pip install httpx",
                retryable=False,
            ) from e

        url = f"{self.base_url.rstrip('/')}/embeddings"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload: Dict[str, Any] = {"model": self.model, "input": list(texts)}

        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(url, json=payload, headers=headers)
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise OpenAIEmbeddingError(
                f"OpenAI embeddings request failed with status {status}",
                retryable=is_retryable_status(status),
            ) from e
        except httpx.TimeoutException as e:
            raise OpenAIEmbeddingError(
                f"OpenAI embeddings request timed out after {self.timeout}s"
            ) from e
        except httpx.RequestError as e:
            raise OpenAIEmbeddingError(
                f"OpenAI embeddings request failed: {type(e).__name__}"
            ) from e
        except ValueError as e:
            raise OpenAIEmbeddingError(
                f"Failed to parse OpenAI embeddings response: {e}", retryable=False
            ) from e

        return self._parse_response(body, expected=len(texts))

    @staticmethod
    def _parse_response(body: Any, expected: int) -> List[List[float]]:
        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, list):
            raise OpenAIEmbeddingError(
                "Unexpected embeddings response: missing 'data' list", retryable=False
            )
        if len(data) != expected:
            raise OpenAIEmbeddingError(
                f"Embeddings response has {len(data)} items, expected {expected}",
                retryable=False,
            )

        ordered = sorted(
            enumerate(data),
            key=lambda pair: pair[1].get("index", pair[0]) if isinstance(pair[1], dict) else pair[0],
        )
        vectors: List[List[float]] = []
        for _, item in ordered:
            if not isinstance(item, dict) or "embedding" not in item:
                raise OpenAIEmbeddingError(
                    "Unexpected embeddings response item: missing 'embedding'",
                    retryable=False,
                )
            vectors.append(item["embedding"])
        return vectors

    def get_dimension(self) -> int:
        return self.dimension
