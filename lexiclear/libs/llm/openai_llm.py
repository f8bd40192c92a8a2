"""OpenAI-compatible chat completion provider."""

from __future__ import annotations

import os
from typing import Any, Dict, List, Optional

from lexiclear.core.exceptions import CapabilityError, is_retryable_status
from lexiclear.libs.llm.base_llm import BaseLLM, ChatResponse, Message


class OpenAILLMError(CapabilityError):
    """Raised when the OpenAI Chat Completions API call fails."""


class OpenAILLM(BaseLLM):
    """OpenAI Chat Completions provider.

    Attributes:
        model: Chat model identifier (e.g., 'gpt-4o-mini').
        base_url: API base URL, overridable with OPENAI_BASE_URL.
        timeout: Request timeout in seconds.
    """

    DEFAULT_BASE_URL = "https://api.openai.com/v1"
    DEFAULT_TIMEOUT = 60.0

    def __init__(
        self,
        settings: Any,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        **kwargs: Any,
    ) -> None:
        self.model = settings.llm.model
        self.default_temperature = settings.llm.temperature
        self.default_max_tokens = settings.llm.max_tokens
        self.api_key = api_key or os.environ.get("OPENAI_API_KEY")
        self.base_url = base_url or os.environ.get("OPENAI_BASE_URL") or self.DEFAULT_BASE_URL
        self.timeout = timeout or self.DEFAULT_TIMEOUT
        self._extra_config = kwargs

    def chat(
        self,
        messages: List[Message],
        trace: Optional[Any] = None,
        **kwargs: Any,
    ) -> ChatResponse:
        self.validate_messages(messages)

        if not self.api_key:
            raise OpenAILLMError("OPENAI_API_KEY is not configured", retryable=False)

        model = kwargs.get("model", self.model)
        payload = {
            "model": model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "max_tokens": kwargs.get("max_tokens", self.default_max_tokens),
            "temperature": kwargs.get("temperature", self.default_temperature),
        }

        body = self._call_api(payload)

        try:
            content = body["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as e:
            raise OpenAILLMError(
                f"Unexpected chat completion response format: {e}", retryable=False
            ) from e

        return ChatResponse(
            content=content,
            model=body.get("model", model),
            usage=body.get("usage"),
            raw_response=body,
        )

    def _call_api(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Post the payload to ``/chat/completions``.

        Raises:
            OpenAILLMError: If the API call fails.
        """
        import httpx

        url = f"{self.base_url.rstrip('/')}/chat/completions"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(url, json=payload, headers=headers)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise OpenAILLMError(
                f"OpenAI chat request failed with status {status}",
                retryable=is_retryable_status(status),
            ) from e
        except httpx.TimeoutException as e:
            raise OpenAILLMError(
                f"OpenAI chat request timed out after {self.timeout}s"
            ) from e
        except httpx.RequestError as e:
            raise OpenAILLMError(f"OpenAI chat request failed: {type(e).__name__}") from e
        except ValueError as e:
            raise OpenAILLMError(
                f"Failed to parse OpenAI chat response: {e}", retryable=False
            ) from e
