"""Ollama chat provider for answering and simplifying with a local model."""

from __future__ import annotations

import os
from typing import Any, Dict, List, Optional

from lexiclear.core.exceptions import CapabilityError, is_retryable_status
from lexiclear.libs.llm.base_llm import BaseLLM, ChatResponse, Message


class OllamaLLMError(CapabilityError):
    """Raised when a call to the local Ollama server fails.

    Messages name the failure class only; server URLs stay out of them.
    """


def _content_of(body: Dict[str, Any]) -> str:
    message = body.get("message")
    if isinstance(message, dict) and isinstance(message.get("content"), str):
        return message["content"]
    # Older servers answer /api/generate style
    if isinstance(body.get("response"), str):
        return body["response"]
    raise OllamaLLMError(
        "[Ollama] Unexpected response format: no assistant message in reply", retryable=False
    )


def _usage_of(body: Dict[str, Any]) -> Optional[Dict[str, int]]:
    if "prompt_eval_count" not in body and "eval_count" not in body:
        return None
    prompt = int(body.get("prompt_eval_count") or 0)
    completion = int(body.get("eval_count") or 0)
    return {
        "prompt_tokens": prompt,
        "completion_tokens": completion,
        "total_tokens": prompt + completion,
    }


class OllamaLLM(BaseLLM):
    """Chat completions against a local Ollama server (``/api/chat``).

    Attributes:
        model: Model tag, e.g. ``llama3``.
        base_url: Server URL; ``OLLAMA_BASE_URL`` overrides the default.
        timeout: Per-request timeout in seconds.
    """

    DEFAULT_BASE_URL = "http://localhost:11434"
    DEFAULT_TIMEOUT = 120.0

    def __init__(
        self,
        settings: Any,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        **kwargs: Any,
    ) -> None:
        llm = settings.llm
        self.model = llm.model
        self.default_temperature = llm.temperature
        self.default_max_tokens = llm.max_tokens
        self.base_url = base_url or os.environ.get("OLLAMA_BASE_URL") or self.DEFAULT_BASE_URL
        self.timeout = timeout or self.DEFAULT_TIMEOUT
        self._extra_config = kwargs

    def chat(
        self,
        messages: List[Message],
        trace: Optional[Any] = None,
        **kwargs: Any,
    ) -> ChatResponse:
        """Send the conversation and return the assistant reply.

        ``max_tokens`` maps to Ollama's ``num_predict`` option.

        Raises:
            ValueError: If messages are invalid.
            OllamaLLMError: If the server call fails or the reply is malformed.
        """
        self.validate_messages(messages)

        model = kwargs.get("model", self.model)
        body = self._post(
            {
                "model": model,
                "messages": [{"role": m.role, "content": m.content} for m in messages],
                "stream": False,
                "options": {
                    "temperature": kwargs.get("temperature", self.default_temperature),
                    "num_predict": kwargs.get("max_tokens", self.default_max_tokens),
                },
            }
        )

        return ChatResponse(
            content=_content_of(body),
            model=body.get("model", model),
            usage=_usage_of(body),
            raw_response=body,
        )

    def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        import httpx

        url = f"{self.base_url.rstrip('/')}/api/chat"
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(url, json=payload)
                if response.status_code != 200:
                    raise OllamaLLMError(
                        f"[Ollama] API error (HTTP {response.status_code}): "
                        f"{self._error_detail(response)}",
                        retryable=is_retryable_status(response.status_code),
                    )
                return response.json()
        except httpx.TimeoutException as e:
            raise OllamaLLMError(f"[Ollama] Request timed out after {self.timeout} seconds") from e
        except httpx.ConnectError as e:
            raise OllamaLLMError(
                "[Ollama] Connection failed; is 'ollama serve' running?"
            ) from e
        except httpx.RequestError as e:
            raise OllamaLLMError(f"[Ollama] Request failed: {type(e).__name__}") from e
        except ValueError as e:
            raise OllamaLLMError(f"[Ollama] Failed to parse response: {e}", retryable=False) from e

    @staticmethod
    def _error_detail(response: Any) -> str:
        try:
            data = response.json()
        except ValueError:
            data = None
        if isinstance(data, dict) and "error" in data:
            return str(data["error"])
        return (response.text or "Unknown error")[:200]
