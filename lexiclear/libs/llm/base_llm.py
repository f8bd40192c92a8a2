"""Abstract base class for LLM providers.

The text-generation capability is only used by the orchestration layer to turn
retrieved segments into prose. The verifier never calls it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

VALID_ROLES = frozenset({"system", "user", "assistant"})


@dataclass
class Message:
    """A single chat message."""
    role: str
    content: str


@dataclass
class ChatResponse:
    """Normalized provider response."""
    content: str
    model: str
    usage: Optional[Dict[str, int]] = None
    raw_response: Optional[Dict[str, Any]] = None


class BaseLLM(ABC):
    """Abstract base class for LLM providers."""

    @abstractmethod
    def chat(
        self,
        messages: List[Message],
        trace: Optional[Any] = None,
        **kwargs: Any,
    ) -> ChatResponse:
        """Generate a chat completion.

        Args:
            messages: Conversation messages.
            trace: Optional TraceContext for observability (reserved).
            **kwargs: Override parameters (temperature, max_tokens, model).

        Raises:
            ValueError: If messages are invalid.
            CapabilityError: If the provider call fails.
        """

    def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        max_output_tokens: int,
        trace: Optional[Any] = None,
    ) -> str:
        """Return the generated text for a system + user prompt pair."""
        response = self.chat(
            [Message(role="system", content=system_prompt), Message(role="user", content=user_prompt)],
            trace=trace,
            max_tokens=max_output_tokens,
        )
        return response.content

    def validate_messages(self, messages: List[Message]) -> None:
        """Validate a message list.

        Raises:
            ValueError: If the list is empty or a message is malformed.
        """
        if not messages:
            raise ValueError("Messages list cannot be empty")
        for i, message in enumerate(messages):
            if not isinstance(message, Message):
                raise ValueError(
                    f"Message at index {i} is not a Message (type: {type(message).__name__})"
                )
            if message.role not in VALID_ROLES:
                raise ValueError(f"Message at index {i} has invalid role: '{message.role}'")
            if not isinstance(message.content, str) or not message.content.strip():
                raise ValueError(f"Message at index {i} has empty content")
