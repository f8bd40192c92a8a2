"""Interface of the external embedding capability.

The retriever only talks to :class:`BaseEmbedding`; the concrete provider is
chosen by ``settings.embedding.provider`` through the embedding factory.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, List, Optional


class BaseEmbedding(ABC):
    """A batch text-to-vector capability.

    Implementations return one vector per input text, in input order, and
    raise :class:`~lexiclear.core.exceptions.CapabilityError` subclasses on
    failure so the caller's retry policy can decide what to do.

    Attributes:
        model: Model identifier; recorded in a bundle's index metadata so a
            model switch invalidates previously stored vectors.
    """

    model: str = ""

    @abstractmethod
    def embed(
        self,
        texts: List[str],
        trace: Optional[Any] = None,
        **kwargs: Any,
    ) -> List[List[float]]:
        """Embed a non-empty batch of texts.

        Args:
            texts: Texts to embed.
            trace: Optional TraceContext for observability (reserved).
            **kwargs: Provider-specific parameters.

        Returns:
            ``len(texts)`` vectors.

        Raises:
            ValueError: If the batch is empty or holds blank or non-string texts.
            CapabilityError: If the provider call fails.
        """

    @property
    def model_name(self) -> str:
        return self.model or type(self).__name__

    def validate_texts(self, texts: List[str]) -> None:
        """Reject batches providers would refuse anyway.

        Raises:
            ValueError: On an empty batch or a blank or non-string entry.
        """
        if not texts:
            raise ValueError("Texts list cannot be empty")

        for index, text in enumerate(texts):
            if not isinstance(text, str):
                raise ValueError(
                    f"Text at index {index} is not a string (type: {type(text).__name__})"
                )
            if not text.strip():
                raise ValueError(f"Text at index {index} is empty or whitespace-only")

    def get_dimension(self) -> int:
        """Vector length produced by this provider."""
        raise NotImplementedError(f"{type(self).__name__} does not report its dimension")
