"""Abstract base class for Splitter strategies.

A splitter turns a raw document into ordered :class:`SegmentDraft` items that
carry character offsets into the original document. Identifiers are assigned
later by the ingestion pipeline, once the owning bundle exists.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

DEFAULT_TARGET_TOKENS = 500
DEFAULT_OVERLAP_TOKENS = 50


@dataclass(frozen=True)
class SegmentDraft:
    """A segment before it is attached to a bundle."""
    text: str
    start_offset: int
    end_offset: int


class BaseSplitter(ABC):
    """Abstract base class for Splitter strategies.

    Subclasses implement :meth:`split` and expose a ``strategy_name`` that is
    recorded in the bundle's index metadata.
    """

    strategy_name: str = "base"

    def __init__(
        self,
        settings: Any = None,
        target_tokens: Optional[int] = None,
        overlap_tokens: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        ingestion = getattr(settings, "ingestion", None) if settings is not None else None
        if target_tokens is None:
            target_tokens = getattr(ingestion, "target_tokens", DEFAULT_TARGET_TOKENS)
        if overlap_tokens is None:
            overlap_tokens = getattr(ingestion, "overlap_tokens", DEFAULT_OVERLAP_TOKENS)
        self.settings = settings
        self.target_tokens, self.overlap_tokens = self.validate_sizes(target_tokens, overlap_tokens)

    @abstractmethod
    def split(
        self,
        text: str,
        target_tokens: Optional[int] = None,
        overlap_tokens: Optional[int] = None,
        trace: Optional[Any] = None,
    ) -> List[SegmentDraft]:
        """Split ``text`` into ordered drafts.

        Args:
            text: The original document.
            target_tokens: Optional override of the configured segment size.
            overlap_tokens: Optional override of the configured overlap.
            trace: Optional TraceContext for observability (reserved).

        Returns:
            Drafts in document order; empty for blank input.
        """

    def split_text(self, text: str, trace: Optional[Any] = None, **kwargs: Any) -> List[str]:
        """Return only the texts of :meth:`split`."""
        return [draft.text for draft in self.split(text, trace=trace, **kwargs)]

    def resolve_sizes(
        self, target_tokens: Optional[int], overlap_tokens: Optional[int]
    ) -> Tuple[int, int]:
        target = self.target_tokens if target_tokens is None else target_tokens
        overlap = self.overlap_tokens if overlap_tokens is None else overlap_tokens
        return self.validate_sizes(target, overlap)

    @staticmethod
    def validate_sizes(target_tokens: Any, overlap_tokens: Any) -> Tuple[int, int]:
        """Validate segment sizing parameters.

        Raises:
            ValueError: If sizes are not integers, not positive, or the overlap
                is not smaller than the target.
        """
        if isinstance(target_tokens, bool) or not isinstance(target_tokens, int) or target_tokens <= 0:
            raise ValueError(f"target_tokens must be a positive integer, got: {target_tokens}")
        if isinstance(overlap_tokens, bool) or not isinstance(overlap_tokens, int) or overlap_tokens < 0:
            raise ValueError(f"overlap_tokens must be a non-negative integer, got: {overlap_tokens}")
        if overlap_tokens >= target_tokens:
            raise ValueError(
                f"overlap_tokens ({overlap_tokens}) must be less than "
                f"target_tokens ({target_tokens})"
            )
        return target_tokens, overlap_tokens

    def validate_text(self, text: Any) -> None:
        if not isinstance(text, str):
            raise ValueError(f"Input text must be a string (type: {type(text).__name__})")

    def validate_drafts(self, text: str, drafts: List[SegmentDraft]) -> None:
        """Check the offset invariants of produced drafts.

        Raises:
            RuntimeError: If a draft's offsets fall outside the document.
        """
        for index, draft in enumerate(drafts):
            if not (0 <= draft.start_offset <= draft.end_offset <= len(text)):
                raise RuntimeError(
                    f"Draft {index} has invalid offsets "
                    f"[{draft.start_offset}, {draft.end_offset}) for text length {len(text)}"
                )
            if not draft.text.strip():
                raise RuntimeError(f"Draft {index} is empty")
