"""Recursive Splitter implementation using LangChain.

This module provides an alternative segmentation strategy based on LangChain's
recursive character splitter. Token budgets are converted to characters at
four characters per token, matching :func:`estimate_tokens`.
"""

from __future__ import annotations

from typing import Any, List, Optional

try:
    from langchain_text_splitters import RecursiveCharacterTextSplitter
except ImportError:
    RecursiveCharacterTextSplitter = None  # type: ignore[misc, assignment]

from lexiclear.libs.splitter.base_splitter import BaseSplitter, SegmentDraft

CHARS_PER_TOKEN = 4


class RecursiveSplitter(BaseSplitter):
    """Recursive character-based splitter with character offsets.

    The LangChain splitter tries separators in order (paragraphs, lines,
    sentence endings, clauses, words) and records the start index of every
    chunk in the original text.

    Attributes:
        separators: List of separators to try in order.

    Raises:
        ImportError: If langchain-text-splitters package is not installed.
    """

    strategy_name = "recursive-character"

    DEFAULT_SEPARATORS = [
        "\n\n",
        "\n",
        ". ",
        "! ",
        "? ",
        "; ",
        ", ",
        " ",
        "",
    ]

    def __init__(
        self,
        settings: Any = None,
        target_tokens: Optional[int] = None,
        overlap_tokens: Optional[int] = None,
        separators: Optional[List[str]] = None,
        **kwargs: Any,
    ) -> None:
        if RecursiveCharacterTextSplitter is None:
            raise ImportError(
                "langchain-text-splitters is not installed. "
                "Install it with: pip install langchain-text-splitters"
            )
        super().__init__(settings, target_tokens=target_tokens, overlap_tokens=overlap_tokens)
        self.separators = separators if separators is not None else self.DEFAULT_SEPARATORS
        self._extra_config = kwargs

    def _build(self, target: int, overlap: int) -> Any:
        return RecursiveCharacterTextSplitter(
            chunk_size=target * CHARS_PER_TOKEN,
            chunk_overlap=overlap * CHARS_PER_TOKEN,
            separators=self.separators,
            length_function=len,
            is_separator_regex=False,
            add_start_index=True,
            **self._extra_config,
        )

    def split(
        self,
        text: str,
        target_tokens: Optional[int] = None,
        overlap_tokens: Optional[int] = None,
        trace: Optional[Any] = None,
    ) -> List[SegmentDraft]:
        self.validate_text(text)
        target, overlap = self.resolve_sizes(target_tokens, overlap_tokens)

        if not text.strip():
            return []

        try:
            documents = self._build(target, overlap).create_documents([text])
        except Exception as e:
            raise RuntimeError(
                f"RecursiveSplitter failed to split text: {e}. "
                f"Text length: {len(text)}, target_tokens: {target}, "
                f"overlap_tokens: {overlap}"
            ) from e

        drafts: List[SegmentDraft] = []
        cursor = 0
        for document in documents:
            chunk = document.page_content
            if not chunk.strip():
                continue
            start = document.metadata.get("start_index", -1)
            if start is None or start < 0:
                located = text.find(chunk, cursor)
                start = located if located >= 0 else cursor
            end = min(len(text), start + len(chunk))
            drafts.append(SegmentDraft(text=chunk, start_offset=start, end_offset=end))
            cursor = start

        self.validate_drafts(text, drafts)
        return drafts
