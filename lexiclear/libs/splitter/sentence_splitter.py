"""Paragraph + sentence packing splitter.

This is the default segmentation strategy for legal text. The document is cut
into paragraphs at blank lines, each paragraph into sentences with the
conservative boundary rule from :mod:`lexiclear.libs.splitter.sentences`, and
sentences are packed greedily into segments of roughly ``target_tokens``. A
sentence above one and a half times the target is first cut after commas,
then into target-sized pieces.
Consecutive segments of the same paragraph share a tail of sentences of at
most ``overlap_tokens``; nothing carries across a paragraph break.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional

from lexiclear.libs.splitter.base_splitter import (
    DEFAULT_OVERLAP_TOKENS,
    DEFAULT_TARGET_TOKENS,
    BaseSplitter,
    SegmentDraft,
)
from lexiclear.libs.splitter.sentences import (
    estimate_tokens,
    paragraph_spans,
    sentence_spans,
    split_long_span,
)

MIN_SEGMENT_TOKENS = 50


@dataclass(frozen=True)
class _Sentence:
    text: str
    start: int
    end: int
    tokens: int


def overlap_suffix(sentences: List[_Sentence], overlap_tokens: int) -> List[_Sentence]:
    """Return the trailing sentences that fit in ``overlap_tokens``.

    Sentences are taken from the end backwards until the next one would exceed
    the budget. The last sentence is always kept, so a segment shorter than the
    budget is carried over whole.
    """
    kept: List[_Sentence] = []
    total = 0
    for sentence in reversed(sentences):
        if kept and total + sentence.tokens > overlap_tokens:
            break
        kept.insert(0, sentence)
        total += sentence.tokens
    return kept


class SentenceSplitter(BaseSplitter):
    """Greedy sentence packer with in-paragraph overlap.

    Attributes:
        target_tokens: Token estimate at which a segment is closed.
        overlap_tokens: Token budget of the tail carried into the next segment
            (0 disables carry-over).
    """

    strategy_name = "paragraph+sentences"

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

        groups: List[List[_Sentence]] = []
        for para_start, para_end in paragraph_spans(text):
            sentences = self._sentences(text, para_start, para_end, target)
            groups.extend(self._pack(sentences, target, overlap))

        merged = self._merge_small(groups, max(MIN_SEGMENT_TOKENS, target // 5))
        drafts = [
            SegmentDraft(
                text=" ".join(sentence.text for sentence in group),
                start_offset=group[0].start,
                end_offset=group[-1].end,
            )
            for group in merged
        ]
        self.validate_drafts(text, drafts)
        return drafts

    @staticmethod
    def _sentences(text: str, para_start: int, para_end: int, target: int) -> List[_Sentence]:
        # Spans are matched left to right over the original document, so the
        # offsets of repeated identical sentences advance monotonically.
        paragraph = text[para_start:para_end]
        limit = target + target // 2
        sentences = []
        for sentence_span in sentence_spans(paragraph):
            for start, end in split_long_span(paragraph, sentence_span, limit, target):
                sentence_text = paragraph[start:end]
                sentences.append(
                    _Sentence(
                        text=sentence_text,
                        start=para_start + start,
                        end=para_start + end,
                        tokens=estimate_tokens(sentence_text),
                    )
                )
        return sentences

    @staticmethod
    def _pack(sentences: List[_Sentence], target: int, overlap: int) -> List[List[_Sentence]]:
        groups: List[List[_Sentence]] = []
        current: List[_Sentence] = []
        carried = 0
        total = 0

        for sentence in sentences:
            current.append(sentence)
            total += sentence.tokens
            if total < target:
                continue

            groups.append(current)
            if overlap > 0:
                current = overlap_suffix(current, overlap)
                carried = len(current)
                total = sum(item.tokens for item in current)
            else:
                current, carried, total = [], 0, 0

        # A tail made only of carried sentences repeats the previous segment.
        if len(current) > carried:
            groups.append(current)
        return groups

    @staticmethod
    def _merge_small(groups: List[List[_Sentence]], min_tokens: int) -> List[List[_Sentence]]:
        merged: List[List[_Sentence]] = []
        for group in groups:
            tokens = estimate_tokens(" ".join(sentence.text for sentence in group))
            if merged and tokens < min_tokens:
                previous = merged[-1]
                boundary = previous[-1].end
                previous.extend(s for s in group if s.start >= boundary)
            else:
                merged.append(list(group))
        return merged


def segment(
    document: str,
    target_tokens: int = DEFAULT_TARGET_TOKENS,
    overlap_tokens: int = DEFAULT_OVERLAP_TOKENS,
) -> List[SegmentDraft]:
    """Split ``document`` into drafts with the paragraph + sentence strategy."""
    splitter = SentenceSplitter(target_tokens=target_tokens, overlap_tokens=overlap_tokens)
    return splitter.split(document)
