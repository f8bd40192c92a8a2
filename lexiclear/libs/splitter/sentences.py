"""Paragraph and sentence boundary helpers.

These are pure functions over immutable strings. Spans are ``(start, end)``
character offsets into the string that was passed in, with surrounding
whitespace excluded.
"""

from __future__ import annotations

import math
import re
from typing import List, Optional, Tuple

Span = Tuple[int, int]

PARAGRAPH_BREAK = re.compile(r"\n\s*\n")

# A boundary follows ., ! or ? (after a non-space) when whitespace is followed
# by an uppercase letter, a digit, a quote character or the end of the text.
# Anything else, e.g. "the lessor, i.e. the owner", stays inside one sentence.
SENTENCE_BOUNDARY = re.compile(r"(?<=\S[.!?])\s+(?=[A-Z0-9\"'“‘]|$)")

# Clause break inside an over-long sentence; the comma stays on the left.
CLAUSE_BREAK = re.compile(r"(?<=,)\s+")

_WHITESPACE = re.compile(r"\s+")


def estimate_tokens(text: str) -> int:
    """Cheap token estimate: characters / 4 rounded up, at least 1."""
    return max(1, math.ceil(len(text or "") / 4))


def normalize_text(text: Optional[str]) -> str:
    """Lowercase and collapse whitespace runs into single spaces."""
    return _WHITESPACE.sub(" ", text or "").strip().lower()


def _strip_span(text: str, start: int, end: int) -> Optional[Span]:
    while start < end and text[start].isspace():
        start += 1
    while end > start and text[end - 1].isspace():
        end -= 1
    if start >= end:
        return None
    return start, end


def _split_spans(text: str, pattern: re.Pattern) -> List[Span]:
    spans: List[Span] = []
    cursor = 0
    for match in pattern.finditer(text):
        span = _strip_span(text, cursor, match.start())
        if span is not None:
            spans.append(span)
        cursor = match.end()
    span = _strip_span(text, cursor, len(text))
    if span is not None:
        spans.append(span)
    return spans


def paragraph_spans(text: str) -> List[Span]:
    """Return the spans of non-blank paragraphs separated by blank lines."""
    if not text:
        return []
    return _split_spans(text, PARAGRAPH_BREAK)


def sentence_spans(text: str) -> List[Span]:
    """Return the spans of sentences in ``text`` using the conservative rule."""
    if not text:
        return []
    return _split_spans(text, SENTENCE_BOUNDARY)


def split_paragraphs(text: str) -> List[str]:
    return [text[start:end] for start, end in paragraph_spans(text)]


def split_sentences(text: str) -> List[str]:
    return [text[start:end] for start, end in sentence_spans(text)]


def _hard_spans(text: str, start: int, end: int, width: int) -> List[Span]:
    # Cut every ``width`` characters, backing up to the last whitespace when
    # the window has one so words stay whole.
    spans: List[Span] = []
    cursor = start
    while cursor < end:
        stop = min(cursor + width, end)
        if stop < end:
            space = max(text.rfind(" ", cursor + 1, stop + 1), text.rfind("\n", cursor + 1, stop + 1))
            if space > cursor:
                stop = space
        span = _strip_span(text, cursor, stop)
        if span is not None:
            spans.append(span)
        cursor = stop
    return spans


def split_long_span(text: str, span: Span, max_tokens: int, piece_tokens: int) -> List[Span]:
    """Break a sentence span estimated above ``max_tokens`` into smaller spans.

    The span is first cut after commas. Any clause still above ``max_tokens``
    is cut into pieces of about ``piece_tokens``. Returned spans are exact
    slices of ``text`` in document order.

    Args:
        text: The string ``span`` indexes into.
        span: ``(start, end)`` of the sentence.
        max_tokens: Largest estimate a span may keep.
        piece_tokens: Size of the pieces used by the fixed-width fallback.
    """
    start, end = span
    if estimate_tokens(text[start:end]) <= max_tokens:
        return [span]

    clauses = [(start + s, start + e) for s, e in _split_spans(text[start:end], CLAUSE_BREAK)]
    spans: List[Span] = []
    for clause_start, clause_end in clauses:
        if estimate_tokens(text[clause_start:clause_end]) <= max_tokens:
            spans.append((clause_start, clause_end))
        else:
            spans.extend(_hard_spans(text, clause_start, clause_end, max(1, piece_tokens) * 4))
    return spans
