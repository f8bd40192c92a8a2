"""Citation and quoted-snippet helpers used by the verifier.

All functions are pure and operate on plain strings.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional

from lexiclear.libs.splitter.sentences import normalize_text

CITATION_PATTERN = re.compile(r"\b(bundle-[A-Za-z0-9._:-]+-chunk-\d+)\b")

QUOTED_SNIPPET_PATTERNS = (
    re.compile(r'"([^"]{5,500})"'),
    re.compile(r"“([^“”]{5,500})”"),
    re.compile(r"'([^']{5,500})'"),
)

NORMALIZED_MATCH_MIN_LEN = 30
PREFIX_MATCH_MAX_LEN = 40
PREFIX_MATCH_MIN_LEN = 12
SEGMENT_PREFIX_PROBE_LEN = 120

MATCH_EXACT = "exact"
MATCH_NORMALIZED = "normalized"
MATCH_PREFIX = "prefix"
MATCH_SEGMENT_PREFIX = "segment-prefix"
MATCH_NONE = "none"


@dataclass(frozen=True)
class SnippetMatch:
    matched: bool
    match_type: str = MATCH_NONE


NO_MATCH = SnippetMatch(matched=False, match_type=MATCH_NONE)


def extract_citations(text: Optional[str]) -> List[str]:
    """Return distinct segment ids cited in ``text``, in first-seen order."""
    if not text or not isinstance(text, str):
        return []
    seen: dict = {}
    for match in CITATION_PATTERN.finditer(text):
        seen.setdefault(match.group(1), None)
    return list(seen)


def contains_citation(text: str) -> bool:
    return CITATION_PATTERN.search(text or "") is not None


def extract_quoted_snippets(text: Optional[str]) -> List[str]:
    """Return quoted spans of 5-500 characters.

    Double-quoted spans come first, then curly-quoted, then single-quoted;
    duplicates are dropped.
    """
    if not text or not isinstance(text, str):
        return []
    snippets: List[str] = []
    for pattern in QUOTED_SNIPPET_PATTERNS:
        for match in pattern.finditer(text):
            snippet = match.group(1)
            if snippet not in snippets:
                snippets.append(snippet)
    return snippets


def match_snippet(
    snippet: Optional[str],
    segment_text: Optional[str],
    normalized_min_len: int = NORMALIZED_MATCH_MIN_LEN,
) -> SnippetMatch:
    """Check whether a quoted snippet is supported by a segment's text.

    Tried in order: exact substring, normalized substring (snippet of at least
    ``normalized_min_len`` normalized characters), then the first up to 40
    normalized characters of the snippet (at least 12).
    """
    if not snippet or not segment_text:
        return NO_MATCH

    if snippet in segment_text:
        return SnippetMatch(True, MATCH_EXACT)

    normalized_snippet = normalize_text(snippet)
    normalized_segment = normalize_text(segment_text)
    if len(normalized_snippet) >= normalized_min_len and normalized_snippet in normalized_segment:
        return SnippetMatch(True, MATCH_NORMALIZED)

    prefix_len = min(PREFIX_MATCH_MAX_LEN, len(normalized_snippet))
    if prefix_len >= PREFIX_MATCH_MIN_LEN and normalized_snippet[:prefix_len] in normalized_segment:
        return SnippetMatch(True, MATCH_PREFIX)

    return NO_MATCH


def segment_prefix_in_answer(segment_text: str, answer_text: str) -> bool:
    """True if the opening of the segment (normalized) is reproduced in the answer."""
    probe = normalize_text(segment_text)[:SEGMENT_PREFIX_PROBE_LEN]
    if len(probe) < PREFIX_MATCH_MIN_LEN:
        return False
    return probe in normalize_text(answer_text)
