"""
Splitter Module.

This package contains the segmentation layer:
- Paragraph and sentence boundary helpers
- Base splitter class and segment drafts
- Splitter factory
- Strategies (paragraph+sentences, recursive character)
"""

from lexiclear.libs.splitter.base_splitter import BaseSplitter, SegmentDraft
from lexiclear.libs.splitter.sentence_splitter import SentenceSplitter, segment
from lexiclear.libs.splitter.splitter_factory import SplitterFactory

__all__ = [
    "BaseSplitter",
    "SegmentDraft",
    "SentenceSplitter",
    "SplitterFactory",
    "segment",
]
