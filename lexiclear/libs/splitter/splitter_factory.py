"""Selects the segmentation strategy named by ``settings.ingestion.splitter``.

The strategy's ``strategy_name`` is what a bundle records in its index
metadata, so the recorded strategy always matches the configured one.
"""

from __future__ import annotations

from lexiclear.core.registry import ProviderRegistry
from lexiclear.libs.splitter.base_splitter import BaseSplitter
from lexiclear.libs.splitter.sentence_splitter import SentenceSplitter


class SplitterFactory(ProviderRegistry[BaseSplitter]):
    """Registry of splitters (``sentence``, ``recursive``)."""

    kind = "Splitter"
    base_class = BaseSplitter
    section = "ingestion"
    key = "splitter"


def _register_builtin_providers() -> None:
    from lexiclear.libs.splitter.recursive_splitter import RecursiveSplitter

    SplitterFactory.register_provider("sentence", SentenceSplitter)
    SplitterFactory.register_provider("recursive", RecursiveSplitter)


_register_builtin_providers()
