"""Selects the embedding provider named by ``settings.embedding.provider``."""

from __future__ import annotations

from lexiclear.core.registry import ProviderRegistry
from lexiclear.libs.embedding.base_embedding import BaseEmbedding


class EmbeddingFactory(ProviderRegistry[BaseEmbedding]):
    """Registry of embedding providers (``openai``, ``ollama``)."""

    kind = "Embedding"
    base_class = BaseEmbedding
    section = "embedding"


def _register_builtin_providers() -> None:
    from lexiclear.libs.embedding.ollama_embedding import OllamaEmbedding
    from lexiclear.libs.embedding.openai_embedding import OpenAIEmbedding

    EmbeddingFactory.register_provider("openai", OpenAIEmbedding)
    EmbeddingFactory.register_provider("ollama", OllamaEmbedding)


_register_builtin_providers()
