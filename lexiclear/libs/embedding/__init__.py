"""
Embedding Module.

This package contains embedding service abstractions and implementations:
- Base embedding class
- Embedding factory
- Provider implementations (OpenAI, Ollama)
"""

from lexiclear.libs.embedding.base_embedding import BaseEmbedding
from lexiclear.libs.embedding.embedding_factory import EmbeddingFactory
from lexiclear.libs.embedding.ollama_embedding import OllamaEmbedding, OllamaEmbeddingError
from lexiclear.libs.embedding.openai_embedding import OpenAIEmbedding, OpenAIEmbeddingError

__all__ = [
    "BaseEmbedding",
    "EmbeddingFactory",
    "OllamaEmbedding",
    "OllamaEmbeddingError",
    "OpenAIEmbedding",
    "OpenAIEmbeddingError",
]
