"""Retrieval: embedding cache, similarity and top-k ranking."""

from lexiclear.retrieval.embedding_cache import (
    BaseEmbeddingCache,
    CachedEmbedding,
    InMemoryEmbeddingCache,
    create_embedding_cache,
)
from lexiclear.retrieval.retriever import Retriever, ScoredSegment, fingerprint
from lexiclear.retrieval.similarity import cosine_similarity

__all__ = [
    "BaseEmbeddingCache",
    "CachedEmbedding",
    "InMemoryEmbeddingCache",
    "Retriever",
    "ScoredSegment",
    "cosine_similarity",
    "create_embedding_cache",
    "fingerprint",
]
