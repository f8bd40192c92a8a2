"""Embedding cache keyed by ``(bundle_id, segment_id)``.

The retriever consults the cache before calling the embedding provider. An
entry is only reused when its fingerprint (hash of the segment text) and
model match, so edited text or a model switch never reuses a stale vector.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Iterable, List, Mapping, Tuple

if TYPE_CHECKING:
    from lexiclear.core.settings import Settings


@dataclass(frozen=True)
class CachedEmbedding:
    """A cached vector together with what it was computed from."""
    vector: Tuple[float, ...]
    fingerprint: str
    model: str

    def matches(self, fingerprint: str, model: str) -> bool:
        return self.fingerprint == fingerprint and self.model == model


class BaseEmbeddingCache(ABC):
    """Abstract embedding cache.

    Implementations must be safe to call from several threads.
    """

    @abstractmethod
    def get_many(self, bundle_id: str, segment_ids: Iterable[str]) -> Dict[str, CachedEmbedding]:
        """Return the cached entries found for ``segment_ids`` (misses are omitted)."""

    @abstractmethod
    def put_many(self, bundle_id: str, entries: Mapping[str, CachedEmbedding]) -> None:
        """Insert or overwrite entries for a bundle."""

    @abstractmethod
    def drop_bundle(self, bundle_id: str) -> None:
        """Remove every entry belonging to a bundle."""


class InMemoryEmbeddingCache(BaseEmbeddingCache):
    """Process-local cache backed by a dict and a lock."""

    def __init__(self) -> None:
        self._entries: Dict[Tuple[str, str], CachedEmbedding] = {}
        self._lock = threading.Lock()

    def get_many(self, bundle_id: str, segment_ids: Iterable[str]) -> Dict[str, CachedEmbedding]:
        with self._lock:
            found = {}
            for segment_id in segment_ids:
                entry = self._entries.get((bundle_id, segment_id))
                if entry is not None:
                    found[segment_id] = entry
            return found

    def put_many(self, bundle_id: str, entries: Mapping[str, CachedEmbedding]) -> None:
        with self._lock:
            for segment_id, entry in entries.items():
                self._entries[(bundle_id, segment_id)] = entry

    def drop_bundle(self, bundle_id: str) -> None:
        with self._lock:
            for key in [key for key in self._entries if key[0] == bundle_id]:
                del self._entries[key]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def keys(self) -> List[Tuple[str, str]]:
        with self._lock:
            return sorted(self._entries)


def create_embedding_cache(settings: Settings) -> BaseEmbeddingCache:
    """Create the cache selected by ``settings.storage.embedding_cache``.

    Raises:
        ValueError: If the backend name is unknown.
        ImportError: If ``chroma`` is selected and chromadb is not installed.
    """
    backend = settings.storage.embedding_cache.lower()
    if backend == "memory":
        return InMemoryEmbeddingCache()
    if backend == "chroma":
        from lexiclear.libs.vector_store.chroma_cache import ChromaEmbeddingCache

        return ChromaEmbeddingCache(settings=settings)
    raise ValueError(
        f"Unsupported embedding cache backend: '{backend}'. Available backends: chroma, memory"
    )
