"""ChromaDB-backed embedding cache.

Persists segment embeddings in a local ChromaDB collection so that bundles
reloaded in a new process do not need to be re-embedded. Record ids are the
segment ids (which embed the bundle id); the bundle id, text fingerprint and
model are kept as metadata.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Iterable, Mapping

try:
    import chromadb
    from chromadb.config import Settings as ChromaSettings
    CHROMADB_AVAILABLE = True
except ImportError:
    CHROMADB_AVAILABLE = False

from lexiclear.retrieval.embedding_cache import BaseEmbeddingCache, CachedEmbedding

if TYPE_CHECKING:
    from lexiclear.core.settings import Settings

logger = logging.getLogger(__name__)


class ChromaEmbeddingCache(BaseEmbeddingCache):
    """Embedding cache stored in a persistent ChromaDB collection.

    Attributes:
        client: ChromaDB client instance.
        collection: ChromaDB collection holding the cached vectors.
        collection_name: Name of the collection.
        persist_directory: Directory path for persistent storage.
    """

    def __init__(self, settings: Settings, **kwargs: Any) -> None:
        """Initialize the cache from ``settings.storage``.

        Args:
            settings: Application settings containing the storage section.
            **kwargs: Optional overrides for collection_name, persist_directory
                or an already constructed ``client``.

        Raises:
            ImportError: If chromadb package is not installed.
            RuntimeError: If ChromaDB client initialization fails.
        """
        if not CHROMADB_AVAILABLE:
            raise ImportError(
                "chromadb package is required for ChromaEmbeddingCache. "
                "Install it with: pip install chromadb"
            )

        storage = settings.storage
        self.collection_name = kwargs.get("collection_name", storage.collection_name)
        self.persist_directory = Path(
            kwargs.get("persist_directory", storage.chroma_directory)
        ).resolve()

        client = kwargs.get("client")
        if client is None:
            self.persist_directory.mkdir(parents=True, exist_ok=True)
            try:
                client = chromadb.PersistentClient(
                    path=str(self.persist_directory),
                    settings=ChromaSettings(anonymized_telemetry=False, allow_reset=True),
                )
            except Exception as e:
                raise RuntimeError(
                    f"Failed to initialize ChromaDB client at '{self.persist_directory}': {e}"
                ) from e
        self.client = client

        try:
            self.collection = self.client.get_or_create_collection(
                name=self.collection_name,
                metadata={"hnsw:space": "cosine"},
            )
        except Exception as e:
            raise RuntimeError(
                f"Failed to get or create collection '{self.collection_name}': {e}"
            ) from e

        logger.info(
            f"ChromaEmbeddingCache ready: collection='{self.collection_name}', "
            f"records={self.collection.count()}"
        )

    def get_many(self, bundle_id: str, segment_ids: Iterable[str]) -> Dict[str, CachedEmbedding]:
        ids = [str(segment_id) for segment_id in segment_ids]
        if not ids:
            return {}

        try:
            result = self.collection.get(ids=ids, include=["embeddings", "metadatas"])
        except Exception as e:
            raise RuntimeError(f"Failed to read {len(ids)} cached embeddings: {e}") from e

        found_ids = result.get("ids") or []
        embeddings = result.get("embeddings")
        metadatas = result.get("metadatas")
        if embeddings is None:
            embeddings = [None] * len(found_ids)
        if metadatas is None:
            metadatas = [{}] * len(found_ids)

        found: Dict[str, CachedEmbedding] = {}
        for record_id, vector, metadata in zip(found_ids, embeddings, metadatas):
            metadata = metadata or {}
            if vector is None or metadata.get("bundle_id") != bundle_id:
                continue
            found[record_id] = CachedEmbedding(
                vector=tuple(float(v) for v in vector),
                fingerprint=str(metadata.get("fingerprint", "")),
                model=str(metadata.get("model", "")),
            )
        return found

    def put_many(self, bundle_id: str, entries: Mapping[str, CachedEmbedding]) -> None:
        if not entries:
            return

        ids = []
        embeddings = []
        metadatas = []
        for segment_id, entry in entries.items():
            ids.append(str(segment_id))
            embeddings.append([float(v) for v in entry.vector])
            metadatas.append(
                self._sanitize_metadata(
                    {"bundle_id": bundle_id, "fingerprint": entry.fingerprint, "model": entry.model}
                )
            )

        try:
            self.collection.upsert(ids=ids, embeddings=embeddings, metadatas=metadatas)
            logger.debug(f"Cached {len(ids)} embeddings for {bundle_id}")
        except Exception as e:
            raise RuntimeError(f"Failed to cache {len(ids)} embeddings: {e}") from e

    def drop_bundle(self, bundle_id: str) -> None:
        try:
            self.collection.delete(where={"bundle_id": bundle_id})
            logger.debug(f"Dropped cached embeddings for {bundle_id}")
        except Exception as e:
            raise RuntimeError(f"Failed to drop cached embeddings for '{bundle_id}': {e}") from e

    def count(self) -> int:
        return self.collection.count()

    def _sanitize_metadata(self, metadata: Dict[str, Any]) -> Dict[str, Any]:
        """Keep only values ChromaDB accepts (str, int, float, bool)."""
        sanitized = {}
        for key, value in metadata.items():
            if value is None:
                continue
            if isinstance(value, (str, int, float, bool)):
                sanitized[key] = value
            else:
                sanitized[key] = str(value)
        return sanitized
