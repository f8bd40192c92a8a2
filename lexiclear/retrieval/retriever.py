"""Embedding-backed top-k retrieval over a bundle's segments.

The retriever owns every write of embedding vectors into a bundle. Vectors are
computed lazily: segments missing one are first looked up in the embedding
cache, and the rest are embedded in batches on a bounded thread pool. A segment
that keeps failing is left without an embedding (it scores 0.0 and is
retried on the next call) without failing its batch-mates or the bundle.
"""

from __future__ import annotations

import hashlib
import logging
import math
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

from lexiclear.core.exceptions import CapabilityUnavailableError, InputError
from lexiclear.core.retry import RetryPolicy
from lexiclear.ingestion.models import Bundle, Segment
from lexiclear.libs.embedding.base_embedding import BaseEmbedding
from lexiclear.retrieval.embedding_cache import (
    BaseEmbeddingCache,
    CachedEmbedding,
    InMemoryEmbeddingCache,
)
from lexiclear.retrieval.similarity import cosine_similarity

if TYPE_CHECKING:
    from lexiclear.core.settings import Settings

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 16
DEFAULT_MAX_CONCURRENCY = 2
DEFAULT_TOP_K = 4


def fingerprint(text: str) -> str:
    """Short content hash attached to a segment together with its embedding."""
    return "emb-" + hashlib.sha1(text.encode("utf-8")).hexdigest()[:12]


def _as_vector(value: Any) -> Optional[List[float]]:
    try:
        vector = [float(x) for x in value]
    except (TypeError, ValueError):
        return None
    if not vector or not all(math.isfinite(x) for x in vector):
        return None
    return vector


@dataclass
class ScoredSegment:
    """A segment paired with its similarity to the query."""
    segment: Segment
    score: float

    @property
    def segment_id(self) -> str:
        return self.segment.segment_id


class Retriever:
    """Ranks a bundle's segments against a query by cosine similarity.

    Attributes:
        embedding: Embedding provider used for segments and queries.
        cache: Embedding cache keyed by ``(bundle_id, segment_id)``.
        batch_size: Number of texts per embedding call.
        max_concurrency: Maximum number of embedding calls in flight.
        retry_policy: Policy wrapped around every embedding call.
        default_top_k: ``k`` used when ``top_k`` is called without one.
    """

    def __init__(
        self,
        embedding: BaseEmbedding,
        cache: Optional[BaseEmbeddingCache] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        retry_policy: Optional[RetryPolicy] = None,
        default_top_k: int = DEFAULT_TOP_K,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got: {batch_size}")
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got: {max_concurrency}")
        if default_top_k < 1:
            raise ValueError(f"default_top_k must be >= 1, got: {default_top_k}")

        self.embedding = embedding
        self.cache = cache if cache is not None else InMemoryEmbeddingCache()
        self.batch_size = batch_size
        self.max_concurrency = max_concurrency
        self.retry_policy = retry_policy or RetryPolicy()
        self.default_top_k = default_top_k

        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        embedding: Optional[BaseEmbedding] = None,
        cache: Optional[BaseEmbeddingCache] = None,
    ) -> "Retriever":
        """Build a retriever with the configured provider, cache and limits."""
        if embedding is None:
            from lexiclear.libs.embedding.embedding_factory import EmbeddingFactory

            embedding = EmbeddingFactory.create(settings)
        if cache is None:
            from lexiclear.retrieval.embedding_cache import create_embedding_cache

            cache = create_embedding_cache(settings)

        retrieval = settings.retrieval
        return cls(
            embedding=embedding,
            cache=cache,
            batch_size=retrieval.batch_size,
            max_concurrency=retrieval.max_concurrency,
            retry_policy=RetryPolicy.from_settings(settings),
            default_top_k=retrieval.top_k,
        )

    def _bundle_lock(self, bundle_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(bundle_id)
            if lock is None:
                lock = self._locks[bundle_id] = threading.Lock()
            return lock

    def _reset_stale_model(self, bundle: Bundle, model: str) -> None:
        with self._bundle_lock(bundle.bundle_id):
            recorded = bundle.index_metadata.embedding_model
            if recorded and recorded != model:
                logger.info(
                    "Embedding model changed for %s (%s -> %s); dropping cached embeddings",
                    bundle.bundle_id,
                    recorded,
                    model,
                )
                for segment in bundle.segments:
                    segment.embedding = None
                    segment.embedding_id = None
                self.cache.drop_bundle(bundle.bundle_id)
            bundle.index_metadata.embedding_model = model

    def ensure_embeddings(self, bundle: Bundle) -> Bundle:
        """Attach an embedding to every segment that lacks one.

        Safe to call repeatedly; segments that already carry an embedding are
        left untouched. Embedding failures are logged and leave the affected
        segments without a vector.

        Returns:
            The same bundle, mutated in place.
        """
        model = self.embedding.model_name
        self._reset_stale_model(bundle, model)

        missing = [segment for segment in bundle.segments if not segment.has_embedding]
        if not missing:
            return bundle

        fingerprints = {segment.segment_id: fingerprint(segment.text) for segment in missing}
        cached = self.cache.get_many(bundle.bundle_id, [s.segment_id for s in missing])

        pending: List[Segment] = []
        with self._bundle_lock(bundle.bundle_id):
            for segment in missing:
                entry = cached.get(segment.segment_id)
                if entry is not None and entry.matches(fingerprints[segment.segment_id], model):
                    segment.embedding = list(entry.vector)
                    segment.embedding_id = entry.fingerprint
                else:
                    pending.append(segment)

        hits = len(missing) - len(pending)
        if not pending:
            logger.debug("All %d missing embeddings of %s served from cache", hits, bundle.bundle_id)
            return bundle

        batches = [
            pending[i:i + self.batch_size] for i in range(0, len(pending), self.batch_size)
        ]
        workers = min(self.max_concurrency, len(batches))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(
                pool.map(self._embed_batch, [[segment.text for segment in batch] for batch in batches])
            )

        new_entries: Dict[str, CachedEmbedding] = {}
        degraded = 0
        with self._bundle_lock(bundle.bundle_id):
            for batch, vectors in zip(batches, results):
                for segment, vector in zip(batch, vectors):
                    if vector is None:
                        degraded += 1
                        continue
                    segment.embedding = vector
                    segment.embedding_id = fingerprints[segment.segment_id]
                    new_entries[segment.segment_id] = CachedEmbedding(
                        vector=tuple(vector),
                        fingerprint=segment.embedding_id,
                        model=model,
                    )
            if new_entries:
                self.cache.put_many(bundle.bundle_id, new_entries)

        logger.info(
            "Embedded %d segments of %s (%d from cache, %d batches, %d degraded)",
            len(new_entries),
            bundle.bundle_id,
            hits,
            len(batches),
            degraded,
        )
        if degraded:
            logger.warning(
                "%d segments of %s have no embedding and will score 0.0",
                degraded,
                bundle.bundle_id,
            )
        return bundle

    def _embed_batch(self, texts: List[str]) -> List[Optional[List[float]]]:
        """Embed one batch; never raises for capability failures.

        A multi-text batch that stays unavailable or returns the wrong number
        of vectors is retried one text at a time, so only the texts that keep
        failing end up without a vector.
        """
        try:
            vectors = self.retry_policy.call(
                self.embedding.embed, texts, description="segment embedding batch"
            )
        except CapabilityUnavailableError as exc:
            logger.warning("Embedding batch of %d texts unavailable: %s", len(texts), exc)
            return self._embed_each(texts)

        if not isinstance(vectors, Sequence) or len(vectors) != len(texts):
            logger.warning(
                "Embedding batch returned %s vectors for %d texts; discarding",
                len(vectors) if isinstance(vectors, Sequence) else "no",
                len(texts),
            )
            return self._embed_each(texts)

        result = [_as_vector(vector) for vector in vectors]
        invalid = sum(1 for vector in result if vector is None)
        if invalid:
            logger.warning("Discarded %d invalid vectors in embedding batch", invalid)
        logger.debug("Embedded batch of %d texts", len(texts))
        return result

    def _embed_each(self, texts: List[str]) -> List[Optional[List[float]]]:
        if len(texts) < 2:
            return [None] * len(texts)

        result: List[Optional[List[float]]] = []
        for text in texts:
            try:
                vectors = self.retry_policy.call(
                    self.embedding.embed, [text], description="segment embedding"
                )
            except CapabilityUnavailableError as exc:
                logger.warning("Segment embedding unavailable: %s", exc)
                result.append(None)
                continue
            if not isinstance(vectors, Sequence) or len(vectors) != 1:
                result.append(None)
                continue
            result.append(_as_vector(vectors[0]))
        failed = sum(1 for vector in result if vector is None)
        logger.info("Embedded batch one text at a time: %d of %d failed", failed, len(texts))
        return result

    def _embed_query(self, query: str) -> List[float]:
        vectors = self.retry_policy.call(
            self.embedding.embed, [query], description="query embedding"
        )
        vector = _as_vector(vectors[0]) if vectors else None
        if vector is None:
            raise CapabilityUnavailableError(
                "Embedding provider returned no usable vector for the query", attempts=1
            )
        return vector

    def top_k(self, bundle: Bundle, query: str, k: Optional[int] = None) -> List[ScoredSegment]:
        """Return the ``k`` segments most similar to ``query``.

        Args:
            bundle: Bundle to search; embeddings are filled in as needed.
            query: Question or task text.
            k: Number of results; defaults to ``default_top_k``.

        Returns:
            Scored segments ordered by descending score. Ties keep document
            order, and segments without an embedding score 0.0.

        Raises:
            ValueError: If ``k`` is smaller than 1.
            InputError: If ``query`` is blank.
            CapabilityUnavailableError: If the query cannot be embedded.
        """
        if k is None:
            k = self.default_top_k
        if k < 1:
            raise ValueError(f"k must be >= 1, got: {k}")
        if not isinstance(query, str) or not query.strip():
            raise InputError("Query must be a non-empty string")

        self.ensure_embeddings(bundle)
        if not bundle.segments:
            return []

        query_vector = self._embed_query(query)
        scored = [
            ScoredSegment(
                segment=segment,
                score=cosine_similarity(query_vector, segment.embedding)
                if segment.has_embedding
                else 0.0,
            )
            for segment in bundle.segments
        ]
        scored.sort(key=lambda item: item.score, reverse=True)
        return scored[:k]
