"""Unit tests for Retriever: ranking, lazy embedding, batching and degradation."""

from __future__ import annotations

import time
from typing import Any, List, Optional

import pytest

from lexiclear.core.exceptions import CapabilityError, CapabilityUnavailableError, InputError
from lexiclear.core.retry import RetryPolicy
from lexiclear.retrieval.embedding_cache import InMemoryEmbeddingCache
from lexiclear.retrieval.retriever import Retriever, fingerprint

from conftest import FlakyEmbedding, KeywordEmbedding, make_bundle

CLAUSES = [
    "The Client shall pay each invoice within thirty days. Late payment accrues interest.",
    "Either party may terminate on sixty days notice. Termination does not affect accrued rights.",
    "Confidential information stays confidential for five years.",
    "Disputes go to arbitration in London.",
    "Nothing here limits liability for fraud.",
]


class WrongCountEmbedding(KeywordEmbedding):
    """Returns one vector too few for segment batches."""

    def embed(self, texts: List[str], trace: Optional[Any] = None, **kwargs: Any) -> List[List[float]]:
        vectors = super().embed(texts, trace=trace, **kwargs)
        return vectors[:-1] if len(texts) > 1 else vectors


class RejectingEmbedding(KeywordEmbedding):
    """Rejects, without retry, any call whose batch contains ``marker``."""

    def __init__(self, marker: str) -> None:
        super().__init__()
        self.marker = marker

    def embed(self, texts: List[str], trace: Optional[Any] = None, **kwargs: Any) -> List[List[float]]:
        if any(self.marker in text for text in texts):
            with self._lock:
                self.calls.append(list(texts))
            raise CapabilityError("input rejected by provider", retryable=False)
        return super().embed(texts, trace=trace, **kwargs)


class SlowEmbedding(KeywordEmbedding):
    """Records the peak number of ``embed`` calls running at once."""

    def __init__(self) -> None:
        super().__init__()
        self.active = 0
        self.peak = 0

    def embed(self, texts: List[str], trace: Optional[Any] = None, **kwargs: Any) -> List[List[float]]:
        with self._lock:
            self.active += 1
            self.peak = max(self.peak, self.active)
        try:
            time.sleep(0.01)
            return super().embed(texts, trace=trace, **kwargs)
        finally:
            with self._lock:
                self.active -= 1


@pytest.fixture
def bundle():
    return make_bundle(CLAUSES)


@pytest.fixture
def retriever(keyword_embedding, no_sleep_policy) -> Retriever:
    return Retriever(keyword_embedding, batch_size=2, max_concurrency=2, retry_policy=no_sleep_policy)


class TestTopK:

    def test_best_match_first(self, retriever: Retriever, bundle) -> None:
        results = retriever.top_k(bundle, "When can I terminate?", k=2)

        assert results[0].segment_id == "bundle-x-chunk-002"
        assert results[0].score > results[1].score

    def test_scores_descend_and_ids_belong_to_bundle(self, retriever: Retriever, bundle) -> None:
        results = retriever.top_k(bundle, "late payment of invoices", k=5)

        scores = [item.score for item in results]
        assert scores == sorted(scores, reverse=True)
        assert all(-1.0 <= s <= 1.0 for s in scores)
        assert {item.segment_id for item in results} <= set(bundle.segment_ids())

    def test_length_is_min_of_k_and_segments(self, retriever: Retriever, bundle) -> None:
        assert len(retriever.top_k(bundle, "payment", k=3)) == 3
        assert len(retriever.top_k(bundle, "payment", k=50)) == len(CLAUSES)

    def test_smaller_k_is_prefix_of_larger_k(self, retriever: Retriever, bundle) -> None:
        small = [item.segment_id for item in retriever.top_k(bundle, "arbitration of disputes", k=2)]
        large = [item.segment_id for item in retriever.top_k(bundle, "arbitration of disputes", k=4)]

        assert large[:2] == small

    def test_ties_keep_document_order(self, retriever: Retriever, bundle) -> None:
        # Only the bias component matches: every segment ties on direction
        results = retriever.top_k(make_bundle(["aaa", "bbb", "ccc"]), "zzz", k=3)

        assert [item.segment_id for item in results] == [
            "bundle-x-chunk-001",
            "bundle-x-chunk-002",
            "bundle-x-chunk-003",
        ]

    def test_default_k(self, keyword_embedding, no_sleep_policy, bundle) -> None:
        retriever = Retriever(keyword_embedding, retry_policy=no_sleep_policy, default_top_k=2)

        assert len(retriever.top_k(bundle, "payment")) == 2

    def test_empty_bundle(self, retriever: Retriever) -> None:
        assert retriever.top_k(make_bundle([]), "payment", k=3) == []

    @pytest.mark.parametrize("k", [0, -1])
    def test_invalid_k(self, retriever: Retriever, bundle, k: int) -> None:
        with pytest.raises(ValueError):
            retriever.top_k(bundle, "payment", k=k)

    @pytest.mark.parametrize("query", ["", "   ", None])
    def test_blank_query(self, retriever: Retriever, bundle, query) -> None:
        with pytest.raises(InputError):
            retriever.top_k(bundle, query, k=2)

    def test_query_embedding_failure(self, no_sleep_policy, bundle) -> None:
        embedding = KeywordEmbedding()
        retriever = Retriever(embedding, retry_policy=no_sleep_policy)
        retriever.ensure_embeddings(bundle)

        flaky = FlakyEmbedding(failures=5)
        retriever.embedding = flaky

        with pytest.raises(CapabilityUnavailableError):
            retriever.top_k(bundle, "payment", k=1)


class TestEnsureEmbeddings:

    def test_every_segment_gets_embedding_and_fingerprint(self, retriever: Retriever, bundle) -> None:
        retriever.ensure_embeddings(bundle)

        for segment in bundle.segments:
            assert segment.embedding == KeywordEmbedding.vector_for(segment.text)
            assert segment.embedding_id == fingerprint(segment.text)
        assert bundle.index_metadata.embedding_model == "keyword-test-model"

    def test_idempotent(self, retriever: Retriever, keyword_embedding, bundle) -> None:
        retriever.ensure_embeddings(bundle)
        calls = len(keyword_embedding.calls)

        retriever.ensure_embeddings(bundle)
        retriever.top_k(bundle, "payment", k=1)

        # Only the query embedding was added
        assert len(keyword_embedding.calls) == calls + 1

    def test_batches_respect_batch_size(self, retriever: Retriever, keyword_embedding, bundle) -> None:
        retriever.ensure_embeddings(bundle)

        sizes = sorted(len(call) for call in keyword_embedding.calls)
        assert sizes == [1, 2, 2]
        embedded = sorted(text for call in keyword_embedding.calls for text in call)
        assert embedded == sorted(CLAUSES)

    def test_cache_is_shared_across_retrievers(self, no_sleep_policy, bundle) -> None:
        cache = InMemoryEmbeddingCache()
        Retriever(KeywordEmbedding(), cache=cache, retry_policy=no_sleep_policy).ensure_embeddings(bundle)
        assert len(cache) == len(CLAUSES)

        fresh = make_bundle(CLAUSES)
        second_embedding = KeywordEmbedding()
        Retriever(second_embedding, cache=cache, retry_policy=no_sleep_policy).ensure_embeddings(fresh)

        assert second_embedding.calls == []
        assert all(segment.has_embedding for segment in fresh.segments)

    def test_cache_entry_with_other_text_is_ignored(self, no_sleep_policy) -> None:
        cache = InMemoryEmbeddingCache()
        Retriever(KeywordEmbedding(), cache=cache, retry_policy=no_sleep_policy).ensure_embeddings(
            make_bundle(["payment terms"])
        )

        edited = make_bundle(["termination terms"])
        embedding = KeywordEmbedding()
        Retriever(embedding, cache=cache, retry_policy=no_sleep_policy).ensure_embeddings(edited)

        assert embedding.calls == [["termination terms"]]
        assert edited.segments[0].embedding == KeywordEmbedding.vector_for("termination terms")

    def test_model_change_drops_embeddings(self, no_sleep_policy, bundle) -> None:
        cache = InMemoryEmbeddingCache()
        Retriever(KeywordEmbedding("model-a"), cache=cache, retry_policy=no_sleep_policy).ensure_embeddings(bundle)

        other = KeywordEmbedding("model-b")
        Retriever(other, cache=cache, retry_policy=no_sleep_policy).ensure_embeddings(bundle)

        assert sum(len(call) for call in other.calls) == len(CLAUSES)
        assert bundle.index_metadata.embedding_model == "model-b"
        assert all(
            entry.model == "model-b"
            for entry in cache.get_many(bundle.bundle_id, bundle.segment_ids()).values()
        )

    def test_retryable_failure_is_retried(self, no_sleep_policy, bundle) -> None:
        embedding = FlakyEmbedding(failures=1)
        retriever = Retriever(embedding, batch_size=10, retry_policy=no_sleep_policy)

        retriever.ensure_embeddings(bundle)

        assert all(segment.has_embedding for segment in bundle.segments)

    def test_persistent_failure_degrades_then_recovers(self, no_sleep_policy, bundle) -> None:
        # One failure for the batch call, then one per single-text retry
        embedding = FlakyEmbedding(failures=1 + len(CLAUSES), retryable=False)
        retriever = Retriever(embedding, batch_size=10, retry_policy=no_sleep_policy)

        results = retriever.top_k(bundle, "payment", k=5)

        assert len(results) == len(CLAUSES)
        assert all(item.score == 0.0 for item in results)
        assert not any(segment.has_embedding for segment in bundle.segments)

        retriever.ensure_embeddings(bundle)
        assert all(segment.has_embedding for segment in bundle.segments)

    def test_failed_batch_falls_back_to_single_texts(self, no_sleep_policy, bundle) -> None:
        embedding = FlakyEmbedding(failures=1, retryable=False)
        retriever = Retriever(embedding, batch_size=10, retry_policy=no_sleep_policy)

        retriever.ensure_embeddings(bundle)

        assert all(segment.has_embedding for segment in bundle.segments)
        assert sorted(len(call) for call in embedding.calls) == [1] * len(CLAUSES)

    def test_rejected_text_does_not_fail_batch_mates(self, no_sleep_policy) -> None:
        bundle = make_bundle(["payment terms", "POISON clause", "liability cap", "arbitration seat"])
        embedding = RejectingEmbedding("POISON")
        retriever = Retriever(embedding, batch_size=16, retry_policy=no_sleep_policy)

        retriever.ensure_embeddings(bundle)

        missing = [segment.segment_id for segment in bundle.segments if not segment.has_embedding]
        assert missing == ["bundle-x-chunk-002"]

    def test_rejected_text_is_retried_on_next_call(self, no_sleep_policy) -> None:
        bundle = make_bundle(["payment terms", "POISON clause"])
        embedding = RejectingEmbedding("POISON")
        retriever = Retriever(embedding, batch_size=16, retry_policy=no_sleep_policy)
        retriever.ensure_embeddings(bundle)

        embedding.marker = "never-present"
        retriever.ensure_embeddings(bundle)

        assert all(segment.has_embedding for segment in bundle.segments)
        assert embedding.calls[-1] == ["POISON clause"]

    def test_wrong_vector_count_falls_back_to_single_texts(self, no_sleep_policy) -> None:
        bundle = make_bundle(["payment", "liability", "arbitration"])
        embedding = WrongCountEmbedding()
        retriever = Retriever(embedding, batch_size=2, retry_policy=no_sleep_policy)

        retriever.ensure_embeddings(bundle)

        assert all(segment.has_embedding for segment in bundle.segments)
        assert ["payment"] in embedding.calls and ["liability"] in embedding.calls

    @pytest.mark.parametrize("max_concurrency", [1, 2, 3])
    def test_in_flight_calls_bounded_by_max_concurrency(self, no_sleep_policy, max_concurrency: int) -> None:
        bundle = make_bundle([f"clause {i} on payment" for i in range(12)])
        embedding = SlowEmbedding()
        retriever = Retriever(
            embedding, batch_size=1, max_concurrency=max_concurrency, retry_policy=no_sleep_policy
        )

        retriever.ensure_embeddings(bundle)

        assert all(segment.has_embedding for segment in bundle.segments)
        assert 1 <= embedding.peak <= max_concurrency


@pytest.mark.parametrize("field", ["batch_size", "max_concurrency", "default_top_k"])
def test_invalid_limits(keyword_embedding, field: str) -> None:
    with pytest.raises(ValueError):
        Retriever(keyword_embedding, **{field: 0})


def test_from_settings(settings, keyword_embedding) -> None:
    retriever = Retriever.from_settings(settings, embedding=keyword_embedding)

    assert (retriever.batch_size, retriever.max_concurrency, retriever.default_top_k) == (16, 2, 4)
    assert isinstance(retriever.cache, InMemoryEmbeddingCache)
    assert isinstance(retriever.retry_policy, RetryPolicy)
