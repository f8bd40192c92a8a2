"""Pytest configuration and shared fixtures.

This module contains pytest configuration and fixtures that are shared
across all test modules.
"""

import sys
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

# Add the project root to the Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from lexiclear.core.exceptions import CapabilityError  # noqa: E402
from lexiclear.core.settings import Settings  # noqa: E402
from lexiclear.ingestion.models import Bundle, IndexMetadata, Segment, compute_checksum  # noqa: E402
from lexiclear.libs.embedding.base_embedding import BaseEmbedding  # noqa: E402
from lexiclear.libs.llm.base_llm import BaseLLM, ChatResponse, Message  # noqa: E402

KEYWORDS = ("terminat", "payment", "confidential", "arbitration", "liability")

SAMPLE_CONTRACT = (
    "SERVICES AGREEMENT\n"
    "\n"
    "1. Term. This Agreement starts on the Effective Date and continues for two years. "
    "Either party may renew it by written notice.\n"
    "\n"
    "2. Payment. The Client shall pay each invoice within thirty days of receipt. "
    "Late payment accrues interest at one percent per month.\n"
    "\n"
    "3. Confidentiality. Each party shall keep the other party's confidential information secret. "
    "This duty survives for five years after termination.\n"
    "\n"
    "4. Termination. Either party may terminate this Agreement on sixty days written notice. "
    "The Provider may terminate immediately if the Client fails to pay.\n"
    "\n"
    "5. Disputes. Any dispute shall be resolved by binding arbitration in London.\n"
)


class KeywordEmbedding(BaseEmbedding):
    """Deterministic embedding: one dimension per keyword plus a bias term.

    Texts are lowercased and the count of each keyword stem becomes a vector
    component, so similarity follows shared vocabulary.
    """

    def __init__(self, model: str = "keyword-test-model") -> None:
        self.model = model
        self.calls: List[List[str]] = []
        self._lock = threading.Lock()

    def embed(self, texts: List[str], trace: Optional[Any] = None, **kwargs: Any) -> List[List[float]]:
        self.validate_texts(texts)
        with self._lock:
            self.calls.append(list(texts))
        return [self.vector_for(text) for text in texts]

    @staticmethod
    def vector_for(text: str) -> List[float]:
        lowered = text.lower()
        return [float(lowered.count(keyword)) for keyword in KEYWORDS] + [0.1]

    def get_dimension(self) -> int:
        return len(KEYWORDS) + 1


class FlakyEmbedding(KeywordEmbedding):
    """Fails the first ``failures`` calls with a retryable error."""

    def __init__(self, failures: int, retryable: bool = True) -> None:
        super().__init__()
        self.failures = failures
        self.retryable = retryable

    def embed(self, texts: List[str], trace: Optional[Any] = None, **kwargs: Any) -> List[List[float]]:
        with self._lock:
            if self.failures > 0:
                self.failures -= 1
                raise CapabilityError("backend unavailable", retryable=self.retryable)
        return super().embed(texts, trace=trace, **kwargs)


class ScriptedLLM(BaseLLM):
    """Returns queued replies; an exception in the queue is raised instead."""

    def __init__(self, *replies: Any) -> None:
        self.replies = list(replies)
        self.requests: List[dict] = []

    def chat(self, messages: List[Message], trace: Optional[Any] = None, **kwargs: Any) -> ChatResponse:
        self.validate_messages(messages)
        self.requests.append({"messages": messages, **kwargs})
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return ChatResponse(content=reply, model="scripted")


def make_settings_dict(**sections: Dict[str, Any]) -> Dict[str, Any]:
    """Return a complete settings mapping with optional section overrides."""
    data: Dict[str, Any] = {
        "llm": {"provider": "openai", "model": "gpt-4o-mini", "temperature": 0.0, "max_tokens": 800},
        "embedding": {"provider": "openai", "model": "text-embedding-3-small", "dimensions": 1536},
        "retrieval": {"top_k": 4, "batch_size": 16, "max_concurrency": 2, "request_timeout": 30.0},
        "observability": {"log_level": "INFO"},
    }
    for name, values in sections.items():
        data[name] = {**data.get(name, {}), **values}
    return data


def make_bundle(texts: List[str], bundle_id: str = "bundle-x") -> Bundle:
    """Build a bundle whose segments are ``texts`` joined by blank lines."""
    document = "\n\n".join(texts)
    segments = []
    cursor = 0
    for ordinal, text in enumerate(texts, start=1):
        start = document.index(text, cursor)
        cursor = start + len(text)
        segments.append(
            Segment(
                segment_id=f"{bundle_id}-chunk-{ordinal:03d}",
                text=text,
                start_offset=start,
                end_offset=cursor,
                approx_tokens=max(1, -(-len(text) // 4)),
            )
        )
    return Bundle(
        bundle_id=bundle_id,
        source_checksum=compute_checksum(document),
        index_metadata=IndexMetadata(
            chunking_strategy="paragraph+sentences", target_tokens=500, overlap_tokens=50
        ),
        segments=segments,
    )


def make_sentence(index: int, tokens: int) -> str:
    """Return a sentence whose token estimate is exactly ``tokens`` (>= 5)."""
    prefix = f"Sentence {index:03d} "
    return prefix + "x" * (tokens * 4 - len(prefix) - 1) + "."


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory path."""
    return PROJECT_ROOT


@pytest.fixture
def config_dir(project_root: Path) -> Path:
    """Return the config directory path."""
    return project_root / "config"


@pytest.fixture
def settings() -> Settings:
    """Settings built from an in-memory mapping with defaults for optional sections."""
    return Settings.from_dict(make_settings_dict())


@pytest.fixture
def sample_contract() -> str:
    return SAMPLE_CONTRACT


@pytest.fixture
def keyword_embedding() -> KeywordEmbedding:
    return KeywordEmbedding()


@pytest.fixture
def no_sleep_policy():
    from lexiclear.core.retry import RetryPolicy

    return RetryPolicy(max_attempts=3, base_delay=0.0, jitter=0.0, sleep=lambda _: None)
