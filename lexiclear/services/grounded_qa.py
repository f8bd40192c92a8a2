"""Grounded question answering and simplification over a bundle.

Ties the retriever, an LLM provider and the verifier together:
retrieve -> prompt -> generate -> verify. The verification report is always
returned alongside the generated text; an ungrounded answer is marked for
review, never dropped.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from lexiclear.core.exceptions import InputError
from lexiclear.core.retry import RetryPolicy
from lexiclear.ingestion.models import Bundle
from lexiclear.libs.llm.base_llm import BaseLLM
from lexiclear.retrieval.retriever import Retriever, ScoredSegment
from lexiclear.services.prompts import (
    READING_LEVELS,
    build_answer_prompt,
    build_simplify_prompt,
    preview_text,
)
from lexiclear.verification.report import VerificationReport
from lexiclear.verification.verifier import Verifier

if TYPE_CHECKING:
    from lexiclear.core.settings import Settings

logger = logging.getLogger(__name__)

ANSWER_MAX_TOKENS = 512
SIMPLIFY_MAX_TOKENS = 1200
SIMPLIFY_MAX_SEGMENTS = 8
SNIPPET_PREVIEW_CHARS = 600

REVIEW_NOTE = (
    "WARNING: The response is not fully grounded in the retrieved sources. Marked for review."
)


@dataclass
class AnswerResult:
    bundle_id: str
    question: str
    answer: str
    retrieved: List[ScoredSegment]
    verification: VerificationReport
    review_note: Optional[str] = None

    @property
    def retrieved_chunk_ids(self) -> List[str]:
        return [item.segment_id for item in self.retrieved]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bundle_id": self.bundle_id,
            "question": self.question,
            "answer": self.answer,
            "review_note": self.review_note,
            "retrieved_chunk_ids": self.retrieved_chunk_ids,
            "retrieved_chunks": [
                {
                    "chunk_id": item.segment_id,
                    "score": item.score,
                    "snippet": preview_text(item.segment.text, SNIPPET_PREVIEW_CHARS),
                }
                for item in self.retrieved
            ],
            "cited_chunk_ids": list(self.verification.cited_retrieved_intersection),
            "verification": self.verification.to_dict(),
        }


@dataclass
class SimplifyResult:
    bundle_id: str
    reading_level: str
    raw_output: str
    parsed: Optional[Dict[str, Any]]
    used_chunk_ids: List[str] = field(default_factory=list)
    verification: Optional[VerificationReport] = None
    review_note: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bundle_id": self.bundle_id,
            "reading_level": self.reading_level,
            "used_chunk_ids": list(self.used_chunk_ids),
            "parsed": self.parsed,
            "raw_output": self.raw_output,
            "review_note": self.review_note,
            "verification": self.verification.to_dict() if self.verification else None,
        }


def parse_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Parse the first JSON object in ``text``; None if there is none."""
    start = (text or "").find("{")
    if start < 0:
        return None
    try:
        value, _ = json.JSONDecoder().raw_decode(text[start:])
    except ValueError:
        return None
    return value if isinstance(value, dict) else None


class GroundedQAService:
    """Answers questions and simplifies documents from a bundle's own text.

    Attributes:
        retriever: Retriever used to select source segments.
        llm: Text-generation provider.
        verifier: Verifier applied to every generated output.
        retry_policy: Policy wrapped around generation calls.
    """

    def __init__(
        self,
        retriever: Retriever,
        llm: BaseLLM,
        verifier: Optional[Verifier] = None,
        retry_policy: Optional[RetryPolicy] = None,
        answer_max_tokens: int = ANSWER_MAX_TOKENS,
        simplify_max_tokens: int = SIMPLIFY_MAX_TOKENS,
    ) -> None:
        self.retriever = retriever
        self.llm = llm
        self.verifier = verifier or Verifier()
        self.retry_policy = retry_policy or RetryPolicy()
        self.answer_max_tokens = answer_max_tokens
        self.simplify_max_tokens = simplify_max_tokens

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        retriever: Optional[Retriever] = None,
        llm: Optional[BaseLLM] = None,
    ) -> "GroundedQAService":
        if retriever is None:
            retriever = Retriever.from_settings(settings)
        if llm is None:
            from lexiclear.libs.llm.llm_factory import LLMFactory

            llm = LLMFactory.create(settings)
        return cls(
            retriever=retriever,
            llm=llm,
            verifier=Verifier(settings),
            retry_policy=RetryPolicy.from_settings(settings),
        )

    def _generate(self, system_prompt: str, user_prompt: str, max_tokens: int, description: str) -> str:
        text = self.retry_policy.call(
            self.llm.generate, system_prompt, user_prompt, max_tokens, description=description
        )
        return (text or "").strip()

    def ask(self, bundle: Bundle, question: str, top_k: Optional[int] = None) -> AnswerResult:
        """Answer ``question`` from the bundle's most relevant segments.

        Raises:
            InputError: If the question is blank.
            CapabilityUnavailableError: If embedding or generation stays unavailable.
        """
        if not isinstance(question, str) or not question.strip():
            raise InputError("Question must be a non-empty string")

        retrieved = self.retriever.top_k(bundle, question, top_k)
        system_prompt, user_prompt = build_answer_prompt(retrieved, question)
        answer = self._generate(system_prompt, user_prompt, self.answer_max_tokens, "answer generation")

        report = self.verifier.verify_against_retrieved(
            bundle, answer, [item.segment_id for item in retrieved]
        )
        review_note = None if report.ok else REVIEW_NOTE
        logger.info(
            "Answered question on %s with %d sources (grounded=%s)",
            bundle.bundle_id,
            len(retrieved),
            report.ok,
        )
        return AnswerResult(
            bundle_id=bundle.bundle_id,
            question=question,
            answer=answer,
            retrieved=retrieved,
            verification=report,
            review_note=review_note,
        )

    def simplify(self, bundle: Bundle, reading_level: str = "lay") -> SimplifyResult:
        """Produce a structured plain-language rewrite of the opening segments.

        Raises:
            InputError: If ``reading_level`` is not one of lay, business, lawyer.
            CapabilityUnavailableError: If generation stays unavailable.
        """
        if reading_level not in READING_LEVELS:
            raise InputError(
                f"Unsupported reading level: '{reading_level}'. "
                f"Choose one of: {', '.join(READING_LEVELS)}"
            )

        segments = bundle.segments[:SIMPLIFY_MAX_SEGMENTS]
        used_ids = [segment.segment_id for segment in segments]
        system_prompt, user_prompt = build_simplify_prompt(segments, reading_level)
        raw = self._generate(system_prompt, user_prompt, self.simplify_max_tokens, "simplification")

        parsed = parse_json_object(raw)
        if parsed is None:
            logger.warning("Simplification output for %s is not valid JSON", bundle.bundle_id)

        report = self.verifier.verify_against_retrieved(bundle, raw, used_ids)
        return SimplifyResult(
            bundle_id=bundle.bundle_id,
            reading_level=reading_level,
            raw_output=raw,
            parsed=parsed,
            used_chunk_ids=used_ids,
            verification=report,
            review_note=None if report.ok else REVIEW_NOTE,
        )
