"""Orchestration services built on retrieval, generation and verification."""

from lexiclear.services.grounded_qa import AnswerResult, GroundedQAService, SimplifyResult

__all__ = ["AnswerResult", "GroundedQAService", "SimplifyResult"]
