"""Verification report types.

A report describes how well an answer is grounded in a bundle. Negative
findings are data, not errors: callers decide what to do with ``ok = False``.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class SnippetCheck:
    """Outcome of looking for textual support of one cited segment."""
    chunk_id: str
    snippet: Optional[str]
    matched: bool
    match_type: str


@dataclass
class HallucinationFlag:
    """An uncited sentence that contains a legal trigger term."""
    sentence: str
    term: str
    reason: str


@dataclass
class VerificationStats:
    num_chunks_in_bundle: int = 0
    num_cited_chunks: int = 0
    citation_coverage: float = 0.0


@dataclass
class VerificationReport:
    """Result of verifying an answer against a bundle.

    The retrieved-segment fields are only populated when the answer was
    checked against a retrieval result; ``cites_retrieved`` stays ``None``
    otherwise.
    """
    ok: bool = True
    cited_chunks: List[str] = field(default_factory=list)
    unknown_chunk_ids: List[str] = field(default_factory=list)
    matched_snippets: List[SnippetCheck] = field(default_factory=list)
    missing_snippet_matches: List[str] = field(default_factory=list)
    potential_hallucinations: List[HallucinationFlag] = field(default_factory=list)
    stats: VerificationStats = field(default_factory=VerificationStats)
    retrieved_chunk_ids: List[str] = field(default_factory=list)
    cited_retrieved_intersection: List[str] = field(default_factory=list)
    cites_retrieved: Optional[bool] = None
    matched_from_retrieved: List[SnippetCheck] = field(default_factory=list)

    @property
    def base_ok(self) -> bool:
        """Outcome of the citation, snippet and hallucination checks alone."""
        return not (
            self.unknown_chunk_ids or self.missing_snippet_matches or self.potential_hallucinations
        )

    def issues(self) -> List[str]:
        """Short human-readable summary of what failed."""
        problems = []
        if self.unknown_chunk_ids:
            problems.append(f"unknown citations: {', '.join(self.unknown_chunk_ids)}")
        if self.missing_snippet_matches:
            problems.append(f"unsupported citations: {', '.join(self.missing_snippet_matches)}")
        if self.potential_hallucinations:
            problems.append(f"{len(self.potential_hallucinations)} uncited legal claim(s)")
        if self.cites_retrieved is False:
            problems.append("answer does not use the retrieved segments")
        return problems

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return asdict(self)
