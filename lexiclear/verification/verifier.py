"""Heuristic grounding verification of generated answers.

The verifier checks that an answer only cites segments that exist, that each
cited segment is backed by text the answer actually reproduces, and that
legal-sounding sentences carry a citation. It is a best-effort layer meant to
surface answers for human review, not a proof of correctness.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Iterable, List, Optional, Pattern, Sequence

from lexiclear.ingestion.models import Bundle
from lexiclear.libs.splitter.sentences import split_paragraphs, split_sentences
from lexiclear.verification.citations import (
    MATCH_NONE,
    MATCH_SEGMENT_PREFIX,
    NORMALIZED_MATCH_MIN_LEN,
    SEGMENT_PREFIX_PROBE_LEN,
    contains_citation,
    extract_citations,
    extract_quoted_snippets,
    match_snippet,
    segment_prefix_in_answer,
)
from lexiclear.verification.report import (
    HallucinationFlag,
    SnippetCheck,
    VerificationReport,
    VerificationStats,
)

if TYPE_CHECKING:
    from lexiclear.core.settings import Settings

logger = logging.getLogger(__name__)

# Terms match whole words only ("rights" does not fire on "copyrights"), so
# common inflections are listed explicitly. Longer forms come first so the
# recorded term is the one that appears in the sentence.
DEFAULT_LEGAL_TERMS = (
    "terminated",
    "terminates",
    "terminating",
    "termination",
    "terminate",
    "notice period",
    "notice",
    "indemnification",
    "indemnified",
    "indemnifies",
    "indemnify",
    "indemnity",
    "waived",
    "waiver",
    "waive",
    "warranties",
    "warranty",
    "liabilities",
    "liability",
    "liable",
    "penalties",
    "penalty",
    "breached",
    "breaches",
    "breach",
    "governing law",
    "jurisdiction",
    "confidentiality",
    "confidential",
    "obligations",
    "obligation",
    "rights",
    "renewal",
    "non-compete",
    "severability",
    "assignment",
    "arbitration",
)


def _term_pattern(term: str) -> Pattern[str]:
    return re.compile(r"(?<![\w-])" + re.escape(term) + r"(?![\w-])")


class Verifier:
    """Checks answers against a bundle's segments.

    Attributes:
        normalized_match_min_len: Minimum normalized snippet length for a
            whitespace/case-insensitive match.
        legal_terms: Trigger terms for the uncited-claim heuristic (lowercase).
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        normalized_match_min_len: Optional[int] = None,
        legal_terms: Optional[Iterable[str]] = None,
    ) -> None:
        config = getattr(settings, "verification", None) if settings is not None else None

        if normalized_match_min_len is None:
            normalized_match_min_len = (
                config.normalized_match_min_len if config is not None else NORMALIZED_MATCH_MIN_LEN
            )
        if normalized_match_min_len < 1:
            raise ValueError(
                f"normalized_match_min_len must be >= 1, got: {normalized_match_min_len}"
            )

        if legal_terms is None and config is not None and config.legal_terms:
            legal_terms = config.legal_terms
        terms = tuple(term.lower() for term in legal_terms) if legal_terms else DEFAULT_LEGAL_TERMS

        self.normalized_match_min_len = normalized_match_min_len
        self.legal_terms = terms
        self._term_patterns = [(term, _term_pattern(term)) for term in terms]

    def verify(
        self,
        bundle: Bundle,
        answer_text: str,
        retrieved_ids: Optional[Sequence[str]] = None,
    ) -> VerificationReport:
        """Verify ``answer_text`` against every segment of ``bundle``.

        When ``retrieved_ids`` is given the stricter
        :meth:`verify_against_retrieved` check is applied instead.
        """
        if retrieved_ids is not None:
            return self.verify_against_retrieved(bundle, answer_text, retrieved_ids)

        answer_text = answer_text or ""
        segments = bundle.segment_map()
        snippets = extract_quoted_snippets(answer_text)

        report = VerificationReport()
        report.cited_chunks = extract_citations(answer_text)
        report.unknown_chunk_ids = [cid for cid in report.cited_chunks if cid not in segments]

        for chunk_id in report.cited_chunks:
            segment = segments.get(chunk_id)
            if segment is None:
                report.matched_snippets.append(SnippetCheck(chunk_id, None, False, MATCH_NONE))
                continue
            check = self._find_support(chunk_id, segment.text, answer_text, snippets)
            report.matched_snippets.append(check)
            if not check.matched:
                report.missing_snippet_matches.append(chunk_id)

        report.potential_hallucinations = self._flag_uncited_claims(answer_text)

        num_segments = len(bundle.segments)
        num_cited = len(report.cited_chunks)
        report.stats = VerificationStats(
            num_chunks_in_bundle=num_segments,
            num_cited_chunks=num_cited,
            citation_coverage=min(1.0, num_cited / max(1, num_segments)),
        )
        report.ok = report.base_ok

        logger.debug(
            "Verified answer against %s: ok=%s cited=%d unknown=%d missing=%d flagged=%d",
            bundle.bundle_id,
            report.ok,
            num_cited,
            len(report.unknown_chunk_ids),
            len(report.missing_snippet_matches),
            len(report.potential_hallucinations),
        )
        return report

    def verify_against_retrieved(
        self,
        bundle: Bundle,
        answer_text: str,
        retrieved_ids: Sequence[str],
    ) -> VerificationReport:
        """Verify an answer and require that it uses the retrieved segments.

        The answer must either cite one of ``retrieved_ids`` or reproduce text
        from one of those segments; otherwise ``ok`` is False even when the
        base checks pass.
        """
        report = self.verify(bundle, answer_text)
        answer_text = answer_text or ""

        report.retrieved_chunk_ids = list(retrieved_ids or [])
        retrieved = set(report.retrieved_chunk_ids)
        report.cited_retrieved_intersection = [
            cid for cid in report.cited_chunks if cid in retrieved
        ]
        report.cites_retrieved = bool(report.cited_retrieved_intersection)

        if not report.cites_retrieved and report.retrieved_chunk_ids:
            segments = bundle.segment_map()
            snippets = extract_quoted_snippets(answer_text)
            for chunk_id in report.retrieved_chunk_ids:
                segment = segments.get(chunk_id)
                if segment is None:
                    continue
                check = self._find_support(chunk_id, segment.text, answer_text, snippets)
                if check.matched:
                    report.matched_from_retrieved.append(check)
            report.cites_retrieved = bool(report.matched_from_retrieved)

        report.ok = report.base_ok and bool(report.cites_retrieved)
        return report

    def _find_support(
        self,
        chunk_id: str,
        segment_text: str,
        answer_text: str,
        snippets: List[str],
    ) -> SnippetCheck:
        for snippet in snippets:
            match = match_snippet(snippet, segment_text, self.normalized_match_min_len)
            if match.matched:
                return SnippetCheck(chunk_id, snippet, True, match.match_type)

        if segment_prefix_in_answer(segment_text, answer_text):
            return SnippetCheck(
                chunk_id, segment_text[:SEGMENT_PREFIX_PROBE_LEN], True, MATCH_SEGMENT_PREFIX
            )

        return SnippetCheck(chunk_id, None, False, MATCH_NONE)

    def _flag_uncited_claims(self, answer_text: str) -> List[HallucinationFlag]:
        flags = []
        for paragraph in split_paragraphs(answer_text):
            for sentence in split_sentences(paragraph):
                if contains_citation(sentence):
                    continue
                lowered = sentence.lower()
                for term, pattern in self._term_patterns:
                    if pattern.search(lowered):
                        flags.append(
                            HallucinationFlag(
                                sentence=sentence,
                                term=term,
                                reason=f'contains legal term "{term}" but no chunk_id cited',
                            )
                        )
                        break
        return flags


_default_verifier = Verifier()


def verify(
    bundle: Bundle,
    answer_text: str,
    retrieved_ids: Optional[Sequence[str]] = None,
) -> VerificationReport:
    """Verify with default heuristics. See :meth:`Verifier.verify`."""
    return _default_verifier.verify(bundle, answer_text, retrieved_ids)


def verify_against_retrieved(
    bundle: Bundle,
    answer_text: str,
    retrieved_ids: Sequence[str],
) -> VerificationReport:
    """Verify with default heuristics. See :meth:`Verifier.verify_against_retrieved`."""
    return _default_verifier.verify_against_retrieved(bundle, answer_text, retrieved_ids)
