"""Citation and hallucination checks for generated answers."""

from lexiclear.verification.citations import (
    CITATION_PATTERN,
    SnippetMatch,
    extract_citations,
    extract_quoted_snippets,
    match_snippet,
)
from lexiclear.verification.report import (
    HallucinationFlag,
    SnippetCheck,
    VerificationReport,
    VerificationStats,
)
from lexiclear.verification.verifier import (
    DEFAULT_LEGAL_TERMS,
    Verifier,
    verify,
    verify_against_retrieved,
)

__all__ = [
    "CITATION_PATTERN",
    "DEFAULT_LEGAL_TERMS",
    "HallucinationFlag",
    "SnippetCheck",
    "SnippetMatch",
    "VerificationReport",
    "VerificationStats",
    "Verifier",
    "extract_citations",
    "extract_quoted_snippets",
    "match_snippet",
    "verify",
    "verify_against_retrieved",
]
