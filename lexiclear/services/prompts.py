"""Prompt templates for grounded question answering and simplification."""

from __future__ import annotations

from typing import List, Sequence, Tuple

from lexiclear.ingestion.models import Segment
from lexiclear.retrieval.retriever import ScoredSegment

READING_LEVELS = ("lay", "business", "lawyer")

NOT_IN_DOCUMENT = "Not in document"
CONSULT_A_LAWYER = "Consult a lawyer."

ANSWER_SYSTEM_PROMPT = (
    "You are a careful legal assistant. Use ONLY the provided SOURCE CHUNKS to answer. "
    "For any factual claim, quote the exact snippet and the chunk_id. "
    f'If the information cannot be found in the sources, respond exactly: "{NOT_IN_DOCUMENT}". '
    f'Be concise and conservative. If the snippet is ambiguous, say "{CONSULT_A_LAWYER}"'
)

SIMPLIFY_SYSTEM_TEMPLATE = """You are a careful legal assistant. STRICT RULES:
1) Use ONLY the provided SOURCE CHUNKS below to produce any factual claim or summary.
2) For every clause-level simplification include the chunk_id that the explanation is grounded on.
3) If the answer cannot be found in the SOURCE CHUNKS, respond with "Not in document" for that field.
4) Be conservative: if something is ambiguous, say "Consult a lawyer".
5) Output MUST BE JSON only, with the exact structure requested (no extra commentary).

Reading level hint: {reading_level}
"""

SIMPLIFY_TASK = """TASK:
1) Provide "overall_summary": a concise 2-4 sentence plain-English summary of the document at the requested reading level.
2) Provide "clauses": an array where each item has:
   - chunk_id: the chunk id used
   - original: the original chunk text (or a preview)
   - simplified: a one-sentence plain-English rewrite of that chunk
   - why_it_matters: one short line explaining practical effect
   - risk: one of ["Low","Medium","High"] and a one-line reason
3) Provide "notes": optional array of any warnings, or [] if none.

Return JSON with the schema:
{
  "overall_summary": "...",
  "clauses": [
    {
      "chunk_id": "...",
      "original": "...",
      "simplified": "...",
      "why_it_matters": "...",
      "risk": "Low|Medium|High - short reason"
    }
  ],
  "notes": []
}

Remember: use ONLY the SOURCE CHUNKS above. If you must infer, mark it as "Consult a lawyer".
"""


def preview_text(text: str, max_chars: int, suffix: str = "...") -> str:
    """Truncate ``text`` to ``max_chars`` characters, appending ``suffix`` when cut."""
    if not text:
        return ""
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + suffix


def build_answer_prompt(retrieved: Sequence[ScoredSegment], question: str) -> Tuple[str, str]:
    """Return ``(system_prompt, user_prompt)`` for answering ``question``."""
    sources: List[str] = []
    for item in retrieved:
        header = f"[{item.segment_id}] (score: {item.score:.3f})"
        sources.append(f'{header}\n"{preview_text(item.segment.text, 1000)}"')

    user = (
        "SOURCES:\n"
        + "\n\n".join(sources)
        + f"\n\nQuestion: {question}\n\nAnswer. Include source chunk_ids used."
    )
    return ANSWER_SYSTEM_PROMPT, user


def build_simplify_prompt(segments: Sequence[Segment], reading_level: str = "lay") -> Tuple[str, str]:
    """Return ``(system_prompt, user_prompt)`` asking for a JSON simplification."""
    sources = "\n\n".join(
        f"[{segment.segment_id}] {preview_text(segment.text, 2000, ' ... [truncated]')}"
        for segment in segments
    )
    system = SIMPLIFY_SYSTEM_TEMPLATE.format(reading_level=reading_level)
    user = f"SOURCES:\n{sources}\n\n{SIMPLIFY_TASK}"
    return system, user
