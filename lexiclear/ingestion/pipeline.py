"""Ingestion pipeline: raw document text to a provenance-tracked Bundle.

The pipeline wires configuration from :class:`Settings` into the splitter
factory, assigns bundle and segment identifiers, and records how the bundle
was produced so later stages can detect stale derived data.
"""

from __future__ import annotations

import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any, List, Optional

from lexiclear.core.exceptions import InputError
from lexiclear.core.settings import Settings
from lexiclear.ingestion.models import (
    Bundle,
    IndexMetadata,
    Segment,
    compute_checksum,
    make_segment_id,
)
from lexiclear.libs.splitter.base_splitter import BaseSplitter, SegmentDraft
from lexiclear.libs.splitter.sentences import estimate_tokens
from lexiclear.libs.splitter.splitter_factory import SplitterFactory

logger = logging.getLogger(__name__)


def make_bundle_id() -> str:
    """Return a new unique bundle id of the form ``bundle-<millis>-<hex8>``."""
    return f"bundle-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


class IngestionPipeline:
    """Builds :class:`Bundle` objects from raw document text.

    Args:
        settings: Application settings; ``settings.ingestion`` selects the
            splitter and its sizes.
        splitter: Optional pre-built splitter, bypassing the factory.
    """

    def __init__(self, settings: Settings, splitter: Optional[BaseSplitter] = None) -> None:
        self._settings = settings
        self._splitter = splitter

    def _get_splitter(self) -> BaseSplitter:
        """Return the configured splitter, creating it on first use.

        Raises:
            ValueError: If ingestion settings are missing.
        """
        if self._splitter is not None:
            return self._splitter

        ingestion = getattr(self._settings, "ingestion", None)
        if ingestion is None:
            raise ValueError("settings.ingestion must be configured for ingestion pipeline")

        self._splitter = SplitterFactory.create(
            self._settings,
            target_tokens=ingestion.target_tokens,
            overlap_tokens=ingestion.overlap_tokens,
        )
        return self._splitter

    def _validate_document(self, text: Any) -> None:
        if not isinstance(text, str):
            raise InputError(f"Document text must be a string (type: {type(text).__name__})")
        if not text.strip():
            raise InputError("Document text must not be empty or whitespace-only")

        ingestion = getattr(self._settings, "ingestion", None)
        min_chars = getattr(ingestion, "min_document_chars", 0) or 0
        if len(text.strip()) < min_chars:
            raise InputError(
                f"Document text is too short: {len(text.strip())} characters, "
                f"at least {min_chars} required"
            )

    def segment(self, text: str, trace: Optional[Any] = None) -> List[SegmentDraft]:
        """Split text into drafts using the configured splitter."""
        return self._get_splitter().split(text, trace=trace)

    def create_bundle(
        self,
        text: str,
        title: Optional[str] = None,
        uploader_id: Optional[str] = None,
        source_url: Optional[str] = None,
        trace: Optional[Any] = None,
    ) -> Bundle:
        """Create a bundle for a document.

        Args:
            text: The original document text.
            title: Optional human-readable title.
            uploader_id: Optional id of the uploading user.
            source_url: Optional origin of the document.
            trace: Optional TraceContext for observability (reserved).

        Returns:
            A new bundle whose segments carry no embeddings yet.

        Raises:
            InputError: If the document is missing, blank or too short.
        """
        self._validate_document(text)

        splitter = self._get_splitter()
        drafts = splitter.split(text, trace=trace)
        if not drafts:
            raise InputError("Document produced no segments")

        bundle_id = make_bundle_id()
        segments = [
            Segment(
                segment_id=make_segment_id(bundle_id, ordinal),
                text=draft.text,
                start_offset=draft.start_offset,
                end_offset=draft.end_offset,
                approx_tokens=estimate_tokens(draft.text),
            )
            for ordinal, draft in enumerate(drafts, start=1)
        ]

        bundle = Bundle(
            bundle_id=bundle_id,
            source_checksum=compute_checksum(text),
            index_metadata=IndexMetadata(
                chunking_strategy=splitter.strategy_name,
                target_tokens=splitter.target_tokens,
                overlap_tokens=splitter.overlap_tokens,
            ),
            segments=segments,
            doc_title=title or "uploaded_doc",
            created_at=datetime.now(timezone.utc).isoformat(),
            uploader_id=uploader_id or "anonymous",
            source_url=source_url,
            original_text_length=len(text),
        )

        logger.info(
            "Created bundle %s with %d segments (%s, %d chars)",
            bundle_id,
            len(segments),
            splitter.strategy_name,
            len(text),
        )
        return bundle
