"""Core data models for ingestion and retrieval.

A :class:`Bundle` is the provenance container for one ingested document; its
:class:`Segment` items are the atomic units of retrieval and citation.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

CHECKSUM_PREFIX = "sha256:"


def compute_checksum(text: str) -> str:
    """Return the ``sha256:<hex>`` content hash of a document."""
    return CHECKSUM_PREFIX + hashlib.sha256(text.encode("utf-8")).hexdigest()


def make_segment_id(bundle_id: str, ordinal: int) -> str:
    """Build the segment id for a 1-based ordinal within a bundle."""
    if ordinal < 1:
        raise ValueError(f"Segment ordinal must be 1-based, got: {ordinal}")
    return f"{bundle_id}-chunk-{ordinal:03d}"


@dataclass
class Segment:
    """One retrievable and citable unit of source text."""
    segment_id: str
    text: str
    start_offset: int
    end_offset: int
    approx_tokens: int
    embedding: Optional[List[float]] = None
    embedding_id: Optional[str] = None

    @property
    def has_embedding(self) -> bool:
        return bool(self.embedding)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "segment_id": self.segment_id,
            "text": self.text,
            "start_offset": self.start_offset,
            "end_offset": self.end_offset,
            "approx_tokens": self.approx_tokens,
            "embedding": list(self.embedding) if self.embedding is not None else None,
            "embedding_id": self.embedding_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Segment":
        """Deserialize from dictionary."""
        embedding = data.get("embedding")
        return cls(
            segment_id=data["segment_id"],
            text=data["text"],
            start_offset=int(data["start_offset"]),
            end_offset=int(data["end_offset"]),
            approx_tokens=int(data["approx_tokens"]),
            embedding=[float(v) for v in embedding] if embedding is not None else None,
            embedding_id=data.get("embedding_id"),
        )


@dataclass
class IndexMetadata:
    """Records how a bundle's segments and embeddings were produced."""
    chunking_strategy: str
    target_tokens: int
    overlap_tokens: int
    embedding_model: Optional[str] = None
    index_version: str = "v1"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chunking_strategy": self.chunking_strategy,
            "target_tokens": self.target_tokens,
            "overlap_tokens": self.overlap_tokens,
            "embedding_model": self.embedding_model,
            "index_version": self.index_version,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IndexMetadata":
        return cls(
            chunking_strategy=data["chunking_strategy"],
            target_tokens=int(data["target_tokens"]),
            overlap_tokens=int(data["overlap_tokens"]),
            embedding_model=data.get("embedding_model"),
            index_version=data.get("index_version", "v1"),
        )


@dataclass
class Bundle:
    """Provenance container for one ingested document.

    Segments are appended during creation and never reordered afterwards.
    The only later mutation is the retriever attaching embeddings.
    """
    bundle_id: str
    source_checksum: str
    index_metadata: IndexMetadata
    segments: List[Segment] = field(default_factory=list)
    doc_title: str = "uploaded_doc"
    created_at: Optional[str] = None
    uploader_id: str = "anonymous"
    source_url: Optional[str] = None
    original_text_length: int = 0

    def segment_ids(self) -> List[str]:
        return [segment.segment_id for segment in self.segments]

    def segment_map(self) -> Dict[str, Segment]:
        return {segment.segment_id: segment for segment in self.segments}

    def get_segment(self, segment_id: str) -> Optional[Segment]:
        for segment in self.segments:
            if segment.segment_id == segment_id:
                return segment
        return None

    def matches_source(self, text: str) -> bool:
        """Return True if ``text`` is the document this bundle was built from."""
        return compute_checksum(text) == self.source_checksum

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "bundle_id": self.bundle_id,
            "doc_title": self.doc_title,
            "created_at": self.created_at,
            "uploader_id": self.uploader_id,
            "source_checksum": self.source_checksum,
            "source_url": self.source_url,
            "original_text_length": self.original_text_length,
            "index_metadata": self.index_metadata.to_dict(),
            "segments": [segment.to_dict() for segment in self.segments],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Bundle":
        """Deserialize from dictionary."""
        return cls(
            bundle_id=data["bundle_id"],
            source_checksum=data["source_checksum"],
            index_metadata=IndexMetadata.from_dict(data["index_metadata"]),
            segments=[Segment.from_dict(item) for item in data.get("segments", [])],
            doc_title=data.get("doc_title", "uploaded_doc"),
            created_at=data.get("created_at"),
            uploader_id=data.get("uploader_id", "anonymous"),
            source_url=data.get("source_url"),
            original_text_length=int(data.get("original_text_length", 0)),
        )
