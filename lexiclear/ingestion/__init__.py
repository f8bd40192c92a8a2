"""Ingestion - document text to provenance-tracked bundles.

This package contains:
- Bundle and Segment data models
- The ingestion pipeline (validation, segmentation, id assignment)
"""

from lexiclear.ingestion.models import Bundle, IndexMetadata, Segment
from lexiclear.ingestion.pipeline import IngestionPipeline

__all__ = ["Bundle", "IndexMetadata", "IngestionPipeline", "Segment"]
