"""JSON file persistence for bundles.

Each bundle is stored as ``<bundle_id>.json`` inside the bundle directory.
The directory can be overridden via the ``LEXICLEAR_BUNDLE_DIR`` environment
variable; otherwise it comes from ``storage.bundles_directory`` in settings
and falls back to ``data/bundles``.
"""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from lexiclear.ingestion.models import Bundle, Segment

if TYPE_CHECKING:
    from lexiclear.core.settings import Settings

logger = logging.getLogger(__name__)

_BUNDLE_DIR_ENV_VAR = "LEXICLEAR_BUNDLE_DIR"
_DEFAULT_BUNDLE_DIR = "data/bundles"

_BUNDLE_ID = re.compile(r"^bundle-[A-Za-z0-9_-]+$")


def validate_bundle_id(bundle_id: str) -> str:
    """Return ``bundle_id`` if it is safe to use as a file name.

    Raises:
        ValueError: If the id does not look like a bundle id.
    """
    if not isinstance(bundle_id, str) or not _BUNDLE_ID.match(bundle_id):
        raise ValueError(f"Invalid bundle id: {bundle_id!r}")
    return bundle_id


class BundleStore:
    """Saves and loads bundles as pretty-printed JSON files."""

    def __init__(self, directory: str | Path | None = None, settings: Optional[Settings] = None) -> None:
        if directory is None:
            directory = os.getenv(_BUNDLE_DIR_ENV_VAR)
        if directory is None and settings is not None:
            directory = settings.storage.bundles_directory
        self.directory = Path(directory or _DEFAULT_BUNDLE_DIR)

    def _path_for(self, bundle_id: str) -> Path:
        return self.directory / f"{validate_bundle_id(bundle_id)}.json"

    def save(self, bundle: Bundle) -> Path:
        """Write ``bundle`` to disk, replacing any previous version.

        The file is written next to its target and moved into place, so a
        failed write leaves the previous version (and no temp file) behind.
        """
        path = self._path_for(bundle.bundle_id)
        self.directory.mkdir(parents=True, exist_ok=True)

        tmp_path = path.with_suffix(".json.tmp")
        try:
            tmp_path.write_text(
                json.dumps(bundle.to_dict(), ensure_ascii=False, indent=2) + "\n",
                encoding="utf-8",
            )
            tmp_path.replace(path)
        finally:
            if tmp_path.exists():
                tmp_path.unlink()
        logger.debug("Saved bundle %s to %s", bundle.bundle_id, path)
        return path

    def exists(self, bundle_id: str) -> bool:
        return self._path_for(bundle_id).exists()

    def load(self, bundle_id: str) -> Bundle:
        """Load a bundle.

        Raises:
            ValueError: If the id is malformed or the file is not a valid bundle.
            FileNotFoundError: If no bundle with this id is stored.
        """
        path = self._path_for(bundle_id)
        if not path.exists():
            raise FileNotFoundError(f"Bundle not found: {bundle_id}")

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return Bundle.from_dict(data)
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            raise ValueError(f"Bundle file for '{bundle_id}' is corrupt: {e}") from e

    def get_segment(self, bundle_id: str, segment_id: str) -> Optional[Segment]:
        return self.load(bundle_id).get_segment(segment_id)

    def list_bundles(self) -> List[Dict[str, Any]]:
        """Return short summaries of stored bundles, newest first.

        Files that cannot be parsed are skipped with a warning.
        """
        if not self.directory.exists():
            return []

        summaries = []
        for path in self.directory.glob("bundle-*.json"):
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as e:
                logger.warning("Skipping unreadable bundle file %s: %s", path.name, e)
                continue
            if not isinstance(data, dict) or "bundle_id" not in data:
                logger.warning("Skipping malformed bundle file %s", path.name)
                continue
            summaries.append(
                {
                    "bundle_id": data["bundle_id"],
                    "doc_title": data.get("doc_title"),
                    "created_at": data.get("created_at"),
                    "num_segments": len(data.get("segments") or []),
                }
            )

        summaries.sort(key=lambda item: (item["created_at"] or "", item["bundle_id"]), reverse=True)
        return summaries

    def delete(self, bundle_id: str) -> bool:
        """Remove a stored bundle; returns False if it did not exist."""
        path = self._path_for(bundle_id)
        if not path.exists():
            return False
        path.unlink()
        logger.info("Deleted bundle %s", bundle_id)
        return True
