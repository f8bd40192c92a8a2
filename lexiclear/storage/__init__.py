"""Bundle persistence."""

from lexiclear.storage.bundle_store import BundleStore, validate_bundle_id

__all__ = ["BundleStore", "validate_bundle_id"]
