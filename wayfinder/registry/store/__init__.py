"""Record store implementations for workspace metadata."""

from wayfinder.registry.store.base import RecordStore
from wayfinder.registry.store.local import LocalRecordStore

__all__ = ["LocalRecordStore", "RecordStore"]
