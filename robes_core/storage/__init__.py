# robes_core/storage/__init__.py

from .models import Record, RecordStatus, STATUS_LABELS, status_label
from .provider import RecordStore, StoreError, StoreUnavailable, RecordNotFound
from .providers.memory_provider import InMemoryRecordStore
from .providers.sqlite_provider import SQLiteRecordStore
from .providers.http_provider import HTTPRecordStore
from robes_core.constants import (
    DEFAULT_COLLECTION, DEFAULT_DB_PATH, DEFAULT_READY_TIMEOUT, DEFAULT_STORE_URL,
)
import os


def load_storage_provider(config: dict | None = None) -> RecordStore:
    """
    Factory resolver for selecting the runtime record store.

        - sqlite (default)
        - memory
        - http
    """
    config = config or {}
    provider = config.get("provider") or os.getenv("ROBES_STORAGE_PROVIDER", "sqlite")

    if provider == "memory":
        return InMemoryRecordStore()

    if provider == "sqlite":
        db_path = config.get("sqlite_path") or os.getenv("ROBES_DB_PATH", DEFAULT_DB_PATH)
        return SQLiteRecordStore(db_path)

    if provider == "http":
        return HTTPRecordStore(
            base_url=config.get("url") or os.getenv("ROBES_STORE_URL", DEFAULT_STORE_URL),
            collection=config.get("collection") or os.getenv("ROBES_STORE_COLLECTION", DEFAULT_COLLECTION),
            token=config.get("token") or os.getenv("ROBES_STORE_TOKEN") or None,
            ready_timeout=float(config.get("ready_timeout") or os.getenv("ROBES_READY_TIMEOUT", DEFAULT_READY_TIMEOUT)),
        )

    raise ValueError(f"Unknown storage provider: {provider}")


__all__ = [
    "Record",
    "RecordStatus",
    "STATUS_LABELS",
    "status_label",
    "RecordStore",
    "StoreError",
    "StoreUnavailable",
    "RecordNotFound",
    "InMemoryRecordStore",
    "SQLiteRecordStore",
    "HTTPRecordStore",
    "load_storage_provider",
]
