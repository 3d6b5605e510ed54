# robes_core/storage/provider.py
from __future__ import annotations
from datetime import datetime
from typing import List, Optional

from robes_core.storage.models import Record, RecordStatus


class StoreError(Exception):
    pass


class StoreUnavailable(StoreError):
    pass


class RecordNotFound(StoreError):
    pass


class RecordStore:
    """
    Record store contract.

    Every method is a coroutine so callers hold a single shape whether the
    backend is an in-process list or a remote document collection. Local
    providers complete without suspending.
    """
    name: str = "base"

    async def load_all(self) -> List[Record]:
        raise NotImplementedError

    async def append(self, record: Record) -> Record:
        """Persist a new record and return a copy carrying its store key."""
        raise NotImplementedError

    async def update_status(
        self,
        key: str,
        status: RecordStatus,
        returned_at: Optional[datetime],
    ) -> None:
        raise NotImplementedError

    async def close(self) -> None:
        return
