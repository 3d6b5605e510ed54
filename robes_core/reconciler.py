"""
robes_core.reconciler
---------------------
Maps a decoded scan to a loan decision and keeps the in-memory record list
in step with the record store.

The in-memory list is the only source consulted for duplicate detection;
it is loaded once via ``load()`` and then changed only after a store call
succeeds. Mutations are serialized per item code.
"""

from __future__ import annotations
import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import AsyncIterator, Callable, Dict, List, Optional, Tuple

from robes_core import constants
from robes_core.logger import get_logger
from robes_core.storage.models import Record, RecordStatus
from robes_core.storage.provider import RecordStore, StoreError
from robes_core.utils import utc_now

log = get_logger("robes.Reconciler")


class OutcomeKind(str, Enum):
    BORROWED = "borrowed"
    RETURNED = "returned"
    REJECTED_ALREADY_BORROWED = "rejected_already_borrowed"
    REJECTED_NOT_BORROWED = "rejected_not_borrowed"
    REJECTED_ALREADY_RETURNED = "rejected_already_returned"
    FAILED = "failed"


_MESSAGES = {
    OutcomeKind.BORROWED: constants.MSG_BORROWED,
    OutcomeKind.RETURNED: constants.MSG_RETURNED,
    OutcomeKind.REJECTED_ALREADY_BORROWED: constants.MSG_ALREADY_BORROWED,
    OutcomeKind.REJECTED_NOT_BORROWED: constants.MSG_NOT_BORROWED,
    OutcomeKind.REJECTED_ALREADY_RETURNED: constants.MSG_ALREADY_RETURNED,
    OutcomeKind.FAILED: constants.MSG_FAILED,
}


@dataclass(frozen=True)
class Outcome:
    kind: OutcomeKind
    code: str
    record: Optional[Record] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.kind in (OutcomeKind.BORROWED, OutcomeKind.RETURNED)

    @property
    def rejected(self) -> bool:
        return not self.ok and self.kind is not OutcomeKind.FAILED

    @property
    def stop_scanning(self) -> bool:
        """The scanning widget should be closed after every non-failed outcome."""
        return self.kind is not OutcomeKind.FAILED

    @property
    def message(self) -> str:
        return _MESSAGES[self.kind]


class ScanReconciler:
    def __init__(self, store: RecordStore, clock: Callable[[], datetime] = utc_now):
        self.store = store
        self.clock = clock
        self._records: List[Record] = []
        # code -> [lock, tasks holding or awaiting it]
        self._locks: Dict[str, list] = {}

    @property
    def records(self) -> Tuple[Record, ...]:
        return tuple(self._records)

    async def load(self) -> List[Record]:
        """Replace the in-memory set with the store's contents. Store errors propagate."""
        self._records = list(await self.store.load_all())
        log.info(f"[LOAD] {len(self._records)} record(s) via {self.store.name}")
        return list(self._records)

    @asynccontextmanager
    async def _serialized(self, code: str) -> AsyncIterator[None]:
        entry = self._locks.get(code)
        if entry is None:
            entry = self._locks[code] = [asyncio.Lock(), 0]
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[code]

    async def handle_scan(self, mode: str, code: str) -> Outcome:
        if mode == "borrow":
            return await self.handle_borrow_scan(code)
        if mode == "return":
            return await self.handle_return_scan(code)
        raise ValueError(f"Unknown scan mode: {mode}")

    async def handle_borrow_scan(self, code: str) -> Outcome:
        code = (code or "").strip()
        if not code:
            return self._failed(code, constants.MSG_EMPTY_CODE)

        async with self._serialized(code):
            if any(r.external_id == code and r.on_loan for r in self._records):
                return self._rejected(OutcomeKind.REJECTED_ALREADY_BORROWED, code)

            draft = Record(external_id=code, borrowed_at=self.clock())
            try:
                stored = await self.store.append(draft)
            except StoreError as e:
                return self._failed(code, f"{type(e).__name__}: {e}")

            self._records.append(stored)
            log.info(f"[BORROW] {code} key={stored.store_key}")
            return Outcome(OutcomeKind.BORROWED, code, record=stored)

    async def handle_return_scan(self, code: str) -> Outcome:
        code = (code or "").strip()
        if not code:
            return self._failed(code, constants.MSG_EMPTY_CODE)

        async with self._serialized(code):
            matches = [r for r in self._records if r.external_id == code]
            # first borrowed match in insertion order
            target = next((r for r in matches if r.on_loan), None)
            if target is None:
                if any(r.status is RecordStatus.RETURNED for r in matches):
                    return self._rejected(OutcomeKind.REJECTED_ALREADY_RETURNED, code)
                return self._rejected(OutcomeKind.REJECTED_NOT_BORROWED, code)

            when = self.clock()
            try:
                await self.store.update_status(target.store_key, RecordStatus.RETURNED, when)
            except StoreError as e:
                return self._failed(code, f"{type(e).__name__}: {e}")

            target.mark_returned(when)
            log.info(f"[RETURN] {code} key={target.store_key}")
            return Outcome(OutcomeKind.RETURNED, code, record=target)

    def _rejected(self, kind: OutcomeKind, code: str) -> Outcome:
        log.info(f"[{kind.value.upper()}] {code}")
        return Outcome(kind, code)

    def _failed(self, code: str, reason: str) -> Outcome:
        log.error(f"[FAILED] {code!r}: {reason}")
        return Outcome(OutcomeKind.FAILED, code, reason=reason)
