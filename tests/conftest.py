from datetime import datetime, timedelta, timezone

import pytest

from robes_core.reconciler import ScanReconciler
from robes_core.storage import InMemoryRecordStore, StoreUnavailable


class StepClock:
    """Deterministic clock, one minute per call."""

    def __init__(self, start=datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self):
        current = self.now
        self.now = self.now + timedelta(minutes=1)
        return current


class FlakyStore(InMemoryRecordStore):
    """In-memory store whose writes can be switched to fail."""

    def __init__(self):
        super().__init__()
        self.fail_append = False
        self.fail_update = False
        self.append_calls = 0
        self.update_calls = 0

    async def append(self, record):
        self.append_calls += 1
        if self.fail_append:
            raise StoreUnavailable("backend offline")
        return await super().append(record)

    async def update_status(self, key, status, returned_at):
        self.update_calls += 1
        if self.fail_update:
            raise StoreUnavailable("backend offline")
        return await super().update_status(key, status, returned_at)


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def store():
    return FlakyStore()


@pytest.fixture
def reconciler(store, clock):
    return ScanReconciler(store, clock=clock)
