from copy import copy
from typing import List
from robes_core.storage.models import Record
from robes_core.storage.provider import RecordStore, RecordNotFound
from robes_core.utils import new_id


class InMemoryRecordStore(RecordStore):
    name = "memory"

    def __init__(self, records=None):
        self.records: List[Record] = []
        for rec in records or []:
            self.records.append(rec if rec.store_key else rec.with_key(new_id()))

    async def load_all(self):
        # copies, so callers mutating their snapshot never touch the store
        return [copy(rec) for rec in self.records]

    async def append(self, record: Record):
        stored = record.with_key(new_id())
        self.records.append(stored)
        return copy(stored)

    async def update_status(self, key, status, returned_at):
        rec = next((r for r in self.records if r.store_key == key), None)
        if rec is None:
            raise RecordNotFound(key)
        rec.status = status
        rec.returned_at = returned_at
