from __future__ import annotations
from typing import List, Optional
import sqlite3, os
from robes_core.storage.models import Record, RecordStatus
from robes_core.storage.provider import RecordStore, RecordNotFound, StoreError
from robes_core.utils import new_id, to_iso, from_iso
from robes_core.logger import get_logger

log = get_logger("robes.Store.SQLite")


class SQLiteRecordStore(RecordStore):
    """Durable local store. Row order follows insertion (autoincrement seq)."""
    name = "sqlite"

    def __init__(self, path="db/robes.db"):
        # If no directory, default to current working directory
        dir_path = os.path.dirname(path) or "."
        os.makedirs(dir_path, exist_ok=True)
        self.path = path
        self.db = sqlite3.connect(path, check_same_thread=False)

        self._init()

    def _init(self) -> None:
        c = self.db.cursor()
        c.execute("""CREATE TABLE IF NOT EXISTS robes(
            seq INTEGER PRIMARY KEY AUTOINCREMENT,
            store_key TEXT NOT NULL UNIQUE,
            robe_id TEXT NOT NULL,
            borrow_date TEXT NOT NULL,
            return_date TEXT,
            status TEXT NOT NULL
        )""")
        c.execute("CREATE INDEX IF NOT EXISTS idx_robes_robe_id ON robes(robe_id)")
        self.db.commit()

    async def load_all(self) -> List[Record]:
        cur = self.db.execute(
            "SELECT store_key, robe_id, borrow_date, return_date, status FROM robes ORDER BY seq"
        )
        out = []
        for key, robe_id, borrow_date, return_date, status in cur.fetchall():
            out.append(Record(
                external_id=robe_id,
                borrowed_at=from_iso(borrow_date),
                status=RecordStatus(status),
                returned_at=from_iso(return_date),
                store_key=key,
            ))
        return out

    async def append(self, record: Record) -> Record:
        stored = record.with_key(new_id())
        try:
            self.db.execute(
                "INSERT INTO robes(store_key,robe_id,borrow_date,return_date,status) VALUES(?,?,?,?,?)",
                (stored.store_key, stored.external_id, to_iso(stored.borrowed_at),
                 to_iso(stored.returned_at), stored.status.value)
            )
            self.db.commit()
        except sqlite3.Error as e:
            self.db.rollback()
            raise StoreError(f"sqlite insert failed: {e}") from e
        log.debug(f"[SQLITE] appended {stored.external_id} key={stored.store_key}")
        return stored

    async def update_status(self, key: str, status: RecordStatus, returned_at) -> None:
        try:
            cur = self.db.execute(
                "UPDATE robes SET status=?, return_date=? WHERE store_key=?",
                (status.value, to_iso(returned_at), key)
            )
            self.db.commit()
        except sqlite3.Error as e:
            self.db.rollback()
            raise StoreError(f"sqlite update failed: {e}") from e
        if cur.rowcount == 0:
            raise RecordNotFound(key)

    def get(self, key: str) -> Optional[Record]:
        cur = self.db.execute(
            "SELECT store_key, robe_id, borrow_date, return_date, status FROM robes WHERE store_key=?",
            (key,)
        )
        row = cur.fetchone()
        if not row: return None
        key, robe_id, borrow_date, return_date, status = row
        return Record(robe_id, from_iso(borrow_date), RecordStatus(status), from_iso(return_date), key)

    async def close(self) -> None:
        self.db.close()
