# robes_core/storage/models.py
from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from robes_core.utils import from_iso, to_iso


class RecordStatus(str, Enum):
    BORROWED = "borrowed"
    RETURNED = "returned"
    # Reserved: only reachable through external data edits, never produced here.
    NOT_RETURNED = "not_returned"


# Operator-facing labels (Hebrew UI). Exhaustive over RecordStatus.
STATUS_LABELS: Dict[RecordStatus, str] = {
    RecordStatus.BORROWED: "מושאל",
    RecordStatus.RETURNED: "הוחזר",
    RecordStatus.NOT_RETURNED: "לא הוחזר",
}


def status_label(status: RecordStatus) -> str:
    """Localized label for a status. Raises KeyError for anything outside the enum."""
    return STATUS_LABELS[status]


@dataclass
class Record:
    """
    One borrow-through-return loan of a single item.

    Storage-agnostic: every provider (memory, SQLite, HTTP document store)
    converts to and from this shape. ``store_key`` is None until persisted.
    """
    external_id: str
    borrowed_at: datetime
    status: RecordStatus = RecordStatus.BORROWED
    returned_at: Optional[datetime] = None
    store_key: Optional[str] = None

    @property
    def on_loan(self) -> bool:
        return self.status is RecordStatus.BORROWED

    def with_key(self, key: str) -> "Record":
        return replace(self, store_key=key)

    def mark_returned(self, when: datetime) -> None:
        self.status = RecordStatus.RETURNED
        self.returned_at = when

    def to_document(self) -> Dict[str, Any]:
        """Wire fields (store key travels separately)."""
        return {
            "id": self.external_id,
            "borrowDate": to_iso(self.borrowed_at),
            "returnDate": to_iso(self.returned_at),
            "status": self.status.value,
        }

    @classmethod
    def from_document(cls, data: Dict[str, Any], key: Optional[str] = None) -> "Record":
        try:
            external_id = str(data["id"])
            borrowed_at = from_iso(data["borrowDate"])
            status = RecordStatus(data.get("status", RecordStatus.BORROWED.value))
            returned_at = from_iso(data.get("returnDate"))
        except KeyError as e:
            raise ValueError(f"Malformed record document, missing {e}") from e
        except (TypeError, AttributeError) as e:
            raise ValueError(f"Malformed record document: {e}") from e
        if borrowed_at is None:
            raise ValueError("Malformed record document, empty borrowDate")
        return cls(
            external_id=external_id,
            borrowed_at=borrowed_at,
            status=status,
            returned_at=returned_at,
            store_key=key,
        )
