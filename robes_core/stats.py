# robes_core/stats.py

from __future__ import annotations
from dataclasses import dataclass, asdict
from datetime import datetime, tzinfo
from typing import Dict, Iterable, List, Optional

from robes_core.constants import DATETIME_FORMAT, DEFAULT_TIMEZONE, EMPTY_PLACEHOLDER
from robes_core.storage.models import Record, RecordStatus, status_label

import os
from zoneinfo import ZoneInfo


@dataclass(frozen=True)
class StatusSummary:
    borrowed: int = 0
    returned: int = 0
    not_returned: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class HistoryRow:
    code: str
    borrowed: str
    returned: str
    status: str

    def as_tuple(self):
        return (self.code, self.borrowed, self.returned, self.status)


def display_timezone(name: Optional[str] = None) -> tzinfo:
    return ZoneInfo(name or os.getenv("ROBES_TIMEZONE", DEFAULT_TIMEZONE))


def format_timestamp(dt: Optional[datetime], tz: Optional[tzinfo] = None) -> str:
    if dt is None:
        return EMPTY_PLACEHOLDER
    return dt.astimezone(tz or display_timezone()).strftime(DATETIME_FORMAT)


def count_by_status(records: Iterable[Record]) -> Dict[RecordStatus, int]:
    counts = {status: 0 for status in RecordStatus}
    for rec in records:
        counts[rec.status] += 1
    return counts


def summary(records: Iterable[Record]) -> StatusSummary:
    counts = count_by_status(records)
    return StatusSummary(
        borrowed=counts[RecordStatus.BORROWED],
        returned=counts[RecordStatus.RETURNED],
        not_returned=counts[RecordStatus.NOT_RETURNED],
    )


def history_rows(records: Iterable[Record], tz: Optional[tzinfo] = None) -> List[HistoryRow]:
    tz = tz or display_timezone()
    return [
        HistoryRow(
            code=rec.external_id,
            borrowed=format_timestamp(rec.borrowed_at, tz),
            returned=format_timestamp(rec.returned_at, tz),
            status=status_label(rec.status),
        )
        for rec in records
    ]
