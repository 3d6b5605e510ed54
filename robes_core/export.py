"""
robes_core.export
-----------------
Flat-file renderings of the loan history: CSV for spreadsheets and a
plain-text report. Both are read-only projections of the record list.
"""

from __future__ import annotations
import csv, io, os
from datetime import tzinfo
from typing import Iterable, Optional

from robes_core.constants import CSV_FILENAME, EXPORT_HEADERS, TXT_FILENAME, TXT_SEPARATOR
from robes_core.logger import get_logger
from robes_core.stats import history_rows
from robes_core.storage.models import Record

log = get_logger("robes.Export")

FORMATS = ("csv", "txt")


def to_csv(records: Iterable[Record], tz: Optional[tzinfo] = None) -> str:
    buf = io.StringIO()
    w = csv.writer(buf, lineterminator="\n")
    w.writerow(EXPORT_HEADERS)
    w.writerows(row.as_tuple() for row in history_rows(records, tz))
    return buf.getvalue()


def to_txt(records: Iterable[Record], tz: Optional[tzinfo] = None) -> str:
    blocks = []
    for row in history_rows(records, tz):
        lines = [f"{label}: {value}" for label, value in zip(EXPORT_HEADERS, row.as_tuple())]
        lines.append(TXT_SEPARATOR)
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def default_filename(fmt: str) -> str:
    if fmt == "csv":
        return CSV_FILENAME
    if fmt == "txt":
        return TXT_FILENAME
    raise ValueError(f"Unknown export format: {fmt}")


def write_export(records: Iterable[Record], path: Optional[str] = None, fmt: str = "csv",
                 tz: Optional[tzinfo] = None) -> str:
    """Render and write an export file; returns the path written."""
    path = path or default_filename(fmt)
    if fmt == "csv":
        content, encoding = to_csv(records, tz), "utf-8-sig"  # BOM for spreadsheet apps
    elif fmt == "txt":
        content, encoding = to_txt(records, tz), "utf-8"
    else:
        raise ValueError(f"Unknown export format: {fmt}")

    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding=encoding, newline="") as f:
        f.write(content)
    log.info(f"[EXPORT] wrote {fmt} to {path}")
    return path
