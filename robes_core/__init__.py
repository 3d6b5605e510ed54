"""
Robes Core Package
==================
Loan tracking for scanned items ("robes"): borrow/return reconciliation,
pluggable record storage and read-only reporting.

Provides:
- Record model and status enum
- Local (memory / SQLite) and remote (HTTP document store) record stores
- Scan reconciler with per-code serialization
- Counts, history rows and CSV/TXT export
"""

__version__ = "0.3.0"
