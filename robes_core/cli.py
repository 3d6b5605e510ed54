# robes_core/cli.py
from __future__ import annotations
import argparse
import asyncio
import sys
from typing import Optional, Sequence

from robes_core.export import FORMATS, to_csv, to_txt, write_export
from robes_core.logger import get_logger, route_logs
from robes_core.reconciler import Outcome, ScanReconciler
from robes_core.scanner import MODES, ScanSession
from robes_core.stats import history_rows, summary
from robes_core.storage import RecordStore, StoreError, load_storage_provider

log = get_logger("robes.CLI")

EXIT_OK = 0
EXIT_REJECTED = 1
EXIT_FAILED = 2


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(prog="robes", description="Robe loan tracker")
    ap.add_argument("--provider", choices=("memory", "sqlite", "http"),
                    help="Record store (default: $ROBES_STORAGE_PROVIDER or sqlite)")
    ap.add_argument("--db", help="SQLite path (default: $ROBES_DB_PATH)")
    ap.add_argument("--url", help="Document store URL (default: $ROBES_STORE_URL)")

    sub = ap.add_subparsers(dest="command", required=True)
    for mode in MODES:
        p = sub.add_parser(mode, help=f"{mode} a single item")
        p.add_argument("code")
    sub.add_parser("stats", help="counts per status")
    sub.add_parser("history", help="loan history, tab separated")

    p = sub.add_parser("export", help="write CSV or TXT export")
    p.add_argument("--format", choices=FORMATS, default="csv")
    p.add_argument("--out", help="output path; '-' for stdout")

    p = sub.add_parser("scan", help="read codes from stdin, one per line")
    p.add_argument("--mode", choices=MODES, required=True)
    return ap.parse_args(argv)


def _build_store(args: argparse.Namespace) -> RecordStore:
    config = {}
    if args.provider:
        config["provider"] = args.provider
    if args.db:
        config["sqlite_path"] = args.db
    if args.url:
        config["url"] = args.url
    return load_storage_provider(config)


def _report(outcome: Outcome) -> int:
    line = f"{outcome.code}: {outcome.message}"
    if outcome.reason:
        line += f" ({outcome.reason})"
    print(line)
    if outcome.ok:
        return EXIT_OK
    return EXIT_REJECTED if outcome.rejected else EXIT_FAILED


async def _scan_stdin(reconciler: ScanReconciler, mode: str) -> int:
    # Keyboard-wedge scanners type the code followed by Enter.
    # Each line gets its own session, mirroring a restart after every stop.
    rc = EXIT_OK
    while True:
        line = await asyncio.to_thread(sys.stdin.readline)
        if not line:
            break
        if not line.strip():
            continue
        session = ScanSession(reconciler, mode)
        outcome = await session.feed(line)
        rc = max(rc, _report(outcome))
    return rc


async def _amain(args: argparse.Namespace) -> int:
    store = _build_store(args)
    reconciler = ScanReconciler(store)
    try:
        await reconciler.load()

        if args.command in MODES:
            return _report(await reconciler.handle_scan(args.command, args.code))

        if args.command == "scan":
            return await _scan_stdin(reconciler, args.mode)

        if args.command == "stats":
            s = summary(reconciler.records)
            print(f"borrowed\t{s.borrowed}\nreturned\t{s.returned}\nnot_returned\t{s.not_returned}")
            return EXIT_OK

        if args.command == "history":
            for row in history_rows(reconciler.records):
                print("\t".join(row.as_tuple()))
            return EXIT_OK

        if args.command == "export":
            if args.out == "-":
                render = to_csv if args.format == "csv" else to_txt
                text = render(reconciler.records)
                sys.stdout.write(text if not text or text.endswith("\n") else text + "\n")
            else:
                path = write_export(reconciler.records, args.out, args.format)
                print(path)
            return EXIT_OK

        raise ValueError(f"Unknown command: {args.command}")
    except StoreError as e:
        log.error(f"[CLI] store error: {e}")
        print(f"store error: {e}", file=sys.stderr)
        return EXIT_FAILED
    finally:
        await store.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    # stdout carries command output (exports, history)
    route_logs(sys.stderr)
    return asyncio.run(_amain(args))


if __name__ == "__main__":
    sys.exit(main())
