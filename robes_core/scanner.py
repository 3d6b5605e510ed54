# robes_core/scanner.py
from __future__ import annotations
import inspect
from typing import Any, Callable, Optional

from robes_core.logger import get_logger
from robes_core.reconciler import Outcome, ScanReconciler

log = get_logger("robes.Scanner")

MODES = ("borrow", "return")


class ScanSession:
    """
    One operator-initiated scanning session in a single mode.

    ``decoder`` is the camera/QR widget (anything with a ``stop()`` method,
    sync or async). Decoded text is passed to ``feed()``; once an outcome
    asks to stop scanning the widget is stopped and the session closes, so
    the next scan needs a deliberate restart. Frames the widget delivers
    after closing are ignored.
    """

    def __init__(
        self,
        reconciler: ScanReconciler,
        mode: str,
        decoder: Any = None,
        on_outcome: Optional[Callable[[Outcome], None]] = None,
    ):
        if mode not in MODES:
            raise ValueError(f"Unknown scan mode: {mode}")
        self.reconciler = reconciler
        self.mode = mode
        self.decoder = decoder
        self.on_outcome = on_outcome
        self.closed = False

    async def feed(self, decoded_text: str) -> Optional[Outcome]:
        if self.closed:
            log.debug(f"[SCAN] session closed, dropping {decoded_text!r}")
            return None

        outcome = await self.reconciler.handle_scan(self.mode, decoded_text)
        if outcome.stop_scanning:
            await self.stop()
        if self.on_outcome:
            self.on_outcome(outcome)
        return outcome

    async def stop(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self.decoder is None:
            return
        try:
            result = self.decoder.stop()
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            # widget teardown problems must not lose the outcome
            log.error(f"[SCAN] Error stopping scanner: {e}")
