from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional, Protocol

logger = logging.getLogger(__name__)


class Ticker(Protocol):
    def start(self) -> None: ...

    def stop(self) -> None: ...

    @property
    def running(self) -> bool: ...


TickerFactory = Callable[[float, Callable[[], None]], Ticker]


class PeriodicTicker:
    """Cancellable periodic task running *callback* every *interval* seconds.

    Each start() gets its own stop event, so a stopped ticker never fires
    again even if it is started anew right after.
    """

    def __init__(self, interval: float, callback: Callable[[], None]) -> None:
        self.interval = max(0.05, float(interval))
        self.callback = callback
        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._stop_event is not None and not self._stop_event.is_set()

    def start(self) -> None:
        if self.running:
            return
        stop_event = threading.Event()
        self._stop_event = stop_event
        self._thread = threading.Thread(target=self._run, args=(stop_event,), daemon=True)
        self._thread.start()

    def stop(self) -> None:
        # No join: stop() may be called from inside the callback, or while the
        # callback waits on a lock the caller holds.
        if self._stop_event is not None:
            self._stop_event.set()
        self._thread = None

    def _run(self, stop_event: threading.Event) -> None:
        # Deadlines advance by whole intervals, so slow callbacks do not drift.
        next_at = time.monotonic() + self.interval
        while not stop_event.wait(max(0.0, next_at - time.monotonic())):
            try:
                self.callback()
            except Exception:
                logger.exception("Tick callback failed")
            next_at += self.interval


__all__ = ["Ticker", "TickerFactory", "PeriodicTicker"]
