"""Test doubles shared by the timer tests."""

from __future__ import annotations

from typing import Callable, Dict, List, Tuple

from workfree.settings import TimerSettings
from workfree.timer_engine import TimerEngine


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ManualTicker:
    def __init__(self, interval: float, callback: Callable[[], None]) -> None:
        self.interval = interval
        self.callback = callback
        self.running = False

    def start(self) -> None:
        self.running = True

    def stop(self) -> None:
        self.running = False

    def fire(self, times: int = 1) -> None:
        # Fires even when stopped, like a callback already in flight.
        for _ in range(times):
            self.callback()


class TickerBox:
    """Ticker factory remembering every ticker it created."""

    def __init__(self) -> None:
        self.tickers: List[ManualTicker] = []

    def __call__(self, interval: float, callback: Callable[[], None]) -> ManualTicker:
        t = ManualTicker(interval, callback)
        self.tickers.append(t)
        return t

    @property
    def current(self) -> ManualTicker:
        return self.tickers[-1]

    def active(self) -> List[ManualTicker]:
        return [t for t in self.tickers if t.running]


class RecordingNotifier:
    """Keeps pending requests by id, the way a notification center would."""

    def __init__(self) -> None:
        self.pending: Dict[str, Tuple[str, str, float]] = {}
        self.delivered: List[Tuple[str, str, str]] = []
        self.calls: List[str] = []
        self.alerts = 0

    def schedule_one_shot(self, id: str, title: str, body: str, delay_seconds: float) -> None:
        self.calls.append("schedule_one_shot")
        self.pending.pop(id, None)
        if delay_seconds <= 0:
            # A newer request with the same id replaces the shown one.
            self.delivered = [d for d in self.delivered if d[0] != id]
            self.delivered.append((id, title, body))
        else:
            self.pending[id] = (title, body, delay_seconds)

    def schedule_repeating(self, id_prefix, title, body_template, interval_seconds, max_count, start_delay=0):
        self.calls.append("schedule_repeating")
        for i in range(1, max_count + 1):
            offset = i * interval_seconds
            self.pending[f"{id_prefix}{i}"] = (title, body_template(offset // 60), start_delay + offset)

    def cancel(self, id_or_prefix: str) -> None:
        self.calls.append("cancel")
        for key in [k for k in self.pending if k.startswith(id_or_prefix)]:
            del self.pending[key]

    def cancel_all(self) -> None:
        self.calls.append("cancel_all")
        self.pending.clear()

    def play_alert(self) -> None:
        self.alerts += 1

    def delivered_ids(self) -> List[str]:
        return [d[0] for d in self.delivered]


class ListStore:
    def __init__(self) -> None:
        self.records = []

    def append(self, record) -> None:
        self.records.append(record)


def seconds_settings(work: int, free: int, alert_in_work: bool = True) -> TimerSettings:
    return TimerSettings(
        work_minutes=work // 60,
        work_seconds=work % 60,
        free_minutes=free // 60,
        free_seconds=free % 60,
        alert_in_work=alert_in_work,
    )


def make_engine(work: int = 5, free: int = 3, alert_in_work: bool = True, settings=None):
    notifier = RecordingNotifier()
    store = ListStore()
    box = TickerBox()
    clock = FakeClock()
    engine = TimerEngine(
        settings=settings or seconds_settings(work, free, alert_in_work),
        notifier=notifier,
        store=store,
        ticker_factory=box,
        clock=clock,
    )
    return engine, notifier, store, box, clock


def tick(engine: TimerEngine, times: int) -> None:
    for _ in range(times):
        engine.tick()
