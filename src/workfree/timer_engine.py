"""
Work/Free timer engine.

State machine:
    IDLE -> RUNNING <-> PAUSED
    RUNNING (Free, target reached) -> ALERTING
    RUNNING | PAUSED | ALERTING -> FINISHED -> IDLE

Rules:
- Work keeps counting past its target; the overtime is only a display value.
  The "Work complete" alert fires once per segment.
- Free stops counting at its target and switches to ALERTING, where a repeat
  alert runs until the user switches back to Work or finishes.
- Targets are read from settings only when a segment starts.
- Switching mode always starts the opposite segment immediately.

Integration contract:
- settings: a TimerSettings, or a zero-argument callable returning the
  current TimerSettings (read at segment boundaries and on ticks)
- notifier: optional Notifier (see notifier.py)
- store: optional object with ``append(record)`` receiving finished sessions
- on_change(cb): cb(snapshot) after every command, tick and reconciliation
- handle_background()/handle_foreground(): suspend and resume signals

Commands that do not apply to the current phase are ignored and return False.
All commands, ticks and reconciliation run under one lock.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, List, Optional, Protocol, Union

from .models import ACTIVE_PHASES, Mode, Phase, SessionRecord, Snapshot, TimerState
from .notification_policy import NotificationPolicy
from .notifier import Notifier
from .reconciler import BackgroundReconciler
from .settings import EngineConfig, TimerSettings
from .ticker import PeriodicTicker, Ticker, TickerFactory

logger = logging.getLogger(__name__)

SettingsSource = Union[TimerSettings, Callable[[], TimerSettings]]


class RecordSink(Protocol):
    def append(self, record: SessionRecord) -> None: ...


class TimerEngine:
    """Owns the TimerState and every mutation of it."""

    def __init__(
        self,
        settings: SettingsSource,
        notifier: Optional[Notifier] = None,
        store: Optional[RecordSink] = None,
        cfg: Optional[EngineConfig] = None,
        ticker_factory: Optional[TickerFactory] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.cfg = cfg or EngineConfig()
        self._settings = settings
        self.store = store
        self.policy = NotificationPolicy(notifier, self.cfg)
        self.clock = clock
        self._ticker_factory: TickerFactory = ticker_factory or PeriodicTicker

        self._state = TimerState()
        self._lock = threading.Lock()
        self._ticker: Optional[Ticker] = None
        self._ticker_gen = 0
        self._listeners: List[Callable[[Snapshot], None]] = []

        self.reconciler = BackgroundReconciler(self)

    # ---------- Observation ----------
    @property
    def state(self) -> TimerState:
        """A copy of the current state."""
        with self._lock:
            return self._state.copy()

    def snapshot(self) -> Snapshot:
        with self._lock:
            return Snapshot.of(self._state)

    def on_change(self, cb: Callable[[Snapshot], None]) -> None:
        """Register a callback receiving a Snapshot after every change."""
        self._listeners.append(cb)

    @property
    def settings(self) -> TimerSettings:
        if callable(self._settings):
            return self._settings()
        return self._settings

    # ---------- Commands ----------
    def begin_with(self, mode: Mode) -> bool:
        with self._lock:
            s = self._state
            if s.phase is not Phase.IDLE:
                return False
            self._resume_if_suspended_locked()
            s = self._state
            s.session_work_seconds = 0
            s.start_segment(mode, self.settings.target_seconds(mode))
            s.phase = Phase.RUNNING
            logger.debug("Begin %s segment, target %ss", mode.value, s.target)
            self._restart_ticker_locked()
        self._emit()
        return True

    def toggle_pause(self) -> bool:
        with self._lock:
            if self._state.phase not in (Phase.RUNNING, Phase.PAUSED):
                return False
            self._resume_if_suspended_locked()
            s = self._state
            toggled = True
            if s.phase is Phase.RUNNING:
                s.phase = Phase.PAUSED
            elif s.phase is Phase.PAUSED:
                s.phase = Phase.RUNNING
            else:
                # Free ran over target during a suspension; nothing to pause.
                toggled = False
            if toggled:
                logger.debug("Now %s at %ss", s.phase.value, s.elapsed)
                self._restart_ticker_locked()
        self._emit()
        return toggled

    def stop_and_switch(self) -> bool:
        with self._lock:
            s = self._state
            if s.phase not in ACTIVE_PHASES:
                return False
            self._resume_if_suspended_locked()
            s = self._state
            s.flush_work()
            new_mode = s.mode.opposite()
            s.start_segment(new_mode, self.settings.target_seconds(new_mode))
            s.phase = Phase.RUNNING
            logger.debug("Switched to %s, session work %ss", new_mode.value, s.session_work_seconds)
            self._restart_ticker_locked()
        self._emit()
        return True

    def finish_session(self) -> Optional[SessionRecord]:
        """Finish the session; returns the stored record, or None when no Work time was logged."""
        record: Optional[SessionRecord] = None
        with self._lock:
            s = self._state
            if s.phase not in ACTIVE_PHASES:
                return None
            self._resume_if_suspended_locked()
            self._stop_ticker_locked()
            s = self._state
            s.flush_work()
            if s.session_work_seconds > 0:
                record = SessionRecord(duration_seconds=s.session_work_seconds)
                self._store_locked(record)
            s.phase = Phase.FINISHED
            s.background_timestamp = None
            self.policy.cancel_all()
            logger.debug("Finished session with %ss of work", s.session_work_seconds)
        self._emit()
        return record

    def reset(self) -> bool:
        """Return to IDLE from any phase."""
        with self._lock:
            s = self._state
            self._stop_ticker_locked()
            if s.background_timestamp is not None:
                self.policy.cancel_background()
            s.phase = Phase.IDLE
            s.elapsed = 0
            s.session_work_seconds = 0
            s.work_alert_fired = False
            s.free_overtime_ticks = 0
            s.background_timestamp = None
        self._emit()
        return True

    # ---------- Suspend / resume ----------
    def handle_background(self, now: Optional[float] = None) -> bool:
        return self.reconciler.handle_background(now)

    def handle_foreground(self, now: Optional[float] = None, deferred_delivered: bool = True) -> bool:
        return self.reconciler.handle_foreground(now, deferred_delivered)

    # ---------- Tick ----------
    def tick(self, step: int = 1) -> bool:
        """Advance one tick. In ALERTING *step* is the number of seconds the
        tick stands for; the alert ticker passes its own interval."""
        with self._lock:
            changed = self._tick_locked(step)
        if changed:
            self._emit()
        return changed

    def _tick_locked(self, step: int) -> bool:
        s = self._state
        if s.background_timestamp is not None:
            return False
        if s.phase is Phase.ALERTING:
            before = s.free_overtime_ticks
            s.free_overtime_ticks += step
            minutes = s.free_overtime_ticks // 60
            if minutes > before // 60:
                self.policy.free_overtime(minutes)
            self.policy.alert()
            return True
        if s.phase is not Phase.RUNNING:
            return False
        s.elapsed += 1
        self._check_target_locked()
        return True

    def _check_target_locked(self) -> None:
        s = self._state
        if s.elapsed < s.target:
            return
        if s.mode is Mode.WORK:
            if not s.work_alert_fired:
                s.work_alert_fired = True
                if self.settings.alert_in_work:
                    self.policy.alert()
                    self.policy.work_complete()
                logger.debug("Work target %ss reached", s.target)
        else:
            self._enter_alerting_locked()

    def _enter_alerting_locked(self) -> None:
        s = self._state
        s.elapsed = s.target
        s.phase = Phase.ALERTING
        s.free_overtime_ticks = 0
        self.policy.alert()
        self.policy.free_overtime(0)
        logger.debug("Free target %ss reached, alerting", s.target)
        self._restart_ticker_locked()

    # ---------- Internals ----------
    def _restart_ticker_locked(self) -> None:
        """Run exactly the ticker the current phase needs (or none)."""
        self._stop_ticker_locked()
        if self._state.background_timestamp is not None:
            return  # no ticks while suspended
        phase = self._state.phase
        if phase is Phase.RUNNING:
            interval, step = self.cfg.tick_seconds, 1
        elif phase is Phase.ALERTING:
            interval, step = float(self.cfg.alert_interval_s), self.cfg.alert_interval_s
        else:
            return
        gen = self._ticker_gen
        self._ticker = self._ticker_factory(interval, lambda: self._on_timer(gen, step))
        self._ticker.start()

    def _stop_ticker_locked(self) -> None:
        # Bumping the generation drops callbacks already waiting on the lock.
        self._ticker_gen += 1
        if self._ticker is not None:
            self._ticker.stop()
            self._ticker = None

    def _on_timer(self, gen: int, step: int) -> None:
        with self._lock:
            if gen != self._ticker_gen:
                return
            changed = self._tick_locked(step)
        if changed:
            self._emit()

    def _resume_if_suspended_locked(self) -> None:
        # A command arriving while suspended implies the app is back.
        if self._state.background_timestamp is not None:
            self.reconciler.foreground_locked(self.clock())

    def _store_locked(self, record: SessionRecord) -> None:
        if self.store is None:
            return
        try:
            self.store.append(record)
        except Exception as e:
            logger.warning("Session store rejected record %s: %s", record.id, e)

    def _emit(self) -> None:
        snap = self.snapshot()
        for cb in list(self._listeners):
            try:
                cb(snap)
            except Exception:
                logger.exception("on_change listener failed")


__all__ = ["TimerEngine", "RecordSink", "SettingsSource"]
