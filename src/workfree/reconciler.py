"""
Background reconciliation.

While the process is suspended no ticks are delivered. On suspend we record
the wall-clock time and arm deferred notifications; on resume we compute the
gap and fast-forward the timer as if every missed second had ticked, with
the same target-crossing rules as the live tick.

Edge cases handled:
- Resume without a recorded suspend: no-op, so resuming twice is harmless.
- Clock skew (resume earlier than suspend): the gap is clamped to zero.
- Paused timers: the gap is discarded.
- Already alerting: live alerting restarts; missed overtime minutes are not
  credited to the overtime counter.
- Work target crossed while suspended: the deferred request covers it, unless
  the caller reports that deferred requests could not be delivered.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from .models import Mode, Phase, TimerState

if TYPE_CHECKING:  # pragma: no cover
    from .timer_engine import TimerEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatchUp:
    state: TimerState
    applied_seconds: int = 0
    entered_alerting: bool = False   # Free target crossed while suspended
    work_target_passed: bool = False  # Work target crossed while suspended


def gap_seconds(suspended_at: float, now: float) -> int:
    return max(0, int(now - suspended_at))


def catch_up(state: TimerState, diff: int) -> CatchUp:
    """Fast-forward a copy of *state* by *diff* seconds.

    Pure: the input state is not touched and the result depends only on
    (state, diff).
    """
    new = state.copy()
    new.background_timestamp = None
    diff = max(0, int(diff))
    if new.phase is not Phase.RUNNING:
        return CatchUp(state=new)

    new.elapsed += diff
    if new.elapsed < new.target:
        return CatchUp(state=new, applied_seconds=diff)
    if new.mode is Mode.FREE:
        new.elapsed = new.target
        new.phase = Phase.ALERTING
        new.free_overtime_ticks = 0
        return CatchUp(state=new, applied_seconds=diff, entered_alerting=True)
    if not new.work_alert_fired:
        # Announced by the deferred request, or live by the resume path.
        new.work_alert_fired = True
        return CatchUp(state=new, applied_seconds=diff, work_target_passed=True)
    return CatchUp(state=new, applied_seconds=diff)


class BackgroundReconciler:
    """Applies suspend/resume signals to a TimerEngine."""

    def __init__(self, engine: "TimerEngine") -> None:
        self.engine = engine

    def handle_background(self, now: Optional[float] = None) -> bool:
        engine = self.engine
        with engine._lock:
            s = engine._state
            if s.background_timestamp is not None:
                return False
            s.background_timestamp = engine.clock() if now is None else now
            # Stops the repeating alert too; it would be inaudible.
            engine._stop_ticker_locked()
            engine.policy.arm_background(s)
            logger.debug("Suspended in %s/%s at %ss", s.mode.value, s.phase.value, s.elapsed)
        return True

    def handle_foreground(self, now: Optional[float] = None, deferred_delivered: bool = True) -> bool:
        """Reconcile after a suspension.

        Pass deferred_delivered=False when the deferred requests armed on
        suspend could not fire (the whole process was stopped); a Work target
        crossed meanwhile is then announced live.
        """
        engine = self.engine
        with engine._lock:
            if engine._state.background_timestamp is None:
                return False
            self.foreground_locked(engine.clock() if now is None else now, deferred_delivered)
        engine._emit()
        return True

    def foreground_locked(self, now: float, deferred_delivered: bool = True) -> CatchUp:
        engine = self.engine
        before = engine._state
        suspended_at = before.background_timestamp
        diff = 0 if suspended_at is None else gap_seconds(suspended_at, now)
        engine.policy.cancel_background()

        result = catch_up(before, diff)
        engine._state = result.state
        if result.entered_alerting:
            engine.policy.alert()
            engine.policy.free_overtime(0)
        elif before.phase is Phase.ALERTING:
            engine.policy.alert()
        elif result.work_target_passed and not deferred_delivered and engine.settings.alert_in_work:
            engine.policy.alert()
            engine.policy.work_complete()
        engine._restart_ticker_locked()
        logger.debug(
            "Resumed after %ss: %s/%s at %ss",
            diff,
            result.state.mode.value,
            result.state.phase.value,
            result.state.elapsed,
        )
        return result


__all__ = ["CatchUp", "catch_up", "gap_seconds", "BackgroundReconciler"]
