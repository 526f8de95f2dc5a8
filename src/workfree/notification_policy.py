"""
Notification-scheduling policy.

Decides *what* the timer asks the Notifier for and *when*:
- live requests while the process runs (Work target reached, Free overtime)
- deferred requests armed on suspend (countdown end, overtime reminders)
- cancellation on resume and on finish

Identifiers:
    timer-alert                  Work target reached
    timer-alert-overtime-<m>     Free overtime, m minutes over
    timer-alert-bg-0             deferred countdown end
    timer-alert-bg-<n>           deferred overtime reminders, n = 1..count
"""

from __future__ import annotations

import logging
from typing import Optional

from .models import Mode, Phase, TimerState
from .notifier import BodyTemplate, Notifier
from .settings import EngineConfig

logger = logging.getLogger(__name__)

ALERT_ID = "timer-alert"
OVERTIME_ID_PREFIX = "timer-alert-overtime-"
BACKGROUND_ID_PREFIX = "timer-alert-bg-"
COUNTDOWN_END_ID = BACKGROUND_ID_PREFIX + "0"

WORK_DONE_TITLE = "Work finished, well done"
FREE_OVER_TITLE = "Time to work"


def overtime_body(minutes_over: int) -> str:
    if minutes_over <= 0:
        return "Free time is over."
    return f"Free time is {minutes_over} min over."


def _offset_template(base_seconds: int) -> BodyTemplate:
    def body(minutes: int) -> str:
        return overtime_body(minutes + base_seconds // 60)
    return body


class NotificationPolicy:
    """Translates timer events into Notifier requests.

    Notifier failures are logged and never raised: the timer must keep its
    state consistent even if the notification backend is broken.
    """

    def __init__(self, notifier: Optional[Notifier], cfg: Optional[EngineConfig] = None) -> None:
        self.notifier = notifier
        self.cfg = cfg or EngineConfig()

    # ---------- Live ----------
    def work_complete(self) -> None:
        self._call("schedule_one_shot", ALERT_ID, WORK_DONE_TITLE, "", 0)

    def free_overtime(self, minutes_over: int) -> None:
        self._call(
            "schedule_one_shot",
            f"{OVERTIME_ID_PREFIX}{minutes_over}",
            FREE_OVER_TITLE,
            overtime_body(minutes_over),
            0,
        )

    def alert(self) -> None:
        self._call("play_alert")

    # ---------- Background ----------
    def arm_background(self, state: TimerState) -> None:
        """Schedule deferred notifications covering a suspension that starts now."""
        interval = self.cfg.alert_interval_s
        count = self.cfg.background_series_count
        if state.phase is Phase.RUNNING and not state.is_overtime:
            remaining = state.target - state.elapsed
            if state.mode is Mode.WORK:
                self._call("schedule_one_shot", COUNTDOWN_END_ID, WORK_DONE_TITLE, "", remaining)
            else:
                self._call("schedule_one_shot", COUNTDOWN_END_ID, FREE_OVER_TITLE, overtime_body(0), remaining)
                self._call(
                    "schedule_repeating",
                    BACKGROUND_ID_PREFIX,
                    FREE_OVER_TITLE,
                    overtime_body,
                    interval,
                    count,
                    remaining,
                )
        elif state.phase is Phase.ALERTING:
            self._call(
                "schedule_repeating",
                BACKGROUND_ID_PREFIX,
                FREE_OVER_TITLE,
                _offset_template(state.free_overtime_ticks),
                interval,
                count,
                0,
            )

    def cancel_background(self) -> None:
        self._call("cancel", BACKGROUND_ID_PREFIX)

    def cancel_all(self) -> None:
        self._call("cancel_all")

    # ---------- Internals ----------
    def _call(self, name: str, *args: object) -> None:
        if self.notifier is None:
            return
        try:
            getattr(self.notifier, name)(*args)
        except Exception as e:
            logger.warning("Notifier %s failed: %s", name, e)


__all__ = [
    "NotificationPolicy",
    "overtime_body",
    "ALERT_ID",
    "OVERTIME_ID_PREFIX",
    "BACKGROUND_ID_PREFIX",
    "COUNTDOWN_END_ID",
    "WORK_DONE_TITLE",
    "FREE_OVER_TITLE",
]
