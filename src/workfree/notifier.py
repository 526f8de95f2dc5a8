from __future__ import annotations

import logging
import sys
import threading
from typing import Callable, Dict, Protocol

from plyer import notification as plyer_notification  # type: ignore[import-not-found]
from plyer import vibrator as plyer_vibrator  # type: ignore[import-not-found]

logger = logging.getLogger(__name__)

BodyTemplate = Callable[[int], str]


class Notifier(Protocol):
    """Collaborator that delivers what the timer asks for.

    Every call is fire-and-forget. Scheduling twice with the same id replaces
    the earlier request instead of adding a second one.
    """

    def schedule_one_shot(self, id: str, title: str, body: str, delay_seconds: float) -> None: ...

    def schedule_repeating(
        self,
        id_prefix: str,
        title: str,
        body_template: BodyTemplate,
        interval_seconds: int,
        max_count: int,
        start_delay: float = 0,
    ) -> None: ...

    def cancel(self, id_or_prefix: str) -> None: ...

    def cancel_all(self) -> None: ...

    def play_alert(self) -> None: ...


def notify(title: str, message: str, timeout: int = 5) -> None:
    """Send a desktop notification in a non-blocking way."""
    def _do():
        _deliver(title, message, timeout)

    t = threading.Thread(target=_do, daemon=True)
    t.start()


def _deliver(title: str, message: str, timeout: int = 5) -> None:
    try:
        notify_func = getattr(plyer_notification, "notify", None)
        if callable(notify_func):
            notify_func(title=title, message=message, timeout=timeout, app_name="WorkFree")  # type: ignore[no-untyped-call]
        else:
            logger.info("%s - %s", title, message)
    except Exception as e:
        # Notifications are unavailable on some platforms
        logger.warning("Notification delivery failed: %s", e)


class DesktopNotifier:
    """Notifier backed by plyer.

    Deferred requests are held as ``threading.Timer`` objects keyed by id so
    they can be replaced or cancelled before they fire.
    """

    def __init__(self, timeout: int = 6) -> None:
        self.timeout = timeout
        self._pending: Dict[str, threading.Timer] = {}
        self._lock = threading.Lock()

    def schedule_one_shot(self, id: str, title: str, body: str, delay_seconds: float) -> None:
        self.cancel_id(id)
        if delay_seconds <= 0:
            notify(title, body, timeout=self.timeout)
            return
        timer = threading.Timer(delay_seconds, self._fire, args=(id, title, body))
        timer.daemon = True
        with self._lock:
            self._pending[id] = timer
        timer.start()
        logger.debug("Scheduled %s in %.0fs", id, delay_seconds)

    def schedule_repeating(
        self,
        id_prefix: str,
        title: str,
        body_template: BodyTemplate,
        interval_seconds: int,
        max_count: int,
        start_delay: float = 0,
    ) -> None:
        for i in range(1, max_count + 1):
            offset = i * interval_seconds
            self.schedule_one_shot(
                f"{id_prefix}{i}",
                title,
                body_template(offset // 60),
                start_delay + offset,
            )

    def cancel_id(self, id: str) -> None:
        with self._lock:
            timer = self._pending.pop(id, None)
        if timer is not None:
            timer.cancel()

    def cancel(self, id_or_prefix: str) -> None:
        with self._lock:
            keys = [k for k in self._pending if k == id_or_prefix or k.startswith(id_or_prefix)]
            timers = [self._pending.pop(k) for k in keys]
        for timer in timers:
            timer.cancel()
        if timers:
            logger.debug("Cancelled %d pending notification(s) for %s", len(timers), id_or_prefix)

    def cancel_all(self) -> None:
        with self._lock:
            timers = list(self._pending.values())
            self._pending.clear()
        for timer in timers:
            timer.cancel()

    def pending_ids(self) -> list[str]:
        with self._lock:
            return sorted(self._pending)

    def play_alert(self) -> None:
        try:
            plyer_vibrator.vibrate(time=0.5)
        except NotImplementedError:
            # No vibrator on desktop platforms; ring the terminal bell instead
            sys.stdout.write("\a")
            sys.stdout.flush()
        except Exception as e:
            logger.warning("Alert signal failed: %s", e)

    def _fire(self, id: str, title: str, body: str) -> None:
        with self._lock:
            self._pending.pop(id, None)
        _deliver(title, body, self.timeout)


__all__ = ["Notifier", "DesktopNotifier", "notify", "BodyTemplate"]
