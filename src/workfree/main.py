"""
Console front end for the Work/Free timer.

Wires settings, session history, the desktop notifier and the engine, then
reads commands from stdin:

    work | free      start a session in that mode
    pause            pause / resume
    switch          finish the current segment and start the other mode
    finish           end the session and store the Work total
    reset            back to idle
    suspend | resume simulate the app going to / returning from background
    status           show the timer
    history          show this month's sessions
    set KEY VALUE    change a setting (e.g. set work_minutes 25)
    quit

Ctrl-Z (SIGTSTP) and fg (SIGCONT) are treated as suspend and resume. The
deferred notifications run on timers inside this process, so they cannot fire
while it is stopped; a Work target crossed meanwhile is announced on fg.
"""

from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
import threading
import time
from datetime import datetime
from typing import Any, List, Optional

from .models import Mode, Phase, Snapshot, format_seconds
from .notifier import DesktopNotifier
from .session_store import SessionStore
from .settings import EngineConfig, SettingsError, SettingsStore
from .timer_engine import TimerEngine

logger = logging.getLogger(__name__)

LOG_LEVEL_ENV = "WORKFREE_LOG_LEVEL"


class SuspendWatcher:
    """Maps job-control stop/continue onto the engine's background signals."""

    def __init__(self, engine: TimerEngine) -> None:
        self.engine = engine
        self._suspended_at: Optional[float] = None

    def install(self) -> bool:
        if not hasattr(signal, "SIGTSTP"):
            return False
        signal.signal(signal.SIGTSTP, self._on_stop)
        signal.signal(signal.SIGCONT, self._on_continue)
        return True

    def _on_stop(self, signum: int, frame: Any) -> None:
        now = time.time()
        result = {}

        def suspend() -> None:
            result["armed"] = self.engine.handle_background(now)

        # The handler may interrupt a thread holding the engine lock.
        t = threading.Thread(target=suspend, daemon=True)
        t.start()
        t.join(timeout=1.0)
        # False means a manual suspend is active; SIGCONT must not end it.
        if result.get("armed", t.is_alive()):
            self._suspended_at = now
        os.kill(os.getpid(), signal.SIGSTOP)

    def _on_continue(self, signum: int, frame: Any) -> None:
        if self._suspended_at is None:
            return
        self._suspended_at = None
        # Deferred timers live in this process and were stopped with it.
        threading.Thread(
            target=self.engine.handle_foreground,
            kwargs={"deferred_delivered": False},
            daemon=True,
        ).start()


class WorkFreeApp:
    def __init__(self, settings_path: Optional[str] = None, history_path: Optional[str] = None) -> None:
        self.cfg = EngineConfig()
        self.settings_store = SettingsStore(settings_path)
        self.history = SessionStore(history_path, max_records=self.cfg.max_records)
        self.notifier = DesktopNotifier()
        self.engine = TimerEngine(
            settings=lambda: self.settings_store.settings,
            notifier=self.notifier,
            store=self.history,
            cfg=self.cfg,
        )
        self._last_phase: Optional[Phase] = None
        self.engine.on_change(self._on_change)

    def _on_change(self, snap: Snapshot) -> None:
        if snap.phase is not self._last_phase:
            self._last_phase = snap.phase
            print(f"[{snap.mode.value} / {snap.phase.value}] {describe(snap)}")

    def run(self, lines: Optional[List[str]] = None) -> int:
        source = iter(lines) if lines is not None else None
        while True:
            try:
                line = next(source) if source is not None else input("> ")
            except (EOFError, StopIteration):
                break
            if not self.handle(line):
                break
        self.engine.reset()
        self.notifier.cancel_all()
        return 0

    def handle(self, line: str) -> bool:
        """Execute one command line; returns False to quit."""
        parts = line.strip().split()
        if not parts:
            return True
        cmd, args = parts[0].lower(), parts[1:]
        e = self.engine
        if cmd in ("quit", "exit", "q"):
            return False
        if cmd in ("work", "free"):
            ok = e.begin_with(Mode(cmd))
        elif cmd == "pause":
            ok = e.toggle_pause()
        elif cmd == "switch":
            ok = e.stop_and_switch()
        elif cmd == "finish":
            if e.snapshot().is_active:
                record = e.finish_session()
                print(f"Work total: {format_seconds(record.duration_seconds) if record else '0:00'}")
                ok = True
            else:
                ok = False
        elif cmd == "reset":
            ok = e.reset()
        elif cmd == "suspend":
            ok = e.handle_background()
        elif cmd == "resume":
            ok = e.handle_foreground()
        elif cmd == "status":
            print(describe(e.snapshot()))
            ok = True
        elif cmd == "history":
            self._print_history()
            ok = True
        elif cmd == "set" and len(args) == 2:
            ok = self._set(args[0], args[1])
        else:
            print(f"Unknown command: {line.strip()}")
            return True
        if not ok:
            print(f"'{cmd}' does not apply while {e.snapshot().phase.value}")
        return True

    def _set(self, key: str, value: str) -> bool:
        parsed: Any
        if key == "alert_in_work":
            parsed = value.lower() in ("1", "true", "yes", "on")
        else:
            try:
                parsed = int(value)
            except ValueError:
                print(f"Invalid setting: {key} needs a number")
                return True
        try:
            self.settings_store.update(**{key: parsed})
        except SettingsError as e:
            print(f"Invalid setting: {e}")
            return True
        except OSError as e:
            logger.warning("Could not save settings: %s", e)
        print("Saved; applies from the next segment.")
        return True

    def _print_history(self) -> None:
        now = datetime.now()
        total = self.history.month_total_seconds(now.year, now.month)
        print(f"{now:%Y-%m} total work: {format_seconds(total)}")
        for r in self.history.records_for_month(now.year, now.month):
            print(f"  {r.timestamp.astimezone():%m-%d %H:%M}  {format_seconds(r.duration_seconds)}  {r.note}")


def describe(snap: Snapshot) -> str:
    label = snap.display_text
    if snap.is_overtime and snap.mode is Mode.WORK:
        label = "+" + label
    return (
        f"{snap.mode.value.upper()} {label} ({snap.phase.value}), "
        f"session work {format_seconds(snap.session_work_seconds)}"
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Work/Free interval timer")
    parser.add_argument("--settings", help="settings JSON path")
    parser.add_argument("--history", help="session history JSON path")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    args = parser.parse_args(argv)

    level = "DEBUG" if args.verbose else os.environ.get(LOG_LEVEL_ENV, "WARNING").upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    app = WorkFreeApp(args.settings, args.history)
    SuspendWatcher(app.engine).install()
    try:
        return app.run()
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 1


if __name__ == "__main__":
    sys.exit(main())
