import signal
import threading
import unittest
from unittest.mock import patch

from helpers import RecordingNotifier, make_engine
from workfree.main import SuspendWatcher, WorkFreeApp, describe
from workfree.models import Mode, Phase, Snapshot, Tone


def _app(tmp_path):
    with patch("workfree.main.DesktopNotifier", RecordingNotifier):
        return WorkFreeApp(str(tmp_path / "settings.json"), str(tmp_path / "history.json"))


def test_console_session_flow(tmp_path, capsys):
    app = _app(tmp_path)
    try:
        assert app.handle("set work_minutes 25")
        assert app.settings_store.settings.work_minutes == 25
        app.handle("work")
        assert app.engine.snapshot().target == 25 * 60
        app.engine.tick()
        app.engine.tick()
        app.handle("pause")
        assert app.engine.snapshot().phase is Phase.PAUSED
        app.handle("finish")
        assert len(app.history) == 1
        assert app.history.records()[0].duration_seconds >= 2
        app.handle("history")
        out = capsys.readouterr().out
        assert "Work total:" in out
        assert "total work:" in out
    finally:
        app.engine.reset()


def test_console_rejects_out_of_phase_and_bad_settings(tmp_path, capsys):
    app = _app(tmp_path)
    app.handle("pause")
    app.handle("set free_seconds 99")
    app.handle("set free_seconds abc")
    app.handle("dance")
    out = capsys.readouterr().out
    assert "'pause' does not apply while idle" in out
    assert out.count("Invalid setting") == 2
    assert "Unknown command: dance" in out
    assert app.settings_store.settings.free_seconds == 0


def test_run_stops_on_quit(tmp_path):
    app = _app(tmp_path)
    assert app.run(["free", "suspend", "resume", "status", "quit", "work"]) == 0
    assert app.engine.snapshot().phase is Phase.IDLE


def test_describe_marks_work_overtime():
    snap = Snapshot(
        mode=Mode.WORK,
        phase=Phase.RUNNING,
        elapsed=70,
        target=60,
        session_work_seconds=0,
        display_seconds=10,
        is_overtime=True,
        tone=Tone.OVERTIME_WORK,
    )
    assert describe(snap).startswith("WORK +0:10")


@unittest.skipUnless(hasattr(signal, "SIGTSTP"), "needs job-control signals")
class TestSuspendWatcher(unittest.TestCase):
    def setUp(self):
        self.engine, self.notifier, _, _, _ = make_engine(work=600)
        self.engine.begin_with(Mode.WORK)
        self.watcher = SuspendWatcher(self.engine)

    @patch("workfree.main.os.kill")
    def test_stop_keeps_manual_suspend_across_continue(self, kill):
        self.assertTrue(self.engine.handle_background(now=0.0))

        self.watcher._on_stop(signal.SIGTSTP, None)
        kill.assert_called_once()
        self.assertIsNone(self.watcher._suspended_at)

        self.watcher._on_continue(signal.SIGCONT, None)
        self.assertEqual(self.engine.state.background_timestamp, 0.0)

    @patch("workfree.main.os.kill")
    def test_continue_resumes_with_undelivered_deferred_requests(self, kill):
        resumed = threading.Event()
        seen = {}

        def handle_foreground(**kwargs):
            seen.update(kwargs)
            resumed.set()

        self.watcher._on_stop(signal.SIGTSTP, None)
        self.assertIsNotNone(self.watcher._suspended_at)
        self.assertIsNotNone(self.engine.state.background_timestamp)

        self.engine.handle_foreground = handle_foreground
        self.watcher._on_continue(signal.SIGCONT, None)
        self.assertTrue(resumed.wait(2.0))
        self.assertEqual(seen, {"deferred_delivered": False})
        self.assertIsNone(self.watcher._suspended_at)
