from datetime import datetime, timezone

import pytest

from workfree.models import Mode, Phase, SessionRecord, Snapshot, TimerState, Tone, format_seconds


@pytest.mark.parametrize(
    "seconds,expected",
    [(0, "0:00"), (5, "0:05"), (65, "1:05"), (3599, "59:59"), (3600, "1:00:00"), (7384, "2:03:04"), (-65, "1:05")],
)
def test_format_seconds(seconds, expected):
    assert format_seconds(seconds) == expected


def test_mode_opposite():
    assert Mode.WORK.opposite() is Mode.FREE
    assert Mode.FREE.opposite() is Mode.WORK


def test_display_seconds_counts_down_then_up_for_work():
    state = TimerState(mode=Mode.WORK, phase=Phase.RUNNING, elapsed=3, target=5)
    assert state.display_seconds == 2
    assert not state.is_overtime
    assert state.tone is Tone.NORMAL

    state.elapsed = 9
    assert state.display_seconds == 4
    assert state.is_overtime
    assert state.tone is Tone.OVERTIME_WORK


def test_display_seconds_free_over_target_is_zero():
    state = TimerState(mode=Mode.FREE, phase=Phase.ALERTING, elapsed=5, target=5)
    assert state.display_seconds == 0
    assert state.is_overtime
    assert state.tone is Tone.OVERTIME_FREE


def test_snapshot_copies_state():
    state = TimerState(mode=Mode.WORK, phase=Phase.PAUSED, elapsed=61, target=120, session_work_seconds=30)
    snap = Snapshot.of(state)
    state.elapsed = 0
    assert snap.elapsed == 61
    assert snap.display_text == "0:59"
    assert snap.is_active


def test_session_record_dict_round_trip_keeps_fields():
    ts = datetime(2026, 3, 4, 5, 6, 7, tzinfo=timezone.utc)
    record = SessionRecord(duration_seconds=120, timestamp=ts, note="deep work")
    restored = SessionRecord.from_dict(record.to_dict())
    assert restored == record
    assert restored.mode is Mode.WORK


def test_session_record_naive_timestamp_is_utc():
    restored = SessionRecord.from_dict({"timestamp": "2026-01-01T10:00:00", "duration_seconds": 5})
    assert restored.timestamp.tzinfo is timezone.utc
    assert restored.note == ""
    assert restored.id
