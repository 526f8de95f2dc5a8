import json
from datetime import datetime, timezone

from workfree.models import SessionRecord
from workfree.session_store import SessionStore


def _record(day, seconds, month=3):
    return SessionRecord(duration_seconds=seconds, timestamp=datetime(2026, month, day, 12, tzinfo=timezone.utc))


def test_append_keeps_newest_first_and_persists(tmp_path):
    path = str(tmp_path / "history.json")
    store = SessionStore(path)
    first, second = _record(1, 60), _record(2, 90)
    store.append(first)
    store.append(second)

    assert store.records() == [second, first]
    reloaded = SessionStore(path)
    assert reloaded.records() == [second, first]


def test_history_is_capped(tmp_path):
    store = SessionStore(str(tmp_path / "history.json"), max_records=3)
    records = [_record(d, d * 10) for d in range(1, 6)]
    for r in records:
        store.append(r)
    assert len(store) == 3
    assert store.records() == [records[4], records[3], records[2]]


def test_unreadable_history_starts_empty(tmp_path):
    path = tmp_path / "history.json"
    path.write_text(json.dumps({"not": "a list"}), encoding="utf-8")
    assert SessionStore(str(path)).records() == []


def test_invalid_entries_are_skipped(tmp_path):
    path = tmp_path / "history.json"
    good = _record(3, 42)
    path.write_text(json.dumps([{"duration_seconds": 1}, good.to_dict()]), encoding="utf-8")
    assert SessionStore(str(path)).records() == [good]


def test_write_failure_is_logged_not_raised(tmp_path, caplog):
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    store = SessionStore(str(blocker / "history.json"))
    record = _record(1, 10)
    store.append(record)
    assert store.records() == [record]
    assert "Could not persist" in caplog.text


def test_month_review_helpers(tmp_path):
    store = SessionStore(str(tmp_path / "history.json"))
    store.append(_record(1, 100))
    store.append(_record(1, 50))
    store.append(_record(31, 30))
    store.append(_record(2, 999, month=4))

    utc = timezone.utc
    assert len(store.records_for_month(2026, 3, utc)) == 3
    assert store.month_total_seconds(2026, 3, utc) == 180
    daily = store.daily_totals(2026, 3, utc)
    assert len(daily) == 31
    assert daily[0] == (1, 150)
    assert daily[1] == (2, 0)
    assert daily[30] == (31, 30)
    assert store.daily_totals(2026, 2, utc) == [(d, 0) for d in range(1, 29)]
