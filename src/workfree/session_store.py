"""
Finished-session history.

Records are kept newest first and capped at ``max_records`` (oldest dropped).
Persistence is a JSON list written atomically; a failed write is logged and
the in-memory history stays authoritative for the rest of the process.
"""

from __future__ import annotations

import calendar
import json
import logging
import os
import threading
from datetime import tzinfo
from typing import Any, List, Optional, Tuple

from .models import SessionRecord
from .settings import data_dir

logger = logging.getLogger(__name__)

DEFAULT_MAX_RECORDS = 100


class SessionStore:
    """JSON-backed, capped list of SessionRecord."""

    def __init__(self, path: Optional[str] = None, max_records: int = DEFAULT_MAX_RECORDS) -> None:
        self.path = path or os.path.join(data_dir(), "history.json")
        self.max_records = max(1, int(max_records))
        self._records: List[SessionRecord] = []
        self._lock = threading.Lock()
        if os.path.exists(self.path):
            try:
                self.load()
            except (OSError, ValueError) as e:
                logger.warning("Ignoring unreadable history file %s: %s", self.path, e)
                self._records = []

    # ---------------- Persistence ----------------
    def load(self) -> List[SessionRecord]:
        with open(self.path, "r", encoding="utf-8") as f:
            raw = json.load(f)
        if not isinstance(raw, list):
            raise ValueError("history file must contain a JSON list")
        records: List[SessionRecord] = []
        for item in raw:
            try:
                records.append(SessionRecord.from_dict(item))
            except (KeyError, TypeError, ValueError):
                # Skip invalid entry
                continue
        with self._lock:
            self._records = records[: self.max_records]
            return list(self._records)

    def _save_locked(self) -> None:
        raw: list[dict[str, Any]] = [r.to_dict() for r in self._records]
        tmp = self.path + ".tmp"
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(raw, f, indent=2, ensure_ascii=False)
        os.replace(tmp, self.path)

    def append(self, record: SessionRecord) -> None:
        """Insert *record* as the newest entry; never raises on write failure."""
        with self._lock:
            self._records.insert(0, record)
            del self._records[self.max_records:]
            try:
                self._save_locked()
            except OSError as e:
                logger.warning("Could not persist session history to %s: %s", self.path, e)

    # --------------- Query helpers ---------------
    def records(self) -> List[SessionRecord]:
        with self._lock:
            return list(self._records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def records_for_month(self, year: int, month: int, tz: Optional[tzinfo] = None) -> List[SessionRecord]:
        """Records whose timestamp falls in the given month (local time unless *tz*)."""
        out: List[SessionRecord] = []
        for r in self.records():
            ts = r.timestamp.astimezone(tz)
            if ts.year == year and ts.month == month:
                out.append(r)
        return out

    def month_total_seconds(self, year: int, month: int, tz: Optional[tzinfo] = None) -> int:
        return sum(r.duration_seconds for r in self.records_for_month(year, month, tz))

    def daily_totals(self, year: int, month: int, tz: Optional[tzinfo] = None) -> List[Tuple[int, int]]:
        """(day, seconds) for every day of the month, zero-filled."""
        days = calendar.monthrange(year, month)[1]
        totals = {d: 0 for d in range(1, days + 1)}
        for r in self.records_for_month(year, month, tz):
            totals[r.timestamp.astimezone(tz).day] += r.duration_seconds
        return sorted(totals.items())


__all__ = ["SessionStore", "DEFAULT_MAX_RECORDS"]
