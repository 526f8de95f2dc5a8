"""
Core data types for the Work/Free timer.

Mode and Phase drive the state machine, TimerState is the engine-owned
mutable state, and Snapshot/SessionRecord are the immutable values handed to
presentation code and the session store.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class Mode(str, Enum):
    WORK = "work"
    FREE = "free"

    def opposite(self) -> "Mode":
        return Mode.FREE if self is Mode.WORK else Mode.WORK


class Phase(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    ALERTING = "alerting"  # Free over target
    FINISHED = "finished"


ACTIVE_PHASES = frozenset({Phase.RUNNING, Phase.PAUSED, Phase.ALERTING})


class Tone(str, Enum):
    """Colour class for the timer display."""
    NORMAL = "normal"
    OVERTIME_WORK = "overtime_work"  # good: kept working past target
    OVERTIME_FREE = "overtime_free"  # warning: break ran over


@dataclass
class TimerState:
    mode: Mode = Mode.WORK
    phase: Phase = Phase.IDLE
    elapsed: int = 0
    target: int = 0
    session_work_seconds: int = 0
    work_alert_fired: bool = False
    background_timestamp: Optional[float] = None
    free_overtime_ticks: int = 0

    def copy(self) -> "TimerState":
        return replace(self)

    def start_segment(self, mode: Mode, target: int) -> None:
        """Reset per-segment fields for a fresh segment in *mode*."""
        self.mode = mode
        self.elapsed = 0
        self.target = target
        self.work_alert_fired = False
        self.free_overtime_ticks = 0

    def flush_work(self) -> None:
        """Credit the current segment to the session total if it is Work."""
        if self.mode is Mode.WORK:
            self.session_work_seconds += self.elapsed

    @property
    def is_overtime(self) -> bool:
        return self.elapsed >= self.target

    @property
    def display_seconds(self) -> int:
        remaining = self.target - self.elapsed
        if remaining > 0:
            return remaining
        if self.mode is Mode.WORK:
            return self.elapsed - self.target
        return 0

    @property
    def tone(self) -> Tone:
        if self.target - self.elapsed > 0:
            return Tone.NORMAL
        if self.mode is Mode.WORK:
            return Tone.OVERTIME_WORK
        return Tone.OVERTIME_FREE


@dataclass(frozen=True)
class Snapshot:
    """Read-only view of the timer exposed to presentation code."""
    mode: Mode
    phase: Phase
    elapsed: int
    target: int
    session_work_seconds: int
    display_seconds: int
    is_overtime: bool
    tone: Tone

    @classmethod
    def of(cls, state: TimerState) -> "Snapshot":
        return cls(
            mode=state.mode,
            phase=state.phase,
            elapsed=state.elapsed,
            target=state.target,
            session_work_seconds=state.session_work_seconds,
            display_seconds=state.display_seconds,
            is_overtime=state.is_overtime,
            tone=state.tone,
        )

    @property
    def is_active(self) -> bool:
        return self.phase in ACTIVE_PHASES

    @property
    def display_text(self) -> str:
        return format_seconds(self.display_seconds)


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SessionRecord:
    """A finished session. ``mode`` is always Work: the duration is the
    cumulative Work time of the whole session."""
    duration_seconds: int
    id: str = field(default_factory=_new_id)
    timestamp: datetime = field(default_factory=_utcnow)
    mode: Mode = Mode.WORK
    note: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "mode": self.mode.value,
            "duration_seconds": self.duration_seconds,
            "note": self.note,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "SessionRecord":
        ts = datetime.fromisoformat(str(raw["timestamp"]))
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        return cls(
            id=str(raw.get("id") or _new_id()),
            timestamp=ts,
            mode=Mode(raw.get("mode", Mode.WORK.value)),
            duration_seconds=int(raw["duration_seconds"]),
            note=str(raw.get("note", "")),
        )


def format_seconds(seconds: int) -> str:
    """Format as ``H:MM:SS`` from one hour up, ``M:SS`` below."""
    total = abs(int(seconds))
    h, rem = divmod(total, 3600)
    m, s = divmod(rem, 60)
    if h > 0:
        return f"{h}:{m:02d}:{s:02d}"
    return f"{m}:{s:02d}"


__all__ = [
    "Mode",
    "Phase",
    "ACTIVE_PHASES",
    "Tone",
    "TimerState",
    "Snapshot",
    "SessionRecord",
    "format_seconds",
]
