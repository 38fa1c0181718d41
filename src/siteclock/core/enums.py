from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User roles used for authorization checks."""

    ADMIN = "ADMIN"
    SUPERVISOR = "SUPERVISOR"
    WORKER = "WORKER"


class EventKind(str, Enum):
    """Kind of an attendance record."""

    CLOCK_IN = "CLOCK_IN"
    CLOCK_OUT = "CLOCK_OUT"


class ClockState(str, Enum):
    """Derived per-worker state; never stored."""

    CLOCKED_OUT = "CLOCKED_OUT"
    CLOCKED_IN = "CLOCKED_IN"

    @classmethod
    def from_last_kind(cls, kind: EventKind | None) -> "ClockState":
        if kind == EventKind.CLOCK_IN:
            return cls.CLOCKED_IN
        return cls.CLOCKED_OUT


class SyncStatus(str, Enum):
    PENDING = "PENDING"
    SYNCED = "SYNCED"
