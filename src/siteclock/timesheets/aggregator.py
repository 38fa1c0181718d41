"""Pair clock records into work sessions.

This is a reporting convenience, not a payroll calculation.
"""
from __future__ import annotations

from typing import Sequence

from ..attendance.model import AttendanceRecord
from ..core.enums import EventKind
from .model import TimesheetSummary, WorkSession


def build_session(entry: AttendanceRecord, exit: AttendanceRecord) -> WorkSession:
    """Session attributed to the entry record's worksite."""
    hours = (exit.event_time - entry.event_time).total_seconds() / 3600
    return WorkSession(
        entry_time=entry.event_time,
        exit_time=exit.event_time,
        hours=hours,
        worksite_id=entry.worksite_id,
        worksite_name=entry.worksite_name,
    )


def summarize(records: Sequence[AttendanceRecord]) -> TimesheetSummary:
    """Greedy forward scan over records sorted ascending by event time.

    Each CLOCK_IN pairs with the next CLOCK_OUT after it. A CLOCK_IN with no
    later CLOCK_OUT yields no session. Consecutive CLOCK_INs (an anomaly)
    each pair with the same CLOCK_OUT.
    """
    sessions: list[WorkSession] = []
    for i, record in enumerate(records):
        if record.kind != EventKind.CLOCK_IN:
            continue
        exit_record = next(
            (r for r in records[i + 1:] if r.kind == EventKind.CLOCK_OUT),
            None,
        )
        if exit_record is not None:
            sessions.append(build_session(record, exit_record))

    return TimesheetSummary(
        total_hours=sum(s.hours for s in sessions),
        session_count=len(sessions),
        sessions=sessions,
    )
