from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass(frozen=True)
class WorkSession:
    entry_time: datetime
    exit_time: datetime
    hours: float
    worksite_id: Optional[int] = None
    worksite_name: Optional[str] = None


@dataclass(frozen=True)
class TimesheetSummary:
    total_hours: float = 0.0
    session_count: int = 0
    sessions: List[WorkSession] = field(default_factory=list)
