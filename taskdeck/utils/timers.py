from __future__ import annotations

import enum
from datetime import datetime
from typing import Any, Optional

from .time_utils import now_utc


class TimerStatus(str, enum.Enum):
    idle = "idle"
    running = "running"
    completed = "completed"


def remaining_seconds(started_at: datetime, duration_seconds: int, *, now: Optional[datetime] = None) -> int:
    """Whole seconds left on a timer, never below zero."""
    elapsed = ((now or now_utc()) - started_at).total_seconds()
    remaining = int(duration_seconds) - elapsed
    return int(remaining) if remaining > 0 else 0


def is_timer_expired(started_at: datetime, duration_seconds: int, *, now: Optional[datetime] = None) -> bool:
    return remaining_seconds(started_at, duration_seconds, now=now) == 0


def timer_progress(started_at: datetime, duration_seconds: int, *, now: Optional[datetime] = None) -> float:
    """Elapsed share of the timer as a percentage clamped to 0-100."""
    if not duration_seconds or int(duration_seconds) <= 0:
        return 100.0
    elapsed = ((now or now_utc()) - started_at).total_seconds()
    return max(0.0, min(elapsed / int(duration_seconds) * 100.0, 100.0))


def timer_status(task: Any, *, now: Optional[datetime] = None) -> TimerStatus:
    started = getattr(task, "timer_started_at", None)
    if started is None:
        return TimerStatus.idle
    if getattr(task, "timer_completed_at", None) is not None:
        return TimerStatus.completed
    duration = getattr(task, "timer_duration_seconds", None)
    # A running timer that reached zero reads as completed.
    if duration and is_timer_expired(started, duration, now=now):
        return TimerStatus.completed
    return TimerStatus.running


def format_timer_duration(seconds: int) -> str:
    """MM:SS, or HH:MM:SS once an hour or more remains."""
    sec = max(int(seconds), 0)
    hours, rem = divmod(sec, 3600)
    minutes, secs = divmod(rem, 60)
    if hours:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"
