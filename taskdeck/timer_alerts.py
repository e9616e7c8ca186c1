"""Polling detection of expired task timers.

The scheduler calls `run_timer_alert_check` every few seconds. Each poll
hands the currently running timers to a `TimerAlertTracker`, which decides
which of them just expired; a `TaskAlert` row is written for each.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable, Optional

from sqlalchemy.orm import Session

from .models import Task, TaskAlert
from .utils.time_utils import now_utc
from .utils.timers import is_timer_expired


logger = logging.getLogger("taskdeck.timers")

ALERT_KIND_TIMER_EXPIRED = "timer_expired"


class TimerAlertTracker:
    """Remembers which timer expiries have already been reported.

    Timers that are already expired on the first check are recorded but not
    returned. Entries are keyed by task id and start time, so restarting a
    timer makes it eligible again.
    """

    def __init__(self) -> None:
        self._primed = False
        self._alerted: dict[int, Optional[datetime]] = {}

    @property
    def primed(self) -> bool:
        return self._primed

    @property
    def alerted_ids(self) -> set[int]:
        return set(self._alerted)

    def check(self, timers: Iterable[Any], now: Optional[datetime] = None) -> list[Any]:
        ref = now or now_utc()
        running = [t for t in timers if t.timer_started_at is not None and t.timer_completed_at is None]
        expired = [
            t
            for t in running
            if t.timer_duration_seconds and is_timer_expired(t.timer_started_at, t.timer_duration_seconds, now=ref)
        ]

        # Completed, reset and deleted timers are forgotten.
        running_ids = {int(t.id) for t in running}
        for task_id in [k for k in self._alerted if k not in running_ids]:
            self.forget(task_id)

        if not self._primed:
            self._primed = True
            for t in expired:
                self._alerted[int(t.id)] = t.timer_started_at
            return []

        fresh: list[Any] = []
        for t in expired:
            key = int(t.id)
            if key in self._alerted and self._alerted[key] == t.timer_started_at:
                continue
            self._alerted[key] = t.timer_started_at
            fresh.append(t)
        return fresh

    def forget(self, task_id: int) -> None:
        self._alerted.pop(int(task_id), None)


def _running_timers(db: Session) -> list[Task]:
    return (
        db.query(Task)
        .filter(Task.timer_started_at.is_not(None), Task.timer_completed_at.is_(None))
        .all()
    )


def run_timer_alert_check(db: Session, tracker: TimerAlertTracker, *, now: Optional[datetime] = None) -> list[TaskAlert]:
    """One poll across all users. Returns the alerts written."""
    expired = tracker.check(_running_timers(db), now=now)
    if not expired:
        return []

    created = now or now_utc()
    alerts: list[TaskAlert] = []
    for task in expired:
        alert = TaskAlert(
            user_id=task.user_id,
            task_id=task.id,
            kind=ALERT_KIND_TIMER_EXPIRED,
            message=f"Timer finished: {task.title}"[:255],
            created_at=created,
        )
        db.add(alert)
        alerts.append(alert)
    db.commit()
    logger.info("Recorded %s timer alert(s)", len(alerts))
    return alerts
