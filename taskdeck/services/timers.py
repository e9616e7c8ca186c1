from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from ..errors import InvalidState
from ..models import Task, TaskAlert, User
from ..results import service_operation
from ..schemas import TimerStart
from ..utils.time_utils import normalize_datetime_to_utc_naive, now_utc
from ..utils.timers import TimerStatus, timer_status
from .common import get_owned_task, owned_tasks_query, user_id_of


logger = logging.getLogger("taskdeck.timers")


def _write_timer_columns(db: Session, current_user: User, task_id: int, **values: Any) -> Task:
    """UPDATE only the timer_* columns of one task, then return the fresh row."""
    db.execute(
        update(Task)
        .where(Task.id == int(task_id), Task.user_id == user_id_of(current_user))
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return get_owned_task(db, current_user, task_id)


@service_operation("start task timer")
def start_task_timer(
    db: Session,
    *,
    current_user: User,
    task_id: int,
    duration_seconds: Optional[int] = None,
    started_at: Optional[datetime] = None,
) -> Task:
    """Start (or resume, when `started_at` is given) a countdown timer."""
    payload = TimerStart(duration_seconds=duration_seconds, started_at=started_at)
    task = get_owned_task(db, current_user, task_id)

    duration = payload.duration_seconds or task.timer_duration_seconds
    if not duration:
        raise InvalidState(f"Task {task_id} has no timer duration")

    start = normalize_datetime_to_utc_naive(payload.started_at) if payload.started_at else now_utc()
    return _write_timer_columns(
        db,
        current_user,
        task.id,
        timer_duration_seconds=int(duration),
        timer_started_at=start,
        timer_completed_at=None,
    )


@service_operation("complete task timer")
def complete_task_timer(db: Session, *, current_user: User, task_id: int) -> Task:
    task = get_owned_task(db, current_user, task_id)
    if task.timer_started_at is None or task.timer_completed_at is not None:
        raise InvalidState(f"Task {task_id} has no running timer")
    return _write_timer_columns(db, current_user, task.id, timer_completed_at=now_utc())


@service_operation("reset task timer")
def reset_task_timer(db: Session, *, current_user: User, task_id: int) -> Task:
    """Back to idle from any state. The configured duration is kept."""
    task = get_owned_task(db, current_user, task_id)
    return _write_timer_columns(db, current_user, task.id, timer_started_at=None, timer_completed_at=None)


@service_operation("fetch active timers")
def get_active_timers(db: Session, *, current_user: User) -> list[Task]:
    return (
        owned_tasks_query(db, current_user)
        .filter(Task.timer_started_at.is_not(None), Task.timer_completed_at.is_(None))
        .order_by(Task.timer_started_at.asc(), Task.id.asc())
        .all()
    )


@service_operation("fetch timer status")
def get_timer_status(db: Session, *, current_user: User, task_id: int) -> TimerStatus:
    return timer_status(get_owned_task(db, current_user, task_id))


@service_operation("fetch task alerts")
def list_task_alerts(db: Session, *, current_user: User, include_cleared: bool = False) -> list[TaskAlert]:
    q = db.query(TaskAlert).filter(TaskAlert.user_id == user_id_of(current_user))
    if not include_cleared:
        q = q.filter(TaskAlert.cleared_at.is_(None))
    return q.order_by(TaskAlert.created_at.desc(), TaskAlert.id.desc()).all()


@service_operation("clear task alerts")
def clear_task_alerts(db: Session, *, current_user: User) -> int:
    result = db.execute(
        update(TaskAlert)
        .where(TaskAlert.user_id == user_id_of(current_user), TaskAlert.cleared_at.is_(None))
        .values(cleared_at=now_utc())
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return int(result.rowcount or 0)
