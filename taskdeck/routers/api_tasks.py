from __future__ import annotations

from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..auth import get_current_user_optional
from ..db import get_db
from ..grouping import group_tasks_by_board, group_tasks_by_date, group_tasks_by_status
from ..models import TaskStatus
from ..schemas import (
    ReorderRequest,
    TaskAlertOut,
    TaskCreate,
    TaskGroupsOut,
    TaskMove,
    TaskOut,
    TaskUpdate,
    TimerStart,
)
from ..services import tasks as task_service
from ..services import timers as timer_service
from .common import unwrap_or_raise


router = APIRouter()

_GROUPERS = {
    "board": group_tasks_by_board,
    "status": group_tasks_by_status,
    "date": group_tasks_by_date,
}


@router.get("/", response_model=list[TaskOut])
def api_list_tasks(
    board_id: int | None = Query(default=None),
    status_filter: TaskStatus | None = Query(default=None, alias="status"),
    priority: str | None = Query(default=None),
    search: str | None = Query(default=None),
    tag: list[str] | None = Query(default=None),
    due_before: date | None = Query(default=None),
    due_after: date | None = Query(default=None),
    unassigned: bool = Query(default=False, description="Only inbox tasks (no board)"),
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user_optional),
):
    filters = {
        "status": status_filter,
        "priority": priority,
        "search": search,
        "tags": tag,
        "due_before": due_before,
        "due_after": due_after,
        "unassigned": unassigned,
    }
    return unwrap_or_raise(
        task_service.get_tasks(
            db,
            current_user=current_user,
            board_id=board_id,
            filters={k: v for k, v in filters.items() if v is not None},
        )
    )


@router.get("/grouped", response_model=TaskGroupsOut)
def api_grouped_tasks(
    by: Literal["board", "status", "date"] = Query(default="date"),
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user_optional),
):
    tasks = unwrap_or_raise(task_service.get_tasks(db, current_user=current_user))
    active = [t for t in tasks if t.status != TaskStatus.archived]
    groups = _GROUPERS[by](active)
    return TaskGroupsOut(groups={k: [TaskOut.model_validate(t) for t in v] for k, v in groups.items()})


@router.get("/today", response_model=list[TaskOut])
def api_today_tasks(db: Session = Depends(get_db), current_user=Depends(get_current_user_optional)):
    return unwrap_or_raise(task_service.get_today_tasks(db, current_user=current_user))


@router.get("/archived", response_model=list[TaskOut])
def api_archived_tasks(db: Session = Depends(get_db), current_user=Depends(get_current_user_optional)):
    return unwrap_or_raise(task_service.get_archived_tasks(db, current_user=current_user))


@router.get("/timers/active", response_model=list[TaskOut])
def api_active_timers(db: Session = Depends(get_db), current_user=Depends(get_current_user_optional)):
    return unwrap_or_raise(timer_service.get_active_timers(db, current_user=current_user))


@router.get("/alerts", response_model=list[TaskAlertOut])
def api_task_alerts(
    include_cleared: bool = Query(default=False),
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user_optional),
):
    return unwrap_or_raise(
        timer_service.list_task_alerts(db, current_user=current_user, include_cleared=include_cleared)
    )


@router.post("/alerts/clear")
def api_clear_task_alerts(db: Session = Depends(get_db), current_user=Depends(get_current_user_optional)):
    return {"cleared": unwrap_or_raise(timer_service.clear_task_alerts(db, current_user=current_user))}


@router.put("/reorder", status_code=status.HTTP_204_NO_CONTENT)
def api_reorder_tasks(
    payload: ReorderRequest,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user_optional),
):
    unwrap_or_raise(task_service.reorder_tasks(db, current_user=current_user, task_ids=payload.ids))


@router.post("/", response_model=TaskOut, status_code=status.HTTP_201_CREATED)
def api_create_task(
    payload: TaskCreate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user_optional),
):
    return unwrap_or_raise(task_service.create_task(db, current_user=current_user, data=payload))


@router.get("/{task_id}", response_model=TaskOut)
def api_get_task(task_id: int, db: Session = Depends(get_db), current_user=Depends(get_current_user_optional)):
    return unwrap_or_raise(task_service.get_task(db, current_user=current_user, task_id=task_id))


@router.patch("/{task_id}", response_model=TaskOut)
def api_update_task(
    task_id: int,
    payload: TaskUpdate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user_optional),
):
    return unwrap_or_raise(task_service.update_task(db, current_user=current_user, task_id=task_id, changes=payload))


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def api_delete_task(task_id: int, db: Session = Depends(get_db), current_user=Depends(get_current_user_optional)):
    unwrap_or_raise(task_service.delete_task(db, current_user=current_user, task_id=task_id))


@router.post("/{task_id}/toggle", response_model=TaskOut)
def api_toggle_task(task_id: int, db: Session = Depends(get_db), current_user=Depends(get_current_user_optional)):
    return unwrap_or_raise(task_service.toggle_task_status(db, current_user=current_user, task_id=task_id))


@router.post("/{task_id}/archive", response_model=TaskOut)
def api_archive_task(task_id: int, db: Session = Depends(get_db), current_user=Depends(get_current_user_optional)):
    return unwrap_or_raise(task_service.archive_task(db, current_user=current_user, task_id=task_id))


@router.post("/{task_id}/complete-repeat", response_model=TaskOut)
def api_complete_repeatable(
    task_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user_optional),
):
    return unwrap_or_raise(task_service.complete_repeatable_task(db, current_user=current_user, task_id=task_id))


@router.post("/{task_id}/move", response_model=TaskOut)
def api_move_task(
    task_id: int,
    payload: TaskMove,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user_optional),
):
    return unwrap_or_raise(task_service.move_task(db, current_user=current_user, task_id=task_id, data=payload))


@router.post("/{task_id}/timer/start", response_model=TaskOut)
def api_start_timer(
    task_id: int,
    payload: TimerStart,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user_optional),
):
    return unwrap_or_raise(
        timer_service.start_task_timer(
            db,
            current_user=current_user,
            task_id=task_id,
            duration_seconds=payload.duration_seconds,
            started_at=payload.started_at,
        )
    )


@router.post("/{task_id}/timer/complete", response_model=TaskOut)
def api_complete_timer(task_id: int, db: Session = Depends(get_db), current_user=Depends(get_current_user_optional)):
    return unwrap_or_raise(timer_service.complete_task_timer(db, current_user=current_user, task_id=task_id))


@router.post("/{task_id}/timer/reset", response_model=TaskOut)
def api_reset_timer(task_id: int, db: Session = Depends(get_db), current_user=Depends(get_current_user_optional)):
    return unwrap_or_raise(timer_service.reset_task_timer(db, current_user=current_user, task_id=task_id))
