from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional, Sequence

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from ..constants import NO_PRIORITY_RANK, PRIORITY_RANK
from ..errors import InvalidState, ValidationError
from ..grouping import can_move_task
from ..item_data import validate_item_data
from ..models import Board, BoardSection, Task, TaskStatus, User
from ..recurrence import RecurrenceError, next_occurrence
from ..results import service_operation
from ..schemas import TaskCreate, TaskFilters, TaskMove, TaskUpdate
from ..utils.time_utils import local_today, now_utc
from .common import (
    coerce_input,
    editable_board_ids,
    get_editable_board,
    get_editable_task,
    get_visible_board,
    get_visible_task,
    next_display_order,
    owned_tasks_query,
    reorder_rows,
    scope_filter,
    user_id_of,
)


logger = logging.getLogger("taskdeck.service.tasks")

_ACTIVE_STATUSES = (TaskStatus.todo, TaskStatus.in_progress)


def _ordered(query):
    return query.order_by(Task.display_order.is_(None), Task.display_order.asc(), Task.created_at.desc())


def _next_task_order(db: Session, current_user: User, board_id: Optional[int], section_id: Optional[int]) -> int:
    criteria = [scope_filter(Task.board_id, board_id), scope_filter(Task.section_id, section_id)]
    if board_id is None:
        # Unassigned tasks are ordered per user.
        criteria.append(Task.user_id == user_id_of(current_user))
    return next_display_order(db, Task.display_order, *criteria)


def apply_status(task: Task, status: TaskStatus, now: datetime) -> None:
    """Set `status`, keeping completed_at / archived_at consistent with it."""
    previous = task.status
    if status == previous:
        return

    if previous == TaskStatus.done:
        task.completed_at = None
    if previous == TaskStatus.archived:
        task.archived_at = None

    if status == TaskStatus.done:
        task.completed_at = now
        if task.is_repeatable:
            task.last_completed_at = now
    elif status == TaskStatus.archived:
        task.archived_at = now

    task.status = status


def _board_template(board: Optional[Board]) -> Optional[str]:
    return board.template_type if board is not None else None


def _check_section_for_task(db: Session, task: Task, board: Optional[Board], section_id: int) -> None:
    section = db.get(BoardSection, int(section_id)) if board is not None else None
    if section is None or not can_move_task(task, section):
        raise ValidationError(
            f"Section {section_id} is not on the task's board",
            {"section_id": ["Section belongs to a different board"]},
        )


@service_operation("fetch tasks")
def get_tasks(
    db: Session,
    *,
    current_user: User,
    board_id: Optional[int] = None,
    filters: Any = None,
) -> list[Task]:
    f = coerce_input(TaskFilters, filters)
    q = owned_tasks_query(db, current_user)

    if board_id is not None:
        board = get_visible_board(db, current_user, board_id)
        q = db.query(Task).filter(Task.board_id == board.id)
    elif f.unassigned:
        q = q.filter(Task.board_id.is_(None))

    if f.status is not None:
        q = q.filter(Task.status == f.status)
    if f.priority is not None:
        q = q.filter(Task.priority == f.priority)
    if f.section_id is not None:
        q = q.filter(Task.section_id == int(f.section_id))
    if f.due_before is not None:
        q = q.filter(Task.due_date <= f.due_before)
    if f.due_after is not None:
        q = q.filter(Task.due_date >= f.due_after)
    if f.search:
        term = f.search.strip()
        if term:
            q = q.filter(
                or_(
                    Task.title.icontains(term, autoescape=True),
                    Task.description.icontains(term, autoescape=True),
                )
            )

    tasks = _ordered(q).all()

    if f.tags:
        # JSON lists are not portably queryable; overlap is checked in Python.
        wanted = set(f.tags)
        tasks = [t for t in tasks if wanted.intersection(t.tags or [])]
    return tasks


@service_operation("fetch task")
def get_task(db: Session, *, current_user: User, task_id: int) -> Task:
    return get_visible_task(db, current_user, task_id)


@service_operation("fetch today's tasks")
def get_today_tasks(db: Session, *, current_user: User) -> list[Task]:
    """Active tasks due today or earlier, soonest first then by priority."""
    tasks = (
        owned_tasks_query(db, current_user)
        .filter(
            Task.due_date.is_not(None),
            Task.due_date <= local_today(),
            Task.status.in_(_ACTIVE_STATUSES),
        )
        .order_by(Task.due_date.asc(), Task.id.asc())
        .all()
    )
    return sorted(tasks, key=lambda t: (t.due_date, PRIORITY_RANK.get(str(t.priority), NO_PRIORITY_RANK)))


@service_operation("fetch archived tasks")
def get_archived_tasks(db: Session, *, current_user: User) -> list[Task]:
    return (
        owned_tasks_query(db, current_user)
        .filter(Task.status == TaskStatus.archived)
        .order_by(Task.archived_at.desc(), Task.id.desc())
        .all()
    )


@service_operation("create task")
def create_task(db: Session, *, current_user: User, data: Any) -> Task:
    payload = coerce_input(TaskCreate, data)

    board = None
    if payload.board_id is not None:
        board = get_editable_board(db, current_user, payload.board_id)

    if payload.section_id is not None:
        if board is None:
            raise ValidationError(
                "A section can only be set together with its board",
                {"section_id": ["Requires board_id"]},
            )
        section = db.get(BoardSection, int(payload.section_id))
        if section is None or section.board_id != board.id:
            raise ValidationError(
                f"Section {payload.section_id} does not belong to board {board.id}",
                {"section_id": ["Section belongs to a different board"]},
            )

    if payload.parent_task_id is not None:
        get_visible_task(db, current_user, payload.parent_task_id)

    item_data = validate_item_data(_board_template(board), payload.item_data)
    now = now_utc()

    task = Task(
        user_id=user_id_of(current_user),
        board_id=board.id if board is not None else None,
        section_id=payload.section_id,
        parent_task_id=payload.parent_task_id,
        title=payload.title.strip(),
        description=payload.description,
        icon=payload.icon,
        icon_color=payload.icon_color,
        status=TaskStatus.todo,
        priority=payload.priority,
        tags=payload.tags,
        due_date=payload.due_date,
        item_data=item_data,
        display_order=_next_task_order(db, current_user, payload.board_id, payload.section_id),
        is_repeatable=payload.is_repeatable,
        repeat_frequency=payload.repeat_frequency.value if payload.repeat_frequency else None,
        repeat_interval=payload.repeat_interval,
        repeat_custom_days=payload.repeat_custom_days,
    )
    apply_status(task, payload.status, now)

    db.add(task)
    db.commit()
    db.refresh(task)
    return task


@service_operation("update task")
def update_task(db: Session, *, current_user: User, task_id: int, changes: Any) -> Task:
    """General update. Timer columns are never written here."""
    payload = coerce_input(TaskUpdate, changes)
    task = get_editable_task(db, current_user, task_id)
    board = get_visible_board(db, current_user, task.board_id) if task.board_id is not None else None
    fields = payload.model_dump(exclude_unset=True)

    if fields.get("section_id") is not None:
        _check_section_for_task(db, task, board, fields["section_id"])
    if "section_id" in fields and fields["section_id"] != task.section_id:
        # New scope, new slot at its end.
        fields["display_order"] = _next_task_order(db, current_user, task.board_id, fields["section_id"])

    if "item_data" in fields:
        fields["item_data"] = validate_item_data(_board_template(board), fields["item_data"])

    if "title" in fields:
        if fields["title"] is None:
            raise ValidationError("Title cannot be empty", {"title": ["Field required"]})
        fields["title"] = fields["title"].strip()
    if fields.get("repeat_frequency") is not None:
        fields["repeat_frequency"] = fields["repeat_frequency"].value
    if "repeat_interval" in fields and fields["repeat_interval"] is None:
        fields["repeat_interval"] = 1
    if "is_repeatable" in fields and fields["is_repeatable"] is None:
        fields.pop("is_repeatable")

    status = fields.pop("status", None)
    for key, value in fields.items():
        setattr(task, key, value)
    if status is not None:
        apply_status(task, status, now_utc())

    db.commit()
    db.refresh(task)
    return task


@service_operation("delete task")
def delete_task(db: Session, *, current_user: User, task_id: int) -> None:
    task = get_editable_task(db, current_user, task_id)
    db.delete(task)
    db.commit()
    return None


@service_operation("move task")
def move_task(db: Session, *, current_user: User, task_id: int, data: Any) -> Task:
    payload = coerce_input(TaskMove, data)
    task = get_editable_task(db, current_user, task_id)

    if payload.section_id is not None:
        board = get_visible_board(db, current_user, task.board_id) if task.board_id is not None else None
        _check_section_for_task(db, task, board, payload.section_id)

    task.section_id = payload.section_id
    task.display_order = payload.display_order
    db.commit()
    db.refresh(task)
    return task


@service_operation("reorder tasks")
def reorder_tasks(db: Session, *, current_user: User, task_ids: Sequence[int]) -> None:
    reorder_rows(
        db,
        model=Task,
        ids=task_ids,
        owner_criteria=[
            or_(
                and_(Task.board_id.is_(None), Task.user_id == user_id_of(current_user)),
                Task.board_id.in_(editable_board_ids(current_user)),
            )
        ],
        operation="Reorder tasks",
    )
    return None


@service_operation("toggle task status")
def toggle_task_status(db: Session, *, current_user: User, task_id: int) -> Task:
    """Flip between todo and done. Last write wins between concurrent toggles."""
    task = get_editable_task(db, current_user, task_id)
    target = TaskStatus.todo if task.status == TaskStatus.done else TaskStatus.done
    apply_status(task, target, now_utc())
    db.commit()
    db.refresh(task)
    return task


@service_operation("archive task")
def archive_task(db: Session, *, current_user: User, task_id: int) -> Task:
    task = get_editable_task(db, current_user, task_id)
    apply_status(task, TaskStatus.archived, now_utc())
    db.commit()
    db.refresh(task)
    return task


@service_operation("complete repeatable task")
def complete_repeatable_task(db: Session, *, current_user: User, task_id: int) -> Task:
    """Record a completion and move the task to its next due date, back in todo."""
    task = get_editable_task(db, current_user, task_id)
    if not (task.is_repeatable and task.repeat_frequency and task.due_date):
        raise InvalidState(f"Task {task_id} is not a repeatable task with a due date")

    try:
        next_due = next_occurrence(
            task.due_date,
            task.repeat_frequency,
            task.repeat_interval or 1,
            custom_days=task.repeat_custom_days,
        )
    except RecurrenceError as e:
        raise InvalidState(str(e)) from e

    now = now_utc()
    task.last_completed_at = now
    task.due_date = next_due
    task.status = TaskStatus.todo
    task.completed_at = None
    task.archived_at = None
    db.commit()
    db.refresh(task)
    logger.info("Rescheduled repeatable task %s to %s", task.id, next_due.isoformat())
    return task
