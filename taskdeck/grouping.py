"""In-memory grouping and sorting of task lists.

These work on anything with task attributes (ORM rows, `TaskOut` models, or
simple namespaces) and never mutate the input sequence.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Iterable, Optional, Sequence

from .constants import INBOX_KEY, NO_PRIORITY_RANK, PRIORITY_RANK
from .utils.task_dates import is_same_month, is_same_week, parse_date_like
from .utils.time_utils import local_today


GROUP_OVERDUE = "Overdue"
GROUP_TODAY = "Today"
GROUP_TOMORROW = "Tomorrow"
GROUP_YESTERDAY = "Yesterday"
GROUP_THIS_WEEK = "This Week"
GROUP_THIS_MONTH = "This Month"
GROUP_OLDER = "Older"

DATE_GROUP_ORDER: tuple[str, ...] = (
    GROUP_OVERDUE,
    GROUP_TODAY,
    GROUP_TOMORROW,
    GROUP_YESTERDAY,
    GROUP_THIS_WEEK,
    GROUP_THIS_MONTH,
    GROUP_OLDER,
)


def _value(obj: Any, name: str) -> Any:
    v = getattr(obj, name, None)
    return getattr(v, "value", v)


def group_tasks_by_board(tasks: Iterable[Any]) -> dict[str, list[Any]]:
    """Partition by board id; unassigned tasks go under "inbox"."""
    groups: dict[str, list[Any]] = {}
    for task in tasks:
        board_id = getattr(task, "board_id", None)
        key = INBOX_KEY if board_id is None else str(board_id)
        groups.setdefault(key, []).append(task)
    return groups


def group_tasks_by_status(tasks: Iterable[Any]) -> dict[str, list[Any]]:
    groups: dict[str, list[Any]] = {}
    for task in tasks:
        groups.setdefault(str(_value(task, "status")), []).append(task)
    return groups


def _completed_bucket(d: date, today: date) -> str:
    if d == today:
        return GROUP_TODAY
    if d == today - timedelta(days=1):
        return GROUP_YESTERDAY
    if is_same_week(d, today):
        return GROUP_THIS_WEEK
    if is_same_month(d, today):
        return GROUP_THIS_MONTH
    return GROUP_OLDER


def _due_bucket(d: date, today: date) -> str:
    if d < today:
        return GROUP_OVERDUE
    if d == today:
        return GROUP_TODAY
    if d == today + timedelta(days=1):
        return GROUP_TOMORROW
    if is_same_week(d, today):
        return GROUP_THIS_WEEK
    if is_same_month(d, today):
        return GROUP_THIS_MONTH
    return GROUP_OLDER


def group_tasks_by_date(tasks: Iterable[Any], *, today: Optional[date] = None) -> dict[str, list[Any]]:
    """Bucket tasks into relative-date groups.

    Completed tasks are bucketed by `completed_at`, active ones by `due_date`;
    tasks with neither land in "Older". Empty groups are omitted and the
    remaining ones follow DATE_GROUP_ORDER.
    """
    ref = today or local_today()
    buckets: dict[str, list[Any]] = {name: [] for name in DATE_GROUP_ORDER}

    for task in tasks:
        completed = parse_date_like(getattr(task, "completed_at", None))
        if completed is not None:
            buckets[_completed_bucket(completed, ref)].append(task)
            continue

        due = parse_date_like(getattr(task, "due_date", None))
        if due is None:
            buckets[GROUP_OLDER].append(task)
        else:
            buckets[_due_bucket(due, ref)].append(task)

    return {name: items for name, items in buckets.items() if items}


def sort_tasks_by_due_date(tasks: Sequence[Any]) -> list[Any]:
    """Soonest first; tasks without a due date last."""

    def key(task: Any):
        d = parse_date_like(getattr(task, "due_date", None))
        return (d is None, d or date.min)

    return sorted(tasks, key=key)


def sort_tasks_by_priority(tasks: Sequence[Any]) -> list[Any]:
    """urgent, high, medium, low, then no priority. Ties keep input order."""
    return sorted(tasks, key=lambda t: PRIORITY_RANK.get(str(_value(t, "priority")), NO_PRIORITY_RANK))


def sort_tasks_by_order(tasks: Sequence[Any]) -> list[Any]:
    """Ascending display_order; unordered tasks last."""

    def key(task: Any):
        order = getattr(task, "display_order", None)
        return (order is None, order if order is not None else 0)

    return sorted(tasks, key=key)


def can_move_task(task: Any, section: Any) -> bool:
    return getattr(task, "board_id", None) == getattr(section, "board_id", None)
