from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Optional, Union

from .time_utils import local_date_of, local_today, normalize_datetime_to_utc_naive


DateLike = Union[date, datetime, str, None]


def parse_date_like(value: DateLike) -> Optional[date]:
    """Reduce a due/completion value to a local calendar date.

    Plain dates and 'YYYY-MM-DD' strings are taken as-is. Datetimes and ISO
    timestamps are treated as UTC (naive) or converted from their offset, then
    shifted into the app timezone.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return local_date_of(normalize_datetime_to_utc_naive(value))
    if isinstance(value, date):
        return value

    raw = str(value).strip()
    if not raw:
        return None
    if len(raw) == 10:
        return date.fromisoformat(raw)
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    return local_date_of(normalize_datetime_to_utc_naive(datetime.fromisoformat(raw)))


def start_of_week(d: date) -> date:
    # Weeks start on Sunday.
    return d - timedelta(days=(d.weekday() + 1) % 7)


def is_same_week(d: date, today: date) -> bool:
    return start_of_week(d) == start_of_week(today)


def is_same_month(d: date, today: date) -> bool:
    return (d.year, d.month) == (today.year, today.month)


def is_overdue(value: DateLike, *, today: Optional[date] = None) -> bool:
    """True when the date is in the past and is not today."""
    d = parse_date_like(value)
    if d is None:
        return False
    return d < (today or local_today())


def is_due_today(value: DateLike, *, today: Optional[date] = None) -> bool:
    d = parse_date_like(value)
    return d is not None and d == (today or local_today())


def is_due_tomorrow(value: DateLike, *, today: Optional[date] = None) -> bool:
    d = parse_date_like(value)
    return d is not None and d == (today or local_today()) + timedelta(days=1)


def days_until_due(value: DateLike, *, today: Optional[date] = None) -> Optional[int]:
    """Days until the due date; negative when overdue, None without a date."""
    d = parse_date_like(value)
    if d is None:
        return None
    return (d - (today or local_today())).days


def format_due_date(value: DateLike, *, today: Optional[date] = None) -> str:
    d = parse_date_like(value)
    if d is None:
        return "No due date"

    ref = today or local_today()
    if d < ref:
        days = (ref - d).days
        if days < 1:
            return "Overdue"
        return "1 day overdue" if days == 1 else f"{days} days overdue"
    if d == ref:
        return "Today"
    if d == ref + timedelta(days=1):
        return "Tomorrow"

    label = f"{d:%b} {d.day}"
    if d.year != ref.year:
        label = f"{label}, {d.year}"
    return label
