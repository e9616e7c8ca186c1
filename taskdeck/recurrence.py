from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta
from typing import Optional, Union

from .models import RepeatFrequency


class RecurrenceError(ValueError):
    pass


_FIXED_DAYS = {
    RepeatFrequency.daily: 1,
    RepeatFrequency.weekly: 7,
    RepeatFrequency.biweekly: 14,
}


def _days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def add_months(d: date, months: int) -> date:
    """Add calendar months, clamping the day to the target month's length.

    Jan 31 + 1 month -> Feb 28 (or 29 in leap years).
    """
    total = d.year * 12 + (d.month - 1) + int(months)
    year, month_index = divmod(total, 12)
    month = month_index + 1
    day = min(d.day, _days_in_month(year, month))
    return date(year, month, day)


def parse_frequency(value: Union[str, RepeatFrequency, None]) -> RepeatFrequency:
    if value is None or not str(value).strip():
        raise RecurrenceError("Repeat frequency is required")
    try:
        return RepeatFrequency(str(getattr(value, "value", value)).strip().lower())
    except ValueError as e:
        raise RecurrenceError(f"Unsupported repeat frequency: {value}") from e


def next_occurrence(
    current: Union[date, datetime],
    frequency: Union[str, RepeatFrequency],
    interval: Optional[int] = 1,
    *,
    custom_days: Optional[int] = None,
) -> date:
    """Return the next occurrence date of a repeatable task.

    `interval` defaults to 1. Datetimes are reduced to their calendar date;
    the result is always a plain `date`.
    """
    freq = parse_frequency(frequency)

    step = 1 if interval is None else int(interval)
    if step < 1:
        raise RecurrenceError("Repeat interval must be at least 1")

    base = current.date() if isinstance(current, datetime) else current

    if freq in _FIXED_DAYS:
        return base + timedelta(days=_FIXED_DAYS[freq] * step)

    if freq == RepeatFrequency.monthly:
        return add_months(base, step)

    if freq == RepeatFrequency.yearly:
        return add_months(base, 12 * step)

    if freq == RepeatFrequency.custom:
        if not custom_days or int(custom_days) < 1:
            raise RecurrenceError("Custom repeat requires a positive number of days")
        return base + timedelta(days=int(custom_days) * step)

    raise RecurrenceError(f"Unsupported repeat frequency: {frequency}")
