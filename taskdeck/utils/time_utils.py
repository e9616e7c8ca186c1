from __future__ import annotations

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from ..config import get_settings


def get_app_tz() -> ZoneInfo:
    s = get_settings()
    try:
        return ZoneInfo(s.app.timezone)
    except Exception:
        return ZoneInfo("UTC")


def now_utc() -> datetime:
    # Stored timestamps are naive UTC.
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_aware_utc(dt_utc_naive: datetime) -> datetime:
    return dt_utc_naive.replace(tzinfo=timezone.utc)


def to_local(dt_utc_naive: datetime) -> datetime:
    return as_aware_utc(dt_utc_naive).astimezone(get_app_tz())


def normalize_datetime_to_utc_naive(dt: datetime) -> datetime:
    """Aware datetimes are converted to UTC; naive ones are assumed UTC already."""
    if dt.tzinfo is not None:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def local_today() -> date:
    return datetime.now(get_app_tz()).date()


def local_date_of(dt_utc_naive: datetime) -> date:
    return to_local(dt_utc_naive).date()
