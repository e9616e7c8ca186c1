from datetime import date, datetime, timedelta

from taskdeck.constants import priority_color, priority_label, status_color, status_label
from taskdeck.item_data import is_job_tracker_task, is_recipe_task
from taskdeck.utils.task_dates import (
    days_until_due,
    format_due_date,
    is_due_today,
    is_due_tomorrow,
    is_overdue,
    parse_date_like,
    start_of_week,
)
from taskdeck.utils.time_utils import local_today


TODAY = date(2024, 1, 10)


def test_today_is_never_overdue_and_yesterday_always_is():
    for offset in range(0, 400, 37):
        today = date(2023, 1, 1) + timedelta(days=offset)
        assert is_overdue(today, today=today) is False
        assert is_overdue(today - timedelta(days=1), today=today) is True

    real_today = local_today()
    assert is_overdue(real_today) is False
    assert is_overdue(real_today - timedelta(days=1)) is True


def test_missing_date_is_not_overdue():
    assert is_overdue(None, today=TODAY) is False
    assert is_overdue("", today=TODAY) is False


def test_due_today_and_tomorrow():
    assert is_due_today("2024-01-10", today=TODAY)
    assert is_due_tomorrow(date(2024, 1, 11), today=TODAY)
    assert not is_due_tomorrow(date(2024, 1, 10), today=TODAY)
    assert days_until_due("2024-01-15", today=TODAY) == 5
    assert days_until_due("2024-01-08", today=TODAY) == -2
    assert days_until_due(None, today=TODAY) is None


def test_parse_date_like_accepts_timestamps():
    assert parse_date_like("2024-01-10T23:30:00Z") == date(2024, 1, 10)
    assert parse_date_like(datetime(2024, 1, 10, 8, 0)) == date(2024, 1, 10)
    assert parse_date_like("2024-01-10") == date(2024, 1, 10)


def test_format_due_date():
    assert format_due_date(None, today=TODAY) == "No due date"
    assert format_due_date(date(2024, 1, 9), today=TODAY) == "1 day overdue"
    assert format_due_date(date(2024, 1, 5), today=TODAY) == "5 days overdue"
    assert format_due_date(TODAY, today=TODAY) == "Today"
    assert format_due_date(date(2024, 1, 11), today=TODAY) == "Tomorrow"
    assert format_due_date(date(2024, 3, 15), today=TODAY) == "Mar 15"
    assert format_due_date(date(2025, 1, 15), today=TODAY) == "Jan 15, 2025"


def test_weeks_start_on_sunday():
    assert start_of_week(date(2024, 1, 10)) == date(2024, 1, 7)
    assert start_of_week(date(2024, 1, 7)) == date(2024, 1, 7)
    assert start_of_week(date(2024, 1, 13)) == date(2024, 1, 7)


def test_status_and_priority_labels_fall_back():
    assert status_label("in_progress") == "In Progress"
    assert status_color("done") == "green"
    assert status_label("bogus") == "To Do"
    assert priority_label("urgent") == "Urgent"
    assert priority_color(None) == "blue"


class _Item:
    def __init__(self, item_data):
        self.item_data = item_data


def test_template_detection_from_item_data():
    assert is_job_tracker_task(_Item({"company_name": "Acme"}))
    assert not is_job_tracker_task(_Item(None))
    assert is_recipe_task(_Item({"ingredients": "flour"}))
    assert not is_recipe_task(_Item({"company_name": "Acme"}))
