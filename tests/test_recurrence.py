from datetime import date, datetime

import pytest

from taskdeck.recurrence import RecurrenceError, add_months, next_occurrence


START_DATES = [date(2024, 1, 1), date(2024, 1, 31), date(2024, 2, 29), date(2023, 12, 31)]


@pytest.mark.parametrize("frequency", ["daily", "weekly", "biweekly", "monthly", "yearly"])
@pytest.mark.parametrize("interval", [1, 2, 5])
def test_next_occurrence_is_strictly_later(frequency, interval):
    for d in START_DATES:
        assert next_occurrence(d, frequency, interval) > d


@pytest.mark.parametrize("frequency", ["daily", "weekly", "biweekly"])
def test_fixed_length_frequencies_compose(frequency):
    d = date(2024, 1, 1)
    n, k = 3, 4
    stepped = d
    for _ in range(k):
        stepped = next_occurrence(stepped, frequency, n)
    assert stepped == next_occurrence(d, frequency, n * k)


def test_basic_steps():
    d = date(2024, 1, 1)
    assert next_occurrence(d, "daily") == date(2024, 1, 2)
    assert next_occurrence(d, "weekly") == date(2024, 1, 8)
    assert next_occurrence(d, "biweekly") == date(2024, 1, 15)
    assert next_occurrence(d, "monthly") == date(2024, 2, 1)
    assert next_occurrence(d, "yearly") == date(2025, 1, 1)
    assert next_occurrence(d, "weekly", 2) == date(2024, 1, 15)


def test_interval_defaults_to_one():
    assert next_occurrence(date(2024, 1, 1), "daily", None) == date(2024, 1, 2)


def test_month_end_is_clamped():
    assert next_occurrence(date(2024, 1, 31), "monthly") == date(2024, 2, 29)
    assert next_occurrence(date(2023, 1, 31), "monthly") == date(2023, 2, 28)
    assert next_occurrence(date(2024, 2, 29), "yearly") == date(2025, 2, 28)
    assert add_months(date(2024, 11, 30), 3) == date(2025, 2, 28)


def test_datetime_input_returns_date():
    result = next_occurrence(datetime(2024, 1, 1, 15, 30), "weekly")
    assert result == date(2024, 1, 8)
    assert not isinstance(result, datetime)


def test_custom_frequency_uses_custom_days():
    assert next_occurrence(date(2024, 1, 1), "custom", 2, custom_days=10) == date(2024, 1, 21)
    with pytest.raises(RecurrenceError):
        next_occurrence(date(2024, 1, 1), "custom")


def test_invalid_input_raises():
    with pytest.raises(RecurrenceError):
        next_occurrence(date(2024, 1, 1), "fortnightly")
    with pytest.raises(RecurrenceError):
        next_occurrence(date(2024, 1, 1), "daily", 0)
    with pytest.raises(ValueError):
        next_occurrence(date(2024, 1, 1), None)
