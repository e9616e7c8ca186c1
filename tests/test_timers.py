from datetime import datetime, timedelta
from types import SimpleNamespace

from taskdeck.timer_alerts import TimerAlertTracker
from taskdeck.utils.timers import (
    TimerStatus,
    format_timer_duration,
    is_timer_expired,
    remaining_seconds,
    timer_progress,
    timer_status,
)


NOW = datetime(2024, 1, 10, 12, 0, 0)


def timer(task_id, *, started_ago=None, duration=300, completed=False):
    started = NOW - timedelta(seconds=started_ago) if started_ago is not None else None
    return SimpleNamespace(
        id=task_id,
        title=f"task {task_id}",
        timer_started_at=started,
        timer_duration_seconds=duration,
        timer_completed_at=NOW if completed else None,
    )


def test_remaining_and_progress():
    started = NOW - timedelta(seconds=60)
    assert remaining_seconds(started, 300, now=NOW) == 240
    assert remaining_seconds(started, 30, now=NOW) == 0
    assert is_timer_expired(started, 60, now=NOW)
    assert not is_timer_expired(started, 61, now=NOW)
    assert timer_progress(started, 240, now=NOW) == 25.0
    assert timer_progress(started, 30, now=NOW) == 100.0
    assert timer_progress(NOW + timedelta(seconds=10), 60, now=NOW) == 0.0


def test_timer_status_states():
    assert timer_status(timer(1), now=NOW) == TimerStatus.idle
    assert timer_status(timer(1, started_ago=10), now=NOW) == TimerStatus.running
    assert timer_status(timer(1, started_ago=10, completed=True), now=NOW) == TimerStatus.completed
    assert timer_status(timer(1, started_ago=600), now=NOW) == TimerStatus.completed


def test_format_timer_duration():
    assert format_timer_duration(65) == "01:05"
    assert format_timer_duration(3600) == "01:00:00"
    assert format_timer_duration(3725) == "01:02:05"
    assert format_timer_duration(-5) == "00:00"


def test_tracker_does_not_alert_timers_expired_at_first_check():
    tracker = TimerAlertTracker()
    already_expired = timer(1, started_ago=600)
    assert tracker.check([already_expired], now=NOW) == []
    assert tracker.primed
    assert tracker.check([already_expired], now=NOW + timedelta(seconds=30)) == []


def test_tracker_alerts_each_expiry_once():
    tracker = TimerAlertTracker()
    running = timer(2, started_ago=250)
    assert tracker.check([running], now=NOW) == []

    later = NOW + timedelta(seconds=60)
    assert tracker.check([running], now=later) == [running]
    assert tracker.check([running], now=later + timedelta(seconds=30)) == []


def test_tracker_alerts_again_after_restart():
    tracker = TimerAlertTracker()
    first = timer(3, started_ago=250)
    tracker.check([first], now=NOW)
    assert tracker.check([first], now=NOW + timedelta(seconds=60)) == [first]

    restarted = SimpleNamespace(**{**vars(first), "timer_started_at": NOW + timedelta(seconds=100)})
    assert tracker.check([restarted], now=NOW + timedelta(seconds=200)) == []
    assert tracker.check([restarted], now=NOW + timedelta(seconds=500)) == [restarted]


def test_tracker_ignores_completed_and_idle_timers():
    tracker = TimerAlertTracker()
    tracker.check([], now=NOW)
    assert tracker.check([timer(4), timer(5, started_ago=600, completed=True)], now=NOW) == []


def test_tracker_drops_timers_that_stopped_running():
    tracker = TimerAlertTracker()
    tracker.check([timer(6, started_ago=600), timer(7, started_ago=600)], now=NOW)
    assert tracker.alerted_ids == {6, 7}

    tracker.check([timer(7, started_ago=600)], now=NOW + timedelta(seconds=30))
    assert tracker.alerted_ids == {7}

    tracker.check([timer(7, started_ago=600, completed=True)], now=NOW + timedelta(seconds=60))
    assert tracker.alerted_ids == set()
