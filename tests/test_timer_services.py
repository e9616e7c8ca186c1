from datetime import datetime, timedelta, timezone

from taskdeck.errors import InvalidState, NotFound, ValidationError
from taskdeck.models import TaskAlert, TaskStatus
from taskdeck.services import tasks as task_service
from taskdeck.services import timers as timer_service
from taskdeck.timer_alerts import TimerAlertTracker, run_timer_alert_check
from taskdeck.utils.time_utils import now_utc
from taskdeck.utils.timers import TimerStatus


def make_task(db, user, **data):
    data.setdefault("title", "Task")
    return task_service.create_task(db, current_user=user, data=data).unwrap()


def test_timer_state_machine(db, alice):
    task = make_task(db, alice, priority="high", tags=["focus"])
    assert timer_service.get_timer_status(db, current_user=alice, task_id=task.id).unwrap() == TimerStatus.idle

    no_duration = timer_service.start_task_timer(db, current_user=alice, task_id=task.id)
    assert isinstance(no_duration.error, InvalidState)

    running = timer_service.start_task_timer(db, current_user=alice, task_id=task.id, duration_seconds=1500).unwrap()
    assert running.timer_started_at is not None
    assert running.timer_completed_at is None
    assert timer_service.get_timer_status(db, current_user=alice, task_id=task.id).unwrap() == TimerStatus.running

    completed = timer_service.complete_task_timer(db, current_user=alice, task_id=task.id).unwrap()
    assert completed.timer_completed_at is not None

    again = timer_service.complete_task_timer(db, current_user=alice, task_id=task.id)
    assert isinstance(again.error, InvalidState)

    reset = timer_service.reset_task_timer(db, current_user=alice, task_id=task.id).unwrap()
    assert reset.timer_started_at is None
    assert reset.timer_completed_at is None
    assert reset.timer_duration_seconds == 1500

    # Restart reuses the stored duration.
    restarted = timer_service.start_task_timer(db, current_user=alice, task_id=task.id).unwrap()
    assert restarted.timer_duration_seconds == 1500


def test_timer_operations_leave_other_fields_alone(db, alice):
    task = make_task(db, alice, title="Deep work", priority="high", tags=["focus"])
    task_service.update_task(db, current_user=alice, task_id=task.id, changes={"status": "in_progress"}).unwrap()

    after = timer_service.start_task_timer(db, current_user=alice, task_id=task.id, duration_seconds=60).unwrap()
    assert after.title == "Deep work"
    assert after.status == TaskStatus.in_progress
    assert after.priority == "high"
    assert after.tags == ["focus"]
    assert after.display_order == 0


def test_resume_with_explicit_start(db, alice):
    task = make_task(db, alice)
    resumed_from = datetime(2024, 1, 10, 12, 0, tzinfo=timezone(timedelta(hours=2)))
    resumed = timer_service.start_task_timer(
        db, current_user=alice, task_id=task.id, duration_seconds=600, started_at=resumed_from
    ).unwrap()
    assert resumed.timer_started_at == datetime(2024, 1, 10, 10, 0)


def test_timer_duration_bounds(db, alice):
    task = make_task(db, alice)
    short = timer_service.start_task_timer(db, current_user=alice, task_id=task.id, duration_seconds=10)
    assert isinstance(short.error, ValidationError)
    long = timer_service.start_task_timer(db, current_user=alice, task_id=task.id, duration_seconds=90000)
    assert isinstance(long.error, ValidationError)


def test_timers_are_owner_scoped(db, alice, bob):
    task = make_task(db, alice)
    result = timer_service.start_task_timer(db, current_user=bob, task_id=task.id, duration_seconds=60)
    assert isinstance(result.error, NotFound)


def test_active_timers(db, alice, bob):
    a = make_task(db, alice, title="a")
    b = make_task(db, alice, title="b")
    make_task(db, alice, title="idle")
    other = make_task(db, bob, title="bob")
    timer_service.start_task_timer(db, current_user=alice, task_id=a.id, duration_seconds=60).unwrap()
    timer_service.start_task_timer(db, current_user=alice, task_id=b.id, duration_seconds=60).unwrap()
    timer_service.complete_task_timer(db, current_user=alice, task_id=b.id).unwrap()
    timer_service.start_task_timer(db, current_user=bob, task_id=other.id, duration_seconds=60).unwrap()

    active = timer_service.get_active_timers(db, current_user=alice).unwrap()
    assert [t.title for t in active] == ["a"]


def test_alert_job_records_new_expiries_once(db, alice):
    stale = make_task(db, alice, title="stale")
    fresh = make_task(db, alice, title="fresh")
    now = now_utc()
    timer_service.start_task_timer(
        db, current_user=alice, task_id=stale.id, duration_seconds=60, started_at=now - timedelta(hours=1)
    ).unwrap()
    timer_service.start_task_timer(
        db, current_user=alice, task_id=fresh.id, duration_seconds=120, started_at=now - timedelta(seconds=30)
    ).unwrap()

    tracker = TimerAlertTracker()
    assert run_timer_alert_check(db, tracker, now=now) == []

    alerts = run_timer_alert_check(db, tracker, now=now + timedelta(minutes=5))
    assert [a.task_id for a in alerts] == [fresh.id]
    assert alerts[0].kind == "timer_expired"
    assert run_timer_alert_check(db, tracker, now=now + timedelta(minutes=6)) == []

    listed = timer_service.list_task_alerts(db, current_user=alice).unwrap()
    assert [a.task_id for a in listed] == [fresh.id]

    assert timer_service.clear_task_alerts(db, current_user=alice).unwrap() == 1
    assert timer_service.list_task_alerts(db, current_user=alice).unwrap() == []
    assert len(timer_service.list_task_alerts(db, current_user=alice, include_cleared=True).unwrap()) == 1
    assert db.query(TaskAlert).count() == 1
