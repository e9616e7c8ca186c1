from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import FastAPI

from .config import get_settings
from .db import init_db, new_session
from .logging_setup import purge_old_logs, setup_logging
from .routers import api_auth, api_boards, api_connections, api_tasks
from .timer_alerts import TimerAlertTracker, run_timer_alert_check
from .version import APP_VERSION


settings = get_settings()

setup_logging(level=settings.logging.level, log_dir=settings.logging.dir or None)
logger = logging.getLogger("taskdeck")


app = FastAPI(title=settings.app.name, version=APP_VERSION)

app.include_router(api_auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(api_boards.router, prefix="/api/boards", tags=["boards"])
app.include_router(api_tasks.router, prefix="/api/tasks", tags=["tasks"])
app.include_router(api_connections.router, prefix="/api/connections", tags=["connections"])


scheduler: BackgroundScheduler | None = None
timer_tracker = TimerAlertTracker()


def _timer_alerts_job() -> None:
    db = new_session()
    try:
        run_timer_alert_check(db, timer_tracker)
    except Exception:
        logger.exception("Error while checking task timers")
    finally:
        db.close()


def _log_retention_job() -> None:
    log_dir = settings.logging.dir
    if not log_dir:
        return
    try:
        purged = purge_old_logs(retention_days=int(settings.logging.retention_days), log_dir=log_dir)
        if purged:
            logger.info("Purged %s old log files", purged)
    except Exception:
        logger.exception("Error while purging old log files")


def _configure_jobs(sched: BackgroundScheduler) -> None:
    sched.add_job(
        _timer_alerts_job,
        "interval",
        seconds=max(int(settings.timers.poll_seconds), 1),
        id="timer_alerts",
        replace_existing=True,
    )

    if settings.logging.dir and int(settings.logging.retention_days) > 0:
        # Best-effort purge at startup.
        _log_retention_job()
        sched.add_job(
            _log_retention_job,
            "cron",
            hour=0,
            minute=15,
            id="log_retention",
            replace_existing=True,
            timezone=settings.app.timezone,
        )


@app.on_event("startup")
def on_startup() -> None:
    global scheduler

    init_db()
    logger.info("%s %s starting", settings.app.name, APP_VERSION)

    scheduler = BackgroundScheduler(timezone=settings.app.timezone)
    _configure_jobs(scheduler)
    scheduler.start()


@app.on_event("shutdown")
def on_shutdown() -> None:
    if scheduler is not None and scheduler.running:
        scheduler.shutdown(wait=False)


@app.get("/healthz")
def healthz():
    return {"status": "ok", "version": APP_VERSION}
