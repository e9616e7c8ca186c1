import os
import tempfile
from pathlib import Path

import pytest

SETTINGS_TEMPLATE = """
app:
  name: "Taskdeck"
  timezone: "UTC"
security:
  jwt_secret: "test-jwt-secret"
  token_minutes: 60
database:
  path: "{db}"
logging:
  level: "INFO"
  dir: ""
  retention_days: 14
timers:
  poll_seconds: 30
"""


def write_settings(directory: Path) -> Path:
    path = directory / "settings.yml"
    path.write_text(SETTINGS_TEMPLATE.format(db=str(directory / "taskdeck.db")).lstrip())
    return path


# Modules such as taskdeck.main read settings at import time, before any
# fixture runs.
os.environ["TASKDECK_SETTINGS"] = str(write_settings(Path(tempfile.mkdtemp(prefix="taskdeck-tests-"))))

from taskdeck.auth import create_user  # noqa: E402
from taskdeck.config import get_settings  # noqa: E402
from taskdeck.db import SessionLocal, init_db, make_engine  # noqa: E402


@pytest.fixture
def settings_tmp(tmp_path, monkeypatch):
    """Isolate settings per test."""
    path = write_settings(tmp_path)
    monkeypatch.setenv("TASKDECK_SETTINGS", str(path))
    get_settings.cache_clear()
    yield path
    get_settings.cache_clear()


@pytest.fixture
def engine(settings_tmp, tmp_path):
    eng = make_engine(str(tmp_path / "test.db"))
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def db(engine):
    session = SessionLocal(bind=engine)
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def alice(db):
    return create_user(db, username="alice", password="password123", email="alice@example.com")


@pytest.fixture
def bob(db):
    return create_user(db, username="bob", password="password123")
