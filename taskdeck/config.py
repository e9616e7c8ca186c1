from __future__ import annotations

import os
import shutil
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict

import yaml
from pydantic import BaseModel, Field


DEFAULT_SETTINGS_PATH = os.environ.get("TASKDECK_SETTINGS", "/data/settings.yml")


class AppSettings(BaseModel):
    name: str = "Taskdeck"
    timezone: str = "UTC"
    host: str = "0.0.0.0"  # nosec B104
    port: int = 8890


class SecuritySettings(BaseModel):
    jwt_secret: str = "CHANGE_ME_JWT_SECRET"
    token_minutes: int = 60 * 24


class DatabaseSettings(BaseModel):
    path: str = "/data/taskdeck.db"


class LoggingSettings(BaseModel):
    level: str = "INFO"
    # Empty disables the daily file handler (stdout only).
    dir: str = "/data/logs"
    retention_days: int = 14


class TimerSettings(BaseModel):
    # How often running timers are re-checked for expiry.
    poll_seconds: int = 30


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    timers: TimerSettings = Field(default_factory=TimerSettings)


def _ensure_settings_file(path: str) -> None:
    p = Path(path)
    if p.exists():
        return

    p.parent.mkdir(parents=True, exist_ok=True)

    sample = Path(__file__).resolve().parent.parent / "settings.sample.yml"
    if sample.exists():
        shutil.copy(sample, p)
    else:
        p.write_text(
            "app:\n  name: 'Taskdeck'\n  timezone: 'UTC'\n  host: '0.0.0.0'\n  port: 8890\n"
            "security:\n  jwt_secret: 'CHANGE_ME_JWT_SECRET'\n  token_minutes: 1440\n"
            "database:\n  path: '/data/taskdeck.db'\n"
            "logging:\n  level: 'INFO'\n  dir: '/data/logs'\n  retention_days: 14\n"
            "timers:\n  poll_seconds: 30\n"
        )


def _load_yaml(path: str) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError("settings.yml must contain a YAML mapping at the root")
    return data


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    settings_path = os.environ.get("TASKDECK_SETTINGS", DEFAULT_SETTINGS_PATH)
    _ensure_settings_file(settings_path)
    raw = _load_yaml(settings_path)
    s = Settings.model_validate(raw)

    jwt_secret = os.environ.get("TASKDECK_JWT_SECRET")
    if jwt_secret:
        s.security.jwt_secret = jwt_secret

    db_env = os.environ.get("TASKDECK_DATABASE")
    if db_env:
        s.database.path = db_env.strip()

    port_env = os.environ.get("PORT") or os.environ.get("TASKDECK_PORT")
    if port_env:
        try:
            s.app.port = int(port_env)
        except ValueError:
            pass

    return s
