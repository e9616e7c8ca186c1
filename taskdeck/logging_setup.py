from __future__ import annotations

import logging
import os
import re
from datetime import datetime, timedelta
from pathlib import Path


LOG_PREFIX = "taskdeck"


def _safe_level(level: str | None, default: str = "INFO") -> int:
    raw = (level or default).strip().upper()
    return getattr(logging, raw, logging.INFO)


def _today() -> str:
    return datetime.now().strftime("%Y-%m-%d")


class DailyDateFileHandler(logging.FileHandler):
    """FileHandler writing to <base_dir>/taskdeck-YYYY-MM-DD.log, switching files when the local date changes."""

    def __init__(self, *, base_dir: Path, prefix: str = LOG_PREFIX, level: int = logging.INFO):
        self.base_dir = Path(base_dir)
        self.prefix = str(prefix)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self._current_date = _today()
        super().__init__(self._path_for(self._current_date), encoding="utf-8")
        self.setLevel(level)

    def _path_for(self, date_str: str) -> Path:
        return self.base_dir / f"{self.prefix}-{date_str}.log"

    def emit(self, record: logging.LogRecord) -> None:
        # Called with the handler lock held.
        today = _today()
        if today != self._current_date:
            if self.stream is not None:
                self.stream.close()
                self.stream = None
            self._current_date = today
            self.baseFilename = os.path.abspath(self._path_for(today))
        super().emit(record)


_FILE_HANDLER: DailyDateFileHandler | None = None


def setup_logging(*, level: str = "INFO", log_dir: str | Path | None = None) -> None:
    """Attach a stdout handler and, if `log_dir` is set, a daily file handler.

    Safe to call multiple times; handlers are only added once.
    """

    global _FILE_HANDLER

    lvl = _safe_level(level)
    formatter = logging.Formatter(
        fmt="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root = logging.getLogger()
    root.setLevel(lvl)

    if not any(isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler) for h in root.handlers):
        sh = logging.StreamHandler()
        sh.setLevel(lvl)
        sh.setFormatter(formatter)
        root.addHandler(sh)

    if log_dir:
        if _FILE_HANDLER is None:
            _FILE_HANDLER = DailyDateFileHandler(base_dir=Path(log_dir), level=lvl)
            root.addHandler(_FILE_HANDLER)
        _FILE_HANDLER.setLevel(lvl)
        _FILE_HANDLER.setFormatter(formatter)

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "fastapi", "apscheduler"):
        logging.getLogger(name).propagate = True


_LOGFILE_RE = re.compile(rf"^{re.escape(LOG_PREFIX)}-(\d{{4}}-\d{{2}}-\d{{2}})\.log$")


def list_log_files(*, log_dir: str | Path) -> list[Path]:
    """Return log files in newest-first order."""
    d = Path(log_dir)
    if not d.is_dir():
        return []
    files = [p for p in d.iterdir() if p.is_file() and _LOGFILE_RE.match(p.name)]
    return sorted(files, key=lambda p: p.stat().st_mtime, reverse=True)


def purge_old_logs(*, retention_days: int, log_dir: str | Path, now: datetime | None = None) -> int:
    """Delete log files whose mtime is older than `retention_days`."""
    days = int(retention_days or 0)
    if days <= 0:
        return 0

    cutoff = (now or datetime.now()) - timedelta(days=days)
    deleted = 0
    for p in list_log_files(log_dir=log_dir):
        try:
            if datetime.fromtimestamp(p.stat().st_mtime) < cutoff:
                p.unlink(missing_ok=True)
                deleted += 1
        except OSError:
            # best-effort
            continue
    return deleted
