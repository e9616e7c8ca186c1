from __future__ import annotations

from functools import lru_cache

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from .config import get_settings


class Base(DeclarativeBase):
    pass


def _sqlite_url(db_path: str) -> str:
    if db_path.startswith("sqlite:"):
        return db_path
    return f"sqlite:///{db_path}"


def make_engine(db_path: str) -> Engine:
    engine = create_engine(
        _sqlite_url(db_path),
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        # Enforce foreign key constraints for ON DELETE CASCADE / SET NULL.
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return make_engine(get_settings().database.path)


SessionLocal = sessionmaker(autocommit=False, autoflush=False)


def new_session():
    return SessionLocal(bind=get_engine())


def init_db(engine: Engine | None = None) -> None:
    # Import for side effects: registers tables on Base.metadata.
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=engine or get_engine())


def get_db():
    db = new_session()
    try:
        yield db
    finally:
        db.close()
