from __future__ import annotations

import enum
from datetime import date, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base
from .utils.time_utils import now_utc


class TaskStatus(str, enum.Enum):
    todo = "todo"
    in_progress = "in_progress"
    done = "done"
    archived = "archived"


class TaskPriority(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"
    # Not accepted on input; kept so imported/legacy rows still sort first.
    urgent = "urgent"


class RepeatFrequency(str, enum.Enum):
    daily = "daily"
    weekly = "weekly"
    biweekly = "biweekly"
    monthly = "monthly"
    yearly = "yearly"
    custom = "custom"


class BoardType(str, enum.Enum):
    kanban = "kanban"
    list = "list"
    job_tracker = "job_tracker"


class TemplateType(str, enum.Enum):
    kanban = "kanban"
    markdown = "markdown"
    job_tracker = "job_tracker"
    recipe = "recipe"
    custom = "custom"


class MemberRole(str, enum.Enum):
    viewer = "viewer"
    editor = "editor"


class User(Base):
    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("username", name="uq_users_username"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(64), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc, nullable=False)


class Connection(Base):
    """An accepted friendship between two users.

    One row connects both users; lookups check both directions.
    """

    __tablename__ = "connections"
    __table_args__ = (UniqueConstraint("user_id", "friend_id", name="uq_connections_pair"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True)
    friend_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc, nullable=False)


class Board(Base):
    __tablename__ = "task_boards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    icon: Mapped[str | None] = mapped_column(String(100), nullable=True)
    icon_color: Mapped[str | None] = mapped_column(String(50), nullable=True)
    is_public: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    board_type: Mapped[str] = mapped_column(String(32), default=BoardType.kanban.value, nullable=False)
    template_type: Mapped[str] = mapped_column(String(32), default=TemplateType.kanban.value, nullable=False)

    # Custom item field schema for template boards.
    field_config: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    # Nulls sort last.
    display_order: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc, onupdate=now_utc, nullable=False)

    sections: Mapped[list["BoardSection"]] = relationship(
        "BoardSection",
        back_populates="board",
        order_by="BoardSection.display_order",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class BoardSection(Base):
    __tablename__ = "task_board_sections"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    board_id: Mapped[int] = mapped_column(Integer, ForeignKey("task_boards.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    display_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc, nullable=False)

    board: Mapped[Board] = relationship("Board", back_populates="sections")


class Task(Base):
    __tablename__ = "tasks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True)

    # NULL board = inbox task.
    board_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("task_boards.id", ondelete="CASCADE"), nullable=True, index=True
    )
    section_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("task_board_sections.id", ondelete="SET NULL"), nullable=True, index=True
    )
    parent_task_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True, index=True
    )

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    icon: Mapped[str | None] = mapped_column(String(100), nullable=True)
    icon_color: Mapped[str | None] = mapped_column(String(50), nullable=True)

    status: Mapped[TaskStatus] = mapped_column(Enum(TaskStatus), default=TaskStatus.todo, nullable=False, index=True)
    priority: Mapped[str | None] = mapped_column(String(16), nullable=True)
    tags: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)

    due_date: Mapped[date | None] = mapped_column(Date, nullable=True, index=True)

    # Template-specific payload (job application, recipe, ...).
    item_data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    # Scoped per (board_id, section_id). Nulls sort last.
    display_order: Mapped[int | None] = mapped_column(Integer, nullable=True)

    is_repeatable: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    repeat_frequency: Mapped[str | None] = mapped_column(String(16), nullable=True)
    repeat_interval: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    repeat_custom_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    last_completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Written only by the timer operations.
    timer_duration_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    timer_started_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)
    timer_completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    archived_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc, onupdate=now_utc, nullable=False)


class BoardMember(Base):
    __tablename__ = "task_board_members"
    __table_args__ = (UniqueConstraint("board_id", "user_id", name="uq_task_board_members_board_user"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    board_id: Mapped[int] = mapped_column(Integer, ForeignKey("task_boards.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True)
    role: Mapped[MemberRole] = mapped_column(Enum(MemberRole), nullable=False)
    invited_by: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc, onupdate=now_utc, nullable=False)


class SingletonBoard(Base):
    """The one board a user has for a given singleton template type.

    The composite primary key makes concurrent first-use provisioning
    single-winner: the losing insert fails with an IntegrityError.
    """

    __tablename__ = "singleton_boards"
    __table_args__ = (UniqueConstraint("board_id", name="uq_singleton_boards_board"),)

    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    template_type: Mapped[str] = mapped_column(String(32), primary_key=True)
    board_id: Mapped[int] = mapped_column(Integer, ForeignKey("task_boards.id", ondelete="CASCADE"), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc, nullable=False)


class TaskAlert(Base):
    """A user-facing alert, currently only raised when a task timer expires."""

    __tablename__ = "task_alerts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True)
    task_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=True, index=True
    )
    kind: Mapped[str] = mapped_column(String(32), nullable=False)
    message: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc, nullable=False, index=True)
    cleared_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
