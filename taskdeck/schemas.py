from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

from .models import BoardType, MemberRole, RepeatFrequency, TaskStatus, TemplateType
from .utils.task_dates import parse_date_like


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserCreate(BaseModel):
    username: str = Field(..., min_length=1, max_length=64)
    password: str = Field(..., min_length=8, max_length=256)
    email: Optional[str] = Field(default=None, max_length=255)


class UserOut(BaseModel):
    id: int
    username: str
    email: Optional[str] = None

    class Config:
        from_attributes = True


class ConnectionCreate(BaseModel):
    friend_username: str = Field(..., min_length=1, max_length=64)


# ---- Boards ------------------------------------------------------------------------


class BoardCreate(BaseModel):
    # Older clients send `title`.
    name: str = Field(..., min_length=1, max_length=200, validation_alias=AliasChoices("name", "title"))
    description: Optional[str] = Field(default=None, max_length=1000)
    icon: Optional[str] = Field(default=None, max_length=100)
    icon_color: Optional[str] = Field(default=None, max_length=50)
    is_public: bool = False
    board_type: BoardType = BoardType.kanban
    template_type: Optional[TemplateType] = None
    field_config: Optional[Dict[str, Any]] = None


class BoardUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    icon: Optional[str] = Field(default=None, max_length=100)
    icon_color: Optional[str] = Field(default=None, max_length=50)
    is_public: Optional[bool] = None
    field_config: Optional[Dict[str, Any]] = None

    class Config:
        extra = "forbid"


class BoardOut(BaseModel):
    id: int
    user_id: int
    name: str
    description: Optional[str]
    icon: Optional[str]
    icon_color: Optional[str]
    is_public: bool
    board_type: str
    template_type: str
    field_config: Optional[Dict[str, Any]]
    display_order: Optional[int]
    created_at: datetime

    class Config:
        from_attributes = True


class BoardWithStatsOut(BoardOut):
    task_count: int = 0
    done_count: int = 0


class ReorderRequest(BaseModel):
    ids: List[int] = Field(..., min_length=1, max_length=1000)


# ---- Sections ----------------------------------------------------------------------


class SectionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200, validation_alias=AliasChoices("name", "title"))
    display_order: Optional[int] = Field(default=None, ge=0)


class SectionUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)


class SectionOut(BaseModel):
    id: int
    board_id: int
    name: str
    display_order: int

    class Config:
        from_attributes = True


# ---- Tasks -------------------------------------------------------------------------


def _coerce_due_date(value: Any) -> Any:
    # Accept calendar dates as well as full ISO timestamps; keep only the date.
    if isinstance(value, (datetime, str)):
        return parse_date_like(value)
    return value


def _clean_tags(tags: Optional[List[str]]) -> Optional[List[str]]:
    if tags is None:
        return tags
    cleaned: list[str] = []
    for tag in tags:
        t = str(tag).strip()
        if not t:
            raise ValueError("Tags cannot be empty")
        if len(t) > 50:
            raise ValueError("Tags must be 50 characters or less")
        cleaned.append(t)
    return cleaned


class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = Field(default=None, max_length=5000)
    icon: Optional[str] = Field(default=None, max_length=100)
    icon_color: Optional[str] = Field(default=None, max_length=50)
    status: TaskStatus = TaskStatus.todo
    priority: Optional[Literal["low", "medium", "high"]] = None
    tags: Optional[List[str]] = Field(default=None, max_length=20)
    due_date: Optional[date] = None

    board_id: Optional[int] = None
    section_id: Optional[int] = None
    parent_task_id: Optional[int] = None

    item_data: Optional[Dict[str, Any]] = None

    is_repeatable: bool = False
    repeat_frequency: Optional[RepeatFrequency] = None
    repeat_interval: int = Field(default=1, ge=1, le=365)
    repeat_custom_days: Optional[int] = Field(default=None, ge=1, le=3650)

    @field_validator("due_date", mode="before")
    @classmethod
    def check_due_date(cls, v: Any) -> Any:
        return _coerce_due_date(v)

    @field_validator("tags")
    @classmethod
    def check_tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _clean_tags(v)


class TaskUpdate(BaseModel):
    """General task update. Timer columns are deliberately absent."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    description: Optional[str] = Field(default=None, max_length=5000)
    icon: Optional[str] = Field(default=None, max_length=100)
    icon_color: Optional[str] = Field(default=None, max_length=50)
    status: Optional[TaskStatus] = None
    priority: Optional[Literal["low", "medium", "high"]] = None
    tags: Optional[List[str]] = Field(default=None, max_length=20)
    due_date: Optional[date] = None
    section_id: Optional[int] = None
    item_data: Optional[Dict[str, Any]] = None

    is_repeatable: Optional[bool] = None
    repeat_frequency: Optional[RepeatFrequency] = None
    repeat_interval: Optional[int] = Field(default=None, ge=1, le=365)
    repeat_custom_days: Optional[int] = Field(default=None, ge=1, le=3650)

    @field_validator("due_date", mode="before")
    @classmethod
    def check_due_date(cls, v: Any) -> Any:
        return _coerce_due_date(v)

    @field_validator("tags")
    @classmethod
    def check_tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _clean_tags(v)

    class Config:
        extra = "forbid"


class TaskMove(BaseModel):
    section_id: Optional[int] = None
    display_order: int = Field(..., ge=0)


class TaskFilters(BaseModel):
    status: Optional[TaskStatus] = None
    priority: Optional[Literal["low", "medium", "high", "urgent"]] = None
    section_id: Optional[int] = None
    search: Optional[str] = Field(default=None, max_length=200)
    tags: Optional[List[str]] = None
    due_before: Optional[date] = None
    due_after: Optional[date] = None
    # Only inbox tasks (no board); ignored when a board id is given.
    unassigned: bool = False


class TaskOut(BaseModel):
    id: int
    user_id: int
    board_id: Optional[int]
    section_id: Optional[int]
    parent_task_id: Optional[int]
    title: str
    description: Optional[str]
    icon: Optional[str]
    icon_color: Optional[str]
    status: TaskStatus
    priority: Optional[str]
    tags: Optional[List[str]]
    due_date: Optional[date]
    item_data: Optional[Dict[str, Any]]
    display_order: Optional[int]

    is_repeatable: bool
    repeat_frequency: Optional[str]
    repeat_interval: int
    repeat_custom_days: Optional[int]
    last_completed_at: Optional[datetime]

    timer_duration_seconds: Optional[int]
    timer_started_at: Optional[datetime]
    timer_completed_at: Optional[datetime]

    completed_at: Optional[datetime]
    archived_at: Optional[datetime]
    created_at: datetime

    class Config:
        from_attributes = True


class TaskGroupsOut(BaseModel):
    groups: Dict[str, List[TaskOut]]


# ---- Timers ------------------------------------------------------------------------


class TimerStart(BaseModel):
    # 1 minute to 24 hours.
    duration_seconds: Optional[int] = Field(default=None, ge=60, le=24 * 3600)
    # Set when resuming a paused timer.
    started_at: Optional[datetime] = None


class TaskAlertOut(BaseModel):
    id: int
    task_id: Optional[int]
    kind: str
    message: str
    created_at: datetime
    cleared_at: Optional[datetime]

    class Config:
        from_attributes = True


# ---- Sharing -----------------------------------------------------------------------


class ShareRequest(BaseModel):
    user_ids: List[int] = Field(..., min_length=1, max_length=50)
    role: MemberRole = MemberRole.viewer


class MemberRoleUpdate(BaseModel):
    role: MemberRole


class BoardMemberOut(BaseModel):
    id: int
    board_id: int
    user_id: int
    role: MemberRole
    invited_by: int
    created_at: datetime

    class Config:
        from_attributes = True
