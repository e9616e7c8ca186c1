from __future__ import annotations

from .models import TaskPriority, TaskStatus, TemplateType


DEFAULT_BOARD_SECTIONS: tuple[tuple[str, int], ...] = (
    ("To Do", 0),
    ("In Progress", 1),
    ("Done", 2),
)

# Template types limited to one board per user, with the name used when the
# board is provisioned on first access.
SINGLETON_BOARD_NAMES: dict[str, str] = {
    TemplateType.job_tracker.value: "Job Applications",
    TemplateType.recipe.value: "Recipes",
    TemplateType.kanban.value: "My Tasks",
}

SINGLETON_BOARD_ICONS: dict[str, tuple[str, str]] = {
    TemplateType.job_tracker.value: ("briefcase", "#3b82f6"),
    TemplateType.recipe.value: ("chef-hat", "#f59e0b"),
    TemplateType.kanban.value: ("clipboard-list", "#9333ea"),
}

STARTER_TEMPLATE_TYPES: tuple[str, ...] = (
    TemplateType.job_tracker.value,
    TemplateType.recipe.value,
)

# Recipe boards are personal collections and cannot be shared.
UNSHAREABLE_TEMPLATE_TYPES: frozenset[str] = frozenset({TemplateType.recipe.value})

DEFAULT_BOARD_COLOR = "#9333ea"

INBOX_KEY = "inbox"

STATUS_CONFIG: dict[str, dict[str, str]] = {
    TaskStatus.todo.value: {"label": "To Do", "color": "gray"},
    TaskStatus.in_progress.value: {"label": "In Progress", "color": "blue"},
    TaskStatus.done.value: {"label": "Done", "color": "green"},
    TaskStatus.archived.value: {"label": "Archived", "color": "purple"},
}

PRIORITY_CONFIG: dict[str, dict[str, str]] = {
    TaskPriority.low.value: {"label": "Low", "color": "green"},
    TaskPriority.medium.value: {"label": "Medium", "color": "blue"},
    TaskPriority.high.value: {"label": "High", "color": "orange"},
    TaskPriority.urgent.value: {"label": "Urgent", "color": "red"},
}

# Lower rank sorts first; a missing priority sorts after all of these.
PRIORITY_RANK: dict[str, int] = {
    TaskPriority.urgent.value: 0,
    TaskPriority.high.value: 1,
    TaskPriority.medium.value: 2,
    TaskPriority.low.value: 3,
}
NO_PRIORITY_RANK = 4


def _key(value) -> str:
    return str(getattr(value, "value", value) or "")


def status_label(status) -> str:
    return STATUS_CONFIG.get(_key(status), STATUS_CONFIG["todo"])["label"]


def status_color(status) -> str:
    return STATUS_CONFIG.get(_key(status), STATUS_CONFIG["todo"])["color"]


def priority_label(priority) -> str:
    return PRIORITY_CONFIG.get(_key(priority), PRIORITY_CONFIG["medium"])["label"]


def priority_color(priority) -> str:
    return PRIORITY_CONFIG.get(_key(priority), PRIORITY_CONFIG["medium"])["color"]
