"""Typed `item_data` payloads for template boards.

A task's free-form `item_data` is validated against the schema for its
board's template type. Unknown templates (and inbox tasks) accept any
JSON-object payload.
"""

from __future__ import annotations

import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from .models import TemplateType


class StatusHistoryEntry(BaseModel):
    status: str = Field(..., min_length=1, max_length=100)
    date: datetime.date
    notes: Optional[str] = Field(default=None, max_length=2000)


class JobApplicationItem(BaseModel):
    company_name: str = Field(..., min_length=1, max_length=200)
    company_url: Optional[str] = Field(default=None, max_length=2048)
    position: Optional[str] = Field(default=None, max_length=200)
    location: Optional[str] = Field(default=None, max_length=200)
    location_type: Optional[Literal["Remote", "Hybrid", "In-Office"]] = None
    salary_range: Optional[str] = Field(default=None, max_length=100)
    employment_type: Optional[Literal["Full-time", "Part-time", "Contract", "Internship"]] = None
    date_applied: Optional[datetime.date] = None
    notes: Optional[str] = Field(default=None, max_length=5000)
    status_history: List[StatusHistoryEntry] = Field(default_factory=list)

    class Config:
        extra = "allow"


class RecipeItem(BaseModel):
    recipe_name: str = Field(..., min_length=1, max_length=200)
    recipe_url: Optional[str] = Field(default=None, max_length=2048)
    prep_time: Optional[str] = Field(default=None, max_length=50)
    cook_time: Optional[str] = Field(default=None, max_length=50)
    servings: Optional[int] = Field(default=None, ge=1, le=1000)
    ingredients: Optional[str] = Field(default=None, max_length=10000)
    instructions: Optional[str] = Field(default=None, max_length=20000)
    notes: Optional[str] = Field(default=None, max_length=5000)

    class Config:
        extra = "allow"


ITEM_SCHEMAS: dict[str, type[BaseModel]] = {
    TemplateType.job_tracker.value: JobApplicationItem,
    TemplateType.recipe.value: RecipeItem,
}


def validate_item_data(template_type: Optional[str], data: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Validate `data` for a template and return its JSON-ready form.

    Raises pydantic.ValidationError when the payload does not match.
    """
    if data is None:
        return None
    schema = ITEM_SCHEMAS.get(str(template_type or ""))
    if schema is None:
        return dict(data)
    return schema.model_validate(data).model_dump(mode="json", exclude_none=True)


def is_job_tracker_task(task: Any) -> bool:
    data = getattr(task, "item_data", None) or {}
    return "company_name" in data or "position" in data


def is_recipe_task(task: Any) -> bool:
    data = getattr(task, "item_data", None) or {}
    return "recipe_name" in data or "name" in data or "ingredients" in data
