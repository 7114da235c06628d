"""Task payload definitions."""

from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import Field, field_validator

from ...models.task import TaskPriority
from ..api import PayloadForm, coerce_date_only


class TaskUpdateForm(PayloadForm):
    """Partial task update; omitted keys are left untouched."""

    NON_NULLABLE = ("title", "size", "is_completed")

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    size: Optional[int] = Field(default=None, ge=1)
    is_completed: Optional[bool] = None
    scheduled_date: Optional[date] = None
    scheduled_time: Optional[str] = Field(default=None, max_length=5)
    estimated_duration_minutes: Optional[int] = Field(default=None, ge=1)
    estimated_completion_date: Optional[date] = None
    category: Optional[str] = Field(default=None, max_length=64)
    priority: Optional[TaskPriority] = None

    @field_validator("scheduled_date", "estimated_completion_date", mode="before")
    @classmethod
    def parse_dates(cls, value):
        return coerce_date_only(value)

    @field_validator("priority", mode="before")
    @classmethod
    def upper_priority(cls, value):
        if isinstance(value, str):
            return value.strip().upper()
        return value


class TaskCreateForm(TaskUpdateForm):
    title: str = Field(min_length=1, max_length=200)
    goal_ids: list[int] = Field(default_factory=list)


class GoalLinkForm(PayloadForm):
    goal_id: int


__all__ = ["GoalLinkForm", "TaskCreateForm", "TaskUpdateForm"]
