"""Goal payload definitions."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import Field, field_validator, model_validator

from ...models.goal import FrequencyType, GoalScope, GoalType, ProgressMode
from ..api import PayloadForm, coerce_date_only, coerce_timestamp


class GoalUpdateForm(PayloadForm):
    """Partial goal update; omitted keys are left untouched."""

    NON_NULLABLE = ("title", "type", "progress_mode", "step_size", "scope")

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    type: Optional[GoalType] = None
    progress_mode: Optional[ProgressMode] = None
    target_value: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    step_size: Optional[float] = Field(default=None, gt=0, allow_inf_nan=False)
    frequency_target: Optional[int] = Field(default=None, ge=1)
    frequency_type: Optional[FrequencyType] = None
    scope: Optional[GoalScope] = None
    parent_id: Optional[int] = None
    custom_data_label: Optional[str] = Field(default=None, max_length=80)
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def parse_dates(cls, value):
        return coerce_date_only(value)


class GoalCreateForm(GoalUpdateForm):
    """New goal; only the title is required."""

    title: str = Field(min_length=1, max_length=200)

    @model_validator(mode="after")
    def ensure_habit_frequency(self) -> "GoalCreateForm":
        """HABIT goals default to a weekly window when none is given."""

        if self.progress_mode is ProgressMode.HABIT and self.frequency_type is None:
            self.frequency_type = FrequencyType.WEEKLY
            self.model_fields_set.add("frequency_type")
        return self


class ProgressForm(PayloadForm):
    value: float = Field(allow_inf_nan=False)
    note: Optional[str] = Field(default=None, max_length=500)
    logged_at: Optional[datetime] = Field(default=None, alias="date")
    custom_data: Optional[str] = Field(default=None, max_length=500)

    @field_validator("logged_at", mode="before")
    @classmethod
    def parse_logged_at(cls, value):
        return coerce_timestamp(value)


class BulkTaskDraft(PayloadForm):
    title: str = Field(min_length=1, max_length=200)
    scheduled_date: Optional[date] = None
    size: int = Field(default=1, ge=1)

    @field_validator("scheduled_date", mode="before")
    @classmethod
    def parse_scheduled_date(cls, value):
        return coerce_date_only(value)


class BulkTaskForm(PayloadForm):
    """Either an explicit ``tasks`` list or a ``pattern`` expanded ``count`` times."""

    tasks: Optional[list[BulkTaskDraft]] = None
    pattern: Optional[str] = Field(default=None, max_length=200)
    count: Optional[int] = None
    scheduled_date: Optional[date] = None
    size: int = Field(default=1, ge=1)

    @field_validator("scheduled_date", mode="before")
    @classmethod
    def parse_scheduled_date(cls, value):
        return coerce_date_only(value)

    @model_validator(mode="after")
    def ensure_one_source(self) -> "BulkTaskForm":
        if (self.tasks is None) == (self.pattern is None):
            raise ValueError("Provide either a tasks list or a title pattern.")
        if self.pattern is not None and self.count is None:
            raise ValueError("A count is required with a title pattern.")
        return self


__all__ = ["BulkTaskDraft", "BulkTaskForm", "GoalCreateForm", "GoalUpdateForm", "ProgressForm"]
