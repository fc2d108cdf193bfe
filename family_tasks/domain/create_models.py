"""Pydantic models for creating task and periodic task records."""

from datetime import date

from pydantic import Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from family_tasks.core.errors import summarize_validation_error
from family_tasks.domain.base import CamelModel
from family_tasks.domain.periodic_task import (
    DailyRecurrence,
    MonthlyRecurrence,
    PeriodicType,
    WeeklyRecurrence,
    build_recurrence,
)


def _require_title(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Title cannot be empty")
    return v


def _unassigned_if_null(v: list[str] | None) -> list[str]:
    return [] if v is None else v


class TodoTaskCreate(CamelModel):
    """Payload for creating a todo task."""

    title: str = Field(..., description="Task title")
    start_date: date = Field(..., description="First day (inclusive)")
    end_date: date = Field(..., description="Last day (inclusive)")
    executor_ids: list[str] = Field(default_factory=list, description="Assignees")
    description: str | None = Field(default=None, description="One-line description")
    detail: str | None = Field(default=None, description="Markdown detail")
    periodic_task_id: str | None = Field(default=None, description="Generating periodic task")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Validate title is not blank."""
        return _require_title(v)

    @field_validator("executor_ids", mode="before")
    @classmethod
    def default_executors(cls, v: list[str] | None) -> list[str]:
        """An explicit null means unassigned."""
        return _unassigned_if_null(v)

    @model_validator(mode="after")
    def validate_span(self) -> "TodoTaskCreate":
        """Validate startDate <= endDate."""
        if self.start_date > self.end_date:
            msg = f"startDate {self.start_date} must not be after endDate {self.end_date}"
            raise ValueError(msg)
        return self


class PeriodicTaskCreate(CamelModel):
    """Payload for creating a periodic task.

    Takes the flat request shape; `recurrence()` returns the validated variant.
    """

    title: str = Field(..., description="Title copied into generated tasks")
    periodic_type: PeriodicType = Field(..., description="daily, weekly or monthly")
    week_days: list[int] | None = Field(default=None, description="Weekdays for weekly rules (0=Monday)")
    month_days: list[int] | None = Field(default=None, description="Days of month for monthly rules")
    task_duration: int = Field(default=1, ge=1, description="Days spanned by each generated task")
    executor_ids: list[str] = Field(default_factory=list, description="Assignees")
    description: str | None = Field(default=None, description="Description copied into generated tasks")
    detail: str | None = Field(default=None, description="Detail copied into generated tasks")
    max_repeat_count: int | None = Field(default=None, ge=0, description="Max instances; 0 or None is unbounded")
    start_date: date = Field(..., description="First date the rule may fire")
    end_date: date | None = Field(default=None, description="Last date the rule may fire")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Validate title is not blank."""
        return _require_title(v)

    @field_validator("executor_ids", mode="before")
    @classmethod
    def default_executors(cls, v: list[str] | None) -> list[str]:
        return _unassigned_if_null(v)

    @model_validator(mode="after")
    def validate_schedule(self) -> "PeriodicTaskCreate":
        """Validate the recurrence payload and the firing window."""
        try:
            self.recurrence()
        except PydanticValidationError as e:
            raise ValueError(summarize_validation_error(e)) from e
        if self.end_date is not None and self.end_date < self.start_date:
            msg = f"endDate {self.end_date} must not be before startDate {self.start_date}"
            raise ValueError(msg)
        return self

    def recurrence(self) -> DailyRecurrence | WeeklyRecurrence | MonthlyRecurrence:
        return build_recurrence(self.periodic_type, self.week_days, self.month_days)
