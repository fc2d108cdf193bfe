"""Periodic task (recurrence rule) domain models.

The recurrence schedule is a tagged variant: daily, weekly on a set of
weekdays, or monthly on a set of days of the month. Stored documents keep the
flat `periodicType` / `weekDays` / `monthDays` shape; `to_document` and
`from_document` convert at that boundary.
"""

from datetime import date
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from family_tasks.core.config import constants
from family_tasks.domain.base import CamelModel


class PeriodicType(StrEnum):
    """Shape of a recurrence schedule."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class RuleState(StrEnum):
    """Reporting state of a periodic task."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    EXHAUSTED = "exhausted"


class DailyRecurrence(BaseModel):
    """Fires every day."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["daily"] = "daily"


class WeeklyRecurrence(BaseModel):
    """Fires on the listed weekdays (0=Monday ... 6=Sunday)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["weekly"] = "weekly"
    week_days: frozenset[int]

    @field_validator("week_days")
    @classmethod
    def validate_week_days(cls, v: frozenset[int]) -> frozenset[int]:
        if not v:
            raise ValueError("Weekly recurrence needs at least one weekday")
        bad = sorted(d for d in v if not constants.WEEKDAY_MIN <= d <= constants.WEEKDAY_MAX)
        if bad:
            raise ValueError(f"Weekdays must be between 0 (Monday) and 6 (Sunday), got {bad}")
        return v


class MonthlyRecurrence(BaseModel):
    """Fires on the listed days of the month (1-31)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["monthly"] = "monthly"
    month_days: frozenset[int]

    @field_validator("month_days")
    @classmethod
    def validate_month_days(cls, v: frozenset[int]) -> frozenset[int]:
        if not v:
            raise ValueError("Monthly recurrence needs at least one day of the month")
        bad = sorted(d for d in v if not constants.MONTH_DAY_MIN <= d <= constants.MONTH_DAY_MAX)
        if bad:
            raise ValueError(f"Days of the month must be between 1 and 31, got {bad}")
        return v


Recurrence = Annotated[DailyRecurrence | WeeklyRecurrence | MonthlyRecurrence, Field(discriminator="kind")]


def build_recurrence(
    periodic_type: PeriodicType | str,
    week_days: list[int] | None = None,
    month_days: list[int] | None = None,
) -> DailyRecurrence | WeeklyRecurrence | MonthlyRecurrence:
    """Build the recurrence variant from the flat request/storage fields.

    Payload fields that do not belong to the type are ignored.

    Raises:
        ValueError: If the type is unknown or its payload is missing or out of range
    """
    try:
        kind = PeriodicType(periodic_type)
    except ValueError as e:
        raise ValueError(f"Unknown periodicType: {periodic_type!r}") from e

    if kind == PeriodicType.WEEKLY:
        return WeeklyRecurrence(week_days=frozenset(week_days or []))
    if kind == PeriodicType.MONTHLY:
        return MonthlyRecurrence(month_days=frozenset(month_days or []))
    return DailyRecurrence()


class PeriodicTask(CamelModel):
    """A recurrence rule that produces TodoTask instances."""

    id: str = Field(..., description="Unique periodic task ID")
    title: str = Field(..., description="Title copied into generated tasks")
    recurrence: Recurrence = Field(..., description="Daily, weekly or monthly schedule")
    task_duration: int = Field(default=1, ge=1, description="Days spanned by each generated task")
    executor_ids: list[str] = Field(default_factory=list, description="Assignees copied into generated tasks")
    description: str | None = Field(default=None, description="Description copied into generated tasks")
    detail: str | None = Field(default=None, description="Detail copied into generated tasks")
    max_repeat_count: int | None = Field(default=None, ge=0, description="Max instances; 0 or None is unbounded")
    current_repeat_count: int = Field(default=0, ge=0, description="Instances generated so far")
    start_date: date = Field(..., description="First date the rule may fire")
    end_date: date | None = Field(default=None, description="Last date the rule may fire")
    is_active: bool = Field(default=True, description="Inactive rules never fire")
    last_generated_date: date | None = Field(default=None, description="Most recent date an instance was made for")
    created_at: str = Field(..., description="Creation timestamp (ISO format)")
    updated_at: str = Field(..., description="Last update timestamp (ISO format)")

    @model_validator(mode="after")
    def check_window(self) -> "PeriodicTask":
        if self.end_date is not None and self.end_date < self.start_date:
            msg = f"endDate {self.end_date} is before startDate {self.start_date}"
            raise ValueError(msg)
        return self

    @property
    def periodic_type(self) -> PeriodicType:
        return PeriodicType(self.recurrence.kind)

    @property
    def is_bounded(self) -> bool:
        return bool(self.max_repeat_count)

    @property
    def is_exhausted(self) -> bool:
        """True once a bounded rule has produced its maximum number of instances."""
        return self.is_bounded and self.current_repeat_count >= (self.max_repeat_count or 0)

    @property
    def state(self) -> RuleState:
        if not self.is_active:
            return RuleState.INACTIVE
        if self.is_exhausted:
            return RuleState.EXHAUSTED
        return RuleState.ACTIVE

    def to_document(self) -> dict[str, Any]:
        """Flatten the recurrence variant into periodicType / weekDays / monthDays."""
        doc = self.model_dump(mode="json", by_alias=True, exclude_none=True, exclude={"recurrence"})
        doc["periodicType"] = self.recurrence.kind
        if isinstance(self.recurrence, WeeklyRecurrence):
            doc["weekDays"] = sorted(self.recurrence.week_days)
        elif isinstance(self.recurrence, MonthlyRecurrence):
            doc["monthDays"] = sorted(self.recurrence.month_days)
        return doc

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> "PeriodicTask":
        """Rebuild a rule from its stored flat document.

        Raises:
            ValueError: If the document does not describe a valid rule
        """
        fields = dict(data)
        recurrence = build_recurrence(
            fields.pop("periodicType", PeriodicType.DAILY),
            fields.pop("weekDays", None),
            fields.pop("monthDays", None),
        )
        return cls.model_validate({**fields, "recurrence": recurrence})
