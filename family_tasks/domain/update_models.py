"""Update models for partial edits.

Only fields explicitly set by the caller are applied; use
`model_dump(exclude_unset=True)` to get the patch.
"""

from datetime import date

from pydantic import Field

from family_tasks.domain.base import CamelModel
from family_tasks.domain.periodic_task import PeriodicType
from family_tasks.domain.task import TaskStatus


class TodoTaskUpdate(CamelModel):
    """Partial update for a todo task."""

    title: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    executor_ids: list[str] | None = None
    description: str | None = None
    detail: str | None = None
    status: TaskStatus | None = None


class PeriodicTaskUpdate(CamelModel):
    """Partial update for a periodic task.

    Generation state (currentRepeatCount, lastGeneratedDate) is not editable here.
    """

    title: str | None = None
    periodic_type: PeriodicType | None = None
    week_days: list[int] | None = None
    month_days: list[int] | None = None
    task_duration: int | None = Field(default=None, ge=1)
    executor_ids: list[str] | None = None
    description: str | None = None
    detail: str | None = None
    max_repeat_count: int | None = Field(default=None, ge=0)
    start_date: date | None = None
    end_date: date | None = None
    is_active: bool | None = None


class StatusUpdate(CamelModel):
    """Body for whole-task and per-executor status changes."""

    status: TaskStatus


class ToggleUpdate(CamelModel):
    """Body for activating or deactivating a periodic task."""

    is_active: bool


class DateRangeRequest(CamelModel):
    """Body for backfilling a range of dates."""

    start_date: date
    end_date: date


class ImagePathBody(CamelModel):
    """Body naming an image file relative to the media root."""

    image_path: str = Field(..., min_length=1)


class AudioPathBody(CamelModel):
    """Body naming a recording relative to the media root."""

    audio_path: str = Field(..., min_length=1)
