"""Todo task domain models and enums."""

from datetime import date
from enum import StrEnum

from pydantic import Field, model_validator

from family_tasks.domain.base import CamelModel


class TaskStatus(StrEnum):
    """Completion status, both for the whole task and per executor."""

    PENDING = "pending"
    COMPLETED = "completed"


class ExecutorStatus(CamelModel):
    """Per-assignee completion record."""

    member_id: str = Field(..., description="Family member ID of the executor")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Executor's own status")
    completed_at: str | None = Field(default=None, description="When the executor completed (ISO format)")


class TodoTask(CamelModel):
    """A concrete, datable, assignable unit of work."""

    id: str = Field(..., description="Unique task ID")
    title: str = Field(..., description="Task title")
    start_date: date = Field(..., description="First day of the task (inclusive)")
    end_date: date = Field(..., description="Last day of the task (inclusive)")
    executor_ids: list[str] = Field(default_factory=list, description="Assignees; empty means everyone")
    description: str | None = Field(default=None, description="One-line description")
    detail: str | None = Field(default=None, description="Markdown detail")
    images: list[str] = Field(default_factory=list, description="Media paths of attached images")
    audio_path: str | None = Field(default=None, description="Media path of attached recording")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Overall status")
    executor_statuses: list[ExecutorStatus] = Field(default_factory=list, description="Per-executor status")
    periodic_task_id: str | None = Field(default=None, description="Periodic task that generated this task")
    created_at: str = Field(..., description="Creation timestamp (ISO format)")
    updated_at: str = Field(..., description="Last update timestamp (ISO format)")

    @model_validator(mode="after")
    def check_span(self) -> "TodoTask":
        """Reject inverted date spans."""
        if self.start_date > self.end_date:
            msg = f"startDate {self.start_date} is after endDate {self.end_date}"
            raise ValueError(msg)
        return self

    def covers(self, day: date) -> bool:
        """Return True if `day` falls inside the task's inclusive span."""
        return self.start_date <= day <= self.end_date

    def is_visible_to(self, member_id: str) -> bool:
        """Unassigned tasks are visible to every member."""
        return not self.executor_ids or member_id in self.executor_ids

    def executor_status_for(self, member_id: str) -> ExecutorStatus | None:
        return next((es for es in self.executor_statuses if es.member_id == member_id), None)

    def all_executors_completed(self) -> bool:
        """True iff there are executors and every one of them has completed."""
        if not self.executor_ids:
            return False
        for member_id in self.executor_ids:
            entry = self.executor_status_for(member_id)
            if entry is None or entry.status != TaskStatus.COMPLETED:
                return False
        return True
