"""Domain models and DTOs."""

from family_tasks.domain.create_models import PeriodicTaskCreate, TodoTaskCreate
from family_tasks.domain.periodic_task import (
    DailyRecurrence,
    MonthlyRecurrence,
    PeriodicTask,
    PeriodicType,
    RuleState,
    WeeklyRecurrence,
)
from family_tasks.domain.task import ExecutorStatus, TaskStatus, TodoTask
from family_tasks.domain.update_models import PeriodicTaskUpdate, TodoTaskUpdate


__all__ = [
    "DailyRecurrence",
    "ExecutorStatus",
    "MonthlyRecurrence",
    "PeriodicTask",
    "PeriodicTaskCreate",
    "PeriodicTaskUpdate",
    "PeriodicType",
    "RuleState",
    "TaskStatus",
    "TodoTask",
    "TodoTaskCreate",
    "TodoTaskUpdate",
    "WeeklyRecurrence",
]
