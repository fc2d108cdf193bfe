from family_tasks.services.monthly_index import MonthlyIndex
from family_tasks.services.periodic_task_service import PeriodicTaskService
from family_tasks.services.recurrence_engine import RecurrenceEngine, next_occurrences, should_fire
from family_tasks.services.task_store import TaskStore


__all__ = [
    "MonthlyIndex",
    "PeriodicTaskService",
    "RecurrenceEngine",
    "TaskStore",
    "next_occurrences",
    "should_fire",
]
