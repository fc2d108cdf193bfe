"""Recurrence engine: turns periodic task rules into dated todo tasks.

Generation for a (rule, date) pair happens at most once. A rule only fires for
dates strictly after its `lastGeneratedDate`, and generation state is advanced
in the same locked section that creates the instance, so repeated or
concurrent triggers for the same day create nothing new.
If the rule state cannot be saved, the new instance is deleted again before
the error propagates.
"""

import logging
from datetime import date

from family_tasks.core import recurrence_parser
from family_tasks.core.config import constants, settings
from family_tasks.core.date_utils import add_days, iter_days, today_local
from family_tasks.core.errors import ValidationError
from family_tasks.core.logging import span
from family_tasks.domain.create_models import TodoTaskCreate
from family_tasks.domain.periodic_task import PeriodicTask
from family_tasks.domain.task import TaskStatus, TodoTask
from family_tasks.models.service_models import PeriodicTaskStats
from family_tasks.services.periodic_task_service import PeriodicTaskService
from family_tasks.services.task_store import TaskStore


logger = logging.getLogger(__name__)


def should_fire(rule: PeriodicTask, day: date) -> bool:
    """Return True if `rule` should generate an instance for `day`.

    Checks, in order: active flag, firing window, repeat limit, the
    already-generated watermark and finally the schedule itself.
    """
    if not rule.is_active:
        return False
    if day < rule.start_date:
        return False
    if rule.end_date is not None and day > rule.end_date:
        return False
    if rule.is_exhausted:
        return False
    if rule.last_generated_date is not None and day <= rule.last_generated_date:
        return False
    return recurrence_parser.matches(rule.recurrence, day)


class RecurrenceEngine:
    """Generate task instances from periodic task rules."""

    def __init__(self, rules: PeriodicTaskService, store: TaskStore, *, timezone: str | None = None) -> None:
        self._rules = rules
        self._store = store
        self._timezone = timezone or settings.timezone

    @property
    def timezone(self) -> str:
        """IANA timezone that decides what "today" is."""
        return self._timezone

    async def generate_for_date(self, rule_id: str, day: date) -> bool:
        """Create the instance of one rule for one day, if it should fire.

        Returns:
            True if a task was created
        """
        with span("recurrence_engine.generate_for_date"):
            async with self._rules.locks.hold(rule_id):
                rule = await self._rules.get_by_id(rule_id)
                if rule is None or not should_fire(rule, day):
                    return False

                task = await self._store.create_from(
                    TodoTaskCreate(
                        title=rule.title,
                        start_date=day,
                        end_date=add_days(day, rule.task_duration - 1),
                        executor_ids=rule.executor_ids,
                        description=rule.description,
                        detail=rule.detail,
                        periodic_task_id=rule.id,
                    )
                )
                try:
                    advanced = await self._rules.record_generation(rule, day)
                except Exception:
                    logger.exception(
                        "Failed to record generation, removing generated task",
                        extra={"rule_id": rule.id, "task_id": task.id, "for_date": day.isoformat()},
                    )
                    await self._store.delete(task.id)
                    raise

                logger.info(
                    "Generated task from periodic task",
                    extra={
                        "rule_id": rule.id,
                        "task_id": task.id,
                        "for_date": day.isoformat(),
                        "repeat_count": advanced.current_repeat_count,
                    },
                )
                return True

    async def generate_all_for_date(self, day: date) -> int:
        """Run every active rule for `day`. Returns the number of tasks created."""
        generated = 0
        for rule in await self._rules.list_all():
            if rule.is_active and await self.generate_for_date(rule.id, day):
                generated += 1
        return generated

    async def generate_for_date_range(self, start: date, end: date) -> int:
        """Backfill every day from start to end, inclusive, in ascending order.

        Raises:
            ValidationError: If start is after end or the range is too long
        """
        if start > end:
            msg = f"startDate {start} must not be after endDate {end}"
            raise ValidationError(msg)
        days = (end - start).days + 1
        if days > constants.MAX_BACKFILL_DAYS:
            msg = f"Date range of {days} days exceeds the limit of {constants.MAX_BACKFILL_DAYS}"
            raise ValidationError(msg)

        with span("recurrence_engine.generate_for_date_range"):
            total = 0
            for day in iter_days(start, end):
                total += await self.generate_all_for_date(day)
            logger.info(
                "Generated tasks for date range",
                extra={"start_date": start.isoformat(), "end_date": end.isoformat(), "generated": total},
            )
            return total

    async def generate_today(self) -> int:
        """Catch up today's instances, with "today" taken in the configured timezone."""
        today = today_local(self._timezone)
        generated = await self.generate_all_for_date(today)
        logger.info("Generated today's tasks", extra={"for_date": today.isoformat(), "generated": generated})
        return generated

    async def generated_tasks(self, rule_id: str) -> list[TodoTask]:
        return await self._store.list_by_periodic_task(rule_id)

    async def stats(self, rule_id: str) -> PeriodicTaskStats:
        tasks = await self.generated_tasks(rule_id)
        return PeriodicTaskStats(
            total_generated=len(tasks),
            completed=sum(1 for t in tasks if t.status == TaskStatus.COMPLETED),
            pending=sum(1 for t in tasks if t.status == TaskStatus.PENDING),
        )


def next_occurrences(rule: PeriodicTask, after: date, limit: int = 5) -> list[date]:
    """Preview the next dates `rule` would fire on, strictly after `after`.

    Has no side effects. Respects the window, the generation watermark and the
    remaining repeat budget; an inactive rule has no upcoming dates.
    """
    limit = min(limit, constants.MAX_PREVIEW_OCCURRENCES)
    if limit <= 0 or not rule.is_active or rule.is_exhausted:
        return []
    if rule.is_bounded:
        limit = min(limit, (rule.max_repeat_count or 0) - rule.current_repeat_count)

    floor = max(after, add_days(rule.start_date, -1))
    if rule.last_generated_date is not None:
        floor = max(floor, rule.last_generated_date)

    dates: list[date] = []
    for day in recurrence_parser.iter_scheduled_dates(rule.recurrence, floor):
        if rule.end_date is not None and day > rule.end_date:
            break
        dates.append(day)
        if len(dates) >= limit:
            break
    return dates
