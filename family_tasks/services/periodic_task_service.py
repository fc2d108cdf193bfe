"""Periodic task repository: CRUD for recurrence rules plus the rule index."""

import asyncio
import json
import logging
from datetime import date
from typing import Any
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError

from family_tasks.core.config import constants
from family_tasks.core.date_utils import now_iso
from family_tasks.core.db_client import DocumentBackend
from family_tasks.core.errors import CorruptRecordError, ValidationError, parse_payload, summarize_validation_error
from family_tasks.core.locks import KeyedLock
from family_tasks.core.logging import span
from family_tasks.domain.create_models import PeriodicTaskCreate
from family_tasks.domain.periodic_task import MonthlyRecurrence, PeriodicTask, WeeklyRecurrence, build_recurrence
from family_tasks.domain.update_models import PeriodicTaskUpdate


logger = logging.getLogger(__name__)

_SCHEDULE_FIELDS = ("periodic_type", "week_days", "month_days")


def decode_rule(rule_id: str, raw: str) -> PeriodicTask:
    """Decode a stored periodic task document.

    Raises:
        CorruptRecordError: If the body is not valid JSON or not a valid rule
    """
    try:
        return PeriodicTask.from_document(json.loads(raw))
    except (TypeError, ValueError) as e:
        raise CorruptRecordError(constants.PERIODIC_TASKS_COLLECTION, rule_id, str(e)) from e


class PeriodicTaskService:
    """Storage of periodic task rules.

    `locks` is shared with the recurrence engine so that user edits and
    generation never interleave on the same rule.
    """

    def __init__(self, backend: DocumentBackend, *, locks: KeyedLock | None = None) -> None:
        self._backend = backend
        self.locks = locks or KeyedLock()
        self._index_lock = asyncio.Lock()

    async def _read_index(self) -> dict[str, Any]:
        raw = await self._backend.read(constants.PERIODIC_INDEX_COLLECTION, constants.PERIODIC_INDEX_DOC_ID)
        if raw is None:
            return {"tasks": [], "lastTaskId": 0}
        try:
            data = json.loads(raw)
            return {"tasks": [str(i) for i in data.get("tasks", [])], "lastTaskId": int(data.get("lastTaskId", 0))}
        except (ValueError, AttributeError, TypeError) as e:
            logger.error("Periodic task index is corrupt, rebuilding", extra={"error": str(e)})
            ids = await self._backend.list_ids(constants.PERIODIC_TASKS_COLLECTION)
            return {"tasks": ids, "lastTaskId": len(ids)}

    async def _write_index(self, index: dict[str, Any]) -> None:
        await self._backend.write(
            constants.PERIODIC_INDEX_COLLECTION,
            constants.PERIODIC_INDEX_DOC_ID,
            json.dumps(index),
        )

    async def _load(self, rule_id: str) -> PeriodicTask | None:
        raw = await self._backend.read(constants.PERIODIC_TASKS_COLLECTION, rule_id)
        if raw is None:
            return None
        try:
            return decode_rule(rule_id, raw)
        except CorruptRecordError as e:
            logger.error("Skipping corrupt periodic task record", extra={"rule_id": rule_id, "error": str(e)})
            return None

    async def save(self, rule: PeriodicTask) -> None:
        await self._backend.write(
            constants.PERIODIC_TASKS_COLLECTION,
            rule.id,
            json.dumps(rule.to_document(), ensure_ascii=False),
        )

    async def create(self, data: PeriodicTaskCreate | dict[str, Any]) -> PeriodicTask:
        """Create an active rule with no generation history.

        Raises:
            ValidationError: If the title, recurrence payload or window is invalid
        """
        payload = parse_payload(PeriodicTaskCreate, data)
        with span("periodic_task_service.create"):
            now = now_iso()
            rule = PeriodicTask(
                id=f"{constants.PERIODIC_TASK_ID_PREFIX}{uuid4().hex}",
                title=payload.title,
                recurrence=payload.recurrence(),
                task_duration=payload.task_duration,
                executor_ids=list(dict.fromkeys(payload.executor_ids)),
                description=payload.description,
                detail=payload.detail,
                max_repeat_count=payload.max_repeat_count,
                current_repeat_count=0,
                start_date=payload.start_date,
                end_date=payload.end_date,
                is_active=True,
                created_at=now,
                updated_at=now,
            )
            await self.save(rule)

            async with self._index_lock:
                index = await self._read_index()
                index["tasks"].append(rule.id)
                index["lastTaskId"] += 1
                await self._write_index(index)

            logger.info(
                "Created periodic task",
                extra={"rule_id": rule.id, "title": rule.title, "periodic_type": rule.periodic_type},
            )
            return rule

    async def get_by_id(self, rule_id: str) -> PeriodicTask | None:
        return await self._load(rule_id)

    async def list_all(self) -> list[PeriodicTask]:
        """All readable rules, newest first."""
        index = await self._read_index()
        rules = []
        for rule_id in index["tasks"]:
            rule = await self._load(rule_id)
            if rule is None:
                logger.warning("Periodic index references a missing rule", extra={"rule_id": rule_id})
                continue
            rules.append(rule)
        rules.sort(key=lambda r: r.created_at, reverse=True)
        return rules

    async def update(self, rule_id: str, changes: PeriodicTaskUpdate | dict[str, Any]) -> PeriodicTask | None:
        """Apply a partial edit to a rule.

        Changing the type or its day lists rebuilds the recurrence from the
        merged flat fields. Generation state is preserved.

        Raises:
            ValidationError: If the merged rule is invalid; nothing is written
        """
        patch = parse_payload(PeriodicTaskUpdate, changes).model_dump(exclude_unset=True)
        with span("periodic_task_service.update"):
            async with self.locks.hold(rule_id):
                current = await self._load(rule_id)
                if current is None:
                    return None
                updated = self._merge(current, patch)
                await self.save(updated)
                logger.info("Updated periodic task", extra={"rule_id": rule_id, "fields": sorted(patch)})
                return updated

    @staticmethod
    def _merge(current: PeriodicTask, patch: dict[str, Any]) -> PeriodicTask:
        if "title" in patch:
            title = (patch["title"] or "").strip()
            if not title:
                raise ValidationError("title: Title cannot be empty")
            patch["title"] = title

        data = current.model_dump()
        schedule = {k: patch.pop(k) for k in _SCHEDULE_FIELDS if k in patch}
        if schedule:
            week_days = sorted(current.recurrence.week_days) if isinstance(current.recurrence, WeeklyRecurrence) else None
            month_days = (
                sorted(current.recurrence.month_days) if isinstance(current.recurrence, MonthlyRecurrence) else None
            )
            try:
                data["recurrence"] = build_recurrence(
                    schedule.get("periodic_type") or current.periodic_type,
                    schedule.get("week_days", week_days),
                    schedule.get("month_days", month_days),
                )
            except PydanticValidationError as e:
                raise ValidationError(summarize_validation_error(e)) from e
            except ValueError as e:
                raise ValidationError(str(e)) from e

        data.update(patch)
        data["id"] = current.id
        data["updated_at"] = now_iso()
        try:
            return PeriodicTask.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(summarize_validation_error(e)) from e

    async def delete(self, rule_id: str) -> bool:
        """Delete a rule. Tasks it already generated are kept."""
        with span("periodic_task_service.delete"):
            async with self.locks.hold(rule_id):
                existed = await self._backend.delete(constants.PERIODIC_TASKS_COLLECTION, rule_id)
                if not existed:
                    return False
                async with self._index_lock:
                    index = await self._read_index()
                    index["tasks"] = [i for i in index["tasks"] if i != rule_id]
                    await self._write_index(index)
                logger.info("Deleted periodic task", extra={"rule_id": rule_id})
                return True

    async def set_active(self, rule_id: str, is_active: bool) -> PeriodicTask | None:
        """Activate or deactivate a rule."""
        return await self.update(rule_id, PeriodicTaskUpdate(is_active=is_active))

    async def record_generation(self, rule: PeriodicTask, generated_for: date) -> PeriodicTask:
        """Advance generation state after an instance was created for `generated_for`.

        Callers must hold `locks` for the rule.
        """
        advanced = rule.model_copy(
            update={
                "current_repeat_count": rule.current_repeat_count + 1,
                "last_generated_date": generated_for,
                "updated_at": now_iso(),
            }
        )
        await self.save(advanced)
        return advanced
