"""Todo task store with a month-bucketed index for date queries."""

import asyncio
import json
import logging
import shutil
from collections.abc import Callable
from datetime import date
from pathlib import Path
from typing import Any, TypeVar
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError

from family_tasks.core.config import constants
from family_tasks.core.date_utils import month_key, month_key_for, now_iso
from family_tasks.core.db_client import DocumentBackend
from family_tasks.core.errors import CorruptRecordError, ValidationError, parse_payload, summarize_validation_error
from family_tasks.core.locks import KeyedLock
from family_tasks.core.logging import span
from family_tasks.domain.create_models import TodoTaskCreate
from family_tasks.domain.task import ExecutorStatus, TaskStatus, TodoTask
from family_tasks.domain.update_models import TodoTaskUpdate
from family_tasks.services.monthly_index import MonthlyIndex


logger = logging.getLogger(__name__)

T = TypeVar("T")


def decode_task(task_id: str, raw: str) -> TodoTask:
    """Decode a stored task document.

    Raises:
        CorruptRecordError: If the body is not valid JSON or not a valid task
    """
    try:
        return TodoTask.model_validate(json.loads(raw))
    except json.JSONDecodeError as e:
        raise CorruptRecordError(constants.TASKS_COLLECTION, task_id, f"invalid JSON: {e}") from e
    except ValueError as e:
        raise CorruptRecordError(constants.TASKS_COLLECTION, task_id, str(e)) from e


class TaskStore:
    """Durable storage and indexed retrieval of todo tasks.

    The monthly index is loaded lazily and cached. Mutations go through
    `_mutate_index`, which edits a copy under a lock, persists it and then
    swaps it in, so readers only ever see a complete index. Read-modify-write
    sequences on a single task are serialized per task id.

    Operations on unknown ids return None/False and leave the index untouched.
    """

    def __init__(self, backend: DocumentBackend, *, media_root: str | Path | None = None) -> None:
        self._backend = backend
        self._media_root = Path(media_root).resolve() if media_root else None
        self._index: MonthlyIndex | None = None
        self._index_lock = asyncio.Lock()
        self._task_locks = KeyedLock()

    # ---- index cache ----

    def invalidate_index(self) -> None:
        """Drop the cached index; the next read reloads it from the backend."""
        self._index = None

    async def reload_index(self) -> MonthlyIndex:
        """Reload the index document from the backend and publish it."""
        async with self._index_lock:
            return await self._load_index_locked()

    async def rebuild_index(self) -> MonthlyIndex:
        """Recompute the index from every stored task and persist it.

        Repairs drift left by interrupted writes or manual edits of the store.
        """
        with span("task_store.rebuild_index"):
            async with self._index_lock:
                return await self._rebuild_index_locked()

    async def get_index(self) -> MonthlyIndex:
        """Return the published index snapshot. Callers must not mutate it."""
        index = self._index
        if index is not None:
            return index
        return await self.reload_index()

    async def _load_index_locked(self) -> MonthlyIndex:
        raw = await self._backend.read(constants.TASK_INDEX_COLLECTION, constants.MONTHLY_INDEX_DOC_ID)
        if raw is None:
            self._index = MonthlyIndex()
            return self._index
        try:
            self._index = MonthlyIndex.from_document(json.loads(raw))
        except (AttributeError, TypeError, ValueError) as e:
            logger.error("Monthly index is corrupt, rebuilding from task documents", extra={"error": str(e)})
            return await self._rebuild_index_locked()
        return self._index

    async def _rebuild_index_locked(self) -> MonthlyIndex:
        previous = self._index
        index = MonthlyIndex(last_task_id=previous.last_task_id if previous else 0)
        tasks = await self.list_all()
        for task in tasks:
            index.add(task.id, task.start_date, task.end_date)
        index.last_task_id = max(index.last_task_id, len(tasks))
        await self._save_index(index)
        self._index = index
        logger.info("Rebuilt monthly index", extra={"task_count": len(tasks), "months": len(index.month_keys)})
        return index

    async def _save_index(self, index: MonthlyIndex) -> None:
        await self._backend.write(
            constants.TASK_INDEX_COLLECTION,
            constants.MONTHLY_INDEX_DOC_ID,
            json.dumps(index.to_document(), ensure_ascii=False),
        )

    async def _mutate_index(self, mutate: Callable[[MonthlyIndex], T]) -> T:
        async with self._index_lock:
            current = self._index if self._index is not None else await self._load_index_locked()
            working = current.copy()
            result = mutate(working)
            await self._save_index(working)
            self._index = working
            return result

    # ---- documents ----

    async def _load(self, task_id: str) -> TodoTask | None:
        raw = await self._backend.read(constants.TASKS_COLLECTION, task_id)
        if raw is None:
            return None
        try:
            return decode_task(task_id, raw)
        except CorruptRecordError as e:
            logger.error("Skipping corrupt task record", extra={"task_id": task_id, "error": str(e)})
            return None

    async def _save(self, task: TodoTask) -> None:
        await self._backend.write(
            constants.TASKS_COLLECTION,
            task.id,
            json.dumps(task.to_document(), ensure_ascii=False),
        )

    async def _load_indexed(self, task_ids: list[str], bucket: str) -> list[TodoTask]:
        tasks = []
        for task_id in task_ids:
            task = await self._load(task_id)
            if task is None:
                logger.warning("Index references a missing task", extra={"task_id": task_id, "month": bucket})
                continue
            tasks.append(task)
        return tasks

    # ---- CRUD ----

    async def create(
        self,
        *,
        title: str,
        start_date: date | str,
        end_date: date | str,
        executor_ids: list[str] | None = None,
        description: str | None = None,
        detail: str | None = None,
        periodic_task_id: str | None = None,
    ) -> TodoTask:
        """Create a task and index it under every month its span overlaps.

        Raises:
            ValidationError: If the title is blank or the span is inverted
        """
        payload = parse_payload(
            TodoTaskCreate,
            {
                "title": title,
                "start_date": start_date,
                "end_date": end_date,
                "executor_ids": executor_ids or [],
                "description": description,
                "detail": detail,
                "periodic_task_id": periodic_task_id,
            },
        )
        return await self.create_from(payload)

    async def create_from(self, payload: TodoTaskCreate) -> TodoTask:
        """Create a task from an already validated payload."""
        with span("task_store.create"):
            now = now_iso()
            executor_ids = list(dict.fromkeys(payload.executor_ids))
            task = TodoTask(
                id=uuid4().hex,
                title=payload.title,
                start_date=payload.start_date,
                end_date=payload.end_date,
                executor_ids=executor_ids,
                description=payload.description,
                detail=payload.detail,
                status=TaskStatus.PENDING,
                executor_statuses=[ExecutorStatus(member_id=m) for m in executor_ids],
                periodic_task_id=payload.periodic_task_id,
                created_at=now,
                updated_at=now,
            )

            await self._save(task)
            try:
                months = await self._mutate_index(lambda idx: idx.register_new(task.id, task.start_date, task.end_date))
            except Exception:
                logger.exception("Index write failed, removing new task document", extra={"task_id": task.id})
                await self._backend.delete(constants.TASKS_COLLECTION, task.id)
                raise

            logger.info(
                "Created task",
                extra={"task_id": task.id, "title": task.title, "months": months, "periodic_task_id": task.periodic_task_id},
            )
            return task

    async def get_by_id(self, task_id: str) -> TodoTask | None:
        return await self._load(task_id)

    async def list_all(self) -> list[TodoTask]:
        """Return every readable task, newest first. Corrupt records are skipped."""
        tasks = []
        for task_id in await self._backend.list_ids(constants.TASKS_COLLECTION):
            task = await self._load(task_id)
            if task is not None:
                tasks.append(task)
        tasks.sort(key=lambda t: t.created_at, reverse=True)
        return tasks

    async def update(self, task_id: str, changes: TodoTaskUpdate | dict[str, Any]) -> TodoTask | None:
        """Merge a partial update into a task.

        The index is only touched when startDate or endDate actually changed.

        Raises:
            ValidationError: If the merged task has a blank title or an inverted span
        """
        patch = parse_payload(TodoTaskUpdate, changes).model_dump(exclude_unset=True)
        if "title" in patch:
            title = (patch["title"] or "").strip()
            if not title:
                raise ValidationError("title: Title cannot be empty")
            patch["title"] = title

        with span("task_store.update"):
            async with self._task_locks.hold(task_id):
                current = await self._load(task_id)
                if current is None:
                    return None
                return await self._apply(current, patch)

    async def _apply(self, current: TodoTask, patch: dict[str, Any]) -> TodoTask:
        data = current.model_dump()
        data.update(patch)
        data["id"] = current.id
        data["updated_at"] = now_iso()
        if "executor_ids" in patch:
            # Newly assigned members start with a pending entry of their own.
            data["executor_ids"] = list(dict.fromkeys(patch["executor_ids"] or []))
            tracked = {es["member_id"] for es in data["executor_statuses"]}
            data["executor_statuses"] = [
                *data["executor_statuses"],
                *(ExecutorStatus(member_id=m).model_dump() for m in data["executor_ids"] if m not in tracked),
            ]
        try:
            updated = TodoTask.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(summarize_validation_error(e)) from e

        if updated.all_executors_completed():
            updated.status = TaskStatus.COMPLETED

        await self._save(updated)

        old_span = (current.start_date, current.end_date)
        new_span = (updated.start_date, updated.end_date)
        if old_span != new_span:
            try:
                await self._mutate_index(lambda idx: idx.move(current.id, old_span, new_span))
            except Exception:
                logger.exception("Index write failed, restoring previous task document", extra={"task_id": current.id})
                await self._save(current)
                raise
            logger.info(
                "Re-indexed task after date change",
                extra={"task_id": current.id, "old_span": [str(d) for d in old_span], "new_span": [str(d) for d in new_span]},
            )
        return updated

    async def delete(self, task_id: str) -> bool:
        """Delete a task, its index entries and its media directory."""
        with span("task_store.delete"):
            async with self._task_locks.hold(task_id):
                existed = await self._backend.delete(constants.TASKS_COLLECTION, task_id)
                if not existed:
                    return False

                months = await self._mutate_index(lambda idx: idx.remove(task_id))
                self._remove_media_dir(task_id)

                logger.info("Deleted task", extra={"task_id": task_id, "months": months})
                return True

    # ---- queries ----

    async def query_by_date(self, day: date) -> list[TodoTask]:
        """Tasks whose span contains `day`.

        The month bucket is a superset (a task may overlap the month without
        covering the day), so candidates are filtered by span.
        """
        key = month_key(day)
        index = await self.get_index()
        tasks = await self._load_indexed(index.ids_for_month(key), key)
        return [t for t in tasks if t.covers(day)]

    async def query_by_month(self, year: int, month: int) -> list[TodoTask]:
        """Tasks overlapping the given calendar month."""
        key = month_key_for(year, month)
        index = await self.get_index()
        return await self._load_indexed(index.ids_for_month(key), key)

    async def query_by_executor(self, member_id: str, day: date | None = None) -> list[TodoTask]:
        """Tasks visible to a member, optionally limited to one date.

        Unassigned tasks are visible to everyone.
        """
        tasks = await self.query_by_date(day) if day is not None else await self.list_all()
        return [t for t in tasks if t.is_visible_to(member_id)]

    async def list_by_periodic_task(self, periodic_task_id: str) -> list[TodoTask]:
        """Tasks generated by a periodic task, newest first."""
        return [t for t in await self.list_all() if t.periodic_task_id == periodic_task_id]

    # ---- status ----

    async def set_status(self, task_id: str, status: TaskStatus) -> TodoTask | None:
        """Set the whole-task status directly."""
        return await self.update(task_id, TodoTaskUpdate(status=status))

    async def set_executor_status(self, task_id: str, member_id: str, status: TaskStatus) -> TodoTask | None:
        """Upsert one executor's status and recompute the aggregate.

        The aggregate only flips automatically to completed, when every listed
        executor has completed; otherwise it keeps its prior value.
        """
        with span("task_store.set_executor_status"):
            async with self._task_locks.hold(task_id):
                current = await self._load(task_id)
                if current is None:
                    return None

                entry = ExecutorStatus(
                    member_id=member_id,
                    status=status,
                    completed_at=now_iso() if status == TaskStatus.COMPLETED else None,
                )
                statuses = [es for es in current.executor_statuses]
                position = next((i for i, es in enumerate(statuses) if es.member_id == member_id), None)
                if position is None:
                    statuses.append(entry)
                else:
                    statuses[position] = entry

                updated = await self._apply(current, {"executor_statuses": [es.model_dump() for es in statuses]})
                logger.info(
                    "Updated executor status",
                    extra={"task_id": task_id, "member_id": member_id, "status": status, "overall": updated.status},
                )
                return updated

    # ---- media ----

    def media_dir(self, task_id: str) -> Path:
        """Return (and create) the media directory for a task.

        Raises:
            ValidationError: If no media root is configured
        """
        if self._media_root is None:
            raise ValidationError("No media root configured")
        path = self._media_path(task_id)
        path.mkdir(parents=True, exist_ok=True)
        return path

    def _media_path(self, relative: str) -> Path:
        if self._media_root is None:
            raise ValidationError("No media root configured")
        path = (self._media_root / relative).resolve()
        if not path.is_relative_to(self._media_root) or path == self._media_root:
            msg = f"Media path escapes the media root: {relative}"
            raise ValidationError(msg)
        return path

    def _remove_media_dir(self, task_id: str) -> None:
        if self._media_root is None:
            return
        path = self._media_path(task_id)
        if path.exists():
            shutil.rmtree(path, ignore_errors=True)
            logger.info("Removed task media", extra={"task_id": task_id})

    def _remove_media_file(self, relative: str) -> None:
        if self._media_root is None:
            return
        path = self._media_path(relative)
        if path.is_file():
            path.unlink()

    async def add_image(self, task_id: str, image_path: str) -> TodoTask | None:
        """Record an uploaded image path (relative to the media root) on a task."""
        self._media_path(image_path)
        async with self._task_locks.hold(task_id):
            current = await self._load(task_id)
            if current is None:
                return None
            return await self._apply(current, {"images": [*current.images, image_path]})

    async def remove_image(self, task_id: str, image_path: str) -> TodoTask | None:
        """Forget an image path and delete its file."""
        async with self._task_locks.hold(task_id):
            current = await self._load(task_id)
            if current is None:
                return None
            self._remove_media_file(image_path)
            return await self._apply(current, {"images": [p for p in current.images if p != image_path]})

    async def set_audio(self, task_id: str, audio_path: str | None) -> TodoTask | None:
        """Replace (or clear, with None) the task's recording, deleting the old file."""
        if audio_path is not None:
            self._media_path(audio_path)
        async with self._task_locks.hold(task_id):
            current = await self._load(task_id)
            if current is None:
                return None
            if current.audio_path and current.audio_path != audio_path:
                self._remove_media_file(current.audio_path)
            return await self._apply(current, {"audio_path": audio_path})
