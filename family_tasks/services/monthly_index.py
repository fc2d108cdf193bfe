"""Month-bucketed secondary index over todo task date spans.

Maps "YYYY-MM" to the ids of tasks whose [startDate, endDate] span overlaps
that month. A task id is present in exactly the months its span overlaps.
"""

import copy
from datetime import date
from typing import Any

from family_tasks.core.date_utils import months_between


class MonthlyIndex:
    """In-memory monthly index with a JSON document form.

    Document shape: {"monthlyIndex": {"2024-01": ["id1", ...]}, "lastTaskId": 3}
    """

    def __init__(self, buckets: dict[str, list[str]] | None = None, last_task_id: int = 0) -> None:
        self._buckets: dict[str, list[str]] = {k: list(dict.fromkeys(v)) for k, v in (buckets or {}).items() if v}
        self.last_task_id = last_task_id

    @classmethod
    def from_document(cls, data: dict[str, Any] | None) -> "MonthlyIndex":
        if not data:
            return cls()
        buckets = data.get("monthlyIndex") or {}
        if not isinstance(buckets, dict):
            raise ValueError("monthlyIndex must be an object")
        return cls(
            buckets={str(k): [str(i) for i in v] for k, v in buckets.items() if isinstance(v, list)},
            last_task_id=int(data.get("lastTaskId") or 0),
        )

    def to_document(self) -> dict[str, Any]:
        return {"monthlyIndex": copy.deepcopy(self._buckets), "lastTaskId": self.last_task_id}

    def copy(self) -> "MonthlyIndex":
        return MonthlyIndex(buckets=self._buckets, last_task_id=self.last_task_id)

    @property
    def month_keys(self) -> list[str]:
        return sorted(self._buckets)

    def add(self, task_id: str, start: date, end: date) -> list[str]:
        """Insert task_id into every month bucket its span overlaps.

        Returns:
            The month keys the id was added to
        """
        months = months_between(start, end)
        for month in months:
            bucket = self._buckets.setdefault(month, [])
            if task_id not in bucket:
                bucket.append(task_id)
        return months

    def register_new(self, task_id: str, start: date, end: date) -> list[str]:
        """Add a freshly created task and bump the diagnostic counter."""
        months = self.add(task_id, start, end)
        self.last_task_id += 1
        return months

    def remove(self, task_id: str) -> list[str]:
        """Remove task_id from every bucket, dropping buckets that become empty.

        Returns:
            The month keys the id was removed from
        """
        removed: list[str] = []
        for month in list(self._buckets):
            bucket = self._buckets[month]
            if task_id in bucket:
                self._buckets[month] = [i for i in bucket if i != task_id]
                removed.append(month)
                if not self._buckets[month]:
                    del self._buckets[month]
        return removed

    def move(self, task_id: str, old_span: tuple[date, date], new_span: tuple[date, date]) -> bool:
        """Re-bucket a task whose span changed.

        Returns:
            False (and leaves the index untouched) when the span is unchanged
        """
        if old_span == new_span:
            return False
        self.remove(task_id)
        self.add(task_id, *new_span)
        return True

    def ids_for_month(self, key: str) -> list[str]:
        """Return the ids in a month bucket, deduplicated, in insertion order."""
        return list(dict.fromkeys(self._buckets.get(key, [])))

    def months_for(self, task_id: str) -> list[str]:
        return sorted(month for month, ids in self._buckets.items() if task_id in ids)

    def __contains__(self, task_id: object) -> bool:
        return any(task_id in ids for ids in self._buckets.values())

    def __len__(self) -> int:
        return len({task_id for ids in self._buckets.values() for task_id in ids})
