"""Pytest configuration and fixtures for unit tests."""

from datetime import date

import pytest

from family_tasks.services.periodic_task_service import PeriodicTaskService
from family_tasks.services.recurrence_engine import RecurrenceEngine
from family_tasks.services.task_store import TaskStore
from tests.unit.mocks import InMemoryBackend


@pytest.fixture
def backend():
    """Provides a fresh InMemoryBackend for each test."""
    return InMemoryBackend()


@pytest.fixture
def media_root(tmp_path):
    root = tmp_path / "uploads"
    root.mkdir()
    return root


@pytest.fixture
def task_store(backend, media_root):
    return TaskStore(backend, media_root=media_root)


@pytest.fixture
def periodic_tasks(backend):
    return PeriodicTaskService(backend)


@pytest.fixture
def engine(periodic_tasks, task_store):
    return RecurrenceEngine(periodic_tasks, task_store, timezone="UTC")


@pytest.fixture
def make_rule(periodic_tasks):
    """Factory creating a periodic task with sensible defaults."""

    async def _make(**overrides):
        data = {
            "title": "Water the plants",
            "periodic_type": "daily",
            "start_date": date(2024, 1, 1),
        }
        data.update(overrides)
        return await periodic_tasks.create(data)

    return _make
