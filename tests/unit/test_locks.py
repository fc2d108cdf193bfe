import asyncio

import pytest

from family_tasks.core.locks import KeyedLock


@pytest.mark.unit
class TestKeyedLock:
    async def test_same_key_is_serialized(self):
        locks = KeyedLock()
        events = []

        async def worker(name):
            async with locks.hold("task-1"):
                events.append(f"{name}-in")
                await asyncio.sleep(0.01)
                events.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"))

        assert events in (["a-in", "a-out", "b-in", "b-out"], ["b-in", "b-out", "a-in", "a-out"])

    async def test_different_keys_run_concurrently(self):
        locks = KeyedLock()
        entered = asyncio.Event()

        async def first():
            async with locks.hold("a"):
                await asyncio.wait_for(entered.wait(), timeout=1)

        async def second():
            async with locks.hold("b"):
                entered.set()

        await asyncio.gather(first(), second())

    async def test_lock_is_released_and_forgotten(self):
        locks = KeyedLock()

        async with locks.hold("k"):
            assert locks.is_locked("k")

        assert not locks.is_locked("k")
        assert locks._locks == {}

    async def test_released_on_error(self):
        locks = KeyedLock()

        with pytest.raises(RuntimeError):
            async with locks.hold("k"):
                raise RuntimeError("boom")

        assert not locks.is_locked("k")
