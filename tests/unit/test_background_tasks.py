import asyncio

import pytest

from app.jobs.background_tasks import BackgroundTaskSet


@pytest.mark.asyncio
async def test_finished_tasks_are_dropped():
    tasks = BackgroundTaskSet()
    done = []

    async def work():
        done.append(True)

    tasks.spawn(work(), name="work")
    await tasks.join()

    assert done == [True]
    assert len(tasks) == 0


@pytest.mark.asyncio
async def test_failing_task_does_not_escape():
    tasks = BackgroundTaskSet()

    async def boom():
        raise RuntimeError("verification exploded")

    tasks.spawn(boom(), name="boom")
    await tasks.join()

    assert len(tasks) == 0


@pytest.mark.asyncio
async def test_shutdown_cancels_tasks_past_grace_period():
    tasks = BackgroundTaskSet()
    cancelled = asyncio.Event()

    async def slow():
        try:
            await asyncio.sleep(30)
        except asyncio.CancelledError:
            cancelled.set()
            raise

    tasks.spawn(slow(), name="slow")
    await tasks.shutdown(timeout=0.05)

    assert cancelled.is_set()
    assert len(tasks) == 0


@pytest.mark.asyncio
async def test_shutdown_waits_for_quick_tasks():
    tasks = BackgroundTaskSet()
    finished = []

    async def quick():
        await asyncio.sleep(0.01)
        finished.append("quick")

    tasks.spawn(quick())
    await tasks.shutdown(timeout=1)

    assert finished == ["quick"]
