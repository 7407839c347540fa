import asyncio
import time

import pytest

from app.jobs.job_registry import JobRegistry, interruptible_sleep, wait_while_paused
from app.models.domain.job_domain import JobStatus, make_job_id


def test_start_pause_resume_end_transitions():
    registry = JobRegistry()
    job_id = make_job_id("conn", "Acme")

    registry.start(job_id)
    assert registry.status(job_id) == JobStatus.RUNNING

    registry.pause(job_id)
    assert registry.status(job_id) == JobStatus.PAUSED

    registry.resume(job_id)
    assert registry.status(job_id) == JobStatus.RUNNING

    registry.pause(job_id)
    registry.end(job_id)
    assert registry.status(job_id) == JobStatus.ENDED
    assert registry.is_active(job_id) is False


def test_nothing_leaves_ended():
    registry = JobRegistry()
    registry.start("c_p")
    registry.end("c_p")

    registry.resume("c_p")
    registry.pause("c_p")
    registry.end("c_p")

    assert registry.status("c_p") == JobStatus.ENDED


def test_operations_on_absent_job_are_noops():
    registry = JobRegistry()

    registry.pause("missing")
    registry.resume("missing")
    registry.end("missing")
    registry.remove("missing")

    assert registry.status("missing") is None
    assert "missing" not in registry
    assert len(registry) == 0


def test_remove_connection_drops_only_that_connections_jobs():
    registry = JobRegistry()
    registry.start(make_job_id("conn1", "Acme"))
    registry.start(make_job_id("conn1", "Globex"))
    registry.start(make_job_id("conn2", "Acme"))

    removed = registry.remove_connection("conn1")

    assert sorted(removed) == ["conn1_Acme", "conn1_Globex"]
    assert registry.status("conn2_Acme") == JobStatus.RUNNING
    assert registry.is_active("conn1_Acme") is False


@pytest.mark.asyncio
async def test_interruptible_sleep_runs_full_duration():
    registry = JobRegistry()
    registry.start("c_p")

    started = time.monotonic()
    await interruptible_sleep(registry, "c_p", 0.2, tick=0.02)

    assert time.monotonic() - started >= 0.19


@pytest.mark.asyncio
async def test_interruptible_sleep_wakes_on_end():
    registry = JobRegistry()
    registry.start("c_p")

    async def end_soon():
        await asyncio.sleep(0.05)
        registry.end("c_p")

    started = time.monotonic()
    await asyncio.gather(interruptible_sleep(registry, "c_p", 5, tick=0.01), end_soon())

    assert time.monotonic() - started < 1


@pytest.mark.asyncio
async def test_interruptible_sleep_wakes_on_removal():
    registry = JobRegistry()
    registry.start("c_p")

    async def disconnect_soon():
        await asyncio.sleep(0.05)
        registry.remove_connection("c")

    started = time.monotonic()
    await asyncio.gather(interruptible_sleep(registry, "c_p", 5, tick=0.01), disconnect_soon())

    assert time.monotonic() - started < 1


@pytest.mark.asyncio
async def test_interruptible_sleep_non_positive_returns_immediately():
    registry = JobRegistry()

    started = time.monotonic()
    await interruptible_sleep(registry, "absent", 0)
    await interruptible_sleep(registry, "absent", -3)

    assert time.monotonic() - started < 0.05


@pytest.mark.asyncio
async def test_wait_while_paused_returns_after_resume():
    registry = JobRegistry()
    registry.start("c_p")
    registry.pause("c_p")

    async def resume_soon():
        await asyncio.sleep(0.1)
        registry.resume("c_p")

    started = time.monotonic()
    await asyncio.gather(wait_while_paused(registry, "c_p", interval=0.01), resume_soon())

    assert time.monotonic() - started >= 0.09
    assert registry.status("c_p") == JobStatus.RUNNING


@pytest.mark.asyncio
async def test_wait_while_paused_returns_when_ended():
    registry = JobRegistry()
    registry.start("c_p")
    registry.pause("c_p")

    async def end_soon():
        await asyncio.sleep(0.05)
        registry.end("c_p")

    await asyncio.wait_for(
        asyncio.gather(wait_while_paused(registry, "c_p", interval=0.01), end_soon()), timeout=2
    )


def test_start_refuses_key_still_held_by_ended_job():
    registry = JobRegistry()
    assert registry.start("c_p") is True
    registry.end("c_p")

    assert registry.start("c_p") is False
    assert registry.status("c_p") == JobStatus.ENDED

    registry.remove("c_p")
    assert registry.start("c_p") is True
    assert registry.status("c_p") == JobStatus.RUNNING
