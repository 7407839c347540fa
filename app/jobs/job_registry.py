"""
In-memory registry of bulk jobs and the cancellable waits built on it.

A job is keyed by "{connection_id}_{profile_name}". Control messages mutate the
status; worker loops read it at their check points. Everything runs on one event
loop, so no locking is needed.
"""

import asyncio

from app.infrastructure.observability.logging import get_logger, log_job_event
from app.models.domain.job_domain import JobStatus

logger = get_logger(__name__)

DEFAULT_SLEEP_TICK = 0.1
DEFAULT_PAUSE_POLL = 0.5


class JobRegistry:
    """
    Job status map. Every mutator is a no-op when the job is absent, so callers
    cannot tell "already ended" from "never existed".
    """

    def __init__(self):
        self._jobs: dict[str, JobStatus] = {}

    def __contains__(self, job_id: str) -> bool:
        return job_id in self._jobs

    def __len__(self) -> int:
        return len(self._jobs)

    def status(self, job_id: str) -> JobStatus | None:
        return self._jobs.get(job_id)

    def is_active(self, job_id: str) -> bool:
        """Present and not ended. Absence counts as ended."""
        status = self._jobs.get(job_id)
        return status is not None and status != JobStatus.ENDED

    def start(self, job_id: str) -> bool:
        """
        Register a new running job. Returns False, leaving the entry untouched,
        while the key is still held, including by an ended job whose loop has
        not yet removed it.
        """
        if job_id in self._jobs:
            return False
        self._jobs[job_id] = JobStatus.RUNNING
        log_job_event(job_id, "started")
        return True

    def pause(self, job_id: str) -> None:
        if self._jobs.get(job_id) == JobStatus.RUNNING:
            self._jobs[job_id] = JobStatus.PAUSED
            log_job_event(job_id, "paused")

    def resume(self, job_id: str) -> None:
        if self._jobs.get(job_id) == JobStatus.PAUSED:
            self._jobs[job_id] = JobStatus.RUNNING
            log_job_event(job_id, "resumed")

    def end(self, job_id: str) -> None:
        if job_id in self._jobs and self._jobs[job_id] != JobStatus.ENDED:
            self._jobs[job_id] = JobStatus.ENDED
            log_job_event(job_id, "ended")

    def remove(self, job_id: str) -> None:
        self._jobs.pop(job_id, None)

    def remove_connection(self, connection_id: str) -> list[str]:
        """Drop every job owned by a connection. Returns the removed job ids."""
        prefix = f"{connection_id}_"
        removed = [job_id for job_id in self._jobs if job_id.startswith(prefix)]
        for job_id in removed:
            del self._jobs[job_id]

        if removed:
            logger.info(
                "Removed jobs for closed connection",
                connection_id=connection_id,
                job_ids=removed,
            )
        return removed


async def interruptible_sleep(
    registry: JobRegistry, job_id: str, seconds: float, tick: float = DEFAULT_SLEEP_TICK
) -> None:
    """
    Sleep for `seconds`, waking early once the job is ended or removed.

    Cancellation latency is bounded by `tick`.
    """
    if seconds <= 0:
        return

    loop = asyncio.get_running_loop()
    deadline = loop.time() + seconds
    while registry.is_active(job_id):
        remaining = deadline - loop.time()
        if remaining <= 0:
            return
        await asyncio.sleep(min(tick, remaining))


async def wait_while_paused(
    registry: JobRegistry, job_id: str, interval: float = DEFAULT_PAUSE_POLL
) -> None:
    """Block while the job is paused. Returns on resume, end or removal."""
    while registry.status(job_id) == JobStatus.PAUSED:
        await asyncio.sleep(interval)
