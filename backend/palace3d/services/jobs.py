from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from palace3d.core.errors import PollTimeoutError, WorkflowError
from palace3d.core.settings import settings
from palace3d.schemas.contracts import Job, JobStatus
from palace3d.services.image_providers import ImageQueue

logger = logging.getLogger(__name__)

COMPLETED = "completed"

Sleep = Callable[[float], Awaitable[None]]


def is_completed(status: str | None) -> bool:
    return bool(status) and status.lower() == COMPLETED


async def poll_until_complete(
    queue: ImageQueue,
    job: Job,
    *,
    interval_s: float | None = None,
    max_attempts: int | None = None,
    sleep: Sleep = asyncio.sleep,
) -> Job:
    """Poll ``job`` until the queue reports it completed.

    At most ``max_attempts`` status reads are made, ``interval_s`` apart. A
    failed read ends the loop immediately; running out of attempts raises
    ``PollTimeoutError``. The job is updated in place and returned.
    """
    interval_s = settings.poll_interval_s if interval_s is None else interval_s
    max_attempts = settings.poll_max_attempts if max_attempts is None else max_attempts

    job.status = JobStatus.IN_PROGRESS
    while job.attempts < max_attempts:
        job.attempts += 1
        try:
            status = await queue.status(job.id)
        except WorkflowError as exc:
            job.status = JobStatus.FAILED
            logger.error(f"Error querying status of job {job.id}: {exc}")
            raise

        logger.info(f"Job {job.id} status: {status} (attempt {job.attempts}/{max_attempts})")
        if is_completed(status):
            job.status = JobStatus.COMPLETED
            return job
        if job.attempts < max_attempts:
            await sleep(interval_s)

    job.status = JobStatus.TIMEOUT
    logger.error(f"Polling timed out after {job.attempts} attempts for job {job.id}")
    raise PollTimeoutError(job.id, job.attempts)
