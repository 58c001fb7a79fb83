"""
Background processing jobs.

Processing a video takes anywhere from seconds to minutes, far longer
than an HTTP request should block. A submission creates a job, the
pipeline runs as an asyncio task, and clients poll the job to follow
its progress:

    pending -> processing -> ready | error

A job only ever holds the token. The video bytes stay in the store, so
a finished job never keeps a video alive past its TTL.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional
from uuid import UUID, uuid4

from .coordinator import VideoCoordinator
from .models import ProcessingError, ProcessingResult

logger = logging.getLogger(__name__)

STARTING = "Starting..."


class JobState(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    READY = "ready"
    ERROR = "error"


@dataclass
class ProcessingJob:
    """One submitted URL and everything observed about it so far."""
    url: str
    id: UUID = field(default_factory=uuid4)
    state: JobState = JobState.PENDING
    status: Optional[str] = None
    progress: list[str] = field(default_factory=list)
    token: Optional[str] = None
    error: Optional[ProcessingError] = None
    created_at: float = field(default_factory=time.monotonic)
    finished_at: Optional[float] = None

    @property
    def is_finished(self) -> bool:
        return self.state in (JobState.READY, JobState.ERROR)

    def record_progress(self, message: str) -> None:
        self.status = message
        self.progress.append(message)

    def start(self) -> None:
        self.state = JobState.PROCESSING
        self.record_progress(STARTING)

    def finish(self, result: ProcessingResult, now: float) -> None:
        if result.is_ok:
            self.state = JobState.READY
            self.token = result.token
        else:
            self.state = JobState.ERROR
            self.error = result.error
        self.finished_at = now


class JobTracker:
    """
    Runs processing jobs in the background and keeps their state.

    Finished jobs are forgotten once they're older than `retention_seconds`;
    by then their video has been evicted from the store anyway.
    """

    def __init__(
        self,
        coordinator: VideoCoordinator,
        retention_seconds: float = 600,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._coordinator = coordinator
        self._retention = retention_seconds
        self._clock = clock
        self._jobs: dict[UUID, ProcessingJob] = {}
        self._tasks: set[asyncio.Task] = set()

    def submit(self, url: str) -> ProcessingJob:
        """Create a job for the URL and start processing it."""
        self.prune_finished()

        job = ProcessingJob(url=url, created_at=self._clock())
        self._jobs[job.id] = job

        task = asyncio.create_task(self.run(job))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        logger.info("Processing job submitted", extra={"job_id": str(job.id), "url": url})
        return job

    def get(self, job_id: UUID) -> Optional[ProcessingJob]:
        return self._jobs.get(job_id)

    async def run(self, job: ProcessingJob) -> ProcessingJob:
        """Run the pipeline for a job, recording progress and the outcome."""
        job.start()
        result = await self._coordinator.process(job.url, job.record_progress)
        job.finish(result, self._clock())

        logger.info(
            "Processing job finished",
            extra={"job_id": str(job.id), "state": job.state.value}
        )
        return job

    def prune_finished(self) -> int:
        """Drop finished jobs past the retention window. Returns how many."""
        now = self._clock()
        stale = [
            job_id for job_id, job in self._jobs.items()
            if job.finished_at is not None and now - job.finished_at > self._retention
        ]
        for job_id in stale:
            del self._jobs[job_id]
        return len(stale)

    async def shutdown(self) -> None:
        """Cancel jobs still running. Their scratch directories are cleaned up."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("Cancelled running jobs", extra={"count": len(tasks)})
