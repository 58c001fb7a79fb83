"""
Unit tests for background processing jobs.
"""

import asyncio
from uuid import uuid4

import pytest

from chomp.core.video.jobs import STARTING, JobState, JobTracker, ProcessingJob
from chomp.core.video.models import ErrorKind
from chomp.core.video.progress import DOWNLOADING, FETCHING_INFO, LOADING


async def wait_finished(job: ProcessingJob, timeout: float = 2.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not job.is_finished:
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError(f"job still {job.state.value}")
        await asyncio.sleep(0.01)


@pytest.fixture
def tracker(coordinator, clock) -> JobTracker:
    return JobTracker(coordinator=coordinator, retention_seconds=600, clock=clock)


class TestJobLifecycle:
    """pending -> processing -> ready | error"""

    @pytest.mark.asyncio
    async def test_submitted_job_starts_pending(self, tracker):
        job = tracker.submit("https://example.com/v")

        assert job.state is JobState.PENDING
        assert tracker.get(job.id) is job
        await wait_finished(job)

    @pytest.mark.asyncio
    async def test_successful_job_is_ready_with_token(self, tracker, store):
        job = tracker.submit("https://example.com/v")
        await wait_finished(job)

        assert job.state is JobState.READY
        assert store.peek(job.token) is not None
        assert job.error is None
        assert job.finished_at is not None

    @pytest.mark.asyncio
    async def test_records_every_progress_message(self, tracker):
        job = await tracker.run(ProcessingJob(url="https://example.com/v"))

        assert job.progress == [STARTING, FETCHING_INFO, DOWNLOADING, LOADING]
        assert job.status == LOADING

    @pytest.mark.asyncio
    async def test_failed_job_keeps_classified_error(self, tracker, fake_fetcher):
        fake_fetcher.info_error = "Failed to get video info: ERROR: Private video"

        job = await tracker.run(ProcessingJob(url="https://example.com/private"))

        assert job.state is JobState.ERROR
        assert job.token is None
        assert job.error.kind is ErrorKind.FETCH_INFO

    @pytest.mark.asyncio
    async def test_unknown_job(self, tracker):
        assert tracker.get(uuid4()) is None


class TestPruning:
    """Finished jobs are forgotten after the retention window."""

    @pytest.mark.asyncio
    async def test_prunes_old_finished_jobs(self, tracker, clock):
        job = tracker.submit("https://example.com/v")
        await wait_finished(job)

        clock.advance(601)

        assert tracker.prune_finished() == 1
        assert tracker.get(job.id) is None

    @pytest.mark.asyncio
    async def test_keeps_recent_and_running_jobs(self, tracker, clock, fake_fetcher):
        done = tracker.submit("https://example.com/done")
        await wait_finished(done)

        fake_fetcher.delay = 0.2
        running = tracker.submit("https://example.com/slow")
        clock.advance(100)

        assert tracker.prune_finished() == 0
        assert tracker.get(done.id) is done
        assert tracker.get(running.id) is running
        await tracker.shutdown()


class TestShutdown:

    @pytest.mark.asyncio
    async def test_cancels_running_jobs_and_cleans_scratch(self, tracker, fake_fetcher, scratch_dir):
        fake_fetcher.delay = 5
        job = tracker.submit("https://example.com/slow")
        await asyncio.sleep(0.05)

        await tracker.shutdown()

        assert not job.is_finished
        assert list(scratch_dir.iterdir()) == []
