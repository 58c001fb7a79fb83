"""
Shared fixtures.

FakeFetcher stands in for yt-dlp: it returns canned metadata and writes
files into the scratch directory it's given, so the pipeline can run end
to end without a network or a binary.
"""

import asyncio
from pathlib import Path
from typing import Optional

import pytest

from chomp.core.video.coordinator import FetcherError, VideoCoordinator
from chomp.core.video.models import VideoInfo
from chomp.core.video.store import VideoStore


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeFetcher:
    """In-memory MediaFetcher with switchable failures."""

    def __init__(self) -> None:
        self.payload = b"\x00\x00\x00\x18ftypmp42fake-video-bytes"
        self.info: VideoInfo = VideoInfo(
            extractor="YouTube",
            id="dQw4w9WgXcQ",
            filesize=len(self.payload),
        )
        self.info_error: Optional[str] = None
        self.download_error: Optional[str] = None
        self.output_files: list[str] = ["video.mp4"]
        self.delay = 0.0
        self.work_dirs: list[Path] = []
        self.format_filters: list[str] = []

    async def fetch_info(self, url: str, format_filter: str) -> VideoInfo:
        self.format_filters.append(format_filter)
        if self.info_error:
            raise FetcherError(self.info_error)
        return self.info

    async def download(self, url: str, format_filter: str, work_dir: Path) -> None:
        self.work_dirs.append(Path(work_dir))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.download_error:
            raise FetcherError(self.download_error)
        for name in self.output_files:
            (Path(work_dir) / name).write_bytes(self.payload)

    def is_available(self) -> bool:
        return True


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def scratch_dir(tmp_path) -> Path:
    """Base directory for scratch workspaces; should be empty after every call."""
    path = tmp_path / "scratch"
    path.mkdir()
    return path


@pytest.fixture
def store(clock) -> VideoStore:
    return VideoStore(ttl_seconds=600, cleanup_interval_seconds=60, clock=clock)


@pytest.fixture
def coordinator(fake_fetcher, store, scratch_dir) -> VideoCoordinator:
    return VideoCoordinator(
        fetcher=fake_fetcher,
        store=store,
        max_filesize_bytes=100 * 1024 * 1024,
        format_filter="best[height<=720]",
        temp_dir=str(scratch_dir),
    )
