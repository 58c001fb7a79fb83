"""
Video processing pipeline.

Turns a URL into a token for a video held in memory:
1. Fetch metadata (yt-dlp --dump-json)
2. Enforce the size limit
3. Download into a private scratch directory
4. Load the file into memory and hand it to the store

Every call gets its own scratch directory, and that directory is removed
on every exit path. Failures come back as a classified ProcessingError
inside the result; nothing raised inside the pipeline reaches the caller.
"""

import asyncio
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Protocol

from .models import (
    ErrorKind,
    ProcessingError,
    ProcessingResult,
    VideoInfo,
    build_filename,
    format_size,
)
from .progress import (
    DOWNLOADING,
    FETCHING_INFO,
    LOADING,
    ProgressCallback,
    noop_progress,
    notify,
)
from .store import VideoStore

logger = logging.getLogger(__name__)

OUTPUT_STEM = "video"
UNEXPECTED_FAILURE_MESSAGE = "Processing failed unexpectedly"


# ---------------------------------------------------------------------------
# Protocols (interfaces)
# ---------------------------------------------------------------------------

class FetcherError(Exception):
    """Raised by a MediaFetcher when the external tool fails."""
    pass


class MediaFetcher(Protocol):
    """
    Interface for the external download tool.

    The coordinator doesn't care whether this shells out to yt-dlp or is
    a fake in a test. Both operations raise FetcherError on failure.
    """

    async def fetch_info(self, url: str, format_filter: str) -> VideoInfo:
        """Fetch metadata for the URL without downloading anything."""
        ...

    async def download(self, url: str, format_filter: str, work_dir: Path) -> None:
        """Download the URL into work_dir as video.<ext>."""
        ...

    def is_available(self) -> bool:
        """Check that the external tool can run at all."""
        ...


# ---------------------------------------------------------------------------
# Coordinator
# ---------------------------------------------------------------------------

class VideoCoordinator:
    """
    Drives one URL through fetch, limit check, download and load.

    Stateless apart from the shared store, so one instance serves every
    request concurrently.
    """

    def __init__(
        self,
        fetcher: MediaFetcher,
        store: VideoStore,
        max_filesize_bytes: int = 100 * 1024 * 1024,
        format_filter: str = "best",
        temp_dir: Optional[str] = None,
    ) -> None:
        self._fetcher = fetcher
        self._store = store
        self._max_filesize_bytes = max_filesize_bytes
        self._format_filter = format_filter
        self._temp_dir = temp_dir

    async def process(
        self,
        url: str,
        on_progress: ProgressCallback = noop_progress,
    ) -> ProcessingResult:
        """
        Process a URL. Returns a result carrying a token or a classified error.

        on_progress receives human-readable status strings, all before
        this coroutine returns.
        """
        work_dir: Optional[Path] = None

        try:
            work_dir = Path(tempfile.mkdtemp(prefix="chomp_", dir=self._temp_dir))
            token = await self._run_pipeline(url, work_dir, on_progress)
            logger.info("Video processed", extra={"url": url})
            return ProcessingResult.ok(token)

        except ProcessingError as e:
            logger.warning(
                "Video processing failed",
                extra={"url": url, "error_kind": e.kind.value, "error": e.message},
            )
            return ProcessingResult.failed(e)

        except Exception:
            logger.exception("Video processing failed unexpectedly", extra={"url": url})
            return ProcessingResult.failed(
                ProcessingError(ErrorKind.INTERNAL, UNEXPECTED_FAILURE_MESSAGE)
            )

        finally:
            if work_dir is not None:
                shutil.rmtree(work_dir, ignore_errors=True)

    async def _run_pipeline(
        self,
        url: str,
        work_dir: Path,
        on_progress: ProgressCallback,
    ) -> str:
        notify(on_progress, FETCHING_INFO)
        info = await self._fetch_info(url)

        self._check_limits(info)

        notify(on_progress, DOWNLOADING)
        video_path = await self._download(url, work_dir)

        notify(on_progress, LOADING)
        data = await asyncio.to_thread(video_path.read_bytes)

        return self._store.insert(build_filename(info), data)

    async def _fetch_info(self, url: str) -> VideoInfo:
        try:
            return await self._fetcher.fetch_info(url, self._format_filter)
        except FetcherError as e:
            raise ProcessingError(ErrorKind.FETCH_INFO, str(e), detail=str(e)) from e

    def _check_limits(self, info: VideoInfo) -> None:
        """
        Reject videos whose reported size is over the limit.

        An unknown size passes; there is no re-check after download.
        """
        filesize = info.reported_size
        if filesize > self._max_filesize_bytes:
            raise ProcessingError(
                ErrorKind.SIZE_LIMIT,
                f"Video too large (~{format_size(filesize)}). "
                f"Max is {format_size(self._max_filesize_bytes)}.",
            )

    async def _download(self, url: str, work_dir: Path) -> Path:
        try:
            await self._fetcher.download(url, self._format_filter, work_dir)
        except FetcherError as e:
            raise ProcessingError(ErrorKind.DOWNLOAD, str(e), detail=str(e)) from e

        matches = sorted(work_dir.glob(f"{OUTPUT_STEM}.*"))
        if not matches:
            raise ProcessingError(ErrorKind.DOWNLOAD, "Download completed but file not found")
        if len(matches) > 1:
            raise ProcessingError(
                ErrorKind.DOWNLOAD,
                "Multiple files found after download",
                detail=", ".join(path.name for path in matches),
            )
        return matches[0]
