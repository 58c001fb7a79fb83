"""
FastAPI dependency injection.

Dependencies provide instances of services and configuration to route
handlers. Using dependency injection means:
- Routes don't instantiate their own dependencies (easier to test)
- Dependencies can be overridden for testing
- Configuration is centralized

The store and job tracker hold state that must be shared by every
request in the process, so they're created once and reused. Tests call
reset_services() to start from a clean slate.
"""

import logging
from typing import Annotated, Optional

from fastapi import Depends

from ..config.settings import Settings, get_settings
from ..core.video.coordinator import MediaFetcher, VideoCoordinator
from ..core.video.jobs import JobTracker
from ..core.video.store import VideoStore
from ..infrastructure.fetcher.client import FetcherConfig, create_media_fetcher

logger = logging.getLogger(__name__)

# Process-wide instances (one store per process; it is the only shared state)
_video_store: Optional[VideoStore] = None
_media_fetcher: Optional[MediaFetcher] = None
_job_tracker: Optional[JobTracker] = None


# ---------------------------------------------------------------------------
# Service Dependencies
# ---------------------------------------------------------------------------

def get_video_store(
    settings: Annotated[Settings, Depends(get_settings)],
) -> VideoStore:
    """Provide the shared in-memory video store."""
    global _video_store

    if _video_store is None:
        _video_store = VideoStore(
            ttl_seconds=settings.video_ttl_seconds,
            cleanup_interval_seconds=settings.cleanup_interval_seconds,
        )
        logger.info(
            "Created video store",
            extra={
                "ttl_seconds": settings.video_ttl_seconds,
                "cleanup_interval_seconds": settings.cleanup_interval_seconds,
            }
        )

    return _video_store


def get_media_fetcher(
    settings: Annotated[Settings, Depends(get_settings)],
) -> MediaFetcher:
    """
    Provide the media fetcher.

    Returns either the yt-dlp fetcher or the mock based on settings.
    """
    global _media_fetcher

    if _media_fetcher is None:
        config = FetcherConfig(
            ytdlp_path=settings.ytdlp_path,
            merge_output_format=settings.merge_output_format,
            timeout_seconds=settings.subprocess_timeout_seconds,
        )
        _media_fetcher = create_media_fetcher(config=config, mock_mode=settings.fetcher_mock_mode)

    return _media_fetcher


def get_video_coordinator(
    settings: Annotated[Settings, Depends(get_settings)],
    fetcher: Annotated[MediaFetcher, Depends(get_media_fetcher)],
    store: Annotated[VideoStore, Depends(get_video_store)],
) -> VideoCoordinator:
    """
    Provide the processing coordinator.

    The coordinator is stateless apart from the store, so a new instance
    per request is fine.
    """
    return VideoCoordinator(
        fetcher=fetcher,
        store=store,
        max_filesize_bytes=settings.max_filesize_bytes,
        format_filter=settings.format_filter,
        temp_dir=settings.temp_dir,
    )


def get_job_tracker(
    settings: Annotated[Settings, Depends(get_settings)],
    coordinator: Annotated[VideoCoordinator, Depends(get_video_coordinator)],
) -> JobTracker:
    """Provide the shared background job tracker."""
    global _job_tracker

    if _job_tracker is None:
        _job_tracker = JobTracker(
            coordinator=coordinator,
            retention_seconds=settings.video_ttl_seconds,
        )
        logger.debug("Created job tracker")

    return _job_tracker


def current_job_tracker() -> Optional[JobTracker]:
    """The job tracker if one was created. Used at shutdown."""
    return _job_tracker


def reset_services() -> None:
    """Forget all shared instances. For tests."""
    global _video_store, _media_fetcher, _job_tracker
    _video_store = None
    _media_fetcher = None
    _job_tracker = None


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
SettingsDep = Annotated[Settings, Depends(get_settings)]
VideoStoreDep = Annotated[VideoStore, Depends(get_video_store)]
MediaFetcherDep = Annotated[MediaFetcher, Depends(get_media_fetcher)]
VideoCoordinatorDep = Annotated[VideoCoordinator, Depends(get_video_coordinator)]
JobTrackerDep = Annotated[JobTracker, Depends(get_job_tracker)]
