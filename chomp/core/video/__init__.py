"""
One-time video sharing logic.

Contains the ephemeral store, the processing pipeline, background jobs
and the domain models they share.
"""

from .coordinator import FetcherError, MediaFetcher, VideoCoordinator
from .jobs import JobState, JobTracker, ProcessingJob
from .messages import FriendlyError, summarize_error
from .models import (
    ErrorKind,
    ProcessingError,
    ProcessingResult,
    StoredVideo,
    StoreStats,
    VideoInfo,
    VideoSummary,
    build_filename,
    format_size,
)
from .progress import ProgressCallback, noop_progress
from .store import VideoStore

__all__ = [
    "ErrorKind",
    "FetcherError",
    "FriendlyError",
    "JobState",
    "JobTracker",
    "MediaFetcher",
    "ProcessingError",
    "ProcessingJob",
    "ProcessingResult",
    "ProgressCallback",
    "StoredVideo",
    "StoreStats",
    "VideoCoordinator",
    "VideoInfo",
    "VideoStore",
    "VideoSummary",
    "build_filename",
    "format_size",
    "noop_progress",
    "summarize_error",
]
