"""
Domain models for one-time video sharing.

These models describe what flows through the pipeline: metadata reported
by the downloader, the entries held by the ephemeral store, and the
classified outcome of a processing request. They have no dependencies on
FastAPI, subprocesses or the filesystem.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class ErrorKind(Enum):
    """
    Categories a processing failure falls into.

    The UI layer branches on these, so every failure path must pick one.
    """
    FETCH_INFO = "fetch_info"  # yt-dlp failed or printed no usable metadata
    SIZE_LIMIT = "size_limit"  # reported size is over the configured maximum
    DOWNLOAD = "download"      # yt-dlp failed, or produced zero/several files
    INTERNAL = "internal"      # anything we didn't anticipate


class ProcessingError(Exception):
    """
    A classified failure from the processing pipeline.

    `message` is safe to show to users. `detail` holds the longer
    diagnostic text when there is one.
    """

    def __init__(self, kind: ErrorKind, message: str, detail: Optional[str] = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.detail = detail

    def __repr__(self) -> str:
        return f"ProcessingError(kind={self.kind.value!r}, message={self.message!r})"


@dataclass(frozen=True)
class ProcessingResult:
    """
    Outcome of one processing request: a token, or a classified error.

    Exactly one of `token` and `error` is set.
    """
    token: Optional[str] = None
    error: Optional[ProcessingError] = None

    def __post_init__(self) -> None:
        if (self.token is None) == (self.error is None):
            raise ValueError("ProcessingResult needs exactly one of token or error")

    @classmethod
    def ok(cls, token: str) -> "ProcessingResult":
        return cls(token=token)

    @classmethod
    def failed(cls, error: ProcessingError) -> "ProcessingResult":
        return cls(error=error)

    @property
    def is_ok(self) -> bool:
        return self.token is not None


@dataclass(frozen=True)
class VideoInfo:
    """
    Metadata yt-dlp reports for a URL.

    Only the fields needed to name the file and enforce the size limit
    are kept. Everything is optional because extractors vary wildly in
    what they fill in.
    """
    extractor: Optional[str] = None
    id: Optional[str] = None
    display_id: Optional[str] = None
    filesize: Optional[int] = None
    filesize_approx: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VideoInfo":
        """Build from yt-dlp's --dump-json output."""
        return cls(
            extractor=data.get("extractor"),
            id=_optional_str(data.get("id")),
            display_id=_optional_str(data.get("display_id")),
            filesize=_optional_int(data.get("filesize")),
            filesize_approx=_optional_int(data.get("filesize_approx")),
        )

    @property
    def reported_size(self) -> int:
        """Best size estimate in bytes. Zero when the extractor doesn't know."""
        if self.filesize is not None:
            return self.filesize
        return self.filesize_approx or 0


@dataclass(frozen=True)
class StoredVideo:
    """
    A video held in memory waiting for its single download.

    Frozen: entries are never modified after insertion, only removed.
    `created_at` is a monotonic clock reading, not wall time.
    """
    token: str
    label: str
    payload: bytes = field(repr=False)
    created_at: float

    @property
    def size_bytes(self) -> int:
        return len(self.payload)


@dataclass(frozen=True)
class VideoSummary:
    """One row of the monitoring snapshot. Never carries a full token."""
    token_prefix: str
    label: str
    size_mb: float
    age_seconds: int


@dataclass(frozen=True)
class StoreStats:
    """Monitoring snapshot of the ephemeral store."""
    count: int
    total_bytes: int
    videos: list[VideoSummary] = field(default_factory=list)

    @property
    def total_mb(self) -> float:
        return bytes_to_mb(self.total_bytes)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def build_filename(info: VideoInfo) -> str:
    """
    Build the download filename, e.g. "youtube-dQw4w9WgXcQ.mp4".

    The extractor name is lowercased and stripped to [a-z0-9] so it's
    safe to put in a Content-Disposition header.
    """
    extractor = info.extractor or "video"
    video_id = info.id or info.display_id or "unknown"
    source = _NON_ALNUM.sub("", extractor.lower())
    return f"{source}-{video_id}.mp4"


def format_size(num_bytes: int) -> str:
    """Human-readable size: B below 1 KiB, KB below 1 MiB, MB above."""
    if num_bytes < 1024:
        return f"{num_bytes} B"
    if num_bytes < 1024 * 1024:
        return f"{round(num_bytes / 1024, 1)} KB"
    return f"{round(num_bytes / (1024 * 1024), 1)} MB"


def bytes_to_mb(num_bytes: int) -> float:
    return round(num_bytes / 1_048_576, 2)


def _optional_int(value: Any) -> Optional[int]:
    # yt-dlp reports filesize_approx as a float for some extractors
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)
