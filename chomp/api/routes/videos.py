"""
Video sharing API endpoints.

The flow:
1. Client submits a URL -> a background job starts processing it
2. Client polls the job for progress until it's ready (or failed)
3. Client peeks at the token to show filename and size
4. Client downloads the video once; the token is then gone for good

Download is the only endpoint that consumes anything. An unclaimed
video is evicted once its TTL runs out.
"""

import logging
from typing import Optional
from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, HTTPException, Response, status
from pydantic import BaseModel, Field

from ...core.video.jobs import ProcessingJob
from ...core.video.messages import summarize_error
from ...core.video.models import format_size
from ...core.video.store import VideoStore
from ..dependencies import JobTrackerDep, VideoStoreDep

logger = logging.getLogger(__name__)

router = APIRouter()

VIDEO_NOT_FOUND = "Video not found. It was likely already downloaded."


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class ProcessVideoRequest(BaseModel):
    """Request to fetch a video for sharing."""
    url: str = Field(min_length=1, description="Page URL of the video to fetch")


class VideoFileInfo(BaseModel):
    """Filename and size of a processed video."""
    filename: str = Field(description="Name the download will be saved as")
    size_bytes: int = Field(description="Exact size of the stored video")
    size_formatted: str = Field(description="Size as B/KB/MB for display")


class JobErrorInfo(BaseModel):
    """Why a job failed."""
    kind: str = Field(description="fetch_info, size_limit, download or internal")
    summary: str = Field(description="Short message suitable for users")
    detail: Optional[str] = Field(default=None, description="Original error text, if different")


class JobResponse(BaseModel):
    """Snapshot of a processing job."""
    job_id: UUID = Field(description="Job identifier to poll")
    state: str = Field(description="pending, processing, ready or error")
    status: Optional[str] = Field(default=None, description="Latest progress message")
    progress: list[str] = Field(default_factory=list, description="All progress messages so far")
    token: Optional[str] = Field(default=None, description="Download token once ready")
    file: Optional[VideoFileInfo] = Field(default=None, description="File details once ready")
    error: Optional[JobErrorInfo] = Field(default=None, description="Failure details")


# ---------------------------------------------------------------------------
# Helper Functions
# ---------------------------------------------------------------------------

def _file_info(store: VideoStore, token: str) -> Optional[VideoFileInfo]:
    found = store.peek(token)
    if found is None:
        return None
    filename, size_bytes = found
    return VideoFileInfo(
        filename=filename,
        size_bytes=size_bytes,
        size_formatted=format_size(size_bytes),
    )


def content_disposition(filename: str) -> str:
    """
    Build an attachment header that survives any filename.

    Header values must be latin-1, so names outside ASCII (or containing
    quotes) get an ASCII fallback plus an RFC 5987 `filename*` parameter.
    """
    encoded = quote(filename, safe="")
    if encoded == filename:
        return f'attachment; filename="{filename}"'

    fallback = filename.encode("ascii", "ignore").decode("ascii")
    fallback = fallback.replace('"', "").replace("\\", "") or "video.mp4"
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{encoded}"


def _job_response(job: ProcessingJob, store: VideoStore) -> JobResponse:
    error = None
    if job.error is not None:
        friendly = summarize_error(job.error.message)
        error = JobErrorInfo(
            kind=job.error.kind.value,
            summary=friendly.summary,
            detail=friendly.detail or job.error.detail,
        )

    return JobResponse(
        job_id=job.id,
        state=job.state.value,
        status=job.status,
        progress=list(job.progress),
        token=job.token,
        file=_file_info(store, job.token) if job.token else None,
        error=error,
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=JobResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Submit a video URL",
    description="Start fetching a video in the background. Poll the returned job for progress.",
)
async def submit_video(
    request: ProcessVideoRequest,
    jobs: JobTrackerDep,
    store: VideoStoreDep,
) -> JobResponse:
    url = request.url.strip()
    if not url:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="URL is required",
        )

    job = jobs.submit(url)
    return _job_response(job, store)


@router.get(
    "/jobs/{job_id}",
    response_model=JobResponse,
    summary="Get job progress",
    description="Current state, progress messages, and the token or error once finished",
)
async def get_job(
    job_id: UUID,
    jobs: JobTrackerDep,
    store: VideoStoreDep,
) -> JobResponse:
    job = jobs.get(job_id)
    if job is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Job not found: {job_id}",
        )
    return _job_response(job, store)


@router.get(
    "/{token}",
    response_model=VideoFileInfo,
    summary="Peek at a video",
    description="Filename and size of a stored video. Does not consume the token.",
)
async def peek_video(token: str, store: VideoStoreDep) -> VideoFileInfo:
    info = _file_info(store, token)
    if info is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=VIDEO_NOT_FOUND,
        )
    return info


@router.get(
    "/{token}/download",
    summary="Download a video (once)",
    description="Returns the video as an attachment and deletes it. A second request gets 404.",
    responses={
        200: {"content": {"video/mp4": {}}},
        404: {"description": VIDEO_NOT_FOUND},
    },
)
async def download_video(token: str, store: VideoStoreDep) -> Response:
    # Headers are built before the entry is consumed; labels never change.
    peeked = store.peek(token)
    disposition = content_disposition(peeked[0]) if peeked else None

    found = store.take_once(token) if disposition else None
    if found is None:
        logger.info("Download of missing video requested")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=VIDEO_NOT_FOUND,
        )

    _, data = found
    return Response(
        content=data,
        media_type="video/mp4",
        headers={
            "Content-Disposition": disposition,
            "Content-Length": str(len(data)),
        },
    )
