"""
Monitoring endpoint for the in-memory video store.

Shows how many videos are waiting to be downloaded and how much memory
they take. Tokens appear only as short prefixes; a full token would let
anyone reading this output download the video.
"""

from fastapi import APIRouter
from pydantic import BaseModel, Field

from ..dependencies import VideoStoreDep

router = APIRouter()


class StoredVideoSummary(BaseModel):
    token: str = Field(description="Token prefix, never the full token")
    filename: str
    size_mb: float
    age_seconds: int


class StoreStatsResponse(BaseModel):
    count: int = Field(description="Videos currently held")
    total_bytes: int
    total_mb: float
    videos: list[StoredVideoSummary]


@router.get(
    "/stats",
    response_model=StoreStatsResponse,
    summary="Video store statistics",
)
async def store_stats(store: VideoStoreDep) -> StoreStatsResponse:
    stats = store.stats()
    return StoreStatsResponse(
        count=stats.count,
        total_bytes=stats.total_bytes,
        total_mb=stats.total_mb,
        videos=[
            StoredVideoSummary(
                token=video.token_prefix,
                filename=video.label,
                size_mb=video.size_mb,
                age_seconds=video.age_seconds,
            )
            for video in stats.videos
        ],
    )
