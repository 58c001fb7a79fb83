"""
Health check endpoints.

We provide two endpoints:
- /health: Basic liveness check (is the process running?)
- /health/ready: Readiness check (can we serve traffic?)

The distinction matters in orchestration systems like Kubernetes
where liveness and readiness have different behaviors.
"""

import asyncio
import logging
import os

from fastapi import APIRouter, Response, status
from pydantic import BaseModel

from ... import __version__
from ..dependencies import MediaFetcherDep, SettingsDep

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    """
    Health check response.

    Standardized format makes it easy for monitoring tools to parse.
    """
    status: str
    version: str
    details: dict[str, bool] = {}


class ReadinessCheck(BaseModel):
    """Individual readiness check result."""
    name: str
    status: str  # "ok" or "error"
    error: str | None = None


class ReadinessResponse(BaseModel):
    """Readiness check response with details."""
    status: str  # "ready" or "not_ready"
    version: str
    checks: list[ReadinessCheck]


@router.get(
    "",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
    description="Returns 200 if the service is running. Does not check dependencies.",
)
async def health_check(settings: SettingsDep) -> HealthResponse:
    """
    Liveness check - is the process alive?

    Fast and free of external calls. If this fails, the service is not
    running at all.
    """
    return HealthResponse(
        status="ok",
        version=__version__,
        details={"fetcher_mock_mode": settings.fetcher_mock_mode},
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    status_code=status.HTTP_200_OK,
    summary="Readiness check",
    description="Returns 200 if the service can handle traffic. Checks yt-dlp and scratch space.",
    responses={
        503: {
            "description": "Service not ready",
            "model": ReadinessResponse,
        }
    },
)
async def readiness_check(
    response: Response,
    settings: SettingsDep,
    fetcher: MediaFetcherDep,
) -> ReadinessResponse:
    """
    Readiness check - can we serve traffic?

    Checks that:
    - Configuration is valid
    - The yt-dlp binary runs (skipped in mock mode)
    - The scratch directory exists and is writable

    Returns 503 if any check fails, which tells load balancers not
    to route traffic here.
    """
    checks: list[ReadinessCheck] = []

    problems = settings.validate_required_fields()
    if problems:
        checks.append(ReadinessCheck(
            name="configuration",
            status="error",
            error=f"Invalid settings: {', '.join(problems)}"
        ))
    else:
        checks.append(ReadinessCheck(name="configuration", status="ok"))

    if settings.fetcher_mock_mode:
        checks.append(ReadinessCheck(name="yt-dlp", status="ok", error="mock mode"))
    elif await asyncio.to_thread(fetcher.is_available):
        checks.append(ReadinessCheck(name="yt-dlp", status="ok"))
    else:
        checks.append(ReadinessCheck(
            name="yt-dlp",
            status="error",
            error=f"yt-dlp not runnable at '{settings.ytdlp_path}'"
        ))

    scratch = settings.scratch_base_dir
    if os.path.isdir(scratch) and os.access(scratch, os.W_OK):
        checks.append(ReadinessCheck(name="scratch_dir", status="ok"))
    else:
        checks.append(ReadinessCheck(
            name="scratch_dir",
            status="error",
            error=f"Not a writable directory: {scratch}"
        ))

    all_ok = all(check.status == "ok" for check in checks)

    if not all_ok:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        logger.warning(
            "Readiness check failed",
            extra={
                "checks": [
                    {"name": c.name, "status": c.status, "error": c.error}
                    for c in checks
                ]
            }
        )

    return ReadinessResponse(
        status="ready" if all_ok else "not_ready",
        version=__version__,
        checks=checks,
    )
