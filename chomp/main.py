"""
FastAPI application entry point.

This module creates and configures the FastAPI application.
Using an application factory pattern (create_app function) because:
- Easier to test with different configurations
- Explicit about initialization order

Run a single worker. The video store lives in process memory, so a
token issued by one worker can't be downloaded from another.

For local development:
    uvicorn chomp.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.dependencies import current_job_tracker, get_video_store
from .api.routes import health, monitoring, videos
from .config.settings import get_settings

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=get_settings().log_level.upper(),
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Starts the store's eviction task on startup. On shutdown, cancels
    jobs still running and stops the evictor.
    """
    # Startup
    settings = get_settings()

    logger.info(
        "Chomp API starting",
        extra={
            "version": settings.api_version,
            "fetcher_mock_mode": settings.fetcher_mock_mode,
            "max_filesize_mb": settings.max_filesize_mb,
        }
    )

    problems = settings.validate_required_fields()
    if problems:
        logger.error(
            "Invalid configuration",
            extra={"problems": problems}
        )

    store = get_video_store(settings)
    store.start_eviction()

    yield

    # Shutdown
    jobs = current_job_tracker()
    if jobs is not None:
        await jobs.shutdown()
    await store.stop_eviction()
    logger.info("Chomp API shutting down")


def create_app() -> FastAPI:
    """
    Application factory.

    Creates and configures the FastAPI application.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
        Share a video by URL, download it exactly once.

        ## Workflow

        1. **Submit**: `POST /api/v1/videos` with `{"url": "..."}`
           - Returns a job ID
        2. **Poll**: `GET /api/v1/videos/jobs/{job_id}`
           - Progress messages, then a token (or an error)
        3. **Peek**: `GET /api/v1/videos/{token}`
           - Filename and size, without consuming anything
        4. **Download**: `GET /api/v1/videos/{token}/download`
           - Works once. Unclaimed videos expire after the TTL.
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(
        health.router,
        prefix="/health",
        tags=["Health"],
    )

    app.include_router(
        videos.router,
        prefix="/api/v1/videos",
        tags=["Videos"],
    )

    app.include_router(
        monitoring.router,
        prefix="/api/v1/monitoring",
        tags=["Monitoring"],
    )

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "message": "Chomp API",
            "version": settings.api_version,
            "docs": "/docs",
            "health": "/health",
        }

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        """
        Catch-all exception handler.

        Prevents stack traces from leaking to clients. We log the full
        error server-side but return a generic message.
        """
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )

        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error."}
        )

    return app


# Create the application instance
# This is what uvicorn will import
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "chomp.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower(),
    )
