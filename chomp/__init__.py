"""
Chomp - share a video by URL, download it exactly once.

This package contains the complete application:
- core: Framework-agnostic store, pipeline and jobs
- infrastructure: The yt-dlp fetcher
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
