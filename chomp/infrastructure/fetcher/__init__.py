"""
Media fetching infrastructure.

Wraps the yt-dlp binary behind the MediaFetcher protocol:
- Metadata lookup without downloading
- Size-capped download into a scratch directory

Includes a mock fetcher for local development without yt-dlp.
"""

from .client import (
    FetcherConfig,
    MockMediaFetcher,
    YtDlpFetcher,
    create_media_fetcher,
    parse_info_output,
)

__all__ = [
    "FetcherConfig",
    "MockMediaFetcher",
    "YtDlpFetcher",
    "create_media_fetcher",
    "parse_info_output",
]
