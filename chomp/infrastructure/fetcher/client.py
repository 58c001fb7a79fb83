"""
Media fetcher backed by the yt-dlp command-line tool.

yt-dlp is invoked as a subprocess twice per request:
1. --dump-json --no-download to read metadata (size, extractor, id)
2. a real download into the request's scratch directory

Why a subprocess instead of importing yt_dlp:
- yt-dlp ships fixes for site changes almost daily; the binary can be
  updated in the container without touching our dependencies
- A crash or hang in an extractor can't take the API process down with it
- The timeout gives us a hard upper bound on a stuck download

Mock mode writes a placeholder file so the full API flow can be exercised
without yt-dlp or network access.
"""

import asyncio
import hashlib
import json
import logging
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ...core.video.coordinator import FetcherError, MediaFetcher
from ...core.video.models import VideoInfo

logger = logging.getLogger(__name__)

ERROR_EXCERPT_LENGTH = 200
OUTPUT_TEMPLATE = "video.%(ext)s"

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


@dataclass
class FetcherConfig:
    """Configuration for the yt-dlp fetcher."""
    ytdlp_path: str = "yt-dlp"
    merge_output_format: str = "mp4"
    timeout_seconds: int = 600


class YtDlpFetcher:
    """
    MediaFetcher that shells out to yt-dlp.

    subprocess.run blocks, so every invocation goes through
    asyncio.to_thread to keep the event loop free for other requests.
    """

    def __init__(self, config: Optional[FetcherConfig] = None) -> None:
        self._config = config or FetcherConfig()
        logger.info(
            "Initialized yt-dlp fetcher",
            extra={
                "ytdlp_path": self._config.ytdlp_path,
                "timeout_seconds": self._config.timeout_seconds,
            }
        )

    async def fetch_info(self, url: str, format_filter: str) -> VideoInfo:
        """
        Read metadata for a URL without downloading it.

        yt-dlp can print warnings around the JSON even with --no-warnings,
        so we pull out the outermost {...} span rather than parsing the
        whole output.
        """
        cmd = [
            self._config.ytdlp_path,
            "--dump-json",
            "--no-download",
            "--no-warnings",
            "-f", format_filter,
            url,
        ]

        returncode, output = await self._run(cmd)

        if returncode != 0:
            raise FetcherError(f"Failed to get video info: {_excerpt(output)}")

        return parse_info_output(output)

    async def download(self, url: str, format_filter: str, work_dir: Path) -> None:
        """Download a URL into work_dir as video.<ext>."""
        cmd = [
            self._config.ytdlp_path,
            "-f", format_filter,
            "--merge-output-format", self._config.merge_output_format,
            "-o", str(Path(work_dir) / OUTPUT_TEMPLATE),
            "--no-playlist",
            url,
        ]

        returncode, output = await self._run(cmd)

        if returncode != 0:
            raise FetcherError(f"Download failed: {_excerpt(output)}")

        logger.debug("yt-dlp download finished", extra={"url": url})

    def is_available(self) -> bool:
        """Check that the yt-dlp binary runs. Used by the readiness probe."""
        try:
            result = subprocess.run(
                [self._config.ytdlp_path, "--version"],
                capture_output=True,
                text=True,
                timeout=10,
            )
        except (OSError, subprocess.TimeoutExpired):
            return False
        return result.returncode == 0

    async def _run(self, cmd: list[str]) -> tuple[int, str]:
        """Run yt-dlp with stderr folded into stdout. Returns (exit code, output)."""
        try:
            result = await asyncio.to_thread(
                subprocess.run,
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                timeout=self._config.timeout_seconds,
            )
        except FileNotFoundError:
            raise FetcherError(
                f"yt-dlp not found at '{self._config.ytdlp_path}'. Install with: pip install yt-dlp"
            )
        except OSError as e:
            raise FetcherError(f"Failed to run yt-dlp: {e}")
        except subprocess.TimeoutExpired:
            logger.error(
                "yt-dlp timed out",
                extra={"timeout_seconds": self._config.timeout_seconds}
            )
            raise FetcherError(
                f"yt-dlp timed out after {self._config.timeout_seconds} seconds"
            )

        return result.returncode, result.stdout or ""


def parse_info_output(output: str) -> VideoInfo:
    """Extract and parse the JSON object from yt-dlp --dump-json output."""
    match = _JSON_OBJECT.search(output.strip())
    if match is None:
        raise FetcherError("No JSON in yt-dlp output")

    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise FetcherError(f"Failed to parse video info: {e}")

    if not isinstance(data, dict):
        raise FetcherError("Failed to parse video info: expected a JSON object")

    return VideoInfo.from_dict(data)


def _excerpt(output: str) -> str:
    return output[:ERROR_EXCERPT_LENGTH]


# ---------------------------------------------------------------------------
# Mock Fetcher for Local Development
# ---------------------------------------------------------------------------

class MockMediaFetcher:
    """
    Fake fetcher for local development without yt-dlp.

    Reports a small video for any URL and "downloads" it by writing
    placeholder bytes. Not suitable for production, but enough to click
    through the whole submit, poll and download flow.
    """

    def __init__(self, payload: bytes = b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 1024) -> None:
        self._payload = payload
        logger.info("Initialized mock media fetcher")

    async def fetch_info(self, url: str, format_filter: str) -> VideoInfo:
        """Return canned metadata with an id derived from the URL."""
        video_id = hashlib.sha256(url.encode("utf-8")).hexdigest()[:11]
        return VideoInfo(
            extractor="Mock",
            id=video_id,
            filesize=len(self._payload),
        )

    async def download(self, url: str, format_filter: str, work_dir: Path) -> None:
        """Write the placeholder payload as video.mp4."""
        (Path(work_dir) / "video.mp4").write_bytes(self._payload)

    def is_available(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_media_fetcher(
    config: Optional[FetcherConfig] = None,
    mock_mode: bool = False,
) -> MediaFetcher:
    """
    Create a media fetcher.

    Args:
        config: yt-dlp configuration (defaults apply when omitted)
        mock_mode: If True, return the mock fetcher (no yt-dlp required)

    Returns:
        MediaFetcher implementation (yt-dlp or Mock)
    """
    if mock_mode:
        return MockMediaFetcher()

    return YtDlpFetcher(config)
