"""
Progress notifications from the processing pipeline to its caller.

The pipeline reports short status strings ("Downloading...") through a
plain callback. It's fire-and-forget: the return value is ignored and a
callback that raises is logged, not allowed to abort processing.
"""

import logging
from typing import Callable

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]

FETCHING_INFO = "Fetching video info..."
DOWNLOADING = "Downloading..."
LOADING = "Loading into memory..."


def noop_progress(message: str) -> None:
    """Default observer: ignores everything."""


def notify(callback: ProgressCallback, message: str) -> None:
    """Deliver one status message, shielding the caller from observer failures."""
    try:
        callback(message)
    except Exception:
        logger.warning(
            "Progress callback raised; continuing",
            extra={"progress_message": message},
            exc_info=True,
        )
