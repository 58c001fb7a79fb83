"""
Friendly summaries for raw processing errors.

yt-dlp error output is accurate but rarely readable. The UI shows a short
summary and keeps the original text available as detail. Rules are
checked in order and the first match wins.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class FriendlyError:
    summary: str
    detail: Optional[str] = None


# (substrings to look for, summary). Matching is case-insensitive.
_RULES: list[tuple[tuple[str, ...], str]] = [
    (
        ("sign in to confirm", "not a bot"),
        "The site blocked this download as automated traffic. Try again later.",
    ),
    (
        ("login required", "sign in", "cookies"),
        "This video requires a login to view.",
    ),
    (
        ("private video", "video unavailable", "video is not available", "has been removed"),
        "This video is unavailable or private.",
    ),
    (
        ("no such file or directory", "yt-dlp not found"),
        "The downloader isn't installed on the server.",
    ),
    (
        ("timed out", "timeout"),
        "The request timed out. Try again.",
    ),
    (
        ("unsupported url",),
        "That URL isn't supported.",
    ),
]


def summarize_error(message: str) -> FriendlyError:
    """
    Map a raw error message to a short summary.

    When a rule applies, the original message is kept as detail.
    Unrecognised messages are passed through unchanged.
    """
    lowered = message.lower()
    for needles, summary in _RULES:
        if any(needle in lowered for needle in needles):
            return FriendlyError(summary=summary, detail=message)
    return FriendlyError(summary=message)
