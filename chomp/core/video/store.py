"""
In-memory, token-addressed store for processed videos.

Each video is kept under an unguessable token until it is downloaded once
or its TTL runs out, whichever happens first. Nothing survives a restart.

Concurrency model:
- A single lock guards the table. insert, take_once, peek, stats and
  eviction sweeps all go through it, so take-vs-take and take-vs-evict
  races always have exactly one winner.
- The lock is held for one operation at a time, never across I/O, so it
  is safe to call from the event loop and from worker threads alike.
- The evictor is one asyncio task. Starting it twice is a no-op, so
  sweeps never overlap.
"""

import asyncio
import logging
import secrets
import threading
import time
from contextlib import suppress
from typing import Callable, Optional

from .models import StoredVideo, StoreStats, VideoSummary, bytes_to_mb

logger = logging.getLogger(__name__)

TOKEN_BYTES = 16
TOKEN_PREFIX_LENGTH = 8


class VideoStore:
    """
    Ephemeral store mapping one-time tokens to video bytes.

    `clock` returns seconds on a monotonic scale. Tests inject a fake
    clock to move time forward without sleeping.
    """

    def __init__(
        self,
        ttl_seconds: float = 600,
        cleanup_interval_seconds: float = 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._interval = cleanup_interval_seconds
        self._clock = clock
        self._entries: dict[str, StoredVideo] = {}
        self._lock = threading.Lock()
        self._eviction_task: Optional[asyncio.Task] = None

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # ------------------------------------------------------------------
    # Entry operations
    # ------------------------------------------------------------------

    def insert(self, label: str, payload: bytes) -> str:
        """Store a video and return the token it can be downloaded with."""
        with self._lock:
            token = _generate_token()
            while token in self._entries:
                token = _generate_token()
            self._entries[token] = StoredVideo(
                token=token,
                label=label,
                payload=payload,
                created_at=self._clock(),
            )

        logger.info(
            "Stored video",
            extra={"video_label": label, "size_bytes": len(payload)}
        )
        return token

    def take_once(self, token: str) -> Optional[tuple[str, bytes]]:
        """
        Remove and return (label, payload) for a token.

        Returns None if the token was never issued, has already been
        taken, or has expired. Only one caller can ever get the payload.
        """
        with self._lock:
            entry = self._entries.pop(token, None)

        if entry is None:
            return None

        logger.info(
            "Video handed out",
            extra={"video_label": entry.label, "size_bytes": entry.size_bytes}
        )
        return entry.label, entry.payload

    def peek(self, token: str) -> Optional[tuple[str, int]]:
        """Return (label, size_bytes) without consuming the entry."""
        with self._lock:
            entry = self._entries.get(token)

        if entry is None:
            return None
        return entry.label, entry.size_bytes

    def stats(self) -> StoreStats:
        """
        Snapshot for monitoring.

        Tokens are truncated to a short prefix. A full token is as good as
        the video itself, so it must never show up here.
        """
        now = self._clock()
        with self._lock:
            entries = list(self._entries.values())

        videos = [
            VideoSummary(
                token_prefix=entry.token[:TOKEN_PREFIX_LENGTH] + "...",
                label=entry.label,
                size_mb=bytes_to_mb(entry.size_bytes),
                age_seconds=int(now - entry.created_at),
            )
            for entry in entries
        ]

        return StoreStats(
            count=len(entries),
            total_bytes=sum(entry.size_bytes for entry in entries),
            videos=videos,
        )

    # ------------------------------------------------------------------
    # Eviction
    # ------------------------------------------------------------------

    def evict_expired(self) -> int:
        """
        Remove every entry older than the TTL. Returns how many went.

        An entry exactly at the TTL stays; it has to be strictly older.
        """
        now = self._clock()
        with self._lock:
            expired = [
                token for token, entry in self._entries.items()
                if now - entry.created_at > self._ttl
            ]
            removed = [self._entries.pop(token) for token in expired]

        for entry in removed:
            logger.info(
                f"Expired video: {entry.label} ({bytes_to_mb(entry.size_bytes)} MB)",
                extra={"video_label": entry.label, "size_bytes": entry.size_bytes}
            )

        if removed:
            logger.info(f"Cleaned up {len(removed)} expired video(s)")

        return len(removed)

    def start_eviction(self) -> None:
        """Start the periodic eviction task on the running event loop."""
        if self._eviction_task is None or self._eviction_task.done():
            self._eviction_task = asyncio.create_task(self._eviction_loop())
            logger.debug(
                "Started video eviction task",
                extra={"interval_seconds": self._interval, "ttl_seconds": self._ttl}
            )

    async def stop_eviction(self) -> None:
        """Cancel the eviction task and wait for it to finish."""
        if self._eviction_task and not self._eviction_task.done():
            self._eviction_task.cancel()
            with suppress(asyncio.CancelledError):
                await self._eviction_task
            logger.debug("Stopped video eviction task")
        self._eviction_task = None

    async def _eviction_loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                self.evict_expired()
            except Exception:
                logger.exception("Video eviction sweep failed")


def _generate_token() -> str:
    # 128 random bits, URL-safe base64 without padding
    return secrets.token_urlsafe(TOKEN_BYTES)
