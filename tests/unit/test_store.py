"""
Unit tests for the ephemeral video store.

The clock is faked so TTL behaviour can be checked exactly, without
sleeping. Race tests use real threads released together by a barrier.
"""

import asyncio
import logging
import threading

import pytest

from chomp.core.video.store import VideoStore


def _race(workers: int, target) -> list:
    """Run target in `workers` threads started together; collect results."""
    barrier = threading.Barrier(workers)
    results = []
    results_lock = threading.Lock()

    def run():
        barrier.wait()
        outcome = target()
        with results_lock:
            results.append(outcome)

    threads = [threading.Thread(target=run) for _ in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return results


# ---------------------------------------------------------------------------
# Lookup Tests
# ---------------------------------------------------------------------------

class TestUnknownTokens:
    """Tokens that were never issued are simply not found."""

    def test_take_once_returns_none(self, store):
        assert store.take_once("never-issued") is None

    def test_peek_returns_none(self, store):
        assert store.peek("never-issued") is None


class TestInsert:
    """Tests for storing videos."""

    def test_returns_distinct_unguessable_tokens(self, store):
        tokens = {store.insert("a.mp4", b"x") for _ in range(100)}
        assert len(tokens) == 100
        # 16 random bytes, URL-safe base64 without padding
        assert all(len(token) == 22 for token in tokens)

    def test_entry_is_retrievable(self, store):
        token = store.insert("youtube-abc.mp4", b"payload")
        assert store.take_once(token) == ("youtube-abc.mp4", b"payload")


class TestTakeOnce:
    """A video can be downloaded exactly once."""

    def test_second_take_returns_none(self, store):
        token = store.insert("a.mp4", b"data")

        assert store.take_once(token) is not None
        assert store.take_once(token) is None
        assert store.peek(token) is None

    def test_concurrent_takes_have_one_winner(self, store):
        token = store.insert("a.mp4", b"data")

        results = _race(16, lambda: store.take_once(token))

        winners = [r for r in results if r is not None]
        assert winners == [("a.mp4", b"data")]
        assert len(store) == 0

    def test_take_and_evict_race_has_one_winner(self, store, clock):
        token = store.insert("a.mp4", b"data")
        clock.advance(601)

        def take_or_evict():
            taken = store.take_once(token)
            evicted = store.evict_expired()
            return (taken is not None) + evicted

        results = _race(8, take_or_evict)

        assert sum(results) == 1
        assert len(store) == 0


class TestPeek:
    """Peeking reports size without consuming."""

    def test_reports_exact_size(self, store):
        token = store.insert("clip.mp4", b"x" * 4321)
        assert store.peek(token) == ("clip.mp4", 4321)

    def test_does_not_delete(self, store):
        token = store.insert("clip.mp4", b"abc")

        store.peek(token)
        store.peek(token)

        assert store.take_once(token) == ("clip.mp4", b"abc")

    def test_does_not_refresh_ttl(self, store, clock):
        token = store.insert("clip.mp4", b"abc")
        clock.advance(500)
        store.peek(token)
        clock.advance(101)

        assert store.evict_expired() == 1
        assert store.peek(token) is None


# ---------------------------------------------------------------------------
# Eviction Tests
# ---------------------------------------------------------------------------

class TestEviction:
    """TTL-based eviction."""

    def test_young_entries_survive(self, store, clock):
        token = store.insert("a.mp4", b"data")
        clock.advance(599)

        assert store.evict_expired() == 0
        assert store.peek(token) is not None

    def test_entry_exactly_at_ttl_survives(self, store, clock):
        token = store.insert("a.mp4", b"data")
        clock.advance(600)

        assert store.evict_expired() == 0
        assert store.peek(token) is not None

    def test_expired_entries_are_removed(self, store, clock):
        old = store.insert("old.mp4", b"data")
        clock.advance(300)
        young = store.insert("young.mp4", b"data")
        clock.advance(301)

        assert store.evict_expired() == 1
        assert store.peek(old) is None
        assert store.peek(young) is not None

    def test_eviction_is_logged_with_label_and_size(self, store, clock, caplog):
        store.insert("youtube-abc.mp4", b"x" * (3 * 1024 * 1024))
        clock.advance(601)

        with caplog.at_level(logging.INFO, logger="chomp.core.video.store"):
            store.evict_expired()

        assert "Expired video: youtube-abc.mp4 (3.0 MB)" in caplog.text
        assert "Cleaned up 1 expired video(s)" in caplog.text

    @pytest.mark.asyncio
    async def test_background_task_sweeps_periodically(self, clock):
        store = VideoStore(ttl_seconds=10, cleanup_interval_seconds=0.01, clock=clock)
        store.insert("a.mp4", b"data")
        clock.advance(11)

        store.start_eviction()
        try:
            for _ in range(100):
                if len(store) == 0:
                    break
                await asyncio.sleep(0.01)
        finally:
            await store.stop_eviction()

        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_starting_twice_keeps_one_task(self, store):
        store.start_eviction()
        first = store._eviction_task
        store.start_eviction()

        assert store._eviction_task is first
        await store.stop_eviction()
        assert first.done()


# ---------------------------------------------------------------------------
# Stats Tests
# ---------------------------------------------------------------------------

class TestStats:
    """Monitoring snapshot."""

    def test_empty_store(self, store):
        stats = store.stats()
        assert stats.count == 0
        assert stats.total_bytes == 0
        assert stats.videos == []

    def test_counts_and_sizes(self, store, clock):
        store.insert("a.mp4", b"x" * 1024 * 1024)
        store.insert("b.mp4", b"x" * 512 * 1024)
        clock.advance(42)

        stats = store.stats()

        assert stats.count == 2
        assert stats.total_bytes == 1024 * 1024 + 512 * 1024
        assert stats.total_mb == 1.5
        assert sorted(v.label for v in stats.videos) == ["a.mp4", "b.mp4"]
        assert all(v.age_seconds == 42 for v in stats.videos)

    def test_never_exposes_full_tokens(self, store):
        tokens = [store.insert(f"{i}.mp4", b"x") for i in range(5)]

        stats = store.stats()

        prefixes = {v.token_prefix for v in stats.videos}
        for token in tokens:
            assert token not in prefixes
            assert token[:8] + "..." in prefixes
        assert all(len(prefix) == 11 for prefix in prefixes)
