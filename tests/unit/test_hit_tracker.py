"""
Tests for HitTracker.

Hits are counted in storage, never lost under concurrency, and tracking
failures never reach the caller.
"""

from __future__ import annotations

import threading
from datetime import UTC, datetime

import pytest

from seo_redirects.adapters.sqlite.repos import SQLiteRedirectRepo
from seo_redirects.components.redirects import HitTracker, RedirectResolver


class FixedTime:
    def now_utc(self) -> datetime:
        return datetime(2025, 6, 1, 9, 0, tzinfo=UTC)


class CountingStore:
    """Records record_hit calls."""

    def __init__(self) -> None:
        self.calls: list[tuple[int, datetime]] = []
        self._lock = threading.Lock()

    def record_hit(self, rule_id: int, at: datetime) -> None:
        with self._lock:
            self.calls.append((rule_id, at))


class BrokenStore:
    def record_hit(self, rule_id: int, at: datetime) -> None:
        raise RuntimeError("disk full")


class TestSynchronousTracking:
    def test_record_writes_inline(self) -> None:
        store = CountingStore()
        tracker = HitTracker(store, FixedTime(), run_async=False)  # type: ignore[arg-type]

        tracker.record(7)

        assert store.calls == [(7, FixedTime().now_utc())]

    def test_failure_swallowed_and_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        tracker = HitTracker(BrokenStore(), FixedTime(), run_async=False)  # type: ignore[arg-type]

        tracker.record(7)

        assert "Failed to record hit for redirect 7" in caplog.text


class TestAsyncTracking:
    def test_flush_waits_for_writes(self) -> None:
        store = CountingStore()
        with HitTracker(store, FixedTime()) as tracker:  # type: ignore[arg-type]
            for _ in range(10):
                tracker.record(3)
            tracker.flush()

            assert len(store.calls) == 10

    def test_close_drains_queue(self) -> None:
        store = CountingStore()
        tracker = HitTracker(store, FixedTime(), max_workers=1)  # type: ignore[arg-type]
        for i in range(5):
            tracker.record(i)

        tracker.close()

        assert sorted(rule_id for rule_id, _ in store.calls) == [0, 1, 2, 3, 4]

    def test_record_after_close_writes_inline(self) -> None:
        store = CountingStore()
        tracker = HitTracker(store, FixedTime())  # type: ignore[arg-type]
        tracker.record(1)
        tracker.close()

        tracker.record(5)

        assert [rule_id for rule_id, _ in store.calls] == [1, 5]
        assert tracker._executor is None

    def test_async_failure_swallowed(self) -> None:
        tracker = HitTracker(BrokenStore(), FixedTime())  # type: ignore[arg-type]

        tracker.record(1)
        tracker.close()

    def test_default_clock(self) -> None:
        store = CountingStore()
        tracker = HitTracker(store, run_async=False)  # type: ignore[arg-type]

        tracker.record(1)

        assert store.calls[0][1].tzinfo is not None


class TestConcurrentHits:
    """M concurrent hits on one rule increase its count by exactly M."""

    def test_no_lost_increments(self, repo: SQLiteRedirectRepo) -> None:
        rule_id = repo.insert("/old", "/new")
        hits_per_thread = 10
        thread_count = 8

        with HitTracker(repo, FixedTime(), max_workers=4) as tracker:
            resolver = RedirectResolver(store=repo, hit_recorder=tracker)

            def worker() -> None:
                for _ in range(hits_per_thread):
                    assert resolver.resolve("/old").matched

            threads = [threading.Thread(target=worker) for _ in range(thread_count)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

        rule = repo.get(rule_id)
        assert rule is not None
        assert rule.hits == hits_per_thread * thread_count
        assert rule.last_hit == FixedTime().now_utc()

    def test_hits_not_recorded_on_miss(self, repo: SQLiteRedirectRepo) -> None:
        rule_id = repo.insert("/old", "/new")

        with HitTracker(repo, FixedTime()) as tracker:
            RedirectResolver(store=repo, hit_recorder=tracker).resolve("/unrelated")

        rule = repo.get(rule_id)
        assert rule is not None
        assert rule.hits == 0
