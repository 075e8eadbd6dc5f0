"""
HitTracker - best-effort usage counting for redirect rules.

Key behaviors:
- Increments happen in storage (hits = hits + 1), never from a cached value
- Writes are detached from the redirect by default (thread pool)
- Failures are logged and swallowed
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from datetime import datetime
from types import TracebackType

from .ports import RuleStorePort, TimePort

logger = logging.getLogger(__name__)


class HitTracker:
    """Records rule hits without blocking or failing the caller."""

    def __init__(
        self,
        store: RuleStorePort,
        time_port: TimePort | None = None,
        run_async: bool = True,
        max_workers: int = 2,
    ) -> None:
        self._store = store
        self._time_port = time_port
        self._run_async = run_async
        self._max_workers = max(1, max_workers)
        self._executor: ThreadPoolExecutor | None = None
        self._pending: set[Future[None]] = set()
        self._lock = threading.Lock()
        self._closed = False

    def _now(self) -> datetime:
        """Get current time via injected port."""
        if self._time_port is not None:
            return self._time_port.now_utc()
        from seo_redirects.adapters.clock import SystemClock

        return SystemClock().now_utc()

    def _write(self, rule_id: int) -> None:
        try:
            self._store.record_hit(rule_id, self._now())
        except Exception:
            logger.exception("Failed to record hit for redirect %s", rule_id)

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self._max_workers,
                thread_name_prefix="redirect-hits",
            )
        return self._executor

    def record(self, rule_id: int) -> None:
        """Record one hit for a rule. Never raises."""
        if not self._run_async or self._closed:
            self._write(rule_id)
            return

        try:
            with self._lock:
                if self._closed:
                    raise RuntimeError("hit tracker closed")
                future = self._get_executor().submit(self._write, rule_id)
                self._pending.add(future)
            future.add_done_callback(self._forget)
        except RuntimeError:
            # Closed or pool shut down; fall back to an inline write.
            self._write(rule_id)

    def _forget(self, future: Future[None]) -> None:
        with self._lock:
            self._pending.discard(future)

    def flush(self, timeout: float | None = None) -> None:
        """Wait for queued writes to finish."""
        with self._lock:
            pending = list(self._pending)
        if pending:
            wait(pending, timeout=timeout)

    def close(self) -> None:
        """Flush and stop the worker pool. Later hits are written inline."""
        with self._lock:
            self._closed = True
        self.flush()
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)

    def __enter__(self) -> HitTracker:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()
