"""Analytics engine — memoized, cancellable background recomputation.

The event loop that calls `update` is the delivery context: the published
snapshot is only ever swapped on that loop, while the calculators run in a
worker thread. Each computation carries its own cancellation token; a
superseded computation checks it between stages and never publishes.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import threading
from collections.abc import Callable, Iterable
from concurrent.futures import Executor
from datetime import datetime, timezone

from app.analytics import features
from app.analytics.models import AnalyticsSnapshot, Goal, TimeRange
from app.config import settings

logger = logging.getLogger(__name__)

SnapshotObserver = Callable[[AnalyticsSnapshot], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AnalyticsEngine:
    """Owns the memoization key, the in-flight computation and the latest snapshot."""

    def __init__(
        self,
        tz_name: str | None = None,
        week_start: int | None = None,
        max_streak_days: int | None = None,
        clock: Callable[[], datetime] | None = None,
        executor: Executor | None = None,
    ) -> None:
        self._tz_name = tz_name or settings.default_tz
        self._week_start = settings.week_start if week_start is None else week_start
        self._max_streak_days = settings.max_streak_days if max_streak_days is None else max_streak_days
        self._clock = clock or _utcnow
        self._executor = executor

        self._fingerprint: str | None = None
        self._time_range: TimeRange | None = None
        self._snapshot = AnalyticsSnapshot()
        self._task: asyncio.Task[None] | None = None
        self._token: threading.Event | None = None
        self._observers: list[SnapshotObserver] = []

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> AnalyticsSnapshot:
        return self._snapshot

    @property
    def fingerprint(self) -> str | None:
        return self._fingerprint

    @property
    def time_range(self) -> TimeRange | None:
        return self._time_range

    @property
    def busy(self) -> bool:
        return self._task is not None and not self._task.done()

    def subscribe(self, observer: SnapshotObserver) -> Callable[[], None]:
        """Register a callback for every published snapshot. Returns an unsubscribe callable."""
        self._observers.append(observer)

        def _unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return _unsubscribe

    # ------------------------------------------------------------------
    # Write side
    # ------------------------------------------------------------------

    def update(self, goals: Iterable[Goal], time_range: TimeRange) -> asyncio.Task[None] | None:
        """Schedule a recomputation unless goals and range are unchanged.

        Must be called from a running event loop. Returns the scheduled task,
        or None on the memoization fast path.
        """
        loop = asyncio.get_running_loop()
        time_range = TimeRange(time_range)
        snapshot = tuple(goals)
        fp = features.fingerprint(snapshot)

        if fp == self._fingerprint and time_range == self._time_range:
            logger.debug("Analytics unchanged (range=%s), skipping recompute", time_range.value)
            return None

        if self._token is not None and not self._token.is_set():
            logger.debug("Superseding in-flight analytics computation")
            self._token.set()

        token = threading.Event()
        self._token = token
        self._fingerprint = fp
        self._time_range = time_range
        self._task = loop.create_task(self._run(snapshot, time_range, token))
        return self._task

    async def wait_idle(self) -> None:
        """Wait until the most recent computation has finished (or been replaced and finished)."""
        while self._task is not None and not self._task.done():
            await asyncio.wait({self._task})

    def close(self) -> None:
        """Cancel any in-flight computation and drop all state and observers."""
        if self._token is not None:
            self._token.set()
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self._token = None
        self._fingerprint = None
        self._time_range = None
        self._snapshot = AnalyticsSnapshot()
        self._observers.clear()

    async def _run(self, goals: tuple[Goal, ...], time_range: TimeRange, token: threading.Event) -> None:
        loop = asyncio.get_running_loop()
        compute = functools.partial(
            features.compute_snapshot,
            goals,
            time_range,
            self._clock(),
            self._tz_name,
            self._week_start,
            self._max_streak_days,
            token.is_set,
        )
        try:
            result = await loop.run_in_executor(self._executor, compute)
        except Exception:
            logger.exception("Analytics computation failed (range=%s, goals=%d)", time_range.value, len(goals))
            if self._token is token:
                # Forget the key so the same input is retried on the next update.
                self._fingerprint = None
                self._time_range = None
            return

        if result is None or token.is_set():
            logger.debug("Discarding superseded analytics result (range=%s)", time_range.value)
            return

        self._publish(result)

    def _publish(self, snapshot: AnalyticsSnapshot) -> None:
        self._snapshot = snapshot
        logger.info(
            "Published analytics: range=%s streak=%d scoped=%d rate=%.2f",
            snapshot.time_range.value if snapshot.time_range else None,
            snapshot.current_streak,
            snapshot.scoped_completed_count,
            snapshot.scoped_completion_rate,
        )
        for observer in list(self._observers):
            try:
                observer(snapshot)
            except Exception:
                logger.exception("Analytics observer %r failed", observer)
