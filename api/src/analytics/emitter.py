"""Fire-and-forget analytics emitter with background processing.

Key features:
- Non-blocking emission (``asyncio.Queue.put_nowait``), so an analytics
  outage never fails or slows a progress write
- Graceful degradation (drop + log on queue full)
- Batch processing (batch_size events or flush_interval timeout)
- Optional Redis hourly counters per event name
"""

from __future__ import annotations

import asyncio
import time
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog

from src.core.context import get_request_id
from src.core.redis import analytics_counter_key

from .models import AnalyticsEvent, get_hour_bucket


if TYPE_CHECKING:
    from redis.asyncio import Redis

    from .collector import AnalyticsCollector


logger = structlog.get_logger(__name__)

# Redis counters outlive the hour they count by one hour
COUNTER_TTL_SECONDS = 7200


class AnalyticsEmitter:
    """Non-blocking analytics emitter with a background worker.

    Events are queued by ``log_event`` and written in batches by the worker
    started with ``start()``. Events emitted while the worker is stopped stay
    queued until ``start()`` or ``stop()`` flushes them.
    """

    def __init__(
        self,
        collector: AnalyticsCollector | None = None,
        redis: Redis | None = None,
        queue_size: int = 10000,
        batch_size: int = 100,
        flush_interval: float = 1.0,
        enabled: bool = True,
    ) -> None:
        """Initialize the emitter.

        Args:
            collector: Sink for event batches (None = events are only counted)
            redis: Optional Redis client for real-time counters
            queue_size: Maximum queue size (events dropped when full)
            batch_size: Events per batch write
            flush_interval: Max seconds between batch flushes
            enabled: When False, ``log_event`` is a no-op
        """
        self.collector = collector
        self.redis = redis
        self.queue_size = queue_size
        self.batch_size = batch_size
        self.flush_interval = flush_interval
        self.enabled = enabled

        self._queue: asyncio.Queue[AnalyticsEvent] = asyncio.Queue(maxsize=queue_size)
        self._running = False
        self._worker_task: asyncio.Task | None = None
        self._start_time: float = 0.0
        self._last_flush_at: datetime | None = None

        self._events_emitted = 0
        self._events_dropped = 0
        self._events_processed = 0
        self._batches_flushed = 0

    # ==========================================================================
    # Fire-and-forget emission
    # ==========================================================================

    def emit(self, event: AnalyticsEvent) -> bool:
        """Queue an event. Returns False if it was dropped."""
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self._events_dropped += 1
            logger.warning(
                "analytics_queue_full",
                event_name=event.event_name,
                queue_size=self.queue_size,
                dropped_total=self._events_dropped,
            )
            return False

        self._events_emitted += 1
        return True

    def log_event(
        self,
        event_name: str,
        params: dict[str, Any] | None = None,
        user_id: str | None = None,
    ) -> bool:
        """Record a named analytics event with its parameters.

        Returns:
            True if queued, False if disabled or dropped
        """
        if not self.enabled:
            return False

        event = AnalyticsEvent.create(
            event_name=event_name,
            params=params,
            user_id=user_id,
            request_id=get_request_id(),
        )
        return self.emit(event)

    # ==========================================================================
    # Background Worker
    # ==========================================================================

    async def start(self) -> None:
        """Start the background worker."""
        if self._running:
            logger.warning("analytics_emitter_already_running")
            return

        self._running = True
        self._start_time = time.monotonic()
        self._worker_task = asyncio.create_task(
            self._worker_loop(),
            name="analytics_worker",
        )
        logger.info(
            "analytics_emitter_started",
            queue_size=self.queue_size,
            batch_size=self.batch_size,
            flush_interval=self.flush_interval,
        )

    async def stop(self) -> None:
        """Stop the worker and flush whatever is still queued."""
        if self._running:
            self._running = False

            if self._worker_task:
                try:
                    await asyncio.wait_for(self._worker_task, timeout=5.0)
                except TimeoutError:
                    logger.warning("analytics_worker_stop_timeout")
                    self._worker_task.cancel()
                except asyncio.CancelledError:
                    pass
                self._worker_task = None

        await self._flush_remaining()

        logger.info(
            "analytics_emitter_stopped",
            events_emitted=self._events_emitted,
            events_processed=self._events_processed,
            events_dropped=self._events_dropped,
            batches_flushed=self._batches_flushed,
        )

    async def _worker_loop(self) -> None:
        """Collect events until the batch is full or the interval elapses."""
        batch: list[AnalyticsEvent] = []

        while self._running:
            try:
                timeout_reached = False
                try:
                    event = await asyncio.wait_for(
                        self._queue.get(),
                        timeout=self.flush_interval,
                    )
                    batch.append(event)
                except TimeoutError:
                    timeout_reached = True

                if len(batch) >= self.batch_size or (timeout_reached and batch):
                    await self._flush_batch(batch)
                    batch = []

            except asyncio.CancelledError:
                if batch:
                    await self._flush_batch(batch)
                raise

            except Exception:
                logger.exception("analytics_worker_error")
                await asyncio.sleep(0.1)

        if batch:
            await self._flush_batch(batch)

    async def _flush_batch(self, batch: list[AnalyticsEvent]) -> None:
        if not batch:
            return

        start_time = time.perf_counter()

        try:
            if self.collector:
                await self.collector.process_batch(batch)

            if self.redis:
                await self._update_redis_counters(batch)

        except Exception:
            logger.exception("analytics_batch_flush_error", batch_size=len(batch))
            return

        self._events_processed += len(batch)
        self._batches_flushed += 1
        self._last_flush_at = datetime.now(UTC)

        logger.debug(
            "analytics_batch_flushed",
            batch_size=len(batch),
            elapsed_ms=round((time.perf_counter() - start_time) * 1000, 2),
            total_processed=self._events_processed,
        )

    async def _flush_remaining(self) -> None:
        remaining: list[AnalyticsEvent] = []

        while not self._queue.empty():
            try:
                remaining.append(self._queue.get_nowait())
            except asyncio.QueueEmpty:
                break

        if remaining:
            logger.info("analytics_flushing_remaining", count=len(remaining))
            await self._flush_batch(remaining)

    async def _update_redis_counters(self, batch: list[AnalyticsEvent]) -> None:
        """Increment per-event-name hourly counters in a single pipeline."""
        if not self.redis:
            return

        hour_bucket = get_hour_bucket()
        counters: dict[str, int] = {}
        for event in batch:
            key = analytics_counter_key(hour_bucket, event.event_name)
            counters[key] = counters.get(key, 0) + 1

        try:
            pipe = self.redis.pipeline()
            for key, count in counters.items():
                pipe.incrby(key, count)
                pipe.expire(key, COUNTER_TTL_SECONDS)
            await pipe.execute()
        except Exception:
            logger.exception("analytics_redis_counter_error")

    # ==========================================================================
    # Status/Monitoring
    # ==========================================================================

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def queue_length(self) -> int:
        return self._queue.qsize()

    @property
    def uptime_seconds(self) -> float:
        if not self._running or self._start_time == 0:
            return 0.0
        return time.monotonic() - self._start_time

    def get_stats(self) -> dict[str, Any]:
        """Get emitter statistics for monitoring."""
        return {
            "enabled": self.enabled,
            "running": self._running,
            "queue_size": self.queue_size,
            "queue_length": self._queue.qsize(),
            "events_emitted": self._events_emitted,
            "events_processed": self._events_processed,
            "events_dropped": self._events_dropped,
            "batches_flushed": self._batches_flushed,
            "last_flush_at": self._last_flush_at,
            "uptime_seconds": self.uptime_seconds,
        }
