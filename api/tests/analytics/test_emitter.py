"""Tests for the analytics module.

Tests cover:
- AnalyticsEvent model creation
- AnalyticsEmitter fire-and-forget emission and batching
- AnalyticsCollector batch writes
- Redis hourly counters
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.analytics.collector import MAX_BATCH_WRITES, AnalyticsCollector
from src.analytics.emitter import COUNTER_TTL_SECONDS, AnalyticsEmitter
from src.analytics.models import AnalyticsEvent, EventName, get_hour_bucket
from src.core.context import RequestContext
from src.core.redis import analytics_counter_key


# ==============================================================================
# Model Tests
# ==============================================================================


class TestAnalyticsEvent:
    """Tests for AnalyticsEvent model."""

    def test_create_event(self):
        event = AnalyticsEvent.create(
            event_name=EventName.LESSON_STARTED,
            params={"course": "c1", "lesson": "intro"},
            user_id="u1",
            request_id="req-123",
        )

        assert event.event_name == "lesson_started"
        assert event.params == {"course": "c1", "lesson": "intro"}
        assert event.user_id == "u1"
        assert event.request_id == "req-123"
        assert len(event.event_id) == 32
        assert event.created_at.tzinfo is UTC
        assert event.hour_bucket == get_hour_bucket(event.created_at)

    def test_empty_request_id_is_none(self):
        event = AnalyticsEvent.create(EventName.COURSE_STARTED, request_id="")
        assert event.request_id is None
        assert event.params == {}

    def test_to_document(self):
        event = AnalyticsEvent.create(EventName.COURSE_STARTED, {"course": "c1"})
        document = event.to_document()

        assert document["event_name"] == "course_started"
        assert document["params"] == {"course": "c1"}
        assert document["created_at"] == event.created_at
        assert "event_id" not in document

    def test_hour_bucket_format(self):
        bucket = get_hour_bucket(datetime(2025, 1, 20, 14, 30, tzinfo=UTC))
        assert bucket == "2025-01-20-14"

    def test_counter_key(self):
        assert analytics_counter_key("2025-01-20-14", "quiz_completed") == (
            "analytics:2025-01-20-14:quiz_completed"
        )


# ==============================================================================
# Emitter Tests
# ==============================================================================


class TestAnalyticsEmitter:
    """Tests for AnalyticsEmitter."""

    @pytest.fixture
    def collector(self):
        collector = MagicMock(spec=AnalyticsCollector)
        collector.process_batch = AsyncMock()
        return collector

    @pytest.fixture
    def emitter(self, collector):
        return AnalyticsEmitter(collector=collector, queue_size=100, flush_interval=0.05)

    def test_log_event_queues(self, emitter):
        result = emitter.log_event(EventName.LESSON_STARTED, {"course": "c1"}, user_id="u1")

        assert result is True
        assert emitter.queue_length == 1

    def test_log_event_picks_up_request_id(self, emitter):
        with RequestContext(request_id="req-789"):
            emitter.log_event(EventName.COURSE_STARTED)

        event = emitter._queue.get_nowait()
        assert event.request_id == "req-789"

    def test_disabled_emitter(self, collector):
        emitter = AnalyticsEmitter(collector=collector, enabled=False)

        assert emitter.log_event(EventName.COURSE_STARTED) is False
        assert emitter.queue_length == 0

    def test_emit_queue_full(self, emitter):
        """Emitting when the queue is full drops the event."""
        for _ in range(100):
            emitter.log_event(EventName.CONCEPT_STARTED)

        result = emitter.log_event(EventName.CONCEPT_STARTED)

        assert result is False
        assert emitter.get_stats()["events_dropped"] == 1
        assert emitter.get_stats()["events_emitted"] == 100

    def test_get_stats(self, emitter):
        stats = emitter.get_stats()

        assert stats["enabled"] is True
        assert stats["running"] is False
        assert stats["queue_size"] == 100
        assert stats["queue_length"] == 0
        assert stats["last_flush_at"] is None
        assert stats["uptime_seconds"] == 0.0

    @pytest.mark.asyncio
    async def test_start_stop(self, emitter):
        await emitter.start()
        assert emitter.is_running is True

        await emitter.stop()
        assert emitter.is_running is False

    @pytest.mark.asyncio
    async def test_stop_flushes_queued_events(self, emitter, collector):
        emitter.log_event(EventName.LESSON_STARTED)
        emitter.log_event(EventName.LESSON_COMPLETED)

        await emitter.stop()

        collector.process_batch.assert_awaited_once()
        batch = collector.process_batch.await_args.args[0]
        assert [e.event_name for e in batch] == ["lesson_started", "lesson_completed"]
        assert emitter.get_stats()["events_processed"] == 2
        assert emitter.queue_length == 0

    @pytest.mark.asyncio
    async def test_worker_flushes_on_batch_size(self, collector):
        emitter = AnalyticsEmitter(collector=collector, batch_size=2, flush_interval=10)
        await emitter.start()

        emitter.log_event(EventName.LESSON_STARTED)
        emitter.log_event(EventName.LESSON_STARTED)
        await emitter.stop()

        assert emitter.get_stats()["events_processed"] == 2

    @pytest.mark.asyncio
    async def test_flush_error_is_contained(self, emitter, collector):
        collector.process_batch.side_effect = RuntimeError("firestore down")
        emitter.log_event(EventName.QUIZ_COMPLETED)

        await emitter.stop()

        assert emitter.get_stats()["events_processed"] == 0
        assert emitter.get_stats()["batches_flushed"] == 0

    @pytest.mark.asyncio
    async def test_redis_counters(self):
        redis = MagicMock()
        pipe = redis.pipeline.return_value
        pipe.execute = AsyncMock()
        emitter = AnalyticsEmitter(collector=None, redis=redis)

        emitter.log_event(EventName.LESSON_STARTED)
        emitter.log_event(EventName.LESSON_STARTED)
        emitter.log_event(EventName.QUIZ_COMPLETED)
        await emitter.stop()

        increments = {c.args[0].rsplit(":", 1)[1]: c.args[1] for c in pipe.incrby.call_args_list}
        assert increments == {"lesson_started": 2, "quiz_completed": 1}
        for c in pipe.expire.call_args_list:
            assert c.args[1] == COUNTER_TTL_SECONDS
        pipe.execute.assert_awaited_once()


# ==============================================================================
# Collector Tests
# ==============================================================================


class TestAnalyticsCollector:
    @pytest.fixture
    def db(self):
        db = MagicMock()
        db.batch.return_value.commit = AsyncMock()
        return db

    @pytest.mark.asyncio
    async def test_process_batch(self, db):
        collector = AnalyticsCollector(db, collection="events")
        events = [AnalyticsEvent.create(EventName.COURSE_STARTED) for _ in range(3)]

        await collector.process_batch(events)

        db.collection.assert_called_once_with("events")
        collection = db.collection.return_value
        assert [c.args[0] for c in collection.document.call_args_list] == [
            e.event_id for e in events
        ]
        batch = db.batch.return_value
        assert batch.set.call_count == 3
        batch.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_large_batches_are_chunked(self, db):
        collector = AnalyticsCollector(db)
        events = [
            AnalyticsEvent.create(EventName.CONCEPT_STARTED)
            for _ in range(MAX_BATCH_WRITES + 1)
        ]

        await collector.process_batch(events)

        assert db.batch.call_count == 2
        assert db.batch.return_value.commit.await_count == 2

    @pytest.mark.asyncio
    async def test_empty_batch(self, db):
        await AnalyticsCollector(db).process_batch([])
        db.batch.assert_not_called()
