"""Analytics collector: batch writes of events to Firestore."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog


if TYPE_CHECKING:
    from google.cloud.firestore import AsyncClient

    from .models import AnalyticsEvent


logger = structlog.get_logger(__name__)

# Firestore rejects write batches with more operations than this
MAX_BATCH_WRITES = 500


class AnalyticsCollector:
    """Persists analytics events, one document per event."""

    def __init__(self, db: AsyncClient, collection: str = "analytics_events") -> None:
        self.db = db
        self.collection = collection

    async def process_batch(self, events: list[AnalyticsEvent]) -> None:
        """Write events in chunks of at most ``MAX_BATCH_WRITES``.

        The event id doubles as the document id, so a retried chunk overwrites
        rather than duplicates.
        """
        if not events:
            return

        collection = self.db.collection(self.collection)

        for start in range(0, len(events), MAX_BATCH_WRITES):
            chunk = events[start : start + MAX_BATCH_WRITES]
            batch = self.db.batch()
            for event in chunk:
                batch.set(collection.document(event.event_id), event.to_document())
            await batch.commit()

        logger.debug(
            "analytics_events_written",
            count=len(events),
            collection=self.collection,
        )
