"""Analytics event sink.

Progress operations record named events (``lesson_started``,
``quiz_completed``, ...) through ``AnalyticsEmitter.log_event``; a background
worker batches them into Firestore via ``AnalyticsCollector``.
"""

from .collector import AnalyticsCollector
from .emitter import AnalyticsEmitter
from .models import AnalyticsEvent, EventName, get_hour_bucket


__all__ = [
    "AnalyticsCollector",
    "AnalyticsEmitter",
    "AnalyticsEvent",
    "EventName",
    "get_hour_bucket",
]
