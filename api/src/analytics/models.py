"""Analytics event model and event name constants."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4


def get_hour_bucket(dt: datetime | None = None) -> str:
    """Generate hour bucket key (e.g., '2025-01-20-14')."""
    if dt is None:
        dt = datetime.now(UTC)
    return dt.strftime("%Y-%m-%d-%H")


class EventName:
    """Analytics event names emitted by progress operations."""

    COURSE_STARTED = "course_started"
    LESSON_STARTED = "lesson_started"
    LESSON_COMPLETED = "lesson_completed"
    CONCEPT_STARTED = "concept_started"
    CONCEPT_COMPLETED = "concept_completed"
    QUIZ_COMPLETED = "quiz_completed"
    PROJECT_STARTED = "project_started"
    PROJECT_PART_STARTED = "project_part_started"
    PROJECT_SUBMISSION_CREATED = "project_submission_created"
    PROJECT_SUBMISSION_REVIEW_STARTED = "project_submission_review_started"
    PROJECT_SUBMISSION_REVIEWED = "project_submission_reviewed"
    FEEDBACK_CREATED = "feedback_created"


@dataclass
class AnalyticsEvent:
    """A single analytics event.

    ``params`` mirrors the event parameters a client analytics SDK receives
    (course, lesson, concept, part, attempt, percentage, ...).
    """

    event_id: str
    event_name: str
    created_at: datetime
    hour_bucket: str
    params: dict[str, Any] = field(default_factory=dict)
    user_id: str | None = None
    request_id: str | None = None

    @classmethod
    def create(
        cls,
        event_name: str,
        params: dict[str, Any] | None = None,
        user_id: str | None = None,
        request_id: str | None = None,
    ) -> "AnalyticsEvent":
        """Factory method to create a new event stamped with the current time."""
        now = datetime.now(UTC)
        return cls(
            event_id=uuid4().hex,
            event_name=event_name,
            created_at=now,
            hour_bucket=get_hour_bucket(now),
            params=dict(params or {}),
            user_id=user_id,
            request_id=request_id or None,
        )

    def to_document(self) -> dict[str, Any]:
        """Serialise for the analytics collection."""
        return {
            "event_name": self.event_name,
            "params": self.params,
            "user_id": self.user_id,
            "request_id": self.request_id,
            "hour_bucket": self.hour_bucket,
            "created_at": self.created_at,
        }
