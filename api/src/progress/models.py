"""Firestore document shapes for course progress.

Collections (per learner):
- users/{uid}/courses/{course_id}: course progress document (nested maps)
- users/{uid}/courses/{course_id}/submissions/{id}: project submissions
- users/{uid}/courses/{course_id}/feedback/{id}: learner feedback
- users/{mentor_uid}/reviews/{submission_id}: a mentor's review records

The course progress document is kept as a plain ``dict`` mirroring the
stored layout; only the documents this service creates get entity classes.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any


# Course progress document, e.g.
# {
#     "started_at": ts,
#     "lessons": {lesson: {"started_at": ts, "completed_at": ts,
#                          "concepts": {concept: {"started_at": ts,
#                                                 "quizzes": [...]}}}},
#     "project": {"started_at": ts,
#                 "parts": {part: {"started_at": ts, "submissions": [...]}}},
# }
CourseProgress = dict[str, Any]


class ProjectAttemptStatus(str, Enum):
    """Outcome of a mentor review."""

    PASSED = "passed"
    FAILED = "failed"


class FeedbackType(str, Enum):
    """What a piece of learner feedback is about."""

    CONCEPT = "concept"
    LESSON = "lesson"
    PROJECT = "project"


class ReviewStatus(str, Enum):
    """State of a mentor's review record."""

    PENDING = "pending"
    REVIEWED = "reviewed"


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


class Submission:
    """Project submission document.

    Attributes:
        course: Course ID
        part: Project part ID
        attempt: 1-based attempt number
        student: Reference to the learner's user document
        submitted_at: Submission timestamp
        submission_content: Learner's submitted content
        mentor: Reference to the reviewing mentor (None until claimed)
        status: Review outcome (None until reviewed)
        review_content: Mentor's review text
        review_started_at: When the mentor claimed the submission
        review_ended_at: When the review was submitted
        id: Document ID (assigned by the store)
    """

    def __init__(
        self,
        course: str,
        part: str,
        attempt: int,
        student: Any,
        submitted_at: datetime,
        submission_content: str,
        mentor: Any = None,
        status: str | None = None,
        review_content: str | None = None,
        review_started_at: datetime | None = None,
        review_ended_at: datetime | None = None,
        id: str | None = None,  # noqa: A002
    ):
        self.id = id
        self.course = course
        self.part = part
        self.attempt = attempt
        self.student = student
        self.submitted_at = ensure_utc_aware(submitted_at)
        self.submission_content = submission_content
        self.mentor = mentor
        self.status = status
        self.review_content = review_content
        self.review_started_at = ensure_utc_aware(review_started_at)
        self.review_ended_at = ensure_utc_aware(review_ended_at)

    @property
    def is_reviewed(self) -> bool:
        return self.status is not None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Submission":
        """Create from a stored document."""
        return cls(
            id=data.get("id"),
            course=data["course"],
            part=data["part"],
            attempt=int(data["attempt"]),
            student=data.get("student"),
            submitted_at=data["submitted_at"],
            submission_content=data.get("submission_content") or "",
            mentor=data.get("mentor"),
            status=data.get("status"),
            review_content=data.get("review_content"),
            review_started_at=data.get("review_started_at"),
            review_ended_at=data.get("review_ended_at"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Document body; ``id`` is added by the store on write."""
        return {
            "course": self.course,
            "part": self.part,
            "attempt": self.attempt,
            "student": self.student,
            "submitted_at": self.submitted_at,
            "submission_content": self.submission_content,
            "mentor": self.mentor,
            "status": self.status,
            "review_content": self.review_content,
            "review_started_at": self.review_started_at,
            "review_ended_at": self.review_ended_at,
        }

    def __repr__(self) -> str:
        return (
            f"<Submission {self.id} course={self.course} part={self.part} "
            f"attempt={self.attempt} status={self.status}>"
        )
