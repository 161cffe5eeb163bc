"""Pydantic schemas for course progress endpoints.

Request and response models for:
- Lesson/concept starts and completions
- Quiz results
- Project submissions and mentor reviews
- Feedback
"""

from datetime import datetime
from typing import Any

from google.cloud.firestore_v1.base_document import BaseDocumentReference
from pydantic import BaseModel, ConfigDict, Field, model_validator

from .models import FeedbackType, ProjectAttemptStatus, Submission


def to_jsonable(value: Any) -> Any:
    """Convert a stored document to JSON-friendly values.

    Document references become their slash-separated path.
    """
    if isinstance(value, BaseDocumentReference):
        return value.path
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [to_jsonable(v) for v in value]
    return value


# ==============================================================================
# Progress Schemas
# ==============================================================================


class CourseProgressResponse(BaseModel):
    """A learner's course progress document."""

    course_id: str
    progress: dict[str, Any] = Field(
        default_factory=dict, description="Progress document as stored"
    )

    @classmethod
    def from_document(
        cls, course_id: str, document: dict[str, Any]
    ) -> "CourseProgressResponse":
        return cls(course_id=course_id, progress=to_jsonable(document))


class OperationResponse(BaseModel):
    """Result of a progress operation plus the refreshed progress document."""

    course_id: str
    changed: bool = Field(description="False when the operation was already recorded")
    progress: dict[str, Any] = Field(default_factory=dict)


# ==============================================================================
# Quiz Schemas
# ==============================================================================


class QuizFinishRequest(BaseModel):
    """Result of a quiz the learner just finished."""

    num_quizzes: int = Field(..., ge=1, description="Quizzes the concept contains")
    correct_answers: int = Field(..., ge=0, description="Correctly answered questions")
    total_questions: int = Field(..., gt=0, description="Questions in the quiz")

    @model_validator(mode="after")
    def check_correct_within_total(self) -> "QuizFinishRequest":
        if self.correct_answers > self.total_questions:
            msg = "correct_answers cannot exceed total_questions"
            raise ValueError(msg)
        return self


# ==============================================================================
# Project Schemas
# ==============================================================================


class AttemptSubmissionRequest(BaseModel):
    """A project part attempt."""

    content: str = Field(..., min_length=1, description="Submitted content")


class ReviewStartRequest(BaseModel):
    """A mentor claiming a submission."""

    part: str = Field(..., min_length=1, description="Project part ID")
    attempt: int = Field(..., ge=1, description="1-based attempt number")


class ReviewSubmissionRequest(BaseModel):
    """A mentor's review of a submission."""

    part: str = Field(..., min_length=1, description="Project part ID")
    attempt: int = Field(..., ge=1, description="1-based attempt number")
    status: ProjectAttemptStatus
    content: str = Field(..., description="Review text")


class SubmissionResponse(BaseModel):
    """Submission document."""

    model_config = ConfigDict(from_attributes=True)

    id: str | None = None
    course: str
    part: str
    attempt: int
    submitted_at: datetime
    submission_content: str
    mentor: str | None = None
    status: ProjectAttemptStatus | None = None
    review_content: str | None = None
    review_started_at: datetime | None = None
    review_ended_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: Submission) -> "SubmissionResponse":
        return cls(
            id=entity.id,
            course=entity.course,
            part=entity.part,
            attempt=entity.attempt,
            submitted_at=entity.submitted_at,
            submission_content=entity.submission_content,
            mentor=to_jsonable(entity.mentor),
            status=ProjectAttemptStatus(entity.status) if entity.status else None,
            review_content=entity.review_content,
            review_started_at=entity.review_started_at,
            review_ended_at=entity.review_ended_at,
        )


class SubmissionListResponse(BaseModel):
    items: list[SubmissionResponse]
    total: int


class SubmissionCreatedResponse(BaseModel):
    course_id: str
    part: str
    attempts_used: int
    attempts_allowed: int


# ==============================================================================
# Feedback Schemas
# ==============================================================================


class FeedbackRequest(BaseModel):
    """Learner feedback on a concept, lesson or project."""

    value: float = Field(..., description="Rating value")
    feedback: str | None = Field(None, max_length=5000, description="Free-text feedback")
    type: FeedbackType


# ==============================================================================
# Generic Response
# ==============================================================================


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str
    success: bool = True
