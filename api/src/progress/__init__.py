"""Course progress tracking module.

Provides:
- Lesson, concept and quiz progress
- Project parts, submission attempts and mentor reviews
- Learner feedback
"""

from .models import (
    CourseProgress,
    FeedbackType,
    ProjectAttemptStatus,
    ReviewStatus,
    Submission,
)
from .service import ProgressError, ProgressService
from .store import CourseStore


__all__ = [
    "CourseProgress",
    "CourseStore",
    "FeedbackType",
    "ProgressError",
    "ProgressService",
    "ProjectAttemptStatus",
    "ReviewStatus",
    "Submission",
]
