"""Course progress service layer.

Business logic for:
- Course, lesson and concept starts/completions
- Quiz results
- Project parts, submission attempts and mentor reviews
- Learner feedback

Every operation checks the learner's current progress snapshot, emits an
analytics event and merge-writes only the fields that change. Repeating an
operation that already took effect is a no-op.
"""

from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog
from google.cloud.firestore import SERVER_TIMESTAMP, ArrayUnion

from src.analytics.models import EventName

from .helpers import (
    PROJECT_PART_SUBMISSIONS,
    count_quizzes,
    get_concept,
    get_lesson,
    get_project_part,
    get_project_part_submissions,
    has_completed_concept,
    has_completed_lesson,
    has_started_concept,
    has_started_course,
    has_started_lesson,
    has_started_project,
    has_started_project_part,
)
from .models import (
    CourseProgress,
    FeedbackType,
    ProjectAttemptStatus,
    ReviewStatus,
    Submission,
)


if TYPE_CHECKING:
    from google.cloud.firestore import AsyncDocumentReference

    from src.analytics.emitter import AnalyticsEmitter

    from .store import CourseStore

logger = structlog.get_logger(__name__)


def server_timestamp() -> Any:
    """Sentinel resolved to the commit time by Firestore."""
    return SERVER_TIMESTAMP


def utc_now() -> datetime:
    return datetime.now(UTC)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class ProgressError(Exception):
    """Base progress error."""

    def __init__(self, message: str, code: str = "progress_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class LessonNotStartedError(ProgressError):
    """Operation needs a lesson the learner has not started."""

    def __init__(self, lesson: str):
        super().__init__(f"Lesson '{lesson}' has not been started", "lesson_not_started")


class ConceptNotStartedError(ProgressError):
    """Operation needs a concept the learner has not started."""

    def __init__(self, lesson: str, concept: str):
        super().__init__(
            f"Concept '{concept}' of lesson '{lesson}' has not been started",
            "concept_not_started",
        )


class ProjectPartNotStartedError(ProgressError):
    """Operation needs a project part the learner has not begun."""

    def __init__(self, part: str):
        super().__init__(
            f"Project part '{part}' has not been started", "project_part_not_started"
        )


class SubmissionNotFoundError(ProgressError):
    """The attempt is not recorded on the learner's course document."""

    def __init__(self, part: str, attempt: int):
        super().__init__(
            f"No submission attempt {attempt} for project part '{part}'",
            "submission_not_found",
        )


class SubmissionAlreadyClaimedError(ProgressError):
    """The submission already has a mentor or a review outcome."""

    def __init__(self, submission_id: str):
        super().__init__(
            f"Submission '{submission_id}' is already claimed for review",
            "submission_already_claimed",
        )


class SubmissionLimitReachedError(ProgressError):
    """All submission attempts for the part have been used."""

    def __init__(self, part: str, limit: int):
        super().__init__(
            f"All {limit} submission attempts for project part '{part}' are used",
            "submission_limit_reached",
        )


# ==============================================================================
# Progress Service
# ==============================================================================


class ProgressService:
    """Records a learner's progress through a course."""

    def __init__(
        self,
        store: "CourseStore",
        analytics: "AnalyticsEmitter",
        ts: Callable[[], Any] = server_timestamp,
        current_time: Callable[[], datetime] = utc_now,
        max_submissions: int = PROJECT_PART_SUBMISSIONS,
    ):
        """Initialize the service.

        Args:
            store: Document store accessor
            analytics: Analytics event sink
            ts: Timestamp factory for top-level fields (server timestamp)
            current_time: Concrete timestamp factory, used inside arrays and
                submission documents where server timestamps are not allowed
            max_submissions: Submission attempts allowed per project part
        """
        self.store = store
        self.analytics = analytics
        self.ts = ts
        self.current_time = current_time
        self.max_submissions = max_submissions

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def get_course_progress(self, uid: str, course_id: str) -> CourseProgress:
        """Current progress snapshot for a learner's course."""
        return await self.store.get_course(uid, course_id)

    async def list_submissions(self, uid: str, course_id: str) -> list[Submission]:
        documents = await self.store.list_submissions(uid, course_id)
        return [Submission.from_dict(doc) for doc in documents]

    # ==========================================================================
    # Lessons
    # ==========================================================================

    async def handle_lesson_start(
        self,
        uid: str,
        course_id: str,
        progress: CourseProgress,
        lesson: str,
    ) -> bool:
        """Start the lesson, and the course itself on the first lesson.

        Returns:
            True if anything was written
        """
        data: dict[str, Any] = {}

        if not has_started_course(progress):
            self.analytics.log_event(
                EventName.COURSE_STARTED, {"course": course_id}, user_id=uid
            )
            data["started_at"] = self.ts()
            data["lessons"] = {}

        if not has_started_lesson(progress, lesson):
            self.analytics.log_event(
                EventName.LESSON_STARTED,
                {"course": course_id, "lesson": lesson},
                user_id=uid,
            )
            data.setdefault("lessons", {})[lesson] = {
                "started_at": self.ts(),
                "concepts": {},
            }

        if not data:
            return False

        await self.store.update_course(uid, course_id, data)
        logger.info(
            "lesson_started",
            course_id=course_id,
            lesson=lesson,
            course_started="started_at" in data,
        )
        return True

    async def handle_lesson_complete(
        self,
        uid: str,
        course_id: str,
        progress: CourseProgress,
        lesson: str,
    ) -> bool:
        """Mark the lesson complete (no-op if it already is)."""
        if has_completed_lesson(progress, lesson):
            return True

        self.analytics.log_event(
            EventName.LESSON_COMPLETED,
            {"course": course_id, "lesson": lesson},
            user_id=uid,
        )
        await self.store.update_course(
            uid,
            course_id,
            {"lessons": {lesson: {"completed_at": self.ts()}}},
        )
        logger.info("lesson_completed", course_id=course_id, lesson=lesson)
        return True

    # ==========================================================================
    # Concepts and quizzes
    # ==========================================================================

    async def handle_concept_started(
        self,
        uid: str,
        course_id: str,
        progress: CourseProgress,
        lesson: str,
        concept: str,
    ) -> bool:
        """Start a concept within a started lesson.

        Raises:
            LessonNotStartedError: If the lesson is not in the snapshot
        """
        if has_started_concept(progress, lesson, concept):
            return False
        if get_lesson(progress, lesson) is None:
            raise LessonNotStartedError(lesson)

        self.analytics.log_event(
            EventName.CONCEPT_STARTED,
            {"course": course_id, "lesson": lesson, "concept": concept},
            user_id=uid,
        )
        await self.store.update_course(
            uid,
            course_id,
            {"lessons": {lesson: {"concepts": {concept: {"started_at": self.ts()}}}}},
        )
        logger.info(
            "concept_started", course_id=course_id, lesson=lesson, concept=concept
        )
        return True

    async def handle_concept_complete(
        self,
        uid: str,
        course_id: str,
        progress: CourseProgress,
        lesson: str,
        concept: str,
    ) -> bool:
        """Mark the concept complete (no-op if it already is)."""
        if has_completed_concept(progress, lesson, concept):
            return True

        self.analytics.log_event(
            EventName.CONCEPT_COMPLETED,
            {"course": course_id, "lesson": lesson, "concept": concept},
            user_id=uid,
        )
        await self.store.update_course(
            uid,
            course_id,
            {
                "lessons": {
                    lesson: {"concepts": {concept: {"completed_at": self.ts()}}}
                }
            },
        )
        logger.info(
            "concept_completed", course_id=course_id, lesson=lesson, concept=concept
        )
        return True

    async def handle_quiz_finish(
        self,
        uid: str,
        course_id: str,
        progress: CourseProgress,
        lesson: str,
        concept: str,
        num_quizzes: int,
        correct_answers: int,
        total_questions: int,
    ) -> bool:
        """Record a finished quiz while the concept has quizzes left.

        Args:
            num_quizzes: Number of quizzes the concept contains
            correct_answers: Questions answered correctly
            total_questions: Questions in the finished quiz

        Returns:
            True if the result was recorded

        Raises:
            ConceptNotStartedError: If the concept is not in the snapshot
        """
        if get_concept(progress, lesson, concept) is None:
            raise ConceptNotStartedError(lesson, concept)

        if count_quizzes(progress, lesson, concept) >= num_quizzes:
            return False

        percentage = (correct_answers / total_questions) * 100

        self.analytics.log_event(
            EventName.QUIZ_COMPLETED,
            {
                "course": course_id,
                "lesson": lesson,
                "concept": concept,
                "percentage": percentage,
                "questions": total_questions,
                "correct": correct_answers,
            },
            user_id=uid,
        )
        result = {
            "correct": correct_answers,
            "total": total_questions,
            "percentage": percentage,
        }
        await self.store.update_course(
            uid,
            course_id,
            {
                "lessons": {
                    lesson: {"concepts": {concept: {"quizzes": ArrayUnion([result])}}}
                }
            },
        )
        logger.info(
            "quiz_completed",
            course_id=course_id,
            lesson=lesson,
            concept=concept,
            percentage=round(percentage, 2),
        )
        return True

    # ==========================================================================
    # Project
    # ==========================================================================

    async def handle_project_part_begin(
        self,
        uid: str,
        course_id: str,
        progress: CourseProgress,
        part: str,
    ) -> bool:
        """Begin a project part, and the project itself on the first part.

        A part that was already begun keeps its submissions.

        Returns:
            True if anything was written
        """
        if has_started_project_part(progress, part):
            return False

        project: dict[str, Any] = {}

        if not has_started_project(progress):
            self.analytics.log_event(
                EventName.PROJECT_STARTED, {"course": course_id}, user_id=uid
            )
            project["started_at"] = self.ts()

        self.analytics.log_event(
            EventName.PROJECT_PART_STARTED,
            {"course": course_id, "part": part},
            user_id=uid,
        )
        project["parts"] = {part: {"started_at": self.ts(), "submissions": []}}

        await self.store.update_course(uid, course_id, {"project": project})
        logger.info(
            "project_part_started",
            course_id=course_id,
            part=part,
            project_started="started_at" in project,
        )
        return True

    async def add_submission(
        self, uid: str, course_id: str, submission: Submission
    ) -> "AsyncDocumentReference":
        """Store a submission document under a new id."""
        ref = await self.store.add_submission(uid, course_id, submission.to_dict())
        submission.id = ref.id
        return ref

    async def handle_attempt_submission(
        self,
        uid: str,
        course_id: str,
        progress: CourseProgress,
        part: str,
        content: str,
    ) -> bool:
        """Submit an attempt for a project part while attempts remain.

        Writes the submission document first, then appends it to the part's
        ``submissions`` array on the course document.

        Returns:
            True if the attempt was submitted, False if no attempts remain

        Raises:
            ProjectPartNotStartedError: If the part is not in the snapshot
        """
        if get_project_part(progress, part) is None:
            raise ProjectPartNotStartedError(part)

        submissions = get_project_part_submissions(progress, part)
        if len(submissions) >= self.max_submissions:
            logger.info(
                "submission_limit_reached",
                course_id=course_id,
                part=part,
                attempts=len(submissions),
            )
            return False

        attempt = len(submissions) + 1

        self.analytics.log_event(
            EventName.PROJECT_SUBMISSION_CREATED,
            {"course": course_id, "part": part, "attempt": attempt},
            user_id=uid,
        )

        time = self.current_time()
        submission = Submission(
            course=course_id,
            part=part,
            attempt=attempt,
            student=self.store.user_ref(uid),
            submitted_at=time,
            submission_content=content,
        )
        submission_ref = await self.add_submission(uid, course_id, submission)

        await self.store.update_course(
            uid,
            course_id,
            {
                "project": {
                    "parts": {
                        part: {
                            "submissions": ArrayUnion(
                                [{"submitted_at": time, "submission": submission_ref}]
                            )
                        }
                    }
                }
            },
        )
        logger.info(
            "project_submission_created",
            course_id=course_id,
            part=part,
            attempt=attempt,
            submission_id=submission_ref.id,
        )
        return True

    async def handle_review_start(
        self,
        mentor_uid: str,
        student_uid: str,
        course_id: str,
        part: str,
        attempt: int,
        submission_id: str,
    ) -> bool:
        """A mentor claims a submission for review.

        Raises:
            SubmissionNotFoundError: If the submission does not exist or belongs
                to another part or attempt
            SubmissionAlreadyClaimedError: If a mentor already claimed or
                reviewed it
        """
        document = await self.store.get_submission(student_uid, course_id, submission_id)
        if (
            document is None
            or document.get("part") != part
            or document.get("attempt") != attempt
        ):
            raise SubmissionNotFoundError(part, attempt)
        if document.get("mentor") is not None or document.get("status") is not None:
            raise SubmissionAlreadyClaimedError(submission_id)

        self.analytics.log_event(
            EventName.PROJECT_SUBMISSION_REVIEW_STARTED,
            {"course": course_id, "part": part, "attempt": attempt},
            user_id=mentor_uid,
        )

        time = self.current_time()

        await self.store.update_submission(
            student_uid,
            course_id,
            submission_id,
            {"mentor": self.store.user_ref(mentor_uid), "review_started_at": time},
        )
        await self.store.update_review(
            mentor_uid,
            submission_id,
            {
                "status": ReviewStatus.PENDING.value,
                "started_at": time,
                "student": self.store.user_ref(student_uid),
                "course": course_id,
                "part": part,
                "attempt": attempt,
                "submission": self.store.submissions_ref(student_uid, course_id).document(
                    submission_id
                ),
            },
        )
        logger.info(
            "project_submission_review_started",
            course_id=course_id,
            part=part,
            attempt=attempt,
            submission_id=submission_id,
        )
        return True

    async def handle_review_submission(
        self,
        mentor_uid: str,
        student_uid: str,
        course_id: str,
        part: str,
        attempt: int,
        submission_id: str,
        status: ProjectAttemptStatus,
        progress: CourseProgress,
        content: str,
    ) -> bool:
        """Record a mentor's review of a submission attempt.

        Updates, in order: the submission document, the attempt entry on the
        learner's course document (which also completes the part), and the
        mentor's review record.

        Args:
            progress: The student's progress snapshot

        Raises:
            SubmissionNotFoundError: If the attempt is not in the snapshot or
                its entry references a different submission
        """
        submissions = [dict(s) for s in get_project_part_submissions(progress, part)]
        if not 1 <= attempt <= len(submissions):
            raise SubmissionNotFoundError(part, attempt)

        submission_ref = submissions[attempt - 1].get("submission")
        if getattr(submission_ref, "id", None) != submission_id:
            raise SubmissionNotFoundError(part, attempt)

        status_value = ProjectAttemptStatus(status).value

        self.analytics.log_event(
            EventName.PROJECT_SUBMISSION_REVIEWED,
            {"course": course_id, "part": part, "attempt": attempt},
            user_id=mentor_uid,
        )

        time = self.current_time()

        await self.store.update_submission(
            student_uid,
            course_id,
            submission_id,
            {
                "status": status_value,
                "review_content": content,
                "review_ended_at": time,
            },
        )

        submissions[attempt - 1]["status"] = status_value
        submissions[attempt - 1]["reviewed_at"] = time

        await self.store.update_course(
            student_uid,
            course_id,
            {
                "project": {
                    "parts": {part: {"completed_at": time, "submissions": submissions}}
                }
            },
        )

        await self.store.update_review(
            mentor_uid,
            submission_id,
            {"status": ReviewStatus.REVIEWED.value, "completed_at": time},
        )
        logger.info(
            "project_submission_reviewed",
            course_id=course_id,
            part=part,
            attempt=attempt,
            submission_id=submission_id,
            status=status_value,
        )
        return True

    # ==========================================================================
    # Feedback
    # ==========================================================================

    async def update_feedback(
        self, uid: str, course_id: str, feedback_id: str, data: dict[str, Any]
    ) -> None:
        await self.store.update_feedback(uid, course_id, feedback_id, data)

    async def handle_provide_feedback(
        self,
        uid: str,
        course_id: str,
        feedback_id: str,
        value: float,
        feedback: str | None,
        feedback_type: FeedbackType,
    ) -> None:
        """Store (or overwrite) the learner's feedback on a concept, lesson or project."""
        type_value = FeedbackType(feedback_type).value

        self.analytics.log_event(
            EventName.FEEDBACK_CREATED,
            {"course": course_id, "feedback": feedback_id, "type": type_value},
            user_id=uid,
        )
        await self.update_feedback(
            uid,
            course_id,
            feedback_id,
            {"value": value, "feedback": feedback, "type": type_value},
        )
        logger.info(
            "feedback_created",
            course_id=course_id,
            feedback_id=feedback_id,
            type=type_value,
        )
