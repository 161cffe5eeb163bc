"""Thin accessor over the Firestore documents used for course progress.

Every write is a merge-write (``set(..., merge=True)``): nested maps in
``data`` are merged into the stored document rather than replacing it.
Remote failures propagate to the caller unchanged.
"""

from typing import TYPE_CHECKING, Any

import structlog


if TYPE_CHECKING:
    from google.cloud.firestore import (
        AsyncClient,
        AsyncCollectionReference,
        AsyncDocumentReference,
    )


logger = structlog.get_logger(__name__)

USERS = "users"
COURSES = "courses"
SUBMISSIONS = "submissions"
FEEDBACK = "feedback"
REVIEWS = "reviews"


class CourseStore:
    """Document references and merge-writes for learner course data."""

    def __init__(self, db: "AsyncClient"):
        self.db = db

    # ==========================================================================
    # References
    # ==========================================================================

    def user_ref(self, uid: str) -> "AsyncDocumentReference":
        return self.db.collection(USERS).document(uid)

    def course_ref(self, uid: str, course_id: str) -> "AsyncDocumentReference":
        return self.user_ref(uid).collection(COURSES).document(course_id)

    def submissions_ref(self, uid: str, course_id: str) -> "AsyncCollectionReference":
        return self.course_ref(uid, course_id).collection(SUBMISSIONS)

    def feedback_ref(
        self, uid: str, course_id: str, feedback_id: str
    ) -> "AsyncDocumentReference":
        return self.course_ref(uid, course_id).collection(FEEDBACK).document(feedback_id)

    def review_ref(self, mentor_uid: str, submission_id: str) -> "AsyncDocumentReference":
        return self.user_ref(mentor_uid).collection(REVIEWS).document(submission_id)

    # ==========================================================================
    # Course progress document
    # ==========================================================================

    async def get_course(self, uid: str, course_id: str) -> dict[str, Any]:
        """Read the course progress document ({} when it does not exist yet)."""
        snapshot = await self.course_ref(uid, course_id).get()
        if not snapshot.exists:
            return {}
        return snapshot.to_dict() or {}

    async def update_course(self, uid: str, course_id: str, data: dict[str, Any]) -> None:
        await self.course_ref(uid, course_id).set(data, merge=True)

    # ==========================================================================
    # Submissions
    # ==========================================================================

    async def add_submission(
        self, uid: str, course_id: str, data: dict[str, Any]
    ) -> "AsyncDocumentReference":
        """Create a submission under an auto-generated id.

        The id is also stored in the document body as ``id``.

        Returns:
            Reference to the new submission document
        """
        submission_ref = self.submissions_ref(uid, course_id).document()
        await submission_ref.set({**data, "id": submission_ref.id})
        logger.debug(
            "submission_document_created",
            course_id=course_id,
            submission_id=submission_ref.id,
        )
        return submission_ref

    async def update_submission(
        self, uid: str, course_id: str, submission_id: str, data: dict[str, Any]
    ) -> None:
        await self.submissions_ref(uid, course_id).document(submission_id).set(
            data, merge=True
        )

    async def get_submission(
        self, uid: str, course_id: str, submission_id: str
    ) -> dict[str, Any] | None:
        snapshot = await self.submissions_ref(uid, course_id).document(submission_id).get()
        return snapshot.to_dict() if snapshot.exists else None

    async def list_submissions(self, uid: str, course_id: str) -> list[dict[str, Any]]:
        """All submission documents for a course, oldest first."""
        query = self.submissions_ref(uid, course_id).order_by("submitted_at")
        return [snapshot.to_dict() async for snapshot in query.stream()]

    # ==========================================================================
    # Feedback and mentor reviews
    # ==========================================================================

    async def update_feedback(
        self, uid: str, course_id: str, feedback_id: str, data: dict[str, Any]
    ) -> None:
        await self.feedback_ref(uid, course_id, feedback_id).set(data, merge=True)

    async def update_review(
        self, mentor_uid: str, submission_id: str, data: dict[str, Any]
    ) -> None:
        await self.review_ref(mentor_uid, submission_id).set(data, merge=True)
