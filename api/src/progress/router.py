"""Course progress API endpoints.

Provides routes for:
- Lesson and concept starts/completions
- Quiz results
- Project parts and submission attempts
- Learner feedback
- Mentor reviews

Each route reads the caller's current progress document, applies the
operation and returns the refreshed document.
"""

from fastapi import APIRouter, status

from src.auth.dependencies import CurrentMentor, CurrentUser

from .dependencies import ProgressServiceDep, handle_progress_error
from .helpers import (
    get_project_part_submissions,
    has_completed_concept,
    has_completed_lesson,
)
from .schemas import (
    AttemptSubmissionRequest,
    CourseProgressResponse,
    FeedbackRequest,
    MessageResponse,
    OperationResponse,
    QuizFinishRequest,
    ReviewStartRequest,
    ReviewSubmissionRequest,
    SubmissionCreatedResponse,
    SubmissionListResponse,
    SubmissionResponse,
    to_jsonable,
)
from .service import ProgressError, ProgressService, SubmissionLimitReachedError


router = APIRouter(prefix="/v1/courses/{course_id}", tags=["progress"])
mentor_router = APIRouter(
    prefix="/v1/mentor/students/{student_id}/courses/{course_id}",
    tags=["mentor"],
)


async def _operation_response(
    service: ProgressService, uid: str, course_id: str, changed: bool
) -> OperationResponse:
    progress = await service.get_course_progress(uid, course_id)
    return OperationResponse(
        course_id=course_id, changed=changed, progress=to_jsonable(progress)
    )


# ==============================================================================
# Progress Query Endpoints
# ==============================================================================


@router.get(
    "/progress",
    response_model=CourseProgressResponse,
    summary="Get course progress",
)
async def get_course_progress(
    course_id: str,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> CourseProgressResponse:
    """Get the caller's progress document for a course ({} if not started)."""
    progress = await progress_service.get_course_progress(user.uid, course_id)
    return CourseProgressResponse.from_document(course_id, progress)


# ==============================================================================
# Lesson Endpoints
# ==============================================================================


@router.post(
    "/lessons/{lesson}/start",
    response_model=OperationResponse,
    summary="Start a lesson",
)
async def start_lesson(
    course_id: str,
    lesson: str,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> OperationResponse:
    """Start a lesson; starts the course too on the first lesson."""
    progress = await progress_service.get_course_progress(user.uid, course_id)
    changed = await progress_service.handle_lesson_start(
        user.uid, course_id, progress, lesson
    )
    return await _operation_response(progress_service, user.uid, course_id, changed)


@router.post(
    "/lessons/{lesson}/complete",
    response_model=OperationResponse,
    summary="Complete a lesson",
)
async def complete_lesson(
    course_id: str,
    lesson: str,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> OperationResponse:
    progress = await progress_service.get_course_progress(user.uid, course_id)
    already_completed = has_completed_lesson(progress, lesson)
    await progress_service.handle_lesson_complete(user.uid, course_id, progress, lesson)
    return await _operation_response(
        progress_service, user.uid, course_id, not already_completed
    )


# ==============================================================================
# Concept Endpoints
# ==============================================================================


@router.post(
    "/lessons/{lesson}/concepts/{concept}/start",
    response_model=OperationResponse,
    summary="Start a concept",
)
async def start_concept(
    course_id: str,
    lesson: str,
    concept: str,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> OperationResponse:
    """Start a concept. The lesson must have been started."""
    progress = await progress_service.get_course_progress(user.uid, course_id)
    try:
        changed = await progress_service.handle_concept_started(
            user.uid, course_id, progress, lesson, concept
        )
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return await _operation_response(progress_service, user.uid, course_id, changed)


@router.post(
    "/lessons/{lesson}/concepts/{concept}/complete",
    response_model=OperationResponse,
    summary="Complete a concept",
)
async def complete_concept(
    course_id: str,
    lesson: str,
    concept: str,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> OperationResponse:
    progress = await progress_service.get_course_progress(user.uid, course_id)
    already_completed = has_completed_concept(progress, lesson, concept)
    await progress_service.handle_concept_complete(
        user.uid, course_id, progress, lesson, concept
    )
    return await _operation_response(
        progress_service,
        user.uid,
        course_id,
        not already_completed,
    )


@router.post(
    "/lessons/{lesson}/concepts/{concept}/quiz",
    response_model=OperationResponse,
    summary="Record a finished quiz",
)
async def finish_quiz(
    course_id: str,
    lesson: str,
    concept: str,
    data: QuizFinishRequest,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> OperationResponse:
    """Record a quiz result; ignored once every quiz of the concept is recorded."""
    progress = await progress_service.get_course_progress(user.uid, course_id)
    try:
        changed = await progress_service.handle_quiz_finish(
            user.uid,
            course_id,
            progress,
            lesson,
            concept,
            num_quizzes=data.num_quizzes,
            correct_answers=data.correct_answers,
            total_questions=data.total_questions,
        )
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return await _operation_response(progress_service, user.uid, course_id, changed)


# ==============================================================================
# Project Endpoints
# ==============================================================================


@router.post(
    "/project/parts/{part}/start",
    response_model=OperationResponse,
    summary="Begin a project part",
)
async def begin_project_part(
    course_id: str,
    part: str,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> OperationResponse:
    progress = await progress_service.get_course_progress(user.uid, course_id)
    changed = await progress_service.handle_project_part_begin(
        user.uid, course_id, progress, part
    )
    return await _operation_response(progress_service, user.uid, course_id, changed)


@router.post(
    "/project/parts/{part}/submissions",
    response_model=SubmissionCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a project part attempt",
)
async def submit_attempt(
    course_id: str,
    part: str,
    data: AttemptSubmissionRequest,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> SubmissionCreatedResponse:
    """Submit an attempt. Returns 409 once every allowed attempt is used."""
    progress = await progress_service.get_course_progress(user.uid, course_id)
    try:
        submitted = await progress_service.handle_attempt_submission(
            user.uid, course_id, progress, part, data.content
        )
        if not submitted:
            raise SubmissionLimitReachedError(part, progress_service.max_submissions)
    except ProgressError as e:
        raise handle_progress_error(e) from e

    return SubmissionCreatedResponse(
        course_id=course_id,
        part=part,
        attempts_used=len(get_project_part_submissions(progress, part)) + 1,
        attempts_allowed=progress_service.max_submissions,
    )


@router.get(
    "/submissions",
    response_model=SubmissionListResponse,
    summary="List project submissions",
)
async def list_submissions(
    course_id: str,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> SubmissionListResponse:
    submissions = await progress_service.list_submissions(user.uid, course_id)
    return SubmissionListResponse(
        items=[SubmissionResponse.from_entity(s) for s in submissions],
        total=len(submissions),
    )


# ==============================================================================
# Feedback Endpoints
# ==============================================================================


@router.put(
    "/feedback/{feedback_id}",
    response_model=MessageResponse,
    summary="Provide feedback",
)
async def provide_feedback(
    course_id: str,
    feedback_id: str,
    data: FeedbackRequest,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> MessageResponse:
    """Create or replace the caller's feedback on a concept, lesson or project."""
    await progress_service.handle_provide_feedback(
        user.uid,
        course_id,
        feedback_id,
        value=data.value,
        feedback=data.feedback,
        feedback_type=data.type,
    )
    return MessageResponse(message="Feedback recorded")


# ==============================================================================
# Mentor Review Endpoints
# ==============================================================================


@mentor_router.post(
    "/submissions/{submission_id}/review/start",
    response_model=MessageResponse,
    summary="Claim a submission for review",
)
async def start_review(
    student_id: str,
    course_id: str,
    submission_id: str,
    data: ReviewStartRequest,
    progress_service: ProgressServiceDep,
    mentor: CurrentMentor,
) -> MessageResponse:
    """Claim a submission. 404 if it is unknown, 409 if already claimed."""
    try:
        await progress_service.handle_review_start(
            mentor.uid,
            student_id,
            course_id,
            data.part,
            data.attempt,
            submission_id,
        )
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return MessageResponse(message="Review started")


@mentor_router.post(
    "/submissions/{submission_id}/review",
    response_model=MessageResponse,
    summary="Submit a review",
)
async def review_submission(
    student_id: str,
    course_id: str,
    submission_id: str,
    data: ReviewSubmissionRequest,
    progress_service: ProgressServiceDep,
    mentor: CurrentMentor,
) -> MessageResponse:
    """Record the review outcome on the student's submission and course document."""
    progress = await progress_service.get_course_progress(student_id, course_id)
    try:
        await progress_service.handle_review_submission(
            mentor.uid,
            student_id,
            course_id,
            data.part,
            data.attempt,
            submission_id,
            data.status,
            progress,
            data.content,
        )
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return MessageResponse(message="Review recorded")
