"""Tests for the course progress HTTP endpoints."""

from datetime import UTC, datetime

from fastapi.testclient import TestClient

from src.auth.dependencies import get_current_user
from src.main import app
from src.progress.dependencies import get_progress_service
from src.progress.models import FeedbackType, ProjectAttemptStatus, Submission
from src.progress.service import (
    LessonNotStartedError,
    ProjectPartNotStartedError,
    SubmissionAlreadyClaimedError,
    SubmissionNotFoundError,
)


BASE = "/v1/courses/c1"
MENTOR_BASE = "/v1/mentor/students/learner-1/courses/c1"


class TestAccess:
    def test_missing_token(self, progress_service) -> None:
        app.dependency_overrides[get_progress_service] = lambda: progress_service
        try:
            response = TestClient(app).get(f"{BASE}/progress")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_malformed_authorization_header(self, progress_service) -> None:
        app.dependency_overrides[get_progress_service] = lambda: progress_service
        try:
            response = TestClient(app).get(
                f"{BASE}/progress", headers={"Authorization": "Token abc"}
            )
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 401

    def test_service_unavailable_without_database(self, learner) -> None:
        app.dependency_overrides[get_current_user] = lambda: learner
        try:
            response = TestClient(app).get(f"{BASE}/progress")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 503
        assert response.json()["error"] is True

    def test_mentor_routes_require_mentor(self, client: TestClient) -> None:
        response = client.post(
            f"{MENTOR_BASE}/submissions/sub-1/review/start",
            json={"part": "p1", "attempt": 1},
        )
        assert response.status_code == 403


class TestProgress:
    def test_get_progress(self, client: TestClient, progress_service) -> None:
        progress_service.get_course_progress.return_value = {"started_at": "t0"}

        response = client.get(f"{BASE}/progress")

        assert response.status_code == 200
        assert response.json() == {"course_id": "c1", "progress": {"started_at": "t0"}}
        progress_service.get_course_progress.assert_awaited_once_with("learner-1", "c1")

    def test_start_lesson(self, client: TestClient, progress_service) -> None:
        progress_service.handle_lesson_start.return_value = True

        response = client.post(f"{BASE}/lessons/intro/start")

        assert response.status_code == 200
        assert response.json()["changed"] is True
        progress_service.handle_lesson_start.assert_awaited_once_with(
            "learner-1", "c1", {}, "intro"
        )

    def test_complete_lesson_again(self, client: TestClient, progress_service) -> None:
        progress_service.get_course_progress.return_value = {
            "lessons": {"intro": {"completed_at": "t1"}}
        }
        progress_service.handle_lesson_complete.return_value = True

        response = client.post(f"{BASE}/lessons/intro/complete")

        assert response.status_code == 200
        assert response.json()["changed"] is False

    def test_start_concept_before_lesson(self, client: TestClient, progress_service) -> None:
        progress_service.handle_concept_started.side_effect = LessonNotStartedError("intro")

        response = client.post(f"{BASE}/lessons/intro/concepts/variables/start")

        assert response.status_code == 409
        assert "intro" in response.json()["message"]

    def test_complete_concept(self, client: TestClient, progress_service) -> None:
        response = client.post(f"{BASE}/lessons/intro/concepts/variables/complete")

        assert response.status_code == 200
        assert response.json()["changed"] is True
        progress_service.handle_concept_complete.assert_awaited_once_with(
            "learner-1", "c1", {}, "intro", "variables"
        )

    def test_finish_quiz(self, client: TestClient, progress_service) -> None:
        progress_service.handle_quiz_finish.return_value = True

        response = client.post(
            f"{BASE}/lessons/intro/concepts/variables/quiz",
            json={"num_quizzes": 2, "correct_answers": 3, "total_questions": 4},
        )

        assert response.status_code == 200
        kwargs = progress_service.handle_quiz_finish.await_args.kwargs
        assert kwargs == {"num_quizzes": 2, "correct_answers": 3, "total_questions": 4}

    def test_finish_quiz_invalid_counts(self, client: TestClient, progress_service) -> None:
        response = client.post(
            f"{BASE}/lessons/intro/concepts/variables/quiz",
            json={"num_quizzes": 1, "correct_answers": 5, "total_questions": 4},
        )

        assert response.status_code == 422
        assert response.json()["message"] == "Validation error"
        progress_service.handle_quiz_finish.assert_not_awaited()

    def test_finish_quiz_zero_questions(self, client: TestClient) -> None:
        response = client.post(
            f"{BASE}/lessons/intro/concepts/variables/quiz",
            json={"num_quizzes": 1, "correct_answers": 0, "total_questions": 0},
        )
        assert response.status_code == 422


class TestProject:
    def test_begin_part(self, client: TestClient, progress_service) -> None:
        progress_service.handle_project_part_begin.return_value = False

        response = client.post(f"{BASE}/project/parts/p1/start")

        assert response.status_code == 200
        assert response.json()["changed"] is False

    def test_submit_attempt(self, client: TestClient, progress_service) -> None:
        progress_service.get_course_progress.return_value = {
            "project": {"parts": {"p1": {"started_at": "t0", "submissions": [{}]}}}
        }
        progress_service.handle_attempt_submission.return_value = True

        response = client.post(
            f"{BASE}/project/parts/p1/submissions", json={"content": "my work"}
        )

        assert response.status_code == 201
        assert response.json() == {
            "course_id": "c1",
            "part": "p1",
            "attempts_used": 2,
            "attempts_allowed": 3,
        }

    def test_submit_attempt_limit_reached(self, client: TestClient, progress_service) -> None:
        progress_service.handle_attempt_submission.return_value = False

        response = client.post(
            f"{BASE}/project/parts/p1/submissions", json={"content": "again"}
        )

        assert response.status_code == 409

    def test_submit_attempt_part_not_started(
        self, client: TestClient, progress_service
    ) -> None:
        progress_service.handle_attempt_submission.side_effect = (
            ProjectPartNotStartedError("p1")
        )

        response = client.post(
            f"{BASE}/project/parts/p1/submissions", json={"content": "x"}
        )

        assert response.status_code == 409

    def test_submit_empty_content(self, client: TestClient) -> None:
        response = client.post(f"{BASE}/project/parts/p1/submissions", json={"content": ""})
        assert response.status_code == 422

    def test_list_submissions(self, client: TestClient, progress_service) -> None:
        progress_service.list_submissions.return_value = [
            Submission(
                id="sub-1",
                course="c1",
                part="p1",
                attempt=1,
                student=None,
                submitted_at=datetime(2024, 5, 1, tzinfo=UTC),
                submission_content="x",
                status="failed",
            )
        ]

        response = client.get(f"{BASE}/submissions")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["id"] == "sub-1"
        assert data["items"][0]["status"] == "failed"


class TestFeedback:
    def test_provide_feedback(self, client: TestClient, progress_service) -> None:
        response = client.put(
            f"{BASE}/feedback/fb-1",
            json={"value": 4, "feedback": "Clear", "type": "concept"},
        )

        assert response.status_code == 200
        assert response.json()["success"] is True
        progress_service.handle_provide_feedback.assert_awaited_once_with(
            "learner-1",
            "c1",
            "fb-1",
            value=4.0,
            feedback="Clear",
            feedback_type=FeedbackType.CONCEPT,
        )

    def test_unknown_feedback_type(self, client: TestClient) -> None:
        response = client.put(
            f"{BASE}/feedback/fb-1", json={"value": 4, "type": "course"}
        )
        assert response.status_code == 422


class TestMentorReview:
    def test_start_review(self, client: TestClient, progress_service, mentor) -> None:
        app.dependency_overrides[get_current_user] = lambda: mentor

        response = client.post(
            f"{MENTOR_BASE}/submissions/sub-1/review/start",
            json={"part": "p1", "attempt": 1},
        )

        assert response.status_code == 200
        progress_service.handle_review_start.assert_awaited_once_with(
            "mentor-1", "learner-1", "c1", "p1", 1, "sub-1"
        )

    def test_start_review_unknown_submission(
        self, client: TestClient, progress_service, mentor
    ) -> None:
        app.dependency_overrides[get_current_user] = lambda: mentor
        progress_service.handle_review_start.side_effect = SubmissionNotFoundError("p1", 1)

        response = client.post(
            f"{MENTOR_BASE}/submissions/missing/review/start",
            json={"part": "p1", "attempt": 1},
        )

        assert response.status_code == 404

    def test_start_review_already_claimed(
        self, client: TestClient, progress_service, mentor
    ) -> None:
        app.dependency_overrides[get_current_user] = lambda: mentor
        progress_service.handle_review_start.side_effect = SubmissionAlreadyClaimedError(
            "sub-1"
        )

        response = client.post(
            f"{MENTOR_BASE}/submissions/sub-1/review/start",
            json={"part": "p1", "attempt": 1},
        )

        assert response.status_code == 409
        assert "already claimed" in response.json()["message"]

    def test_review_submission(self, client: TestClient, progress_service, mentor) -> None:
        app.dependency_overrides[get_current_user] = lambda: mentor
        progress_service.get_course_progress.return_value = {"project": {}}

        response = client.post(
            f"{MENTOR_BASE}/submissions/sub-1/review",
            json={"part": "p1", "attempt": 1, "status": "passed", "content": "Good"},
        )

        assert response.status_code == 200
        progress_service.get_course_progress.assert_awaited_once_with("learner-1", "c1")
        progress_service.handle_review_submission.assert_awaited_once_with(
            "mentor-1",
            "learner-1",
            "c1",
            "p1",
            1,
            "sub-1",
            ProjectAttemptStatus.PASSED,
            {"project": {}},
            "Good",
        )

    def test_review_unknown_attempt(
        self, client: TestClient, progress_service, mentor
    ) -> None:
        app.dependency_overrides[get_current_user] = lambda: mentor
        progress_service.handle_review_submission.side_effect = SubmissionNotFoundError(
            "p1", 4
        )

        response = client.post(
            f"{MENTOR_BASE}/submissions/sub-1/review",
            json={"part": "p1", "attempt": 4, "status": "failed", "content": "?"},
        )

        assert response.status_code == 404
