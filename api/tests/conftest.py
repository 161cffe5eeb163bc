"""Shared fixtures.

The app is exercised without its lifespan (no Firestore, no Redis): the
progress service and the authenticated user are injected through
dependency overrides.
"""

import os


os.environ.setdefault("ENVIRONMENT", "testing")

from collections.abc import Iterator
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from src.auth.dependencies import get_current_user
from src.auth.schemas import AuthenticatedUser
from src.main import app
from src.progress.dependencies import get_progress_service
from src.progress.service import ProgressService


@pytest.fixture
def learner() -> AuthenticatedUser:
    return AuthenticatedUser(uid="learner-1", email="learner@example.com")


@pytest.fixture
def mentor() -> AuthenticatedUser:
    return AuthenticatedUser(uid="mentor-1", email="mentor@example.com", is_mentor=True)


@pytest.fixture
def progress_service() -> MagicMock:
    """ProgressService double; its async methods become AsyncMocks."""
    service = MagicMock(spec=ProgressService)
    service.max_submissions = 3
    service.get_course_progress.return_value = {}
    service.list_submissions.return_value = []
    return service


@pytest.fixture
def client(progress_service: MagicMock, learner: AuthenticatedUser) -> Iterator[TestClient]:
    app.dependency_overrides[get_progress_service] = lambda: progress_service
    app.dependency_overrides[get_current_user] = lambda: learner
    yield TestClient(app)
    app.dependency_overrides.clear()
