"""Tests for health endpoints."""

from unittest.mock import patch

from fastapi.testclient import TestClient

from src.config import get_settings
from src.core.database import FirestoreConnection
from src.main import run


def test_liveness(client: TestClient) -> None:
    """Test the liveness endpoint."""
    response = client.get("/health/live")
    assert response.status_code == 200
    assert response.json() == {"status": "alive"}


def test_readiness(client: TestClient) -> None:
    """Without the lifespan neither Firestore nor Redis is connected."""
    response = client.get("/health/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["environment"] == "testing"
    assert "debug" in data
    assert data["database"] is False
    assert data["redis"] is False
    assert data["analytics"] is None


def test_health(client: TestClient) -> None:
    """Test the general health endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["app_name"] == "course-progress"
    assert "version" in data
    assert "environment" in data


def test_root(client: TestClient) -> None:
    """Test the root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Course Progress API"
    assert "version" in data


def test_request_id_echoed(client: TestClient) -> None:
    response = client.get("/health/live", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


def test_request_id_generated(client: TestClient) -> None:
    response = client.get("/health/live")
    assert response.headers["X-Request-ID"]


def test_readiness_reports_connections(client: TestClient) -> None:
    with (
        patch.object(FirestoreConnection, "is_connected", return_value=True),
        patch("src.health.router.get_redis", return_value=object()),
    ):
        response = client.get("/health/ready")

    data = response.json()
    assert data["database"] is True
    assert data["redis"] is True


def test_run_uses_server_settings() -> None:
    settings = get_settings()

    with patch("uvicorn.run") as uvicorn_run:
        run()

    uvicorn_run.assert_called_once()
    assert uvicorn_run.call_args.args == ("src.main:app",)
    kwargs = uvicorn_run.call_args.kwargs
    assert kwargs["host"] == settings.api_host
    assert kwargs["port"] == settings.api_port
    assert kwargs["workers"] == settings.api_workers
    # Reload only applies in development; tests run as "testing"
    assert kwargs["reload"] is False
