"""Tests for health check endpoints."""

from fastapi.testclient import TestClient

from dailycart.infrastructure.config import settings
from dailycart.main import app


def test_health_check(client: TestClient) -> None:
    """Test health endpoint returns healthy status."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["service"] == "dailycart-api"
    assert data["version"] == settings.api_version


def test_readiness_check(client: TestClient) -> None:
    """The sweep is only started by the application lifespan."""
    response = client.get("/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["auto_close_scheduler"] in ("stopped", "disabled")


def test_readiness_with_lifespan(container) -> None:
    with TestClient(app) as client:
        data = client.get("/ready").json()

    expected = "running" if settings.auto_close_enabled else "disabled"
    assert data["auto_close_scheduler"] == expected
