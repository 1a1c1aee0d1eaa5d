"""Tests for health check endpoints."""

import pytest

from app.main import app


@pytest.mark.asyncio
async def test_health_check_returns_ok(client):
    """Health endpoint should return status ok."""
    response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"


@pytest.mark.asyncio
async def test_readiness_check_reports_connected_database(client):
    """Readiness endpoint should run a query against the store."""
    response = await client.get("/health/ready")

    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "database": "connected",
        "cleanup_scheduler": "disabled",
    }


@pytest.mark.asyncio
async def test_health_check_uses_provided_request_id(client):
    """Health endpoint should echo back provided X-Request-ID."""
    custom_id = "test-request-id-12345"
    response = await client.get("/health", headers={"X-Request-ID": custom_id})

    assert response.headers["X-Request-ID"] == custom_id


@pytest.mark.asyncio
async def test_readiness_reports_running_scheduler(client):
    """A scheduler attached to app state is reported as running."""

    class RunningScheduler:
        running = True

    app.state.cleanup_scheduler = RunningScheduler()
    try:
        response = await client.get("/health/ready")
    finally:
        app.state.cleanup_scheduler = None

    assert response.json()["cleanup_scheduler"] == "running"
