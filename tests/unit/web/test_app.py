"""Tests for the assembled operator API."""

from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from inspectflow.db.connection import get_db
from inspectflow.errors import NotFound
from inspectflow.web.app import app


@pytest.fixture
def client(mock_session):
    async def _override_db():
        yield mock_session

    app.dependency_overrides[get_db] = _override_db
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealth:
    def test_health_ok(self, client, mock_session):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "database": "connected"}
        mock_session.execute.assert_awaited_once()

    def test_health_reports_database_error(self, client, mock_session):
        mock_session.execute.side_effect = RuntimeError("connection refused")

        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "error"
        assert response.json()["database"] == "disconnected"


class TestRequestId:
    def test_request_id_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"

    def test_request_id_generated(self, client):
        response = client.get("/health")
        assert response.headers["X-Request-ID"]


class TestRouting:
    def test_routers_mounted(self):
        paths = {getattr(route, "path", None) for route in app.routes}
        paths |= set(app.openapi()["paths"])
        assert "/review-queue" in paths
        assert "/review-queue/{event_id}/approve" in paths
        assert "/imports/run" in paths
        assert "/jobs/{job_id}/reassign" in paths

    @patch("inspectflow.web.routes.review_queue.fetch_review_event", new_callable=AsyncMock)
    @patch("inspectflow.web.routes.review_queue.get_session")
    def test_not_found_maps_to_404(self, mock_get_session, mock_fetch, client, mock_db_session):
        mock_get_session.return_value = mock_db_session
        mock_fetch.side_effect = NotFound("Calendar event", "x")

        response = client.get(f"/review-queue/{uuid4()}")

        assert response.status_code == 404
        assert "not found" in response.json()["detail"]
