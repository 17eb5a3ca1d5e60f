"""Tests for inspectflow.web.routes.review_queue - Review queue routes."""

from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from inspectflow.errors import InvalidState, InvalidTransition, NotFound
from inspectflow.models import AssignmentResult, AssignmentStatus, EventStatus
from inspectflow.review import ApprovalResult, ReviewPage
from inspectflow.web.dependencies import get_app_config
from inspectflow.web.routes import review_queue


@pytest.fixture
def app(app_config):
    """Create test FastAPI app with review queue router."""
    test_app = FastAPI()
    test_app.include_router(review_queue.router)
    test_app.dependency_overrides[get_app_config] = lambda: app_config
    return test_app


@pytest.fixture
def client(app):
    return TestClient(app)


class TestParseStatus:
    def test_all_means_no_filter(self):
        assert review_queue._parse_status("all") is None
        assert review_queue._parse_status(None) is None

    def test_valid_status(self):
        assert review_queue._parse_status("Approved") is EventStatus.APPROVED

    def test_invalid_status(self):
        with pytest.raises(HTTPException) as exc_info:
            review_queue._parse_status("bogus")
        assert exc_info.value.status_code == 400


class TestListReviewQueue:
    """Tests for GET /review-queue."""

    @patch("inspectflow.web.routes.review_queue.fetch_review_queue")
    @patch("inspectflow.web.routes.review_queue.get_session")
    def test_default_lists_pending(
        self, mock_get_session, mock_fetch, client, mock_db_session, review_event_factory
    ):
        mock_get_session.return_value = mock_db_session
        event = review_event_factory()
        mock_fetch.return_value = ReviewPage(items=[event], total=1, page=1, page_size=50)

        response = client.get("/review-queue")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["pageSize"] == 50
        assert data["items"][0]["externalEventId"] == "evt-1"
        assert data["items"][0]["confidenceScore"] == 62
        assert data["items"][0]["status"] == "pending"

        filters = mock_fetch.call_args.args[1]
        assert filters.status is EventStatus.PENDING

    @patch("inspectflow.web.routes.review_queue.fetch_review_queue")
    @patch("inspectflow.web.routes.review_queue.get_session")
    def test_filters_forwarded(self, mock_get_session, mock_fetch, client, mock_db_session):
        mock_get_session.return_value = mock_db_session
        mock_fetch.return_value = ReviewPage(items=[], total=0, page=2, page_size=10)

        response = client.get(
            "/review-queue",
            params={
                "status": "all",
                "minConfidence": 40,
                "maxConfidence": 84,
                "start": "2025-03-01T00:00:00Z",
                "page": 2,
                "pageSize": 10,
            },
        )

        assert response.status_code == 200
        filters = mock_fetch.call_args.args[1]
        assert filters.status is None
        assert filters.min_confidence == 40
        assert filters.max_confidence == 84
        assert filters.start is not None
        assert mock_fetch.call_args.kwargs == {"page": 2, "page_size": 10}

    def test_invalid_status_is_400(self, client):
        assert client.get("/review-queue", params={"status": "bogus"}).status_code == 400

    def test_confidence_out_of_range_is_422(self, client):
        assert client.get("/review-queue", params={"minConfidence": 150}).status_code == 422


class TestGetReviewEvent:
    @patch("inspectflow.web.routes.review_queue.fetch_review_event")
    @patch("inspectflow.web.routes.review_queue.get_session")
    def test_found(self, mock_get_session, mock_fetch, client, mock_db_session, review_event_factory):
        mock_get_session.return_value = mock_db_session
        event = review_event_factory()
        mock_fetch.return_value = event

        response = client.get(f"/review-queue/{event.id}")

        assert response.status_code == 200
        assert response.json()["id"] == str(event.id)

    @patch("inspectflow.web.routes.review_queue.fetch_review_event")
    @patch("inspectflow.web.routes.review_queue.get_session")
    def test_missing_is_404(self, mock_get_session, mock_fetch, client, mock_db_session):
        mock_get_session.return_value = mock_db_session
        event_id = uuid4()
        mock_fetch.side_effect = NotFound("Calendar event", event_id)

        response = client.get(f"/review-queue/{event_id}")

        assert response.status_code == 404


class TestApprove:
    """Tests for POST /review-queue/{id}/approve."""

    @patch("inspectflow.web.routes.review_queue.approve_event", new_callable=AsyncMock)
    @patch("inspectflow.web.routes.review_queue.get_session")
    def test_approve_success(
        self,
        mock_get_session,
        mock_approve,
        client,
        mock_db_session,
        mock_session,
        review_event_factory,
        app_config,
    ):
        mock_get_session.return_value = mock_db_session
        job_id, builder_id, inspector_id = uuid4(), uuid4(), uuid4()
        event = review_event_factory(status=EventStatus.APPROVED, job_id=job_id, reviewed_by="sam")
        mock_approve.return_value = ApprovalResult(
            event=event,
            job_id=job_id,
            assignment=AssignmentResult(
                job_id=job_id,
                status=AssignmentStatus.ASSIGNED,
                inspector_id=inspector_id,
                score=100.0,
            ),
        )

        response = client.post(
            f"/review-queue/{event.id}/approve",
            json={"builderId": str(builder_id), "jobType": "final", "reviewer": "sam"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["jobId"] == str(job_id)
        assert data["event"]["status"] == "approved"
        assert data["assignment"]["inspectorId"] == str(inspector_id)
        assert data["warnings"] == []

        mock_approve.assert_awaited_once_with(
            mock_session,
            event.id,
            builder_id=builder_id,
            job_type="final",
            reviewer="sam",
            assignment_config=app_config.assignment,
        )

    @patch("inspectflow.web.routes.review_queue.approve_event", new_callable=AsyncMock)
    @patch("inspectflow.web.routes.review_queue.get_session")
    def test_reviewer_from_header(
        self, mock_get_session, mock_approve, client, mock_db_session, review_event_factory
    ):
        mock_get_session.return_value = mock_db_session
        event = review_event_factory(status=EventStatus.APPROVED)
        mock_approve.return_value = ApprovalResult(event=event, job_id=uuid4())

        client.post(
            f"/review-queue/{event.id}/approve",
            json={"builderId": str(uuid4()), "jobType": "final"},
            headers={"X-Reviewer": "ops@example.com"},
        )

        assert mock_approve.call_args.kwargs["reviewer"] == "ops@example.com"

    @patch("inspectflow.web.routes.review_queue.approve_event", new_callable=AsyncMock)
    @patch("inspectflow.web.routes.review_queue.get_session")
    def test_already_resolved_is_409(self, mock_get_session, mock_approve, client, mock_db_session):
        mock_get_session.return_value = mock_db_session
        mock_approve.side_effect = InvalidTransition("approved", "approved")

        response = client.post(
            f"/review-queue/{uuid4()}/approve",
            json={"builderId": str(uuid4()), "jobType": "final"},
        )

        assert response.status_code == 409

    @patch("inspectflow.web.routes.review_queue.approve_event", new_callable=AsyncMock)
    @patch("inspectflow.web.routes.review_queue.get_session")
    def test_missing_is_404(self, mock_get_session, mock_approve, client, mock_db_session):
        mock_get_session.return_value = mock_db_session
        mock_approve.side_effect = NotFound("Calendar event", "x")

        response = client.post(
            f"/review-queue/{uuid4()}/approve",
            json={"builderId": str(uuid4()), "jobType": "final"},
        )

        assert response.status_code == 404

    def test_blank_job_type_is_422(self, client):
        response = client.post(
            f"/review-queue/{uuid4()}/approve",
            json={"builderId": str(uuid4()), "jobType": ""},
        )
        assert response.status_code == 422


class TestReject:
    """Tests for POST /review-queue/{id}/reject."""

    @patch("inspectflow.web.routes.review_queue.reject_event", new_callable=AsyncMock)
    @patch("inspectflow.web.routes.review_queue.get_session")
    def test_reject_success(
        self, mock_get_session, mock_reject, client, mock_db_session, review_event_factory
    ):
        mock_get_session.return_value = mock_db_session
        event = review_event_factory(status=EventStatus.REJECTED, review_reason="not ours")
        mock_reject.return_value = event

        response = client.post(f"/review-queue/{event.id}/reject", json={"reason": "not ours"})

        assert response.status_code == 200
        assert response.json()["reviewReason"] == "not ours"
        assert mock_reject.call_args.kwargs["reviewer"] == "operator"

    @patch("inspectflow.web.routes.review_queue.reject_event", new_callable=AsyncMock)
    @patch("inspectflow.web.routes.review_queue.get_session")
    def test_reject_resolved_is_409(self, mock_get_session, mock_reject, client, mock_db_session):
        mock_get_session.return_value = mock_db_session
        mock_reject.side_effect = InvalidState("already resolved", current_status="approved")

        response = client.post(f"/review-queue/{uuid4()}/reject", json={"reason": "dup"})

        assert response.status_code == 409
