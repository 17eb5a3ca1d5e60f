"""Tests for inspectflow.pipeline.types - import run summary."""

from datetime import datetime, timezone
from uuid import uuid4

from inspectflow.models import RoutingOutcome
from inspectflow.pipeline.types import EventOutcome, ImportStatus, ImportSummary

RUN_AT = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


def _summary(**counters) -> ImportSummary:
    return ImportSummary(calendar_id="primary", run_timestamp=RUN_AT, **counters)


class TestStatus:
    def test_status_values_are_lowercase(self):
        assert [s.value for s in ImportStatus] == ["success", "failed", "partial_success"]

    def test_clean_run_is_success(self):
        summary = _summary(events_processed=3)
        assert summary.status is ImportStatus.SUCCESS
        assert summary.success is True

    def test_empty_run_is_success(self):
        assert _summary().status is ImportStatus.SUCCESS

    def test_fetch_failure_is_failed(self):
        summary = _summary(error_text="AdapterUnavailable: calendar down")
        assert summary.status is ImportStatus.FAILED
        assert summary.success is False

    def test_errored_events_are_partial_success(self):
        summary = _summary(events_processed=2)
        summary.record(EventOutcome(external_id="a", outcome=RoutingOutcome.REJECT))
        summary.record(EventOutcome(external_id="b", outcome=None, error="IntegrityError: x"))

        assert summary.events_rejected == 1
        assert summary.events_errored == 1
        assert summary.status is ImportStatus.PARTIAL_SUCCESS
        assert summary.success is True

    def test_scoring_failure_after_fetch_is_partial_success(self):
        summary = _summary(events_processed=4, events_errored=4, error_text="ValueError: bad")
        assert summary.status is ImportStatus.PARTIAL_SUCCESS


class TestToDict:
    def test_serializes_status_and_ids(self):
        log_id = uuid4()
        summary = _summary(events_processed=1, log_id=log_id)
        summary.record(EventOutcome(external_id="a", outcome=RoutingOutcome.AUTO_CREATE))

        data = summary.to_dict()

        assert data["status"] == "success"
        assert data["run_timestamp"] == "2025-03-10T12:00:00+00:00"
        assert data["log_id"] == str(log_id)
        assert data["jobs_created"] == 1
        assert "outcomes" not in data

    def test_failed_run_serializes_lowercase(self):
        data = _summary(error_text="calendar down").to_dict()
        assert data["status"] == "failed"
        assert data["log_id"] is None
