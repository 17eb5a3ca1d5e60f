"""Tests for calendar source adapters."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import httpx
import pytest

from inspectflow.calendar.source import (
    GoogleCalendarSource,
    JsonFileEventSource,
    StaticEventSource,
)
from inspectflow.config import CalendarConfig
from inspectflow.errors import AdapterUnavailable
from inspectflow.models import RawCalendarEvent

SINCE = datetime(2025, 3, 10, tzinfo=timezone.utc)

ITEMS = [
    {
        "id": "evt-1",
        "summary": "MI Homes - Rough Duct",
        "location": "12 Oak St, Plymouth, MN",
        "start": {"dateTime": "2025-03-15T09:00:00-05:00"},
        "end": {"dateTime": "2025-03-15T10:00:00-05:00"},
    },
    {"id": "evt-2", "summary": "Lennar Final", "start": {"date": "2025-03-16"}},
    {"id": "evt-3", "summary": "Cancelled one", "status": "cancelled"},
    {"summary": "No id at all"},
]


@pytest.fixture
def config() -> CalendarConfig:
    return CalendarConfig(api_base_url="https://calendar.test/v3", api_token="token-123")


class TestGoogleCalendarSource:
    @pytest.mark.asyncio
    async def test_fetch_converts_and_filters_items(self, config):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"items": ITEMS})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            events = await GoogleCalendarSource(config, client=client).fetch_events("primary", SINCE)

        assert [e.external_id for e in events] == ["evt-1", "evt-2"]
        assert events[0].start == datetime(2025, 3, 15, 14, 0, tzinfo=timezone.utc)
        assert events[1].start == datetime(2025, 3, 16, tzinfo=timezone.utc)
        assert events[0].calendar_id == "primary"

        request = seen[0]
        assert request.url.path == "/v3/calendars/primary/events"
        assert request.headers["Authorization"] == "Bearer token-123"
        assert request.url.params["singleEvents"] == "true"
        assert request.url.params["timeMin"].startswith("2025-03-10T00:00:00")
        assert request.url.params["timeMax"].startswith("2025-04-09T00:00:00")

    @pytest.mark.asyncio
    async def test_follows_page_tokens(self, config):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.params.get("pageToken") == "page-2":
                return httpx.Response(200, json={"items": [ITEMS[1]]})
            return httpx.Response(200, json={"items": [ITEMS[0]], "nextPageToken": "page-2"})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            events = await GoogleCalendarSource(config, client=client).fetch_events("primary")

        assert [e.external_id for e in events] == ["evt-1", "evt-2"]

    @pytest.mark.asyncio
    async def test_http_error_raises_adapter_unavailable(self, config):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, json={"error": "down"})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(AdapterUnavailable) as exc_info:
                await GoogleCalendarSource(config, client=client).fetch_events("primary")

        assert "503" in str(exc_info.value)
        assert exc_info.value.calendar_id == "primary"

    @pytest.mark.asyncio
    async def test_transport_error_raises_adapter_unavailable(self, config):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(AdapterUnavailable):
                await GoogleCalendarSource(config, client=client).fetch_events("primary")

    @pytest.mark.asyncio
    async def test_invalid_json_raises_adapter_unavailable(self, config):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"<html>not json</html>")

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(AdapterUnavailable):
                await GoogleCalendarSource(config, client=client).fetch_events("primary")


class TestJsonFileEventSource:
    @pytest.mark.asyncio
    async def test_reads_list_and_filters_by_since(self, tmp_path):
        path = tmp_path / "events.json"
        old = {"id": "old", "summary": "MI Final", "start": {"dateTime": "2025-01-01T09:00:00Z"}}
        path.write_text(json.dumps(ITEMS + [old]))

        events = await JsonFileEventSource(path).fetch_events("primary", SINCE)

        assert [e.external_id for e in events] == ["evt-1", "evt-2"]

    @pytest.mark.asyncio
    async def test_reads_items_envelope(self, tmp_path):
        path = tmp_path / "events.json"
        path.write_text(json.dumps({"items": ITEMS[:1]}))

        events = await JsonFileEventSource(path).fetch_events("primary")

        assert len(events) == 1

    @pytest.mark.asyncio
    async def test_reads_shared_coordinates(self, tmp_path):
        path = tmp_path / "events.json"
        located = dict(
            ITEMS[0],
            id="evt-geo",
            extendedProperties={"shared": {"latitude": "45.0105", "longitude": "-93.4555"}},
        )
        garbled = dict(
            ITEMS[0],
            id="evt-garbled",
            extendedProperties={"shared": {"latitude": "north-ish", "longitude": ""}},
        )
        path.write_text(json.dumps([located, garbled, ITEMS[1]]))

        events = await JsonFileEventSource(path).fetch_events("primary")

        by_id = {e.external_id: e for e in events}
        assert by_id["evt-geo"].latitude == pytest.approx(45.0105)
        assert by_id["evt-geo"].longitude == pytest.approx(-93.4555)
        assert by_id["evt-garbled"].latitude is None
        assert by_id["evt-garbled"].longitude is None
        assert by_id["evt-2"].latitude is None

    @pytest.mark.asyncio
    async def test_missing_file_raises_adapter_unavailable(self, tmp_path):
        with pytest.raises(AdapterUnavailable):
            await JsonFileEventSource(tmp_path / "missing.json").fetch_events("primary")


class TestStaticEventSource:
    @pytest.mark.asyncio
    async def test_filters_by_calendar_and_records_calls(self):
        source = StaticEventSource(
            [
                RawCalendarEvent(external_id="a", calendar_id="primary", title="MI Final"),
                RawCalendarEvent(external_id="b", calendar_id="other", title="MI Final"),
            ]
        )

        events = await source.fetch_events("primary", SINCE)

        assert [e.external_id for e in events] == ["a"]
        assert source.calls == [("primary", SINCE)]

    @pytest.mark.asyncio
    async def test_configured_error_is_raised(self):
        source = StaticEventSource(error=AdapterUnavailable("down"))

        with pytest.raises(AdapterUnavailable):
            await source.fetch_events("primary")
