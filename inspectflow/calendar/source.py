"""Calendar event source adapters.

Every adapter satisfies ``EventSource.fetch_events(calendar_id, since)`` and
raises ``AdapterUnavailable`` when the batch cannot be fetched at all.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from inspectflow.config import CalendarConfig
from inspectflow.errors import AdapterUnavailable
from inspectflow.models import RawCalendarEvent
from inspectflow.utils.timeutils import as_utc, parse_iso

logger = logging.getLogger(__name__)


class EventSource(Protocol):
    async def fetch_events(
        self, calendar_id: str, since: datetime | None = None
    ) -> list[RawCalendarEvent]: ...


def _parse_event_time(value: dict[str, Any] | None) -> datetime | None:
    """Google-style ``{"dateTime": ...}`` or all-day ``{"date": ...}``."""
    if not value:
        return None
    raw = value.get("dateTime") or value.get("date")
    if not raw:
        return None
    return parse_iso(raw)


def _shared_coordinate(item: dict[str, Any], key: str) -> float | None:
    """Coordinate stored by the scheduling tool in ``extendedProperties.shared``."""
    shared = (item.get("extendedProperties") or {}).get("shared") or {}
    raw = shared.get(key)
    if raw in (None, ""):
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        return None


class GoogleCalendarSource:
    """Fetches events from the Google Calendar v3 events endpoint.

    Token acquisition (OAuth) happens elsewhere; this adapter only needs a
    bearer token. Pass ``client`` to inject a preconfigured httpx client.
    """

    def __init__(
        self,
        config: CalendarConfig,
        client: httpx.AsyncClient | None = None,
    ):
        self.config = config
        self._client = client

    async def fetch_events(
        self, calendar_id: str, since: datetime | None = None
    ) -> list[RawCalendarEvent]:
        """Fetch all single-instance events from ``since`` over the lookahead window.

        Raises:
            AdapterUnavailable: On transport errors or non-2xx responses
        """
        time_min = as_utc(since) if since else None
        params: dict[str, Any] = {"singleEvents": "true", "orderBy": "startTime"}
        if time_min is not None:
            params["timeMin"] = time_min.isoformat()
            params["timeMax"] = (time_min + timedelta(days=self.config.lookahead_days)).isoformat()

        headers = {}
        if self.config.api_token:
            headers["Authorization"] = f"Bearer {self.config.api_token}"

        url = f"{self.config.api_base_url.rstrip('/')}/calendars/{calendar_id}/events"
        client = self._client or httpx.AsyncClient(timeout=self.config.request_timeout)
        events: list[RawCalendarEvent] = []

        try:
            page_token: str | None = None
            while True:
                page_params = dict(params)
                if page_token:
                    page_params["pageToken"] = page_token

                response = await client.get(url, params=page_params, headers=headers)
                response.raise_for_status()
                body = response.json()

                events.extend(self._convert(body.get("items", []), calendar_id))
                page_token = body.get("nextPageToken")
                if not page_token:
                    break
        except httpx.HTTPStatusError as e:
            raise AdapterUnavailable(
                f"Calendar API returned {e.response.status_code} for {calendar_id}",
                calendar_id=calendar_id,
            ) from e
        except (httpx.RequestError, ValueError) as e:
            raise AdapterUnavailable(
                f"Calendar API request failed for {calendar_id}: {e}",
                calendar_id=calendar_id,
            ) from e
        finally:
            if self._client is None:
                await client.aclose()

        logger.info("calendar_fetch_complete: calendar=%s events=%d", calendar_id, len(events))
        return events

    @staticmethod
    def _convert(items: Iterable[dict[str, Any]], calendar_id: str) -> list[RawCalendarEvent]:
        events = []
        for item in items:
            if item.get("status") == "cancelled":
                continue
            try:
                events.append(
                    RawCalendarEvent(
                        external_id=item.get("id", ""),
                        calendar_id=calendar_id,
                        title=item.get("summary") or "",
                        description=item.get("description"),
                        location=item.get("location"),
                        start=_parse_event_time(item.get("start")),
                        end=_parse_event_time(item.get("end")),
                        latitude=_shared_coordinate(item, "latitude"),
                        longitude=_shared_coordinate(item, "longitude"),
                    )
                )
            except (ValidationError, ValueError) as e:
                logger.warning("calendar_event_skipped: id=%r error=%s", item.get("id"), e)
        return events


class JsonFileEventSource:
    """Reads events from a JSON file (list of Google-style event objects).

    Used by ``inspectflow import --from-file`` for offline replays.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    async def fetch_events(
        self, calendar_id: str, since: datetime | None = None
    ) -> list[RawCalendarEvent]:
        try:
            data = json.loads(self.path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            raise AdapterUnavailable(
                f"Could not read events from {self.path}: {e}", calendar_id=calendar_id
            ) from e

        items = data.get("items", []) if isinstance(data, dict) else data
        events = GoogleCalendarSource._convert(items, calendar_id)
        if since is not None:
            cutoff = as_utc(since)
            events = [e for e in events if e.start is None or as_utc(e.start) >= cutoff]
        return events


class StaticEventSource:
    """In-memory source, optionally failing, for tests and dry runs."""

    def __init__(
        self,
        events: Iterable[RawCalendarEvent] = (),
        error: Exception | None = None,
    ):
        self.events = list(events)
        self.error = error
        self.calls: list[tuple[str, datetime | None]] = []

    async def fetch_events(
        self, calendar_id: str, since: datetime | None = None
    ) -> list[RawCalendarEvent]:
        self.calls.append((calendar_id, since))
        if self.error is not None:
            raise self.error
        return [e for e in self.events if e.calendar_id == calendar_id]
