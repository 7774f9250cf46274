from __future__ import annotations

from datetime import datetime
from typing import Any
from urllib.parse import quote

import httpx

from ...domain.models import CalendarEvent
from ..google_api import CredentialProvider, get_json
from .base import ProviderError

GOOGLE_CALENDAR_EVENTS_URL = "https://www.googleapis.com/calendar/v3/calendars/{calendar_id}/events"
PAGE_SIZE = 250


def _parse_start_time(item: dict[str, Any], *, source: str) -> datetime | None:
    start = item.get("start")
    if not isinstance(start, dict):
        return None

    raw_value = start.get("dateTime")
    if not isinstance(raw_value, str) or not raw_value.strip():
        # Only "date" is set for all-day events.
        return None

    text = raw_value.strip()
    if text.endswith("Z"):
        text = f"{text[:-1]}+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError as exc:
        raise ProviderError(source, f"invalid event start time: {raw_value}") from exc


def _event_from_item(item: dict[str, Any], *, source: str) -> CalendarEvent:
    return CalendarEvent(
        title=item.get("summary"),
        start_time=_parse_start_time(item, source=source),
        location=item.get("location"),
    )


class GoogleCalendarAdapter:
    def __init__(
        self,
        *,
        client: httpx.AsyncClient,
        credentials: CredentialProvider,
        calendar_id: str,
        source_name: str | None = None,
    ) -> None:
        self._client = client
        self._credentials = credentials
        self._calendar_id = calendar_id.strip()
        self._source_name = (source_name or "").strip() or "Google Calendar"
        self._url = GOOGLE_CALENDAR_EVENTS_URL.format(calendar_id=quote(self._calendar_id, safe=""))

    @property
    def source_name(self) -> str:
        return self._source_name

    async def fetch_events(self, window_start: datetime, window_end: datetime) -> list[CalendarEvent]:
        params: dict[str, Any] = {
            "timeMin": window_start.isoformat(),
            "timeMax": window_end.isoformat(),
            "singleEvents": "true",
            "orderBy": "startTime",
            "maxResults": PAGE_SIZE,
        }
        events: list[CalendarEvent] = []
        while True:
            payload = await get_json(
                self._client,
                self._url,
                source=self._source_name,
                credentials=self._credentials,
                params=params,
            )
            items = payload.get("items", [])
            if not isinstance(items, list):
                raise ProviderError(self._source_name, "events response did not include an item list")
            events.extend(
                _event_from_item(item, source=self._source_name)
                for item in items
                if isinstance(item, dict)
            )

            page_token = payload.get("nextPageToken")
            if not isinstance(page_token, str) or not page_token:
                return events
            params = {**params, "pageToken": page_token}
