"""
Pytest configuration and shared fixtures.
"""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from birthday_notifier.domain.models import CalendarEvent, ContactBirthday
from birthday_notifier.errors import DeliveryError, ProviderError
from birthday_notifier.notifier import Notifier

TZ = ZoneInfo("Europe/Moscow")
NOW = datetime(2026, 10, 19, 9, 0, tzinfo=TZ)


class FakeCalendar:
    source_name = "Fake Calendar"

    def __init__(self, events_by_day=None, error: Exception | None = None, failing_days=()):
        self.events_by_day = events_by_day or {}
        self.error = error
        self.failing_days = set(failing_days)
        self.windows: list[tuple[datetime, datetime]] = []

    async def fetch_events(self, window_start, window_end):
        self.windows.append((window_start, window_end))
        day = window_start.date()
        if self.error is not None and (not self.failing_days or day in self.failing_days):
            raise self.error
        return list(self.events_by_day.get(day, []))


class FakeContacts:
    source_name = "Fake Contacts"

    def __init__(self, contacts=None, error: Exception | None = None):
        self.contacts = contacts or []
        self.error = error
        self.calls = 0

    async def fetch_birthday_contacts(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.contacts)


class FakeSink:
    def __init__(self, error: Exception | None = None):
        self.messages: list[str] = []
        self.error = error

    async def deliver(self, message: str) -> None:
        if self.error is not None:
            raise self.error
        self.messages.append(message)


@pytest.fixture
def today():
    return NOW.date()


@pytest.fixture
def make_notifier():
    def _make(calendar=None, contacts=None, sink=None):
        return Notifier(
            calendar=calendar or FakeCalendar(),
            contacts=contacts or FakeContacts(),
            sink=sink or FakeSink(),
            timezone_value=TZ,
            clock=lambda: NOW,
        )

    return _make


@pytest.fixture
def provider_error():
    return ProviderError("Fake", "HTTP 401: Request had invalid authentication credentials")


@pytest.fixture
def delivery_error():
    return DeliveryError("Telegram sendMessage failed: HTTP 403")


def event(title, start=None, location=None):
    return CalendarEvent(title=title, start_time=start, location=location)


def contact(name, month, day, contact_id=None):
    return ContactBirthday(display_name=name, birth_month=month, birth_day=day, contact_id=contact_id)
