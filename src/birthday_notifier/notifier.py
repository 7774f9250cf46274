from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime
from typing import Callable, Sequence
from zoneinfo import ZoneInfo

from .adapters.calendar import CalendarAdapter
from .adapters.contacts import ContactsAdapter
from .adapters.telegram import NotifierSink
from .domain.aggregator import merge_birthday_names
from .domain.classifier import DEFAULT_BIRTHDAY_KEYWORDS, is_birthday_event, todays_contact_names
from .domain.formatter import format_birthday_message, format_events_message
from .domain.models import (
    CalendarEvent,
    CheckOutcome,
    ContactBirthday,
    FetchResult,
    MessageKind,
    NotificationMessage,
)
from .domain.windows import day_window, today_and_tomorrow
from .errors import DeliveryError, ProviderError

LOGGER = logging.getLogger(__name__)

BIRTHDAY_CHECK = "birthday check"
EVENTS_CHECK = "calendar events check"


class Notifier:
    """Runs the birthday check and the calendar events check for one tick.

    Every external fetch goes through a single isolation boundary that turns
    provider failures into a failed ``FetchResult``; the checks then branch on
    the result instead of catching exceptions themselves. A check that is
    still running when the next tick fires is skipped for that tick.
    """

    def __init__(
        self,
        *,
        calendar: CalendarAdapter,
        contacts: ContactsAdapter,
        sink: NotifierSink,
        timezone_value: ZoneInfo,
        birthday_keywords: Sequence[str] = DEFAULT_BIRTHDAY_KEYWORDS,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._calendar = calendar
        self._contacts = contacts
        self._sink = sink
        self._timezone = timezone_value
        self._keywords = tuple(birthday_keywords)
        self._clock = clock
        self._in_flight: set[str] = set()
        self._last_outcomes: dict[MessageKind, CheckOutcome] = {}

    @property
    def last_outcomes(self) -> dict[MessageKind, CheckOutcome]:
        return dict(self._last_outcomes)

    def _now(self) -> datetime:
        if self._clock is not None:
            return self._clock().astimezone(self._timezone)
        return datetime.now(self._timezone)

    def _record(self, outcome: CheckOutcome) -> CheckOutcome:
        self._last_outcomes[outcome.kind] = outcome
        return outcome

    async def _fetch_events(self, target_date: date) -> FetchResult[CalendarEvent]:
        source = self._calendar.source_name
        window_start, window_end = day_window(target_date, self._timezone)
        try:
            events = await self._calendar.fetch_events(window_start, window_end)
        except ProviderError as exc:
            LOGGER.warning("Calendar source '%s' failed for %s: %s", source, target_date, exc.reason)
            return FetchResult.failure(source, exc.reason)
        except Exception as exc:
            LOGGER.exception("Calendar source '%s' failed for %s", source, target_date)
            return FetchResult.failure(source, f"unexpected error: {exc}")
        return FetchResult.success(source, events)

    async def _fetch_contacts(self) -> FetchResult[ContactBirthday]:
        source = self._contacts.source_name
        try:
            contacts = await self._contacts.fetch_birthday_contacts()
        except ProviderError as exc:
            LOGGER.warning("Contacts source '%s' failed: %s", source, exc.reason)
            return FetchResult.failure(source, exc.reason)
        except Exception as exc:
            LOGGER.exception("Contacts source '%s' failed", source)
            return FetchResult.failure(source, f"unexpected error: {exc}")
        return FetchResult.success(source, contacts)

    async def _deliver(self, message: NotificationMessage) -> CheckOutcome:
        try:
            await self._sink.deliver(message.text)
        except DeliveryError as exc:
            LOGGER.error("Sending %s notification failed: %s", message.kind, exc)
            return self._record(CheckOutcome(kind=message.kind, status="failed", detail=str(exc)))
        LOGGER.info("Sent %s notification", message.kind)
        return self._record(CheckOutcome(kind=message.kind, status="delivered"))

    def _claim(self, use_case: str) -> bool:
        if use_case in self._in_flight:
            LOGGER.warning("Skipping %s: previous run is still in progress", use_case)
            return False
        self._in_flight.add(use_case)
        return True

    async def check_birthdays(self) -> CheckOutcome:
        if not self._claim(BIRTHDAY_CHECK):
            return CheckOutcome(kind="birthdays", status="skipped", detail="previous run still in progress")
        try:
            return await self._check_birthdays()
        finally:
            self._in_flight.discard(BIRTHDAY_CHECK)

    async def _check_birthdays(self) -> CheckOutcome:
        LOGGER.info("Starting birthday check...")
        today = self._now().date()
        events_result, contacts_result = await asyncio.gather(
            self._fetch_events(today),
            self._fetch_contacts(),
        )

        calendar_names = [
            event.title for event in events_result.items if is_birthday_event(event, self._keywords)
        ]
        contact_names = todays_contact_names(contacts_result.items, today)
        if events_result.ok:
            LOGGER.info("Found %d birthdays in calendar", len(calendar_names))
        if contacts_result.ok:
            LOGGER.info("Found %d birthdays in contacts", len(contact_names))

        names = merge_birthday_names(calendar_names, contact_names)
        failures = [result for result in (events_result, contacts_result) if not result.ok]
        if not names:
            if len(failures) == 2:
                detail = "; ".join(f"{result.source}: {result.error}" for result in failures)
                return self._record(CheckOutcome(kind="birthdays", status="failed", detail=detail))
            LOGGER.info("No birthdays today")
            return self._record(CheckOutcome(kind="birthdays", status="skipped", detail="no birthdays"))

        message = NotificationMessage(kind="birthdays", text=format_birthday_message(names))
        return await self._deliver(message)

    async def check_calendar_events(self) -> list[CheckOutcome]:
        if not self._claim(EVENTS_CHECK):
            return [
                CheckOutcome(kind=kind, status="skipped", detail="previous run still in progress")
                for kind in ("events-today", "events-tomorrow")
            ]
        try:
            LOGGER.info("Starting calendar events check...")
            today, tomorrow = today_and_tomorrow(self._now())
            return [
                await self._check_events_for_day("events-today", "today", today),
                await self._check_events_for_day("events-tomorrow", "tomorrow", tomorrow),
            ]
        finally:
            self._in_flight.discard(EVENTS_CHECK)

    async def _check_events_for_day(self, kind: MessageKind, label: str, target_date: date) -> CheckOutcome:
        result = await self._fetch_events(target_date)
        if not result.ok:
            return self._record(CheckOutcome(kind=kind, status="failed", detail=f"{result.source}: {result.error}"))

        regular_events = [event for event in result.items if not is_birthday_event(event, self._keywords)]
        LOGGER.info("Found %d regular events in calendar for %s", len(regular_events), label)
        if not regular_events:
            LOGGER.info("No calendar events for %s", label)
            return self._record(CheckOutcome(kind=kind, status="skipped", detail="no events"))

        text = format_events_message(regular_events, label, self._timezone)
        return await self._deliver(NotificationMessage(kind=kind, text=text))

    async def run_all(self) -> list[CheckOutcome]:
        """Run both checks; an unexpected failure in one never cancels the other."""
        results = await asyncio.gather(
            self.check_birthdays(),
            self.check_calendar_events(),
            return_exceptions=True,
        )

        outcomes: list[CheckOutcome] = []
        for name, result in zip((BIRTHDAY_CHECK, EVENTS_CHECK), results):
            if isinstance(result, BaseException):
                LOGGER.error("Error during %s", name, exc_info=result)
                continue
            if isinstance(result, list):
                outcomes.extend(result)
            else:
                outcomes.append(result)
        return outcomes
