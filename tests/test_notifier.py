import asyncio
from datetime import datetime, timedelta

import pytest

from birthday_notifier.errors import ProviderError

from conftest import NOW, TZ, FakeCalendar, FakeContacts, FakeSink, contact, event

TODAY = NOW.date()
TOMORROW = TODAY + timedelta(days=1)


@pytest.mark.asyncio
async def test_end_to_end_merges_calendar_and_contacts(make_notifier):
    calendar = FakeCalendar({TODAY: [event("Mom Birthday"), event("Standup")]})
    contacts = FakeContacts([contact("Ana", TODAY.month, TODAY.day), contact("Bob", 1, 1)])
    sink = FakeSink()
    notifier = make_notifier(calendar, contacts, sink)

    outcome = await notifier.check_birthdays()

    assert outcome.status == "delivered"
    assert len(sink.messages) == 1
    lines = sink.messages[0].splitlines()
    assert lines[1:3] == ["• Mom Birthday", "• Ana"]
    assert "Bob" not in sink.messages[0]


@pytest.mark.asyncio
async def test_birthday_check_uses_contacts_when_calendar_fails(make_notifier, provider_error):
    calendar = FakeCalendar(error=provider_error)
    contacts = FakeContacts([contact("Ana", TODAY.month, TODAY.day)])
    sink = FakeSink()
    notifier = make_notifier(calendar, contacts, sink)

    outcome = await notifier.check_birthdays()

    assert outcome.status == "delivered"
    assert sink.messages == ["🎉 Today is <b>Ana</b>'s birthday! 🎂"]


@pytest.mark.asyncio
async def test_birthday_check_uses_calendar_when_contacts_fail(make_notifier, provider_error):
    calendar = FakeCalendar({TODAY: [event("Mom Birthday")]})
    sink = FakeSink()
    notifier = make_notifier(calendar, FakeContacts(error=provider_error), sink)

    outcome = await notifier.check_birthdays()

    assert outcome.status == "delivered"
    assert "Mom Birthday" in sink.messages[0]


@pytest.mark.asyncio
async def test_birthday_check_fails_when_both_sources_fail(make_notifier, provider_error):
    sink = FakeSink()
    notifier = make_notifier(
        FakeCalendar(error=provider_error),
        FakeContacts(error=provider_error),
        sink,
    )

    outcome = await notifier.check_birthdays()

    assert outcome.status == "failed"
    assert "Fake Calendar" in outcome.detail and "Fake Contacts" in outcome.detail
    assert sink.messages == []


@pytest.mark.asyncio
async def test_failure_is_logged_with_source_name(make_notifier, provider_error, caplog):
    notifier = make_notifier(FakeCalendar(error=provider_error))

    with caplog.at_level("WARNING"):
        await notifier.check_birthdays()

    assert "Fake Calendar" in caplog.text
    assert "invalid authentication" in caplog.text


@pytest.mark.asyncio
async def test_unexpected_provider_bug_is_isolated(make_notifier):
    calendar = FakeCalendar(error=KeyError("items"))
    contacts = FakeContacts([contact("Ana", TODAY.month, TODAY.day)])
    sink = FakeSink()

    outcome = await make_notifier(calendar, contacts, sink).check_birthdays()

    assert outcome.status == "delivered"


@pytest.mark.asyncio
async def test_nothing_is_sent_when_there_is_nothing_to_report(make_notifier):
    calendar = FakeCalendar({TODAY: [], TOMORROW: []})
    contacts = FakeContacts([contact("Bob", 1, 1)])
    sink = FakeSink()
    notifier = make_notifier(calendar, contacts, sink)

    outcomes = await notifier.run_all()

    assert sink.messages == []
    assert [outcome.status for outcome in outcomes] == ["skipped", "skipped", "skipped"]
    assert {outcome.kind for outcome in outcomes} == {"birthdays", "events-today", "events-tomorrow"}


@pytest.mark.asyncio
async def test_calendar_check_sends_today_and_tomorrow_without_birthdays(make_notifier):
    standup = event("Standup", datetime(2026, 10, 19, 10, 0, tzinfo=TZ))
    calendar = FakeCalendar(
        {
            TODAY: [standup, event("Mom Birthday")],
            TOMORROW: [event("Dentist", datetime(2026, 10, 20, 15, 45, tzinfo=TZ), "Clinic")],
        }
    )
    sink = FakeSink()
    notifier = make_notifier(calendar=calendar, sink=sink)

    outcomes = await notifier.check_calendar_events()

    assert [outcome.status for outcome in outcomes] == ["delivered", "delivered"]
    today_message, tomorrow_message = sink.messages
    assert "Events for today" in today_message
    assert "Standup" in today_message and "10:00" in today_message
    assert "Mom Birthday" not in today_message
    assert "Events for tomorrow" in tomorrow_message
    assert "15:45" in tomorrow_message and "Clinic" in tomorrow_message


@pytest.mark.asyncio
async def test_calendar_check_queries_local_day_windows(make_notifier):
    calendar = FakeCalendar()
    await make_notifier(calendar=calendar).check_calendar_events()

    (today_start, today_end), (tomorrow_start, _) = calendar.windows
    assert today_start == datetime(2026, 10, 19, tzinfo=TZ)
    assert today_end.date() == TODAY
    assert tomorrow_start == datetime(2026, 10, 20, tzinfo=TZ)


@pytest.mark.asyncio
async def test_tomorrow_is_checked_even_when_today_fails(make_notifier):
    calendar = FakeCalendar(
        {TOMORROW: [event("Dentist")]},
        error=ProviderError("Fake Calendar", "timeout"),
        failing_days=[TODAY],
    )
    sink = FakeSink()

    outcomes = await make_notifier(calendar=calendar, sink=sink).check_calendar_events()

    assert [outcome.status for outcome in outcomes] == ["failed", "delivered"]
    assert len(sink.messages) == 1
    assert "Events for tomorrow" in sink.messages[0]


@pytest.mark.asyncio
async def test_delivery_failure_is_reported_not_raised(make_notifier, delivery_error):
    calendar = FakeCalendar({TODAY: [event("Standup")], TOMORROW: [event("Review")]})
    sink = FakeSink(error=delivery_error)
    notifier = make_notifier(calendar=calendar, sink=sink)

    outcomes = await notifier.check_calendar_events()

    assert [outcome.status for outcome in outcomes] == ["failed", "failed"]
    assert notifier.last_outcomes["events-tomorrow"].status == "failed"


class BlockingCalendar(FakeCalendar):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def fetch_events(self, window_start, window_end):
        self.started.set()
        await self.release.wait()
        return await super().fetch_events(window_start, window_end)


@pytest.mark.asyncio
async def test_overlapping_run_is_skipped(make_notifier):
    calendar = BlockingCalendar({TODAY: [event("Mom Birthday")]})
    sink = FakeSink()
    notifier = make_notifier(calendar=calendar, sink=sink)

    first = asyncio.create_task(notifier.check_birthdays())
    await calendar.started.wait()
    overlapping = await notifier.check_birthdays()
    calendar.release.set()
    finished = await first

    assert overlapping.status == "skipped"
    assert "in progress" in overlapping.detail
    assert finished.status == "delivered"
    assert len(sink.messages) == 1
    assert len(calendar.windows) == 1


@pytest.mark.asyncio
async def test_run_all_records_last_outcomes(make_notifier):
    calendar = FakeCalendar({TODAY: [event("Standup")]})
    sink = FakeSink()
    notifier = make_notifier(calendar=calendar, sink=sink)

    await notifier.run_all()

    assert notifier.last_outcomes["events-today"].status == "delivered"
    assert notifier.last_outcomes["events-tomorrow"].status == "skipped"
    assert notifier.last_outcomes["birthdays"].status == "skipped"
