from __future__ import annotations

from datetime import date
from typing import Iterable

from .models import CalendarEvent, ContactBirthday

DEFAULT_BIRTHDAY_KEYWORDS = ("birthday", "день рождения")


def is_birthday_event(event: CalendarEvent, keywords: Iterable[str] = DEFAULT_BIRTHDAY_KEYWORDS) -> bool:
    """Return True when the event title contains any birthday keyword, ignoring case."""
    title = event.title.casefold()
    return any(keyword.casefold() in title for keyword in keywords if keyword)


def split_events(
    events: Iterable[CalendarEvent],
    keywords: Iterable[str] = DEFAULT_BIRTHDAY_KEYWORDS,
) -> tuple[list[CalendarEvent], list[CalendarEvent]]:
    keyword_list = list(keywords)
    birthdays: list[CalendarEvent] = []
    regular: list[CalendarEvent] = []
    for event in events:
        if is_birthday_event(event, keyword_list):
            birthdays.append(event)
        else:
            regular.append(event)
    return birthdays, regular


def is_birthday_today(contact: ContactBirthday, today: date) -> bool:
    return contact.birth_month == today.month and contact.birth_day == today.day


def todays_contact_names(contacts: Iterable[ContactBirthday], today: date) -> list[str]:
    # A contact with several matching birth dates is reported once.
    names: list[str] = []
    seen: set[str] = set()
    for contact in contacts:
        if not is_birthday_today(contact, today):
            continue
        identity = contact.contact_id or contact.display_name
        if identity in seen:
            continue
        seen.add(identity)
        names.append(contact.display_name)
    return names
