from __future__ import annotations

import html
import re
from typing import Sequence
from zoneinfo import ZoneInfo

from .models import CalendarEvent

BULLET = "•"
ALL_DAY_LABEL = "All day"

_TAG_PATTERN = re.compile(r"</?[a-zA-Z][^>]*>")


def _bold(text: str) -> str:
    return f"<b>{html.escape(text, quote=False)}</b>"


def format_birthday_message(names: Sequence[str]) -> str:
    if not names:
        raise ValueError("format_birthday_message requires at least one name")

    if len(names) == 1:
        return f"🎉 Today is {_bold(names[0])}'s birthday! 🎂"

    lines = ["🎉 <b>Today's birthdays:</b>"]
    lines.extend(f"{BULLET} {html.escape(name, quote=False)}" for name in names)
    lines.append("")
    lines.append("🎂 Congratulations!")
    return "\n".join(lines)


def format_event_time_label(event: CalendarEvent, timezone_value: ZoneInfo | None = None) -> str:
    if event.all_day:
        return ALL_DAY_LABEL
    local_start = event.start_time
    if timezone_value is not None and local_start.tzinfo is not None:
        local_start = local_start.astimezone(timezone_value)
    return local_start.strftime("%H:%M")


def _format_event_block(event: CalendarEvent, timezone_value: ZoneInfo | None) -> str:
    lines = [
        _bold(event.title),
        f"🕒 {format_event_time_label(event, timezone_value)}",
    ]
    if event.location:
        lines.append(f"📍 {html.escape(event.location, quote=False)}")
    return "\n".join(lines)


def format_events_message(
    events: Sequence[CalendarEvent],
    window_label: str,
    timezone_value: ZoneInfo | None = None,
) -> str:
    if not events:
        raise ValueError("format_events_message requires at least one event")

    header = f"📅 {_bold(f'Events for {window_label}')}"
    blocks = [_format_event_block(event, timezone_value) for event in events]
    return "\n\n".join([header, *blocks])


def to_plain_text(text: str) -> str:
    """Drop the rich-text markup for channels that reject it."""
    return html.unescape(_TAG_PATTERN.sub("", text))
