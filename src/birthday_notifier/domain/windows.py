from __future__ import annotations

from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo


def day_window(target_date: date, timezone_value: ZoneInfo) -> tuple[datetime, datetime]:
    """Local midnight to the last microsecond of the same local day."""
    window_start = datetime.combine(target_date, time.min, tzinfo=timezone_value)
    window_end = datetime.combine(target_date, time.max, tzinfo=timezone_value)
    return window_start, window_end


def today_and_tomorrow(now: datetime) -> tuple[date, date]:
    today = now.date()
    return today, today + timedelta(days=1)
