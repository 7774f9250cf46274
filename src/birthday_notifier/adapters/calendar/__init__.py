from .base import CalendarAdapter, ProviderError
from .google import GoogleCalendarAdapter

__all__ = [
    "CalendarAdapter",
    "GoogleCalendarAdapter",
    "ProviderError",
]
