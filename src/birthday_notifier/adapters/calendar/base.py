from __future__ import annotations

from datetime import datetime
from typing import Protocol

from ...domain.models import CalendarEvent
from ...errors import ProviderError


class CalendarAdapter(Protocol):
    @property
    def source_name(self) -> str:
        """Human-readable name used in logs."""

    async def fetch_events(self, window_start: datetime, window_end: datetime) -> list[CalendarEvent]:
        """Return every event the provider lists for the window; raise ProviderError on failure."""


__all__ = ["CalendarAdapter", "ProviderError"]
