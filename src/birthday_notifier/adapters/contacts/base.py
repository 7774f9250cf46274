from __future__ import annotations

from typing import Protocol

from ...domain.models import ContactBirthday
from ...errors import ProviderError


class ContactsAdapter(Protocol):
    @property
    def source_name(self) -> str:
        """Human-readable name used in logs."""

    async def fetch_birthday_contacts(self) -> list[ContactBirthday]:
        """Return one record per stored birth date; raise ProviderError on failure."""


__all__ = ["ContactsAdapter", "ProviderError"]
