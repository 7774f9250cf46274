from __future__ import annotations

from typing import Any

import httpx

from ...domain.models import ContactBirthday
from ..google_api import CredentialProvider, get_json
from .base import ProviderError

PEOPLE_CONNECTIONS_URL = "https://people.googleapis.com/v1/people/me/connections"
PAGE_SIZE = 1000


def _display_name(person: dict[str, Any]) -> str | None:
    names = person.get("names")
    if not isinstance(names, list):
        return None
    for entry in names:
        if isinstance(entry, dict) and isinstance(entry.get("displayName"), str):
            return entry["displayName"]
    return None


def _birthdays_from_person(person: dict[str, Any]) -> list[ContactBirthday]:
    birthdays = person.get("birthdays")
    if not isinstance(birthdays, list):
        return []

    display_name = _display_name(person)
    contact_id = person.get("resourceName") if isinstance(person.get("resourceName"), str) else None
    records: list[ContactBirthday] = []
    for birthday in birthdays:
        if not isinstance(birthday, dict):
            continue
        birth_date = birthday.get("date")
        if not isinstance(birth_date, dict):
            continue
        month = birth_date.get("month")
        day = birth_date.get("day")
        # Partial dates (year only, or month without day) cannot match a calendar day.
        if not isinstance(month, int) or not isinstance(day, int):
            continue
        if not 1 <= month <= 12 or not 1 <= day <= 31:
            continue
        records.append(
            ContactBirthday(
                display_name=display_name,
                birth_month=month,
                birth_day=day,
                contact_id=contact_id,
            )
        )
    return records


class GooglePeopleContactsAdapter:
    def __init__(
        self,
        *,
        client: httpx.AsyncClient,
        credentials: CredentialProvider,
        source_name: str | None = None,
    ) -> None:
        self._client = client
        self._credentials = credentials
        self._source_name = (source_name or "").strip() or "Google Contacts"

    @property
    def source_name(self) -> str:
        return self._source_name

    async def fetch_birthday_contacts(self) -> list[ContactBirthday]:
        params: dict[str, Any] = {
            "personFields": "names,birthdays",
            "pageSize": PAGE_SIZE,
        }
        contacts: list[ContactBirthday] = []
        while True:
            payload = await get_json(
                self._client,
                PEOPLE_CONNECTIONS_URL,
                source=self._source_name,
                credentials=self._credentials,
                params=params,
            )
            connections = payload.get("connections", [])
            if not isinstance(connections, list):
                raise ProviderError(self._source_name, "connections response did not include a list")
            for person in connections:
                if isinstance(person, dict):
                    contacts.extend(_birthdays_from_person(person))

            page_token = payload.get("nextPageToken")
            if not isinstance(page_token, str) or not page_token:
                return contacts
            params = {**params, "pageToken": page_token}
