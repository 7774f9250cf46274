from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

UNKNOWN_EVENT_TITLE = "Unknown"
UNNAMED_CONTACT = "Unnamed Contact"

MessageKind = Literal["birthdays", "events-today", "events-tomorrow"]
OutcomeStatus = Literal["delivered", "skipped", "failed"]

T = TypeVar("T")


class CalendarEvent(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    title: str = UNKNOWN_EVENT_TITLE
    start_time: datetime | None = None
    location: str | None = None

    @field_validator("title", mode="before")
    @classmethod
    def validate_title(cls, value: object) -> str:
        if not isinstance(value, str):
            return UNKNOWN_EVENT_TITLE
        return value.strip() or UNKNOWN_EVENT_TITLE

    @field_validator("location", mode="before")
    @classmethod
    def validate_location(cls, value: object) -> str | None:
        if not isinstance(value, str):
            return None
        return value.strip() or None

    @property
    def all_day(self) -> bool:
        return self.start_time is None


class ContactBirthday(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    display_name: str = UNNAMED_CONTACT
    birth_month: int = Field(ge=1, le=12)
    birth_day: int = Field(ge=1, le=31)
    contact_id: str | None = None

    @field_validator("display_name", mode="before")
    @classmethod
    def validate_display_name(cls, value: object) -> str:
        if not isinstance(value, str):
            return UNNAMED_CONTACT
        return value.strip() or UNNAMED_CONTACT


class NotificationMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: MessageKind
    text: str


@dataclass(frozen=True, slots=True)
class FetchResult(Generic[T]):
    """Outcome of one provider call: either items or the reason it failed."""

    source: str
    items: tuple[T, ...] = ()
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, source: str, items: list[T] | tuple[T, ...]) -> FetchResult[T]:
        return cls(source=source, items=tuple(items))

    @classmethod
    def failure(cls, source: str, reason: str) -> FetchResult[T]:
        return cls(source=source, error=reason)


@dataclass(frozen=True, slots=True)
class CheckOutcome:
    kind: MessageKind
    status: OutcomeStatus
    detail: str = ""
    finished_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def as_dict(self) -> dict[str, str]:
        return {
            "kind": self.kind,
            "status": self.status,
            "detail": self.detail,
            "finished_at_utc": self.finished_at.isoformat(),
        }
