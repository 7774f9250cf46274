from __future__ import annotations

import logging

import httpx
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from .adapters.calendar import GoogleCalendarAdapter
from .adapters.contacts import GooglePeopleContactsAdapter
from .adapters.google_api import CredentialProvider, GoogleTokenFileCredentials
from .adapters.telegram import TelegramNotifierSink
from .domain.models import CheckOutcome
from .notifier import Notifier
from .settings import AppSettings

LOGGER = logging.getLogger(__name__)

NOTIFICATION_JOB_ID = "daily_notification_job"
DEFAULT_TIMEOUT_SECONDS = 30


def build_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=httpx.Timeout(DEFAULT_TIMEOUT_SECONDS),
        headers={"User-Agent": "birthday-notifier/0.1"},
    )


def build_credentials(settings: AppSettings) -> GoogleTokenFileCredentials:
    return GoogleTokenFileCredentials(token_path=settings.google_token_path)


def build_calendar_adapter(
    settings: AppSettings,
    client: httpx.AsyncClient,
    credentials: CredentialProvider,
) -> GoogleCalendarAdapter:
    return GoogleCalendarAdapter(
        client=client,
        credentials=credentials,
        calendar_id=settings.yaml.calendar.calendar_id,
    )


def build_contacts_adapter(
    client: httpx.AsyncClient,
    credentials: CredentialProvider,
) -> GooglePeopleContactsAdapter:
    return GooglePeopleContactsAdapter(client=client, credentials=credentials)


def build_notifier(
    settings: AppSettings,
    client: httpx.AsyncClient,
    credentials: CredentialProvider | None = None,
) -> Notifier:
    if credentials is None:
        credentials = build_credentials(settings)
    return Notifier(
        calendar=build_calendar_adapter(settings, client, credentials),
        contacts=build_contacts_adapter(client, credentials),
        sink=TelegramNotifierSink(
            client=client,
            bot_token=settings.env.telegram_bot_token,
            channel_id=settings.yaml.telegram.channel_id,
        ),
        timezone_value=settings.timezone,
        birthday_keywords=settings.birthday_keywords,
    )


async def run_notification_job(notifier: Notifier) -> list[CheckOutcome]:
    outcomes = await notifier.run_all()
    summary = ", ".join(f"{outcome.kind}={outcome.status}" for outcome in outcomes)
    LOGGER.info("Notification job finished: %s", summary or "no checks ran")
    return outcomes


def build_scheduler(settings: AppSettings, notifier: Notifier) -> AsyncIOScheduler:
    schedule = settings.yaml.schedule
    scheduler = AsyncIOScheduler(timezone=settings.timezone)
    scheduler.add_job(
        run_notification_job,
        CronTrigger(hour=schedule.hour, minute=schedule.minute, timezone=settings.timezone),
        kwargs={"notifier": notifier},
        id=NOTIFICATION_JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=300,
    )
    return scheduler
