"""
Command line entry point.

Usage:
    birthday-notifier run      # serve the status app and the daily schedule
    birthday-notifier notify   # run all checks once and exit
    birthday-notifier check    # verify configuration, credentials and sources
    birthday-notifier auth     # create or refresh the Google OAuth token file
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path

import uvicorn

from .adapters.google_api import GoogleTokenFileCredentials, run_consent_flow
from .domain.classifier import split_events, todays_contact_names
from .domain.windows import day_window
from .errors import ConfigurationError, ProviderError
from .logging_setup import configure_logging
from .scheduler import (
    build_calendar_adapter,
    build_contacts_adapter,
    build_credentials,
    build_http_client,
    build_notifier,
    run_notification_job,
)
from .settings import AppSettings, EnvSettings, load_env_settings, load_settings, resolve_project_path

LOGGER = logging.getLogger(__name__)


async def _notify_once(settings: AppSettings) -> int:
    async with build_http_client() as client:
        notifier = build_notifier(settings, client)
        outcomes = await run_notification_job(notifier)
    return 1 if any(outcome.status == "failed" for outcome in outcomes) else 0


async def _check_setup(settings: AppSettings) -> int:
    print(f"Config file: {settings.config_path}")
    print(f"Calendar: {settings.yaml.calendar.calendar_id}")
    print(f"Telegram channel: {settings.yaml.telegram.channel_id}")
    print(f"Schedule: {settings.yaml.schedule.hour:02d}:{settings.yaml.schedule.minute:02d} ({settings.timezone})")
    print(f"Birthday keywords: {', '.join(settings.birthday_keywords)}")

    try:
        credentials = build_credentials(settings)
    except ProviderError as exc:
        print(f"FAIL credentials: {exc} (run 'birthday-notifier auth' to create the token)")
        return 1
    print(f"OK   credentials loaded from {credentials.token_path}")

    failed = False
    today = datetime.now(settings.timezone).date()
    async with build_http_client() as client:
        calendar = build_calendar_adapter(settings, client, credentials)
        contacts_adapter = build_contacts_adapter(client, credentials)
        window_start, window_end = day_window(today, settings.timezone)
        try:
            events = await calendar.fetch_events(window_start, window_end)
        except ProviderError as exc:
            print(f"FAIL calendar: {exc}")
            failed = True
        else:
            birthdays, regular = split_events(events, settings.birthday_keywords)
            print(f"OK   calendar: {len(events)} events today ({len(birthdays)} birthdays, {len(regular)} regular)")

        try:
            contacts = await contacts_adapter.fetch_birthday_contacts()
        except ProviderError as exc:
            print(f"FAIL contacts: {exc}")
            failed = True
        else:
            todays = todays_contact_names(contacts, today)
            print(f"OK   contacts: {len(contacts)} stored birthdays, {len(todays)} today")

    return 1 if failed else 0


def _authorize(env: EnvSettings, *, client_secrets: Path | None, force: bool) -> int:
    token_path = resolve_project_path(env.google_token_path)
    secrets_path = resolve_project_path(client_secrets or env.google_credentials_path)

    if token_path.exists() and not force:
        try:
            existing = GoogleTokenFileCredentials(token_path=token_path)
        except ProviderError as exc:
            print(f"Existing token is unusable, requesting a new one: {exc}")
        else:
            if existing.valid:
                answer = input(f"A valid token already exists at {token_path}. Create a new one? [y/N]: ")
                if answer.strip().lower() != "y":
                    print("Keeping the existing token.")
                    return 0
            else:
                try:
                    asyncio.run(existing.get_access_token())
                except ProviderError as exc:
                    print(f"Token refresh failed, requesting a new one: {exc}")
                else:
                    print(f"OK   token refreshed in {token_path}")
                    return 0

    print(f"Opening the Google consent page for {secrets_path}")
    try:
        credentials = run_consent_flow(client_secrets_path=secrets_path, token_path=token_path)
    except ProviderError as exc:
        print(f"FAIL {exc}")
        return 1
    print(f"OK   token saved to {token_path}")
    if not credentials.refresh_token:
        print("WARN no refresh token was returned; run auth again once the token expires")
    return 0


def _run_server(settings: AppSettings) -> int:
    uvicorn.run(
        "birthday_notifier.main:app",
        host=settings.env.notifier_host,
        port=settings.env.notifier_port,
        log_config=None,
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="birthday-notifier",
        description="Daily birthday and calendar event notifications for a Telegram channel.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("run", help="Serve the status app and run the daily schedule")
    subparsers.add_parser("notify", help="Run the birthday and calendar checks once")
    subparsers.add_parser("check", help="Verify configuration, credentials and data sources")
    auth_parser = subparsers.add_parser("auth", help="Create or refresh the Google OAuth token file")
    auth_parser.add_argument("--client-secrets", type=Path, help="OAuth client secrets JSON (default: GOOGLE_CREDENTIALS_PATH)")
    auth_parser.add_argument("--force", action="store_true", help="Replace the stored token without asking")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "auth":
        try:
            env = load_env_settings()
        except ConfigurationError as exc:
            print(f"Configuration error: {exc}", file=sys.stderr)
            return 2
        return _authorize(env, client_secrets=args.client_secrets, force=args.force)

    try:
        settings = load_settings()
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    if args.command == "run":
        return _run_server(settings)

    configure_logging(settings)
    if args.command == "notify":
        try:
            return asyncio.run(_notify_once(settings))
        except ProviderError as exc:
            LOGGER.error("Unable to start notifier: %s", exc)
            return 1
    return asyncio.run(_check_setup(settings))


if __name__ == "__main__":
    sys.exit(main())
