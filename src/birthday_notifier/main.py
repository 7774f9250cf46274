from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .logging_setup import configure_logging
from .scheduler import (
    NOTIFICATION_JOB_ID,
    build_http_client,
    build_notifier,
    build_scheduler,
    run_notification_job,
)
from .settings import load_settings

LOGGER = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI):
    settings = load_settings()
    configure_logging(settings)
    LOGGER.info("Initializing application...")

    client = build_http_client()
    scheduler = None
    try:
        notifier = build_notifier(settings, client)
        application.state.settings = settings
        application.state.notifier = notifier
        application.state.started_at_utc = datetime.now(timezone.utc)

        LOGGER.info("Running immediate check...")
        await run_notification_job(notifier)

        schedule = settings.yaml.schedule
        LOGGER.info("Scheduling notifications at %02d:%02d daily", schedule.hour, schedule.minute)
        scheduler = build_scheduler(settings, notifier)
        scheduler.start()
        application.state.scheduler = scheduler
        LOGGER.info("Application successfully started and running")

        yield
    finally:
        if scheduler is not None and scheduler.running:
            scheduler.shutdown(wait=False)
        await client.aclose()


app = FastAPI(title="Birthday Notifier", version="0.1.0", lifespan=lifespan)


@app.get("/health", response_class=JSONResponse)
async def health(request: Request) -> JSONResponse:
    state = request.app.state
    scheduler = getattr(state, "scheduler", None)
    notifier = getattr(state, "notifier", None)

    next_run_at = None
    if scheduler is not None:
        job = scheduler.get_job(NOTIFICATION_JOB_ID)
        next_run_time = getattr(job, "next_run_time", None) if job is not None else None
        if next_run_time is not None:
            next_run_at = next_run_time.isoformat()

    last_checks = {}
    if notifier is not None:
        last_checks = {kind: outcome.as_dict() for kind, outcome in notifier.last_outcomes.items()}

    return JSONResponse(
        {
            "status": "ok",
            "service": "birthday-notifier",
            "scheduler_running": bool(scheduler is not None and scheduler.running),
            "next_run_at": next_run_at,
            "last_checks": last_checks,
            "timestamp_utc": datetime.now(timezone.utc).isoformat(),
        }
    )
