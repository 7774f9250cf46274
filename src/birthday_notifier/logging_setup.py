from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler

from .settings import AppSettings

LOG_FORMAT = "[%(asctime)s] %(levelname)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUP_COUNT = 5
HANDLER_PREFIX = "birthday_notifier."


def configure_logging(settings: AppSettings) -> None:
    """Install file and console handlers on the root logger; safe to call twice."""
    is_prod = settings.env.notifier_env == "prod"
    level = logging.INFO if is_prod else logging.DEBUG
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    settings.log_dir.mkdir(parents=True, exist_ok=True)
    handlers: list[logging.Handler] = []

    error_handler = RotatingFileHandler(
        settings.log_dir / "error.log",
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUP_COUNT,
        encoding="utf-8",
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.set_name(f"{HANDLER_PREFIX}error")
    handlers.append(error_handler)

    combined_handler = RotatingFileHandler(
        settings.log_dir / "combined.log",
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUP_COUNT,
        encoding="utf-8",
    )
    combined_handler.set_name(f"{HANDLER_PREFIX}combined")
    handlers.append(combined_handler)

    if not is_prod:
        console_handler = logging.StreamHandler()
        console_handler.set_name(f"{HANDLER_PREFIX}console")
        handlers.append(console_handler)

    root = logging.getLogger()
    for existing in list(root.handlers):
        if (existing.get_name() or "").startswith(HANDLER_PREFIX):
            root.removeHandler(existing)
            existing.close()

    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(level)

    # httpx logs request URLs at INFO, and Telegram URLs embed the bot token.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
