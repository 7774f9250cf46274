from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .domain.classifier import DEFAULT_BIRTHDAY_KEYWORDS
from .errors import ConfigurationError

PROJECT_ROOT = Path(__file__).resolve().parents[2]


class ScheduleSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    hour: int = Field(default=9, ge=0, le=23)
    minute: int = Field(default=0, ge=0, le=59)


class CalendarSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    calendar_id: str

    @field_validator("calendar_id")
    @classmethod
    def validate_calendar_id(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("calendar.calendar_id must not be empty")
        return text


class TelegramSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    channel_id: str

    @field_validator("channel_id", mode="before")
    @classmethod
    def validate_channel_id(cls, value: object) -> str:
        # Numeric chat ids are common in YAML and arrive as ints.
        if isinstance(value, int):
            value = str(value)
        if not isinstance(value, str) or not value.strip():
            raise ValueError("telegram.channel_id must not be empty")
        return value.strip()


class BirthdaySettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    keywords: list[str] = Field(default_factory=lambda: list(DEFAULT_BIRTHDAY_KEYWORDS))

    @field_validator("keywords")
    @classmethod
    def validate_keywords(cls, values: list[str]) -> list[str]:
        normalized: list[str] = []
        for raw_keyword in values:
            if not isinstance(raw_keyword, str):
                raise ValueError("birthdays.keywords entries must be strings")
            keyword = raw_keyword.strip().casefold()
            if not keyword:
                raise ValueError("birthdays.keywords entries must not be empty")
            normalized.append(keyword)

        deduplicated = list(dict.fromkeys(normalized))
        if not deduplicated:
            raise ValueError("birthdays.keywords must contain at least one keyword")
        return deduplicated


class NotifierYamlSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    schedule: ScheduleSettings = Field(default_factory=ScheduleSettings)
    calendar: CalendarSettings
    telegram: TelegramSettings
    birthdays: BirthdaySettings = Field(default_factory=BirthdaySettings)


class EnvSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    notifier_env: Literal["dev", "test", "prod"] = "dev"
    notifier_timezone: str = "Europe/Moscow"
    notifier_config_path: Path = Path("config/notifier.yaml")
    notifier_log_dir: Path = Path("logs")
    notifier_host: str = "127.0.0.1"
    notifier_port: int = Field(default=8080, ge=1, le=65535)
    telegram_bot_token: str = ""
    google_token_path: Path = Path("google-token.json")
    google_credentials_path: Path = Path("oauth-credentials.json")

    @field_validator("notifier_timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value


class AppSettings(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    env: EnvSettings
    yaml: NotifierYamlSettings
    project_root: Path
    config_path: Path
    log_dir: Path
    google_token_path: Path
    timezone: ZoneInfo

    @property
    def birthday_keywords(self) -> list[str]:
        return self.yaml.birthdays.keywords


def resolve_project_path(path: Path) -> Path:
    if path.is_absolute():
        return path
    return (PROJECT_ROOT / path).resolve()


def _load_yaml_settings(path: Path) -> NotifierYamlSettings:
    if not path.exists():
        raise ConfigurationError(f"Notifier config file not found: {path}")

    try:
        raw_config = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Notifier config file is not valid YAML: {path}") from exc
    if raw_config is None:
        raw_config = {}
    if not isinstance(raw_config, dict):
        raise ConfigurationError("Notifier config must be a YAML mapping/object at the top level")

    try:
        return NotifierYamlSettings.model_validate(raw_config)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid notifier config {path}: {exc}") from exc


def build_settings(env: EnvSettings) -> AppSettings:
    if not env.telegram_bot_token.strip():
        raise ConfigurationError("TELEGRAM_BOT_TOKEN must be set")

    config_path = resolve_project_path(env.notifier_config_path)
    yaml_settings = _load_yaml_settings(config_path)
    return AppSettings(
        env=env,
        yaml=yaml_settings,
        project_root=PROJECT_ROOT,
        config_path=config_path,
        log_dir=resolve_project_path(env.notifier_log_dir),
        google_token_path=resolve_project_path(env.google_token_path),
        timezone=ZoneInfo(env.notifier_timezone),
    )


def load_env_settings() -> EnvSettings:
    try:
        return EnvSettings()
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid environment configuration: {exc}") from exc


@lru_cache(maxsize=1)
def load_settings() -> AppSettings:
    return build_settings(load_env_settings())
