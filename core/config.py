from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from apscheduler.triggers.cron import CronTrigger
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from core.scheduler import DEFAULT_CRON_SCHEDULE, DEFAULT_TIMEZONE
from core.state_store import DEFAULT_STATE_PATH
from providers.hoe_provider import DEFAULT_API_URL

# Settings field -> environment variable.
ENV_VARS = {
    "telegram_bot_token": "TELEGRAM_BOT_TOKEN",
    "telegram_chat_id": "TELEGRAM_CHAT_ID",
    "hoe_api_url": "HOE_API_URL",
    "hoe_street_id": "HOE_STREET_ID",
    "hoe_house": "HOE_HOUSE",
    "cron_schedule": "CRON_SCHEDULE",
    "retry_attempts": "RETRY_ATTEMPTS",
    "retry_delay_ms": "RETRY_DELAY_MS",
    "request_timeout_ms": "REQUEST_TIMEOUT_MS",
    "state_file_path": "STATE_FILE_PATH",
    "timezone": "TIMEZONE",
    "log_level": "LOG_LEVEL",
}


class ConfigError(ValueError):
    """Environment configuration is missing or invalid."""


class Settings(BaseModel):
    telegram_bot_token: str = Field(min_length=1)
    telegram_chat_id: int
    hoe_api_url: str = DEFAULT_API_URL
    hoe_street_id: int = Field(default=280782, gt=0)
    hoe_house: str = Field(default="33", min_length=1)
    cron_schedule: str = DEFAULT_CRON_SCHEDULE
    retry_attempts: int = Field(default=3, ge=1)
    retry_delay_ms: int = Field(default=5000, ge=100)
    request_timeout_ms: int = Field(default=30000, ge=1000)
    state_file_path: Path = DEFAULT_STATE_PATH
    timezone: str = DEFAULT_TIMEZONE
    log_level: str = "INFO"

    @field_validator("telegram_bot_token", "hoe_house")
    @classmethod
    def _strip(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("hoe_api_url")
    @classmethod
    def _check_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("must be an http(s) URL")
        return v

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown timezone {v!r}") from exc
        return v

    @field_validator("cron_schedule")
    @classmethod
    def _check_cron(cls, v: str) -> str:
        try:
            CronTrigger.from_crontab(v)
        except ValueError as exc:
            raise ValueError(f"invalid cron expression {v!r}: {exc}") from exc
        return v

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level {v!r}")
        return level


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build ``Settings`` from the environment (``.env`` included).

    Unset variables fall back to defaults. Raises ``ConfigError`` listing
    every invalid field.
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    raw = {
        field_name: environ[env_name]
        for field_name, env_name in ENV_VARS.items()
        if environ.get(env_name, "") != ""
    }

    try:
        return Settings(**raw)
    except ValidationError as exc:
        lines = []
        for err in exc.errors():
            loc = ".".join(str(part) for part in err["loc"])
            lines.append(f"  - {ENV_VARS.get(loc, loc)}: {err['msg']}")
        problems = "\n".join(lines)
        raise ConfigError(f"Environment validation failed:\n{problems}") from exc
