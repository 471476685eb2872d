"""Central configuration for multigig_alerter."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from .cadence import DEFAULT_TIMEZONE, valid_timezone

logger = logging.getLogger(__name__)

_TRUE = {"1", "true", "yes"}
RUN_STATE_FILE = "lastRuns.json"
CHAOS_STATE_FILE = "chaosSchedulerState.json"


def _flag(name: str, default: str = "false") -> bool:
    return (os.environ.get(name, default) or default).strip().lower() in _TRUE


def _int(name: str, default: int) -> int:
    raw = (os.environ.get(name) or "").strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def _float(name: str, default: float) -> float:
    raw = (os.environ.get(name) or "").strip()
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


def default_state_dir() -> str:
    """Container runs keep state in the mounted /app/data volume."""
    if os.environ.get("DOCKER_ENV") or os.environ.get("NODE_ENV") == "production":
        return "/app/data"
    return "data"


@dataclass
class Settings:
    """Configuration settings for multigig_alerter.

    All settings are loaded from environment variables with sensible defaults.
    """

    NOTIFIER: str
    DISCORD_WEBHOOK_URL: str | None
    DISCORD_ALERT_WEBHOOK_URL: str | None
    DISCORD_BOT_USERNAME: str
    DISCORD_BOT_AVATAR_URL: str | None
    TELEGRAM_BOT_TOKEN: str | None
    TELEGRAM_CHAT_ID: str | None
    TELEGRAM_ALERT_CHAT_ID: str | None
    INFLUXDB_HOST: str
    INFLUXDB_PORT: int
    INFLUXDB_PROTOCOL: str
    INFLUXDB_DATABASE: str
    INFLUXDB_USERNAME: str | None
    INFLUXDB_PASSWORD: str | None
    INFLUXDB_TOKEN: str | None
    INFLUXDB_TIMEOUT_S: float
    TICK_INTERVAL_S: float
    TIMEZONE: str
    DAILY_ALERT_HOUR: int
    STATE_DIR: Path
    TEST_MODE: bool
    TEST_WEBHOOK: bool
    FORWARD_LOGS: bool


def _read_settings() -> Settings:
    """Read all configuration from environment variables.

    Note:
        Invalid numeric values fall back to defaults.
        Boolean values accept: 1/true/yes (case-insensitive) as True.
    """
    notifier = (os.environ.get("NOTIFIER") or "discord").strip().lower()
    if notifier not in {"discord", "telegram"}:
        logger.warning("Unknown NOTIFIER %r; using discord", notifier)
        notifier = "discord"

    test_webhook = _flag("TEST_WEBHOOK")
    test_mode = (
        _flag("TEST_MODE")
        or test_webhook
        or _flag("TEST_ERROR_LOGGING")
        or os.environ.get("NODE_ENV") == "test"
    )

    daily_hour = _int("DAILY_ALERT_HOUR", 9)
    if not 0 <= daily_hour <= 23:
        logger.warning("DAILY_ALERT_HOUR=%s out of range; using 9", daily_hour)
        daily_hour = 9

    tick = _float("TICK_INTERVAL_S", 60.0)
    if tick <= 0:
        tick = 60.0

    return Settings(
        NOTIFIER=notifier,
        DISCORD_WEBHOOK_URL=os.environ.get("DISCORD_WEBHOOK_URL") or None,
        DISCORD_ALERT_WEBHOOK_URL=os.environ.get("DISCORD_ALERT_WEBHOOK_URL") or None,
        DISCORD_BOT_USERNAME=os.environ.get("DISCORD_BOT_USERNAME")
        or "MultiGig Alerter",
        DISCORD_BOT_AVATAR_URL=os.environ.get("DISCORD_BOT_AVATAR_URL") or None,
        TELEGRAM_BOT_TOKEN=os.environ.get("TELEGRAM_BOT_TOKEN") or None,
        TELEGRAM_CHAT_ID=os.environ.get("TELEGRAM_CHAT_ID") or None,
        TELEGRAM_ALERT_CHAT_ID=os.environ.get("TELEGRAM_ALERT_CHAT_ID") or None,
        INFLUXDB_HOST=os.environ.get("INFLUXDB_HOST") or "localhost",
        INFLUXDB_PORT=_int("INFLUXDB_PORT", 8086),
        INFLUXDB_PROTOCOL=os.environ.get("INFLUXDB_PROTOCOL") or "http",
        INFLUXDB_DATABASE=os.environ.get("INFLUXDB_DATABASE") or "speedtest",
        INFLUXDB_USERNAME=os.environ.get("INFLUXDB_USERNAME") or None,
        INFLUXDB_PASSWORD=os.environ.get("INFLUXDB_PASSWORD") or None,
        INFLUXDB_TOKEN=os.environ.get("INFLUXDB_TOKEN") or None,
        INFLUXDB_TIMEOUT_S=_float("INFLUXDB_TIMEOUT_S", 30.0),
        TICK_INTERVAL_S=tick,
        TIMEZONE=valid_timezone(os.environ.get("TIMEZONE") or DEFAULT_TIMEZONE),
        DAILY_ALERT_HOUR=daily_hour,
        STATE_DIR=Path(os.environ.get("STATE_DIR") or default_state_dir()),
        TEST_MODE=test_mode,
        TEST_WEBHOOK=test_webhook,
        FORWARD_LOGS=_flag("FORWARD_LOGS", "true"),
    )


def validate_settings(settings: Settings) -> None:
    """Log problems with critical configuration without refusing to start."""
    if settings.NOTIFIER == "discord":
        if not settings.DISCORD_WEBHOOK_URL:
            logger.error("DISCORD_WEBHOOK_URL is not set; notifications will fail")
        if not settings.DISCORD_ALERT_WEBHOOK_URL:
            logger.warning(
                "DISCORD_ALERT_WEBHOOK_URL is not set; system alerts will be dropped"
            )
    elif not settings.TELEGRAM_CHAT_ID:
        logger.error("TELEGRAM_CHAT_ID is not set; notifications will fail")
    if settings.TICK_INTERVAL_S > 3600:
        logger.warning(
            "TICK_INTERVAL_S=%s is longer than an hour; daily alerts may be missed",
            settings.TICK_INTERVAL_S,
        )
    if not (settings.INFLUXDB_TOKEN or settings.INFLUXDB_USERNAME):
        logger.info("No InfluxDB credentials configured")


def load_settings() -> Settings:
    settings = _read_settings()
    validate_settings(settings)
    return settings
