import logging
import os
import sys
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from notion_notifier.dates import WEEKDAY_CODES

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------
DEFAULT_NOTION_VERSION = "2022-06-28"
DEFAULT_TIMEZONE = "Africa/Lagos"
DEFAULT_WEEKEND_DAYS = ("Sat", "Sun")
DEFAULT_PAGE_SIZE = 100
MAX_PAGE_SIZE = 100
DEFAULT_REQUEST_TIMEOUT = 15.0

PROVIDERS = ("telegram", "slack")

REQUIRED_VARS = ["NOTION_TOKEN", "NOTION_DATABASE_ID"]
PROVIDER_VARS = {
    "telegram": ["TELEGRAM_TOKEN", "TELEGRAM_CHAT_ID"],
    "slack": ["SLACK_BOT_TOKEN", "SLACK_CHANNEL"],
}


class ConfigError(ValueError):
    """Raised when the environment holds an unusable setting."""


@dataclass(frozen=True)
class Settings:
    """Process configuration, built once in main() and passed explicitly."""

    notion_token: str
    database_id: str
    notion_version: str = DEFAULT_NOTION_VERSION
    messaging_provider: str = "telegram"
    telegram_token: Optional[str] = None
    telegram_chat_id: Optional[str] = None
    slack_bot_token: Optional[str] = None
    slack_channel: Optional[str] = None
    timezone: str = DEFAULT_TIMEZONE
    weekend_days: Tuple[str, ...] = DEFAULT_WEEKEND_DAYS
    repeat_aware: bool = True
    weekday_filter_enabled: bool = False
    page_size: int = DEFAULT_PAGE_SIZE
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    run_every_minutes: int = 0

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------
def _provider(env: Mapping[str, str]) -> str:
    return (env.get("MESSAGING_PROVIDER") or "telegram").strip().lower()


def missing_variables(env: Mapping[str, str]) -> list:
    """Names of required variables that are unset or empty."""
    required = list(REQUIRED_VARS)
    required.extend(PROVIDER_VARS.get(_provider(env), []))
    return [var for var in required if not env.get(var)]


def validate_environment(env: Optional[Mapping[str, str]] = None) -> None:
    """
    Validate that all required environment variables are set.
    Exits with error code 1 if any required variables are missing.
    """
    env = os.environ if env is None else env
    missing = missing_variables(env)

    if missing:
        logger.error("Missing required environment variables: %s", ", ".join(missing))
        logger.error("Please set these variables in your .env file or environment")
        sys.exit(1)

    logger.info("Environment validation passed")


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------
def parse_bool(raw: Optional[str], default: bool) -> bool:
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on", "y")


def parse_weekend_days(raw: Optional[str]) -> Tuple[str, ...]:
    """Parse WEEKEND_DAYS (comma-separated weekday codes, e.g. "Sat,Sun")."""
    if not raw or not raw.strip():
        return DEFAULT_WEEKEND_DAYS
    days = []
    for part in raw.split(","):
        code = part.strip().title()
        if not code:
            continue
        if code not in WEEKDAY_CODES:
            raise ConfigError(f"WEEKEND_DAYS contains unknown weekday {part.strip()!r}")
        if code not in days:
            days.append(code)
    return tuple(days)


def _parse_number(env: Mapping[str, str], name: str, default, cast):
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw.strip())
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from the environment. Call validate_environment first."""
    env = os.environ if env is None else env

    provider = _provider(env)
    if provider not in PROVIDERS:
        raise ConfigError(
            f"MESSAGING_PROVIDER must be one of {', '.join(PROVIDERS)}, got {provider!r}"
        )

    timezone = (env.get("NOTIFY_TIMEZONE") or DEFAULT_TIMEZONE).strip()
    try:
        ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError):
        raise ConfigError(f"NOTIFY_TIMEZONE {timezone!r} is not a known timezone") from None

    page_size = _parse_number(env, "PAGE_SIZE", DEFAULT_PAGE_SIZE, int)
    if page_size < 1:
        raise ConfigError("PAGE_SIZE must be at least 1")
    if page_size > MAX_PAGE_SIZE:
        logger.warning("PAGE_SIZE %d exceeds the API limit; using %d", page_size, MAX_PAGE_SIZE)
        page_size = MAX_PAGE_SIZE

    request_timeout = _parse_number(env, "REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT, float)
    if request_timeout <= 0:
        raise ConfigError("REQUEST_TIMEOUT must be positive")

    run_every = _parse_number(env, "RUN_EVERY_MINUTES", 0, int)
    if run_every < 0:
        raise ConfigError("RUN_EVERY_MINUTES cannot be negative")

    return Settings(
        notion_token=env.get("NOTION_TOKEN", ""),
        database_id=env.get("NOTION_DATABASE_ID", ""),
        notion_version=env.get("NOTION_VERSION") or DEFAULT_NOTION_VERSION,
        messaging_provider=provider,
        telegram_token=env.get("TELEGRAM_TOKEN") or None,
        telegram_chat_id=env.get("TELEGRAM_CHAT_ID") or None,
        slack_bot_token=env.get("SLACK_BOT_TOKEN") or None,
        slack_channel=env.get("SLACK_CHANNEL") or None,
        timezone=timezone,
        weekend_days=parse_weekend_days(env.get("WEEKEND_DAYS")),
        repeat_aware=parse_bool(env.get("REPEAT_AWARE"), True),
        weekday_filter_enabled=parse_bool(env.get("WEEKDAY_FILTER_ENABLED"), False),
        page_size=page_size,
        request_timeout=request_timeout,
        run_every_minutes=run_every,
    )
