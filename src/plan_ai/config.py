"""Configuration loading for plan-ai.

Reads settings from environment variables (with .env support via python-dotenv)
and validates that all required values are present.  Settings are loaded at
call time rather than import time so that a missing API key surfaces as a
request-level error instead of crashing the server on startup.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv


class ConfigError(Exception):
    """Raised when required configuration is missing or invalid."""


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables.

    Attributes:
        gemini_api_key: API key for Google Gemini.
        gemini_model: Gemini model identifier (default ``"gemini-2.0-flash"``).
        log_level: Logging level (default ``"INFO"``).
        timezone: IANA timezone string (default ``"America/Vancouver"``).
        chat_history_limit: Maximum turns kept per chat session (default 10).
        plan_history_limit: Turns read when building a plan (default 20).
    """

    gemini_api_key: str
    gemini_model: str = "gemini-2.0-flash"
    log_level: str = "INFO"
    timezone: str = "America/Vancouver"
    chat_history_limit: int = 10
    plan_history_limit: int = 20

    def __repr__(self) -> str:
        return (
            f"Settings(gemini_api_key='***', "
            f"gemini_model={self.gemini_model!r}, "
            f"log_level={self.log_level!r}, "
            f"timezone={self.timezone!r}, "
            f"chat_history_limit={self.chat_history_limit!r}, "
            f"plan_history_limit={self.plan_history_limit!r})"
        )


@dataclass(frozen=True)
class CalendarSettings:
    """Settings for the Google Calendar collaborator.

    Attributes:
        credentials_path: OAuth client secrets file.
        token_path: Cached user token file.
        timezone: IANA timezone applied to created events.
    """

    credentials_path: str = "credentials.json"
    token_path: str = "token.json"
    timezone: str = "America/Vancouver"


def load_settings() -> Settings:
    """Load and validate settings from environment variables.

    Calls :func:`dotenv.load_dotenv` so a ``.env`` file in the project root
    is picked up automatically.

    Returns:
        A validated :class:`Settings` instance.

    Raises:
        ConfigError: If ``GEMINI_API_KEY`` is missing, empty, or
            whitespace-only, if a history limit is not a positive
            integer, or if ``TIMEZONE`` is not a known IANA zone.
    """
    load_dotenv()

    api_key = os.environ.get("GEMINI_API_KEY", "")
    if not api_key.strip():
        raise ConfigError("Missing required environment variables: GEMINI_API_KEY")

    values: dict[str, object] = {"gemini_api_key": api_key}

    optional = {
        "GEMINI_MODEL": "gemini_model",
        "LOG_LEVEL": "log_level",
        "TIMEZONE": "timezone",
    }
    for env_var, field_name in optional.items():
        raw = os.environ.get(env_var, "").strip()
        if raw:
            values[field_name] = raw

    for env_var, field_name in (
        ("CHAT_HISTORY_LIMIT", "chat_history_limit"),
        ("PLAN_HISTORY_LIMIT", "plan_history_limit"),
    ):
        raw = os.environ.get(env_var, "").strip()
        if raw:
            values[field_name] = _positive_int(env_var, raw)

    _check_timezone(str(values.get("timezone", Settings.timezone)))

    return Settings(**values)  # type: ignore[arg-type]


def load_calendar_settings() -> CalendarSettings:
    """Load Google Calendar settings, all of which are optional."""
    load_dotenv()

    values: dict[str, str] = {}
    for env_var, field_name in (
        ("GOOGLE_CREDENTIALS_PATH", "credentials_path"),
        ("GOOGLE_TOKEN_PATH", "token_path"),
        ("TIMEZONE", "timezone"),
    ):
        raw = os.environ.get(env_var, "").strip()
        if raw:
            values[field_name] = raw

    return CalendarSettings(**values)


def _positive_int(env_var: str, raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{env_var} must be an integer, got {raw!r}") from None
    if value < 1:
        raise ConfigError(f"{env_var} must be at least 1, got {value}")
    return value


def _check_timezone(name: str) -> None:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ConfigError(f"TIMEZONE is not a known IANA timezone: {name!r}") from None
