"""
Configuration settings for the Daily Standup Bot.
Everything is read from the environment (and an optional .env file) once at startup.
"""

import os
import re
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from dotenv import load_dotenv

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
DEFAULT_STANDUP_DAYS = "monday,tuesday,wednesday,thursday,friday"

_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def _split(value: Optional[str], separator: str) -> Tuple[str, ...]:
    if not value:
        return ()
    return tuple(item.strip() for item in value.split(separator) if item.strip())


class BotConfig:
    """Configuration class for the Daily Standup Bot."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None, dotenv_path: str = ".env"):
        if environ is None:
            load_dotenv(dotenv_path)
            environ = os.environ

        # Slack Configuration
        self.SLACK_BOT_TOKEN = environ.get("SLACK_BOT_TOKEN")
        self.SLACK_APP_TOKEN = environ.get("SLACK_APP_TOKEN")
        self.SUMMARY_CHANNEL_NAME = environ.get("SUMMARY_CHANNEL_NAME")

        # Standup Content
        self.STANDUP_USERS = _split(environ.get("STANDUP_USERS"), ",")
        self.QUESTIONS = _split(environ.get("QUESTIONS"), ";")

        # Timing Configuration
        self.STANDUP_TIME = environ.get("STANDUP_TIME", "09:00")
        self.STANDUP_DAYS = tuple(day.lower() for day in _split(environ.get("STANDUP_DAYS", DEFAULT_STANDUP_DAYS), ","))
        self.SUMMARY_TIMEOUT_MINUTES = int(environ.get("SUMMARY_TIMEOUT_MINUTES", "30"))
        self.PACING_DELAY_SECONDS = float(environ.get("PACING_DELAY_SECONDS", "5"))
        self.SCHEDULER_POLL_SECONDS = int(environ.get("SCHEDULER_POLL_SECONDS", "1"))

        # MongoDB Configuration
        self.MONGODB_URI = environ.get("MONGODB_URI", "mongodb://localhost:27017/")
        self.MONGODB_DB_NAME = environ.get("MONGODB_DB_NAME", "standup_bot")

        # Flask Configuration
        self.FLASK_ENABLED = environ.get("FLASK_ENABLED", "False") == "True"
        self.FLASK_HOST = environ.get("FLASK_HOST", "0.0.0.0")
        self.FLASK_PORT = int(environ.get("FLASK_PORT", "3000"))

        # Logging
        self.LOG_LEVEL = environ.get("LOG_LEVEL", "INFO").upper()
        self.LOG_DIR = environ.get("LOG_DIR", "logs")

    def validate_config(self):
        """Validate that all required configuration is present."""
        required_vars = ['SLACK_BOT_TOKEN', 'SLACK_APP_TOKEN', 'SUMMARY_CHANNEL_NAME', 'STANDUP_USERS', 'QUESTIONS']
        missing_vars = [var for var in required_vars if not getattr(self, var)]

        if missing_vars:
            raise ValueError(f"Missing required environment variables: {', '.join(missing_vars)}")

        if not _TIME_PATTERN.match(self.STANDUP_TIME):
            raise ValueError(f"STANDUP_TIME must be HH:MM, got {self.STANDUP_TIME!r}")

        unknown_days = [day for day in self.STANDUP_DAYS if day != "daily" and day not in WEEKDAYS]
        if unknown_days or not self.STANDUP_DAYS:
            raise ValueError(f"Unknown STANDUP_DAYS entries: {', '.join(unknown_days) or '(empty)'}")

        if self.SUMMARY_TIMEOUT_MINUTES <= 0:
            raise ValueError("SUMMARY_TIMEOUT_MINUTES must be positive")
        if self.PACING_DELAY_SECONDS < 0:
            raise ValueError("PACING_DELAY_SECONDS cannot be negative")

        return True

    def get_config_dict(self):
        """Get configuration as a dictionary for easy access. Tokens are left out."""
        return {
            'summary_channel_name': self.SUMMARY_CHANNEL_NAME,
            'standup_users': list(self.STANDUP_USERS),
            'questions': list(self.QUESTIONS),
            'standup_time': self.STANDUP_TIME,
            'standup_days': list(self.STANDUP_DAYS),
            'summary_timeout_minutes': self.SUMMARY_TIMEOUT_MINUTES,
            'pacing_delay_seconds': self.PACING_DELAY_SECONDS,
            'scheduler_poll_seconds': self.SCHEDULER_POLL_SECONDS,
            'mongodb_db_name': self.MONGODB_DB_NAME,
            'flask_enabled': self.FLASK_ENABLED,
            'flask_host': self.FLASK_HOST,
            'flask_port': self.FLASK_PORT,
            'log_level': self.LOG_LEVEL,
        }


@dataclass(frozen=True)
class StandupContext:
    """Values resolved once at startup and shared by every component."""

    channel_id: str
    channel_name: str
    bot_user_id: str
    bot_name: str
    questions: Tuple[str, ...]
    rollup_delay_minutes: int = 30
    pacing_delay_seconds: float = 5.0
