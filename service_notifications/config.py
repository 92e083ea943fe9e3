"""
Service Notifications — Centralized configuration.

Loads all settings from .env and validates required keys.
Only the composition root (cli.py) reads these settings; core modules
receive the values they need as arguments.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (two levels up from service_notifications/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Planning Center
    PC_APP_ID: str
    PC_SECRET: str
    PC_SERVICE_TYPE_IDS: list[int] = []   # empty → every service type

    # Slack
    SLACK_API_TOKEN: str
    SLACK_STICKY_USERS: list[str] = []
    SLACK_DEFAULT_CONVERSATION: str = ""

    # Channel window
    CREATE_CHANNELS_AHEAD_HOURS: int = 192
    CREATE_FROM_WEEKDAY: int = -1         # Sunday=0 … Saturday=6, -1 disables
    TOPIC_DELAY_SECONDS: float = 120.0

    # SQLite
    DATABASE_PATH: str = "data/service-notifications.db"

    @field_validator("PC_SERVICE_TYPE_IDS", mode="before")
    @classmethod
    def parse_service_type_ids(cls, v: str | list[int]) -> list[int]:
        if isinstance(v, list):
            return v
        if isinstance(v, str) and v.strip():
            return [int(sid.strip()) for sid in v.split(",") if sid.strip()]
        return []

    @field_validator("SLACK_STICKY_USERS", mode="before")
    @classmethod
    def parse_sticky_users(cls, v: str | list[str]) -> list[str]:
        if isinstance(v, list):
            return v
        if isinstance(v, str) and v.strip():
            return [uid.strip() for uid in v.split(",") if uid.strip()]
        return []

    @field_validator("CREATE_FROM_WEEKDAY", mode="before")
    @classmethod
    def parse_weekday(cls, v: str | int) -> int:
        weekday = int(v)
        if weekday < -1 or weekday > 6:
            raise ValueError(f"CREATE_FROM_WEEKDAY must be -1..6, got {weekday}")
        return weekday


def _require(name: str) -> str:
    value = os.getenv(name, "")
    if not value or value.startswith("your-"):
        print(f"ERROR: {name} is missing or not set in .env", file=sys.stderr)
        sys.exit(1)
    return value


def _load_settings() -> Settings:
    """Load settings from environment, validating required keys."""
    return Settings(
        PC_APP_ID=_require("PC_APP_ID"),
        PC_SECRET=_require("PC_SECRET"),
        PC_SERVICE_TYPE_IDS=os.getenv("PC_SERVICE_TYPE_IDS", ""),
        SLACK_API_TOKEN=_require("SLACK_API_TOKEN"),
        SLACK_STICKY_USERS=os.getenv("SLACK_STICKY_USERS", ""),
        SLACK_DEFAULT_CONVERSATION=os.getenv("SLACK_DEFAULT_CONVERSATION", ""),
        CREATE_CHANNELS_AHEAD_HOURS=os.getenv("CREATE_CHANNELS_AHEAD_HOURS", "192"),
        CREATE_FROM_WEEKDAY=os.getenv("CREATE_FROM_WEEKDAY", "-1"),
        TOPIC_DELAY_SECONDS=os.getenv("TOPIC_DELAY_SECONDS", "120"),
        DATABASE_PATH=os.getenv("DATABASE_PATH", "data/service-notifications.db"),
    )


# Singleton — imported by the composition root as:
#   from service_notifications.config import settings
settings = _load_settings()
