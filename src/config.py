"""
Timer Bot: Centralized configuration.

Loads all settings from .env and validates required keys.
This module is the foundation for every other module in the project.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (two levels up from src/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Telegram
    TELEGRAM_BOT_TOKEN: str

    # Storage: "sqlite" | "json"
    STORAGE_BACKEND: str = "sqlite"
    DATABASE_PATH: str = "data/events.db"
    JSON_STORAGE_PATH: str = "data/events.json"

    # Events of this chat are merged into /list, /active, /outdated everywhere
    # and searched first on cross-chat lookups. 0 disables.
    TEST_CHAT_ID: int = 0

    # Pending /set_date conversations expire after this many minutes. 0 = never.
    CONVERSATION_TTL_MINUTES: int = 0

    LOG_LEVEL: str = "INFO"

    @field_validator("TEST_CHAT_ID", "CONVERSATION_TTL_MINUTES", mode="before")
    @classmethod
    def parse_int(cls, v: str | int) -> int:
        if isinstance(v, str):
            v = v.strip()
            return int(v) if v else 0
        return int(v)

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def parse_log_level(cls, v: str) -> str:
        level = (v or "").strip().upper()
        if level not in _LOG_LEVELS:
            return "INFO"
        return level


def _load_settings() -> Settings:
    """Load settings from environment, validating required keys."""
    token = os.getenv("TELEGRAM_BOT_TOKEN", "")

    if not token or token.startswith("your-"):
        print("ERROR: TELEGRAM_BOT_TOKEN is missing or not set in .env", file=sys.stderr)
        sys.exit(1)

    return Settings(
        TELEGRAM_BOT_TOKEN=token,
        STORAGE_BACKEND=os.getenv("STORAGE_BACKEND", "sqlite"),
        DATABASE_PATH=os.getenv("DATABASE_PATH", "data/events.db"),
        JSON_STORAGE_PATH=os.getenv("JSON_STORAGE_PATH", "data/events.json"),
        TEST_CHAT_ID=os.getenv("TEST_CHAT_ID", "0"),
        CONVERSATION_TTL_MINUTES=os.getenv("CONVERSATION_TTL_MINUTES", "0"),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
    )


# Singleton: imported by all other modules as
#   from src.config import settings
settings = _load_settings()
