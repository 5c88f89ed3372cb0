"""
Day Planner — Centralized configuration.

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


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Telegram
    TELEGRAM_BOT_TOKEN: str

    # Security
    ALLOWED_USER_IDS: list[int] = []

    # Key-value record store (SQLite)
    DATABASE_PATH: str = "data/planner.db"

    # LLM — sub-task suggestions (gemini, anthropic, openai, cohere)
    LLM_PROVIDER: str = "gemini"
    LLM_MODEL: str = ""          # empty → smart default per provider
    LLM_API_KEY: str = ""        # a key stored with /setkey takes precedence
    SUGGESTION_TIMEOUT_SECONDS: float = 20.0

    # Reminders: today + tomorrow
    REMINDER_LOOKAHEAD_DAYS: int = 2

    # Wall-clock zone for "today" and the midnight reminder resync.
    # Empty → the server's local zone.
    TIMEZONE: str = ""

    @field_validator("ALLOWED_USER_IDS", mode="before")
    @classmethod
    def parse_user_ids(cls, v: str | list[int]) -> list[int]:
        if isinstance(v, list):
            return v
        if isinstance(v, str) and v.strip():
            return [int(uid.strip()) for uid in v.split(",") if uid.strip()]
        return []

    @field_validator("REMINDER_LOOKAHEAD_DAYS", mode="before")
    @classmethod
    def parse_int(cls, v: str | int) -> int:
        return int(v)

    @field_validator("SUGGESTION_TIMEOUT_SECONDS", mode="before")
    @classmethod
    def parse_timeout(cls, v: str | float) -> float:
        return float(v)


def _load_settings() -> Settings:
    """Load settings from environment, validating required keys."""
    token = os.getenv("TELEGRAM_BOT_TOKEN", "")

    if not token or token.startswith("your-"):
        print("ERROR: TELEGRAM_BOT_TOKEN is missing or not set in .env", file=sys.stderr)
        sys.exit(1)

    return Settings(
        TELEGRAM_BOT_TOKEN=token,
        ALLOWED_USER_IDS=os.getenv("ALLOWED_USER_IDS", ""),
        DATABASE_PATH=os.getenv("DATABASE_PATH", "data/planner.db"),
        LLM_PROVIDER=os.getenv("LLM_PROVIDER", "gemini"),
        LLM_MODEL=os.getenv("LLM_MODEL", ""),
        LLM_API_KEY=os.getenv("LLM_API_KEY", ""),
        SUGGESTION_TIMEOUT_SECONDS=os.getenv("SUGGESTION_TIMEOUT_SECONDS", "20"),
        REMINDER_LOOKAHEAD_DAYS=os.getenv("REMINDER_LOOKAHEAD_DAYS", "2"),
        TIMEZONE=os.getenv("TIMEZONE", ""),
    )


# Singleton — imported by all other modules as:
#   from src.config import settings
settings = _load_settings()
