"""
Kitchen Roster Assistant - Centralized configuration.

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

    # SQLite (roster snapshots)
    DATABASE_PATH: str = "data/roster.db"

    # Security
    ALLOWED_USER_IDS: list[int] = []

    # Local clock for "today", "tomorrow" and the greeting
    TIMEZONE: str = "Asia/Riyadh"

    # Conversation memory (turns kept per chat, oldest evicted first)
    HISTORY_LIMIT: int = 20

    # Names listed per bucket before "... and N more"
    DISPLAY_LIMIT: int = 15

    # Rows scanned from the top when looking for the header row
    HEADER_LOOKAHEAD: int = 10

    @field_validator("ALLOWED_USER_IDS", mode="before")
    @classmethod
    def parse_user_ids(cls, v: str | list[int]) -> list[int]:
        if isinstance(v, list):
            return v
        if isinstance(v, str) and v.strip():
            return [int(uid.strip()) for uid in v.split(",") if uid.strip()]
        return []

    @field_validator("HISTORY_LIMIT", "DISPLAY_LIMIT", "HEADER_LOOKAHEAD", mode="before")
    @classmethod
    def parse_int(cls, v: str | int) -> int:
        return int(v)


def _load_settings() -> Settings:
    """Load settings from environment, validating required keys."""
    token = os.getenv("TELEGRAM_BOT_TOKEN", "")

    if not token or token.startswith("your-"):
        print("ERROR: TELEGRAM_BOT_TOKEN is missing or not set in .env", file=sys.stderr)
        sys.exit(1)

    return Settings(
        TELEGRAM_BOT_TOKEN=token,
        DATABASE_PATH=os.getenv("DATABASE_PATH", "data/roster.db"),
        ALLOWED_USER_IDS=os.getenv("ALLOWED_USER_IDS", ""),
        TIMEZONE=os.getenv("TIMEZONE", "Asia/Riyadh"),
        HISTORY_LIMIT=os.getenv("HISTORY_LIMIT", "20"),
        DISPLAY_LIMIT=os.getenv("DISPLAY_LIMIT", "15"),
        HEADER_LOOKAHEAD=os.getenv("HEADER_LOOKAHEAD", "10"),
    )


# Singleton - imported by the store and the bot as:
#   from src.config import settings
settings = _load_settings()
