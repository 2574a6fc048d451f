"""
PetCare — Centralized configuration.

Loads all settings from .env. Nothing here is mandatory: every key has a
local-first default so the store works out of the box on a fresh device.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (one level up from petcare/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # SQLite
    DATABASE_PATH: str = "data/petcare.db"

    # Timezone used when a rule or query carries none (blank → detect)
    DEFAULT_TIMEZONE: str = ""

    # Recurrence generation bounds for never-ending rules
    GENERATION_HORIZON_DAYS: int = 180
    MAX_GENERATED_EVENTS: int = 240

    LOG_LEVEL: str = "INFO"

    @field_validator("GENERATION_HORIZON_DAYS", "MAX_GENERATED_EVENTS", mode="before")
    @classmethod
    def parse_positive_int(cls, v: str | int) -> int:
        value = int(v)
        if value < 1:
            raise ValueError("must be a positive integer")
        return value

    @field_validator("DEFAULT_TIMEZONE", mode="before")
    @classmethod
    def strip_timezone(cls, v: str | None) -> str:
        return (v or "").strip()

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def upper_level(cls, v: str) -> str:
        return (v or "INFO").strip().upper()


def _load_settings() -> Settings:
    """Load settings from environment."""
    return Settings(
        DATABASE_PATH=os.getenv("DATABASE_PATH", "data/petcare.db"),
        DEFAULT_TIMEZONE=os.getenv("DEFAULT_TIMEZONE", ""),
        GENERATION_HORIZON_DAYS=os.getenv("GENERATION_HORIZON_DAYS", "180"),
        MAX_GENERATED_EVENTS=os.getenv("MAX_GENERATED_EVENTS", "240"),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
    )


# Singleton — imported by all other modules as:
#   from petcare.config import settings
settings = _load_settings()
