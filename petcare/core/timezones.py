"""
PetCare — Timezone resolution.

Every timezone string that enters the app (rule payloads, user settings,
cache keys) goes through normalize_timezone() first. Blank or unknown
values collapse to None, and callers fall back to the device zone.
"""

from __future__ import annotations

import logging
import os
import time
from datetime import datetime
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError, available_timezones

logger = logging.getLogger(__name__)

_FALLBACK_TIMEZONES = [
    "UTC",
    "Europe/London",
    "Europe/Paris",
    "Europe/Berlin",
    "Europe/Madrid",
    "Europe/Rome",
    "Europe/Istanbul",
    "Europe/Athens",
    "Europe/Warsaw",
    "Europe/Amsterdam",
    "Europe/Moscow",
    "Asia/Dubai",
    "Asia/Jerusalem",
    "Asia/Kolkata",
    "Asia/Bangkok",
    "Asia/Singapore",
    "Asia/Shanghai",
    "Asia/Tokyo",
    "Australia/Sydney",
    "Pacific/Auckland",
    "America/Los_Angeles",
    "America/Denver",
    "America/Chicago",
    "America/New_York",
    "America/Sao_Paulo",
    "Africa/Cairo",
    "Africa/Johannesburg",
]


@lru_cache(maxsize=512)
def _load_zone(name: str) -> ZoneInfo | None:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return None


def is_valid_timezone(timezone: str) -> bool:
    """True if the platform timezone database knows this identifier."""
    if not isinstance(timezone, str) or not timezone:
        return False
    return _load_zone(timezone) is not None


def normalize_timezone(timezone: str | None) -> str | None:
    """Trim and validate a timezone string; blank or unknown → None."""
    if not isinstance(timezone, str):
        return None
    trimmed = timezone.strip()
    if not trimmed:
        return None
    return trimmed if is_valid_timezone(trimmed) else None


def _system_timezone_name() -> str | None:
    """Best-effort IANA name of the host's local zone."""
    env_tz = normalize_timezone(os.environ.get("TZ"))
    if env_tz:
        return env_tz

    localtime = "/etc/localtime"
    if os.path.islink(localtime):
        target = os.path.realpath(localtime)
        marker = "zoneinfo/"
        if marker in target:
            candidate = normalize_timezone(target.split(marker, 1)[1])
            if candidate:
                return candidate

    # tzname gives abbreviations ("CET") which are rarely IANA ids; "UTC" is.
    return normalize_timezone(time.tzname[0])


def detect_device_timezone() -> str:
    """Return the device timezone, falling back to UTC."""
    from petcare.config import settings

    configured = normalize_timezone(settings.DEFAULT_TIMEZONE)
    if configured:
        return configured
    return _system_timezone_name() or "UTC"


def resolve_effective_timezone(timezone: str | None = None) -> str:
    """Return a usable IANA id: the given one if valid, else the device zone."""
    normalized = normalize_timezone(timezone)
    if normalized:
        return normalized
    if timezone and timezone.strip():
        logger.warning("Unknown timezone %r, falling back to device zone", timezone)
    return detect_device_timezone()


def get_zone(timezone: str | None) -> ZoneInfo:
    """ZoneInfo for the effective timezone."""
    return _load_zone(resolve_effective_timezone(timezone)) or ZoneInfo("UTC")


def get_supported_timezones() -> list[str]:
    """All IANA ids known to the platform, UTC first."""
    try:
        values = sorted(available_timezones())
    except OSError:
        values = []
    if not values:
        return list(_FALLBACK_TIMEZONES)
    if "UTC" in values:
        values.remove("UTC")
    return ["UTC", *values]


def format_timezone_label(timezone: str) -> str:
    """Human-readable label, e.g. "America/New_York" → "America / New York"."""
    if not timezone:
        return "UTC"
    return " / ".join(part.replace("_", " ") for part in timezone.split("/"))


def utc_offset_label(timezone: str | None, at: datetime | None = None) -> str:
    """Current UTC offset of a zone as ±HH:MM."""
    zone = get_zone(timezone)
    moment = (at or datetime.now(zone)).astimezone(zone)
    offset = moment.utcoffset()
    total_minutes = int(offset.total_seconds() // 60) if offset else 0
    sign = "+" if total_minutes >= 0 else "-"
    hours, minutes = divmod(abs(total_minutes), 60)
    return f"{sign}{hours:02d}:{minutes:02d}"
