"""
PetCare — Event reminder presets.

Maps a rule's reminder preset onto the minute offsets handed to the
reminder scheduler, and drops offsets whose trigger time has already passed.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from petcare.core.date_conversion import parse_instant

# Minutes before the event start: 3 days, 1 day, 1 hour, at start time.
REMINDER_PRESETS: dict[str, list[int]] = {
    "standard": [4320, 1440, 60, 0],
    "compact": [1440, 60, 0],
    "minimal": [60, 0],
}

DEFAULT_PRESET = "standard"


def reminder_offsets(preset: str | None) -> list[int]:
    """Offsets for a preset; unknown or missing presets use "standard"."""
    return list(REMINDER_PRESETS.get(preset or DEFAULT_PRESET, REMINDER_PRESETS[DEFAULT_PRESET]))


def future_offsets(start_time: str, offsets: list[int], now: datetime) -> list[int]:
    """Keep only offsets whose trigger (start - offset) is still ahead of ``now``."""
    start = parse_instant(start_time)
    if start is None:
        return []
    return [m for m in offsets if start - timedelta(minutes=m) > now]
