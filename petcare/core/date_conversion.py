"""
PetCare — Date conversion utilities.

Every instant the app stores is a UTC ISO-8601 string with millisecond
precision and an explicit "Z" (e.g. "2026-02-04T07:00:00.000Z"). Calendar
dates travel as "YYYY-MM-DD" keys, wall-clock times as "HH:MM". The helpers
here are the only place where those three representations meet a timezone.

Lenient helpers (formatting, date keys, normalization) return None or ""
for input they can't read. Strict converters raise InvalidDateError.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timezone as dt_timezone

from petcare.core.timezones import get_zone

_DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
_FORMAT_TOKEN_RE = re.compile(r"yyyy|MM|dd|HH|mm|ss")
_FORMAT_TOKENS = {
    "yyyy": "%Y",
    "MM": "%m",
    "dd": "%d",
    "HH": "%H",
    "mm": "%M",
    "ss": "%S",
}


class InvalidDateError(ValueError):
    """Raised when a strict conversion is asked to honor an impossible date."""

    def __init__(self, message: str = "Invalid date value") -> None:
        super().__init__(message)


# ---------------------------------------------------------------------------
# Instants
# ---------------------------------------------------------------------------


def format_utc_instant(moment: datetime) -> str:
    """Canonical UTC form of an aware datetime: YYYY-MM-DDTHH:MM:SS.mmmZ."""
    utc = moment.astimezone(dt_timezone.utc)
    return f"{utc:%Y-%m-%dT%H:%M:%S}.{utc.microsecond // 1000:03d}Z"


def to_iso_string(moment: datetime | None) -> str | None:
    """Aware datetime → canonical UTC string; naive or None → None."""
    if not isinstance(moment, datetime) or moment.tzinfo is None:
        return None
    return _format_or_none(moment)


def _format_or_none(moment: datetime) -> str | None:
    # Instants near datetime.min or max can overflow when shifted to UTC.
    try:
        return format_utc_instant(moment)
    except (OverflowError, ValueError):
        return None


def is_date_only(value: object) -> bool:
    return isinstance(value, str) and bool(_DATE_ONLY_RE.match(value.strip()))


def _parse_date_only(value: str) -> date | None:
    if not is_date_only(value):
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        return None


def parse_instant(value: object, assume_timezone: str | None = None) -> datetime | None:
    """Best-effort conversion of a date-like value into an aware datetime.

    - aware datetime: returned as is
    - naive datetime / naive ISO string: read as wall-clock time in
      ``assume_timezone`` (device zone when omitted)
    - date or "YYYY-MM-DD": UTC midnight of that calendar date
    - int/float: epoch milliseconds
    Returns None for anything unreadable.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=get_zone(assume_timezone))
        return value

    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=dt_timezone.utc)

    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=dt_timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if is_date_only(text):
            day = _parse_date_only(text)
            if day is None:
                return None
            return datetime(day.year, day.month, day.day, tzinfo=dt_timezone.utc)
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=get_zone(assume_timezone))
        return parsed

    return None


def normalize_to_iso_string(value: object) -> str | None:
    """Normalize a date-like value to a canonical UTC ISO string.

    Date-only strings map to UTC midnight of that date. Datetime strings must
    carry an offset or "Z"; a timezone-less datetime is ambiguous and yields
    None instead of being silently read as UTC.
    """
    if not value or isinstance(value, bool):
        return None

    if isinstance(value, str):
        text = value.strip()
        if is_date_only(text):
            try:
                return date_only_to_utc_midnight_iso_string(text)
            except InvalidDateError:
                return None
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        if parsed.tzinfo is None:
            return None
        return _format_or_none(parsed)

    if isinstance(value, datetime):
        return to_iso_string(value)

    if isinstance(value, date):
        return date_only_to_utc_midnight_iso_string(value.isoformat())

    if isinstance(value, (int, float)):
        moment = parse_instant(value)
        return _format_or_none(moment) if moment else None

    return None


def parse_iso_date(value: str | None) -> datetime | None:
    """Parse a stored ISO string into an aware datetime, or None if unreadable."""
    if not isinstance(value, str):
        return None
    return parse_instant(value)


def is_iso_datetime_string(value: object) -> bool:
    """True for parseable datetime strings that contain a "T" separator."""
    if not isinstance(value, str) or "T" not in value:
        return False
    try:
        datetime.fromisoformat(value.strip())
    except ValueError:
        return False
    return True


def is_valid_utc_iso_string(value: object) -> bool:
    """True only for the canonical stored instant form."""
    if not isinstance(value, str) or not value.endswith("Z"):
        return False
    return normalize_to_iso_string(value) == value


# ---------------------------------------------------------------------------
# Date-only and wall-clock conversions
# ---------------------------------------------------------------------------


def date_only_to_utc_midnight_iso_string(date_only: str) -> str:
    """Map "YYYY-MM-DD" to "<date>T00:00:00.000Z" with no day shift.

    Raises InvalidDateError for malformed or non-existent calendar dates.
    """
    day = _parse_date_only(date_only) if isinstance(date_only, str) else None
    if day is None:
        raise InvalidDateError()
    return f"{day.isoformat()}T00:00:00.000Z"


def parse_time_of_day(hhmm: str) -> tuple[int, int] | None:
    """Parse "HH:MM" (24h) into (hour, minute), or None if malformed."""
    if not isinstance(hhmm, str):
        return None
    match = _TIME_RE.match(hhmm.strip())
    if match is None:
        return None
    return int(match.group(1)), int(match.group(2))


def combine_date_time_to_iso_in_timezone(
    date_only: str, hhmm: str, timezone: str | None
) -> str:
    """Interpret date + wall-clock time in ``timezone`` and return the UTC instant.

    An unknown timezone falls back to the device zone. Wall times skipped by
    a spring-forward transition resolve with the pre-transition offset; wall
    times repeated by a fall-back transition resolve to the first occurrence.

    Raises InvalidDateError for a malformed date or time.
    """
    day = _parse_date_only(date_only) if isinstance(date_only, str) else None
    clock = parse_time_of_day(hhmm)
    if day is None or clock is None:
        raise InvalidDateError()

    hour, minute = clock
    local = datetime(day.year, day.month, day.day, hour, minute, tzinfo=get_zone(timezone))
    return format_utc_instant(local)


# ---------------------------------------------------------------------------
# Zone-aware formatting
# ---------------------------------------------------------------------------


def _to_strftime(fmt: str) -> str:
    escaped = fmt.replace("%", "%%")
    return _FORMAT_TOKEN_RE.sub(lambda m: _FORMAT_TOKENS[m.group(0)], escaped)


def format_in_timezone(value: object, timezone: str | None, fmt: str = "yyyy-MM-dd") -> str | None:
    """Format an instant as observed in ``timezone``.

    Supports the tokens yyyy, MM, dd, HH, mm and ss; everything else is
    copied literally. Returns None for unreadable input.
    """
    moment = parse_instant(value, assume_timezone=timezone)
    if moment is None:
        return None
    try:
        local = moment.astimezone(get_zone(timezone))
    except (OverflowError, ValueError):
        return None
    return local.strftime(_to_strftime(fmt))


def to_local_date_key(value: object, timezone: str | None) -> str:
    """Calendar date ("YYYY-MM-DD") of an instant as seen from ``timezone``.

    Returns "" for unreadable input.
    """
    return format_in_timezone(value, timezone, "yyyy-MM-dd") or ""


def is_same_local_date(left: object, right: object, timezone: str | None) -> bool:
    left_key = to_local_date_key(left, timezone)
    right_key = to_local_date_key(right, timezone)
    return left_key != "" and left_key == right_key


def extract_date_key(value: object, timezone: str | None) -> str:
    """A "YYYY-MM-DD" key from either a bare date key or an instant.

    Bare date keys are taken at face value; instants are projected into
    ``timezone`` (naive datetimes are read as wall-clock time there).
    Returns "" for unreadable input.
    """
    if isinstance(value, str) and is_date_only(value):
        day = _parse_date_only(value)
        return day.isoformat() if day else ""
    return to_local_date_key(value, timezone)


def extract_iso_date_part(value: str | None) -> str | None:
    """"2026-02-10T14:05:00.000Z" → "2026-02-10" (no timezone math)."""
    if not isinstance(value, str) or len(value) < 10:
        return None
    candidate = value[:10]
    return candidate if _parse_date_only(candidate) else None


def extract_iso_time_part(value: str | None) -> str | None:
    """"2026-02-10T14:05:00.000Z" → "14:05" (no timezone math)."""
    if not isinstance(value, str) or "T" not in value:
        return None
    candidate = value.split("T", 1)[1][:5]
    return candidate if parse_time_of_day(candidate) else None
