"""
PetCare — Recurrence generation engine.

Pure business logic: a RecurrenceRule goes in, an ordered list of occurrence
dates or UTC instants comes out. No I/O, no clock, no hidden cursor; the
same rule always yields the same sequence.

Every pattern is phase-anchored on the rule's own start date, so moving the
generation window forward (``from_date``) never shifts which days fire.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import TYPE_CHECKING

from dateutil.relativedelta import relativedelta
from dateutil.rrule import DAILY, WEEKLY, rrule

from petcare.config import settings
from petcare.core.date_conversion import (
    combine_date_time_to_iso_in_timezone,
    extract_date_key,
    is_date_only,
    parse_time_of_day,
    to_local_date_key,
)
from petcare.core.timezones import resolve_effective_timezone

if TYPE_CHECKING:
    from petcare.data.models import RecurrenceRule

logger = logging.getLogger(__name__)

FREQUENCIES = ("daily", "weekly", "monthly", "yearly", "custom", "times_per_day")

DEFAULT_TIME = "09:00"

DEFAULT_DAILY_TIMES: dict[int, list[str]] = {
    1: ["09:00"],
    2: ["08:00", "20:00"],
    3: ["08:00", "14:00", "20:00"],
    4: ["08:00", "12:00", "16:00", "20:00"],
    5: ["07:00", "10:00", "13:00", "16:00", "20:00"],
    6: ["06:00", "09:00", "12:00", "15:00", "18:00", "21:00"],
}

_MAX_TIMES_PER_DAY = 10


def generate_daily_times(count: int) -> list[str]:
    """Default wall-clock times for a "N times per day" rule.

    1–6 use hand-picked presets; 7–10 are spread evenly between 06:00
    and 22:00. Counts above 10 are capped at 10.
    """
    if count <= 0:
        return []
    count = min(count, _MAX_TIMES_PER_DAY)
    if count in DEFAULT_DAILY_TIMES:
        return list(DEFAULT_DAILY_TIMES[count])

    start_hour, end_hour = 6, 22
    step = (end_hour - start_hour) / (count - 1)
    return [f"{round(start_hour + step * i):02d}:00" for i in range(count)]


def js_weekday(day: date) -> int:
    """Day of week with 0 = Sunday … 6 = Saturday."""
    return (day.weekday() + 1) % 7


def _as_date(value: date | str) -> date:
    return value if isinstance(value, date) else date.fromisoformat(value)


def rule_start_day(rule: RecurrenceRule) -> date:
    """Calendar date of the rule's start, as seen in the rule's timezone."""
    if is_date_only(rule.start_date):
        return date.fromisoformat(rule.start_date.strip())
    timezone = resolve_effective_timezone(rule.timezone)
    key = to_local_date_key(rule.start_date, timezone)
    if not key:
        raise ValueError(f"Unreadable start date: {rule.start_date!r}")
    return date.fromisoformat(key)


def build_date_range(
    rule: RecurrenceRule, from_date: date | str | None = None
) -> tuple[date, date] | None:
    """Inclusive generation window, or None when it is empty.

    Start is the rule's start day (pushed forward to ``from_date``). End is
    the rule's end date, capped at GENERATION_HORIZON_DAYS past the window
    start so never-ending rules stay finite.
    """
    anchor = rule_start_day(rule)
    start = anchor
    if from_date is not None:
        start = max(start, _as_date(from_date))

    horizon_end = start + timedelta(days=settings.GENERATION_HORIZON_DAYS)
    end = horizon_end
    if rule.end_date:
        end_key = extract_date_key(rule.end_date, resolve_effective_timezone(rule.timezone))
        if end_key:
            end = min(date.fromisoformat(end_key), horizon_end)

    if end < start:
        return None
    return start, end


def _midnight(day: date) -> datetime:
    return datetime.combine(day, time.min)


def _daily_candidates(anchor: date, start: date, end: date, interval: int) -> list[date]:
    series = rrule(DAILY, interval=interval, dtstart=_midnight(anchor), until=_midnight(end))
    return [m.date() for m in series.between(_midnight(start), _midnight(end), inc=True)]


def _weekly_candidates(
    rule: RecurrenceRule, anchor: date, start: date, end: date, interval: int
) -> list[date]:
    selected = set(rule.days_of_week or []) or {js_weekday(anchor)}
    # dateutil counts Monday as 0; weeks start on the anchor's weekday.
    series = rrule(
        WEEKLY,
        interval=interval,
        byweekday=sorted((d + 6) % 7 for d in selected),
        wkst=anchor.weekday(),
        dtstart=_midnight(anchor),
        until=_midnight(end),
    )
    return [m.date() for m in series.between(_midnight(start), _midnight(end), inc=True)]


def _first_step(elapsed: int, interval: int) -> int:
    return max(-(-elapsed // interval), 0)  # ceil


def _monthly_candidates(
    rule: RecurrenceRule, anchor: date, start: date, end: date, interval: int
) -> list[date]:
    day_of_month = max(rule.day_of_month or anchor.day, 1)
    first_of_month = anchor.replace(day=1)
    step = _first_step((start.year - anchor.year) * 12 + start.month - anchor.month, interval)
    result: list[date] = []
    while True:
        # relativedelta clamps an absolute day past the month's end.
        candidate = first_of_month + relativedelta(months=step * interval, day=day_of_month)
        if candidate > end:
            return result
        if candidate >= start:
            result.append(candidate)
        step += 1


def _yearly_candidates(anchor: date, start: date, end: date, interval: int) -> list[date]:
    step = _first_step(start.year - anchor.year, interval)
    result: list[date] = []
    while True:
        candidate = anchor + relativedelta(years=step * interval)
        if candidate > end:
            return result
        if candidate >= start:
            result.append(candidate)
        step += 1


def _custom_candidates(rule: RecurrenceRule, start: date, end: date) -> list[date]:
    days: set[date] = set()
    for raw in rule.custom_dates or []:
        try:
            candidate = date.fromisoformat(raw)
        except (TypeError, ValueError):
            logger.warning("Skipping unreadable custom date %r on rule %s", raw, rule.id)
            continue
        if start <= candidate <= end:
            days.add(candidate)
    return sorted(days)


def _candidate_dates(rule: RecurrenceRule, from_date: date | str | None) -> list[date]:
    window = build_date_range(rule, from_date)
    if window is None:
        return []
    start, end = window
    anchor = rule_start_day(rule)
    interval = max(rule.interval or 1, 1)

    if rule.frequency == "weekly":
        return _weekly_candidates(rule, anchor, start, end, interval)
    if rule.frequency == "monthly":
        return _monthly_candidates(rule, anchor, start, end, interval)
    if rule.frequency == "yearly":
        return _yearly_candidates(anchor, start, end, interval)
    if rule.frequency == "custom":
        return _custom_candidates(rule, start, end)
    # daily, times_per_day
    return _daily_candidates(anchor, start, end, interval)


def generate_occurrence_date_keys(
    rule: RecurrenceRule, *, from_date: date | str | None = None
) -> list[str]:
    """Ordered "YYYY-MM-DD" keys on which the rule fires (exceptions removed)."""
    exceptions = set(rule.exception_dates or [])
    keys: list[str] = []
    for day in _candidate_dates(rule, from_date):
        key = day.isoformat()
        if key in exceptions:
            continue
        keys.append(key)
        if len(keys) >= settings.MAX_GENERATED_EVENTS:
            break
    return keys


def resolve_daily_times(rule: RecurrenceRule) -> list[str]:
    """Wall-clock slots per occurrence day; never empty."""
    if rule.daily_times:
        times = [t for t in rule.daily_times if parse_time_of_day(t)]
    else:
        times = generate_daily_times(rule.times_per_day or 1)
    return times or [DEFAULT_TIME]


def generate_event_start_times(
    rule: RecurrenceRule, *, from_date: date | str | None = None
) -> list[str]:
    """Ordered UTC instants, one per (occurrence day, daily time) pair.

    Sorted by instant; slots at the same instant keep daily_times order.
    The occurrence days and the expanded instants are each capped at
    MAX_GENERATED_EVENTS, so with several daily times the result can hold
    fewer than days × times entries.
    """
    timezone = resolve_effective_timezone(rule.timezone)
    times = resolve_daily_times(rule)

    instants: list[str] = []
    for key in generate_occurrence_date_keys(rule, from_date=from_date):
        for slot in times:
            instants.append(combine_date_time_to_iso_in_timezone(key, slot, timezone))

    instants.sort()
    if len(instants) > settings.MAX_GENERATED_EVENTS:
        instants = instants[: settings.MAX_GENERATED_EVENTS]

    logger.debug("Rule %s expands to %d instants", rule.id, len(instants))
    return instants
