"""
PetCare — Data Models.

Rows of the two tables the recurrence core owns. A RecurrenceRule describes
a pattern; each Event is one concrete, independently editable instance of
it (or a standalone event when recurrence_rule_id is None).
"""

from __future__ import annotations

from dataclasses import dataclass, field


EVENT_STATUSES = ("upcoming", "completed", "cancelled", "missed")
NON_TERMINAL_STATUSES = ("upcoming",)


@dataclass
class RecurrenceRule:
    """A stored recurrence rule.

    Validated on the way in by petcare.data.schemas; once persisted it is a
    plain record the generation engine reads from.
    """

    id: str
    pet_id: str
    title: str
    type: str                               # e.g. "medication", "vaccination"
    frequency: str                          # daily | weekly | monthly | yearly | custom | times_per_day
    timezone: str                           # IANA id, authority for daily_times
    start_date: str                         # UTC ISO instant
    reminder: bool = False
    reminder_preset: str | None = None      # standard | compact | minimal
    vaccine_name: str | None = None
    vaccine_manufacturer: str | None = None
    batch_number: str | None = None
    medication_name: str | None = None
    dosage: str | None = None
    interval: int = 1
    days_of_week: list[int] | None = None   # 0 = Sunday … 6 = Saturday
    day_of_month: int | None = None
    times_per_day: int | None = None
    daily_times: list[str] | None = None    # ordered "HH:MM"
    custom_dates: list[str] | None = None   # "YYYY-MM-DD", custom frequency only
    end_date: str | None = None             # "YYYY-MM-DD", inclusive
    exception_dates: list[str] | None = None
    is_active: bool = True
    last_generated_date: str | None = None
    created_at: str = ""
    updated_at: str = ""


@dataclass
class Event:
    """A calendar event; generated events point back at their rule."""

    id: str
    pet_id: str
    title: str
    type: str
    start_time: str                         # UTC ISO instant, always "...Z"
    reminder: bool = False
    reminder_preset: str | None = None
    status: str = field(default="upcoming")
    vaccine_name: str | None = None
    vaccine_manufacturer: str | None = None
    batch_number: str | None = None
    medication_name: str | None = None
    dosage: str | None = None
    frequency: str | None = None
    recurrence_rule_id: str | None = None
    series_index: int | None = None
    created_at: str = ""
    updated_at: str = ""

    @property
    def is_upcoming(self) -> bool:
        return self.status in NON_TERMINAL_STATUSES
