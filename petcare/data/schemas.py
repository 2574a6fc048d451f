"""
PetCare — Recurrence rule schemas.

A rule payload is a closed, tagged structure: one pydantic model per
frequency, joined in a union discriminated by ``frequency``. Each variant
accepts only the pattern fields that make sense for it (days_of_week for
weekly, day_of_month for monthly, …), so a malformed rule is rejected here,
before anything touches the database.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)

from petcare.core.date_conversion import (
    combine_date_time_to_iso_in_timezone,
    format_in_timezone,
    is_date_only,
    normalize_to_iso_string,
    parse_time_of_day,
    to_local_date_key,
)
from petcare.core.recurrence import FREQUENCIES
from petcare.core.timezones import normalize_timezone

EVENT_TYPES = (
    "feeding",
    "exercise",
    "grooming",
    "play",
    "training",
    "vet_visit",
    "walk",
    "bath",
    "vaccination",
    "medication",
    "other",
)

ReminderPreset = Literal["standard", "compact", "minimal"]

# Patch fields that change which instants a rule expands to.
GENERATION_FIELDS = frozenset({
    "frequency",
    "interval",
    "days_of_week",
    "day_of_month",
    "times_per_day",
    "daily_times",
    "custom_dates",
    "start_date",
    "end_date",
    "timezone",
    "exception_dates",
    "is_active",
})

# Fields copied verbatim from a rule onto each generated event.
DISPLAY_FIELDS = (
    "pet_id",
    "title",
    "type",
    "reminder",
    "reminder_preset",
    "vaccine_name",
    "vaccine_manufacturer",
    "batch_number",
    "medication_name",
    "dosage",
)


class RuleValidationError(ValueError):
    """Raised when a rule payload is malformed. Nothing has been written."""

    def __init__(self, errors: list[dict[str, str]]) -> None:
        self.errors = errors
        summary = "; ".join(f"{e['field']}: {e['message']}" for e in errors)
        super().__init__(summary or "Invalid recurrence rule")

    @classmethod
    def from_pydantic(cls, exc: ValidationError) -> RuleValidationError:
        errors: list[dict[str, str]] = []
        for err in exc.errors():
            loc = list(err.get("loc", ()))
            # Discriminated unions prefix the location with the tag value.
            if loc and loc[0] in FREQUENCIES:
                loc = loc[1:]
            errors.append({
                "field": ".".join(str(part) for part in loc) or "rule",
                "message": err.get("msg", "invalid value"),
            })
        return cls(errors)


def validate_date_key(value: str) -> str:
    """Accept only real calendar dates in "YYYY-MM-DD" form."""
    if not is_date_only(value) or normalize_to_iso_string(value) is None:
        raise ValueError(f"invalid date {value!r}, expected YYYY-MM-DD")
    return value.strip()


def _validate_date_keys(values: list[str] | None) -> list[str] | None:
    if values is None:
        return None
    return sorted({validate_date_key(v) for v in values})


# ---------------------------------------------------------------------------
# Rule variants
# ---------------------------------------------------------------------------


class _RuleFields(BaseModel):
    """Fields shared by every frequency variant."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    pet_id: str = Field(min_length=1)
    title: str = Field(min_length=1, max_length=100)
    type: str
    reminder: bool = False
    reminder_preset: ReminderPreset | None = None

    vaccine_name: str | None = None
    vaccine_manufacturer: str | None = None
    batch_number: str | None = None
    medication_name: str | None = None
    dosage: str | None = None

    interval: int = Field(default=1, ge=1, le=365)
    daily_times: list[str] | None = None

    timezone: str
    start_date: str
    end_date: str | None = None
    exception_dates: list[str] | None = None
    is_active: bool = True

    @field_validator("type")
    @classmethod
    def check_type(cls, v: str) -> str:
        if v not in EVENT_TYPES:
            raise ValueError(f"unknown event type {v!r}")
        return v

    @field_validator("daily_times")
    @classmethod
    def check_daily_times(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return None
        seen: list[str] = []
        for raw in v:
            if parse_time_of_day(raw) is None:
                raise ValueError(f"invalid time {raw!r}, expected HH:MM")
            if raw.strip() not in seen:
                seen.append(raw.strip())
        return seen

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, v: str) -> str:
        normalized = normalize_timezone(v)
        if normalized is None:
            raise ValueError(f"unknown timezone {v!r}")
        return normalized

    @field_validator("exception_dates")
    @classmethod
    def check_exception_dates(cls, v: list[str] | None) -> list[str] | None:
        return _validate_date_keys(v)

    @model_validator(mode="after")
    def check_window(self):
        # Date-only starts mean local midnight in the rule's zone.
        if is_date_only(self.start_date):
            validate_date_key(self.start_date)
            start_iso = combine_date_time_to_iso_in_timezone(self.start_date, "00:00", self.timezone)
        else:
            start_iso = normalize_to_iso_string(self.start_date)
            if start_iso is None:
                raise ValueError("start_date must be YYYY-MM-DD or a datetime with an offset")
        self.start_date = start_iso

        if self.end_date:
            if is_date_only(self.end_date):
                end_key = validate_date_key(self.end_date)
            else:
                end_iso = normalize_to_iso_string(self.end_date)
                if end_iso is None:
                    raise ValueError("end_date must be YYYY-MM-DD or a datetime with an offset")
                end_key = to_local_date_key(end_iso, self.timezone)
            if end_key < to_local_date_key(start_iso, self.timezone):
                raise ValueError("end_date must not be before start_date")
            self.end_date = end_key
        else:
            self.end_date = None
        return self


class DailyRuleInput(_RuleFields):
    frequency: Literal["daily"]


class TimesPerDayRuleInput(_RuleFields):
    frequency: Literal["times_per_day"]
    times_per_day: int | None = Field(default=None, ge=1, le=10)


class WeeklyRuleInput(_RuleFields):
    frequency: Literal["weekly"]
    days_of_week: list[Annotated[int, Field(ge=0, le=6)]] | None = None

    @field_validator("days_of_week")
    @classmethod
    def dedupe_days(cls, v: list[int] | None) -> list[int] | None:
        return sorted(set(v)) if v is not None else None


class MonthlyRuleInput(_RuleFields):
    frequency: Literal["monthly"]
    day_of_month: int | None = Field(default=None, ge=1, le=31)


class YearlyRuleInput(_RuleFields):
    frequency: Literal["yearly"]


class CustomRuleInput(_RuleFields):
    frequency: Literal["custom"]
    custom_dates: list[str] = Field(min_length=1)

    @field_validator("custom_dates")
    @classmethod
    def check_custom_dates(cls, v: list[str]) -> list[str]:
        return _validate_date_keys(v) or []


RecurrenceRuleInput = Annotated[
    Union[
        DailyRuleInput,
        TimesPerDayRuleInput,
        WeeklyRuleInput,
        MonthlyRuleInput,
        YearlyRuleInput,
        CustomRuleInput,
    ],
    Field(discriminator="frequency"),
]

_RULE_ADAPTER: TypeAdapter[Any] = TypeAdapter(RecurrenceRuleInput)

_VARIANTS: dict[str, type[_RuleFields]] = {
    "daily": DailyRuleInput,
    "times_per_day": TimesPerDayRuleInput,
    "weekly": WeeklyRuleInput,
    "monthly": MonthlyRuleInput,
    "yearly": YearlyRuleInput,
    "custom": CustomRuleInput,
}


def variant_fields(frequency: str) -> frozenset[str]:
    """Field names the given frequency variant accepts (empty if unknown)."""
    model = _VARIANTS.get(frequency)
    return frozenset(model.model_fields) if model else frozenset()


def parse_rule_input(data: Mapping[str, Any] | BaseModel) -> _RuleFields:
    """Validate a rule payload into its frequency variant.

    Raises RuleValidationError on any malformed field.
    """
    if isinstance(data, _RuleFields):
        data = data.model_dump()
    elif isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    try:
        return _RULE_ADAPTER.validate_python(dict(data))
    except ValidationError as exc:
        raise RuleValidationError.from_pydantic(exc) from exc


# ---------------------------------------------------------------------------
# Updates
# ---------------------------------------------------------------------------


class RecurrenceRulePatch(BaseModel):
    """Partial update. Only fields explicitly set are applied.

    Setting an optional field to None clears it. The merged rule is
    re-validated through its frequency variant before anything is written.
    """

    model_config = ConfigDict(extra="forbid")

    pet_id: str | None = None
    title: str | None = None
    type: str | None = None
    reminder: bool | None = None
    reminder_preset: ReminderPreset | None = None
    vaccine_name: str | None = None
    vaccine_manufacturer: str | None = None
    batch_number: str | None = None
    medication_name: str | None = None
    dosage: str | None = None
    frequency: str | None = None
    interval: int | None = None
    days_of_week: list[int] | None = None
    day_of_month: int | None = None
    times_per_day: int | None = None
    daily_times: list[str] | None = None
    custom_dates: list[str] | None = None
    timezone: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    exception_dates: list[str] | None = None
    is_active: bool | None = None


def parse_patch(data: Mapping[str, Any] | RecurrenceRulePatch) -> dict[str, Any]:
    """Validate a patch and return only the fields it explicitly sets."""
    if isinstance(data, RecurrenceRulePatch):
        return data.model_dump(exclude_unset=True)
    try:
        return RecurrenceRulePatch.model_validate(dict(data)).model_dump(exclude_unset=True)
    except ValidationError as exc:
        raise RuleValidationError.from_pydantic(exc) from exc


def _restate_start(start: Any, old_timezone: Any, new_timezone: Any) -> Any:
    """Re-express a stored start instant at the same local date and time in a new zone."""
    new_zone = normalize_timezone(new_timezone) if isinstance(new_timezone, str) else None
    old_zone = normalize_timezone(old_timezone) if isinstance(old_timezone, str) else None
    if new_zone is None or old_zone is None or new_zone == old_zone or is_date_only(start):
        return start
    day = to_local_date_key(start, old_zone)
    clock = format_in_timezone(start, old_zone, "HH:mm")
    if not day or not clock:
        return start
    return combine_date_time_to_iso_in_timezone(day, clock, new_zone)


def merge_patch(current: Mapping[str, Any], patch: Mapping[str, Any]) -> _RuleFields:
    """Apply a patch to a stored rule's fields and re-validate the result.

    Fields the target frequency doesn't accept are dropped, so switching
    weekly → daily does not trip over a leftover days_of_week. A new
    timezone without a new start keeps the start's local date and time.
    """
    merged = {**current, **patch}
    # Explicit None on a required field means "leave as is".
    for key in ("pet_id", "title", "type", "reminder", "frequency", "interval",
                "timezone", "start_date", "is_active"):
        if key in patch and patch[key] is None:
            merged[key] = current.get(key)

    if patch.get("start_date") is None:
        merged["start_date"] = _restate_start(
            current.get("start_date"), current.get("timezone"), merged.get("timezone")
        )

    allowed = variant_fields(str(merged.get("frequency")))
    if allowed:
        merged = {k: v for k, v in merged.items() if k in allowed}
    return parse_rule_input(merged)
