"""
PetCare — Recurrence Database.

Local-first storage: recurrence rules and the events they generate live in a
single SQLite file on the device. The repository is the only writer of both
tables; every compound change (rule row + event batch) is one transaction,
so a failure mid-regeneration never leaves a rule without its events or a
series generated twice.
"""

from __future__ import annotations

import json
import logging
import secrets
import sqlite3
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone as dt_timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping

from petcare.config import settings
from petcare.core.date_conversion import (
    extract_date_key,
    format_utc_instant,
    parse_instant,
    to_local_date_key,
)
from petcare.core.recurrence import generate_event_start_times
from petcare.core.reminders import future_offsets, reminder_offsets
from petcare.core.timezones import resolve_effective_timezone
from petcare.data.models import NON_TERMINAL_STATUSES, Event, RecurrenceRule
from petcare.data.schemas import (
    DISPLAY_FIELDS,
    GENERATION_FIELDS,
    RuleValidationError,
    merge_patch,
    parse_patch,
    parse_rule_input,
)

if TYPE_CHECKING:
    from pydantic import BaseModel

    from petcare.ports.reminder_port import ReminderSchedulerPort

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Store lifecycle
# ---------------------------------------------------------------------------

_CREATE_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS recurrence_rules (
        id                   TEXT    PRIMARY KEY NOT NULL,
        pet_id               TEXT    NOT NULL,
        title                TEXT    NOT NULL,
        type                 TEXT    NOT NULL,
        reminder             INTEGER NOT NULL DEFAULT 0,
        reminder_preset      TEXT,
        vaccine_name         TEXT,
        vaccine_manufacturer TEXT,
        batch_number         TEXT,
        medication_name      TEXT,
        dosage               TEXT,
        frequency            TEXT    NOT NULL,
        interval             INTEGER NOT NULL DEFAULT 1,
        days_of_week         TEXT,
        day_of_month         INTEGER,
        times_per_day        INTEGER,
        daily_times          TEXT,
        timezone             TEXT    NOT NULL,
        start_date           TEXT    NOT NULL,
        end_date             TEXT,
        is_active            INTEGER NOT NULL DEFAULT 1,
        last_generated_date  TEXT,
        created_at           TEXT    NOT NULL,
        updated_at           TEXT    NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS events (
        id                   TEXT    PRIMARY KEY NOT NULL,
        pet_id               TEXT    NOT NULL,
        title                TEXT    NOT NULL,
        type                 TEXT    NOT NULL,
        start_time           TEXT    NOT NULL,
        reminder             INTEGER NOT NULL DEFAULT 0,
        reminder_preset      TEXT,
        status               TEXT    NOT NULL DEFAULT 'upcoming',
        vaccine_name         TEXT,
        vaccine_manufacturer TEXT,
        batch_number         TEXT,
        medication_name      TEXT,
        dosage               TEXT,
        frequency            TEXT,
        recurrence_rule_id   TEXT,
        series_index         INTEGER,
        created_at           TEXT    NOT NULL,
        updated_at           TEXT    NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_events_pet_id ON events(pet_id)",
    "CREATE INDEX IF NOT EXISTS idx_events_start_time ON events(start_time)",
    "CREATE INDEX IF NOT EXISTS idx_events_rule_id ON events(recurrence_rule_id)",
    "CREATE INDEX IF NOT EXISTS idx_recurrence_rules_pet_id ON recurrence_rules(pet_id)",
)

# Columns added after the first release; migrated in place on older files.
_RULE_MIGRATIONS = (
    ("exception_dates", "ALTER TABLE recurrence_rules ADD COLUMN exception_dates TEXT"),
    ("custom_dates", "ALTER TABLE recurrence_rules ADD COLUMN custom_dates TEXT"),
)

_connections: dict[str, sqlite3.Connection] = {}
_initialized: set[str] = set()


def _resolve_path(db_path: str | None) -> str:
    return db_path if db_path is not None else settings.DATABASE_PATH


def get_connection(db_path: str | None = None) -> sqlite3.Connection:
    """Return the process-wide connection for a database file, opening it once."""
    path = _resolve_path(db_path)
    conn = _connections.get(path)
    if conn is None:
        if path != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(path)
        conn.row_factory = sqlite3.Row
        _connections[path] = conn
    return conn


def init_database(db_path: str | None = None) -> sqlite3.Connection:
    """Create tables and run migrations. Idempotent; safe to call from every repository."""
    path = _resolve_path(db_path)
    conn = get_connection(path)
    if path in _initialized:
        return conn

    conn.execute("PRAGMA foreign_keys = ON")
    if path != ":memory:":
        conn.execute("PRAGMA journal_mode = WAL")

    with conn:
        for statement in _CREATE_STATEMENTS:
            conn.execute(statement)
        existing_cols = {
            row[1] for row in conn.execute("PRAGMA table_info(recurrence_rules)").fetchall()
        }
        for column, statement in _RULE_MIGRATIONS:
            if column not in existing_cols:
                conn.execute(statement)

    _initialized.add(path)
    logger.debug("Recurrence tables initialized at %s", path)
    return conn


def close_database(db_path: str | None = None) -> None:
    """Close and forget the connection for a database file."""
    path = _resolve_path(db_path)
    conn = _connections.pop(path, None)
    _initialized.discard(path)
    if conn is not None:
        conn.close()


def reset_database(db_path: str | None = None) -> sqlite3.Connection:
    """Drop both tables and recreate them empty."""
    path = _resolve_path(db_path)
    conn = get_connection(path)
    with conn:
        conn.execute("DROP TABLE IF EXISTS events")
        conn.execute("DROP TABLE IF EXISTS recurrence_rules")
    _initialized.discard(path)
    logger.info("Recurrence tables reset at %s", path)
    return init_database(path)


# ---------------------------------------------------------------------------
# Row helpers
# ---------------------------------------------------------------------------


def create_object_id() -> str:
    """24-hex id: 8 hex of epoch seconds followed by 16 random hex digits."""
    return f"{int(time.time()):08x}{secrets.token_hex(8)}"


def now_iso_string() -> str:
    return format_utc_instant(datetime.now(dt_timezone.utc))


def _dump_list(values: list | None) -> str | None:
    return json.dumps(values) if values is not None else None


def _load_list(raw: str | None) -> list | None:
    if not raw:
        return None
    try:
        parsed = json.loads(raw)
    except ValueError:
        logger.warning("Ignoring malformed JSON list column: %r", raw)
        return None
    return parsed if isinstance(parsed, list) else None


_RULE_COLUMNS = (
    "pet_id", "title", "type", "reminder", "reminder_preset",
    "vaccine_name", "vaccine_manufacturer", "batch_number", "medication_name", "dosage",
    "frequency", "interval", "days_of_week", "day_of_month", "times_per_day",
    "daily_times", "custom_dates", "timezone", "start_date", "end_date",
    "exception_dates", "is_active",
)
_LIST_COLUMNS = frozenset({"days_of_week", "daily_times", "custom_dates", "exception_dates"})

_EVENT_COLUMNS = (
    "id", "pet_id", "title", "type", "start_time", "reminder", "reminder_preset", "status",
    "vaccine_name", "vaccine_manufacturer", "batch_number", "medication_name", "dosage",
    "frequency", "recurrence_rule_id", "series_index", "created_at", "updated_at",
)


def _rule_column_values(rule_input: BaseModel) -> dict[str, Any]:
    """Storage values for every rule column from a validated rule variant."""
    data = rule_input.model_dump()
    values: dict[str, Any] = {}
    for column in _RULE_COLUMNS:
        value = data.get(column)
        if column in _LIST_COLUMNS:
            value = _dump_list(value)
        elif column in ("reminder", "is_active"):
            value = int(bool(value))
        values[column] = value
    return values


def _row_to_rule(row: sqlite3.Row) -> RecurrenceRule:
    return RecurrenceRule(
        id=row["id"],
        pet_id=row["pet_id"],
        title=row["title"],
        type=row["type"],
        frequency=row["frequency"],
        timezone=row["timezone"],
        start_date=row["start_date"],
        reminder=bool(row["reminder"]),
        reminder_preset=row["reminder_preset"],
        vaccine_name=row["vaccine_name"],
        vaccine_manufacturer=row["vaccine_manufacturer"],
        batch_number=row["batch_number"],
        medication_name=row["medication_name"],
        dosage=row["dosage"],
        interval=row["interval"],
        days_of_week=_load_list(row["days_of_week"]),
        day_of_month=row["day_of_month"],
        times_per_day=row["times_per_day"],
        daily_times=_load_list(row["daily_times"]),
        custom_dates=_load_list(row["custom_dates"]),
        end_date=row["end_date"],
        exception_dates=_load_list(row["exception_dates"]),
        is_active=bool(row["is_active"]),
        last_generated_date=row["last_generated_date"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_event(row: sqlite3.Row) -> Event:
    return Event(
        id=row["id"],
        pet_id=row["pet_id"],
        title=row["title"],
        type=row["type"],
        start_time=row["start_time"],
        reminder=bool(row["reminder"]),
        reminder_preset=row["reminder_preset"],
        status=row["status"],
        vaccine_name=row["vaccine_name"],
        vaccine_manufacturer=row["vaccine_manufacturer"],
        batch_number=row["batch_number"],
        medication_name=row["medication_name"],
        dosage=row["dosage"],
        frequency=row["frequency"],
        recurrence_rule_id=row["recurrence_rule_id"],
        series_index=row["series_index"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass
class CreateRuleResult:
    rule: RecurrenceRule
    events_created: int


@dataclass
class UpdateRuleResult:
    rule: RecurrenceRule
    events_updated: int    # events created by regeneration, or rows touched by a display-only edit
    events_deleted: int = 0


@dataclass
class DeleteRuleResult:
    message: str
    events_deleted: int


@dataclass
class RegenerateResult:
    events_deleted: int
    events_created: int


@dataclass
class ExceptionResult:
    message: str           # "ok" | "no-op"
    events_deleted: int = 0


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class RecurrenceRepository:
    """SQLite-backed owner of recurrence rules and their generated events."""

    def __init__(
        self,
        db_path: str | None = None,
        reminder_scheduler: ReminderSchedulerPort | None = None,
    ) -> None:
        self._db_path = _resolve_path(db_path)
        self._conn = init_database(self._db_path)
        self._reminders = reminder_scheduler

    # -- reads --------------------------------------------------------------

    def get_rule_by_id(self, rule_id: str) -> RecurrenceRule | None:
        """Fetch a single rule by ID."""
        row = self._conn.execute(
            "SELECT * FROM recurrence_rules WHERE id = ?", (rule_id,)
        ).fetchone()
        if row is None:
            return None
        return _row_to_rule(row)

    def get_rules(
        self,
        page: int = 1,
        limit: int | None = None,
        is_active: bool | None = None,
        pet_id: str | None = None,
    ) -> list[RecurrenceRule]:
        """List rules oldest first, optionally filtered and paginated."""
        conditions: list[str] = []
        params: list = []
        if is_active is not None:
            conditions.append("is_active = ?")
            params.append(int(is_active))
        if pet_id:
            conditions.append("pet_id = ?")
            params.append(pet_id)

        query = "SELECT * FROM recurrence_rules"
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += " ORDER BY created_at, rowid"
        if limit is not None:
            limit = max(limit, 1)
            query += " LIMIT ? OFFSET ?"
            params.extend([limit, (max(page, 1) - 1) * limit])

        rows = self._conn.execute(query, params).fetchall()
        return [_row_to_rule(r) for r in rows]

    def get_events_by_rule_id(
        self, rule_id: str, include_past: bool = False, limit: int | None = None
    ) -> list[Event]:
        """Events of a series in start order; future ones only unless include_past."""
        query = "SELECT * FROM events WHERE recurrence_rule_id = ?"
        params: list = [rule_id]
        if not include_past:
            query += " AND start_time >= ?"
            params.append(now_iso_string())
        query += " ORDER BY start_time, series_index"
        if limit is not None:
            query += " LIMIT ?"
            params.append(max(limit, 1))
        rows = self._conn.execute(query, params).fetchall()
        return [_row_to_event(r) for r in rows]

    def get_events_by_pet_id(self, pet_id: str, include_past: bool = False) -> list[Event]:
        """All events (generated and standalone) for one pet, in start order."""
        query = "SELECT * FROM events WHERE pet_id = ?"
        params: list = [pet_id]
        if not include_past:
            query += " AND start_time >= ?"
            params.append(now_iso_string())
        query += " ORDER BY start_time"
        rows = self._conn.execute(query, params).fetchall()
        return [_row_to_event(r) for r in rows]

    def get_upcoming_events(
        self, pet_id: str | None = None, limit: int | None = None
    ) -> list[Event]:
        """Future events in a non-terminal status, soonest first."""
        placeholders = ", ".join("?" for _ in NON_TERMINAL_STATUSES)
        query = f"SELECT * FROM events WHERE status IN ({placeholders}) AND start_time >= ?"
        params: list = [*NON_TERMINAL_STATUSES, now_iso_string()]
        if pet_id:
            query += " AND pet_id = ?"
            params.append(pet_id)
        query += " ORDER BY start_time"
        if limit is not None:
            query += " LIMIT ?"
            params.append(max(limit, 1))
        rows = self._conn.execute(query, params).fetchall()
        return [_row_to_event(r) for r in rows]

    # -- writes -------------------------------------------------------------

    def create_rule(self, data: Mapping[str, Any] | BaseModel) -> CreateRuleResult:
        """Validate and persist a rule, then generate its series in the same transaction.

        Raises RuleValidationError before any write if the payload is malformed.
        """
        rule_input = parse_rule_input(data)
        values = _rule_column_values(rule_input)
        now = now_iso_string()
        rule_id = create_object_id()

        columns = ["id", *values.keys(), "created_at", "updated_at"]
        placeholders = ", ".join("?" for _ in columns)
        with self._conn:
            self._conn.execute(
                f"INSERT INTO recurrence_rules ({', '.join(columns)}) VALUES ({placeholders})",
                [rule_id, *values.values(), now, now],
            )
            rule = self._require_rule(rule_id)
            created = self._generate_events(rule, now)

        self._schedule_reminders(created, now)
        rule = self._require_rule(rule_id)
        logger.info(
            "Recurrence rule created: %s '%s' (%s), %d events",
            rule_id, rule.title, rule.frequency, len(created),
        )
        return CreateRuleResult(rule=rule, events_created=len(created))

    def update_rule(
        self, rule_id: str, patch: Mapping[str, Any] | BaseModel
    ) -> UpdateRuleResult | None:
        """Merge a patch into a rule and bring its future events in line.

        Generation-affecting changes drop the rule's future events and
        regenerate them (nothing is regenerated while the rule is inactive).
        Display-only changes are copied onto future events in place. Past and
        completed events are never touched.
        """
        current = self.get_rule_by_id(rule_id)
        if current is None:
            return None

        changes = parse_patch(patch)
        merged = merge_patch(asdict(current), changes)
        values = _rule_column_values(merged)
        current_values = _rule_column_values(merge_patch(asdict(current), {}))
        changed = {k for k, v in values.items() if current_values.get(k) != v}
        regenerate = bool(changed & GENERATION_FIELDS)
        display_changed = sorted(changed & set(DISPLAY_FIELDS))

        now = now_iso_string()
        removed: list[Event] = []
        created: list[Event] = []
        touched: list[Event] = []

        assignments = ", ".join(f"{column} = ?" for column in values)
        with self._conn:
            self._conn.execute(
                f"UPDATE recurrence_rules SET {assignments}, updated_at = ? WHERE id = ?",
                [*values.values(), now, rule_id],
            )
            rule = self._require_rule(rule_id)
            if regenerate:
                removed = self._delete_future_events(rule_id, now)
                created = self._generate_events(rule, now)
            elif display_changed:
                touched = self._propagate_display_fields(rule, display_changed, now)

        self._schedule_reminders(created, now)
        if {"reminder", "reminder_preset"} & set(display_changed):
            self._cancel_reminders(touched)
            self._schedule_reminders(touched, now)

        rule = self._require_rule(rule_id)
        events_updated = len(created) if regenerate else len(touched)
        logger.info(
            "Recurrence rule %s updated (%s): %d removed, %d created, %d edited",
            rule_id, ", ".join(sorted(changed)) or "no changes",
            len(removed), len(created), len(touched),
        )
        return UpdateRuleResult(rule=rule, events_updated=events_updated, events_deleted=len(removed))

    def add_exception(self, rule_id: str, date: str) -> ExceptionResult | None:
        """Skip one date of a series. Idempotent: a repeated call is a no-op.

        ``date`` is a "YYYY-MM-DD" key or any instant, projected into the
        rule's timezone. Events already generated on that local date are
        deleted, whatever their time slot.
        """
        rule = self.get_rule_by_id(rule_id)
        if rule is None:
            return None

        timezone = resolve_effective_timezone(rule.timezone)
        date_key = extract_date_key(date, timezone)
        if not date_key:
            raise RuleValidationError([{"field": "date", "message": f"unreadable date {date!r}"}])

        exceptions = set(rule.exception_dates or [])
        already_excluded = date_key in exceptions
        exceptions.add(date_key)

        matching = [
            event for event in self.get_events_by_rule_id(rule_id, include_past=True)
            if to_local_date_key(event.start_time, timezone) == date_key
        ]

        now = now_iso_string()
        with self._conn:
            if not already_excluded:
                self._conn.execute(
                    "UPDATE recurrence_rules SET exception_dates = ?, updated_at = ? WHERE id = ?",
                    (json.dumps(sorted(exceptions)), now, rule_id),
                )
            self._delete_events(matching)

        message = "ok" if matching or not already_excluded else "no-op"
        logger.info(
            "Exception %s on rule %s: %s, %d events removed",
            date_key, rule_id, message, len(matching),
        )
        return ExceptionResult(message=message, events_deleted=len(matching))

    def remove_exception(self, rule_id: str, date: str) -> RegenerateResult | None:
        """Un-skip a date and regenerate the rule's future events."""
        rule = self.get_rule_by_id(rule_id)
        if rule is None:
            return None

        date_key = extract_date_key(date, resolve_effective_timezone(rule.timezone))
        exceptions = [d for d in rule.exception_dates or [] if d != date_key]
        if len(exceptions) == len(rule.exception_dates or []):
            return RegenerateResult(events_deleted=0, events_created=0)

        result = self.update_rule(rule_id, {"exception_dates": exceptions})
        if result is None:
            return None
        return RegenerateResult(events_deleted=result.events_deleted, events_created=result.events_updated)

    def regenerate_events(self, rule_id: str) -> RegenerateResult | None:
        """Drop and rebuild a rule's future events from the stored rule."""
        rule = self.get_rule_by_id(rule_id)
        if rule is None:
            return None

        now = now_iso_string()
        with self._conn:
            removed = self._delete_future_events(rule_id, now)
            created = self._generate_events(rule, now)

        self._schedule_reminders(created, now)
        logger.info(
            "Rule %s regenerated: %d removed, %d created", rule_id, len(removed), len(created)
        )
        return RegenerateResult(events_deleted=len(removed), events_created=len(created))

    def delete_rule(self, rule_id: str) -> DeleteRuleResult | None:
        """Delete a rule and every event it ever generated, past and future."""
        if self.get_rule_by_id(rule_id) is None:
            return None

        events = self.get_events_by_rule_id(rule_id, include_past=True)
        with self._conn:
            self._delete_events(events)
            self._conn.execute("DELETE FROM events WHERE recurrence_rule_id = ?", (rule_id,))
            self._conn.execute("DELETE FROM recurrence_rules WHERE id = ?", (rule_id,))

        logger.info("Recurrence rule %s deleted with %d events", rule_id, len(events))
        return DeleteRuleResult(message="ok", events_deleted=len(events))

    # -- internals ----------------------------------------------------------

    def _require_rule(self, rule_id: str) -> RecurrenceRule:
        rule = self.get_rule_by_id(rule_id)
        if rule is None:
            raise LookupError(f"Recurrence rule {rule_id} vanished mid-transaction")
        return rule

    def _generate_events(self, rule: RecurrenceRule, now: str) -> list[Event]:
        """Insert the rule's not-yet-stored future instants. Caller owns the transaction."""
        if not rule.is_active:
            return []

        retained = self._conn.execute(
            "SELECT start_time, series_index FROM events WHERE recurrence_rule_id = ?",
            (rule.id,),
        ).fetchall()
        retained_times = {row["start_time"] for row in retained}
        next_index = max(
            (row["series_index"] for row in retained if row["series_index"] is not None),
            default=-1,
        ) + 1

        today = to_local_date_key(now, rule.timezone)
        instants = [
            instant for instant in generate_event_start_times(rule, from_date=today or None)
            if instant >= now and instant not in retained_times
        ]

        events = [
            Event(
                id=create_object_id(),
                pet_id=rule.pet_id,
                title=rule.title,
                type=rule.type,
                start_time=instant,
                reminder=rule.reminder,
                reminder_preset=rule.reminder_preset,
                status="upcoming",
                vaccine_name=rule.vaccine_name,
                vaccine_manufacturer=rule.vaccine_manufacturer,
                batch_number=rule.batch_number,
                medication_name=rule.medication_name,
                dosage=rule.dosage,
                frequency=None,
                recurrence_rule_id=rule.id,
                series_index=next_index + offset,
                created_at=now,
                updated_at=now,
            )
            for offset, instant in enumerate(instants)
        ]

        if events:
            placeholders = ", ".join("?" for _ in _EVENT_COLUMNS)
            self._conn.executemany(
                f"INSERT INTO events ({', '.join(_EVENT_COLUMNS)}) VALUES ({placeholders})",
                [
                    [int(v) if isinstance(v, bool) else v for v in (getattr(e, c) for c in _EVENT_COLUMNS)]
                    for e in events
                ],
            )

        self._conn.execute(
            "UPDATE recurrence_rules SET last_generated_date = ?, updated_at = ? WHERE id = ?",
            (now, now, rule.id),
        )
        logger.debug("Generated %d events for rule %s", len(events), rule.id)
        return events

    def _delete_future_events(self, rule_id: str, now: str) -> list[Event]:
        """Delete the rule's future events that aren't completed. Caller owns the transaction."""
        rows = self._conn.execute(
            "SELECT * FROM events WHERE recurrence_rule_id = ? AND start_time >= ? "
            "AND status != 'completed'",
            (rule_id, now),
        ).fetchall()
        events = [_row_to_event(r) for r in rows]
        self._delete_events(events)
        return events

    def _delete_events(self, events: list[Event]) -> None:
        """Cancel reminders, then delete. Caller owns the transaction."""
        self._cancel_reminders(events)
        self._conn.executemany("DELETE FROM events WHERE id = ?", [(e.id,) for e in events])

    def _propagate_display_fields(
        self, rule: RecurrenceRule, fields: list[str], now: str
    ) -> list[Event]:
        """Copy edited display fields onto the rule's future, non-completed events."""
        assignments = ", ".join(f"{f} = ?" for f in fields)
        params = [int(v) if isinstance(v, bool) else v for v in (getattr(rule, f) for f in fields)]
        self._conn.execute(
            f"UPDATE events SET {assignments}, updated_at = ? "
            "WHERE recurrence_rule_id = ? AND start_time >= ? AND status != 'completed'",
            [*params, now, rule.id, now],
        )
        rows = self._conn.execute(
            "SELECT * FROM events WHERE recurrence_rule_id = ? AND start_time >= ? "
            "AND status != 'completed' ORDER BY start_time",
            (rule.id, now),
        ).fetchall()
        return [_row_to_event(r) for r in rows]

    def _cancel_reminders(self, events: list[Event]) -> None:
        if self._reminders is None:
            return
        for event in events:
            try:
                self._reminders.cancel_event_reminders(event.id)
            except Exception as exc:
                logger.error("Failed to cancel reminders for event %s: %s", event.id, exc)

    def _schedule_reminders(self, events: list[Event], now: str) -> None:
        if self._reminders is None:
            return
        now_dt = parse_instant(now)
        for event in events:
            if not event.reminder or now_dt is None:
                continue
            offsets = future_offsets(event.start_time, reminder_offsets(event.reminder_preset), now_dt)
            if not offsets:
                continue
            try:
                self._reminders.schedule_event_reminders(event, offsets)
            except Exception as exc:
                logger.error("Failed to schedule reminders for event %s: %s", event.id, exc)
