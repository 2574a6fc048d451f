"""
PetCare — Cache keys.

Tuple keys for cached event and rule queries. Any key that depends on
"today" or a calendar day carries the effective timezone, resolved the same
way the recurrence engine resolves it, so an invalid zone and a missing
zone share one cache entry.
"""

from __future__ import annotations

from petcare.core.timezones import resolve_effective_timezone

QueryKey = tuple


class _EntityKeys:
    """all / lists / list / details / detail for one entity name."""

    def __init__(self, entity: str) -> None:
        self.entity = entity

    def all(self) -> QueryKey:
        return (self.entity,)

    def lists(self) -> QueryKey:
        return (*self.all(), "list")

    def list(self, **filters) -> QueryKey:
        return (*self.lists(), tuple(sorted(filters.items())))

    def details(self) -> QueryKey:
        return (*self.all(), "detail")

    def detail(self, entity_id: str) -> QueryKey:
        return (*self.details(), entity_id)


class _EventKeys(_EntityKeys):
    def calendar(self, date_key: str) -> QueryKey:
        return (*self.all(), "calendar", date_key)

    def upcoming(self) -> QueryKey:
        return (*self.all(), "upcoming")

    def today(self) -> QueryKey:
        return (*self.all(), "today")

    def type(self, pet_id: str, event_type: str) -> QueryKey:
        return (*self.all(), "type", pet_id, event_type)

    def today_scoped(self, timezone: str | None = None) -> QueryKey:
        return (*self.today(), resolve_effective_timezone(timezone))

    def upcoming_scoped(self, timezone: str | None = None) -> QueryKey:
        return (*self.upcoming(), resolve_effective_timezone(timezone))

    def calendar_scoped(self, date_key: str, timezone: str | None = None) -> QueryKey:
        return (*self.calendar(date_key), resolve_effective_timezone(timezone))


class _RecurrenceKeys(_EntityKeys):
    def events(self, rule_id: str) -> QueryKey:
        return (*self.detail(rule_id), "events")


event_keys = _EventKeys("events")
recurrence_keys = _RecurrenceKeys("recurrence-rules")
