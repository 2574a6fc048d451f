"""Reminder port — abstract interface for local reminder scheduling.

The recurrence core depends on this protocol, never on a specific
notification provider. It hands over plain Event rows and minute offsets.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from petcare.data.models import Event


class ReminderSchedulerPort(Protocol):
    """Abstract reminder interface used by the recurrence repository."""

    def schedule_event_reminders(
        self, event: Event, offsets_minutes: list[int]
    ) -> list[str]: ...

    def cancel_event_reminders(self, event_id: str) -> None: ...
