"""
PetCare — Recurrence Service.

UI-agnostic layer over the recurrence repository. Every call returns a
ServiceResponse instead of raising, so a screen (or an API route) can render
the outcome without knowing about pydantic, sqlite3, or the repository's
None-for-missing convention.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Generic, Mapping, TypeVar

from petcare.data.schemas import RuleValidationError

if TYPE_CHECKING:
    from petcare.data.db import RecurrenceRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Response types
# ---------------------------------------------------------------------------


class ErrorCode(Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    FETCH_ERROR = "FETCH_ERROR"
    CREATE_ERROR = "CREATE_ERROR"
    UPDATE_ERROR = "UPDATE_ERROR"
    DELETE_ERROR = "DELETE_ERROR"
    REGENERATE_ERROR = "REGENERATE_ERROR"
    EXCEPTION_ERROR = "EXCEPTION_ERROR"


@dataclass
class ServiceError:
    code: ErrorCode
    message: str
    details: list[dict[str, str]] = field(default_factory=list)  # [{"field", "message"}]


@dataclass
class ServiceResponse(Generic[T]):
    success: bool
    data: T | None = None
    message: str = ""
    error: ServiceError | None = None


def _ok(data: Any, message: str = "") -> ServiceResponse:
    return ServiceResponse(success=True, data=data, message=message)


def _fail(code: ErrorCode, message: str, details: list[dict[str, str]] | None = None) -> ServiceResponse:
    return ServiceResponse(
        success=False,
        message=message,
        error=ServiceError(code=code, message=message, details=details or []),
    )


def _not_found(rule_id: str) -> ServiceResponse:
    return _fail(ErrorCode.NOT_FOUND, f"Recurrence rule {rule_id} not found")


def _invalid(exc: RuleValidationError) -> ServiceResponse:
    return _fail(ErrorCode.VALIDATION_ERROR, str(exc), exc.errors)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class RecurrenceService:
    """Stateless facade: repository outcomes in, ServiceResponse out."""

    def __init__(self, repository: RecurrenceRepository) -> None:
        self._repo = repository

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_rules(
        self,
        page: int = 1,
        limit: int | None = None,
        is_active: bool | None = None,
        pet_id: str | None = None,
    ) -> ServiceResponse:
        try:
            rules = self._repo.get_rules(page=page, limit=limit, is_active=is_active, pet_id=pet_id)
        except sqlite3.Error as exc:
            logger.error("get_rules error: %s", exc)
            return _fail(ErrorCode.FETCH_ERROR, "Could not load recurrence rules")
        return _ok(rules)

    def get_rule(self, rule_id: str) -> ServiceResponse:
        try:
            rule = self._repo.get_rule_by_id(rule_id)
        except sqlite3.Error as exc:
            logger.error("get_rule error for %s: %s", rule_id, exc)
            return _fail(ErrorCode.FETCH_ERROR, "Could not load the recurrence rule")
        if rule is None:
            return _not_found(rule_id)
        return _ok(rule)

    def get_rule_events(
        self, rule_id: str, include_past: bool = False, limit: int | None = None
    ) -> ServiceResponse:
        try:
            if self._repo.get_rule_by_id(rule_id) is None:
                return _not_found(rule_id)
            events = self._repo.get_events_by_rule_id(rule_id, include_past=include_past, limit=limit)
        except sqlite3.Error as exc:
            logger.error("get_rule_events error for %s: %s", rule_id, exc)
            return _fail(ErrorCode.FETCH_ERROR, "Could not load events for the rule")
        return _ok(events)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_rule(self, data: Mapping[str, Any]) -> ServiceResponse:
        try:
            result = self._repo.create_rule(data)
        except RuleValidationError as exc:
            return _invalid(exc)
        except Exception:
            logger.exception("create_rule failed")
            return _fail(ErrorCode.CREATE_ERROR, "Could not save the recurrence rule")
        return _ok(result, f"Created {result.events_created} events")

    def update_rule(self, rule_id: str, patch: Mapping[str, Any]) -> ServiceResponse:
        try:
            result = self._repo.update_rule(rule_id, patch)
        except RuleValidationError as exc:
            return _invalid(exc)
        except Exception:
            logger.exception("update_rule failed for %s", rule_id)
            return _fail(ErrorCode.UPDATE_ERROR, "Could not save the recurrence rule")
        if result is None:
            return _not_found(rule_id)
        return _ok(result, "Recurrence rule updated")

    def delete_rule(self, rule_id: str) -> ServiceResponse:
        try:
            result = self._repo.delete_rule(rule_id)
        except Exception:
            logger.exception("delete_rule failed for %s", rule_id)
            return _fail(ErrorCode.DELETE_ERROR, "Could not delete the recurrence rule")
        if result is None:
            return _not_found(rule_id)
        return _ok(result, f"Deleted rule and {result.events_deleted} events")

    def add_exception(self, rule_id: str, date: str) -> ServiceResponse:
        try:
            result = self._repo.add_exception(rule_id, date)
        except RuleValidationError as exc:
            return _invalid(exc)
        except Exception:
            logger.exception("add_exception failed for %s on %s", rule_id, date)
            return _fail(ErrorCode.EXCEPTION_ERROR, "Could not skip that date")
        if result is None:
            return _not_found(rule_id)
        return _ok(result, result.message)

    def remove_exception(self, rule_id: str, date: str) -> ServiceResponse:
        try:
            result = self._repo.remove_exception(rule_id, date)
        except RuleValidationError as exc:
            return _invalid(exc)
        except Exception:
            logger.exception("remove_exception failed for %s on %s", rule_id, date)
            return _fail(ErrorCode.EXCEPTION_ERROR, "Could not restore that date")
        if result is None:
            return _not_found(rule_id)
        return _ok(result)

    def regenerate_events(self, rule_id: str) -> ServiceResponse:
        try:
            result = self._repo.regenerate_events(rule_id)
        except Exception:
            logger.exception("regenerate_events failed for %s", rule_id)
            return _fail(ErrorCode.REGENERATE_ERROR, "Could not regenerate events")
        if result is None:
            return _not_found(rule_id)
        return _ok(result, f"Regenerated {result.events_created} events")
