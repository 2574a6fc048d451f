"""Tests for petcare.core.recurrence_service — structured responses."""

import sqlite3
from unittest.mock import MagicMock

import pytest

from petcare.core.recurrence_service import ErrorCode, RecurrenceService


def _payload(**overrides) -> dict:
    data = {
        "pet_id": "pet-1",
        "title": "Walk",
        "type": "walk",
        "frequency": "daily",
        "timezone": "Europe/Berlin",
        "start_date": "2099-01-01",
        "end_date": "2099-01-03",
        "daily_times": ["07:30"],
    }
    data.update(overrides)
    return data


@pytest.fixture
def service(recurrence_repo):
    return RecurrenceService(recurrence_repo)


class TestSuccessPaths:
    def test_create(self, service):
        response = service.create_rule(_payload())
        assert response.success is True
        assert response.error is None
        assert response.data.events_created == 3
        assert response.message == "Created 3 events"

    def test_get_rule_and_events(self, service):
        rule_id = service.create_rule(_payload()).data.rule.id
        assert service.get_rule(rule_id).data.id == rule_id
        events = service.get_rule_events(rule_id).data
        assert [e.start_time for e in events][0] == "2099-01-01T06:30:00.000Z"

    def test_list_rules(self, service):
        service.create_rule(_payload())
        response = service.get_rules(is_active=True)
        assert response.success is True
        assert len(response.data) == 1

    def test_update_delete_exception_regenerate(self, service):
        rule_id = service.create_rule(_payload()).data.rule.id
        assert service.update_rule(rule_id, {"title": "Long walk"}).data.rule.title == "Long walk"
        assert service.add_exception(rule_id, "2099-01-02").message == "ok"
        assert service.add_exception(rule_id, "2099-01-02").message == "no-op"
        assert service.remove_exception(rule_id, "2099-01-02").data.events_created == 3
        assert service.regenerate_events(rule_id).data.events_created == 3
        assert service.delete_rule(rule_id).data.events_deleted == 3


class TestErrorPaths:
    def test_validation_error(self, service):
        response = service.create_rule(_payload(daily_times=["7:30pm"]))
        assert response.success is False
        assert response.error.code is ErrorCode.VALIDATION_ERROR
        assert response.error.details[0]["field"] == "daily_times"

    def test_update_validation_error(self, service):
        rule_id = service.create_rule(_payload()).data.rule.id
        response = service.update_rule(rule_id, {"interval": 0})
        assert response.error.code is ErrorCode.VALIDATION_ERROR

    @pytest.mark.parametrize("call", [
        lambda s: s.get_rule("missing"),
        lambda s: s.get_rule_events("missing"),
        lambda s: s.update_rule("missing", {"title": "x"}),
        lambda s: s.delete_rule("missing"),
        lambda s: s.add_exception("missing", "2099-01-02"),
        lambda s: s.remove_exception("missing", "2099-01-02"),
        lambda s: s.regenerate_events("missing"),
    ])
    def test_not_found(self, service, call):
        response = call(service)
        assert response.success is False
        assert response.error.code is ErrorCode.NOT_FOUND

    @pytest.mark.parametrize("method,args,code", [
        ("create_rule", ({},), ErrorCode.CREATE_ERROR),
        ("update_rule", ("r1", {}), ErrorCode.UPDATE_ERROR),
        ("delete_rule", ("r1",), ErrorCode.DELETE_ERROR),
        ("add_exception", ("r1", "2099-01-02"), ErrorCode.EXCEPTION_ERROR),
        ("regenerate_events", ("r1",), ErrorCode.REGENERATE_ERROR),
    ])
    def test_storage_failure_maps_to_code(self, method, args, code):
        repo = MagicMock()
        getattr(repo, method).side_effect = sqlite3.OperationalError("disk I/O error")
        response = getattr(RecurrenceService(repo), method)(*args)
        assert response.success is False
        assert response.error.code is code
        assert "disk" not in response.message

    def test_fetch_error(self):
        repo = MagicMock()
        repo.get_rules.side_effect = sqlite3.OperationalError("locked")
        response = RecurrenceService(repo).get_rules()
        assert response.error.code is ErrorCode.FETCH_ERROR
