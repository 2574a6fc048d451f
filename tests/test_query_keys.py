"""Tests for petcare.core.query_keys — timezone-scoped cache keys."""

from petcare.core.query_keys import event_keys, recurrence_keys


class TestEventKeys:
    def test_base_keys(self):
        assert event_keys.all() == ("events",)
        assert event_keys.today() == ("events", "today")
        assert event_keys.calendar("2099-01-01") == ("events", "calendar", "2099-01-01")
        assert event_keys.detail("e1") == ("events", "detail", "e1")

    def test_list_filters_order_independent(self):
        assert event_keys.list(pet_id="p", status="upcoming") == event_keys.list(status="upcoming", pet_id="p")

    def test_scoped_keys_carry_zone(self):
        assert event_keys.today_scoped("Asia/Tokyo") == ("events", "today", "Asia/Tokyo")
        assert event_keys.upcoming_scoped(" Asia/Tokyo ") == ("events", "upcoming", "Asia/Tokyo")

    def test_invalid_and_missing_zone_share_a_key(self):
        assert event_keys.today_scoped("Invalid/Timezone") == event_keys.today_scoped(None)
        assert event_keys.upcoming_scoped("") == event_keys.upcoming_scoped()
        assert (
            event_keys.calendar_scoped("2099-01-01", "Nope/Nope")
            == event_keys.calendar_scoped("2099-01-01", None)
        )

    def test_different_zones_differ(self):
        assert event_keys.today_scoped("Europe/Berlin") != event_keys.today_scoped("America/New_York")


class TestRecurrenceKeys:
    def test_rule_events_key(self):
        assert recurrence_keys.events("r1") == ("recurrence-rules", "detail", "r1", "events")
