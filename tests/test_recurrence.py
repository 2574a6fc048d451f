"""Tests for petcare.core.recurrence — pure rule expansion."""

import pytest

from petcare.config import settings
from petcare.core.date_conversion import to_local_date_key
from petcare.core.recurrence import (
    build_date_range,
    generate_daily_times,
    generate_event_start_times,
    generate_occurrence_date_keys,
    resolve_daily_times,
    rule_start_day,
)
from petcare.data.models import RecurrenceRule


def _rule(**overrides) -> RecurrenceRule:
    fields = dict(
        id="rule-1",
        pet_id="pet-1",
        title="Pill",
        type="medication",
        frequency="daily",
        timezone="UTC",
        start_date="2099-01-01",
        end_date="2099-01-03",
        daily_times=["09:00"],
    )
    fields.update(overrides)
    return RecurrenceRule(**fields)


# ---------------------------------------------------------------------------
# Daily
# ---------------------------------------------------------------------------


class TestDaily:
    def test_three_day_series(self):
        assert generate_occurrence_date_keys(_rule()) == ["2099-01-01", "2099-01-02", "2099-01-03"]

    def test_exception_removed_from_instants(self):
        rule = _rule(exception_dates=["2099-01-02"])
        assert generate_event_start_times(rule) == [
            "2099-01-01T09:00:00.000Z",
            "2099-01-03T09:00:00.000Z",
        ]

    def test_exception_removes_every_slot_of_the_day(self):
        rule = _rule(daily_times=["08:00", "20:00"], exception_dates=["2099-01-02"])
        instants = generate_event_start_times(rule)
        assert len(instants) == 4
        assert not any(i.startswith("2099-01-02") for i in instants)

    def test_interval_is_anchored_on_start(self):
        rule = _rule(interval=3, end_date="2099-01-10")
        assert generate_occurrence_date_keys(rule) == [
            "2099-01-01", "2099-01-04", "2099-01-07", "2099-01-10",
        ]
        # A later window keeps the same phase
        assert generate_occurrence_date_keys(rule, from_date="2099-01-05") == [
            "2099-01-07", "2099-01-10",
        ]

    def test_interval_below_one_is_clamped(self):
        rule = _rule(interval=0)
        assert len(generate_occurrence_date_keys(rule)) == 3

    def test_single_day_without_times_gets_default(self):
        rule = _rule(end_date="2099-01-01", daily_times=None)
        assert generate_event_start_times(rule) == ["2099-01-01T09:00:00.000Z"]

    def test_wall_clock_times_follow_rule_zone(self):
        rule = _rule(timezone="America/New_York", daily_times=["20:00"], end_date="2099-01-01")
        assert generate_event_start_times(rule) == ["2099-01-02T01:00:00.000Z"]

    def test_invalid_rule_zone_falls_back_to_device_zone(self):
        rule = _rule(timezone="Invalid/Timezone", end_date="2099-01-01")
        assert generate_event_start_times(rule) == ["2099-01-01T09:00:00.000Z"]


# ---------------------------------------------------------------------------
# Weekly / monthly / yearly / custom
# ---------------------------------------------------------------------------


class TestWeekly:
    def test_defaults_to_start_weekday_with_interval(self):
        # 2099-01-01 is a Thursday
        rule = _rule(frequency="weekly", interval=2, end_date="2099-01-31")
        assert generate_occurrence_date_keys(rule) == ["2099-01-01", "2099-01-15", "2099-01-29"]

    def test_selected_days(self):
        rule = _rule(frequency="weekly", days_of_week=[1, 3], end_date="2099-01-14")
        assert generate_occurrence_date_keys(rule) == [
            "2099-01-05", "2099-01-07", "2099-01-12", "2099-01-14",
        ]

    def test_interval_phase_kept_from_later_window(self):
        # Weeks run Thursday to Wednesday from 2099-01-01; every other one fires
        rule = _rule(frequency="weekly", interval=2, days_of_week=[1, 3], end_date="2099-02-28")
        assert generate_occurrence_date_keys(rule, from_date="2099-01-20") == [
            "2099-01-21", "2099-02-02", "2099-02-04", "2099-02-16", "2099-02-18",
        ]

    def test_spring_forward_sunday_in_berlin(self):
        rule = _rule(
            frequency="weekly",
            timezone="Europe/Berlin",
            start_date="2026-03-22",
            end_date="2026-04-05",
            days_of_week=[0],
            daily_times=["08:00"],
        )
        instants = generate_event_start_times(rule)
        assert instants == [
            "2026-03-22T07:00:00.000Z",
            "2026-03-29T06:00:00.000Z",
            "2026-04-05T06:00:00.000Z",
        ]
        for instant in instants:
            assert to_local_date_key(instant, "Europe/Berlin") in ("2026-03-22", "2026-03-29", "2026-04-05")


class TestMonthly:
    def test_short_months_clamp_to_last_day(self):
        rule = _rule(frequency="monthly", start_date="2099-01-31", end_date="2099-04-30")
        assert generate_occurrence_date_keys(rule) == [
            "2099-01-31", "2099-02-28", "2099-03-31", "2099-04-30",
        ]

    def test_explicit_day_and_interval(self):
        rule = _rule(frequency="monthly", day_of_month=15, interval=2, end_date="2099-06-30")
        assert generate_occurrence_date_keys(rule) == ["2099-01-15", "2099-03-15", "2099-05-15"]

    def test_interval_from_later_window_clamps(self):
        rule = _rule(frequency="monthly", start_date="2099-01-31", interval=2, end_date="2099-08-31")
        assert generate_occurrence_date_keys(rule, from_date="2099-02-10") == [
            "2099-03-31", "2099-05-31", "2099-07-31",
        ]


class TestYearly:
    def test_leap_day_clamps_to_feb_28(self, monkeypatch):
        monkeypatch.setattr(settings, "GENERATION_HORIZON_DAYS", 2000)
        rule = _rule(frequency="yearly", start_date="2096-02-29", end_date="2099-12-31")
        assert generate_occurrence_date_keys(rule) == [
            "2096-02-29", "2097-02-28", "2098-02-28", "2099-02-28",
        ]

    def test_interval_counts_years_from_start(self, monkeypatch):
        monkeypatch.setattr(settings, "GENERATION_HORIZON_DAYS", 2000)
        rule = _rule(frequency="yearly", interval=2, start_date="2096-02-29", end_date="2099-12-31")
        assert generate_occurrence_date_keys(rule, from_date="2097-01-01") == ["2098-02-28"]


class TestCustom:
    def test_sorted_deduped_within_window(self):
        rule = _rule(
            frequency="custom",
            start_date="2099-01-10",
            end_date="2099-06-30",
            custom_dates=["2099-03-01", "2099-01-15", "2099-01-15", "2099-01-05"],
        )
        assert generate_occurrence_date_keys(rule) == ["2099-01-15", "2099-03-01"]

    def test_unreadable_entries_skipped(self):
        rule = _rule(frequency="custom", custom_dates=["oops", "2099-01-02"])
        assert generate_occurrence_date_keys(rule) == ["2099-01-02"]


# ---------------------------------------------------------------------------
# Times per day, bounds, ordering
# ---------------------------------------------------------------------------


class TestTimesPerDay:
    def test_presets(self):
        assert generate_daily_times(1) == ["09:00"]
        assert generate_daily_times(3) == ["08:00", "14:00", "20:00"]

    def test_spread_for_larger_counts(self):
        assert generate_daily_times(7) == [
            "06:00", "09:00", "11:00", "14:00", "17:00", "19:00", "22:00",
        ]

    def test_capped_at_ten(self):
        assert generate_daily_times(25) == generate_daily_times(10)
        assert len(generate_daily_times(10)) == 10
        assert generate_daily_times(0) == []

    def test_explicit_times_win_over_count(self):
        rule = _rule(frequency="times_per_day", times_per_day=4, daily_times=["07:30"])
        assert resolve_daily_times(rule) == ["07:30"]

    def test_count_generates_times(self):
        rule = _rule(frequency="times_per_day", times_per_day=2, daily_times=None)
        assert generate_event_start_times(rule)[:2] == [
            "2099-01-01T08:00:00.000Z",
            "2099-01-01T20:00:00.000Z",
        ]


class TestBounds:
    def test_open_ended_rule_stops_at_horizon(self):
        rule = _rule(end_date=None)
        keys = generate_occurrence_date_keys(rule)
        assert keys[0] == "2099-01-01"
        assert len(keys) == settings.GENERATION_HORIZON_DAYS + 1

    def test_instants_capped_after_days(self):
        rule = _rule(end_date=None, daily_times=["08:00", "20:00"])
        instants = generate_event_start_times(rule)
        assert len(instants) == settings.MAX_GENERATED_EVENTS
        assert len(instants) < len(generate_occurrence_date_keys(rule)) * 2
        assert instants[-1] < "2099-05-01"

    def test_window_starts_at_from_date(self):
        start, end = build_date_range(_rule(end_date=None), from_date="2099-02-01")
        assert start.isoformat() == "2099-02-01"
        assert (end - start).days == settings.GENERATION_HORIZON_DAYS

    def test_window_empty_after_end(self):
        assert build_date_range(_rule(), from_date="2099-02-01") is None
        assert generate_event_start_times(_rule(), from_date="2099-02-01") == []

    def test_start_day_projected_from_instant(self):
        rule = _rule(start_date="2099-01-01T05:00:00.000Z", timezone="America/New_York")
        assert rule_start_day(rule).isoformat() == "2099-01-01"

    def test_unreadable_start_raises(self):
        with pytest.raises(ValueError):
            rule_start_day(_rule(start_date="someday"))


class TestOrderingProperties:
    @pytest.mark.parametrize("rule", [
        _rule(daily_times=["20:00", "08:00", "12:00"], end_date="2099-01-20"),
        _rule(frequency="weekly", days_of_week=[0, 2, 4], daily_times=["09:00", "18:00"], end_date="2099-03-01"),
        _rule(frequency="monthly", timezone="Asia/Tokyo", end_date="2099-06-30", daily_times=["00:30", "23:30"]),
        _rule(exception_dates=["2099-01-01", "2099-01-03"], daily_times=["06:00", "07:00"], end_date="2099-01-05"),
    ])
    def test_sorted_and_length_is_dates_times_slots(self, rule):
        instants = generate_event_start_times(rule)
        assert instants == sorted(instants)
        assert len(instants) == len(generate_occurrence_date_keys(rule)) * len(resolve_daily_times(rule))
