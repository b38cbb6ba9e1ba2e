"""
Deadline calculator tests: EMERGENCY fixed window, STANDARD business days,
fail-safe on missing inputs, expiry boundary.
"""

from datetime import datetime, timedelta, timezone

import pytest

from locates.domain import DeadlineCalculator, LocateSLAConfig


class TestCalculateDeadline:
    def test_emergency_is_four_hours_after_call(self, at, sla_config):
        deadline = DeadlineCalculator.calculate_deadline(at(2025, 1, 6, 10, 0), "EMERGENCY", sla_config)
        assert deadline == at(2025, 1, 6, 14, 0)

    def test_emergency_window_is_absolute_across_dst(self, tz, sla_config):
        called = datetime(2025, 3, 9, 0, 30, tzinfo=tz)  # CST; clocks jump at 02:00

        deadline = DeadlineCalculator.calculate_deadline(called, "EMERGENCY", sla_config)

        assert deadline.astimezone(timezone.utc) - called.astimezone(timezone.utc) == timedelta(hours=4)
        assert (deadline.hour, deadline.minute) == (5, 30)

    def test_standard_friday_afternoon_lands_on_tuesday(self, at, sla_config):
        deadline = DeadlineCalculator.calculate_deadline(at(2025, 1, 3, 16, 0), "STANDARD", sla_config)
        assert deadline == at(2025, 1, 7, 16, 0)

    def test_standard_saturday_lands_on_tuesday(self, at, sla_config):
        deadline = DeadlineCalculator.calculate_deadline(at(2025, 1, 4, 10, 0), "STANDARD", sla_config)
        assert deadline == at(2025, 1, 7, 10, 0)

    def test_standard_monday_lands_on_wednesday(self, at, sla_config):
        deadline = DeadlineCalculator.calculate_deadline(at(2025, 1, 6, 8, 15), "STANDARD", sla_config)
        assert deadline == at(2025, 1, 8, 8, 15)

    def test_holidays_are_not_skipped(self, at, sla_config):
        # Mon Dec 30 + 2 business days crosses New Year's Day
        deadline = DeadlineCalculator.calculate_deadline(at(2024, 12, 30, 10, 0), "STANDARD", sla_config)
        assert deadline == at(2025, 1, 1, 10, 0)

    @pytest.mark.parametrize("call_type", [None, "", "URGENT", "standard "])
    def test_unknown_call_type_yields_no_deadline(self, at, sla_config, call_type):
        assert DeadlineCalculator.calculate_deadline(at(2025, 1, 6, 10), call_type, sla_config) is None

    def test_missing_called_at_yields_no_deadline(self, sla_config):
        assert DeadlineCalculator.calculate_deadline(None, "EMERGENCY", sla_config) is None

    def test_windows_follow_config(self, at):
        config = LocateSLAConfig(emergency_hours=2, standard_business_days=3)
        assert DeadlineCalculator.calculate_deadline(at(2025, 1, 6, 10), "EMERGENCY", config) == at(2025, 1, 6, 12)
        assert DeadlineCalculator.calculate_deadline(at(2025, 1, 3, 10), "STANDARD", config) == at(2025, 1, 8, 10)


class TestResolveDeadline:
    def test_upstream_completion_date_wins(self, at, sla_config):
        upstream = at(2025, 1, 10, 12, 0)
        resolved = DeadlineCalculator.resolve_deadline(at(2025, 1, 6, 10), "EMERGENCY", upstream, sla_config)
        assert resolved == upstream

    def test_falls_back_to_rule(self, at, sla_config):
        resolved = DeadlineCalculator.resolve_deadline(at(2025, 1, 6, 10), "EMERGENCY", None, sla_config)
        assert resolved == at(2025, 1, 6, 14)


class TestIsExpired:
    def test_expired_exactly_at_deadline(self, at):
        deadline = at(2025, 1, 6, 14, 0)
        assert DeadlineCalculator.is_expired(deadline, deadline) is True

    def test_not_expired_one_second_before(self, at):
        deadline = at(2025, 1, 6, 14, 0)
        assert DeadlineCalculator.is_expired(deadline, deadline - timedelta(seconds=1)) is False

    def test_compares_instants_across_zones(self, at):
        deadline = at(2025, 1, 6, 14, 0)  # 20:00 UTC
        assert DeadlineCalculator.is_expired(deadline, deadline.astimezone(timezone.utc)) is True

    def test_missing_deadline_never_expires(self, at):
        assert DeadlineCalculator.is_expired(None, at(2030, 1, 1)) is False


def test_add_business_days_keeps_time_and_zone(at):
    start = at(2025, 1, 3, 16, 45, 12)
    result = DeadlineCalculator.add_business_days(start, 1)
    assert result == at(2025, 1, 6, 16, 45, 12)
    assert result.tzinfo == start.tzinfo
