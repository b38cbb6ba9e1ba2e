"""
Countdown formatter tests: EMERGENCY h/m/s countdown and tiers, STANDARD
business-day countdown with the cutoff hour, expiry.
"""

from datetime import timedelta, timezone

import pytest

from locates.domain import CountdownFormatter, LocateSLAConfig


class TestExpired:
    @pytest.mark.parametrize("call_type", ["EMERGENCY", "STANDARD", None])
    def test_at_deadline_is_expired(self, at, sla_config, call_type):
        deadline = at(2025, 1, 6, 14, 0)
        countdown = CountdownFormatter.format(deadline, deadline, call_type, sla_config)
        assert countdown.text == "EXPIRED"
        assert countdown.urgency == "expired"
        assert countdown.color == "#dc2626"

    def test_after_deadline_is_expired(self, at, sla_config):
        deadline = at(2025, 1, 6, 14, 0)
        countdown = CountdownFormatter.format(deadline, deadline + timedelta(days=3), "STANDARD", sla_config)
        assert countdown.text == "EXPIRED"


class TestEmergency:
    def test_twenty_minutes_left_is_critical(self, at, sla_config):
        deadline = at(2025, 1, 6, 14, 0)
        countdown = CountdownFormatter.format(deadline, deadline - timedelta(minutes=20), "EMERGENCY", sla_config)
        assert countdown.text == "20m 0s"
        assert countdown.urgency == "critical"
        assert countdown.color == "#ef4444"

    def test_forty_five_minutes_left_is_warning(self, at, sla_config):
        deadline = at(2025, 1, 6, 14, 0)
        countdown = CountdownFormatter.format(deadline, deadline - timedelta(minutes=45), "EMERGENCY", sla_config)
        assert countdown.text == "45m 0s"
        assert countdown.urgency == "warning"

    def test_hours_left_shows_hours_and_minutes(self, at, sla_config):
        deadline = at(2025, 1, 6, 14, 0)
        now = deadline - timedelta(hours=3, minutes=59, seconds=30)
        countdown = CountdownFormatter.format(deadline, now, "EMERGENCY", sla_config)
        assert countdown.text == "3h 59m"
        assert countdown.urgency == "normal"
        assert countdown.color == "#10b981"

    def test_seconds_only(self, at, sla_config):
        deadline = at(2025, 1, 6, 14, 0)
        countdown = CountdownFormatter.format(deadline, deadline - timedelta(seconds=42), "EMERGENCY", sla_config)
        assert countdown.text == "42s"
        assert countdown.urgency == "critical"

    @pytest.mark.parametrize(
        "remaining, expected_text, expected_tier",
        [
            (timedelta(minutes=30), "30m 0s", "critical"),
            (timedelta(minutes=30, seconds=1), "30m 1s", "warning"),
            (timedelta(minutes=60), "1h 0m", "warning"),
            (timedelta(minutes=60, seconds=1), "1h 0m", "normal"),
        ],
    )
    def test_tier_boundaries(self, at, sla_config, remaining, expected_text, expected_tier):
        deadline = at(2025, 1, 6, 14, 0)
        countdown = CountdownFormatter.format(deadline, deadline - remaining, "EMERGENCY", sla_config)
        assert countdown.text == expected_text
        assert countdown.urgency == expected_tier

    def test_thresholds_follow_config(self, at):
        config = LocateSLAConfig(critical_minutes=10, warning_minutes=20)
        deadline = at(2025, 1, 6, 14, 0)
        countdown = CountdownFormatter.format(deadline, deadline - timedelta(minutes=15), "EMERGENCY", config)
        assert countdown.urgency == "warning"


class TestStandard:
    """Deadline Tue Jan 7 16:00 (called Fri Jan 3 16:00)."""

    @pytest.fixture
    def deadline(self, at):
        return at(2025, 1, 7, 16, 0)

    def test_friday_after_call_shows_two_days(self, at, sla_config, deadline):
        countdown = CountdownFormatter.format(deadline, at(2025, 1, 3, 16, 5), "STANDARD", sla_config)
        assert countdown.text == "2 business days"
        assert countdown.urgency == "normal"

    def test_monday_morning_shows_one_day(self, at, sla_config, deadline):
        countdown = CountdownFormatter.format(deadline, at(2025, 1, 6, 10, 0), "STANDARD", sla_config)
        assert countdown.text == "1 business day"
        assert countdown.urgency == "warning"

    def test_due_day_shows_hours_remaining_today(self, at, sla_config, deadline):
        countdown = CountdownFormatter.format(deadline, at(2025, 1, 7, 9, 0), "STANDARD", sla_config)
        assert countdown.text == "7h remaining today"
        assert countdown.urgency == "warning"

    def test_after_cutoff_the_current_day_no_longer_counts(self, at, sla_config, deadline):
        countdown = CountdownFormatter.format(deadline, at(2025, 1, 6, 17, 30), "STANDARD", sla_config)
        assert countdown.text == "22h remaining"
        assert countdown.urgency == "warning"

    def test_now_in_another_zone_is_read_in_the_deadline_zone(self, sla_config, deadline, at):
        now = at(2025, 1, 6, 17, 30).astimezone(timezone.utc)  # 23:30 UTC
        countdown = CountdownFormatter.format(deadline, now, "STANDARD", sla_config)
        assert countdown.text == "22h remaining"

    def test_weekend_evening_before_monday_deadline_is_not_today(self, at, sla_config):
        countdown = CountdownFormatter.format(
            at(2025, 1, 6, 9, 0), at(2025, 1, 5, 20, 0), "STANDARD", sla_config
        )
        assert countdown.text == "13h remaining"
        assert countdown.urgency == "warning"

    def test_missing_call_type_formats_as_standard(self, at, sla_config, deadline):
        countdown = CountdownFormatter.format(deadline, at(2025, 1, 6, 10, 0), None, sla_config)
        assert countdown.text == "1 business day"


def test_cutoff_drops_a_day_midweek(at, sla_config):
    # Called Thu Jan 2 10:00, due Mon Jan 6 10:00
    deadline = at(2025, 1, 6, 10, 0)
    before_cutoff = CountdownFormatter.format(deadline, at(2025, 1, 2, 16, 59), "STANDARD", sla_config)
    at_cutoff = CountdownFormatter.format(deadline, at(2025, 1, 2, 17, 0), "STANDARD", sla_config)
    assert before_cutoff.text == "2 business days"
    assert at_cutoff.text == "1 business day"


def test_business_days_remaining_counts_weekdays_only(at):
    days = CountdownFormatter.business_days_remaining(at(2025, 1, 3, 9), at(2025, 1, 14, 9), 17)
    # Mon 6 .. Fri 10 and Mon 13, Tue 14
    assert days == 7


def test_placeholder_countdown():
    from locates.domain import Countdown

    placeholder = Countdown.placeholder()
    assert placeholder.text == "—"
    assert placeholder.urgency == "normal"
