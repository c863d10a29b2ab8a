"""Reward period helper tests."""

from datetime import datetime, timedelta, timezone

from nextmcq.rewards.period_utils import as_utc, get_previous_month


class TestPreviousMonth:
    def test_mid_year(self):
        assert get_previous_month(datetime(2026, 10, 1, 0, 5, tzinfo=timezone.utc)) == (9, 2026)

    def test_january_rolls_back_to_december(self):
        assert get_previous_month(datetime(2026, 1, 1, tzinfo=timezone.utc)) == (12, 2025)

    def test_defaults_to_now(self):
        month, year = get_previous_month()
        assert 1 <= month <= 12
        assert year >= 2025


class TestAsUtc:
    def test_none(self):
        assert as_utc(None) is None

    def test_naive_gets_utc(self):
        assert as_utc(datetime(2026, 5, 1, 12, 0)).tzinfo == timezone.utc

    def test_aware_converted(self):
        ist = timezone(timedelta(hours=5, minutes=30))
        converted = as_utc(datetime(2026, 5, 1, 12, 0, tzinfo=ist))
        assert converted == datetime(2026, 5, 1, 6, 30, tzinfo=timezone.utc)
