"""
tests/test_periods.py — Period Window & Progress Tests
=======================================================
"""

from __future__ import annotations

from datetime import UTC, date, datetime
from types import SimpleNamespace

from portal.constants import RankingPeriod
from portal.engine.periods import UNBOUNDED, period_progress, period_window, window_for_dates


def _settings(**kw):
    base = dict(
        cycle_start_date=None, cycle_end_date=None,
        annual_start_date=None, annual_end_date=None,
    )
    base.update(kw)
    return SimpleNamespace(**base)


class TestWindows:
    def test_inclusive_end_day(self):
        w = window_for_dates(date(2026, 3, 1), date(2026, 3, 31))
        assert w.start == datetime(2026, 3, 1, tzinfo=UTC)
        assert w.end == datetime(2026, 4, 1, tzinfo=UTC)

    def test_missing_date_is_unbounded(self):
        assert window_for_dates(date(2026, 1, 1), None) is UNBOUNDED
        assert UNBOUNDED.start is None and UNBOUNDED.end is None

    def test_period_selects_matching_dates(self):
        s = _settings(
            cycle_start_date=date(2026, 3, 1), cycle_end_date=date(2026, 3, 31),
            annual_start_date=date(2026, 1, 1), annual_end_date=date(2026, 12, 31),
        )
        assert period_window(s, RankingPeriod.CYCLE).start == datetime(2026, 3, 1, tzinfo=UTC)
        assert period_window(s, "annual").end == datetime(2027, 1, 1, tzinfo=UTC)

    def test_no_settings_is_unbounded(self):
        assert period_window(None, RankingPeriod.CYCLE) is UNBOUNDED


class TestProgress:
    def test_midway(self):
        p = period_progress(date(2026, 3, 1), date(2026, 3, 11), date(2026, 3, 6))
        assert p.total_days == 10
        assert p.days_remaining == 5
        assert p.progress_percentage == 50.0

    def test_clamped_before_and_after(self):
        before = period_progress(date(2026, 3, 1), date(2026, 3, 11), date(2026, 2, 1))
        after = period_progress(date(2026, 3, 1), date(2026, 3, 11), date(2026, 5, 1))
        assert before.progress_percentage == 0.0
        assert after.progress_percentage == 100.0
        assert after.days_remaining == 0

    def test_rounded_to_two_places(self):
        p = period_progress(date(2026, 1, 1), date(2026, 1, 4), date(2026, 1, 2))
        assert p.progress_percentage == 33.33

    def test_single_day_period(self):
        day = date(2026, 6, 1)
        assert period_progress(day, day, day).progress_percentage == 100.0
        assert period_progress(day, day, date(2026, 5, 31)).progress_percentage == 0.0

    def test_unconfigured(self):
        p = period_progress(None, None, date(2026, 6, 1))
        assert p.to_dict() == {
            "startDate": None,
            "endDate": None,
            "totalDays": 0,
            "daysRemaining": 0,
            "progressPercentage": 0.0,
        }
