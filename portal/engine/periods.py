"""
portal.engine.periods — Cycle / Annual Period Windows
======================================================

Converts the date pairs stored in ``gamification_settings`` into half-open
datetime windows for ledger queries, and computes the progress summary
shown on the dashboard period card.

Both ends of a configured period are **inclusive whole days**: a cycle of
2026-03-01 → 2026-03-31 covers every entry from 2026-03-01T00:00 up to but
excluding 2026-04-01T00:00 (UTC).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from typing import Protocol

from portal.constants import RankingPeriod


class _PeriodSettings(Protocol):
    cycle_start_date: date | None
    cycle_end_date: date | None
    annual_start_date: date | None
    annual_end_date: date | None


@dataclass(frozen=True, slots=True)
class PeriodWindow:
    """Half-open ``[start, end)`` window.  ``None`` bounds are open."""

    start: datetime | None = None
    end: datetime | None = None


UNBOUNDED = PeriodWindow()


def _day_start(d: date) -> datetime:
    return datetime.combine(d, time.min, tzinfo=UTC)


def window_for_dates(start: date | None, end: date | None) -> PeriodWindow:
    """Build a window from an inclusive date pair; unbounded if either is missing."""
    if start is None or end is None:
        return UNBOUNDED
    return PeriodWindow(start=_day_start(start), end=_day_start(end + timedelta(days=1)))


def period_window(settings: _PeriodSettings | None, period: RankingPeriod | str) -> PeriodWindow:
    """Resolve the ledger window for *period* from the stored settings."""
    if settings is None:
        return UNBOUNDED
    if period == RankingPeriod.CYCLE:
        return window_for_dates(settings.cycle_start_date, settings.cycle_end_date)
    if period == RankingPeriod.ANNUAL:
        return window_for_dates(settings.annual_start_date, settings.annual_end_date)
    return UNBOUNDED


# ---------------------------------------------------------------------------
# Progress summary
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class PeriodProgress:
    start_date: date | None
    end_date: date | None
    total_days: int = 0
    days_remaining: int = 0
    progress_percentage: float = 0.0

    def to_dict(self) -> dict:
        return {
            "startDate": self.start_date.isoformat() if self.start_date else None,
            "endDate": self.end_date.isoformat() if self.end_date else None,
            "totalDays": self.total_days,
            "daysRemaining": self.days_remaining,
            "progressPercentage": self.progress_percentage,
        }


def period_progress(start: date | None, end: date | None, today: date) -> PeriodProgress:
    """How far *today* is through ``start → end``.

    ``total_days`` is the day difference between the two dates, progress is
    clamped to ``[0, 100]`` and ``days_remaining`` never goes negative.
    """
    if start is None or end is None:
        return PeriodProgress(start_date=start, end_date=end)

    total = (end - start).days
    passed = (today - start).days
    remaining = max(0, (end - today).days)
    if total <= 0:
        pct = 100.0 if today >= end else 0.0
    else:
        pct = min(100.0, max(0.0, passed / total * 100))
    return PeriodProgress(
        start_date=start,
        end_date=end,
        total_days=max(total, 0),
        days_remaining=remaining,
        progress_percentage=round(pct, 2),
    )
