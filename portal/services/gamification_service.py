"""
portal.services.gamification_service — Settings, Ledger & Ranking
==================================================================

Shared service module for the gamification endpoints.

* The settings table holds a single row; reads return ``None`` until an
  admin saves it for the first time.
* The points ledger is append-only.  There is no update or
  delete function here.
* Ranking reads sum the ledger in SQL (one ``GROUP BY``) and hand the
  totals to :func:`portal.engine.ranking.build_ranking` for ordering.
"""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session, aliased

from portal.constants import RANKING_LIMIT, PointsType, RankingPeriod
from portal.database.models import (
    AdminActionType,
    GamificationSettings,
    PointsLedgerEntry,
    User,
    UserCategory,
)
from portal.engine.periods import PeriodProgress, PeriodWindow, period_progress, period_window
from portal.engine.ranking import Participant, RankingRow, build_ranking
from portal.services.audit import log_admin_action, row_to_dict
from portal.services.category_service import user_ids_in_categories

logger = logging.getLogger(__name__)

SETTINGS_FIELDS = (
    "cycle_start_date",
    "cycle_end_date",
    "annual_start_date",
    "annual_end_date",
    "general_category_id",
    "enabled_category_ids",
)


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------
def settings_to_dict(s: GamificationSettings | None) -> dict | None:
    if s is None:
        return None

    def _d(v: date | None) -> str | None:
        return v.isoformat() if v else None

    return {
        "id": s.id,
        "cycleStartDate": _d(s.cycle_start_date),
        "cycleEndDate": _d(s.cycle_end_date),
        "annualStartDate": _d(s.annual_start_date),
        "annualEndDate": _d(s.annual_end_date),
        "generalCategoryId": s.general_category_id,
        "enabledCategoryIds": list(s.enabled_category_ids or []),
        "updatedAt": s.updated_at.isoformat() if s.updated_at else None,
    }


def get_settings(session: Session) -> GamificationSettings | None:
    return session.scalar(
        select(GamificationSettings).order_by(GamificationSettings.id).limit(1)
    )


def _check_range(start: date | None, end: date | None, label: str) -> None:
    if start is not None and end is not None and start > end:
        raise ValueError(f"{label} start date must not be after its end date")


def update_settings(engine, *, actor_id: int, **changes: Any) -> dict:
    """Partially update the settings row, creating it on first save.

    Only keys in :data:`SETTINGS_FIELDS` are applied; keys absent from
    *changes* keep their stored value.

    Raises
    ------
    ValueError
        If a period's start date falls after its end date.
    """
    fields = {k: v for k, v in changes.items() if k in SETTINGS_FIELDS}
    if "enabled_category_ids" in fields and fields["enabled_category_ids"] is not None:
        fields["enabled_category_ids"] = sorted({int(i) for i in fields["enabled_category_ids"]})

    with Session(engine, expire_on_commit=False) as session:
        row = get_settings(session)
        before = row_to_dict(row)
        if row is None:
            row = GamificationSettings()
            session.add(row)

        for key, value in fields.items():
            setattr(row, key, value)

        _check_range(row.cycle_start_date, row.cycle_end_date, "Cycle")
        _check_range(row.annual_start_date, row.annual_end_date, "Annual")

        session.flush()
        log_admin_action(
            session,
            actor_id=actor_id,
            action_type=AdminActionType.UPDATE if before else AdminActionType.CREATE,
            target_table="gamification_settings",
            target_id=str(row.id),
            before=before,
            after=row_to_dict(row),
        )
        session.commit()
        session.refresh(row)
        logger.info("Gamification settings updated by %s", actor_id)
        return settings_to_dict(row)


def current_period(engine, today: date | None = None) -> PeriodProgress:
    """Progress through the configured cycle as of *today* (UTC)."""
    today = today or datetime.now(UTC).date()
    with Session(engine) as session:
        s = get_settings(session)
        if s is None:
            return period_progress(None, None, today)
        return period_progress(s.cycle_start_date, s.cycle_end_date, today)


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------
def entry_to_dict(e: PointsLedgerEntry, **extra: Any) -> dict:
    return {
        "id": e.id,
        "userId": e.user_id,
        "points": e.points,
        "description": e.description,
        "type": e.type,
        "createdAt": e.created_at.isoformat() if e.created_at else None,
        **extra,
    }


def award_points(
    engine,
    *,
    user_id: int,
    points: int,
    description: str,
    actor_id: int,
    entry_type: str = PointsType.APPROVED,
    created_at: datetime | None = None,
) -> dict | None:
    """Append a ledger entry.  Returns ``None`` if *user_id* does not exist."""
    with Session(engine, expire_on_commit=False) as session:
        if session.get(User, user_id) is None:
            return None
        creator = session.get(User, actor_id)
        entry = PointsLedgerEntry(
            user_id=user_id,
            points=int(points),
            description=description,
            type=str(PointsType(entry_type)),
            created_by=creator.id if creator else None,
        )
        if created_at is not None:
            entry.created_at = created_at
        session.add(entry)
        session.flush()
        log_admin_action(
            session,
            actor_id=actor_id,
            action_type=AdminActionType.POINTS_AWARD,
            target_table="gamification_points",
            target_id=str(entry.id),
            before=None,
            after=row_to_dict(entry),
        )
        session.commit()
        session.refresh(entry)
        logger.info("Awarded %+d points to user %s (by %s)", points, user_id, actor_id)
        return entry_to_dict(entry)


def list_points(
    session: Session,
    *,
    user_id: int | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[dict]:
    """Ledger entries, newest first, joined with owner and creator names."""
    creator = aliased(User)
    query = (
        select(PointsLedgerEntry, User, creator.name)
        .join(User, PointsLedgerEntry.user_id == User.id)
        .outerjoin(creator, PointsLedgerEntry.created_by == creator.id)
        .order_by(PointsLedgerEntry.created_at.desc(), PointsLedgerEntry.id.desc())
    )
    if user_id is not None:
        query = query.where(PointsLedgerEntry.user_id == user_id)
    rows = session.execute(query.offset(offset).limit(limit)).all()
    return [
        entry_to_dict(
            e,
            userName=u.name,
            userEmail=u.email,
            createdBy=creator_name,
        )
        for e, u, creator_name in rows
    ]


def points_extract(session: Session, user_id: int) -> dict:
    """A user's own ledger history plus the all-time total."""
    creator = aliased(User)
    rows = session.execute(
        select(PointsLedgerEntry, creator.name)
        .outerjoin(creator, PointsLedgerEntry.created_by == creator.id)
        .where(PointsLedgerEntry.user_id == user_id)
        .order_by(PointsLedgerEntry.created_at.desc(), PointsLedgerEntry.id.desc())
    ).all()
    history = [entry_to_dict(e, createdBy=name) for e, name in rows]
    return {
        "totalPoints": sum(e.points for e, _ in rows),
        "history": history,
    }


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------
def _eligible_user_ids(
    session: Session,
    settings: GamificationSettings | None,
    category_id: int | None,
) -> set[int]:
    """User ids allowed in the ranking.

    Precedence: explicit category filter → configured general category →
    union of enabled categories → nobody.
    """
    if category_id is not None:
        return user_ids_in_categories(session, [category_id])
    if settings is not None and settings.general_category_id:
        return user_ids_in_categories(session, [settings.general_category_id])
    if settings is not None and settings.enabled_category_ids:
        return user_ids_in_categories(session, settings.enabled_category_ids)
    return set()


def _ledger_totals(session: Session, user_ids: list[int], window: PeriodWindow) -> dict[int, int]:
    query = (
        select(PointsLedgerEntry.user_id, func.sum(PointsLedgerEntry.points))
        .where(PointsLedgerEntry.user_id.in_(user_ids))
        .group_by(PointsLedgerEntry.user_id)
    )
    if window.start is not None:
        query = query.where(PointsLedgerEntry.created_at >= window.start)
    if window.end is not None:
        query = query.where(PointsLedgerEntry.created_at < window.end)
    return {uid: int(total or 0) for uid, total in session.execute(query).all()}


def compute_ranking(
    session: Session,
    *,
    period: RankingPeriod | str = RankingPeriod.CYCLE,
    category_id: int | None = None,
    limit: int = RANKING_LIMIT,
) -> list[RankingRow]:
    """Top-*limit* active users by points inside the *period* window."""
    period = RankingPeriod(period)
    settings = get_settings(session)
    window = period_window(settings, period)

    eligible = _eligible_user_ids(session, settings, category_id)
    if not eligible:
        return []

    users = session.scalars(
        select(User).where(User.is_active.is_(True), User.id.in_(sorted(eligible)))
    ).all()
    if not users:
        return []

    participants = [
        Participant(user_id=u.id, name=u.name, email=u.email, photo_url=u.photo_url)
        for u in users
    ]
    totals = _ledger_totals(session, [p.user_id for p in participants], window)

    category = None
    if category_id is not None:
        cat = session.get(UserCategory, category_id)
        if cat is not None:
            category = (cat.id, cat.name)

    return build_ranking(participants, totals, limit=limit, category=category)
