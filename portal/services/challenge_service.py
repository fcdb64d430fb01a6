"""
portal.services.challenge_service — Gamification Challenges
============================================================
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from portal.database.models import Challenge
from portal.services.audit import audited_create, audited_delete, audited_update


def challenge_to_dict(c: Challenge) -> dict:
    return {
        "id": c.id,
        "title": c.title,
        "description": c.description,
        "detailedDescription": c.detailed_description,
        "imageUrl": c.image_url,
        "points": c.points,
        "startDate": c.start_date.isoformat() if c.start_date else None,
        "endDate": c.end_date.isoformat() if c.end_date else None,
        "type": c.type,
        "isActive": c.is_active,
        "createdAt": c.created_at.isoformat() if c.created_at else None,
        "createdBy": c.created_by,
        "creatorName": c.creator.name if c.creator else None,
    }


def _check_dates(start: date | None, end: date | None) -> None:
    if start is not None and end is not None and start > end:
        raise ValueError("Challenge start date must not be after its end date")


def list_challenges(session: Session, *, challenge_type: str | None = None) -> list[dict]:
    """Active challenges, newest first."""
    query = (
        select(Challenge)
        .options(joinedload(Challenge.creator))
        .where(Challenge.is_active.is_(True))
        .order_by(Challenge.created_at.desc(), Challenge.id.desc())
    )
    if challenge_type and challenge_type != "all":
        query = query.where(Challenge.type == challenge_type)
    return [challenge_to_dict(c) for c in session.scalars(query).all()]


def get_challenge(session: Session, challenge_id: int) -> dict | None:
    c = session.get(Challenge, challenge_id, options=[joinedload(Challenge.creator)])
    return challenge_to_dict(c) if c else None


def create_challenge(engine, *, actor_id: int, **fields) -> Challenge:
    _check_dates(fields.get("start_date"), fields.get("end_date"))
    return audited_create(
        engine,
        Challenge(created_by=actor_id, **fields),
        table_name="gamification_challenges",
        actor_id=actor_id,
    )


def update_challenge(engine, challenge_id: int, *, actor_id: int, **changes) -> Challenge | None:
    fields = {k: v for k, v in changes.items() if v is not None}
    if "start_date" in fields or "end_date" in fields:
        with Session(engine) as session:
            current = session.get(Challenge, challenge_id)
            if current is None:
                return None
            _check_dates(
                fields.get("start_date", current.start_date),
                fields.get("end_date", current.end_date),
            )
    return audited_update(
        engine,
        Challenge,
        challenge_id,
        table_name="gamification_challenges",
        actor_id=actor_id,
        **fields,
    )


def delete_challenge(engine, challenge_id: int, *, actor_id: int) -> bool:
    return audited_delete(
        engine,
        Challenge,
        challenge_id,
        table_name="gamification_challenges",
        actor_id=actor_id,
    )
