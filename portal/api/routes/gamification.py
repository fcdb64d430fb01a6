"""
portal.api.routes.gamification — Ranking, ledger, periods & challenges
=======================================================================

Member-facing reads are gated by the ``gamification`` feature switch.
Admin endpoints stay reachable while the feature is off so the area can be
prepared before launch.
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from portal.api.deps import (
    actor_id,
    get_current_admin,
    get_current_user,
    get_engine,
    get_session,
    require_feature,
)
from portal.api.rate_limit import rate_limited_admin
from portal.constants import ChallengeType, Feature, PointsType, RankingPeriod
from portal.services import category_service, challenge_service, gamification_service

router = APIRouter(prefix="/gamification", tags=["gamification"])

feature_gate = Depends(require_feature(Feature.GAMIFICATION))


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SettingsUpdate(_CamelModel):
    cycle_start_date: date | None = Field(default=None, alias="cycleStartDate")
    cycle_end_date: date | None = Field(default=None, alias="cycleEndDate")
    annual_start_date: date | None = Field(default=None, alias="annualStartDate")
    annual_end_date: date | None = Field(default=None, alias="annualEndDate")
    general_category_id: int | None = Field(default=None, alias="generalCategoryId")
    enabled_category_ids: list[int] | None = Field(default=None, alias="enabledCategoryIds")


class PointsAward(_CamelModel):
    user_id: int = Field(alias="userId")
    points: int
    description: str = Field(min_length=1, max_length=1000)
    type: PointsType = PointsType.APPROVED


class ChallengeCreate(_CamelModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = ""
    detailed_description: str | None = Field(default=None, alias="detailedDescription")
    image_url: str | None = Field(default=None, alias="imageUrl")
    points: int = Field(default=0, ge=0)
    start_date: date = Field(alias="startDate")
    end_date: date = Field(alias="endDate")
    type: ChallengeType = ChallengeType.WEEKLY
    is_active: bool = Field(default=True, alias="isActive")


class ChallengeUpdate(_CamelModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    detailed_description: str | None = Field(default=None, alias="detailedDescription")
    image_url: str | None = Field(default=None, alias="imageUrl")
    points: int | None = Field(default=None, ge=0)
    start_date: date | None = Field(default=None, alias="startDate")
    end_date: date | None = Field(default=None, alias="endDate")
    type: ChallengeType | None = None
    is_active: bool | None = Field(default=None, alias="isActive")


# ---------------------------------------------------------------------------
# Settings & period
# ---------------------------------------------------------------------------
@router.get("/settings")
def get_settings(
    user: dict = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return gamification_service.settings_to_dict(gamification_service.get_settings(session))


@router.put("/settings")
def update_settings(
    body: SettingsUpdate,
    admin: dict = Depends(rate_limited_admin),
    engine=Depends(get_engine),
):
    try:
        return gamification_service.update_settings(
            engine,
            actor_id=actor_id(admin),
            **body.model_dump(exclude_unset=True),
        )
    except ValueError as exc:
        raise HTTPException(400, str(exc))


@router.get("/period", dependencies=[feature_gate])
def get_current_period(
    user: dict = Depends(get_current_user),
    engine=Depends(get_engine),
):
    """Progress through the current cycle."""
    return gamification_service.current_period(engine).to_dict()


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------
@router.get("/ranking", dependencies=[feature_gate])
def get_ranking(
    period: RankingPeriod = Query(RankingPeriod.CYCLE),
    category_id: int | None = Query(None, alias="categoryId"),
    user: dict = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Top users by points for the cycle or annual window."""
    rows = gamification_service.compute_ranking(
        session, period=period, category_id=category_id,
    )
    return [r.to_dict() for r in rows]


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------
@router.get("/points/extract", dependencies=[feature_gate])
def get_points_extract(
    user: dict = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """The caller's own points history."""
    return gamification_service.points_extract(session, actor_id(user))


@router.get("/points")
def list_points(
    user_id: int | None = Query(None, alias="userId"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    admin: dict = Depends(get_current_admin),
    session: Session = Depends(get_session),
):
    return gamification_service.list_points(
        session, user_id=user_id, limit=limit, offset=offset,
    )


@router.post("/points", status_code=201)
def award_points(
    body: PointsAward,
    admin: dict = Depends(rate_limited_admin),
    engine=Depends(get_engine),
):
    entry = gamification_service.award_points(
        engine,
        user_id=body.user_id,
        points=body.points,
        description=body.description,
        entry_type=body.type,
        actor_id=actor_id(admin),
    )
    if entry is None:
        raise HTTPException(404, "User not found")
    return entry


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------
@router.get("/categories", dependencies=[feature_gate])
def get_categories(
    user: dict = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Active categories enabled for the ranking filter."""
    settings = gamification_service.get_settings(session)
    if settings is None or not settings.enabled_category_ids:
        return []
    return [
        category_service.category_to_dict(c)
        for c in category_service.list_categories(
            session, only_ids=settings.enabled_category_ids, active_only=True,
        )
    ]


# ---------------------------------------------------------------------------
# Challenges
# ---------------------------------------------------------------------------
@router.get("/challenges", dependencies=[feature_gate])
def list_challenges(
    type: str = Query("all"),
    user: dict = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return challenge_service.list_challenges(session, challenge_type=type)


@router.get("/challenges/{challenge_id}", dependencies=[feature_gate])
def get_challenge(
    challenge_id: int,
    user: dict = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    challenge = challenge_service.get_challenge(session, challenge_id)
    if challenge is None:
        raise HTTPException(404, "Challenge not found")
    return challenge


@router.post("/challenges", status_code=201)
def create_challenge(
    body: ChallengeCreate,
    admin: dict = Depends(rate_limited_admin),
    engine=Depends(get_engine),
    session: Session = Depends(get_session),
):
    fields = body.model_dump()
    fields["type"] = str(fields["type"])
    try:
        created = challenge_service.create_challenge(
            engine, actor_id=actor_id(admin), **fields,
        )
    except ValueError as exc:
        raise HTTPException(400, str(exc))
    return challenge_service.get_challenge(session, created.id)


@router.put("/challenges/{challenge_id}")
def update_challenge(
    challenge_id: int,
    body: ChallengeUpdate,
    admin: dict = Depends(rate_limited_admin),
    engine=Depends(get_engine),
    session: Session = Depends(get_session),
):
    fields = body.model_dump(exclude_unset=True)
    if fields.get("type") is not None:
        fields["type"] = str(fields["type"])
    try:
        updated = challenge_service.update_challenge(
            engine, challenge_id, actor_id=actor_id(admin), **fields,
        )
    except ValueError as exc:
        raise HTTPException(400, str(exc))
    if updated is None:
        raise HTTPException(404, "Challenge not found")
    return challenge_service.get_challenge(session, challenge_id)


@router.delete("/challenges/{challenge_id}")
def delete_challenge(
    challenge_id: int,
    admin: dict = Depends(rate_limited_admin),
    engine=Depends(get_engine),
):
    if not challenge_service.delete_challenge(engine, challenge_id, actor_id=actor_id(admin)):
        raise HTTPException(404, "Challenge not found")
    return {"success": True}
