"""
portal.api.routes.admin — Audit log & user categories (JWT-protected)
======================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from portal.api.deps import actor_id, get_engine, get_session
from portal.api.rate_limit import rate_limited_admin
from portal.database.models import UserCategoryAssignment
from portal.services import audit, category_service

router = APIRouter(prefix="/admin", tags=["admin"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = None


class CategoryUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None
    is_active: bool | None = Field(default=None, alias="isActive")


# ---------------------------------------------------------------------------
# Audit Log
# ---------------------------------------------------------------------------
@router.get("/audit")
def get_audit_log(
    page: int = Query(1, ge=1),
    page_size: int = Query(25, ge=1, le=100),
    target_table: str | None = Query(None),
    admin: dict = Depends(rate_limited_admin),
    session: Session = Depends(get_session),
):
    """Paginated admin audit log, newest first."""
    total, rows = audit.list_admin_log(
        session, page=page, page_size=page_size, target_table=target_table,
    )
    return {
        "total": total,
        "page": page,
        "pageSize": page_size,
        "entries": [audit.log_entry_to_dict(r) for r in rows],
    }


# ---------------------------------------------------------------------------
# User categories
# ---------------------------------------------------------------------------
@router.get("/user-categories")
def list_user_categories(
    admin: dict = Depends(rate_limited_admin),
    session: Session = Depends(get_session),
):
    counts = dict(session.execute(
        select(UserCategoryAssignment.category_id, func.count())
        .group_by(UserCategoryAssignment.category_id)
    ).all())
    return [
        category_service.category_to_dict(c, member_count=counts.get(c.id, 0))
        for c in category_service.list_categories(session)
    ]


@router.post("/user-categories", status_code=201)
def create_user_category(
    body: CategoryCreate,
    admin: dict = Depends(rate_limited_admin),
    engine=Depends(get_engine),
):
    try:
        category = category_service.create_category(
            engine, name=body.name, description=body.description, actor_id=actor_id(admin),
        )
    except ValueError as exc:
        raise HTTPException(400, str(exc))
    return category_service.category_to_dict(category)


@router.put("/user-categories/{category_id}")
def update_user_category(
    category_id: int,
    body: CategoryUpdate,
    admin: dict = Depends(rate_limited_admin),
    engine=Depends(get_engine),
):
    try:
        category = category_service.update_category(
            engine,
            category_id,
            actor_id=actor_id(admin),
            name=body.name,
            description=body.description,
            is_active=body.is_active,
        )
    except ValueError as exc:
        raise HTTPException(400, str(exc))
    if category is None:
        raise HTTPException(404, "Category not found")
    return category_service.category_to_dict(category)


@router.get("/user-categories/{category_id}/users")
def list_category_members(
    category_id: int,
    admin: dict = Depends(rate_limited_admin),
    session: Session = Depends(get_session),
):
    members = category_service.list_category_members(session, category_id)
    if members is None:
        raise HTTPException(404, "Category not found")
    return [category_service.member_to_dict(u) for u in members]


@router.get("/users/{user_id}/categories")
def list_categories_of_user(
    user_id: int,
    admin: dict = Depends(rate_limited_admin),
    session: Session = Depends(get_session),
):
    categories = category_service.list_user_categories(session, user_id)
    if categories is None:
        raise HTTPException(404, "User not found")
    return [category_service.category_to_dict(c) for c in categories]


@router.post("/user-categories/{category_id}/users/{user_id}")
def assign_user(
    category_id: int,
    user_id: int,
    admin: dict = Depends(rate_limited_admin),
    engine=Depends(get_engine),
):
    created = category_service.assign_user(engine, category_id, user_id, actor_id=actor_id(admin))
    if created is None:
        raise HTTPException(404, "User or category not found")
    return {"success": True, "created": created}


@router.delete("/user-categories/{category_id}/users/{user_id}")
def unassign_user(
    category_id: int,
    user_id: int,
    admin: dict = Depends(rate_limited_admin),
    engine=Depends(get_engine),
):
    if not category_service.unassign_user(engine, category_id, user_id, actor_id=actor_id(admin)):
        raise HTTPException(404, "Assignment not found")
    return {"success": True}
