"""
portal.services.category_service — User Categories & Assignments
=================================================================
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from portal.database.models import AdminActionType, User, UserCategory, UserCategoryAssignment
from portal.services.audit import audited_create, audited_update, log_admin_action

logger = logging.getLogger(__name__)


def category_to_dict(c: UserCategory, *, member_count: int | None = None) -> dict:
    data = {
        "id": c.id,
        "name": c.name,
        "description": c.description,
        "isActive": c.is_active,
        "createdAt": c.created_at.isoformat() if c.created_at else None,
    }
    if member_count is not None:
        data["memberCount"] = member_count
    return data


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def list_categories(session: Session, *, only_ids: Iterable[int] | None = None,
                    active_only: bool = False) -> list[UserCategory]:
    query = select(UserCategory).order_by(UserCategory.name)
    if only_ids is not None:
        ids = list(only_ids)
        if not ids:
            return []
        query = query.where(UserCategory.id.in_(ids))
    if active_only:
        query = query.where(UserCategory.is_active.is_(True))
    return list(session.scalars(query).all())


def user_ids_in_categories(session: Session, category_ids: Iterable[int]) -> set[int]:
    """Distinct user ids assigned to any of *category_ids*."""
    ids = list(category_ids)
    if not ids:
        return set()
    rows = session.scalars(
        select(UserCategoryAssignment.user_id)
        .where(UserCategoryAssignment.category_id.in_(ids))
    ).all()
    return set(rows)


def member_to_dict(u: User) -> dict:
    return {
        "id": u.id,
        "name": u.name,
        "email": u.email,
        "photoUrl": u.photo_url,
        "isActive": u.is_active,
    }


def list_category_members(session: Session, category_id: int) -> list[User] | None:
    """Users assigned to *category_id* ordered by name, or ``None`` if it does not exist."""
    if session.get(UserCategory, category_id) is None:
        return None
    return list(session.scalars(
        select(User)
        .join(UserCategoryAssignment, UserCategoryAssignment.user_id == User.id)
        .where(UserCategoryAssignment.category_id == category_id)
        .order_by(User.name, User.id)
    ).all())


def list_user_categories(session: Session, user_id: int) -> list[UserCategory] | None:
    """Categories *user_id* belongs to, or ``None`` if the user does not exist."""
    if session.get(User, user_id) is None:
        return None
    return list(session.scalars(
        select(UserCategory)
        .join(UserCategoryAssignment, UserCategoryAssignment.category_id == UserCategory.id)
        .where(UserCategoryAssignment.user_id == user_id)
        .order_by(UserCategory.name)
    ).all())


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------
def create_category(engine, *, name: str, description: str | None = None,
                    actor_id: int) -> UserCategory:
    name = name.strip()
    if not name:
        raise ValueError("Category name must not be blank")
    with Session(engine) as session:
        clash = session.scalar(select(UserCategory).where(UserCategory.name == name))
    if clash is not None:
        raise ValueError(f"Category {name!r} already exists")
    return audited_create(
        engine,
        UserCategory(name=name, description=description),
        table_name="user_categories",
        actor_id=actor_id,
    )


def update_category(engine, category_id: int, *, actor_id: int, **changes) -> UserCategory | None:
    fields = {k: v for k, v in changes.items() if v is not None}
    if "name" in fields:
        fields["name"] = fields["name"].strip()
        with Session(engine) as session:
            clash = session.scalar(
                select(UserCategory.id).where(
                    UserCategory.name == fields["name"], UserCategory.id != category_id,
                )
            )
        if clash is not None:
            raise ValueError(f"Category {fields['name']!r} already exists")
    return audited_update(
        engine,
        UserCategory,
        category_id,
        table_name="user_categories",
        actor_id=actor_id,
        **fields,
    )


def assign_user(engine, category_id: int, user_id: int, *, actor_id: int) -> bool | None:
    """Assign *user_id* to *category_id*.

    Returns ``None`` when the user or category does not exist, ``False`` if
    the assignment already existed and ``True`` when it was created.
    """
    with Session(engine) as session:
        if session.get(UserCategory, category_id) is None or session.get(User, user_id) is None:
            return None
        if session.get(UserCategoryAssignment, (user_id, category_id)) is not None:
            return False
        session.add(UserCategoryAssignment(user_id=user_id, category_id=category_id))
        log_admin_action(
            session,
            actor_id=actor_id,
            action_type=AdminActionType.ASSIGN,
            target_table="user_category_assignments",
            target_id=f"{user_id}:{category_id}",
            before=None,
            after={"user_id": user_id, "category_id": category_id},
        )
        session.commit()
    logger.info("User %s assigned to category %s", user_id, category_id)
    return True


def unassign_user(engine, category_id: int, user_id: int, *, actor_id: int) -> bool:
    with Session(engine) as session:
        row = session.get(UserCategoryAssignment, (user_id, category_id))
        if row is None:
            return False
        session.delete(row)
        log_admin_action(
            session,
            actor_id=actor_id,
            action_type=AdminActionType.UNASSIGN,
            target_table="user_category_assignments",
            target_id=f"{user_id}:{category_id}",
            before={"user_id": user_id, "category_id": category_id},
            after=None,
        )
        session.commit()
    return True
