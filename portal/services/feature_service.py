"""
portal.services.feature_service — Feature Settings CRUD & Gate Check
=====================================================================

Typed read/write access to the ``feature_settings`` table.

The gate check is **fail-open**: a missing row means enabled, and a
storage error while reading the row is logged and also treated as enabled.
Writes are audit-logged and never delete rows.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from portal.constants import DEFAULT_DISABLED_MESSAGE, is_known_feature
from portal.database.models import AdminActionType, FeatureSetting, User
from portal.engine.features import ENABLED, FeatureStatus, NavItem, build_navigation, resolve_status
from portal.services.audit import log_admin_action, row_to_dict

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------
def setting_to_dict(row: FeatureSetting) -> dict:
    updater = row.updated_by_user
    return {
        "id": row.id,
        "featureName": row.feature_name,
        "isEnabled": row.is_enabled,
        "showInHeader": row.show_in_header,
        "disabledMessage": row.disabled_message,
        "lastUpdatedBy": (
            {"id": updater.id, "name": updater.name, "email": updater.email}
            if updater else None
        ),
        "updatedAt": row.updated_at.isoformat() if row.updated_at else None,
    }


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def list_settings(engine) -> list[dict]:
    """Every stored feature row, ordered by name."""
    with Session(engine) as session:
        rows = session.scalars(
            select(FeatureSetting)
            .options(joinedload(FeatureSetting.updated_by_user))
            .order_by(FeatureSetting.feature_name)
        ).all()
        return [setting_to_dict(r) for r in rows]


def get_setting(session: Session, feature_name: str) -> FeatureSetting | None:
    return session.scalar(
        select(FeatureSetting).where(FeatureSetting.feature_name == feature_name)
    )


def check_feature(
    engine,
    feature_name: str,
    *,
    default_message: str = DEFAULT_DISABLED_MESSAGE,
) -> FeatureStatus:
    """Resolve whether *feature_name* is usable right now.

    Unknown names and names without a row are enabled.  Database errors are
    logged and resolve to enabled as well.
    """
    try:
        with Session(engine) as session:
            row = get_setting(session, feature_name)
            return resolve_status(row, default_message=default_message)
    except SQLAlchemyError:
        logger.warning(
            "Feature check for %r failed, treating as enabled", feature_name,
            exc_info=True,
        )
        return ENABLED


def navigation(engine) -> list[NavItem]:
    """Header navigation entries for every catalogue feature."""
    with Session(engine) as session:
        rows = session.scalars(select(FeatureSetting)).all()
        return build_navigation(rows)


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------
def upsert_feature(
    engine,
    feature_name: str,
    *,
    is_enabled: bool,
    actor_id: int,
    show_in_header: bool | None = None,
    disabled_message: str | None = None,
    default_message: str = DEFAULT_DISABLED_MESSAGE,
) -> dict:
    """Create or update the row for *feature_name* and audit the change.

    A blank *disabled_message* stores *default_message*.  When
    *show_in_header* is omitted a new row defaults to ``True`` and an
    existing row keeps its current value.

    Raises
    ------
    ValueError
        If *feature_name* is not part of the feature catalogue.
    """
    if not is_known_feature(feature_name):
        raise ValueError(f"Unknown feature: {feature_name!r}")

    if disabled_message is not None and disabled_message.strip():
        message = disabled_message
    else:
        message = default_message

    with Session(engine, expire_on_commit=False) as session:
        actor = session.get(User, actor_id)
        row = get_setting(session, feature_name)
        before = row_to_dict(row)

        if row is None:
            row = FeatureSetting(
                feature_name=feature_name,
                is_enabled=is_enabled,
                show_in_header=True if show_in_header is None else show_in_header,
                disabled_message=message,
            )
            session.add(row)
            action = AdminActionType.CREATE
        else:
            row.is_enabled = is_enabled
            row.disabled_message = message
            if show_in_header is not None:
                row.show_in_header = show_in_header
            action = AdminActionType.UPDATE
        row.last_updated_by = actor.id if actor else None
        session.flush()

        log_admin_action(
            session,
            actor_id=actor_id,
            action_type=action,
            target_table="feature_settings",
            target_id=feature_name,
            before=before,
            after=row_to_dict(row),
        )
        session.commit()
        session.refresh(row)
        result = setting_to_dict(row)

    logger.info(
        "Feature %r %s by %s", feature_name,
        "enabled" if is_enabled else "disabled", actor_id,
    )
    return result
