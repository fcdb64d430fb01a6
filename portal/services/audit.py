"""
portal.services.audit — Audit-Logged Admin Mutations
=====================================================

Every admin write follows the pattern:
  1. Begin transaction
  2. Read "before" snapshot
  3. Apply change
  4. Write admin_log with before/after JSON
  5. Commit

The generic helpers below implement that pattern for plain rows; services
with bespoke writes call :func:`log_admin_action` directly inside their own
session.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from portal.database.models import AdminActionType, AdminLog

logger = logging.getLogger(__name__)


def row_to_dict(obj: Any) -> dict | None:
    """Convert a SQLAlchemy model instance to a JSON-serializable dict."""
    if obj is None:
        return None
    result = {}
    for col in obj.__table__.columns:
        val = getattr(obj, col.key, None)
        if isinstance(val, (datetime, date)):
            val = val.isoformat()
        result[col.name] = val
    return result


def log_admin_action(
    session: Session,
    *,
    actor_id: int,
    action_type: str,
    target_table: str,
    target_id: str | None,
    before: dict | None,
    after: dict | None,
    ip_address: str | None = None,
    reason: str | None = None,
) -> None:
    """Insert a row into admin_log within the current transaction."""
    session.add(AdminLog(
        actor_id=actor_id,
        action_type=str(action_type),
        target_table=target_table,
        target_id=target_id,
        before_snapshot=before,
        after_snapshot=after,
        ip_address=ip_address,
        reason=reason,
    ))


def audited_create(
    engine,
    row: Any,
    *,
    table_name: str,
    actor_id: int,
    ip_address: str | None = None,
) -> Any:
    """Generic audited CREATE: add -> flush -> log -> commit -> return.

    Parameters
    ----------
    row : ORM instance (already constructed, not yet added to a session).
    """
    with Session(engine, expire_on_commit=False) as session:
        session.add(row)
        session.flush()
        log_admin_action(
            session,
            actor_id=actor_id,
            action_type=AdminActionType.CREATE,
            target_table=table_name,
            target_id=str(row.id),
            before=None,
            after=row_to_dict(row),
            ip_address=ip_address,
        )
        session.commit()
        session.refresh(row)
        session.expunge(row)
        return row


def audited_update(
    engine,
    model_cls: type,
    pk: int,
    *,
    table_name: str,
    actor_id: int,
    frozen_keys: tuple[str, ...] = ("id", "created_at", "created_by"),
    ip_address: str | None = None,
    **kwargs: Any,
) -> Any | None:
    """Generic audited UPDATE: get -> before -> apply kwargs -> log -> commit.

    Returns the updated (expunged) object, or ``None`` if not found.
    """
    with Session(engine, expire_on_commit=False) as session:
        obj = session.get(model_cls, pk)
        if obj is None:
            return None
        before = row_to_dict(obj)
        for key, value in kwargs.items():
            if hasattr(obj, key) and key not in frozen_keys:
                setattr(obj, key, value)
        session.flush()
        log_admin_action(
            session,
            actor_id=actor_id,
            action_type=AdminActionType.UPDATE,
            target_table=table_name,
            target_id=str(obj.id),
            before=before,
            after=row_to_dict(obj),
            ip_address=ip_address,
        )
        session.commit()
        session.refresh(obj)
        session.expunge(obj)
        return obj


def audited_delete(
    engine,
    model_cls: type,
    pk: int,
    *,
    table_name: str,
    actor_id: int,
    ip_address: str | None = None,
) -> bool:
    """Generic audited DELETE: get -> log -> delete -> commit.

    Returns ``True`` if the row existed and was deleted.
    """
    with Session(engine) as session:
        obj = session.get(model_cls, pk)
        if obj is None:
            return False
        log_admin_action(
            session,
            actor_id=actor_id,
            action_type=AdminActionType.DELETE,
            target_table=table_name,
            target_id=str(obj.id),
            before=row_to_dict(obj),
            after=None,
            ip_address=ip_address,
        )
        session.delete(obj)
        session.commit()
        return True


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def log_entry_to_dict(entry: AdminLog) -> dict:
    return {
        "id": entry.id,
        "actorId": entry.actor_id,
        "actionType": entry.action_type,
        "targetTable": entry.target_table,
        "targetId": entry.target_id,
        "before": entry.before_snapshot,
        "after": entry.after_snapshot,
        "reason": entry.reason,
        "createdAt": entry.timestamp.isoformat() if entry.timestamp else None,
    }


def list_admin_log(
    session: Session,
    *,
    page: int = 1,
    page_size: int = 25,
    target_table: str | None = None,
) -> tuple[int, list[AdminLog]]:
    """Return ``(total, rows)`` for one page of the audit log, newest first."""
    count_q = select(func.count()).select_from(AdminLog)
    rows_q = select(AdminLog).order_by(AdminLog.timestamp.desc(), AdminLog.id.desc())
    if target_table:
        count_q = count_q.where(AdminLog.target_table == target_table)
        rows_q = rows_q.where(AdminLog.target_table == target_table)

    total = session.scalar(count_q) or 0
    rows = session.scalars(
        rows_q.offset((page - 1) * page_size).limit(page_size)
    ).all()
    return total, list(rows)
