"""
portal.database.models — SQLAlchemy 2.0 Data Models
====================================================

Tables:
- users                    : Portal accounts (Google sign-in)
- feature_settings         : Named feature switches (soft toggles, never deleted)
- user_categories          : Audience groupings used to scope the ranking
- user_category_assignments: Many-to-many users ↔ categories
- gamification_settings    : Single-row cycle / annual windows + eligibility
- gamification_points      : Append-only points ledger
- gamification_challenges  : Admin-defined challenges
- admin_log                : Append-only audit trail
- oauth_states             : One-time OAuth CSRF tokens
- admin_rate_limit_events  : Sliding-window admin mutation log
"""

from __future__ import annotations

import enum
from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from portal.constants import DEFAULT_DISABLED_MESSAGE, PointsType


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Portal ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class AdminActionType(enum.StrEnum):
    """Categories of admin mutations recorded in admin_log."""
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    POINTS_AWARD = "POINTS_AWARD"
    ASSIGN = "ASSIGN"
    UNASSIGN = "UNASSIGN"


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="user")
    google_id: Mapped[str | None] = mapped_column(String(64), unique=True, default=None)
    photo_url: Mapped[str | None] = mapped_column(String(500), default=None)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    category_assignments: Mapped[list[UserCategoryAssignment]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role!r}>"


# ---------------------------------------------------------------------------
# FeatureSetting: named on/off switch for a portal area
# ---------------------------------------------------------------------------
class FeatureSetting(Base):
    """One row per switchable feature.

    Rows are created on the first admin edit (or by the startup seeder) and
    only ever toggled afterwards.  A feature with no row is enabled.
    """
    __tablename__ = "feature_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    feature_name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    is_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    show_in_header: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    disabled_message: Mapped[str] = mapped_column(
        Text, nullable=False, default=DEFAULT_DISABLED_MESSAGE
    )
    last_updated_by: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    updated_by_user: Mapped[User | None] = relationship()

    def __repr__(self) -> str:
        return f"<FeatureSetting name={self.feature_name!r} enabled={self.is_enabled}>"


# ---------------------------------------------------------------------------
# User categories
# ---------------------------------------------------------------------------
class UserCategory(Base):
    __tablename__ = "user_categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    assignments: Mapped[list[UserCategoryAssignment]] = relationship(
        back_populates="category", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<UserCategory id={self.id} name={self.name!r}>"


class UserCategoryAssignment(Base):
    __tablename__ = "user_category_assignments"

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    category_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_categories.id", ondelete="CASCADE"), primary_key=True
    )
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    user: Mapped[User] = relationship(back_populates="category_assignments")
    category: Mapped[UserCategory] = relationship(back_populates="assignments")

    __table_args__ = (
        Index("ix_user_category_assignments_category", "category_id"),
    )

    def __repr__(self) -> str:
        return f"<UserCategoryAssignment user={self.user_id} category={self.category_id}>"


# ---------------------------------------------------------------------------
# GamificationSettings: single row holding the period windows
# ---------------------------------------------------------------------------
class GamificationSettings(Base):
    """Cycle and annual date windows plus ranking eligibility.

    ``general_category_id`` (when set) defines who takes part in the default
    ranking; otherwise the union of ``enabled_category_ids`` does.
    """
    __tablename__ = "gamification_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    cycle_start_date: Mapped[date | None] = mapped_column(Date, default=None)
    cycle_end_date: Mapped[date | None] = mapped_column(Date, default=None)
    annual_start_date: Mapped[date | None] = mapped_column(Date, default=None)
    annual_end_date: Mapped[date | None] = mapped_column(Date, default=None)
    general_category_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("user_categories.id", ondelete="SET NULL"), nullable=True
    )
    enabled_category_ids: Mapped[list | None] = mapped_column(JSONB, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return (
            f"<GamificationSettings cycle={self.cycle_start_date}..{self.cycle_end_date} "
            f"annual={self.annual_start_date}..{self.annual_end_date}>"
        )


# ---------------------------------------------------------------------------
# PointsLedgerEntry: append-only journal of awarded / deducted points
# ---------------------------------------------------------------------------
class PointsLedgerEntry(Base):
    __tablename__ = "gamification_points"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PointsType.APPROVED.value
    )
    created_by: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_gamification_points_user_time", "user_id", "created_at"),
        Index("ix_gamification_points_time", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<PointsLedgerEntry id={self.id} user={self.user_id} points={self.points}>"


# ---------------------------------------------------------------------------
# Challenge: admin-defined activity worth points
# ---------------------------------------------------------------------------
class Challenge(Base):
    __tablename__ = "gamification_challenges"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    detailed_description: Mapped[str | None] = mapped_column(Text, default=None)
    image_url: Mapped[str | None] = mapped_column(String(500), default=None)
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="weekly")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_by: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    creator: Mapped[User | None] = relationship()

    __table_args__ = (
        Index("ix_gamification_challenges_active", "is_active", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Challenge id={self.id} title={self.title!r} type={self.type!r}>"


# ---------------------------------------------------------------------------
# AdminLog: append-only audit trail
# ---------------------------------------------------------------------------
class AdminLog(Base):
    __tablename__ = "admin_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    actor_id: Mapped[int] = mapped_column(Integer, nullable=False)
    action_type: Mapped[str] = mapped_column(String(50), nullable=False)
    target_table: Mapped[str] = mapped_column(String(50), nullable=False)
    target_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    before_snapshot: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    after_snapshot: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_admin_log_actor_time", "actor_id", "timestamp"),
        Index("ix_admin_log_target", "target_table", "target_id", "timestamp"),
    )

    def __repr__(self) -> str:
        return f"<AdminLog id={self.id} actor={self.actor_id} action={self.action_type}>"


# ---------------------------------------------------------------------------
# OAuthState: one-time CSRF tokens for OAuth callback validation
# ---------------------------------------------------------------------------
class OAuthState(Base):
    __tablename__ = "oauth_states"

    state: Mapped[str] = mapped_column(String(128), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_oauth_states_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<OAuthState state={self.state[:8]!r}...>"


# ---------------------------------------------------------------------------
# AdminRateLimitEvent: durable mutation events for admin throttling
# ---------------------------------------------------------------------------
class AdminRateLimitEvent(Base):
    __tablename__ = "admin_rate_limit_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    admin_id: Mapped[str] = mapped_column(String(64), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_admin_rate_limit_admin_ts", "admin_id", timestamp.desc()),
        Index("ix_admin_rate_limit_ts", "timestamp"),
    )

    def __repr__(self) -> str:
        return f"<AdminRateLimitEvent admin={self.admin_id!r} ts={self.timestamp}>"
