"""Initial portal schema: users, feature switches, gamification, audit

Revision ID: 0a1f3c5e7b90
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0a1f3c5e7b90"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _ts(name: str, **kw) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.func.now(), **kw)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="user"),
        sa.Column("google_id", sa.String(64), unique=True),
        sa.Column("photo_url", sa.String(500)),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _ts("created_at"),
    )

    op.create_table(
        "feature_settings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("feature_name", sa.String(50), nullable=False, unique=True),
        sa.Column("is_enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("show_in_header", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "disabled_message", sa.Text(), nullable=False,
            server_default="Em breve, novidades!",
        ),
        sa.Column(
            "last_updated_by", sa.Integer(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
        ),
        _ts("updated_at"),
    )

    op.create_table(
        "user_categories",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("description", sa.Text()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _ts("created_at"),
    )

    op.create_table(
        "user_category_assignments",
        sa.Column(
            "user_id", sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column(
            "category_id", sa.Integer(),
            sa.ForeignKey("user_categories.id", ondelete="CASCADE"), primary_key=True,
        ),
        _ts("assigned_at"),
    )
    op.create_index(
        "ix_user_category_assignments_category",
        "user_category_assignments",
        ["category_id"],
    )

    op.create_table(
        "gamification_settings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("cycle_start_date", sa.Date()),
        sa.Column("cycle_end_date", sa.Date()),
        sa.Column("annual_start_date", sa.Date()),
        sa.Column("annual_end_date", sa.Date()),
        sa.Column(
            "general_category_id", sa.Integer(),
            sa.ForeignKey("user_categories.id", ondelete="SET NULL"),
        ),
        sa.Column("enabled_category_ids", postgresql.JSONB()),
        _ts("updated_at"),
    )

    op.create_table(
        "gamification_points",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id", sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("type", sa.String(20), nullable=False, server_default="approved"),
        sa.Column(
            "created_by", sa.Integer(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
        ),
        _ts("created_at"),
    )
    op.create_index(
        "ix_gamification_points_user_time", "gamification_points", ["user_id", "created_at"],
    )
    op.create_index("ix_gamification_points_time", "gamification_points", ["created_at"])

    op.create_table(
        "gamification_challenges",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("detailed_description", sa.Text()),
        sa.Column("image_url", sa.String(500)),
        sa.Column("points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("type", sa.String(20), nullable=False, server_default="weekly"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "created_by", sa.Integer(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
        ),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index(
        "ix_gamification_challenges_active",
        "gamification_challenges",
        ["is_active", "created_at"],
    )

    op.create_table(
        "admin_log",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("actor_id", sa.Integer(), nullable=False),
        sa.Column("action_type", sa.String(50), nullable=False),
        sa.Column("target_table", sa.String(50), nullable=False),
        sa.Column("target_id", sa.String(100)),
        sa.Column("before_snapshot", postgresql.JSONB()),
        sa.Column("after_snapshot", postgresql.JSONB()),
        sa.Column("ip_address", sa.String(45)),
        sa.Column("reason", sa.Text()),
        _ts("timestamp"),
    )
    op.create_index("ix_admin_log_actor_time", "admin_log", ["actor_id", "timestamp"])
    op.create_index(
        "ix_admin_log_target", "admin_log", ["target_table", "target_id", "timestamp"],
    )

    op.create_table(
        "oauth_states",
        sa.Column("state", sa.String(128), primary_key=True),
        _ts("created_at", nullable=False),
    )
    op.create_index("ix_oauth_states_created_at", "oauth_states", ["created_at"])

    op.create_table(
        "admin_rate_limit_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("admin_id", sa.String(64), nullable=False),
        _ts("timestamp", nullable=False),
    )
    op.create_index(
        "ix_admin_rate_limit_admin_ts",
        "admin_rate_limit_events",
        ["admin_id", sa.text("timestamp DESC")],
    )
    op.create_index("ix_admin_rate_limit_ts", "admin_rate_limit_events", ["timestamp"])


def downgrade() -> None:
    op.drop_index("ix_admin_rate_limit_ts", table_name="admin_rate_limit_events")
    op.drop_index("ix_admin_rate_limit_admin_ts", table_name="admin_rate_limit_events")
    op.drop_table("admin_rate_limit_events")
    op.drop_index("ix_oauth_states_created_at", table_name="oauth_states")
    op.drop_table("oauth_states")
    op.drop_index("ix_admin_log_target", table_name="admin_log")
    op.drop_index("ix_admin_log_actor_time", table_name="admin_log")
    op.drop_table("admin_log")
    op.drop_index("ix_gamification_challenges_active", table_name="gamification_challenges")
    op.drop_table("gamification_challenges")
    op.drop_index("ix_gamification_points_time", table_name="gamification_points")
    op.drop_index("ix_gamification_points_user_time", table_name="gamification_points")
    op.drop_table("gamification_points")
    op.drop_table("gamification_settings")
    op.drop_index(
        "ix_user_category_assignments_category", table_name="user_category_assignments",
    )
    op.drop_table("user_category_assignments")
    op.drop_table("user_categories")
    op.drop_table("feature_settings")
    op.drop_table("users")
