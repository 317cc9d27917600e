"""Create presence tables: user_status, checkin_sessions, breaks, status_updates,
user_preferences and status_reminders.

Revision ID: 0001_initial_presence
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0001_initial_presence"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "user_status",
        sa.Column("user_id", sa.String(64), primary_key=True),
        sa.Column("username", sa.String(255), nullable=False, server_default=""),
        sa.Column("status", sa.String(20), nullable=False, server_default="checked-out"),
        sa.Column("current_session_id", sa.String(128), nullable=True),
        sa.Column("last_checkin", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_checkout", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_activity", sa.DateTime(timezone=True), nullable=False),
        sa.Column("timezone", sa.String(64), nullable=True),
        sa.Column("current_session", sa.JSON(), nullable=True),
    )
    op.create_index("ix_user_status_status", "user_status", ["status"])

    op.create_table(
        "checkin_sessions",
        sa.Column("session_id", sa.String(128), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("username", sa.String(255), nullable=False, server_default=""),
        sa.Column("date", sa.String(10), nullable=False),
        sa.Column("checkin_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("checkout_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("total_break_time", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_work_time", sa.Integer(), nullable=True),
        sa.Column("checkin_notes", sa.Text(), nullable=True),
        sa.Column("checkout_notes", sa.Text(), nullable=True),
        sa.Column("timezone", sa.String(64), nullable=False, server_default="UTC"),
        sa.Column("break_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status_update_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_work_status", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_checkin_sessions_user_id", "checkin_sessions", ["user_id"])
    op.create_index("ix_checkin_sessions_date", "checkin_sessions", ["date"])
    op.create_index("ix_checkin_sessions_status", "checkin_sessions", ["status"])

    op.create_table(
        "breaks",
        sa.Column("break_id", sa.String(64), primary_key=True),
        sa.Column(
            "session_id",
            sa.String(128),
            sa.ForeignKey("checkin_sessions.session_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration", sa.Integer(), nullable=True),
        sa.Column("expected_duration", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_breaks_session_id", "breaks", ["session_id"])
    op.create_index("ix_breaks_user_id", "breaks", ["user_id"])

    op.create_table(
        "status_updates",
        sa.Column("update_id", sa.String(64), primary_key=True),
        sa.Column(
            "session_id",
            sa.String(128),
            sa.ForeignKey("checkin_sessions.session_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("username", sa.String(255), nullable=False, server_default=""),
        sa.Column("status", sa.Text(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("previous_status", sa.Text(), nullable=True),
    )
    op.create_index("ix_status_updates_session_id", "status_updates", ["session_id"])
    op.create_index("ix_status_updates_user_id", "status_updates", ["user_id"])
    op.create_index("ix_status_updates_timestamp", "status_updates", ["timestamp"])

    op.create_table(
        "user_preferences",
        sa.Column("user_id", sa.String(64), primary_key=True),
        sa.Column("timezone", sa.String(64), nullable=True),
        sa.Column("default_break_durations", sa.JSON(), nullable=True),
        sa.Column("notifications", sa.JSON(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "status_reminders",
        sa.Column("user_id", sa.String(64), primary_key=True),
        sa.Column("username", sa.String(255), nullable=False, server_default=""),
        sa.Column("session_id", sa.String(128), nullable=False),
        sa.Column("reminder_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("timezone", sa.String(64), nullable=False, server_default="UTC"),
        sa.Column("last_reminder_sent", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_status_update", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_status_reminders_is_active", "status_reminders", ["is_active"])


def downgrade() -> None:
    op.drop_index("ix_status_reminders_is_active", table_name="status_reminders")
    op.drop_table("status_reminders")
    op.drop_table("user_preferences")
    op.drop_index("ix_status_updates_timestamp", table_name="status_updates")
    op.drop_index("ix_status_updates_user_id", table_name="status_updates")
    op.drop_index("ix_status_updates_session_id", table_name="status_updates")
    op.drop_table("status_updates")
    op.drop_index("ix_breaks_user_id", table_name="breaks")
    op.drop_index("ix_breaks_session_id", table_name="breaks")
    op.drop_table("breaks")
    op.drop_index("ix_checkin_sessions_status", table_name="checkin_sessions")
    op.drop_index("ix_checkin_sessions_date", table_name="checkin_sessions")
    op.drop_index("ix_checkin_sessions_user_id", table_name="checkin_sessions")
    op.drop_table("checkin_sessions")
    op.drop_index("ix_user_status_status", table_name="user_status")
    op.drop_table("user_status")
