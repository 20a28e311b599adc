"""initial

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("telegram_id", sa.BigInteger(), nullable=True),
        sa.Column("username", sa.String(100), nullable=True),
        sa.Column("timezone", sa.String(64), default="UTC"),
        *_timestamps(),
    )
    op.create_index("ix_users_telegram_id", "users", ["telegram_id"], unique=True)

    op.create_table(
        "reminders",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("schedule_kind", sa.String(20), nullable=False, server_default="once"),
        sa.Column("timezone", sa.String(64), nullable=True),
        sa.Column("once_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("interval_minutes", sa.Integer(), nullable=True),
        sa.Column("at_time", sa.String(5), nullable=True),
        sa.Column("by_weekday", sa.Integer(), nullable=True),
        sa.Column("by_monthday", sa.Integer(), nullable=True),
        sa.Column("by_month", sa.Integer(), nullable=True),
        sa.Column("next_occurrence_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_delivered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "lifecycle_state",
            sa.Enum("active", "processing", "terminal", "failed", name="lifecyclestate"),
            nullable=False,
            server_default="active",
        ),
        sa.Column("attempt_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("retry_not_before", sa.DateTime(timezone=True), nullable=True),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("claimed_by", sa.String(255), nullable=True),
        sa.Column("claiming_tick_id", sa.String(36), nullable=True),
        sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_reminders_user_id", "reminders", ["user_id"])
    op.create_index("ix_reminders_retry_not_before", "reminders", ["retry_not_before"])
    op.create_index("ix_reminders_due", "reminders", ["lifecycle_state", "next_occurrence_at"])

    op.create_table(
        "reminder_attachments",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("reminder_id", sa.String(36), sa.ForeignKey("reminders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("archive_chat_id", sa.BigInteger(), nullable=False),
        sa.Column("archive_message_id", sa.Integer(), nullable=False),
        sa.Column("kind", sa.String(20), nullable=False),
        sa.Column("caption", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    )
    op.create_index("ix_reminder_attachments_reminder_id", "reminder_attachments", ["reminder_id"])

    op.create_table(
        "reminder_deliveries",
        sa.Column("reminder_id", sa.String(36), sa.ForeignKey("reminders.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("delivery_key", sa.String(100), primary_key=True),
        sa.Column("tick_id", sa.String(36), nullable=False),
        sa.Column("ok", sa.Boolean(), nullable=False),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    )

    op.create_table(
        "tick_runs",
        sa.Column("tick_id", sa.String(36), primary_key=True),
        sa.Column("started_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("claimed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("sent", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("failed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("skipped", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("notes", sa.Text(), nullable=True),
    )
    op.create_index("ix_tick_runs_started_at", "tick_runs", ["started_at"])
    op.create_index("ix_tick_runs_finished_at", "tick_runs", ["finished_at"])

    op.create_table(
        "archive_items",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("owner_user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("kind", sa.String(20), nullable=False),
        sa.Column("entity_id", sa.String(36), nullable=False),
        sa.Column("channel_id", sa.BigInteger(), nullable=False),
        sa.Column("message_ids", sa.JSON(), nullable=True),
        sa.Column("status", sa.Enum("active", "deleted", "ringed", name="archiveitemstatus"), nullable=True),
        sa.Column("status_note", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_archive_items_owner_user_id", "archive_items", ["owner_user_id"])
    op.create_index("ix_archive_items_entity_id", "archive_items", ["entity_id"])


def downgrade() -> None:
    op.drop_table("archive_items")
    op.drop_table("tick_runs")
    op.drop_table("reminder_deliveries")
    op.drop_table("reminder_attachments")
    op.drop_table("reminders")
    op.drop_table("users")
