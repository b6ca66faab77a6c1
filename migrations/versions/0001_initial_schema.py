"""initial schema: habits and habit_events

Revision ID: 0001
Revises:
Create Date: 2026-10-19

habit_events is append-only and cascades with its habit.
Timestamps are stored as UTC.
"""
from alembic import op
import sqlalchemy as sa

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

_FREQUENCIES = ("daily", "weekly", "monthly")
_EVENT_KINDS = (
    "reminder_sent",
    "overdue_prompt",
    "response_success",
    "response_failure",
    "response_later",
)


def upgrade() -> None:
    op.create_table(
        "habits",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(256), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("icon", sa.String(32), nullable=False),
        sa.Column(
            "frequency",
            sa.Enum(*_FREQUENCIES, name="habit_frequency_enum"),
            nullable=False,
            server_default="daily",
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("current_interval", sa.Float(), nullable=False),
        sa.Column("next_notification_date", sa.DateTime(), nullable=False),
        sa.Column("consecutive_successes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("current_interval_multiplier", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("total_attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("successful_attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_checked_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("current_interval > 0", name="ck_habit_interval_positive"),
        sa.CheckConstraint("current_interval_multiplier >= 1", name="ck_habit_multiplier_min"),
        sa.CheckConstraint("consecutive_successes >= 0", name="ck_habit_streak_non_negative"),
    )
    op.create_index("ix_habits_is_active", "habits", ["is_active"])
    op.create_index("ix_habits_next_notification_date", "habits", ["next_notification_date"])

    op.create_table(
        "habit_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "habit_id",
            sa.Integer(),
            sa.ForeignKey("habits.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "kind",
            sa.Enum(*_EVENT_KINDS, name="habit_event_kind_enum"),
            nullable=False,
        ),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.Column("interval_used", sa.Float(), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
    )
    op.create_index("ix_habit_events_habit_id", "habit_events", ["habit_id"])
    op.create_index("ix_habit_events_kind", "habit_events", ["kind"])
    op.create_index("ix_habit_events_timestamp", "habit_events", ["timestamp"])


def downgrade() -> None:
    op.drop_index("ix_habit_events_timestamp", table_name="habit_events")
    op.drop_index("ix_habit_events_kind", table_name="habit_events")
    op.drop_index("ix_habit_events_habit_id", table_name="habit_events")
    op.drop_table("habit_events")
    op.drop_index("ix_habits_next_notification_date", table_name="habits")
    op.drop_index("ix_habits_is_active", table_name="habits")
    op.drop_table("habits")
    sa.Enum(name="habit_event_kind_enum").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="habit_frequency_enum").drop(op.get_bind(), checkfirst=True)
