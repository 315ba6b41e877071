"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- ENUM types ---
    progress_rule_enum = sa.Enum("ALL", "PERCENTAGE", "POINTS", name="progress_rule_enum")
    progress_rule_enum.create(op.get_bind(), checkfirst=True)

    # --- habits ---
    op.create_table(
        "habits",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("emoji", sa.String(16), nullable=False),
        sa.Column("color", sa.String(32), nullable=True),
        sa.Column("frequency", sa.String(32), nullable=False),
        sa.Column("weekly_target", sa.Integer(), nullable=True),
        sa.Column("monthly_target", sa.Integer(), nullable=True),
        sa.Column("archived", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("has_sub_tasks", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("progress_rule", sa.Enum(
            "ALL", "PERCENTAGE", "POINTS", name="progress_rule_enum", create_type=False,
        ), nullable=False),
        sa.Column("completion_threshold", sa.Integer(), nullable=True,
                  comment="1-100; only read under PERCENTAGE and POINTS"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_habits_id", "habits", ["id"])
    op.create_index("ix_habits_user_id", "habits", ["user_id"])
    op.create_index("ix_habits_archived", "habits", ["archived"])

    # --- habit_entries (the ledger) ---
    op.create_table(
        "habit_entries",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("habit_id", sa.Integer(), sa.ForeignKey("habits.id"), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("value", sa.Numeric(18, 4), nullable=True,
                  comment="Quantity for measured habits, e.g. km run"),
        sa.Column("context", sa.Text(), nullable=True,
                  comment="JSON-encoded dict restricted to recognised context keys"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("habit_id", "user_id", "day", name="uq_habit_entry_habit_user_day"),
    )
    op.create_index("ix_habit_entries_id", "habit_entries", ["id"])
    op.create_index("ix_habit_entries_habit_id", "habit_entries", ["habit_id"])
    op.create_index("ix_habit_entries_user_day", "habit_entries", ["user_id", "day"])

    # --- sub_tasks ---
    op.create_table(
        "sub_tasks",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("habit_id", sa.Integer(), sa.ForeignKey("habits.id"), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("weight", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("is_required", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_sub_tasks_id", "sub_tasks", ["id"])
    op.create_index("ix_sub_tasks_habit_id", "sub_tasks", ["habit_id"])
    op.create_index("ix_sub_tasks_habit_position", "sub_tasks", ["habit_id", "position"])

    # --- sub_task_logs ---
    op.create_table(
        "sub_task_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("sub_task_id", sa.Integer(), sa.ForeignKey("sub_tasks.id"), nullable=False),
        sa.Column("habit_id", sa.Integer(), sa.ForeignKey("habits.id"), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("points", sa.Numeric(10, 2), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("sub_task_id", "user_id", "day", name="uq_sub_task_log_task_user_day"),
    )
    op.create_index("ix_sub_task_logs_id", "sub_task_logs", ["id"])
    op.create_index("ix_sub_task_logs_sub_task_id", "sub_task_logs", ["sub_task_id"])
    op.create_index("ix_sub_task_logs_habit_user_day", "sub_task_logs", ["habit_id", "user_id", "day"])

    # --- weekly_overviews ---
    op.create_table(
        "weekly_overviews",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("habit_id", sa.Integer(), nullable=False),
        sa.Column("week_start", sa.Date(), nullable=False),
        sa.Column("completed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("target", sa.Integer(), nullable=False, server_default="7"),
        sa.Column("percentage", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "habit_id", "week_start", name="uq_weekly_overview_user_habit_week"),
    )
    op.create_index("ix_weekly_overviews_id", "weekly_overviews", ["id"])
    op.create_index("ix_weekly_overviews_habit_id", "weekly_overviews", ["habit_id"])
    op.create_index("ix_weekly_overviews_user_week", "weekly_overviews", ["user_id", "week_start"])

    # --- monthly_overviews ---
    op.create_table(
        "monthly_overviews",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False, comment="1-12"),
        sa.Column("completed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("target", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("left", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("percentage", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "year", "month", name="uq_monthly_overview_user_year_month"),
    )
    op.create_index("ix_monthly_overviews_id", "monthly_overviews", ["id"])
    op.create_index("ix_monthly_overviews_user_id", "monthly_overviews", ["user_id"])


def downgrade() -> None:
    op.drop_table("monthly_overviews")
    op.drop_table("weekly_overviews")
    op.drop_table("sub_task_logs")
    op.drop_table("sub_tasks")
    op.drop_table("habit_entries")
    op.drop_table("habits")
    sa.Enum(name="progress_rule_enum").drop(op.get_bind(), checkfirst=True)
