"""Create children, care blocks, nap schedules, logs and transitions

Revision ID: 4a1f0c9e7b2d
Revises:
Create Date: 2026-10-19
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "4a1f0c9e7b2d"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _care_log_columns():
    return [
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("child_id", sa.String(), sa.ForeignKey("children.id", ondelete="CASCADE"), nullable=False),
        sa.Column("started_on", sa.Date(), nullable=False),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("ended_at", sa.DateTime(), nullable=True),
        sa.Column("end_reason", sa.String(), nullable=True),
        sa.Column("auto_tracked", sa.Boolean(), nullable=False, server_default=sa.text("0")),
    ]


def _care_log_indexes(table: str) -> None:
    op.create_index(op.f(f"ix_{table}_child_id"), table, ["child_id"], unique=False)
    op.create_index(op.f(f"ix_{table}_started_on"), table, ["started_on"], unique=False)
    op.create_index(op.f(f"ix_{table}_ended_at"), table, ["ended_at"], unique=False)


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "children",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("birthdate", sa.Date(), nullable=False),
        sa.Column("is_napping_age", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("bedtime", sa.Time(), nullable=True),
        sa.Column("wake_time", sa.Time(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "care_blocks",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("child_ids", sa.JSON(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("recurrence", sa.String(), nullable=False, server_default="daily"),
        sa.Column("days_of_week", sa.JSON(), nullable=True),
        sa.Column("specific_days", sa.JSON(), nullable=True),
        sa.Column("weekly_day", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("one_off_date", sa.Date(), nullable=True),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("travel_before_min", sa.Integer(), nullable=True),
        sa.Column("travel_after_min", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "nap_schedules",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("child_id", sa.String(), sa.ForeignKey("children.id", ondelete="CASCADE"), nullable=False),
        sa.Column("nap_number", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("typical_start", sa.Time(), nullable=False),
        sa.Column("typical_end", sa.Time(), nullable=False),
    )
    op.create_index(op.f("ix_nap_schedules_child_id"), "nap_schedules", ["child_id"], unique=False)

    op.create_table(
        "sleep_logs",
        *_care_log_columns(),
        sa.Column("sleep_type", sa.String(), nullable=False, server_default="nap"),
    )
    _care_log_indexes("sleep_logs")

    op.create_table(
        "away_logs",
        *_care_log_columns(),
        sa.Column("label", sa.String(), nullable=True),
    )
    _care_log_indexes("away_logs")

    op.create_table(
        "pending_transitions",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("kind", sa.String(), nullable=False),
        sa.Column("child_id", sa.String(), nullable=False),
        sa.Column("scheduled_time", sa.Time(), nullable=False),
        sa.Column("scheduled_date", sa.Date(), nullable=False),
        sa.Column("block_id", sa.String(), nullable=True),
        sa.Column("nap_schedule_id", sa.String(), nullable=True),
        sa.Column("label", sa.String(), nullable=True),
        sa.Column("description", sa.String(), nullable=False),
        sa.Column("auto_confirm_after_ms", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="pending"),
        sa.Column("resolved_at", sa.DateTime(), nullable=True),
    )
    for column in ("child_id", "scheduled_date", "block_id", "nap_schedule_id", "status"):
        op.create_index(op.f(f"ix_pending_transitions_{column}"), "pending_transitions", [column], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("pending_transitions")
    op.drop_table("away_logs")
    op.drop_table("sleep_logs")
    op.drop_table("nap_schedules")
    op.drop_table("care_blocks")
    op.drop_table("children")
