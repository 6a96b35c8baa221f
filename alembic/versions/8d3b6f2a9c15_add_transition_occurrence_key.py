"""Add transition occurrence key and applied log id

Revision ID: 8d3b6f2a9c15
Revises: 4a1f0c9e7b2d
Create Date: 2026-10-20

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "8d3b6f2a9c15"
down_revision: Union[str, Sequence[str], None] = "4a1f0c9e7b2d"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.add_column("pending_transitions", sa.Column("applied_log_id", sa.String(), nullable=True))
    op.add_column("pending_transitions", sa.Column("origin_id", sa.String(), nullable=True))
    op.execute(
        "UPDATE pending_transitions SET origin_id = COALESCE(block_id, nap_schedule_id, '')"
    )
    # Batch mode so the NOT NULL change and the constraint also apply on SQLite.
    with op.batch_alter_table("pending_transitions") as batch_op:
        batch_op.alter_column("origin_id", existing_type=sa.String(), nullable=False, server_default="")
        batch_op.create_unique_constraint(
            "uq_transition_occurrence",
            ["kind", "child_id", "scheduled_date", "origin_id"],
        )


def downgrade() -> None:
    """Downgrade schema."""
    with op.batch_alter_table("pending_transitions") as batch_op:
        batch_op.drop_constraint("uq_transition_occurrence", type_="unique")
        batch_op.drop_column("origin_id")
        batch_op.drop_column("applied_log_id")
