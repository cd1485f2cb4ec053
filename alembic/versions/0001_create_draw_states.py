"""create draw_states

Revision ID: 0001
Revises:
Create Date: 2026-10-18 00:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "draw_states",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_key", sa.String(length=128), nullable=False),
        sa.Column("last_draw_at_ms", sa.BigInteger(), nullable=True),
        sa.Column("draw_count", sa.Integer(), nullable=False),
        sa.Column("last_result_voucher_id", sa.String(length=64), nullable=True),
        sa.Column("last_result_payload", sa.Text(), nullable=True),
        sa.Column("won_at_ms", sa.BigInteger(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_draw_states")),
    )
    op.create_index(
        op.f("ix_draw_states_user_key"), "draw_states", ["user_key"], unique=True
    )


def downgrade() -> None:
    op.drop_index(op.f("ix_draw_states_user_key"), table_name="draw_states")
    op.drop_table("draw_states")
