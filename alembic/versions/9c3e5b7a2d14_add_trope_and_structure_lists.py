"""add trope and structure lists

Revision ID: 9c3e5b7a2d14
Revises: 4f2a9c1d7e30
Create Date: 2025-06-03 14:27:00.000000

Reference tables behind the submission form's Trope number and structure
dropdowns.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "9c3e5b7a2d14"
down_revision: Union[str, None] = "4f2a9c1d7e30"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "trope",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("number", sa.Integer(), nullable=False, comment="Number shown in the submission form."),
        sa.Column("name", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("number"),
    )

    op.create_table(
        "structure",
        sa.Column("structure_id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("structure_id"),
        sa.UniqueConstraint("name"),
    )


def downgrade() -> None:
    op.drop_table("structure")
    op.drop_table("trope")
