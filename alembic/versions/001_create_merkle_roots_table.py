"""Create merkle_roots table

Revision ID: 001
Revises: None
Create Date: 2026-10-17
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "merkle_roots",
        sa.Column("version", sa.BigInteger, sa.Identity(always=False), primary_key=True),
        sa.Column("root", sa.String(130), nullable=False),
        sa.Column("algorithm", sa.String(32), nullable=False, server_default="sha256"),
        sa.Column("leaf_count", sa.Integer, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.CheckConstraint("leaf_count > 0", name="ck_merkle_roots_leaf_count_positive"),
    )

    op.create_index("idx_merkle_roots_created_at", "merkle_roots", ["created_at"], postgresql_using="btree")


def downgrade() -> None:
    op.drop_index("idx_merkle_roots_created_at", table_name="merkle_roots")
    op.drop_table("merkle_roots")
