"""Create the endorsements key/value table.

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000+00:00

Creates the endorsements table:
- kv_key: lookup key synthesized from scheme, tenant and identifier
- kv_val: JSON array of base64-encoded artifacts
- non-unique index on kv_key
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# Revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Apply migration: create endorsements table."""
    op.create_table(
        "endorsements",
        sa.Column("kv_key", sa.Text(), nullable=False),
        sa.Column("kv_val", sa.Text(), nullable=False),
    )
    op.create_index("ix_endorsements_kv_key", "endorsements", ["kv_key"], unique=False)


def downgrade() -> None:
    """Revert migration: drop endorsements table."""
    op.drop_index("ix_endorsements_kv_key", table_name="endorsements")
    op.drop_table("endorsements")
