"""Track spec generations on pools and address requests

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-19 14:00:00

Existing rows start at generation 1 with nothing observed, so the operator
reconciles each of them against its current spec once after the upgrade.
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0002"
down_revision: str | None = "0001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_TABLES = ("pool", "address_request")


def upgrade() -> None:
    for table in _TABLES:
        with op.batch_alter_table(table, schema=None) as batch_op:
            batch_op.add_column(
                sa.Column("generation", sa.Integer(), nullable=False, server_default="1")
            )
            batch_op.add_column(
                sa.Column(
                    "observed_generation", sa.Integer(), nullable=False, server_default="0"
                )
            )


def downgrade() -> None:
    for table in reversed(_TABLES):
        with op.batch_alter_table(table, schema=None) as batch_op:
            batch_op.drop_column("observed_generation")
            batch_op.drop_column("generation")
