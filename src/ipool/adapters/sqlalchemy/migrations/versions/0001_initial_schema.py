"""Initial pool and address request tables

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00

"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

from ipool.adapters.sqlalchemy.mappings import (
    AllocationMapType,
    StringListType,
    UTCDateTime,
)

revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_PHASES = ("ACTIVE", "FAILED", "TERMINATING")


def upgrade() -> None:
    op.create_table(
        "pool",
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("resource_version", sa.Integer(), nullable=False),
        sa.Column("finalizers", StringListType(), nullable=False),
        sa.Column("deletion_requested", sa.Boolean(), nullable=False),
        sa.Column("addresses", StringListType(), nullable=False),
        sa.Column("avoid_buggy", sa.Boolean(), nullable=False),
        sa.Column("avoid_gateway", sa.Boolean(), nullable=False),
        sa.Column("exclude", StringListType(), nullable=False),
        sa.Column("assign_to_namespace", sa.Boolean(), nullable=False),
        sa.Column(
            "phase", sa.Enum(*_PHASES, name="poolphase", native_enum=False), nullable=True
        ),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("last_update", UTCDateTime(), nullable=True),
        sa.Column("allocations", AllocationMapType(), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("allocatable", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("name", name=op.f("pk_pool")),
    )
    op.create_table(
        "address_request",
        sa.Column("namespace", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("resource_version", sa.Integer(), nullable=False),
        sa.Column("finalizers", StringListType(), nullable=False),
        sa.Column("deletion_requested", sa.Boolean(), nullable=False),
        sa.Column("pool_name", sa.String(), nullable=False),
        sa.Column("wanted_address", sa.String(), nullable=True),
        sa.Column("update_namespace", sa.Boolean(), nullable=False),
        sa.Column(
            "phase", sa.Enum(*_PHASES, name="requestphase", native_enum=False), nullable=True
        ),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("address", sa.String(), nullable=False),
        sa.Column("status_pool_name", sa.String(), nullable=False),
        sa.Column("last_update", UTCDateTime(), nullable=True),
        sa.PrimaryKeyConstraint("namespace", "name", name=op.f("pk_address_request")),
    )
    with op.batch_alter_table("address_request", schema=None) as batch_op:
        batch_op.create_index(
            batch_op.f("ix_address_request_pool_name"), ["pool_name"], unique=False
        )


def downgrade() -> None:
    with op.batch_alter_table("address_request", schema=None) as batch_op:
        batch_op.drop_index(batch_op.f("ix_address_request_pool_name"))
    op.drop_table("address_request")
    op.drop_table("pool")
