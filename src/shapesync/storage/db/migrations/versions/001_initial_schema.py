"""Initial schema for rooms and shape records.

Revision ID: 001_initial
Revises:
Create Date: 2025-01-01 00:00:00.000000

"""

from __future__ import annotations

from typing import TYPE_CHECKING

import sqlalchemy as sa
from advanced_alchemy.types import DateTimeUTC
from alembic import op

if TYPE_CHECKING:
    from collections.abc import Sequence

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

BigIntIdentity = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def upgrade() -> None:
    """Create rooms and shape_records tables."""
    op.create_table(
        "rooms",
        sa.Column("id", BigIntIdentity, nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("admin_id", sa.String(64), nullable=False),
        sa.Column("created_at", DateTimeUTC(), nullable=False),
        sa.Column("updated_at", DateTimeUTC(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("slug", "admin_id", name="uq_rooms_slug_admin"),
    )
    op.create_index("ix_rooms_admin_id", "rooms", ["admin_id"])

    op.create_table(
        "shape_records",
        sa.Column("id", BigIntIdentity, nullable=False),
        sa.Column("room_id", BigIntIdentity, nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("created_at", DateTimeUTC(), nullable=False),
        sa.Column("updated_at", DateTimeUTC(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["room_id"], ["rooms.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_shape_records_room_id", "shape_records", ["room_id"])
    op.create_index("ix_shape_records_user_id", "shape_records", ["user_id"])


def downgrade() -> None:
    """Drop rooms and shape_records tables."""
    op.drop_index("ix_shape_records_user_id", "shape_records")
    op.drop_index("ix_shape_records_room_id", "shape_records")
    op.drop_table("shape_records")
    op.drop_index("ix_rooms_admin_id", "rooms")
    op.drop_table("rooms")
