"""Create batches, batch_rounds and user_roles tables.

``batch_rounds`` is read in full on every dashboard refresh and joined to
``batches`` by ``batch_id``; ``user_roles`` is looked up by email on every
admin request.
"""

from __future__ import annotations

import logging

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "4b2f9c1d7e10"
down_revision = None
branch_labels = None
depends_on = None

logger = logging.getLogger(__name__)

_UTC_NOW = sa.text("timezone('utc', now())")


def upgrade() -> None:
    op.create_table(
        "batches",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("batch_name", sa.String(length=255), nullable=False),
        sa.Column("program", sa.String(length=64), nullable=False),
        sa.Column("description", sa.String(length=512), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=_UTC_NOW),
        sa.PrimaryKeyConstraint("id", name="pk_batches"),
        sa.UniqueConstraint("batch_name", name="uq_batches_name"),
    )
    op.create_table(
        "batch_rounds",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("batch_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("round_number", sa.Integer(), nullable=False),
        sa.Column("round_name", sa.String(length=64), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("description", sa.String(length=512), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=_UTC_NOW),
        sa.PrimaryKeyConstraint("id", name="pk_batch_rounds"),
        sa.ForeignKeyConstraint(["batch_id"], ["batches.id"], name="fk_batch_rounds_batch"),
        sa.UniqueConstraint("batch_id", "round_number", name="uq_batch_rounds_batch_round"),
    )
    op.create_index("ix_batch_rounds_batch_id", "batch_rounds", ["batch_id"], unique=False)
    op.create_table(
        "user_roles",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("role", sa.String(length=64), nullable=False),
        sa.Column("assigned_by", sa.String(length=320), nullable=True),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=False, server_default=_UTC_NOW),
        sa.PrimaryKeyConstraint("id", name="pk_user_roles"),
        sa.UniqueConstraint("email", "role", name="uq_user_roles_email_role"),
    )
    op.create_index("ix_user_roles_email", "user_roles", ["email"], unique=False)
    logger.info("portal.migration.applied", extra={"revision": revision})


def downgrade() -> None:
    op.drop_index("ix_user_roles_email", table_name="user_roles")
    op.drop_table("user_roles")
    op.drop_index("ix_batch_rounds_batch_id", table_name="batch_rounds")
    op.drop_table("batch_rounds")
    op.drop_table("batches")
