"""SQLModel mapping for portal role assignments."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

import sqlalchemy as sa
from sqlalchemy import Column, DateTime, String, Uuid
from sqlmodel import Field, SQLModel

from app.models.batch_round import UtcNow, _utcnow


class UserRoleRecord(SQLModel, table=True):
    """ORM model for the ``user_roles`` table (one row per email/role pair)."""

    __tablename__ = "user_roles"
    __table_args__ = (
        sa.UniqueConstraint("email", "role", name="uq_user_roles_email_role"),
        sa.Index("ix_user_roles_email", "email"),
    )

    id: UUID = Field(
        default_factory=uuid4,
        sa_column=Column(Uuid(as_uuid=True), primary_key=True, nullable=False),
    )
    email: str = Field(sa_column=Column(String(length=320), nullable=False))
    role: str = Field(sa_column=Column(String(length=64), nullable=False))
    assigned_by: str | None = Field(
        default=None,
        sa_column=Column(String(length=320), nullable=True),
    )
    assigned_at: datetime = Field(
        default_factory=_utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, server_default=UtcNow()),
    )
