"""SQLModel mappings for mentoring batches and their round windows."""
# ruff: noqa: UP017

from __future__ import annotations

from datetime import date, datetime, timezone
from uuid import UUID, uuid4

import sqlalchemy as sa
from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, Uuid
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql import expression
from sqlmodel import Field, SQLModel

from app.models.premises_visit import RoundWindow


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UtcNow(expression.FunctionElement):
    """Dialect-aware server default that pins timestamps to UTC."""

    type = DateTime(timezone=True)
    inherit_cache = True


@compiles(UtcNow)
def _utc_now_default(
    element, compiler, **kwargs
) -> str:  # pragma: no cover - trivial sql generator
    return "CURRENT_TIMESTAMP"


@compiles(UtcNow, "postgresql")
def _utc_now_default_postgres(
    element, compiler, **kwargs
) -> str:  # pragma: no cover - trivial sql generator
    return "timezone('utc', now())"


class BatchRecord(SQLModel, table=True):
    """ORM model for the ``batches`` table."""

    __tablename__ = "batches"
    __table_args__ = (sa.UniqueConstraint("batch_name", name="uq_batches_name"),)

    id: UUID = Field(
        default_factory=uuid4,
        sa_column=Column(Uuid(as_uuid=True), primary_key=True, nullable=False),
    )
    batch_name: str = Field(sa_column=Column(String(length=255), nullable=False))
    program: str = Field(sa_column=Column(String(length=64), nullable=False))
    description: str | None = Field(
        default=None,
        sa_column=Column(String(length=512), nullable=True),
    )
    status: str = Field(
        default="active",
        sa_column=Column(String(length=32), nullable=False),
    )
    created_at: datetime = Field(
        default_factory=_utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, server_default=UtcNow()),
    )


class BatchRoundRecord(SQLModel, table=True):
    """ORM model for the ``batch_rounds`` table."""

    __tablename__ = "batch_rounds"
    __table_args__ = (
        sa.UniqueConstraint("batch_id", "round_number", name="uq_batch_rounds_batch_round"),
        sa.Index("ix_batch_rounds_batch_id", "batch_id"),
    )

    id: UUID = Field(
        default_factory=uuid4,
        sa_column=Column(Uuid(as_uuid=True), primary_key=True, nullable=False),
    )
    batch_id: UUID = Field(
        sa_column=Column(Uuid(as_uuid=True), ForeignKey("batches.id"), nullable=False),
    )
    round_number: int = Field(sa_column=Column(Integer, nullable=False))
    round_name: str | None = Field(
        default=None,
        sa_column=Column(String(length=64), nullable=True),
    )
    start_date: date | None = Field(default=None, sa_column=Column(Date, nullable=True))
    end_date: date | None = Field(default=None, sa_column=Column(Date, nullable=True))
    description: str | None = Field(
        default=None,
        sa_column=Column(String(length=512), nullable=True),
    )
    status: str = Field(
        default="active",
        sa_column=Column(String(length=32), nullable=False),
    )
    created_at: datetime = Field(
        default_factory=_utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, server_default=UtcNow()),
    )

    def to_round_window(self, batch_name: str) -> RoundWindow | None:
        """Hydrate a RoundWindow; rows missing either boundary are unusable."""
        if self.start_date is None or self.end_date is None or self.round_number < 1:
            return None
        if self.end_date < self.start_date:
            return None
        return RoundWindow(
            batch_name=batch_name,
            round_number=self.round_number,
            start_date=self.start_date,
            end_date=self.end_date,
        )
