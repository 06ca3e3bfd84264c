"""Round-window persistence backends."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from datetime import date
from threading import Lock
from typing import Any, Protocol
from uuid import UUID

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, select

from app.core.database import build_engine, get_engine
from app.models.batch_round import BatchRecord, BatchRoundRecord
from app.models.premises_visit import RoundWindow
from app.observability.metrics import metrics
from app.services.premises.errors import RoundWindowPersistenceError
from app.services.premises.rounds import round_window_from_row

logger = logging.getLogger(__name__)


class RoundWindowRepository(Protocol):
    """Read contract for configured mentoring-round windows."""

    def list_windows(self) -> list[RoundWindow]:
        ...


class InMemoryRoundWindowRepository(RoundWindowRepository):
    """Holds windows in process; accepts RoundWindow objects or raw config rows."""

    def __init__(self, entries: Iterable[RoundWindow | Mapping[str, Any]] | None = None) -> None:
        self._windows: list[RoundWindow] = []
        self._lock = Lock()
        for entry in entries or []:
            self.add(entry)

    def add(self, entry: RoundWindow | Mapping[str, Any]) -> RoundWindow | None:
        window = entry if isinstance(entry, RoundWindow) else round_window_from_row(entry)
        if window is None:
            return None
        with self._lock:
            self._windows.append(window)
        return window

    def list_windows(self) -> list[RoundWindow]:
        with self._lock:
            return list(self._windows)


class SupabaseRoundWindowRepository(RoundWindowRepository):
    """SQLModel-backed repository reading ``batch_rounds`` joined to ``batches``."""

    def __init__(self, engine: Engine, *, auto_create_schema: bool = False) -> None:
        self._engine = engine
        if auto_create_schema:
            SQLModel.metadata.create_all(
                self._engine,
                tables=[BatchRecord.__table__, BatchRoundRecord.__table__],
            )

    @classmethod
    def from_url(cls, database_url: str, **kwargs: Any) -> "SupabaseRoundWindowRepository":
        return cls(build_engine(database_url), **kwargs)

    def list_windows(self) -> list[RoundWindow]:
        try:
            with self._session() as session:
                statement = (
                    select(BatchRoundRecord, BatchRecord.batch_name)
                    .join(BatchRecord, BatchRecord.id == BatchRoundRecord.batch_id)
                    .order_by(BatchRecord.batch_name, BatchRoundRecord.round_number)
                )
                rows = session.exec(statement).all()
        except SQLAlchemyError as exc:
            logger.exception("premises.rounds.load_failed", extra={"backend": "database"})
            raise RoundWindowPersistenceError("Failed to load batch rounds.") from exc

        windows: list[RoundWindow] = []
        for record, batch_name in rows:
            window = record.to_round_window(batch_name)
            if window is None:
                logger.warning(
                    "premises.rounds.incomplete_row",
                    extra={"batch_name": batch_name, "round_number": record.round_number},
                )
                continue
            windows.append(window)
        metrics.gauge("rounds.loaded", len(windows), tags={"repository": "database"})
        return windows

    def ensure_batch(
        self,
        batch_name: str,
        *,
        program: str,
        description: str | None = None,
    ) -> tuple[UUID, bool]:
        """Return the batch id, inserting the batch when it does not exist yet."""
        try:
            with self._session() as session:
                existing = session.exec(
                    select(BatchRecord).where(BatchRecord.batch_name == batch_name)
                ).first()
                if existing:
                    return existing.id, False
                record = BatchRecord(batch_name=batch_name, program=program, description=description)
                session.add(record)
                session.commit()
                session.refresh(record)
                return record.id, True
        except SQLAlchemyError as exc:
            logger.exception("premises.rounds.batch_upsert_failed", extra={"batch_name": batch_name})
            raise RoundWindowPersistenceError(f"Failed to upsert batch '{batch_name}'.") from exc

    def ensure_round(
        self,
        batch_id: UUID,
        round_number: int,
        *,
        start_date: date | None,
        end_date: date | None,
        description: str | None = None,
    ) -> bool:
        """Insert a round unless ``(batch_id, round_number)`` exists; True when created."""
        try:
            with self._session() as session:
                existing = session.exec(
                    select(BatchRoundRecord).where(
                        BatchRoundRecord.batch_id == batch_id,
                        BatchRoundRecord.round_number == round_number,
                    )
                ).first()
                if existing:
                    return False
                session.add(
                    BatchRoundRecord(
                        batch_id=batch_id,
                        round_number=round_number,
                        round_name=f"Round {round_number}",
                        start_date=start_date,
                        end_date=end_date,
                        description=description,
                    )
                )
                session.commit()
                return True
        except SQLAlchemyError as exc:
            logger.exception(
                "premises.rounds.round_upsert_failed",
                extra={"batch_id": str(batch_id), "round_number": round_number},
            )
            raise RoundWindowPersistenceError("Failed to upsert batch round.") from exc

    def find_batch(self, batch_name: str) -> UUID | None:
        """Read-only lookup of a batch id by name."""
        try:
            with self._session() as session:
                return session.exec(
                    select(BatchRecord.id).where(BatchRecord.batch_name == batch_name)
                ).first()
        except SQLAlchemyError as exc:
            logger.exception("premises.rounds.batch_lookup_failed", extra={"batch_name": batch_name})
            raise RoundWindowPersistenceError(f"Failed to look up batch '{batch_name}'.") from exc

    def has_round(self, batch_id: UUID, round_number: int) -> bool:
        try:
            with self._session() as session:
                found = session.exec(
                    select(BatchRoundRecord.id).where(
                        BatchRoundRecord.batch_id == batch_id,
                        BatchRoundRecord.round_number == round_number,
                    )
                ).first()
        except SQLAlchemyError as exc:
            logger.exception(
                "premises.rounds.round_lookup_failed",
                extra={"batch_id": str(batch_id), "round_number": round_number},
            )
            raise RoundWindowPersistenceError("Failed to look up batch round.") from exc
        return found is not None

    @contextmanager
    def _session(self) -> Iterator[Session]:
        with Session(self._engine) as session:
            yield session


def build_round_window_repository() -> RoundWindowRepository:
    """Use the configured database when available, otherwise an empty in-memory store."""
    engine = get_engine()
    if engine is None:
        logger.info("premises.rounds.repository.initialized", extra={"backend": "memory"})
        return InMemoryRoundWindowRepository()
    logger.info("premises.rounds.repository.initialized", extra={"backend": "database"})
    return SupabaseRoundWindowRepository(engine)
