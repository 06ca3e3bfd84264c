"""Builds the premises-visit dashboard from Sheets and round configuration."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from zoneinfo import ZoneInfo

from app.clients.sheets import GoogleSheetsRowReader, Row, SheetRowReader
from app.config import settings
from app.models.premises_visit import (
    FilterEcho,
    PremisesVisitResponse,
    RoundWindow,
    VisitFilters,
)
from app.observability.metrics import metrics
from app.services.premises.aggregator import aggregate
from app.services.premises.cache import TTLCache
from app.services.premises.errors import MappingSourceUnavailableError, PremisesVisitError
from app.services.premises.repositories import (
    RoundWindowRepository,
    build_round_window_repository,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SheetTabs:
    mapping: str = "mapping"
    tracking: str = "UM"
    bangkit: str = "V8"
    maju: str = "LaporanMajuUM"

    @classmethod
    def from_settings(cls) -> "SheetTabs":
        return cls(
            mapping=settings.sheet_mapping_tab,
            tracking=settings.sheet_um_tab,
            bangkit=settings.sheet_bangkit_tab,
            maju=settings.sheet_maju_tab,
        )


@dataclass
class SourceSnapshot:
    """Upstream rows fetched for one aggregation run."""

    mapping: list[Row]
    tracking: list[Row] = field(default_factory=list)
    bangkit: list[Row] = field(default_factory=list)
    maju: list[Row] = field(default_factory=list)
    round_windows: list[RoundWindow] = field(default_factory=list)
    unavailable: list[str] = field(default_factory=list)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class PremisesVisitService:
    """Fetches every source, aggregates visits and caches responses per filter tuple."""

    def __init__(
        self,
        *,
        reader_factory: Callable[[], SheetRowReader],
        rounds: RoundWindowRepository,
        cache: TTLCache[PremisesVisitResponse] | None = None,
        tabs: SheetTabs | None = None,
        clock: Callable[[], datetime] = _utcnow,
        timezone: str | None = None,
    ) -> None:
        self._reader_factory = reader_factory
        self._rounds = rounds
        self._cache = cache or TTLCache(
            ttl_seconds=settings.premises_cache_ttl_seconds,
            name="lawatan_premis",
        )
        self._tabs = tabs or SheetTabs.from_settings()
        self._clock = clock
        self._zone = ZoneInfo(timezone or settings.portal_timezone)

    @property
    def cache(self) -> TTLCache[PremisesVisitResponse]:
        return self._cache

    def get_dashboard(self, filters: VisitFilters, *, refresh: bool = False) -> PremisesVisitResponse:
        """Serve from cache unless ``refresh``; fresh results are cached only on success."""
        key = filters.cache_key
        if not refresh:
            hit = self._cache.get(key)
            if hit is not None:
                return hit.value.model_copy(
                    update={"cached": True, "cache_age": round(hit.age_seconds)}
                )

        logger.info(
            "premises.dashboard.refresh",
            extra={"program": filters.program, "batch": filters.batch, "status": filters.status},
        )
        response = self.build_dashboard(filters)
        self._cache.set(key, response)
        return response

    def build_dashboard(self, filters: VisitFilters) -> PremisesVisitResponse:
        with metrics.timed("premises.aggregate.latency_ms"):
            sources = self.load_sources()
            now = self._clock()
            result = aggregate(
                sources.mapping,
                sources.tracking,
                sources.bangkit,
                sources.maju,
                sources.round_windows,
                filters,
                today=now.astimezone(self._zone).date(),
            )
        metrics.gauge("premises.visits.total", result.total_before_filters)
        return PremisesVisitResponse(
            summary=result.summary,
            visits=result.visits,
            filters=FilterEcho(
                program=filters.program,
                batch=filters.batch,
                status=filters.status,
                available_batches=result.available_batches,
                available_programs=result.available_programs,
            ),
            last_updated=now,
        )

    def load_sources(self) -> SourceSnapshot:
        """Fetch all upstream data; only the mapping tab is mandatory."""
        unavailable: list[str] = []
        try:
            round_windows = self._rounds.list_windows()
            logger.info("premises.source.loaded", extra={"source": "batch_rounds", "rows": len(round_windows)})
        except PremisesVisitError as exc:
            logger.warning("premises.source.unavailable", extra={"source": "batch_rounds", "error": str(exc)})
            round_windows = []
            unavailable.append("batch_rounds")

        reader = self._reader_factory()
        tracking = self._optional_tab(reader, self._tabs.tracking, unavailable)
        bangkit = self._optional_tab(reader, self._tabs.bangkit, unavailable)
        maju = self._optional_tab(reader, self._tabs.maju, unavailable)
        try:
            mapping = reader.get_rows(self._tabs.mapping)
        except PremisesVisitError as exc:
            logger.error("premises.source.mapping_missing", extra={"tab": self._tabs.mapping, "error": str(exc)})
            raise MappingSourceUnavailableError() from exc
        logger.info("premises.source.loaded", extra={"source": self._tabs.mapping, "rows": len(mapping)})

        return SourceSnapshot(
            mapping=mapping,
            tracking=tracking,
            bangkit=bangkit,
            maju=maju,
            round_windows=round_windows,
            unavailable=unavailable,
        )

    @staticmethod
    def _optional_tab(reader: SheetRowReader, tab: str, unavailable: list[str]) -> list[Row]:
        try:
            rows = reader.get_rows(tab)
        except PremisesVisitError as exc:
            logger.warning("premises.source.unavailable", extra={"source": tab, "error": str(exc)})
            metrics.increment("premises.source.unavailable", tags={"source": tab})
            unavailable.append(tab)
            return []
        logger.info("premises.source.loaded", extra={"source": tab, "rows": len(rows)})
        return rows


_SERVICE_INSTANCE: PremisesVisitService | None = None


def get_premises_visit_service() -> PremisesVisitService:
    """Singleton accessor used by API routes."""
    global _SERVICE_INSTANCE  # noqa: PLW0603
    if _SERVICE_INSTANCE is None:
        _SERVICE_INSTANCE = PremisesVisitService(
            reader_factory=GoogleSheetsRowReader.from_settings,
            rounds=build_round_window_repository(),
        )
    return _SERVICE_INSTANCE
