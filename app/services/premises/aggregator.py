"""Joins mapping, report and round data into premises-visit records."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Final

from app.models.premises_visit import (
    RoundWindow,
    VisitFilters,
    VisitRecord,
    VisitSummary,
)
from app.services.premises.normalizer import (
    BANGKIT_FIELDS,
    BANGKIT_KEY,
    MAJU_FIELDS,
    MAJU_KEY,
    TRACKING_FIELDS,
    TRACKING_KEY,
    first_non_blank,
    normalize,
)
from app.services.premises.rounds import resolve_current_round
from app.services.premises.status import Program, resolve_status

logger = logging.getLogger(__name__)

ALL: Final = "all"
DEFAULT_PROGRAM: Final = Program.BANGKIT.value

MAPPING_COLUMNS: Final[dict[str, tuple[str, ...]]] = {
    "mentee_name": ("Mentee", "Nama Usahawan"),
    "mentor_name": ("Mentor",),
    "batch": ("Batch",),
    "program": ("Program",),
    "mentee_email": ("Email Usahawan",),
    "mentor_email": ("Email Mentor",),
}


@dataclass
class AggregationResult:
    summary: VisitSummary
    visits: list[VisitRecord]
    available_batches: list[str] = field(default_factory=list)
    available_programs: list[str] = field(default_factory=list)
    total_before_filters: int = 0


def build_visits(
    mapping_rows: Iterable[Mapping[str, Any]],
    tracking_rows: Iterable[Mapping[str, Any]],
    bangkit_rows: Iterable[Mapping[str, Any]],
    maju_rows: Iterable[Mapping[str, Any]],
    round_windows: Sequence[RoundWindow],
    *,
    today: date,
) -> list[VisitRecord]:
    """Produce one VisitRecord per distinct mentee in mapping order.

    The mapping tab defines identity, so its first row for a mentee wins;
    report tabs define evidence and are normalized last-row-wins.
    """
    tracking = normalize(tracking_rows, TRACKING_KEY, TRACKING_FIELDS)
    bangkit = normalize(bangkit_rows, BANGKIT_KEY, BANGKIT_FIELDS)
    maju = normalize(maju_rows, MAJU_KEY, MAJU_FIELDS)

    visits: list[VisitRecord] = []
    seen: set[str] = set()
    for row in mapping_rows:
        mentee_name = first_non_blank(row, MAPPING_COLUMNS["mentee_name"])
        mentor_name = first_non_blank(row, MAPPING_COLUMNS["mentor_name"])
        if not mentee_name or not mentor_name:
            continue
        if mentee_name in seen:
            continue
        seen.add(mentee_name)

        batch = first_non_blank(row, MAPPING_COLUMNS["batch"]) or ""
        program_label = first_non_blank(row, MAPPING_COLUMNS["program"]) or DEFAULT_PROGRAM
        program = Program.from_label(program_label)
        program_record = maju.get(mentee_name) if program is Program.MAJU else bangkit.get(mentee_name)
        tracking_date = (tracking.get(mentee_name) or {}).get("visit_date")

        resolution = resolve_current_round(batch, round_windows, today=today)
        status = resolve_status(tracking_date, program_record, resolution.current_round, program)

        visits.append(
            VisitRecord(
                mentee_name=mentee_name,
                mentee_email=first_non_blank(row, MAPPING_COLUMNS["mentee_email"]),
                mentor_name=mentor_name,
                mentor_email=first_non_blank(row, MAPPING_COLUMNS["mentor_email"]),
                program=program_label,
                batch=batch,
                current_round=resolution.current_round,
                status=status.status,
                visit_date=status.visit_date,
                source=status.source,
            )
        )
    return visits


def apply_filters(visits: Iterable[VisitRecord], filters: VisitFilters) -> list[VisitRecord]:
    """Post-pass filtering; ``all`` (or blank) disables a filter."""
    filtered = list(visits)
    if _active(filters.program):
        wanted = filters.program.lower()
        filtered = [visit for visit in filtered if visit.program.lower() == wanted]
    if _active(filters.batch):
        filtered = [visit for visit in filtered if visit.batch == filters.batch]
    if _active(filters.status):
        filtered = [visit for visit in filtered if visit.status.value == filters.status]
    return filtered


def aggregate(
    mapping_rows: Iterable[Mapping[str, Any]],
    tracking_rows: Iterable[Mapping[str, Any]],
    bangkit_rows: Iterable[Mapping[str, Any]],
    maju_rows: Iterable[Mapping[str, Any]],
    round_windows: Sequence[RoundWindow],
    filters: VisitFilters | None = None,
    *,
    today: date,
) -> AggregationResult:
    """Aggregate every source, then filter and summarise the result."""
    visits = build_visits(
        mapping_rows,
        tracking_rows,
        bangkit_rows,
        maju_rows,
        round_windows,
        today=today,
    )
    filtered = apply_filters(visits, filters or VisitFilters())
    logger.info(
        "premises.aggregate.complete",
        extra={"visits": len(visits), "filtered": len(filtered)},
    )
    return AggregationResult(
        summary=VisitSummary.from_visits(filtered),
        visits=filtered,
        available_batches=sorted({visit.batch for visit in visits}),
        available_programs=sorted({visit.program for visit in visits}),
        total_before_filters=len(visits),
    )


def _active(value: str | None) -> bool:
    return bool(value) and value != ALL
