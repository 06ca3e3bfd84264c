"""Premises-visit status resolution with a fixed evidence priority."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Final

from app.models.premises_visit import VisitStatus
from app.services.premises.normalizer import has_photo_evidence, is_checked

SOURCE_TRACKING_FORM: Final = "UM Form"
SOURCE_NONE: Final = "-"


class Program(str, Enum):
    """The two mentoring programmes; each records visit evidence differently."""

    BANGKIT = "Bangkit"
    MAJU = "Maju"

    @classmethod
    def from_label(cls, label: str | None) -> "Program":
        """Maju when the label mentions it (any case), Bangkit otherwise."""
        if label and "maju" in label.lower():
            return cls.MAJU
        return cls.BANGKIT

    @property
    def date_source(self) -> str:
        return f"Laporan {self.value} (Tarikh)"

    @property
    def proof_source(self) -> str:
        if self is Program.MAJU:
            return f"Laporan {self.value} (Gambar)"
        return f"Laporan {self.value} (Checkbox)"

    def has_proof(self, value: str | None) -> bool:
        if self is Program.MAJU:
            return has_photo_evidence(value)
        return is_checked(value)


@dataclass(frozen=True)
class StatusResolution:
    status: VisitStatus
    visit_date: str | None
    source: str


def resolve_status(
    tracking_date: str | None,
    program_record: Mapping[str, str | None] | None,
    current_round: int,
    program: str | Program,
) -> StatusResolution:
    """Decide the visit status for one entrepreneur.

    ``program_record`` must be the normalized report row of the
    entrepreneur's own programme; fields of the other programme are never
    consulted.
    """
    if tracking_date:
        return StatusResolution(VisitStatus.COMPLETED, tracking_date, SOURCE_TRACKING_FORM)

    resolved = program if isinstance(program, Program) else Program.from_label(program)
    record = program_record or {}

    report_date = record.get("visit_date")
    if report_date:
        return StatusResolution(VisitStatus.COMPLETED, report_date, resolved.date_source)

    if resolved.has_proof(record.get("visit_proof")):
        return StatusResolution(VisitStatus.COMPLETED, None, resolved.proof_source)

    if current_round >= 2:
        return StatusResolution(VisitStatus.OVERDUE, None, SOURCE_NONE)
    return StatusResolution(VisitStatus.PENDING, None, SOURCE_NONE)
