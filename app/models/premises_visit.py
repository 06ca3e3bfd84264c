"""Domain models for premises-visit (lawatan premis) tracking."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, conint, model_validator
from pydantic.alias_generators import to_camel


class VisitStatus(str, Enum):
    """Resolved premises-visit state for one entrepreneur."""

    COMPLETED = "completed"
    PENDING = "pending"
    OVERDUE = "overdue"


class _CamelModel(BaseModel):
    """Base for payloads exposed to the dashboard using camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RoundWindow(BaseModel):
    """Active date span of one mentoring round for a batch."""

    model_config = ConfigDict(frozen=True)

    batch_name: str
    round_number: conint(ge=1)  # type: ignore[valid-type]
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def _ordered_bounds(self) -> "RoundWindow":
        if self.end_date < self.start_date:
            raise ValueError("Round window end_date must not precede start_date.")
        return self

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


class VisitRecord(_CamelModel):
    """One row of the premises-visit dashboard."""

    mentee_name: str
    mentee_email: str | None = None
    mentor_name: str
    mentor_email: str | None = None
    program: str
    batch: str
    current_round: conint(ge=1)  # type: ignore[valid-type]
    status: VisitStatus
    visit_date: str | None = None
    source: str


class VisitSummary(_CamelModel):
    total_visits: int = 0
    completed: int = 0
    pending: int = 0
    overdue: int = 0
    with_date: int = 0

    @classmethod
    def from_visits(cls, visits: list[VisitRecord]) -> "VisitSummary":
        """Count statuses over an already-filtered visit list."""
        return cls(
            total_visits=len(visits),
            completed=sum(1 for visit in visits if visit.status is VisitStatus.COMPLETED),
            pending=sum(1 for visit in visits if visit.status is VisitStatus.PENDING),
            overdue=sum(1 for visit in visits if visit.status is VisitStatus.OVERDUE),
            with_date=sum(1 for visit in visits if visit.visit_date is not None),
        )


class VisitFilters(BaseModel):
    """Caller-supplied post-aggregation filters; ``all`` disables a filter."""

    model_config = ConfigDict(frozen=True)

    program: str = "all"
    batch: str = "all"
    status: str = "all"

    @property
    def cache_key(self) -> str:
        return f"lawatan-{self.program}-{self.batch}-{self.status}"


class FilterEcho(_CamelModel):
    program: str
    batch: str
    status: str
    available_batches: list[str] = Field(default_factory=list)
    available_programs: list[str] = Field(default_factory=list)


class PremisesVisitResponse(_CamelModel):
    """Response body of ``GET /api/admin/lawatan-premis``."""

    success: bool = True
    summary: VisitSummary
    visits: list[VisitRecord]
    filters: FilterEcho
    last_updated: datetime
    cached: bool = False
    cache_age: int | None = None

    def to_payload(self) -> dict[str, object]:
        """Serialize with camelCase keys, omitting ``cacheAge`` on fresh responses."""
        payload = self.model_dump(mode="json", by_alias=True)
        if self.cache_age is None:
            payload.pop("cacheAge", None)
        return payload
