"""Current mentoring-round resolution from configured round windows."""

from __future__ import annotations

import calendar
import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from pydantic import ValidationError

from app.models.premises_visit import RoundWindow

logger = logging.getLogger(__name__)

DEFAULT_ROUND = 1

_MONTHS = {
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}
_YEAR_MONTH = re.compile(r"^(\d{4})-(\d{1,2})$")


@dataclass(frozen=True)
class RoundResolution:
    current_round: int
    window_start: date | None = None
    window_end: date | None = None


def batch_names_match(query: str, candidate: str) -> bool:
    """Loose batch-name comparison used across independently typed sources.

    Matches when either name is a substring of the other, so "Batch 1" also
    matches "Batch 10". Callers that need a strict match compare names
    themselves.
    """
    if not query or not candidate:
        return False
    return candidate in query or query in candidate


def resolve_current_round(
    batch_name: str,
    windows: Iterable[RoundWindow],
    *,
    today: date,
) -> RoundResolution:
    """Return the round that is active for ``batch_name`` on ``today``.

    Before the first window the earliest round is reported. Any other day not
    covered by a window, including gaps between windows, reports the latest
    window.
    """
    matches = sorted(
        (window for window in windows if batch_names_match(batch_name, window.batch_name)),
        key=lambda window: window.start_date,
    )
    if not matches:
        return RoundResolution(current_round=DEFAULT_ROUND)

    selected = next((window for window in matches if window.contains(today)), None)
    if selected is None:
        selected = matches[0] if today < matches[0].start_date else matches[-1]

    return RoundResolution(
        current_round=selected.round_number,
        window_start=selected.start_date,
        window_end=selected.end_date,
    )


def parse_round_date(value: Any, *, end_of_month: bool = False) -> date | None:
    """Parse the date formats found in round configuration rows.

    Accepts ``date``/``datetime`` objects, ISO dates and datetimes, ``YYYY-MM``
    and month-name forms such as ``Jan 2024`` or ``January-2024``. Month-only
    values resolve to the first day, or the last day when ``end_of_month``.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None

    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass

    year_month = _YEAR_MONTH.match(text)
    if year_month:
        return _month_boundary(int(year_month.group(1)), int(year_month.group(2)), end_of_month)

    parts = re.split(r"[\s-]+", text)
    if len(parts) >= 2:
        month = _MONTHS.get(parts[0][:3].lower())
        if month and parts[1].isdigit():
            return _month_boundary(int(parts[1]), month, end_of_month)

    logger.warning("premises.rounds.unparsable_date", extra={"value": text})
    return None


def round_window_from_row(row: Mapping[str, Any]) -> RoundWindow | None:
    """Build a RoundWindow from a loosely-shaped configuration row.

    Understands both ``start_date``/``end_date`` and the older
    ``start_month``/``end_month`` column names. Rows that cannot form a valid
    window are dropped with a warning.
    """
    batch_name = str(row.get("batch_name") or "").strip()
    start = parse_round_date(_first_present(row, ("start_date", "start_month")))
    end = parse_round_date(_first_present(row, ("end_date", "end_month")), end_of_month=True)
    try:
        round_number = int(row.get("round_number") or 0)
    except (TypeError, ValueError):
        round_number = 0
    if not batch_name or start is None or end is None:
        logger.warning("premises.rounds.incomplete_row", extra={"batch_name": batch_name})
        return None
    try:
        return RoundWindow(
            batch_name=batch_name,
            round_number=round_number,
            start_date=start,
            end_date=end,
        )
    except ValidationError:
        logger.warning(
            "premises.rounds.invalid_row",
            extra={"batch_name": batch_name, "round_number": round_number},
        )
        return None


def _first_present(row: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = row.get(key)
        if value not in (None, ""):
            return value
    return None


def _month_boundary(year: int, month: int, end_of_month: bool) -> date | None:
    if not 1 <= month <= 12:
        return None
    day = calendar.monthrange(year, month)[1] if end_of_month else 1
    return date(year, month, day)
