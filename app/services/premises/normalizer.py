"""Projects raw tabular rows onto per-entrepreneur evidence fields.

Rows arrive keyed by header name and the same logical field is spelled
differently from tab to tab, so every logical field is described by an ordered
list of candidate column names; the first non-blank candidate wins.

Duplicate keys are resolved **last row wins** here, because report tabs are
append-only and the newest submission carries the freshest evidence. The
aggregator resolves duplicate mapping rows the other way round (first row
wins). Keep both directions as they are; changing either changes the output
for real duplicate data.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Final

NormalizedFields = dict[str, str | None]
FieldMap = Mapping[str, Sequence[str]]

TRACKING_KEY: Final[tuple[str, ...]] = ("Nama Usahawan",)
TRACKING_FIELDS: Final[dict[str, tuple[str, ...]]] = {
    "visit_date": ("Column 70",),
}

BANGKIT_KEY: Final[tuple[str, ...]] = ("Nama Usahawan",)
BANGKIT_FIELDS: Final[dict[str, tuple[str, ...]]] = {
    "visit_date": ("tarikh_lawatan_premis",),
    "visit_proof": ("Premis_Dilawat_Checked",),
}

MAJU_KEY: Final[tuple[str, ...]] = ("NAMA_MENTEE",)
MAJU_FIELDS: Final[dict[str, tuple[str, ...]]] = {
    "visit_date": ("UM_TARIKH_LAWATAN_PREMIS",),
    "visit_proof": ("URL_GAMBAR_PREMIS_JSON",),
}


def cell_text(value: Any) -> str:
    """Trimmed string form of a sheet cell; ``None`` becomes ``""``."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    return str(value).strip()


def first_non_blank(row: Mapping[str, Any], candidates: Sequence[str] | str) -> str | None:
    """Return the first candidate column whose trimmed value is non-blank."""
    if isinstance(candidates, str):
        candidates = (candidates,)
    for column in candidates:
        text = cell_text(row.get(column))
        if text:
            return text
    return None


def normalize(
    raw_rows: Iterable[Mapping[str, Any]],
    key_field: Sequence[str] | str,
    field_map: FieldMap,
) -> dict[str, NormalizedFields]:
    """Build a lookup of normalized evidence fields keyed by trimmed mentee name."""
    lookup: dict[str, NormalizedFields] = {}
    for row in raw_rows:
        key = first_non_blank(row, key_field)
        if not key:
            continue
        lookup[key] = {
            field: first_non_blank(row, columns) for field, columns in field_map.items()
        }
    return lookup


def has_photo_evidence(value: str | None) -> bool:
    """Whether a JSON-encoded photo URL list proves a visit.

    A parsed non-empty list counts; any other parsed JSON does not. Text that
    is not JSON at all (a bare URL, for instance) counts when non-blank.
    """
    if not value:
        return False
    try:
        parsed = json.loads(value)
    except (TypeError, ValueError):
        return bool(value.strip())
    return isinstance(parsed, list) and len(parsed) > 0


def is_checked(value: str | bool | None) -> bool:
    """Whether a sheet checkbox cell is ticked."""
    if value is True:
        return True
    if isinstance(value, str):
        return value.strip().upper() == "TRUE"
    return False
