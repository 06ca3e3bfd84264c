"""Shared error classes for premises-visit aggregation and its upstream readers."""

from __future__ import annotations


class PremisesVisitError(RuntimeError):
    """Base exception raised while building the premises-visit dashboard."""

    def __init__(self, message: str, code: str = "PREMISES_VISIT_ERROR") -> None:
        super().__init__(message)
        self.code = code


class MappingSourceUnavailableError(PremisesVisitError):
    """Raised when the entrepreneur mapping tab cannot be read."""

    def __init__(self, message: str = "Mapping sheet not found") -> None:
        super().__init__(message, code="500_MAPPING_SOURCE_MISSING")


class SheetsClientError(PremisesVisitError):
    """Raised when a Google Sheets tab cannot be fetched."""

    def __init__(self, message: str, code: str = "503_SHEETS_UNAVAILABLE") -> None:
        super().__init__(message, code=code)


class RoundWindowPersistenceError(PremisesVisitError):
    """Raised when round windows cannot be loaded from the database."""

    def __init__(self, message: str, code: str = "500_ROUND_WINDOWS") -> None:
        super().__init__(message, code=code)
