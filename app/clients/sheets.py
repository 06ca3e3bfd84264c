"""Google Sheets row reader for the mentoring report spreadsheet."""

from __future__ import annotations

import base64
import binascii
import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any, Protocol

import gspread
import requests
from google.auth.exceptions import GoogleAuthError
from google.oauth2.service_account import Credentials

from app.config import settings
from app.services.premises.errors import SheetsClientError

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets.readonly"]

Row = dict[str, str]


class SheetRowReader(Protocol):
    """Reads a tab as a list of rows keyed by header name."""

    def get_rows(self, tab: str) -> list[Row]:
        ...


def rows_from_values(values: Sequence[Sequence[Any]] | None) -> list[Row]:
    """Map a header row onto the remaining rows, padding short rows with ``""``."""
    if not values:
        return []
    header, *body = values
    rows: list[Row] = []
    for raw in body:
        row: Row = {}
        for index, column in enumerate(header):
            cell = raw[index] if index < len(raw) else ""
            row[str(column)] = "" if cell is None else str(cell)
        rows.append(row)
    return rows


def decode_service_account(encoded: str) -> dict[str, Any]:
    """Decode the base64 service-account JSON stored in GOOGLE_CREDENTIALS_BASE64."""
    try:
        info = json.loads(base64.b64decode(encoded).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError) as exc:
        raise SheetsClientError(
            "GOOGLE_CREDENTIALS_BASE64 is not valid base64-encoded JSON.",
            code="500_SHEETS_CREDENTIALS",
        ) from exc
    if isinstance(info.get("private_key"), str):
        info["private_key"] = info["private_key"].replace("\\n", "\n")
    return info


class GoogleSheetsRowReader(SheetRowReader):
    """gspread-backed reader bound to one spreadsheet."""

    def __init__(
        self,
        spreadsheet_id: str,
        *,
        credentials_info: Mapping[str, Any] | None = None,
        client: gspread.Client | None = None,
        read_range: str = "A1:BV",
    ) -> None:
        if not spreadsheet_id:
            raise ValueError("GOOGLE_SHEETS_REPORT_ID is required to read report tabs.")
        if client is None:
            if not credentials_info:
                raise ValueError("Service-account credentials are required to read report tabs.")
            credentials = Credentials.from_service_account_info(dict(credentials_info), scopes=SCOPES)
            client = gspread.authorize(credentials)
        self._client = client
        self._spreadsheet_id = spreadsheet_id
        self._read_range = read_range
        self._spreadsheet: gspread.Spreadsheet | None = None

    @classmethod
    def from_settings(cls) -> "GoogleSheetsRowReader":
        if not settings.google_credentials_base64:
            raise SheetsClientError(
                "GOOGLE_CREDENTIALS_BASE64 environment variable not found.",
                code="500_SHEETS_CREDENTIALS",
            )
        return cls(
            settings.google_sheets_report_id or "",
            credentials_info=decode_service_account(settings.google_credentials_base64),
            read_range=settings.sheets_read_range,
        )

    def get_rows(self, tab: str) -> list[Row]:
        try:
            if self._spreadsheet is None:
                self._spreadsheet = self._client.open_by_key(self._spreadsheet_id)
            response = self._spreadsheet.values_get(f"{tab}!{self._read_range}")
        except (gspread.exceptions.GSpreadException, requests.RequestException, GoogleAuthError) as exc:
            logger.warning("sheets.tab.unreachable", extra={"tab": tab, "error": type(exc).__name__})
            raise SheetsClientError(f"Unable to read sheet '{tab}': {exc}") from exc
        rows = rows_from_values(response.get("values"))
        if not rows:
            logger.warning("sheets.tab.empty", extra={"tab": tab})
        return rows


class InMemorySheetRowReader(SheetRowReader):
    """Serves fixed rows per tab; unknown tabs raise like a missing sheet."""

    def __init__(self, tabs: Mapping[str, Sequence[Mapping[str, Any]]] | None = None) -> None:
        self._tabs = {name: [dict(row) for row in rows] for name, rows in (tabs or {}).items()}
        self.requested: list[str] = []

    def get_rows(self, tab: str) -> list[Row]:
        self.requested.append(tab)
        if tab not in self._tabs:
            raise SheetsClientError(f"Unable to read sheet '{tab}': not found", code="404_SHEET_NOT_FOUND")
        return [dict(row) for row in self._tabs[tab]]
