"""
Google Sheets Export

DESIGN DECISION: Publishing to Google Sheets is an optional mirror of the
local ledger, not a storage backend. Each publish replaces the content of
the ledger sheet and of every month sheet, so the spreadsheet always shows
the current snapshot and re-publishing is idempotent.

Sheets that no longer correspond to a month bucket are left alone.
"""

from typing import Any, Iterable, Optional

import gspread
import structlog
from google.auth.exceptions import GoogleAuthError
from google.oauth2.service_account import Credentials
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from talk_ledger.config import GoogleSheetsSettings
from talk_ledger.models.transaction import TransactionRecord
from talk_ledger.services.export.projection import (
    LEDGER_COLUMNS,
    MONTH_COLUMNS,
    ledger_rows,
    monthly_rows,
    sheet_title,
)


logger = structlog.get_logger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]


class ExportError(Exception):
    """Base exception for export errors."""
    pass


class SheetsConnectionError(ExportError):
    """Could not authenticate or reach the spreadsheet."""
    pass


class GoogleSheetsLedgerExporter:
    """
    Publishes the export projection into a configured spreadsheet.

    Usage:
        exporter = GoogleSheetsLedgerExporter(get_settings().google_sheets)
        exporter.publish(store.records())
    """

    def __init__(
        self,
        settings: GoogleSheetsSettings,
        client: Optional[gspread.Client] = None,
    ):
        self._settings = settings
        self._client = client
        self._spreadsheet: Optional[gspread.Spreadsheet] = None

    def connect(self) -> gspread.Client:
        """
        Authorize with the service account credentials (once).

        Raises:
            SheetsConnectionError: If the credentials are missing, invalid or refused
        """
        try:
            return self._authorize()
        except gspread.exceptions.APIError as e:
            raise SheetsConnectionError(f"Google Sheets refused the connection: {e}") from e
        except GoogleAuthError as e:
            raise SheetsConnectionError(f"Google authentication failed: {e}") from e

    @retry(
        retry=retry_if_exception_type(gspread.exceptions.APIError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _authorize(self) -> gspread.Client:
        if self._client is None:
            try:
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=SCOPES,
                )
            except FileNotFoundError:
                raise SheetsConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except ValueError as e:
                raise SheetsConnectionError(f"Invalid Google credentials: {e}")
            self._client = gspread.authorize(credentials)
        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(self._settings.spreadsheet_id)
            except gspread.SpreadsheetNotFound:
                raise SheetsConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _worksheet(self, title: str, cols: int) -> gspread.Worksheet:
        """Get or create a worksheet by title."""
        spreadsheet = self.get_spreadsheet()
        try:
            return spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            return spreadsheet.add_worksheet(title=title, rows=1000, cols=cols)

    def _replace(self, title: str, columns: list[str], rows: list[list[Any]]) -> None:
        sheet = self._worksheet(title, len(columns))
        sheet.clear()
        sheet.update(values=[columns] + rows, range_name="A1")

    def publish(self, records: Iterable[TransactionRecord]) -> int:
        """
        Replace the ledger sheet and every month sheet.

        Returns:
            Number of sheets written

        Raises:
            SheetsConnectionError: If the spreadsheet cannot be reached
            ExportError: If Google rejects a request
        """
        records = list(records)
        months = monthly_rows(records)
        try:
            self._replace(
                sheet_title(self._settings.ledger_sheet_name),
                LEDGER_COLUMNS,
                ledger_rows(records),
            )
            for key, rows in months.items():
                self._replace(sheet_title(key), MONTH_COLUMNS, rows)
        except gspread.exceptions.APIError as e:
            logger.error("sheets_publish_failed", spreadsheet_id=self._settings.spreadsheet_id, error=str(e))
            raise ExportError(f"Google Sheets rejected the update: {e}") from e
        except GoogleAuthError as e:
            logger.error("sheets_auth_failed", spreadsheet_id=self._settings.spreadsheet_id, error=str(e))
            raise SheetsConnectionError(f"Google authentication failed: {e}") from e

        sheet_count = 1 + len(months)
        logger.info(
            "sheets_published",
            spreadsheet_id=self._settings.spreadsheet_id,
            records=len(records),
            sheets=sheet_count,
        )
        return sheet_count
