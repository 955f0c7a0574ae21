"""Spreadsheet export: the row projection and its writers."""

from talk_ledger.services.export.google_sheets import (
    ExportError,
    GoogleSheetsLedgerExporter,
    SheetsConnectionError,
)
from talk_ledger.services.export.projection import (
    LEDGER_COLUMNS,
    LEDGER_SHEET_TITLE,
    MONTH_COLUMNS,
    ledger_rows,
    monthly_rows,
    record_row,
    sheet_title,
)
from talk_ledger.services.export.xlsx import XlsxLedgerExporter, export_filename

__all__ = [
    "ExportError",
    "GoogleSheetsLedgerExporter",
    "LEDGER_COLUMNS",
    "LEDGER_SHEET_TITLE",
    "MONTH_COLUMNS",
    "SheetsConnectionError",
    "XlsxLedgerExporter",
    "export_filename",
    "ledger_rows",
    "monthly_rows",
    "record_row",
    "sheet_title",
]
