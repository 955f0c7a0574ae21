"""
Excel Workbook Export

Writes the projection as an .xlsx workbook:
1. "Ledger" - every record, every column
2. One sheet per month bucket - reduced columns
"""

from datetime import date
from io import BytesIO
from pathlib import Path
from typing import Any, Iterable, Optional

import structlog
from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from talk_ledger.models.transaction import TransactionRecord
from talk_ledger.services.export.projection import (
    LEDGER_COLUMNS,
    LEDGER_SHEET_TITLE,
    MONTH_COLUMNS,
    ledger_rows,
    monthly_rows,
    sheet_title,
)


logger = structlog.get_logger(__name__)

_HEADER_FONT = Font(bold=True, color="FFFFFF")
_HEADER_FILL = PatternFill(start_color="4F81BD", end_color="4F81BD", fill_type="solid")
_MAX_COLUMN_WIDTH = 60


def export_filename(today: date) -> str:
    return f"talk_ledger_{today.isoformat()}.xlsx"


class XlsxLedgerExporter:
    """
    Builds the workbook for a snapshot of the ledger.

    Usage:
        exporter = XlsxLedgerExporter(store.records())
        data = exporter.to_bytes()
    """

    def __init__(self, records: Iterable[TransactionRecord]):
        self._records = list(records)

    @property
    def sheet_count(self) -> int:
        return 1 + len(monthly_rows(self._records))

    def build(self) -> Workbook:
        wb = Workbook()

        ws = wb.active
        ws.title = LEDGER_SHEET_TITLE
        self._fill(ws, LEDGER_COLUMNS, ledger_rows(self._records))

        for key, rows in monthly_rows(self._records).items():
            self._fill(wb.create_sheet(sheet_title(key)), MONTH_COLUMNS, rows)

        return wb

    def to_bytes(self) -> bytes:
        output = BytesIO()
        self.build().save(output)
        return output.getvalue()

    def write(self, directory: Path, today: Optional[date] = None) -> Path:
        """Save as talk_ledger_YYYY-MM-DD.xlsx inside `directory`."""
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        target = directory / export_filename(today or date.today())
        target.write_bytes(self.to_bytes())
        logger.info("xlsx_written", path=str(target), records=len(self._records))
        return target

    def _fill(self, ws: Worksheet, columns: list[str], rows: list[list[Any]]) -> None:
        for col_idx, header in enumerate(columns, 1):
            cell = ws.cell(row=1, column=col_idx, value=header)
            cell.font = _HEADER_FONT
            cell.fill = _HEADER_FILL
            cell.alignment = Alignment(horizontal="center")

        for row_idx, row in enumerate(rows, 2):
            for col_idx, value in enumerate(row, 1):
                if isinstance(value, str):
                    cell = ws.cell(row=row_idx, column=col_idx, value=ILLEGAL_CHARACTERS_RE.sub("", value))
                    # Text is data; a leading "=" must not become a formula
                    cell.data_type = "s"
                else:
                    ws.cell(row=row_idx, column=col_idx, value=value)

        ws.freeze_panes = "A2"
        self._auto_width(ws, columns, rows)

    @staticmethod
    def _auto_width(ws: Worksheet, columns: list[str], rows: list[list[Any]]) -> None:
        for col_idx, header in enumerate(columns, 1):
            width = max(
                [len(str(header))] + [len(str(row[col_idx - 1])) for row in rows]
            )
            ws.column_dimensions[get_column_letter(col_idx)].width = min(width + 2, _MAX_COLUMN_WIDTH)
