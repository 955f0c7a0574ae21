"""Tests for the export projection, the xlsx writer and the Google Sheets publisher."""

from datetime import date, datetime, timezone
from io import BytesIO
from unittest.mock import MagicMock

import gspread
import pytest
from google.auth.exceptions import RefreshError
from openpyxl import load_workbook

from talk_ledger.config import GoogleSheetsSettings
from talk_ledger.models.transaction import TransactionRecord
from talk_ledger.services.export import (
    LEDGER_COLUMNS,
    MONTH_COLUMNS,
    ExportError,
    GoogleSheetsLedgerExporter,
    SheetsConnectionError,
    XlsxLedgerExporter,
    ledger_rows,
    monthly_rows,
    sheet_title,
)


def api_error(code: int) -> gspread.exceptions.APIError:
    response = MagicMock()
    response.json.return_value = {
        "error": {"code": code, "message": "Quota exceeded", "status": "RESOURCE_EXHAUSTED"},
    }
    return gspread.exceptions.APIError(response)


@pytest.fixture
def records(make_record, make_fields):
    """May, March and an undatable record, in ledger (newest first) order."""
    may = make_record(original_text="점심 만원")
    march = make_record(original_text="3월 교통비", amount=1400, category="교통", transaction_date=date(2024, 3, 2))
    unknown = TransactionRecord(**make_fields(transaction_date=None).model_dump(), created_at=None)
    return [may, unknown, march]


@pytest.fixture
def sheets_settings(tmp_path) -> GoogleSheetsSettings:
    credentials = tmp_path / "credentials.json"
    credentials.write_text("{}", encoding="utf-8")
    return GoogleSheetsSettings(
        credentials_path=str(credentials),
        spreadsheet_id="sheet-123",
        _env_file=None,
    )


class TestProjection:
    """Tests for ledger_rows, monthly_rows and sheet_title."""

    def test_ledger_rows(self, make_record, make_fields):
        record = make_record().replace_fields(make_fields(
            merchant="김밥천국",
            factors={"keywords": ["점심", "김밥"], "payment_method": "카드", "participants": ["민수", "지영"]},
        ))

        row = dict(zip(LEDGER_COLUMNS, ledger_rows([record])[0]))

        assert row["date"] == "2024-05-10"
        assert row["type"] == "expense"
        assert row["amount"] == 10000
        assert row["merchant"] == "김밥천국"
        assert row["keywords"] == "점심, 김밥"
        assert row["participants"] == "민수, 지영"
        assert row["originalText"] == "점심 만원"
        assert row["createdAt"].startswith("2024-05-10T03:00:00")

    def test_missing_values_are_blank(self, make_record):
        row = dict(zip(LEDGER_COLUMNS, ledger_rows([make_record(amount=None, transaction_date=None)])[0]))
        assert row["amount"] == ""
        assert row["date"] == ""

    def test_monthly_rows_ordering(self, records):
        """Test chronological buckets with unknown last, reduced columns."""
        months = monthly_rows(records)
        assert list(months) == ["2024-03", "2024-05", "unknown"]
        assert all(len(row) == len(MONTH_COLUMNS) for rows in months.values() for row in rows)
        assert months["2024-03"][0][MONTH_COLUMNS.index("category")] == "교통"

    def test_monthly_rows_keep_ledger_order(self, make_record):
        first = make_record(amount=1)
        second = make_record(amount=2)
        rows = monthly_rows([first, second])["2024-05"]
        assert [row[MONTH_COLUMNS.index("amount")] for row in rows] == [1, 2]

    def test_sheet_title_truncated(self):
        assert sheet_title("2024-05") == "2024-05"
        assert len(sheet_title("가" * 40)) == 31

    def test_empty_ledger(self):
        assert ledger_rows([]) == []
        assert monthly_rows([]) == {}


class TestXlsxExport:
    """Tests for XlsxLedgerExporter."""

    def test_workbook_sheets(self, records):
        """Test the Ledger sheet plus one sheet per month."""
        exporter = XlsxLedgerExporter(records)
        wb = load_workbook(BytesIO(exporter.to_bytes()))

        assert wb.sheetnames == ["Ledger", "2024-03", "2024-05", "unknown"]
        assert exporter.sheet_count == 4

        ledger = wb["Ledger"]
        assert [cell.value for cell in ledger[1]] == LEDGER_COLUMNS
        assert ledger.max_row == 1 + len(records)
        assert [cell.value for cell in wb["2024-05"][1]] == MONTH_COLUMNS

    def test_control_characters_are_dropped(self, make_record):
        """Test that pasted control characters do not break the export."""
        record = make_record(original_text="점심\x0b만원")
        wb = load_workbook(BytesIO(XlsxLedgerExporter([record]).to_bytes()))

        ledger = wb["Ledger"]
        column = LEDGER_COLUMNS.index("originalText") + 1
        assert ledger.cell(row=2, column=column).value == "점심만원"

    def test_leading_equals_stays_text(self, make_record, make_fields):
        """Test that text starting with "=" is written as a string, not a formula."""
        record = make_record(original_text="=1+1 점심").replace_fields(make_fields(merchant="=HYPERLINK(1)"))
        wb = load_workbook(BytesIO(XlsxLedgerExporter([record]).to_bytes()))

        ledger = wb["Ledger"]
        text_cell = ledger.cell(row=2, column=LEDGER_COLUMNS.index("originalText") + 1)
        merchant_cell = ledger.cell(row=2, column=LEDGER_COLUMNS.index("merchant") + 1)
        assert text_cell.data_type == "s"
        assert text_cell.value == "=1+1 점심"
        assert merchant_cell.data_type == "s"
        assert merchant_cell.value == "=HYPERLINK(1)"

    def test_empty_ledger_has_header_only(self):
        wb = load_workbook(BytesIO(XlsxLedgerExporter([]).to_bytes()))
        assert wb.sheetnames == ["Ledger"]
        assert wb["Ledger"].max_row == 1

    def test_write_uses_dated_filename(self, tmp_path, records):
        target = XlsxLedgerExporter(records).write(tmp_path / "exports", today=date(2024, 5, 10))
        assert target.name == "talk_ledger_2024-05-10.xlsx"
        assert target.exists()


class TestGoogleSheetsExport:
    """Tests for GoogleSheetsLedgerExporter with a mocked gspread client."""

    def test_publish_creates_and_replaces_sheets(self, sheets_settings, records):
        client = MagicMock()
        spreadsheet = client.open_by_key.return_value
        spreadsheet.worksheet.side_effect = gspread.WorksheetNotFound("missing")
        created = {}

        def add_worksheet(title, rows, cols):
            created[title] = MagicMock()
            return created[title]

        spreadsheet.add_worksheet.side_effect = add_worksheet

        count = GoogleSheetsLedgerExporter(sheets_settings, client=client).publish(records)

        assert count == 4
        client.open_by_key.assert_called_once_with("sheet-123")
        assert list(created) == ["Ledger", "2024-03", "2024-05", "unknown"]
        ledger_sheet = created["Ledger"]
        ledger_sheet.clear.assert_called_once()
        values = ledger_sheet.update.call_args.kwargs["values"]
        assert values[0] == LEDGER_COLUMNS
        assert len(values) == 1 + len(records)

    def test_publish_reuses_existing_sheet(self, sheets_settings, make_record):
        client = MagicMock()
        existing = client.open_by_key.return_value.worksheet.return_value

        GoogleSheetsLedgerExporter(sheets_settings, client=client).publish([make_record()])

        client.open_by_key.return_value.add_worksheet.assert_not_called()
        assert existing.clear.call_count == 2

    def test_spreadsheet_not_found(self, sheets_settings):
        client = MagicMock()
        client.open_by_key.side_effect = gspread.SpreadsheetNotFound("nope")
        with pytest.raises(SheetsConnectionError):
            GoogleSheetsLedgerExporter(sheets_settings, client=client).publish([])

    def test_missing_credentials_file(self, tmp_path):
        with pytest.warns(UserWarning):
            settings = GoogleSheetsSettings(
                credentials_path=str(tmp_path / "missing.json"),
                spreadsheet_id="sheet-123",
                _env_file=None,
            )
        with pytest.raises(SheetsConnectionError):
            GoogleSheetsLedgerExporter(settings).connect()

    def test_rejected_write_raises_export_error(self, sheets_settings, make_record):
        client = MagicMock()
        client.open_by_key.return_value.worksheet.return_value.update.side_effect = api_error(429)

        with pytest.raises(ExportError) as exc_info:
            GoogleSheetsLedgerExporter(sheets_settings, client=client).publish([make_record()])

        assert isinstance(exc_info.value.__cause__, gspread.exceptions.APIError)

    def test_refused_credentials_raise_connection_error(self, sheets_settings, monkeypatch):
        monkeypatch.setattr(
            "talk_ledger.services.export.google_sheets.Credentials.from_service_account_file",
            MagicMock(),
        )
        monkeypatch.setattr(
            "talk_ledger.services.export.google_sheets.gspread.authorize",
            MagicMock(side_effect=RefreshError("invalid_grant")),
        )

        with pytest.raises(SheetsConnectionError):
            GoogleSheetsLedgerExporter(sheets_settings).publish([])
