"""
Export Projection

Flattens ledger records into spreadsheet rows. Writers (xlsx, Google
Sheets) consume these rows and never look at records directly.
"""

from typing import Any, Iterable

from talk_ledger.ledger.store import month_key
from talk_ledger.models.transaction import UNKNOWN_MONTH, TransactionRecord


LEDGER_SHEET_TITLE = "Ledger"

# Every field, for the full ledger sheet
LEDGER_COLUMNS = [
    "createdAt",
    "date",
    "type",
    "amount",
    "currency",
    "category",
    "merchant",
    "memo",
    "confidence",
    "keywords",
    "payment_method",
    "participants",
    "originalText",
]

# Reduced view for the per-month sheets
MONTH_COLUMNS = [
    "date",
    "type",
    "amount",
    "currency",
    "category",
    "merchant",
    "memo",
]

MAX_SHEET_TITLE_LENGTH = 31


def _cell(value: Any) -> Any:
    """Spreadsheet-safe cell value: None becomes an empty cell."""
    if value is None:
        return ""
    return value


def record_row(record: TransactionRecord) -> dict[str, Any]:
    """Every exportable column of one record."""
    return {
        "createdAt": record.created_at.isoformat() if record.created_at else "",
        "date": record.transaction_date.isoformat() if record.transaction_date else "",
        "type": record.type.value,
        "amount": _cell(record.amount),
        "currency": record.currency.value,
        "category": record.category,
        "merchant": record.merchant,
        "memo": record.memo,
        "confidence": _cell(record.confidence),
        "keywords": ", ".join(record.factors.keywords),
        "payment_method": record.factors.payment_method,
        "participants": ", ".join(record.factors.participants),
        "originalText": record.original_text,
    }


def ledger_rows(records: Iterable[TransactionRecord]) -> list[list[Any]]:
    """One row per record, in ledger order, columns as LEDGER_COLUMNS."""
    rows = []
    for record in records:
        row = record_row(record)
        rows.append([row[column] for column in LEDGER_COLUMNS])
    return rows


def monthly_rows(records: Iterable[TransactionRecord]) -> dict[str, list[list[Any]]]:
    """
    Rows grouped by month bucket, columns as MONTH_COLUMNS.

    Buckets are ordered chronologically with "unknown" last; rows inside
    a bucket keep ledger order.
    """
    buckets: dict[str, list[list[Any]]] = {}
    for record in records:
        row = record_row(record)
        buckets.setdefault(month_key(record), []).append(
            [row[column] for column in MONTH_COLUMNS]
        )

    ordered = sorted(key for key in buckets if key != UNKNOWN_MONTH)
    if UNKNOWN_MONTH in buckets:
        ordered.append(UNKNOWN_MONTH)
    return {key: buckets[key] for key in ordered}


def sheet_title(key: str) -> str:
    """Sheet name within the 31-character limit spreadsheets impose."""
    return key[:MAX_SHEET_TITLE_LENGTH]
