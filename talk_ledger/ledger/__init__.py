"""Ledger package: the record collection, its aggregates and user edits."""

from talk_ledger.ledger.reconciliation import (
    RecordEdit,
    changed_fields,
    parse_number_text,
    split_list_text,
)
from talk_ledger.ledger.store import (
    LedgerStore,
    compute_category_breakdown,
    compute_totals,
    month_key,
)

__all__ = [
    "LedgerStore",
    "RecordEdit",
    "changed_fields",
    "compute_category_breakdown",
    "compute_totals",
    "month_key",
    "parse_number_text",
    "split_list_text",
]
