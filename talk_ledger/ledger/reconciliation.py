"""
Reconciliation: user edits of ledger records

A RecordEdit holds exactly what the user typed into the edit form, one
string per mutable field. to_fields() turns it into the TransactionFields
that replace the record's content wholesale:

- amount / confidence: parsed as numbers; anything unreadable becomes None
- keywords / participants: split on commas, trimmed, empties dropped, order kept
- type / currency: values outside the vocabulary become unknown / UNKNOWN
- date: YYYY-MM-DD or blank; anything else becomes None

Nothing here raises on bad input, and no stale value survives an edit.
"""

import math
from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict

from talk_ledger.models.transaction import (
    Currency,
    TransactionFactors,
    TransactionFields,
    TransactionRecord,
    TransactionType,
)


def parse_number_text(text: Optional[str]) -> Optional[float]:
    """Read a user-entered number ("9,500", " 0.8 "); None when unreadable."""
    if text is None:
        return None
    cleaned = text.strip().replace(",", "")
    if not cleaned:
        return None
    try:
        value = float(cleaned)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def split_list_text(text: Optional[str]) -> list[str]:
    """Comma-separated text to an ordered list of non-empty tokens."""
    if not text:
        return []
    return [token.strip() for token in text.split(",") if token.strip()]


def join_list(items: list[str]) -> str:
    return ", ".join(items)


def format_number(value: Optional[float]) -> str:
    if value is None:
        return ""
    return str(int(value)) if float(value).is_integer() else str(value)


class RecordEdit(BaseModel):
    """Form state for editing (or manually creating) a record."""
    model_config = ConfigDict(str_strip_whitespace=True)

    type: str = TransactionType.UNKNOWN.value
    amount: str = ""
    currency: str = Currency.KRW.value
    category: str = ""
    merchant: str = ""
    date: str = ""
    memo: str = ""
    confidence: str = ""
    keywords: str = ""
    payment_method: str = ""
    participants: str = ""

    @classmethod
    def from_record(cls, record: TransactionRecord) -> "RecordEdit":
        """Pre-fill the form from an existing record."""
        return cls(
            type=record.type.value,
            amount=format_number(record.amount),
            currency=record.currency.value,
            category=record.category,
            merchant=record.merchant,
            date=record.transaction_date.isoformat() if record.transaction_date else "",
            memo=record.memo,
            confidence=format_number(record.confidence),
            keywords=join_list(record.factors.keywords),
            payment_method=record.factors.payment_method,
            participants=join_list(record.factors.participants),
        )

    def to_fields(self) -> TransactionFields:
        """Parse the form into the replacement content of a record."""
        try:
            transaction_type = TransactionType(self.type.lower())
        except ValueError:
            transaction_type = TransactionType.UNKNOWN

        try:
            currency = Currency(self.currency.upper())
        except ValueError:
            currency = Currency.UNKNOWN

        try:
            transaction_date = date.fromisoformat(self.date) if self.date else None
        except ValueError:
            transaction_date = None

        return TransactionFields(
            type=transaction_type,
            amount=parse_number_text(self.amount),
            currency=currency,
            category=self.category,
            merchant=self.merchant,
            transaction_date=transaction_date,
            memo=self.memo,
            confidence=parse_number_text(self.confidence),
            factors=TransactionFactors(
                keywords=split_list_text(self.keywords),
                payment_method=self.payment_method,
                participants=split_list_text(self.participants),
            ),
        )


def changed_fields(before: TransactionRecord, after: TransactionRecord) -> list[str]:
    """Names of the content fields that differ between two versions of a record."""
    old = before.content().model_dump(by_alias=True)
    new = after.content().model_dump(by_alias=True)
    names = []
    for key in old:
        if key == "factors":
            for factor in old["factors"]:
                if old["factors"][factor] != new["factors"][factor]:
                    names.append(f"factors.{factor}")
        elif old[key] != new[key]:
            names.append(key)
    return names
