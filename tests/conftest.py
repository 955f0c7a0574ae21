"""Shared fixtures: anchor date, in-memory storage, record and envelope factories."""

import json
from datetime import date, datetime, timezone
from typing import Any, Optional

import pytest

from talk_ledger.audit import AuditLogger
from talk_ledger.config import GeminiSettings
from talk_ledger.ledger import LedgerStore
from talk_ledger.models.transaction import (
    Currency,
    TransactionFactors,
    TransactionFields,
    TransactionRecord,
    TransactionType,
)
from talk_ledger.services.storage import InMemoryKeyValueStore, PersistenceError


ANCHOR = date(2024, 5, 10)


class FailingKeyValueStore(InMemoryKeyValueStore):
    """In-memory store whose writes can be switched to fail."""

    def __init__(self, initial=None):
        super().__init__(initial)
        self.fail_writes = False

    def set(self, key: str, value: str) -> None:
        if self.fail_writes:
            raise PersistenceError("disk full")
        super().set(key, value)


@pytest.fixture
def today() -> date:
    return ANCHOR


@pytest.fixture
def audit_events() -> list:
    return []


@pytest.fixture
def audit_logger(audit_events) -> AuditLogger:
    return AuditLogger(audit_events)


@pytest.fixture
def kv_store() -> FailingKeyValueStore:
    return FailingKeyValueStore()


@pytest.fixture
def ledger(kv_store, audit_logger) -> LedgerStore:
    return LedgerStore(kv_store, audit_logger=audit_logger)


@pytest.fixture
def gemini_settings() -> GeminiSettings:
    return GeminiSettings(api_key="test-key", max_attempts=1, _env_file=None)


@pytest.fixture
def make_fields():
    def _make(
        transaction_type: TransactionType = TransactionType.EXPENSE,
        amount: Optional[float] = 10000,
        category: str = "식비",
        transaction_date: Optional[date] = ANCHOR,
        **overrides: Any,
    ) -> TransactionFields:
        values = dict(
            type=transaction_type,
            amount=amount,
            currency=Currency.KRW,
            category=category,
            merchant="",
            transaction_date=transaction_date,
            memo="",
            confidence=0.9,
            factors=TransactionFactors(payment_method="카드"),
        )
        values.update(overrides)
        return TransactionFields(**values)
    return _make


@pytest.fixture
def make_record(make_fields):
    def _make(original_text: str = "점심 만원", **kwargs: Any) -> TransactionRecord:
        return TransactionRecord.from_fields(
            make_fields(**kwargs),
            original_text=original_text,
            created_at=datetime(2024, 5, 10, 3, 0, tzinfo=timezone.utc),
        )
    return _make


@pytest.fixture
def make_envelope():
    """Wrap a payload the way Gemini's generateContent returns it."""
    def _make(payload: Any) -> dict:
        text = payload if isinstance(payload, str) else json.dumps(payload, ensure_ascii=False)
        return {
            "candidates": [
                {"content": {"role": "model", "parts": [{"text": text}]}, "finishReason": "STOP"}
            ]
        }
    return _make


@pytest.fixture
def two_event_payload() -> list[dict]:
    """Classifier answer for "오늘 점심 만원, 커피 5천원"."""
    return [
        {
            "type": "expense",
            "amount": 10000,
            "currency": "KRW",
            "category": "식비",
            "merchant": "",
            "date": "2024-05-10",
            "memo": "점심 식사",
            "confidence": 0.92,
            "factors": {"keywords": ["점심"], "payment_method": "미상", "participants": []},
        },
        {
            "type": "expense",
            "amount": 5000,
            "currency": "KRW",
            "category": "카페/음료",
            "merchant": "",
            "date": "2024-05-10",
            "memo": "커피",
            "confidence": 0.9,
            "factors": {"keywords": ["커피"], "payment_method": "미상", "participants": []},
        },
    ]
