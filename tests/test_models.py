"""
Tests for Talk Ledger models

Test strategy:
1. Unit tests for individual components (models, validators, parsers)
2. Integration tests for flows (with a stubbed classifier)
3. No real API calls in tests (use mocks and httpx.MockTransport)
"""

from datetime import date
from uuid import uuid4

import pytest

from talk_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from talk_ledger.models.transaction import (
    Currency,
    ExtractionResult,
    TransactionFactors,
    TransactionFields,
    TransactionRecord,
    TransactionType,
    ValidationIssue,
)


class TestTransactionModels:
    """Tests for transaction-related Pydantic models."""

    def test_fields_defaults_are_unknown(self):
        """Test that an empty TransactionFields carries no invented values."""
        fields = TransactionFields()
        assert fields.type == TransactionType.UNKNOWN
        assert fields.amount is None
        assert fields.currency == Currency.UNKNOWN
        assert fields.transaction_date is None
        assert fields.factors.keywords == []

    def test_date_accepts_alias_and_field_name(self):
        """Test that 'date' (stored key) and transaction_date both populate."""
        by_alias = TransactionFields.model_validate({"date": "2024-05-10"})
        by_name = TransactionFields(transaction_date=date(2024, 5, 10))
        assert by_alias.transaction_date == by_name.transaction_date == date(2024, 5, 10)

    def test_amount_rejects_infinity(self):
        """Test that non-finite amounts are rejected."""
        with pytest.raises(ValueError):
            TransactionFields(amount=float("inf"))

    def test_strings_are_stripped(self):
        """Test that whitespace is stripped from text fields."""
        fields = TransactionFields(merchant="  스타벅스  ", factors=TransactionFactors(payment_method=" 카드 "))
        assert fields.merchant == "스타벅스"
        assert fields.factors.payment_method == "카드"

    def test_storage_dict_uses_persisted_keys(self, make_record):
        """Test that the stored JSON shape uses camelCase identity keys."""
        data = make_record().to_storage_dict()
        assert set(data) == {
            "id", "createdAt", "originalText", "type", "amount", "currency",
            "category", "merchant", "date", "memo", "confidence", "factors",
        }
        assert data["date"] == "2024-05-10"
        assert data["type"] == "expense"
        assert set(data["factors"]) == {"keywords", "payment_method", "participants"}

    def test_storage_dict_round_trip(self, make_record):
        """Test that a stored record validates back to an equal record."""
        record = make_record()
        assert TransactionRecord.model_validate(record.to_storage_dict()) == record

    def test_from_fields_creates_fresh_identity(self, make_fields):
        """Test that each new record gets its own id."""
        fields = make_fields()
        first = TransactionRecord.from_fields(fields, original_text="a")
        second = TransactionRecord.from_fields(fields, original_text="a")
        assert first.id != second.id
        assert first.created_at is not None

    def test_replace_fields_keeps_identity(self, make_record, make_fields):
        """Test that replacing content never touches id, createdAt or originalText."""
        record = make_record(original_text="점심 만원")
        updated = record.replace_fields(make_fields(amount=12000, category="카페/음료"))
        assert updated.id == record.id
        assert updated.created_at == record.created_at
        assert updated.original_text == "점심 만원"
        assert updated.amount == 12000
        assert updated.category == "카페/음료"

    def test_content_excludes_identity(self, make_record):
        """Test that content() returns only the mutable part."""
        content = make_record().content()
        assert isinstance(content, TransactionFields)
        assert not isinstance(content, TransactionRecord)


class TestExtractionResult:
    """Tests for ExtractionResult helpers."""

    def test_warnings_and_errors(self):
        """Test that warnings lists warning messages and has_errors sees errors."""
        result = ExtractionResult(issues=[
            ValidationIssue(field="amount", issue_type="coerced", message="info", severity="info"),
            ValidationIssue(field="amount", issue_type="negative_amount", message="neg", severity="warning"),
        ])
        assert result.warnings == ["neg"]
        assert not result.has_errors

        result.issues.append(
            ValidationIssue(field="transaction", issue_type="invalid_format", message="bad", severity="error")
        )
        assert result.has_errors

    def test_issue_rejects_unknown_severity(self):
        """Test that severity is restricted."""
        with pytest.raises(ValueError):
            ValidationIssue(field="x", issue_type="y", message="z", severity="fatal")


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.RECORD_APPENDED,
            description="Record appended",
        )
        assert event.event_type == AuditEventType.RECORD_APPENDED
        assert event.severity == AuditSeverity.INFO
        assert event.event_id is not None

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        record_id = uuid4()
        event = AuditEvent(
            event_type=AuditEventType.RECORD_UPDATED,
            entity_type="record",
            entity_id=record_id,
            description="User edited 1 field(s)",
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "record_updated"
        assert log_dict["entity_id"] == str(record_id)

    def test_builder_extraction_failed(self):
        """Test the extraction failed event builder."""
        correlation_id = uuid4()
        event = AuditEventBuilder.extraction_failed(
            error_type="ConfigurationError",
            error_message="GEMINI_API_KEY missing",
            correlation_id=correlation_id,
        )
        assert event.event_type == AuditEventType.EXTRACTION_FAILED
        assert event.correlation_id == correlation_id
        assert event.error_message == "GEMINI_API_KEY missing"

    def test_builder_record_updated(self):
        """Test the record updated event builder."""
        event = AuditEventBuilder.record_updated(uuid4(), ["amount", "category"], None)
        assert event.is_user_action
        assert event.details["changed_fields"] == ["amount", "category"]
