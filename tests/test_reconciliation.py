"""Tests for user edits: form parsing and wholesale field replacement."""

from datetime import date

import pytest

from talk_ledger.ledger import RecordEdit, changed_fields, parse_number_text, split_list_text
from talk_ledger.models.transaction import Currency, TransactionType


class TestParsing:
    """Tests for the form text helpers."""

    @pytest.mark.parametrize("text,expected", [
        ("9500", 9500.0),
        ("9,500", 9500.0),
        (" 0.8 ", 0.8),
        ("-3000", -3000.0),
    ])
    def test_numbers(self, text, expected):
        assert parse_number_text(text) == expected

    @pytest.mark.parametrize("text", ["", "   ", "만원", "abc", "inf", "nan", None])
    def test_unreadable_numbers_are_none(self, text):
        """Test that unreadable or non-finite input becomes None, never an error."""
        assert parse_number_text(text) is None

    def test_split_list(self):
        """Test that tokens are trimmed, empties dropped and order kept."""
        assert split_list_text(" 점심, ,김밥 ,점심,") == ["점심", "김밥", "점심"]
        assert split_list_text("") == []


class TestRecordEdit:
    """Tests for RecordEdit.to_fields and from_record."""

    def test_from_record_round_trip(self, make_record):
        """Test that saving an untouched form leaves the content unchanged."""
        record = make_record()
        assert RecordEdit.from_record(record).to_fields() == record.content()

    def test_from_record_joins_lists(self, make_record, make_fields):
        record = make_record()
        record = record.replace_fields(make_fields(
            factors={"keywords": ["점심", "김밥"], "payment_method": "카드", "participants": ["민수"]},
        ))
        edit = RecordEdit.from_record(record)
        assert edit.keywords == "점심, 김밥"
        assert edit.participants == "민수"
        assert edit.amount == "10000"
        assert edit.date == "2024-05-10"

    def test_every_field_replaced(self):
        """Test that blank inputs clear values instead of keeping stale ones."""
        fields = RecordEdit(
            type="expense",
            amount="",
            currency="KRW",
            category="",
            merchant="",
            date="",
            memo="",
            confidence="",
        ).to_fields()

        assert fields.amount is None
        assert fields.confidence is None
        assert fields.transaction_date is None
        assert fields.category == ""
        assert fields.factors.keywords == []

    def test_unparseable_values_become_null(self):
        fields = RecordEdit(amount="많이", confidence="high", date="2024/05/10").to_fields()
        assert fields.amount is None
        assert fields.confidence is None
        assert fields.transaction_date is None

    def test_vocabulary_fallbacks(self):
        """Test that type and currency outside the vocabulary fall back to unknown."""
        fields = RecordEdit(type="transfer", currency="EUR").to_fields()
        assert fields.type == TransactionType.UNKNOWN
        assert fields.currency == Currency.UNKNOWN

    def test_values_parsed(self):
        fields = RecordEdit(
            type="INCOME",
            amount="3,000,000",
            currency="krw",
            category=" 급여 ",
            date="2024-05-25",
            keywords="월급, 보너스",
            payment_method="계좌이체",
            participants="",
        ).to_fields()

        assert fields.type == TransactionType.INCOME
        assert fields.amount == 3000000
        assert fields.currency == Currency.KRW
        assert fields.category == "급여"
        assert fields.transaction_date == date(2024, 5, 25)
        assert fields.factors.keywords == ["월급", "보너스"]
        assert fields.factors.payment_method == "계좌이체"


class TestChangedFields:
    """Tests for the edit diff used in audit events."""

    def test_reports_changed_names(self, make_record):
        before = make_record()
        edit = RecordEdit.from_record(before)
        edit.amount = "12000"
        edit.keywords = "저녁"
        after = before.replace_fields(edit.to_fields())

        assert changed_fields(before, after) == ["amount", "factors.keywords"]

    def test_no_changes(self, make_record):
        record = make_record()
        assert changed_fields(record, record) == []
