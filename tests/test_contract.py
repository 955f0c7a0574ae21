"""Tests for the extraction contract helpers: amounts, dates and the prompt."""

from datetime import date

import pytest

from talk_ledger.contract import build_system_prompt, parse_korean_amount, resolve_relative_date
from talk_ledger.models.transaction import Category


class TestKoreanAmounts:
    """Tests for parse_korean_amount."""

    @pytest.mark.parametrize("text,expected", [
        ("만오천", 15000),
        ("2만5천", 25000),
        ("2만 5천원", 25000),
        ("3만원", 30000),
        ("1,500", 1500),
        ("3.5k", 3500),
        ("15K", 15000),
        ("20,000+5,000", 25000),
        ("커피 5천원", 5000),
        ("오늘 점심 만원", 10000),
        ("천이백", 1200),
        ("1억2천만", 120000000),
    ])
    def test_parses_amount_expressions(self, text, expected):
        """Test the amount forms the classifier is instructed to read."""
        assert parse_korean_amount(text) == expected

    @pytest.mark.parametrize("text", ["점심", "오늘", "", "   ", None])
    def test_no_numeric_cue_is_none(self, text):
        """Test that nothing is guessed without a numeric cue."""
        assert parse_korean_amount(text) is None

    @pytest.mark.parametrize("text,expected", [
        ("사과 3개 2천원", 2000),
        ("2명이서 3만원", 30000),
        ("커피 2잔 $7.5", 7.5),
        ("3인분 만오천", 15000),
    ])
    def test_prefers_the_priced_number(self, text, expected):
        """Test that a count next to the price is not read as the amount."""
        assert parse_korean_amount(text) == expected

    def test_fraction_is_kept(self):
        """Test that non-integral values stay floats."""
        assert parse_korean_amount("4.99") == 4.99


class TestRelativeDates:
    """Tests for resolve_relative_date with a Friday anchor (2024-05-10)."""

    @pytest.mark.parametrize("text,expected", [
        ("오늘", date(2024, 5, 10)),
        ("어제", date(2024, 5, 9)),
        ("그제", date(2024, 5, 8)),
        ("그저께 저녁", date(2024, 5, 8)),
        ("내일", date(2024, 5, 11)),
        ("모레", date(2024, 5, 12)),
        ("3일 전", date(2024, 5, 7)),
        ("이틀 전", date(2024, 5, 8)),
        ("5월 3일", date(2024, 5, 3)),
        ("2024-04-30", date(2024, 4, 30)),
        ("이번 주 월요일", date(2024, 5, 6)),
        ("지난주 금요일", date(2024, 5, 3)),
        ("다음 주 월요일", date(2024, 5, 13)),
        ("수요일", date(2024, 5, 8)),
        ("금요일", date(2024, 5, 10)),
    ])
    def test_resolves_against_anchor(self, text, expected, today):
        """Test relative expressions resolve against the explicit anchor."""
        assert resolve_relative_date(text, today) == expected

    def test_no_cue_is_none(self, today):
        """Test that text without a date cue resolves to None."""
        assert resolve_relative_date("점심 만원", today) is None

    def test_impossible_calendar_date_is_none(self, today):
        """Test that 2월 30일 does not become a date."""
        assert resolve_relative_date("2월 30일", today) is None


class TestSystemPrompt:
    """Tests for the rendered classifier instruction."""

    def test_contains_anchor_and_vocabulary(self, today):
        """Test that the prompt carries the anchor date and the closed vocabularies."""
        prompt = build_system_prompt(today)
        assert "2024-05-10" in prompt
        for category in Category:
            assert category.value in prompt
        assert "JSON" in prompt
