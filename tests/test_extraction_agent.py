"""Tests for the extraction agent and envelope decoding."""

import sys
from unittest.mock import AsyncMock, MagicMock

import pytest

from talk_ledger.agents import (
    ExtractionAgent,
    ExtractionFormatError,
    candidate_text,
    decode_candidates,
)
from talk_ledger.relay import ConfigurationError


def stub_relay(envelope=None, error=None):
    relay = MagicMock()
    relay.forward = AsyncMock(return_value=envelope, side_effect=error)
    return relay


class TestCandidateText:
    """Tests for pulling the model text out of a Gemini envelope."""

    def test_concatenates_parts(self):
        """Test that all text parts of the first candidate are joined."""
        envelope = {"candidates": [{"content": {"parts": [{"text": "[{\"a\""}, {"text": ": 1}]"}]}}]}
        assert candidate_text(envelope) == '[{"a": 1}]'

    def test_blocked_prompt(self):
        """Test that a safety block is reported with its reason."""
        with pytest.raises(ExtractionFormatError, match="SAFETY"):
            candidate_text({"promptFeedback": {"blockReason": "SAFETY"}})

    @pytest.mark.parametrize("envelope", [
        {},
        {"candidates": []},
        {"candidates": [{"content": {"parts": [{"text": "   "}]}}]},
        {"candidates": [{"finishReason": "MAX_TOKENS"}]},
    ])
    def test_empty_envelopes(self, envelope):
        """Test that envelopes without text are format errors."""
        with pytest.raises(ExtractionFormatError):
            candidate_text(envelope)


class TestDecodeCandidates:
    """Tests for decoding the model text."""

    def test_array(self):
        assert decode_candidates('[{"type": "expense"}]') == [{"type": "expense"}]

    def test_bare_object_is_one_element(self):
        """Test that a single object is accepted as a one-element array."""
        assert decode_candidates('{"type": "income"}') == [{"type": "income"}]

    def test_code_fence_stripped(self):
        """Test that markdown fences around the JSON are ignored."""
        assert decode_candidates('```json\n[]\n```') == []

    @pytest.mark.parametrize("payload", ["이건 JSON이 아님", "42", '"text"', "null"])
    def test_rejects_non_arrays(self, payload):
        """Test that non-JSON and scalar JSON are rejected."""
        with pytest.raises(ExtractionFormatError):
            decode_candidates(payload)

    @pytest.mark.skipif(
        not getattr(sys, "get_int_max_str_digits", lambda: 0)(),
        reason="no integer digit limit",
    )
    def test_integer_past_digit_limit_is_format_error(self):
        """Test that an absurdly long integer literal is a format error, not a crash."""
        payload = '[{"amount": ' + "9" * (sys.get_int_max_str_digits() + 1) + "}]"
        with pytest.raises(ExtractionFormatError):
            decode_candidates(payload)


class TestExtractionAgent:
    """Tests for ExtractionAgent.extract."""

    @pytest.mark.asyncio
    async def test_extracts_two_events(self, today, make_envelope, two_event_payload):
        """Test that one sentence with two events yields two transactions in order."""
        relay = stub_relay(make_envelope(two_event_payload))
        agent = ExtractionAgent(relay)

        result = await agent.extract("오늘 점심 만원, 커피 5천원", today)

        relay.forward.assert_awaited_once_with("오늘 점심 만원, 커피 5천원", today)
        assert [t.amount for t in result.transactions] == [10000, 5000]
        assert [t.category for t in result.transactions] == ["식비", "카페/음료"]

    @pytest.mark.asyncio
    async def test_non_json_payload(self, today, make_envelope):
        """Test that a non-JSON model answer is a format error."""
        agent = ExtractionAgent(stub_relay(make_envelope("죄송합니다, 이해하지 못했어요")))
        with pytest.raises(ExtractionFormatError):
            await agent.extract("점심 만원", today)

    @pytest.mark.asyncio
    async def test_non_object_element_fails_whole_request(self, today, make_envelope):
        """Test that one bad element fails the whole extraction."""
        agent = ExtractionAgent(stub_relay(make_envelope([{"type": "expense", "amount": 1}, 7])))
        with pytest.raises(ExtractionFormatError):
            await agent.extract("점심 만원", today)

    @pytest.mark.asyncio
    async def test_relay_errors_propagate(self, today):
        """Test that relay errors are not wrapped."""
        agent = ExtractionAgent(stub_relay(error=ConfigurationError("no key")))
        with pytest.raises(ConfigurationError):
            await agent.extract("점심 만원", today)
