"""
Extraction Agent

Turns one user sentence into validated transactions:

1. Relay the text to the classifier (raw envelope back)
2. Pull the model's JSON text out of the envelope
3. Decode it into an array of candidate objects
4. Validate each candidate into a typed TransactionFields

CRITICAL BOUNDARIES:
- The agent NEVER writes to the ledger; the orchestrator does that
- Any failure in steps 2-4 fails the whole request (no partial result)
- Relay errors propagate unchanged
"""

import json
import re
from datetime import date
from typing import Any, Optional

import structlog

from talk_ledger.models.transaction import ExtractionResult
from talk_ledger.relay import ClassifierRelay
from talk_ledger.validation import TransactionValidator


logger = structlog.get_logger(__name__)

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class ExtractionError(Exception):
    """Base exception for extraction errors."""
    pass


class ExtractionFormatError(ExtractionError):
    """The classifier's payload is empty or not the expected JSON shape."""
    pass


def candidate_text(envelope: dict) -> str:
    """
    Concatenate candidates[0].content.parts[*].text of a Gemini envelope.

    Raises ExtractionFormatError when there is no text at all.
    """
    candidates = envelope.get("candidates") if isinstance(envelope, dict) else None
    if not candidates:
        feedback = envelope.get("promptFeedback") if isinstance(envelope, dict) else None
        reason = feedback.get("blockReason") if isinstance(feedback, dict) else None
        if reason:
            raise ExtractionFormatError(f"분류기가 요청을 거부했습니다 ({reason}).")
        raise ExtractionFormatError("분류기 응답이 비어 있습니다.")

    first = candidates[0] if isinstance(candidates, list) else None
    content = first.get("content") if isinstance(first, dict) else None
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        raise ExtractionFormatError("분류기 응답에 content.parts가 없습니다.")

    text = "".join(
        part.get("text", "") for part in parts
        if isinstance(part, dict) and isinstance(part.get("text"), str)
    ).strip()
    if not text:
        raise ExtractionFormatError("분류기 응답이 비어 있습니다.")
    return text


def decode_candidates(payload: str) -> list[Any]:
    """
    Decode the model text into a list of candidate values.

    A bare object is accepted as a one-element list. Markdown code
    fences around the JSON are stripped.
    """
    text = payload.strip()
    fenced = _FENCE_RE.match(text)
    if fenced:
        text = fenced.group(1)

    try:
        decoded = json.loads(text)
    except json.JSONDecodeError as e:
        raise ExtractionFormatError(f"분류기 응답을 JSON으로 해석할 수 없습니다: {e.msg}")
    except ValueError as e:
        # e.g. an integer literal past the interpreter's digit limit
        raise ExtractionFormatError(f"분류기 응답을 JSON으로 해석할 수 없습니다: {e}")

    if isinstance(decoded, dict):
        return [decoded]
    if isinstance(decoded, list):
        return decoded
    raise ExtractionFormatError("분류기 응답이 JSON 배열이 아닙니다.")


class ExtractionAgent:
    """
    Agent for the analyze flow.

    RESPONSIBILITIES:
    - Call the classifier through a relay
    - Enforce the extraction contract on the answer

    BOUNDARIES:
    - NEVER persists data
    - NEVER fills in values the classifier did not give
    """

    def __init__(
        self,
        relay: ClassifierRelay,
        validator: Optional[TransactionValidator] = None,
    ):
        self._relay = relay
        self._validator = validator or TransactionValidator()

    async def extract(self, text: str, today: date) -> ExtractionResult:
        """
        Extract every transaction described in `text`.

        Args:
            text: The user's sentence
            today: Anchor date for relative dates

        Returns:
            ExtractionResult (possibly with zero transactions)

        Raises:
            RelayError subclasses from the relay
            ExtractionFormatError if the payload is unusable
        """
        envelope = await self._relay.forward(text, today)
        candidates = decode_candidates(candidate_text(envelope))

        result = self._validator.validate(candidates, today)
        if result.has_errors:
            messages = "; ".join(i.message for i in result.issues if i.severity == "error")
            raise ExtractionFormatError(f"분류기 응답 형식 오류: {messages}")

        logger.info(
            "extraction_validated",
            transactions=len(result.transactions),
            issues=len(result.issues),
        )
        return result
