"""AI Agents package."""

from talk_ledger.agents.extraction_agent import (
    ExtractionAgent,
    ExtractionError,
    ExtractionFormatError,
    candidate_text,
    decode_candidates,
)

__all__ = [
    "ExtractionAgent",
    "ExtractionError",
    "ExtractionFormatError",
    "candidate_text",
    "decode_candidates",
]
