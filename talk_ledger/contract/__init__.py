"""Extraction contract: classifier instructions and deterministic helpers."""

from talk_ledger.contract.korean_numbers import parse_korean_amount
from talk_ledger.contract.prompt import EXPENSE_CUES, INCOME_CUES, build_system_prompt
from talk_ledger.contract.relative_dates import resolve_relative_date

__all__ = [
    "EXPENSE_CUES",
    "INCOME_CUES",
    "build_system_prompt",
    "parse_korean_amount",
    "resolve_relative_date",
]
