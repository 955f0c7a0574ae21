"""Validation package."""

from talk_ledger.validation.validator import TransactionValidator

__all__ = ["TransactionValidator"]
