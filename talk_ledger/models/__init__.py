"""
Data Models Package

This package contains all Pydantic models used in Talk Ledger.
All data flowing through the system must conform to these schemas.
"""

from talk_ledger.models.transaction import (
    UNKNOWN_MONTH,
    Category,
    CategoryTotal,
    Currency,
    ExtractionResult,
    LedgerTotals,
    PaymentMethod,
    TransactionFactors,
    TransactionFields,
    TransactionRecord,
    TransactionType,
    ValidationIssue,
)
from talk_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Transaction models
    "UNKNOWN_MONTH",
    "Category",
    "CategoryTotal",
    "Currency",
    "ExtractionResult",
    "LedgerTotals",
    "PaymentMethod",
    "TransactionFactors",
    "TransactionFields",
    "TransactionRecord",
    "TransactionType",
    "ValidationIssue",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
