"""
Core Data Models for Talk Ledger

These models define the schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Serialize to exactly the JSON shape the ledger blob has always used
3. Separate the mutable content of a record from its identity

DESIGN DECISION: The persisted keys are camelCase for the identity fields
(createdAt, originalText) and snake_case inside "factors". Python code uses
snake_case attribute names throughout; aliases map between the two.
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction."""
    INCOME = "income"
    EXPENSE = "expense"
    UNKNOWN = "unknown"


class Currency(str, Enum):
    """Currencies the classifier may report."""
    KRW = "KRW"
    USD = "USD"
    UNKNOWN = "UNKNOWN"


class Category(str, Enum):
    """
    Closed set of short category labels.

    The record's category field stays free text (the user may type anything
    when editing); these are the labels the classifier is instructed to use.
    """
    FOOD = "식비"
    CAFE = "카페/음료"
    TRANSPORT = "교통"
    SHOPPING = "쇼핑"
    HEALTH = "의료/건강"
    CULTURE = "문화/여가"
    COMMUNICATION = "통신"
    SUBSCRIPTION = "구독"
    SALARY = "급여"
    ALLOWANCE = "용돈"
    REFUND = "환불"
    OTHER = "기타"


class PaymentMethod(str, Enum):
    """Closed vocabulary for factors.payment_method (free text is also accepted)."""
    CARD = "카드"
    CASH = "현금"
    BANK_TRANSFER = "계좌이체"
    KAKAO_PAY = "카카오페이"
    NAVER_PAY = "네이버페이"
    TOSS_PAY = "토스페이"
    UNSPECIFIED = "미상"


UNKNOWN_MONTH = "unknown"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# TRANSACTION MODELS
# =============================================================================

class TransactionFactors(BaseModel):
    """Secondary signals extracted alongside the main fields."""
    model_config = ConfigDict(str_strip_whitespace=True)

    keywords: list[str] = Field(
        default_factory=list,
        description="Ordered free-text tokens"
    )
    payment_method: str = Field(
        default="",
        description="Payment method label (see PaymentMethod)"
    )
    participants: list[str] = Field(
        default_factory=list,
        description="Ordered names of people involved"
    )


class TransactionFields(BaseModel):
    """
    The mutable content of a ledger record.

    This is what the classifier produces (after validation) and what a
    user edit replaces wholesale. Identity fields live on TransactionRecord.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
    )

    type: TransactionType = Field(
        default=TransactionType.UNKNOWN,
        description="income / expense / unknown"
    )
    amount: Optional[float] = Field(
        default=None,
        allow_inf_nan=False,
        description="Amount in the record's currency; None when not stated"
    )
    currency: Currency = Field(
        default=Currency.UNKNOWN,
        description="Currency code"
    )
    category: str = Field(
        default="",
        description="Short category label"
    )
    merchant: str = Field(
        default="",
        description="Vendor name; empty when not identified"
    )
    transaction_date: Optional[date] = Field(
        default=None,
        alias="date",
        description="Calendar date of the transaction; None when not stated"
    )
    memo: str = Field(
        default="",
        description="Short summary (about 15 characters by convention)"
    )
    confidence: Optional[float] = Field(
        default=None,
        allow_inf_nan=False,
        description="Classifier self-reported certainty"
    )
    factors: TransactionFactors = Field(
        default_factory=TransactionFactors
    )


class TransactionRecord(TransactionFields):
    """
    A single ledger entry.

    CRITICAL: id, created_at and original_text are set once at creation.
    Edits go through replace_fields(), which carries them over unchanged.
    """

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique record ID"
    )
    created_at: Optional[datetime] = Field(
        default_factory=utc_now,
        alias="createdAt",
        description="When the record was captured"
    )
    original_text: str = Field(
        default="",
        alias="originalText",
        description="Verbatim user input; empty for manual entries"
    )

    @classmethod
    def from_fields(
        cls,
        fields: TransactionFields,
        original_text: str = "",
        created_at: Optional[datetime] = None,
    ) -> "TransactionRecord":
        """Create a new record (fresh id) from validated content."""
        return cls(
            created_at=created_at or utc_now(),
            original_text=original_text,
            **fields.model_dump(),
        )

    def content(self) -> TransactionFields:
        """The mutable part of this record."""
        return TransactionFields(
            **self.model_dump(exclude={"id", "created_at", "original_text"})
        )

    def replace_fields(self, fields: TransactionFields) -> "TransactionRecord":
        """Return a copy with every mutable field replaced and identity kept."""
        return TransactionRecord(
            id=self.id,
            created_at=self.created_at,
            original_text=self.original_text,
            **fields.model_dump(),
        )

    def to_storage_dict(self) -> dict[str, Any]:
        """Convert to the JSON-compatible dict stored in the ledger blob."""
        return self.model_dump(mode="json", by_alias=True)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single problem found in a classifier candidate."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'out_of_range', 'coerced', 'invalid_format')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    candidate_index: Optional[int] = Field(
        default=None,
        ge=0,
        description="Position of the candidate in the classifier array"
    )


class ExtractionResult(BaseModel):
    """
    Validated output of one classifier call.

    transactions is ordered as the classifier segmented the input.
    """

    transactions: list[TransactionFields] = Field(default_factory=list)
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def warnings(self) -> list[str]:
        return [i.message for i in self.issues if i.severity == "warning"]

    @property
    def has_errors(self) -> bool:
        return any(issue.severity == "error" for issue in self.issues)


# =============================================================================
# AGGREGATE MODELS
# =============================================================================

class LedgerTotals(BaseModel):
    """Income, expense and balance over the whole ledger."""

    income: float = 0.0
    expense: float = 0.0
    balance: float = 0.0


class CategoryTotal(BaseModel):
    """Summed expense amount for one category."""

    category: str
    total: float
