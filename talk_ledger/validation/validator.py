"""
Extraction Validation

The classifier's output is untrusted. Each candidate object goes through
field-by-field coercion into a typed TransactionFields, and every
correction is reported as a ValidationIssue:

- error:   the candidate cannot become a record at all (not an object)
- warning: a value was out of range or unusable and was replaced
- info:    a value was recognisable but not in canonical form and was converted

IMPORTANT: Validation never invents data. A value that cannot be read
becomes null/unknown, never a guessed default.
"""

import math
from datetime import date
from typing import Any, Optional

from talk_ledger.contract import parse_korean_amount, resolve_relative_date
from talk_ledger.models.transaction import (
    Category,
    Currency,
    ExtractionResult,
    PaymentMethod,
    TransactionFactors,
    TransactionFields,
    TransactionType,
    ValidationIssue,
)


TYPE_ALIASES = {
    "수입": TransactionType.INCOME,
    "입금": TransactionType.INCOME,
    "지출": TransactionType.EXPENSE,
    "출금": TransactionType.EXPENSE,
}

CURRENCY_ALIASES = {
    "원": Currency.KRW,
    "₩": Currency.KRW,
    "WON": Currency.KRW,
    "$": Currency.USD,
    "달러": Currency.USD,
    "DOLLAR": Currency.USD,
}

CATEGORY_LABELS = {c.value for c in Category}


class TransactionValidator:
    """
    Turns raw classifier candidates into typed transactions.

    Stateless apart from the anchor date passed to validate().
    """

    def validate(self, candidates: list[Any], today: date) -> ExtractionResult:
        """
        Validate every candidate.

        Args:
            candidates: Decoded classifier array (any JSON values)
            today: Anchor for relative dates the classifier left unresolved

        Returns:
            ExtractionResult with one TransactionFields per valid candidate
            and every issue found. Callers must treat has_errors as fatal.
        """
        transactions: list[TransactionFields] = []
        issues: list[ValidationIssue] = []

        for index, candidate in enumerate(candidates):
            if not isinstance(candidate, dict):
                issues.append(ValidationIssue(
                    field="transaction",
                    issue_type="invalid_format",
                    message=f"Candidate {index} is not a JSON object",
                    severity="error",
                    candidate_index=index,
                ))
                continue

            fields, candidate_issues = self._coerce(candidate, index, today)
            transactions.append(fields)
            issues.extend(candidate_issues)

        return ExtractionResult(transactions=transactions, issues=issues)

    def _coerce(
        self,
        raw: dict,
        index: int,
        today: date,
    ) -> tuple[TransactionFields, list[ValidationIssue]]:
        issues: list[ValidationIssue] = []

        def issue(field: str, issue_type: str, message: str, severity: str) -> None:
            issues.append(ValidationIssue(
                field=field,
                issue_type=issue_type,
                message=message,
                severity=severity,
                candidate_index=index,
            ))

        transaction_type = self._coerce_type(raw.get("type"), issue)
        amount = self._coerce_amount(raw.get("amount"), issue)
        currency = self._coerce_currency(raw.get("currency"), issue)
        transaction_date = self._coerce_date(raw.get("date"), today, issue)
        confidence = self._coerce_confidence(raw.get("confidence"), issue)

        category = _text(raw.get("category"))
        if category and category not in CATEGORY_LABELS:
            issue(
                "category", "uncategorized_label",
                f"Category '{category}' is not one of the standard labels",
                "info",
            )

        if transaction_type != TransactionType.UNKNOWN and amount is None:
            issue(
                "amount", "missing",
                f"{transaction_type.value} without an amount",
                "warning",
            )

        fields = TransactionFields(
            type=transaction_type,
            amount=amount,
            currency=currency,
            category=category,
            merchant=_text(raw.get("merchant")),
            transaction_date=transaction_date,
            memo=_text(raw.get("memo")),
            confidence=confidence,
            factors=self._coerce_factors(raw.get("factors"), issue),
        )
        return fields, issues

    # -------------------------------------------------------------------------
    # Field coercions
    # -------------------------------------------------------------------------

    def _coerce_type(self, value: Any, issue) -> TransactionType:
        if value is None or value == "":
            return TransactionType.UNKNOWN
        text = str(value).strip()
        try:
            return TransactionType(text.lower())
        except ValueError:
            pass
        if text in TYPE_ALIASES:
            issue("type", "coerced", f"Type '{text}' read as {TYPE_ALIASES[text].value}", "info")
            return TYPE_ALIASES[text]
        issue("type", "invalid_value", f"Unknown type '{text}'", "warning")
        return TransactionType.UNKNOWN

    def _coerce_amount(self, value: Any, issue) -> Optional[float]:
        if value is None or value == "":
            return None

        if isinstance(value, bool):
            issue("amount", "invalid_value", "Amount is a boolean", "warning")
            return None

        if isinstance(value, (int, float)):
            try:
                amount = float(value)
            except OverflowError:
                issue("amount", "invalid_value", "Amount is too large", "warning")
                return None
        elif isinstance(value, str):
            parsed = parse_korean_amount(value)
            if parsed is None:
                issue("amount", "invalid_format", f"Amount '{value}' is not a number", "warning")
                return None
            issue("amount", "coerced", f"Amount '{value}' read as {parsed}", "info")
            amount = float(parsed)
        else:
            issue("amount", "invalid_value", "Amount has an unsupported type", "warning")
            return None

        if not math.isfinite(amount):
            issue("amount", "invalid_value", "Amount is not finite", "warning")
            return None

        if amount < 0:
            # Kept as given; the ledger sums it like any other amount.
            issue("amount", "negative_amount", f"Amount {amount:g} is negative", "warning")

        return amount

    def _coerce_currency(self, value: Any, issue) -> Currency:
        if value is None or value == "":
            return Currency.UNKNOWN
        text = str(value).strip().upper()
        try:
            return Currency(text)
        except ValueError:
            pass
        if text in CURRENCY_ALIASES:
            return CURRENCY_ALIASES[text]
        issue("currency", "invalid_value", f"Unknown currency '{value}'", "warning")
        return Currency.UNKNOWN

    def _coerce_date(self, value: Any, today: date, issue) -> Optional[date]:
        if value is None or value == "":
            return None
        text = str(value).strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
        resolved = resolve_relative_date(text, today)
        if resolved is None:
            issue("date", "invalid_format", f"Date '{text}' could not be read", "warning")
            return None
        issue("date", "coerced", f"Date '{text}' resolved to {resolved.isoformat()}", "info")
        return resolved

    def _coerce_confidence(self, value: Any, issue) -> Optional[float]:
        if value is None or value == "" or isinstance(value, bool):
            return None
        try:
            confidence = float(value)
        except (TypeError, ValueError, OverflowError):
            issue("confidence", "invalid_format", f"Confidence '{value}' is not a number", "warning")
            return None
        if not math.isfinite(confidence):
            issue("confidence", "invalid_value", "Confidence is not finite", "warning")
            return None
        if confidence < 0.0 or confidence > 1.0:
            clamped = min(max(confidence, 0.0), 1.0)
            issue(
                "confidence", "out_of_range",
                f"Confidence {confidence:g} outside [0, 1], clamped to {clamped:g}",
                "warning",
            )
            return clamped
        return confidence

    def _coerce_factors(self, value: Any, issue) -> TransactionFactors:
        if value is None:
            return TransactionFactors(payment_method=PaymentMethod.UNSPECIFIED.value)
        if not isinstance(value, dict):
            issue("factors", "invalid_format", "Factors is not an object", "warning")
            return TransactionFactors(payment_method=PaymentMethod.UNSPECIFIED.value)

        return TransactionFactors(
            keywords=_ordered_set(value.get("keywords")),
            payment_method=_text(value.get("payment_method")) or PaymentMethod.UNSPECIFIED.value,
            participants=_ordered_set(value.get("participants")),
        )


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _ordered_set(value: Any) -> list[str]:
    """List of non-empty strings, first occurrence wins."""
    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, list):
        items = value
    else:
        return []

    seen: list[str] = []
    for item in items:
        if item is None:
            continue
        token = str(item).strip()
        if token and token not in seen:
            seen.append(token)
    return seen
