"""
Ledger Store

The ordered collection of TransactionRecords (newest first), persisted as
one JSON array under a fixed key of a key-value store.

GUARANTEES:
- Records are never deleted; update() replaces content in place by id
- id, createdAt and originalText never change after creation
- Aggregates are computed from the live collection on every call
- The in-memory collection only changes after the write succeeded

Whole-collection read-modify-write on every mutation is fine for one
user's ledger (hundreds to low thousands of records).
"""

import json
from typing import Iterable, Optional, Union
from uuid import UUID

import structlog
from pydantic import ValidationError

from talk_ledger.audit import AuditLogger
from talk_ledger.config import DEFAULT_STORAGE_KEY
from talk_ledger.models.transaction import (
    UNKNOWN_MONTH,
    CategoryTotal,
    LedgerTotals,
    TransactionFields,
    TransactionRecord,
    TransactionType,
)
from talk_ledger.services.storage import (
    DuplicateError,
    KeyValueStoreInterface,
    NotFoundError,
    PersistenceError,
)


logger = structlog.get_logger(__name__)


def month_key(record: TransactionRecord) -> str:
    """
    YYYY-MM bucket of a record.

    Uses the transaction date when stated, else the capture date,
    else the "unknown" bucket.
    """
    if record.transaction_date is not None:
        return record.transaction_date.strftime("%Y-%m")
    if record.created_at is not None:
        return record.created_at.strftime("%Y-%m")
    return UNKNOWN_MONTH


def compute_totals(records: Iterable[TransactionRecord]) -> LedgerTotals:
    """Income and expense over records with a numeric amount; other types ignored."""
    income = 0.0
    expense = 0.0
    for record in records:
        if record.amount is None:
            continue
        if record.type == TransactionType.INCOME:
            income += record.amount
        elif record.type == TransactionType.EXPENSE:
            expense += record.amount
    return LedgerTotals(income=income, expense=expense, balance=income - expense)


def compute_category_breakdown(
    records: Iterable[TransactionRecord],
    limit: Optional[int] = None,
) -> list[CategoryTotal]:
    """Expense totals per category, largest first; ties keep first-seen order."""
    sums: dict[str, float] = {}
    for record in records:
        if record.type != TransactionType.EXPENSE or record.amount is None:
            continue
        sums[record.category] = sums.get(record.category, 0.0) + record.amount

    ranked = sorted(sums.items(), key=lambda item: -item[1])
    if limit is not None:
        ranked = ranked[:max(limit, 0)]
    return [CategoryTotal(category=category, total=total) for category, total in ranked]


class LedgerStore:
    """
    Append-only (modulo edits) ledger over a key-value store.

    Usage:
        store = LedgerStore(JsonFileKeyValueStore(path))
        store.append(record)
        store.totals().balance
    """

    def __init__(
        self,
        kv_store: KeyValueStoreInterface,
        storage_key: str = DEFAULT_STORAGE_KEY,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._kv = kv_store
        self._key = storage_key
        self._audit = audit_logger
        self._records: list[TransactionRecord] = self._load()

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def _recover(self, error_message: str) -> list[TransactionRecord]:
        logger.warning("ledger_load_recovered", storage_key=self._key, error=error_message)
        if self._audit:
            self._audit.log_ledger_load_recovered(self._key, error_message)
        return []

    def _load(self) -> list[TransactionRecord]:
        try:
            raw = self._kv.get(self._key)
        except PersistenceError as e:
            return self._recover(str(e))

        if raw is None:
            return []

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            return self._recover(f"Stored ledger is not valid JSON: {e}")
        if not isinstance(data, list):
            return self._recover("Stored ledger is not a JSON array")

        records: list[TransactionRecord] = []
        seen: set[UUID] = set()
        for index, item in enumerate(data):
            try:
                record = TransactionRecord.model_validate(item)
            except ValidationError as e:
                logger.warning("ledger_entry_skipped", index=index, error=str(e))
                continue
            if record.id in seen:
                logger.warning("ledger_duplicate_id_skipped", index=index, record_id=str(record.id))
                continue
            seen.add(record.id)
            records.append(record)
        return records

    def _persist(self, records: list[TransactionRecord]) -> None:
        """Write `records` and make them the live collection."""
        blob = json.dumps(
            [record.to_storage_dict() for record in records],
            ensure_ascii=False,
        )
        try:
            self._kv.set(self._key, blob)
        except PersistenceError as e:
            logger.error("ledger_persist_failed", storage_key=self._key, error=str(e))
            if self._audit:
                self._audit.log_persistence_failed(self._key, str(e))
            raise
        self._records = records

    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------

    def records(self) -> list[TransactionRecord]:
        """All records, newest first."""
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def get(self, record_id: Union[UUID, str]) -> Optional[TransactionRecord]:
        wanted = _as_uuid(record_id)
        if wanted is None:
            return None
        for record in self._records:
            if record.id == wanted:
                return record
        return None

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def append(self, record: TransactionRecord) -> TransactionRecord:
        """
        Insert `record` at the head and persist.

        Raises:
            DuplicateError: If a record with the same id exists
            PersistenceError: If the write fails (ledger unchanged)
        """
        if any(existing.id == record.id for existing in self._records):
            raise DuplicateError(f"Record already exists: {record.id}")
        self._persist([record] + self._records)
        return record

    def extend(self, records: list[TransactionRecord]) -> list[TransactionRecord]:
        """
        Insert a batch at the head in one write, keeping the batch's order.

        Either every record is stored or none is.

        Raises:
            DuplicateError: If any id already exists or repeats in the batch
            PersistenceError: If the write fails (ledger unchanged)
        """
        existing_ids = {record.id for record in self._records}
        batch_ids: set[UUID] = set()
        for record in records:
            if record.id in existing_ids or record.id in batch_ids:
                raise DuplicateError(f"Record already exists: {record.id}")
            batch_ids.add(record.id)
        if records:
            self._persist(list(records) + self._records)
        return list(records)

    def update(
        self,
        record_id: Union[UUID, str],
        fields: TransactionFields,
    ) -> TransactionRecord:
        """
        Replace every mutable field of one record and persist.

        Raises:
            NotFoundError: If no record has this id
            PersistenceError: If the write fails (ledger unchanged)
        """
        wanted = _as_uuid(record_id)
        for position, existing in enumerate(self._records):
            if existing.id == wanted:
                updated = existing.replace_fields(fields)
                records = list(self._records)
                records[position] = updated
                self._persist(records)
                return updated
        raise NotFoundError(f"Record not found: {record_id}")

    # -------------------------------------------------------------------------
    # Aggregates
    # -------------------------------------------------------------------------

    def totals(self) -> LedgerTotals:
        return compute_totals(self._records)

    def category_breakdown(self, limit: Optional[int] = None) -> list[CategoryTotal]:
        return compute_category_breakdown(self._records, limit)


def _as_uuid(value: Union[UUID, str]) -> Optional[UUID]:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None
