"""
Main Orchestrator for Talk Ledger

This module ties together all the components and defines the
end-to-end flows for:
1. Analyze (sentence → relay → extraction → validation → append)
2. Manual entry and edits (form → reconciliation → append/update)
3. Summary and export (ledger → aggregates / workbook / Google Sheets)

DESIGN DECISION: The orchestrator enforces the boundaries:
- An analysis either appends every extracted record or none
- Relay and format failures leave the ledger untouched
- Every user action is audited under one correlation id
"""

from datetime import date
from typing import Callable, MutableSequence, Optional, Union
from uuid import UUID

import structlog
from pydantic import ValidationError as SettingsValidationError

from talk_ledger.agents import ExtractionAgent, ExtractionError
from talk_ledger.audit import AuditLogger, create_correlation_id
from talk_ledger.config import Settings, get_settings
from talk_ledger.ledger import LedgerStore, RecordEdit, changed_fields
from talk_ledger.models.transaction import CategoryTotal, LedgerTotals, TransactionRecord
from talk_ledger.relay import ClassifierRelay, GeminiRelay, RelayClient, RelayError, UpstreamError
from talk_ledger.services.export import (
    ExportError,
    GoogleSheetsLedgerExporter,
    XlsxLedgerExporter,
)
from talk_ledger.services.storage import JsonFileKeyValueStore, NotFoundError


logger = structlog.get_logger(__name__)


class LedgerFlow:
    """
    Orchestrates every user action against the ledger.

    Flow (analyze):
    1. Audit the request
    2. Extract → relay call + contract validation (no ledger access)
    3. Turn each extracted transaction into a record carrying the input text
    4. Append the whole batch in one write

    Anything failing before step 4 leaves the ledger exactly as it was.
    """

    def __init__(
        self,
        agent: ExtractionAgent,
        store: LedgerStore,
        audit_logger: Optional[AuditLogger] = None,
        anchor_date: Optional[Callable[[], date]] = None,
        breakdown_limit: Optional[int] = None,
        sheets_exporter: Optional[GoogleSheetsLedgerExporter] = None,
    ):
        self._agent = agent
        self._store = store
        self._audit_logger = audit_logger
        self._anchor_date = anchor_date or date.today
        self._breakdown_limit = breakdown_limit
        self._sheets_exporter = sheets_exporter

    @property
    def store(self) -> LedgerStore:
        return self._store

    def today(self) -> date:
        return self._anchor_date()

    async def analyze(
        self,
        text: str,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[list[TransactionRecord], list[str]]:
        """
        Analyze one sentence and append the transactions it describes.

        Returns:
            (appended_records, warnings)
            appended_records is in the order the classifier segmented the
            input, and is also the order they now appear at the ledger head.

        Raises:
            RelayError subclasses (validation, configuration, upstream)
            ExtractionError if the classifier payload is unusable
            PersistenceError if the ledger could not be written
        """
        correlation_id = correlation_id or create_correlation_id()

        if self._audit_logger:
            self._audit_logger.log_extraction_requested(text or "", correlation_id)

        try:
            result = await self._agent.extract(text, self.today())
        except (RelayError, ExtractionError) as e:
            if self._audit_logger:
                if isinstance(e, UpstreamError):
                    self._audit_logger.log_external_service_error(
                        service="gemini",
                        status_code=e.status_code,
                        error_message=str(e),
                        correlation_id=correlation_id,
                    )
                self._audit_logger.log_extraction_failed(e, correlation_id)
            logger.warning("analyze_failed", error_type=type(e).__name__, error=str(e))
            raise

        if self._audit_logger:
            self._audit_logger.log_extraction_completed(len(result.transactions), correlation_id)
            flagged = [
                issue.model_dump() for issue in result.issues
                if issue.severity == "warning"
            ]
            if flagged:
                self._audit_logger.log_validation_warnings(flagged, correlation_id)

        records = [
            TransactionRecord.from_fields(fields, original_text=text)
            for fields in result.transactions
        ]
        self._store.extend(records)

        if self._audit_logger:
            for record in records:
                self._audit_logger.log_record_appended(
                    record_id=record.id,
                    amount=record.amount,
                    transaction_type=record.type.value,
                    correlation_id=correlation_id,
                )

        return records, result.warnings

    def add_manual(
        self,
        edit: RecordEdit,
        correlation_id: Optional[UUID] = None,
    ) -> TransactionRecord:
        """Append a record typed in by the user (no original text)."""
        correlation_id = correlation_id or create_correlation_id()
        record = TransactionRecord.from_fields(edit.to_fields())
        self._store.append(record)

        if self._audit_logger:
            self._audit_logger.log_record_appended(
                record_id=record.id,
                amount=record.amount,
                transaction_type=record.type.value,
                correlation_id=correlation_id,
                manual=True,
            )
        return record

    def edit(
        self,
        record_id: Union[UUID, str],
        edit: RecordEdit,
        correlation_id: Optional[UUID] = None,
    ) -> TransactionRecord:
        """
        Replace the content of one record with the form values.

        Raises:
            NotFoundError: If the record does not exist
        """
        before = self._store.get(record_id)
        if before is None:
            raise NotFoundError(f"Record not found: {record_id}")

        updated = self._store.update(before.id, edit.to_fields())

        if self._audit_logger:
            self._audit_logger.log_record_updated(
                record_id=updated.id,
                changed_fields=changed_fields(before, updated),
                correlation_id=correlation_id or create_correlation_id(),
            )
        return updated

    def summary(self) -> tuple[LedgerTotals, list[CategoryTotal]]:
        """(totals, top expense categories) over the current ledger."""
        return self._store.totals(), self._store.category_breakdown(self._breakdown_limit)

    def export_xlsx(self) -> bytes:
        """The ledger as an .xlsx workbook."""
        records = self._store.records()
        exporter = XlsxLedgerExporter(records)
        data = exporter.to_bytes()
        if self._audit_logger:
            self._audit_logger.log_export_generated("xlsx", len(records), exporter.sheet_count)
        return data

    def publish_to_sheets(self) -> int:
        """
        Mirror the ledger into Google Sheets.

        Raises:
            ExportError: If Google Sheets is not configured or unreachable
        """
        if self._sheets_exporter is None:
            raise ExportError("Google Sheets export is not configured")

        records = self._store.records()
        try:
            sheet_count = self._sheets_exporter.publish(records)
        except ExportError as e:
            if self._audit_logger:
                self._audit_logger.log_error(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    details={"target": "google_sheets"},
                )
            raise
        if self._audit_logger:
            self._audit_logger.log_export_generated("google_sheets", len(records), sheet_count)
        return sheet_count


def create_relay(settings: Settings) -> ClassifierRelay:
    """A RelayClient when a deployed relay is configured, else a direct GeminiRelay."""
    ledger_settings = settings.ledger
    gemini_settings = settings.gemini
    if ledger_settings.relay_url:
        return RelayClient(
            ledger_settings.relay_url,
            timeout_seconds=gemini_settings.request_timeout_seconds,
        )
    return GeminiRelay(gemini_settings)


def create_app_components(
    settings: Optional[Settings] = None,
    audit_sink: Optional[MutableSequence] = None,
) -> LedgerFlow:
    """
    Factory function to create the application's LedgerFlow.

    Args:
        settings: Settings to use (defaults to get_settings())
        audit_sink: Optional sequence (list or bounded deque) that collects audit events

    Returns:
        LedgerFlow backed by the configured JSON storage file
    """
    settings = settings or get_settings()
    ledger_settings = settings.ledger
    audit_logger = AuditLogger(audit_sink)

    store = LedgerStore(
        JsonFileKeyValueStore(ledger_settings.storage_path),
        storage_key=ledger_settings.storage_key,
        audit_logger=audit_logger,
    )

    sheets_exporter = None
    try:
        sheets_exporter = GoogleSheetsLedgerExporter(settings.google_sheets)
    except SettingsValidationError as e:
        # Sheets publishing is optional
        logger.info("google_sheets_not_configured", error_count=e.error_count())

    return LedgerFlow(
        agent=ExtractionAgent(create_relay(settings)),
        store=store,
        audit_logger=audit_logger,
        anchor_date=ledger_settings.anchor_date,
        breakdown_limit=ledger_settings.breakdown_limit,
        sheets_exporter=sheets_exporter,
    )
