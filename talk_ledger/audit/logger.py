"""
Audit Logger

Every significant action in the system is logged:
1. Each analyze request, with its outcome
2. Each record appended or edited
3. Recovered storage failures and rolled-back writes
4. Exports

The audit logger never raises: a logging failure must not break
the ledger. Correlation IDs tie together the events of one user action.
"""

import logging
from typing import MutableSequence, Optional
from uuid import UUID, uuid4

import structlog

from talk_ledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(ensure_ascii=False)
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output through the stdlib root logger at `level`."""
    logging.basicConfig(format="%(message)s", level=level.upper())
    logging.getLogger().setLevel(level.upper())


class AuditLogger:
    """
    Central audit logging service.

    Events are written as structured JSON log lines. When a `sink` sequence
    is given, events are also appended to it (the Streamlit app keeps a
    bounded deque of recent history there; tests pass a list).
    """

    def __init__(self, sink: Optional[MutableSequence[AuditEvent]] = None):
        self._sink = sink
        self._logger = structlog.get_logger("talk_ledger.audit")

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._sink) if self._sink is not None else []

    def log(self, event: AuditEvent) -> None:
        """Log an audit event."""
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._sink is not None:
            self._sink.append(event)

    def log_extraction_requested(self, text: str, correlation_id: Optional[UUID]) -> None:
        self.log(AuditEventBuilder.extraction_requested(text, correlation_id))

    def log_extraction_completed(
        self,
        transaction_count: int,
        correlation_id: Optional[UUID],
    ) -> None:
        self.log(AuditEventBuilder.extraction_completed(transaction_count, correlation_id))

    def log_extraction_failed(
        self,
        error: Exception,
        correlation_id: Optional[UUID],
    ) -> None:
        self.log(AuditEventBuilder.extraction_failed(
            error_type=type(error).__name__,
            error_message=str(error),
            correlation_id=correlation_id,
        ))

    def log_validation_warnings(
        self,
        issues: list[dict],
        correlation_id: Optional[UUID],
    ) -> None:
        self.log(AuditEventBuilder.validation_warnings(issues, correlation_id))

    def log_record_appended(
        self,
        record_id: UUID,
        amount: Optional[float],
        transaction_type: str,
        correlation_id: Optional[UUID],
        manual: bool = False,
    ) -> None:
        self.log(AuditEventBuilder.record_appended(
            record_id=record_id,
            amount=amount,
            transaction_type=transaction_type,
            correlation_id=correlation_id,
            manual=manual,
        ))

    def log_record_updated(
        self,
        record_id: UUID,
        changed_fields: list[str],
        correlation_id: Optional[UUID],
    ) -> None:
        self.log(AuditEventBuilder.record_updated(record_id, changed_fields, correlation_id))

    def log_ledger_load_recovered(self, storage_key: str, error_message: str) -> None:
        self.log(AuditEventBuilder.ledger_load_recovered(storage_key, error_message))

    def log_persistence_failed(self, storage_key: str, error_message: str) -> None:
        self.log(AuditEventBuilder.persistence_failed(storage_key, error_message))

    def log_export_generated(self, target: str, record_count: int, sheet_count: int) -> None:
        self.log(AuditEventBuilder.export_generated(target, record_count, sheet_count))

    def log_external_service_error(
        self,
        service: str,
        status_code: Optional[int],
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> None:
        self.log(AuditEventBuilder.external_service_error(
            service=service,
            status_code=status_code,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., one analyze click).
    """
    return uuid4()
