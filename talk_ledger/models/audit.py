"""
Audit Models for Talk Ledger

Every significant action in the system is logged for audit purposes:
1. Traceability of each extraction from input text to stored records
2. Debugging information when the classifier misbehaves
3. A history of user edits to previously extracted records

Audit events are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Extraction
    EXTRACTION_REQUESTED = "extraction_requested"
    EXTRACTION_COMPLETED = "extraction_completed"
    EXTRACTION_FAILED = "extraction_failed"
    VALIDATION_WARNINGS = "validation_warnings"

    # Ledger mutations
    RECORD_APPENDED = "record_appended"
    RECORD_UPDATED = "record_updated"

    # Persistence
    LEDGER_LOAD_RECOVERED = "ledger_load_recovered"
    PERSISTENCE_FAILED = "persistence_failed"

    # Export
    EXPORT_GENERATED = "export_generated"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'record', 'ledger', 'export')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - one user action (e.g. one analyze click)
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.extraction_requested(text, correlation_id)
        event = AuditEventBuilder.record_updated(record_id, changed, correlation_id)
    """

    @staticmethod
    def extraction_requested(
        text: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_REQUESTED,
            entity_type="extraction",
            correlation_id=correlation_id,
            description="Extraction requested",
            details={"text_length": len(text)},
            is_user_action=True,
        )

    @staticmethod
    def extraction_completed(
        transaction_count: int,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_COMPLETED,
            entity_type="extraction",
            correlation_id=correlation_id,
            description=f"Extraction returned {transaction_count} transaction(s)",
            details={"transaction_count": transaction_count},
        )

    @staticmethod
    def extraction_failed(
        error_type: str,
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="extraction",
            correlation_id=correlation_id,
            description="Extraction failed; ledger left unchanged",
            error_code=error_type,
            error_message=error_message,
        )

    @staticmethod
    def validation_warnings(
        issues: list[dict],
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_WARNINGS,
            severity=AuditSeverity.WARNING,
            entity_type="extraction",
            correlation_id=correlation_id,
            description=f"Classifier output needed {len(issues)} correction(s)",
            details={"issues": issues},
        )

    @staticmethod
    def record_appended(
        record_id: UUID,
        amount: Optional[float],
        transaction_type: str,
        correlation_id: Optional[UUID],
        manual: bool = False,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_APPENDED,
            entity_type="record",
            entity_id=record_id,
            correlation_id=correlation_id,
            description="Manual record added" if manual else "Extracted record appended",
            details={
                "amount": amount,
                "type": transaction_type,
                "manual": manual,
            },
            is_user_action=manual,
        )

    @staticmethod
    def record_updated(
        record_id: UUID,
        changed_fields: list[str],
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_UPDATED,
            entity_type="record",
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"User edited {len(changed_fields)} field(s)",
            details={"changed_fields": changed_fields},
            is_user_action=True,
        )

    @staticmethod
    def ledger_load_recovered(
        storage_key: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_LOAD_RECOVERED,
            severity=AuditSeverity.WARNING,
            entity_type="ledger",
            description="Stored ledger unreadable; started with an empty ledger",
            details={"storage_key": storage_key},
            error_message=error_message,
        )

    @staticmethod
    def persistence_failed(
        storage_key: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSISTENCE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="ledger",
            description="Ledger write failed; change rolled back",
            details={"storage_key": storage_key},
            error_message=error_message,
        )

    @staticmethod
    def export_generated(
        target: str,
        record_count: int,
        sheet_count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPORT_GENERATED,
            entity_type="export",
            description=f"Ledger exported to {target}",
            details={
                "target": target,
                "record_count": record_count,
                "sheet_count": sheet_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"System error: {error_type}",
            details=details or {},
            error_code=error_type,
            error_message=error_message,
        )

    @staticmethod
    def external_service_error(
        service: str,
        status_code: Optional[int],
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"External service error: {service}",
            details={
                "service": service,
                "status_code": status_code,
            },
            error_message=error_message,
        )
