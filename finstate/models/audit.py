"""
Audit Models for the Finance State Engine

Every mutation attempt is logged, whatever its outcome.
This provides:
1. Complete traceability of all balance changes
2. A clear line between user errors and programming errors
3. Evidence of what the store accepted or refused

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Each mutation produces exactly one outcome event.
    """
    # Successful mutations
    ENTITY_CREATED = "entity_created"
    ENTITY_UPDATED = "entity_updated"
    ENTITY_DELETED = "entity_deleted"
    LOAN_PAYMENT_APPLIED = "loan_payment_applied"
    GOAL_CONTRIBUTION_APPLIED = "goal_contribution_applied"
    BILL_PAID = "bill_paid"

    # Rejections
    VALIDATION_REJECTED = "validation_rejected"
    STORE_REJECTED = "store_rejected"

    # Failures
    INVARIANT_VIOLATED = "invariant_violated"
    STORE_ERROR = "store_error"

    # Reads
    SNAPSHOT_REFRESHED = "snapshot_refreshed"


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
        description="Kind of entity (e.g., 'loan', 'account', 'goal')"
    )
    entity_id: Optional[int] = Field(
        default=None,
        description="Store id of the entity this event relates to"
    )

    # Correlation - ties the events of one mutation together
    correlation_id: Optional[UUID] = None

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
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
            "entity_id": self.entity_id,
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
        event = AuditEventBuilder.entity_created("loan", 7, correlation_id)
        event = AuditEventBuilder.loan_payment_applied(7, 3, "200.00", "800.00", correlation_id)
    """

    @staticmethod
    def entity_created(
        entity_type: str,
        entity_id: Optional[int],
        correlation_id: UUID,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_CREATED,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} created",
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def entity_updated(
        entity_type: str,
        entity_id: Optional[int],
        correlation_id: UUID,
        changed_fields: list[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_UPDATED,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} updated",
            details={"changed_fields": changed_fields},
            is_user_action=True,
        )

    @staticmethod
    def entity_deleted(
        entity_type: str,
        entity_id: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_DELETED,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} deleted",
            is_user_action=True,
        )

    @staticmethod
    def loan_payment_applied(
        loan_id: int,
        account_id: int,
        amount: str,
        remaining_balance: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOAN_PAYMENT_APPLIED,
            entity_type="loan",
            entity_id=loan_id,
            correlation_id=correlation_id,
            description=f"Loan payment of {amount} applied, {remaining_balance} remaining",
            details={
                "account_id": account_id,
                "amount": amount,
                "remaining_balance": remaining_balance,
            },
            is_user_action=True,
        )

    @staticmethod
    def goal_contribution_applied(
        goal_id: int,
        amount: str,
        current_amount: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_CONTRIBUTION_APPLIED,
            entity_type="goal",
            entity_id=goal_id,
            correlation_id=correlation_id,
            description=f"Added {amount} to goal",
            details={
                "amount": amount,
                "current_amount": current_amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def bill_paid(
        bill_id: int,
        account_id: int,
        amount: str,
        next_due_date: Optional[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BILL_PAID,
            entity_type="bill",
            entity_id=bill_id,
            correlation_id=correlation_id,
            description=f"Bill paid: {amount}",
            details={
                "account_id": account_id,
                "amount": amount,
                "next_due_date": next_due_date,
            },
            is_user_action=True,
        )

    @staticmethod
    def validation_rejected(
        operation: str,
        entity_type: str,
        entity_id: Optional[int],
        reason: str,
        issues: list[dict],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{operation} rejected with {len(issues)} issue(s)",
            details={
                "operation": operation,
                "issues": issues,
            },
            error_code=reason,
            is_user_action=True,
        )

    @staticmethod
    def invariant_violated(
        operation: str,
        entity_type: str,
        entity_id: Optional[int],
        violation: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INVARIANT_VIOLATED,
            severity=AuditSeverity.CRITICAL,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Invariant violated during {operation}",
            details={"operation": operation},
            error_code="invariant_violation",
            error_message=violation,
        )

    @staticmethod
    def store_rejected(
        operation: str,
        entity_type: str,
        entity_id: Optional[int],
        reason: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Store rejected {operation}, provisional state discarded",
            details={"operation": operation},
            error_code="store_rejected",
            error_message=reason,
        )

    @staticmethod
    def store_error(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"Store error during {operation}",
            details={"operation": operation},
            error_message=error_message,
            correlation_id=correlation_id,
        )

    @staticmethod
    def snapshot_refreshed(counts: dict[str, int]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_REFRESHED,
            severity=AuditSeverity.DEBUG,
            description="Snapshot reloaded from store",
            details={"counts": counts},
        )
