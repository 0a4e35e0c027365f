"""
Audit Logger

DESIGN DECISION: Every mutation attempt is logged, whatever its outcome.
This provides:
1. Complete traceability of balance changes
2. A visible difference between user errors and defects
3. A record of what the store accepted or refused

The audit logger:
- Is async so it can await a storage backend
- Gracefully handles failures (a broken audit store never fails a mutation)
- Supports correlation IDs to trace the events of one mutation
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from finstate.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from finstate.services.storage import AuditStorageInterface


# Configure structlog for local logging
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
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit storage backend (for persistence), when one is given
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("finstate.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity == AuditSeverity.CRITICAL:
            self._logger.critical("audit_event", **log_dict)
        elif event.severity == AuditSeverity.ERROR:
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_entity_created(
        self,
        entity_type: str,
        entity_id: Optional[int],
        correlation_id: UUID,
        details: Optional[dict] = None,
    ) -> None:
        event = AuditEventBuilder.entity_created(
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            details=details,
        )
        await self.log(event)

    async def log_entity_updated(
        self,
        entity_type: str,
        entity_id: Optional[int],
        correlation_id: UUID,
        changed_fields: list[str],
    ) -> None:
        event = AuditEventBuilder.entity_updated(
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            changed_fields=changed_fields,
        )
        await self.log(event)

    async def log_entity_deleted(
        self,
        entity_type: str,
        entity_id: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.entity_deleted(
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_loan_payment(
        self,
        loan_id: int,
        account_id: int,
        amount: str,
        remaining_balance: str,
        correlation_id: UUID,
    ) -> None:
        """Log a loan payment and the balance it left."""
        event = AuditEventBuilder.loan_payment_applied(
            loan_id=loan_id,
            account_id=account_id,
            amount=amount,
            remaining_balance=remaining_balance,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_goal_contribution(
        self,
        goal_id: int,
        amount: str,
        current_amount: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.goal_contribution_applied(
            goal_id=goal_id,
            amount=amount,
            current_amount=current_amount,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_bill_paid(
        self,
        bill_id: int,
        account_id: int,
        amount: str,
        next_due_date: Optional[str],
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.bill_paid(
            bill_id=bill_id,
            account_id=account_id,
            amount=amount,
            next_due_date=next_due_date,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_validation_rejected(
        self,
        operation: str,
        entity_type: str,
        entity_id: Optional[int],
        reason: str,
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        """Log a user-correctable rejection."""
        event = AuditEventBuilder.validation_rejected(
            operation=operation,
            entity_type=entity_type,
            entity_id=entity_id,
            reason=reason,
            issues=issues,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_invariant_violated(
        self,
        operation: str,
        entity_type: str,
        entity_id: Optional[int],
        violation: str,
        correlation_id: UUID,
    ) -> None:
        """Log a defect: a state that must never exist was produced."""
        event = AuditEventBuilder.invariant_violated(
            operation=operation,
            entity_type=entity_type,
            entity_id=entity_id,
            violation=violation,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_store_rejected(
        self,
        operation: str,
        entity_type: str,
        entity_id: Optional[int],
        reason: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.store_rejected(
            operation=operation,
            entity_type=entity_type,
            entity_id=entity_id,
            reason=reason,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_store_error(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.store_error(
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_snapshot_refreshed(self, counts: dict[str, int]) -> None:
        await self.log(AuditEventBuilder.snapshot_refreshed(counts))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a mutation and pass it through every
    event that mutation produces.
    """
    return uuid4()
