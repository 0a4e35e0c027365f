"""
Mutation Request / Response Models

These are the only shapes that cross the boundary to the external store.
One MutationRequest per engine operation; the engine never batches.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from finstate.models.entities import (
    Account,
    EntityKind,
    Loan,
    RecurringObligation,
)


class MutationType(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    LOAN_PAYMENT = "loan_payment"
    GOAL_CONTRIBUTION = "goal_contribution"
    BILL_PAYMENT = "bill_payment"


class MutationRequest(BaseModel):
    """
    A validated, normalized change sent to the store.

    `payload` is JSON-safe: amounts are strings, dates are ISO strings.
    """

    request_id: UUID = Field(default_factory=uuid4)
    correlation_id: UUID
    operation: MutationType
    kind: EntityKind
    entity_id: Optional[int] = None
    payload: dict[str, Any] = Field(default_factory=dict)


class StoreResponse(BaseModel):
    """
    The store's authoritative answer to an accepted mutation.

    `records` holds the resulting state of every record the mutation
    touched, keyed by kind (a loan payment returns the loan AND the account).
    """

    request_id: UUID
    records: dict[EntityKind, list[dict[str, Any]]] = Field(default_factory=dict)
    deleted: dict[EntityKind, list[int]] = Field(default_factory=dict)

    def first(self, kind: EntityKind) -> Optional[dict[str, Any]]:
        rows = self.records.get(kind) or []
        return rows[0] if rows else None


class LoanPaymentResult(BaseModel):
    """Both sides of a loan payment, as confirmed by the store."""

    loan: Loan
    account: Account
    amount_paid: Decimal
    payment_date: date


class BillPaymentResult(BaseModel):
    """A paid bill and the account it was paid from."""

    bill: RecurringObligation
    account: Account
    amount_paid: Decimal
    payment_date: date
