"""
Derived State Models

Everything in this module is COMPUTED from entity fields and handed to the
presentation layer. Nothing here is ever sent back to the store.

Percentages are carried twice: the raw value (unclamped, because 130% of a
budget is meaningful) and a display value clamped to [0, 100] for progress
bars.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from finstate.models.entities import (
    Account,
    BillStatus,
    Budget,
    Frequency,
    Goal,
    Loan,
    LoanStatus,
    RecurringObligation,
)


class UrgencyBucket(str, Enum):
    """How close a date is to today."""
    OVERDUE = "overdue"
    DUE_TODAY = "due_today"
    DUE_SOON = "due_soon"
    DUE_THIS_WEEK = "due_this_week"
    SCHEDULED = "scheduled"


class BudgetStatus(str, Enum):
    ON_TRACK = "on_track"
    WARNING = "warning"
    OVER_BUDGET = "over_budget"


class GoalStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    NEAR_TARGET = "near_target"
    COMPLETED = "completed"


class DueUrgency(BaseModel):
    """Days until a date and the bucket those days fall in."""
    model_config = ConfigDict(frozen=True)

    days_until: int = Field(
        ...,
        description="Whole calendar days from today (negative when past)"
    )
    bucket: UrgencyBucket


# =============================================================================
# PER-ENTITY STATE
# =============================================================================

class LoanState(BaseModel):
    model_config = ConfigDict(frozen=True)

    loan: Loan
    progress_percentage: Decimal
    display_percentage: Decimal
    status: LoanStatus
    payment_urgency: Optional[DueUrgency] = None


class BudgetState(BaseModel):
    model_config = ConfigDict(frozen=True)

    budget: Budget
    percentage: Decimal
    display_percentage: Decimal
    status: BudgetStatus
    remaining: Decimal = Field(
        ...,
        description="budgeted - spent (negative when over budget)"
    )


class GoalState(BaseModel):
    model_config = ConfigDict(frozen=True)

    goal: Goal
    progress_percentage: Decimal
    display_percentage: Decimal
    is_completed: bool
    status: GoalStatus
    remaining: Decimal = Field(
        ...,
        description="Amount still to save (never below zero)"
    )
    deadline_urgency: Optional[DueUrgency] = None


class BillState(BaseModel):
    model_config = ConfigDict(frozen=True)

    bill: RecurringObligation
    status: BillStatus
    urgency: Optional[DueUrgency] = None


# =============================================================================
# AGGREGATES
# =============================================================================

class BudgetTotals(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_budgeted: Decimal
    total_spent: Decimal
    total_remaining: Decimal = Field(
        ...,
        description="budgeted - spent across budgets (may be negative)"
    )
    budget_count: int = 0


class GoalTotals(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_target: Decimal
    total_saved: Decimal
    total_remaining: Decimal = Field(
        ...,
        description="target - saved across goals (signed; clamp for display)"
    )
    goal_count: int = 0
    completed_count: int = 0

    @property
    def remaining_for_display(self) -> Decimal:
        """Remaining amount clamped at zero."""
        return max(self.total_remaining, Decimal("0.00"))


class LoanTotals(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_to_pay: Decimal = Field(
        ...,
        description="Remaining balance of borrowed loans (liability)"
    )
    total_to_receive: Decimal = Field(
        ...,
        description="Remaining balance of lent loans (asset)"
    )
    borrowed_count: int = 0
    lent_count: int = 0


class BillTotals(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: Decimal
    bill_count: int = 0
    frequency: Optional[Frequency] = None


class AccountTotals(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_balance: Decimal = Field(
        ...,
        description="Signed sum of balances (credit accounts subtract)"
    )
    account_count: int = 0
    kind_count: int = 0
    top_account: Optional[Account] = None


class DashboardSummary(BaseModel):
    """All dashboard totals, computed from one snapshot."""
    model_config = ConfigDict(frozen=True)

    accounts: AccountTotals
    budgets: BudgetTotals
    goals: GoalTotals
    loans: LoanTotals
    upcoming_installments: Decimal
    bills_by_frequency: dict[str, BillTotals] = Field(default_factory=dict)
    bills_total: BillTotals


class DashboardState(BaseModel):
    """Per-entity derived states plus totals, all as of one `today`."""
    model_config = ConfigDict(frozen=True)

    today: date
    loans: list[LoanState] = Field(default_factory=list)
    budgets: list[BudgetState] = Field(default_factory=list)
    goals: list[GoalState] = Field(default_factory=list)
    bills: list[BillState] = Field(default_factory=list)
    summary: DashboardSummary
