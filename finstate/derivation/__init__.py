"""Per-entity derived state."""

from finstate.derivation.calculator import (
    bill_status,
    budget_percentage,
    budget_remaining,
    budget_status,
    derive_bill,
    derive_budget,
    derive_goal,
    derive_loan,
    due_urgency,
    goal_deadline_urgency,
    goal_is_completed,
    goal_progress,
    goal_remaining,
    goal_status,
    loan_progress,
    loan_status,
)

__all__ = [
    "bill_status",
    "budget_percentage",
    "budget_remaining",
    "budget_status",
    "derive_bill",
    "derive_budget",
    "derive_goal",
    "derive_loan",
    "due_urgency",
    "goal_deadline_urgency",
    "goal_is_completed",
    "goal_progress",
    "goal_remaining",
    "goal_status",
    "loan_progress",
    "loan_status",
]
