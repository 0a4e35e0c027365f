"""Dashboard aggregation package."""

from finstate.aggregation.totals import (
    account_totals,
    active_loans,
    bill_totals,
    bill_totals_by_frequency,
    budget_totals,
    dashboard_summary,
    goal_totals,
    loan_totals,
    upcoming_installments_total,
)

__all__ = [
    "account_totals",
    "active_loans",
    "bill_totals",
    "bill_totals_by_frequency",
    "budget_totals",
    "dashboard_summary",
    "goal_totals",
    "loan_totals",
    "upcoming_installments_total",
]
