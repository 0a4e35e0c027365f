"""
Derivation Calculator

Pure functions from ONE entity's fields to its display state.

GUARANTEES:
- No side effects, no I/O, no shared state. Safe to call from anywhere,
  concurrently, on any snapshot.
- Total: zero or negative denominators give a defined sentinel (0 for
  percentages) instead of raising.
- Percentages are NOT clamped here. 130% of a budget is signal, not noise.
  Use `clamp_percentage` at display time.
"""

from datetime import date
from decimal import Decimal
from typing import Optional, Union

from finstate.classification import DEFAULT_RULES, ClassificationRules
from finstate.models.derived import (
    BillState,
    BudgetState,
    BudgetStatus,
    DueUrgency,
    GoalState,
    GoalStatus,
    LoanState,
    UrgencyBucket,
)
from finstate.models.entities import (
    BillStatus,
    Budget,
    Goal,
    Loan,
    LoanStatus,
    RecurringObligation,
)
from finstate.primitives import HUNDRED, ZERO, clamp_percentage, days_between

Number = Union[Decimal, int, float, str]

_PERCENT_ZERO = Decimal("0")


def _as_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _ratio_percent(numerator: Decimal, denominator: Decimal) -> Decimal:
    if denominator <= 0:
        return _PERCENT_ZERO
    return numerator / denominator * HUNDRED


# =============================================================================
# LOANS
# =============================================================================

def loan_progress(loan: Loan) -> Decimal:
    """Share of the original amount already repaid, in percent."""
    return _ratio_percent(
        loan.original_amount - loan.remaining_balance,
        loan.original_amount,
    )


def loan_status(loan: Loan, today: date) -> LoanStatus:
    """
    Paid Off when nothing remains, Overdue when the next payment date
    has passed, Active otherwise.
    """
    if loan.remaining_balance <= 0:
        return LoanStatus.PAID_OFF
    if loan.next_payment_date is not None and loan.next_payment_date < today:
        return LoanStatus.OVERDUE
    return LoanStatus.ACTIVE


# =============================================================================
# BUDGETS
# =============================================================================

def budget_percentage(budget: Budget) -> Decimal:
    """Spent as a percentage of budgeted (0 when nothing is budgeted)."""
    return _ratio_percent(budget.spent_amount, budget.budgeted_amount)


def budget_status(
    percentage: Number,
    rules: ClassificationRules = DEFAULT_RULES,
) -> BudgetStatus:
    """Classify budget usage. Monotonic in `percentage`."""
    value = _as_decimal(percentage)
    if value >= rules.budget_over_percent:
        return BudgetStatus.OVER_BUDGET
    if value >= rules.budget_warning_percent:
        return BudgetStatus.WARNING
    return BudgetStatus.ON_TRACK


def budget_remaining(budget: Budget) -> Decimal:
    """budgeted - spent. Negative when over budget."""
    return budget.budgeted_amount - budget.spent_amount


# =============================================================================
# GOALS
# =============================================================================

def goal_progress(goal: Goal) -> Decimal:
    """Saved as a percentage of target (0 when the target is 0)."""
    return _ratio_percent(goal.current_amount, goal.target_amount)


def goal_is_completed(goal: Goal) -> bool:
    """True exactly when the saved amount reaches a positive target."""
    return goal.target_amount > 0 and goal.current_amount >= goal.target_amount


def goal_remaining(goal: Goal) -> Decimal:
    """Amount still to save, never below zero."""
    return max(goal.target_amount - goal.current_amount, ZERO)


def goal_status(
    percentage: Number,
    rules: ClassificationRules = DEFAULT_RULES,
) -> GoalStatus:
    value = _as_decimal(percentage)
    if value >= HUNDRED:
        return GoalStatus.COMPLETED
    if value >= rules.goal_near_target_percent:
        return GoalStatus.NEAR_TARGET
    return GoalStatus.IN_PROGRESS


def goal_deadline_urgency(
    goal: Goal,
    today: date,
    rules: ClassificationRules = DEFAULT_RULES,
) -> Optional[DueUrgency]:
    if goal.target_date is None:
        return None
    return due_urgency(goal.target_date, today, rules)


# =============================================================================
# DUE DATES
# =============================================================================

def due_urgency(
    due: date,
    today: date,
    rules: ClassificationRules = DEFAULT_RULES,
) -> DueUrgency:
    """
    Bucket a due date relative to today.

    Calendar-date subtraction only: 2025-01-10 vs 2025-01-07 is 3 days,
    whatever the time of day.
    """
    days = days_between(today, due)
    if days < 0:
        bucket = UrgencyBucket.OVERDUE
    elif days == 0:
        bucket = UrgencyBucket.DUE_TODAY
    elif days <= rules.due_soon_days:
        bucket = UrgencyBucket.DUE_SOON
    elif days <= rules.due_this_week_days:
        bucket = UrgencyBucket.DUE_THIS_WEEK
    else:
        bucket = UrgencyBucket.SCHEDULED
    return DueUrgency(days_until=days, bucket=bucket)


def bill_status(bill: RecurringObligation, today: date) -> BillStatus:
    """Paid when marked paid, overdue when past due, scheduled otherwise."""
    if bill.is_paid:
        return BillStatus.PAID
    if bill.next_due_date is not None and bill.next_due_date < today:
        return BillStatus.OVERDUE
    return BillStatus.SCHEDULED


# =============================================================================
# VIEW BUILDERS
# =============================================================================

def derive_loan(
    loan: Loan,
    today: date,
    rules: ClassificationRules = DEFAULT_RULES,
) -> LoanState:
    progress = loan_progress(loan)
    status = loan_status(loan, today)
    urgency = None
    if loan.next_payment_date is not None and status != LoanStatus.PAID_OFF:
        urgency = due_urgency(loan.next_payment_date, today, rules)
    return LoanState(
        loan=loan,
        progress_percentage=progress,
        display_percentage=clamp_percentage(progress),
        status=status,
        payment_urgency=urgency,
    )


def derive_budget(
    budget: Budget,
    rules: ClassificationRules = DEFAULT_RULES,
) -> BudgetState:
    percentage = budget_percentage(budget)
    return BudgetState(
        budget=budget,
        percentage=percentage,
        display_percentage=clamp_percentage(percentage),
        status=budget_status(percentage, rules),
        remaining=budget_remaining(budget),
    )


def derive_goal(
    goal: Goal,
    today: date,
    rules: ClassificationRules = DEFAULT_RULES,
) -> GoalState:
    progress = goal_progress(goal)
    completed = goal_is_completed(goal)
    return GoalState(
        goal=goal,
        progress_percentage=progress,
        display_percentage=clamp_percentage(progress),
        is_completed=completed,
        status=GoalStatus.COMPLETED if completed else goal_status(progress, rules),
        remaining=goal_remaining(goal),
        deadline_urgency=None if completed else goal_deadline_urgency(goal, today, rules),
    )


def derive_bill(
    bill: RecurringObligation,
    today: date,
    rules: ClassificationRules = DEFAULT_RULES,
) -> BillState:
    status = bill_status(bill, today)
    urgency = None
    if bill.next_due_date is not None and status != BillStatus.PAID:
        urgency = due_urgency(bill.next_due_date, today, rules)
    return BillState(bill=bill, status=status, urgency=urgency)
