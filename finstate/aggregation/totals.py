"""
Aggregation Engine

DESIGN DECISION: Aggregation is STATELESS and DETERMINISTIC.
Each function takes an explicit slice of entities and folds it into totals.
There is no cached global total anywhere; if a screen needs a total, it
passes the entities it has and gets the number back.

GUARANTEES:
- Order-independent: totals are plain Decimal sums.
- Tolerant: a record whose amount is missing or not a number contributes
  0 and the fold carries on. One bad row never blanks a dashboard.
- Relevance is the caller's job: functions sum what they are given
  (`active_loans` is provided for the common loan filter).

Inputs may be entity models or raw store mappings.
"""

from collections.abc import Iterable, Mapping
from datetime import date
from decimal import Decimal
from typing import Any, Optional, Union

from pydantic import ValidationError

from finstate.derivation import loan_status
from finstate.models.derived import (
    AccountTotals,
    BillTotals,
    BudgetTotals,
    DashboardSummary,
    GoalTotals,
    LoanTotals,
)
from finstate.models.entities import (
    Account,
    AccountKind,
    EntityModel,
    Frequency,
    Loan,
    LoanStatus,
    LoanType,
)
from finstate.primitives import ZERO, parse_amount

Record = Union[EntityModel, Mapping[str, Any]]


def _read(entity: Record, *names: str) -> Any:
    """First present value among `names` (attribute or key)."""
    for name in names:
        if isinstance(entity, Mapping):
            value = entity.get(name)
        else:
            value = getattr(entity, name, None)
        if value is not None:
            return value
    return None


def _amount(entity: Record, *names: str) -> Decimal:
    return parse_amount(_read(entity, *names))


def _loan_type_of(loan: Record) -> LoanType:
    """Loans without a recognisable type count as Borrowed."""
    raw = _read(loan, "loan_type", "type")
    if raw is None:
        return LoanType.BORROWED
    try:
        return LoanType(raw)
    except ValueError:
        return LoanType.BORROWED


def _frequency_of(bill: Record) -> Optional[Frequency]:
    raw = _read(bill, "frequency")
    if raw is None:
        return Frequency.MONTHLY
    try:
        return Frequency(raw)
    except ValueError:
        return None


# =============================================================================
# BUDGETS
# =============================================================================

def budget_totals(budgets: Iterable[Record]) -> BudgetTotals:
    total_budgeted = ZERO
    total_spent = ZERO
    count = 0
    for budget in budgets:
        total_budgeted += _amount(budget, "budgeted_amount", "amount")
        total_spent += _amount(budget, "spent_amount", "spent")
        count += 1
    return BudgetTotals(
        total_budgeted=total_budgeted,
        total_spent=total_spent,
        total_remaining=total_budgeted - total_spent,
        budget_count=count,
    )


# =============================================================================
# GOALS
# =============================================================================

def goal_totals(goals: Iterable[Record]) -> GoalTotals:
    total_target = ZERO
    total_saved = ZERO
    count = 0
    completed = 0
    for goal in goals:
        target = _amount(goal, "target_amount")
        saved = _amount(goal, "current_amount")
        total_target += target
        total_saved += saved
        count += 1
        if target > 0 and saved >= target:
            completed += 1
    return GoalTotals(
        total_target=total_target,
        total_saved=total_saved,
        total_remaining=total_target - total_saved,
        goal_count=count,
        completed_count=completed,
    )


# =============================================================================
# LOANS
# =============================================================================

def active_loans(loans: Iterable[Loan], today: date) -> list[Loan]:
    """Loans whose derived status is Active (not Paid Off, not Overdue)."""
    return [loan for loan in loans if loan_status(loan, today) == LoanStatus.ACTIVE]


def loan_totals(loans: Iterable[Record]) -> LoanTotals:
    """
    Partition loans by direction and sum their remaining balances.

    Pass only the loans that should count (usually `active_loans(...)`).
    """
    to_pay = ZERO
    to_receive = ZERO
    borrowed = 0
    lent = 0
    for loan in loans:
        remaining = _amount(loan, "remaining_balance")
        if _loan_type_of(loan) == LoanType.LENT:
            to_receive += remaining
            lent += 1
        else:
            to_pay += remaining
            borrowed += 1
    return LoanTotals(
        total_to_pay=to_pay,
        total_to_receive=to_receive,
        borrowed_count=borrowed,
        lent_count=lent,
    )


def upcoming_installments_total(loans: Iterable[Record]) -> Decimal:
    """Sum of the next scheduled payment across loans that have one."""
    total = ZERO
    for loan in loans:
        installment = _amount(loan, "next_payment_amount", "next_payment", "monthly_payment")
        if installment > 0:
            total += installment
    return total


# =============================================================================
# BILLS
# =============================================================================

def bill_totals(
    bills: Iterable[Record],
    frequency: Optional[Frequency] = None,
) -> BillTotals:
    """Total of recurring obligations, optionally for one frequency only."""
    wanted = Frequency(frequency) if frequency is not None else None
    total = ZERO
    count = 0
    for bill in bills:
        if wanted is not None and _frequency_of(bill) != wanted:
            continue
        total += _amount(bill, "amount")
        count += 1
    return BillTotals(total=total, bill_count=count, frequency=wanted)


def bill_totals_by_frequency(bills: Iterable[Record]) -> dict[str, BillTotals]:
    """
    One BillTotals per frequency present in `bills`.

    Bills with an unrecognised frequency are left out.
    """
    grouped: dict[Frequency, list[Record]] = {}
    for bill in bills:
        frequency = _frequency_of(bill)
        if frequency is None:
            continue
        grouped.setdefault(frequency, []).append(bill)
    return {
        frequency.value: bill_totals(group, frequency)
        for frequency, group in grouped.items()
    }


# =============================================================================
# ACCOUNTS
# =============================================================================

def _as_account(entity: Record) -> Optional[Account]:
    if isinstance(entity, Account):
        return entity
    if isinstance(entity, Mapping):
        try:
            return Account.model_validate(dict(entity))
        except ValidationError:
            return None
    return None


def _kind_key(entity: Record) -> str:
    raw = _read(entity, "kind", "account_type", "type")
    if raw is None:
        return AccountKind.OTHER.value
    try:
        return AccountKind(raw).value
    except ValueError:
        return str(raw).lower()


def _tie_key(account: Record) -> tuple[int, int, str]:
    """Lowest id first; accounts without a usable id go last, by name."""
    try:
        return (0, int(_read(account, "id")), "")
    except (TypeError, ValueError):
        return (1, 0, str(_read(account, "name", "account_name") or ""))


def account_totals(accounts: Iterable[Record]) -> AccountTotals:
    """
    Signed sum of balances plus simple account statistics.

    Credit balances are negative and therefore subtract.
    The top account has the highest balance; ties go to the lowest id.
    """
    total = ZERO
    count = 0
    kinds: set[str] = set()
    top: Optional[Record] = None
    top_balance: Optional[Decimal] = None
    for account in accounts:
        balance = _amount(account, "balance", "current_balance")
        total += balance
        count += 1
        kinds.add(_kind_key(account))
        if (
            top_balance is None
            or balance > top_balance
            or (balance == top_balance and _tie_key(account) < _tie_key(top))
        ):
            top, top_balance = account, balance
    return AccountTotals(
        total_balance=total,
        account_count=count,
        kind_count=len(kinds),
        top_account=_as_account(top) if top is not None else None,
    )


# =============================================================================
# DASHBOARD
# =============================================================================

def dashboard_summary(
    *,
    today: date,
    accounts: Iterable[Account] = (),
    budgets: Iterable[Record] = (),
    goals: Iterable[Record] = (),
    loans: Iterable[Loan] = (),
    bills: Iterable[Record] = (),
) -> DashboardSummary:
    """Every dashboard total from one consistent set of entities."""
    relevant_loans = active_loans(loans, today)
    bill_list = list(bills)
    return DashboardSummary(
        accounts=account_totals(accounts),
        budgets=budget_totals(budgets),
        goals=goal_totals(goals),
        loans=loan_totals(relevant_loans),
        upcoming_installments=upcoming_installments_total(relevant_loans),
        bills_by_frequency=bill_totals_by_frequency(bill_list),
        bills_total=bill_totals(bill_list),
    )
