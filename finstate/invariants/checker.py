"""
Invariant Checker

DESIGN DECISION: An invariant violation is a BUG, not a user error.
The validator has already refused bad input by the time anything here runs,
so a failed check means the engine (or the store) produced a state that
must never exist. That is why InvariantViolationError does not share a base
class with MutationValidationError: callers that handle user errors must not
swallow it by accident.

Checks run twice per mutation:
1. On the provisional state, before it is staged or sent to the store.
2. On the store's authoritative records, before they are committed.

GUARANTEES:
- 0 <= loan.remaining_balance <= loan.original_amount
- Budget category pairs are non-empty and contain no duplicates
- goal.current_amount >= 0
- account.balance is finite and representable as Money
"""

from typing import Optional

from finstate.models.entities import (
    Account,
    Budget,
    EntityKind,
    EntityModel,
    Goal,
    Loan,
    kind_of,
)
from finstate.primitives import ZERO, is_representable_money


class InvariantViolationError(Exception):
    """A state that must never exist was produced. Always a defect."""

    def __init__(self, kind: EntityKind, entity_id: Optional[int], violation: str):
        self.kind = kind
        self.entity_id = entity_id
        self.violation = violation
        super().__init__(f"{kind.value} {entity_id}: {violation}")


class InvariantChecker:
    """Checks state-level invariants of individual entities."""

    def check_loan(self, loan: Loan) -> None:
        if loan.remaining_balance < ZERO:
            raise InvariantViolationError(
                EntityKind.LOAN, loan.id,
                f"remaining balance {loan.remaining_balance} is negative",
            )
        if loan.remaining_balance > loan.original_amount:
            raise InvariantViolationError(
                EntityKind.LOAN, loan.id,
                f"remaining balance {loan.remaining_balance} exceeds "
                f"original amount {loan.original_amount}",
            )

    def check_budget(self, budget: Budget) -> None:
        if not budget.categories:
            raise InvariantViolationError(
                EntityKind.BUDGET, budget.id, "budget has no categories",
            )
        if len(set(budget.categories)) != len(budget.categories):
            raise InvariantViolationError(
                EntityKind.BUDGET, budget.id, "budget has duplicate category pairs",
            )

    def check_goal(self, goal: Goal) -> None:
        if goal.current_amount < ZERO:
            raise InvariantViolationError(
                EntityKind.GOAL, goal.id,
                f"current amount {goal.current_amount} is negative",
            )

    def check_account(self, account: Account) -> None:
        if not is_representable_money(account.balance):
            raise InvariantViolationError(
                EntityKind.ACCOUNT, account.id,
                f"balance {account.balance} is not representable",
            )

    def check(self, entity: EntityModel) -> None:
        """Dispatch to the check for the entity's kind (no-op for others)."""
        kind = kind_of(entity)
        if kind == EntityKind.LOAN:
            self.check_loan(entity)
        elif kind == EntityKind.BUDGET:
            self.check_budget(entity)
        elif kind == EntityKind.GOAL:
            self.check_goal(entity)
        elif kind == EntityKind.ACCOUNT:
            self.check_account(entity)

    def check_all(self, entities) -> None:
        for entity in entities:
            self.check(entity)
