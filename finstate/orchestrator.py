"""
Main Orchestrator for the Finance State Engine

This module ties the components together and defines the flows a client
screen actually runs:
1. Dashboard (refresh -> derive per entity -> aggregate totals)
2. Mutations (delegated to the MutationEngine)

DESIGN DECISION: The dashboard reads ONE snapshot view and computes every
number from it. Totals and per-entity states can therefore never disagree
with each other, and nothing is cached between calls.
"""

from datetime import date
from typing import Optional

from finstate.aggregation import dashboard_summary
from finstate.audit import AuditLogger
from finstate.classification import ClassificationRules, rules_from_settings
from finstate.config import get_settings
from finstate.derivation import derive_bill, derive_budget, derive_goal, derive_loan
from finstate.engine import MutationEngine, SnapshotView
from finstate.models.derived import (
    BillState,
    BudgetState,
    DashboardState,
    DashboardSummary,
    GoalState,
    LoanState,
)
from finstate.services.storage import (
    AuditStorageInterface,
    EntityStoreInterface,
    InMemoryAuditStorage,
    InMemoryEntityStore,
)


class DashboardFlow:
    """
    Builds the derived view of everything the client displays.

    Flow:
    1. Refresh → reload committed state from the store (optional)
    2. Derive → per-entity states (progress, status, urgency)
    3. Aggregate → dashboard totals from the same view
    """

    def __init__(
        self,
        engine: MutationEngine,
        rules: Optional[ClassificationRules] = None,
    ):
        self._engine = engine
        self._rules = rules or engine.rules

    def loan_states(self, view: SnapshotView, today: date) -> list[LoanState]:
        return [derive_loan(loan, today, self._rules) for loan in view.loans]

    def budget_states(self, view: SnapshotView) -> list[BudgetState]:
        return [derive_budget(budget, self._rules) for budget in view.budgets]

    def goal_states(self, view: SnapshotView, today: date) -> list[GoalState]:
        return [derive_goal(goal, today, self._rules) for goal in view.goals]

    def bill_states(self, view: SnapshotView, today: date) -> list[BillState]:
        return [derive_bill(bill, today, self._rules) for bill in view.bills]

    def summary(self, view: SnapshotView, today: date) -> DashboardSummary:
        return dashboard_summary(
            today=today,
            accounts=view.accounts,
            budgets=view.budgets,
            goals=view.goals,
            loans=view.loans,
            bills=view.bills,
        )

    async def load(
        self,
        today: Optional[date] = None,
        refresh: bool = True,
        include_provisional: bool = False,
    ) -> DashboardState:
        """
        Compute the full dashboard.

        Args:
            today: Reference date for statuses and urgency (engine clock if None)
            refresh: Reload from the store first
            include_provisional: Overlay in-flight mutations (optimistic display)

        Returns:
            DashboardState with per-entity states and totals
        """
        if refresh:
            await self._engine.refresh()
        today = today or self._engine.today()
        view = self._engine.view(include_provisional=include_provisional)
        return DashboardState(
            today=today,
            loans=self.loan_states(view, today),
            budgets=self.budget_states(view),
            goals=self.goal_states(view, today),
            bills=self.bill_states(view, today),
            summary=self.summary(view, today),
        )


def create_engine_components(
    store: Optional[EntityStoreInterface] = None,
    audit_storage: Optional[AuditStorageInterface] = None,
) -> tuple[MutationEngine, DashboardFlow, AuditLogger]:
    """
    Factory function to create all engine components.

    Args:
        store: Authoritative entity store.
               An empty in-memory store is used when None.
        audit_storage: Where audit events are persisted.
                       An in-memory log is used when None.

    Returns:
        (mutation_engine, dashboard_flow, audit_logger)
    """
    settings = get_settings()

    if store is None:
        store = InMemoryEntityStore()
    if audit_storage is None:
        audit_storage = InMemoryAuditStorage()

    audit_logger = AuditLogger(audit_storage)
    rules = rules_from_settings(settings.classification)

    engine = MutationEngine(
        store,
        audit_logger=audit_logger,
        rules=rules,
        store_settings=settings.store,
    )
    dashboard_flow = DashboardFlow(engine, rules=rules)

    return engine, dashboard_flow, audit_logger
