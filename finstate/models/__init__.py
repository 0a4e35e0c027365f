"""
Data Models Package

This package contains all Pydantic models used by the finance state engine.
All data flowing through the engine must conform to these schemas.
"""

from finstate.models.entities import (
    ENTITY_MODELS,
    Account,
    AccountKind,
    BillStatus,
    Budget,
    BudgetPeriod,
    Category,
    CategoryPair,
    CategoryType,
    EntityKind,
    EntityModel,
    Frequency,
    Goal,
    Loan,
    LoanStatus,
    LoanType,
    RecurringObligation,
    Subcategory,
    TermPeriod,
    canonical_fields,
    kind_of,
    parse_entity,
)
from finstate.models.derived import (
    AccountTotals,
    BillState,
    BillTotals,
    BudgetState,
    BudgetStatus,
    BudgetTotals,
    DashboardState,
    DashboardSummary,
    DueUrgency,
    GoalState,
    GoalStatus,
    GoalTotals,
    LoanState,
    LoanTotals,
    UrgencyBucket,
)
from finstate.models.mutations import (
    BillPaymentResult,
    LoanPaymentResult,
    MutationRequest,
    MutationType,
    StoreResponse,
)
from finstate.models.validation import ValidationIssue, ValidationResult
from finstate.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Entities
    "ENTITY_MODELS",
    "Account",
    "AccountKind",
    "BillStatus",
    "Budget",
    "BudgetPeriod",
    "Category",
    "CategoryPair",
    "CategoryType",
    "EntityKind",
    "EntityModel",
    "Frequency",
    "Goal",
    "Loan",
    "LoanStatus",
    "LoanType",
    "RecurringObligation",
    "Subcategory",
    "TermPeriod",
    "canonical_fields",
    "kind_of",
    "parse_entity",
    # Derived state
    "AccountTotals",
    "BillState",
    "BillTotals",
    "BudgetState",
    "BudgetStatus",
    "BudgetTotals",
    "DashboardState",
    "DashboardSummary",
    "DueUrgency",
    "GoalState",
    "GoalStatus",
    "GoalTotals",
    "LoanState",
    "LoanTotals",
    "UrgencyBucket",
    # Mutations
    "BillPaymentResult",
    "LoanPaymentResult",
    "MutationRequest",
    "MutationType",
    "StoreResponse",
    # Validation
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
