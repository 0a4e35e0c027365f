"""Input validation for mutations."""

from finstate.validation.validator import (
    DefaultCategoryDeletionError,
    EntityNotFoundError,
    LoanPaidOffError,
    MutationValidationError,
    MutationValidator,
    PaymentExceedsBalanceError,
)

__all__ = [
    "DefaultCategoryDeletionError",
    "EntityNotFoundError",
    "LoanPaidOffError",
    "MutationValidationError",
    "MutationValidator",
    "PaymentExceedsBalanceError",
]
