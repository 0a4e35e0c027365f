"""
Mutation Validation

DESIGN DECISION: Validation runs BEFORE anything changes, against the
current committed state. It answers one question: may this user-initiated
change be attempted at all?

Every check appends a ValidationIssue instead of returning early, so the
caller sees every problem with the input at once. Any error-severity issue
blocks the mutation and is raised as a MutationValidationError (or one of
its specific subclasses) carrying a machine-readable reason.

IMPORTANT: Validation NEVER silently fixes input. A payment that exceeds
the balance is refused; it is not trimmed down to the balance.

These are USER errors. Programming errors (a state that should have been
impossible) belong to the invariant checker, not here.
"""

from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Any, Optional

from pydantic import ValidationError

from finstate.models.entities import (
    ENTITY_MODELS,
    Account,
    AccountKind,
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
    LoanType,
    RecurringObligation,
    Subcategory,
    canonical_fields,
)
from finstate.models.validation import ValidationIssue, ValidationResult
from finstate.primitives import to_money


class MutationValidationError(Exception):
    """A mutation was refused because of its input. Nothing was changed."""

    def __init__(
        self,
        operation: str,
        issues: list[ValidationIssue],
        reason: Optional[str] = None,
    ):
        self.operation = operation
        self.issues = issues
        errors = [issue for issue in issues if issue.severity == "error"]
        self.reason = reason or (errors[0].issue_type if errors else "invalid")
        message = "; ".join(issue.message for issue in errors) or "Invalid input"
        super().__init__(message)


class PaymentExceedsBalanceError(MutationValidationError):
    """Payment amount is larger than the loan's remaining balance."""
    pass


class LoanPaidOffError(MutationValidationError):
    """The loan is paid off and accepts no further payments."""
    pass


class DefaultCategoryDeletionError(MutationValidationError):
    """System-seeded categories cannot be deleted."""
    pass


class EntityNotFoundError(MutationValidationError):
    """A referenced entity is not in the current state."""
    pass


# Issue types that map to a dedicated exception class
_SPECIFIC_ERRORS: dict[str, type[MutationValidationError]] = {
    "paid_off": LoanPaidOffError,
    "exceeds_balance": PaymentExceedsBalanceError,
    "default_category": DefaultCategoryDeletionError,
    "not_found": EntityNotFoundError,
}


def _error(field: str, issue_type: str, message: str, fix: Optional[str] = None) -> ValidationIssue:
    return ValidationIssue(
        field=field,
        issue_type=issue_type,
        message=message,
        severity="error",
        suggested_fix=fix,
    )


class MutationValidator:
    """
    Validates the input of every Mutation Engine operation.

    Methods take the raw user fields plus whatever current entities the
    check depends on, and return a ValidationResult. Call `raise_for` to
    turn a failed result into the right exception.
    """

    # -------------------------------------------------------------------------
    # Shared field checks
    # -------------------------------------------------------------------------

    def _check_name(
        self,
        issues: list[ValidationIssue],
        value: Any,
        label: str,
        field: str = "name",
    ) -> None:
        if value is None or not str(value).strip():
            issues.append(_error(
                field, "missing",
                f"{label} is required",
                f"Please enter a {label.lower()}",
            ))

    def _check_positive_amount(
        self,
        issues: list[ValidationIssue],
        value: Any,
        field: str,
        label: str,
    ) -> Optional[Decimal]:
        if value is None or value == "":
            issues.append(_error(field, "missing", f"{label} is required", "Please enter a valid amount"))
            return None
        try:
            amount = to_money(value)
        except ValueError:
            issues.append(_error(field, "invalid_value", f"{label} is not a valid amount"))
            return None
        if amount <= 0:
            issues.append(_error(
                field, "non_positive",
                f"{label} must be greater than zero",
                "Please enter a valid amount",
            ))
            return None
        return amount

    def _check_non_negative_amount(
        self,
        issues: list[ValidationIssue],
        value: Any,
        field: str,
        label: str,
    ) -> Optional[Decimal]:
        if value is None or value == "":
            return None
        try:
            amount = to_money(value)
        except ValueError:
            issues.append(_error(field, "invalid_value", f"{label} is not a valid amount"))
            return None
        if amount < 0:
            issues.append(_error(field, "negative_amount", f"{label} cannot be negative"))
            return None
        return amount

    def _check_enum(
        self,
        issues: list[ValidationIssue],
        enum_cls: type,
        value: Any,
        field: str,
    ) -> None:
        if value is None:
            return
        try:
            enum_cls(value)
        except ValueError:
            allowed = ", ".join(member.value for member in enum_cls)
            issues.append(_error(field, "invalid_value", f"Unknown {field}: {value!r} (allowed: {allowed})"))

    def _not_found(self, issues: list[ValidationIssue], field: str, label: str, entity_id: Any) -> None:
        issues.append(_error(field, "not_found", f"{label} {entity_id} does not exist"))

    # -------------------------------------------------------------------------
    # Accounts and categories
    # -------------------------------------------------------------------------

    def validate_create_account(self, fields: Mapping[str, Any]) -> ValidationResult:
        fields = canonical_fields(EntityKind.ACCOUNT, fields)
        issues: list[ValidationIssue] = []
        self._check_name(issues, fields.get("name"), "Account name")
        kind = fields.get("kind")
        if kind is not None:
            self._check_enum(issues, AccountKind, kind, "kind")
        balance = fields.get("balance")
        if balance is not None and balance != "":
            try:
                to_money(balance)
            except ValueError:
                issues.append(_error("balance", "invalid_value", "Opening balance is not a valid amount"))
        return ValidationResult(operation="create_account", issues=issues)

    def validate_create_category(self, fields: Mapping[str, Any]) -> ValidationResult:
        issues: list[ValidationIssue] = []
        self._check_name(issues, fields.get("name"), "Category name")
        self._check_enum(issues, CategoryType, fields.get("type"), "type")
        return ValidationResult(operation="create_category", issues=issues)

    def validate_create_subcategory(
        self,
        fields: Mapping[str, Any],
        parent: Optional[Category],
    ) -> ValidationResult:
        issues: list[ValidationIssue] = []
        self._check_name(issues, fields.get("name"), "Subcategory name")
        if fields.get("category_id") is None:
            issues.append(_error("category_id", "missing", "Parent category is required"))
        elif parent is None:
            self._not_found(issues, "category_id", "Category", fields.get("category_id"))
        return ValidationResult(operation="create_subcategory", issues=issues)

    # -------------------------------------------------------------------------
    # Loans
    # -------------------------------------------------------------------------

    def validate_create_loan(
        self,
        fields: Mapping[str, Any],
        category: Optional[Category],
        account: Optional[Account],
    ) -> ValidationResult:
        """
        A loan needs a positive amount, an account, and a category whose
        type matches its direction (Lent -> asset, Borrowed -> liability).
        """
        fields = canonical_fields(EntityKind.LOAN, fields)
        issues: list[ValidationIssue] = []
        self._check_name(issues, fields.get("name"), "Loan name")
        self._check_positive_amount(issues, fields.get("original_amount"), "original_amount", "Loan amount")

        loan_type: Optional[LoanType] = None
        raw_type = fields.get("loan_type", LoanType.BORROWED)
        try:
            loan_type = LoanType(raw_type)
        except ValueError:
            issues.append(_error("loan_type", "invalid_value", f"Unknown loan type: {raw_type!r}"))

        if fields.get("account_id") is None:
            issues.append(_error(
                "account_id", "missing",
                "An account is required for a loan",
                "Choose the account the loan is paid from or into",
            ))
        elif account is None:
            self._not_found(issues, "account_id", "Account", fields.get("account_id"))

        if fields.get("category_id") is None:
            issues.append(_error("category_id", "missing", "A category is required for a loan"))
        elif category is None:
            self._not_found(issues, "category_id", "Category", fields.get("category_id"))
        elif loan_type is not None:
            expected = CategoryType.ASSET if loan_type == LoanType.LENT else CategoryType.LIABILITY
            if category.type != expected:
                issues.append(_error(
                    "category_id", "category_type_mismatch",
                    f"{loan_type.value} loans must use a {expected.value} category "
                    f"('{category.name}' is {category.type.value})",
                    f"Choose a {expected.value} category",
                ))

        self._check_non_negative_amount(issues, fields.get("next_payment_amount"), "next_payment_amount", "Next payment")
        rate = fields.get("interest_rate")
        if rate is not None and rate != "":
            try:
                if Decimal(str(rate)) < 0:
                    issues.append(_error("interest_rate", "negative_amount", "Interest rate cannot be negative"))
            except ArithmeticError:
                issues.append(_error("interest_rate", "invalid_value", "Interest rate is not a number"))

        return ValidationResult(operation="create_loan", issues=issues)

    def validate_loan_payment(
        self,
        loan: Optional[Loan],
        amount: Any,
        account_id: Any,
        account: Optional[Account],
        loan_id: Any = None,
    ) -> ValidationResult:
        issues: list[ValidationIssue] = []
        if loan is None:
            self._not_found(issues, "loan_id", "Loan", loan_id)
            return ValidationResult(operation="apply_loan_payment", issues=issues)

        if loan.remaining_balance <= 0:
            issues.append(_error(
                "loan_id", "paid_off",
                f"Loan '{loan.name}' is already paid off",
            ))
            return ValidationResult(operation="apply_loan_payment", issues=issues)

        payment = self._check_positive_amount(issues, amount, "amount", "Payment amount")
        if payment is not None and payment > loan.remaining_balance:
            issues.append(_error(
                "amount", "exceeds_balance",
                f"Payment amount exceeds remaining balance ({loan.remaining_balance})",
                f"Enter at most {loan.remaining_balance}",
            ))

        if account_id is None:
            issues.append(_error("account_id", "missing", "Choose the account the payment comes from"))
        elif account is None:
            self._not_found(issues, "account_id", "Account", account_id)

        return ValidationResult(operation="apply_loan_payment", issues=issues)

    # -------------------------------------------------------------------------
    # Budgets
    # -------------------------------------------------------------------------

    def coerce_category_pairs(self, raw: Any) -> list[CategoryPair]:
        """
        Normalize user category selections to CategoryPair objects.

        Accepts CategoryPair, mappings, (category_id, subcategory_id) tuples
        and bare category ids.
        """
        pairs = []
        for item in raw or []:
            if isinstance(item, CategoryPair):
                pairs.append(item)
            elif isinstance(item, Mapping):
                pairs.append(CategoryPair.model_validate(dict(item)))
            elif isinstance(item, (tuple, list)):
                category_id = item[0]
                subcategory_id = item[1] if len(item) > 1 else None
                pairs.append(CategoryPair(category_id=category_id, subcategory_id=subcategory_id))
            else:
                pairs.append(CategoryPair(category_id=item))
        return pairs

    def _check_category_pairs(
        self,
        issues: list[ValidationIssue],
        raw: Any,
    ) -> list[CategoryPair]:
        try:
            pairs = self.coerce_category_pairs(raw)
        except (ValidationError, TypeError, ValueError):
            issues.append(_error("categories", "invalid_value", "Category selection is malformed"))
            return []
        if not pairs:
            issues.append(_error(
                "categories", "empty_categories",
                "A budget needs at least one category",
                "Select at least one category",
            ))
        duplicates = self._duplicates(pairs)
        if duplicates:
            shown = ", ".join(
                f"({pair.category_id}, {pair.subcategory_id})" for pair in duplicates
            )
            issues.append(_error(
                "categories", "duplicate_category",
                f"Duplicate category selection: {shown}",
                "Remove the repeated category",
            ))
        return pairs

    @staticmethod
    def _duplicates(pairs: Iterable[CategoryPair]) -> list[CategoryPair]:
        seen: set[CategoryPair] = set()
        repeated: list[CategoryPair] = []
        for pair in pairs:
            if pair in seen and pair not in repeated:
                repeated.append(pair)
            seen.add(pair)
        return repeated

    def validate_budget(
        self,
        fields: Mapping[str, Any],
        operation: str = "create_budget",
    ) -> ValidationResult:
        """Same rules for create and update: the full field set is checked."""
        fields = canonical_fields(EntityKind.BUDGET, fields)
        issues: list[ValidationIssue] = []
        self._check_name(issues, fields.get("name"), "Budget name")
        self._check_positive_amount(issues, fields.get("budgeted_amount"), "budgeted_amount", "Budget amount")
        self._check_enum(issues, BudgetPeriod, fields.get("period"), "period")
        self._check_category_pairs(issues, fields.get("categories"))
        return ValidationResult(operation=operation, issues=issues)

    def validate_attach_category(
        self,
        budget: Budget,
        pair: CategoryPair,
        category: Optional[Category],
        subcategory: Optional[Subcategory],
    ) -> ValidationResult:
        issues: list[ValidationIssue] = []
        if category is None:
            self._not_found(issues, "category_id", "Category", pair.category_id)
        if pair.subcategory_id is not None:
            if subcategory is None:
                self._not_found(issues, "subcategory_id", "Subcategory", pair.subcategory_id)
            elif subcategory.category_id != pair.category_id:
                issues.append(_error(
                    "subcategory_id", "category_mismatch",
                    f"Subcategory '{subcategory.name}' does not belong to category {pair.category_id}",
                ))
        if pair in budget.categories:
            issues.append(_error(
                "categories", "duplicate_category",
                f"Budget '{budget.name}' already includes this category",
            ))
        return ValidationResult(operation="attach_budget_category", issues=issues)

    def validate_detach_category(
        self,
        budget: Budget,
        pair: CategoryPair,
    ) -> ValidationResult:
        issues: list[ValidationIssue] = []
        if pair not in budget.categories:
            issues.append(_error(
                "categories", "not_attached",
                f"Budget '{budget.name}' does not include this category",
            ))
        elif len(budget.categories) == 1:
            issues.append(_error(
                "categories", "empty_categories",
                "A budget needs at least one category",
                "Attach another category before removing this one",
            ))
        return ValidationResult(operation="detach_budget_category", issues=issues)

    # -------------------------------------------------------------------------
    # Goals
    # -------------------------------------------------------------------------

    def validate_create_goal(self, fields: Mapping[str, Any]) -> ValidationResult:
        fields = canonical_fields(EntityKind.GOAL, fields)
        issues: list[ValidationIssue] = []
        self._check_name(issues, fields.get("name"), "Goal name")
        self._check_positive_amount(issues, fields.get("target_amount"), "target_amount", "Target amount")
        self._check_non_negative_amount(issues, fields.get("current_amount"), "current_amount", "Current amount")
        return ValidationResult(operation="create_goal", issues=issues)

    def validate_contribution(
        self,
        goal: Optional[Goal],
        amount: Any,
        goal_id: Any = None,
    ) -> ValidationResult:
        issues: list[ValidationIssue] = []
        if goal is None:
            self._not_found(issues, "goal_id", "Goal", goal_id)
        self._check_positive_amount(issues, amount, "amount", "Contribution")
        return ValidationResult(operation="contribute_to_goal", issues=issues)

    # -------------------------------------------------------------------------
    # Bills
    # -------------------------------------------------------------------------

    def validate_create_bill(self, fields: Mapping[str, Any]) -> ValidationResult:
        fields = canonical_fields(EntityKind.BILL, fields)
        issues: list[ValidationIssue] = []
        self._check_name(issues, fields.get("name"), "Bill name")
        self._check_positive_amount(issues, fields.get("amount"), "amount", "Bill amount")
        self._check_enum(issues, Frequency, fields.get("frequency"), "frequency")
        return ValidationResult(operation="create_recurring_obligation", issues=issues)

    def validate_bill_payment(
        self,
        bill: Optional[RecurringObligation],
        account_id: Any,
        account: Optional[Account],
        bill_id: Any = None,
    ) -> ValidationResult:
        issues: list[ValidationIssue] = []
        if bill is None:
            self._not_found(issues, "bill_id", "Bill", bill_id)
        elif bill.is_paid:
            issues.append(_error("bill_id", "already_paid", f"Bill '{bill.name}' is already paid"))
        if account_id is None:
            issues.append(_error("account_id", "missing", "Choose the account the bill is paid from"))
        elif account is None:
            self._not_found(issues, "account_id", "Account", account_id)
        return ValidationResult(operation="pay_bill", issues=issues)

    # -------------------------------------------------------------------------
    # Deletion
    # -------------------------------------------------------------------------

    def validate_exists(
        self,
        kind: EntityKind,
        entity: Optional[EntityModel],
        entity_id: Any,
        operation: str,
    ) -> ValidationResult:
        issues: list[ValidationIssue] = []
        if entity is None:
            self._not_found(issues, "id", kind.value.capitalize(), entity_id)
        return ValidationResult(operation=operation, issues=issues)

    def validate_delete(
        self,
        kind: EntityKind,
        entity: Optional[EntityModel],
        entity_id: Any = None,
    ) -> ValidationResult:
        issues: list[ValidationIssue] = []
        if entity is None:
            self._not_found(issues, "id", kind.value.capitalize(), entity_id)
        elif isinstance(entity, (Category, Subcategory)) and entity.is_default:
            issues.append(_error(
                "id", "default_category",
                f"Default {kind.value} '{entity.name}' cannot be deleted",
            ))
        return ValidationResult(operation="delete_entity", issues=issues)

    # -------------------------------------------------------------------------
    # Results
    # -------------------------------------------------------------------------

    def raise_for(self, result: ValidationResult) -> None:
        """Raise the most specific MutationValidationError for a failed result."""
        if result.is_valid:
            return
        for issue in result.issues:
            if issue.severity == "error" and issue.issue_type in _SPECIFIC_ERRORS:
                error_cls = _SPECIFIC_ERRORS[issue.issue_type]
                raise error_cls(result.operation, result.issues, reason=issue.issue_type)
        raise MutationValidationError(result.operation, result.issues)

    def build_entity(
        self,
        kind: EntityKind,
        fields: Mapping[str, Any],
        operation: str,
    ) -> EntityModel:
        """
        Parse validated fields into an entity model.

        Anything the model itself refuses (e.g. an over-long name) is still a
        user error and is reported as one.
        """
        try:
            return ENTITY_MODELS[kind].model_validate(dict(fields))
        except ValidationError as e:
            issues = [
                _error(
                    ".".join(str(part) for part in err["loc"]) or kind.value,
                    err["type"],
                    err["msg"],
                )
                for err in e.errors()
            ]
            raise MutationValidationError(operation, issues)

    def summarize(self, result: ValidationResult) -> str:
        """
        User-friendly summary of a validation result.
        """
        if result.is_valid and not result.warnings:
            return "All checks passed."

        lines = []
        if result.has_errors:
            lines.append("Please fix the following:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   - {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     {issue.suggested_fix}")

        if result.warnings:
            lines.append("Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   - {warning}")

        return "\n".join(lines)
