"""
Tests for mutation input validation.
"""

import pytest

from finstate.models import (
    Account,
    Budget,
    Category,
    CategoryPair,
    EntityKind,
    Goal,
    Loan,
    RecurringObligation,
    Subcategory,
)
from finstate.validation import (
    DefaultCategoryDeletionError,
    EntityNotFoundError,
    LoanPaidOffError,
    MutationValidationError,
    MutationValidator,
    PaymentExceedsBalanceError,
)


@pytest.fixture
def validator():
    return MutationValidator()


@pytest.fixture
def account():
    return Account(id=1, name="Checking", kind="bank", balance="2000")


@pytest.fixture
def liability_category():
    return Category(id=10, name="Debt", type="liability")


@pytest.fixture
def asset_category():
    return Category(id=11, name="Receivables", type="asset")


def issue_types(result):
    return [issue.issue_type for issue in result.issues]


class TestCreateLoan:
    """Tests for loan creation rules."""

    def test_valid_borrowed_loan(self, validator, account, liability_category):
        """Test a complete borrowed loan passes."""
        result = validator.validate_create_loan(
            {"name": "Car", "original_amount": "1000", "loan_type": "Borrowed",
             "account_id": 1, "category_id": 10},
            category=liability_category,
            account=account,
        )
        assert result.is_valid

    def test_rejects_non_positive_amount(self, validator, account, liability_category):
        """Test original_amount <= 0."""
        result = validator.validate_create_loan(
            {"name": "Car", "original_amount": "0", "account_id": 1, "category_id": 10},
            category=liability_category,
            account=account,
        )
        assert "non_positive" in issue_types(result)

    def test_rejects_missing_links(self, validator):
        """Test absent category_id and account_id are both reported."""
        result = validator.validate_create_loan(
            {"name": "Car", "original_amount": "1000"},
            category=None,
            account=None,
        )
        fields = {issue.field for issue in result.issues if issue.issue_type == "missing"}
        assert fields == {"account_id", "category_id"}

    def test_lent_requires_asset_category(self, validator, account, liability_category):
        """Test category type must match the loan direction."""
        result = validator.validate_create_loan(
            {"name": "To Sam", "original_amount": "300", "loan_type": "Lent",
             "account_id": 1, "category_id": 10},
            category=liability_category,
            account=account,
        )
        assert "category_type_mismatch" in issue_types(result)

    def test_alternate_names_checked(self, validator, account, liability_category):
        """Test `type` and `principal` are read like loan_type and original_amount."""
        result = validator.validate_create_loan(
            {"name": "To Bob", "type": "Lent", "principal": "300",
             "account_id": 1, "category_id": 10},
            category=liability_category,
            account=account,
        )
        assert issue_types(result) == ["category_type_mismatch"]

        result = validator.validate_create_loan(
            {"name": "Car", "type": "Borrowed", "principal": "-5",
             "account_id": 1, "category_id": 10},
            category=liability_category,
            account=account,
        )
        assert issue_types(result) == ["non_positive"]

    def test_borrowed_rejects_asset_category(self, validator, account, asset_category):
        """Test the mirror case."""
        result = validator.validate_create_loan(
            {"name": "Car", "original_amount": "300", "account_id": 1, "category_id": 11},
            category=asset_category,
            account=account,
        )
        assert "category_type_mismatch" in issue_types(result)

    def test_collects_every_issue(self, validator):
        """Test that validation does not stop at the first problem."""
        result = validator.validate_create_loan(
            {"name": "", "original_amount": "-1", "interest_rate": "-2"},
            category=None,
            account=None,
        )
        assert result.error_count >= 4


class TestLoanPayment:
    """Tests for loan payment rules."""

    def test_exceeds_balance_raises_specific_error(self, validator, account):
        """Test that over-payment raises PaymentExceedsBalanceError."""
        loan = Loan(id=1, name="Car", original_amount="1000", remaining_balance="800")
        result = validator.validate_loan_payment(loan, "800.01", 1, account)
        with pytest.raises(PaymentExceedsBalanceError) as exc_info:
            validator.raise_for(result)
        assert exc_info.value.reason == "exceeds_balance"
        assert "exceeds remaining balance" in str(exc_info.value)

    def test_exact_balance_is_allowed(self, validator, account):
        """Test paying exactly the remaining balance."""
        loan = Loan(id=1, name="Car", original_amount="1000", remaining_balance="800")
        assert validator.validate_loan_payment(loan, "800", 1, account).is_valid

    def test_non_positive_payment(self, validator, account):
        """Test amount <= 0."""
        loan = Loan(id=1, name="Car", original_amount="1000", remaining_balance="800")
        result = validator.validate_loan_payment(loan, "0", 1, account)
        with pytest.raises(MutationValidationError) as exc_info:
            validator.raise_for(result)
        assert exc_info.value.reason == "non_positive"

    def test_paid_off_loan(self, validator, account):
        """Test that a paid-off loan takes no further payments."""
        loan = Loan(id=1, name="Car", original_amount="1000", remaining_balance="0")
        result = validator.validate_loan_payment(loan, "10", 1, account)
        with pytest.raises(LoanPaidOffError):
            validator.raise_for(result)

    def test_unknown_loan(self, validator, account):
        """Test a payment against a missing loan."""
        result = validator.validate_loan_payment(None, "10", 1, account, loan_id=99)
        with pytest.raises(EntityNotFoundError):
            validator.raise_for(result)

    def test_unknown_account(self, validator):
        """Test a payment from a missing account."""
        loan = Loan(id=1, name="Car", original_amount="1000")
        result = validator.validate_loan_payment(loan, "10", 42, None)
        assert "not_found" in issue_types(result)


class TestBudgets:
    """Tests for budget rules."""

    def test_valid_budget(self, validator):
        """Test a complete budget."""
        result = validator.validate_budget({
            "name": "Food",
            "budgeted_amount": "500",
            "categories": [(1, None), (1, 2)],
        })
        assert result.is_valid

    def test_amount_alias(self, validator):
        """Test `amount` is accepted as the budgeted amount and still checked."""
        result = validator.validate_budget({
            "name": "Fuel", "amount": "100", "categories": [3],
        })
        assert result.is_valid

        result = validator.validate_budget({
            "name": "Fuel", "amount": "0", "categories": [3],
        })
        assert issue_types(result) == ["non_positive"]

    def test_blank_name_and_zero_amount(self, validator):
        """Test blank name and non-positive amount."""
        result = validator.validate_budget({
            "name": "   ",
            "budgeted_amount": "0",
            "categories": [{"category_id": 1}],
        })
        assert set(issue_types(result)) == {"missing", "non_positive"}

    def test_empty_categories(self, validator):
        """Test an empty category set."""
        result = validator.validate_budget({"name": "Food", "budgeted_amount": "500", "categories": []})
        assert issue_types(result) == ["empty_categories"]

    def test_duplicate_pair(self, validator):
        """Test a repeated (category, subcategory) pair."""
        result = validator.validate_budget({
            "name": "Food",
            "budgeted_amount": "500",
            "categories": [CategoryPair(category_id=1), {"category_id": 1, "subcategory_id": None}],
        })
        assert issue_types(result) == ["duplicate_category"]

    def test_attach_duplicate(self, validator):
        """Test attaching a pair the budget already has."""
        budget = Budget(id=1, name="Food", budgeted_amount="500", categories=[{"category_id": 1}])
        result = validator.validate_attach_category(
            budget, CategoryPair(category_id=1), Category(id=1, name="Food"), None,
        )
        assert issue_types(result) == ["duplicate_category"]

    def test_attach_foreign_subcategory(self, validator):
        """Test a subcategory from another category."""
        budget = Budget(id=1, name="Food", budgeted_amount="500", categories=[{"category_id": 1}])
        result = validator.validate_attach_category(
            budget,
            CategoryPair(category_id=2, subcategory_id=5),
            Category(id=2, name="Transport"),
            Subcategory(id=5, name="Snacks", category_id=1),
        )
        assert issue_types(result) == ["category_mismatch"]

    def test_detach_last_category(self, validator):
        """Test that the category set can never be emptied."""
        budget = Budget(id=1, name="Food", budgeted_amount="500", categories=[{"category_id": 1}])
        result = validator.validate_detach_category(budget, CategoryPair(category_id=1))
        assert issue_types(result) == ["empty_categories"]


class TestGoalsAndBills:
    """Tests for goal and bill rules."""

    def test_goal_rules(self, validator):
        """Test blank name, zero target and negative current amount."""
        result = validator.validate_create_goal({"name": "", "target_amount": "0", "current_amount": "-1"})
        assert set(issue_types(result)) == {"missing", "non_positive", "negative_amount"}

    def test_goal_current_defaults(self, validator):
        """Test omitted current amount is fine."""
        assert validator.validate_create_goal({"name": "Car", "target_amount": "100"}).is_valid

    def test_contribution_must_be_positive(self, validator):
        """Test a zero contribution."""
        goal = Goal(id=1, name="Car", target_amount="100")
        assert "non_positive" in issue_types(validator.validate_contribution(goal, "0"))

    def test_bill_vendor_counts_as_name(self, validator):
        """Test that a vendor satisfies the name requirement."""
        assert validator.validate_create_bill({"vendor": "Power Co", "amount": "80"}).is_valid

    def test_bill_rules(self, validator):
        """Test blank name and non-positive amount."""
        result = validator.validate_create_bill({"name": "", "amount": "-3", "frequency": "hourly"})
        assert set(issue_types(result)) == {"missing", "non_positive", "invalid_value"}

    def test_already_paid_bill(self, validator, account):
        """Test paying a bill twice."""
        bill = RecurringObligation(id=1, name="Repair", amount="50", frequency="one_time", is_paid=True)
        result = validator.validate_bill_payment(bill, 1, account)
        assert issue_types(result) == ["already_paid"]


class TestDeletion:
    """Tests for delete rules."""

    def test_default_category(self, validator):
        """Test that default categories raise the specific error."""
        category = Category(id=1, name="Food", is_default=True)
        result = validator.validate_delete(EntityKind.CATEGORY, category, 1)
        with pytest.raises(DefaultCategoryDeletionError) as exc_info:
            validator.raise_for(result)
        assert exc_info.value.reason == "default_category"

    def test_default_subcategory(self, validator):
        """Test default subcategories are protected too."""
        sub = Subcategory(id=3, name="Snacks", category_id=1, is_default=True)
        result = validator.validate_delete(EntityKind.SUBCATEGORY, sub, 3)
        assert issue_types(result) == ["default_category"]

    def test_missing_entity(self, validator):
        """Test deleting something that is not there."""
        result = validator.validate_delete(EntityKind.GOAL, None, 5)
        with pytest.raises(EntityNotFoundError):
            validator.raise_for(result)

    def test_other_deletes_are_unconditional(self, validator):
        """Test a user category is deletable."""
        category = Category(id=2, name="Hobbies")
        assert validator.validate_delete(EntityKind.CATEGORY, category, 2).is_valid


class TestBuildEntity:
    """Tests for parsing validated fields."""

    def test_model_errors_are_user_errors(self, validator):
        """Test an over-long name becomes a MutationValidationError."""
        with pytest.raises(MutationValidationError):
            validator.build_entity(
                EntityKind.GOAL,
                {"name": "x" * 500, "target_amount": "10"},
                "create_goal",
            )

    def test_summarize(self, validator):
        """Test the user-facing summary lists errors with fixes."""
        result = validator.validate_create_goal({"name": "", "target_amount": "10"})
        summary = validator.summarize(result)
        assert "Please fix the following:" in summary
        assert "Goal name is required" in summary
