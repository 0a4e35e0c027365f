"""
Tests for the Finance State Engine

Test strategy:
1. Unit tests for individual components (models, derivation, validators)
2. Integration tests for the mutation engine against the in-memory store
3. No network access in tests
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError

from finstate.models import (
    Account,
    AccountKind,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    Budget,
    CategoryPair,
    EntityKind,
    Frequency,
    Goal,
    Loan,
    LoanType,
    RecurringObligation,
    ValidationIssue,
    ValidationResult,
    kind_of,
    canonical_fields,
    parse_entity,
)


class TestEntityModels:
    """Tests for entity parsing from store records."""

    def test_account_legacy_names(self):
        """Test account records using older field names."""
        account = Account.model_validate({
            "id": 4,
            "account_name": "  Main  ",
            "account_type": "checking",
            "current_balance": 1250.5,
            "color": "#fff",
        })
        assert account.name == "Main"
        assert account.kind == AccountKind.BANK
        assert account.balance == Decimal("1250.50")

    def test_account_kind_e_wallet(self):
        """Test the e-wallet kind in either spelling."""
        assert Account(name="A", kind="e-wallet").kind == AccountKind.E_WALLET
        assert Account(name="A", kind="E_Wallet").kind == AccountKind.E_WALLET

    def test_credit_balance_may_be_negative(self):
        """Test that account balances are signed."""
        assert Account(name="Card", kind="credit", balance="-99.99").balance == Decimal("-99.99")

    def test_loan_defaults(self):
        """Test missing type and remaining balance."""
        loan = Loan.model_validate({"name": "Family", "original_amount": "1000"})
        assert loan.loan_type == LoanType.BORROWED
        assert loan.remaining_balance == Decimal("1000.00")
        assert loan.interest_rate == Decimal("0")

    def test_loan_datetime_cut_to_date(self):
        """Test store datetimes keep their written calendar date."""
        loan = Loan.model_validate({
            "original_amount": "100",
            "next_payment_date": "2025-01-10T23:30:00Z",
        })
        assert loan.next_payment_date == date(2025, 1, 10)

    def test_loan_rejects_negative_original(self):
        """Test that a negative principal is not a valid record."""
        with pytest.raises(ValidationError):
            Loan.model_validate({"original_amount": "-5"})

    def test_budget_single_category_lifted(self):
        """Test a record with one category_id becomes a one-pair set."""
        budget = Budget.model_validate({
            "name": "Food",
            "amount": "300",
            "category_id": 7,
            "subcategory_id": 9,
        })
        assert budget.categories == [CategoryPair(category_id=7, subcategory_id=9)]
        assert budget.budgeted_amount == Decimal("300.00")

    def test_budget_effective_end_date(self):
        """Test the end date falls back to the end of the period."""
        budget = Budget(
            name="Food",
            budgeted_amount="300",
            period="monthly",
            start_date="2025-02-01",
            categories=[{"category_id": 1}],
        )
        assert budget.effective_end_date == date(2025, 2, 28)

    def test_goal_deadline_alias(self):
        """Test that deadline maps to target_date."""
        goal = Goal.model_validate({"name": "Car", "target_amount": "5000", "deadline": "2025-06-30"})
        assert goal.target_date == date(2025, 6, 30)
        assert goal.current_amount == Decimal("0.00")

    def test_bill_from_vendor_record(self):
        """Test a bill record with vendor, due_date and status."""
        bill = RecurringObligation.model_validate({
            "vendor": "Power Co",
            "amount": "80",
            "due_date": "2025-01-15",
            "status": "paid",
            "frequency": "one-time",
        })
        assert bill.name == "Power Co"
        assert bill.next_due_date == date(2025, 1, 15)
        assert bill.is_paid is True
        assert bill.frequency == Frequency.ONE_TIME

    def test_models_are_frozen(self):
        """Test that entities cannot be mutated in place."""
        goal = Goal(name="Car", target_amount="5000")
        with pytest.raises(ValidationError):
            goal.current_amount = Decimal("10")

    def test_store_payload_is_json_safe(self):
        """Test outbound payloads carry strings, not Decimals or dates."""
        goal = Goal(id=3, name="Car", target_amount="5000", target_date="2025-06-30")
        payload = goal.to_store_payload()
        assert "id" not in payload
        assert payload["target_amount"] == "5000.00"
        assert payload["target_date"] == "2025-06-30"

    def test_parse_entity_and_kind_of(self):
        """Test dispatch by kind in both directions."""
        entity = parse_entity(EntityKind.GOAL, {"name": "Car", "target_amount": "10"})
        assert isinstance(entity, Goal)
        assert kind_of(entity) == EntityKind.GOAL
        assert kind_of(Account(name="A")) == EntityKind.ACCOUNT

    def test_canonical_fields(self):
        """Test alternate names are renamed the way the model would read them."""
        fields = canonical_fields("loan", {"type": "Lent", "principal": "300", "name": "To Bob"})
        assert fields == {"loan_type": "Lent", "original_amount": "300", "name": "To Bob"}

        # The first accepted name wins, as it does when the model is built
        fields = canonical_fields(EntityKind.BUDGET, {"amount": "5", "budgeted_amount": "7"})
        assert fields == {"budgeted_amount": "7"}
        fields = canonical_fields(EntityKind.ACCOUNT, {"balance": "1", "current_balance": "2"})
        assert fields == {"balance": "2"}
        assert Account(name="A", balance="1", current_balance="2").balance == Decimal("2.00")

    def test_canonical_fields_leaves_unknown_keys(self):
        """Test keys that are not alternate names pass through untouched."""
        fields = canonical_fields(EntityKind.GOAL, {"deadline": "2025-06-30", "note": "x"})
        assert fields == {"target_date": "2025-06-30", "note": "x"}


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.ENTITY_CREATED,
            description="Loan created",
        )
        assert event.event_type == AuditEventType.ENTITY_CREATED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.BILL_PAID,
            description="Bill paid",
            entity_id=3,
            details={"amount": "80.00"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "bill_paid"
        assert log_dict["entity_id"] == 3
        assert log_dict["details"]["amount"] == "80.00"

    def test_builder_loan_payment(self):
        """Test AuditEventBuilder.loan_payment_applied."""
        correlation_id = uuid4()
        event = AuditEventBuilder.loan_payment_applied(
            loan_id=1,
            account_id=2,
            amount="200.00",
            remaining_balance="800.00",
            correlation_id=correlation_id,
        )
        assert event.event_type == AuditEventType.LOAN_PAYMENT_APPLIED
        assert event.entity_id == 1
        assert event.details["account_id"] == 2
        assert event.correlation_id == correlation_id
        assert event.is_user_action is True

    def test_builder_invariant_violation_is_critical(self):
        """Test that defects are logged at critical severity."""
        event = AuditEventBuilder.invariant_violated(
            operation="apply_loan_payment",
            entity_type="loan",
            entity_id=1,
            violation="remaining balance -1.00 is negative",
            correlation_id=uuid4(),
        )
        assert event.severity == AuditSeverity.CRITICAL
        assert event.error_code == "invariant_violation"

    def test_builder_validation_rejected(self):
        """Test that user errors are warnings carrying the reason."""
        event = AuditEventBuilder.validation_rejected(
            operation="create_goal",
            entity_type="goal",
            entity_id=None,
            reason="non_positive",
            issues=[{"field": "target_amount"}],
            correlation_id=uuid4(),
        )
        assert event.severity == AuditSeverity.WARNING
        assert event.error_code == "non_positive"


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            operation="create_goal",
            issues=[
                ValidationIssue(
                    field="target_amount",
                    issue_type="non_positive",
                    message="Target amount must be greater than zero",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.is_valid is False
        assert result.error_count == 1

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            operation="create_goal",
            issues=[
                ValidationIssue(
                    field="target_date",
                    issue_type="past_date",
                    message="Target date is in the past",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.is_valid is True
        assert result.warnings == ["Target date is in the past"]

    def test_severity_restricted(self):
        """Test severity must be error, warning or info."""
        with pytest.raises(ValidationError):
            ValidationIssue(field="x", issue_type="y", message="z", severity="fatal")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
