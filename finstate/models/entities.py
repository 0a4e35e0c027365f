"""
Core Entity Models for the Finance State Engine

These models define the shapes of the records the external store sends us.
They are designed to:
1. Accept the store's JSON as-is (unknown fields ignored, legacy names aliased)
2. Hold amounts as exact two-digit Decimals
3. Stay immutable once parsed, so a snapshot can be read concurrently

DESIGN DECISION: Models parse, they do not judge. A negative remaining
balance coming back from the store is parsed faithfully and then caught by
the invariant checker, instead of being rejected here as if it were a
malformed payload. User input is judged by the validator, not by these
models.
"""

from collections.abc import Mapping
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from finstate.primitives import (
    ZERO,
    Money,
    SignedMoney,
    parse_calendar_date,
    period_end,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class _LenientEnum(str, Enum):
    """String enum that matches values case-insensitively."""

    @classmethod
    def _missing_(cls, value: Any):
        if isinstance(value, str):
            wanted = value.strip().lower().replace("-", "_").replace(" ", "_")
            for member in cls:
                if member.value.lower().replace("-", "_").replace(" ", "_") == wanted:
                    return member
        return None


class EntityKind(_LenientEnum):
    """Kinds of records the engine knows how to hold and mutate."""
    ACCOUNT = "account"
    LOAN = "loan"
    BUDGET = "budget"
    GOAL = "goal"
    BILL = "bill"
    CATEGORY = "category"
    SUBCATEGORY = "subcategory"


class AccountKind(_LenientEnum):
    CASH = "cash"
    BANK = "bank"
    CREDIT = "credit"
    E_WALLET = "e-wallet"
    LOAN = "loan"
    INVESTMENT = "investment"
    OTHER = "other"

    @classmethod
    def _missing_(cls, value: Any):
        # Older records use checking/savings for what is now "bank"
        if isinstance(value, str) and value.strip().lower() in ("checking", "savings"):
            return cls.BANK
        return super()._missing_(value)


class LoanType(_LenientEnum):
    """
    Direction of a loan.

    BORROWED is a liability (I owe), LENT is an asset (I am owed).
    """
    BORROWED = "Borrowed"
    LENT = "Lent"


class LoanStatus(_LenientEnum):
    """Derived loan status. Never stored."""
    ACTIVE = "Active"
    PAID_OFF = "Paid Off"
    OVERDUE = "Overdue"


class TermPeriod(_LenientEnum):
    MONTHS = "months"
    YEARS = "years"


class BudgetPeriod(_LenientEnum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class Frequency(_LenientEnum):
    """How often a recurring obligation falls due."""
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"
    ONE_TIME = "one_time"


class BillStatus(_LenientEnum):
    """Derived bill status. Never stored."""
    SCHEDULED = "scheduled"
    PAID = "paid"
    OVERDUE = "overdue"


class CategoryType(_LenientEnum):
    INCOME = "income"
    EXPENSE = "expense"
    ASSET = "asset"
    LIABILITY = "liability"


def _coerce_date(value: Any) -> Any:
    """Cut store datetimes down to calendar dates; leave None alone."""
    if value is None or value == "":
        return None
    parsed = parse_calendar_date(value)
    return parsed if parsed is not None else value


# =============================================================================
# BASE
# =============================================================================

class EntityModel(BaseModel):
    """
    Common configuration for every stored entity.

    Frozen: changes go through `model_copy(update=...)` inside the
    mutation engine, never through attribute assignment.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        extra="ignore",
        populate_by_name=True,
        frozen=True,
    )

    id: Optional[int] = Field(
        default=None,
        description="Store-assigned identifier (None until the store accepts it)"
    )

    def to_store_payload(self) -> dict[str, Any]:
        """JSON-safe field dict for an outbound request (no id)."""
        return self.model_dump(mode="json", exclude={"id"})


# =============================================================================
# ENTITIES
# =============================================================================

class Account(EntityModel):
    """
    A place money lives.

    Balance is signed: credit accounts are legitimately negative.
    """

    name: str = Field(
        default="",
        max_length=200,
        validation_alias=AliasChoices("name", "account_name"),
    )
    kind: AccountKind = Field(
        default=AccountKind.OTHER,
        validation_alias=AliasChoices("kind", "account_type", "type"),
    )
    balance: SignedMoney = Field(
        default=ZERO,
        validation_alias=AliasChoices("current_balance", "balance"),
        description="Current balance (may be negative)"
    )

    @field_validator('kind', mode='before')
    @classmethod
    def coerce_kind(cls, v: Any) -> Any:
        return AccountKind(v) if v is not None else AccountKind.OTHER


class Loan(EntityModel):
    """
    Money borrowed from, or lent to, someone.

    `remaining_balance` is maintained by payments; `interest_rate` is
    informational and never compounded here.
    """

    name: str = Field(
        default="",
        max_length=200,
        validation_alias=AliasChoices("name", "loan_name"),
    )
    loan_type: LoanType = Field(
        default=LoanType.BORROWED,
        validation_alias=AliasChoices("loan_type", "type"),
    )
    original_amount: Money = Field(
        ...,
        validation_alias=AliasChoices("original_amount", "principal"),
        description="Amount at creation (immutable afterwards)"
    )
    interest_rate: Decimal = Field(
        default=Decimal("0"),
        description="Annual rate in percent (informational only)"
    )
    remaining_balance: SignedMoney = Field(
        ...,
        description="Amount still outstanding"
    )
    next_payment_amount: Optional[Money] = Field(
        default=None,
        validation_alias=AliasChoices("next_payment_amount", "next_payment", "monthly_payment"),
    )
    next_payment_date: Optional[date] = None
    account_id: Optional[int] = None
    category_id: Optional[int] = None

    # Informational loan terms
    start_date: Optional[date] = None
    term: Optional[int] = Field(default=None, ge=0)
    term_period: Optional[TermPeriod] = None
    notes: Optional[str] = Field(default=None, max_length=1000)

    @model_validator(mode='before')
    @classmethod
    def default_remaining_balance(cls, data: Any) -> Any:
        """A loan with no recorded payments still owes its original amount."""
        if isinstance(data, dict) and data.get("remaining_balance") in (None, ""):
            original = data.get("original_amount", data.get("principal"))
            if original is not None:
                data = {**data, "remaining_balance": original}
        return data

    @field_validator('loan_type', mode='before')
    @classmethod
    def coerce_loan_type(cls, v: Any) -> Any:
        return LoanType(v) if v else LoanType.BORROWED

    @field_validator('term_period', mode='before')
    @classmethod
    def coerce_term_period(cls, v: Any) -> Any:
        return TermPeriod(v) if v else None

    @field_validator('next_payment_date', 'start_date', mode='before')
    @classmethod
    def coerce_dates(cls, v: Any) -> Any:
        return _coerce_date(v)


class CategoryPair(BaseModel):
    """A (category, optional subcategory) attachment on a budget."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    category_id: int
    subcategory_id: Optional[int] = None


class Budget(EntityModel):
    """
    A spending allowance over a period.

    `spent_amount` is supplied by the store; this engine never sums
    transactions itself.
    """

    name: str = Field(default="", max_length=200)
    budgeted_amount: Money = Field(
        ...,
        validation_alias=AliasChoices("budgeted_amount", "amount"),
    )
    period: BudgetPeriod = BudgetPeriod.MONTHLY
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    categories: list[CategoryPair] = Field(
        default_factory=list,
        validation_alias=AliasChoices("categories", "category_pairs"),
    )
    spent_amount: Money = Field(
        default=ZERO,
        validation_alias=AliasChoices("spent_amount", "spent"),
    )

    @model_validator(mode='before')
    @classmethod
    def lift_single_category(cls, data: Any) -> Any:
        """Records with a single category_id become a one-pair set."""
        if (
            isinstance(data, dict)
            and not data.get("categories")
            and not data.get("category_pairs")
            and data.get("category_id") is not None
        ):
            pair = {
                "category_id": data["category_id"],
                "subcategory_id": data.get("subcategory_id"),
            }
            data = {**data, "categories": [pair]}
        return data

    @field_validator('period', mode='before')
    @classmethod
    def coerce_period(cls, v: Any) -> Any:
        return BudgetPeriod(v) if v else BudgetPeriod.MONTHLY

    @field_validator('start_date', 'end_date', mode='before')
    @classmethod
    def coerce_dates(cls, v: Any) -> Any:
        return _coerce_date(v)

    @property
    def effective_end_date(self) -> Optional[date]:
        """Stored end date, or the last day of the period from start_date."""
        if self.end_date is not None:
            return self.end_date
        if self.start_date is None:
            return None
        return period_end(self.start_date, self.period)


class Goal(EntityModel):
    """
    A savings target.

    Over-funding is valid: current_amount may exceed target_amount.
    Completion is derived from the amounts, never stored.
    """

    name: str = Field(default="", max_length=200)
    target_amount: Money = Field(...)
    current_amount: SignedMoney = Field(default=ZERO)
    target_date: Optional[date] = Field(
        default=None,
        validation_alias=AliasChoices("target_date", "deadline"),
    )
    category: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)

    @field_validator('target_date', mode='before')
    @classmethod
    def coerce_dates(cls, v: Any) -> Any:
        return _coerce_date(v)


class RecurringObligation(EntityModel):
    """A bill that falls due on a schedule."""

    name: str = Field(
        default="",
        max_length=200,
        validation_alias=AliasChoices("name", "vendor", "contact_name"),
    )
    amount: Money = Field(...)
    frequency: Frequency = Frequency.MONTHLY
    next_due_date: Optional[date] = Field(
        default=None,
        validation_alias=AliasChoices("next_due_date", "due_date"),
    )
    category_id: Optional[int] = None
    is_paid: bool = False
    notes: Optional[str] = Field(default=None, max_length=1000)

    @model_validator(mode='before')
    @classmethod
    def paid_from_status(cls, data: Any) -> Any:
        """Some records carry status="paid" instead of is_paid."""
        if (
            isinstance(data, dict)
            and data.get("is_paid") is None
            and str(data.get("status", "")).lower() == "paid"
        ):
            data = {**data, "is_paid": True}
        return data

    @field_validator('frequency', mode='before')
    @classmethod
    def coerce_frequency(cls, v: Any) -> Any:
        return Frequency(v) if v else Frequency.MONTHLY

    @field_validator('next_due_date', mode='before')
    @classmethod
    def coerce_dates(cls, v: Any) -> Any:
        return _coerce_date(v)


class Subcategory(EntityModel):
    name: str = Field(default="", max_length=100)
    category_id: Optional[int] = None
    is_default: bool = False


class Category(EntityModel):
    """
    A classification label.

    System-seeded categories (is_default) can never be deleted.
    Color and icon are presentation-only.
    """

    name: str = Field(default="", max_length=100)
    type: CategoryType = CategoryType.EXPENSE
    color: Optional[str] = None
    icon: Optional[str] = None
    is_default: bool = False
    subcategories: list[Subcategory] = Field(default_factory=list)

    @field_validator('type', mode='before')
    @classmethod
    def coerce_type(cls, v: Any) -> Any:
        return CategoryType(v) if v else CategoryType.EXPENSE


ENTITY_MODELS: dict[EntityKind, type[EntityModel]] = {
    EntityKind.ACCOUNT: Account,
    EntityKind.LOAN: Loan,
    EntityKind.BUDGET: Budget,
    EntityKind.GOAL: Goal,
    EntityKind.BILL: RecurringObligation,
    EntityKind.CATEGORY: Category,
    EntityKind.SUBCATEGORY: Subcategory,
}


def kind_of(entity: EntityModel) -> EntityKind:
    """Entity kind for a model instance."""
    for kind, model in ENTITY_MODELS.items():
        if type(entity) is model:
            return kind
    raise TypeError(f"Not an entity model: {type(entity).__name__}")


def parse_entity(kind: EntityKind, record: dict[str, Any]) -> EntityModel:
    """Parse one store record into the model for `kind`."""
    return ENTITY_MODELS[EntityKind(kind)].model_validate(record)


def canonical_fields(kind: EntityKind, fields: Mapping[str, Any]) -> dict[str, Any]:
    """
    Rename alternate field names to the model's own names.

    Each field is resolved the way model validation resolves it: the first
    accepted name present in `fields` wins and the others are dropped. Rules
    that read fields before the model is built then see the same values the
    model will.
    """
    model = ENTITY_MODELS[EntityKind(kind)]
    resolved = dict(fields)
    for name, info in model.model_fields.items():
        alias = info.validation_alias
        if not isinstance(alias, AliasChoices):
            continue
        names = [choice for choice in alias.choices if isinstance(choice, str)]
        if name not in names:
            names.append(name)
        present = [key for key in names if key in resolved]
        if not present:
            continue
        value = resolved[present[0]]
        for key in present:
            del resolved[key]
        resolved[name] = value
    return resolved
