"""Money and calendar-date primitives."""

from finstate.primitives.dates import (
    add_months,
    advance_by_frequency,
    days_between,
    parse_calendar_date,
    period_end,
)
from finstate.primitives.money import (
    HUNDRED,
    MONEY_QUANTUM,
    ZERO,
    Money,
    PositiveMoney,
    SignedMoney,
    clamp_percentage,
    is_representable_money,
    parse_amount,
    to_money,
)

__all__ = [
    # Money
    "HUNDRED",
    "MONEY_QUANTUM",
    "ZERO",
    "Money",
    "PositiveMoney",
    "SignedMoney",
    "clamp_percentage",
    "is_representable_money",
    "parse_amount",
    "to_money",
    # Dates
    "add_months",
    "advance_by_frequency",
    "days_between",
    "parse_calendar_date",
    "period_end",
]
