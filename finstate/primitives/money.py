"""
Money Primitives

DESIGN DECISION: Every amount in the engine is a Decimal quantized to two
fractional digits. Floats only ever enter through `str()` so that 0.1 stays
0.1 and never becomes 0.1000000000000000055511151231257827.

Two conversion paths exist on purpose:
- `to_money` is STRICT. It is used for anything that will be validated or
  stored. Garbage in raises ValueError.
- `parse_amount` is TOLERANT. It is used only by aggregation, where one
  malformed record must contribute zero instead of aborting a dashboard total.
"""

import re
import unicodedata
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated, Any

from pydantic import AfterValidator, BeforeValidator


MONEY_QUANTUM = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

# Tolerant parsing drops currency symbols and separators
# ("$1,234.50" -> "1234.50"). Whatever is left must be a plain decimal number.
_SEPARATORS = re.compile(r"[\s,]")
_PLAIN_NUMBER = re.compile(r"-?(\d+\.?\d*|\.\d+)")


def _strip_formatting(text: str) -> str:
    text = _SEPARATORS.sub("", text)
    return "".join(ch for ch in text if unicodedata.category(ch) != "Sc")


def _to_decimal(value: Any) -> Decimal:
    """Convert a raw value to Decimal without quantizing."""
    if isinstance(value, bool):
        raise ValueError("Booleans are not amounts")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, str):
        try:
            return Decimal(value.strip())
        except InvalidOperation:
            raise ValueError(f"Not a valid amount: {value!r}")
    raise ValueError(f"Unsupported amount type: {type(value).__name__}")


def to_money(value: Any) -> Decimal:
    """
    Convert a value to a two-digit Money Decimal.

    Raises:
        ValueError: If the value is not numeric, NaN or infinite
    """
    amount = _to_decimal(value)
    if not amount.is_finite():
        raise ValueError(f"Amount must be finite, got {value!r}")
    try:
        return amount.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError(f"Amount is too large to represent: {value!r}")


def parse_amount(value: Any, fallback: Decimal = ZERO) -> Decimal:
    """
    Tolerant amount parsing for aggregation.

    None, blanks, booleans, non-numeric strings, NaN and infinities
    all become `fallback`.
    """
    if value is None or isinstance(value, bool):
        return fallback
    if isinstance(value, str):
        cleaned = _strip_formatting(value)
        if not _PLAIN_NUMBER.fullmatch(cleaned):
            return fallback
        value = cleaned
    try:
        return to_money(value)
    except ValueError:
        return fallback


def is_representable_money(value: Any) -> bool:
    """True for a finite Decimal with at most two fractional digits."""
    if not isinstance(value, Decimal) or not value.is_finite():
        return False
    return value == value.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def clamp_percentage(value: Decimal) -> Decimal:
    """Clamp a percentage into [0, 100]. Display use only."""
    if value < 0:
        return Decimal("0")
    if value > HUNDRED:
        return HUNDRED
    return value


def _non_negative(value: Decimal) -> Decimal:
    if value < 0:
        raise ValueError("Amount cannot be negative")
    return value


def _positive(value: Decimal) -> Decimal:
    if value <= 0:
        raise ValueError("Amount must be greater than zero")
    return value


# Pydantic field types. Floats are routed through `to_money` before pydantic
# sees them, so the float->Decimal conversion always goes via str().
SignedMoney = Annotated[Decimal, BeforeValidator(to_money)]
Money = Annotated[Decimal, BeforeValidator(to_money), AfterValidator(_non_negative)]
PositiveMoney = Annotated[Decimal, BeforeValidator(to_money), AfterValidator(_positive)]
