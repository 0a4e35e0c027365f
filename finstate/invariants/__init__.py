"""State invariants enforced around every mutation."""

from finstate.invariants.checker import InvariantChecker, InvariantViolationError

__all__ = [
    "InvariantChecker",
    "InvariantViolationError",
]
