"""Shared classification thresholds."""

from finstate.classification.rules import (
    DEFAULT_RULES,
    ClassificationRules,
    rules_from_settings,
)

__all__ = ["DEFAULT_RULES", "ClassificationRules", "rules_from_settings"]
