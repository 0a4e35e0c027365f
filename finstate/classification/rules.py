"""
Classification Rules

The thresholds every screen used to hard-code on its own. Defined once here
and handed to derivation, so a budget at 80% is a "warning" on the budget
list and on the dashboard alike.
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from finstate.config import ClassificationSettings, get_settings


class ClassificationRules(BaseModel):
    """Shared thresholds for budget, goal and due-date classification."""
    model_config = ConfigDict(frozen=True)

    budget_warning_percent: Decimal = Field(default=Decimal("80"), ge=0)
    budget_over_percent: Decimal = Field(default=Decimal("100"), gt=0)
    due_soon_days: int = Field(default=3, ge=0)
    due_this_week_days: int = Field(default=7, ge=0)
    goal_near_target_percent: Decimal = Field(default=Decimal("75"), ge=0)

    @model_validator(mode='after')
    def validate_ordering(self) -> 'ClassificationRules':
        if self.budget_warning_percent >= self.budget_over_percent:
            raise ValueError("Budget warning threshold must be below the over-budget threshold")
        if self.due_soon_days > self.due_this_week_days:
            raise ValueError("Due-soon window cannot be wider than the due-this-week window")
        return self


DEFAULT_RULES = ClassificationRules()


def rules_from_settings(
    settings: Optional[ClassificationSettings] = None,
) -> ClassificationRules:
    """Build rules from configuration (environment / .env)."""
    settings = settings or get_settings().classification
    return ClassificationRules(
        budget_warning_percent=Decimal(str(settings.budget_warning_percent)),
        budget_over_percent=Decimal(str(settings.budget_over_percent)),
        due_soon_days=settings.due_soon_days,
        due_this_week_days=settings.due_this_week_days,
        goal_near_target_percent=Decimal(str(settings.goal_near_target_percent)),
    )
