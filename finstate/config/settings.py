"""
Configuration Management for the Finance State Engine

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The classification thresholds live here too, so the 80%/100% budget
boundaries and the 3/7 day due-date boundaries are defined in exactly one
place and can be tuned per deployment without touching derivation code.
"""

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClassificationSettings(BaseSettings):
    """Thresholds shared by derivation and aggregation."""

    model_config = SettingsConfigDict(
        env_prefix="FINSTATE_RULES_",
        extra="ignore"
    )

    budget_warning_percent: float = Field(
        default=80.0,
        ge=0.0,
        description="Budget usage (%) at which a budget enters 'warning'"
    )
    budget_over_percent: float = Field(
        default=100.0,
        gt=0.0,
        description="Budget usage (%) at which a budget is 'over_budget'"
    )
    due_soon_days: int = Field(
        default=3,
        ge=0,
        description="Upper bound (inclusive) of the 'due_soon' bucket"
    )
    due_this_week_days: int = Field(
        default=7,
        ge=0,
        description="Upper bound (inclusive) of the 'due_this_week' bucket"
    )
    goal_near_target_percent: float = Field(
        default=75.0,
        ge=0.0,
        description="Goal progress (%) at which a goal is 'near_target'"
    )

    @model_validator(mode='after')
    def validate_ordering(self) -> 'ClassificationSettings':
        """Thresholds must be ordered or the buckets overlap."""
        if self.budget_warning_percent >= self.budget_over_percent:
            raise ValueError("Budget warning threshold must be below the over-budget threshold")
        if self.due_soon_days > self.due_this_week_days:
            raise ValueError("Due-soon window cannot be wider than the due-this-week window")
        return self


class StoreSettings(BaseSettings):
    """External store access configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FINSTATE_STORE_",
        extra="ignore"
    )

    read_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts for idempotent snapshot reads"
    )
    retry_wait_min: float = Field(
        default=2.0,
        ge=0.0,
        description="Minimum back-off between read attempts (seconds)"
    )
    retry_wait_max: float = Field(
        default=10.0,
        ge=0.0,
        description="Maximum back-off between read attempts (seconds)"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    currency_symbol: str = Field(
        default="$",
        max_length=5,
        description="Symbol used when formatting amounts for display"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def app(self) -> AppSettings:
        return AppSettings()

    @property
    def classification(self) -> ClassificationSettings:
        return ClassificationSettings()

    @property
    def store(self) -> StoreSettings:
        return StoreSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error entries for the groups that failed.
    """
    results = {}

    settings = get_settings()

    for name in ("app", "classification", "store"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
