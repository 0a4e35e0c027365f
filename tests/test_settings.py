"""
Tests for configuration and classification rules.
"""

import pytest
from decimal import Decimal

from pydantic import ValidationError

from finstate.classification import DEFAULT_RULES, ClassificationRules, rules_from_settings
from finstate.config import (
    ClassificationSettings,
    StoreSettings,
    get_settings,
    validate_all_settings,
)


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestClassificationSettings:
    """Tests for threshold configuration."""

    def test_defaults(self):
        """Test the documented default thresholds."""
        settings = ClassificationSettings()
        assert settings.budget_warning_percent == 80.0
        assert settings.budget_over_percent == 100.0
        assert settings.due_soon_days == 3
        assert settings.due_this_week_days == 7
        assert settings.goal_near_target_percent == 75.0

    def test_environment_override(self, monkeypatch):
        """Test thresholds can be tuned through the environment."""
        monkeypatch.setenv("FINSTATE_RULES_BUDGET_WARNING_PERCENT", "70")
        rules = rules_from_settings(ClassificationSettings())
        assert rules.budget_warning_percent == Decimal("70.0")

    def test_rejects_overlapping_thresholds(self):
        """Test warning must stay below over-budget."""
        with pytest.raises(ValidationError):
            ClassificationSettings(budget_warning_percent=100, budget_over_percent=100)

    def test_rules_from_default_settings(self):
        """Test default settings produce the default rules."""
        assert rules_from_settings() == DEFAULT_RULES

    def test_rules_reject_inverted_windows(self):
        """Test due-soon cannot be wider than due-this-week."""
        with pytest.raises(ValidationError):
            ClassificationRules(due_soon_days=8, due_this_week_days=7)


class TestStoreSettings:
    """Tests for store access configuration."""

    def test_defaults(self):
        """Test retry defaults."""
        settings = StoreSettings()
        assert settings.read_attempts == 3
        assert settings.retry_wait_min == 2.0
        assert settings.retry_wait_max == 10.0

    def test_environment_override(self, monkeypatch):
        """Test the prefixed environment variables."""
        monkeypatch.setenv("FINSTATE_STORE_READ_ATTEMPTS", "5")
        assert StoreSettings().read_attempts == 5

    def test_attempts_bounds(self):
        """Test at least one attempt is required."""
        with pytest.raises(ValidationError):
            StoreSettings(read_attempts=0)


class TestSettingsRoot:
    """Tests for the root settings container."""

    def test_groups(self):
        """Test every group is reachable."""
        settings = get_settings()
        assert settings.app.currency_symbol == "$"
        assert settings.store.read_attempts >= 1

    def test_cached(self):
        """Test get_settings returns the same instance."""
        assert get_settings() is get_settings()

    def test_validate_all_settings(self):
        """Test the health report for valid configuration."""
        results = validate_all_settings()
        assert results == {"app": True, "classification": True, "store": True}

    def test_validate_all_settings_reports_errors(self, monkeypatch):
        """Test an invalid group is reported, not raised."""
        monkeypatch.setenv("FINSTATE_STORE_READ_ATTEMPTS", "0")
        results = validate_all_settings()
        assert results["store"] is False
        assert "store_error" in results
