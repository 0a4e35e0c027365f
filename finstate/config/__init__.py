"""Configuration package."""

from finstate.config.settings import (
    AppSettings,
    ClassificationSettings,
    Settings,
    StoreSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "ClassificationSettings",
    "Settings",
    "StoreSettings",
    "get_settings",
    "validate_all_settings",
]
