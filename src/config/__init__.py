"""Configuration package."""

from src.config.settings import (
    AppSettings,
    RecurrenceSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "RecurrenceSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
