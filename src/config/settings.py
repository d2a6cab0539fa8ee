"""
Configuration Management for the Harmonization Engine

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All tunable heuristics live here.
The arithmetic contracts (ratio split, monthly normalization) are fixed in
code; only the best-effort parts (frequency windows, subscription
categories, logging) can be tuned per deployment.
"""

from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RecurrenceSettings(BaseSettings):
    """Tuning for recurring-charge detection."""

    model_config = SettingsConfigDict(
        env_prefix="HARMONY_RECURRENCE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Gap windows (in days) used to classify a cluster of charges
    monthly_min_days: int = Field(default=25, ge=1)
    monthly_max_days: int = Field(default=35, ge=1)
    quarterly_min_days: int = Field(default=85, ge=1)
    quarterly_max_days: int = Field(default=100, ge=1)
    semiannual_min_days: int = Field(default=175, ge=1)
    semiannual_max_days: int = Field(default=195, ge=1)
    yearly_min_days: int = Field(default=350, ge=1)
    yearly_max_days: int = Field(default=380, ge=1)

    min_regular_gap_share: float = Field(
        default=0.6,
        gt=0.0,
        le=1.0,
        description="Share of gaps that must fall in the chosen window"
    )

    subscription_categories: str = Field(
        default="Abonnements,Subscriptions",
        description="Comma-separated categories whose single charges count as subscriptions"
    )
    generic_labels: str = Field(
        default="virement émis,virement recu,virement reçu,virement vers,retrait,paiement",
        description="Comma-separated label fragments that are never subscriptions"
    )

    partner_default_day: int = Field(
        default=15,
        ge=1,
        le=31,
        description="Day of month shown for partner subscriptions without history"
    )

    @model_validator(mode='after')
    def validate_windows(self) -> 'RecurrenceSettings':
        """Each window must be well formed and windows must not overlap."""
        windows = self.windows
        for name, (low, high) in windows.items():
            if low > high:
                raise ValueError(f"{name} window is inverted ({low} > {high})")
        bounds = sorted(windows.values())
        for (_, prev_high), (next_low, _) in zip(bounds, bounds[1:]):
            if next_low <= prev_high:
                raise ValueError("Frequency windows must not overlap")
        return self

    @property
    def windows(self) -> dict[str, tuple[int, int]]:
        """Gap windows keyed by frequency value."""
        return {
            "monthly": (self.monthly_min_days, self.monthly_max_days),
            "quarterly": (self.quarterly_min_days, self.quarterly_max_days),
            "semiannual": (self.semiannual_min_days, self.semiannual_max_days),
            "yearly": (self.yearly_min_days, self.yearly_max_days),
        }

    @property
    def subscription_categories_list(self) -> list[str]:
        return [c.strip() for c in self.subscription_categories.split(",") if c.strip()]

    @property
    def generic_labels_list(self) -> list[str]:
        return [g.strip().lower() for g in self.generic_labels.split(",") if g.strip()]


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

    debug_mode: bool = Field(
        default=False,
        description="Log at DEBUG level regardless of log_level"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum level for engine log lines"
    )

    audit_history_size: int = Field(
        default=500,
        ge=1,
        description="How many audit events are kept in memory"
    )
    settlement_history_limit: int = Field(
        default=50,
        ge=1,
        le=1000,
        description="Default number of settlements returned by history()"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


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
    def recurrence(self) -> RecurrenceSettings:
        return RecurrenceSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.recurrence
        results["recurrence"] = True
    except Exception as e:
        results["recurrence"] = False
        results["recurrence_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
