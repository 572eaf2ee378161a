"""
Configuration for the Budget Rollover Engine

Settings come from environment variables (and a local .env file) through
pydantic-settings.

DESIGN DECISION: Only the factory in orchestrator.py reads configuration.
The engine itself never reads the environment; it receives its
collaborators (storage, identity, default settings) through constructors,
so tests build it without touching env vars.
"""

import warnings
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Where the Google Sheets backend keeps budgets, expenses and settings."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Service account key file used to authorize gspread"
    )
    spreadsheet_id: str = Field(
        ...,
        description="Key of the spreadsheet holding the ledger"
    )

    budgets_sheet_name: str = Field(
        default="Budgets",
        description="Worksheet with one budget per row"
    )
    expenses_sheet_name: str = Field(
        default="Expenses",
        description="Worksheet with one expense per row"
    )
    preferences_sheet_name: str = Field(
        default="Preferences",
        description="Worksheet with one JSON settings document per user"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Append-only worksheet for audit events"
    )

    @field_validator('credentials_path')
    @classmethod
    def check_credentials_file(cls, v: str) -> str:
        """A missing key file only warns; it may be mounted after startup."""
        if not Path(v).exists():
            warnings.warn(
                f"Service account key not found at {v}; "
                "connecting to Google Sheets will fail until it exists."
            )
        return v


class AppSettings(BaseSettings):
    """
    Engine-wide settings.

    The default_* fields seed the rollover settings of users who never
    saved their own.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_environment: str = Field(
        default="development",
        description="Deployment environment name"
    )
    debug_mode: bool = Field(
        default=False,
        description="Verbose logging"
    )

    # Storage / identity
    storage_backend: str = Field(
        default="memory",
        pattern="^(memory|google_sheets)$",
        description="Which storage backend the factory wires up"
    )
    user_id: Optional[str] = Field(
        default=None,
        description="Resolved user identity for single-user deployments"
    )

    # Rollover defaults (used when a user has no saved settings)
    default_max_carry_over_percentage: int = Field(
        default=50,
        ge=0,
        le=100,
        description="Default cap on carry-over, as a percentage of the original limit"
    )
    default_carry_over_categories: str = Field(
        default="Entertainment,Shopping,Dining Out",
        description="Comma-separated list of categories opted in by default"
    )

    @property
    def default_categories_list(self) -> list[str]:
        """Get default carry-over categories as a list."""
        return [
            cat.strip()
            for cat in self.default_carry_over_categories.split(",")
            if cat.strip()
        ]


class Settings(BaseSettings):
    """
    Entry point to every settings section.

    Sections are built on access: a memory-backed deployment never needs
    the Google Sheets variables to be set.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Process-wide settings, loaded once.

    Tests that change the environment call get_settings.cache_clear().
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Report which settings sections load from the current environment.

    Returns {section: loaded}, plus "{section}_error" for each section
    that failed.
    """
    settings = get_settings()
    sections = {
        "google_sheets": lambda: settings.google_sheets,
        "app": lambda: settings.app,
    }

    results = {}
    for name, load in sections.items():
        try:
            load()
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)
    return results
