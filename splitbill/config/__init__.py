"""Configuration package."""

from splitbill.config.settings import (
    AppSettings,
    GeminiSettings,
    GoogleSheetsSettings,
    ScanSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GeminiSettings",
    "GoogleSheetsSettings",
    "ScanSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
