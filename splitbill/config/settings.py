"""
Configuration Management for Split Bill

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # One worksheet per persisted collection
    transactions_sheet_name: str = Field(
        default="Transactions",
        description="Name of the sheet for bill headers"
    )
    items_sheet_name: str = Field(
        default="TransactionItems",
        description="Name of the sheet for line items"
    )
    participants_sheet_name: str = Field(
        default="TransactionParticipants",
        description="Name of the sheet for participants and their totals"
    )
    assignments_sheet_name: str = Field(
        default="ItemAssignments",
        description="Name of the sheet for item-participant links"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class ScanSettings(BaseSettings):
    """Receipt scan function endpoint configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SCAN_",
        extra="ignore"
    )

    function_url: str = Field(
        ...,
        description="URL of the scan-receipt function"
    )
    timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        le=300,
        description="HTTP timeout for a single scan request"
    )


class GeminiSettings(BaseSettings):
    """Gemini vision model configuration (used by the scan function)."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-2.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=2048,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    The defaults are the limits the app enforces on user input
    and on scanned receipt data.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Receipt upload limits
    max_upload_size_mb: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Maximum receipt image size in MB"
    )
    supported_image_formats: str = Field(
        default="jpeg,png",
        description="Comma-separated list of supported image formats"
    )

    # Bill limits
    min_participants: int = Field(
        default=2,
        ge=1,
        description="Participants required before a bill can be finalized"
    )
    max_participants: int = Field(
        default=10,
        ge=1,
        description="Maximum participants in one bill"
    )
    max_item_name_length: int = Field(
        default=100,
        ge=1,
        description="Maximum length of an item name"
    )
    max_item_price: float = Field(
        default=999999999.0,
        gt=0,
        description="Highest unit price accepted from a scan"
    )
    max_item_quantity: int = Field(
        default=9999,
        ge=1,
        description="Highest quantity accepted from a scan"
    )

    # Item categories
    default_item_category: str = Field(
        default="Other",
        description="Category for manually entered items"
    )
    scanned_item_category: str = Field(
        default="Food",
        description="Category for items detected on a receipt"
    )

    currency_code: str = Field(
        default="IDR",
        description="Currency all amounts are expressed in"
    )

    @property
    def supported_formats_list(self) -> list[str]:
        """Get supported formats as a list."""
        return [fmt.strip().lower() for fmt in self.supported_image_formats.split(",")]

    @property
    def supported_mime_types(self) -> set[str]:
        """MIME types matching the supported formats."""
        return {f"image/{fmt}" for fmt in self.supported_formats_list}

    @property
    def max_upload_size_bytes(self) -> int:
        """Get max upload size in bytes."""
        return self.max_upload_size_mb * 1024 * 1024


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

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def scan(self) -> ScanSettings:
        return ScanSettings()

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

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

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error entries describing what failed.
    Useful for startup checks.
    """
    results = {}
    settings = get_settings()

    for name in ("google_sheets", "scan", "gemini", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
