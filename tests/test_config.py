"""Tests for configuration loading."""

import pytest

from splitbill.config import get_settings, validate_all_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "SCAN_FUNCTION_URL",
        "GEMINI_API_KEY",
        "GOOGLE_SHEETS_CREDENTIALS_PATH",
        "GOOGLE_SHEETS_SPREADSHEET_ID",
        "MAX_PARTICIPANTS",
    ):
        monkeypatch.delenv(name, raising=False)


class TestSettings:
    def test_app_defaults(self):
        app = get_settings().app
        assert app.max_upload_size_bytes == 5 * 1024 * 1024
        assert app.supported_mime_types == {"image/jpeg", "image/png"}
        assert app.min_participants == 2
        assert app.max_participants == 10
        assert app.default_item_category == "Other"
        assert app.scanned_item_category == "Food"

    def test_app_env_override(self, monkeypatch):
        monkeypatch.setenv("MAX_PARTICIPANTS", "12")
        assert get_settings().app.max_participants == 12

    def test_scan_settings_from_env(self, monkeypatch):
        monkeypatch.setenv("SCAN_FUNCTION_URL", "https://example.test/scan")
        scan = get_settings().scan
        assert scan.function_url == "https://example.test/scan"
        assert scan.timeout_seconds == 60

    def test_validate_all_settings_reports_missing(self, monkeypatch):
        monkeypatch.setenv("SCAN_FUNCTION_URL", "https://example.test/scan")

        results = validate_all_settings()

        assert results["scan"] is True
        assert results["app"] is True
        assert results["gemini"] is False
        assert "gemini_error" in results
        assert results["google_sheets"] is False


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
