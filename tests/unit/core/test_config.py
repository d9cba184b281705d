"""
Tests for environment configuration
"""

import pytest
from pydantic import ValidationError

from core.config import Settings, get_settings

pytestmark = [pytest.mark.unit, pytest.mark.core]


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Clear the settings cache before each test"""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestSettings:
    """Test environment variable configuration and validation"""

    def test_default_settings(self, monkeypatch):
        """Defaults apply when nothing is configured"""
        for name in ("ENVIRONMENT", "LOG_LEVEL", "LOG_FORMAT", "MATCHING_TABLES_PATH"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)
        assert settings.environment == "development"
        assert settings.app_name == "PlaceMatch"
        assert settings.log_level == "INFO"
        assert settings.log_format == "json"
        assert settings.matching_tables_path is None
        assert settings.is_development is True
        assert settings.is_production is False

    def test_environment_variables_are_read(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "production")
        monkeypatch.setenv("LOG_FORMAT", "text")
        monkeypatch.setenv("MATCHING_TABLES_PATH", "/etc/placematch/tables.yaml")

        settings = Settings(_env_file=None)
        assert settings.is_production is True
        assert settings.log_format == "text"
        assert settings.matching_tables_path == "/etc/placematch/tables.yaml"

    def test_log_level_is_uppercased(self):
        assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"

    @pytest.mark.parametrize(
        "field,value",
        [
            ("environment", "qa"),
            ("log_level", "VERBOSE"),
            ("log_format", "xml"),
        ],
    )
    def test_invalid_values_rejected(self, field, value):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{field: value})

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()
