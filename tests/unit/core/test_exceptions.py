"""
Tests for the exception hierarchy
"""

import pytest

from core.exceptions import ConfigurationError, PlaceMatchError, ValidationError

pytestmark = [pytest.mark.unit, pytest.mark.core]


class TestExceptions:
    def test_base_error_defaults(self):
        error = PlaceMatchError("Something failed")

        assert str(error) == "Something failed"
        assert error.error_code == "PlaceMatchError"
        assert error.details == {}
        assert error.to_dict() == {"error": "PlaceMatchError", "message": "Something failed", "details": {}}

    def test_validation_error_carries_field(self):
        error = ValidationError("Bad query", field="original_place", type="dict")

        assert isinstance(error, PlaceMatchError)
        assert error.error_code == "VALIDATION_ERROR"
        assert error.details == {"field": "original_place", "type": "dict"}

    def test_configuration_error_carries_setting(self):
        error = ConfigurationError("Weight must be positive", setting="weights.name", value="-1")

        assert isinstance(error, PlaceMatchError)
        assert error.error_code == "CONFIGURATION_ERROR"
        assert error.to_dict()["details"] == {"setting": "weights.name", "value": "-1"}

    def test_configuration_error_without_setting(self):
        error = ConfigurationError("Tables missing")
        assert error.details == {}
