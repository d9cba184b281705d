"""
Tests for coordinate validation and distance
"""

import math

import pytest

from place_matching.geo import CoordinateValidator
from place_matching.models import CoordinatePrecision

pytestmark = [pytest.mark.unit, pytest.mark.place_matching]

NEW_YORK = (40.7128, -74.0060)
LOS_ANGELES = (34.0522, -118.2437)


class TestCoordinateValidation:
    def test_valid_coordinates(self):
        result = CoordinateValidator.validate(*NEW_YORK)

        assert result.is_valid is True
        assert result.latitude == 40.7128
        assert result.longitude == -74.006
        assert result.errors == ()
        assert result.precision is CoordinatePrecision.APPROXIMATE

    def test_numeric_strings_are_coerced(self):
        result = CoordinateValidator.validate(" 40.712776 ", "-74.005974")

        assert result.is_valid is True
        assert result.latitude == 40.712776
        assert result.precision is CoordinatePrecision.EXACT

    def test_rounded_to_six_decimals(self):
        result = CoordinateValidator.validate(40.71277612345, -74.00597498765)

        assert result.latitude == 40.712776
        assert result.longitude == -74.005975

    @pytest.mark.parametrize(
        "lat,lng,precision",
        [
            (40.712776, -74.005974, CoordinatePrecision.EXACT),
            (40.713, -74.006, CoordinatePrecision.APPROXIMATE),
            (40.7, -74.0, CoordinatePrecision.CITY),
            (40, -74, CoordinatePrecision.REGION),
            ("40", "-74", CoordinatePrecision.REGION),
        ],
    )
    def test_precision_from_decimal_digits(self, lat, lng, precision):
        assert CoordinateValidator.validate(lat, lng).precision is precision

    @pytest.mark.parametrize(
        "lat,lng,error",
        [
            (None, -74.0, "Missing coordinate values"),
            (40.7, None, "Missing coordinate values"),
            ("north", "-74.0", "Invalid coordinate format"),
            (True, -74.0, "Invalid coordinate format"),
            ([40.7], -74.0, "Invalid coordinate format"),
            (float("nan"), -74.0, "Coordinates are not valid numbers"),
            (40.7, float("inf"), "Coordinates are not valid numbers"),
            ("nan", "1.0", "Coordinates are not valid numbers"),
            (0, 0, "Coordinates (0,0) are likely invalid"),
        ],
    )
    def test_invalid_coordinates(self, lat, lng, error):
        result = CoordinateValidator.validate(lat, lng)

        assert result.is_valid is False
        assert error in result.errors
        assert result.latitude is None
        assert result.precision is None

    def test_range_errors_reported_per_axis(self):
        result = CoordinateValidator.validate(91.0, -181.0)

        assert result.errors == (
            "Latitude must be between -90 and 90",
            "Longitude must be between -180 and 180",
        )

    def test_boundaries_are_valid(self):
        assert CoordinateValidator.validate(90, 180).is_valid is True
        assert CoordinateValidator.validate(-90, -180).is_valid is True

    def test_to_coordinates(self):
        coords = CoordinateValidator.to_coordinates(*NEW_YORK)

        assert coords.latitude == 40.7128
        assert coords.precision is CoordinatePrecision.APPROXIMATE
        assert CoordinateValidator.to_coordinates(0, 0) is None


class TestDistance:
    def test_same_point(self):
        assert CoordinateValidator.calculate_distance(*NEW_YORK, *NEW_YORK) == pytest.approx(0.0, abs=1e-6)

    def test_new_york_to_los_angeles(self):
        distance = CoordinateValidator.calculate_distance(*NEW_YORK, *LOS_ANGELES)

        assert 3_900_000 < distance < 3_970_000

    def test_one_thousandth_degree_of_latitude(self):
        distance = CoordinateValidator.calculate_distance(40.0, -74.0, 40.001, -74.0)

        assert distance == pytest.approx(6_371_000 * math.radians(0.001), rel=1e-6)

    def test_symmetric(self):
        forward = CoordinateValidator.calculate_distance(*NEW_YORK, *LOS_ANGELES)
        backward = CoordinateValidator.calculate_distance(*LOS_ANGELES, *NEW_YORK)

        assert forward == pytest.approx(backward)

    def test_invalid_latitude_is_infinitely_far(self):
        assert CoordinateValidator.calculate_distance(120.0, 0.0, 0.0, 0.0) == float("inf")
