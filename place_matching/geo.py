"""
Coordinate validation and great-circle distance
"""

import math
from decimal import Decimal, InvalidOperation
from numbers import Real
from typing import Any, Optional

from geopy.distance import great_circle

from core.logging import get_logger

from .models import CoordinatePrecision, Coordinates, CoordinateValidation

logger = get_logger(__name__, domain="place_matching")

LATITUDE_MIN, LATITUDE_MAX = -90.0, 90.0
LONGITUDE_MIN, LONGITUDE_MAX = -180.0, 180.0
EARTH_RADIUS_KM = 6371.0
COORDINATE_DECIMALS = 6


def _coerce(value: Any) -> Optional[float]:
    """Convert a coordinate to float, None when the format is not numeric"""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
    elif not isinstance(value, (Real, Decimal)):
        return None
    try:
        return float(value)
    except (TypeError, ValueError, OverflowError):
        return None


def _decimal_places(value: Any) -> int:
    """Decimal digits the caller supplied for one coordinate"""
    if isinstance(value, str):
        text = value.strip()
    elif isinstance(value, int):
        return 0
    else:
        text = repr(float(value))
    try:
        exponent = Decimal(text).as_tuple().exponent
    except InvalidOperation:
        return 0
    if not isinstance(exponent, int):
        return 0
    return max(0, -exponent)


class CoordinateValidator:
    """Range checks, precision estimation and distance for lat/lng pairs"""

    @staticmethod
    def validate(latitude: Any, longitude: Any) -> CoordinateValidation:
        """
        Validate and normalize a coordinate pair

        Strings are coerced to numbers. Invalid input never raises; the
        returned validation carries the reasons instead.

        Args:
            latitude: Latitude as number or numeric string
            longitude: Longitude as number or numeric string

        Returns:
            CoordinateValidation with rounded values and precision when valid
        """
        if latitude is None or longitude is None:
            return CoordinateValidation(is_valid=False, errors=("Missing coordinate values",))

        lat = _coerce(latitude)
        lng = _coerce(longitude)
        if lat is None or lng is None:
            return CoordinateValidation(is_valid=False, errors=("Invalid coordinate format",))

        if not math.isfinite(lat) or not math.isfinite(lng):
            return CoordinateValidation(is_valid=False, errors=("Coordinates are not valid numbers",))

        errors = []
        if lat < LATITUDE_MIN or lat > LATITUDE_MAX:
            errors.append(f"Latitude must be between {LATITUDE_MIN:g} and {LATITUDE_MAX:g}")
        if lng < LONGITUDE_MIN or lng > LONGITUDE_MAX:
            errors.append(f"Longitude must be between {LONGITUDE_MIN:g} and {LONGITUDE_MAX:g}")
        # (0,0) is the usual placeholder for missing data
        if lat == 0 and lng == 0:
            errors.append("Coordinates (0,0) are likely invalid")

        if errors:
            return CoordinateValidation(is_valid=False, errors=tuple(errors))

        return CoordinateValidation(
            is_valid=True,
            latitude=round(lat, COORDINATE_DECIMALS),
            longitude=round(lng, COORDINATE_DECIMALS),
            precision=CoordinateValidator.estimate_precision(latitude, longitude),
        )

    @staticmethod
    def estimate_precision(latitude: Any, longitude: Any) -> CoordinatePrecision:
        """Estimate precision from the most detailed of the two coordinates"""
        decimals = max(_decimal_places(latitude), _decimal_places(longitude))
        if decimals >= 5:
            return CoordinatePrecision.EXACT
        if decimals >= 3:
            return CoordinatePrecision.APPROXIMATE
        if decimals >= 1:
            return CoordinatePrecision.CITY
        return CoordinatePrecision.REGION

    @staticmethod
    def to_coordinates(latitude: Any, longitude: Any) -> Optional[Coordinates]:
        """Validated Coordinates, or None when the pair is missing or invalid"""
        validation = CoordinateValidator.validate(latitude, longitude)
        if not validation.is_valid:
            return None
        return Coordinates(
            latitude=validation.latitude,
            longitude=validation.longitude,
            precision=validation.precision,
        )

    @staticmethod
    def calculate_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
        """
        Great-circle distance between two points

        Args:
            lat1, lng1: First point coordinates
            lat2, lng2: Second point coordinates

        Returns:
            Distance in meters on a sphere of radius 6,371 km
        """
        try:
            return great_circle((lat1, lng1), (lat2, lng2), radius=EARTH_RADIUS_KM).meters
        except (ValueError, TypeError) as e:
            logger.error(f"Error calculating distance: {e}")
            return float("inf")
