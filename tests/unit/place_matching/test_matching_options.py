"""
Tests for matching weights and options validation
"""

import pytest

from core.exceptions import ConfigurationError
from place_matching.config import DEFAULT_OPTIONS, MatchingOptions, MatchingWeights

pytestmark = [pytest.mark.unit, pytest.mark.place_matching]


class TestMatchingWeights:
    def test_defaults(self):
        weights = MatchingWeights()

        assert weights.as_dict() == {"name": 40.0, "address": 30.0, "distance": 20.0, "category": 10.0}
        assert weights.total == 100
        assert weights.normalized() is weights

    def test_normalized_sums_to_one_hundred(self):
        weights = MatchingWeights(name=1, address=1, distance=1, category=1).normalized()

        assert weights.name == pytest.approx(25.0)
        assert weights.total == pytest.approx(100.0)

    def test_uneven_weights_normalize_exactly(self):
        weights = MatchingWeights(name=7, address=3, distance=3, category=1).normalized()

        assert weights.name + weights.address + weights.distance + weights.category == pytest.approx(100.0, abs=1e-9)

    @pytest.mark.parametrize("value", [0, -1, float("nan"), float("inf"), "40", True, None])
    def test_invalid_weight(self, value):
        with pytest.raises(ConfigurationError) as exc_info:
            MatchingWeights(name=value)

        assert exc_info.value.details["setting"] == "weights.name"
        assert exc_info.value.error_code == "CONFIGURATION_ERROR"


class TestMatchingOptions:
    def test_defaults(self):
        assert DEFAULT_OPTIONS.max_distance == 5000.0
        assert DEFAULT_OPTIONS.min_confidence_score == 30
        assert DEFAULT_OPTIONS.strict_mode is False
        assert DEFAULT_OPTIONS.include_debug_info is False

    def test_effective_weights(self):
        options = MatchingOptions(weights=MatchingWeights(name=2, address=1, distance=1, category=1))

        assert options.weight_for("name") == pytest.approx(40.0)
        assert options.weight_for("category") == pytest.approx(20.0)

    @pytest.mark.parametrize(
        "kwargs,setting",
        [
            ({"max_distance": 50}, "max_distance"),
            ({"max_distance": -10}, "max_distance"),
            ({"max_distance": float("inf")}, "max_distance"),
            ({"max_distance": "5km"}, "max_distance"),
            ({"min_confidence_score": -1}, "min_confidence_score"),
            ({"min_confidence_score": 101}, "min_confidence_score"),
            ({"min_confidence_score": "high"}, "min_confidence_score"),
            ({"weights": {"name": 40}}, "weights"),
        ],
    )
    def test_invalid_options(self, kwargs, setting):
        with pytest.raises(ConfigurationError) as exc_info:
            MatchingOptions(**kwargs)

        assert exc_info.value.details["setting"] == setting

    def test_boundary_values_accepted(self):
        options = MatchingOptions(max_distance=50.5, min_confidence_score=0)
        assert options.min_confidence_score == 0
        assert MatchingOptions(min_confidence_score=100).min_confidence_score == 100

    def test_options_are_frozen(self):
        with pytest.raises(AttributeError):
            DEFAULT_OPTIONS.strict_mode = True


class TestSkewedWeights:
    def test_dominant_weight_normalizes_without_error(self):
        options = MatchingOptions(weights=MatchingWeights(name=1e17, address=1, distance=1, category=1))

        weights = options.effective_weights
        assert all(0 < value <= 100 for value in weights.as_dict().values())
        assert weights.name == pytest.approx(100.0)
        assert weights.category > 0

    def test_uniform_scaling_keeps_ratios(self):
        weights = MatchingWeights(name=6, address=3, distance=2, category=1).normalized()

        assert weights.name / weights.category == pytest.approx(6.0)
        assert weights.address / weights.distance == pytest.approx(1.5)

    def test_underflowing_share_fails_at_construction(self):
        with pytest.raises(ConfigurationError) as exc_info:
            MatchingOptions(weights=MatchingWeights(name=1e300, address=1e-300, distance=1, category=1))

        assert exc_info.value.details["setting"] == "weights.address"

    def test_overflowing_total_fails_at_construction(self):
        with pytest.raises(ConfigurationError) as exc_info:
            MatchingOptions(weights=MatchingWeights(name=1e308, address=1e308, distance=1, category=1))

        assert exc_info.value.details["setting"] == "weights"
