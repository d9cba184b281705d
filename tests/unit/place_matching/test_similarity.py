"""
Tests for the four match factor calculators
"""

import pytest

from place_matching.geo import CoordinateValidator
from place_matching.models import AddressComponents, CoordinatePrecision, Coordinates
from place_matching.similarity import (
    AddressFactor,
    CategoryFactor,
    DistanceFactor,
    NameFactor,
    levenshtein_distance,
    round_half_up,
    string_similarity,
)

pytestmark = [pytest.mark.unit, pytest.mark.place_matching]


def coords(lat, lng):
    return Coordinates(latitude=lat, longitude=lng, precision=CoordinatePrecision.EXACT)


class TestHelpers:
    def test_levenshtein(self):
        assert levenshtein_distance("kitten", "sitting") == 3
        assert levenshtein_distance("", "abc") == 3
        assert levenshtein_distance("same", "same") == 0

    def test_string_similarity(self):
        assert string_similarity("kitten", "sitting") == 57
        assert string_similarity("abc", "abc") == 100
        assert string_similarity("", "abc") == 0
        assert string_similarity(None, "abc") == 0

    @pytest.mark.parametrize("value,expected", [(2.5, 3), (2.49, 2), (0.49, 0), (-0.5, 0), (99.5, 100)])
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected


class TestNameFactor:
    @pytest.fixture
    def factor(self):
        return NameFactor()

    def test_exact_after_normalization(self, factor):
        result = factor.calculate("McDonald's Restaurant", "McDonald's")

        assert result.score == 100
        assert result.explanation == "Exact name match"
        assert result.debug_info is None

    def test_partial_match_with_bonuses(self, factor):
        result = factor.calculate("Starbucks Coffee", "Starbucks Reserve")

        assert result.score == 68
        assert result.explanation == "Name similarity: 53% (distance: 8, bonus: 15)"
        assert result.details["common_words"] == ["starbucks"]

    def test_bonus_is_capped(self, factor):
        result = factor.calculate("grand central oyster bar kitchen", "grand central oyster bar kitchens")

        assert result.score == 100

    def test_unrelated_names_score_low(self, factor):
        result = factor.calculate("Pizza Palace", "Zzyzx Laundromat")

        assert result.score < 50
        assert result.details["bonus"] == 0

    @pytest.mark.parametrize("original,candidate", [("", "Pizza"), ("Pizza", None), (None, None), ("!!!", "Pizza")])
    def test_missing_name(self, factor, original, candidate):
        result = factor.calculate(original, candidate)

        assert result.score == 0
        assert result.explanation == "Missing name data"

    def test_debug_trace(self, factor):
        result = factor.calculate("Starbucks Coffee", "Starbucks Reserve", include_debug=True)

        steps = [step.step for step in result.debug_info.calculation_steps]
        assert steps == [
            "normalization",
            "levenshtein_distance",
            "similarity_calculation",
            "final_score",
        ]
        assert [bonus.type for bonus in result.debug_info.bonuses] == ["partial_match", "common_words"]
        assert result.debug_info.normalized_inputs == {"original": "starbucks", "candidate": "starbucks reserve"}

    def test_common_words_require_three_characters(self):
        assert NameFactor.common_words("al of pizza", "al of pizzeria") == []
        assert NameFactor.common_words("joes pizza", "pizza joes") == ["joes", "pizza"]


class TestAddressFactor:
    @pytest.fixture
    def factor(self):
        return AddressFactor()

    def test_exact_match(self, factor):
        result = factor.calculate("123 Main St", "123 Main Street")

        assert result.score == 100
        assert result.explanation == "Exact address match"

    def test_component_matching(self, factor):
        result = factor.calculate("123 Main St, Springfield, IL 62701", "125 Main St, Springfield, IL 62701")

        assert result.score == 70
        assert result.explanation == "Address component matching: 70%"
        assert result.details["component_scores"] == {
            "street_number": 0,
            "street_name": 100,
            "city": 100,
            "postal_code": 100,
        }

    def test_full_string_fallback(self, factor):
        result = factor.compare(
            "Main Street",
            "Main St",
            "main street",
            "main st",
            AddressComponents(),
            AddressComponents(),
        )

        assert result.score == 64
        assert result.explanation == "Full address similarity: 64%"
        assert result.details["method"] == "full_string"

    @pytest.mark.parametrize("original,candidate", [("", "1 Main St"), ("1 Main St", None)])
    def test_missing_address(self, factor, original, candidate):
        result = factor.calculate(original, candidate)

        assert result.score == 0
        assert result.explanation == "Missing address data"

    def test_debug_lists_component_steps(self, factor):
        result = factor.calculate(
            "123 Main St, Springfield, IL 62701", "125 Main St, Springfield, IL 62701", include_debug=True
        )

        steps = [step.step for step in result.debug_info.calculation_steps]
        assert "street_number_match" in steps
        assert steps[-1] == "weighted_average"


class TestDistanceFactor:
    def test_within_fifty_meters(self):
        result = DistanceFactor.calculate(coords(40.0, -74.0), coords(40.0001, -74.0))

        assert result.score == 100
        assert result.explanation.startswith("Very close match")

    def test_linear_decay(self):
        result = DistanceFactor.calculate(coords(40.0, -74.0), coords(40.01, -74.0))

        assert result.score == 76
        assert result.explanation == "Moderate distance (1.1km)"
        assert result.details["distance_km"] == pytest.approx(1.11)

    def test_floor_inside_range(self):
        distance = CoordinateValidator.calculate_distance(40.0, -74.0, 40.0449, -74.0)
        assert distance < 5000

        result = DistanceFactor.calculate(coords(40.0, -74.0), coords(40.0449, -74.0))
        assert result.score >= 5

    def test_beyond_max_distance(self):
        result = DistanceFactor.calculate(coords(40.7128, -74.006), coords(34.0522, -118.2437))

        assert result.score == 0
        assert result.explanation.startswith("Far distance")

    def test_custom_max_distance(self):
        near = DistanceFactor.calculate(coords(40.0, -74.0), coords(40.01, -74.0), max_distance=1000.0)

        assert near.score == 0

    def test_missing_coordinates(self):
        result = DistanceFactor.calculate(None, coords(40.0, -74.0))

        assert result.score == 0
        assert result.explanation == "No coordinates available for distance calculation"
        assert result.details["coordinates_available"] is False


class TestCategoryFactor:
    @pytest.fixture
    def factor(self):
        return CategoryFactor()

    @pytest.mark.parametrize(
        "original,candidate,score,explanation",
        [
            (None, None, 50, "No category information available"),
            ("restaurant", None, 25, "Partial category information"),
            ("coffee_shop", "cafe", 100, "Exact category match"),
            ("restaurant", "cafe", 75, "Related category match"),
            ("restaurant", "bank", 0, "Different categories"),
        ],
    )
    def test_scores_and_explanations(self, factor, original, candidate, score, explanation):
        result = factor.calculate(original, candidate)

        assert result.score == score
        assert result.explanation == explanation

    def test_details_carry_normalized_buckets(self, factor):
        result = factor.calculate("Night Club", "pub")

        assert result.details["normalized_original"] == "bar"
        assert result.details["normalized_candidate"] == "bar"
