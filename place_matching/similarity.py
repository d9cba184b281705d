"""
Match factor calculators

Four independent similarity dimensions, each scored 0-100 with a short
explanation and an optional calculation trace. Missing data is scored, not
raised: every calculator returns a FactorResult for any input.
"""

import math
from typing import Any, Optional

from rapidfuzz.distance import Levenshtein

from .categories import CategoryMapper, has_category
from .geo import CoordinateValidator
from .models import (
    AddressComponents,
    CalculationStep,
    Coordinates,
    FactorDebugInfo,
    FactorResult,
    ScoreAdjustment,
)
from .normalization import AddressNormalizer, NameNormalizer

CONTAINMENT_BONUS = 10
COMMON_WORD_BONUS = 5
MAX_COMMON_WORD_BONUS = 20
MIN_COMMON_WORD_LENGTH = 3

PERFECT_DISTANCE_METERS = 50.0
DISTANCE_DECAY_START = 95
DISTANCE_DECAY_SPAN = 90
MIN_IN_RANGE_DISTANCE_SCORE = 5

# (component, weight, compared by edit distance)
ADDRESS_COMPONENT_WEIGHTS = (
    ("street_number", 30, False),
    ("street_name", 40, True),
    ("city", 20, True),
    ("postal_code", 10, False),
)


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives, matching JavaScript's Math.round"""
    return int(math.floor(value + 0.5))


def levenshtein_distance(a: str, b: str) -> int:
    """Single-character insert/delete/substitute edits turning `a` into `b`"""
    return Levenshtein.distance(a, b)


def string_similarity(a: Optional[str], b: Optional[str]) -> int:
    """Edit-distance similarity as an integer percentage; 0 when either side is empty"""
    if not a or not b:
        return 0
    if a == b:
        return 100
    max_length = max(len(a), len(b))
    return max(0, round_half_up((max_length - levenshtein_distance(a, b)) / max_length * 100))


class _Trace:
    """Collects calculation steps when debug output is requested"""

    def __init__(self, enabled: bool, raw_inputs: dict[str, Any], normalized_inputs: Optional[dict[str, Any]] = None):
        self.enabled = enabled
        self.raw_inputs = raw_inputs
        self.normalized_inputs = normalized_inputs or {}
        self.steps: list[CalculationStep] = []
        self.bonuses: list[ScoreAdjustment] = []

    def step(self, step: str, value: Any, description: str) -> None:
        if self.enabled:
            self.steps.append(CalculationStep(step=step, value=value, description=description))

    def bonus(self, bonus_type: str, value: float, reason: str) -> None:
        if self.enabled:
            self.bonuses.append(ScoreAdjustment(type=bonus_type, value=value, reason=reason))

    def build(self) -> Optional[FactorDebugInfo]:
        if not self.enabled:
            return None
        return FactorDebugInfo(
            raw_inputs=self.raw_inputs,
            normalized_inputs=self.normalized_inputs,
            calculation_steps=tuple(self.steps),
            bonuses=tuple(self.bonuses),
        )


class NameFactor:
    """
    Name similarity

    Exact normalized match scores 100. Otherwise the edit-distance similarity
    plus a containment bonus and a shared-word bonus, capped at 100.
    """

    def __init__(self, normalizer: Optional[NameNormalizer] = None):
        self.normalizer = normalizer or NameNormalizer()

    def calculate(self, original: Any, candidate: Any, include_debug: bool = False) -> FactorResult:
        return self.compare(
            original,
            candidate,
            self.normalizer.normalize(original),
            self.normalizer.normalize(candidate),
            include_debug,
        )

    def compare(
        self,
        original: Any,
        candidate: Any,
        normalized_original: str,
        normalized_candidate: str,
        include_debug: bool = False,
    ) -> FactorResult:
        trace = _Trace(
            include_debug,
            {"original": original, "candidate": candidate},
            {"original": normalized_original, "candidate": normalized_candidate},
        )

        if not normalized_original or not normalized_candidate:
            trace.step("validation", 0, "Missing name data - cannot calculate similarity")
            return FactorResult(
                score=0,
                explanation="Missing name data",
                details={"original": original, "candidate": candidate},
                debug_info=trace.build(),
            )

        trace.step(
            "normalization",
            f'"{normalized_original}" vs "{normalized_candidate}"',
            "Names normalized for comparison",
        )

        if normalized_original == normalized_candidate:
            trace.step("exact_match", 100, "Perfect match after normalization")
            return FactorResult(
                score=100,
                explanation="Exact name match",
                details={
                    "normalized_original": normalized_original,
                    "normalized_candidate": normalized_candidate,
                    "distance": 0,
                },
                debug_info=trace.build(),
            )

        distance = levenshtein_distance(normalized_original, normalized_candidate)
        max_length = max(len(normalized_original), len(normalized_candidate))
        trace.step(
            "levenshtein_distance",
            distance,
            f"Edit distance between normalized names (max length: {max_length})",
        )

        similarity = max(0, round_half_up((max_length - distance) / max_length * 100))
        trace.step(
            "similarity_calculation",
            similarity,
            f"Base similarity: ({max_length} - {distance}) / {max_length} * 100",
        )

        bonus = 0
        if normalized_original in normalized_candidate or normalized_candidate in normalized_original:
            bonus += CONTAINMENT_BONUS
            trace.bonus("partial_match", CONTAINMENT_BONUS, "One name contains the other")

        common_words = self.common_words(normalized_original, normalized_candidate)
        if common_words:
            word_bonus = min(MAX_COMMON_WORD_BONUS, COMMON_WORD_BONUS * len(common_words))
            bonus += word_bonus
            trace.bonus(
                "common_words",
                word_bonus,
                f"{len(common_words)} common words found: {', '.join(common_words)}",
            )

        score = min(100, similarity + bonus)
        trace.step("final_score", score, f"Final score: {similarity} + {bonus} (capped at 100)")

        return FactorResult(
            score=score,
            explanation=f"Name similarity: {similarity}% (distance: {distance}, bonus: {bonus})",
            details={
                "normalized_original": normalized_original,
                "normalized_candidate": normalized_candidate,
                "distance": distance,
                "similarity": similarity,
                "bonus": bonus,
                "common_words": common_words,
            },
            debug_info=trace.build(),
        )

    @staticmethod
    def common_words(normalized_original: str, normalized_candidate: str) -> list[str]:
        """Words of the original that overlap a candidate word by containment"""
        candidate_words = [w for w in normalized_candidate.split() if len(w) >= MIN_COMMON_WORD_LENGTH]
        return [
            word
            for word in normalized_original.split()
            if len(word) >= MIN_COMMON_WORD_LENGTH
            and any(other in word or word in other for other in candidate_words)
        ]


class AddressFactor:
    """
    Address similarity

    Exact normalized match scores 100. Otherwise a weighted average over the
    components found on both sides, falling back to whole-string similarity.
    """

    def __init__(self, normalizer: Optional[AddressNormalizer] = None):
        self.normalizer = normalizer or AddressNormalizer()

    def calculate(self, original: Any, candidate: Any, include_debug: bool = False) -> FactorResult:
        return self.compare(
            original,
            candidate,
            self.normalizer.normalize(original),
            self.normalizer.normalize(candidate),
            include_debug=include_debug,
        )

    def compare(
        self,
        original: Any,
        candidate: Any,
        normalized_original: str,
        normalized_candidate: str,
        original_components: Optional[AddressComponents] = None,
        candidate_components: Optional[AddressComponents] = None,
        include_debug: bool = False,
    ) -> FactorResult:
        trace = _Trace(
            include_debug,
            {"original": original, "candidate": candidate},
            {"original": normalized_original, "candidate": normalized_candidate},
        )

        if not normalized_original or not normalized_candidate:
            trace.step("validation", 0, "Missing address data - cannot calculate similarity")
            return FactorResult(
                score=0,
                explanation="Missing address data",
                details={"original": original, "candidate": candidate},
                debug_info=trace.build(),
            )

        trace.step(
            "normalization",
            f'"{normalized_original}" vs "{normalized_candidate}"',
            "Addresses normalized for comparison",
        )

        if normalized_original == normalized_candidate:
            trace.step("exact_match", 100, "Perfect match after normalization")
            return FactorResult(
                score=100,
                explanation="Exact address match",
                details={"normalized_original": normalized_original, "normalized_candidate": normalized_candidate},
                debug_info=trace.build(),
            )

        if original_components is None:
            original_components = self.normalizer.extract_components(original)
        if candidate_components is None:
            candidate_components = self.normalizer.extract_components(candidate)
        trace.step(
            "component_extraction",
            {"original": original_components.as_dict(), "candidate": candidate_components.as_dict()},
            "Address components extracted for detailed matching",
        )

        total = 0
        weight_sum = 0
        component_scores = {}
        for component, weight, fuzzy in ADDRESS_COMPONENT_WEIGHTS:
            left = getattr(original_components, component)
            right = getattr(candidate_components, component)
            if not left or not right:
                continue
            if fuzzy:
                component_score = string_similarity(left, right)
            else:
                component_score = 100 if left == right else 0
            component_scores[component] = component_score
            total += component_score * weight
            weight_sum += weight
            trace.step(
                f"{component}_match",
                component_score,
                f'{component.replace("_", " ").capitalize()}: "{left}" vs "{right}" (weight: {weight}%)',
            )

        if weight_sum == 0:
            similarity = string_similarity(normalized_original, normalized_candidate)
            trace.step(
                "fallback_full_string",
                similarity,
                "No address components matched - using full string similarity",
            )
            return FactorResult(
                score=similarity,
                explanation=f"Full address similarity: {similarity}%",
                details={
                    "normalized_original": normalized_original,
                    "normalized_candidate": normalized_candidate,
                    "method": "full_string",
                    "similarity": similarity,
                },
                debug_info=trace.build(),
            )

        score = round_half_up(total / weight_sum)
        trace.step("weighted_average", score, f"Weighted average: {total} / {weight_sum} = {score}")

        return FactorResult(
            score=score,
            explanation=f"Address component matching: {score}%",
            details={
                "normalized_original": normalized_original,
                "normalized_candidate": normalized_candidate,
                "original_components": original_components.as_dict(),
                "candidate_components": candidate_components.as_dict(),
                "component_scores": component_scores,
                "method": "component_based",
            },
            debug_info=trace.build(),
        )


class DistanceFactor:
    """
    Geographic proximity

    Within 50 m scores 100; up to the maximum distance the score decays
    linearly from 95 to 5; beyond it scores 0. Missing coordinates score 0
    and are reported as unavailable rather than far.
    """

    @staticmethod
    def calculate(
        original: Optional[Coordinates],
        candidate: Optional[Coordinates],
        max_distance: float = 5000.0,
        include_debug: bool = False,
    ) -> FactorResult:
        if original is None or candidate is None:
            trace = _Trace(include_debug, {"original": original, "candidate": candidate})
            trace.step("validation", 0, "Coordinates missing or invalid on at least one side")
            return FactorResult(
                score=0,
                explanation="No coordinates available for distance calculation",
                details={"coordinates_available": False, "max_distance": max_distance},
                debug_info=trace.build(),
            )

        original_point = {"latitude": original.latitude, "longitude": original.longitude}
        candidate_point = {"latitude": candidate.latitude, "longitude": candidate.longitude}
        trace = _Trace(include_debug, {"original": original_point, "candidate": candidate_point})

        distance = CoordinateValidator.calculate_distance(
            original.latitude, original.longitude, candidate.latitude, candidate.longitude
        )
        if not math.isfinite(distance):
            trace.step("haversine_calculation", None, "Distance could not be calculated")
            return FactorResult(
                score=0,
                explanation="Distance could not be calculated",
                details={"coordinates_available": True, "distance_meters": None, "max_distance": max_distance},
                debug_info=trace.build(),
            )

        meters = round_half_up(distance)
        trace.step("haversine_calculation", meters, f"Great-circle distance: {meters}m")

        if distance <= PERFECT_DISTANCE_METERS:
            score = 100
            reason = "Within 50m threshold - perfect score"
        elif distance <= max_distance:
            progress = (distance - PERFECT_DISTANCE_METERS) / (max_distance - PERFECT_DISTANCE_METERS)
            score = max(
                MIN_IN_RANGE_DISTANCE_SCORE,
                round_half_up(DISTANCE_DECAY_START - progress * DISTANCE_DECAY_SPAN),
            )
            reason = f"Linear decay from 95 to 5 over {max_distance:g}m range"
        else:
            score = 0
            reason = f"Beyond maximum distance threshold of {max_distance:g}m"
        trace.step("score_calculation", score, reason)

        return FactorResult(
            score=score,
            explanation=DistanceFactor.describe(distance),
            details={
                "coordinates_available": True,
                "distance_meters": meters,
                "distance_km": round(distance / 1000, 2),
                "original_coords": original_point,
                "candidate_coords": candidate_point,
                "max_distance": max_distance,
            },
            debug_info=trace.build(),
        )

    @staticmethod
    def describe(distance: float) -> str:
        if distance < 50:
            return f"Very close match ({round_half_up(distance)}m)"
        if distance < 500:
            return f"Close match ({round_half_up(distance)}m)"
        if distance < 2000:
            return f"Moderate distance ({distance / 1000:.1f}km)"
        return f"Far distance ({distance / 1000:.1f}km)"


class CategoryFactor:
    """Category similarity on the discrete same/related/unrelated scale"""

    def __init__(self, mapper: Optional[CategoryMapper] = None):
        self.mapper = mapper or CategoryMapper()

    def calculate(self, original: Optional[str], candidate: Optional[str], include_debug: bool = False) -> FactorResult:
        normalized_original = self.mapper.normalize(original) if has_category(original) else None
        normalized_candidate = self.mapper.normalize(candidate) if has_category(candidate) else None
        trace = _Trace(
            include_debug,
            {"original": original or "none", "candidate": candidate or "none"},
            {"original": normalized_original, "candidate": normalized_candidate},
        )

        score = self.mapper.calculate_similarity(original, candidate)
        if normalized_original is None and normalized_candidate is None:
            explanation = "No category information available"
            trace.step("both_missing", score, "Both categories missing - neutral score")
        elif normalized_original is None or normalized_candidate is None:
            explanation = "Partial category information"
            trace.step("one_missing", score, "One category missing - low confidence score")
        elif score == 100:
            explanation = "Exact category match"
            trace.step("exact_match", score, "Perfect category match after normalization")
        elif score > 50:
            explanation = "Related category match"
            trace.step(
                "relation_check",
                score,
                f"Categories are related ({normalized_original} <-> {normalized_candidate})",
            )
        else:
            explanation = "Different categories"
            trace.step("relation_check", score, "Categories are not related")

        return FactorResult(
            score=score,
            explanation=explanation,
            details={
                "original_category": original,
                "candidate_category": candidate,
                "normalized_original": normalized_original,
                "normalized_candidate": normalized_candidate,
            },
            debug_info=trace.build(),
        )
