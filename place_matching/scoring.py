"""
Score aggregation and calibration

The raw score is the weighted sum of the four factor scores. Calibration
applies small, bounded corrections based on data quality indicators and
clamps the result to [0, 100].
"""

import math
from typing import Optional, Sequence

from .categories import has_category
from .config import MatchingWeights
from .models import (
    CalibrationAdjustment,
    CalibrationInfo,
    FactorResult,
    FactorType,
    MatchFactor,
    NormalizedPlace,
    QualityIndicators,
)
from .similarity import round_half_up

FACTOR_ORDER = (FactorType.NAME, FactorType.ADDRESS, FactorType.DISTANCE, FactorType.CATEGORY)

# Data completeness weights; the original record counts for more
ORIGINAL_FIELD_WEIGHTS = {"name": 25, "address": 20, "coordinates": 15, "category": 10}
CANDIDATE_FIELD_WEIGHTS = {"name": 15, "address": 10, "coordinates": 5}

LOW_COMPLETENESS_THRESHOLD = 20
LOW_COMPLETENESS_RATE = 0.15
HIGH_STD_DEV_THRESHOLD = 50
HIGH_STD_DEV_RATE = 0.1
# Tunable: reward very consistent factors only on already strong matches
CONSISTENCY_BONUS_MIN_RAW_SCORE = 85
CONSISTENCY_BONUS_MAX_STD_DEV = 3
CONSISTENCY_BONUS_RATE = 0.1
LOW_GEO_RELIABILITY_THRESHOLD = 10
LOW_GEO_RELIABILITY_RATE = 0.2
PERFECT_MATCH_MIN_RAW_SCORE = 99
PERFECT_MATCH_MIN_COMPLETENESS = 95
THIN_DATA_MIN_RAW_SCORE = 95
THIN_DATA_MAX_COMPLETENESS = 30
THIN_DATA_RATE = 0.05


def factor_std_dev(factors: Sequence[MatchFactor]) -> float:
    """Population standard deviation of the factor scores"""
    if not factors:
        return 0.0
    scores = [factor.score for factor in factors]
    mean = sum(scores) / len(scores)
    variance = sum((score - mean) ** 2 for score in scores) / len(scores)
    return math.sqrt(variance)


def coordinates_available(factors: Sequence[MatchFactor]) -> bool:
    """False when the distance factor had no coordinates to compare"""
    for factor in factors:
        if factor.type is FactorType.DISTANCE:
            return factor.details.get("coordinates_available", True)
    return False


class ScoreAggregator:
    """Weights factor results and sums them into the raw score"""

    @staticmethod
    def build_factors(results: dict[FactorType, FactorResult], weights: MatchingWeights) -> tuple[MatchFactor, ...]:
        """
        Attach normalized weights to factor results

        Args:
            results: One FactorResult per factor type
            weights: Weights, renormalized here to sum to 100

        Returns:
            MatchFactors in name, address, distance, category order
        """
        weight_map = weights.normalized().as_dict()
        factors = []
        for factor_type in FACTOR_ORDER:
            result = results[factor_type]
            weight = weight_map[factor_type.value]
            factors.append(
                MatchFactor(
                    type=factor_type,
                    score=result.score,
                    weight=weight,
                    weighted_score=result.score * weight / 100,
                    explanation=result.explanation,
                    details=result.details,
                    debug_info=result.debug_info,
                )
            )
        return tuple(factors)

    @staticmethod
    def raw_score(factors: Sequence[MatchFactor]) -> float:
        return sum(factor.weighted_score for factor in factors)


class Calibrator:
    """Adjusts the raw score using data quality indicators"""

    def calibrate(
        self,
        raw_score: float,
        factors: Sequence[MatchFactor],
        original: NormalizedPlace,
        candidate: NormalizedPlace,
    ) -> CalibrationInfo:
        indicators = self.quality_indicators(factors, original, candidate)
        completeness = indicators.data_completeness
        reliability = indicators.geographic_reliability
        std_dev = factor_std_dev(factors)
        adjustments = []

        def adjust(factor: str, value: int, reason: str) -> None:
            if value:
                adjustments.append(CalibrationAdjustment(factor=factor, adjustment=value, reason=reason))

        if completeness < LOW_COMPLETENESS_THRESHOLD:
            adjust(
                "data_completeness",
                -round_half_up((LOW_COMPLETENESS_THRESHOLD - completeness) * LOW_COMPLETENESS_RATE),
                f"Extremely incomplete data reduces confidence ({completeness}% complete)",
            )

        if std_dev > HIGH_STD_DEV_THRESHOLD:
            adjust(
                "match_consistency",
                -round_half_up((std_dev - HIGH_STD_DEV_THRESHOLD) * HIGH_STD_DEV_RATE),
                f"Extremely high variance between match factors ({std_dev:.1f})",
            )
        elif std_dev < CONSISTENCY_BONUS_MAX_STD_DEV and raw_score > CONSISTENCY_BONUS_MIN_RAW_SCORE:
            adjust(
                "match_consistency",
                round_half_up((CONSISTENCY_BONUS_MAX_STD_DEV - std_dev) * CONSISTENCY_BONUS_RATE),
                f"Extremely consistent match factors boost confidence ({std_dev:.1f} std dev)",
            )

        if reliability < LOW_GEO_RELIABILITY_THRESHOLD:
            adjust(
                "geographic_reliability",
                -round_half_up((LOW_GEO_RELIABILITY_THRESHOLD - reliability) * LOW_GEO_RELIABILITY_RATE),
                f"Extremely poor geographic data reliability ({reliability}%)",
            )

        if raw_score >= PERFECT_MATCH_MIN_RAW_SCORE and completeness >= PERFECT_MATCH_MIN_COMPLETENESS:
            adjust("perfect_match_bonus", 1, "Perfect match with excellent data quality")

        if raw_score >= THIN_DATA_MIN_RAW_SCORE and completeness < THIN_DATA_MAX_COMPLETENESS:
            adjust(
                "high_score_data_penalty",
                -round_half_up((THIN_DATA_MIN_RAW_SCORE - completeness) * THIN_DATA_RATE),
                "Extremely high score with very poor data quality is less reliable",
            )

        adjusted = raw_score + sum(a.adjustment for a in adjustments)
        calibrated = max(0, min(100, round_half_up(adjusted)))

        return CalibrationInfo(
            raw_score=raw_score,
            calibrated_score=calibrated,
            adjustments=tuple(adjustments),
            quality_indicators=indicators,
        )

    def quality_indicators(
        self,
        factors: Sequence[MatchFactor],
        original: NormalizedPlace,
        candidate: NormalizedPlace,
    ) -> QualityIndicators:
        return QualityIndicators(
            data_completeness=self.data_completeness(original, candidate),
            match_consistency=max(0, round_half_up(100 - factor_std_dev(factors) * 2)),
            geographic_reliability=self.geographic_reliability(factors),
        )

    @staticmethod
    def data_completeness(original: NormalizedPlace, candidate: NormalizedPlace) -> int:
        """Weighted presence of name, address, coordinates and category"""
        score = 0
        if original.name:
            score += ORIGINAL_FIELD_WEIGHTS["name"]
        if original.address:
            score += ORIGINAL_FIELD_WEIGHTS["address"]
        if original.coordinates is not None:
            score += ORIGINAL_FIELD_WEIGHTS["coordinates"]
        if has_category(original.raw_category):
            score += ORIGINAL_FIELD_WEIGHTS["category"]
        if candidate.name:
            score += CANDIDATE_FIELD_WEIGHTS["name"]
        if candidate.address:
            score += CANDIDATE_FIELD_WEIGHTS["address"]
        if candidate.coordinates is not None:
            score += CANDIDATE_FIELD_WEIGHTS["coordinates"]
        total = sum(ORIGINAL_FIELD_WEIGHTS.values()) + sum(CANDIDATE_FIELD_WEIGHTS.values())
        return round_half_up(score / total * 100)

    @staticmethod
    def geographic_reliability(factors: Sequence[MatchFactor]) -> int:
        distance: Optional[MatchFactor] = next((f for f in factors if f.type is FactorType.DISTANCE), None)
        if distance is None or not coordinates_available(factors):
            return 0
        if distance.score >= 90:
            return 95
        if distance.score >= 70:
            return 80
        if distance.score >= 50:
            return 60
        return 30
