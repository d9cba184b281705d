"""
Match explanation

Summarizes how each factor contributed to a match and flags conditions a
reviewer should look at.
"""

import math
from typing import Sequence

from .models import (
    CalibrationInfo,
    DebugSummary,
    FactorContribution,
    FactorType,
    MatchFactor,
    Reliability,
)
from .scoring import coordinates_available, factor_std_dev

# (high, medium) score thresholds per factor type
RELIABILITY_THRESHOLDS = {
    FactorType.NAME: (90, 60),
    FactorType.ADDRESS: (85, 50),
    FactorType.DISTANCE: (80, 40),
    FactorType.CATEGORY: (75, 25),
}

LOW_COMPLETENESS = 50
HIGH_STD_DEV = 30
LOW_FACTOR_SCORE = 30
IMPORTANT_FACTOR_WEIGHT = 20
LARGE_ADJUSTMENT = 5


def contribution_percentages(factors: Sequence[MatchFactor]) -> list[int]:
    """
    Integer share of the weighted score per factor, summing to exactly 100

    Uses the largest-remainder method. When every weighted score is zero the
    weights themselves are apportioned.
    """
    if not factors:
        return []

    total = sum(factor.weighted_score for factor in factors)
    if total > 0:
        shares = [factor.weighted_score / total * 100 for factor in factors]
    else:
        total_weight = sum(factor.weight for factor in factors)
        shares = [factor.weight / total_weight * 100 for factor in factors]

    floors = [math.floor(share) for share in shares]
    remainder = max(0, 100 - sum(floors))
    by_fraction = sorted(range(len(shares)), key=lambda i: (-(shares[i] - floors[i]), i))
    for index in by_fraction[:remainder]:
        floors[index] += 1
    return floors


def assess_reliability(factor: MatchFactor) -> Reliability:
    """Reliability of a single factor from its type-specific thresholds"""
    if factor.type is FactorType.DISTANCE and not factor.details.get("coordinates_available", True):
        return Reliability.LOW
    high, medium = RELIABILITY_THRESHOLDS[factor.type]
    if factor.score >= high:
        return Reliability.HIGH
    if factor.score >= medium:
        return Reliability.MEDIUM
    return Reliability.LOW


class Explainer:
    """Builds the DebugSummary attached to every match"""

    def summarize(
        self,
        factors: Sequence[MatchFactor],
        calibration: CalibrationInfo,
        processing_time_ms: float = 0.0,
    ) -> DebugSummary:
        contributions = tuple(
            FactorContribution(factor=factor.type, contribution=share, reliability=assess_reliability(factor))
            for factor, share in zip(factors, contribution_percentages(factors))
        )

        issues = []
        recommendations = []

        if calibration.quality_indicators.data_completeness < LOW_COMPLETENESS:
            issues.append("Incomplete place data may affect match accuracy")
            recommendations.append("Verify place information manually if confidence is borderline")

        if factor_std_dev(factors) > HIGH_STD_DEV:
            issues.append("High variance between matching factors")
            recommendations.append("Review individual factor scores for conflicting signals")

        if not coordinates_available(factors):
            issues.append("No geographic coordinates available for distance matching")
            recommendations.append("Consider manual verification for places without location data")

        weak = [f.type.value for f in factors if f.score < LOW_FACTOR_SCORE and f.weight > IMPORTANT_FACTOR_WEIGHT]
        if weak:
            issues.append(f"Low scores in important factors: {', '.join(weak)}")
            recommendations.append("Review places with low scores in critical matching factors")

        if any(abs(a.adjustment) > LARGE_ADJUSTMENT for a in calibration.adjustments):
            issues.append("Significant calibration adjustments applied to raw score")
            recommendations.append("Review calibration reasons for score adjustments")

        return DebugSummary(
            factor_contributions=contributions,
            potential_issues=tuple(issues),
            recommendations=tuple(recommendations),
            processing_time_ms=processing_time_ms,
        )
