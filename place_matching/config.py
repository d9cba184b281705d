"""
Matching options

Static configuration for a match query. Options are validated when they are
constructed so that bad weights or thresholds fail before any scoring runs.
"""

import math
from dataclasses import dataclass, field
from numbers import Real
from typing import Any

from core.exceptions import ConfigurationError
from core.logging import get_logger

logger = get_logger(__name__, domain="place_matching")

MIN_MAX_DISTANCE_METERS = 50.0


def _fail(message: str, setting: str, value: Any) -> None:
    logger.error(f"Invalid matching configuration: {message}", extra={"setting": setting})
    raise ConfigurationError(message, setting=setting, value=repr(value))


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


@dataclass(frozen=True)
class MatchingWeights:
    """Relative factor weights; rescaled to sum to 100 before use"""

    name: float = 40.0
    address: float = 30.0
    distance: float = 20.0
    category: float = 10.0

    def __post_init__(self):
        for setting, value in self.as_dict().items():
            if not _is_number(value):
                _fail(f"Weight '{setting}' must be a number", f"weights.{setting}", value)
            if not math.isfinite(value) or value <= 0:
                _fail(f"Weight '{setting}' must be a positive finite number", f"weights.{setting}", value)

    def as_dict(self) -> dict[str, float]:
        return {
            "name": self.name,
            "address": self.address,
            "distance": self.distance,
            "category": self.category,
        }

    @property
    def total(self) -> float:
        return self.name + self.address + self.distance + self.category

    def normalized(self) -> "MatchingWeights":
        """
        Weights rescaled by one common factor so they sum to 100

        Raises:
            ConfigurationError: the weights overflow or a share underflows to 0
        """
        total = self.total
        if total == 100:
            return self
        if not math.isfinite(total):
            _fail("Weights must sum to a finite number", "weights", self.as_dict())
        # value / total never exceeds 1, so no share exceeds 100
        shares = {setting: value / total * 100 for setting, value in self.as_dict().items()}
        for setting, share in shares.items():
            if share <= 0:
                _fail(
                    f"Weight '{setting}' is too small relative to the others to normalize",
                    f"weights.{setting}",
                    self.as_dict()[setting],
                )
        return MatchingWeights(**shares)


@dataclass(frozen=True)
class MatchingOptions:
    """
    Options for a match query

    Attributes:
        weights: Factor weights, renormalized to 100
        max_distance: Meters beyond which the distance factor scores 0
        min_confidence_score: Matches below this calibrated score are dropped
        strict_mode: Also reject candidates with a weak name or out-of-range distance
        include_debug_info: Build per-factor calculation traces
    """

    weights: MatchingWeights = field(default_factory=MatchingWeights)
    max_distance: float = 5000.0
    min_confidence_score: float = 30
    strict_mode: bool = False
    include_debug_info: bool = False

    def __post_init__(self):
        if not isinstance(self.weights, MatchingWeights):
            _fail("weights must be a MatchingWeights instance", "weights", self.weights)
        # Fails here, not mid-match, when the weights cannot be normalized
        self.weights.normalized()
        if not _is_number(self.max_distance) or not math.isfinite(self.max_distance):
            _fail("max_distance must be a finite number of meters", "max_distance", self.max_distance)
        if self.max_distance <= MIN_MAX_DISTANCE_METERS:
            _fail(
                f"max_distance must be greater than {MIN_MAX_DISTANCE_METERS:.0f} meters",
                "max_distance",
                self.max_distance,
            )
        if not _is_number(self.min_confidence_score) or not 0 <= self.min_confidence_score <= 100:
            _fail("min_confidence_score must be between 0 and 100", "min_confidence_score", self.min_confidence_score)

    @property
    def effective_weights(self) -> MatchingWeights:
        return self.weights.normalized()

    def weight_for(self, factor: str) -> float:
        return self.effective_weights.as_dict()[factor]


DEFAULT_OPTIONS = MatchingOptions()
