"""
Place matching data model

Immutable records for the inputs, factor results and ranked output of a
match query. Everything here is created fresh per query and never mutated.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from .config import MatchingOptions


class FactorType(Enum):
    """Independent similarity dimensions"""

    NAME = "name"
    ADDRESS = "address"
    DISTANCE = "distance"
    CATEGORY = "category"


class ConfidenceLevel(Enum):
    """Confidence buckets derived from the calibrated score"""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Reliability(Enum):
    """How much a single factor can be trusted"""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class CoordinatePrecision(Enum):
    """Precision estimated from the decimal digits supplied"""

    EXACT = "exact"
    APPROXIMATE = "approximate"
    CITY = "city"
    REGION = "region"


@dataclass(frozen=True)
class OriginalPlace:
    """The user's saved place record"""

    title: str
    address: str
    latitude: Any = None
    longitude: Any = None
    tags: tuple[str, ...] = ()

    @property
    def category(self) -> Optional[str]:
        return self.tags[0] if self.tags else None


@dataclass(frozen=True)
class CandidatePlace:
    """A place record from an external provider, already in the common shape"""

    id: str
    name: str
    address: str
    latitude: Any = None
    longitude: Any = None
    category: Optional[str] = None
    source: str = "unknown"


@dataclass(frozen=True)
class CalculationStep:
    step: str
    value: Any
    description: str


@dataclass(frozen=True)
class ScoreAdjustment:
    """Bonus or penalty recorded in a factor trace"""

    type: str
    value: float
    reason: str


@dataclass(frozen=True)
class FactorDebugInfo:
    """Calculation trace for one factor"""

    raw_inputs: dict[str, Any]
    normalized_inputs: dict[str, Any]
    calculation_steps: tuple[CalculationStep, ...] = ()
    bonuses: tuple[ScoreAdjustment, ...] = ()
    penalties: tuple[ScoreAdjustment, ...] = ()


@dataclass(frozen=True)
class FactorResult:
    """Output of a factor calculator before weighting"""

    score: int
    explanation: str
    details: dict[str, Any] = field(default_factory=dict)
    debug_info: Optional[FactorDebugInfo] = None


@dataclass(frozen=True)
class MatchFactor:
    """One weighted, scored dimension of a match"""

    type: FactorType
    score: int
    weight: float
    weighted_score: float
    explanation: str
    details: dict[str, Any] = field(default_factory=dict)
    debug_info: Optional[FactorDebugInfo] = None


@dataclass(frozen=True)
class CalibrationAdjustment:
    factor: str
    adjustment: int
    reason: str


@dataclass(frozen=True)
class QualityIndicators:
    data_completeness: int
    match_consistency: int
    geographic_reliability: int


@dataclass(frozen=True)
class CalibrationInfo:
    """Raw score, the adjustments applied to it and the result"""

    raw_score: float
    calibrated_score: int
    adjustments: tuple[CalibrationAdjustment, ...]
    quality_indicators: QualityIndicators


@dataclass(frozen=True)
class FactorContribution:
    factor: FactorType
    contribution: int
    reliability: Reliability


@dataclass(frozen=True)
class DebugSummary:
    """Explanation payload for review and observability consumers"""

    factor_contributions: tuple[FactorContribution, ...]
    potential_issues: tuple[str, ...]
    recommendations: tuple[str, ...]
    processing_time_ms: float = field(default=0.0, compare=False)


@dataclass(frozen=True)
class PlaceMatch:
    """A scored candidate for an original place"""

    original_place: OriginalPlace
    candidate_place: CandidatePlace
    match_factors: tuple[MatchFactor, ...]
    confidence_score: int
    confidence_level: ConfidenceLevel
    rank: int
    calibration_info: CalibrationInfo
    debug_summary: DebugSummary

    def factor(self, factor_type: FactorType) -> MatchFactor:
        """Look up the factor of a given type"""
        for match_factor in self.match_factors:
            if match_factor.type is factor_type:
                return match_factor
        raise KeyError(factor_type)


@dataclass(frozen=True)
class MatchQuery:
    original_place: OriginalPlace
    candidate_places: tuple[CandidatePlace, ...]
    options: Optional["MatchingOptions"] = None


@dataclass(frozen=True)
class ResultMetadata:
    total_candidates: int
    valid_matches: int
    average_confidence: int


@dataclass(frozen=True)
class MatchingResult:
    """Filtered, ranked matches for one query"""

    query: MatchQuery
    matches: tuple[PlaceMatch, ...]
    best_match: Optional[PlaceMatch]
    metadata: ResultMetadata
    processing_time_ms: float = field(default=0.0, compare=False)


@dataclass(frozen=True)
class AddressComponents:
    """Best-effort parse of a free-form address; missing parts stay None"""

    street_number: Optional[str] = None
    street_name: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None

    def as_dict(self) -> dict[str, Optional[str]]:
        return {
            "street_number": self.street_number,
            "street_name": self.street_name,
            "city": self.city,
            "region": self.region,
            "country": self.country,
            "postal_code": self.postal_code,
        }


@dataclass(frozen=True)
class CoordinateValidation:
    is_valid: bool
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    errors: tuple[str, ...] = ()
    precision: Optional[CoordinatePrecision] = None


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float
    precision: CoordinatePrecision


@dataclass(frozen=True)
class NormalizedPlace:
    """A place record after whole-record normalization"""

    name: str
    address: str
    coordinates: Optional[Coordinates]
    category: str
    raw_category: Optional[str]
    address_components: AddressComponents
    normalization_flags: tuple[str, ...]
    original_name: str
    original_address: str
    # Only built on request; scoring never reads them
    search_tokens: tuple[str, ...] = ()
