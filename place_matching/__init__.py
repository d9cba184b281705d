"""
Place matching - decides whether an external place record is the same
real-world place as a saved one, with an explainable confidence score
"""
from .categories import CategoryMapper
from .config import MatchingOptions, MatchingWeights
from .geo import CoordinateValidator
from .matchers import PlaceMatcher, get_confidence_level
from .models import (
    AddressComponents,
    CandidatePlace,
    ConfidenceLevel,
    FactorType,
    MatchingResult,
    MatchQuery,
    OriginalPlace,
    PlaceMatch,
    Reliability,
)
from .normalization import AddressNormalizer, NameNormalizer, PlaceNormalizer, TextCleaningOptions
from .tables import MatchingTables, load_tables

__all__ = [
    "AddressComponents",
    "AddressNormalizer",
    "CandidatePlace",
    "CategoryMapper",
    "ConfidenceLevel",
    "CoordinateValidator",
    "FactorType",
    "MatchingOptions",
    "MatchingResult",
    "MatchingTables",
    "MatchingWeights",
    "MatchQuery",
    "NameNormalizer",
    "OriginalPlace",
    "PlaceMatch",
    "PlaceMatcher",
    "PlaceNormalizer",
    "Reliability",
    "TextCleaningOptions",
    "get_confidence_level",
    "load_tables",
]
