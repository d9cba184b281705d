"""
Place matcher

Scores candidate places against an original place, filters and ranks them.
Matching is pure and synchronous: the same query always produces the same
result, and nothing is cached or persisted between calls.
"""

import dataclasses
import time
from typing import Iterable, Optional

from core.exceptions import ValidationError
from core.logging import get_logger

from .categories import CategoryMapper
from .config import DEFAULT_OPTIONS, MatchingOptions
from .explain import Explainer
from .models import (
    CandidatePlace,
    ConfidenceLevel,
    FactorType,
    MatchingResult,
    MatchQuery,
    NormalizedPlace,
    OriginalPlace,
    PlaceMatch,
    ResultMetadata,
)
from .normalization import PlaceNormalizer
from .scoring import Calibrator, ScoreAggregator, coordinates_available
from .similarity import AddressFactor, CategoryFactor, DistanceFactor, NameFactor, round_half_up
from .tables import MatchingTables, load_tables

logger = get_logger(__name__, domain="place_matching")

HIGH_CONFIDENCE_THRESHOLD = 90
MEDIUM_CONFIDENCE_THRESHOLD = 70
STRICT_MIN_NAME_SCORE = 50


def get_confidence_level(score: float) -> ConfidenceLevel:
    """Confidence bucket for a calibrated score"""
    if score >= HIGH_CONFIDENCE_THRESHOLD:
        return ConfidenceLevel.HIGH
    if score >= MEDIUM_CONFIDENCE_THRESHOLD:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


class PlaceMatcher:
    """
    Matches an original place against provider candidates

    Each candidate is scored on name, address, distance and category, the
    weighted score is calibrated, and candidates below the minimum confidence
    are dropped. Survivors are ranked by calibrated score, ties keeping the
    order in which candidates were supplied.
    """

    def __init__(self, options: Optional[MatchingOptions] = None, tables: Optional[MatchingTables] = None):
        self.options = options or DEFAULT_OPTIONS
        self.tables = tables or load_tables()
        self.normalizer = PlaceNormalizer(self.tables)
        self.name_factor = NameFactor(self.normalizer.names)
        self.address_factor = AddressFactor(self.normalizer.addresses)
        self.category_factor = CategoryFactor(CategoryMapper(self.tables))
        self.aggregator = ScoreAggregator()
        self.calibrator = Calibrator()
        self.explainer = Explainer()

    def find_matches(self, query: MatchQuery) -> MatchingResult:
        """
        Score, filter and rank the candidates of a query

        Args:
            query: Original place, candidates and optional per-query options

        Returns:
            MatchingResult with matches sorted by descending confidence

        Raises:
            ValidationError: the query is not made of the expected record types
        """
        started = time.perf_counter()
        options = self._resolve(query)
        original = query.original_place
        normalized_original = self.normalizer.normalize_original(original)

        scored = []
        for index, candidate in enumerate(query.candidate_places):
            match = self._score(original, normalized_original, candidate, options)
            if self._accept(match, options):
                scored.append((index, match))

        scored.sort(key=lambda item: (-item[1].confidence_score, item[0]))
        matches = tuple(dataclasses.replace(match, rank=rank) for rank, (_, match) in enumerate(scored, start=1))

        average = round_half_up(sum(m.confidence_score for m in matches) / len(matches)) if matches else 0
        metadata = ResultMetadata(
            total_candidates=len(query.candidate_places),
            valid_matches=len(matches),
            average_confidence=average,
        )
        elapsed_ms = (time.perf_counter() - started) * 1000

        logger.debug(
            "Matched place",
            extra={
                "original": original.title,
                "total_candidates": metadata.total_candidates,
                "valid_matches": metadata.valid_matches,
                "best_score": matches[0].confidence_score if matches else None,
                "processing_time_ms": round(elapsed_ms, 2),
            },
        )

        return MatchingResult(
            query=query,
            matches=matches,
            best_match=matches[0] if matches else None,
            metadata=metadata,
            processing_time_ms=elapsed_ms,
        )

    async def find_matches_async(self, query: MatchQuery) -> MatchingResult:
        """Async entry point; matching never suspends"""
        return self.find_matches(query)

    def find_matches_for(self, original: OriginalPlace, candidates: Iterable[CandidatePlace]) -> tuple[PlaceMatch, ...]:
        return self.find_matches(MatchQuery(original_place=original, candidate_places=tuple(candidates))).matches

    def score_candidate(
        self,
        original: OriginalPlace,
        candidate: CandidatePlace,
        options: Optional[MatchingOptions] = None,
    ) -> PlaceMatch:
        """Score one candidate without filtering; the match is left unranked (rank 0)"""
        self._check_original(original)
        self._check_candidate(candidate)
        options = options or self.options
        return self._score(original, self.normalizer.normalize_original(original), candidate, options)

    def calculate_confidence_score(self, original: OriginalPlace, candidate: CandidatePlace) -> int:
        return self.score_candidate(original, candidate).confidence_score

    def calculate_name_similarity(self, name1: str, name2: str) -> int:
        return self.name_factor.calculate(name1, name2).score

    get_confidence_level = staticmethod(get_confidence_level)

    def _score(
        self,
        original: OriginalPlace,
        normalized_original: NormalizedPlace,
        candidate: CandidatePlace,
        options: MatchingOptions,
    ) -> PlaceMatch:
        started = time.perf_counter()
        normalized_candidate = self.normalizer.normalize_candidate(candidate)
        debug = options.include_debug_info

        results = {
            FactorType.NAME: self.name_factor.compare(
                original.title,
                candidate.name,
                normalized_original.name,
                normalized_candidate.name,
                debug,
            ),
            FactorType.ADDRESS: self.address_factor.compare(
                original.address,
                candidate.address,
                normalized_original.address,
                normalized_candidate.address,
                normalized_original.address_components,
                normalized_candidate.address_components,
                include_debug=debug,
            ),
            FactorType.DISTANCE: DistanceFactor.calculate(
                normalized_original.coordinates,
                normalized_candidate.coordinates,
                options.max_distance,
                debug,
            ),
            FactorType.CATEGORY: self.category_factor.calculate(original.category, candidate.category, debug),
        }

        factors = self.aggregator.build_factors(results, options.weights)
        raw_score = self.aggregator.raw_score(factors)
        calibration = self.calibrator.calibrate(raw_score, factors, normalized_original, normalized_candidate)
        summary = self.explainer.summarize(factors, calibration, (time.perf_counter() - started) * 1000)

        logger.debug(
            "Scored candidate",
            extra={
                "candidate_id": candidate.id,
                "source": candidate.source,
                "raw_score": round(raw_score, 2),
                "confidence_score": calibration.calibrated_score,
            },
        )

        return PlaceMatch(
            original_place=original,
            candidate_place=candidate,
            match_factors=factors,
            confidence_score=calibration.calibrated_score,
            confidence_level=get_confidence_level(calibration.calibrated_score),
            rank=0,
            calibration_info=calibration,
            debug_summary=summary,
        )

    def _accept(self, match: PlaceMatch, options: MatchingOptions) -> bool:
        if match.confidence_score < options.min_confidence_score:
            return False
        if not options.strict_mode:
            return True

        if match.factor(FactorType.NAME).score < STRICT_MIN_NAME_SCORE:
            return False
        # Both sides located but farther apart than max_distance
        distance = match.factor(FactorType.DISTANCE)
        if coordinates_available(match.match_factors) and distance.score == 0:
            return False
        return True

    def _resolve(self, query: MatchQuery) -> MatchingOptions:
        if not isinstance(query, MatchQuery):
            raise ValidationError("Query must be a MatchQuery", field="query", type=type(query).__name__)
        self._check_original(query.original_place)
        if not isinstance(query.candidate_places, (list, tuple)):
            raise ValidationError("candidate_places must be a list or tuple", field="candidate_places")
        for candidate in query.candidate_places:
            self._check_candidate(candidate)
        if query.options is not None and not isinstance(query.options, MatchingOptions):
            raise ValidationError("options must be MatchingOptions", field="options")
        return query.options or self.options

    @staticmethod
    def _check_original(original) -> None:
        if not isinstance(original, OriginalPlace):
            raise ValidationError(
                "original_place must be an OriginalPlace", field="original_place", type=type(original).__name__
            )

    @staticmethod
    def _check_candidate(candidate) -> None:
        if not isinstance(candidate, CandidatePlace):
            raise ValidationError(
                "candidate_places must contain CandidatePlace records",
                field="candidate_places",
                type=type(candidate).__name__,
            )
