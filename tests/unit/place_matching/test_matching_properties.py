"""
Property-based tests for matching invariants
"""

import hypothesis.strategies as st
import pytest
from hypothesis import given, settings

from place_matching import CandidatePlace, MatchQuery, OriginalPlace, PlaceMatcher
from place_matching.similarity import NameFactor

pytestmark = [pytest.mark.unit, pytest.mark.place_matching, pytest.mark.slow]

MATCHER = PlaceMatcher()

names = st.text(max_size=40)
coordinates = st.one_of(
    st.none(),
    st.floats(allow_nan=True, allow_infinity=True),
    st.floats(min_value=-90, max_value=90),
    st.text(max_size=8),
)
categories = st.one_of(
    st.none(),
    st.sampled_from(["restaurant", "cafe", "bank", "fast food", "Night Club"]),
    st.text(max_size=12),
)


@st.composite
def candidates(draw):
    return CandidatePlace(
        id=draw(st.text(min_size=1, max_size=8)),
        name=draw(names),
        address=draw(names),
        latitude=draw(coordinates),
        longitude=draw(coordinates),
        category=draw(categories),
    )


@st.composite
def originals(draw):
    category = draw(categories)
    return OriginalPlace(
        title=draw(names),
        address=draw(names),
        latitude=draw(coordinates),
        longitude=draw(coordinates),
        tags=(category,) if category else (),
    )


class TestMatchingProperties:
    @settings(max_examples=100, deadline=None)
    @given(original=originals(), candidate=candidates())
    def test_scores_are_bounded(self, original, candidate):
        match = MATCHER.score_candidate(original, candidate)

        assert 0 <= match.confidence_score <= 100
        for factor in match.match_factors:
            assert 0 <= factor.score <= 100
        assert sum(c.contribution for c in match.debug_summary.factor_contributions) == 100

    @settings(max_examples=50, deadline=None)
    @given(original=originals(), candidate_list=st.lists(candidates(), max_size=5))
    def test_results_are_deterministic_and_ranked(self, original, candidate_list):
        query = MatchQuery(original_place=original, candidate_places=tuple(candidate_list))

        first = MATCHER.find_matches(query)
        second = MATCHER.find_matches(query)

        assert [m.confidence_score for m in first.matches] == [m.confidence_score for m in second.matches]
        scores = [m.confidence_score for m in first.matches]
        assert scores == sorted(scores, reverse=True)
        assert [m.rank for m in first.matches] == list(range(1, len(first.matches) + 1))
        assert all(score >= 30 for score in scores)
        assert first.metadata.total_candidates == len(candidate_list)

    @settings(max_examples=100, deadline=None)
    @given(first=names, second=names)
    def test_name_similarity_is_bounded(self, first, second):
        factor = NameFactor()

        assert 0 <= factor.calculate(first, second).score <= 100
        assert factor.calculate(first, first).score in (0, 100)
