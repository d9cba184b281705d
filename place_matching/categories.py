"""
Category mapping onto the canonical taxonomy

Provider categories ("coffee_shop", "Night Club", "meal-takeaway") are
folded onto a fixed set of buckets. Similarity between buckets is discrete:
same, related or unrelated.
"""

import re
from typing import Any, Optional

from rapidfuzz.distance import JaroWinkler

from .tables import MatchingTables, load_tables

SEPARATOR_RE = re.compile(r"[\s\-]+")

BOTH_MISSING_SCORE = 50
ONE_MISSING_SCORE = 25
SAME_CATEGORY_SCORE = 100
RELATED_CATEGORY_SCORE = 75
UNRELATED_CATEGORY_SCORE = 0


def has_category(category: Any) -> bool:
    """Whether a category value carries information"""
    return isinstance(category, str) and bool(category.strip())


class CategoryMapper:
    """Maps free-text categories onto canonical buckets"""

    def __init__(self, tables: Optional[MatchingTables] = None):
        self.tables = tables or load_tables()
        self._generic = frozenset(self.tables.generic_categories)

    def normalize(self, category: Optional[str]) -> str:
        """
        Canonical bucket for a category string

        Lookup order: alias, bucket name, synonym, Jaro-Winkler fuzzy match.
        Falls back to the default category.
        """
        if not has_category(category):
            return self.tables.default_category

        key = SEPARATOR_RE.sub("_", category.strip().lower()).strip("_")
        if not key:
            return self.tables.default_category

        if key in self.tables.category_aliases:
            return self.tables.category_aliases[key]

        if key in self.tables.categories:
            return key
        if key in self._generic:
            return self.tables.default_category

        for bucket, synonyms in self.tables.categories.items():
            if key in synonyms:
                return bucket

        fuzzy = self._fuzzy_match(key)
        if fuzzy:
            return fuzzy

        return self.tables.default_category

    def _fuzzy_match(self, key: str) -> Optional[str]:
        threshold = self.tables.fuzzy_category_threshold
        best_bucket = None
        best_score = 0.0

        for bucket, synonyms in self.tables.categories.items():
            for option in (bucket, *synonyms):
                # Generic synonyms only match through generic buckets
                if option in self._generic and bucket not in self._generic:
                    continue
                score = JaroWinkler.similarity(key, option)
                if score > best_score and score >= threshold:
                    best_score = score
                    best_bucket = bucket

        return best_bucket

    def get_variations(self, category: Optional[str]) -> tuple[str, ...]:
        """Synonyms accepted for the category's bucket"""
        normalized = self.normalize(category)
        return self.tables.categories.get(normalized, (normalized,))

    def is_related(self, category1: str, category2: str) -> bool:
        """Whether two canonical buckets are related; generic buckets never are"""
        if category1 in self._generic or category2 in self._generic:
            return False

        variations1 = self.tables.categories.get(category1, ())
        variations2 = self.tables.categories.get(category2, ())
        if category2 in variations1 or category1 in variations2:
            return True

        shared = (set(variations1) & set(variations2)) - self._generic
        if shared:
            return True

        return category2 in self.tables.related_categories(category1)

    def calculate_similarity(self, category1: Optional[str], category2: Optional[str]) -> int:
        """Discrete category similarity: 50, 25, 100, 75 or 0"""
        present1, present2 = has_category(category1), has_category(category2)
        if not present1 and not present2:
            return BOTH_MISSING_SCORE
        if not present1 or not present2:
            return ONE_MISSING_SCORE

        norm1 = self.normalize(category1)
        norm2 = self.normalize(category2)
        if norm1 == norm2:
            return SAME_CATEGORY_SCORE
        if self.is_related(norm1, norm2):
            return RELATED_CATEGORY_SCORE
        return UNRELATED_CATEGORY_SCORE
