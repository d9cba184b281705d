"""
Text and address normalization

Canonicalizes place names and addresses before comparison, parses
free-form addresses into components, and normalizes whole place records.
Every transform is a pure string function; malformed input degrades to an
empty or partial string instead of raising.
"""

import re
import unicodedata
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Union

from core.logging import get_logger

from .categories import CategoryMapper
from .geo import CoordinateValidator
from .models import AddressComponents, CandidatePlace, NormalizedPlace, OriginalPlace
from .tables import MatchingTables, load_tables

logger = get_logger(__name__, domain="place_matching")

# Combining marks left over after NFD decomposition
MARK_CATEGORIES = frozenset({"Mn", "Me"})
# Emoji, pictographs, modifiers, format and private-use code points
SYMBOL_CATEGORIES = frozenset({"So", "Sk", "Cf", "Co", "Cs", "Cn"})

APOSTROPHE_RE = re.compile(r"[‘’‚‛ʼ′`´]")
QUOTE_RE = re.compile(r"[“”„‟«»″]")
DASH_RE = re.compile(r"[‐‑‒–—―−]")
AND_RE = re.compile(r"\s*[&+]\s*")
WHITESPACE_RE = re.compile(r"\s+")
NON_WORD_PUNCT_RE = re.compile(r"[^\w\s'-]")
LOOSE_HYPHEN_RE = re.compile(r"\s+-\s+")
EDGE_HYPHEN_RE = re.compile(r"^-+|-+$")
TRAILING_ADDRESS_PUNCT_RE = re.compile(r"[,.]$")

STREET_NUMBER_RE = re.compile(r"^(\d+[a-z]?(?:-\d+[a-z]?)?)[\s,]+", re.IGNORECASE)
TRAILING_NUMBER_RE = re.compile(r"\s+\d+[a-z]?$", re.IGNORECASE)
REGION_POSTAL_RE = re.compile(r"^([A-Za-z]{2,3})\s+([A-Za-z0-9\s-]+)$")


@dataclass(frozen=True)
class TextCleaningOptions:
    """Switches for the individual normalization steps"""

    remove_accents: bool = True
    remove_punctuation: bool = True
    normalize_whitespace: bool = True
    lowercase: bool = True
    remove_business_suffixes: bool = True
    expand_abbreviations: bool = False


NAME_OPTIONS = TextCleaningOptions()
ADDRESS_OPTIONS = TextCleaningOptions(
    remove_punctuation=False,
    remove_business_suffixes=False,
    expand_abbreviations=True,
)


def _word_alternation(words) -> str:
    """Regex alternation, longest word first so shorter entries never win a prefix"""
    ordered = sorted(set(words), key=lambda w: (-len(w), w))
    return "|".join(re.escape(w) for w in ordered)


class _BaseNormalizer:
    def __init__(self, tables: Optional[MatchingTables] = None):
        self.tables = tables or load_tables()
        self._transliterations = str.maketrans(dict(self.tables.transliterations))

    def remove_accents(self, text: str) -> str:
        """Transliterate, then drop combining marks after NFD decomposition"""
        text = text.translate(self._transliterations)
        decomposed = unicodedata.normalize("NFD", text)
        stripped = "".join(ch for ch in decomposed if unicodedata.category(ch) not in MARK_CATEGORIES)
        return unicodedata.normalize("NFC", stripped)

    @staticmethod
    def collapse_whitespace(text: str) -> str:
        return WHITESPACE_RE.sub(" ", text).strip()


class NameNormalizer(_BaseNormalizer):
    """
    Place name normalization

    Lowercases, strips diacritics and symbols, standardizes ampersands,
    quotes and dashes, drops one trailing business suffix, and removes
    punctuation.
    """

    def __init__(self, tables: Optional[MatchingTables] = None):
        super().__init__(tables)
        self._suffix_re = re.compile(
            rf"\b(?:{_word_alternation(self.tables.business_suffixes)})\b\.?\s*$", re.IGNORECASE
        )
        self._abbreviation_re = None
        if self.tables.name_abbreviations:
            self._abbreviation_re = re.compile(rf"\b({_word_alternation(self.tables.name_abbreviations)})\b")

    def normalize(self, text: Any, options: TextCleaningOptions = NAME_OPTIONS) -> str:
        if not isinstance(text, str) or not text:
            return ""

        normalized = text.strip()
        if options.lowercase:
            normalized = normalized.lower()
        if options.remove_accents:
            normalized = self.remove_accents(normalized)
        if options.normalize_whitespace:
            normalized = self.collapse_whitespace(normalized)

        normalized = self.standardize_symbols(normalized)

        # Suffixes go before punctuation so "Co." and "Inc." still match
        if options.remove_business_suffixes:
            normalized = self.remove_business_suffixes(normalized)
        if options.remove_punctuation:
            normalized = self.remove_punctuation(normalized)
        if options.expand_abbreviations:
            normalized = self.expand_abbreviations(normalized)

        return self.collapse_whitespace(normalized) if options.normalize_whitespace else normalized.strip()

    @staticmethod
    def standardize_symbols(text: str) -> str:
        """Unify quote and dash variants, drop symbol code points, spell out & and +"""
        text = APOSTROPHE_RE.sub("'", text)
        text = QUOTE_RE.sub('"', text)
        text = DASH_RE.sub("-", text)
        text = "".join(ch for ch in text if unicodedata.category(ch) not in SYMBOL_CATEGORIES)
        text = AND_RE.sub(" and ", text)
        return WHITESPACE_RE.sub(" ", text).strip()

    def remove_business_suffixes(self, text: str) -> str:
        """Drop one trailing business suffix; a name made only of a suffix is kept"""
        stripped = self._suffix_re.sub("", text, count=1).strip()
        return stripped or text

    @staticmethod
    def remove_punctuation(text: str) -> str:
        """Strip punctuation, keeping hyphens inside words; apostrophes are dropped"""
        text = NON_WORD_PUNCT_RE.sub("", text)
        text = text.replace("'", "")
        text = LOOSE_HYPHEN_RE.sub(" ", text)
        return EDGE_HYPHEN_RE.sub("", text.strip())

    def expand_abbreviations(self, text: str) -> str:
        if self._abbreviation_re is None:
            return text
        abbreviations = self.tables.name_abbreviations
        return self._abbreviation_re.sub(lambda m: abbreviations[m.group(1)], text)

    def generate_search_tokens(self, name: Any) -> list[str]:
        """
        Search tokens for a name: the normalized name, its words and word n-grams

        Words shorter than 2 characters and n-grams shorter than 3 are skipped.
        Tokens are unique and sorted longest first, ties alphabetically.
        """
        normalized = self.normalize(name)
        if not normalized:
            return []

        tokens = {normalized}
        words = [word for word in normalized.split() if len(word) >= 2]
        tokens.update(words)

        if len(words) > 1:
            for start in range(len(words)):
                for end in range(start + 1, len(words) + 1):
                    combination = " ".join(words[start:end])
                    if len(combination) >= 3:
                        tokens.add(combination)

        return sorted(tokens, key=lambda token: (-len(token), token))


class AddressNormalizer(_BaseNormalizer):
    """Address normalization and best-effort component extraction"""

    def __init__(self, tables: Optional[MatchingTables] = None):
        super().__init__(tables)
        # Apostrophes count as word characters so "mcdonald's" keeps its "s"
        self._street_re = re.compile(
            rf"(?<![\w'])({_word_alternation(self.tables.street_abbreviations)})\.?(?![\w'])", re.IGNORECASE
        )
        self._directional_re = re.compile(
            rf"(?<![\w'])({_word_alternation(self.tables.directionals)})\.?(?![\w'])", re.IGNORECASE
        )
        self._street_suffixes = frozenset(self.tables.street_suffix_words)

    def normalize(self, text: Any, options: TextCleaningOptions = ADDRESS_OPTIONS) -> str:
        if not isinstance(text, str) or not text:
            return ""

        normalized = text.strip()
        if options.lowercase:
            normalized = normalized.lower()
        if options.remove_accents:
            normalized = self.remove_accents(normalized)
        if options.normalize_whitespace:
            normalized = self.collapse_whitespace(normalized)
        if options.expand_abbreviations:
            normalized = self.expand_street_abbreviations(normalized)

        normalized = self.standardize_directionals(normalized)
        if options.remove_punctuation:
            normalized = NameNormalizer.remove_punctuation(normalized)

        normalized = TRAILING_ADDRESS_PUNCT_RE.sub("", normalized)
        return normalized.strip()

    def expand_street_abbreviations(self, text: str) -> str:
        abbreviations = self.tables.street_abbreviations
        return self._street_re.sub(lambda m: abbreviations[m.group(1).lower()], text)

    def standardize_directionals(self, text: str) -> str:
        directionals = self.tables.directionals
        return self._directional_re.sub(lambda m: directionals[m.group(1).lower()], text)

    def extract_components(self, address: Any) -> AddressComponents:
        """
        Parse an address into street number, street name, city, region,
        country and postal code

        Handles "123 Main St, Springfield, IL 62701", "Unter den Linden 1,
        10117 Berlin, Germany", "10 Downing St, London SW1A 2AA, UK" and
        similar layouts. Ambiguous parts are left as None.
        """
        if not isinstance(address, str) or not address.strip():
            return AddressComponents()
        address = self.collapse_whitespace(address)

        number_match = STREET_NUMBER_RE.match(address)
        street_number = number_match.group(1).lower() if number_match else None
        postal_code = self.extract_postal_code(address, skip_until=number_match.end(1) if number_match else 0)

        street_name, inferred_city = self._parse_street(address, street_number)

        parts = {
            "street_number": street_number,
            "street_name": street_name,
            "postal_code": postal_code,
        }
        parts.update(self._parse_locality(address, postal_code))

        if not parts["street_name"]:
            segments = [s.strip() for s in address.split(",") if s.strip()]
            if len(segments) >= 2:
                parts["street_name"] = self.normalize(segments[1]) or None
        if not parts.get("city") and inferred_city:
            parts["city"] = inferred_city

        return AddressComponents(**parts)

    def _parse_street(self, address: str, street_number: Optional[str]) -> tuple[Optional[str], Optional[str]]:
        street_part = address.split(",")[0].strip()
        if street_number:
            street_part = re.sub(rf"^{re.escape(street_number)}[\s,]*", "", street_part, flags=re.IGNORECASE)
        if not street_part.strip():
            return None, None

        # "Unter den Linden 1" puts the number after the name
        normalized_street = TRAILING_NUMBER_RE.sub("", self.normalize(street_part)).strip()
        tokens = normalized_street.split()
        for index, token in enumerate(tokens):
            if token in self._street_suffixes:
                if index < len(tokens) - 1:
                    return " ".join(tokens[: index + 1]), " ".join(tokens[index + 1 :])
                break
        return normalized_street or None, None

    def _parse_locality(self, address: str, postal_code: Optional[str]) -> dict[str, Optional[str]]:
        segments = [s.strip() for s in address.split(",") if s.strip()]
        if len(segments) < 2:
            return {}

        locations = segments[1:]
        last = locations[-1]

        if len(locations) >= 2:
            region_postal = self._split_region_postal(locations[-2])
            if region_postal:
                region, code = region_postal
                return {
                    "region": region,
                    "postal_code": code,
                    "city": self._clean_locality(locations[-3], code) if len(locations) >= 3 else None,
                    "country": self._clean_locality(last, code),
                }

        region_postal = self._split_region_postal(last)
        if region_postal:
            region, code = region_postal
            return {
                "region": region,
                "postal_code": code,
                "city": self._clean_locality(locations[-2], code) if len(locations) >= 2 else None,
            }

        if self.looks_like_postal_code(last):
            if len(locations) >= 3:
                return {
                    "city": self._clean_locality(locations[-3], postal_code),
                    "region": self._clean_locality(locations[-2], postal_code),
                }
            if len(locations) == 2:
                return {"city": self._clean_locality(locations[0], postal_code)}
            return {}

        if len(locations) >= 2:
            return {
                "city": self._clean_locality(locations[0], postal_code),
                "region": self._clean_locality(locations[1], postal_code),
            }
        return {"city": self._clean_locality(locations[0], postal_code)}

    def _split_region_postal(self, segment: str) -> Optional[tuple[str, str]]:
        """Split "NY 10001" or "ON M5V 3L9" into region and postal code"""
        match = REGION_POSTAL_RE.match(segment)
        if not match or not self.looks_like_postal_code(match.group(2)):
            return None
        return match.group(1).lower(), re.sub(r"\s", "", match.group(2)).upper()

    def _clean_locality(self, segment: str, postal_code: Optional[str]) -> Optional[str]:
        """Address-normalize a city/region/country segment without its postal code"""
        if postal_code:
            for pattern in self.tables.postal_code_patterns:
                match = pattern.regex.search(segment)
                if match and re.sub(r"\s", "", match.group(0)).upper() == postal_code:
                    segment = segment[: match.start()] + segment[match.end() :]
                    break
        return self.normalize(self.collapse_whitespace(segment)) or None

    def extract_postal_code(self, address: str, skip_until: int = 0) -> Optional[str]:
        """
        First postal code found by the ordered patterns

        Matches starting before `skip_until` are ignored so a leading street
        number such as "12345 Main St" is not taken for a ZIP code.
        """
        for pattern in self.tables.postal_code_patterns:
            for match in pattern.regex.finditer(address):
                if match.start() < skip_until:
                    continue
                return re.sub(r"\s", "", match.group(0)).upper()
        return None

    def looks_like_postal_code(self, text: str) -> bool:
        return any(pattern.regex.search(text) for pattern in self.tables.postal_code_patterns)


class PlaceNormalizer:
    """Whole-record normalization of original and candidate places"""

    def __init__(self, tables: Optional[MatchingTables] = None):
        self.tables = tables or load_tables()
        self.names = NameNormalizer(self.tables)
        self.addresses = AddressNormalizer(self.tables)
        self.categories = CategoryMapper(self.tables)

    def normalize_original(self, place: OriginalPlace, with_search_tokens: bool = False) -> NormalizedPlace:
        return self._normalize(
            place.title, place.address, place.latitude, place.longitude, place.category, with_search_tokens
        )

    def normalize_candidate(self, place: CandidatePlace, with_search_tokens: bool = False) -> NormalizedPlace:
        return self._normalize(
            place.name, place.address, place.latitude, place.longitude, place.category, with_search_tokens
        )

    def batch_normalize(
        self, places: Iterable[Union[OriginalPlace, CandidatePlace]], with_search_tokens: bool = False
    ) -> list[NormalizedPlace]:
        """Normalize a mixed sequence of original and candidate places, keeping order"""
        normalized = []
        for place in places:
            if isinstance(place, OriginalPlace):
                normalized.append(self.normalize_original(place, with_search_tokens))
            else:
                normalized.append(self.normalize_candidate(place, with_search_tokens))
        return normalized

    def clean_text(self, text: Any, options: TextCleaningOptions = NAME_OPTIONS) -> str:
        """Free text through the name cleaning pipeline"""
        return self.names.normalize(text, options)

    def _normalize(
        self, name, address, latitude, longitude, raw_category, with_search_tokens: bool = False
    ) -> NormalizedPlace:
        flags = []
        name_text = name if isinstance(name, str) else ""
        address_text = address if isinstance(address, str) else ""

        normalized_name = self.names.normalize(name_text)
        if normalized_name != name_text.lower().strip():
            flags.append("name_normalized")

        normalized_address = self.addresses.normalize(address_text)
        if normalized_address != address_text.lower().strip():
            flags.append("address_normalized")

        coordinates = None
        if latitude is not None and longitude is not None:
            coordinates = CoordinateValidator.to_coordinates(latitude, longitude)
            if coordinates is None:
                flags.append("invalid_coordinates")

        category = self.categories.normalize(raw_category)
        if isinstance(raw_category, str) and raw_category and category != raw_category.lower():
            flags.append("category_normalized")

        return NormalizedPlace(
            name=normalized_name,
            address=normalized_address,
            coordinates=coordinates,
            category=category,
            raw_category=raw_category,
            address_components=self.addresses.extract_components(address_text),
            normalization_flags=tuple(flags),
            original_name=name_text,
            original_address=address_text,
            search_tokens=tuple(self.names.generate_search_tokens(name_text)) if with_search_tokens else (),
        )
