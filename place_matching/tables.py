"""
Matching tables

Normalization dictionaries and the category taxonomy live in YAML so locale
coverage can grow without touching scoring code. Tables are loaded once per
path and handed to components as an immutable MatchingTables instance.
"""
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Pattern, Tuple

import yaml

from core.config import settings
from core.exceptions import ConfigurationError
from core.logging import get_logger

logger = get_logger(__name__, domain="place_matching")

DEFAULT_TABLES_PATH = Path(__file__).parent / "data" / "matching_tables.yaml"

REQUIRED_SECTIONS = (
    "business_suffixes",
    "transliterations",
    "street_abbreviations",
    "directionals",
    "street_suffix_words",
    "postal_code_patterns",
    "categories",
)


@dataclass(frozen=True)
class PostalCodePattern:
    """One postal code format, scanned in table order"""

    name: str
    regex: Pattern[str]


@dataclass(frozen=True)
class MatchingTables:
    """Immutable lookup tables shared by normalizers and the category mapper"""

    business_suffixes: Tuple[str, ...]
    name_abbreviations: Mapping[str, str]
    transliterations: Mapping[str, str]
    street_abbreviations: Mapping[str, str]
    directionals: Mapping[str, str]
    street_suffix_words: Tuple[str, ...]
    postal_code_patterns: Tuple[PostalCodePattern, ...]
    categories: Mapping[str, Tuple[str, ...]]
    category_aliases: Mapping[str, str]
    category_relations: Mapping[str, Tuple[str, ...]]
    generic_categories: Tuple[str, ...] = ("establishment", "point_of_interest")
    default_category: str = "establishment"
    fuzzy_category_threshold: float = 0.7

    def related_categories(self, category: str) -> Tuple[str, ...]:
        """Categories linked to `category` by the relation table, in either direction"""
        related = list(self.category_relations.get(category, ()))
        for other, links in self.category_relations.items():
            if category in links and other not in related:
                related.append(other)
        return tuple(related)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], source: str = "<dict>") -> "MatchingTables":
        """Build tables from parsed YAML, raising ConfigurationError on bad shape"""
        if not isinstance(data, dict):
            raise ConfigurationError("Matching tables must be a mapping", setting="matching_tables", source=source)

        missing = [section for section in REQUIRED_SECTIONS if section not in data]
        if missing:
            raise ConfigurationError(
                f"Matching tables missing sections: {', '.join(missing)}",
                setting="matching_tables",
                source=source,
            )

        try:
            patterns = tuple(
                PostalCodePattern(
                    name=str(entry["name"]),
                    regex=re.compile(entry["pattern"], re.IGNORECASE if entry.get("ignore_case") else 0),
                )
                for entry in data["postal_code_patterns"]
            )
            categories = {
                str(bucket).lower(): tuple(str(s).lower() for s in (synonyms or ()))
                for bucket, synonyms in data["categories"].items()
            }
            relations = {
                str(bucket).lower(): tuple(str(s).lower() for s in (links or ()))
                for bucket, links in (data.get("category_relations") or {}).items()
            }
            threshold = float(data.get("fuzzy_category_threshold", 0.7))
        except (KeyError, TypeError, AttributeError, ValueError, re.error) as e:
            raise ConfigurationError(
                f"Malformed matching tables: {e}", setting="matching_tables", source=source
            ) from e

        transliterations = data["transliterations"]
        if not isinstance(transliterations, dict) or any(len(str(k)) != 1 for k in transliterations):
            raise ConfigurationError(
                "Transliterations must map single characters to replacements",
                setting="transliterations",
                source=source,
            )

        default_category = str(data.get("default_category", "establishment")).lower()
        if default_category not in categories:
            raise ConfigurationError(
                f"Default category '{default_category}' is not a known bucket",
                setting="default_category",
                source=source,
            )

        return cls(
            business_suffixes=_string_tuple(data["business_suffixes"]),
            name_abbreviations=_string_map(data.get("name_abbreviations") or {}),
            transliterations=MappingProxyType({str(k): str(v) for k, v in transliterations.items()}),
            street_abbreviations=_string_map(data["street_abbreviations"]),
            directionals=_string_map(data["directionals"]),
            street_suffix_words=_string_tuple(data["street_suffix_words"]),
            postal_code_patterns=patterns,
            categories=MappingProxyType(categories),
            category_aliases=_string_map(data.get("category_aliases") or {}),
            category_relations=MappingProxyType(relations),
            generic_categories=_string_tuple(data.get("generic_categories") or ("establishment", "point_of_interest")),
            default_category=default_category,
            fuzzy_category_threshold=threshold,
        )


def _string_tuple(values) -> Tuple[str, ...]:
    if not isinstance(values, (list, tuple)):
        raise ConfigurationError("Expected a list of strings in matching tables", setting="matching_tables")
    return tuple(str(v).lower() for v in values)


def _string_map(values) -> Mapping[str, str]:
    if not isinstance(values, dict):
        raise ConfigurationError("Expected a mapping in matching tables", setting="matching_tables")
    return MappingProxyType({str(k).lower(): str(v).lower() for k, v in values.items()})


@lru_cache(maxsize=8)
def _load_tables_from(path: str) -> MatchingTables:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        logger.error(f"Cannot read matching tables from {path}: {e}")
        raise ConfigurationError(f"Cannot read matching tables: {e}", setting="matching_tables_path", path=path) from e
    except yaml.YAMLError as e:
        logger.error(f"Invalid YAML in matching tables {path}: {e}")
        raise ConfigurationError(f"Invalid YAML in matching tables: {e}", setting="matching_tables_path", path=path) from e

    tables = MatchingTables.from_dict(data, source=path)
    logger.info(
        "Loaded matching tables",
        extra={
            "path": path,
            "categories": len(tables.categories),
            "business_suffixes": len(tables.business_suffixes),
        },
    )
    return tables


def load_tables(path: Optional[str] = None) -> MatchingTables:
    """
    Load matching tables, cached per path

    Args:
        path: YAML file to read. Falls back to settings.matching_tables_path,
            then to the packaged tables.

    Returns:
        MatchingTables instance
    """
    resolved = path or settings.matching_tables_path or str(DEFAULT_TABLES_PATH)
    return _load_tables_from(str(resolved))


def default_tables() -> MatchingTables:
    """Packaged tables, ignoring any configured override"""
    return _load_tables_from(str(DEFAULT_TABLES_PATH))
