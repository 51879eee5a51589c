"""Domain value parsers for label fields.

- ABV / proof statements
- Net contents across metric and US customary units
- Class/type abbreviation expansion
- Name & address normalization (production lead-ins, abbreviations)
- Country of origin normalization (TTB regions, wine/spirit regions,
  historical names, ISO 3166 names in several languages)
"""

import gettext
import re
import unicodedata
from collections import defaultdict
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, Optional, Tuple
import logging

import pycountry

from .lookups import get_lookup_tables
from ..config import get_settings

logger = logging.getLogger(__name__)


_NUMBER = r"(\d+\.?\d*)"
_PERCENT_PATTERN = re.compile(_NUMBER + r"\s*%")
_PROOF_PATTERN = re.compile(_NUMBER + r"\s*proof", re.IGNORECASE)
_BRACKETED = re.compile(r"[(\[][^)\]]*[)\]]")
# A slash that is not part of a fraction ("1/2 gal")
_RESTATEMENT_SEPARATOR = re.compile(r"(?<!\d)/|/(?!\d)")


# =============================================================================
# ALCOHOL CONTENT
# =============================================================================

@dataclass(frozen=True)
class ParsedABV:
    """Alcohol content normalized to percent by volume."""
    percentage: float
    source: str  # "percentage" or "proof"


def parse_abv(text: Optional[str]) -> Optional[ParsedABV]:
    """
    Parse ABV from a label statement.

    Handles "45%", "45% Alc./Vol.", "40% Alcohol by Volume" and
    "90 Proof" (proof / 2). A percentage wins when both are present.
    """
    if not text:
        return None

    match = _PERCENT_PATTERN.search(text)
    if match:
        return ParsedABV(percentage=float(match.group(1)), source="percentage")

    match = _PROOF_PATTERN.search(text)
    if match:
        return ParsedABV(percentage=float(match.group(1)) / 2, source="proof")

    return None


def abv_equivalent(a: ParsedABV, b: ParsedABV) -> bool:
    """ABV is a precise regulatory figure: zero tolerance."""
    return a.percentage == b.percentage


# =============================================================================
# NET CONTENTS
# =============================================================================

@dataclass(frozen=True)
class ParsedVolume:
    """Net contents converted to milliliters."""
    value_ml: float
    original: str


def _normalize_number_separators(text: str) -> str:
    # "1,000 mL" -> "1000 mL", "0,75 l" -> "0.75 l"
    text = re.sub(r"(\d),(\d{3})(?!\d)", r"\1\2", text)
    return re.sub(r"(\d),(\d)", r"\1.\2", text)


def _sum_volume_units(text: str) -> Optional[float]:
    """
    Sum every "<number> <unit>" statement in text, in mL.

    Units are tried longest name first and each match is blanked out before
    the next unit is tried, so "fl. oz" is never re-read as "oz".
    """
    remaining = text
    total = 0.0
    found = False

    for unit, ml_factor in get_lookup_tables().units_longest_first:
        pattern = re.compile(_NUMBER + r"\s*" + re.escape(unit))
        for match in pattern.finditer(remaining):
            total += float(match.group(1)) * ml_factor
            found = True
        remaining = pattern.sub(lambda m: " " * len(m.group(0)), remaining)

    return total if found else None


def _first_declaration(text: str) -> Optional[float]:
    """Volume of the first "/"-separated segment that parses."""
    for segment in _RESTATEMENT_SEPARATOR.split(text):
        total = _sum_volume_units(segment)
        if total is not None:
            return total
    return None


def parse_volume(text: Optional[str]) -> Optional[ParsedVolume]:
    """
    Parse net contents to milliliters.

    Compound statements ("1 pint 0.9 fl oz") are summed. A restatement in
    another unit system is an equivalent declaration, not an addition: with
    brackets ("750 mL (25.4 FL OZ)") the bracketed text is only read when
    nothing outside parses, and with a slash ("750 mL / 25.4 FL OZ") the first
    segment that parses wins.
    """
    if not text:
        return None

    normalized = _normalize_number_separators(text.lower().strip())

    outside = _BRACKETED.sub(" ", normalized)
    total = _first_declaration(outside)
    if total is None and outside != normalized:
        total = _first_declaration(normalized)
    if total is None:
        return None

    return ParsedVolume(value_ml=total, original=text.strip())


def volumes_equivalent(a: ParsedVolume, b: ParsedVolume, tolerance: Optional[float] = None) -> bool:
    """Volumes match when their relative difference is within tolerance (0.5%)."""
    if tolerance is None:
        tolerance = get_settings().volume_tolerance
    largest = max(a.value_ml, b.value_ml)
    if largest == 0:
        return a.value_ml == b.value_ml
    return abs(a.value_ml - b.value_ml) / largest <= tolerance


# =============================================================================
# CLASS / TYPE
# =============================================================================

@lru_cache
def _class_type_pattern(abbreviations: Tuple[str, ...]) -> re.Pattern:
    alternatives = "|".join(re.escape(a) for a in sorted(abbreviations, key=len, reverse=True))
    return re.compile(r"\b(" + alternatives + r")\.?(?!\w)")


def expand_class_type_abbreviations(text: Optional[str]) -> str:
    """Lowercase text with class/type abbreviations spelled out ("IPA" -> "india pale ale")."""
    if not text:
        return ""
    table = get_lookup_tables().class_type_abbreviations
    lowered = text.lower()
    if not table:
        return lowered
    pattern = _class_type_pattern(tuple(table))
    return pattern.sub(lambda m: table[m.group(1)], lowered)


# =============================================================================
# NAME & ADDRESS
# =============================================================================

def normalize_address(text: Optional[str]) -> str:
    """
    Normalize a bottler/producer name and address for comparison.

    Strips production lead-ins ("Distilled and Bottled by"), expands street
    and state abbreviations, and removes all punctuation so that
    "Maker's" and "Makers" compare equal.
    """
    if not text:
        return ""
    tables = get_lookup_tables()
    normalized = text.lower().strip()

    for lead_in in tables.address_lead_ins:
        normalized = re.sub(r"^(?:" + lead_in + r")\b\s*", "", normalized)

    # "in Scotland by" left over from lead-ins not in the table
    normalized = re.sub(r"^in\s+\w+\s+by\s*", "", normalized)

    normalized = re.sub(r"[\r\n]+", " ", normalized)

    for abbr, full in tables.address_abbreviations.items():
        normalized = re.sub(r"\b" + re.escape(abbr) + r"\.?\b", full, normalized)

    normalized = re.sub(r"[^\w\s]", "", normalized)
    normalized = re.sub(r"\s+", " ", normalized)
    return normalized.strip()


# =============================================================================
# COUNTRY OF ORIGIN
# =============================================================================

def _fold(text: str) -> str:
    """Lowercase, strip accents, collapse whitespace."""
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return re.sub(r"\s+", " ", stripped.lower()).strip()


def _display_name(country) -> str:
    return (getattr(country, "common_name", None) or country.name).lower()


@lru_cache
def _country_index(languages: Tuple[str, ...]) -> Dict[str, str]:
    """
    Map folded ISO 3166 names and codes to alpha-2 codes.

    English names, official names, common names and alpha-2/alpha-3 codes are
    indexed first, then translated names for each registered language.
    """
    index: Dict[str, str] = {}
    short_names = defaultdict(set)

    for country in pycountry.countries:
        for attr in ("alpha_2", "alpha_3", "name", "official_name", "common_name"):
            value = getattr(country, attr, None)
            if value:
                index.setdefault(_fold(value), country.alpha_2)
        # "Netherlands, Kingdom of the" -> "netherlands" when unambiguous
        if "," in country.name:
            short_names[_fold(country.name.split(",")[0])].add(country.alpha_2)

    for short_name, codes in short_names.items():
        if len(codes) == 1:
            index.setdefault(short_name, next(iter(codes)))

    for language in languages:
        try:
            translation = gettext.translation("iso3166-1", pycountry.LOCALES_DIR, languages=[language])
        except OSError:
            logger.warning(f"No ISO 3166 translations for language '{language}', skipping")
            continue
        for country in pycountry.countries:
            for attr in ("name", "official_name", "common_name"):
                value = getattr(country, attr, None)
                if value:
                    index.setdefault(_fold(translation.gettext(value)), country.alpha_2)

    logger.debug(f"Country index built with {len(index)} names for languages {languages}")
    return index


def _iso_country(name: str) -> Optional[str]:
    """Resolve a cleaned name via historical names, then ISO 3166."""
    tables = get_lookup_tables()
    code = tables.historical_countries.get(name)
    if code is None:
        code = _country_index(tuple(get_settings().country_languages)).get(_fold(name))
    if code is None:
        return None
    country = pycountry.countries.get(alpha_2=code)
    return _display_name(country) if country else None


def _strip_country_lead_ins(text: str) -> str:
    tables = get_lookup_tables()
    cleaned = text.lower().strip()
    cleaned = re.sub(r"[‘’]", "'", cleaned)
    for lead_in in tables.country_lead_ins:
        cleaned = re.sub(r"^(?:" + lead_in + r")\b\s*", "", cleaned)
    # "U.S.A." and "USA" are the same statement
    cleaned = cleaned.replace(".", "")
    cleaned = re.sub(r"\s+", " ", cleaned)
    return cleaned.strip(" \t,;:!-")


def normalize_country_of_origin(text: Optional[str]) -> str:
    """
    Canonical lowercase country for a country-of-origin statement.

    Resolution order after stripping "Product of"-style lead-ins:
    1. TTB-recognized non-ISO regions (Scotland, Puerto Rico, ...) verbatim
    2. Wine/spirit regions (Champagne -> france, Islay -> scotland)
    3. Historical/colloquial names (Burma, USSR, NZ)
    4. ISO 3166 names and codes in the registered languages, in English
    5. The cleaned input unchanged
    """
    if not text:
        return ""
    tables = get_lookup_tables()
    cleaned = _strip_country_lead_ins(text)

    if cleaned in tables.ttb_regions:
        return cleaned

    region_country = tables.region_countries.get(cleaned)
    if region_country is not None:
        if region_country in tables.ttb_regions:
            return region_country
        return _iso_country(region_country) or region_country

    return _iso_country(cleaned) or cleaned
