"""Field comparison strategies and the per-field strategy router.

Every strategy shares one contract: a missing extracted value is NOT_FOUND,
an exact match after the strategy's normalization is PASS at 1.0, and
anything else degrades to WARNING or FAIL. No strategy raises on malformed
input.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Union
import logging

from rapidfuzz import process
from rapidfuzz.distance import Jaro

from .normalization import jaro_winkler, normalize_text, normalize_whitespace, word_diff
from .parsers import (
    abv_equivalent,
    expand_class_type_abbreviations,
    normalize_address,
    normalize_country_of_origin,
    parse_abv,
    parse_volume,
    volumes_equivalent,
)
from ..config import get_settings
from ..models.schemas import FieldStatus, MatchResult, MatchType

logger = logging.getLogger(__name__)

# Words this short ("of", "&", "co") are ignored by the fuzzy word guard
MIN_SIGNIFICANT_WORD_LENGTH = 3


@dataclass(frozen=True)
class FieldConfig:
    """Static verification settings for one field."""
    display_name: str
    match_type: MatchType
    required: bool = True
    # Optional domain canonicalizer applied before comparison
    canonicalizer: Optional[Callable[[str], str]] = None
    # Fuzzy fields only: PASS when one value contains the other word for word
    allow_containment: bool = False


FIELD_CONFIG: Dict[str, FieldConfig] = {
    "brand_name": FieldConfig("Brand Name", MatchType.FUZZY),
    "class_type": FieldConfig(
        "Class/Type",
        MatchType.FUZZY,
        canonicalizer=expand_class_type_abbreviations,
        allow_containment=True,
    ),
    "alcohol_content": FieldConfig("Alcohol Content", MatchType.ABV),
    "net_contents": FieldConfig("Net Contents", MatchType.VOLUME),
    "name_address": FieldConfig("Name & Address", MatchType.ADDRESS),
    "country_of_origin": FieldConfig(
        "Country of Origin",
        MatchType.STRICT,
        required=False,
        canonicalizer=normalize_country_of_origin,
    ),
    "government_warning": FieldConfig("Government Warning", MatchType.STRICT),
}

# Fields compared one-to-one; the warning goes through verify_government_warning
STANDARD_FIELDS = (
    "brand_name",
    "class_type",
    "alcohol_content",
    "net_contents",
    "name_address",
    "country_of_origin",
)


def _is_missing(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def _not_found(details: str = "Field not found on label") -> MatchResult:
    return MatchResult(status=FieldStatus.NOT_FOUND, confidence=0.0, details=details)


# =============================================================================
# STRATEGIES
# =============================================================================

def strict_match(
    extracted: Optional[str],
    expected: str,
    canonicalizer: Optional[Callable[[str], str]] = None,
) -> MatchResult:
    """
    Whitespace-normalized comparison that preserves case and content.

    Used for the warning text and, with the country canonicalizer, for
    country of origin ("Product of France" == "FR").
    """
    if _is_missing(extracted):
        return _not_found()

    a = normalize_whitespace(extracted)
    b = normalize_whitespace(expected)

    if a == b:
        return MatchResult(status=FieldStatus.PASS, confidence=1.0, details="Exact match")

    if a.lower() == b.lower():
        return MatchResult(
            status=FieldStatus.PASS,
            confidence=get_settings().strict_case_confidence,
            details="Match (case difference only)",
        )

    if canonicalizer is not None:
        canonical_a = canonicalizer(a)
        canonical_b = canonicalizer(b)
        logger.debug(f"Canonical comparison: '{a}' -> '{canonical_a}', '{b}' -> '{canonical_b}'")
        if canonical_a and canonical_a == canonical_b:
            return MatchResult(
                status=FieldStatus.PASS,
                confidence=1.0,
                details=f"Match after normalization ({canonical_a})",
            )

    return MatchResult(status=FieldStatus.FAIL, confidence=0.0, details=word_diff(b, a))


def _unmatched_word(extracted_norm: str, expected_norm: str, threshold: float) -> Optional[str]:
    """First significant expected word with no close extracted word, if any."""
    extracted_words = [w for w in extracted_norm.split() if len(w) >= MIN_SIGNIFICANT_WORD_LENGTH]
    for word in expected_norm.split():
        if len(word) < MIN_SIGNIFICANT_WORD_LENGTH:
            continue
        best = process.extractOne(word, extracted_words, scorer=Jaro.similarity, score_cutoff=threshold)
        if best is None:
            return word
    return None


def _contains_words(a: str, b: str) -> bool:
    """True when either normalized value appears in the other on word boundaries."""
    return f" {b} " in f" {a} " or f" {a} " in f" {b} "


def fuzzy_match(
    extracted: Optional[str],
    expected: str,
    threshold: Optional[float] = None,
    canonicalizer: Optional[Callable[[str], str]] = None,
    allow_containment: bool = False,
) -> MatchResult:
    """
    Jaro-Winkler comparison for brand name and class/type.

    Bands:
    - >= threshold (0.85): PASS
    - 0.60 - threshold: WARNING
    - < 0.60: FAIL

    A would-be PASS drops to WARNING when an expected word has no
    counterpart on the label: "Jim Bean" scores 0.95 against "Jim Beam"
    but is a different brand.

    A canonicalizer (class/type abbreviation expansion) runs before
    normalize_text. With allow_containment, "Pale Ale" against "India Pale
    Ale" passes at containment_confidence.
    """
    if _is_missing(extracted):
        return _not_found()

    settings = get_settings()
    if threshold is None:
        threshold = settings.fuzzy_match_threshold

    if canonicalizer is not None:
        extracted = canonicalizer(extracted)
        expected = canonicalizer(expected)

    a = normalize_text(extracted)
    b = normalize_text(expected)

    if a == b:
        return MatchResult(status=FieldStatus.PASS, confidence=1.0, details="Match (after normalization)")

    if allow_containment and a and b and _contains_words(a, b):
        return MatchResult(
            status=FieldStatus.PASS,
            confidence=settings.containment_confidence,
            details="Match (one contains the other)",
        )

    similarity = jaro_winkler(a, b)
    logger.debug(f"Fuzzy comparison: '{a}' vs '{b}' -> {similarity:.3f}")

    if similarity >= threshold:
        unmatched = _unmatched_word(a, b, threshold)
        if unmatched is not None:
            return MatchResult(
                status=FieldStatus.WARNING,
                confidence=similarity,
                details=(
                    f'Word mismatch: "{unmatched}" not found on label '
                    f"({similarity:.0%} similar overall) - agent review recommended"
                ),
            )
        return MatchResult(
            status=FieldStatus.PASS,
            confidence=similarity,
            details=f"High similarity ({similarity:.0%}) - minor formatting differences",
        )

    if similarity >= settings.fuzzy_review_threshold:
        return MatchResult(
            status=FieldStatus.WARNING,
            confidence=similarity,
            details=f"Partial match ({similarity:.0%}) - agent review recommended",
        )

    return MatchResult(
        status=FieldStatus.FAIL,
        confidence=similarity,
        details=f"Low similarity ({similarity:.0%}) - likely mismatch",
    )


def address_match(extracted: Optional[str], expected: str) -> MatchResult:
    """
    Name & address comparison with looser bands than fuzzy_match.

    Labels routinely abbreviate or drop parts of the address on file, so
    0.90+ passes and 0.70-0.90 goes to review.
    """
    if _is_missing(extracted):
        return _not_found("Name/address not found on label")

    settings = get_settings()
    a = normalize_address(extracted)
    b = normalize_address(expected)

    if a == b:
        return MatchResult(status=FieldStatus.PASS, confidence=1.0, details="Exact address match")

    similarity = jaro_winkler(a, b)
    logger.debug(f"Address comparison: '{a}' vs '{b}' -> {similarity:.3f}")

    if similarity >= settings.address_match_threshold:
        return MatchResult(
            status=FieldStatus.PASS,
            confidence=similarity,
            details=f"Address match ({similarity:.0%})",
        )

    if similarity >= settings.address_review_threshold:
        return MatchResult(
            status=FieldStatus.WARNING,
            confidence=similarity,
            details=(
                f"Address partial match ({similarity:.0%}) - agent review recommended. "
                "Labels often abbreviate or omit parts of the full address."
            ),
        )

    return MatchResult(
        status=FieldStatus.FAIL,
        confidence=similarity,
        details=f"Address mismatch ({similarity:.0%})",
    )


def match_abv(extracted: Optional[str], expected: str) -> MatchResult:
    """ABV comparison with proof conversion (90 Proof == 45%). Zero tolerance."""
    if _is_missing(extracted):
        return _not_found("Alcohol content not found on label")

    a = parse_abv(extracted)
    b = parse_abv(expected)

    if a is None:
        return MatchResult(
            status=FieldStatus.WARNING,
            confidence=0.5,
            details=f'Could not parse ABV from label: "{extracted}"',
        )
    if b is None:
        return MatchResult(
            status=FieldStatus.WARNING,
            confidence=0.5,
            details=f'Could not parse ABV from application: "{expected}"',
        )

    if abv_equivalent(a, b):
        note = ""
        if a.source != b.source:
            note = f" (converted: {a.source} on label, {b.source} on application)"
        return MatchResult(
            status=FieldStatus.PASS,
            confidence=1.0,
            details=f"ABV match: {a.percentage:g}%{note}",
        )

    return MatchResult(
        status=FieldStatus.FAIL,
        confidence=0.9,
        details=f"ABV mismatch: label={a.percentage:g}% vs application={b.percentage:g}%",
    )


def match_net_contents(extracted: Optional[str], expected: str) -> MatchResult:
    """Net contents comparison across units with a 0.5% tolerance."""
    if _is_missing(extracted):
        return _not_found("Net contents not found on label")

    a = parse_volume(extracted)
    b = parse_volume(expected)

    if a is None:
        return MatchResult(
            status=FieldStatus.WARNING,
            confidence=0.5,
            details=f'Could not parse volume from label: "{extracted}"',
        )
    if b is None:
        return MatchResult(
            status=FieldStatus.WARNING,
            confidence=0.5,
            details=f'Could not parse volume from application: "{expected}"',
        )

    if volumes_equivalent(a, b):
        return MatchResult(
            status=FieldStatus.PASS,
            confidence=1.0,
            details=f"Volume match: {a.original} ≈ {b.original} ({a.value_ml:.1f} mL)",
        )

    return MatchResult(
        status=FieldStatus.FAIL,
        confidence=0.9,
        details=(
            f"Volume mismatch: {a.original} ({a.value_ml:.1f} mL) "
            f"vs {b.original} ({b.value_ml:.1f} mL)"
        ),
    )


# =============================================================================
# ROUTER
# =============================================================================

def _unknown_match_type(match_type) -> MatchResult:
    return MatchResult(
        status=FieldStatus.WARNING,
        confidence=0.0,
        details=f"Unknown match type '{match_type}' - agent review required",
    )


def compare_field(
    field_key: str,
    match_type: Union[MatchType, str],
    extracted: Optional[str],
    expected: str,
) -> MatchResult:
    """
    Route one field to its comparison strategy.

    Args:
        field_key: Field key (e.g. "country_of_origin"); selects any
            field-specific canonicalizer from FIELD_CONFIG
        match_type: One of the five MatchType strategies; any other
            value yields WARNING so the field goes to review
        extracted: Value read from the label (None if not found)
        expected: Value from the application

    Returns:
        MatchResult with status, confidence and details
    """
    try:
        match_type = MatchType(match_type)
    except ValueError:
        logger.warning(f"{field_key}: unknown match type '{match_type}'")
        return _unknown_match_type(match_type)

    expected = expected or ""
    config = FIELD_CONFIG.get(field_key)
    canonicalizer = config.canonicalizer if config is not None else None

    if match_type is MatchType.STRICT:
        result = strict_match(extracted, expected, canonicalizer)
    elif match_type is MatchType.FUZZY:
        allow_containment = config.allow_containment if config is not None else False
        result = fuzzy_match(
            extracted,
            expected,
            canonicalizer=canonicalizer,
            allow_containment=allow_containment,
        )
    elif match_type is MatchType.ADDRESS:
        result = address_match(extracted, expected)
    elif match_type is MatchType.ABV:
        result = match_abv(extracted, expected)
    elif match_type is MatchType.VOLUME:
        result = match_net_contents(extracted, expected)
    else:
        return _unknown_match_type(match_type)

    logger.debug(f"{field_key} [{match_type.value}]: {result.status.value} ({result.confidence:.2f})")
    return result
