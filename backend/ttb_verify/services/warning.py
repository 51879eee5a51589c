"""Government warning statement verification (27 CFR Part 16).

The warning is checked four independent ways, each producing its own
FieldResult:

1. Presence - any warning text on the label
2. Header capitalization - "GOVERNMENT WARNING:" must be ALL CAPS
3. Header emphasis - the header must be bold; always routed to the agent
4. Text accuracy - word-for-word match against the required statement

Bold detection from a photograph is not reliable, so the emphasis check is
always a WARNING-tier confirmation item whatever the extractor reported.
"""

from typing import List, Optional

from .comparison import strict_match
from ..config import get_settings
from ..models.schemas import (
    ExtractedFields,
    FieldCategory,
    FieldResult,
    FieldStatus,
    HeaderEmphasis,
    HeaderFormat,
    MatchType,
)

PRESENCE_FIELD = "Gov Warning - Present"
HEADER_CAPS_FIELD = "Gov Warning - Header Caps"
HEADER_BOLD_FIELD = "Gov Warning - Header Bold"
TEXT_ACCURACY_FIELD = "Gov Warning - Text Accuracy"

EMPHASIS_CONFIDENCE = 0.5

_EMPHASIS_DETAILS = {
    HeaderEmphasis.APPEARS_BOLD_OR_HEAVY: (
        "Header appears visually emphasized (best-effort assessment) - "
        "agent should visually confirm bold formatting"
    ),
    HeaderEmphasis.UNCERTAIN: (
        "Could not determine if header is bold from image - agent should visually confirm"
    ),
    HeaderEmphasis.APPEARS_NORMAL_WEIGHT: (
        "Header does not appear bold - agent should visually confirm. "
        "Per 27 CFR Part 16, 'GOVERNMENT WARNING' must be in bold."
    ),
}


def truncate_for_display(text: str, max_length: Optional[int] = None) -> str:
    """Shorten long text for result display, ending with '...'."""
    if max_length is None:
        max_length = get_settings().warning_display_length
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


def _presence(extracted: ExtractedFields) -> FieldResult:
    found = bool(extracted.government_warning and extracted.government_warning.strip())
    return FieldResult(
        field_name=PRESENCE_FIELD,
        application_value="Required",
        extracted_value="Found" if found else "Not found",
        status=FieldStatus.PASS if found else FieldStatus.FAIL,
        match_type=MatchType.STRICT,
        confidence=1.0 if found else 0.0,
        details="Warning statement found on label" if found else "WARNING STATEMENT NOT FOUND ON LABEL",
    )


def _header_caps(extracted: ExtractedFields) -> FieldResult:
    header_format = extracted.government_warning_header_format
    if header_format is HeaderFormat.ALL_CAPS:
        status, details = FieldStatus.PASS, "Header in ALL CAPS"
    elif header_format is HeaderFormat.NOT_FOUND:
        status, details = FieldStatus.NOT_FOUND, "Warning header not found"
    else:
        status = FieldStatus.FAIL
        details = f"Header format: {header_format.value} - must be ALL CAPS per 27 CFR Part 16"

    return FieldResult(
        field_name=HEADER_CAPS_FIELD,
        application_value="ALL CAPS required",
        extracted_value=header_format.value,
        status=status,
        match_type=MatchType.STRICT,
        confidence=1.0 if status is FieldStatus.PASS else 0.0,
        details=details,
    )


def _header_emphasis(extracted: ExtractedFields) -> FieldResult:
    emphasis = extracted.government_warning_header_emphasis
    return FieldResult(
        field_name=HEADER_BOLD_FIELD,
        application_value="Bold required",
        extracted_value=emphasis.value,
        status=FieldStatus.WARNING,
        match_type=MatchType.STRICT,
        confidence=EMPHASIS_CONFIDENCE,
        details=_EMPHASIS_DETAILS[emphasis],
        category=FieldCategory.CONFIRMATION,
    )


def _text_accuracy(extracted: ExtractedFields, expected_text: str) -> FieldResult:
    warning_text = extracted.government_warning
    if not warning_text or not warning_text.strip():
        return FieldResult(
            field_name=TEXT_ACCURACY_FIELD,
            application_value=truncate_for_display(expected_text),
            extracted_value=None,
            status=FieldStatus.NOT_FOUND,
            match_type=MatchType.STRICT,
            confidence=0.0,
            details="Cannot verify text - warning not found on label",
        )

    match = strict_match(warning_text, expected_text)
    return FieldResult(
        field_name=TEXT_ACCURACY_FIELD,
        application_value=truncate_for_display(expected_text),
        extracted_value=truncate_for_display(warning_text),
        status=match.status,
        match_type=MatchType.STRICT,
        confidence=match.confidence,
        details=match.details,
    )


def verify_government_warning(
    extracted: ExtractedFields,
    expected_text: Optional[str] = None,
) -> List[FieldResult]:
    """
    Run the four warning checks.

    Args:
        extracted: Fields read from the label (or merged across images)
        expected_text: Required statement; defaults to the standard warning

    Returns:
        Exactly four FieldResults: presence, header caps, header bold, text accuracy
    """
    if not expected_text:
        expected_text = get_settings().standard_warning_text

    return [
        _presence(extracted),
        _header_caps(extracted),
        _header_emphasis(extracted),
        _text_accuracy(extracted, expected_text),
    ]
