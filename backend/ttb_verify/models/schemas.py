"""Pydantic schemas for label data, verification results and API payloads.

Domain models are frozen and use tuples for collections: a merged extraction
or field result is an owned value, copied on update and never mutated in
place.
"""

from datetime import datetime
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, Optional, Tuple

from ..config import STANDARD_WARNING_TEXT


class FieldStatus(str, Enum):
    """Status of a single field verification."""
    PASS = "PASS"
    FAIL = "FAIL"
    WARNING = "WARNING"
    NOT_FOUND = "NOT_FOUND"
    OVERRIDDEN = "OVERRIDDEN"


class OverallStatus(str, Enum):
    """Overall label verdict. Always derived from field results."""
    PASS = "PASS"
    FAIL = "FAIL"
    REVIEW = "REVIEW"


class MatchType(str, Enum):
    """Closed set of field comparison strategies."""
    STRICT = "strict"
    FUZZY = "fuzzy"
    ADDRESS = "address"
    ABV = "abv"
    VOLUME = "volume"


class FieldCategory(str, Enum):
    """How a field result feeds the agent workflow."""
    AUTOMATED = "automated"
    CONFIRMATION = "confirmation"  # Agent must visually confirm (e.g. bold header)


class HeaderFormat(str, Enum):
    """Capitalization of the 'GOVERNMENT WARNING:' header."""
    ALL_CAPS = "ALL_CAPS"
    MIXED_CASE = "MIXED_CASE"
    NOT_FOUND = "NOT_FOUND"


class HeaderEmphasis(str, Enum):
    """Best-effort visual weight of the warning header."""
    APPEARS_BOLD_OR_HEAVY = "APPEARS_BOLD_OR_HEAVY"
    APPEARS_NORMAL_WEIGHT = "APPEARS_NORMAL_WEIGHT"
    UNCERTAIN = "UNCERTAIN"


class ImageLabel(str, Enum):
    """Which part of the product an image shows."""
    FRONT = "front"
    BACK = "back"
    NECK = "neck"
    SIDE = "side"
    DETAIL = "detail"
    OTHER = "other"


class OverrideAction(str, Enum):
    """Agent decision on a flagged field."""
    ACCEPTED = "accepted"
    CONFIRMED_ISSUE = "confirmed_issue"


class ApplicationData(BaseModel):
    """Application (COLA form) data to verify against."""
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "brand_name": "Old Tom Distillery",
                "class_type": "Kentucky Straight Bourbon Whiskey",
                "alcohol_content": "45% Alc./Vol. (90 Proof)",
                "net_contents": "750 mL",
                "name_address": "Old Tom Distillery, Louisville, KY",
                "country_of_origin": None,
            }
        },
    )

    brand_name: str = Field(..., description="Expected brand name")
    class_type: str = Field("", description="Expected class/type (e.g., Kentucky Straight Bourbon Whiskey)")
    alcohol_content: str = Field("", description="Alcohol content statement, e.g. '45% Alc./Vol.' or '90 Proof'")
    net_contents: str = Field("", description="Net contents statement, e.g. '750 mL'")
    name_address: str = Field("", description="Bottler/producer name and address")
    country_of_origin: Optional[str] = Field(None, description="Country of origin (imports only)")
    government_warning: str = Field(STANDARD_WARNING_TEXT, description="Required warning statement")


class ExtractedFields(BaseModel):
    """Fields extracted from one label image. Any field may be missing."""
    model_config = ConfigDict(frozen=True)

    brand_name: Optional[str] = None
    class_type: Optional[str] = None
    alcohol_content: Optional[str] = None
    net_contents: Optional[str] = None
    name_address: Optional[str] = None
    country_of_origin: Optional[str] = None
    government_warning: Optional[str] = None
    government_warning_header_format: HeaderFormat = HeaderFormat.NOT_FOUND
    government_warning_header_emphasis: HeaderEmphasis = HeaderEmphasis.UNCERTAIN
    additional_observations: Optional[str] = None


class ImageSource(BaseModel):
    """Identity of one uploaded image."""
    model_config = ConfigDict(frozen=True)

    image_id: str
    image_label: ImageLabel = ImageLabel.OTHER
    file_name: str = ""


class ImageExtraction(BaseModel):
    """Extraction result from a single image."""
    model_config = ConfigDict(frozen=True)

    source: ImageSource
    fields: ExtractedFields
    processing_time_ms: int = 0


class SourcedFieldValue(BaseModel):
    """A field value and the images that reported it."""
    model_config = ConfigDict(frozen=True)

    value: str
    sources: Tuple[ImageSource, ...] = ()


class FieldConflict(BaseModel):
    """Images disagree on a field; needs a human decision."""
    model_config = ConfigDict(frozen=True)

    field_key: str
    field_display_name: str
    candidates: Tuple[SourcedFieldValue, ...]
    selected_value: Optional[str] = None
    selected_at: Optional[datetime] = None

    @property
    def is_resolved(self) -> bool:
        return self.selected_value is not None


class MergedExtraction(BaseModel):
    """Consensus of several image extractions with source tracking."""
    model_config = ConfigDict(frozen=True)

    fields: ExtractedFields
    field_sources: Dict[str, SourcedFieldValue] = Field(default_factory=dict)
    conflicts: Tuple[FieldConflict, ...] = ()
    image_extractions: Tuple[ImageExtraction, ...] = ()


class MatchResult(BaseModel):
    """Outcome of one comparison strategy."""
    model_config = ConfigDict(frozen=True)

    status: FieldStatus
    confidence: float = Field(ge=0.0, le=1.0)
    details: str


class AgentOverride(BaseModel):
    """Agent decision recorded on a field result."""
    model_config = ConfigDict(frozen=True)

    action: OverrideAction
    timestamp: datetime


class FieldResult(BaseModel):
    """Result for a single field verification."""
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "field_name": "Brand Name",
                "application_value": "Old Tom Distillery",
                "extracted_value": "OLD TOM DISTILLERY",
                "status": "PASS",
                "match_type": "fuzzy",
                "confidence": 1.0,
                "details": "Match (after normalization)",
                "category": "automated",
            }
        },
    )

    field_name: str
    application_value: str
    extracted_value: Optional[str] = None
    status: FieldStatus
    match_type: MatchType
    confidence: float = Field(ge=0.0, le=1.0)
    details: str
    category: FieldCategory = FieldCategory.AUTOMATED
    agent_override: Optional[AgentOverride] = None


class PendingConfirmation(BaseModel):
    """Item the agent must confirm by eye before sign-off."""
    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    description: str
    ai_assessment: Optional[str] = None
    confirmed: bool = False


class VerificationResult(BaseModel):
    """Overall verification result for a label."""
    model_config = ConfigDict(frozen=True)

    overall_status: OverallStatus
    field_results: Tuple[FieldResult, ...]
    pending_confirmations: Tuple[PendingConfirmation, ...] = ()
    extracted_fields: ExtractedFields
    summary: str
    processing_time_ms: int = 0


class RejectedValue(BaseModel):
    """A conflict candidate the agent did not pick."""
    model_config = ConfigDict(frozen=True)

    value: str
    from_images: Tuple[str, ...]


class ConflictResolution(BaseModel):
    """How a cross-image conflict was settled."""
    model_config = ConfigDict(frozen=True)

    selected_value: str
    selected_from_images: Tuple[str, ...]
    rejected_values: Tuple[RejectedValue, ...]
    resolved_at: Optional[datetime] = None


class MultiImageFieldResult(FieldResult):
    """Field result with the images that support it."""
    sources: Tuple[ImageSource, ...] = ()
    confirmed_on_images: int = 0
    had_conflict: bool = False
    conflict_resolution: Optional[ConflictResolution] = None


class MultiImageVerificationResult(BaseModel):
    """Verification of a label photographed from several angles."""
    model_config = ConfigDict(frozen=True)

    overall_status: OverallStatus
    field_results: Tuple[MultiImageFieldResult, ...]
    pending_confirmations: Tuple[PendingConfirmation, ...] = ()
    extracted_fields: ExtractedFields
    summary: str
    processing_time_ms: int = 0
    image_count: int
    images: Tuple[ImageSource, ...]
    merged_extraction: MergedExtraction
    unresolved_conflicts: Tuple[FieldConflict, ...] = ()


# =============================================================================
# API PAYLOADS
# =============================================================================

class CompareRequest(BaseModel):
    """Compare one extracted value against the application value."""
    field_key: str = Field(..., description="Field key, e.g. 'alcohol_content'")
    extracted: Optional[str] = None
    expected: str = ""


class VerifyRequest(BaseModel):
    """Verify one set of extracted fields against application data."""
    application: ApplicationData
    extracted: ExtractedFields


class MergeRequest(BaseModel):
    """Merge per-image extractions of the same label."""
    extractions: Tuple[ImageExtraction, ...]


class ResolveConflictRequest(BaseModel):
    """Apply an agent's choice to a merge conflict."""
    merged: MergedExtraction
    field_key: str
    selected_value: str


class VerifyMergedRequest(BaseModel):
    """Verify a merged (multi-image) extraction."""
    application: ApplicationData
    merged: MergedExtraction


class StatusRequest(BaseModel):
    """Recompute the overall status as overrides accrue."""
    field_results: Tuple[FieldResult, ...]


class StatusResponse(BaseModel):
    """Overall status for a set of field results."""
    overall_status: OverallStatus
    unresolved_fail_count: int
    review_count: int


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "success": False,
                "error": "Unknown field",
                "detail": "Known fields: brand_name, class_type, alcohol_content"
            }
        }


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    lookup_tables_loaded: bool
