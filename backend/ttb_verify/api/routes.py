"""API route definitions."""

from fastapi import APIRouter, HTTPException
import logging

from ..models import (
    CompareRequest,
    ErrorResponse,
    FieldResult,
    HealthResponse,
    MergedExtraction,
    MergeRequest,
    MultiImageVerificationResult,
    ResolveConflictRequest,
    StatusRequest,
    StatusResponse,
    VerificationResult,
    VerifyMergedRequest,
    VerifyRequest,
)
from ..services import (
    FIELD_CONFIG,
    VerificationService,
    compare_field,
    compute_overall_status,
    merge_extractions,
    resolve_conflict,
)
from ..services.lookups import get_lookup_tables
from ..services.verification import blocking_counts
from ..config import get_settings
from .. import __version__

logger = logging.getLogger(__name__)
router = APIRouter()

# Initialize services
verification_service = VerificationService()

_BAD_REQUEST = {400: {"model": ErrorResponse, "description": "Invalid input"}}


def _require_known_field(field_key: str) -> None:
    if field_key not in FIELD_CONFIG:
        raise HTTPException(
            status_code=400,
            detail=f"Unknown field '{field_key}'. Known fields: {', '.join(FIELD_CONFIG)}",
        )


@router.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check():
    """Check API health and lookup table availability."""
    try:
        get_lookup_tables()
        tables_loaded = True
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Lookup tables unavailable: {e}")
        tables_loaded = False

    return HealthResponse(
        status="healthy" if tables_loaded else "degraded",
        version=__version__,
        lookup_tables_loaded=tables_loaded,
    )


@router.post("/compare", response_model=FieldResult, responses=_BAD_REQUEST, tags=["Verification"])
async def compare(request: CompareRequest):
    """
    Compare a single extracted value against the application value.

    The field key selects the match strategy (e.g. `alcohol_content` uses ABV
    parsing with proof conversion).
    """
    _require_known_field(request.field_key)
    config = FIELD_CONFIG[request.field_key]

    match = compare_field(request.field_key, config.match_type, request.extracted, request.expected)
    return FieldResult(
        field_name=config.display_name,
        application_value=request.expected,
        extracted_value=request.extracted,
        status=match.status,
        match_type=config.match_type,
        confidence=match.confidence,
        details=match.details,
    )


@router.post("/verify", response_model=VerificationResult, tags=["Verification"])
async def verify_label(request: VerifyRequest):
    """
    Verify one label's extracted fields against application data.

    Returns per-field results (including the four government warning checks),
    items needing visual confirmation, and the overall status.
    """
    return verification_service.verify(request.application, request.extracted)


@router.post("/merge", response_model=MergedExtraction, tags=["Multi-Image"])
async def merge(request: MergeRequest):
    """
    Merge extractions from several photos of the same label.

    Fields the images disagree on are returned as conflicts with every
    candidate value and the images that reported it.
    """
    settings = get_settings()
    if len(request.extractions) > settings.max_images_per_label:
        raise HTTPException(
            status_code=400,
            detail=f"At most {settings.max_images_per_label} images per label",
        )
    return merge_extractions(request.extractions)


@router.post("/merge/resolve", response_model=MergedExtraction, responses=_BAD_REQUEST, tags=["Multi-Image"])
async def resolve(request: ResolveConflictRequest):
    """
    Apply an agent's choice to a merge conflict.

    The selected value must be one of the conflict's candidates; otherwise
    the merged extraction is returned unchanged.
    """
    _require_known_field(request.field_key)
    return resolve_conflict(request.merged, request.field_key, request.selected_value)


@router.post("/verify/merged", response_model=MultiImageVerificationResult, tags=["Multi-Image"])
async def verify_merged(request: VerifyMergedRequest):
    """Verify a merged extraction, with per-field image attribution."""
    return verification_service.verify_merged(request.application, request.merged)


@router.post("/status", response_model=StatusResponse, tags=["Verification"])
async def overall_status(request: StatusRequest):
    """Recompute the overall status after agent overrides."""
    fails, reviews = blocking_counts(request.field_results)
    return StatusResponse(
        overall_status=compute_overall_status(request.field_results),
        unresolved_fail_count=fails,
        review_count=reviews,
    )
