"""Pydantic models for domain values and request/response schemas."""

from .schemas import (
    FieldStatus,
    OverallStatus,
    MatchType,
    FieldCategory,
    HeaderFormat,
    HeaderEmphasis,
    ImageLabel,
    OverrideAction,
    ApplicationData,
    ExtractedFields,
    ImageSource,
    ImageExtraction,
    SourcedFieldValue,
    FieldConflict,
    MergedExtraction,
    MatchResult,
    AgentOverride,
    FieldResult,
    PendingConfirmation,
    VerificationResult,
    RejectedValue,
    ConflictResolution,
    MultiImageFieldResult,
    MultiImageVerificationResult,
    CompareRequest,
    VerifyRequest,
    MergeRequest,
    ResolveConflictRequest,
    VerifyMergedRequest,
    StatusRequest,
    StatusResponse,
    ErrorResponse,
    HealthResponse,
)

__all__ = [
    "FieldStatus",
    "OverallStatus",
    "MatchType",
    "FieldCategory",
    "HeaderFormat",
    "HeaderEmphasis",
    "ImageLabel",
    "OverrideAction",
    "ApplicationData",
    "ExtractedFields",
    "ImageSource",
    "ImageExtraction",
    "SourcedFieldValue",
    "FieldConflict",
    "MergedExtraction",
    "MatchResult",
    "AgentOverride",
    "FieldResult",
    "PendingConfirmation",
    "VerificationResult",
    "RejectedValue",
    "ConflictResolution",
    "MultiImageFieldResult",
    "MultiImageVerificationResult",
    "CompareRequest",
    "VerifyRequest",
    "MergeRequest",
    "ResolveConflictRequest",
    "VerifyMergedRequest",
    "StatusRequest",
    "StatusResponse",
    "ErrorResponse",
    "HealthResponse",
]
