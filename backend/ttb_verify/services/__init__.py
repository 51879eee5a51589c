"""Services for field comparison, warning checks, verification, multi-image merge and extraction orchestration."""

from .normalization import jaro_winkler, normalize_text, normalize_whitespace, word_diff
from .parsers import (
    parse_abv,
    parse_volume,
    expand_class_type_abbreviations,
    normalize_address,
    normalize_country_of_origin,
)
from .comparison import FIELD_CONFIG, FieldConfig, compare_field
from .warning import verify_government_warning
from .verification import VerificationService, compute_overall_status, apply_override, build_pending_confirmations
from .merge import merge_extractions, resolve_conflict, all_conflicts_resolved, get_unresolved_conflicts
from .pipeline import ExtractionError, ImageInput, LabelExtractor, extract_images, verify_label_images

__all__ = [
    "jaro_winkler",
    "normalize_text",
    "normalize_whitespace",
    "word_diff",
    "parse_abv",
    "parse_volume",
    "expand_class_type_abbreviations",
    "normalize_address",
    "normalize_country_of_origin",
    "FIELD_CONFIG",
    "FieldConfig",
    "compare_field",
    "verify_government_warning",
    "VerificationService",
    "compute_overall_status",
    "apply_override",
    "build_pending_confirmations",
    "merge_extractions",
    "resolve_conflict",
    "all_conflicts_resolved",
    "get_unresolved_conflicts",
    "ExtractionError",
    "ImageInput",
    "LabelExtractor",
    "extract_images",
    "verify_label_images",
]
