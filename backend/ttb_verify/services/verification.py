"""Verification service for comparing extracted fields against application data."""

from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence, Tuple
import logging

from .comparison import FIELD_CONFIG, STANDARD_FIELDS, compare_field
from .merge import get_unresolved_conflicts, image_ids, normalize_value
from .warning import verify_government_warning
from ..config import get_settings
from ..models.schemas import (
    AgentOverride,
    ApplicationData,
    ConflictResolution,
    ExtractedFields,
    FieldCategory,
    FieldConflict,
    FieldResult,
    FieldStatus,
    MergedExtraction,
    MultiImageFieldResult,
    MultiImageVerificationResult,
    OverallStatus,
    OverrideAction,
    PendingConfirmation,
    RejectedValue,
    VerificationResult,
)

logger = logging.getLogger(__name__)

_REVIEW_STATUSES = (FieldStatus.WARNING, FieldStatus.NOT_FOUND)
_WARNING_PREFIX = "Gov Warning - "


# =============================================================================
# STATUS AGGREGATION
# =============================================================================

def _is_neutralized(result: FieldResult) -> bool:
    """An accepted override takes the field out of the aggregate."""
    if result.status is FieldStatus.OVERRIDDEN:
        return True
    override = result.agent_override
    return override is not None and override.action is OverrideAction.ACCEPTED


def blocking_counts(field_results: Iterable[FieldResult]) -> Tuple[int, int]:
    """Count (unneutralized FAILs, unneutralized WARNING/NOT_FOUNDs)."""
    fails = reviews = 0
    for result in field_results:
        if _is_neutralized(result):
            continue
        if result.status is FieldStatus.FAIL:
            fails += 1
        elif result.status in _REVIEW_STATUSES:
            reviews += 1
    return fails, reviews


def compute_overall_status(field_results: Iterable[FieldResult]) -> OverallStatus:
    """
    Reduce field results to one verdict.

    - FAIL if any FAIL is not neutralized by an accepted override
    - REVIEW if any WARNING or NOT_FOUND is not neutralized
    - PASS otherwise

    A "confirmed_issue" override leaves the field blocking. Pure; safe to
    call again as overrides accrue.
    """
    fails, reviews = blocking_counts(field_results)
    if fails:
        return OverallStatus.FAIL
    if reviews:
        return OverallStatus.REVIEW
    return OverallStatus.PASS


def apply_override(
    result: FieldResult,
    action: OverrideAction,
    timestamp: Optional[datetime] = None,
) -> FieldResult:
    """
    Record an agent decision on a field result.

    "accepted" marks the field OVERRIDDEN; "confirmed_issue" keeps its status
    and only stamps the decision. Returns a new result of the same type.
    """
    action = OverrideAction(action)
    override = AgentOverride(action=action, timestamp=timestamp or datetime.now(timezone.utc))
    update = {"agent_override": override}
    if action is OverrideAction.ACCEPTED:
        update["status"] = FieldStatus.OVERRIDDEN
    logger.info(f"Override on '{result.field_name}': {action.value} (was {result.status.value})")
    return result.model_copy(update=update)


def build_pending_confirmations(field_results: Iterable[FieldResult]) -> List[PendingConfirmation]:
    """Items the agent must check by eye, e.g. the bold warning header."""
    return [
        PendingConfirmation(
            id=result.field_name,
            label=result.field_name.replace(_WARNING_PREFIX, ""),
            description=result.details,
            ai_assessment=result.extracted_value or None,
        )
        for result in field_results
        if result.category is FieldCategory.CONFIRMATION
    ]


# =============================================================================
# SERVICE
# =============================================================================

class VerificationService:
    """Compares extracted fields against expected application data."""

    def __init__(self):
        self.settings = get_settings()

    def verify(
        self,
        application: ApplicationData,
        extracted: ExtractedFields,
        processing_time_ms: int = 0,
    ) -> VerificationResult:
        """
        Verify one set of extracted fields against the application.

        The header bold check is always WARNING and counts in the overall
        status, so a fresh result is at best REVIEW. It reaches PASS only once
        an agent accepts that check (apply_override with "accepted") and the
        status is recomputed.

        Args:
            application: Application (COLA) data
            extracted: Fields from a single image or a merged consensus
            processing_time_ms: Upstream extraction time to report

        Returns:
            VerificationResult with per-field results, pending confirmations,
            overall status and summary
        """
        field_results = [result for _, result in self._field_results(application, extracted)]
        overall_status = compute_overall_status(field_results)

        logger.info(f"Verification complete: {overall_status.value} ({len(field_results)} checks)")

        return VerificationResult(
            overall_status=overall_status,
            field_results=tuple(field_results),
            pending_confirmations=tuple(build_pending_confirmations(field_results)),
            extracted_fields=extracted,
            summary=self._generate_summary(field_results, overall_status),
            processing_time_ms=processing_time_ms,
        )

    def verify_merged(
        self,
        application: ApplicationData,
        merged: MergedExtraction,
        processing_time_ms: int = 0,
    ) -> MultiImageVerificationResult:
        """
        Verify a multi-image consensus, attributing each result to its images.

        An unresolved conflict keeps the verdict at REVIEW or worse: the
        consensus value for that field is only provisional.
        """
        conflicts = {conflict.field_key: conflict for conflict in merged.conflicts}
        unresolved = get_unresolved_conflicts(merged)

        field_results = []
        for field_key, result in self._field_results(application, merged.fields):
            sourced = merged.field_sources.get(field_key)
            sources = sourced.sources if sourced is not None else ()
            conflict = conflicts.get(field_key)
            field_results.append(
                MultiImageFieldResult(
                    **result.model_dump(),
                    sources=sources,
                    confirmed_on_images=len(sources),
                    had_conflict=conflict is not None,
                    conflict_resolution=self._conflict_resolution(conflict),
                )
            )

        overall_status = compute_overall_status(field_results)
        if unresolved and overall_status is OverallStatus.PASS:
            overall_status = OverallStatus.REVIEW

        images = tuple(extraction.source for extraction in merged.image_extractions)
        logger.info(
            f"Multi-image verification complete: {overall_status.value} "
            f"({len(images)} images, {len(unresolved)} unresolved conflicts)"
        )

        return MultiImageVerificationResult(
            overall_status=overall_status,
            field_results=tuple(field_results),
            pending_confirmations=tuple(build_pending_confirmations(field_results)),
            extracted_fields=merged.fields,
            summary=self._generate_summary(field_results, overall_status, unresolved),
            processing_time_ms=processing_time_ms,
            image_count=len(images),
            images=images,
            merged_extraction=merged,
            unresolved_conflicts=tuple(unresolved),
        )

    def _field_results(
        self,
        application: ApplicationData,
        extracted: ExtractedFields,
    ) -> List[Tuple[str, FieldResult]]:
        """Compare each standard field, then append the four warning checks."""
        results = []

        for field_key in STANDARD_FIELDS:
            config = FIELD_CONFIG[field_key]
            application_value = getattr(application, field_key) or ""

            # Optional fields (country of origin) only apply when on file
            if not config.required and not application_value.strip():
                continue

            extracted_value = getattr(extracted, field_key)
            match = compare_field(field_key, config.match_type, extracted_value, application_value)
            results.append((
                field_key,
                FieldResult(
                    field_name=config.display_name,
                    application_value=application_value,
                    extracted_value=extracted_value,
                    status=match.status,
                    match_type=config.match_type,
                    confidence=match.confidence,
                    details=match.details,
                ),
            ))

        expected_warning = application.government_warning or self.settings.standard_warning_text
        for result in verify_government_warning(extracted, expected_warning):
            results.append(("government_warning", result))

        return results

    def _conflict_resolution(self, conflict: Optional[FieldConflict]) -> Optional[ConflictResolution]:
        if conflict is None or not conflict.is_resolved:
            return None
        wanted = normalize_value(conflict.selected_value)
        selected = next((c for c in conflict.candidates if normalize_value(c.value) == wanted), None)
        if selected is None:
            return None
        return ConflictResolution(
            selected_value=selected.value,
            selected_from_images=tuple(image_ids(selected.sources)),
            rejected_values=tuple(
                RejectedValue(value=c.value, from_images=tuple(image_ids(c.sources)))
                for c in conflict.candidates
                if c is not selected
            ),
            resolved_at=conflict.selected_at,
        )

    def _generate_summary(
        self,
        field_results: Sequence[FieldResult],
        overall_status: OverallStatus,
        unresolved: Sequence[FieldConflict] = (),
    ) -> str:
        """Generate human-readable summary."""
        if overall_status is OverallStatus.PASS:
            return "✅ All fields verified successfully. Label matches application data."

        issues = []
        for result in field_results:
            if _is_neutralized(result):
                continue
            if result.status is FieldStatus.FAIL:
                issues.append(f"❌ {result.field_name}: {result.details}")
            elif result.status in _REVIEW_STATUSES:
                issues.append(f"⚠️ {result.field_name}: {result.details}")

        for conflict in unresolved:
            values = ", ".join(f"'{c.value}'" for c in conflict.candidates)
            issues.append(f"⚠️ {conflict.field_display_name}: images disagree ({values})")

        if overall_status is OverallStatus.FAIL:
            header = "❌ Verification failed. Issues found:"
        else:
            header = "⚠️ Review recommended. Potential issues:"

        return header + "\n" + "\n".join(issues)
