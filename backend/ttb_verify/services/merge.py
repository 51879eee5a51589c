"""Multi-image merge and conflict resolution.

Photos of the same bottle (front, back, neck) are extracted independently.
This module fuses those extractions into one consensus ExtractedFields,
records which images support each value, and reports fields where images
disagree as FieldConflicts for an agent to settle.

Everything here returns new objects. A caller holding an earlier
MergedExtraction is never affected by a later resolution.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence
import logging
import re

from .comparison import FIELD_CONFIG
from ..models.schemas import (
    ExtractedFields,
    FieldConflict,
    HeaderEmphasis,
    HeaderFormat,
    ImageExtraction,
    ImageSource,
    MergedExtraction,
    SourcedFieldValue,
)

logger = logging.getLogger(__name__)

# Fields that are voted on across images
EXTRACTABLE_FIELDS = tuple(FIELD_CONFIG)

OBSERVATION_SEPARATOR = "; "


def normalize_value(value: Optional[str]) -> str:
    """Grouping key: lowercase, whitespace collapsed. Same-vs-different only."""
    if not value:
        return ""
    return re.sub(r"\s+", " ", value.lower()).strip()


def _group_values(field_key: str, extractions: Sequence[ImageExtraction]) -> List[SourcedFieldValue]:
    """Group an image's values for one field by normalized form, first literal kept."""
    groups: Dict[str, SourcedFieldValue] = {}
    for extraction in extractions:
        value = getattr(extraction.fields, field_key)
        key = normalize_value(value)
        if not key:
            continue
        existing = groups.get(key)
        if existing is None:
            groups[key] = SourcedFieldValue(value=value, sources=(extraction.source,))
        else:
            groups[key] = SourcedFieldValue(value=existing.value, sources=existing.sources + (extraction.source,))
    return list(groups.values())


def _rank_key(candidate: SourcedFieldValue):
    # Most-agreed first, then alphabetical; exact value breaks case-only ties
    return (-len(candidate.sources), candidate.value.casefold(), candidate.value)


def merge_extractions(extractions: Sequence[ImageExtraction]) -> MergedExtraction:
    """
    Merge per-image extractions into a consensus with source tracking.

    For each field:
    - No image reported it: consensus None, no sources
    - All reports agree after normalization: first literal value, all sources
    - Reports disagree: most common value becomes the provisional consensus
      and a FieldConflict lists every candidate

    Header format/emphasis take the first non-default value across images.
    Additional observations from all images are joined with "; ".
    """
    consensus: Dict[str, Optional[str]] = {}
    field_sources: Dict[str, SourcedFieldValue] = {}
    conflicts: List[FieldConflict] = []

    for field_key in EXTRACTABLE_FIELDS:
        groups = _group_values(field_key, extractions)

        if not groups:
            consensus[field_key] = None
            continue

        if len(groups) > 1:
            groups.sort(key=_rank_key)
            conflicts.append(
                FieldConflict(
                    field_key=field_key,
                    field_display_name=FIELD_CONFIG[field_key].display_name,
                    candidates=tuple(groups),
                )
            )
            logger.info(
                f"Conflict on {field_key}: {len(groups)} candidates, "
                f"provisional '{groups[0].value}' from {len(groups[0].sources)} image(s)"
            )

        consensus[field_key] = groups[0].value
        field_sources[field_key] = groups[0]

    header_format = next(
        (
            e.fields.government_warning_header_format
            for e in extractions
            if e.fields.government_warning_header_format is not HeaderFormat.NOT_FOUND
        ),
        HeaderFormat.NOT_FOUND,
    )
    header_emphasis = next(
        (
            e.fields.government_warning_header_emphasis
            for e in extractions
            if e.fields.government_warning_header_emphasis is not HeaderEmphasis.UNCERTAIN
        ),
        HeaderEmphasis.UNCERTAIN,
    )
    observations = [
        e.fields.additional_observations.strip()
        for e in extractions
        if e.fields.additional_observations and e.fields.additional_observations.strip()
    ]

    fields = ExtractedFields(
        **consensus,
        government_warning_header_format=header_format,
        government_warning_header_emphasis=header_emphasis,
        additional_observations=OBSERVATION_SEPARATOR.join(observations) or None,
    )

    logger.info(f"Merged {len(extractions)} extraction(s): {len(field_sources)} fields, {len(conflicts)} conflict(s)")

    return MergedExtraction(
        fields=fields,
        field_sources=field_sources,
        conflicts=tuple(conflicts),
        image_extractions=tuple(extractions),
    )


def resolve_conflict(merged: MergedExtraction, field_key: str, selected_value: str) -> MergedExtraction:
    """
    Apply an agent's choice to a conflict.

    The selection must match one of the conflict's candidates (same
    normalization as the merge). The consensus takes that candidate's own
    value and sources, so no untraced value can enter the record. When the
    field has no conflict or the value matches no candidate, ``merged`` is
    returned unchanged.

    Resolving an already resolved conflict replaces the earlier choice.
    """
    index = next((i for i, c in enumerate(merged.conflicts) if c.field_key == field_key), None)
    if index is None:
        logger.warning(f"No conflict on field '{field_key}', nothing to resolve")
        return merged

    conflict = merged.conflicts[index]
    wanted = normalize_value(selected_value)
    candidate = next((c for c in conflict.candidates if normalize_value(c.value) == wanted), None)
    if candidate is None:
        logger.warning(f"'{selected_value}' is not a candidate for {field_key}, conflict left unresolved")
        return merged

    resolved = conflict.model_copy(
        update={"selected_value": candidate.value, "selected_at": datetime.now(timezone.utc)}
    )
    conflicts = merged.conflicts[:index] + (resolved,) + merged.conflicts[index + 1:]

    field_sources = dict(merged.field_sources)
    field_sources[field_key] = candidate

    logger.info(f"Resolved {field_key} to '{candidate.value}' from {len(candidate.sources)} image(s)")

    return merged.model_copy(
        update={
            "fields": merged.fields.model_copy(update={field_key: candidate.value}),
            "field_sources": field_sources,
            "conflicts": conflicts,
        }
    )


def all_conflicts_resolved(merged: MergedExtraction) -> bool:
    """True when every conflict has a selected value (vacuously true with none)."""
    return all(conflict.is_resolved for conflict in merged.conflicts)


def get_unresolved_conflicts(merged: MergedExtraction) -> List[FieldConflict]:
    """Conflicts still waiting for an agent decision, in merge order."""
    return [conflict for conflict in merged.conflicts if not conflict.is_resolved]


def image_ids(sources: Sequence[ImageSource]) -> List[str]:
    """Image ids for a list of sources, in order."""
    return [source.image_id for source in sources]
