"""Multi-image extraction orchestration.

Runs an externally supplied label extractor once per image, in parallel up to
a configured limit, then merges and verifies. An image that fails extraction
is dropped from the merge input; the label is still verified from the
remaining images. Nothing here retries.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence, Tuple, Union
import logging

from .merge import merge_extractions
from .verification import VerificationService
from ..config import get_settings
from ..models.schemas import (
    ApplicationData,
    ExtractedFields,
    ImageExtraction,
    ImageSource,
    MultiImageVerificationResult,
    VerificationResult,
)

logger = logging.getLogger(__name__)


class ExtractionError(Exception):
    """The extractor could not read an image."""


class LabelExtractor(Protocol):
    """Reads label fields from one image (vision model, OCR engine, ...)."""

    async def extract(self, image_bytes: bytes, media_type: str) -> ExtractedFields:
        """Return the fields found on the image, or raise ExtractionError."""
        ...


@dataclass(frozen=True)
class ImageInput:
    """One uploaded image awaiting extraction."""
    source: ImageSource
    data: bytes
    media_type: str


@dataclass(frozen=True)
class ImageFailure:
    """An image excluded from the merge and why."""
    source: ImageSource
    error: str


async def _extract_one(
    extractor: LabelExtractor,
    image: ImageInput,
    semaphore: asyncio.Semaphore,
) -> Union[ImageExtraction, ImageFailure]:
    settings = get_settings()
    if image.media_type not in settings.supported_media_types:
        return ImageFailure(source=image.source, error=f"Unsupported image type: {image.media_type}")

    async with semaphore:
        start_time = time.time()
        try:
            fields = await extractor.extract(image.data, image.media_type)
        except ExtractionError as e:
            return ImageFailure(source=image.source, error=str(e))
        except Exception as e:
            logger.exception(f"Extractor error for {image.source.image_id}: {e}")
            return ImageFailure(source=image.source, error=f"Extraction error: {str(e)}")

    processing_time = int((time.time() - start_time) * 1000)
    return ImageExtraction(source=image.source, fields=fields, processing_time_ms=processing_time)


async def extract_images(
    extractor: LabelExtractor,
    images: Sequence[ImageInput],
    max_concurrent: Optional[int] = None,
) -> Tuple[List[ImageExtraction], List[ImageFailure]]:
    """
    Extract every image, at most ``max_concurrent`` at a time.

    All calls are awaited before returning. Results keep the input order.

    Returns:
        (successful extractions, failed images)
    """
    if max_concurrent is None:
        max_concurrent = get_settings().max_concurrent_extractions
    semaphore = asyncio.Semaphore(max(1, max_concurrent))

    outcomes = await asyncio.gather(*(_extract_one(extractor, image, semaphore) for image in images))

    extractions = [o for o in outcomes if isinstance(o, ImageExtraction)]
    failures = [o for o in outcomes if isinstance(o, ImageFailure)]
    for failure in failures:
        logger.warning(f"Image {failure.source.image_id} excluded from merge: {failure.error}")

    return extractions, failures


async def verify_label_images(
    extractor: LabelExtractor,
    images: Sequence[ImageInput],
    application: ApplicationData,
    service: Optional[VerificationService] = None,
) -> Union[VerificationResult, MultiImageVerificationResult]:
    """
    Extract, merge and verify the photos of one label.

    A single usable image is verified directly; two or more are merged first
    and verified with source attribution.

    Raises:
        ValueError: if no images or more than the configured maximum are given
        ExtractionError: if no image could be extracted
    """
    settings = get_settings()
    if not images:
        raise ValueError("At least one image is required")
    if len(images) > settings.max_images_per_label:
        raise ValueError(f"At most {settings.max_images_per_label} images per label, got {len(images)}")

    service = service or VerificationService()
    start_time = time.time()

    extractions, failures = await extract_images(extractor, images)
    if not extractions:
        errors = "; ".join(f"{f.source.image_id}: {f.error}" for f in failures)
        raise ExtractionError(f"No image could be processed ({errors})")

    processing_time = int((time.time() - start_time) * 1000)
    logger.info(
        f"Extracted {len(extractions)}/{len(images)} image(s) in {processing_time}ms"
    )

    if len(extractions) == 1:
        return service.verify(application, extractions[0].fields, processing_time_ms=processing_time)

    merged = merge_extractions(extractions)
    return service.verify_merged(application, merged, processing_time_ms=processing_time)
