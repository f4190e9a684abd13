"""
Vision response parser: raw multi-feature detections -> candidate food detections.

- logos are skipped (brands, not foods); their text is passed to OCR correction as hints
- the OCR text block goes to the backend OCR correction endpoint
- labels and localized objects are thresholded, then checked against the
  classification service; unknown words come back as pending and are
  queued on the ParseContext for batch classification
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Dict, List

from foodscan.config import MIN_DETECTION_CONFIDENCE
from foodscan.utils import normalize_word
from foodscan.vision_pipeline.backend_client import BackendClient
from foodscan.vision_pipeline.classification_service import ClassificationService
from foodscan.vision_pipeline.models import (
    DetectionSource,
    RawDetection,
    VisionAnnotation,
    VisionAnnotations,
)

logger = logging.getLogger(__name__)

DEFAULT_PRODUCT_CONFIDENCE = 0.9


class FoodStatus(str, Enum):
    FOOD = "food"
    NOT_FOOD = "not_food"
    PENDING = "pending"


class ParseContext:
    """Unknown words seen while parsing, owned by whoever drives the parser."""

    def __init__(self):
        self._unknown_words: List[str] = []

    def add_unknown_word(self, word: str) -> None:
        normalized = normalize_word(word)
        if normalized and normalized not in self._unknown_words:
            self._unknown_words.append(normalized)

    @property
    def unknown_words(self) -> List[str]:
        return list(self._unknown_words)

    def get_and_clear_unknown_words(self) -> List[str]:
        words = self._unknown_words
        self._unknown_words = []
        return words


class VisionResponseParser:
    def __init__(
        self,
        service: ClassificationService,
        client: BackendClient,
        min_confidence: float = MIN_DETECTION_CONFIDENCE,
    ):
        self.service = service
        self.client = client
        self.min_confidence = min_confidence

    def is_food_related(self, label: str, context: ParseContext) -> FoodStatus:
        normalized = normalize_word(label)

        if self.service.is_generic(normalized):
            return FoodStatus.NOT_FOOD

        is_food = self.service.is_food(normalized)
        if is_food is True:
            return FoodStatus.FOOD
        if is_food is False:
            return FoodStatus.NOT_FOOD

        context.add_unknown_word(normalized)
        return FoodStatus.PENDING

    async def parse(self, response: Any, context: ParseContext) -> List[RawDetection]:
        """
        Parse one frame's vision response.

        The result is an unordered collection of candidates; never raises
        for backend failures.
        """
        annotations = VisionAnnotations.from_response(response)
        if annotations is None:
            logger.info("[VISION] No response data received")
            return []

        items: List[RawDetection] = []

        logo_texts = [logo.description for logo in annotations.logos]
        for logo in annotations.logos:
            logger.debug("[VISION] Logo \"%s\" (%.1f%%) skipped (brand name)", logo.description, logo.score * 100)

        if annotations.full_text:
            items.extend(await self._parse_ocr(annotations, logo_texts))

        items.extend(self._parse_candidates(annotations.labels, DetectionSource.LABEL, context))
        items.extend(self._parse_candidates(annotations.objects, DetectionSource.OBJECT, context))

        logger.info(
            "[VISION] Kept %s items: %s (pending words: %s)",
            len(items),
            [i.label for i in items],
            context.unknown_words,
        )
        return items

    async def _parse_ocr(self, annotations: VisionAnnotations, logo_texts: List[str]) -> List[RawDetection]:
        text_block = annotations.texts[0]
        full_text = text_block.description
        logger.info("[OCR] Raw text: \"%s%s\"", full_text[:200].replace("\n", " "), "..." if len(full_text) > 200 else "")

        try:
            corrected = await asyncio.to_thread(self.client.correct_ocr, full_text, logo_texts or None)
        except Exception as e:
            logger.error("[OCR] Correction failed, skipping OCR items: %s", e)
            return []

        logger.info(
            "[OCR] Correction (%s, %sms): brand=%s, product=%s, terms=%s",
            corrected.source,
            corrected.processing_time,
            corrected.brand_name,
            corrected.product_name,
            [t.term for t in corrected.food_terms],
        )

        if corrected.product_name:
            label = (
                f"{corrected.brand_name} - {corrected.product_name}"
                if corrected.brand_name
                else corrected.product_name
            )
            confidence = (
                max(t.confidence for t in corrected.food_terms)
                if corrected.food_terms
                else DEFAULT_PRODUCT_CONFIDENCE
            )
            category = corrected.food_terms[0].category if corrected.food_terms else None
            return [RawDetection(
                label=label,
                confidence=confidence,
                source=DetectionSource.OCR,
                bounding_box=text_block.bounding_box,
                category=category,
            )]

        return [
            RawDetection(
                label=term.term,
                confidence=term.confidence,
                source=DetectionSource.OCR,
                bounding_box=text_block.bounding_box,
                category=term.category,
            )
            for term in corrected.food_terms
        ]

    def _parse_candidates(
        self,
        candidates: List[VisionAnnotation],
        source: DetectionSource,
        context: ParseContext,
    ) -> List[RawDetection]:
        items = []
        for candidate in candidates:
            if candidate.score < self.min_confidence:
                logger.debug("[VISION] %s \"%s\" (%.2f) filtered: low confidence", source.value, candidate.description, candidate.score)
                continue

            status = self.is_food_related(candidate.description, context)
            logger.debug("[VISION] %s \"%s\" (%.2f) -> %s", source.value, candidate.description, candidate.score, status.value)
            if status == FoodStatus.NOT_FOOD:
                continue

            items.append(RawDetection(
                label=candidate.description,
                confidence=candidate.score,
                source=source,
                bounding_box=candidate.bounding_box if source == DetectionSource.OBJECT else None,
                is_pending=status == FoodStatus.PENDING,
                category=self.service.get_category(candidate.description) if status == FoodStatus.FOOD else None,
            ))
        return items


def get_detection_summary(items: List[RawDetection]) -> Dict[str, int]:
    """Count detections per source."""
    summary: Dict[str, int] = {}
    for item in items:
        summary[item.source.value] = summary.get(item.source.value, 0) + 1
    return summary
