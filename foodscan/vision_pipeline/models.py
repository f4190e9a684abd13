"""
Typed shapes for the scanning client.

External payloads (backend JSON, vision API JSON) are parsed into these
dataclasses at the boundary; nothing downstream reads raw dicts.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from foodscan.categories import ClassificationSource
from foodscan.utils import normalize_word

logger = logging.getLogger(__name__)


class DetectionSource(str, Enum):
    LOGO = "logo"
    OCR = "ocr"
    LABEL = "label"
    OBJECT = "object"


class ItemState(str, Enum):
    """
    Resolution state of an accumulated item.

    PENDING -> RESOLVED is the only transition. Non-food pending items are
    removed from the session rather than given a state.
    """

    PENDING = "pending"
    RESOLVED = "resolved"


@dataclass
class WordClassification:
    word: str
    is_food: bool
    category: Optional[str]
    source: ClassificationSource
    confidence: float

    @classmethod
    def from_api(cls, word: str, payload: Any) -> Optional["WordClassification"]:
        """
        Parse one backend classification. Returns None for entries that
        carry no usable verdict (transient errors, malformed shapes).
        """
        if not isinstance(payload, dict):
            return None
        is_food = payload.get("isFood")
        if not isinstance(is_food, bool):
            return None
        try:
            source = ClassificationSource(payload.get("source"))
        except ValueError:
            return None
        if source == ClassificationSource.USDA_ERROR:
            return None

        confidence = payload.get("confidence")
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
            confidence = 0.0
        category = payload.get("category")

        return cls(
            word=normalize_word(word),
            is_food=is_food,
            category=category if isinstance(category, str) and category else None,
            source=source,
            confidence=float(confidence),
        )


def parse_classifications(payload: Any) -> Dict[str, WordClassification]:
    """Parse a ``{word: {...}}`` map, dropping entries without a verdict."""
    results: Dict[str, WordClassification] = {}
    if not isinstance(payload, dict):
        return results
    for word, entry in payload.items():
        parsed = WordClassification.from_api(word, entry)
        if parsed is None:
            logger.debug("Dropping unusable classification for %r: %r", word, entry)
            continue
        results[parsed.word] = parsed
    return results


@dataclass
class BoundingBox:
    vertices: List[Tuple[float, float]] = field(default_factory=list)
    normalized_vertices: List[Tuple[float, float]] = field(default_factory=list)

    @classmethod
    def from_api(cls, payload: Any) -> Optional["BoundingBox"]:
        if not isinstance(payload, dict):
            return None

        def _points(raw):
            return [
                (float(v.get("x", 0) or 0), float(v.get("y", 0) or 0))
                for v in (raw or [])
                if isinstance(v, dict)
            ]

        box = cls(
            vertices=_points(payload.get("vertices")),
            normalized_vertices=_points(payload.get("normalizedVertices")),
        )
        if not box.vertices and not box.normalized_vertices:
            return None
        return box


@dataclass
class RawDetection:
    """One candidate from a single frame."""

    label: str
    confidence: float
    source: DetectionSource
    bounding_box: Optional[BoundingBox] = None
    is_pending: bool = False
    category: Optional[str] = None


@dataclass
class DetectedItem:
    """An item accumulated over a scanning session."""

    id: str
    label: str
    confidence: float
    source: DetectionSource
    count: int
    first_seen_at: float
    last_seen_at: float
    state: ItemState
    bounding_box: Optional[BoundingBox] = None
    category: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.state == ItemState.PENDING

    @property
    def normalized_label(self) -> str:
        return normalize_word(self.label)

    def resolve(self, category: Optional[str] = None) -> None:
        self.state = ItemState.RESOLVED
        if category:
            self.category = category

    def merge(self, detection: RawDetection, now: float) -> None:
        """Fold another sighting of the same label into this item."""
        self.confidence = max(self.confidence, detection.confidence)
        self.count += 1
        self.last_seen_at = now
        if detection.bounding_box is not None:
            self.bounding_box = detection.bounding_box
        # Resolution is sticky: a pending sighting never re-opens a resolved item
        if self.is_pending and not detection.is_pending:
            self.state = ItemState.RESOLVED
        if detection.category:
            self.category = detection.category


# -----------------------------------
# Vision API annotations
# -----------------------------------

@dataclass
class VisionAnnotation:
    description: str
    score: float = 0.0
    bounding_box: Optional[BoundingBox] = None


@dataclass
class VisionAnnotations:
    """Parsed single-image result of a multi-feature vision request."""

    labels: List[VisionAnnotation] = field(default_factory=list)
    objects: List[VisionAnnotation] = field(default_factory=list)
    logos: List[VisionAnnotation] = field(default_factory=list)
    texts: List[VisionAnnotation] = field(default_factory=list)

    @property
    def full_text(self) -> Optional[str]:
        """The first text annotation holds the whole OCR text block."""
        if self.texts and self.texts[0].description.strip():
            return self.texts[0].description
        return None

    @classmethod
    def from_response(cls, response: Any) -> Optional["VisionAnnotations"]:
        """
        Accept either ``{"responses": [{...}]}`` or a single response dict.
        Returns None if there is no response data.
        """
        if not isinstance(response, dict):
            return None
        if "responses" in response:
            responses = response.get("responses") or []
            data = responses[0] if responses and isinstance(responses[0], dict) else None
        else:
            data = response
        if not data:
            return None

        def _parse(items, text_key):
            parsed = []
            for item in items or []:
                if not isinstance(item, dict):
                    continue
                text = item.get(text_key)
                if not isinstance(text, str) or not text:
                    continue
                score = item.get("score", 0.0)
                parsed.append(VisionAnnotation(
                    description=text,
                    score=float(score) if isinstance(score, (int, float)) else 0.0,
                    bounding_box=BoundingBox.from_api(item.get("boundingPoly")),
                ))
            return parsed

        return cls(
            labels=_parse(data.get("labelAnnotations"), "description"),
            objects=_parse(data.get("localizedObjectAnnotations"), "name"),
            logos=_parse(data.get("logoAnnotations"), "description"),
            texts=_parse(data.get("textAnnotations"), "description"),
        )


# -----------------------------------
# OCR correction
# -----------------------------------

@dataclass
class FoodTerm:
    term: str
    confidence: float
    category: Optional[str] = None


@dataclass
class OCRCorrection:
    food_terms: List[FoodTerm] = field(default_factory=list)
    brand_name: Optional[str] = None
    product_name: Optional[str] = None
    source: Optional[str] = None
    cached: bool = False
    processing_time: Optional[float] = None

    @classmethod
    def from_api(cls, payload: Any) -> "OCRCorrection":
        if not isinstance(payload, dict):
            raise ValueError("OCR correction response is not an object")

        terms = []
        for t in payload.get("foodTerms") or []:
            if not isinstance(t, dict) or not isinstance(t.get("term"), str):
                continue
            confidence = t.get("confidence")
            terms.append(FoodTerm(
                term=t["term"],
                confidence=float(confidence) if isinstance(confidence, (int, float)) else 0.0,
                category=t.get("category") or None,
            ))

        return cls(
            food_terms=terms,
            brand_name=payload.get("brandName") or None,
            product_name=payload.get("productName") or None,
            source=payload.get("source"),
            cached=bool(payload.get("cached")),
            processing_time=payload.get("processingTime"),
        )
