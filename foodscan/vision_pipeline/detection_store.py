"""
Detection accumulation for one scanning session.

Sightings are merged by normalized label. Items move PENDING -> RESOLVED
exactly once; pending items classified as non-food are dropped.
"""

import logging
import time
import uuid
from typing import Callable, Iterable, List, Mapping, Optional

from foodscan.utils import normalize_word
from foodscan.vision_pipeline.models import DetectedItem, ItemState, RawDetection, WordClassification

logger = logging.getLogger(__name__)

# Fields callers may edit directly; state only changes through resolution
EDITABLE_FIELDS = frozenset({"label", "confidence", "category", "bounding_box"})


class DetectionSession:
    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self.is_scanning = False
        self.items: List[DetectedItem] = []
        self.pending_requests = 0
        self.session_start_time: Optional[float] = None
        self.error: Optional[str] = None
        self.show_summary = False
        self.is_finalizing = False

    # Lifecycle -----------------------------------------------------

    def start_scanning(self) -> None:
        self.is_scanning = True
        self.session_start_time = self._clock()
        self.error = None
        self.items = []
        # Frames from an earlier session never decrement this one's counter
        self.pending_requests = 0
        self.show_summary = False

    def stop_scanning(self) -> None:
        # Summary is shown only after finalization
        self.is_scanning = False

    def clear_session(self) -> None:
        self.is_scanning = False
        self.items = []
        self.pending_requests = 0
        self.session_start_time = None
        self.error = None
        self.show_summary = False
        self.is_finalizing = False

    def show_summary_modal(self) -> None:
        self.show_summary = True
        self.is_finalizing = False

    def set_error(self, error: Optional[str]) -> None:
        self.error = error

    def increment_pending(self) -> None:
        self.pending_requests += 1

    def decrement_pending(self) -> None:
        self.pending_requests = max(0, self.pending_requests - 1)

    def elapsed_seconds(self) -> int:
        if self.session_start_time is None:
            return 0
        return int(self._clock() - self.session_start_time)

    # Accumulation --------------------------------------------------

    def find_item(self, label: str) -> Optional[DetectedItem]:
        normalized = normalize_word(label)
        for item in self.items:
            if item.normalized_label == normalized:
                return item
        return None

    def add_detection(self, detection: RawDetection) -> DetectedItem:
        now = self._clock()
        existing = self.find_item(detection.label)
        if existing is not None:
            existing.merge(detection, now)
            return existing

        item = DetectedItem(
            id=uuid.uuid4().hex,
            label=detection.label.strip(),
            confidence=detection.confidence,
            source=detection.source,
            count=1,
            first_seen_at=now,
            last_seen_at=now,
            state=ItemState.PENDING if detection.is_pending else ItemState.RESOLVED,
            bounding_box=detection.bounding_box,
            category=detection.category,
        )
        self.items.append(item)
        return item

    def add_detections(self, detections: Iterable[RawDetection]) -> None:
        for detection in detections:
            self.add_detection(detection)

    def update_item(self, item_id: str, **changes) -> None:
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {sorted(unknown)}")
        for item in self.items:
            if item.id == item_id:
                for name, value in changes.items():
                    setattr(item, name, value)
                return

    def remove_item(self, item_id: str) -> None:
        self.items = [item for item in self.items if item.id != item_id]

    def resolve_pending_detections(self, classifications: Mapping[str, WordClassification]) -> None:
        """Resolve pending items that have a verdict; drop those judged non-food."""
        kept = []
        for item in self.items:
            if not item.is_pending:
                kept.append(item)
                continue

            result = classifications.get(item.normalized_label)
            if result is None:
                kept.append(item)
            elif result.is_food:
                item.resolve(result.category)
                kept.append(item)
            else:
                logger.info("[DETECTION] Removing non-food item \"%s\"", item.label)

        self.items = kept

    # Views ---------------------------------------------------------

    def get_unique_items(self) -> List[DetectedItem]:
        """Items by confidence, then sighting count, highest first."""
        return sorted(self.items, key=lambda item: (item.confidence, item.count), reverse=True)

    def get_pending_items(self) -> List[DetectedItem]:
        return [item for item in self.items if item.is_pending]
