"""
Scanning session orchestration.

Each captured frame's vision response is parsed, merged into the session
and its unknown words buffered. Buffered words are batch-classified once
enough accumulate, and once more (bounded by a timeout) when scanning
stops, so most pending items resolve before the summary is shown.

The vision API call itself is not made here: callers hand in its JSON.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Set

from foodscan.config import FINALIZATION_TIMEOUT_S, UNKNOWN_WORDS_BATCH_SIZE
from foodscan.vision_pipeline.classification_service import ClassificationService
from foodscan.vision_pipeline.detection_store import DetectionSession
from foodscan.vision_pipeline.models import DetectedItem, RawDetection, WordClassification
from foodscan.vision_pipeline.response_parser import ParseContext, VisionResponseParser

logger = logging.getLogger(__name__)


class FoodScanner:
    def __init__(
        self,
        service: ClassificationService,
        parser: VisionResponseParser,
        session: Optional[DetectionSession] = None,
        batch_size: int = UNKNOWN_WORDS_BATCH_SIZE,
        finalization_timeout: float = FINALIZATION_TIMEOUT_S,
    ):
        self.service = service
        self.parser = parser
        self.session = session or DetectionSession()
        self.batch_size = batch_size
        self.finalization_timeout = finalization_timeout
        self._context = ParseContext()
        self._unknown_words: List[str] = []
        # Background batch classifications started by handle_frame
        self._batch_tasks: Set[asyncio.Task] = set()
        # Bumped on every start/clear; results from an older session are dropped
        self._generation = 0

    @property
    def is_scanning(self) -> bool:
        return self.session.is_scanning

    @property
    def unknown_words(self) -> List[str]:
        return list(self._unknown_words)

    def start_scanning(self) -> None:
        if self.session.is_scanning:
            return
        self._generation += 1
        self._context = ParseContext()
        self._unknown_words = []
        self.session.start_scanning()
        logger.info("[SCANNER] Scanning started")

    def clear_session(self) -> None:
        self._generation += 1
        for task in self._batch_tasks:
            task.cancel()
        self._context = ParseContext()
        self._unknown_words = []
        self.session.clear_session()

    async def handle_frame(self, vision_response: Any) -> List[RawDetection]:
        """
        Process one frame's vision response.

        Frames arriving when no session is scanning, or finishing after the
        session was stopped or torn down, are dropped silently.
        """
        generation = self._generation
        if not self.session.is_scanning:
            logger.debug("[SCANNER] Frame dropped: not scanning")
            return []

        context = self._context
        self.session.increment_pending()
        try:
            detections = await self.parser.parse(vision_response, context)
            unknowns = context.get_and_clear_unknown_words()

            if generation != self._generation or not self.session.is_scanning:
                logger.debug("[SCANNER] Frame dropped: session stopped or reset")
                return []

            if detections:
                self.session.add_detections(detections)

            if unknowns:
                for word in unknowns:
                    if word not in self._unknown_words:
                        self._unknown_words.append(word)
                logger.info("[SCANNER] Collected %s unknown words", len(unknowns))
                if len(self._unknown_words) >= self.batch_size:
                    self._start_batch()

            return detections
        except Exception as e:
            # One bad frame must not end the session
            logger.error("[SCANNER] Frame processing error: %s", e)
            return []
        finally:
            if generation == self._generation:
                self.session.decrement_pending()

    def _start_batch(self) -> None:
        # Frames keep flowing while the batch is classified
        task = asyncio.create_task(self.process_unknown_words())
        self._batch_tasks.add(task)
        task.add_done_callback(self._batch_tasks.discard)

    async def drain_batches(self) -> None:
        """Wait for background batch classifications started by earlier frames."""
        while self._batch_tasks:
            await asyncio.gather(*list(self._batch_tasks), return_exceptions=True)

    async def process_unknown_words(self) -> Dict[str, WordClassification]:
        """Classify buffered unknown words and resolve matching pending items."""
        words = self._unknown_words
        self._unknown_words = []
        if not words:
            return {}

        generation = self._generation
        logger.info("[SCANNER] Classifying %s unknown words: %s", len(words), words)
        try:
            classifications = await self.service.classify_unknown_words(words)
        except Exception as e:
            logger.error("[SCANNER] Failed to classify unknown words: %s", e)
            return {}

        if classifications and generation == self._generation:
            self.session.resolve_pending_detections(classifications)
            logger.info("[SCANNER] Resolved pending detections")
        return classifications

    async def stop_scanning(self) -> List[DetectedItem]:
        """
        Stop capture, try one bounded round of pending-word resolution,
        then show the summary. Unresolved items stay pending.
        """
        if not self.session.is_scanning:
            return self.session.get_unique_items()

        self.session.stop_scanning()

        if self._batch_tasks or self._unknown_words or self.session.get_pending_items():
            self.session.is_finalizing = True
            try:
                await asyncio.wait_for(self._finalize(), timeout=self.finalization_timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    "[SCANNER] Classification timed out after %ss; showing pending items",
                    self.finalization_timeout,
                )
                for task in self._batch_tasks:
                    task.cancel()

        self.session.show_summary_modal()
        items = self.session.get_unique_items()
        logger.info(
            "[SCANNER] Scan finished: %s items (%s pending)",
            len(items),
            len(self.session.get_pending_items()),
        )
        return items

    async def _finalize(self) -> None:
        await self.drain_batches()

        # Retry anything still pending, including words from failed batches
        for item in self.session.get_pending_items():
            if item.normalized_label not in self._unknown_words:
                self._unknown_words.append(item.normalized_label)

        await self.process_unknown_words()

    def scan_again(self) -> None:
        self.clear_session()
        self.start_scanning()
