"""
Classification service: the front door for word classification.

Local lookups are instant (store). Word lists are re-synced from the
backend once they go stale, and unknown words are batch-classified
remotely. Network failures never propagate: words simply stay unknown.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Optional, Set

from foodscan.categories import ClassificationSource
from foodscan.config import CLASSIFICATION_CACHE_TTL_HOURS, CLASSIFY_MAX_WORDS
from foodscan.utils import normalize_word
from foodscan.vision_pipeline.backend_client import BackendClient
from foodscan.vision_pipeline.classification_store import WordClassificationStore
from foodscan.vision_pipeline.models import WordClassification

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ClassificationService:
    def __init__(
        self,
        store: WordClassificationStore,
        client: BackendClient,
        cache_ttl: timedelta = timedelta(hours=CLASSIFICATION_CACHE_TTL_HOURS),
        batch_size: int = CLASSIFY_MAX_WORDS,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.client = client
        self.cache_ttl = cache_ttl
        self.batch_size = batch_size
        self._clock = clock
        self._syncing = False

    # Lookups -------------------------------------------------------

    def is_food(self, word: str) -> Optional[bool]:
        return self.store.is_food(word)

    def is_generic(self, word: str) -> bool:
        return self.store.is_generic(word)

    def get_category(self, word: str) -> Optional[str]:
        return self.store.get_category(word)

    def get_all_food_words(self) -> Set[str]:
        return self.store.get_all_food_words()

    def is_known(self, word: str) -> bool:
        return self.store.is_generic(word) or self.store.is_food(word) is not None

    def _cached_classification(self, word: str) -> WordClassification:
        return WordClassification(
            word=word,
            is_food=self.store.is_food(word) is True,
            category=self.store.get_category(word),
            source=ClassificationSource.CACHED,
            confidence=1.0,
        )

    # Freshness -----------------------------------------------------

    def is_cache_stale(self) -> bool:
        last_synced = self.store.last_synced
        if last_synced is None:
            return True
        return self._clock() - last_synced > self.cache_ttl

    def has_cache(self) -> bool:
        return self.store.has_words()

    async def sync_from_backend(self) -> None:
        """Refresh the word lists unless they are fresh. Overlapping calls are coalesced."""
        if self._syncing:
            logger.debug("[SYNC] Sync already in flight - skipping")
            return
        if not self.is_cache_stale() and self.has_cache():
            return

        self._syncing = True
        self.store.is_loading = True
        try:
            data = await asyncio.to_thread(self.client.get_words_list)
            self.store.set_word_lists(
                data.get("foodWords") or {},
                data.get("nonFoodWords") or [],
                data.get("genericWords") or [],
            )
            self.store.last_synced = self._clock()
            await asyncio.to_thread(self.store.save)
            logger.info("[SYNC] Word lists synced (version=%s)", data.get("version"))
        except Exception as e:
            # Stale lists are still usable
            logger.error("[SYNC] Failed to sync word lists from backend: %s", e)
        finally:
            self.store.is_loading = False
            self._syncing = False

    # Classification ------------------------------------------------

    async def classify_unknown_words(self, words: Iterable[str]) -> Dict[str, WordClassification]:
        """
        Classify ``words``: known ones from the store, unknown ones remotely.

        Unknown words go out in batches of ``batch_size``; a failed batch
        leaves its words unknown without discarding the others.
        """
        normalized = list(dict.fromkeys(w for w in (normalize_word(w) for w in words) if w))
        if not normalized:
            return {}

        results: Dict[str, WordClassification] = {}
        unknown: List[str] = []
        for word in normalized:
            if self.is_known(word):
                results[word] = self._cached_classification(word)
            else:
                unknown.append(word)

        if not unknown:
            return results

        logger.info("[CLASSIFY] %s known, %s unknown: %s", len(results), len(unknown), unknown)

        for i in range(0, len(unknown), self.batch_size):
            batch = unknown[i:i + self.batch_size]
            try:
                classified = await asyncio.to_thread(self.client.classify_words, batch)
            except Exception as e:
                logger.error("[CLASSIFY] Failed to classify %s words: %s", len(batch), e)
                continue

            self.store.update_from_classifications(classified)
            results.update(classified)

        await asyncio.to_thread(self.store.save)
        return results

    async def send_feedback(self, word: str, accepted: bool) -> None:
        """Report whether the user kept a classified item. Never raises."""
        try:
            await asyncio.to_thread(self.client.send_feedback, normalize_word(word), accepted)
        except Exception as e:
            logger.error("[FEEDBACK] Failed to send feedback for %r: %s", word, e)

    def reset(self) -> None:
        self.store.reset()
        self.store.save()
