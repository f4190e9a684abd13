"""
Word classification store: the client's long-lived word knowledge.

Each normalized word sits in at most one bucket: food (with a category),
non-food, or generic. Unknown words are in none of them.
"""

import json
import logging
import os
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional, Set

from foodscan.categories import FoodCategory
from foodscan.utils import normalize_word
from foodscan.vision_pipeline.models import WordClassification

logger = logging.getLogger(__name__)


class WordClassificationStore:
    def __init__(self, path: Optional[str] = None):
        self.path = path
        self._food: Dict[str, str] = {}
        self._non_food: Set[str] = set()
        self._generic: Set[str] = set()
        self.last_synced: Optional[datetime] = None
        self.pending_classifications: List[str] = []
        self.is_loading = False

    # ------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------
    def is_food(self, word: str) -> Optional[bool]:
        """True / False when known, None when unknown."""
        normalized = normalize_word(word)
        if normalized in self._food:
            return True
        if normalized in self._non_food:
            return False
        return None

    def is_generic(self, word: str) -> bool:
        return normalize_word(word) in self._generic

    def get_category(self, word: str) -> Optional[str]:
        return self._food.get(normalize_word(word))

    def get_all_food_words(self) -> Set[str]:
        return set(self._food)

    @property
    def food_words(self) -> Dict[str, List[str]]:
        buckets: Dict[str, List[str]] = {}
        for word, category in self._food.items():
            buckets.setdefault(category, []).append(word)
        return {category: sorted(words) for category, words in buckets.items()}

    @property
    def non_food_words(self) -> List[str]:
        return sorted(self._non_food)

    @property
    def generic_words(self) -> List[str]:
        return sorted(self._generic)

    def has_words(self) -> bool:
        return bool(self._food or self._non_food)

    # ------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------
    def _place_food(self, word: str, category: str) -> None:
        self._non_food.discard(word)
        self._generic.discard(word)
        self._food[word] = category

    def _place_non_food(self, word: str) -> None:
        self._food.pop(word, None)
        self._generic.discard(word)
        self._non_food.add(word)

    def _place_generic(self, word: str) -> None:
        self._food.pop(word, None)
        self._non_food.discard(word)
        self._generic.add(word)

    def set_word_lists(
        self,
        food_words: Mapping[str, Iterable[str]],
        non_food_words: Iterable[str],
        generic_words: Iterable[str],
    ) -> None:
        """Replace all three buckets. Generic wins over non-food, which wins over food."""
        self._food = {}
        self._non_food = set()
        self._generic = set()

        for category, words in (food_words or {}).items():
            for word in words or []:
                normalized = normalize_word(word)
                if normalized:
                    self._place_food(normalized, category or FoodCategory.OTHER.value)
        for word in non_food_words or []:
            normalized = normalize_word(word)
            if normalized:
                self._place_non_food(normalized)
        for word in generic_words or []:
            normalized = normalize_word(word)
            if normalized:
                self._place_generic(normalized)

        logger.info(
            "Word lists replaced: food=%s, non_food=%s, generic=%s",
            len(self._food),
            len(self._non_food),
            len(self._generic),
        )

    def update_from_classifications(self, results: Mapping[str, WordClassification]) -> None:
        """
        Merge classification results into the buckets.

        Idempotent. Generic words keep their generic status; classified
        words leave the pending set.
        """
        classified = set()
        for word, classification in results.items():
            normalized = normalize_word(word)
            if not normalized:
                continue
            classified.add(normalized)
            if normalized in self._generic:
                continue
            if classification.is_food:
                self._place_food(normalized, classification.category or FoodCategory.OTHER.value)
            else:
                self._place_non_food(normalized)

        self.pending_classifications = [w for w in self.pending_classifications if w not in classified]

    def add_pending_word(self, word: str) -> None:
        self.add_pending_words([word])

    def add_pending_words(self, words: Iterable[str]) -> None:
        for word in words:
            normalized = normalize_word(word)
            if normalized and normalized not in self.pending_classifications:
                self.pending_classifications.append(normalized)

    def clear_pending_words(self) -> None:
        self.pending_classifications = []

    def reset(self) -> None:
        self._food = {}
        self._non_food = set()
        self._generic = set()
        self.last_synced = None
        self.pending_classifications = []
        self.is_loading = False

    # ------------------------------------------------------------
    # Persistence (buckets + last_synced only)
    # ------------------------------------------------------------
    def to_dict(self) -> dict:
        return {
            "foodWords": self.food_words,
            "nonFoodWords": self.non_food_words,
            "genericWords": self.generic_words,
            "lastSynced": self.last_synced.isoformat() if self.last_synced else None,
        }

    def load_dict(self, data: dict) -> None:
        self.set_word_lists(
            data.get("foodWords") or {},
            data.get("nonFoodWords") or [],
            data.get("genericWords") or [],
        )
        last_synced = data.get("lastSynced")
        self.last_synced = datetime.fromisoformat(last_synced) if last_synced else None

    def save(self) -> None:
        if not self.path:
            return
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        try:
            tmp_path = f"{self.path}.tmp"
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(self.to_dict(), f, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.error("Failed to persist classification store to %s: %s", self.path, e)

    @classmethod
    def load(cls, path: str) -> "WordClassificationStore":
        """Load from ``path``; a missing or unreadable file yields an empty store."""
        store = cls(path)
        if not os.path.exists(path):
            return store
        try:
            with open(path, "r", encoding="utf-8") as f:
                store.load_dict(json.load(f))
            logger.info("Loaded classification store from %s", path)
        except (OSError, ValueError) as e:
            logger.error("Failed to load classification store from %s: %s", path, e)
            store.reset()
        return store
