"""
USDA FoodData Central matching engine.

Decides whether a single word names a food by searching the Foundation
data tier and accepting only candidates where the word is the *primary*
food of the description. USDA descriptions read
"PrimaryFood, modifier, modifier, ...", so "brown" must not match
"Rice, brown, long-grain".
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import requests

from foodscan import config
from foodscan.categories import ClassificationSource, map_usda_category
from foodscan.utils import normalize_word
from foodscan.word_cache import WordCache

logger = logging.getLogger(__name__)

# Below this score a word is considered non-food
MATCH_THRESHOLD = 0.6

MIN_WORD_LENGTH = 3

# Prefix matches only for words at least this long ("straw" -> "strawberries")
MIN_PREFIX_LENGTH = 4

NUTRIENT_IDS = {
    1008: "calories",  # Energy (kcal)
    1003: "protein",
    1005: "carbs",
    1004: "fat",
    1079: "fiber",  # Fiber, total dietary
}

ERROR_API_KEY_MISSING = "api_key_missing"
ERROR_RATE_LIMITED = "rate_limited"


@dataclass
class UsdaFood:
    fdc_id: Optional[int]
    description: str
    data_type: Optional[str]
    food_category: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fdcId": self.fdc_id,
            "description": self.description,
            "dataType": self.data_type,
            "foodCategory": self.food_category,
        }


@dataclass
class UsdaClassification:
    """Tagged result of classifying one word; ``source`` says which branch produced it."""

    source: ClassificationSource
    is_food: Optional[bool] = None
    category: Optional[str] = None
    confidence: float = 0.0
    match_score: float = 0.0
    usda: Optional[UsdaFood] = None
    nutrients: Optional[Dict[str, float]] = None
    result_count: Optional[int] = None
    error: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.source == ClassificationSource.USDA_ERROR

    def to_response(self) -> Dict[str, Any]:
        return {
            "isFood": self.is_food,
            "category": self.category,
            "source": self.source.value,
            "confidence": self.confidence,
            "usda": self.usda.to_dict() if self.usda else None,
        }

    def to_cache_record(self) -> Dict[str, Any]:
        return {
            "is_food": self.is_food,
            "category": self.category,
            "source": self.source.value,
            "confidence": self.confidence,
            "match_score": self.match_score,
            "usda": self.usda.to_dict() if self.usda else None,
            "usda_result_count": self.result_count,
            "nutrients": self.nutrients,
        }


def _error(message: str) -> UsdaClassification:
    return UsdaClassification(source=ClassificationSource.USDA_ERROR, error=message)


def _food_category(food: Dict[str, Any]) -> str:
    category = food.get("foodCategory")
    if isinstance(category, dict):
        return category.get("description") or ""
    return category or ""


def find_best_usda_match(
    word: str, foods: List[Dict[str, Any]]
) -> Tuple[Optional[Dict[str, Any]], float]:
    """
    Score candidates by how specifically ``word`` names their primary food.

    Candidates where the word is only a modifier are skipped, not scored.
    Returns (best candidate or None, best score).
    """
    word_lower = normalize_word(word)

    best_match = None
    best_score = 0.0

    for food in foods:
        desc = (food.get("description") or "").lower()
        first_word = desc.replace(",", " ").split()[0] if desc.strip(", ") else ""

        if desc == word_lower:
            score = 1.0
        elif desc.startswith(word_lower + ",") or desc.startswith(word_lower + " "):
            score = 0.95
        elif first_word == word_lower:
            score = 0.9
        elif word_lower in (first_word + "s", first_word + "es") or first_word in (
            word_lower + "s",
            word_lower + "es",
        ):
            score = 0.85
        elif len(word_lower) >= MIN_PREFIX_LENGTH and first_word.startswith(word_lower):
            score = 0.7
        else:
            continue

        if score > best_score:
            best_score = score
            best_match = food

    return best_match, best_score


def extract_key_nutrients(food_nutrients: Optional[List[Dict[str, Any]]]) -> Optional[Dict[str, float]]:
    nutrients = {}
    for n in food_nutrients or []:
        key = NUTRIENT_IDS.get(n.get("nutrientId"))
        if key and n.get("value") is not None:
            nutrients[key] = n["value"]
    return nutrients or None


def search_usda(word: str, api_key: str, session: Optional[requests.Session] = None) -> requests.Response:
    http = session or requests
    return http.get(
        config.USDA_SEARCH_URL,
        params={
            "query": word,
            "api_key": api_key,
            "pageSize": config.USDA_PAGE_SIZE,
            "dataType": config.USDA_DATA_TYPE,
        },
        timeout=config.USDA_TIMEOUT_S,
    )


def classify_with_usda(word: str, session: Optional[requests.Session] = None) -> UsdaClassification:
    """Classify one word against USDA Foundation foods. Never raises."""
    word_lower = normalize_word(word)

    if len(word_lower) < MIN_WORD_LENGTH:
        logger.info("[USDA] Skipping \"%s\" - too short (< %s chars)", word, MIN_WORD_LENGTH)
        return UsdaClassification(
            source=ClassificationSource.USDA_NO_MATCH,
            is_food=False,
            confidence=0.8,
            result_count=0,
        )

    api_key = config.USDA_API_KEY
    if not api_key:
        logger.warning("[USDA] USDA_API_KEY not set")
        return _error(ERROR_API_KEY_MISSING)

    try:
        logger.info(
            "[USDA] Request: query=\"%s\", dataType=%s, pageSize=%s",
            word_lower,
            config.USDA_DATA_TYPE,
            config.USDA_PAGE_SIZE,
        )
        res = search_usda(word_lower, api_key, session)

        if res.status_code == 429:
            logger.error("[USDA] Rate limited for \"%s\"", word_lower)
            return _error(ERROR_RATE_LIMITED)
        if not res.ok:
            raise RuntimeError(f"USDA API error: {res.status_code}")

        data = res.json()
        foods = data.get("foods") or []
        logger.info(
            "[USDA] Response: totalHits=%s, returned=%s foods",
            data.get("totalHits", 0),
            len(foods),
        )
    except Exception as e:
        logger.error("[USDA] API error for \"%s\": %s", word_lower, e)
        return _error(str(e))

    if not foods:
        logger.info("[USDA] No results for \"%s\" - marking as non-food", word_lower)
        return UsdaClassification(
            source=ClassificationSource.USDA_NO_MATCH,
            is_food=False,
            confidence=0.7,
            result_count=0,
        )

    logger.debug(
        "[USDA] Top results: %s",
        [(f.get("description"), _food_category(f), f.get("dataType")) for f in foods[:3]],
    )

    match, score = find_best_usda_match(word_lower, foods)

    if match is None or score < MATCH_THRESHOLD:
        logger.info(
            "[USDA] No good match for \"%s\" (best score: %.2f) - marking as non-food",
            word_lower,
            score,
        )
        # Results that all failed to match make non-food more likely
        return UsdaClassification(
            source=ClassificationSource.USDA_NO_MATCH,
            is_food=False,
            confidence=min(0.7 + 0.2 * (1 - score), 0.9),
            match_score=score,
            result_count=len(foods),
        )

    usda_category = _food_category(match)
    logger.info(
        "[USDA] Match: \"%s\" -> \"%s\" (score: %.2f, fdcId: %s)",
        word_lower,
        match.get("description"),
        score,
        match.get("fdcId"),
    )
    return UsdaClassification(
        source=ClassificationSource.USDA,
        is_food=True,
        category=map_usda_category(usda_category),
        confidence=score,
        match_score=score,
        usda=UsdaFood(
            fdc_id=match.get("fdcId"),
            description=match.get("description") or "",
            data_type=match.get("dataType"),
            food_category=usda_category,
        ),
        nutrients=extract_key_nutrients(match.get("foodNutrients")),
    )


@dataclass
class ClassifyBatchResult:
    classifications: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    stats: Dict[str, int] = field(
        default_factory=lambda: {"cached": 0, "usda": 0, "usda_no_match": 0, "usda_error": 0}
    )


def classify_words(
    words: List[str],
    cache: WordCache,
    max_words: int = config.CLASSIFY_MAX_WORDS,
    session: Optional[requests.Session] = None,
) -> ClassifyBatchResult:
    """
    Classify up to ``max_words`` words: cache first, USDA on a miss.

    Every USDA result except transient errors is cached before it is returned.
    """
    result = ClassifyBatchResult()
    start = time.time()

    for word in words[:max_words]:
        normalized = normalize_word(word)
        if not normalized or normalized in result.classifications:
            continue

        try:
            cached = cache.get_word(normalized)
        except Exception as e:
            logger.error("[CACHE] Read failed for \"%s\", treating as miss: %s", normalized, e)
            cached = None

        if cached:
            logger.info(
                "[CLASSIFY] Cache hit for \"%s\": isFood=%s, category=%s",
                normalized,
                cached["isFood"],
                cached["category"],
            )
            result.classifications[normalized] = cached
            result.stats["cached"] += 1
            continue

        logger.info("[CLASSIFY] Cache miss for \"%s\" - querying USDA", normalized)
        classification = classify_with_usda(normalized, session)
        result.stats[classification.source.value] = result.stats.get(classification.source.value, 0) + 1

        # Errors are transient; leave them uncached so they are retried
        if not classification.is_error:
            try:
                cache.put_word(normalized, classification.to_cache_record())
            except Exception as e:
                logger.error("[CACHE] Write failed for \"%s\": %s", normalized, e)

        result.classifications[normalized] = classification.to_response()

    logger.info(
        "[CLASSIFY] Complete in %sms. Stats: %s",
        round((time.time() - start) * 1000, 2),
        result.stats,
    )
    return result
