"""OCR correction: turn raw package OCR text into clean food terms via an LLM."""

import hashlib
import logging
import re
import time
from typing import Any, Dict, List, Optional

from foodscan.categories import FoodCategory, clamp_category
from foodscan.config import OCR_CORRECTION_MAX_TOKENS, OCR_CORRECTION_MODEL
from foodscan.openai_client import get_openai_client
from foodscan.prompts import MAX_FOOD_TERMS, OCR_CORRECTION_PROMPT, OCR_LOGO_HINT, OCR_USER_PROMPT
from foodscan.utils import extract_json
from foodscan.word_cache import WordCache

logger = logging.getLogger(__name__)

DEFAULT_TERM_CONFIDENCE = 0.8

FALLBACK_CONFIDENCE = 0.3
MAX_FALLBACK_TERMS = 3

# Keyword scan vocabulary used when the LLM is unavailable
COMMON_FOODS = frozenset({
    "milk", "bread", "cheese", "butter", "eggs", "chicken", "beef", "pork",
    "rice", "pasta", "cereal", "oats", "yogurt", "juice", "water", "coffee",
    "tea", "sugar", "salt", "flour", "oil", "sauce", "soup", "beans", "corn",
    "apple", "banana", "orange", "tomato", "potato", "onion", "carrot",
})


def _client():
    return get_openai_client()


def generate_cache_key(ocr_text: str) -> str:
    """
    Content hash of OCR text, insensitive to case and line order.

    Lowercase, unify line endings, trim lines, drop empty ones, sort, join,
    then the first 16 hex chars of SHA-256.
    """
    lines = re.split(r"[\r\n]+", ocr_text.lower())
    normalized = "\n".join(sorted(line.strip() for line in lines if line.strip()))
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()[:16]


def _normalize_food_terms(raw_terms: List[Any]) -> List[Dict[str, Any]]:
    terms = []
    for t in raw_terms:
        if not isinstance(t, dict) or not isinstance(t.get("term"), str) or not t["term"].strip():
            continue
        confidence = t.get("confidence")
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
            confidence = DEFAULT_TERM_CONFIDENCE
        terms.append({
            "term": t["term"].lower().strip(),
            "confidence": min(max(float(confidence), 0.0), 1.0),
            "category": clamp_category(t.get("category")),
        })
    return terms[:MAX_FOOD_TERMS]


def correct_with_llm(ocr_text: str, logo_texts: List[str]) -> Optional[Dict[str, Any]]:
    """
    Ask the LLM to reconstruct food terms.

    Returns None on any failure (no client, API error, malformed reply)
    so the caller can fall back.
    """
    user_prompt = OCR_USER_PROMPT.format(ocr_text=ocr_text)
    if logo_texts:
        user_prompt += OCR_LOGO_HINT.format(logos=", ".join(logo_texts))

    try:
        logger.info("[OCR] Calling model=%s", OCR_CORRECTION_MODEL)
        logger.debug("[OCR] User prompt:\n%s", user_prompt)
        response = _client().chat.completions.create(
            model=OCR_CORRECTION_MODEL,
            temperature=0,
            max_tokens=OCR_CORRECTION_MAX_TOKENS,
            response_format={"type": "json_object"},
            messages=[
                {"role": "system", "content": OCR_CORRECTION_PROMPT},
                {"role": "user", "content": user_prompt},
            ],
        )

        content = response.choices[0].message.content or ""
        usage = getattr(response, "usage", None)
        tokens_used = (getattr(usage, "prompt_tokens", 0) or 0) + (getattr(usage, "completion_tokens", 0) or 0)
        logger.info("[OCR] LLM raw response (%s tokens): %s", tokens_used, content)

        parsed = extract_json(content)
        if not isinstance(parsed.get("foodTerms"), list):
            logger.error("[OCR] Invalid LLM response structure: foodTerms missing or not a list")
            return None

        food_terms = _normalize_food_terms(parsed["foodTerms"])
        logger.info("[OCR] Extracted %s food terms: %s", len(food_terms), [t["term"] for t in food_terms])

        return {
            "foodTerms": food_terms,
            "brandName": parsed.get("brandName") or None,
            "productName": parsed.get("productName") or None,
            "tokensUsed": tokens_used,
        }
    except Exception as e:
        logger.error("[OCR] LLM error: %s", e)
        return None


def extract_fallback_terms(ocr_text: str) -> Dict[str, Any]:
    """Keyword scan against a fixed vocabulary. Better than nothing."""
    words = [re.sub(r"[^a-z]", "", w) for w in re.split(r"[\s,;:]+", ocr_text.lower())]
    found = [w for w in words if len(w) > 2 and w in COMMON_FOODS][:MAX_FALLBACK_TERMS]

    return {
        "foodTerms": [
            {"term": term, "confidence": FALLBACK_CONFIDENCE, "category": FoodCategory.OTHER.value}
            for term in found
        ],
        "brandName": None,
        "productName": None,
    }


def correct_ocr(ocr_text: str, logo_texts: Optional[List[str]], cache: WordCache) -> Dict[str, Any]:
    """Cache → LLM → keyword fallback. Result carries ``cached``, ``source`` and ``processingTime``."""
    start = time.time()
    logo_texts = [t for t in (logo_texts or []) if isinstance(t, str) and t.strip()]

    cache_key = generate_cache_key(ocr_text)
    logger.info(
        "[OCR] Incoming request: ocrText length=%s, logos=%s, cache key=%s",
        len(ocr_text),
        len(logo_texts),
        cache_key,
    )

    try:
        cached = cache.get_ocr_correction(cache_key)
    except Exception as e:
        logger.error("[OCR] Cache read failed, treating as miss: %s", e)
        cached = None

    if cached:
        logger.info("[OCR] Cache HIT - returning cached result")
        return {
            **cached,
            "cached": True,
            "source": "cache",
            "processingTime": round((time.time() - start) * 1000),
        }

    logger.info("[OCR] Cache MISS - calling LLM")
    llm_result = correct_with_llm(ocr_text, logo_texts)

    if llm_result is not None:
        try:
            cache.put_ocr_correction(cache_key, ocr_text, llm_result, OCR_CORRECTION_MODEL)
        except Exception as e:
            logger.error("[OCR] Cache write failed for key %s: %s", cache_key, e)
        return {
            "foodTerms": llm_result["foodTerms"],
            "brandName": llm_result["brandName"],
            "productName": llm_result["productName"],
            "cached": False,
            "source": "llm",
            "processingTime": round((time.time() - start) * 1000),
        }

    logger.info("[OCR] LLM failed - using keyword fallback")
    return {
        **extract_fallback_terms(ocr_text),
        "cached": False,
        "source": "fallback",
        "processingTime": round((time.time() - start) * 1000),
    }
