"""Main FastAPI application: word classification and OCR correction endpoints."""

import logging
import sys
import time
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, List, Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from foodscan.config import ALLOW_ALL_ORIGINS, CLASSIFY_MAX_WORDS, CORS_ORIGINS, HOST, PORT, WORD_CACHE_DB_PATH
from foodscan.ocr_correction import correct_ocr
from foodscan.usda import classify_words
from foodscan.word_cache import WordCache

# -----------------------------------
# App initialization
# -----------------------------------

app = FastAPI(title="foodscan")

logging.basicConfig(
    level=logging.INFO,
    stream=sys.stdout,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
)

logger = logging.getLogger(__name__)

# -----------------------------------
# CORS
# -----------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=not ALLOW_ALL_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache
def get_word_cache() -> WordCache:
    return WordCache(WORD_CACHE_DB_PATH)


def _server_error(e: Exception) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": str(e)})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request, exc: StarletteHTTPException) -> JSONResponse:
    # Client errors share the {"error": ...} body with server errors
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


# -----------------------------------
# Request bodies
# -----------------------------------

class ClassifyRequest(BaseModel):
    words: Optional[Any] = None


class FeedbackRequest(BaseModel):
    word: Optional[str] = None
    accepted: bool = False


class CorrectOCRRequest(BaseModel):
    ocrText: Optional[Any] = None
    logoTexts: Optional[List[str]] = None


# -----------------------------------
# Service endpoints
# -----------------------------------

@app.get("/health")
def health():
    return {"status": "ok"}


# -----------------------------------
# /words: full word lists for client sync
# -----------------------------------

@app.get("/words")
def get_words(cache: WordCache = Depends(get_word_cache)):
    try:
        lists = cache.list_words()
        logger.info(
            "[WORDS] food=%s, non_food=%s, generic=%s",
            sum(len(w) for w in lists["foodWords"].values()),
            len(lists["nonFoodWords"]),
            len(lists["genericWords"]),
        )
        lists["version"] = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        return lists
    except Exception as e:
        logger.exception("Error in /words")
        return _server_error(e)


# -----------------------------------
# /classify: cache, then USDA
# -----------------------------------

@app.post("/classify")
def classify(body: ClassifyRequest, cache: WordCache = Depends(get_word_cache)):
    words = body.words
    if not isinstance(words, list) or len(words) == 0:
        logger.info("[CLASSIFY] Error: empty or invalid words array")
        raise HTTPException(400, "words array is required")

    logger.info("[CLASSIFY] Incoming request: %s words %s", len(words), words)

    try:
        result = classify_words(
            [w for w in words if isinstance(w, str)],
            cache,
            max_words=CLASSIFY_MAX_WORDS,
        )
        return {"classifications": result.classifications}
    except Exception as e:
        logger.exception("Error in /classify")
        return _server_error(e)


# -----------------------------------
# /feedback: user accepted/rejected a classification
# -----------------------------------

@app.post("/feedback")
def feedback(body: FeedbackRequest, cache: WordCache = Depends(get_word_cache)):
    if not body.word or not body.word.strip():
        raise HTTPException(400, "word is required")

    try:
        cache.record_feedback(body.word, body.accepted)
        return {"success": True}
    except Exception as e:
        logger.exception("Error in /feedback")
        return _server_error(e)


# -----------------------------------
# /correct-ocr: LLM cleanup of package text
# -----------------------------------

@app.post("/correct-ocr")
def correct_ocr_endpoint(body: CorrectOCRRequest, cache: WordCache = Depends(get_word_cache)):
    ocr_text = body.ocrText
    if not isinstance(ocr_text, str) or not ocr_text.strip():
        raise HTTPException(400, "ocrText is required")

    total_start = time.time()
    try:
        result = correct_ocr(ocr_text, body.logoTexts, cache)
        logger.info(
            "[PIPELINE] /correct-ocr completed (source=%s), total time: %sms",
            result["source"],
            round((time.time() - total_start) * 1000, 2),
        )
        return result
    except Exception as e:
        logger.exception("Error in /correct-ocr")
        return _server_error(e)


if __name__ == "__main__":
    uvicorn.run(app, host=HOST, port=PORT)
