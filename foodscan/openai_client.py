import logging
from functools import lru_cache

from openai import OpenAI

from foodscan.config import OPENAI_API_KEY, OPENAI_MAX_RETRIES, OPENAI_TIMEOUT_S

logger = logging.getLogger(__name__)


@lru_cache
def get_openai_client() -> OpenAI:
    """Shared client for OCR correction. Raises without a key; callers fall back to keyword scan."""
    if not OPENAI_API_KEY:
        raise RuntimeError("OPENAI_API_KEY is not set")
    logger.info(
        "[OCR] Initializing OpenAI client (timeout=%ss, max_retries=%s)",
        OPENAI_TIMEOUT_S,
        OPENAI_MAX_RETRIES,
    )
    return OpenAI(api_key=OPENAI_API_KEY, timeout=OPENAI_TIMEOUT_S, max_retries=OPENAI_MAX_RETRIES)
