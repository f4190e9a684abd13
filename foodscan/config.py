import os


def _parse_cors_origins(raw: str) -> list[str]:
    origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
    return origins or ["*"]


OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_TIMEOUT_S = float(os.getenv("OPENAI_TIMEOUT_S", "20"))
OPENAI_MAX_RETRIES = int(os.getenv("OPENAI_MAX_RETRIES", "1"))

# HOST / PORT: bind address when run as `python -m foodscan.main`
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))
CORS_ORIGINS = _parse_cors_origins(os.getenv("CORS_ORIGINS", "*"))
ALLOW_ALL_ORIGINS = CORS_ORIGINS == ["*"]

# -----------------------------------
# Server-side caches
# -----------------------------------

# WORD_CACHE_DB_PATH: SQLite file holding word classifications, feedback
# counters and OCR corrections. Created on first use.
WORD_CACHE_DB_PATH = os.getenv("WORD_CACHE_DB_PATH", "data/food_words.db")

# CLASSIFY_MAX_WORDS: only the first N words of a /classify request are processed
CLASSIFY_MAX_WORDS = int(os.getenv("CLASSIFY_MAX_WORDS", "20"))

# -----------------------------------
# USDA FoodData Central
# -----------------------------------

USDA_API_KEY = os.getenv("USDA_API_KEY")
USDA_SEARCH_URL = os.getenv("USDA_SEARCH_URL", "https://api.nal.usda.gov/fdc/v1/foods/search")

# USDA_DATA_TYPE: "Foundation" is the strictest, highest-quality data tier
USDA_DATA_TYPE = os.getenv("USDA_DATA_TYPE", "Foundation")
USDA_PAGE_SIZE = int(os.getenv("USDA_PAGE_SIZE", "15"))
USDA_TIMEOUT_S = float(os.getenv("USDA_TIMEOUT_S", "10"))

# -----------------------------------
# GPT / OCR correction
# -----------------------------------

# OCR_CORRECTION_MODEL: model used to reconstruct food terms from package OCR text
OCR_CORRECTION_MODEL = os.getenv("OCR_CORRECTION_MODEL", "gpt-4o-mini")
OCR_CORRECTION_MAX_TOKENS = int(os.getenv("OCR_CORRECTION_MAX_TOKENS", "500"))

# -----------------------------------
# Client-side scanning pipeline
# -----------------------------------

# FOODSCAN_API_URL: base URL of this service, as seen by the scanning client
FOODSCAN_API_URL = os.getenv("FOODSCAN_API_URL", "http://localhost:8000").rstrip("/")
FOODSCAN_API_TIMEOUT_S = float(os.getenv("FOODSCAN_API_TIMEOUT_S", "15"))

# CLASSIFICATION_CACHE_TTL_HOURS: word lists older than this are re-synced
CLASSIFICATION_CACHE_TTL_HOURS = float(os.getenv("CLASSIFICATION_CACHE_TTL_HOURS", "24"))

# CLASSIFICATION_STORE_PATH: JSON file where the client keeps its word lists
CLASSIFICATION_STORE_PATH = os.getenv("CLASSIFICATION_STORE_PATH", "data/classification_store.json")

# MIN_DETECTION_CONFIDENCE: labels/objects scored below this are dropped
MIN_DETECTION_CONFIDENCE = float(os.getenv("MIN_DETECTION_CONFIDENCE", "0.50"))

# UNKNOWN_WORDS_BATCH_SIZE: classify unknown words once this many are buffered
UNKNOWN_WORDS_BATCH_SIZE = int(os.getenv("UNKNOWN_WORDS_BATCH_SIZE", "5"))

# FINALIZATION_TIMEOUT_S: max wait for pending-word resolution after a scan stops
FINALIZATION_TIMEOUT_S = float(os.getenv("FINALIZATION_TIMEOUT_S", "10"))
