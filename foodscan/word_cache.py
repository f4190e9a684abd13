"""
SQLite-backed server cache for word classifications and OCR corrections.

Two tables:
- ``words``: one row per normalized word. Created on the first
  classification (or seeding / feedback), never deleted. Feedback only
  bumps the accept/reject counters.
- ``ocr_corrections``: one row per OCR content hash holding the LLM
  result and token usage.
"""

import json
import logging
import os
import sqlite3
from contextlib import closing, contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

from foodscan.config import WORD_CACHE_DB_PATH
from foodscan.utils import normalize_word

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row_to_dict(row: sqlite3.Row) -> Dict[str, Any]:
    return {k: row[k] for k in row.keys()}


class WordCache:
    def __init__(self, db_path: str = WORD_CACHE_DB_PATH):
        self.db_path = db_path
        directory = os.path.dirname(db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self._ensure_schema()
        logger.info("Word cache ready at %s", db_path)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        with closing(sqlite3.connect(self.db_path)) as conn:
            conn.row_factory = sqlite3.Row
            with conn:
                yield conn

    # ------------------------------------------------------------
    # Schema (idempotent; safe to call repeatedly)
    # ------------------------------------------------------------
    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS words (
                  word               TEXT PRIMARY KEY,
                  is_food            INTEGER,
                  is_generic         INTEGER NOT NULL DEFAULT 0,
                  category           TEXT,
                  source             TEXT,
                  confidence         REAL,
                  match_score        REAL,
                  usda_fdc_id        INTEGER,
                  usda_description   TEXT,
                  usda_data_type     TEXT,
                  usda_food_category TEXT,
                  usda_searched      INTEGER NOT NULL DEFAULT 0,
                  usda_result_count  INTEGER,
                  nutrients          TEXT,
                  detection_count    INTEGER NOT NULL DEFAULT 0,
                  acceptance_count   INTEGER NOT NULL DEFAULT 0,
                  rejection_count    INTEGER NOT NULL DEFAULT 0,
                  created_at         TEXT NOT NULL,
                  updated_at         TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS ocr_corrections (
                  input_hash   TEXT PRIMARY KEY,
                  ocr_text     TEXT,
                  food_terms   TEXT NOT NULL,
                  brand_name   TEXT,
                  product_name TEXT,
                  llm_model    TEXT,
                  tokens_used  INTEGER NOT NULL DEFAULT 0,
                  created_at   TEXT NOT NULL
                )
            """)

    # ------------------------------------------------------------
    # Words
    # ------------------------------------------------------------
    def get_entry(self, word: str) -> Optional[Dict[str, Any]]:
        """Raw row for a word, or None."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM words WHERE word = ?", (normalize_word(word),)
            ).fetchone()
        if row is None:
            return None
        entry = _row_to_dict(row)
        if entry.get("nutrients"):
            entry["nutrients"] = json.loads(entry["nutrients"])
        return entry

    def get_word(self, word: str) -> Optional[Dict[str, Any]]:
        """
        Cached classification in API response shape, or None on a miss.

        Rows that only carry feedback counters (never classified) are misses.
        """
        entry = self.get_entry(word)
        if entry is None or entry["is_food"] is None:
            return None

        usda = None
        if entry["usda_fdc_id"]:
            usda = {
                "fdcId": entry["usda_fdc_id"],
                "description": entry["usda_description"],
                "dataType": entry["usda_data_type"],
                "foodCategory": entry["usda_food_category"],
            }

        return {
            "isFood": bool(entry["is_food"]),
            "category": entry["category"],
            "source": "cached",
            "confidence": entry["confidence"],
            "usda": usda,
        }

    def put_word(self, word: str, record: Dict[str, Any]) -> None:
        """
        Persist a fresh classification.

        ``record`` keys: is_food, category, source, confidence, match_score,
        usda (dict or None), usda_result_count, nutrients. An existing
        classification is never replaced; a counters-only row is filled in.
        """
        normalized = normalize_word(word)
        usda = record.get("usda") or {}
        now = _now()
        is_food = record.get("is_food")
        nutrients = record.get("nutrients")

        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO words (
                  word, is_food, category, source, confidence, match_score,
                  usda_fdc_id, usda_description, usda_data_type, usda_food_category,
                  usda_searched, usda_result_count, nutrients,
                  detection_count, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 1, ?, ?)
                ON CONFLICT(word) DO UPDATE SET
                  is_food = excluded.is_food,
                  category = excluded.category,
                  source = excluded.source,
                  confidence = excluded.confidence,
                  match_score = excluded.match_score,
                  usda_fdc_id = excluded.usda_fdc_id,
                  usda_description = excluded.usda_description,
                  usda_data_type = excluded.usda_data_type,
                  usda_food_category = excluded.usda_food_category,
                  usda_searched = excluded.usda_searched,
                  usda_result_count = excluded.usda_result_count,
                  nutrients = excluded.nutrients,
                  detection_count = words.detection_count + 1,
                  updated_at = excluded.updated_at
                WHERE words.is_food IS NULL
                """,
                (
                    normalized,
                    None if is_food is None else int(bool(is_food)),
                    record.get("category"),
                    record.get("source"),
                    record.get("confidence"),
                    record.get("match_score"),
                    usda.get("fdcId"),
                    usda.get("description"),
                    usda.get("dataType"),
                    usda.get("foodCategory"),
                    int(record.get("usda_result_count") is not None and not is_food),
                    record.get("usda_result_count"),
                    json.dumps(nutrients) if nutrients else None,
                    now,
                    now,
                ),
            )
        logger.info(
            "[CACHE] Stored \"%s\": isFood=%s, category=%s",
            normalized,
            is_food,
            record.get("category"),
        )

    def seed_word(
        self,
        word: str,
        is_food: bool,
        category: Optional[str] = None,
        is_generic: bool = False,
    ) -> bool:
        """Insert a seed entry. Returns False if the word already exists."""
        now = _now()
        with self._connect() as conn:
            cur = conn.execute(
                """
                INSERT OR IGNORE INTO words (
                  word, is_food, is_generic, category, source, confidence,
                  detection_count, created_at, updated_at
                ) VALUES (?, ?, ?, ?, 'seed', 1.0, 0, ?, ?)
                """,
                (normalize_word(word), int(is_food), int(is_generic), category, now, now),
            )
            return cur.rowcount > 0

    def record_feedback(self, word: str, accepted: bool) -> None:
        """Bump the accept or reject counter, creating a counters-only row if needed."""
        normalized = normalize_word(word)
        now = _now()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO words (
                  word, acceptance_count, rejection_count, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(word) DO UPDATE SET
                  acceptance_count = words.acceptance_count + excluded.acceptance_count,
                  rejection_count = words.rejection_count + excluded.rejection_count,
                  updated_at = excluded.updated_at
                """,
                (normalized, int(bool(accepted)), int(not accepted), now, now),
            )
        logger.info("[FEEDBACK] \"%s\" accepted=%s", normalized, accepted)

    def list_words(self) -> Dict[str, Any]:
        """All known words split into food (by category), non-food and generic lists."""
        food_words: Dict[str, List[str]] = {}
        non_food_words: List[str] = []
        generic_words: List[str] = []

        with self._connect() as conn:
            rows = conn.execute(
                "SELECT word, is_food, is_generic, category FROM words ORDER BY word"
            ).fetchall()

        for row in rows:
            if row["is_generic"]:
                generic_words.append(row["word"])
            elif row["is_food"] == 1:
                food_words.setdefault(row["category"] or "Other", []).append(row["word"])
            elif row["is_food"] == 0:
                non_food_words.append(row["word"])

        return {
            "foodWords": food_words,
            "nonFoodWords": non_food_words,
            "genericWords": generic_words,
        }

    # ------------------------------------------------------------
    # OCR corrections
    # ------------------------------------------------------------
    def get_ocr_correction(self, cache_key: str) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM ocr_corrections WHERE input_hash = ?", (cache_key,)
            ).fetchone()
        if row is None:
            return None
        return {
            "foodTerms": json.loads(row["food_terms"] or "[]"),
            "brandName": row["brand_name"] or None,
            "productName": row["product_name"] or None,
        }

    def get_ocr_entry(self, cache_key: str) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM ocr_corrections WHERE input_hash = ?", (cache_key,)
            ).fetchone()
        return _row_to_dict(row) if row is not None else None

    def put_ocr_correction(
        self,
        cache_key: str,
        ocr_text: str,
        result: Dict[str, Any],
        llm_model: str,
    ) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR IGNORE INTO ocr_corrections (
                  input_hash, ocr_text, food_terms, brand_name, product_name,
                  llm_model, tokens_used, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    cache_key,
                    ocr_text[:1000],
                    json.dumps(result.get("foodTerms") or []),
                    result.get("brandName"),
                    result.get("productName"),
                    llm_model,
                    int(result.get("tokensUsed") or 0),
                    _now(),
                ),
            )
        logger.info("[CACHE] Stored OCR correction for key: %s", cache_key)
