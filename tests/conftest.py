"""
Shared fixtures for foodscan tests.

External services (USDA, OpenAI, the foodscan backend as seen by the
scanning client) are replaced with in-process fakes.
"""

import time
from types import SimpleNamespace
from typing import Dict, List, Optional, Tuple

import pytest

from foodscan.categories import ClassificationSource
from foodscan.vision_pipeline.backend_client import BackendError
from foodscan.vision_pipeline.classification_service import ClassificationService
from foodscan.vision_pipeline.classification_store import WordClassificationStore
from foodscan.vision_pipeline.models import OCRCorrection, WordClassification
from foodscan.word_cache import WordCache


# =============================================================================
# Server side
# =============================================================================

@pytest.fixture
def word_cache(tmp_path) -> WordCache:
    return WordCache(str(tmp_path / "food_words.db"))


class FakeUsdaResponse:
    def __init__(self, status_code: int = 200, payload: Optional[dict] = None):
        self.status_code = status_code
        self.ok = 200 <= status_code < 300
        self._payload = payload or {}

    def json(self):
        return self._payload


def usda_foods(*descriptions: str, category: str = "Fruits and Fruit Juices") -> dict:
    return {
        "totalHits": len(descriptions),
        "foods": [
            {
                "fdcId": 1000 + i,
                "description": desc,
                "dataType": "Foundation",
                "foodCategory": category,
            }
            for i, desc in enumerate(descriptions)
        ],
    }


def fake_completion(content: str, prompt_tokens: int = 120, completion_tokens: int = 40):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(prompt_tokens=prompt_tokens, completion_tokens=completion_tokens),
    )


class FakeOpenAI:
    """Mimics ``client.chat.completions.create``."""

    def __init__(self, content: Optional[str] = None, error: Optional[Exception] = None):
        self.content = content
        self.error = error
        self.calls: List[dict] = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return fake_completion(self.content)


# =============================================================================
# Client side
# =============================================================================

class FakeBackendClient:
    """In-memory stand-in for BackendClient."""

    def __init__(
        self,
        verdicts: Optional[Dict[str, Tuple[bool, Optional[str]]]] = None,
        words_list: Optional[dict] = None,
    ):
        self.verdicts = verdicts or {}
        self.words_list = words_list or {
            "foodWords": {"Fruits": ["apple"]},
            "nonFoodWords": ["table"],
            "genericWords": ["food"],
            "version": "2026-10-19",
        }
        self.fail_words = set()
        self.fail_words_list = False
        self.delay = 0.0
        self.words_list_calls = 0
        self.classify_calls: List[List[str]] = []
        self.feedback_calls: List[Tuple[str, bool]] = []
        self.ocr_calls: List[Tuple[str, Optional[List[str]]]] = []
        self.ocr_result = OCRCorrection()

    def get_words_list(self) -> dict:
        self.words_list_calls += 1
        if self.delay:
            time.sleep(self.delay)
        if self.fail_words_list:
            raise BackendError("GET /words failed (503)", 503)
        return self.words_list

    def classify_words(self, words: List[str]) -> Dict[str, WordClassification]:
        self.classify_calls.append(list(words))
        if self.delay:
            time.sleep(self.delay)
        if self.fail_words.intersection(words):
            raise BackendError("POST /classify failed (500)", 500)
        return {
            word: WordClassification(
                word=word,
                is_food=self.verdicts[word][0],
                category=self.verdicts[word][1],
                source=ClassificationSource.USDA if self.verdicts[word][0] else ClassificationSource.USDA_NO_MATCH,
                confidence=0.9,
            )
            for word in words
            if word in self.verdicts
        }

    def send_feedback(self, word: str, accepted: bool) -> None:
        self.feedback_calls.append((word, accepted))

    def correct_ocr(self, ocr_text: str, logo_texts: Optional[List[str]] = None) -> OCRCorrection:
        self.ocr_calls.append((ocr_text, logo_texts))
        if isinstance(self.ocr_result, Exception):
            raise self.ocr_result
        return self.ocr_result


@pytest.fixture
def backend() -> FakeBackendClient:
    return FakeBackendClient(verdicts={
        "tomato": (True, "Vegetables"),
        "egg": (True, "Dairy"),
        "spoon": (False, None),
        "limestone": (False, None),
    })


@pytest.fixture
def store() -> WordClassificationStore:
    store = WordClassificationStore()
    store.set_word_lists(
        {"Fruits": ["apple", "banana"], "Vegetables": ["carrot"]},
        ["table", "hand"],
        ["food", "produce"],
    )
    return store


@pytest.fixture
def service(store, backend) -> ClassificationService:
    return ClassificationService(store, backend)


def vision_response(labels=(), objects=(), logos=(), text=None) -> dict:
    """Build a single-image multi-feature vision response from (name, score) pairs."""
    box = {"normalizedVertices": [{"x": 0.1, "y": 0.2}, {"x": 0.4, "y": 0.2}, {"x": 0.4, "y": 0.6}, {"x": 0.1, "y": 0.6}]}
    data = {
        "labelAnnotations": [{"description": name, "score": score} for name, score in labels],
        "localizedObjectAnnotations": [{"name": name, "score": score, "boundingPoly": box} for name, score in objects],
        "logoAnnotations": [{"description": name, "score": score} for name, score in logos],
    }
    if text is not None:
        data["textAnnotations"] = [{"description": text, "boundingPoly": {"vertices": [{"x": 10, "y": 20}, {"x": 200, "y": 20}]}}]
    return {"responses": [data]}
