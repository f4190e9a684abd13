"""HTTP client for the foodscan backend (word lists, classification, OCR correction)."""

import logging
from typing import Any, Dict, List, Optional

import requests

from foodscan.config import FOODSCAN_API_TIMEOUT_S, FOODSCAN_API_URL
from foodscan.vision_pipeline.models import OCRCorrection, WordClassification, parse_classifications

logger = logging.getLogger(__name__)


class BackendError(RuntimeError):
    """Non-2xx answer or unusable payload from the backend."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class BackendClient:
    """
    Thin synchronous wrapper over ``requests.Session``.

    Callers on the event loop run these methods via ``asyncio.to_thread``.
    """

    def __init__(
        self,
        base_url: str = FOODSCAN_API_URL,
        timeout: float = FOODSCAN_API_TIMEOUT_S,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        kwargs.setdefault("timeout", self.timeout)
        response = self.session.request(method, f"{self.base_url}{path}", **kwargs)
        if not response.ok:
            try:
                detail = response.json()
            except ValueError:
                detail = response.text
            raise BackendError(f"{method} {path} failed ({response.status_code}): {detail}", response.status_code)
        try:
            return response.json()
        except ValueError as e:
            raise BackendError(f"{method} {path} returned invalid JSON: {e}") from e

    def get_words_list(self) -> Dict[str, Any]:
        data = self._request("GET", "/words")
        if not isinstance(data, dict):
            raise BackendError("GET /words returned a non-object payload")
        return {
            "foodWords": data.get("foodWords") or {},
            "nonFoodWords": data.get("nonFoodWords") or [],
            "genericWords": data.get("genericWords") or [],
            "version": data.get("version"),
        }

    def classify_words(self, words: List[str]) -> Dict[str, WordClassification]:
        data = self._request("POST", "/classify", json={"words": words})
        if not isinstance(data, dict):
            raise BackendError("POST /classify returned a non-object payload")
        return parse_classifications(data.get("classifications"))

    def send_feedback(self, word: str, accepted: bool) -> None:
        self._request("POST", "/feedback", json={"word": word, "accepted": accepted})

    def correct_ocr(self, ocr_text: str, logo_texts: Optional[List[str]] = None) -> OCRCorrection:
        body: Dict[str, Any] = {"ocrText": ocr_text}
        if logo_texts:
            body["logoTexts"] = logo_texts
        data = self._request("POST", "/correct-ocr", json=body)
        try:
            return OCRCorrection.from_api(data)
        except ValueError as e:
            raise BackendError(str(e)) from e
