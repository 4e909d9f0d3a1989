import json
import logging
from typing import Any, Dict, List, Optional

import requests
from requests import RequestException

from gradetrack.config.settings import settings

logger = logging.getLogger(__name__)


class GeminiClientError(Exception):
    pass


def text_part(text: str) -> Dict[str, Any]:
    return {"text": text}


def inline_part(mime_type: str, data: str) -> Dict[str, Any]:
    return {"inline_data": {"mime_type": mime_type, "data": data}}


class GeminiClient:
    """Thin wrapper over the Generative Language generateContent endpoint."""

    def __init__(
        self,
        api_key: str,
        *,
        model: str = "gemini-2.5-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 60,
    ) -> None:
        if not api_key:
            raise GeminiClientError("Missing GEMINI_API_KEY in environment")
        self.api_key = api_key
        self.model = model
        self.url = f"{base_url.rstrip('/')}/models/{model}:generateContent"
        self.timeout = timeout

    @classmethod
    def from_settings(cls) -> "GeminiClient":
        return cls(
            settings.gemini_api_key,
            model=settings.gemini_model,
            base_url=settings.gemini_base_url,
            timeout=settings.gemini_timeout_seconds,
        )

    def generate_json(self, parts: List[Dict[str, Any]], response_schema: Optional[Dict[str, Any]] = None) -> Any:
        generation_config: Dict[str, Any] = {"responseMimeType": "application/json"}
        if response_schema is not None:
            generation_config["responseSchema"] = response_schema
        payload = {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": generation_config,
        }
        text = self._post(payload)
        try:
            return json.loads(text)
        except ValueError as exc:
            raise GeminiClientError(f"Model returned invalid JSON: {text[:200]}") from exc

    def _post(self, payload: Dict[str, Any]) -> str:
        try:
            res = requests.post(self.url, params={"key": self.api_key}, json=payload, timeout=self.timeout)
        except RequestException as exc:
            raise GeminiClientError(f"Gemini request failed: {exc}") from exc

        if res.status_code >= 400:
            logger.warning("Gemini returned HTTP %s: %s", res.status_code, res.text[:500])
            raise GeminiClientError(f"Gemini returned HTTP {res.status_code}")

        try:
            data = res.json()
            return data["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise GeminiClientError(f"Unexpected Gemini response: {res.text[:200]}") from exc
