"""Minimal REST client for Gemini `generateContent`."""

from __future__ import annotations

import base64
import logging
from typing import Any, Dict, List, Optional

import requests

from headshotcrop.config import DEFAULT_GEMINI_BASE_URL, DEFAULT_TIMEOUT, Settings
from headshotcrop.core.errors import ServiceError

logger = logging.getLogger(__name__)


def inline_image_part(data: bytes, mime_type: str) -> Dict[str, Any]:
    return {"inlineData": {"mimeType": mime_type, "data": base64.b64encode(data).decode("utf-8")}}


def text_part(text: str) -> Dict[str, Any]:
    return {"text": text}


def _parts(response: Dict[str, Any]) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for cand in response.get("candidates") or []:
        out.extend((cand.get("content") or {}).get("parts") or [])
    return out


def response_text(response: Dict[str, Any]) -> Optional[str]:
    """Concatenated text of all text parts, or None if there are none."""
    texts = [p["text"] for p in _parts(response) if isinstance(p.get("text"), str)]
    return "".join(texts) if texts else None


def first_inline_image(response: Dict[str, Any]) -> Optional[bytes]:
    """Decoded bytes of the first inline image part, or None."""
    for p in _parts(response):
        inline = p.get("inlineData") or p.get("inline_data")
        if inline and inline.get("data"):
            try:
                return base64.b64decode(inline["data"])
            except (ValueError, TypeError) as e:
                raise ServiceError(f"Model returned undecodable image data: {e}") from e
    return None


class GeminiClient:
    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_GEMINI_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings, session: Optional[requests.Session] = None) -> "GeminiClient":
        return cls(api_key=settings.api_key, base_url=settings.base_url, timeout=settings.timeout, session=session)

    def endpoint(self, model: str) -> str:
        return f"{self.base_url}/models/{model}:generateContent"

    def generate_content(
        self,
        model: str,
        parts: List[Dict[str, Any]],
        generation_config: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        if not self.api_key:
            raise ServiceError("GEMINI_API_KEY is not set.")

        payload: Dict[str, Any] = {"contents": [{"role": "user", "parts": parts}]}
        if generation_config:
            payload["generationConfig"] = generation_config

        try:
            resp = self.session.post(
                self.endpoint(model),
                headers={"Content-Type": "application/json", "X-goog-api-key": self.api_key},
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error("Upstream request error for model=%s: %s", model, e)
            raise ServiceError(f"Upstream error: {e}") from e

        if resp.status_code != 200:
            body = resp.text[:400]
            logger.error("Upstream non-200 status=%s body=%s", resp.status_code, body)
            if "API key not valid" in resp.text:
                raise ServiceError("The API key is invalid. Please ensure it is configured correctly in the environment.")
            raise ServiceError(f"Upstream returned HTTP {resp.status_code}: {body}")

        try:
            return resp.json()
        except ValueError as e:
            logger.error("Upstream returned non-JSON body for model=%s", model)
            raise ServiceError(f"Upstream returned an unreadable response: {e}") from e
