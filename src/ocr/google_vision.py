# src/ocr/google_vision.py - v1
"""Google Cloud Vision TEXT_DETECTION client over httpx."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from careocr.core.errors import TransportError
from careocr.ocr.base_ocr import BaseOCRClient

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://vision.googleapis.com/v1/images:annotate"


class GoogleVisionOCRClient(BaseOCRClient):
    """Calls images:annotate and returns the first full-text annotation."""

    def __init__(
        self,
        api_key: str,
        endpoint: str = DEFAULT_ENDPOINT,
        timeout_s: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(timeout_s=timeout_s)
        self._api_key = api_key
        self._endpoint = endpoint
        self._http = http_client
        self._owns_client = http_client is None

    @property
    def service_name(self) -> str:
        return "google_vision"

    async def _detect_text(self, image_b64: str) -> str:
        if not image_b64:
            raise TransportError(self.service_name, "Missing image content")

        payload = {
            "requests": [
                {
                    "image": {"content": image_b64},
                    "features": [{"type": "TEXT_DETECTION"}],
                }
            ]
        }
        try:
            response = await self._client().post(
                self._endpoint, params={"key": self._api_key}, json=payload
            )
        except httpx.TimeoutException as e:
            raise TransportError(self.service_name, f"request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise TransportError(self.service_name, f"request failed: {e}") from e

        if response.status_code >= 400:
            logger.error("Vision API error %d: %s", response.status_code, response.text[:500])
            raise TransportError(
                self.service_name, f"Vision API error: {response.status_code}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise TransportError(self.service_name, "invalid JSON response") from e
        return _first_annotation(data)

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self._timeout_s)
        return self._http

    async def close(self) -> None:
        if self._http is not None and self._owns_client:
            await self._http.aclose()
            self._http = None


def _first_annotation(data: dict[str, Any]) -> str:
    responses = data.get("responses") or []
    if not responses:
        return ""
    first = responses[0] or {}
    if "error" in first:
        message = first["error"].get("message", "unknown error")
        raise TransportError("google_vision", f"Vision API error: {message}")
    annotations = first.get("textAnnotations") or []
    if not annotations:
        return ""
    return annotations[0].get("description", "") or ""
