# src/ocr/llm_vision.py - v1
"""OCR through a vision-capable LLM, for deployments without Cloud Vision."""

from __future__ import annotations

import base64
import binascii

from careocr.core.errors import TransportError
from careocr.llm.base_client import BaseLLMClient
from careocr.llm.models import ImageInput, Message
from careocr.ocr.base_ocr import BaseOCRClient

_TRANSCRIBE_PROMPT = (
    "Transcribe all text visible in this photographed medical document "
    "exactly as printed, line by line, preserving the original language. "
    "Do not translate, summarize or add commentary."
)


class VisionLLMOCRClient(BaseOCRClient):
    """Transcribes document photos with BaseLLMClient.complete_with_vision."""

    def __init__(self, llm: BaseLLMClient, timeout_s: float = 30.0, max_tokens: int = 4096) -> None:
        super().__init__(timeout_s=timeout_s)
        if not llm.supports_vision:
            raise ValueError(f"LLM provider {llm.provider_name!r} does not support vision")
        self._llm = llm
        self._max_tokens = max_tokens

    @property
    def service_name(self) -> str:
        return f"llm_vision:{self._llm.provider_name}"

    async def _detect_text(self, image_b64: str) -> str:
        try:
            base64.b64decode(image_b64, validate=True)
        except (binascii.Error, ValueError) as e:
            raise TransportError(self.service_name, "payload is not valid base64") from e

        response = await self._llm.complete_with_vision(
            messages=[Message.user(_TRANSCRIBE_PROMPT)],
            images=[ImageInput(payload_b64=image_b64)],
            system="You are an OCR engine. Output only the transcribed text.",
            max_tokens=self._max_tokens,
        )
        return response.content
