# src/ocr/ocr_factory.py - v1
"""Factory for OCR client instantiation."""

from __future__ import annotations

from careocr.config.settings import Settings
from careocr.ocr.base_ocr import BaseOCRClient


def create_ocr_client(settings: Settings) -> BaseOCRClient:
    """Instantiate the configured OCR provider."""
    if settings.ocr_provider == "google_vision":
        from careocr.ocr.google_vision import GoogleVisionOCRClient

        return GoogleVisionOCRClient(
            api_key=settings.google_vision_api_key,
            endpoint=settings.google_vision_endpoint,
            timeout_s=settings.ocr_timeout_s,
        )

    if settings.ocr_provider == "llm_vision":
        from careocr.llm.client_factory import create_llm_client
        from careocr.llm.config import resolve_llm
        from careocr.ocr.llm_vision import VisionLLMOCRClient

        assignment = resolve_llm("ocr", settings)
        llm = create_llm_client(assignment.provider, assignment.model, settings)
        return VisionLLMOCRClient(llm, timeout_s=settings.ocr_timeout_s)

    raise ValueError(f"Unsupported OCR provider: {settings.ocr_provider!r}")
