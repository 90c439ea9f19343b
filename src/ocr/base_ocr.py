# src/ocr/base_ocr.py - v1
"""Abstract OCR client interface.

recognize() is the adapter boundary: subclasses implement _detect_text()
and may raise anything; recognize() bounds the call with a deadline and
turns every failure into a typed OCRResponse(success=False).
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod

from careocr.core.errors import TransportError
from careocr.core.models import OCRResponse

logger = logging.getLogger(__name__)


class BaseOCRClient(ABC):
    """Unified interface for text-recognition services."""

    def __init__(self, timeout_s: float = 30.0) -> None:
        self._timeout_s = timeout_s

    async def recognize(self, image_b64: str) -> OCRResponse:
        """Recognize text in a base64 JPEG payload. Never raises."""
        start = time.monotonic()
        try:
            text = await asyncio.wait_for(
                self._detect_text(image_b64), timeout=self._timeout_s
            )
        except asyncio.TimeoutError:
            error = TransportError(
                self.service_name, f"timed out after {self._timeout_s:g}s"
            )
            return self._failure(str(error), start)
        except TransportError as e:
            return self._failure(str(e), start)
        except Exception as e:
            logger.exception("Unexpected OCR failure in %s", self.service_name)
            return self._failure(str(TransportError(self.service_name, str(e))), start)

        elapsed = int((time.monotonic() - start) * 1000)
        if not text or not text.strip():
            return OCRResponse(
                success=False,
                error=f"{self.service_name}: No text detected in image",
                processing_time_ms=elapsed,
            )
        return OCRResponse(success=True, text=text, processing_time_ms=elapsed)

    @abstractmethod
    async def _detect_text(self, image_b64: str) -> str:
        """Call the service and return the full detected text.

        Raises:
            TransportError: On transport or service-level failure.
        """

    @property
    @abstractmethod
    def service_name(self) -> str:
        """Identifier used in error messages and logs."""

    async def close(self) -> None:
        """Release transport resources."""

    def _failure(self, error: str, start: float) -> OCRResponse:
        logger.warning("OCR failed: %s", error)
        return OCRResponse(
            success=False,
            error=error,
            processing_time_ms=int((time.monotonic() - start) * 1000),
        )
