# src/core/errors.py - v1
"""Error taxonomy for the recognition pipeline.

Validation errors are raised before any network call. Transport errors
cover OCR/extraction services that are unreachable, time out, or report a
service-level failure. Adapters convert transport errors into failure
results at their own boundary; nothing here escapes the orchestrator.
"""

from __future__ import annotations


class CareOCRError(Exception):
    """Base class for all careocr errors."""


class ImageValidationError(CareOCRError):
    """Input file rejected by pre-flight checks (type or size)."""


class ImageDecodeError(ImageValidationError):
    """Input bytes could not be decoded as an image."""


class TransportError(CareOCRError):
    """A recognition service call failed, timed out, or returned an error."""

    def __init__(self, service: str, message: str) -> None:
        self.service = service
        super().__init__(f"{service}: {message}")
