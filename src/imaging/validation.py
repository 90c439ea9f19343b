# src/imaging/validation.py - v1
"""Pre-flight checks on an uploaded image, run before any processing.

Violations are reported as a user-facing message on the outcome object,
never raised, so UI handlers can show them inline.
"""

from __future__ import annotations

from pydantic import BaseModel

from careocr.config.settings import Settings

_DEFAULT_SETTINGS: Settings | None = None


class ValidationOutcome(BaseModel):
    """Result of validating an uploaded image file."""

    valid: bool
    error: str | None = None


def validate_image_file(
    content_type: str | None,
    size_bytes: int,
    settings: Settings | None = None,
) -> ValidationOutcome:
    """Check MIME type and raw size of an upload.

    Args:
        content_type: Declared MIME type (e.g. image/png).
        size_bytes: Raw upload size in bytes.
        settings: Limits to apply. Defaults to Settings().

    Returns:
        ValidationOutcome with a user-facing error on failure.
    """
    settings = settings or _default_settings()

    mime = (content_type or "").strip().lower()
    if mime not in settings.accepted_image_types_list:
        return ValidationOutcome(
            valid=False,
            error="Unsupported image format, please use JPG, PNG or WEBP",
        )

    if size_bytes > settings.max_upload_bytes:
        return ValidationOutcome(valid=False, error=oversize_message(settings))

    if size_bytes <= 0:
        return ValidationOutcome(valid=False, error="Image file is empty")

    return ValidationOutcome(valid=True)


def oversize_message(settings: Settings) -> str:
    limit_mb = settings.max_upload_bytes / 1024 / 1024
    return f"Image file too large, please choose an image under {limit_mb:g}MB"


def _default_settings() -> Settings:
    global _DEFAULT_SETTINGS
    if _DEFAULT_SETTINGS is None:
        _DEFAULT_SETTINGS = Settings()
    return _DEFAULT_SETTINGS
