# src/config/settings.py - v2
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for all deployment-specific settings: image limits,
cache backend, OCR and extraction providers, classifier/matcher thresholds,
request batching and logging.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from careocr.core.errors import CareOCRError


class ConfigurationError(CareOCRError):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Image limits ===
    accepted_image_types: str = "image/jpeg,image/jpg,image/png,image/webp"
    max_upload_bytes: int = 5 * 1024 * 1024
    target_image_bytes: int = 2 * 1024 * 1024
    max_image_dimension: int = 2000
    # Decoded pixel budget; a few-byte PNG can declare a gigapixel canvas.
    max_image_pixels: int = 100_000_000
    jpeg_default_quality: float = 0.9
    jpeg_min_quality: float = 0.6

    # === Fingerprint ===
    # None hashes the full normalized payload.
    fingerprint_prefix_length: int | None = None

    # === Cache ===
    cache_enabled: bool = True
    cache_backend: Literal["memory", "json", "sqlite", "redis"] = "memory"
    cache_root: Path = Path("~/.careocr/cache")
    cache_redis_url: str = ""

    # === OCR ===
    ocr_provider: Literal["google_vision", "llm_vision"] = "google_vision"
    google_vision_api_key: str = ""
    google_vision_endpoint: str = "https://vision.googleapis.com/v1/images:annotate"
    ocr_timeout_s: float = 30.0

    # === Field extraction (LLM) ===
    llm_default_provider: str = "google"
    llm_default_model: str = "gemini-1.5-flash"
    llm_ocr_model: str = ""
    llm_temperature: float = 0.1
    llm_max_tokens: int = 2048
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    google_api_key: str = ""
    extraction_timeout_s: float = 60.0

    # === Classification / matching ===
    classifier_min_confidence: int = 30
    matcher_single_clue_cap: int = 65

    # === Request batching ===
    batch_delay_ms: int = 50
    batch_max_concurrent: int = 3

    # === Prompts ===
    prompt_store_path: Path | None = None

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("jpeg_default_quality", "jpeg_min_quality")
    @classmethod
    def validate_quality(cls, v: float) -> float:  # noqa: N805
        """JPEG quality is expressed as a fraction in (0, 1]."""
        if not 0.0 < v <= 1.0:
            raise ValueError("JPEG quality must be in (0, 1]")
        return v

    @field_validator("fingerprint_prefix_length")
    @classmethod
    def validate_prefix_length(cls, v: int | None) -> int | None:  # noqa: N805
        if v is not None and v <= 0:
            raise ValueError("fingerprint_prefix_length must be positive or unset")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.target_image_bytes > self.max_upload_bytes:
            errors.append("TARGET_IMAGE_BYTES must be <= MAX_UPLOAD_BYTES")

        if self.jpeg_min_quality > self.jpeg_default_quality:
            errors.append("JPEG_MIN_QUALITY must be <= JPEG_DEFAULT_QUALITY")

        if self.cache_backend == "redis" and not self.cache_redis_url:
            errors.append("CACHE_REDIS_URL must be set when CACHE_BACKEND=redis")

        if self.max_image_pixels < 1:
            errors.append("MAX_IMAGE_PIXELS must be >= 1")

        if self.batch_max_concurrent < 1:
            errors.append("BATCH_MAX_CONCURRENT must be >= 1")

        if not 0 <= self.classifier_min_confidence <= 100:
            errors.append("CLASSIFIER_MIN_CONFIDENCE must be within 0-100")

        if not 0 <= self.matcher_single_clue_cap <= 100:
            errors.append("MATCHER_SINGLE_CLUE_CAP must be within 0-100")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def accepted_image_types_list(self) -> list[str]:
        """Parse comma-separated accepted MIME types."""
        return [
            t.strip().lower()
            for t in self.accepted_image_types.split(",")
            if t.strip()
        ]


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-call config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
