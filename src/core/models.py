# src/core/models.py - v2
"""Shared Pydantic domain models used across modules.

No module redefines these types; all imports come from core.models.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DocumentType = Literal["vaccination", "followup", "diagnosis", "unknown"]
ClassificationSource = Literal["ai", "keyword"]


# === RECOGNITION INPUT ===


class RecognitionRequest(BaseModel):
    """One user-triggered recognition of a photographed document."""

    image_bytes: bytes
    content_type: str = "image/jpeg"
    extraction_prompt: str = ""
    classification_prompt: str | None = None
    force_refresh: bool = False
    filename: str | None = None


class NormalizedImage(BaseModel):
    """Re-encoded JPEG payload ready for the recognition services."""

    payload: str
    width: int
    height: int
    quality: float
    original_size: int
    encoded_size: int


# === CLASSIFICATION ===


class DocumentClassification(BaseModel):
    """Document archetype decision with a 0-100 confidence."""

    model_config = ConfigDict(frozen=True)

    type: DocumentType = "unknown"
    confidence: int = Field(default=0, ge=0, le=100)
    reasoning: str | None = None
    source: ClassificationSource = "keyword"


# === SERVICE RESPONSES ===


class OCRResponse(BaseModel):
    """Typed outcome of a text-recognition call."""

    success: bool
    text: str | None = None
    error: str | None = None
    processing_time_ms: int = 0


class ExtractionResponse(BaseModel):
    """Typed outcome of an AI field-extraction call."""

    success: bool
    extracted_fields: dict[str, Any] | None = None
    confidence_scores: dict[str, int] | None = None
    classification: DocumentClassification | None = None
    error: str | None = None
    processing_time_ms: int = 0


class RecognitionResult(BaseModel):
    """Immutable pipeline outcome; successful results are cached by fingerprint."""

    model_config = ConfigDict(frozen=True)

    success: bool
    raw_text: str | None = None
    extracted_fields: dict[str, Any] | None = None
    confidence_scores: dict[str, int] | None = None
    classification: DocumentClassification | None = None
    error: str | None = None
    processing_time_ms: int = 0
    fingerprint: str | None = None
    from_cache: bool = False

    @model_validator(mode="after")
    def _failure_has_no_fields(self) -> RecognitionResult:
        if not self.success and self.extracted_fields is not None:
            raise ValueError("failed RecognitionResult cannot carry extracted_fields")
        return self

    @classmethod
    def failure(
        cls,
        error: str,
        processing_time_ms: int = 0,
        fingerprint: str | None = None,
        raw_text: str | None = None,
    ) -> RecognitionResult:
        """Build a failed result."""
        return cls(
            success=False,
            error=error,
            processing_time_ms=processing_time_ms,
            fingerprint=fingerprint,
            raw_text=raw_text,
        )


# === RESIDENT MATCHING ===


class Resident(BaseModel):
    """Roster entry a document may be associated with."""

    resident_id: str
    chinese_surname: str = ""
    chinese_given_name: str = ""
    english_surname: str | None = None
    english_given_name: str | None = None
    id_number: str | None = None
    birth_date: date | None = None

    @field_validator("resident_id", mode="before")
    @classmethod
    def _coerce_id(cls, v: Any) -> str:  # noqa: N805
        return str(v)

    @property
    def chinese_full_name(self) -> str:
        return f"{self.chinese_surname}{self.chinese_given_name}".strip()

    @property
    def english_full_name(self) -> str:
        parts = [self.english_surname or "", self.english_given_name or ""]
        return " ".join(p.strip() for p in parts if p and p.strip())


class CandidateMatch(BaseModel):
    """A resident scored as a possible identity match."""

    model_config = ConfigDict(frozen=True)

    resident_id: str
    matched_fields: frozenset[str]
    confidence: int = Field(ge=0, le=100)


class DocumentRecognition(BaseModel):
    """Everything surfaced to the caller for one recognized document."""

    result: RecognitionResult
    classification: DocumentClassification | None = None
    candidates: list[CandidateMatch] = Field(default_factory=list)

    @property
    def best_candidate(self) -> CandidateMatch | None:
        return self.candidates[0] if self.candidates else None

    @property
    def needs_review(self) -> bool:
        """True unless one candidate and a known archetype were found.

        The caller must still confirm before writing any record.
        """
        if self.classification is None or self.classification.type == "unknown":
            return True
        return len(self.candidates) != 1
