# src/llm/config.py - v2
"""Per-component LLM routing.

Resolution order:
  1. Component override (LLM_OCR_MODEL="openai:gpt-4o" for the vision OCR client)
  2. Default provider + model (LLM_DEFAULT_PROVIDER + LLM_DEFAULT_MODEL)
  3. Hardcoded fallback
"""

from __future__ import annotations

from dataclasses import dataclass

from careocr.config.settings import Settings

_FALLBACK_PROVIDER = "google"
_FALLBACK_MODEL = "gemini-1.5-flash"

_COMPONENT_FIELDS: dict[str, str] = {
    "ocr": "llm_ocr_model",
}


@dataclass(frozen=True)
class LLMAssignment:
    """Resolved LLM provider:model for a component."""

    provider: str
    model: str
    source: str  # "component", "default", or "fallback"

    @property
    def key(self) -> str:
        return f"{self.provider}:{self.model}"


def _parse_assignment(value: str) -> tuple[str, str] | None:
    """Parse 'provider:model'. Returns None if empty or malformed."""
    if not value or ":" not in value:
        return None
    provider, model = value.split(":", 1)
    if not provider.strip() or not model.strip():
        return None
    return provider.strip(), model.strip()


def resolve_llm(component: str, settings: Settings) -> LLMAssignment:
    """Resolve the LLM assignment for a component ("extraction", "ocr")."""
    field_name = _COMPONENT_FIELDS.get(component)
    if field_name:
        parsed = _parse_assignment(getattr(settings, field_name, ""))
        if parsed:
            return LLMAssignment(provider=parsed[0], model=parsed[1], source="component")

    if settings.llm_default_provider and settings.llm_default_model:
        return LLMAssignment(
            provider=settings.llm_default_provider,
            model=settings.llm_default_model,
            source="default",
        )

    return LLMAssignment(
        provider=_FALLBACK_PROVIDER, model=_FALLBACK_MODEL, source="fallback"
    )
