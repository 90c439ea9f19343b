# src/prompts/models.py - v1
"""Prompt models: templates, saved user prompts and the resolved set."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from careocr.extraction.prompts import DEFAULT_EXTRACTION_PROMPT


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PromptTemplate(BaseModel):
    """Named extraction prompt shipped with or added to a deployment."""

    template_id: str
    name: str
    description: str = ""
    content: str
    is_default: bool = False


class UserPrompt(BaseModel):
    """A prompt saved by the operator; at most one is active."""

    content: str
    is_active: bool = True
    created_at: datetime = Field(default_factory=_utcnow)


class PromptSet(BaseModel):
    """Snapshot of templates and the user's saved prompts."""

    templates: list[PromptTemplate] = Field(default_factory=list)
    user_prompts: list[UserPrompt] = Field(default_factory=list)

    @property
    def active_prompt(self) -> str | None:
        active = [p for p in self.user_prompts if p.is_active and p.content.strip()]
        if not active:
            return None
        return max(active, key=lambda p: p.created_at).content

    @property
    def default_template(self) -> PromptTemplate | None:
        for template in self.templates:
            if template.is_default and template.content.strip():
                return template
        return None

    def resolve(self) -> str:
        """Active user prompt, else the default template, else the built-in prompt."""
        active = self.active_prompt
        if active:
            return active
        template = self.default_template
        if template is not None:
            return template.content
        return DEFAULT_EXTRACTION_PROMPT
