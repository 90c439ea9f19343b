# src/prompts/store.py - v1
"""Prompt persistence.

PromptStore.save() deactivates any previously active prompt and records
the new one as active; saving never raises, it reports success as a bool.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path

from pydantic import ValidationError

from careocr.config.settings import Settings
from careocr.prompts.models import PromptSet, PromptTemplate, UserPrompt

logger = logging.getLogger(__name__)


class PromptStore(ABC):
    """Source of extraction prompts."""

    @abstractmethod
    async def load(self) -> PromptSet:
        """Load templates and saved user prompts."""

    @abstractmethod
    async def save(self, prompt: str) -> bool:
        """Save a prompt as the active one. Returns False on failure."""

    async def active_prompt(self) -> str:
        """Resolved prompt to use when a request carries none."""
        return (await self.load()).resolve()


def _activate(prompt_set: PromptSet, content: str) -> PromptSet:
    deactivated = [
        p.model_copy(update={"is_active": False}) for p in prompt_set.user_prompts
    ]
    deactivated.append(UserPrompt(content=content))
    return prompt_set.model_copy(update={"user_prompts": deactivated})


class InMemoryPromptStore(PromptStore):
    """Process-local prompt store."""

    def __init__(self, templates: list[PromptTemplate] | None = None) -> None:
        self._set = PromptSet(templates=list(templates or []))

    async def load(self) -> PromptSet:
        return self._set.model_copy(deep=True)

    async def save(self, prompt: str) -> bool:
        if not prompt.strip():
            logger.warning("Refusing to save an empty prompt")
            return False
        self._set = _activate(self._set, prompt)
        return True


class JsonPromptStore(PromptStore):
    """Prompt store backed by a single JSON document."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path).expanduser()

    async def load(self) -> PromptSet:
        if not self._path.exists():
            return PromptSet()
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return PromptSet(**data)
        except (json.JSONDecodeError, ValidationError, TypeError) as e:
            logger.warning("Failed to read prompt store %s: %s", self._path, e)
            return PromptSet()

    async def save(self, prompt: str) -> bool:
        if not prompt.strip():
            logger.warning("Refusing to save an empty prompt")
            return False
        updated = _activate(await self.load(), prompt)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(self._path.suffix + ".tmp")
            tmp.write_text(updated.model_dump_json(indent=2), encoding="utf-8")
            tmp.replace(self._path)
        except OSError as e:
            logger.error("Failed to save prompt to %s: %s", self._path, e)
            return False
        logger.info("Saved active extraction prompt (%d chars)", len(prompt))
        return True


def create_prompt_store(settings: Settings | None = None) -> PromptStore:
    """JsonPromptStore when PROMPT_STORE_PATH is set, otherwise in-memory."""
    settings = settings or Settings()
    if settings.prompt_store_path is not None:
        return JsonPromptStore(settings.prompt_store_path)
    return InMemoryPromptStore()
