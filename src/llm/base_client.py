# src/llm/base_client.py - v3
"""Abstract LLM client used for field extraction and, optionally, OCR.

Adapters translate Message/ImageInput into the provider SDK's request
shape and return a normalized LLMResponse. They let SDK exceptions
propagate; llm.retry classifies them and the calling adapter boundary
(FieldExtractor, VisionLLMOCRClient) turns them into typed failures.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from careocr.llm.models import ImageInput, LLMResponse, Message


class BaseLLMClient(ABC):

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Registry key of the provider (anthropic, openai, google)."""

    @property
    def supports_vision(self) -> bool:
        return True

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 2048,
        temperature: float = 0.1,
        json_output: bool = False,
    ) -> LLMResponse:
        """Text completion; json_output requests a single JSON object."""

    @abstractmethod
    async def complete_with_vision(
        self,
        messages: list[Message],
        images: list[ImageInput],
        system: str | None = None,
        max_tokens: int = 2048,
    ) -> LLMResponse:
        """Completion over document photos plus the user messages."""
