# src/llm/adapters/anthropic_adapter.py - v3
"""Anthropic Claude adapter implementing BaseLLMClient."""

from __future__ import annotations

import logging
import time
from typing import Any

from careocr.llm.base_client import BaseLLMClient
from careocr.llm.models import ImageInput, LLMResponse, Message

logger = logging.getLogger(__name__)

_JSON_SUFFIX = "\n\nRespond with a single JSON object and nothing else."


class AnthropicAdapter(BaseLLMClient):
    """Adapter for Anthropic Claude models."""

    def __init__(
        self,
        model: str = "claude-sonnet-4-20250514",
        api_key: str | None = None,
        **kwargs: Any,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self.__client = None

    @property
    def _client(self):
        """Lazy-init Anthropic client (only on first API call)."""
        if self.__client is None:
            import anthropic

            self.__client = anthropic.AsyncAnthropic(api_key=self._api_key or "")
        return self.__client

    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 2048,
        temperature: float = 0.1,
        json_output: bool = False,
    ) -> LLMResponse:
        params: dict[str, Any] = {
            "model": self._model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [
                {"role": m.role, "content": m.content}
                for m in messages
                if m.role != "system"
            ],
        }
        system_text = self._merge_system(messages, system)
        if json_output:
            system_text = (system_text or "") + _JSON_SUFFIX
        if system_text:
            params["system"] = system_text

        return await self._send(params)

    async def complete_with_vision(
        self,
        messages: list[Message],
        images: list[ImageInput],
        system: str | None = None,
        max_tokens: int = 2048,
    ) -> LLMResponse:
        blocks: list[dict[str, Any]] = [
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": img.media_type,
                    "data": img.payload_b64,
                },
            }
            for img in images
        ]
        for m in messages:
            if m.role == "user":
                blocks.append({"type": "text", "text": m.content})

        params: dict[str, Any] = {
            "model": self._model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": blocks}],
        }
        system_text = self._merge_system(messages, system)
        if system_text:
            params["system"] = system_text

        return await self._send(params)

    @property
    def provider_name(self) -> str:
        return "anthropic"

    async def _send(self, params: dict[str, Any]) -> LLMResponse:
        start = time.monotonic()
        response = await self._client.messages.create(**params)
        latency_ms = int((time.monotonic() - start) * 1000)

        text = "".join(
            getattr(block, "text", "")
            for block in response.content
            if getattr(block, "type", "") == "text"
        )
        return LLMResponse(
            content=text,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            model=response.model,
            provider="anthropic",
            latency_ms=latency_ms,
            raw_response=response,
        )

    @staticmethod
    def _merge_system(messages: list[Message], system: str | None) -> str | None:
        parts = [system] if system else []
        parts.extend(m.content for m in messages if m.role == "system")
        return "\n\n".join(parts) if parts else None
