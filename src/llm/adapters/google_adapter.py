# src/llm/adapters/google_adapter.py - v2
"""Google Gemini adapter implementing BaseLLMClient.

Uses the google-generativeai SDK. Gemini is the default extraction model
for Chinese-language medical slips.
"""

from __future__ import annotations

import time
from typing import Any

from careocr.llm.base_client import BaseLLMClient
from careocr.llm.models import ImageInput, LLMResponse, Message


class GoogleAdapter(BaseLLMClient):
    """Google Gemini adapter."""

    def __init__(self, model: str = "gemini-1.5-flash", api_key: str = "", **kwargs: Any):
        self._model = model
        self._api_key = api_key

    def _model_for(self, system: str | None):
        import google.generativeai as genai

        genai.configure(api_key=self._api_key)
        return genai.GenerativeModel(self._model, system_instruction=system)

    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 2048,
        temperature: float = 0.1,
        json_output: bool = False,
    ) -> LLMResponse:
        model = self._model_for(system)
        gen_config: dict[str, Any] = {
            "max_output_tokens": max_tokens,
            "temperature": temperature,
        }
        if json_output:
            gen_config["response_mime_type"] = "application/json"

        contents = [
            {"role": "model" if m.role == "assistant" else "user", "parts": [{"text": m.content}]}
            for m in messages
        ]
        return await self._send(model, contents, gen_config)

    async def complete_with_vision(
        self,
        messages: list[Message],
        images: list[ImageInput],
        system: str | None = None,
        max_tokens: int = 2048,
    ) -> LLMResponse:
        model = self._model_for(system)
        parts: list[Any] = [
            {"mime_type": img.media_type, "data": img.raw_bytes()} for img in images
        ]
        parts.extend(m.content for m in messages if m.role == "user")
        return await self._send(model, parts, {"max_output_tokens": max_tokens})

    @property
    def provider_name(self) -> str:
        return "google"

    async def _send(self, model: Any, contents: Any, gen_config: dict[str, Any]) -> LLMResponse:
        t0 = time.monotonic()
        resp = await model.generate_content_async(contents, generation_config=gen_config)
        latency = int((time.monotonic() - t0) * 1000)

        usage = getattr(resp, "usage_metadata", None)
        return LLMResponse(
            content=resp.text or "",
            input_tokens=getattr(usage, "prompt_token_count", 0) if usage else 0,
            output_tokens=getattr(usage, "candidates_token_count", 0) if usage else 0,
            model=self._model,
            provider="google",
            latency_ms=latency,
            raw_response=resp,
        )
