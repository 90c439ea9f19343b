# src/llm/models.py - v3
"""Provider-neutral request/response types for the LLM adapters."""

from __future__ import annotations

import base64
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

Role = Literal["user", "assistant", "system"]


class Message(BaseModel):
    role: Role
    content: str

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(role="user", content=content)


class ImageInput(BaseModel):
    """A normalized document photo, already base64-encoded.

    The pipeline hands images around as base64 JPEG strings, so adapters
    that send base64 use the payload untouched; raw_bytes() serves the
    ones that need binary parts.
    """

    model_config = ConfigDict(frozen=True)

    payload_b64: str
    media_type: str = "image/jpeg"

    def raw_bytes(self) -> bytes:
        return base64.b64decode(self.payload_b64)

    @property
    def data_url(self) -> str:
        return f"data:{self.media_type};base64,{self.payload_b64}"


class LLMResponse(BaseModel):
    """Normalized reply from any provider. Token counts are 0 when unreported."""

    content: str
    model: str
    provider: str
    latency_ms: int
    input_tokens: int = 0
    output_tokens: int = 0
    raw_response: Any = None
