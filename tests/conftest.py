# tests/conftest.py - v3
"""Shared test fixtures for all unit and integration tests.

Provides settings without .env, a mock LLM client, a scriptable OCR
client, a small resident roster and Pillow-generated images.
No network access: every service is faked.
"""

from __future__ import annotations

import io
import json
import random
import struct
import zlib
from datetime import date
from typing import Callable
from unittest.mock import AsyncMock

import pytest
from PIL import Image

from careocr.config.settings import Settings
from careocr.core.models import Resident
from careocr.core.errors import TransportError
from careocr.llm.models import LLMResponse
from careocr.ocr.base_ocr import BaseOCRClient


class FakeOCRClient(BaseOCRClient):
    """OCR client returning scripted text and counting calls."""

    def __init__(self, text: str = "", error: str | None = None, timeout_s: float = 5.0) -> None:
        super().__init__(timeout_s=timeout_s)
        self.text = text
        self.error = error
        self.calls = 0

    @property
    def service_name(self) -> str:
        return "fake_ocr"

    async def _detect_text(self, image_b64: str) -> str:
        self.calls += 1
        if self.error:
            raise TransportError(self.service_name, self.error)
        return self.text


def llm_response(content: str | dict) -> LLMResponse:
    """LLMResponse wrapping a string or a JSON-serializable dict."""
    if isinstance(content, dict):
        content = json.dumps(content, ensure_ascii=False)
    return LLMResponse(
        content=content,
        input_tokens=120,
        output_tokens=80,
        model="mock-model",
        provider="mock",
        latency_ms=5,
    )


# === FIXTURES: Settings ===


@pytest.fixture
def settings() -> Settings:
    """Default settings, isolated from any local .env file."""
    return Settings(_env_file=None)


# === FIXTURES: Fakes ===


@pytest.fixture
def mock_llm_client() -> AsyncMock:
    """Mock BaseLLMClient returning an empty extraction by default."""
    client = AsyncMock()
    client.provider_name = "mock"
    client.supports_vision = True
    client.complete.return_value = llm_response({"extracted_data": {}})
    client.complete_with_vision.return_value = llm_response("recognized text")
    return client


@pytest.fixture
def fake_ocr() -> FakeOCRClient:
    return FakeOCRClient(text="Appointment Slip\n覆診日期: 2024-10-02")


# === FIXTURES: Roster ===


@pytest.fixture
def residents() -> list[Resident]:
    """Three residents; the first two share a surname."""
    return [
        Resident(
            resident_id=1,
            chinese_surname="陳",
            chinese_given_name="大文",
            english_surname="CHAN",
            english_given_name="TAI MAN",
            id_number="A123886(8)",
            birth_date=date(1940, 1, 31),
        ),
        Resident(
            resident_id=2,
            chinese_surname="陳",
            chinese_given_name="小明",
            english_surname="CHAN",
            english_given_name="SIU MING",
            id_number="C555111(2)",
            birth_date=date(1938, 7, 4),
        ),
        Resident(
            resident_id=3,
            chinese_surname="李",
            chinese_given_name="美玲",
            english_surname="LEE",
            english_given_name="MEI LING",
            id_number="B765432(1)",
            birth_date=date(1950, 6, 1),
        ),
    ]


# === FIXTURES: Images ===


@pytest.fixture
def make_image() -> Callable[..., bytes]:
    """Factory producing encoded image bytes.

    noise=True fills the image with seeded random pixels, which compress
    poorly; otherwise the image is a flat colour.
    """

    def _make(
        width: int = 64,
        height: int = 48,
        fmt: str = "JPEG",
        noise: bool = False,
        seed: int = 7,
        mode: str = "RGB",
        **save_kwargs: object,
    ) -> bytes:
        if noise:
            channels = len(mode)
            raw = random.Random(seed).randbytes(width * height * channels)
            image = Image.frombytes(mode, (width, height), raw)
        else:
            color: object = (200, 180, 160, 255)[: len(mode)] if len(mode) > 1 else 200
            image = Image.new(mode, (width, height), color)
        buffer = io.BytesIO()
        image.save(buffer, format=fmt, **save_kwargs)
        return buffer.getvalue()

    return _make


@pytest.fixture
def png_canvas() -> Callable[[int, int], bytes]:
    """PNG that declares a width x height canvas but carries no pixel data.

    A few dozen bytes, so it passes the upload size check whatever it declares.
    """

    def _chunk(tag: bytes, body: bytes) -> bytes:
        crc = zlib.crc32(tag + body) & 0xFFFFFFFF
        return struct.pack(">I", len(body)) + tag + body + struct.pack(">I", crc)

    def _make(width: int, height: int) -> bytes:
        header = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
        return (
            b"\x89PNG\r\n\x1a\n"
            + _chunk(b"IHDR", header)
            + _chunk(b"IDAT", zlib.compress(b""))
            + _chunk(b"IEND", b"")
        )

    return _make


@pytest.fixture
def fake_ocr_cls() -> type[FakeOCRClient]:
    return FakeOCRClient


@pytest.fixture
def llm_reply() -> Callable[[str | dict], LLMResponse]:
    return llm_response
