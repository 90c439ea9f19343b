# tests/unit/llm/test_unit_config.py - v2
"""Tests for llm/config.py - per-component LLM routing."""

from __future__ import annotations

from careocr.config.settings import Settings
from careocr.llm.config import resolve_llm


class TestResolveLLM:
    def test_default(self):
        a = resolve_llm("extraction", Settings(_env_file=None))
        assert (a.provider, a.model, a.source) == ("google", "gemini-1.5-flash", "default")
        assert a.key == "google:gemini-1.5-flash"

    def test_ocr_override(self):
        s = Settings(_env_file=None, llm_ocr_model="openai:gpt-4o")
        a = resolve_llm("ocr", s)
        assert (a.provider, a.model, a.source) == ("openai", "gpt-4o", "component")

    def test_malformed_override_falls_back_to_default(self):
        s = Settings(_env_file=None, llm_ocr_model="gpt-4o")
        assert resolve_llm("ocr", s).source == "default"

    def test_override_only_applies_to_its_component(self):
        s = Settings(_env_file=None, llm_ocr_model="openai:gpt-4o")
        assert resolve_llm("extraction", s).provider == "google"

    def test_fallback(self):
        s = Settings(_env_file=None, llm_default_provider="", llm_default_model="")
        assert resolve_llm("extraction", s).source == "fallback"
