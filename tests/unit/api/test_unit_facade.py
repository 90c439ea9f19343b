# tests/unit/api/test_unit_facade.py - v2
"""Tests for api/facade.py."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import pytest

from careocr.api import facade
from careocr.api.facade import (
    RosterError,
    build_pipeline,
    guess_content_type,
    load_residents,
    recognize_image,
)
from careocr.cache.sqlite_store import SqliteCacheStore
from careocr.config.settings import Settings
from careocr.core.models import DocumentRecognition, RecognitionResult
from careocr.ocr.google_vision import GoogleVisionOCRClient
from careocr.pipeline.orchestrator import RecognitionPipeline
from careocr.prompts.store import InMemoryPromptStore, JsonPromptStore


class TestBuildPipeline:
    @pytest.fixture(autouse=True)
    def _patch_llm(self, monkeypatch, mock_llm_client):
        monkeypatch.setattr(facade, "create_llm_client", lambda *a, **kw: mock_llm_client)

    def test_defaults(self, settings):
        pipeline = build_pipeline(settings)
        assert isinstance(pipeline, RecognitionPipeline)
        assert isinstance(pipeline._ocr, GoogleVisionOCRClient)
        assert isinstance(pipeline._prompt_store, InMemoryPromptStore)
        assert pipeline._cache is not None

    def test_cache_disabled(self):
        pipeline = build_pipeline(Settings(_env_file=None, cache_enabled=False))
        assert pipeline._cache is None

    def test_configured_backends(self, tmp_path):
        settings = Settings(
            _env_file=None,
            cache_backend="sqlite",
            cache_root=tmp_path / "cache",
            prompt_store_path=tmp_path / "prompts.json",
        )
        pipeline = build_pipeline(settings)
        assert isinstance(pipeline._cache, SqliteCacheStore)
        assert isinstance(pipeline._prompt_store, JsonPromptStore)


class TestGuessContentType:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("slip.jpg", "image/jpeg"),
            ("SLIP.JPEG", "image/jpeg"),
            ("scan.png", "image/png"),
            ("photo.webp", "image/webp"),
            ("anim.gif", "application/octet-stream"),
            ("noext", "application/octet-stream"),
        ],
    )
    def test_mapping(self, name, expected):
        assert guess_content_type(name) == expected


class TestLoadResidents:
    ROW = {
        "resident_id": 7,
        "chinese_surname": "黃",
        "chinese_given_name": "志強",
        "birth_date": "1945-03-12",
    }

    def test_list(self, tmp_path):
        path = tmp_path / "roster.json"
        path.write_text(json.dumps([self.ROW], ensure_ascii=False), encoding="utf-8")
        residents = load_residents(path)
        assert len(residents) == 1
        assert residents[0].resident_id == "7"
        assert residents[0].chinese_full_name == "黃志強"

    def test_wrapped_dict(self, tmp_path):
        path = tmp_path / "roster.json"
        path.write_text(json.dumps({"residents": [self.ROW]}), encoding="utf-8")
        assert [r.resident_id for r in load_residents(path)] == ["7"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(RosterError, match="Cannot read roster"):
            load_residents(tmp_path / "absent.json")

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "roster.json"
        path.write_text("[{", encoding="utf-8")
        with pytest.raises(RosterError):
            load_residents(path)

    def test_not_a_list(self, tmp_path):
        path = tmp_path / "roster.json"
        path.write_text('"just a string"', encoding="utf-8")
        with pytest.raises(RosterError, match="JSON list"):
            load_residents(path)

    def test_invalid_row(self, tmp_path):
        path = tmp_path / "roster.json"
        path.write_text(json.dumps([{"chinese_surname": "黃"}]), encoding="utf-8")
        with pytest.raises(RosterError, match="Invalid resident"):
            load_residents(path)


class TestRecognizeImage:
    @pytest.fixture
    def pipeline(self) -> AsyncMock:
        pipeline = AsyncMock()
        pipeline.recognize.return_value = DocumentRecognition(
            result=RecognitionResult(success=True, extracted_fields={})
        )
        return pipeline

    @pytest.mark.asyncio
    async def test_from_path(self, tmp_path, pipeline, residents):
        path = tmp_path / "slip.PNG"
        path.write_bytes(b"png-bytes")

        recognition = await recognize_image(
            path, residents, pipeline=pipeline, extraction_prompt="P", force_refresh=True,
        )

        assert recognition.result.success is True
        request, roster = pipeline.recognize.await_args.args
        assert request.image_bytes == b"png-bytes"
        assert request.content_type == "image/png"
        assert request.filename == "slip.PNG"
        assert request.extraction_prompt == "P"
        assert request.force_refresh is True
        assert roster == residents

    @pytest.mark.asyncio
    async def test_from_bytes(self, pipeline):
        await recognize_image(b"raw", pipeline=pipeline)
        request, roster = pipeline.recognize.await_args.args
        assert request.content_type == "image/jpeg"
        assert request.filename is None
        assert roster == []

    @pytest.mark.asyncio
    async def test_explicit_content_type(self, tmp_path, pipeline):
        path = tmp_path / "upload.bin"
        path.write_bytes(b"x")
        await recognize_image(path, pipeline=pipeline, content_type="image/webp")
        request, _ = pipeline.recognize.await_args.args
        assert request.content_type == "image/webp"

    @pytest.mark.asyncio
    async def test_caller_pipeline_left_open(self, pipeline):
        await recognize_image(b"raw", pipeline=pipeline)
        pipeline.close.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_built_pipeline_closed(self, monkeypatch, pipeline, settings):
        built = []

        def fake_build(s):
            built.append(s)
            return pipeline

        monkeypatch.setattr(facade, "build_pipeline", fake_build)
        await recognize_image(b"raw", settings=settings)

        assert built == [settings]
        pipeline.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_built_pipeline_closed_on_error(self, monkeypatch, pipeline):
        pipeline.recognize.side_effect = RuntimeError("boom")
        monkeypatch.setattr(facade, "build_pipeline", lambda s: pipeline)

        with pytest.raises(RuntimeError, match="boom"):
            await recognize_image(b"raw")
        pipeline.close.assert_awaited_once()
