# tests/integration/test_int_recognition_flow.py - v1
"""End-to-end recognition: normalizer, OCR, extraction, keyword fallback,
resident matching and a persistent cache, with only the remote services faked."""

from __future__ import annotations

from datetime import date

import pytest

from careocr.cache.sqlite_store import SqliteCacheStore
from careocr.classification.ai_classifier import AIClassifier
from careocr.classification.base_classifier import FallbackClassifier
from careocr.classification.keyword_classifier import KeywordClassifier
from careocr.core.models import RecognitionRequest
from careocr.extraction.field_extractor import FieldExtractor
from careocr.matching.entity_matcher import EntityMatcher
from careocr.pipeline.orchestrator import RecognitionPipeline
from careocr.prompts.store import JsonPromptStore

VACCINATION_TEXT = (
    "流感疫苗接種記錄\n"
    "姓名: 陳大文\n"
    "身份證: AXX8686(X)\n"
    "注射日期: 2024-09-15"
)

VACCINATION_FIELDS = {
    "中文姓名": "陳大文",
    "身份證號碼": "AXX8686(X)",
    "注射日期": "2024-09-15",
    "疫苗名稱": "流感疫苗",
}


def _pipeline(ocr, llm, cache, settings, prompt_store=None) -> RecognitionPipeline:
    return RecognitionPipeline(
        ocr_client=ocr,
        extractor=FieldExtractor(llm, retry_configs={}),
        cache=cache,
        classifier=FallbackClassifier(AIClassifier(), KeywordClassifier()),
        matcher=EntityMatcher(today=date(2024, 10, 1)),
        prompt_store=prompt_store,
        settings=settings,
    )


@pytest.mark.asyncio
async def test_vaccination_record_flow(
    tmp_path, settings, mock_llm_client, fake_ocr_cls, llm_reply, make_image, residents,
):
    mock_llm_client.complete.return_value = llm_reply({"extracted_data": VACCINATION_FIELDS})
    ocr = fake_ocr_cls(text=VACCINATION_TEXT)
    prompt_store = JsonPromptStore(tmp_path / "prompts.json")
    await prompt_store.save("Extract 中文姓名, 身份證號碼, 注射日期 and 疫苗名稱")
    cache = SqliteCacheStore(tmp_path / "cache.db")

    pipeline = _pipeline(ocr, mock_llm_client, cache, settings, prompt_store)
    photo = make_image(width=3000, height=2000, fmt="JPEG", quality=95)
    recognition = await pipeline.recognize(
        RecognitionRequest(image_bytes=photo, content_type="image/jpeg", filename="flu.jpg"),
        residents,
    )

    result = recognition.result
    assert result.success is True
    assert result.extracted_fields == VACCINATION_FIELDS
    assert recognition.classification.type == "vaccination"
    assert recognition.classification.source == "keyword"

    assert len(recognition.candidates) == 1
    best = recognition.best_candidate
    assert best.resident_id == "1"
    assert best.matched_fields == frozenset({"chinese_name", "id_number"})
    assert best.confidence == 60
    assert recognition.needs_review is False

    user_prompt = mock_llm_client.complete.await_args.kwargs["messages"][0].content
    assert user_prompt.startswith("Extract 中文姓名")

    entries = await cache.list_entries()
    assert len(entries) == 1
    assert entries[0].prompt_used.startswith("Extract 中文姓名")


@pytest.mark.asyncio
async def test_cache_survives_restart(
    tmp_path, settings, mock_llm_client, fake_ocr_cls, llm_reply, make_image,
):
    mock_llm_client.complete.return_value = llm_reply({"extracted_data": VACCINATION_FIELDS})
    photo = make_image(fmt="PNG")
    request = RecognitionRequest(image_bytes=photo, content_type="image/png")
    db_path = tmp_path / "cache.db"

    first_ocr = fake_ocr_cls(text=VACCINATION_TEXT)
    first = await _pipeline(
        first_ocr, mock_llm_client, SqliteCacheStore(db_path), settings,
    ).process(request)

    second_ocr = fake_ocr_cls(text=VACCINATION_TEXT)
    second = await _pipeline(
        second_ocr, mock_llm_client, SqliteCacheStore(db_path), settings,
    ).process(request)

    assert first.from_cache is False
    assert second.from_cache is True
    assert second.processing_time_ms == 0
    assert second.extracted_fields == first.extracted_fields
    assert second_ocr.calls == 0
    assert mock_llm_client.complete.await_count == 1
