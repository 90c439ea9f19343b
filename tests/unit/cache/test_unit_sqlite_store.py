# tests/unit/cache/test_unit_sqlite_store.py - v2
"""Tests for cache/sqlite_store.py."""

from __future__ import annotations

import sqlite3

import pytest
import pytest_asyncio

from careocr.cache.sqlite_store import SqliteCacheStore
from careocr.core.models import RecognitionResult

FP = "b" * 64


def _success(text: str) -> RecognitionResult:
    return RecognitionResult(success=True, raw_text=text, extracted_fields={})


@pytest_asyncio.fixture
async def store(tmp_path):
    s = SqliteCacheStore(tmp_path / "cache.db")
    yield s
    await s.close()


class TestSqliteCacheStore:
    @pytest.mark.asyncio
    async def test_put_and_get(self, store):
        await store.put(FP, _success("hello"))
        hit = await store.get(FP)
        assert hit.raw_text == "hello"
        assert hit.processing_time_ms == 0

    @pytest.mark.asyncio
    async def test_most_recent_row_wins(self, store):
        await store.put(FP, _success("one"))
        await store.put(FP, _success("two"))
        await store.put(FP, _success("three"))
        assert (await store.get(FP)).raw_text == "three"

    @pytest.mark.asyncio
    async def test_failed_rows_ignored_by_lookup(self, tmp_path, store):
        await store.put(FP, _success("good"))
        conn = sqlite3.connect(str(tmp_path / "cache.db"))
        conn.execute(
            "INSERT INTO recognition_log (fingerprint, success, data, created_at) VALUES (?, 0, ?, ?)",
            (FP, "{}", "9999-12-31T00:00:00+00:00"),
        )
        conn.commit()
        conn.close()
        assert (await store.get(FP)).raw_text == "good"

    @pytest.mark.asyncio
    async def test_other_fingerprint_is_miss(self, store):
        await store.put(FP, _success("x"))
        assert await store.get("c" * 64) is None

    @pytest.mark.asyncio
    async def test_persists(self, tmp_path, store):
        await store.put(FP, _success("kept"))
        reopened = SqliteCacheStore(tmp_path / "cache.db")
        try:
            assert (await reopened.get(FP)).raw_text == "kept"
        finally:
            await reopened.close()

    @pytest.mark.asyncio
    async def test_delete_and_list(self, store):
        await store.put(FP, _success("x"))
        await store.put("c" * 64, _success("y"))
        assert len(await store.list_entries()) == 2
        await store.delete(FP)
        assert [e.fingerprint for e in await store.list_entries()] == ["c" * 64]
