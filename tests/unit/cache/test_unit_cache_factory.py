# tests/unit/cache/test_unit_cache_factory.py - v2
"""Tests for cache/cache_factory.py."""

from __future__ import annotations

import pytest

from careocr.cache.cache_factory import create_cache_store
from careocr.cache.json_store import JsonCacheStore
from careocr.cache.memory_store import MemoryCacheStore
from careocr.cache.sqlite_store import SqliteCacheStore
from careocr.config.settings import Settings


class TestCreateCacheStore:
    def test_default_memory(self):
        assert isinstance(create_cache_store(), MemoryCacheStore)

    def test_json(self, tmp_path):
        s = Settings(_env_file=None, cache_backend="json", cache_root=tmp_path)
        assert isinstance(create_cache_store(s), JsonCacheStore)

    @pytest.mark.asyncio
    async def test_sqlite(self, tmp_path):
        s = Settings(_env_file=None, cache_backend="sqlite", cache_root=tmp_path)
        store = create_cache_store(s)
        try:
            assert isinstance(store, SqliteCacheStore)
            assert (tmp_path / "careocr_cache.db").exists()
        finally:
            await store.close()

    def test_redis(self):
        pytest.importorskip("redis")
        from careocr.cache.redis_store import RedisCacheStore

        s = Settings(_env_file=None, cache_backend="redis", cache_redis_url="redis://localhost:6379/0")
        assert isinstance(create_cache_store(s), RedisCacheStore)
