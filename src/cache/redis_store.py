# src/cache/redis_store.py - v2
"""Redis-based cache store (CACHE_BACKEND=redis).

Requires the 'redis' package (pip install careocr[redis]). Each
fingerprint maps to a Redis list of serialized entries; RPUSH keeps the
newest entry at the tail, so concurrent writers never need a lock.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from careocr.cache.base_cache_store import BaseRecognitionCache
from careocr.cache.models import CacheEntry

logger = logging.getLogger(__name__)

_KEY_PREFIX = "careocr:recognition:"
_INDEX_KEY = "careocr:recognition:__index__"


class RedisCacheStore(BaseRecognitionCache):
    """Redis-backed cache store shared by several app instances."""

    def __init__(self, redis_url: str = "", client: Any = None) -> None:
        super().__init__()
        if client is None:
            try:
                import redis.asyncio as aioredis
            except ImportError as e:
                raise ImportError(
                    "redis package required: pip install careocr[redis]"
                ) from e
            client = aioredis.Redis.from_url(redis_url, decode_responses=True)
        self._client = client

    async def delete(self, fingerprint: str) -> None:
        await self._client.delete(f"{_KEY_PREFIX}{fingerprint}")
        await self._client.srem(_INDEX_KEY, fingerprint)

    async def list_entries(self) -> list[CacheEntry]:
        entries: list[CacheEntry] = []
        for fingerprint in await self._client.smembers(_INDEX_KEY):
            for raw in await self._client.lrange(f"{_KEY_PREFIX}{fingerprint}", 0, -1):
                entry = self._decode(raw)
                if entry is not None:
                    entries.append(entry)
        return sorted(entries, key=lambda e: e.created_at)

    async def _load_latest(self, fingerprint: str) -> CacheEntry | None:
        raw = await self._client.lindex(f"{_KEY_PREFIX}{fingerprint}", -1)
        if raw is None:
            return None
        return self._decode(raw)

    async def _append(self, entry: CacheEntry) -> None:
        await self._client.rpush(
            f"{_KEY_PREFIX}{entry.fingerprint}", entry.model_dump_json()
        )
        await self._client.sadd(_INDEX_KEY, entry.fingerprint)

    async def close(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _decode(raw: str | bytes) -> CacheEntry | None:
        try:
            return CacheEntry.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("Failed to deserialize cache entry: %s", e)
            return None
