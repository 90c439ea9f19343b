# src/cache/memory_store.py - v1
"""In-process cache store (default CACHE_BACKEND=memory)."""

from __future__ import annotations

from collections import defaultdict

from careocr.cache.base_cache_store import BaseRecognitionCache
from careocr.cache.models import CacheEntry


class MemoryCacheStore(BaseRecognitionCache):
    """Dict-of-lists store; lives as long as the process."""

    def __init__(self) -> None:
        super().__init__()
        self._entries: dict[str, list[CacheEntry]] = defaultdict(list)

    async def delete(self, fingerprint: str) -> None:
        self._entries.pop(fingerprint, None)

    async def list_entries(self) -> list[CacheEntry]:
        entries = [e for bucket in self._entries.values() for e in bucket]
        return sorted(entries, key=lambda e: e.created_at)

    async def _load_latest(self, fingerprint: str) -> CacheEntry | None:
        bucket = self._entries.get(fingerprint)
        if not bucket:
            return None
        # Equal timestamps keep insertion order; max() returns the first, so scan reversed.
        return max(reversed(bucket), key=lambda e: e.created_at)

    async def _append(self, entry: CacheEntry) -> None:
        self._entries[entry.fingerprint].append(entry)
