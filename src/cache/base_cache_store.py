# src/cache/base_cache_store.py - v2
"""Abstract recognition cache interface.

Subclasses implement the raw storage primitives (_load_latest, _append,
delete, list_entries). The public get/put enforce the cache contract for
every backend: only successful results are stored, the most recent entry
wins, and hits are replayed verbatim with processing_time_ms = 0.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from careocr.cache.models import CacheEntry, CacheStats
from careocr.core.models import RecognitionResult

logger = logging.getLogger(__name__)


class BaseRecognitionCache(ABC):
    """Unified interface for recognition cache backends."""

    def __init__(self) -> None:
        self.stats = CacheStats()

    async def get(self, fingerprint: str) -> RecognitionResult | None:
        """Most recent successful result for a fingerprint, or None."""
        entry = await self._load_latest(fingerprint)
        if entry is None or not entry.result.success:
            self.stats.misses += 1
            return None
        self.stats.hits += 1
        return entry.result.model_copy(
            update={
                "processing_time_ms": 0,
                "from_cache": True,
                "fingerprint": fingerprint,
            }
        )

    async def put(
        self,
        fingerprint: str,
        result: RecognitionResult,
        prompt_used: str | None = None,
    ) -> bool:
        """Store a successful result. Failed results are never cached.

        Returns:
            True if the entry was written.
        """
        if not result.success:
            self.stats.skipped_failures += 1
            logger.debug("Not caching failed result for %s", fingerprint[:12])
            return False
        entry = CacheEntry(
            fingerprint=fingerprint,
            result=result.model_copy(update={"from_cache": False}),
            prompt_used=prompt_used,
        )
        await self._append(entry)
        self.stats.writes += 1
        return True

    @abstractmethod
    async def delete(self, fingerprint: str) -> None:
        """Remove all entries for a fingerprint."""

    @abstractmethod
    async def list_entries(self) -> list[CacheEntry]:
        """List all stored entries, oldest first."""

    @abstractmethod
    async def _load_latest(self, fingerprint: str) -> CacheEntry | None:
        """Newest stored entry for a fingerprint."""

    @abstractmethod
    async def _append(self, entry: CacheEntry) -> None:
        """Persist a new entry without touching older ones."""

    async def close(self) -> None:
        """Release backend resources."""
