# src/cache/models.py - v2
"""Cache domain models: CacheEntry and lookup stats."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from careocr.core.models import RecognitionResult


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CacheEntry(BaseModel):
    """One successful recognition stored under its image fingerprint.

    Entries are append-only; the newest entry for a fingerprint wins.
    """

    fingerprint: str
    result: RecognitionResult
    created_at: datetime = Field(default_factory=_utcnow)
    prompt_used: str | None = None


class CacheStats(BaseModel):
    """Hit/miss counters kept by a store instance."""

    hits: int = 0
    misses: int = 0
    writes: int = 0
    skipped_failures: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0
