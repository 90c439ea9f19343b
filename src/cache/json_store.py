# src/cache/json_store.py - v2
"""JSON file-based cache store (CACHE_BACKEND=json).

One file per fingerprint under CACHE_ROOT, holding the list of entries
written for it, oldest first.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from careocr.cache.base_cache_store import BaseRecognitionCache
from careocr.cache.models import CacheEntry

logger = logging.getLogger(__name__)


class JsonCacheStore(BaseRecognitionCache):
    """File-based cache store using JSON files."""

    def __init__(self, cache_root: Path | str) -> None:
        super().__init__()
        self._root = Path(cache_root).expanduser()
        self._root.mkdir(parents=True, exist_ok=True)

    async def delete(self, fingerprint: str) -> None:
        path = self._entry_path(fingerprint)
        if path.exists():
            path.unlink()

    async def list_entries(self) -> list[CacheEntry]:
        entries: list[CacheEntry] = []
        if not self._root.is_dir():
            return entries
        for path in self._root.glob("*.json"):
            entries.extend(self._read_file(path))
        return sorted(entries, key=lambda e: e.created_at)

    async def _load_latest(self, fingerprint: str) -> CacheEntry | None:
        entries = self._read_file(self._entry_path(fingerprint))
        if not entries:
            return None
        return max(reversed(entries), key=lambda e: e.created_at)

    async def _append(self, entry: CacheEntry) -> None:
        path = self._entry_path(entry.fingerprint)
        entries = self._read_file(path)
        entries.append(entry)
        payload = [json.loads(e.model_dump_json()) for e in entries]
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp.replace(path)

    def _read_file(self, path: Path) -> list[CacheEntry]:
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return [CacheEntry(**item) for item in data]
        except (json.JSONDecodeError, ValidationError, TypeError) as e:
            logger.warning("Failed to read cache file %s: %s", path.name, e)
            return []

    def _entry_path(self, fingerprint: str) -> Path:
        safe_key = fingerprint.replace("/", "_").replace("\\", "_")
        return self._root / f"{safe_key}.json"
