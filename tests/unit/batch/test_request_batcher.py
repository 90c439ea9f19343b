# tests/unit/batch/test_request_batcher.py - v2
"""Tests for batch/request_batcher.py - debounce, dedup and concurrency."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from careocr.batch.request_batcher import RequestBatcher, batch_fetch


class _Counter:
    """Async fetcher factory that records calls and peak concurrency."""

    def __init__(self, delay: float = 0.0) -> None:
        self.calls: list[str] = []
        self.running = 0
        self.peak = 0
        self._delay = delay

    def fetcher(self, key: str, fail: bool = False):
        async def _fetch():
            self.calls.append(key)
            self.running += 1
            self.peak = max(self.peak, self.running)
            try:
                await asyncio.sleep(self._delay)
                if fail:
                    raise ValueError(f"failed {key}")
                return {"key": key}
            finally:
                self.running -= 1

        return _fetch


class TestRequestBatcher:
    @pytest.mark.asyncio
    async def test_same_key_runs_once(self):
        batcher = RequestBatcher(delay_ms=10)
        counter = _Counter()
        futures = [batcher.add_request("residents", "r1", counter.fetcher("r1")) for _ in range(3)]

        results = await asyncio.gather(*futures)

        assert counter.calls == ["r1"]
        assert results[0] is results[1] is results[2]

    @pytest.mark.asyncio
    async def test_distinct_keys_each_run(self):
        batcher = RequestBatcher(delay_ms=10)
        counter = _Counter()
        a = batcher.add_request("residents", "a", counter.fetcher("a"))
        b = batcher.add_request("residents", "b", counter.fetcher("b"))
        assert await a == {"key": "a"}
        assert await b == {"key": "b"}
        assert sorted(counter.calls) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_duplicate_callers_share_exception(self):
        batcher = RequestBatcher(delay_ms=10)
        counter = _Counter()
        f1 = batcher.add_request("c", "bad", counter.fetcher("bad", fail=True))
        f2 = batcher.add_request("c", "bad", counter.fetcher("bad", fail=True))

        results = await asyncio.gather(f1, f2, return_exceptions=True)

        assert counter.calls == ["bad"]
        assert isinstance(results[0], ValueError)
        assert results[0] is results[1]

    @pytest.mark.asyncio
    async def test_sibling_failure_is_independent(self):
        batcher = RequestBatcher(delay_ms=10)
        counter = _Counter()
        bad = batcher.add_request("c", "bad", counter.fetcher("bad", fail=True))
        good = batcher.add_request("c", "good", counter.fetcher("good"))

        with pytest.raises(ValueError, match="failed bad"):
            await bad
        assert await good == {"key": "good"}

    @pytest.mark.asyncio
    async def test_concurrency_bounded(self):
        batcher = RequestBatcher(delay_ms=5, max_concurrent=2)
        counter = _Counter(delay=0.02)
        futures = [
            batcher.add_request("c", str(i), counter.fetcher(str(i))) for i in range(6)
        ]

        await asyncio.sleep(0.015)
        assert batcher.active_request_count <= 2
        await asyncio.gather(*futures)

        assert counter.peak == 2
        assert len(counter.calls) == 6
        assert batcher.active_request_count == 0

    @pytest.mark.asyncio
    async def test_later_window_refetches(self):
        batcher = RequestBatcher(delay_ms=5)
        counter = _Counter()
        await batcher.add_request("c", "k", counter.fetcher("k"))
        await batcher.add_request("c", "k", counter.fetcher("k"))
        assert counter.calls == ["k", "k"]

    @pytest.mark.asyncio
    async def test_clear_queue_abandons_pending(self):
        batcher = RequestBatcher(delay_ms=10)
        counter = _Counter()
        future = batcher.add_request("c", "k", counter.fetcher("k"))

        batcher.clear_queue("c")
        await asyncio.sleep(0.05)

        assert counter.calls == []
        assert not future.done()

    @pytest.mark.asyncio
    async def test_clear_one_category_only(self):
        batcher = RequestBatcher(delay_ms=10)
        counter = _Counter()
        dropped = batcher.add_request("a", "x", counter.fetcher("x"))
        kept = batcher.add_request("b", "y", counter.fetcher("y"))

        batcher.clear_queue("a")

        assert await kept == {"key": "y"}
        assert counter.calls == ["y"]
        assert not dropped.done()

    @pytest.mark.asyncio
    async def test_clear_all(self):
        batcher = RequestBatcher(delay_ms=10)
        counter = _Counter()
        batcher.add_request("a", "x", counter.fetcher("x"))
        batcher.add_request("b", "y", counter.fetcher("y"))

        batcher.clear_queue()
        await asyncio.sleep(0.05)
        assert counter.calls == []

    @pytest.mark.asyncio
    async def test_new_request_after_clear_opens_new_window(self):
        batcher = RequestBatcher(delay_ms=10)
        counter = _Counter()
        batcher.add_request("c", "old", counter.fetcher("old"))
        batcher.clear_queue("c")
        assert await batcher.add_request("c", "new", counter.fetcher("new")) == {"key": "new"}
        assert counter.calls == ["new"]

    def test_invalid_concurrency(self):
        with pytest.raises(ValueError):
            RequestBatcher(max_concurrent=0)

    @pytest.mark.asyncio
    async def test_module_level_batch_fetch(self):
        counter = _Counter()
        first = batch_fetch("shared", "k", counter.fetcher("k"))
        second = batch_fetch("shared", "k", counter.fetcher("k"))
        assert await first == await second == {"key": "k"}
        assert counter.calls == ["k"]


class TestBatcherLifetime:
    def test_reused_across_event_loops(self):
        batcher = RequestBatcher(delay_ms=1, max_concurrent=1)

        async def run(counter: _Counter) -> list[dict]:
            futures = [batcher.add_request("c", k, counter.fetcher(k)) for k in "abc"]
            return await asyncio.wait_for(asyncio.gather(*futures), timeout=2)

        first, second = _Counter(), _Counter()
        assert [r["key"] for r in asyncio.run(run(first))] == ["a", "b", "c"]
        assert [r["key"] for r in asyncio.run(run(second))] == ["a", "b", "c"]
        assert sorted(second.calls) == ["a", "b", "c"]

    def test_window_left_open_by_finished_loop_is_discarded(self):
        batcher = RequestBatcher(delay_ms=1000)
        counter = _Counter()

        async def abandon() -> None:
            batcher.add_request("c", "lost", counter.fetcher("lost"))

        async def fetch() -> dict:
            batcher._delay_s = 0.001
            return await asyncio.wait_for(
                batcher.add_request("c", "k", counter.fetcher("k")), timeout=2,
            )

        asyncio.run(abandon())
        assert asyncio.run(fetch()) == {"key": "k"}
        assert counter.calls == ["k"]

    @pytest.mark.asyncio
    async def test_batch_failure_settles_every_caller(self, monkeypatch):
        batcher = RequestBatcher(delay_ms=5)
        counter = _Counter()
        monkeypatch.setattr(batcher, "_execute", AsyncMock(side_effect=RuntimeError("broken")))
        futures = [
            batcher.add_request("c", "a", counter.fetcher("a")),
            batcher.add_request("c", "a", counter.fetcher("a")),
            batcher.add_request("c", "b", counter.fetcher("b")),
        ]

        results = await asyncio.wait_for(
            asyncio.gather(*futures, return_exceptions=True), timeout=2,
        )

        assert all(isinstance(r, RuntimeError) for r in results)
        assert counter.calls == []
