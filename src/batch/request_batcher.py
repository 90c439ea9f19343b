# src/batch/request_batcher.py - v3
"""Debounced, deduplicating request batcher.

Requests are queued per category. The first request in an idle category
opens a batch window; when it closes, requests sharing a key are collapsed
so the fetcher runs once and every caller for that key settles with the
same value or exception. Fetchers for distinct keys run concurrently,
bounded by a semaphore, and fail independently.

A batcher may outlive the event loop it was first used on (the shared
module-level instance does). Concurrency limits are therefore kept per
loop, and a window left open by a loop that has gone away is discarded.
The batcher is not thread-safe.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from typing import Any, TypeVar

from careocr.batch.models import BatchRequest, Fetcher

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_DELAY_MS = 50
DEFAULT_MAX_CONCURRENT = 3


class RequestBatcher:
    """Collect keyed fetches per category and run each key once per window."""

    def __init__(
        self,
        delay_ms: int = DEFAULT_DELAY_MS,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT,
    ) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        self._delay_s = max(delay_ms, 0) / 1000.0
        self._max_concurrent = max_concurrent
        self._semaphores: weakref.WeakKeyDictionary[
            asyncio.AbstractEventLoop, asyncio.Semaphore
        ] = weakref.WeakKeyDictionary()
        self._queues: dict[str, list[BatchRequest[Any]]] = {}
        self._timers: dict[str, tuple[asyncio.AbstractEventLoop, asyncio.TimerHandle]] = {}
        self._tasks: set[asyncio.Task[None]] = set()
        self._active = 0

    @property
    def active_request_count(self) -> int:
        """Number of fetchers currently executing."""
        return self._active

    def add_request(self, category: str, key: str, fetcher: Fetcher[T]) -> asyncio.Future[T]:
        """Queue a fetch and return a future settled with its outcome.

        Must be called from within a running event loop.
        """
        loop = asyncio.get_running_loop()
        window = self._timers.get(category)
        if window is not None and window[0] is not loop:
            stale = self._queues.pop(category, [])
            window[1].cancel()
            del self._timers[category]
            logger.debug("Discarded %d requests queued on a finished loop", len(stale))

        future: asyncio.Future[T] = loop.create_future()
        self._queues.setdefault(category, []).append(
            BatchRequest(key=key, fetcher=fetcher, future=future)
        )

        if category not in self._timers:
            handle = loop.call_later(self._delay_s, self._start_batch, category)
            self._timers[category] = (loop, handle)
        return future

    def clear_queue(self, category: str | None = None) -> None:
        """Discard pending requests without running or settling them.

        Fetchers already executing are not interrupted.
        """
        if category is not None:
            categories = {category}
        else:
            categories = set(self._queues) | set(self._timers)

        for name in categories:
            dropped = self._queues.pop(name, [])
            window = self._timers.pop(name, None)
            if window is not None:
                window[1].cancel()
            if dropped:
                logger.debug("Cleared %d pending requests in %s", len(dropped), name)

    def _semaphore(self) -> asyncio.Semaphore:
        loop = asyncio.get_running_loop()
        semaphore = self._semaphores.get(loop)
        if semaphore is None:
            semaphore = self._semaphores[loop] = asyncio.Semaphore(self._max_concurrent)
        return semaphore

    def _start_batch(self, category: str) -> None:
        self._timers.pop(category, None)
        queue = self._queues.pop(category, [])
        if not queue:
            return
        task = asyncio.get_running_loop().create_task(self._process_batch(category, queue))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _process_batch(
        self, category: str, queue: list[BatchRequest[Any]],
    ) -> None:
        groups: dict[str, list[BatchRequest[Any]]] = {}
        for request in queue:
            groups.setdefault(request.key, []).append(request)

        logger.debug(
            "Batch %s: %d requests, %d unique keys",
            category, len(queue), len(groups),
        )
        try:
            semaphore = self._semaphore()
            await asyncio.gather(
                *(self._execute(group, semaphore) for group in groups.values())
            )
        except asyncio.CancelledError:
            _cancel_pending(queue)
            raise
        except Exception as exc:
            logger.error("Batch %s failed outside its fetchers: %s", category, exc)
            for request in queue:
                if not request.future.done():
                    request.future.set_exception(exc)

    async def _execute(
        self, group: list[BatchRequest[Any]], semaphore: asyncio.Semaphore,
    ) -> None:
        leader = group[0]
        async with semaphore:
            self._active += 1
            try:
                result = await leader.fetcher()
            except asyncio.CancelledError:
                _cancel_pending(group)
                raise
            except Exception as exc:
                logger.debug("Fetcher for key %s failed: %s", leader.key, exc)
                for request in group:
                    if not request.future.done():
                        request.future.set_exception(exc)
            else:
                for request in group:
                    if not request.future.done():
                        request.future.set_result(result)
            finally:
                self._active -= 1


def _cancel_pending(requests: list[BatchRequest[Any]]) -> None:
    for request in requests:
        if not request.future.done():
            request.future.cancel()


_default_batcher = RequestBatcher()


def batch_fetch(category: str, key: str, fetcher: Fetcher[T]) -> asyncio.Future[T]:
    """Queue a fetch on the shared module-level batcher."""
    return _default_batcher.add_request(category, key, fetcher)
