# src/batch/models.py - v3
"""Queue entry for the request batcher."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, TypeVar

T = TypeVar("T")

Fetcher = Callable[[], Awaitable[T]]


@dataclass
class BatchRequest(Generic[T]):
    """A caller waiting on a keyed fetch within one batch window."""

    key: str
    fetcher: Fetcher[T]
    future: asyncio.Future[T]
