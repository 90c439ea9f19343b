# src/llm/retry.py - v3
"""Bounded retries for extraction and vision-OCR calls.

Provider SDK exceptions are mapped to a small set of error kinds. Only
kinds with a RetryConfig are retried; everything else fails on the first
attempt. Timeouts are never retried here because FieldExtractor and
BaseOCRClient already put a deadline around the whole call.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

RATE_LIMIT = "rate_limit"
SERVER_ERROR = "server_error"
CONNECTION = "connection"
TIMEOUT = "timeout"
UNKNOWN = "unknown"

_SERVER_MARKERS = ("500", "502", "503", "504", "overloaded", "unavailable")


class LLMRetryExhausted(Exception):
    """Raised with the last provider error once a call is given up on."""

    def __init__(self, operation: str, error_type: str, attempts: int, last_error: Exception):
        self.operation = operation
        self.error_type = error_type
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"'{operation}' gave up after {attempts} attempt(s) [{error_type}]: {last_error}"
        )


@dataclass(frozen=True)
class RetryConfig:
    max_retries: int
    base_delay_s: float
    backoff_factor: float = 2.0
    jitter: bool = True

    def delay_for(self, retry_index: int) -> float:
        """Sleep before the retry_index-th retry (0-based)."""
        delay = self.base_delay_s * (self.backoff_factor ** retry_index)
        if self.jitter:
            delay *= random.uniform(0.5, 1.5)  # noqa: S311
        return delay


DEFAULT_RETRY_CONFIGS: dict[str, RetryConfig] = {
    RATE_LIMIT: RetryConfig(max_retries=3, base_delay_s=2.0),
    SERVER_ERROR: RetryConfig(max_retries=2, base_delay_s=2.0),
    CONNECTION: RetryConfig(max_retries=2, base_delay_s=1.0, backoff_factor=1.0),
}


def classify_error(error: Exception) -> str:
    """Map a provider exception onto an error kind.

    SDK errors expose the HTTP status as ``status_code``; other errors are
    classified from their type name and message.
    """
    status = getattr(error, "status_code", None)
    if isinstance(status, int):
        if status == 429:
            return RATE_LIMIT
        if status >= 500:
            return SERVER_ERROR
        return UNKNOWN

    name = type(error).__name__.lower()
    text = str(error).lower()
    if "timeout" in name or "timed out" in text:
        return TIMEOUT
    if "429" in text or "rate limit" in text or "ratelimit" in name:
        return RATE_LIMIT
    if any(marker in text for marker in _SERVER_MARKERS):
        return SERVER_ERROR
    if "connect" in name or "connection" in text:
        return CONNECTION
    return UNKNOWN


async def with_retry(
    fn: Callable[..., Awaitable[Any]],
    *args: Any,
    operation: str = "llm_call",
    retry_configs: dict[str, RetryConfig] | None = None,
    **kwargs: Any,
) -> Any:
    """Await fn(*args, **kwargs), retrying retryable failures with backoff.

    Raises:
        LLMRetryExhausted: On a non-retryable error or when retries run out.
    """
    configs = DEFAULT_RETRY_CONFIGS if retry_configs is None else retry_configs
    retries = 0

    while True:
        try:
            return await fn(*args, **kwargs)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            kind = classify_error(e)
            config = configs.get(kind)
            if config is None or retries >= config.max_retries:
                raise LLMRetryExhausted(operation, kind, retries + 1, e) from e

            delay = config.delay_for(retries)
            retries += 1
            logger.warning(
                "%s failed with %s, retry %d/%d in %.1fs",
                operation, kind, retries, config.max_retries, delay,
            )
            await asyncio.sleep(delay)
