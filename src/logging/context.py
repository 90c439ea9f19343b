# src/logging/context.py - v2
"""Contextual logging support: attach request_id, fingerprint and stage to records.

Each recognition request runs as its own asyncio task, so context
variables keep concurrent requests from bleeding into each other's logs.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)
_fingerprint: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "fingerprint", default=None
)
_stage: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "stage", default=None
)


@dataclass
class LogContext:
    """Snapshot of the current logging context."""

    request_id: str | None = None
    fingerprint: str | None = None
    stage: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        request_id=_request_id.get(),
        fingerprint=_fingerprint.get(),
        stage=_stage.get(),
    )


def set_request_context(request_id: str) -> None:
    """Set request-level context (called once per recognition)."""
    _request_id.set(request_id)
    _fingerprint.set(None)
    _stage.set(None)


def set_fingerprint(fingerprint: str) -> None:
    """Attach the image fingerprint once it is known."""
    # Short prefix is enough to correlate log lines.
    _fingerprint.set(fingerprint[:12])


def set_stage(stage: str | None) -> None:
    """Mark the pipeline stage currently executing."""
    _stage.set(stage)


def clear_context() -> None:
    """Reset all context variables."""
    _request_id.set(None)
    _fingerprint.set(None)
    _stage.set(None)
