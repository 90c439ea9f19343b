# src/logging/handlers.py - v3
"""File output for the careocr log: size-rotated, UTF-8 so resident names survive."""

from __future__ import annotations

import re
from logging.handlers import RotatingFileHandler
from pathlib import Path

_UNITS = {"B": 0, "KB": 10, "MB": 20, "GB": 30}
_SIZE_RE = re.compile(r"(\d+)\s*([KMG]?B)", re.IGNORECASE)


def parse_size(size_str: str) -> int:
    """'10MB' / '512 KB' / '100B' to a byte count (binary multiples)."""
    match = _SIZE_RE.fullmatch(size_str.strip())
    if match is None:
        raise ValueError(f"Invalid size format: {size_str!r}. Use e.g. '10MB'.")
    amount, unit = match.groups()
    return int(amount) << _UNITS[unit.upper()]


def create_rotating_handler(
    log_file: str | Path,
    rotation: str = "10MB",
    retention: int = 30,
) -> RotatingFileHandler:
    path = Path(log_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(
        path,
        maxBytes=parse_size(rotation),
        backupCount=retention,
        encoding="utf-8",
    )
