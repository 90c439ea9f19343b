# src/core/scoring.py - v1
"""Helpers for 0-100 integer confidence scores."""

from __future__ import annotations

import math
from typing import Any


def clamp_score(value: float) -> int:
    """Round and clamp a score into [0, 100]."""
    if math.isnan(value):
        return 0
    return max(0, min(100, int(round(value))))


def coerce_score(value: Any) -> int | None:
    """Interpret a service-provided confidence as a 0-100 integer.

    Fractions in [0, 1] are scaled to percentages. Strings such as "85" or
    "85%" are accepted. Returns None for anything unparseable.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        value = value.strip().rstrip("%").strip()
        try:
            value = float(value)
        except ValueError:
            return None
    if not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and 0.0 <= value <= 1.0:
        value = value * 100
    return clamp_score(float(value))
