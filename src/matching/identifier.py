# src/matching/identifier.py - v1
"""HKID-style identifier comparison with partial credit for redacted copies.

Documents often print identifiers with masked characters, e.g.
"AXX8686(X)". Masked positions and check-digit parentheses carry no
evidence, so they are excluded from the valid positions before the match
rate is computed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

REDACTION_CHARS = frozenset("X_*()（）")

EXACT_MATCH_WEIGHT = 50
PARTIAL_MIN_MATCHED = 3
PARTIAL_MIN_RATE = 0.6
PARTIAL_WEIGHT_FLOOR = 20
PARTIAL_WEIGHT_CEILING = 45

_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class IdentifierComparison:
    exact: bool
    valid_positions: int
    matched_positions: int
    weight: int

    @property
    def match_rate(self) -> float:
        if not self.valid_positions:
            return 0.0
        return self.matched_positions / self.valid_positions


def normalize_identifier(value: str) -> str:
    """Remove all whitespace and upper-case."""
    return _WHITESPACE_RE.sub("", value).upper()


def partial_weight(match_rate: float) -> int:
    """Linear weight between floor and ceiling as the rate rises above threshold."""
    span = 1.0 - PARTIAL_MIN_RATE
    fraction = (match_rate - PARTIAL_MIN_RATE) / span if span > 0 else 1.0
    fraction = max(0.0, min(1.0, fraction))
    return int(round(PARTIAL_WEIGHT_FLOOR + fraction * (PARTIAL_WEIGHT_CEILING - PARTIAL_WEIGHT_FLOOR)))


def compare_identifiers(extracted: str, resident: str) -> IdentifierComparison:
    """Score an extracted identifier against a resident's identifier."""
    ext = normalize_identifier(extracted)
    res = normalize_identifier(resident)
    if not ext or not res:
        return IdentifierComparison(False, 0, 0, 0)
    if ext == res:
        return IdentifierComparison(True, len(ext), len(ext), EXACT_MATCH_WEIGHT)

    valid = matched = 0
    for i in range(max(len(ext), len(res))):
        ext_char = ext[i] if i < len(ext) else None
        if ext_char is None or ext_char in REDACTION_CHARS:
            continue
        valid += 1
        if i < len(res) and res[i] == ext_char:
            matched += 1

    weight = 0
    if valid and matched >= PARTIAL_MIN_MATCHED and matched / valid >= PARTIAL_MIN_RATE:
        weight = partial_weight(matched / valid)
    return IdentifierComparison(False, valid, matched, weight)
