# src/cache/fingerprint.py - v4
"""Content fingerprint of a normalized image payload, used as cache key.

The full payload is hashed by default. A prefix length can be configured
to hash only the first N characters for speed; two images whose encoded
prefixes coincide then collide and share a cache entry. That is tolerable
for a performance cache and unacceptable for any integrity guarantee.
"""

from __future__ import annotations

import hashlib

FINGERPRINT_LENGTH = 64


def compute_fingerprint(payload: str | bytes, prefix_length: int | None = None) -> str:
    """SHA-256 hex digest of a normalized image payload.

    Args:
        payload: Base64 payload (str) or raw encoded bytes.
        prefix_length: Hash only the first N characters/bytes. None = all.

    Returns:
        64-character lowercase hex string. Identical payloads always
        yield identical fingerprints.
    """
    data = payload.encode("ascii") if isinstance(payload, str) else payload
    if prefix_length is not None:
        if prefix_length <= 0:
            raise ValueError("prefix_length must be positive")
        data = data[:prefix_length]
    return hashlib.sha256(data).hexdigest()
