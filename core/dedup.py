from __future__ import annotations

import hashlib


def content_hash(text: str) -> str:
    """SHA-256 hex digest of the rendered message, used as its fingerprint."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def hashes_equal(first: str, second: str) -> bool:
    return first == second
