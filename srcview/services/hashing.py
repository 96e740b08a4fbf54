"""
Content fingerprints for versioning highlight passes.

A content version is the xxh64 digest of the buffer text. Style
registration and stale-result checks compare versions instead of whole
buffers.
"""

from __future__ import annotations

import xxhash


def content_version(text: str, encoding: str = 'utf-8') -> str:
    """Version key for a buffer's text. Lone surrogates are kept, never rejected."""
    return xxhash.xxh64(text.encode(encoding, errors='surrogatepass')).hexdigest()
