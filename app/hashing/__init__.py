"""
app/hashing package marker.
"""

from app.hashing.dedupe_hash import (
    CanonicalHashError,
    canonical_stringify,
    compute_dedupe_hash,
    sha256_hex,
)

__all__ = [
    "CanonicalHashError",
    "canonical_stringify",
    "compute_dedupe_hash",
    "sha256_hex",
]
