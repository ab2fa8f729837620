"""Utility modules for the DOA kernel."""

from doa_kernel.utils.hashing import canonicalize_json, hash_payload

__all__ = [
    "canonicalize_json",
    "hash_payload",
]
