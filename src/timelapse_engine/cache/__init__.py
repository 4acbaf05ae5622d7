"""
Cache Module
============

Best-effort prefetching of frame bytes.

Components:
    - PrefetchCache: URI-keyed pool with in-flight de-duplication
"""

from timelapse_engine.cache.prefetch import PrefetchCache


__all__ = [
    "PrefetchCache",
]
