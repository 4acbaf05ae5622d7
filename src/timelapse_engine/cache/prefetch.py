"""
Prefetch Cache
==============

Best-effort pool of already fetched frame bytes, keyed by URI.

Browsing and playback call ``ensure_loaded`` to warm frames ahead of
display; consumers call ``get`` which serves from the pool when it can and
falls back to a direct load when it cannot.

Policy:
    - On resolution: warm the first K frames of the valid subsequence
    - During playback: warm the next M frames after the one shown

Design Rules:
    - ensure_loaded is fire-and-forget and idempotent per URI
    - A failed prefetch is logged and forgotten; the next ``get`` retries
    - Concurrent prefetches race freely; ``get`` always re-checks the pool
    - No eviction (bounded by the sequence size in practice)
    - Correctness never depends on the cache: a cold frame still loads
"""

import asyncio
import logging
from typing import Dict, List, Optional, Sequence

from timelapse_engine.models.errors import FrameLoadError
from timelapse_engine.models.frame import ResolvedFrame
from timelapse_engine.storage.loader import FrameLoader


logger = logging.getLogger(__name__)


class PrefetchCache:
    """
    Ownerless URI → bytes pool with in-flight de-duplication.

    Attributes:
        loader: Byte source used for both prefetch and on-demand loads
        hits: Number of ``get`` calls served from the pool
        misses: Number of ``get`` calls that loaded directly

    Example:
        cache = PrefetchCache(loader)
        cache.prefetch(sequence.valid, start=0, count=20)

        data = await cache.get(frame.uri)
    """

    def __init__(self, loader: FrameLoader) -> None:
        self.loader = loader
        self._data: Dict[str, bytes] = {}
        self._inflight: Dict[str, asyncio.Task] = {}
        self.hits: int = 0
        self.misses: int = 0
        self.failures: int = 0

    def __contains__(self, uri: str) -> bool:
        return uri in self._data

    @property
    def size(self) -> int:
        """Number of frames held."""
        return len(self._data)

    @property
    def pending(self) -> int:
        """Number of prefetches in flight."""
        return len(self._inflight)

    def ensure_loaded(self, uri: str) -> Optional[asyncio.Task]:
        """
        Start fetching a URI in the background.

        Must be called from a running event loop.

        Returns:
            The in-flight task, or None if the URI is already held
        """
        if uri in self._data:
            return None
        task = self._inflight.get(uri)
        if task is not None:
            return task

        task = asyncio.get_running_loop().create_task(
            self._fetch(uri), name=f"prefetch:{uri}"
        )
        task.add_done_callback(self._on_prefetch_done)
        self._inflight[uri] = task
        return task

    def prefetch(
        self,
        frames: Sequence[ResolvedFrame],
        start: int = 0,
        count: int = 20,
    ) -> List[asyncio.Task]:
        """
        Warm ``count`` frames starting at index ``start``.

        Frames without a URI are skipped.

        Returns:
            Tasks started or already in flight
        """
        tasks = []
        for frame in frames[max(start, 0):max(start, 0) + count]:
            if frame.uri is None:
                continue
            task = self.ensure_loaded(frame.uri)
            if task is not None:
                tasks.append(task)
        return tasks

    async def get(self, uri: str) -> bytes:
        """
        Frame bytes, from the pool or loaded on demand.

        Raises:
            FrameLoadError: If the on-demand load fails
        """
        data = self._data.get(uri)
        if data is not None:
            self.hits += 1
            return data

        task = self._inflight.get(uri)
        if task is not None:
            try:
                data = await asyncio.shield(task)
                self.hits += 1
                return data
            except FrameLoadError:
                pass
            except asyncio.CancelledError:
                if not task.cancelled():
                    raise

        self.misses += 1
        data = await self.loader.load(uri)
        self._data[uri] = data
        return data

    def clear(self) -> None:
        """Drop held frames and cancel in-flight prefetches."""
        for task in self._inflight.values():
            task.cancel()
        self._inflight.clear()
        self._data.clear()

    def metrics(self) -> dict:
        """Cache metrics for observability."""
        return {
            "size": self.size,
            "pending": self.pending,
            "hits": self.hits,
            "misses": self.misses,
            "failures": self.failures,
        }

    async def _fetch(self, uri: str) -> bytes:
        try:
            data = await self.loader.load(uri)
        except FrameLoadError:
            raise
        except Exception as e:
            raise FrameLoadError(f"Unexpected error loading {uri}: {e}", uri=uri) from e
        finally:
            self._inflight.pop(uri, None)
        self._data[uri] = data
        return data

    def _on_prefetch_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.failures += 1
            logger.warning(f"Prefetch failed: {exc}")
