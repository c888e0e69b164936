"""Runtime cache keyed by integration id.

This module keeps compiled ``Runtime`` instances so an integration's source is
extracted, transpiled and synthesized once, then reused across invocations.
"""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from typing import Awaitable, Callable, Dict, Generic, Optional, TypeVar

V = TypeVar("V")

EVICTION_POLICIES = ("fifo", "lru")


class RuntimeCache(Generic[V]):
    """Bounded cache for compiled runtimes.

    This cache handles:
    - Reuse of compiled runtimes per integration
    - Eviction once ``max_size`` entries are held
    - Safe access from concurrent coroutines

    With ``eviction="fifo"`` (the default) the entry inserted longest ago is
    evicted; storing a key again counts as a fresh insertion. With
    ``eviction="lru"`` a ``get`` hit also marks the entry as recently used.

    Attributes:
        max_size: Maximum number of runtimes to cache (0 = unlimited)
        eviction: ``"fifo"`` or ``"lru"``
    """

    def __init__(self, max_size: int = 100, eviction: str = "fifo") -> None:
        """Initialize the runtime cache.

        Args:
            max_size: Maximum number of runtimes to cache (0 = unlimited)
            eviction: Eviction policy, ``"fifo"`` or ``"lru"``

        Raises:
            ValueError: If ``max_size`` is negative or the policy is unknown
        """
        if max_size < 0:
            raise ValueError("max_size must be >= 0")
        if eviction not in EVICTION_POLICIES:
            raise ValueError(f"eviction must be one of {EVICTION_POLICIES}, got {eviction!r}")
        self._entries: "OrderedDict[str, V]" = OrderedDict()
        self._max_size = max_size
        self._eviction = eviction
        self._lock = asyncio.Lock()
        self._loading: Dict[str, "asyncio.Future[V]"] = {}
        self._logger = logging.getLogger(__name__)

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def eviction(self) -> str:
        return self._eviction

    async def get(self, key: str) -> Optional[V]:
        """Get a runtime from the cache.

        Args:
            key: Cache key (the integration id)

        Returns:
            Cached runtime or None if not found
        """
        async with self._lock:
            value = self._entries.get(key)
            if value is not None and self._eviction == "lru":
                self._entries.move_to_end(key)
            return value

    async def put(self, key: str, value: V) -> None:
        """Store a runtime in the cache, evicting one entry if it is full.

        Args:
            key: Cache key
            value: Runtime to cache
        """
        async with self._lock:
            self._put_locked(key, value)

    def _put_locked(self, key: str, value: V) -> None:
        # a re-put is a fresh insertion under both policies
        self._entries.pop(key, None)
        if self._max_size > 0 and len(self._entries) >= self._max_size:
            evicted, _ = self._entries.popitem(last=False)
            self._logger.debug("RuntimeCache.put: evicted %s (%s)", evicted, self._eviction)
        self._entries[key] = value

    async def get_or_load(self, key: str, loader: Callable[[], Awaitable[V]]) -> V:
        """Return the cached runtime for ``key``, building it with ``loader`` on a miss.

        Concurrent misses for the same key share one load. The lock is not held
        while ``loader`` runs, so lookups of other keys never wait on it. A load
        whose key is removed or cleared before it finishes is returned to its
        callers but not stored.
        """
        async with self._lock:
            value = self._entries.get(key)
            if value is not None:
                if self._eviction == "lru":
                    self._entries.move_to_end(key)
                return value
            pending = self._loading.get(key)
            if pending is not None:
                owner = False
            else:
                pending = asyncio.get_running_loop().create_future()
                self._loading[key] = pending
                owner = True

        if not owner:
            return await asyncio.shield(pending)

        try:
            value = await loader()
        except asyncio.CancelledError:
            await self._finish_load(key, pending)
            pending.cancel()
            raise
        except Exception as exc:
            await self._finish_load(key, pending)
            pending.set_exception(exc)
            # mark retrieved so a future nobody awaits is not logged
            pending.exception()
            raise

        async with self._lock:
            if self._loading.get(key) is pending:
                del self._loading[key]
                self._put_locked(key, value)
        pending.set_result(value)
        return value

    async def _finish_load(self, key: str, pending: "asyncio.Future[V]") -> None:
        async with self._lock:
            if self._loading.get(key) is pending:
                del self._loading[key]

    async def remove(self, key: str) -> bool:
        """Remove a runtime from the cache.

        Args:
            key: Cache key

        Returns:
            True if an entry was removed
        """
        async with self._lock:
            self._loading.pop(key, None)
            return self._entries.pop(key, None) is not None

    async def clear(self) -> None:
        """Drop every cached runtime."""
        async with self._lock:
            self._entries.clear()
            self._loading.clear()

    async def has(self, key: str) -> bool:
        async with self._lock:
            return key in self._entries

    def size(self) -> int:
        """Get the current cache size."""
        return len(self._entries)

    def keys(self) -> list:
        return list(self._entries.keys())
