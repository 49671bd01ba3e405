import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, Hashable, Tuple

from segskip.logging import get_logger

log = get_logger(__name__)


class CacheService:
    """
    In-memory TTL cache with in-flight request coalescing.
    Cache is per-instance and lost on restart; entries are never persisted.
    """

    def __init__(
        self,
        ttl_seconds: float,
        name: str = "cache",
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_seconds = ttl_seconds
        self.name = name
        self._clock = clock
        # Dict of cache_key -> (value, cached_at_timestamp)
        self._cache: Dict[Hashable, Tuple[Any, float]] = {}
        # Dict of cache_key -> shared fetch task
        self._pending: Dict[Hashable, asyncio.Task] = {}
        self._sweeper: asyncio.Task | None = None

    def __len__(self) -> int:
        return len(self._cache)

    def get(self, key: Hashable) -> Any | None:
        """Get a cached value, or None when absent or expired."""
        if key not in self._cache:
            return None

        value, cached_at = self._cache[key]

        # Expired entries are treated as absent
        if self._clock() - cached_at >= self.ttl_seconds:
            del self._cache[key]
            return None

        return value

    def contains(self, key: Hashable) -> bool:
        return self.get(key) is not None

    def set(self, key: Hashable, value: Any) -> None:
        """Cache a value."""
        self._cache[key] = (value, self._clock())

    def items(self) -> list[Tuple[Hashable, Any]]:
        """Snapshot of the (key, value) pairs that have not expired."""
        now = self._clock()
        return [
            (k, value)
            for k, (value, cached_at) in self._cache.items()
            if now - cached_at < self.ttl_seconds
        ]

    def pending(self, key: Hashable) -> bool:
        return key in self._pending

    async def get_or_fetch(
        self,
        key: Hashable,
        fetch: Callable[[], Awaitable[Tuple[Any, bool]]],
    ) -> Any:
        """
        Return the cached value for key, or run fetch once for all callers.

        fetch returns (value, cacheable). Concurrent callers for the same key
        share one task; cancelling one caller does not cancel the fetch.
        """
        cached = self.get(key)
        if cached is not None:
            return cached

        # No await between the lookup and the insert
        task = self._pending.get(key)
        if task is None:
            task = asyncio.ensure_future(self._run_fetch(key, fetch))
            self._pending[key] = task

        return await asyncio.shield(task)

    async def _run_fetch(self, key, fetch) -> Any:
        try:
            value, cacheable = await fetch()
            if cacheable:
                self.set(key, value)
            return value
        finally:
            self._pending.pop(key, None)

    def invalidate(self, predicate: Callable[[Hashable], bool]) -> int:
        """Drop every entry whose key matches predicate."""
        keys = [k for k in self._cache if predicate(k)]
        for k in keys:
            del self._cache[k]
        return len(keys)

    def clear(self) -> None:
        self._cache.clear()

    def clear_expired(self) -> int:
        """Remove expired entries (the sweeper calls this periodically)."""
        now = self._clock()
        expired_keys = [
            k for k, (_, cached_at) in self._cache.items() if now - cached_at >= self.ttl_seconds
        ]
        for k in expired_keys:
            del self._cache[k]
        if expired_keys:
            log.debug("cache.swept", cache=self.name, removed=len(expired_keys))
        return len(expired_keys)

    def start_sweeper(self, interval: float | None = None) -> None:
        """Start the background sweep, every ttl/3 seconds by default."""
        if self._sweeper is not None and not self._sweeper.done():
            return
        interval = interval if interval is not None else self.ttl_seconds / 3
        self._sweeper = asyncio.get_running_loop().create_task(self._sweep_forever(interval))

    async def _sweep_forever(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self.clear_expired()

    def stop_sweeper(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        self._sweeper = None
