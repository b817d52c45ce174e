# =============================================================================
# Rocket.Chat Python Driver -- Method Cache
# =============================================================================
#
# Per-method LRU caches of server method results, keyed by a single string
# argument.  The cached value is the call's future itself, stored before it
# settles, so concurrent lookups for the same key share one remote call.
# Failed futures stay cached until they expire.
# =============================================================================

from __future__ import annotations

import asyncio
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from ._logging import logger
from .errors import CacheError

if TYPE_CHECKING:
    from .transport import Transport


@dataclass(slots=True)
class CacheEntry:
    """One cached call result.

    ``value`` is normally an ``asyncio.Future`` (pending, settled or
    failed); values inserted with :meth:`MethodCache.put` may be plain.
    """

    key: str
    value: Any
    inserted_at: float
    touched_at: float

    @property
    def state(self) -> str:
        """``"pending"``, ``"settled"`` or ``"failed"``."""
        if not isinstance(self.value, asyncio.Future):
            return "settled"
        if not self.value.done():
            return "pending"
        if self.value.cancelled() or self.value.exception() is not None:
            return "failed"
        return "settled"


class MethodCacheBucket:
    """LRU cache for a single server method.

    Args:
        method: Server method name.
        capacity: Max entries; the least recently touched is evicted first.
        max_age: Seconds before an entry is treated as absent.  ``None`` or
            ``0`` keeps entries until evicted.
        clock: Monotonic time source in seconds.
    """

    def __init__(
        self,
        method: str,
        capacity: int,
        max_age: float | None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if capacity < 1:
            raise ValueError(f"Cache capacity for {method} must be at least 1")
        self.method = method
        self.capacity = capacity
        self.max_age = max_age or None
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def keys(self) -> list[str]:
        """Keys from least to most recently used."""
        return list(self._entries)

    def get(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        now = self._clock()
        if self._is_expired(entry, now) or _is_cancelled(entry.value):
            del self._entries[key]
            return None
        entry.touched_at = now
        self._entries.move_to_end(key)
        return entry

    def put(self, key: str, value: Any) -> CacheEntry:
        now = self._clock()
        entry = CacheEntry(key=key, value=value, inserted_at=now, touched_at=now)
        self._entries[key] = entry
        self._entries.move_to_end(key)
        while len(self._entries) > self.capacity:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("[%s] Evicted cache key %s", self.method, evicted)
        return entry

    def clear(self) -> None:
        self._entries.clear()

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return self.max_age is not None and now - entry.inserted_at > self.max_age


class MethodCache:
    """Registry of method buckets bound to a transport.

    Only methods with a registered bucket are cacheable, and only by a
    single string argument.
    """

    def __init__(
        self,
        transport: Transport | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._transport = transport
        self._clock = clock
        self._buckets: dict[str, MethodCacheBucket] = {}

    def use(self, transport: Transport) -> None:
        """Bind the transport used to fetch missing entries."""
        self._transport = transport

    def create(self, method: str, *, capacity: int, max_age: float | None) -> None:
        """Register (or reset) the bucket for *method*."""
        self._buckets[method] = MethodCacheBucket(
            method, capacity, max_age, clock=self._clock
        )

    def has(self, method: str) -> bool:
        return method in self._buckets

    def bucket(self, method: str) -> MethodCacheBucket:
        try:
            return self._buckets[method]
        except KeyError:
            raise CacheError(f"No cache registered for method {method}") from None

    def get(self, method: str, key: str) -> CacheEntry | None:
        return self.bucket(method).get(_check_key(key))

    def put(self, method: str, key: str, value: Any) -> CacheEntry:
        return self.bucket(method).put(_check_key(key), value)

    def call(self, method: str, key: str) -> asyncio.Future[Any]:
        """Return the result future for ``method(key)``.

        Must be called with an event loop running.  A live entry is
        reused; otherwise the remote call is started and its future is
        cached before this returns.  Callers get a shielded view, so
        cancelling one caller leaves the shared call running.
        """
        bucket = self.bucket(method)
        key = _check_key(key)
        entry = bucket.get(key)
        if entry is not None:
            logger.debug("[%s] Cache hit (%s): %s", method, entry.state, key)
            return asyncio.shield(_as_future(entry.value))
        if self._transport is None:
            raise CacheError(f"No transport bound for cached method {method}")
        logger.debug("[%s] Cache miss: %s", method, key)
        future = asyncio.ensure_future(self._transport.apply(method, [key]))
        bucket.put(key, future)
        return asyncio.shield(future)

    def size(self, method: str) -> int:
        return len(self.bucket(method))

    def clear(self, method: str | None = None) -> None:
        """Drop cached entries for *method*, or for every bucket."""
        if method is not None:
            self.bucket(method).clear()
            return
        for bucket in self._buckets.values():
            bucket.clear()


def _check_key(key: Any) -> str:
    if not isinstance(key, str):
        raise TypeError(f"Cache keys must be strings, got {type(key).__name__}")
    return key


def _is_cancelled(value: Any) -> bool:
    return isinstance(value, asyncio.Future) and value.cancelled()


def _as_future(value: Any) -> asyncio.Future[Any]:
    if isinstance(value, asyncio.Future):
        return value
    future = asyncio.get_running_loop().create_future()
    future.set_result(value)
    return future
