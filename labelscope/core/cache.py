"""
In-memory response cache with time-boxed entries.

Every fetcher shares one ResponseCache per remote service. Entries expire
after ``ttl`` seconds (5 minutes by default) but are not evicted when a
read finds them stale; instead each write sweeps all expired entries of
the cache it writes to.

Keys:
    Keys are built with make_key() from the request's semantic parameters
    (resource kind, query text or ID, pagination offset), so two logically
    identical requests always land on the same entry regardless of the
    order in which their parameters were supplied.

Usage:
    cache = ResponseCache(ttl=300)
    key = make_key("label-releases", label_id, offset=100, limit=100)

    page = cache.get(key)
    if page is None:
        page = await fetch()
        cache.put(key, page)
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

T = TypeVar("T")

DEFAULT_TTL_SECONDS = 300.0


@dataclass
class CacheEntry(Generic[T]):
    """A cached value and the clock reading at which it was stored."""
    data: T
    timestamp: float


def make_key(kind: str, *parts: Any, **params: Any) -> str:
    """
    Build a deterministic cache key.

    Positional parts keep their order (they identify the resource);
    keyword params are sorted by name so call order never matters.
    None values are dropped. Text is lower-cased and stripped so that
    "Warp " and "warp" share an entry.

    Example:
        make_key("label-search", "Warp", limit=20)
        # -> "label-search|warp|limit=20"
    """
    def _norm(value: Any) -> str:
        if isinstance(value, str):
            return value.strip().lower()
        return str(value)

    segments = [kind]
    segments.extend(_norm(p) for p in parts if p is not None)
    segments.extend(
        f"{name}={_norm(value)}"
        for name, value in sorted(params.items())
        if value is not None
    )
    return "|".join(segments)


class ResponseCache(Generic[T]):
    """
    Time-boxed memoization map with lazy expiry.

    Attributes:
        ttl: Lifetime of an entry in seconds.

    Behavior:
        - get() on an entry older than ttl returns None (a miss) and leaves
          the entry in place.
        - put() first removes every expired entry, then stores the value.
        - put() on an existing key replaces it (last write wins).

    The clock is injectable so tests can simulate expiry.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic
    ) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry[T]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def _is_stale(self, entry: CacheEntry[T], now: float) -> bool:
        return now - entry.timestamp > self.ttl

    def get(self, key: str) -> T | None:
        entry = self._entries.get(key)
        if entry is None or self._is_stale(entry, self._clock()):
            return None
        return entry.data

    def put(self, key: str, value: T) -> None:
        now = self._clock()
        self._sweep(now)
        self._entries[key] = CacheEntry(data=value, timestamp=now)

    def _sweep(self, now: float) -> int:
        expired = [k for k, entry in self._entries.items() if self._is_stale(entry, now)]
        for k in expired:
            del self._entries[k]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()
