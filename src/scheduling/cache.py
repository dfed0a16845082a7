"""Bounded TTL read-through cache fronting the remote API.

Each cache is an explicit object with a lifecycle (init / invalidate /
dispose) owned by the data store. Freshness is judged per key:
``now - loaded_at < ttl``. A stale or missing key always triggers a fetch.

If that fetch fails while an older value is present, a serve-stale cache
returns the old value and posts a warning; a non-serve-stale cache raises.
"""

import time
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from src.scheduling.errors import CacheDisposedError, FetchError
from src.scheduling.logging import get_logger
from src.scheduling.notices import NoticeBoard

log = get_logger(__name__)

T = TypeVar("T")

KEY_SEPARATOR = "|"


def make_cache_key(*parts: Any) -> str:
    """Join key parts so that a prefix of parts is also a string prefix."""
    return KEY_SEPARATOR.join("" if part is None else str(part) for part in parts)


def _epoch_ms() -> float:
    return time.time() * 1000


@dataclass
class CacheEntry(Generic[T]):
    value: T
    loaded_at_ms: float

    def is_fresh(self, now_ms: float, ttl_ms: float) -> bool:
        return now_ms - self.loaded_at_ms < ttl_ms


class BoundedCache(Generic[T]):
    """A TTL cache holding at most ``max_entries`` keys (least recently used evicted).

    Args:
        name: Cache name used in logs and notices.
        ttl_seconds: Default time-to-live for entries.
        serve_stale: Return the previous value when a refresh fails.
        max_entries: Capacity bound.
        clock: Epoch-milliseconds clock, injectable for tests.
        notices: Where serve-stale warnings are posted.
    """

    def __init__(
        self,
        name: str,
        ttl_seconds: float,
        *,
        serve_stale: bool = True,
        max_entries: int = 256,
        clock: Callable[[], float] = _epoch_ms,
        notices: NoticeBoard | None = None,
    ) -> None:
        self.name = name
        self.ttl_seconds = ttl_seconds
        self.serve_stale = serve_stale
        self.max_entries = max_entries
        self._clock = clock
        self._notices = notices
        self._entries: OrderedDict[str, CacheEntry[T]] = OrderedDict()
        self._disposed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def init(self) -> None:
        """(Re)start the cache empty; also revives a disposed cache."""
        self._entries.clear()
        self._disposed = False
        log.debug("cache_initialized", cache=self.name)

    def invalidate(self, key_prefix: str | None = None) -> int:
        """Drop every key starting with ``key_prefix`` (all keys if None).

        Returns:
            Number of entries dropped.
        """
        if key_prefix is None:
            dropped = len(self._entries)
            self._entries.clear()
        else:
            keys = [key for key in self._entries if key.startswith(key_prefix)]
            for key in keys:
                del self._entries[key]
            dropped = len(keys)
        log.debug("cache_invalidated", cache=self.name, prefix=key_prefix, dropped=dropped)
        return dropped

    def dispose(self) -> None:
        self._entries.clear()
        self._disposed = True
        log.debug("cache_disposed", cache=self.name)

    @property
    def disposed(self) -> bool:
        return self._disposed

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------
    def _check_alive(self) -> None:
        if self._disposed:
            raise CacheDisposedError(f"cache {self.name!r} has been disposed")

    def peek(self, key: str) -> CacheEntry[T] | None:
        """Entry for ``key`` regardless of freshness, without fetching."""
        return self._entries.get(key)

    def put(self, key: str, value: T) -> None:
        self._check_alive()
        self._entries[key] = CacheEntry(value=value, loaded_at_ms=self._clock())
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            log.debug("cache_evicted", cache=self.name, key=evicted)

    async def get_or_fetch(
        self,
        key: str,
        fetcher: Callable[[], Awaitable[T]],
        ttl_seconds: float | None = None,
        *,
        force: bool = False,
    ) -> T:
        """Return a fresh value for ``key``, calling ``fetcher`` on miss or staleness.

        Args:
            key: Cache key (see make_cache_key()).
            fetcher: Coroutine function producing the value.
            ttl_seconds: Overrides the cache default for this lookup.
            force: Fetch even if the entry is fresh.

        Raises:
            FetchError: If the fetch fails and no value may be served instead.
            CacheDisposedError: If the cache has been disposed.
        """
        self._check_alive()
        ttl_ms = (self.ttl_seconds if ttl_seconds is None else ttl_seconds) * 1000
        entry = self._entries.get(key)

        if entry is not None and not force and entry.is_fresh(self._clock(), ttl_ms):
            self._entries.move_to_end(key)
            log.debug("cache_hit", cache=self.name, key=key)
            return entry.value

        log.debug(
            "cache_miss",
            cache=self.name,
            key=key,
            reason="forced" if force and entry is not None else ("stale" if entry else "absent"),
        )
        try:
            value = await fetcher()
        except FetchError as e:
            if entry is None or not self.serve_stale:
                log.warning("cache_fetch_failed", cache=self.name, key=key, error=str(e))
                raise
            age_seconds = (self._clock() - entry.loaded_at_ms) / 1000
            log.warning(
                "cache_serving_stale",
                cache=self.name,
                key=key,
                age_seconds=round(age_seconds, 1),
                error=str(e),
            )
            if self._notices is not None:
                self._notices.warn(
                    "Showing previously loaded data; refresh failed.",
                    cache=self.name,
                    key=key,
                )
            return entry.value

        if self._disposed:
            # Disposed while the fetch was in flight; nothing to store into
            return value
        self.put(key, value)
        return value

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
