"""In-memory TTL cache with fetch-through and per-key request coalescing.

Each TTLCache is one expiry policy (scans, prices, holders). Instances are
built once per app by build_caches() and handed to services, so tests can
construct their own with a fake clock.

Correctness is enforced at read time: a stale entry is deleted when it is
looked up. The size-triggered sweep only keeps memory in check and never
touches fresh entries.

Everything here runs on a single asyncio event loop. The store and the
in-flight map are not guarded for use from multiple threads.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from app.core.errors import MissingKeyInputError, UpstreamError

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
Producer = Callable[[], Awaitable[Any]]


@dataclass
class CacheEntry:
    key: str
    value: Any
    stored_at: float
    ttl: float

    def is_stale(self, now: float) -> bool:
        return now - self.stored_at > self.ttl


def derive_key(namespace: str, *values: object) -> str:
    """Build a namespaced cache key from the first usable identifying value.

    Values are lower-cased so ``0xABC`` and ``0xabc`` share a slot.
    Raises MissingKeyInputError when every value is None or blank.
    """
    for value in values:
        if value is None:
            continue
        text = str(value).strip().lower()
        if text:
            return f"{namespace}:{text}"
    raise MissingKeyInputError(f"Missing identifying value for '{namespace}' lookup")


class TTLCache:
    def __init__(
        self,
        ttl_seconds: float,
        high_water_mark: int = 500,
        clock: Clock = time.monotonic,
        name: str = "cache",
    ):
        self.ttl_seconds = ttl_seconds
        self.high_water_mark = high_water_mark
        self.name = name
        self._clock = clock
        self._store: dict[str, CacheEntry] = {}
        self._in_flight: dict[str, asyncio.Future] = {}

    def __len__(self) -> int:
        return len(self._store)

    def _lookup(self, key: str) -> CacheEntry | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        if entry.is_stale(self._clock()):
            self._store.pop(key, None)
            return None
        return entry

    def get(self, key: str) -> Any | None:
        """Return cached value if not expired, else None."""
        entry = self._lookup(key)
        return entry.value if entry is not None else None

    def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        """Store or refresh a value. TTL defaults to the instance policy."""
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        self._store[key] = CacheEntry(key=key, value=value, stored_at=self._clock(), ttl=ttl)
        if len(self._store) > self.high_water_mark:
            self.sweep()

    def sweep(self) -> int:
        """Drop every stale entry. Returns the number removed."""
        now = self._clock()
        stale = [k for k, entry in self._store.items() if entry.is_stale(now)]
        for k in stale:
            del self._store[k]
        logger.debug("[%s] sweep removed %d entries, %d left", self.name, len(stale), len(self._store))
        return len(stale)

    def invalidate(self, key: str) -> bool:
        return self._store.pop(key, None) is not None

    def clear(self) -> None:
        self._store.clear()

    def in_flight(self, key: str) -> bool:
        return key in self._in_flight

    async def fetch_through(self, key: str, producer: Producer, ttl_seconds: float | None = None) -> Any:
        """Return the cached value for key, or run producer once and cache its result.

        Concurrent callers for the same key share one producer run and see
        the same value or the same exception. Failures are never cached.
        """
        entry = self._lookup(key)
        if entry is not None:
            logger.info("Cache HIT for %s", key)
            return entry.value

        pending = self._in_flight.get(key)
        if pending is not None:
            logger.info("Joining in-flight fetch for %s", key)
            # shield: a cancelled waiter must not cancel the shared run
            return await asyncio.shield(pending)

        logger.info("Cache MISS for %s", key)
        future = asyncio.get_running_loop().create_future()
        self._in_flight[key] = future
        try:
            value = await producer()
        except asyncio.CancelledError:
            future.set_exception(UpstreamError(f"Fetch for {key} was cancelled"))
            future.exception()
            raise
        except Exception as exc:
            future.set_exception(exc)
            # waiters (if any) re-raise it; mark retrieved so asyncio stays quiet
            future.exception()
            raise
        except BaseException as exc:
            future.set_exception(UpstreamError(f"Fetch for {key} aborted: {type(exc).__name__}"))
            future.exception()
            raise
        else:
            self.set(key, value, ttl_seconds)
            future.set_result(value)
            return value
        finally:
            if self._in_flight.get(key) is future:
                del self._in_flight[key]


@dataclass
class Caches:
    """Named cache instances, one per expiry policy."""

    scans: TTLCache
    prices: TTLCache
    holders: TTLCache

    def sizes(self) -> dict[str, int]:
        return {"scans": len(self.scans), "prices": len(self.prices), "holders": len(self.holders)}


def build_caches(settings, clock: Clock = time.monotonic) -> Caches:
    return Caches(
        scans=TTLCache(settings.SCAN_CACHE_TTL, settings.SCAN_CACHE_MAX_ENTRIES, clock, name="scans"),
        prices=TTLCache(settings.PRICE_CACHE_TTL, settings.PRICE_CACHE_MAX_ENTRIES, clock, name="prices"),
        holders=TTLCache(settings.HOLDERS_CACHE_TTL, settings.HOLDERS_CACHE_MAX_ENTRIES, clock, name="holders"),
    )
