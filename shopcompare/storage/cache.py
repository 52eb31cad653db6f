# shopcompare/storage/cache.py

"""Content-addressed result cache with TTL-stamped entries.

Keys are SHA-256 digests of a canonical JSON rendering of the request
shape, so logically equal requests always land on the same key no
matter how their dicts were built.  Values are JSON-wrapped
:class:`CacheEntry` records; the entry's own timestamp is re-checked on
every read even when the store evicts by TTL itself.
"""

import dataclasses
import hashlib
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Protocol

from shopcompare.config.settings import Settings

logger = logging.getLogger("shopcompare.cache")


class CacheStore(Protocol):
    """Minimal key-value store the cache client writes through."""

    def get(self, key: str) -> str | None:
        ...

    def set(self, key: str, value: str, ttl: int) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


@dataclass
class CacheEntry:
    """A cached payload with its write time (epoch ms) and TTL (secs)."""

    data: Any
    timestamp: int
    ttl: int

    def is_expired(self, now_ms: int) -> bool:
        """True once more than ``ttl`` seconds have passed since writing."""
        return now_ms - self.timestamp > self.ttl * 1000


def _now_ms() -> int:
    return round(time.time() * 1000)


def _canonical(value: Any) -> Any:
    """Reduce *value* to plain JSON types, dropping ``None`` members."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        value = dataclasses.asdict(value)
    if isinstance(value, dict):
        return {
            str(k): _canonical(v)
            for k, v in value.items()
            if v is not None
        }
    if isinstance(value, (list, tuple)):
        return [_canonical(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return sorted(_canonical(v) for v in value)
    return value


def generate_cache_key(
    request_shape: Any,
    prefix: str = Settings.CACHE_KEY_PREFIX,
) -> str:
    """Derive a stable, namespaced key for *request_shape*.

    Dict key order, dataclass vs dict representation and omitted vs
    ``None`` fields do not affect the key; any difference in content
    does.

    Raises ``TypeError`` for values with no JSON form (datetimes,
    arbitrary objects) rather than keying them by their ``str()``.
    """
    canonical = json.dumps(
        _canonical(request_shape),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
    digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()
    return f"{prefix}{digest}"


class CacheClient:
    """Read/write TTL-stamped results through an optional store.

    With no store configured every write is a silent no-op and every
    read a miss.  Store failures are logged and degrade the same way;
    they never propagate to the caller.
    """

    def __init__(self, store: CacheStore | None = None) -> None:
        self.store = store
        if store is None:
            logger.info("No cache store configured, caching disabled")

    @property
    def enabled(self) -> bool:
        return self.store is not None

    def cache_results(self, key: str, data: Any, ttl: int) -> None:
        """Wrap *data* in a :class:`CacheEntry` and write it with *ttl*."""
        if self.store is None:
            return
        entry = CacheEntry(data=data, timestamp=_now_ms(), ttl=ttl)
        try:
            payload = json.dumps(dataclasses.asdict(entry))
            self.store.set(key, payload, ttl)
        except Exception as exc:
            logger.error(
                "Cache write error for %s: %s", key, exc, exc_info=True
            )
            return
        logger.debug("Cached %s (ttl=%ds)", key, ttl)

    def get_cached_results(self, key: str) -> Any | None:
        """Return the cached payload for *key*, or ``None`` on a miss.

        Entries older than their TTL are deleted and reported as a miss.
        """
        if self.store is None:
            return None
        try:
            raw = self.store.get(key)
            if not raw:
                return None
            decoded = json.loads(raw)
            entry = CacheEntry(
                data=decoded["data"],
                timestamp=int(decoded["timestamp"]),
                ttl=int(decoded["ttl"]),
            )
            if entry.is_expired(_now_ms()):
                logger.debug("Cache entry %s expired, deleting", key)
                self.store.delete(key)
                return None
        except Exception as exc:
            logger.error(
                "Cache read error for %s: %s", key, exc, exc_info=True
            )
            return None

        logger.info("Cache hit for %s", key)
        return entry.data
