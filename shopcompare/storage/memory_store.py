# shopcompare/storage/memory_store.py

"""In-process key-value store with TTL eviction."""

import logging
import time
from dataclasses import dataclass

logger = logging.getLogger("shopcompare.cache")


@dataclass
class _StoredValue:
    """A raw value and the wall-clock time it stops being served."""

    value: str
    expires_at: float


class InMemoryCacheStore:
    """Dict-backed store behind ``--cache memory``.

    Values live only as long as the process, so a single CLI run (or
    a long-lived service embedding the pipeline) reuses its own results.

    Expired values are evicted on access, mirroring how a networked
    store drops keys once their TTL lapses.
    """

    def __init__(self) -> None:
        self._values: dict[str, _StoredValue] = {}

    def get(self, key: str) -> str | None:
        """Return the stored value, or ``None`` if absent or expired."""
        self._evict_expired(time.time())
        stored = self._values.get(key)
        return stored.value if stored else None

    def set(self, key: str, value: str, ttl: int) -> None:
        """Store *value* for *ttl* seconds, replacing any previous value."""
        self._values[key] = _StoredValue(
            value=value, expires_at=time.time() + ttl
        )

    def delete(self, key: str) -> None:
        """Remove *key* if present."""
        self._values.pop(key, None)

    def _evict_expired(self, now: float) -> None:
        """Remove values whose TTL has lapsed."""
        before = len(self._values)
        self._values = {
            k: v for k, v in self._values.items() if now < v.expires_at
        }
        evicted = before - len(self._values)
        if evicted:
            logger.debug("Evicted %d expired cache entries", evicted)
