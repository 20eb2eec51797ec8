"""Time-bounded reuse of raw store listings.

Only raw listings are cached, keyed by prefix (which already spells out the
report kind and file type). Groups and pages are always re-derived, so a
cached listing yields the same output as a fresh one with the same contents.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from report_portal.models import RawObject

log = logging.getLogger(__name__)


class _CacheEntry:
    """Simple timestamped cache entry."""
    __slots__ = ("data", "timestamp")

    def __init__(self, data: tuple[RawObject, ...], timestamp: float):
        self.data = data
        self.timestamp = timestamp

    def expired(self, ttl: float, now: float) -> bool:
        return (now - self.timestamp) > ttl


class ListingCache:
    """Prefix → raw listing memo with a fixed TTL. A TTL of 0 caches nothing."""

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, _CacheEntry] = {}

    @property
    def enabled(self) -> bool:
        return self.ttl > 0

    def get(self, prefix: str) -> list[RawObject] | None:
        entry = self._entries.get(prefix)
        if entry is None:
            return None
        if entry.expired(self.ttl, self._clock()):
            del self._entries[prefix]
            return None
        log.debug("Listing cache hit for %r (%d objects)", prefix, len(entry.data))
        return list(entry.data)

    def put(self, prefix: str, objects: list[RawObject]) -> None:
        if not self.enabled:
            return
        self._entries[prefix] = _CacheEntry(tuple(objects), self._clock())

    def invalidate(self, prefix: str | None = None) -> None:
        """Drop one prefix, or everything when no prefix is given."""
        if prefix is None:
            self._entries.clear()
        else:
            self._entries.pop(prefix, None)
