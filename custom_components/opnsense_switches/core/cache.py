"""Short-lived memo of the last known rule state."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable


class StatusCache:
    """
    Time-bounded cache of raw enabled flags keyed by rule UUID.

    Entries are only ever overwritten, never evicted, so the cache is bounded
    by the number of configured rules. A fresh False is as valid as a fresh
    True.
    """

    def __init__(
        self,
        ttl: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the cache with a TTL in seconds."""
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[str, tuple[bool, float]] = {}

    @property
    def ttl(self) -> float:
        """Return the freshness window in seconds."""
        return self._ttl

    def get(self, key: str) -> tuple[bool, float] | None:
        """Return (value, age in seconds) for a key, or None if never stored."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, stored_at = entry
        return value, self._clock() - stored_at

    def get_fresh(self, key: str) -> bool | None:
        """Return the cached value if younger than the TTL, else None."""
        entry = self.get(key)
        if entry is None:
            return None
        value, age = entry
        if age < self._ttl:
            return value
        return None

    def put(self, key: str, value: bool) -> None:  # noqa: FBT001
        """Store a value stamped with the current time."""
        self._entries[key] = (value, self._clock())

    def invalidate(self, key: str) -> None:
        """Forget the value for a key."""
        self._entries.pop(key, None)
