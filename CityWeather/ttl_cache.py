"""Bounded in-memory cache with TTL expiry and insertion-order eviction."""
import logging
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Optional, Tuple


class BoundedTTLCache:
    """
    Mapping from query string to (value, inserted_at).

    Entries are valid while ``now - inserted_at < ttl_seconds``. When a new key
    would push the size past ``max_entries``, the earliest-inserted entry is
    evicted (insertion order; reads do not refresh an entry's position).

    Safe to share between request threads: ``get_or_load`` serializes
    miss-then-fill per key, so two requests for the same query never race
    between the miss and the fill. Different keys do not block each other.
    """

    def __init__(
        self,
        max_entries: int = 100,
        ttl_seconds: float = 3600,
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize cache.

        Args:
            max_entries: Maximum number of stored keys
            ttl_seconds: Age after which an entry is treated as absent
            clock: Returns the current time in seconds (injectable for tests)
        """
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self.clock = clock

        self._entries: "OrderedDict[str, Tuple[Any, float]]" = OrderedDict()
        self._lock = threading.Lock()
        # key -> [lock, callers holding or waiting on it]
        self._key_locks: Dict[str, list] = {}

    @staticmethod
    def normalize(key: str) -> str:
        return key.strip().lower()

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None if missing or older than the TTL."""
        norm = self.normalize(key)
        with self._lock:
            entry = self._entries.get(norm)
        if entry is None:
            return None

        value, inserted_at = entry
        age = self.clock() - inserted_at
        if age >= self.ttl_seconds:
            logging.debug(f"Cache entry '{norm}' expired (age: {age:.1f}s, TTL: {self.ttl_seconds}s)")
            return None
        logging.debug(f"Cache hit for '{norm}' (age: {age:.1f}s)")
        return value

    def set(self, key: str, value: Any) -> None:
        """Store a value, evicting the earliest-inserted entry when full."""
        norm = self.normalize(key)
        with self._lock:
            if norm not in self._entries and len(self._entries) >= self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logging.debug(f"Cache full ({self.max_entries} entries), evicted '{evicted}'")
            # Overwriting an existing key keeps its insertion slot
            self._entries[norm] = (value, self.clock())

    def get_or_load(self, key: str, loader: Callable[[], Any]) -> Any:
        """
        Return the fresh cached value or fill it from ``loader()``.

        The loader runs while holding this key's lock. If it raises, nothing
        is stored and the exception propagates. A key's lock only lives while
        some caller is loading or waiting on it.
        """
        norm = self.normalize(key)
        with self._lock:
            slot = self._key_locks.get(norm)
            if slot is None:
                slot = self._key_locks[norm] = [threading.Lock(), 0]
            slot[1] += 1

        try:
            with slot[0]:
                cached = self.get(norm)
                if cached is not None:
                    return cached
                value = loader()
                self.set(norm, value)
                return value
        finally:
            with self._lock:
                slot[1] -= 1
                if slot[1] == 0 and self._key_locks.get(norm) is slot:
                    del self._key_locks[norm]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        # Raw presence, ignoring TTL
        with self._lock:
            return self.normalize(key) in self._entries
