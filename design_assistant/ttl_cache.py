"""In-process TTL cache with lazy expiry and a swappable storage backend.

Known limitation: there is no size bound or eviction beyond TTL. Entries
that are never read again stay in memory until the process exits.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional


@dataclass
class CacheEntry:
    value: Any
    expires_at: float


class CacheStore:
    """Narrow storage interface behind TTLCache (in-memory here, a KV store in production)."""

    def read(self, key: str) -> Optional[CacheEntry]:
        raise NotImplementedError

    def write(self, key: str, entry: CacheEntry) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError


class InMemoryCacheStore(CacheStore):
    def __init__(self) -> None:
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def read(self, key: str) -> Optional[CacheEntry]:
        with self._lock:
            return self._entries.get(key)

    def write(self, key: str, entry: CacheEntry) -> None:
        with self._lock:
            self._entries[key] = entry

    def remove(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)


class TTLCache:
    """Key-value cache where a read past expiry is a miss and evicts the entry."""

    def __init__(self, store: Optional[CacheStore] = None, clock: Callable[[], float] = time.monotonic) -> None:
        """Purpose: Initialize the cache with a storage backend and clock.
        Inputs/Outputs: Inputs are an optional CacheStore and a clock callable; no return.
        Side Effects / State: Creates an in-memory store when none is supplied.
        Dependencies: CacheStore implementations.
        Failure Modes: None at init.
        If Removed: Catalog fetches and deep-text reads hit upstream on every request.
        Testing Notes: Inject a fake clock to step past expiry deterministically.
        """
        self._store = store if store is not None else InMemoryCacheStore()
        self._clock = clock

    def get(self, key: str) -> Optional[Any]:
        """Purpose: Return a live value or None.
        Inputs/Outputs: Input is a cache key; output is the stored value or None.
        Side Effects / State: Evicts the entry when it has expired.
        Dependencies: Uses the injected clock and store.
        Failure Modes: None; a missing key is a miss.
        If Removed: Callers cannot memoize expensive lookups.
        Testing Notes: Value is present before ttl and absent (and evicted) after.
        """
        # Expiry is checked lazily on read; there is no background sweep.
        entry = self._store.read(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            self._store.remove(key)
            return None
        return entry.value

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        self._store.write(key, CacheEntry(value=value, expires_at=self._clock() + ttl_seconds))

    def delete(self, key: str) -> None:
        self._store.remove(key)


def cache_key(namespace: str, query: str) -> str:
    """Compose a cache key from a logical namespace and a case-folded query."""
    return f"{namespace}:{(query or '').strip().casefold()}"
