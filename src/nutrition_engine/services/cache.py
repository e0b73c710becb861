"""Cache abstractions for resolver memoization and accepted recipes."""

import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol

from nutrition_engine.domain.recipes import CacheEntry, RecipeCandidate

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


class Cache(Protocol):
    """Cache interface for simple key-value data."""

    def get(self, key: str) -> object | None:
        """Return a cached value if present and not expired."""

    def set(self, key: str, value: object, ttl_seconds: int) -> None:
        """Store a cached value with a TTL in seconds."""


@dataclass
class _TimedValue:
    value: object
    expires_at: datetime


class InMemoryCache(Cache):
    """Thread-safe in-memory TTL cache."""

    def __init__(self, clock: Clock = utc_now) -> None:
        self._entries: dict[str, _TimedValue] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def get(self, key: str) -> object | None:
        """Return a cached value if it hasn't expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() >= entry.expires_at:
                self._entries.pop(key, None)
                return None
            return entry.value

    def set(self, key: str, value: object, ttl_seconds: int) -> None:
        """Store a cached value with a TTL."""
        expires_at = self._clock() + timedelta(seconds=ttl_seconds)
        with self._lock:
            self._entries[key] = _TimedValue(value=value, expires_at=expires_at)


class RecipeCache(Protocol):
    """Shared store of accepted recipes keyed by request cache key."""

    def get(self, key: str) -> CacheEntry | None:
        """Return a live entry and count the hit, or None."""

    def set(self, key: str, candidate: RecipeCandidate) -> CacheEntry:
        """Store a candidate unless a live entry exists; return the stored entry."""

    def exists(self, key: str) -> bool:
        """Return True when a live entry is stored under ``key``."""

    def live_fingerprints(self) -> list[str]:
        """Return fingerprints of every non-expired entry."""


class InMemoryRecipeCache(RecipeCache):
    """Lock-guarded recipe cache with lazy TTL eviction.

    The lock is held only for the map operation itself, never while a caller
    awaits the generative provider.
    """

    def __init__(self, ttl_seconds: int, clock: Clock = utc_now) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock

    def get(self, key: str) -> CacheEntry | None:
        """Return a live entry with its hit count incremented."""
        with self._lock:
            entry = self._live_entry(key)
            if entry is None:
                return None
            entry.hit_count += 1
            return entry

    def set(self, key: str, candidate: RecipeCandidate) -> CacheEntry:
        """Store a new entry; an existing live entry wins and is returned."""
        with self._lock:
            existing = self._live_entry(key)
            if existing is not None:
                return existing
            entry = CacheEntry(candidate=candidate, created_at=self._clock())
            self._entries[key] = entry
            return entry

    def exists(self, key: str) -> bool:
        with self._lock:
            return self._live_entry(key) is not None

    def live_fingerprints(self) -> list[str]:
        with self._lock:
            self._purge_expired()
            return [entry.candidate.fingerprint for entry in self._entries.values()]

    def __len__(self) -> int:
        with self._lock:
            self._purge_expired()
            return len(self._entries)

    def _live_entry(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._is_expired(entry):
            self._entries.pop(key, None)
            return None
        return entry

    def _is_expired(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.created_at >= self._ttl

    def _purge_expired(self) -> None:
        expired = [
            key for key, entry in self._entries.items() if self._is_expired(entry)
        ]
        for key in expired:
            del self._entries[key]
