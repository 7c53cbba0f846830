"""
In-memory query cache for dashboard views.

Lists are keyed by ``("candidates", "list", <frozen filters>)`` and detail
records by ``("candidates", "detail", <id>)``. Prefix operations work on any
leading slice of a key, so ``("candidates",)`` covers every candidate view.
"""

from __future__ import annotations

import copy
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping

CacheKey = tuple

_MISSING = object()


def freeze_filters(filters: Mapping[str, Any] | None) -> tuple:
    if not filters:
        return ()
    items = []
    for name, value in filters.items():
        if value is None or value == "":
            continue
        if isinstance(value, list):
            value = tuple(value)
        items.append((name, value))
    return tuple(sorted(items))


def candidate_list_key(filters: Mapping[str, Any] | None = None) -> CacheKey:
    return ("candidates", "list", freeze_filters(filters))


def candidate_detail_key(candidate_id: str) -> CacheKey:
    return ("candidates", "detail", candidate_id)


@dataclass
class CacheEntry:
    value: Any
    stale: bool = False
    updated_at: float = 0.0


@dataclass(frozen=True)
class Snapshot:
    prefix: CacheKey
    entries: dict


class QueryCache:
    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._lock = threading.RLock()
        self._clock = clock

    @staticmethod
    def _matches(key: CacheKey, prefix: CacheKey) -> bool:
        return key[: len(prefix)] == tuple(prefix)

    def keys(self, prefix: CacheKey = ()) -> list[CacheKey]:
        with self._lock:
            return [k for k in self._entries if self._matches(k, prefix)]

    def get(self, key: CacheKey, default: Any = None) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            return default if entry is None else entry.value

    def set(self, key: CacheKey, value: Any) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(value=value, stale=False, updated_at=self._clock())

    def update(self, key: CacheKey, fn: Callable[[Any], Any]) -> bool:
        """Replace a cached value in place, keeping its staleness. False when the key is absent."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            entry.value = fn(entry.value)
            return True

    def remove(self, key: CacheKey) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def is_stale(self, key: CacheKey) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            return entry is None or entry.stale

    def invalidate(self, prefix: CacheKey = ()) -> int:
        with self._lock:
            count = 0
            for key, entry in self._entries.items():
                if self._matches(key, prefix):
                    entry.stale = True
                    count += 1
            return count

    def snapshot(self, prefix: CacheKey = (), extra_keys: tuple[CacheKey, ...] = ()) -> Snapshot:
        """
        Deep copy of every entry under `prefix`. Keys in `extra_keys` that are not
        cached yet are recorded as absent so `restore` removes them again.
        """
        with self._lock:
            entries: dict = {
                key: copy.deepcopy(entry) for key, entry in self._entries.items() if self._matches(key, prefix)
            }
            for key in extra_keys:
                if key not in entries:
                    entry = self._entries.get(key)
                    entries[key] = copy.deepcopy(entry) if entry is not None else _MISSING
            return Snapshot(prefix=tuple(prefix), entries=entries)

    def restore(self, snapshot: Snapshot) -> None:
        with self._lock:
            for key in [k for k in self._entries if self._matches(k, snapshot.prefix)]:
                if key not in snapshot.entries:
                    del self._entries[key]
            for key, entry in snapshot.entries.items():
                if entry is _MISSING:
                    self._entries.pop(key, None)
                else:
                    self._entries[key] = copy.deepcopy(entry)
