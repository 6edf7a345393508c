"""In-process cache for materialized category trees."""

import copy
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Optional

DEFAULT_TTL_SECONDS = 300.0
DEFAULT_MAX_ENTRIES = 100


class CategoryTreeCache:
    """Per-organization tree cache with TTL expiry and LRU eviction.

    Entries older than ``ttl_seconds`` are treated as missing. When more than
    ``max_entries`` organizations are cached, the least recently used entry is
    evicted. Trees are deep-copied in and out so callers cannot mutate the
    cached value.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, list[dict[str, Any]]]] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, organization_id: str) -> Optional[list[dict[str, Any]]]:
        """Return a cached tree, or None when absent or expired."""
        with self._lock:
            entry = self._entries.get(organization_id)
            if entry is None:
                return None
            stored_at, tree = entry
            if self._clock() - stored_at >= self.ttl_seconds:
                del self._entries[organization_id]
                return None
            self._entries.move_to_end(organization_id)
            return copy.deepcopy(tree)

    def set(self, organization_id: str, tree: list[dict[str, Any]]) -> None:
        """Store a tree for an organization."""
        with self._lock:
            self._entries[organization_id] = (self._clock(), copy.deepcopy(tree))
            self._entries.move_to_end(organization_id)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def invalidate(self, organization_id: str) -> None:
        """Drop an organization's entry if present."""
        with self._lock:
            self._entries.pop(organization_id, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class NullTreeCache(CategoryTreeCache):
    """Cache that never stores anything."""

    def get(self, organization_id: str) -> Optional[list[dict[str, Any]]]:
        return None

    def set(self, organization_id: str, tree: list[dict[str, Any]]) -> None:
        pass
