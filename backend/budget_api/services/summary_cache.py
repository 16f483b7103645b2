"""Injectable TTL cache for assembled budget summaries."""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Any, Protocol
from uuid import UUID

logger = logging.getLogger(__name__)


class SummaryCache(Protocol):
    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any, ttl: float) -> None: ...

    def invalidate_prefix(self, prefix: str) -> None: ...


def user_cache_prefix(user_id: UUID) -> str:
    return f"{user_id}:"


def summary_cache_key(user_id: UUID, date_iso: str, time_zone: str | None, cycle_day: int | None) -> str:
    return f"{user_cache_prefix(user_id)}{date_iso}:{time_zone or ''}:{cycle_day or ''}"


class InMemorySummaryCache:
    """Process-local cache with per-entry expiry and oldest-first eviction."""

    def __init__(self, *, max_entries: int = 1024, clock: Callable[[], float] = time.monotonic) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, Any]] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None

        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None

        logger.debug("Summary cache hit for %s", key)
        return value

    def set(self, key: str, value: Any, ttl: float) -> None:
        if ttl <= 0:
            return

        self._entries[key] = (self._clock() + ttl, value)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def invalidate_prefix(self, prefix: str) -> None:
        for key in [key for key in self._entries if key.startswith(prefix)]:
            del self._entries[key]
