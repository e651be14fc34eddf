"""Process-wide mutable state, built once in :pyfunc:`relay.create_app`."""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Optional
import threading

from relay.config import Settings
from relay.correlation import CorrelationStore, InMemoryCorrelationStore
from relay.rate_limiter import RateLimiter

__all__ = [
    "RecentEvents",
    "RelayState",
]


class RecentEvents:
    """Bounded set of recently handled Slack event keys (oldest evicted first)."""

    def __init__(self, capacity: int = 1024) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._capacity = capacity
        self._keys: "OrderedDict[str, None]" = OrderedDict()
        self._lock = threading.Lock()

    def first_sighting(self, key: str) -> bool:
        """Record *key*; return ``False`` if it was already recorded."""
        with self._lock:
            if key in self._keys:
                return False
            self._keys[key] = None
            if len(self._keys) > self._capacity:
                self._keys.popitem(last=False)
            return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)


@dataclass
class RelayState:
    """Owns the correlation store, the per-user rate limiter and the
    recently-seen Slack events.

    Components receive this object (or its members) explicitly so tests can
    build a fresh state per test instead of sharing module globals.
    """

    store: CorrelationStore = field(default_factory=InMemoryCorrelationStore)
    rate_limiter: RateLimiter = field(default_factory=RateLimiter)
    recent_events: RecentEvents = field(default_factory=RecentEvents)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        store: Optional[CorrelationStore] = None,
    ) -> "RelayState":
        return cls(
            store=store if store is not None else InMemoryCorrelationStore(),
            rate_limiter=RateLimiter(
                limit=settings.rate_limit_per_window,
                window_ms=settings.rate_limit_window_ms,
            ),
        )
