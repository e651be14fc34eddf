"""rate_limiter.py – Sliding-window, per-user admission control

Each Slack user gets a trailing window of duration ``window_ms``.  A request is
admitted while fewer than ``limit`` timestamps fall inside ``[now - W, now]``.
Pruning, the admission decision and the append happen under one lock because
Flask serves requests on OS threads.

A background sweeper (interval ``W``) forgets users whose timestamps are all
older than ``2W``.  It only bounds memory; :pyfunc:`RateLimiter.admit` prunes
on its own and is correct without it.
"""

from __future__ import annotations

from collections import deque
from typing import Callable, Deque, Dict, Optional
import threading
import time

from relay.cloud_logging import log_text

__all__ = [
    "RateLimiter",
]


def _now_ms() -> float:
    return time.time() * 1000.0


class RateLimiter:
    """Per-actor sliding-window limiter.

    Parameters
    ----------
    limit:
        Maximum admissions per actor inside one window (``L``).
    window_ms:
        Window length in milliseconds (``W``).
    clock:
        Callable returning the current time in milliseconds; injectable so
        tests can drive time explicitly.
    """

    def __init__(
        self,
        limit: int = 1,
        window_ms: int = 60_000,
        *,
        clock: Callable[[], float] = _now_ms,
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_ms <= 0:
            raise ValueError("window_ms must be positive")
        self.limit = limit
        self.window_ms = window_ms
        self._clock = clock
        self._windows: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._sweeper: Optional[threading.Thread] = None

    # ------------------------------------------------------------------
    # Admission
    # ------------------------------------------------------------------

    def admit(self, actor_id: str) -> bool:
        """Return ``True`` and record the request if *actor_id* is under the limit."""
        now = self._clock()
        window_start = now - self.window_ms
        with self._lock:
            timestamps = self._windows.setdefault(actor_id, deque())
            while timestamps and timestamps[0] < window_start:
                timestamps.popleft()
            if len(timestamps) >= self.limit:
                return False
            timestamps.append(now)
            return True

    @property
    def window_seconds(self) -> int:
        # Half-up, so a 2500ms window reads "per 3s".
        return int(self.window_ms / 1000 + 0.5)

    def tracked_actors(self) -> int:
        with self._lock:
            return len(self._windows)

    # ------------------------------------------------------------------
    # Memory housekeeping
    # ------------------------------------------------------------------

    def sweep(self) -> int:
        """Drop timestamps older than ``2W`` and forget empty actors.

        Returns the number of actors removed.
        """
        cutoff = self._clock() - 2 * self.window_ms
        removed = 0
        with self._lock:
            for actor_id in list(self._windows):
                timestamps = self._windows[actor_id]
                while timestamps and timestamps[0] < cutoff:
                    timestamps.popleft()
                if not timestamps:
                    del self._windows[actor_id]
                    removed += 1
        return removed

    def start_sweeper(self) -> None:
        """Run :pyfunc:`sweep` every ``W`` on a daemon thread (idempotent)."""
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop.clear()
        self._sweeper = threading.Thread(
            target=self._sweep_loop, name="rate-limit-sweeper", daemon=True
        )
        self._sweeper.start()

    def stop_sweeper(self) -> None:
        self._stop.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=1.0)
            self._sweeper = None

    def _sweep_loop(self) -> None:
        interval = self.window_ms / 1000.0
        while not self._stop.wait(interval):
            removed = self.sweep()
            if removed:
                log_text(f"Rate limiter sweep removed {removed} idle user(s).", severity="DEBUG")
