"""correlation.py – Link Clay jobs to the Slack placeholder awaiting them

Purpose
-------
When a job is submitted to Clay we remember *where* its result must go: the
channel, the triggering message (thread anchor) and the placeholder message
that will be overwritten.  Entries are keyed by the Clay row id when Clay
returns one, otherwise by :pyfunc:`fallback_key`.

Delivery contract
-----------------
The default store lives in process memory.  Entries survive until the callback
consumes them or the process exits; a restart loses every pending entry.  This
is the accepted contract (at-least-once submission, lossy on restart).  Clay
can still reach the right message after a restart when it echoes
``slack_channel``/``slack_message_ts`` back in the callback.

A durable backend (Redis, Firestore, …) only needs to subclass
:class:`CorrelationStore`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional
import threading

__all__ = [
    "CorrelationEntry",
    "CorrelationStore",
    "InMemoryCorrelationStore",
    "fallback_key",
]


@dataclass(frozen=True)
class CorrelationEntry:
    key: str
    channel: str
    thread_ts: str
    message_ts: str
    subject_url: str


def fallback_key(channel: str, message_ts: str) -> str:
    """Key used when Clay issues no row id; unique per placeholder."""
    return f"{channel}:{message_ts}"


class CorrelationStore(ABC):
    """Minimal key-value interface the dispatcher and resolver depend on."""

    @abstractmethod
    def put(self, key: str, entry: CorrelationEntry) -> None:
        ...

    @abstractmethod
    def get(self, key: str) -> Optional[CorrelationEntry]:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove *key*; deleting an absent key is a no-op."""

    @abstractmethod
    def first_key(self) -> Optional[str]:
        """Return any live key, or ``None`` when the store is empty."""

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None


class InMemoryCorrelationStore(CorrelationStore):
    """Process-local store guarded by a mutex (requests run on OS threads)."""

    def __init__(self) -> None:
        self._entries: Dict[str, CorrelationEntry] = {}
        self._lock = threading.Lock()

    def put(self, key: str, entry: CorrelationEntry) -> None:
        with self._lock:
            self._entries[key] = entry

    def get(self, key: str) -> Optional[CorrelationEntry]:
        with self._lock:
            return self._entries.get(key)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def first_key(self) -> Optional[str]:
        with self._lock:
            return next(iter(self._entries), None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
