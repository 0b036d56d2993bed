"""Process-wide activity log: a capped, subscribable ring buffer.

Entries are timestamped and kept newest-first. Subscribers receive the
full snapshot immediately on subscribing and again after every push.
"""

from __future__ import annotations

import collections
import logging
import threading
from collections.abc import Callable
from datetime import datetime

logger = logging.getLogger(__name__)

LogSubscriber = Callable[[list[str]], None]

DEFAULT_CAPACITY = 200


class ActivityLog:
    """Bounded activity log with snapshot subscribers.

    Parameters
    ----------
    capacity:
        Maximum number of retained entries; the oldest are dropped.
    clock:
        Returns the current local time; injectable for tests.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        *,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._entries: collections.deque[str] = collections.deque(maxlen=capacity)
        self._subscribers: list[LogSubscriber] = []
        self._lock = threading.Lock()
        self._clock = clock

    def push_log(self, message: str) -> str:
        """Record a message and notify subscribers. Returns the stored entry."""
        entry = f"[{self._clock().strftime('%H:%M:%S')}] {message}"
        with self._lock:
            self._entries.appendleft(entry)
            snapshot = list(self._entries)
            subscribers = list(self._subscribers)
        logger.info("%s", message)
        for subscriber in subscribers:
            subscriber(list(snapshot))
        return entry

    def subscribe(self, callback: LogSubscriber) -> Callable[[], None]:
        """Register ``callback``; returns a function that unsubscribes it."""
        with self._lock:
            self._subscribers.append(callback)
            snapshot = list(self._entries)
        callback(snapshot)

        def _unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return _unsubscribe

    def entries(self) -> list[str]:
        """Newest-first copy of the retained entries."""
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
