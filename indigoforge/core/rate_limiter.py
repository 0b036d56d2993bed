"""Token-bucket governor for outbound provisioning calls.

Capacity 100, refilled continuously at 10 tokens/second from elapsed
monotonic time. ``acquire()`` consumes one token, suspending the caller
until a token is available. Waiting never spins: the caller sleeps for
the time until the next token (capped at the poll interval), or blocks
on its cancellation event so a cancel wakes it immediately.

State is guarded by a lock, so one bucket may be shared by concurrent
builds. Each ``BuildRunner`` gets its own bucket unless one is injected.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

from indigoforge.core.errors import BuildCancelledError, IndigoForgeError

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 100
DEFAULT_REFILL_PER_SECOND = 10.0
DEFAULT_POLL_INTERVAL = 0.5


class RateLimitTimeoutError(IndigoForgeError):
    """Raised when ``acquire(timeout=...)`` could not get a token in time."""


class TokenBucket:
    """Thread-safe token bucket.

    Parameters
    ----------
    capacity:
        Maximum (and initial) number of tokens.
    refill_per_second:
        Continuous refill rate.
    poll_interval:
        Upper bound on a single suspension before the bucket is rechecked.
    clock, sleep:
        Injectable time source and sleeper (tests use a fake clock).
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        refill_per_second: float = DEFAULT_REFILL_PER_SECOND,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        if refill_per_second <= 0:
            raise ValueError("refill_per_second must be positive")
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self._capacity = float(capacity)
        self._rate = float(refill_per_second)
        self._poll_interval = poll_interval
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._tokens = float(capacity)
        self._last_refill = clock()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def capacity(self) -> int:
        return int(self._capacity)

    @property
    def refill_per_second(self) -> float:
        return self._rate

    @property
    def available(self) -> float:
        """Current token count, after applying elapsed refill."""
        with self._lock:
            self._refill_locked()
            return self._tokens

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    def _refill_locked(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._last_refill)
        self._tokens = min(self._capacity, self._tokens + elapsed * self._rate)
        self._last_refill = now

    def try_acquire(self) -> bool:
        """Consume a token if one is available; never waits."""
        with self._lock:
            self._refill_locked()
            if self._tokens >= 1:
                self._tokens -= 1
                return True
            return False

    def _time_until_token(self) -> float:
        with self._lock:
            self._refill_locked()
            deficit = max(0.0, 1.0 - self._tokens)
        return min(self._poll_interval, deficit / self._rate)

    def acquire(
        self,
        *,
        cancel: threading.Event | None = None,
        timeout: float | None = None,
    ) -> float:
        """Take one token, waiting as needed. Returns seconds spent waiting.

        Raises
        ------
        BuildCancelledError
            If ``cancel`` is set before or while waiting.
        RateLimitTimeoutError
            If ``timeout`` seconds pass without a token.
        """
        started = self._clock()
        deadline = None if timeout is None else started + timeout

        while True:
            if cancel is not None and cancel.is_set():
                raise BuildCancelledError("Cancelled while waiting for a rate-limit permit")
            if self.try_acquire():
                return self._clock() - started

            wait = self._time_until_token()
            if deadline is not None:
                remaining = deadline - self._clock()
                if remaining <= 0:
                    raise RateLimitTimeoutError(
                        f"No rate-limit permit within {timeout:.2f}s"
                    )
                wait = min(wait, remaining)

            logger.debug("Rate limit reached; waiting %.3fs for a token", wait)
            if cancel is not None:
                # Event.wait returns True as soon as cancel fires
                if cancel.wait(wait):
                    raise BuildCancelledError(
                        "Cancelled while waiting for a rate-limit permit"
                    )
            else:
                self._sleep(wait)
