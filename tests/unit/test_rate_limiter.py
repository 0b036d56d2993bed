"""Tests for the TokenBucket rate limiter."""

from __future__ import annotations

import threading

import pytest

from indigoforge.core.errors import BuildCancelledError
from indigoforge.core.rate_limiter import RateLimitTimeoutError, TokenBucket


class TestTokenBucketBasics:
    def test_defaults(self, make_bucket):
        bucket = make_bucket()
        assert bucket.capacity == 100
        assert bucket.refill_per_second == 10.0
        assert bucket.available == 100

    def test_burst_without_waiting(self, make_bucket, fake_clock):
        bucket = make_bucket()
        for _ in range(100):
            assert bucket.acquire() == 0.0
        assert fake_clock.sleeps == []
        assert bucket.available == pytest.approx(0.0)

    def test_try_acquire_when_empty(self, make_bucket):
        bucket = make_bucket(capacity=1)
        assert bucket.try_acquire() is True
        assert bucket.try_acquire() is False

    @pytest.mark.parametrize(
        "kwargs",
        [{"capacity": 0}, {"refill_per_second": 0}, {"poll_interval": 0}],
    )
    def test_invalid_parameters(self, kwargs):
        with pytest.raises(ValueError):
            TokenBucket(**kwargs)


class TestRefill:
    def test_continuous_refill(self, make_bucket, fake_clock):
        bucket = make_bucket()
        for _ in range(100):
            bucket.acquire()
        fake_clock.advance(0.25)
        assert bucket.available == pytest.approx(2.5)

    def test_refill_capped_at_capacity(self, make_bucket, fake_clock):
        bucket = make_bucket()
        bucket.acquire()
        fake_clock.advance(3600)
        assert bucket.available == 100

    def test_clock_going_backwards_does_not_drain(self, make_bucket, fake_clock):
        bucket = make_bucket()
        fake_clock.advance(-10)
        assert bucket.available == 100

    def test_bounds_hold_under_mixed_use(self, make_bucket, fake_clock):
        bucket = make_bucket()
        for i in range(500):
            bucket.acquire()
            if i % 7 == 0:
                fake_clock.advance(0.3)
            assert 0 <= bucket.available <= 100


class TestWaiting:
    def test_waits_for_next_token(self, make_bucket, fake_clock):
        bucket = make_bucket(capacity=1)
        bucket.acquire()
        waited = bucket.acquire()
        # 1 token at 10/s takes 0.1s, below the 0.5s poll interval
        assert waited == pytest.approx(0.1)
        assert sum(fake_clock.sleeps) == pytest.approx(0.1)

    def test_wait_capped_by_poll_interval(self, make_bucket, fake_clock):
        bucket = make_bucket(capacity=1, refill_per_second=0.5)
        bucket.acquire()
        bucket.acquire()
        assert max(fake_clock.sleeps) <= 0.5
        assert sum(fake_clock.sleeps) == pytest.approx(2.0)

    def test_timeout(self, make_bucket):
        bucket = make_bucket(capacity=1, refill_per_second=0.1)
        bucket.acquire()
        with pytest.raises(RateLimitTimeoutError):
            bucket.acquire(timeout=1.0)


class TestCancellation:
    def test_cancel_before_acquire(self, make_bucket):
        bucket = make_bucket()
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(BuildCancelledError):
            bucket.acquire(cancel=cancel)
        assert bucket.available == 100

    def test_cancel_wakes_waiter(self):
        bucket = TokenBucket(capacity=1, refill_per_second=0.01, poll_interval=30.0)
        bucket.acquire()
        cancel = threading.Event()
        errors: list[BaseException] = []

        def _wait() -> None:
            try:
                bucket.acquire(cancel=cancel)
            except BuildCancelledError as exc:
                errors.append(exc)

        worker = threading.Thread(target=_wait)
        worker.start()
        cancel.set()
        worker.join(timeout=5.0)

        assert not worker.is_alive()
        assert len(errors) == 1


class TestSharedBucket:
    def test_concurrent_acquires_never_overdraw(self):
        bucket = TokenBucket(capacity=50, refill_per_second=1e-6)
        successes: list[bool] = []
        lock = threading.Lock()

        def _grab() -> None:
            for _ in range(20):
                ok = bucket.try_acquire()
                with lock:
                    successes.append(ok)

        threads = [threading.Thread(target=_grab) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sum(successes) == 50
        assert 0 <= bucket.available < 1
