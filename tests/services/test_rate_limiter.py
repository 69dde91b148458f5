"""Unit tests for ReservoirRateLimiter."""

import asyncio
import threading

import pytest

from catalogvault.services.rate_limiter import ReservoirRateLimiter
from catalogvault.shared.errors import ApplicationError, ErrorCode


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestReservoirRateLimiter:
    """Test cases for ReservoirRateLimiter."""

    def test_initialization(self):
        """Test limiter starts with a full reservoir."""
        limiter = ReservoirRateLimiter(reservoir=50, refresh_interval=1.0)

        assert limiter.reservoir == 50
        assert limiter.refresh_interval == 1.0
        assert limiter.get_tokens_available() == 50

    @pytest.mark.parametrize(
        ("reservoir", "refresh_interval"),
        [(0, 1.0), (-5, 1.0), (10, 0), (10, -1.0)],
    )
    def test_invalid_configuration(self, reservoir, refresh_interval):
        """Test non-positive reservoir or interval is rejected."""
        with pytest.raises(ApplicationError) as exc_info:
            ReservoirRateLimiter(reservoir=reservoir, refresh_interval=refresh_interval)

        assert exc_info.value.code == ErrorCode.VALIDATION_ERROR

    def test_try_acquire_until_exhausted(self):
        """Test the reservoir allows exactly N acquisitions per window."""
        clock = FakeClock()
        limiter = ReservoirRateLimiter(reservoir=3, refresh_interval=1.0, clock=clock)

        results = [limiter.try_acquire() for _ in range(5)]

        assert results == [True, True, True, False, False]
        assert limiter.get_tokens_available() == 0

    def test_try_acquire_invalid_token_count(self):
        limiter = ReservoirRateLimiter(reservoir=3, refresh_interval=1.0)

        with pytest.raises(ApplicationError):
            limiter.try_acquire(0)
        with pytest.raises(ApplicationError):
            limiter.try_acquire(4)

    def test_no_gradual_refill_inside_window(self):
        """Test tokens do not trickle back before the window boundary."""
        clock = FakeClock()
        limiter = ReservoirRateLimiter(reservoir=5, refresh_interval=1.0, clock=clock)
        assert limiter.try_acquire(5) is True

        clock.advance(0.99)

        assert limiter.get_tokens_available() == 0
        assert limiter.try_acquire() is False

    def test_full_refill_at_window_boundary(self):
        """Test the reservoir is refilled to N at the boundary."""
        clock = FakeClock()
        limiter = ReservoirRateLimiter(reservoir=5, refresh_interval=1.0, clock=clock)
        limiter.try_acquire(5)

        clock.advance(1.0)

        assert limiter.get_tokens_available() == 5

    def test_unused_tokens_do_not_accumulate(self):
        """Test idle windows never push the reservoir above N."""
        clock = FakeClock()
        limiter = ReservoirRateLimiter(reservoir=5, refresh_interval=1.0, clock=clock)

        clock.advance(10.0)

        assert limiter.get_tokens_available() == 5

    def test_window_grid_is_fixed(self):
        """Test refills happen on the grid anchored at construction."""
        clock = FakeClock(start=0.0)
        limiter = ReservoirRateLimiter(reservoir=2, refresh_interval=1.0, clock=clock)

        clock.advance(2.4)
        limiter.try_acquire(2)

        assert limiter.time_until_refill() == pytest.approx(0.6)

        clock.advance(0.6)
        assert limiter.get_tokens_available() == 2

    def test_reset(self):
        clock = FakeClock()
        limiter = ReservoirRateLimiter(reservoir=4, refresh_interval=1.0, clock=clock)
        limiter.try_acquire(4)

        limiter.reset()

        assert limiter.get_tokens_available() == 4
        assert limiter.time_until_refill() == pytest.approx(1.0)

    def test_thread_safety(self):
        """Test concurrent acquisitions never exceed the reservoir."""
        limiter = ReservoirRateLimiter(reservoir=100, refresh_interval=60.0)
        successes = []
        lock = threading.Lock()

        def worker():
            for _ in range(20):
                if limiter.try_acquire():
                    with lock:
                        successes.append(1)

        threads = [threading.Thread(target=worker) for _ in range(10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(successes) == 100
        assert limiter.get_tokens_available() == 0

    @pytest.mark.asyncio
    async def test_acquire_waits_for_refill(self):
        """Test acquire() suspends until the next window."""
        limiter = ReservoirRateLimiter(reservoir=1, refresh_interval=0.1)
        await limiter.acquire()

        loop = asyncio.get_running_loop()
        start = loop.time()
        await limiter.acquire()
        elapsed = loop.time() - start

        assert elapsed >= 0.05
