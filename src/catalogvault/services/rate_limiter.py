"""Reservoir rate limiter implementation.

This module provides a thread-safe reservoir limiter for controlling request
rates to upstream APIs. Unlike a leaky token bucket, the reservoir is refilled
to its full size at fixed window boundaries: N requests per window, never more.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from typing import Callable

from catalogvault.shared.constants import NetworkConfig
from catalogvault.shared.errors import ApplicationError, ErrorCode, ErrorContext

logger = logging.getLogger(__name__)


class ReservoirRateLimiter:
    """Thread-safe reservoir with a hard periodic refill.

    The window start only ever advances by whole multiples of
    ``refresh_interval``, so refills happen on a fixed grid anchored at
    construction (or the last ``reset``) regardless of when tokens are taken.

    Args:
        reservoir: Number of requests allowed per window
        refresh_interval: Window length in seconds
        clock: Monotonic time source, injectable for tests
    """

    def __init__(
        self,
        reservoir: int,
        refresh_interval: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        context = ErrorContext(
            operation="rate_limiter_init",
            additional_data={
                "reservoir": reservoir,
                "refresh_interval": refresh_interval,
            },
        )

        if reservoir <= 0:
            raise ApplicationError(
                code=ErrorCode.VALIDATION_ERROR,
                message=f"Reservoir must be positive, got: {reservoir}",
                context=context,
            )

        if refresh_interval <= 0:
            raise ApplicationError(
                code=ErrorCode.VALIDATION_ERROR,
                message=f"Refresh interval must be positive, got: {refresh_interval}",
                context=context,
            )

        self.reservoir = reservoir
        self.refresh_interval = refresh_interval
        self._clock = clock
        self._tokens = reservoir
        self._window_start = clock()
        self._lock = threading.Lock()

    def _refill(self) -> None:
        """Refill to the full reservoir if a window boundary was crossed.

        Must be called with the lock held.
        """
        elapsed = self._clock() - self._window_start
        if elapsed >= self.refresh_interval:
            windows = int(elapsed // self.refresh_interval)
            self._window_start += windows * self.refresh_interval
            self._tokens = self.reservoir

    def try_acquire(self, tokens: int = 1) -> bool:
        """Take tokens from the reservoir without waiting.

        Returns:
            True if the tokens were taken, False if the window is exhausted

        Raises:
            ApplicationError: If the token count is not in 1..reservoir
        """
        if tokens <= 0 or tokens > self.reservoir:
            raise ApplicationError(
                code=ErrorCode.VALIDATION_ERROR,
                message=f"Tokens to acquire must be in 1..{self.reservoir}, got: {tokens}",
                context=ErrorContext(
                    operation="rate_limiter_acquire",
                    additional_data={"requested_tokens": tokens},
                ),
            )

        with self._lock:
            self._refill()
            if self._tokens >= tokens:
                self._tokens -= tokens
                return True
            return False

    def time_until_refill(self) -> float:
        """Seconds left until the next window boundary."""
        with self._lock:
            self._refill()
            remaining = self._window_start + self.refresh_interval - self._clock()
        return max(remaining, 0.0)

    async def acquire(self, tokens: int = 1) -> None:
        """Wait until tokens are available, then take them."""
        while not self.try_acquire(tokens):
            wait = max(self.time_until_refill(), NetworkConfig.MIN_WAIT)
            logger.debug("Reservoir exhausted, waiting %.3fs for refill", wait)
            await asyncio.sleep(wait)

    def get_tokens_available(self) -> int:
        """Get the number of tokens left in the current window."""
        with self._lock:
            self._refill()
            return self._tokens

    def reset(self) -> None:
        """Refill the reservoir and restart the window grid now."""
        with self._lock:
            self._tokens = self.reservoir
            self._window_start = self._clock()
