"""Minimum-interval rate limiter with a borrow backlog.

:class:`CallRateLimiter` guarantees that at least
``min_delay_ms + borrowed_ms`` pass between one paced call and the next,
plus a random bonus in ``[0, max_random_bonus_ms)`` so that independent
limiters aimed at the same origin do not wake up in lockstep.

Concurrency model: the wait decision and the state update run under one
lock. A caller that must wait *reserves* its slot before releasing the lock
by moving ``last_call_time`` to the moment its sleep will end; the next
caller measures against that reservation and queues behind it. The sleep
itself happens outside the lock, so callers only serialise around the
decision.

The gap is measured from the end of the previous call (its
:meth:`~CallRateLimiter.reset_last_call_time`) only while callers take turns.
A queued caller's slot is fixed when it reserves, before the call ahead of it
has finished, and a reset never pushes a reservation later. Concurrent calls
are therefore spaced start-to-start: with a 1000ms delay and a 500ms call,
the next caller starts 500ms after the previous call returned.

If a wait is cancelled, the reservation stays in place. The cancelled caller
gives up its slot, but the next caller still waits as if it had been used.
"""

from __future__ import annotations

import asyncio
import logging
import random
import threading
import time
from collections.abc import Callable
from typing import Optional

from apicache.exceptions import WaitCancelledError
from apicache.limiter.base import RateLimiter
from apicache.models import RateLimiterConfig

logger = logging.getLogger(__name__)

MIN_DELAY_MS = 1000
"""Default minimum delay between calls, in milliseconds."""

DEFAULT_RANDOM_BONUS_MS = 10
"""Default upper bound of the random bonus, in milliseconds."""


class CallRateLimiter(RateLimiter):
    """Thread-safe minimum-interval limiter.

    Args:
        min_delay_ms: Minimum delay between paced calls.
        max_random_bonus_ms: Upper bound (exclusive) of the random delay
            added to each enforced wait. ``0`` disables it.
        clock: Monotonic time source in seconds. Tests may inject a fake.

    Raises:
        ValueError: If either delay is negative.

    Example::

        limiter = CallRateLimiter(min_delay_ms=500, max_random_bonus_ms=0)
        for url in urls:
            limiter.wait_as_needed()
            fetch(url)
            limiter.reset_last_call_time()
    """

    def __init__(
        self,
        min_delay_ms: int = MIN_DELAY_MS,
        max_random_bonus_ms: int = DEFAULT_RANDOM_BONUS_MS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if min_delay_ms < 0:
            raise ValueError(f"min_delay_ms must be >= 0, got {min_delay_ms}")
        if max_random_bonus_ms < 0:
            raise ValueError(f"max_random_bonus_ms must be >= 0, got {max_random_bonus_ms}")
        self._min_delay_ms = min_delay_ms
        self._max_random_bonus_ms = max_random_bonus_ms
        self._clock = clock

        self._lock = threading.Lock()
        self._last_call_time: Optional[float] = None
        self._borrowed_ms = 0
        self._total_calls = 0

    @classmethod
    def from_config(cls, config: RateLimiterConfig) -> CallRateLimiter:
        """Build a limiter from the ``rate_limiter`` configuration section."""
        return cls(config.min_wait_ms_between_calls, config.random_ms_addition)

    # ------------------------------------------------------------------ #
    # State
    # ------------------------------------------------------------------ #

    @property
    def min_delay_ms(self) -> int:
        return self._min_delay_ms

    @property
    def max_random_bonus_ms(self) -> int:
        return self._max_random_bonus_ms

    @property
    def borrowed_ms(self) -> int:
        """Milliseconds that will be added to the next enforced wait."""
        with self._lock:
            return self._borrowed_ms

    @property
    def last_call_time(self) -> Optional[float]:
        """Clock value of the last (or reserved) call, ``None`` before the first."""
        with self._lock:
            return self._last_call_time

    @property
    def total_calls(self) -> int:
        """Number of :meth:`borrow` and wait calls made so far."""
        with self._lock:
            return self._total_calls

    # ------------------------------------------------------------------ #
    # Pacing
    # ------------------------------------------------------------------ #

    def borrow(self, millis: int) -> None:
        if millis < 0:
            raise ValueError(f"Cannot borrow a negative delay: {millis}")
        with self._lock:
            self._total_calls += 1
            self._borrowed_ms += millis

    def _reserve(self) -> float:
        """Decide the wait and update state atomically; return seconds to sleep."""
        with self._lock:
            self._total_calls += 1
            now = self._clock()
            needed_ms = self._min_delay_ms + self._borrowed_ms

            if self._last_call_time is not None:
                elapsed_ms = (now - self._last_call_time) * 1000
                if elapsed_ms < needed_ms:
                    wait_ms = needed_ms - elapsed_ms
                    bonus_ms = random.random() * self._max_random_bonus_ms
                    total_ms = wait_ms + bonus_ms
                    logger.info(
                        "Call-%d: Need to wait %dms, but waiting for %dms to enforce the %dms delay (plus %dms)...",
                        self._total_calls,
                        wait_ms,
                        total_ms,
                        self._min_delay_ms,
                        bonus_ms,
                    )
                    self._borrowed_ms = 0
                    self._last_call_time = now + total_ms / 1000
                    return total_ms / 1000

            # Claim the slot; a pending borrow stays for the next enforced wait.
            self._last_call_time = now
            return 0.0

    def wait_as_needed(self, cancel: Optional[threading.Event] = None) -> float:
        """Block until the minimum delay since the last call has passed.

        Args:
            cancel: Optional event; setting it aborts the sleep.

        Returns:
            Milliseconds waited (``0.0`` when no wait was needed).

        Raises:
            WaitCancelledError: If *cancel* was set before the wait ended.
        """
        delay = self._reserve()
        if delay <= 0:
            return 0.0

        if cancel is None:
            time.sleep(delay)
            return delay * 1000

        started = self._clock()
        if cancel.wait(delay):
            remaining_ms = max(0.0, delay - (self._clock() - started)) * 1000
            logger.error("The wait was interrupted with %dms remaining.", remaining_ms)
            raise WaitCancelledError(
                f"Rate limiter wait cancelled with {remaining_ms:.0f}ms remaining",
                remaining_ms=remaining_ms,
            )
        return delay * 1000

    async def wait_as_needed_async(self) -> float:
        """Awaitable :meth:`wait_as_needed` sleeping on the event loop.

        Task cancellation is logged and re-raised.
        """
        delay = self._reserve()
        if delay <= 0:
            return 0.0

        try:
            await asyncio.sleep(delay)
        except asyncio.CancelledError:
            logger.error("The wait was cancelled.")
            raise
        return delay * 1000

    def reset_last_call_time(self) -> None:
        """Stamp the last call time with the current clock.

        A stamp never moves earlier than a slot already reserved by a
        concurrent waiter, so resetting cannot let that waiter's successor
        in early.
        """
        with self._lock:
            now = self._clock()
            if self._last_call_time is None or now > self._last_call_time:
                self._last_call_time = now
