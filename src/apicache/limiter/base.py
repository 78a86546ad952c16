"""Abstract base class for call pacing.

A rate limiter enforces a minimum delay between outbound calls. The
transports in :mod:`apicache.client.transports` only depend on this
interface, so a host application can plug in its own pacing strategy.

To implement a new strategy, subclass :class:`RateLimiter` and implement
:meth:`~RateLimiter.borrow`, :meth:`~RateLimiter.wait_as_needed` and
:meth:`~RateLimiter.reset_last_call_time`. The default
:meth:`~RateLimiter.wait_as_needed_async` runs the blocking wait in a worker
thread; override it when the strategy can sleep natively on the event loop.

See Also:
    :class:`~apicache.limiter.generic.CallRateLimiter` for the
    minimum-interval implementation.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod


class RateLimiter(ABC):
    """Interface for minimum-interval call pacing.

    Implementations must be safe to share between threads: the decision
    whether a caller has to wait, and the bookkeeping that goes with it,
    happen atomically.

    Typical usage::

        limiter.wait_as_needed()
        try:
            response = send(request)
        finally:
            limiter.reset_last_call_time()
    """

    @abstractmethod
    def borrow(self, millis: int) -> None:
        """Add *millis* to the next wait only.

        Use it to slow down after a hint from the origin (e.g. a
        ``Retry-After`` header) without blocking the current caller.
        """

    @abstractmethod
    def wait_as_needed(self) -> float:
        """Block until the next call is allowed.

        Returns:
            The milliseconds actually waited (``0.0`` when no wait was
            needed).
        """

    async def wait_as_needed_async(self) -> float:
        """Awaitable :meth:`wait_as_needed`."""
        return await asyncio.to_thread(self.wait_as_needed)

    @abstractmethod
    def reset_last_call_time(self) -> None:
        """Mark that a call has just completed.

        Called right after the real call returns, so pacing measures the gap
        between calls rather than between call starts.
        """
