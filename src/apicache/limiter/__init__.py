"""Outbound call pacing for apicache.

:class:`CallRateLimiter` enforces a minimum interval between calls to a
rate-limited origin, with a random bonus and a "borrow" backlog that lets a
caller lengthen the next wait. It is consumed by the transports in
:mod:`apicache.client.transports` and is controlled by the ``rate_limiter``
section of the configuration (:class:`~apicache.models.RateLimiterConfig`).

The library never creates a shared default instance: the host application
builds one limiter per origin and passes it to every client that talks to
that origin.
"""

from apicache.limiter.base import RateLimiter
from apicache.limiter.generic import CallRateLimiter

__all__ = ["CallRateLimiter", "RateLimiter"]
