"""Retry policy shared by the blocking and asyncio clients.

The decision logic lives in :class:`Backoff` so that both clients run the
same algorithm and differ only in how they send and how they sleep::

    backoff = Backoff(max_retries, base_delay)
    response = send()
    while backoff.should_retry(response.status_code):
        sleep(backoff.advance())
        response = send()

Only HTTP statuses in :data:`RETRYABLE_STATUS_CODES` are retried. The delay
doubles on every retry with no cap and no jitter; the number of retries is
the only bound.
"""

from __future__ import annotations

RETRYABLE_STATUS_CODES = frozenset(
    {
        429,  # Too Many Requests
        500,  # Internal Server Error
        503,  # Service Unavailable
    }
)


def is_status_retryable(status: int) -> bool:
    return status in RETRYABLE_STATUS_CODES


class Backoff:
    """Retry state for one logical call.

    Args:
        max_retries: Upper bound on the number of retries.
        base_delay: Delay in seconds before the first retry.
    """

    __slots__ = ("max_retries", "attempt", "delay")

    def __init__(self, max_retries: int, base_delay: float) -> None:
        self.max_retries = max_retries
        self.attempt = 0
        self.delay = base_delay

    def should_retry(self, status: int) -> bool:
        return self.attempt < self.max_retries and is_status_retryable(status)

    def advance(self) -> float:
        """Consume one retry and return the delay to wait before it."""
        delay = self.delay
        self.attempt += 1
        self.delay *= 2
        return delay
