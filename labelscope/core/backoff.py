"""
HTTP 429 handling: rate-limit state and the retry combinator.

Retry Strategy:
    A request answered with 429 is retried after
    ``retry_after * 2 ** (attempt - 1)`` seconds, capped at 30 seconds,
    where ``retry_after`` is the server's Retry-After value and ``attempt``
    counts the 429s seen so far (1-based). At most 3 attempts are made;
    the third 429 surfaces as RateLimitExceeded carrying the delay that the
    next attempt would have needed.

    Retry-After: 10  ->  waits 10s, 20s; third 429 raises with retry_after=30

Only RateLimitExceeded is retried. Authorization, network and other HTTP
errors propagate on the first occurrence.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from labelscope.core.exceptions import RateLimitExceeded
from labelscope.core.logger import get_logger


logger = get_logger(__name__)

# Maximum number of attempts (first try included)
MAX_ATTEMPTS = 3

# Maximum delay between attempts (seconds)
MAX_BACKOFF_SECONDS = 30.0


@dataclass
class RateLimitState:
    """
    Last rate-limit signal observed from a remote.

    One instance per remote client. Written by the retry loop when a 429
    arrives and reset once the backoff has elapsed.

    Attributes:
        retry_after_seconds: Delay chosen for the current backoff.
        observed_at: Clock reading when the 429 was seen.
        is_limited: True between the 429 and the end of its backoff.
    """
    retry_after_seconds: float = 0.0
    observed_at: float = 0.0
    is_limited: bool = False

    def mark_limited(self, retry_after: float, now: float) -> None:
        self.retry_after_seconds = retry_after
        self.observed_at = now
        self.is_limited = True

    def reset(self) -> None:
        self.is_limited = False
        self.retry_after_seconds = 0.0

    def remaining(self, now: float) -> float:
        """Seconds left in the current backoff (0 when not limited)."""
        if not self.is_limited:
            return 0.0
        return max(self.observed_at + self.retry_after_seconds - now, 0.0)


def compute_backoff_delay(
    retry_after: float,
    attempt: int,
    cap: float = MAX_BACKOFF_SECONDS
) -> float:
    """
    Delay before retrying after the attempt-th consecutive 429.

    Args:
        retry_after: Server-supplied Retry-After in seconds.
        attempt: 1-based count of 429 responses so far.
        cap: Upper bound in seconds.

    Example:
        [compute_backoff_delay(10, n) for n in (1, 2, 3)]  # [10, 20, 30]
    """
    if attempt < 1:
        raise ValueError("attempt is 1-based")
    return min(retry_after * (2 ** (attempt - 1)), cap)


async def retry_on_rate_limit(
    request_fn: Callable[[], Awaitable[Any]],
    state: RateLimitState | None = None,
    max_attempts: int = MAX_ATTEMPTS,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
    description: str = "request"
) -> Any:
    """
    Run request_fn, retrying on RateLimitExceeded with capped backoff.

    Args:
        request_fn: Zero-argument callable performing one attempt.
        state: Rate-limit state to update while backing off.
        max_attempts: Attempts allowed, first one included.
        sleep: Awaitable sleep, injectable for tests.
        clock: Clock used for the state timestamps.
        description: Short text used in log messages.

    Returns:
        Whatever request_fn returns on the first non-429 attempt.

    Raises:
        RateLimitExceeded: After max_attempts consecutive 429 responses.
        Any other exception from request_fn, unchanged.
    """
    state = state if state is not None else RateLimitState()

    for attempt in range(1, max_attempts + 1):
        try:
            return await request_fn()
        except RateLimitExceeded as e:
            server_delay = e.retry_after if e.retry_after is not None else 1.0
            delay = compute_backoff_delay(server_delay, attempt)
            state.mark_limited(delay, clock())

            if attempt >= max_attempts:
                logger.error(
                    f"Rate limited {attempt} times for {description}, giving up "
                    f"(next retry would be in {delay:.0f}s)"
                )
                raise RateLimitExceeded(
                    f"Rate limit exceeded after {attempt} attempts. "
                    f"Please wait {delay:.0f} seconds before trying again.",
                    details={**e.details, "attempts": attempt},
                    retry_after=delay
                ) from e

            logger.warning(
                f"Rate limited (attempt {attempt}/{max_attempts}) for {description}, "
                f"retrying in {delay:.0f}s"
            )
            await sleep(delay)
            state.reset()
