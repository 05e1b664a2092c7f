"""Readiness polling with exponential backoff."""
import time
from typing import Callable, Optional, TypeVar

from lxdhost.core.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class PollTimeout(Exception):
    """Raised when a polled condition never became true."""

    def __init__(self, description: str, attempts: int, elapsed: float):
        self.description = description
        self.attempts = attempts
        self.elapsed = elapsed
        super().__init__(
            f"Timed out waiting for {description} "
            f"after {attempts} attempts ({elapsed:.0f}s)"
        )


def poll_until(
    predicate: Callable[[], Optional[T]],
    description: str,
    interval: float = 2.0,
    timeout: Optional[float] = None,
    backoff: float = 1.0,
    max_attempts: Optional[int] = None,
    max_interval: float = 30.0,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``predicate`` until it returns a truthy value.

    Stops at whichever bound is hit first: ``max_attempts`` calls, or a total
    of ``timeout`` seconds spent sleeping. Sleeping is accounted rather than
    read from a clock so that an injected ``sleep`` keeps the bound exact.
    There is no sleep after the final attempt.

    Args:
        predicate: Zero-argument callable; a truthy return ends polling
        description: What is being waited for (used in logs and errors)
        interval: Delay before the second attempt, in seconds
        timeout: Upper bound on total waiting time, in seconds
        backoff: Multiplier applied to the delay after each attempt
        max_attempts: Upper bound on the number of predicate calls
        max_interval: Cap on a single delay
        sleep: Sleep function (injectable for mock mode and tests)

    Returns:
        The first truthy value returned by ``predicate``

    Raises:
        PollTimeout: If neither bound allowed the predicate to succeed
        ValueError: If no bound was given, or the delays could never add up
            to the timeout
    """
    if timeout is None and max_attempts is None:
        raise ValueError("poll_until needs a timeout or max_attempts")
    if interval <= 0 or max_interval <= 0:
        raise ValueError(f"poll interval must be positive, got {interval}")
    if backoff < 1:
        raise ValueError(f"poll backoff must be at least 1, got {backoff}")
    if timeout is not None and timeout < 0:
        raise ValueError(f"poll timeout must not be negative, got {timeout}")

    waited = 0.0
    attempt = 0
    current = interval

    while True:
        attempt += 1
        value = predicate()
        if value:
            logger.debug(f"{description}: ready after {attempt} attempt(s)")
            return value

        if max_attempts is not None and attempt >= max_attempts:
            break
        if timeout is not None and waited >= timeout:
            break

        step = min(current, max_interval)
        if timeout is not None:
            step = min(step, timeout - waited)

        logger.debug(f"{description}: not ready (attempt {attempt}), waiting {step:.1f}s")
        sleep(step)
        waited += step
        current *= backoff

    raise PollTimeout(description, attempt, waited)
