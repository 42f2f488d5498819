"""
Bounded polling of remote state.

Every wait on a third-party system goes through ``poll_until``: a fixed
number of attempts, a per-attempt delay, an optional deadline shared by
a whole request, and an optional abort check (e.g. the HTTP client went
away). Sleep and clock are injectable so callers can be tested without
wall-clock waits.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]
Clock = Callable[[], float]
DelayPolicy = Union[float, Callable[[int], float]]


class PollAborted(Exception):
    """Raised when ``should_abort`` reports that polling must stop."""


class Deadline:
    """A point on a monotonic clock after which polling stops.

    Args:
        seconds: Budget from now. ``None`` means no deadline.
        clock: Monotonic clock, ``time.monotonic`` by default.
    """

    def __init__(self, seconds: Optional[float], clock: Clock = time.monotonic) -> None:
        self._clock = clock
        self._expires_at = None if seconds is None else clock() + seconds

    def remaining(self) -> Optional[float]:
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._clock())

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0


@dataclass
class PollOutcome(Generic[T]):
    """Result of a bounded poll.

    Attributes:
        result: The last value fetched, or None if every fetch failed.
        attempts: Number of fetches performed (failed ones included).
        satisfied: True if ``done(result)`` held before the bound was hit.
        expired: True if the deadline ended polling early.
    """

    result: Optional[T]
    attempts: int
    satisfied: bool
    expired: bool = False


async def poll_until(
    fetch: Callable[[], Awaitable[T]],
    done: Callable[[T], bool],
    *,
    max_attempts: int,
    delay: DelayPolicy,
    sleep: Sleep = asyncio.sleep,
    deadline: Optional[Deadline] = None,
    should_abort: Optional[Callable[[], Awaitable[bool]]] = None,
    delay_first: bool = True,
    label: str = "poll",
) -> PollOutcome[T]:
    """Fetch until ``done`` holds or the attempt/deadline bound is reached.

    Exhausting the bound is not an error: the caller inspects
    ``PollOutcome.satisfied``. A fetch that raises is logged and counts
    as a spent attempt.

    Args:
        fetch: Coroutine function returning the current remote state.
        done: Predicate on a fetched value.
        max_attempts: Upper bound on fetches.
        delay: Seconds to wait before each attempt, or a function of the
            zero-based attempt index.
        sleep: Awaitable sleep, ``asyncio.sleep`` by default.
        deadline: Stops polling once expired; sleeps are clipped to it.
        should_abort: Checked before every sleep and fetch.
        delay_first: Wait before the first fetch as well.
        label: Name used in log lines.

    Raises:
        PollAborted: If ``should_abort`` returned True.
    """
    result: Optional[T] = None
    attempts = 0

    for attempt in range(max_attempts):
        if should_abort is not None and await should_abort():
            logger.info("%s aborted after %d attempts", label, attempts)
            raise PollAborted(label)

        if attempt > 0 or delay_first:
            wait = delay(attempt) if callable(delay) else delay
            if deadline is not None:
                remaining = deadline.remaining()
                if remaining is not None and remaining <= 0:
                    logger.warning("%s hit its deadline after %d attempts", label, attempts)
                    return PollOutcome(result, attempts, False, expired=True)
                if remaining is not None:
                    wait = min(wait, remaining)
            await sleep(wait)

        attempts += 1
        try:
            value = await fetch()
        except Exception as exc:
            logger.warning("%s attempt %d/%d failed: %s", label, attempts, max_attempts, exc)
            continue

        result = value
        if done(value):
            logger.debug("%s satisfied after %d attempts", label, attempts)
            return PollOutcome(result, attempts, True)
        logger.debug("%s attempt %d/%d not satisfied", label, attempts, max_attempts)

    logger.warning("%s exhausted %d attempts", label, max_attempts)
    return PollOutcome(result, attempts, False)
