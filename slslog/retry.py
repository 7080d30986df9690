"""Retrying operations with exponential backoff and an optional deadline."""

from __future__ import annotations

import random
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Tuple

ConditionResult = Tuple[bool, Optional[BaseException]]


class RetryStopped(Exception):
    """Raised when the deadline passes before the operation succeeded."""

    def __init__(self, last_error: Optional[BaseException] = None):
        self.last_error = last_error
        super().__init__(f"stopped retrying err: {last_error}: deadline exceeded")


@dataclass
class ExponentialBackOff:
    """Randomised exponential backoff; intervals are in seconds.

    With the defaults the intervals grow from 0.5 by a factor of 1.5, each
    randomised by +/-50 %, capped at 60 seconds, and stop after 15 minutes.
    """

    initial_interval: float = 0.5
    randomization_factor: float = 0.5
    multiplier: float = 1.5
    max_interval: float = 60.0
    max_elapsed_time: float = 900.0
    clock: Callable[[], float] = time.monotonic
    rand: Callable[[], float] = random.random
    _current: float = field(init=False, repr=False, default=0.0)
    _start: float = field(init=False, repr=False, default=0.0)

    def __post_init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self._current = self.initial_interval
        self._start = self.clock()

    def next_backoff(self) -> Optional[float]:
        """Return the next wait in seconds, or None when retrying should stop."""
        if self.max_elapsed_time and self.clock() - self._start > self.max_elapsed_time:
            return None
        current = self._current
        if current >= self.max_interval / self.multiplier:
            self._current = self.max_interval
        else:
            self._current = current * self.multiplier
        delta = self.randomization_factor * current
        low = current - delta
        high = current + delta
        return low + self.rand() * (high - low)


def _deadline(timeout: Optional[float]) -> Optional[float]:
    return None if timeout is None else time.monotonic() + timeout


def _expired(deadline: Optional[float]) -> bool:
    return deadline is not None and time.monotonic() >= deadline


def _wait(delay: float, deadline: Optional[float], last_error: Optional[BaseException]) -> None:
    if deadline is not None:
        remaining = deadline - time.monotonic()
        if delay >= remaining:
            time.sleep(max(0.0, remaining))
            raise RetryStopped(last_error) from last_error
    time.sleep(delay)


def retry(operation: Callable[[], Any], timeout: Optional[float] = None) -> Any:
    """Call ``operation`` until it stops raising, with the default backoff."""
    return retry_with_backoff(operation, ExponentialBackOff(), timeout)


def retry_with_backoff(
    operation: Callable[[], Any],
    backoff: ExponentialBackOff,
    timeout: Optional[float] = None,
) -> Any:
    """Call ``operation`` until it returns without raising.

    The last exception is raised again once the backoff gives up, and
    RetryStopped is raised when the timeout passes first.
    """
    deadline = _deadline(timeout)
    backoff.reset()
    last_error: Optional[BaseException] = None
    while True:
        if _expired(deadline):
            raise RetryStopped(last_error) from last_error
        try:
            return operation()
        except Exception as exc:
            last_error = exc
        delay = backoff.next_backoff()
        if delay is None:
            raise last_error
        _wait(delay, deadline, last_error)


def _finish(error: Optional[BaseException]) -> None:
    if error is not None:
        raise error


def retry_with_condition(
    operation: Callable[[], ConditionResult],
    backoff: ExponentialBackOff,
    timeout: Optional[float] = None,
) -> None:
    """Call ``operation`` while it asks for a retry.

    ``operation`` returns ``(need_retry, error)``. When no retry is wanted, or
    the backoff gives up, ``error`` is raised if it is set.
    """
    deadline = _deadline(timeout)
    backoff.reset()
    error: Optional[BaseException] = None
    while True:
        if _expired(deadline):
            raise RetryStopped(error) from error
        need_retry, error = operation()
        if not need_retry:
            _finish(error)
            return
        delay = backoff.next_backoff()
        if delay is None:
            _finish(error)
            return
        _wait(delay, deadline, error)


def retry_with_attempt(
    operation: Callable[[], ConditionResult],
    max_attempt: int,
    timeout: Optional[float] = None,
) -> None:
    """Like retry_with_condition, but with the default backoff and at most ``max_attempt`` calls."""
    deadline = _deadline(timeout)
    backoff = ExponentialBackOff()
    error: Optional[BaseException] = None
    for attempt in range(max_attempt):
        if _expired(deadline):
            raise RetryStopped(error) from error
        if attempt > 0:
            delay = backoff.next_backoff()
            if delay is None:
                _finish(error)
                return
            time.sleep(delay)
        need_retry, error = operation()
        if not need_retry:
            _finish(error)
            return
    _finish(error)