"""Bounded retry with a fixed delay between attempts."""

import logging
import time
from collections.abc import Callable
from typing import TypeVar

import tenacity
from tenacity import RetryCallState, Retrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from scrum_master.errors import RetryError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def with_retry(
    operation: Callable[[], T],
    max_attempts: int,
    delay: float,
    *,
    sleep: Callable[[float], None] = time.sleep,
    on_failure: Callable[[int, Exception], None] | None = None,
    retry_on: tuple[type[Exception], ...] = (Exception,),
) -> T:
    """Call ``operation`` up to ``max_attempts`` times.

    Sleeps ``delay`` seconds between attempts, never after the last one.
    Returns the first successful result; on exhaustion raises RetryError
    chained to the last failure. ``on_failure(attempt, exc)`` is called after
    every failed attempt. Exceptions outside ``retry_on`` propagate at once.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    def after(state: RetryCallState) -> None:
        assert state.outcome is not None
        exc = state.outcome.exception()
        logger.debug("attempt %d/%d failed: %s", state.attempt_number, max_attempts, exc)
        if on_failure is not None:
            on_failure(state.attempt_number, exc)  # type: ignore[arg-type]

    retrying = Retrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_fixed(delay),
        retry=retry_if_exception_type(retry_on),
        sleep=sleep,
        after=after,
    )
    try:
        return retrying(operation)
    except tenacity.RetryError as exc:
        last_error = exc.last_attempt.exception()
        assert isinstance(last_error, Exception)
        raise RetryError(max_attempts, last_error) from last_error
