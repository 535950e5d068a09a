"""Polling and retry primitives.

Every "wait for element / wait for displayed / wait for ready" behavior goes
through ``poll_until``; callers differ only in the probe they hand in.
"""

import time
import traceback
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Union

from .. import constants
from ..errors import NeedRetryError, UnknownError, WaitTimeoutError, is_stale_element

import logging
logger = logging.getLogger(__name__)


class OutcomeKind(Enum):
    CONTINUE = "continue"
    DONE = "done"
    FATAL = "fatal"


@dataclass(frozen=True)
class Outcome:
    """Result of one probe evaluation."""

    kind: OutcomeKind
    value: Any = None
    error: Optional[BaseException] = None

    @classmethod
    def retry(cls) -> "Outcome":
        return cls(OutcomeKind.CONTINUE)

    @classmethod
    def done(cls, value: Any = None) -> "Outcome":
        return cls(OutcomeKind.DONE, value=value)

    @classmethod
    def fatal(cls, error: BaseException) -> "Outcome":
        return cls(OutcomeKind.FATAL, error=error)


Probe = Callable[[], Union[Outcome, bool, None]]


def _evaluate(probe: Probe) -> Outcome:
    try:
        result = probe()
    except NeedRetryError:
        return Outcome.retry()

    if isinstance(result, Outcome):
        return result
    if result is True:
        return Outcome.done()
    if result is False or result is None:
        return Outcome.retry()
    raise TypeError(f"probe returned {result!r}; expected Outcome or bool")


def poll_until(probe: Probe, timeout: float, interval: Optional[float] = None) -> Any:
    """
    Evaluate ``probe`` once per tick until it succeeds, fails, or ``timeout`` elapses.

    The first evaluation happens one interval after the call. The probe returns
    an ``Outcome`` (a bare bool is read as done/continue). Raising
    ``NeedRetryError`` counts as continue; any other exception aborts the wait
    and propagates unchanged.

    Args:
        probe: condition to evaluate
        timeout: deadline in seconds
        interval: tick length (default POLL_INTERVAL_SECS)

    Returns:
        The value carried by the done outcome.

    Raises:
        WaitTimeoutError: the deadline elapsed first
    """
    if interval is None:
        interval = constants.POLL_INTERVAL_SECS

    start = time.monotonic()
    deadline = start + timeout
    ticks = 0

    while True:
        ticks += 1
        next_tick = start + ticks * interval
        if next_tick > deadline:
            remaining = deadline - time.monotonic()
            if remaining > 0:
                time.sleep(remaining)
            raise WaitTimeoutError(timeout, "".join(traceback.format_stack()))

        delay = next_tick - time.monotonic()
        if delay > 0:
            time.sleep(delay)

        outcome = _evaluate(probe)
        if outcome.kind is OutcomeKind.DONE:
            return outcome.value
        if outcome.kind is OutcomeKind.FATAL:
            raise outcome.error if outcome.error is not None else UnknownError()
        logger.debug(f"poll tick {ticks}: condition not met yet")


def retry_on_stale(fn: Callable[[], Any], timeout: float, interval: Optional[float] = None) -> Any:
    """
    Call ``fn`` on every tick until it stops failing with a retryable error.

    ``NeedRetryError`` and stale element references keep polling; any other
    exception aborts. Returns whatever ``fn`` returned on success.
    """
    def probe() -> Outcome:
        try:
            return Outcome.done(fn())
        except NeedRetryError:
            return Outcome.retry()
        except Exception as e:
            if is_stale_element(e):
                return Outcome.retry()
            return Outcome.fatal(e)

    return poll_until(probe, timeout, interval)


__all__ = [
    "Outcome",
    "OutcomeKind",
    "poll_until",
    "retry_on_stale",
]
