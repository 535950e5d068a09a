"""
Drive chromedriver sessions and supervise the chromedriver process.

One chromedriver serves every session opened by this program. It is adopted
when one is already listening on the requested port, otherwise spawned, and
in that case stopped again on shutdown. Sessions are closed before the
driver goes away, whether shutdown comes from the caller or from SIGINT/SIGTERM.

Element lookups wait: a path that does not match yet is polled once per
second until the session timeout, so callers do not need to sleep around
asynchronous rendering.
"""

from .context import (
    DriverContext,
    get_context,
    initialize,
    new_session,
    reset_context,
    shutdown,
)
from .errors import (
    DriverNotStartedError,
    DriverProcessError,
    DriverStartupError,
    ElementNotFoundError,
    InvalidSelectorPathError,
    NeedRetryError,
    UnknownError,
    WaitTimeoutError,
    WebDriverSessionError,
    is_not_found,
    is_stale_element,
)
from .session import Element, Session
from .utils.retry import Outcome, poll_until

__all__ = [
    "DriverContext",
    "get_context",
    "initialize",
    "new_session",
    "reset_context",
    "shutdown",
    "Session",
    "Element",
    "Outcome",
    "poll_until",
    "WebDriverSessionError",
    "WaitTimeoutError",
    "NeedRetryError",
    "UnknownError",
    "ElementNotFoundError",
    "InvalidSelectorPathError",
    "DriverStartupError",
    "DriverProcessError",
    "DriverNotStartedError",
    "is_not_found",
    "is_stale_element",
]
