"""Error taxonomy shared by every query operation."""

from typing import Optional

from selenium.common.exceptions import (
    NoSuchElementException,
    StaleElementReferenceException,
)


class WebDriverSessionError(Exception):
    """Base class for errors raised by this package."""


class WaitTimeoutError(WebDriverSessionError, TimeoutError):
    """The deadline elapsed before the probe reported success."""

    def __init__(self, timeout: float, stack: str = ""):
        super().__init__(f"wait timed out after {timeout:g}s")
        self.timeout = timeout
        self.stack = stack


class NeedRetryError(WebDriverSessionError):
    """Raised by a probe to force another tick."""

    def __init__(self, message: str = "need retry"):
        super().__init__(message)


class UnknownError(WebDriverSessionError):
    def __init__(self, message: str = "unknown error"):
        super().__init__(message)


class ElementNotFoundError(WebDriverSessionError, LookupError):
    """A required locate matched nothing."""

    def __init__(self, path: str, timeout: Optional[float] = None):
        msg = f"element not found: {path}"
        if timeout is not None:
            msg += f" (waited {timeout:g}s)"
        super().__init__(msg)
        self.path = path
        self.timeout = timeout


class InvalidSelectorPathError(WebDriverSessionError, ValueError):
    def __init__(self, path: str, detail: str = ""):
        msg = f"invalid selector path: {path!r}"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)
        self.path = path


class DriverStartupError(WebDriverSessionError, RuntimeError):
    """The driver process could not be started or never became healthy."""

    def __init__(self, port: int, detail: str = ""):
        msg = f"failed to start chrome driver on port {port}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)
        self.port = port


class DriverProcessError(WebDriverSessionError, RuntimeError):
    """The driver process exited with an unexpected status on stop."""


class DriverNotStartedError(WebDriverSessionError, RuntimeError):
    def __init__(self, message: str = "driver not initialized; call initialize() first"):
        super().__init__(message)


def is_not_found(exc: Optional[BaseException]) -> bool:
    """True if the remote side reported a missing element."""
    if exc is None:
        return False
    if isinstance(exc, NoSuchElementException):
        return True
    return "no such element" in str(exc)


def is_stale_element(exc: Optional[BaseException]) -> bool:
    """True if the remote element handle went stale (node detached from the DOM)."""
    if exc is None:
        return False
    if isinstance(exc, StaleElementReferenceException):
        return True
    return "stale element reference" in str(exc)


__all__ = [
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
