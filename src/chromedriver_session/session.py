"""
Sessions and element handles.

``Session`` and ``Element`` share their locate/click/wait logic through
``QueryScope``: the scope only needs to know where to search (the whole
document or one node's subtree) and which session owns the result.
Every wait runs through ``poll_until`` with the owning session's timeout
unless the caller passes ``timeout=``.
"""

import threading
from typing import TYPE_CHECKING, Any, Callable, List, Optional, Sequence

from selenium.common.exceptions import InvalidSelectorException, WebDriverException
from selenium.webdriver.common.by import By
from selenium.webdriver.remote.webdriver import WebDriver
from selenium.webdriver.remote.webelement import WebElement

from .browser.options import LogType
from .browser.process import fetch_status
from .errors import (
    ElementNotFoundError,
    InvalidSelectorPathError,
    WaitTimeoutError,
    is_not_found,
    is_stale_element,
)
from .snapshot import serve_snapshot
from .utils.retry import Outcome, poll_until, retry_on_stale

if TYPE_CHECKING:
    from .context import DriverContext

import logging
logger = logging.getLogger(__name__)

SCROLL_INTO_VIEW_JS = 'arguments[0].scrollIntoView({behavior: "auto", block: "center", inline: "center"});'
SET_ATTRIBUTE_JS = "arguments[0].setAttribute(arguments[1], arguments[2]);"


class QueryScope:
    """Locate/click/wait operations relative to a search root."""

    def _search_root(self):
        raise NotImplementedError

    def _owner(self) -> "Session":
        raise NotImplementedError

    def _timeout(self, timeout: Optional[float]) -> float:
        return self._owner().timeout if timeout is None else timeout

    def _find(self, path: str) -> "Element":
        if not path:
            raise InvalidSelectorPathError(path, "empty path")
        try:
            found = self._search_root().find_element(By.XPATH, path)
        except InvalidSelectorException as e:
            raise InvalidSelectorPathError(path, e.msg or "") from e
        except WebDriverException as e:
            if is_not_found(e):
                raise ElementNotFoundError(path) from e
            raise
        if found is None:
            raise ElementNotFoundError(path)
        return Element(self._owner(), found)

    def _find_all(self, path: str) -> List["Element"]:
        if not path:
            raise InvalidSelectorPathError(path, "empty path")
        try:
            found = self._search_root().find_elements(By.XPATH, path)
        except InvalidSelectorException as e:
            raise InvalidSelectorPathError(path, e.msg or "") from e
        except WebDriverException as e:
            if is_not_found(e):
                raise ElementNotFoundError(path) from e
            raise
        # Callers always expect presence, so an empty match is "not found".
        if not found:
            raise ElementNotFoundError(path)
        owner = self._owner()
        return [Element(owner, el) for el in found]

    def _wait_for(self, finder: Callable[[str], Any], path: str, timeout: Optional[float]):
        timeout = self._timeout(timeout)

        def probe() -> Outcome:
            try:
                return Outcome.done(finder(path))
            except ElementNotFoundError:
                return Outcome.retry()

        try:
            return poll_until(probe, timeout)
        except WaitTimeoutError as e:
            raise ElementNotFoundError(path, timeout) from e

    def locate_one(self, path: str, timeout: Optional[float] = None) -> "Element":
        """
        Wait until ``path`` matches and return the first match.

        Raises:
            ElementNotFoundError: nothing matched before the deadline
            InvalidSelectorPathError: ``path`` is not a valid XPath
        """
        return self._wait_for(self._find, path, timeout)

    def locate_many(self, path: str, timeout: Optional[float] = None) -> List["Element"]:
        """Wait until ``path`` matches at least one node and return all matches."""
        return self._wait_for(self._find_all, path, timeout)

    def click(self, path: str, timeout: Optional[float] = None) -> None:
        """Locate ``path``, scroll it into view, wait until displayed, and click it."""
        timeout = self._timeout(timeout)
        located = False

        def probe() -> Outcome:
            nonlocal located
            try:
                el = self._find(path)
                located = True
                el.scroll_into_view(timeout)
                el.web_element.click()
            except ElementNotFoundError:
                return Outcome.retry()
            except WebDriverException as e:
                if is_stale_element(e):
                    return Outcome.retry()
                raise
            return Outcome.done()

        try:
            poll_until(probe, timeout)
        except WaitTimeoutError as e:
            if not located:
                raise ElementNotFoundError(path, timeout) from e
            raise

    def wait_for_any(self, paths: Sequence[str], timeout: Optional[float] = None) -> int:
        """
        Wait until one of ``paths`` matches and return its index.

        On each tick the paths are tried in list order, so the earliest path
        that currently matches wins. An engine that is not ready yet keeps the
        wait going.

        Raises:
            ValueError: ``paths`` is empty
            WaitTimeoutError: nothing matched before the deadline
        """
        if not paths:
            raise ValueError("wait_for_any needs at least one path")
        owner = self._owner()

        def probe() -> Outcome:
            if not owner.is_ready():
                return Outcome.retry()
            for idx, path in enumerate(paths):
                try:
                    self._find(path)
                except ElementNotFoundError:
                    continue
                return Outcome.done(idx)
            return Outcome.retry()

        return poll_until(probe, self._timeout(timeout))


class Session(QueryScope):
    """
    One browser window/profile driven through the supervised chromedriver.

    Created by ``DriverContext.new_session``; registered with that context
    until closed.
    """

    def __init__(self, driver: WebDriver, timeout: float, context: Optional["DriverContext"] = None, hub_url: str = ""):
        self.driver = driver
        self.timeout = timeout
        self.hub_url = hub_url
        self._context = context
        self._close_lock = threading.Lock()
        self._closed = False

    def __repr__(self) -> str:
        return f"Session(id={self.session_id!r}, timeout={self.timeout:g})"

    def _search_root(self):
        return self.driver

    def _owner(self) -> "Session":
        return self

    @property
    def session_id(self) -> Optional[str]:
        return getattr(self.driver, "session_id", None)

    @property
    def closed(self) -> bool:
        return self._closed

    def navigate(self, url: str) -> None:
        self.driver.get(url)

    def status(self) -> dict:
        """W3C status payload of the driver this session talks to."""
        return fetch_status(self.hub_url)

    def is_ready(self) -> bool:
        # Drivers that predate the W3C payload omit "ready".
        return bool(self.status().get("ready", True))

    def execute_script(self, script: str, *args) -> Any:
        return self.driver.execute_script(script, *args)

    def capture_snapshot(self) -> str:
        """Take a screenshot and serve it until the viewer loads it. Returns the URL."""
        return serve_snapshot(self.driver.get_screenshot_as_png())

    def browser_log(self, log_type: LogType = LogType.BROWSER) -> list:
        """Log entries collected by the driver (needs goog:loggingPrefs)."""
        return self.driver.get_log(LogType(log_type).value)

    def no_stale(self, fn: Callable[[], Any], timeout: Optional[float] = None) -> Any:
        """Run ``fn`` until it no longer fails with a stale element or NeedRetryError."""
        return retry_on_stale(fn, self._timeout(timeout))

    def _quit(self) -> bool:
        """Terminate the remote session. Returns False if it was already closed."""
        with self._close_lock:
            if self._closed:
                return False
            self._closed = True
        self.driver.quit()
        return True

    def close(self) -> None:
        """Deregister from the context and quit the remote session. Safe to repeat."""
        if self._context is not None:
            self._context._deregister(self)
        self._quit()

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class Element(QueryScope):
    """
    A located DOM node. Holds its session without owning it.

    Sub-queries are resolved against this node, so paths should use relative
    XPath (``./div``, ``..``).
    """

    def __init__(self, session: Session, web_element: WebElement):
        self.session = session
        self.web_element = web_element

    def __repr__(self) -> str:
        return f"Element(id={getattr(self.web_element, 'id', None)!r})"

    def _search_root(self):
        return self.web_element

    def _owner(self) -> Session:
        return self.session

    def click(self, path: Optional[str] = None, timeout: Optional[float] = None) -> None:
        """Click the node at ``path`` below this one, or this node itself when no path is given."""
        if path is not None:
            return super().click(path, timeout)
        self.scroll_into_view(timeout)
        self.web_element.click()

    def attribute(self, name: str) -> Optional[str]:
        return self.web_element.get_attribute(name)

    def set_attribute(self, name: str, value: str) -> None:
        self.session.execute_script(SET_ATTRIBUTE_JS, self.web_element, name, value)

    def text(self) -> str:
        """Trimmed text content; empty string if it cannot be read."""
        try:
            return (self.web_element.text or "").strip()
        except Exception:
            return ""

    def parent(self) -> "Element":
        return Element(self.session, self.web_element.find_element(By.XPATH, ".."))

    def is_displayed(self) -> bool:
        return self.web_element.is_displayed()

    def scroll_into_view(self, timeout: Optional[float] = None) -> None:
        """Scroll the node to the center of the viewport and wait until it is displayed."""
        self.session.execute_script(SCROLL_INTO_VIEW_JS, self.web_element)
        poll_until(self.web_element.is_displayed, self._timeout(timeout))

    def capture_snapshot(self) -> str:
        return self.session.capture_snapshot()


__all__ = [
    "QueryScope",
    "Session",
    "Element",
]
