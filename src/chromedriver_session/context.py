"""
Process-wide driver state: the supervised chromedriver and the open sessions.

``DriverContext`` owns what used to be hidden globals (the active driver
process and the session list). A default instance backs the module-level
``initialize`` / ``new_session`` / ``shutdown`` API.

Thread Safety:
    ``_lock`` guards ``supervisor`` and ``sessions`` and is only held for
    append/remove/swap-out, never across network or process calls.
    ``_lifecycle_lock`` serializes initialize and shutdown. The SIGINT/SIGTERM
    handler never takes either lock on the interrupted thread: it hands the
    shutdown to a separate thread, which waits for any initialize or shutdown
    in progress, runs its own and then ends the process.

Usage:
    from chromedriver_session import initialize, new_session, shutdown

    initialize(9090)
    try:
        s = new_session("", 1920, 1080, headless=True, timeout=60)
        s.navigate("https://example.com")
    finally:
        shutdown()
"""

import logging
import os
import signal
import threading
from typing import Callable, List, Optional

from selenium.webdriver.chrome.options import Options

from . import constants
from .browser.driver import create_remote_driver
from .browser.options import build_chrome_options
from .browser.process import find_driver_processes
from .browser.supervisor import DriverProcess, acquire_process
from .config.environment import get_driver_path, validate_port
from .errors import DriverNotStartedError
from .session import Session

logger = logging.getLogger(__name__)


def _exit_process(code: int) -> None:
    """End the process from a non-main thread, where sys.exit would only end that thread."""
    logging.shutdown()
    os._exit(code)


DriverFactory = Callable[[str, Options], object]


class DriverContext:
    """
    Registry of the active driver process and every open session.

    Attributes:
        supervisor: The driver process in use, or None before initialize/after shutdown
        sessions: Open sessions, in no significant order
        debug: Whether the driver's output is wired to this process' streams
        driver_factory: Opens a remote driver for (hub_url, options)
        acquire: Adopts or spawns the driver for (path, port, debug)
    """

    def __init__(
        self,
        driver_factory: DriverFactory = create_remote_driver,
        acquire: Callable[..., DriverProcess] = acquire_process,
        install_signal_handlers: bool = True,
    ):
        self.supervisor: Optional[DriverProcess] = None
        self.sessions: List[Session] = []
        self.debug = False
        self.driver_factory = driver_factory
        self.acquire = acquire
        self._install_signal_handlers = install_signal_handlers
        self._signals_installed = False
        self._lock = threading.Lock()
        self._lifecycle_lock = threading.RLock()
        self._shutting_down = False
        self._signal_thread: Optional[threading.Thread] = None

    def is_initialized(self) -> bool:
        with self._lock:
            return self.supervisor is not None

    def open_sessions(self) -> List[Session]:
        with self._lock:
            return list(self.sessions)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self, port: int, debug: bool = False, driver_path: Optional[str] = None) -> None:
        """
        Adopt or start the chromedriver on ``port``. A no-op if already initialized.

        Args:
            port: driver port (>= MIN_DRIVER_PORT)
            debug: wire the driver's stdout/stderr to this process' streams
            driver_path: executable; defaults to the CHROME_DRIVER setting

        Raises:
            EnvironmentError: CHROME_DRIVER is not set
            ValueError: port below MIN_DRIVER_PORT
            DriverStartupError: the driver could not be started
        """
        path = driver_path or get_driver_path()
        validate_port(port)

        pids = find_driver_processes(path)
        if pids:
            logger.info(f"*** [webdriver] detected chrome driver running process (PIDs = {', '.join(map(str, pids))}) ***")

        with self._lifecycle_lock:
            with self._lock:
                if self.supervisor is not None:
                    return

            self.debug = debug
            proc = self.acquire(path, port, debug)

            with self._lock:
                self.supervisor = proc
                self._shutting_down = False

            self._install_signals()

    def _install_signals(self) -> None:
        if not self._install_signal_handlers or self._signals_installed:
            return
        if threading.current_thread() is not threading.main_thread():
            logger.warning("not on the main thread; SIGINT/SIGTERM will not trigger shutdown")
            return
        for sig in (signal.SIGINT, signal.SIGTERM):
            signal.signal(sig, self._on_signal)
        self._signals_installed = True

    def _on_signal(self, signum, frame) -> None:
        logger.info("*** [webdriver] interrupt signal received ***")
        if self._signal_thread is not None:
            return
        self._signal_thread = threading.Thread(
            target=self._shutdown_and_exit, name="webdriver-signal-shutdown"
        )
        self._signal_thread.start()

    def _shutdown_and_exit(self) -> None:
        try:
            self.shutdown()
        finally:
            _exit_process(0)

    def shutdown(self) -> List[Exception]:
        """
        Close every session, then stop the driver if this program started it.

        Idempotent, and never raises: per-session and stop failures are logged
        and returned.

        Returns:
            List[Exception]: failures encountered along the way
        """
        errors: List[Exception] = []
        with self._lifecycle_lock:
            with self._lock:
                if self._shutting_down:
                    return errors
                self._shutting_down = True
                sessions, self.sessions = self.sessions, []
                proc = self.supervisor

            try:
                for s in sessions:
                    logger.info(f"*** [webdriver] closing session {s.session_id} ***")
                    try:
                        s._quit()
                    except Exception as e:
                        logger.warning(f"failed to close session {s.session_id}: {e}")
                        errors.append(e)

                if proc is not None and proc.owned:
                    logger.info("*** [webdriver] stopping webdriver ***")
                    try:
                        proc.stop()
                    except Exception as e:
                        logger.warning(f"failed to stop chromedriver: {e}")
                        errors.append(e)
                elif proc is not None:
                    logger.info("*** [webdriver] leave alone webdriver (not owned) ***")
            finally:
                with self._lock:
                    self.supervisor = None
                    self._shutting_down = False

        logger.info("*** [webdriver] shutdown complete ***")
        return errors

    def __enter__(self) -> "DriverContext":
        return self

    def __exit__(self, *exc) -> None:
        self.shutdown()

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def new_session(
        self,
        profile_dir: str = "",
        width: int = 1920,
        height: int = 1080,
        headless: bool = False,
        timeout: float = constants.DEFAULT_TIMEOUT_SECS,
        logging_prefs=None,
    ) -> Session:
        """
        Open a browser window through the supervised driver and register it.

        Raises:
            DriverNotStartedError: initialize has not been called
        """
        with self._lock:
            proc = self.supervisor
        if proc is None:
            raise DriverNotStartedError()

        options = build_chrome_options(profile_dir, width, height, headless, logging_prefs)
        driver = self.driver_factory(proc.hub_url, options)
        session = Session(driver, timeout, context=self, hub_url=proc.hub_url)

        with self._lock:
            registered = self.supervisor is proc and not self._shutting_down
            if registered:
                self.sessions.append(session)
        if not registered:
            session._quit()
            raise DriverNotStartedError("driver was shut down while the session was opening")
        return session

    def _deregister(self, session: Session) -> bool:
        """Remove ``session`` if present (swap with last, truncate). False if absent."""
        with self._lock:
            for idx, s in enumerate(self.sessions):
                if s is session:
                    self.sessions[idx] = self.sessions[-1]
                    self.sessions.pop()
                    return True
        return False


# ============================================================================
# Default Context
# ============================================================================

_global_context: Optional[DriverContext] = None
_global_context_lock = threading.Lock()


def get_context() -> DriverContext:
    """
    Get or create the default driver context.

    All calls return the same instance until reset_context() is called.
    """
    global _global_context
    with _global_context_lock:
        if _global_context is None:
            _global_context = DriverContext()
        return _global_context


def reset_context() -> None:
    """
    Drop the default context.

    Meant for tests; in production call shutdown() instead.
    """
    global _global_context
    with _global_context_lock:
        _global_context = None


def initialize(port: int, debug: bool = False) -> None:
    get_context().initialize(port, debug)


def new_session(
    profile_dir: str = "",
    width: int = 1920,
    height: int = 1080,
    headless: bool = False,
    timeout: float = constants.DEFAULT_TIMEOUT_SECS,
) -> Session:
    return get_context().new_session(profile_dir, width, height, headless, timeout)


def shutdown() -> List[Exception]:
    return get_context().shutdown()


__all__ = [
    "DriverContext",
    "get_context",
    "reset_context",
    "initialize",
    "new_session",
    "shutdown",
]
