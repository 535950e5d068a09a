"""Chromedriver process supervision: adopt, spawn, health-check, stop."""

import os
import time
import signal
import threading
import subprocess
import urllib.error
import urllib.request
from typing import Optional

from .. import constants
from ..config.environment import validate_port
from ..errors import DriverProcessError, DriverStartupError
from .process import _is_port_open, is_driver_alive

import logging
logger = logging.getLogger(__name__)

# Return codes Popen reports for a process that died from one of these signals.
_CLEAN_EXIT_CODES = {0} | {
    -int(sig) for sig in (getattr(signal, "SIGKILL", None), getattr(signal, "SIGTERM", None)) if sig
}


def driver_address(port: int) -> str:
    return f"http://localhost:{port}/{constants.URL_BASE}"


def build_driver_command(path: str, port: int) -> list[str]:
    return [path, f"--port={port}", f"--url-base={constants.URL_BASE}", "--verbose"]


class DriverProcess:
    """
    Handle on the chromedriver process serving this program.

    Attributes:
        port: Port the driver listens on
        addr: Base address, including the url-base prefix
        proc: The spawned child, or None when an existing driver was adopted
        shutdown_url_path: Graceful shutdown endpoint, or None to always kill
        owned: True if this program spawned the process
    """

    def __init__(
        self,
        port: int,
        proc: Optional[subprocess.Popen] = None,
        owned: bool = False,
        shutdown_url_path: Optional[str] = constants.SHUTDOWN_URL_PATH,
    ):
        self.port = port
        self.addr = driver_address(port)
        self.proc = proc
        self.owned = owned
        self.shutdown_url_path = shutdown_url_path
        self._stop_lock = threading.Lock()
        self._stopped = False

    def __repr__(self) -> str:
        pid = self.proc.pid if self.proc is not None else None
        return f"DriverProcess(port={self.port}, owned={self.owned}, pid={pid})"

    @property
    def hub_url(self) -> str:
        """Endpoint the remote sessions talk to."""
        return self.addr

    @property
    def stopped(self) -> bool:
        return self._stopped

    def _request_shutdown(self) -> bool:
        if not self.shutdown_url_path:
            return False
        try:
            with urllib.request.urlopen(
                self.addr + self.shutdown_url_path,
                timeout=constants.STATUS_PROBE_TIMEOUT_SECS,
            ):
                return True
        except (urllib.error.URLError, OSError) as e:
            # Selenium 3 and recent chromedrivers dropped the shutdown endpoint.
            logger.debug(f"shutdown endpoint unavailable ({e}); killing driver")
            return False

    def stop(self) -> None:
        """
        Stop the driver if this program owns it. Runs at most once.

        Prefers the graceful shutdown endpoint and falls back to killing the
        process. Blocks until the process has exited.

        Raises:
            DriverProcessError: the process exited with an unexpected status
        """
        with self._stop_lock:
            if self._stopped or not self.owned or self.proc is None:
                return
            self._stopped = True

        if not self._request_shutdown():
            self.proc.kill()

        try:
            rc = self.proc.wait(timeout=constants.DRIVER_STOP_WAIT_SECS)
        except subprocess.TimeoutExpired:
            logger.warning(f"chromedriver on port {self.port} ignored shutdown; killing it")
            self.proc.kill()
            rc = self.proc.wait()

        if rc not in _CLEAN_EXIT_CODES:
            raise DriverProcessError(f"chromedriver on port {self.port} exited with status {rc}")


def _discard(proc: subprocess.Popen) -> None:
    if proc.poll() is None:
        proc.kill()
    proc.wait()


def acquire_process(path: str, port: int, debug: bool = False) -> DriverProcess:
    """
    Adopt a healthy driver already listening on ``port`` or spawn a new one.

    Args:
        path: chromedriver executable
        port: port to listen on (>= MIN_DRIVER_PORT)
        debug: wire the child's stdout/stderr to this process' streams

    Returns:
        DriverProcess: ``owned`` tells whether it was spawned here

    Raises:
        ValueError: bad path or port
        DriverStartupError: the spawned driver never answered its status probe
    """
    if not path:
        raise ValueError("chromedriver path is empty")
    validate_port(port)

    addr = driver_address(port)
    if is_driver_alive(addr):
        logger.info(f"*** [webdriver] adopting running chromedriver on port {port} ***")
        return DriverProcess(port, owned=False)

    if _is_port_open("127.0.0.1", port):
        raise DriverStartupError(port, "port is taken by a process that is not a chromedriver")

    logger.info("*** [webdriver] starting chromedriver ***")
    out = None if debug else subprocess.DEVNULL
    try:
        proc = subprocess.Popen(
            build_driver_command(path, port),
            env=os.environ.copy(),
            stdin=subprocess.DEVNULL,
            stdout=out,
            stderr=out,
        )
    except OSError as e:
        raise DriverStartupError(port, str(e)) from e

    try:
        for _ in range(constants.DRIVER_STARTUP_ATTEMPTS):
            time.sleep(constants.DRIVER_STARTUP_INTERVAL_SECS)
            if proc.poll() is not None:
                raise DriverStartupError(port, f"chromedriver exited with status {proc.returncode}")
            if is_driver_alive(addr):
                return DriverProcess(port, proc=proc, owned=True)
    except BaseException:
        _discard(proc)
        raise

    _discard(proc)
    raise DriverStartupError(port)


__all__ = [
    "DriverProcess",
    "acquire_process",
    "build_driver_command",
    "driver_address",
]
