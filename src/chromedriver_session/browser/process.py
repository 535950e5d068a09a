"""Process, port and status-endpoint probing."""

import os
import json
import socket
import urllib.error
import urllib.request
from typing import List, Optional

import psutil

from .. import constants

import logging
logger = logging.getLogger(__name__)

STATUS_UNREACHABLE = 500
"""Pseudo status code reported when the endpoint cannot be reached at all."""

_LEGACY_ALIVE_CODES = (400, 403)


def _is_port_open(host: str, port: int, timeout: float = 0.25) -> bool:
    """Check if a port is open."""
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False


def get_free_port() -> int:
    """Get a free port by binding to port 0."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def probe_status(addr: str, timeout: Optional[float] = None) -> int:
    """
    GET ``<addr>/status`` and return the HTTP status code.

    Connection failures are reported as STATUS_UNREACHABLE rather than raised.
    """
    if timeout is None:
        timeout = constants.STATUS_PROBE_TIMEOUT_SECS
    try:
        with urllib.request.urlopen(addr + "/status", timeout=timeout) as resp:
            return resp.status
    except urllib.error.HTTPError as e:
        return e.code
    except (urllib.error.URLError, OSError) as e:
        logger.debug(f"status probe {addr} failed: {e}")
        return STATUS_UNREACHABLE


def is_driver_alive(addr: str, timeout: Optional[float] = None) -> bool:
    """True if the status endpoint answers with a code meaning "driver is up"."""
    code = probe_status(addr, timeout)
    if code == 200:
        return True
    return constants.ACCEPT_LEGACY_STATUS and code in _LEGACY_ALIVE_CODES


def fetch_status(addr: str, timeout: Optional[float] = None) -> dict:
    """
    Read the W3C status payload (``value`` object) from ``<addr>/status``.

    Errors propagate to the caller; a payload without a ``value`` object
    is returned as-is. A legacy 400/403 answer (when accepted as alive)
    carries no payload and yields an empty dict.
    """
    if timeout is None:
        timeout = constants.STATUS_PROBE_TIMEOUT_SECS
    try:
        with urllib.request.urlopen(addr + "/status", timeout=timeout) as resp:
            payload = json.load(resp)
    except urllib.error.HTTPError as e:
        if constants.ACCEPT_LEGACY_STATUS and e.code in _LEGACY_ALIVE_CODES:
            logger.debug(f"legacy status {e.code} from {addr}")
            return {}
        raise
    if isinstance(payload, dict) and isinstance(payload.get("value"), dict):
        return payload["value"]
    return payload if isinstance(payload, dict) else {}


def find_driver_processes(path: str) -> List[int]:
    """
    PIDs of running processes whose name matches the executable's basename.

    Args:
        path: Path (or bare name) of the driver executable

    Returns:
        List[int]: matching PIDs, possibly empty
    """
    name = os.path.basename(path)
    if not name:
        return []
    pids = []
    for p in psutil.process_iter(["name", "pid"]):
        try:
            if p.info["name"] == name:
                pids.append(p.info["pid"])
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue
    return pids


__all__ = [
    "STATUS_UNREACHABLE",
    "_is_port_open",
    "get_free_port",
    "probe_status",
    "is_driver_alive",
    "fetch_status",
    "find_driver_processes",
]
