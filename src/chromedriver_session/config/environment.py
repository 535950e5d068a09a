"""Environment configuration and validation."""

import os
from typing import Optional

from dotenv import load_dotenv

from ..constants import DEFAULT_DRIVER_PORT, DEFAULT_TIMEOUT_SECS, MIN_DRIVER_PORT

import logging
logger = logging.getLogger(__name__)

load_dotenv()


def _truthy(value: Optional[str]) -> bool:
    return (value or "").strip() in ("1", "true", "True", "yes", "Yes")


def get_driver_path() -> str:
    """
    Path of the chromedriver executable, taken from CHROME_DRIVER.

    Raises:
        EnvironmentError: if CHROME_DRIVER is missing or blank
    """
    path = (os.getenv("CHROME_DRIVER") or "").strip()
    if not path:
        raise EnvironmentError("env CHROME_DRIVER is missing")
    return path


def validate_port(port: int) -> int:
    """Reject ports below MIN_DRIVER_PORT (privileged or system services)."""
    if port < MIN_DRIVER_PORT:
        raise ValueError(f"driver port < {MIN_DRIVER_PORT}: {port}")
    return port


def get_env_config() -> dict:
    """
    Read environment variables and validate required ones.

    Required:   CHROME_DRIVER
    Optional:   CHROME_DRIVER_PORT (default 9090)
                WDS_DEBUG (wire driver output to this process' streams)
                WDS_DEFAULT_TIMEOUT_SECS (session timeout, default 60)
    """
    driver_path = get_driver_path()

    port_env = (os.getenv("CHROME_DRIVER_PORT") or "").strip()
    port = int(port_env) if port_env.isdigit() else DEFAULT_DRIVER_PORT
    validate_port(port)

    return {
        "driver_path": driver_path,
        "port": port,
        "debug": _truthy(os.getenv("WDS_DEBUG")),
        "session_timeout": DEFAULT_TIMEOUT_SECS,
    }


__all__ = [
    "get_driver_path",
    "validate_port",
    "get_env_config",
]
