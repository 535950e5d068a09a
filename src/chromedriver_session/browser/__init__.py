"""Chromedriver process supervision and remote driver creation."""

from .driver import create_remote_driver
from .options import LogLevel, LogType, build_chrome_options
from .process import fetch_status, find_driver_processes, get_free_port, is_driver_alive, probe_status
from .supervisor import DriverProcess, acquire_process

__all__ = [
    "create_remote_driver",
    "LogLevel",
    "LogType",
    "build_chrome_options",
    "fetch_status",
    "find_driver_processes",
    "get_free_port",
    "is_driver_alive",
    "probe_status",
    "DriverProcess",
    "acquire_process",
]
