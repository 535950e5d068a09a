"""Chrome capabilities for new remote sessions."""

from enum import Enum
from typing import Mapping, Optional

from selenium.webdriver.chrome.options import Options


class LogType(str, Enum):
    """Components capable of logging."""

    SERVER = "server"
    BROWSER = "browser"
    CLIENT = "client"
    DRIVER = "driver"
    PERFORMANCE = "performance"
    PROFILER = "profiler"


class LogLevel(str, Enum):
    OFF = "OFF"
    SEVERE = "SEVERE"
    WARNING = "WARNING"
    INFO = "INFO"
    DEBUG = "DEBUG"
    ALL = "ALL"


# Chrome 75 renamed "loggingPrefs" to the vendor-prefixed key.
LOG_CAPABILITIES_KEY = "goog:loggingPrefs"


def build_chrome_options(
    profile_dir: str = "",
    width: int = 1920,
    height: int = 1080,
    headless: bool = False,
    logging_prefs: Optional[Mapping[LogType, LogLevel]] = None,
) -> Options:
    """
    Build ChromeOptions for a session window.

    Args:
        profile_dir: user-data-dir for the browser profile; empty for a fresh one
        width: window width in pixels
        height: window height in pixels
        headless: run without a visible window
        logging_prefs: per-component log levels, sent as goog:loggingPrefs

    Returns:
        Options: ready to hand to ``webdriver.Remote``
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"invalid window size {width}x{height}")

    options = Options()
    options.add_argument(f"window-size={width},{height}")
    options.add_argument("disable-notifications")
    if headless:
        options.add_argument("headless")
    if profile_dir:
        options.add_argument(f"user-data-dir={profile_dir}")
    if logging_prefs:
        options.set_capability(
            LOG_CAPABILITIES_KEY,
            {LogType(k).value: LogLevel(v).value for k, v in logging_prefs.items()},
        )
    return options


__all__ = [
    "LogType",
    "LogLevel",
    "LOG_CAPABILITIES_KEY",
    "build_chrome_options",
]
