"""
Global constants and configuration defaults.
No dependencies - safe to import from anywhere.
"""

import os

# ============================================================================
# Driver Process Configuration
# ============================================================================

MIN_DRIVER_PORT = 1000
"""Lowest port accepted for the driver (avoids privileged/system ports)."""

DEFAULT_DRIVER_PORT = int(os.getenv("CHROME_DRIVER_PORT", "9090"))
"""Port used by the example program when none is given."""

URL_BASE = "wd/hub"
"""Path prefix the driver is started with; session traffic goes below it."""

SHUTDOWN_URL_PATH = "/shutdown"
"""Graceful shutdown endpoint, relative to the driver address."""

DRIVER_STARTUP_ATTEMPTS = int(os.getenv("WDS_DRIVER_STARTUP_ATTEMPTS", "30"))
"""How many status probes to make after spawning the driver."""

DRIVER_STARTUP_INTERVAL_SECS = 1.0
"""Delay between two startup status probes."""

DRIVER_STOP_WAIT_SECS = float(os.getenv("WDS_DRIVER_STOP_WAIT_SECS", "10"))
"""How long to wait for the driver to exit before killing it."""

STATUS_PROBE_TIMEOUT_SECS = float(os.getenv("WDS_STATUS_PROBE_TIMEOUT_SECS", "2"))
"""HTTP timeout of a single /status probe."""

ACCEPT_LEGACY_STATUS = os.getenv("WDS_ACCEPT_LEGACY_STATUS", "1") not in ("0", "false", "False")
"""Treat 400/403 from /status as alive (Selenium servers before 3 answered that way)."""


# ============================================================================
# Polling Configuration
# ============================================================================

POLL_INTERVAL_SECS = float(os.getenv("WDS_POLL_INTERVAL_SECS", "1"))
"""Tick shared by every waiting operation."""

DEFAULT_TIMEOUT_SECS = float(os.getenv("WDS_DEFAULT_TIMEOUT_SECS", "60"))
"""Session timeout used when the caller does not pass one."""


# ============================================================================
# Snapshot Configuration
# ============================================================================

SNAPSHOT_WAIT_SECS = float(os.getenv("WDS_SNAPSHOT_WAIT_SECS", "0"))
"""How long a snapshot is served before giving up on the viewer (0 = forever)."""


__all__ = [
    "MIN_DRIVER_PORT",
    "DEFAULT_DRIVER_PORT",
    "URL_BASE",
    "SHUTDOWN_URL_PATH",
    "DRIVER_STARTUP_ATTEMPTS",
    "DRIVER_STARTUP_INTERVAL_SECS",
    "DRIVER_STOP_WAIT_SECS",
    "STATUS_PROBE_TIMEOUT_SECS",
    "ACCEPT_LEGACY_STATUS",
    "POLL_INTERVAL_SECS",
    "DEFAULT_TIMEOUT_SECS",
    "SNAPSHOT_WAIT_SECS",
]
