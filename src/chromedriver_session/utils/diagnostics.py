"""Diagnostics and debugging information utility functions."""

import os
import sys
import platform
from typing import Optional

import selenium

from ..browser.process import find_driver_processes


def collect_diagnostics(ctx=None, exc: Optional[BaseException] = None) -> str:
    """
    Collect diagnostic information about the driver, sessions and environment.

    Args:
        ctx: DriverContext to report on (if None, the default context)
        exc: Exception that occurred (can be None)

    Returns:
        str: Formatted diagnostic information
    """
    if ctx is None:
        from ..context import get_context
        ctx = get_context()

    driver_path = (os.getenv("CHROME_DRIVER") or "").strip() or "<unset>"
    proc = ctx.supervisor

    parts = [
        f"OS                : {platform.system()} {platform.release()}",
        f"Python            : {sys.version.split()[0]}",
        f"Selenium          : {getattr(selenium, '__version__', '?')}",
        f"Chromedriver path : {driver_path}",
        f"Driver address    : {proc.addr if proc else '<none>'}",
        f"Driver owned      : {proc.owned if proc else '<n/a>'}",
        f"Open sessions     : {len(ctx.open_sessions())}",
    ]

    if driver_path != "<unset>":
        try:
            pids = find_driver_processes(driver_path)
            parts.append(f"Driver PIDs       : {', '.join(map(str, pids)) or '<none>'}")
        except Exception:
            parts.append("Driver PIDs       : <unknown>")

    if exc:
        parts += [
            "---- ERROR ----",
            f"Error type        : {type(exc).__name__}",
            f"Error message     : {exc}",
        ]

    return "\n".join(parts)


__all__ = ['collect_diagnostics']
