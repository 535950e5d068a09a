"""Configuration management for the driver and its sessions."""

from .environment import (
    get_driver_path,
    get_env_config,
    validate_port,
)

__all__ = [
    "get_driver_path",
    "get_env_config",
    "validate_port",
]
