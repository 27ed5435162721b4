"""Protocol constants and environment parsing helpers."""

from __future__ import annotations

import os

__all__ = [
    "ANNOUNCEMENT_STATUS_LINE",
    "DEFAULT_DURATION_MS",
    "DEFAULT_EFFECT",
    "DISCOVERY_MULTICAST_ADDRESS",
    "DISCOVERY_PORT",
    "DISCOVERY_QUERY",
    "MAX_PENDING_REQUESTS",
    "MAX_REQUEST_ID",
    "UNKNOWN_DEVICE_NAME",
    "YES_ANSWER",
    "env_flag",
    "env_float",
    "env_int",
    "env_str",
]

YES_ANSWER = ("true", "1", "yes", "y", "t", "on", "o")

# Discovery (SSDP-like multicast search)
DISCOVERY_MULTICAST_ADDRESS: str = "239.255.255.250"
DISCOVERY_PORT: int = 1982
DISCOVERY_QUERY: bytes = b'M-SEARCH * HTTP/1.1\r\nMAN: "ssdp:discover"\r\nST: wifi_bulb\r\n\r\n'

# Announcement / search reply
ANNOUNCEMENT_STATUS_LINE: str = "HTTP/1.1 200 OK"
UNKNOWN_DEVICE_NAME: str = "Unknown Device"

# Command channel
MAX_PENDING_REQUESTS: int = 1000
MAX_REQUEST_ID: int = 1_000_000  # ids live in [1, MAX_REQUEST_ID)
DEFAULT_EFFECT: str = "smooth"
DEFAULT_DURATION_MS: int = 500


def env_str(name: str, default: str | None = None) -> str | None:
    """Return an environment variable, treating empty and "null" as unset."""
    value = os.environ.get(name)
    if not value or value.lower() == "null":
        return default
    return value


def env_flag(name: str, default: bool = False) -> bool:
    """Return True if the environment variable holds a yes-ish answer."""
    value = env_str(name)
    if value is None:
        return default
    return value.casefold() in YES_ANSWER


def env_float(name: str, default: float) -> float:
    """Parse a float environment variable, falling back to default on bad input."""
    value = env_str(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def env_int(name: str, default: int) -> int:
    """Parse an int environment variable, falling back to default on bad input."""
    value = env_str(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default
