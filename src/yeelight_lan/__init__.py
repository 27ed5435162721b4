"""Async LAN client for Yeelight smart lights."""

from yeelight_lan.config import ClientConfig, LoggingConfig, TimeoutConfig
from yeelight_lan.devices.connection import DeviceConnection
from yeelight_lan.discovery import DeviceDiscovery, NetworkInterface, list_ipv4_interfaces
from yeelight_lan.exceptions import (
    CapacityError,
    ConfigurationError,
    ConnectionClosedError,
    DeviceConnectionError,
    ProtocolError,
    RequestTimeoutError,
    ValidationError,
    YeelightError,
)
from yeelight_lan.protocol import (
    DeviceDescriptor,
    DeviceState,
    Effect,
    Method,
    PowerMode,
    Prop,
    Response,
    parse_announcement,
)
from yeelight_lan.registry import DeviceRegistry

__version__ = "0.1.0"

__all__ = [
    "CapacityError",
    "ClientConfig",
    "ConfigurationError",
    "ConnectionClosedError",
    "DeviceConnection",
    "DeviceConnectionError",
    "DeviceDescriptor",
    "DeviceDiscovery",
    "DeviceRegistry",
    "DeviceState",
    "Effect",
    "LoggingConfig",
    "Method",
    "NetworkInterface",
    "PowerMode",
    "Prop",
    "ProtocolError",
    "RequestTimeoutError",
    "Response",
    "TimeoutConfig",
    "ValidationError",
    "YeelightError",
    "__version__",
    "list_ipv4_interfaces",
    "parse_announcement",
]
