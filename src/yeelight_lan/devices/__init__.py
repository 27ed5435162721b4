"""Per-device command connections."""

from yeelight_lan.devices.connection import DeviceConnection

__all__ = ["DeviceConnection"]
