"""Device registry: the set of known devices, keyed by device id."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Iterator

from yeelight_lan.config import ClientConfig
from yeelight_lan.devices.connection import DeviceConnection
from yeelight_lan.discovery import DeviceDiscovery
from yeelight_lan.logging_abstraction import get_logger

__all__ = ["DeviceRegistry"]


class DeviceRegistry:
    """Collection of DeviceConnections with bulk connect and discovery.

    Adding a device whose id is already present replaces the earlier entry.
    """

    def __init__(self, config: ClientConfig | None = None, discovery: DeviceDiscovery | None = None) -> None:
        """Initialize an empty registry.

        Args:
            config: Client configuration used for discovery and logging
            discovery: Discovery runner (built from config when None)

        """
        self.config: ClientConfig = config or ClientConfig()
        self.logger = get_logger(__name__, self.config.logging)
        self._discovery: DeviceDiscovery = discovery or DeviceDiscovery(self.config)
        self._devices: dict[str, DeviceConnection] = {}

    def __len__(self) -> int:
        return len(self._devices)

    def __contains__(self, device_id: object) -> bool:
        return device_id in self._devices

    def __iter__(self) -> Iterator[DeviceConnection]:
        return iter(list(self._devices.values()))

    @property
    def devices(self) -> dict[str, DeviceConnection]:
        """All registered devices keyed by id (the live mapping)."""
        return self._devices

    def add_device(self, device: DeviceConnection) -> DeviceConnection:
        """Register a device under its id, replacing any previous entry."""
        previous = self._devices.get(device.device_id)
        if previous is not None and previous is not device:
            self.logger.info(
                "Replacing device %s",
                device.descriptor.label,
                extra={"device_id": device.device_id},
            )
        self._devices[device.device_id] = device
        return device

    def add_devices(self, devices: Iterable[DeviceConnection]) -> list[DeviceConnection]:
        """Register several devices; later entries win on duplicate ids."""
        added = list(devices)
        for device in added:
            _ = self.add_device(device)
        return added

    def get_device(self, device_id: str) -> DeviceConnection | None:
        """Return the device with this id, or None."""
        return self._devices.get(device_id)

    async def remove_device(self, device_id: str) -> DeviceConnection | None:
        """Unregister and close a device.

        Returns:
            The removed device, or None if the id was unknown

        """
        device = self._devices.pop(device_id, None)
        if device is not None:
            await device.close()
        return device

    async def connect_all(self, exclude_unhealthy: bool = False) -> dict[str, DeviceConnection]:
        """Connect every registered device concurrently.

        Connection failures are logged per device and do not stop the others.

        Args:
            exclude_unhealthy: Probe each connected device and return only
                those that answered, in a new mapping

        Returns:
            The registry's own mapping, or a new mapping of healthy devices

        """
        devices = list(self._devices.values())
        results = await asyncio.gather(*(device.connect() for device in devices), return_exceptions=True)

        connected: list[DeviceConnection] = []
        for device, result in zip(devices, results, strict=True):
            if isinstance(result, Exception):
                self.logger.error(
                    "Failed to connect to device %s: %s",
                    device.descriptor.label,
                    result,
                    extra={"device_id": device.device_id, "error_type": type(result).__name__},
                )
            elif isinstance(result, BaseException):
                raise result
            else:
                connected.append(device)

        self.logger.info("Connected %d of %d device(s)", len(connected), len(devices))
        if not exclude_unhealthy:
            return self._devices

        health = await asyncio.gather(*(device.check_health() for device in connected))
        return {
            device.device_id: device for device, healthy in zip(connected, health, strict=True) if healthy
        }

    async def discover(self, timeout: float | None = None, register: bool = False) -> dict[str, DeviceConnection]:
        """Search the network for devices.

        Args:
            timeout: Seconds to listen for replies (defaults to discovery_timeout)
            register: Also add every discovered device to this registry

        Returns:
            Discovered devices keyed by "host:port"

        """
        found = await self._discovery.discover(timeout)
        if register:
            _ = self.add_devices(found.values())
        return found

    async def close_all(self) -> None:
        """Close every registered device."""
        _ = await asyncio.gather(*(device.close() for device in self._devices.values()))

    def get_stats(self) -> dict[str, object]:
        """Summarize registry contents."""
        devices = list(self._devices.values())
        return {
            "total_devices": len(devices),
            "connected_devices": sum(1 for device in devices if device.connected),
            "healthy_devices": sum(1 for device in devices if device.is_healthy),
            "device_ids": [device.device_id for device in devices],
        }
