"""Multicast device discovery.

A search query goes out on every local IPv4 interface; each device answers
with an announcement that becomes a DeviceConnection. Replies are
de-duplicated by the sender's host:port.
"""

from __future__ import annotations

import asyncio
import contextlib
import socket
from collections.abc import Callable
from dataclasses import dataclass

import ifaddr

from yeelight_lan.config import ClientConfig
from yeelight_lan.const import DISCOVERY_MULTICAST_ADDRESS, DISCOVERY_PORT, DISCOVERY_QUERY
from yeelight_lan.correlation import correlation_context
from yeelight_lan.devices.connection import DeviceConnection
from yeelight_lan.exceptions import ConfigurationError
from yeelight_lan.logging_abstraction import YeelightLogger, get_logger
from yeelight_lan.metrics import registry

__all__ = [
    "DeviceDiscovery",
    "DiscoveryProtocol",
    "NetworkInterface",
    "list_ipv4_interfaces",
]

DatagramCallback = Callable[[bytes, tuple[str, int]], None]


@dataclass(frozen=True)
class NetworkInterface:
    """A local interface address discovery can search from."""

    name: str
    address: str


def list_ipv4_interfaces() -> list[NetworkInterface]:
    """Return every non-loopback IPv4 address on this host."""
    interfaces: list[NetworkInterface] = []
    for adapter in ifaddr.get_adapters():
        for ip in adapter.ips:
            if not ip.is_IPv4:
                continue
            address = str(ip.ip)
            if address.startswith("127."):
                continue
            interfaces.append(NetworkInterface(name=adapter.nice_name, address=address))
    return interfaces


class DiscoveryProtocol(asyncio.DatagramProtocol):
    """Datagram protocol forwarding search replies to a callback."""

    def __init__(self, callback: DatagramCallback, interface: NetworkInterface, logger: YeelightLogger) -> None:
        self._callback = callback
        self._interface = interface
        self._logger = logger

    def datagram_received(self, data: bytes, addr: tuple[str, int]) -> None:
        """Forward an incoming datagram to the discovery run."""
        self._callback(data, addr)

    def error_received(self, exc: Exception) -> None:
        """Handle transport errors."""
        self._logger.warning(
            "UDP transport error on %s (%s): %s",
            self._interface.name,
            self._interface.address,
            exc,
            extra={"interface": self._interface.name, "error": str(exc)},
        )


class DeviceDiscovery:
    """Runs one-shot searches for devices on the local network."""

    def __init__(
        self,
        config: ClientConfig | None = None,
        interface_provider: Callable[[], list[NetworkInterface]] = list_ipv4_interfaces,
    ) -> None:
        """Initialize discovery.

        Args:
            config: Client configuration, also handed to discovered devices
            interface_provider: Returns the interfaces to search from

        """
        self.config: ClientConfig = config or ClientConfig()
        self.logger = get_logger(__name__, self.config.logging)
        self._interface_provider = interface_provider

    async def discover(self, timeout: float | None = None) -> dict[str, DeviceConnection]:
        """Search every interface and collect the devices that answer.

        Args:
            timeout: Seconds to listen for replies (defaults to discovery_timeout)

        Returns:
            Discovered devices keyed by "host:port" of the replying device

        """
        wait = timeout if timeout is not None else self.config.timeouts.discovery_timeout
        found: dict[str, DeviceConnection] = {}
        transports: list[asyncio.DatagramTransport] = []

        def on_datagram(data: bytes, addr: tuple[str, int]) -> None:
            _ = self.handle_datagram(data, addr, found)

        with correlation_context():
            try:
                for interface in self._interface_provider():
                    self.logger.info(
                        "Searching on interface: %s (%s)",
                        interface.name,
                        interface.address,
                        extra={"interface": interface.name, "address": interface.address},
                    )
                    transport = await self._bind(interface, on_datagram)
                    if transport is None:
                        continue
                    transports.append(transport)
                    self._send_query(transport, interface)

                self.logger.info("Waiting for responses for %.1f seconds...", wait)
                await asyncio.sleep(wait)
            finally:
                for transport in transports:
                    transport.close()

            self.logger.info("Discovery completed: %d device(s) found", len(found))
            if not found:
                self.logger.warning(
                    "No devices found during search. Make sure your devices are powered on and "
                    "connected to the network, and that UDP port %d is not blocked by a firewall.",
                    DISCOVERY_PORT,
                )
        registry.record_discovery_devices(len(found))
        return found

    def handle_datagram(
        self,
        data: bytes,
        addr: tuple[str, int],
        found: dict[str, DeviceConnection],
    ) -> DeviceConnection | None:
        """Turn one search reply into a device, skipping duplicates and junk.

        Returns:
            The new device, or None if the reply was a duplicate or unparseable

        """
        host, port = addr[0], addr[1]
        key = f"{host}:{port}"
        if key in found:
            registry.record_discovery_reply("duplicate")
            self.logger.debug("Device already pulled from %s", key)
            return None

        try:
            device = DeviceConnection.from_announcement(data, self.config)
        except ConfigurationError as e:
            registry.record_discovery_reply("invalid")
            self.logger.warning(
                "Error adding device from %s: %s",
                key,
                e,
                extra={"sender": key, "reason": e.reason},
            )
            return None

        found[key] = device
        registry.record_discovery_reply("added")
        self.logger.info(
            "%s added from %s",
            device.descriptor.label,
            key,
            extra={"device_id": device.device_id, "sender": key},
        )
        return device

    async def _bind(
        self,
        interface: NetworkInterface,
        callback: DatagramCallback,
    ) -> asyncio.DatagramTransport | None:
        """Open the search socket for one interface, or None if it cannot be bound."""
        loop = asyncio.get_running_loop()
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            if hasattr(socket, "SO_REUSEPORT"):
                with contextlib.suppress(OSError):
                    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_IF, socket.inet_aton(interface.address))
            sock.bind((interface.address, DISCOVERY_PORT))
            sock.setblocking(False)
            transport, _ = await loop.create_datagram_endpoint(
                lambda: DiscoveryProtocol(callback, interface, self.logger),
                sock=sock,
            )
        except OSError as e:
            sock.close()
            self.logger.error(
                "Failed to bind to port %d on interface %s (%s): %s",
                DISCOVERY_PORT,
                interface.name,
                interface.address,
                e,
                extra={"interface": interface.name, "address": interface.address, "error": str(e)},
            )
            return None

        self.logger.debug(
            "Listening on %s (%s)",
            interface.name,
            interface.address,
            extra={"interface": interface.name, "port": DISCOVERY_PORT},
        )
        return transport

    def _send_query(self, transport: asyncio.DatagramTransport, interface: NetworkInterface) -> None:
        try:
            transport.sendto(DISCOVERY_QUERY, (DISCOVERY_MULTICAST_ADDRESS, DISCOVERY_PORT))
        except OSError as e:
            self.logger.error(
                "Error sending discovery request on interface %s (%s): %s",
                interface.name,
                interface.address,
                e,
                extra={"interface": interface.name, "error": str(e)},
            )
            return
        self.logger.debug(
            "Sent discovery request on interface %s (%s)",
            interface.name,
            interface.address,
        )
