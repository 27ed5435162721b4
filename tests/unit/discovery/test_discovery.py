"""Unit tests for multicast device discovery."""

from __future__ import annotations

import asyncio
import logging
from unittest.mock import MagicMock, patch

import pytest

from tests.helpers.fake_device import make_announcement
from yeelight_lan.config import ClientConfig
from yeelight_lan.const import DISCOVERY_QUERY
from yeelight_lan.devices.connection import DeviceConnection
from yeelight_lan.discovery import (
    DatagramCallback,
    DeviceDiscovery,
    DiscoveryProtocol,
    NetworkInterface,
    list_ipv4_interfaces,
)

LAN = NetworkInterface(name="eth0", address="192.168.1.2")
WLAN = NetworkInterface(name="wlan0", address="10.0.0.2")


class DeviceDiscoveryTestHarness(DeviceDiscovery):
    """Replace socket binding with scripted transports and replies."""

    def __init__(
        self,
        config: ClientConfig,
        interfaces: list[NetworkInterface],
        replies: dict[str, list[tuple[bytes, tuple[str, int]]]] | None = None,
        unbindable: frozenset[str] = frozenset(),
    ) -> None:
        super().__init__(config, interface_provider=lambda: interfaces)
        self.replies = replies or {}
        self.unbindable = unbindable
        self.transports: dict[str, MagicMock] = {}

    async def _bind(self, interface: NetworkInterface, callback: DatagramCallback) -> MagicMock | None:
        if interface.name in self.unbindable:
            return None
        transport = MagicMock(spec=asyncio.DatagramTransport)
        self.transports[interface.name] = transport
        loop = asyncio.get_running_loop()
        for data, addr in self.replies.get(interface.name, []):
            _ = loop.call_soon(callback, data, addr)
        return transport


class TestHandleDatagram:
    """Tests for turning replies into devices."""

    def test_adds_device_keyed_by_sender(self, fast_config: ClientConfig) -> None:
        """A valid reply becomes a DeviceConnection keyed by host:port."""
        discovery = DeviceDiscovery(fast_config, interface_provider=list)
        found: dict[str, DeviceConnection] = {}

        device = discovery.handle_datagram(make_announcement(), ("192.168.1.239", 1982), found)

        assert device is not None
        assert found == {"192.168.1.239:1982": device}
        assert device.device_id == "0x000000000015243f"
        assert device.config is fast_config

    def test_duplicate_sender_discarded(self, fast_config: ClientConfig) -> None:
        """A second reply from the same host:port is ignored."""
        discovery = DeviceDiscovery(fast_config, interface_provider=list)
        found: dict[str, DeviceConnection] = {}
        first = discovery.handle_datagram(make_announcement(), ("192.168.1.239", 1982), found)

        second = discovery.handle_datagram(make_announcement(device_id="0x02"), ("192.168.1.239", 1982), found)

        assert second is None
        assert found == {"192.168.1.239:1982": first}

    def test_same_device_from_different_senders(self, fast_config: ClientConfig) -> None:
        """De-duplication is by sender address, not by device id."""
        discovery = DeviceDiscovery(fast_config, interface_provider=list)
        found: dict[str, DeviceConnection] = {}

        _ = discovery.handle_datagram(make_announcement(), ("192.168.1.239", 1982), found)
        _ = discovery.handle_datagram(make_announcement(), ("10.0.0.239", 1982), found)

        assert sorted(found) == ["10.0.0.239:1982", "192.168.1.239:1982"]

    def test_invalid_reply_logged_and_ignored(
        self,
        fast_config: ClientConfig,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Unparseable replies do not abort discovery."""
        discovery = DeviceDiscovery(fast_config, interface_provider=list)
        found: dict[str, DeviceConnection] = {}

        with caplog.at_level(logging.WARNING):
            device = discovery.handle_datagram(b"M-SEARCH * HTTP/1.1\r\n\r\n", ("192.168.1.50", 1982), found)

        assert device is None
        assert found == {}
        assert "Error adding device from 192.168.1.50:1982" in caplog.text

    def test_unsplittable_location_ignored(self, fast_config: ClientConfig) -> None:
        """A reply whose location cannot be parsed yields no device."""
        discovery = DeviceDiscovery(fast_config, interface_provider=list)
        found: dict[str, DeviceConnection] = {}
        payload = make_announcement().replace(b"yeelight://192.168.1.239", b"yeelight://[192.168.1.239")

        device = discovery.handle_datagram(payload, ("192.168.1.239", 1982), found)

        assert device is None
        assert found == {}

    def test_protocol_forwards_datagrams(self, fast_config: ClientConfig) -> None:
        """The datagram protocol hands every datagram to its callback."""
        received: list[tuple[bytes, tuple[str, int]]] = []
        protocol = DiscoveryProtocol(
            lambda data, addr: received.append((data, addr)),
            LAN,
            DeviceDiscovery(fast_config).logger,
        )

        protocol.datagram_received(b"payload", ("192.168.1.239", 1982))
        protocol.error_received(OSError("network unreachable"))

        assert received == [(b"payload", ("192.168.1.239", 1982))]


class TestDiscover:
    """Tests for a full discovery run."""

    @pytest.mark.asyncio
    async def test_discover_collects_replies_from_all_interfaces(self, fast_config: ClientConfig) -> None:
        """Replies on every interface are collected and every transport is closed."""
        discovery = DeviceDiscoveryTestHarness(
            fast_config,
            [LAN, WLAN],
            replies={
                "eth0": [
                    (make_announcement(host="192.168.1.239"), ("192.168.1.239", 1982)),
                    (make_announcement(host="192.168.1.239"), ("192.168.1.239", 1982)),
                ],
                "wlan0": [(make_announcement(device_id="0x02", host="10.0.0.7"), ("10.0.0.7", 1982))],
            },
        )

        found = await discovery.discover(timeout=0.05)

        assert sorted(found) == ["10.0.0.7:1982", "192.168.1.239:1982"]
        assert found["10.0.0.7:1982"].device_id == "0x02"
        for transport in discovery.transports.values():
            transport.sendto.assert_called_once_with(DISCOVERY_QUERY, ("239.255.255.250", 1982))
            transport.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_unbindable_interface_is_skipped(self, fast_config: ClientConfig) -> None:
        """A bind failure on one interface does not stop the others."""
        discovery = DeviceDiscoveryTestHarness(
            fast_config,
            [LAN, WLAN],
            replies={"wlan0": [(make_announcement(host="10.0.0.7"), ("10.0.0.7", 1982))]},
            unbindable=frozenset({"eth0"}),
        )

        found = await discovery.discover(timeout=0.05)

        assert list(found) == ["10.0.0.7:1982"]
        assert list(discovery.transports) == ["wlan0"]

    @pytest.mark.asyncio
    async def test_empty_result_warns(self, fast_config: ClientConfig, caplog: pytest.LogCaptureFixture) -> None:
        """A run that finds nothing warns about network and firewall causes."""
        discovery = DeviceDiscoveryTestHarness(fast_config, [LAN])

        with caplog.at_level(logging.WARNING):
            found = await discovery.discover()

        assert found == {}
        assert "No devices found" in caplog.text
        assert "1982" in caplog.text

    @pytest.mark.asyncio
    async def test_transports_closed_when_cancelled(self, fast_config: ClientConfig) -> None:
        """Cancelling a run still closes its sockets."""
        discovery = DeviceDiscoveryTestHarness(fast_config, [LAN])
        task = asyncio.create_task(discovery.discover(timeout=5.0))
        await asyncio.sleep(0.01)

        _ = task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        discovery.transports["eth0"].close.assert_called_once()

    @pytest.mark.asyncio
    async def test_bind_failure_returns_none(self, fast_config: ClientConfig) -> None:
        """An OSError while binding closes the socket and skips the interface."""
        discovery = DeviceDiscovery(fast_config, interface_provider=list)
        sock = MagicMock()
        sock.bind.side_effect = OSError("Address already in use")

        with patch("yeelight_lan.discovery.socket.socket", return_value=sock):
            transport = await discovery._bind(LAN, lambda data, addr: None)

        assert transport is None
        sock.close.assert_called_once()


class TestInterfaces:
    """Tests for interface enumeration."""

    def test_lists_ipv4_non_loopback(self) -> None:
        """Only non-loopback IPv4 addresses are searched."""

        def make_ip(address: object, is_ipv4: bool) -> MagicMock:
            ip = MagicMock()
            ip.ip = address
            ip.is_IPv4 = is_ipv4
            return ip

        loopback = MagicMock(nice_name="lo", ips=[make_ip("127.0.0.1", True), make_ip(("::1", 0, 0), False)])
        ethernet = MagicMock(
            nice_name="eth0",
            ips=[make_ip("192.168.1.2", True), make_ip(("fe80::1", 0, 2), False)],
        )

        with patch("yeelight_lan.discovery.ifaddr.get_adapters", return_value=[loopback, ethernet]):
            interfaces = list_ipv4_interfaces()

        assert interfaces == [NetworkInterface(name="eth0", address="192.168.1.2")]
