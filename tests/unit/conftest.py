"""Shared fixtures for unit tests.

This module provides reusable fixtures for testing Yeelight LAN components
without a network.
"""

from __future__ import annotations

from collections.abc import Iterator
from unittest.mock import patch

import pytest

from tests.helpers.fake_device import FakeNetwork, make_announcement
from yeelight_lan.config import ClientConfig, TimeoutConfig


@pytest.fixture
def fake_network() -> Iterator[FakeNetwork]:
    """Patch asyncio.open_connection with an in-memory network."""
    network = FakeNetwork()
    with patch("asyncio.open_connection", new=network.open_connection):
        yield network


@pytest.fixture
def fast_config() -> ClientConfig:
    """Client configuration with short timeouts for tests."""
    return ClientConfig(
        timeouts=TimeoutConfig(
            connect_timeout=0.5,
            io_timeout=0.5,
            request_timeout=0.2,
            discovery_timeout=0.05,
            health_check_timeout=0.1,
        ),
    )


@pytest.fixture
def announcement_payload() -> bytes:
    """Sample announcement datagram."""
    return make_announcement()
