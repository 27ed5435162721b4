"""Device announcement parsing.

Devices describe themselves with an HTTP-response-shaped header block, both
as discovery search replies and as unsolicited multicast announcements:

    HTTP/1.1 200 OK
    Cache-Control: max-age=3600
    Location: yeelight://192.168.1.239:55443
    id: 0x000000000015243f
    model: color
    fw_ver: 18
    support: get_prop set_default set_power toggle set_bright ...
    power: on
    bright: 100
    color_mode: 2
    ct: 4000
    rgb: 16711680
    hue: 100
    sat: 35
    name: my_bulb
"""

from __future__ import annotations

from dataclasses import dataclass, field
from urllib.parse import urlsplit

from yeelight_lan.const import ANNOUNCEMENT_STATUS_LINE, UNKNOWN_DEVICE_NAME
from yeelight_lan.exceptions import ConfigurationError

__all__ = [
    "DeviceDescriptor",
    "DeviceState",
    "parse_announcement",
    "parse_headers",
    "split_location",
]


@dataclass
class DeviceState:
    """State snapshot taken from the announcement.

    Advisory only: it is never refreshed after construction. Query live
    properties for current values.
    """

    power: bool = False
    brightness: int | None = None
    color_mode: str | None = None
    color_temperature: int | None = None
    rgb: int | None = None
    hue: int | None = None
    saturation: int | None = None


@dataclass(frozen=True)
class DeviceDescriptor:
    """Identity and capabilities of one device.

    Attributes:
        id: Unique device id as advertised (e.g. "0x000000000015243f")
        location: Advertised command endpoint, "scheme://host:port"
        host: Host part of location
        port: Port part of location
        model: Device model ("color", "mono", "stripe", ...)
        firmware_version: Firmware version string
        name: Device name ("Unknown Device" when unnamed)
        support: Method names the device accepts
        state: Advisory state snapshot

    """

    id: str
    location: str
    host: str
    port: int
    model: str
    firmware_version: str
    name: str = UNKNOWN_DEVICE_NAME
    support: tuple[str, ...] = ()
    state: DeviceState = field(default_factory=DeviceState)

    def __post_init__(self) -> None:
        """Validate required identity fields."""
        missing = [
            name
            for name, value in (
                ("id", self.id),
                ("location", self.location),
                ("host", self.host),
                ("port", self.port),
                ("model", self.model),
                ("fw_ver", self.firmware_version),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError("missing_fields", ", ".join(missing))

    @property
    def address(self) -> str:
        """host:port of the command endpoint."""
        return f"{self.host}:{self.port}"

    @property
    def label(self) -> str:
        """Human-readable label used in logs and error messages."""
        return f"{self.name} ({self.id}) at {self.address}"

    def supports(self, method: str) -> bool:
        """Check whether the device advertised support for a method."""
        return method in self.support


def parse_headers(lines: list[str]) -> dict[str, str]:
    """Collect "Key: Value" lines into a map with lower-cased keys.

    Lines without ": ", or with an empty key or value, are ignored.
    """
    headers: dict[str, str] = {}
    for line in lines:
        key, sep, value = line.partition(": ")
        if not sep:
            continue
        key = key.strip().lower()
        value = value.strip()
        if key and value:
            headers[key] = value
    return headers


def split_location(location: str) -> tuple[str, int]:
    """Split a "scheme://host:port" location into host and port.

    Raises:
        ConfigurationError: Location does not have the expected shape

    """
    try:
        parts = urlsplit(location)
        port = parts.port
    except ValueError as e:
        raise ConfigurationError("bad_location", location) from e
    if not parts.scheme or not parts.hostname or not port:
        raise ConfigurationError("bad_location", location)
    return parts.hostname, port


def _optional_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _split_support(value: str) -> tuple[str, ...]:
    return tuple(item for item in value.replace(",", " ").split() if item)


def parse_announcement(payload: bytes | str) -> DeviceDescriptor:
    """Parse a device announcement into a DeviceDescriptor.

    Args:
        payload: Raw announcement datagram (bytes) or its decoded text

    Returns:
        DeviceDescriptor built from the announcement

    Raises:
        ConfigurationError: Bad status line, malformed location, or a
            missing required field

    """
    text = payload.decode("utf-8", errors="replace") if isinstance(payload, bytes) else payload
    lines = text.replace("\r\n", "\n").split("\n")

    if lines[0].strip() != ANNOUNCEMENT_STATUS_LINE:
        error_msg = f"expected {ANNOUNCEMENT_STATUS_LINE!r}, got {lines[0][:40]!r}"
        raise ConfigurationError("bad_status_line", error_msg)

    headers = parse_headers(lines[1:])

    location = headers.get("location", "")
    if not location:
        raise ConfigurationError("missing_fields", "location")
    host, port = split_location(location)

    state = DeviceState(
        power=headers.get("power") == "on",
        brightness=_optional_int(headers.get("bright")),
        color_mode=headers.get("color_mode"),
        color_temperature=_optional_int(headers.get("ct")),
        rgb=_optional_int(headers.get("rgb")),
        hue=_optional_int(headers.get("hue")),
        saturation=_optional_int(headers.get("sat")),
    )

    return DeviceDescriptor(
        id=headers.get("id", ""),
        location=location,
        host=host,
        port=port,
        model=headers.get("model", ""),
        firmware_version=headers.get("fw_ver", ""),
        name=headers.get("name", UNKNOWN_DEVICE_NAME),
        support=_split_support(headers.get("support", "")),
        state=state,
    )
