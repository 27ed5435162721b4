"""Wire formats: announcements, command messages and line framing."""

from yeelight_lan.protocol.announcement import (
    DeviceDescriptor,
    DeviceState,
    parse_announcement,
)
from yeelight_lan.protocol.line_framer import LineFramer
from yeelight_lan.protocol.messages import (
    Effect,
    Method,
    PowerMode,
    Prop,
    Request,
    Response,
    decode_response,
)

__all__ = [
    "DeviceDescriptor",
    "DeviceState",
    "Effect",
    "LineFramer",
    "Method",
    "PowerMode",
    "Prop",
    "Request",
    "Response",
    "decode_response",
    "parse_announcement",
]
