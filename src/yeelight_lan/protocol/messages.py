"""Command channel message types and JSON line codec.

Requests and responses travel over the device's TCP stream as one compact
JSON object per line, terminated by CRLF. They are matched solely by "id".
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import IntEnum, StrEnum
from typing import cast

from yeelight_lan.exceptions import ProtocolError

__all__ = [
    "LINE_TERMINATOR",
    "Effect",
    "Method",
    "PowerMode",
    "Prop",
    "Request",
    "Response",
    "decode_response",
]

LINE_TERMINATOR = b"\r\n"

ParamValue = str | int


class Method(StrEnum):
    """Method names understood by the device."""

    GET_PROP = "get_prop"
    SET_CT_ABX = "set_ct_abx"
    SET_RGB = "set_rgb"
    SET_HSV = "set_hsv"
    SET_BRIGHT = "set_bright"
    SET_POWER = "set_power"
    TOGGLE = "toggle"
    SET_DEFAULT = "set_default"
    START_CF = "start_cf"
    STOP_CF = "stop_cf"
    SET_SCENE = "set_scene"
    CRON_ADD = "cron_add"
    CRON_GET = "cron_get"
    CRON_DEL = "cron_del"
    SET_ADJUST = "set_adjust"
    SET_MUSIC = "set_music"
    SET_NAME = "set_name"
    BG_SET_RGB = "bg_set_rgb"
    BG_SET_HSV = "bg_set_hsv"
    BG_SET_CT_ABX = "bg_set_ct_abx"
    BG_START_CF = "bg_start_cf"
    BG_STOP_CF = "bg_stop_cf"
    BG_SET_SCENE = "bg_set_scene"
    BG_SET_DEFAULT = "bg_set_default"
    BG_SET_POWER = "bg_set_power"
    BG_SET_BRIGHT = "bg_set_bright"
    BG_SET_ADJUST = "bg_set_adjust"
    BG_TOGGLE = "bg_toggle"
    DEV_TOGGLE = "dev_toggle"
    ADJUST_BRIGHT = "adjust_bright"
    ADJUST_CT = "adjust_ct"
    ADJUST_COLOR = "adjust_color"
    BG_ADJUST_BRIGHT = "bg_adjust_bright"
    BG_ADJUST_CT = "bg_adjust_ct"


class Prop(StrEnum):
    """Property names accepted by get_prop."""

    POWER = "power"
    BRIGHT = "bright"
    CT = "ct"
    RGB = "rgb"
    HUE = "hue"
    SAT = "sat"
    COLOR_MODE = "color_mode"
    FLOWING = "flowing"
    DELAYOFF = "delayoff"
    FLOW_PARAMS = "flow_params"
    MUSIC_ON = "music_on"
    NAME = "name"
    BG_POWER = "bg_power"
    BG_FLOWING = "bg_flowing"
    BG_FLOW_PARAMS = "bg_flow_params"
    BG_CT = "bg_ct"
    BG_LMODE = "bg_lmode"
    BG_BRIGHT = "bg_bright"
    BG_RGB = "bg_rgb"
    BG_HUE = "bg_hue"
    BG_SAT = "bg_sat"
    NL_BR = "nl_br"
    ACTIVE_MODE = "active_mode"


class Effect(StrEnum):
    """Transition effect for state-changing commands."""

    SMOOTH = "smooth"
    SUDDEN = "sudden"


class PowerMode(IntEnum):
    """Mode the light switches into when powered on."""

    NORMAL = 0
    CT = 1
    RGB = 2
    HSV = 3
    FLOW = 4
    NIGHT = 5


@dataclass
class Request:
    """Outgoing command. The id is assigned when the request is registered."""

    method: str
    params: list[ParamValue] = field(default_factory=list)
    id: int = 0

    def to_dict(self) -> dict[str, object]:
        """Return the wire object with keys in protocol order."""
        return {"id": self.id, "method": self.method, "params": list(self.params)}

    def encode(self) -> bytes:
        """Serialize to a single CRLF-terminated JSON line."""
        return json.dumps(self.to_dict(), separators=(",", ":")).encode() + LINE_TERMINATOR


@dataclass(frozen=True)
class Response:
    """Reply to a request, or an unsolicited notification when id is None."""

    id: int | None
    result: list[ParamValue] | None = None
    error: dict[str, object] | None = None
    method: str | None = None
    params: dict[str, object] | None = None
    raw: dict[str, object] = field(default_factory=dict, compare=False, repr=False)

    @property
    def ok(self) -> bool:
        """True when the device reported a result and no error."""
        return self.error is None and self.result is not None


def decode_response(line: str) -> Response:
    """Decode one inbound JSON line.

    Args:
        line: A single trimmed, non-empty line from the stream

    Returns:
        Decoded Response (id is None for lines lacking a usable id)

    Raises:
        ProtocolError: Line is not valid JSON or not a JSON object

    """
    try:
        payload: object = json.loads(line)
    except json.JSONDecodeError as e:
        raise ProtocolError("invalid_json", line) from e

    if not isinstance(payload, dict):
        raise ProtocolError("not_an_object", line)

    data = cast("dict[str, object]", payload)
    raw_id = data.get("id")
    # bool is an int subclass; reject it explicitly. Id 0 is never allocated.
    is_int = isinstance(raw_id, int) and not isinstance(raw_id, bool)
    response_id = raw_id if is_int and raw_id != 0 else None

    result = data.get("result")
    error = data.get("error")
    method = data.get("method")
    params = data.get("params")
    return Response(
        id=response_id,
        result=cast("list[ParamValue]", result) if isinstance(result, list) else None,
        error=cast("dict[str, object]", error) if isinstance(error, dict) else None,
        method=method if isinstance(method, str) else None,
        params=cast("dict[str, object]", params) if isinstance(params, dict) else None,
        raw=data,
    )
