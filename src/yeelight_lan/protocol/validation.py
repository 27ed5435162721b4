"""Range checks for command parameters.

Every check runs before a request is built, so a rejected value never
reaches the network.
"""

from __future__ import annotations

from collections.abc import Sequence

from yeelight_lan.exceptions import ValidationError
from yeelight_lan.protocol.messages import Effect, PowerMode, Prop

RGB_MIN = 0
RGB_MAX = 0xFFFFFF  # 16777215
HUE_MIN = 0
HUE_MAX = 359
SAT_MIN = 0
SAT_MAX = 100
BRIGHT_MIN = 1
BRIGHT_MAX = 100
CT_MIN = 1700
CT_MAX = 6500
NAME_MAX_LEN = 64


def _require_int(field: str, value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        error_msg = f"{field} must be an integer, got {value!r}."
        raise ValidationError(field, value, error_msg)
    return value


def _require_range(field: str, value: object, low: int, high: int, label: str) -> int:
    number = _require_int(field, value)
    if number < low or number > high:
        error_msg = f"{label} must be between {low} and {high}."
        raise ValidationError(field, value, error_msg)
    return number


def validate_rgb(rgb: object) -> int:
    """Validate a 24-bit RGB value."""
    return _require_range("rgb", rgb, RGB_MIN, RGB_MAX, "RGB value")


def validate_hue(hue: object) -> int:
    """Validate hue in degrees."""
    return _require_range("hue", hue, HUE_MIN, HUE_MAX, "Hue")


def validate_saturation(sat: object) -> int:
    """Validate saturation percentage."""
    return _require_range("sat", sat, SAT_MIN, SAT_MAX, "Saturation")


def validate_brightness(bright: object) -> int:
    """Validate brightness percentage (0 is not allowed; use set_power)."""
    return _require_range("bright", bright, BRIGHT_MIN, BRIGHT_MAX, "Brightness")


def validate_color_temperature(ct: object) -> int:
    """Validate color temperature in Kelvin."""
    return _require_range("ct", ct, CT_MIN, CT_MAX, "Color temperature")


def validate_effect(effect: object) -> str:
    """Validate a transition effect name."""
    try:
        return Effect(effect).value
    except ValueError as e:
        error_msg = f"Effect must be one of {', '.join(m.value for m in Effect)}, got {effect!r}."
        raise ValidationError("effect", effect, error_msg) from e


def validate_duration(duration: object) -> int:
    """Validate a transition duration in milliseconds."""
    value = _require_int("duration", duration)
    if value < 0:
        error_msg = "Duration must not be negative."
        raise ValidationError("duration", duration, error_msg)
    return value


def validate_power_mode(mode: object) -> int:
    """Validate a power-on mode given as PowerMode, its int value, or its name."""
    if isinstance(mode, str):
        try:
            return int(PowerMode[mode.upper()])
        except KeyError as e:
            error_msg = f"Unknown power mode {mode!r}."
            raise ValidationError("mode", mode, error_msg) from e
    try:
        return int(PowerMode(_require_int("mode", mode)))
    except ValueError as e:
        error_msg = f"Unknown power mode {mode!r}."
        raise ValidationError("mode", mode, error_msg) from e


def validate_property_names(names: Sequence[str]) -> list[str]:
    """Validate a non-empty list of known property names."""
    if isinstance(names, str) or len(names) == 0:
        error_msg = "At least one property must be specified."
        raise ValidationError("properties", names, error_msg)
    validated: list[str] = []
    for name in names:
        try:
            validated.append(Prop(name).value)
        except ValueError as e:
            error_msg = f"Unknown property {name!r}."
            raise ValidationError("properties", name, error_msg) from e
    return validated


def validate_name(name: object) -> str:
    """Validate a device name."""
    if not isinstance(name, str) or not name.strip():
        error_msg = "Name must be a non-empty string."
        raise ValidationError("name", name, error_msg)
    if len(name) > NAME_MAX_LEN:
        error_msg = f"Name must be at most {NAME_MAX_LEN} characters."
        raise ValidationError("name", name, error_msg)
    return name
