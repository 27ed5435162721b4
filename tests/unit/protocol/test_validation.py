"""Unit tests for command parameter validation."""

from __future__ import annotations

import pytest

from tests.helpers.expectations import expect_exception
from yeelight_lan.exceptions import ValidationError
from yeelight_lan.protocol.messages import PowerMode
from yeelight_lan.protocol.validation import (
    validate_brightness,
    validate_color_temperature,
    validate_duration,
    validate_effect,
    validate_hue,
    validate_name,
    validate_power_mode,
    validate_property_names,
    validate_rgb,
    validate_saturation,
)


class TestRanges:
    """Tests for numeric range checks."""

    @pytest.mark.parametrize(
        ("validator", "low", "high"),
        [
            (validate_rgb, 0, 16777215),
            (validate_hue, 0, 359),
            (validate_saturation, 0, 100),
            (validate_brightness, 1, 100),
            (validate_color_temperature, 1700, 6500),
        ],
    )
    def test_bounds_inclusive(self, validator, low: int, high: int) -> None:
        """Both ends of each range are accepted; one past either end is not."""
        assert validator(low) == low
        assert validator(high) == high
        _ = expect_exception(validator, ValidationError, low - 1)
        _ = expect_exception(validator, ValidationError, high + 1)

    def test_rgb_message(self) -> None:
        """The RGB error names the allowed range."""
        error = expect_exception(validate_rgb, ValidationError, 16777216)

        assert str(error) == "RGB value must be between 0 and 16777215."
        assert error.value == 16777216

    @pytest.mark.parametrize("value", [True, 1.5, "10", None])
    def test_non_integers_rejected(self, value: object) -> None:
        """Booleans, floats and strings are not accepted as integers."""
        _ = expect_exception(validate_brightness, ValidationError, value)

    def test_validation_error_is_value_error(self) -> None:
        """ValidationError can be caught as ValueError."""
        with pytest.raises(ValueError, match="Hue must be between 0 and 359"):
            _ = validate_hue(400)


class TestOtherParameters:
    """Tests for effect, duration, mode, property and name checks."""

    def test_effect(self) -> None:
        """Only smooth and sudden are valid effects."""
        assert validate_effect("smooth") == "smooth"
        assert validate_effect("sudden") == "sudden"
        _ = expect_exception(validate_effect, ValidationError, "fade")

    def test_duration(self) -> None:
        """Durations are non-negative integers."""
        assert validate_duration(0) == 0
        assert validate_duration(500) == 500
        _ = expect_exception(validate_duration, ValidationError, -1)

    @pytest.mark.parametrize(("mode", "expected"), [(PowerMode.RGB, 2), (3, 3), ("night", 5), ("CT", 1)])
    def test_power_mode(self, mode: object, expected: int) -> None:
        """Modes may be given as enum, int or name."""
        assert validate_power_mode(mode) == expected

    @pytest.mark.parametrize("mode", [6, -1, "disco"])
    def test_unknown_power_mode(self, mode: object) -> None:
        """Unknown modes are rejected."""
        _ = expect_exception(validate_power_mode, ValidationError, mode)

    def test_property_names(self) -> None:
        """Known property names pass through in order."""
        assert validate_property_names(["bright", "power", "ct"]) == ["bright", "power", "ct"]

    @pytest.mark.parametrize("names", [[], "power", ["power", "volume"]])
    def test_bad_property_names(self, names: object) -> None:
        """Empty lists, bare strings and unknown names are rejected."""
        _ = expect_exception(validate_property_names, ValidationError, names)

    def test_name(self) -> None:
        """Names are non-empty and bounded."""
        assert validate_name("desk lamp") == "desk lamp"
        _ = expect_exception(validate_name, ValidationError, "   ")
        _ = expect_exception(validate_name, ValidationError, "x" * 65)
