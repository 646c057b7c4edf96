"""Protocol layer for MagicHome WiFi controllers.

This module handles:
- Color conversion (HSL <-> RGB) and white channel mixing
- Command building (color levels, power, preset patterns, state query)
- State response parsing

Every builder returns the raw command without its checksum byte. The
transport appends the checksum when sending.
"""
from __future__ import annotations

import colorsys
import logging
import math
from dataclasses import dataclass
from typing import Callable, Tuple

from .capabilities import DeviceCapabilityProfile, LightFamily
from .const import (
    COOL_WHITE_SWATCH,
    MASK_BOTH,
    MASK_COLOR,
    MASK_WHITE,
    NEUTRAL_SWATCH,
    OPCODE_SET_COLOR,
    OPCODE_SET_PATTERN,
    OPCODE_SET_POWER,
    OPCODE_STATE_QUERY,
    POWER_OFF,
    POWER_ON,
    STATE_RESPONSE_LEN,
    TERMINATOR,
    WARM_WHITE_SWATCH,
)
from .models import DeviceState, LightState, WhiteEffectSettings

_LOGGER = logging.getLogger(__name__)


# =============================================================================
# CHECKSUM
# =============================================================================

def calculate_checksum(data: bytes) -> int:
    """Calculate checksum (sum of all bytes & 0xFF)."""
    return sum(data) & 0xFF


def append_checksum(data: bytes) -> bytearray:
    """Return a copy of data with its checksum byte appended."""
    packet = bytearray(data)
    packet.append(calculate_checksum(packet))
    return packet


# =============================================================================
# NUMERIC HELPERS
# =============================================================================

def clamp(value: float, minimum: float, maximum: float) -> float:
    """Clamp value into [minimum, maximum]."""
    return max(minimum, min(maximum, value))


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positive values."""
    return int(math.floor(value + 0.5))


# =============================================================================
# COLOR CONVERSION
# =============================================================================

def hsl_to_rgb(hue: float, saturation: float, luminance: float) -> Tuple[int, int, int]:
    """
    Convert HSL (hue 0-360, saturation 0-100, luminance 0-100) to RGB (0-255).

    Out of range saturation or luminance is not rejected; the resulting
    channels are clamped to 0-255.
    """
    r, g, b = colorsys.hls_to_rgb(hue / 360.0, luminance / 100.0, saturation / 100.0)
    return tuple(
        int(clamp(round_half_up(channel * 255), 0, 255)) for channel in (r, g, b)
    )


def rgb_to_hsl(r: int, g: int, b: int) -> Tuple[int, int, int]:
    """
    Convert RGB (0-255) to HSL (hue 0-359, saturation 0-100, luminance 0-100).

    Hue is meaningless for greys and comes back as 0.
    """
    h, l, s = colorsys.rgb_to_hls(
        clamp(r, 0, 255) / 255.0,
        clamp(g, 0, 255) / 255.0,
        clamp(b, 0, 255) / 255.0,
    )
    return (round_half_up(h * 360) % 360, round_half_up(s * 100), round_half_up(l * 100))


# =============================================================================
# WHITE CHANNELS
# =============================================================================

def calculate_white_channels(hue: float) -> Tuple[int, int]:
    """
    Derive (warm_white, cold_white) from hue.

    The hue circle is split in four quadrants. Around 0/360 warm white is
    full and cold white fades out, around 180 cold white is full and warm
    white fades out, and near 90/270 both are high.
    """
    if hue <= 90:
        return (255, round_half_up(255 * (hue / 90)))
    if hue > 270:
        return (255, round_half_up(255 * (1 - (hue - 270) / 90)))
    if hue > 180:
        return (round_half_up(255 * ((hue - 180) / 90)), 255)
    return (round_half_up(255 * (1 - (hue - 90) / 90)), 255)


# =============================================================================
# COLOR COMMAND
# =============================================================================

@dataclass
class ChannelLevels:
    """Working set of channel values while a color command is built."""

    red: int
    green: int
    blue: int
    warm_white: int
    cold_white: int
    mask: int = MASK_COLOR

    def clear_color(self) -> None:
        self.red = self.green = self.blue = 0

    def clear_white(self) -> None:
        self.warm_white = self.cold_white = 0


def _scale(value: float, brightness: float) -> int:
    return round_half_up(clamp(value, 0, 255) / 100 * brightness)


def _full_white(brightness: float) -> int:
    return round_half_up(255 / 100 * brightness)


def _to_byte(value: int) -> int:
    return int(clamp(value, 0, 255))


def scaled_levels(state: LightState) -> ChannelLevels:
    """Convert state to channel levels scaled by brightness, mask set to color."""
    red, green, blue = hsl_to_rgb(state.hue, state.saturation, state.luminance)
    warm_white, cold_white = calculate_white_channels(state.hue)
    brightness = state.brightness

    _LOGGER.debug(
        "Current HSL and brightness: h:%s s:%s l:%s br:%s",
        state.hue, state.saturation, state.luminance, brightness,
    )
    _LOGGER.debug("Converted RGB: r:%s g:%s b:%s", red, green, blue)

    return ChannelLevels(
        red=_scale(red, brightness),
        green=_scale(green, brightness),
        blue=_scale(blue, brightness),
        warm_white=_scale(warm_white, brightness),
        cold_white=_scale(cold_white, brightness),
    )


def _encode_rgb(
    state: LightState,
    profile: DeviceCapabilityProfile,
    settings: WhiteEffectSettings,
    levels: ChannelLevels,
) -> list[int]:
    """RGB only: [0x31, R, G, B, 0x00, mask, 0x0F], byte order per wiring."""
    return [
        OPCODE_SET_COLOR,
        *profile.order_rgb(levels.red, levels.green, levels.blue),
        0x00,
        levels.mask,
        TERMINATOR,
    ]


def _encode_rgbw(
    state: LightState,
    profile: DeviceCapabilityProfile,
    settings: WhiteEffectSettings,
    levels: ChannelLevels,
) -> list[int]:
    """RGB + warm white, color OR white: [0x31, R, G, B, WW, mask, 0x0F]."""
    if (
        state.saturation < settings.color_white_threshold
        or state.is_swatch(WARM_WHITE_SWATCH)
        or state.is_swatch(COOL_WHITE_SWATCH)
        or state.is_swatch(NEUTRAL_SWATCH)
    ):
        levels.clear_color()
        levels.warm_white = _full_white(state.brightness)
        levels.cold_white = 0
        levels.mask = MASK_WHITE
        _LOGGER.debug("Setting warmWhite only without colors: ww:%s", levels.warm_white)
    else:
        levels.clear_white()
        _LOGGER.debug(
            "Setting colors without white: r:%s g:%s b:%s",
            levels.red, levels.green, levels.blue,
        )

    return [
        OPCODE_SET_COLOR,
        *profile.order_rgb(levels.red, levels.green, levels.blue),
        levels.warm_white,
        levels.mask,
        TERMINATOR,
    ]


def _apply_white_swatch(state: LightState, levels: ChannelLevels) -> bool:
    """Handle the warm/cool white picker swatches for dual white devices."""
    if state.is_swatch(WARM_WHITE_SWATCH):
        levels.clear_color()
        levels.warm_white = _full_white(state.brightness)
        levels.cold_white = 0
        levels.mask = MASK_WHITE
        _LOGGER.debug(
            "Setting warmWhite only without colors or coldWhite: ww:%s", levels.warm_white
        )
        return True
    if state.is_swatch(COOL_WHITE_SWATCH):
        levels.clear_color()
        levels.warm_white = 0
        levels.cold_white = _full_white(state.brightness)
        levels.mask = MASK_WHITE
        _LOGGER.debug(
            "Setting coldWhite only without colors or warmWhite: cw:%s", levels.cold_white
        )
        return True
    return False


def _encode_rgbww(
    state: LightState,
    profile: DeviceCapabilityProfile,
    settings: WhiteEffectSettings,
    levels: ChannelLevels,
) -> list[int]:
    """RGB + warm + cold white, color OR white: [0x31, R, G, B, WW, CW, mask, 0x0F]."""
    if _apply_white_swatch(state, levels):
        pass
    elif state.saturation < settings.color_white_threshold:
        levels.clear_color()
        levels.mask = MASK_WHITE
        _LOGGER.debug(
            "Setting warmWhite and coldWhite without colors: ww:%s cw:%s",
            levels.warm_white, levels.cold_white,
        )
    else:
        levels.clear_white()
        _LOGGER.debug(
            "Setting colors without white: r:%s g:%s b:%s",
            levels.red, levels.green, levels.blue,
        )

    return [
        OPCODE_SET_COLOR,
        *profile.order_rgb(levels.red, levels.green, levels.blue),
        levels.warm_white,
        levels.cold_white,
        levels.mask,
        TERMINATOR,
    ]


def _saturated_rgb(state: LightState) -> Tuple[int, int, int]:
    """Full saturation RGB for the same hue and luminance, not brightness scaled.

    When color and white are mixed the white channels carry the brightness
    and act as the desaturation, so the color LEDs run at full strength.
    """
    return hsl_to_rgb(state.hue, 100, state.luminance)


def _encode_rgbww_simultaneous(
    state: LightState,
    profile: DeviceCapabilityProfile,
    settings: WhiteEffectSettings,
    levels: ChannelLevels,
) -> list[int]:
    """RGB + warm + cold white, color AND white: [0x31, R, G, B, WW, CW, mask, 0x0F]."""
    levels.mask = MASK_BOTH

    if _apply_white_swatch(state, levels):
        pass
    elif state.saturation < settings.color_off_threshold_simultaneous:
        levels.clear_color()
        _LOGGER.debug(
            "Turning off color, setting only white: ww:%s cw:%s",
            levels.warm_white, levels.cold_white,
        )
    elif (
        state.saturation < settings.color_white_threshold_simultaneous
        and settings.simultaneous_color_white
    ):
        levels.red, levels.green, levels.blue = _saturated_rgb(state)
        _LOGGER.debug(
            "Setting fully saturated color mixed with white: r:%s g:%s b:%s ww:%s cw:%s",
            levels.red, levels.green, levels.blue, levels.warm_white, levels.cold_white,
        )
    else:
        levels.clear_white()
        _LOGGER.debug(
            "Setting colors without white: r:%s g:%s b:%s",
            levels.red, levels.green, levels.blue,
        )

    return [
        OPCODE_SET_COLOR,
        *profile.order_rgb(levels.red, levels.green, levels.blue),
        levels.warm_white,
        levels.cold_white,
        levels.mask,
        TERMINATOR,
    ]


def _encode_rgbw_simultaneous(
    state: LightState,
    profile: DeviceCapabilityProfile,
    settings: WhiteEffectSettings,
    levels: ChannelLevels,
) -> list[int]:
    """RGB + warm white, color AND white: [0x31, R, G, B, WW, mask, 0x0F]."""
    levels.mask = MASK_BOTH
    full_white = _full_white(state.brightness)

    if (
        state.is_swatch(WARM_WHITE_SWATCH)
        or state.is_swatch(COOL_WHITE_SWATCH)
        or state.is_swatch(NEUTRAL_SWATCH)
    ):
        levels.clear_color()
        levels.warm_white = full_white
        levels.mask = MASK_WHITE
        _LOGGER.debug("Setting warmWhite only without colors: ww:%s", levels.warm_white)
    elif state.saturation < settings.color_off_threshold_simultaneous:
        levels.clear_color()
        levels.warm_white = full_white
        _LOGGER.debug("Turning off color, setting only white: ww:%s", levels.warm_white)
    elif (
        state.saturation < settings.color_white_threshold_simultaneous
        and settings.simultaneous_color_white
    ):
        levels.red, levels.green, levels.blue = _saturated_rgb(state)
        levels.warm_white = full_white
        _LOGGER.debug(
            "Setting fully saturated color mixed with white: r:%s g:%s b:%s ww:%s",
            levels.red, levels.green, levels.blue, levels.warm_white,
        )
    else:
        levels.clear_white()
        _LOGGER.debug(
            "Setting colors without white: r:%s g:%s b:%s",
            levels.red, levels.green, levels.blue,
        )

    return [
        OPCODE_SET_COLOR,
        *profile.order_rgb(levels.red, levels.green, levels.blue),
        levels.warm_white,
        levels.mask,
        TERMINATOR,
    ]


_ENCODERS: dict[
    LightFamily,
    Callable[[LightState, DeviceCapabilityProfile, WhiteEffectSettings, ChannelLevels], list[int]],
] = {
    LightFamily.RGB: _encode_rgb,
    LightFamily.RGBW: _encode_rgbw,
    LightFamily.RGBWW: _encode_rgbww,
    LightFamily.RGBW_SIMULTANEOUS: _encode_rgbw_simultaneous,
    LightFamily.RGBWW_SIMULTANEOUS: _encode_rgbww_simultaneous,
}


def build_color_command(
    state: LightState,
    profile: DeviceCapabilityProfile,
    settings: WhiteEffectSettings | None = None,
) -> bytearray:
    """
    Build the 0x31 level command for a light state.

    Format depends on the profile:
      RGB:            [0x31, R, G, B, 0x00, mask, 0x0F]
      RGBW:           [0x31, R, G, B, WW, mask, 0x0F]
      RGBWW:          [0x31, R, G, B, WW, CW, mask, 0x0F]

    Mask byte values:
    - 0xF0 = color channels only
    - 0x0F = white channels only
    - 0xFF = color and white together (simultaneous devices)

    The state is never modified.
    """
    if settings is None:
        settings = WhiteEffectSettings()

    levels = scaled_levels(state)
    payload = _ENCODERS[profile.family](state, profile, settings, levels)
    return bytearray(_to_byte(value) for value in payload)


# =============================================================================
# POWER AND PATTERN COMMANDS
# =============================================================================

def build_power_command(turn_on: bool) -> bytearray:
    """
    Build power command.

    Format: [0x71, state, 0x0F]
    State: 0x23 = ON, 0x24 = OFF
    """
    return bytearray([OPCODE_SET_POWER, POWER_ON if turn_on else POWER_OFF, TERMINATOR])


def speed_to_delay(speed: float) -> int:
    """Convert a 0-100 speed into the inverted 1-31 pattern delay."""
    speed = clamp(speed, 0, 100)
    return round_half_up((30 - ((speed / 100) * 30)) + 1)


def build_pattern_command(pattern: int, speed: float) -> bytearray:
    """
    Build preset pattern command.

    Format: [0x61, pattern, delay, 0x0F]
    Delay is 1 (fastest) to 31 (slowest).
    """
    return bytearray([OPCODE_SET_PATTERN, pattern & 0xFF, speed_to_delay(speed), TERMINATOR])


# =============================================================================
# STATE QUERY
# =============================================================================

def build_state_query() -> bytearray:
    """
    Build state query command.

    The device answers with a 14 byte 0x81 response.
    """
    return bytearray([OPCODE_STATE_QUERY, 0x8A, 0x8B])


def is_valid_state_response(data: bytes) -> bool:
    """Check length, header and checksum of a state response."""
    if len(data) != STATE_RESPONSE_LEN or data[0] != OPCODE_STATE_QUERY:
        return False
    return calculate_checksum(data[:-1]) == data[-1]


def parse_state_response(data: bytes) -> DeviceState | None:
    """
    Parse state query response (0x81 format).

    Response format (14 bytes):
        Byte 0: Header (0x81)
        Byte 1: Model number
        Byte 2: Power state (0x23 = ON, 0x24 = OFF)
        Byte 3: Preset pattern (0x61 = static color)
        Byte 4: Mode
        Byte 5: Speed
        Byte 6-8: RGB
        Byte 9: Warm white
        Byte 10: Light version
        Byte 11: Cool white
        Byte 12: Color mode (0xF0 colors, 0x0F whites)
        Byte 13: Checksum

    Returns None if the response is malformed.
    """
    if not is_valid_state_response(data):
        return None

    return DeviceState(
        is_on=data[2] == POWER_ON,
        red=data[6],
        green=data[7],
        blue=data[8],
        warm_white=data[9],
        cool_white=data[11],
        model_num=data[1],
        preset_pattern=data[3],
        mode=data[4],
        speed=data[5],
        light_version=data[10],
        color_mode=data[12],
    )


def sync_from_device(state: LightState, device_state: DeviceState) -> Tuple[int, int]:
    """
    Update power, hue and saturation from a device report.

    Luminance and brightness are left alone: brightness cannot be told
    apart from color intensity using the RGB values alone.

    Returns the observed (hue, saturation).
    """
    hue, saturation, _ = rgb_to_hsl(*device_state.rgb)
    state.on = device_state.is_on
    state.hue = hue
    state.saturation = saturation
    return (hue, saturation)
