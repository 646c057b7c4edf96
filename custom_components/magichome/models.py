"""State containers shared by the protocol, device and entity layers."""
from __future__ import annotations

from dataclasses import dataclass

from .const import (
    DEFAULT_COLOR_OFF_THRESHOLD_SIMULTANEOUS,
    DEFAULT_COLOR_WHITE_THRESHOLD,
    DEFAULT_COLOR_WHITE_THRESHOLD_SIMULTANEOUS,
    DEFAULT_SIMULTANEOUS_COLOR_WHITE,
)


@dataclass
class LightState:
    """Logical state of one light as the integration understands it.

    hue is in degrees (0-360), saturation, luminance and brightness are
    percentages (0-100). Values are not range checked here; the entity
    layer clamps them before they arrive.

    luminance is kept for the HSL conversion but is never sent to the
    device and never read back from it.
    """

    hue: int = 255
    saturation: int = 100
    luminance: int = 50
    brightness: int = 100
    on: bool = True

    @property
    def hs_color(self) -> tuple[int, int]:
        """Return (hue, saturation)."""
        return (self.hue, self.saturation)

    def is_swatch(self, swatch: tuple[int, int]) -> bool:
        """Return True if hue/saturation exactly match a picker swatch."""
        return self.hs_color == swatch


@dataclass(frozen=True)
class WhiteEffectSettings:
    """Saturation thresholds that decide when the white channels take over."""

    color_white_threshold: int = DEFAULT_COLOR_WHITE_THRESHOLD
    color_white_threshold_simultaneous: int = DEFAULT_COLOR_WHITE_THRESHOLD_SIMULTANEOUS
    color_off_threshold_simultaneous: int = DEFAULT_COLOR_OFF_THRESHOLD_SIMULTANEOUS
    simultaneous_color_white: bool = DEFAULT_SIMULTANEOUS_COLOR_WHITE


@dataclass(frozen=True)
class DeviceState:
    """A parsed 0x81 state response."""

    is_on: bool
    red: int
    green: int
    blue: int
    warm_white: int = 0
    cool_white: int = 0
    model_num: int = 0
    preset_pattern: int = 0
    mode: int = 0
    speed: int = 0
    light_version: int = 0
    color_mode: int = 0

    @property
    def rgb(self) -> tuple[int, int, int]:
        """Return the reported (red, green, blue)."""
        return (self.red, self.green, self.blue)
