"""Device capability lookup by light version.

The controller reports a light version number (byte 10 of the state
response). Each version maps to a family describing which channels exist
and whether the color and white LEDs can be lit at the same time.

Usage:
    from .capabilities import get_capability_profile

    profile = get_capability_profile(8)
    if profile.has_warm_white:
        ...
"""
from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from enum import Enum

_LOGGER = logging.getLogger(__name__)


class LightFamily(Enum):
    """Channel layout and white mixing mode of a controller."""

    RGB = "rgb"
    RGBW = "rgbw"
    RGBWW = "rgbww"
    RGBW_SIMULTANEOUS = "rgbw_simultaneous"
    RGBWW_SIMULTANEOUS = "rgbww_simultaneous"


class ChannelOrder(Enum):
    """Order the color bytes are written in."""

    RGB = "rgb"
    GRB = "grb"  # red and green wired the other way round


@dataclass(frozen=True)
class DeviceCapabilityProfile:
    """Static description of one controller variant."""

    family: LightFamily
    description: str
    channel_order: ChannelOrder = ChannelOrder.RGB
    light_version: int | None = None
    is_fallback: bool = False

    @property
    def has_warm_white(self) -> bool:
        """Return True if the controller has a warm white channel."""
        return self.family is not LightFamily.RGB

    @property
    def has_cold_white(self) -> bool:
        """Return True if the controller has a cold white channel."""
        return self.family in (LightFamily.RGBWW, LightFamily.RGBWW_SIMULTANEOUS)

    @property
    def simultaneous_color_white(self) -> bool:
        """Return True if color and white can be displayed together (0xFF mask)."""
        return self.family in (
            LightFamily.RGBW_SIMULTANEOUS,
            LightFamily.RGBWW_SIMULTANEOUS,
        )

    def order_rgb(self, r: int, g: int, b: int) -> tuple[int, int, int]:
        """Return the color bytes in wire order."""
        if self.channel_order is ChannelOrder.GRB:
            return (g, r, b)
        return (r, g, b)


LIGHT_VERSION_PROFILES: dict[int, DeviceCapabilityProfile] = {
    3: DeviceCapabilityProfile(LightFamily.RGBWW_SIMULTANEOUS, "RGBWW, color and white together", light_version=3),
    4: DeviceCapabilityProfile(LightFamily.RGB, "RGB", light_version=4),
    5: DeviceCapabilityProfile(LightFamily.RGBWW, "RGBWW, color or white", light_version=5),
    7: DeviceCapabilityProfile(LightFamily.RGBWW, "RGBWW, color or white", light_version=7),
    8: DeviceCapabilityProfile(LightFamily.RGBW, "RGBW, color or white", light_version=8),
    9: DeviceCapabilityProfile(LightFamily.RGBW, "RGBW, color or white", light_version=9),
    10: DeviceCapabilityProfile(LightFamily.RGBW_SIMULTANEOUS, "RGBW, color and white together", light_version=10),
    11: DeviceCapabilityProfile(LightFamily.RGB, "RGB (GRB wiring)", ChannelOrder.GRB, light_version=11),
}

GENERIC_RGB_PROFILE = DeviceCapabilityProfile(
    LightFamily.RGB, "Unknown, treated as RGB", is_fallback=True
)


def is_known_light_version(light_version: int | None) -> bool:
    """Return True if the light version has a dedicated profile."""
    return light_version in LIGHT_VERSION_PROFILES


def get_capability_profile(light_version: int | None) -> DeviceCapabilityProfile:
    """Get the capability profile for a light version.

    Unknown versions fall back to plain RGB encoding. That is logged as a
    warning since colors probably will not come out right.
    """
    profile = LIGHT_VERSION_PROFILES.get(light_version)
    if profile is not None:
        _LOGGER.debug(
            "Capabilities for light version %s: family=%s, order=%s",
            light_version, profile.family.value, profile.channel_order.value,
        )
        return profile

    _LOGGER.warning(
        "Unknown light version: %s... color probably cannot be set, trying plain RGB anyway",
        light_version,
    )
    return dataclasses.replace(GENERIC_RGB_PROFILE, light_version=light_version)
