"""Light platform for MagicHome integration."""
from __future__ import annotations

import logging
from typing import Any

from homeassistant.components.light import (
    ATTR_BRIGHTNESS,
    ATTR_EFFECT,
    ATTR_FLASH,
    ATTR_HS_COLOR,
    ColorMode,
    LightEntity,
    LightEntityFeature,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import DOMAIN, MANUFACTURER
from .device import MagicHomeDevice

_LOGGER = logging.getLogger(__name__)


def brightness_to_percent(brightness: int) -> int:
    """Convert Home Assistant brightness (0-255) to percent (0-100)."""
    return max(0, min(100, round(brightness / 255 * 100)))


def percent_to_brightness(percent: int) -> int:
    """Convert percent (0-100) to Home Assistant brightness (0-255)."""
    return max(0, min(255, round(percent / 100 * 255)))


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up the light platform."""
    device: MagicHomeDevice = hass.data[DOMAIN][entry.entry_id]

    async_add_entities([MagicHomeLight(device, entry)], update_before_add=True)


class MagicHomeLight(LightEntity):
    """Representation of a MagicHome light."""

    _attr_has_entity_name = True
    _attr_name = None  # Use device name
    _attr_color_mode = ColorMode.HS
    _attr_supported_color_modes = {ColorMode.HS}
    _attr_supported_features = LightEntityFeature.EFFECT | LightEntityFeature.FLASH

    def __init__(self, device: MagicHomeDevice, entry: ConfigEntry) -> None:
        """Initialize the light."""
        self._device = device
        self._entry = entry
        self._attr_unique_id = entry.unique_id or entry.entry_id

    async def async_added_to_hass(self) -> None:
        """Subscribe to device updates."""
        self._device.register_callback(self._handle_state_update)

    async def async_will_remove_from_hass(self) -> None:
        """Handle entity removal."""
        self._device.unregister_callback(self._handle_state_update)

    @callback
    def _handle_state_update(self) -> None:
        """Handle state updates from the device."""
        self.async_write_ha_state()

    @property
    def device_info(self) -> DeviceInfo:
        """Return device info."""
        profile = self._device.profile
        light_version = self._device.light_version
        model_num = self._device.model_num
        return DeviceInfo(
            identifiers={(DOMAIN, self._attr_unique_id)},
            name=self._device.name,
            manufacturer=MANUFACTURER,
            model=f"{profile.description} (light version {light_version})",
            hw_version=f"0x{model_num:02X}" if model_num is not None else "Unknown",
        )

    @property
    def available(self) -> bool:
        """Return True if entity is available."""
        return self._device.available

    @property
    def is_on(self) -> bool:
        """Return True if light is on."""
        return self._device.is_on

    @property
    def brightness(self) -> int:
        """Return the brightness."""
        return percent_to_brightness(self._device.brightness)

    @property
    def hs_color(self) -> tuple[float, float]:
        """Return hue and saturation."""
        hue, saturation = self._device.hs_color
        return (float(hue), float(saturation))

    @property
    def effect_list(self) -> list[str]:
        """Return list of effects."""
        return self._device.effect_list

    @property
    def effect(self) -> str | None:
        """Return current effect."""
        return self._device.effect

    async def async_turn_on(self, **kwargs: Any) -> None:
        """Turn the light on."""
        _LOGGER.debug("turn_on called with kwargs: %s", kwargs)

        if not self._device.is_on:
            await self._device.turn_on()

        if ATTR_FLASH in kwargs:
            self._device.identify()
            return

        if effect := kwargs.get(ATTR_EFFECT):
            await self._device.set_effect(effect)
            return

        brightness = None
        if ATTR_BRIGHTNESS in kwargs:
            brightness = brightness_to_percent(kwargs[ATTR_BRIGHTNESS])

        if ATTR_HS_COLOR in kwargs:
            hue, saturation = kwargs[ATTR_HS_COLOR]
            await self._device.set_hs_color(round(hue), round(saturation), brightness)
        elif brightness is not None:
            await self._device.set_brightness(brightness)

    async def async_turn_off(self, **kwargs: Any) -> None:
        """Turn the light off."""
        await self._device.turn_off()

    async def async_update(self) -> None:
        """Read the current state from the controller."""
        await self._device.update()
