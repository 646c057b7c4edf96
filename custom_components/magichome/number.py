"""Number platform for MagicHome integration."""
from __future__ import annotations

import logging

from homeassistant.components.number import NumberEntity, NumberMode
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import DOMAIN
from .device import MagicHomeDevice

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up the number platform."""
    device: MagicHomeDevice = hass.data[DOMAIN][entry.entry_id]

    async_add_entities([MagicHomeEffectSpeed(device, entry)])


class MagicHomeEffectSpeed(NumberEntity):
    """Speed of the controller's built-in patterns (0-100).

    The 0x61 pattern command takes an inverted delay instead of a speed:
    delay = 30 - speed / 100 * 30 + 1, so 100 is the fastest (delay 1) and
    0 the slowest (delay 31). Changing the speed while a pattern runs
    re-sends that pattern with the new delay.
    """

    _attr_has_entity_name = True
    _attr_name = "Effect Speed"
    _attr_native_min_value = 0
    _attr_native_max_value = 100
    _attr_native_step = 1
    _attr_mode = NumberMode.SLIDER
    _attr_icon = "mdi:speedometer"
    _attr_should_poll = False

    def __init__(self, device: MagicHomeDevice, entry: ConfigEntry) -> None:
        """Initialize the number entity."""
        self._device = device
        self._device_id = entry.unique_id or entry.entry_id
        self._attr_unique_id = f"{self._device_id}_effect_speed"

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
        return DeviceInfo(identifiers={(DOMAIN, self._device_id)})

    @property
    def available(self) -> bool:
        """Return True if entity is available."""
        return self._device.available

    @property
    def native_value(self) -> float:
        """Return the current effect speed."""
        return self._device.effect_speed

    async def async_set_native_value(self, value: float) -> None:
        """Set the effect speed."""
        _LOGGER.debug("Setting effect speed to %s for %s", value, self._device.name)
        await self._device.set_effect_speed(int(value))
