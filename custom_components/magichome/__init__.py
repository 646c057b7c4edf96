"""MagicHome integration for Home Assistant."""
from __future__ import annotations

import logging

from homeassistant.config_entries import ConfigEntry
from homeassistant.const import CONF_HOST, CONF_NAME, Platform
from homeassistant.core import HomeAssistant

from .const import (
    DOMAIN,
    CONF_COLOR_OFF_THRESHOLD_SIMULTANEOUS,
    CONF_COLOR_WHITE_THRESHOLD,
    CONF_COLOR_WHITE_THRESHOLD_SIMULTANEOUS,
    CONF_DISCONNECT_DELAY,
    CONF_LIGHT_VERSION,
    CONF_MODEL_NUM,
    CONF_SIMULTANEOUS_COLOR_WHITE,
    DEFAULT_COLOR_OFF_THRESHOLD_SIMULTANEOUS,
    DEFAULT_COLOR_WHITE_THRESHOLD,
    DEFAULT_COLOR_WHITE_THRESHOLD_SIMULTANEOUS,
    DEFAULT_DISCONNECT_DELAY,
    DEFAULT_SIMULTANEOUS_COLOR_WHITE,
)
from .device import MagicHomeDevice
from .models import WhiteEffectSettings
from .transport import MagicHomeTransport

_LOGGER = logging.getLogger(__name__)

PLATFORMS: list[Platform] = [Platform.LIGHT, Platform.NUMBER]


def settings_from_options(options: dict) -> WhiteEffectSettings:
    """Build white mixing settings from config entry options."""
    return WhiteEffectSettings(
        color_white_threshold=options.get(
            CONF_COLOR_WHITE_THRESHOLD, DEFAULT_COLOR_WHITE_THRESHOLD
        ),
        color_white_threshold_simultaneous=options.get(
            CONF_COLOR_WHITE_THRESHOLD_SIMULTANEOUS,
            DEFAULT_COLOR_WHITE_THRESHOLD_SIMULTANEOUS,
        ),
        color_off_threshold_simultaneous=options.get(
            CONF_COLOR_OFF_THRESHOLD_SIMULTANEOUS,
            DEFAULT_COLOR_OFF_THRESHOLD_SIMULTANEOUS,
        ),
        simultaneous_color_white=options.get(
            CONF_SIMULTANEOUS_COLOR_WHITE, DEFAULT_SIMULTANEOUS_COLOR_WHITE
        ),
    )


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up MagicHome from a config entry."""
    host = entry.data[CONF_HOST]
    name = entry.data.get(CONF_NAME, host)
    light_version = entry.data.get(CONF_LIGHT_VERSION)
    disconnect_delay = entry.options.get(CONF_DISCONNECT_DELAY, DEFAULT_DISCONNECT_DELAY)

    _LOGGER.debug(
        "Setting up MagicHome device: %s (%s), light_version=%s",
        name,
        host,
        light_version,
    )

    transport = MagicHomeTransport(host, disconnect_delay=disconnect_delay)
    device = MagicHomeDevice(
        transport,
        name,
        light_version,
        settings_from_options(entry.options),
        model_num=entry.data.get(CONF_MODEL_NUM),
    )

    hass.data.setdefault(DOMAIN, {})
    hass.data[DOMAIN][entry.entry_id] = device

    entry.async_on_unload(entry.add_update_listener(async_options_updated))

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)

    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    if unload_ok := await hass.config_entries.async_unload_platforms(entry, PLATFORMS):
        device: MagicHomeDevice = hass.data[DOMAIN].pop(entry.entry_id)
        await device.stop()

    return unload_ok


async def async_options_updated(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Reload the entry so new thresholds reach the device."""
    await hass.config_entries.async_reload(entry.entry_id)
