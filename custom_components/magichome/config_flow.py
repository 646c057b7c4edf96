"""Config flow for MagicHome integration."""
from __future__ import annotations

import logging
from typing import Any

import voluptuous as vol

from homeassistant import config_entries
from homeassistant.const import CONF_HOST, CONF_NAME
from homeassistant.core import callback
from homeassistant.data_entry_flow import FlowResult

from .capabilities import LIGHT_VERSION_PROFILES, is_known_light_version
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
from .models import DeviceState
from .transport import MagicHomeTransport, TransportError

_LOGGER = logging.getLogger(__name__)

PERCENT = vol.All(vol.Coerce(int), vol.Range(min=0, max=100))


def _options_schema(options: dict[str, Any]) -> vol.Schema:
    """Build the options schema, using current values as defaults."""
    return vol.Schema({
        vol.Optional(
            CONF_COLOR_WHITE_THRESHOLD,
            default=options.get(CONF_COLOR_WHITE_THRESHOLD, DEFAULT_COLOR_WHITE_THRESHOLD),
        ): PERCENT,
        vol.Optional(
            CONF_COLOR_WHITE_THRESHOLD_SIMULTANEOUS,
            default=options.get(
                CONF_COLOR_WHITE_THRESHOLD_SIMULTANEOUS,
                DEFAULT_COLOR_WHITE_THRESHOLD_SIMULTANEOUS,
            ),
        ): PERCENT,
        vol.Optional(
            CONF_COLOR_OFF_THRESHOLD_SIMULTANEOUS,
            default=options.get(
                CONF_COLOR_OFF_THRESHOLD_SIMULTANEOUS,
                DEFAULT_COLOR_OFF_THRESHOLD_SIMULTANEOUS,
            ),
        ): PERCENT,
        vol.Optional(
            CONF_SIMULTANEOUS_COLOR_WHITE,
            default=options.get(
                CONF_SIMULTANEOUS_COLOR_WHITE, DEFAULT_SIMULTANEOUS_COLOR_WHITE
            ),
        ): bool,
        vol.Optional(
            CONF_DISCONNECT_DELAY,
            default=options.get(CONF_DISCONNECT_DELAY, DEFAULT_DISCONNECT_DELAY),
        ): vol.All(vol.Coerce(int), vol.Range(min=0, max=300)),
    })


async def async_probe_device(host: str) -> DeviceState:
    """Read the state of the controller at host.

    Raises TransportError if the controller cannot be reached.
    """
    transport = MagicHomeTransport(host, disconnect_delay=0)
    try:
        return await transport.get_state()
    finally:
        await transport.stop()


class MagicHomeConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    """Handle config flow for MagicHome."""

    VERSION = 1

    def __init__(self) -> None:
        """Initialize the config flow."""
        self._host: str | None = None
        self._name: str | None = None
        self._device_state: DeviceState | None = None

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Ask for the controller address and read its state."""
        errors: dict[str, str] = {}

        if user_input is not None:
            host = user_input[CONF_HOST].strip()
            await self.async_set_unique_id(host)
            self._abort_if_unique_id_configured()

            try:
                self._device_state = await async_probe_device(host)
            except TransportError as ex:
                _LOGGER.warning("Cannot connect to %s: %s", host, ex)
                errors["base"] = "cannot_connect"
            except Exception as ex:
                _LOGGER.exception("Unexpected error probing %s: %s", host, ex)
                errors["base"] = "unknown"
            else:
                self._host = host
                self._name = user_input.get(CONF_NAME) or host
                _LOGGER.debug(
                    "Probed %s: model_num=0x%02X, light_version=%s",
                    host,
                    self._device_state.model_num,
                    self._device_state.light_version,
                )
                return await self.async_step_light_version()

        return self.async_show_form(
            step_id="user",
            data_schema=vol.Schema({
                vol.Required(CONF_HOST): str,
                vol.Optional(CONF_NAME): str,
            }),
            errors=errors,
        )

    async def async_step_light_version(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Confirm the light version read from the controller."""
        assert self._device_state is not None

        if user_input is not None:
            return self._create_entry(int(user_input[CONF_LIGHT_VERSION]))

        detected = self._device_state.light_version
        if not is_known_light_version(detected):
            _LOGGER.warning(
                "%s reports unknown light version %s, colors will be sent as plain RGB",
                self._host,
                detected,
            )

        return self.async_show_form(
            step_id="light_version",
            data_schema=vol.Schema({
                vol.Required(CONF_LIGHT_VERSION, default=detected): vol.All(
                    vol.Coerce(int), vol.Range(min=0, max=255)
                ),
            }),
            description_placeholders={
                "name": self._name,
                "detected": str(detected),
                "known": ", ".join(str(v) for v in LIGHT_VERSION_PROFILES),
            },
        )

    def _create_entry(self, light_version: int) -> FlowResult:
        """Create the config entry."""
        assert self._device_state is not None
        data = {
            CONF_HOST: self._host,
            CONF_NAME: self._name,
            CONF_LIGHT_VERSION: light_version,
            CONF_MODEL_NUM: self._device_state.model_num,
        }
        return self.async_create_entry(
            title=self._name,
            data=data,
            options=_options_schema({})({}),
        )

    @staticmethod
    @callback
    def async_get_options_flow(
        config_entry: config_entries.ConfigEntry,
    ) -> OptionsFlowHandler:
        """Get the options flow handler."""
        return OptionsFlowHandler(config_entry)


class OptionsFlowHandler(config_entries.OptionsFlow):
    """Handle white mixing and connection options."""

    def __init__(self, config_entry: config_entries.ConfigEntry) -> None:
        """Initialize options flow."""
        self._config_entry = config_entry

    async def async_step_init(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Handle options."""
        if user_input is not None:
            return self.async_create_entry(title="", data=user_input)

        return self.async_show_form(
            step_id="init",
            data_schema=_options_schema(dict(self._config_entry.options)),
        )
