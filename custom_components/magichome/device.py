"""Device class for MagicHome controllers.

Owns the light state of one controller. Every intent, state read and
effect tick runs as an operation on a single ordered queue, so frames
reach the controller in the order they were requested.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import Any, Callable

from . import protocol
from .capabilities import DeviceCapabilityProfile, get_capability_profile
from .const import DEFAULT_EFFECT_SPEED, DEFAULT_STATE_TIMEOUT, PRESET_PATTERNS, get_pattern_id
from .effects import EFFECT_IDENTIFY, EFFECT_RAINBOW, EFFECTS, EffectScheduler, Frame
from .models import DeviceState, LightState, WhiteEffectSettings
from .transport import MagicHomeTransport, TransportError

_LOGGER = logging.getLogger(__name__)

Operation = Callable[[], Awaitable[Any]]


class MagicHomeDevice:
    """Represents one MagicHome controller."""

    def __init__(
        self,
        transport: MagicHomeTransport,
        name: str,
        light_version: int | None,
        settings: WhiteEffectSettings | None = None,
        model_num: int | None = None,
        state_timeout: float = DEFAULT_STATE_TIMEOUT,
    ) -> None:
        """Initialize the device.

        Args:
            transport: Transport connected to the controller
            name: Device name
            light_version: Light version reported by the controller
            settings: White mixing thresholds
            model_num: Model number reported by the controller
            state_timeout: Seconds to wait for a state response
        """
        self._transport = transport
        self._name = name
        self._light_version = light_version
        self._model_num = model_num
        self._settings = settings or WhiteEffectSettings()
        self._state_timeout = state_timeout

        # Resolved once, unknown versions log a warning here
        self._profile = get_capability_profile(light_version)

        self._state = LightState()
        self._device_state: DeviceState | None = None
        self._available = True
        self._pattern: str | None = None
        self._pattern_speed: int = DEFAULT_EFFECT_SPEED

        self._queue: asyncio.Queue[tuple[Operation, asyncio.Future]] = asyncio.Queue()
        self._worker: asyncio.Task | None = None
        self._effects = EffectScheduler(name, self._apply_effect_frame)

        self._callbacks: list[Callable[[], None]] = []

        _LOGGER.debug(
            "Device initialized: %s (%s), light_version=%s, family=%s, order=%s",
            self._name,
            transport.host,
            light_version,
            self._profile.family.value,
            self._profile.channel_order.value,
        )

    @property
    def name(self) -> str:
        """Return the device name."""
        return self._name

    @property
    def host(self) -> str:
        """Return the controller host."""
        return self._transport.host

    @property
    def light_version(self) -> int | None:
        """Return the light version."""
        return self._light_version

    @property
    def model_num(self) -> int | None:
        """Return the model number."""
        return self._model_num

    @property
    def profile(self) -> DeviceCapabilityProfile:
        """Return the capability profile."""
        return self._profile

    @property
    def settings(self) -> WhiteEffectSettings:
        """Return the white mixing thresholds."""
        return self._settings

    @property
    def state(self) -> LightState:
        """Return the light state."""
        return self._state

    @property
    def device_state(self) -> DeviceState | None:
        """Return the last state read from the controller."""
        return self._device_state

    @property
    def available(self) -> bool:
        """Return False after a failed read or send."""
        return self._available

    @property
    def is_on(self) -> bool:
        """Return power state."""
        return self._state.on

    @property
    def hs_color(self) -> tuple[int, int]:
        """Return (hue, saturation)."""
        return self._state.hs_color

    @property
    def brightness(self) -> int:
        """Return brightness (0-100)."""
        return self._state.brightness

    @property
    def effect(self) -> str | None:
        """Return the running software effect or preset pattern."""
        return self._effects.current or self._pattern

    @property
    def effect_list(self) -> list[str]:
        """Return effects selectable from Home Assistant."""
        return [EFFECT_RAINBOW, *PRESET_PATTERNS.values()]

    @property
    def effect_speed(self) -> int:
        """Return preset pattern speed (0-100)."""
        return self._pattern_speed

    def register_callback(self, callback_fn: Callable[[], None]) -> None:
        """Register a callback for state updates."""
        self._callbacks.append(callback_fn)

    def unregister_callback(self, callback_fn: Callable[[], None]) -> None:
        """Unregister a callback."""
        if callback_fn in self._callbacks:
            self._callbacks.remove(callback_fn)

    def _notify_callbacks(self) -> None:
        """Notify all registered callbacks."""
        for callback_fn in self._callbacks:
            try:
                callback_fn()
            except Exception as ex:
                _LOGGER.exception("Error in callback: %s", ex)

    # ----- Ordered command queue -----

    async def _submit(self, operation: Operation) -> Any:
        """Queue an operation and wait for its result."""
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._process_queue())
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        await self._queue.put((operation, future))
        return await future

    async def _process_queue(self) -> None:
        """Run queued operations one at a time, in order."""
        while True:
            operation, future = await self._queue.get()
            try:
                if future.cancelled():
                    _LOGGER.debug("%s: Dropping superseded operation", self._name)
                    continue
                try:
                    result = await operation()
                except asyncio.CancelledError:
                    # Worker stopped mid operation, release the caller
                    future.cancel()
                    raise
                except Exception as ex:
                    if not future.done():
                        future.set_exception(ex)
                else:
                    if not future.done():
                        future.set_result(result)
            finally:
                self._queue.task_done()

    async def _send(self, packet: bytearray, use_checksum: bool = True) -> bool:
        """Send a command frame, returning False on transport failure."""
        try:
            await self._transport.send(packet, use_checksum)
        except TransportError as ex:
            _LOGGER.warning("Failed to send command to %s: %s", self._name, ex)
            self._available = False
            return False
        self._available = True
        return True

    async def _send_color(self) -> bool:
        packet = protocol.build_color_command(self._state, self._profile, self._settings)
        return await self._send(packet)

    async def _apply_changes(self, changes: Frame) -> bool:
        """Apply state changes and send the resulting color command."""
        for field, value in changes.items():
            setattr(self._state, field, value)
        self._pattern = None
        return await self._send_color()

    async def _update_color(self, **changes: int) -> bool:
        """Host intent: cancel any effect, then change state and send."""
        self._effects.cancel()
        result = await self._submit(lambda: self._apply_changes(changes))
        self._notify_callbacks()
        return result

    async def _apply_effect_frame(self, frame: Frame) -> bool:
        result = await self._submit(lambda: self._apply_changes(frame))
        self._notify_callbacks()
        return result

    # ----- Public command methods -----

    async def set_power(self, turn_on: bool) -> bool:
        """Turn the controller on or off."""
        self._effects.cancel()

        async def _operation() -> bool:
            self._state.on = turn_on
            return await self._send(protocol.build_power_command(turn_on))

        _LOGGER.debug("Set power -> %s for device: %s", turn_on, self._name)
        result = await self._submit(_operation)
        self._notify_callbacks()
        return result

    async def turn_on(self) -> bool:
        """Turn on the device."""
        return await self.set_power(True)

    async def turn_off(self) -> bool:
        """Turn off the device."""
        return await self.set_power(False)

    async def set_hue(self, hue: int) -> bool:
        """Set hue (0-360)."""
        _LOGGER.debug("Set hue -> %s for device: %s", hue, self._name)
        return await self._update_color(hue=hue)

    async def set_saturation(self, saturation: int) -> bool:
        """Set saturation (0-100)."""
        _LOGGER.debug("Set saturation -> %s for device: %s", saturation, self._name)
        return await self._update_color(saturation=saturation)

    async def set_brightness(self, brightness: int) -> bool:
        """Set brightness (0-100)."""
        _LOGGER.debug("Set brightness -> %s for device: %s", brightness, self._name)
        return await self._update_color(brightness=brightness)

    async def set_hs_color(
        self, hue: int, saturation: int, brightness: int | None = None
    ) -> bool:
        """Set hue and saturation, and optionally brightness, as one command."""
        changes = {"hue": hue, "saturation": saturation}
        if brightness is not None:
            changes["brightness"] = brightness
        _LOGGER.debug("Set HS color -> %s for device: %s", changes, self._name)
        return await self._update_color(**changes)

    async def set_effect(self, effect_name: str, speed: int | None = None) -> bool:
        """Start a software effect or a preset pattern by name."""
        if effect_name in EFFECTS:
            self.start_effect(effect_name)
            return True
        if get_pattern_id(effect_name) is not None:
            return await self.set_pattern(effect_name, speed)
        _LOGGER.warning("Unknown effect: %s", effect_name)
        return False

    def start_effect(self, effect_name: str) -> asyncio.Task:
        """Start a software effect, replacing any effect already running."""
        self._pattern = None
        return self._effects.start(EFFECTS[effect_name])

    def identify(self) -> asyncio.Task:
        """Flash the light so it can be found."""
        _LOGGER.debug("Identifying device: %s", self._name)
        return self.start_effect(EFFECT_IDENTIFY)

    async def set_pattern(self, pattern_name: str, speed: int | None = None) -> bool:
        """Run one of the controller's built-in patterns."""
        pattern_id = get_pattern_id(pattern_name)
        if pattern_id is None:
            _LOGGER.warning("Unknown pattern: %s", pattern_name)
            return False
        speed = self._pattern_speed if speed is None else max(0, min(100, speed))
        self._effects.cancel()

        async def _operation() -> bool:
            _LOGGER.debug(
                "Setting pattern: %s (id=0x%02X), speed=%d", pattern_name, pattern_id, speed
            )
            if await self._send(protocol.build_pattern_command(pattern_id, speed)):
                self._pattern = pattern_name
                self._pattern_speed = speed
                return True
            return False

        result = await self._submit(_operation)
        self._notify_callbacks()
        return result

    async def set_effect_speed(self, speed: int) -> bool:
        """Set pattern speed (0-100), re-sending the active pattern."""
        self._pattern_speed = max(0, min(100, speed))
        if self._pattern:
            return await self.set_pattern(self._pattern, self._pattern_speed)
        return True

    async def update(self) -> DeviceState | None:
        """Read the controller state and sync power, hue and saturation."""
        result = await self._submit(self._sync_state)
        self._notify_callbacks()
        return result

    async def _sync_state(self) -> DeviceState | None:
        try:
            device_state = await self._transport.get_state(self._state_timeout)
        except TransportError as ex:
            _LOGGER.warning("Failed to get state of %s: %s", self._name, ex)
            self._available = False
            return None

        hue, saturation = protocol.sync_from_device(self._state, device_state)
        self._device_state = device_state
        self._available = True
        _LOGGER.debug(
            "Got state for %s: on=%s hue=%s saturation=%s light_version=%s",
            self._name, device_state.is_on, hue, saturation, device_state.light_version,
        )
        return device_state

    async def stop(self) -> None:
        """Stop the device and clean up."""
        self._effects.cancel()
        if self._worker is not None:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None
        while not self._queue.empty():
            _, future = self._queue.get_nowait()
            future.cancel()
            self._queue.task_done()
        await self._transport.stop()
        self._callbacks.clear()
