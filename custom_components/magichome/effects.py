"""Software effects driven from Home Assistant.

An effect is a finite sequence of frames. Each frame is a partial light
state update that the device applies and sends as one color command. The
last frame of every effect puts the light back into the idle state.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterator
from dataclasses import dataclass

_LOGGER = logging.getLogger(__name__)

Frame = dict[str, int]

EFFECT_IDENTIFY = "Identify"
EFFECT_RAINBOW = "Rainbow"

IDLE_FRAME: Frame = {"hue": 0, "saturation": 5, "brightness": 100}

FLASH_TICKS = 10
FLASH_INTERVAL = 0.3  # seconds
FLASH_HUE = 100

RAINBOW_HUE_STEP = 5
RAINBOW_INTERVAL = 0.5  # seconds


@dataclass(frozen=True)
class Effect:
    """A named, finite frame sequence played at a fixed interval."""

    name: str
    interval: float
    frames: Callable[[], Iterator[Frame]]


def identify_frames() -> Iterator[Frame]:
    """Blink between off and full brightness, then settle to idle."""
    brightness = 100
    for _ in range(FLASH_TICKS):
        brightness = 0 if brightness else 100
        yield {"hue": FLASH_HUE, "saturation": 100, "brightness": brightness}
    yield dict(IDLE_FRAME)


def rainbow_frames() -> Iterator[Frame]:
    """Sweep the hue once around the color wheel, then settle to idle."""
    for hue in range(0, 360, RAINBOW_HUE_STEP):
        yield {"hue": hue, "saturation": 100}
    yield dict(IDLE_FRAME)


EFFECTS: dict[str, Effect] = {
    EFFECT_IDENTIFY: Effect(EFFECT_IDENTIFY, FLASH_INTERVAL, identify_frames),
    EFFECT_RAINBOW: Effect(EFFECT_RAINBOW, RAINBOW_INTERVAL, rainbow_frames),
}


class EffectScheduler:
    """Runs at most one effect at a time for a device.

    Starting an effect cancels the one already running. The callback is
    awaited once per frame.
    """

    def __init__(self, name: str, apply_frame: Callable[[Frame], Awaitable[bool]]) -> None:
        self._name = name
        self._apply_frame = apply_frame
        self._task: asyncio.Task | None = None
        self._effect: Effect | None = None

    @property
    def current(self) -> str | None:
        """Return the name of the running effect."""
        return self._effect.name if self._effect else None

    @property
    def is_running(self) -> bool:
        """Return True while an effect task is active."""
        return self._task is not None and not self._task.done()

    def start(self, effect: Effect) -> asyncio.Task:
        """Cancel any running effect and start a new one."""
        self.cancel()
        _LOGGER.debug("%s: Starting effect %s", self._name, effect.name)
        self._effect = effect
        self._task = asyncio.create_task(self._run(effect))
        return self._task

    def cancel(self) -> None:
        """Cancel the running effect, if any."""
        if self._task is not None and not self._task.done():
            _LOGGER.debug("%s: Cancelling effect %s", self._name, self.current)
            self._task.cancel()
        self._task = None
        self._effect = None

    async def _run(self, effect: Effect) -> None:
        ticks = 0
        try:
            for frame in effect.frames():
                if ticks:
                    await asyncio.sleep(effect.interval)
                ticks += 1
                _LOGGER.debug("%s: %s tick %d: %s", self._name, effect.name, ticks, frame)
                await self._apply_frame(frame)
        except asyncio.CancelledError:
            _LOGGER.debug("%s: Effect %s superseded after %d ticks", self._name, effect.name, ticks)
            raise
        finally:
            if self._effect is effect:
                self._effect = None
        _LOGGER.debug("%s: Effect %s finished after %d ticks", self._name, effect.name, ticks)
