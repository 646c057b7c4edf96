"""Pytest configuration and fixtures for MagicHome tests."""

from typing import Any

import pytest
import pytest_asyncio

from custom_components.magichome import effects
from custom_components.magichome.device import MagicHomeDevice
from custom_components.magichome.models import DeviceState, LightState
from custom_components.magichome.protocol import calculate_checksum
from custom_components.magichome.transport import TransportError


class FakeTransport:
    """In-memory transport recording every frame sent."""

    def __init__(self, state: DeviceState | None = None) -> None:
        self.host = "192.0.2.10"
        self.sent: list[bytes] = []
        self.state = state or DeviceState(is_on=True, red=255, green=0, blue=0, light_version=5)
        self.fail = False
        self.stopped = False

    async def send(self, data: bytes, use_checksum: bool = True) -> bool:
        if self.fail:
            raise TransportError(f"{self.host}: send failed")
        self.sent.append(bytes(data))
        return True

    async def get_state(self, timeout: float = 1.0) -> DeviceState:
        if self.fail:
            raise TransportError(f"{self.host}: get_state failed")
        return self.state

    async def stop(self) -> None:
        self.stopped = True


def make_state_response(**overrides: Any) -> bytes:
    """Build a 14 byte state response with a valid checksum."""
    fields = {
        "model_num": 0x33,
        "power": 0x23,
        "preset_pattern": 0x61,
        "mode": 0x01,
        "speed": 0x10,
        "red": 255,
        "green": 0,
        "blue": 0,
        "warm_white": 0,
        "light_version": 8,
        "cool_white": 0,
        "color_mode": 0xF0,
    }
    fields.update(overrides)
    body = bytes([
        0x81,
        fields["model_num"],
        fields["power"],
        fields["preset_pattern"],
        fields["mode"],
        fields["speed"],
        fields["red"],
        fields["green"],
        fields["blue"],
        fields["warm_white"],
        fields["light_version"],
        fields["cool_white"],
        fields["color_mode"],
    ])
    return body + bytes([calculate_checksum(body)])


@pytest.fixture
def fake_transport() -> FakeTransport:
    """Create a fake transport."""
    return FakeTransport()


@pytest.fixture
def fast_effects(monkeypatch) -> None:
    """Run every effect without waiting between frames."""
    for name, effect in list(effects.EFFECTS.items()):
        monkeypatch.setitem(
            effects.EFFECTS, name, effects.Effect(effect.name, 0, effect.frames)
        )


@pytest_asyncio.fixture
async def device(fake_transport):
    """Create a dual white, color or white device (light version 5)."""
    dev = MagicHomeDevice(fake_transport, "Test Light", 5)
    yield dev
    await dev.stop()


@pytest.fixture
def light_state() -> LightState:
    """Create a fully saturated red state at full brightness."""
    return LightState(hue=0, saturation=100, luminance=50, brightness=100, on=True)
