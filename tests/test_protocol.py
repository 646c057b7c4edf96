"""Tests for the protocol layer."""

import pytest

from custom_components.magichome import protocol
from custom_components.magichome.capabilities import get_capability_profile
from custom_components.magichome.const import MASK_BOTH, MASK_COLOR, MASK_WHITE
from custom_components.magichome.models import DeviceState, LightState, WhiteEffectSettings

from .conftest import make_state_response

RGB = get_capability_profile(4)
RGB_GRB = get_capability_profile(11)
RGBW = get_capability_profile(8)
RGBWW = get_capability_profile(5)
RGBW_SIM = get_capability_profile(10)
RGBWW_SIM = get_capability_profile(3)


def _state(hue: int, saturation: int, brightness: int = 100) -> LightState:
    return LightState(hue=hue, saturation=saturation, luminance=50, brightness=brightness)


def _hue_distance(a: int, b: int) -> int:
    diff = abs(a - b) % 360
    return min(diff, 360 - diff)


class TestChecksum:
    """Tests for checksum helpers."""

    def test_checksum_wraps(self):
        """Test checksum is the byte sum modulo 256."""
        assert protocol.calculate_checksum(bytes([0x71, 0x23, 0x0F])) == 0xA3
        assert protocol.calculate_checksum(bytes([0xFF, 0x02])) == 0x01

    def test_append_checksum_copies(self):
        """Test appending the checksum leaves the input alone."""
        data = bytearray([0x81, 0x8A, 0x8B])
        packet = protocol.append_checksum(data)
        assert packet == bytearray([0x81, 0x8A, 0x8B, 0x96])
        assert len(data) == 3


class TestColorModel:
    """Tests for HSL and RGB conversion."""

    @pytest.mark.parametrize(
        ("hue", "expected"),
        [(0, (255, 0, 0)), (120, (0, 255, 0)), (240, (0, 0, 255)), (255, (64, 0, 255))],
    )
    def test_primary_colors(self, hue, expected):
        """Test fully saturated colors at half luminance."""
        assert protocol.hsl_to_rgb(hue, 100, 50) == expected

    def test_grey_rounds_half_up(self):
        """Test zero saturation gives equal channels, rounded up at .5."""
        assert protocol.hsl_to_rgb(0, 0, 50) == (128, 128, 128)

    def test_out_of_range_is_clamped(self):
        """Test out of range input still gives bytes."""
        for channel in protocol.hsl_to_rgb(30, 150, 120):
            assert 0 <= channel <= 255

    def test_rgb_to_hsl(self):
        """Test RGB to HSL for known colors."""
        assert protocol.rgb_to_hsl(255, 0, 0) == (0, 100, 50)
        assert protocol.rgb_to_hsl(0, 0, 255) == (240, 100, 50)
        assert protocol.rgb_to_hsl(128, 128, 128)[:2] == (0, 0)

    @pytest.mark.parametrize("saturation", [50, 100])
    def test_hue_survives_conversion(self, saturation):
        """Test hue is recovered within one degree."""
        for hue in range(0, 360, 15):
            r, g, b = protocol.hsl_to_rgb(hue, saturation, 50)
            recovered, _, _ = protocol.rgb_to_hsl(r, g, b)
            assert _hue_distance(recovered, hue) <= 1, hue

    def test_round_half_up(self):
        """Test halves round up like the controller app does."""
        assert protocol.round_half_up(0.5) == 1
        assert protocol.round_half_up(2.5) == 3
        assert protocol.round_half_up(2.49) == 2


class TestWhiteChannels:
    """Tests for hue derived white channels."""

    @pytest.mark.parametrize("hue", [0, 10, 30, 45, 60, 89, 90])
    def test_first_quadrant(self, hue):
        """Test warm white is full and cold white rises to 90."""
        assert protocol.calculate_white_channels(hue) == (
            255,
            protocol.round_half_up(255 * hue / 90),
        )

    @pytest.mark.parametrize("hue", [91, 120, 135, 150, 180])
    def test_second_quadrant(self, hue):
        """Test cold white is full and warm white falls to 180."""
        assert protocol.calculate_white_channels(hue) == (
            protocol.round_half_up(255 * (1 - (hue - 90) / 90)),
            255,
        )

    def test_quadrant_boundaries(self):
        """Test the values at the quadrant edges."""
        assert protocol.calculate_white_channels(45) == (255, 128)
        assert protocol.calculate_white_channels(180) == (0, 255)
        assert protocol.calculate_white_channels(225) == (128, 255)
        assert protocol.calculate_white_channels(315) == (255, 128)
        assert protocol.calculate_white_channels(360) == (255, 0)

    def test_both_high_at_90_and_270(self):
        """Test both channels are full at 90 and 270."""
        assert protocol.calculate_white_channels(90) == (255, 255)
        assert protocol.calculate_white_channels(270) == (255, 255)


class TestRgbEncoder:
    """Tests for RGB only controllers."""

    def test_full_color_passes_through(self):
        """Test saturated color at full brightness is sent unchanged."""
        command = protocol.build_color_command(_state(0, 100), RGB)
        assert command == bytearray([0x31, 255, 0, 0, 0x00, MASK_COLOR, 0x0F])

    def test_brightness_scales_channels(self):
        """Test brightness scales the color bytes."""
        command = protocol.build_color_command(_state(0, 100, brightness=40), RGB)
        assert command == bytearray([0x31, 102, 0, 0, 0x00, MASK_COLOR, 0x0F])

    def test_grb_wiring_swaps_red_and_green(self):
        """Test GRB controllers get red and green swapped."""
        command = protocol.build_color_command(_state(120, 100), RGB_GRB)
        assert command == bytearray([0x31, 255, 0, 0, 0x00, MASK_COLOR, 0x0F])

    def test_low_saturation_stays_color(self):
        """Test RGB only controllers never switch to white."""
        command = protocol.build_color_command(_state(0, 0), RGB)
        assert command[5] == MASK_COLOR
        assert command[1] == command[2] == command[3] == 128

    def test_unknown_version_encodes_as_rgb(self):
        """Test the fallback profile produces an RGB frame."""
        command = protocol.build_color_command(_state(0, 100), get_capability_profile(99))
        assert command == bytearray([0x31, 255, 0, 0, 0x00, MASK_COLOR, 0x0F])

    def test_state_is_not_modified(self):
        """Test encoding does not touch the light state."""
        state = _state(31, 33)
        protocol.build_color_command(state, RGBWW_SIM)
        assert state == _state(31, 33)


class TestRgbwEncoder:
    """Tests for RGB + warm white, color or white."""

    def test_low_saturation_is_white_only(self):
        """Test saturation under the threshold switches to warm white."""
        command = protocol.build_color_command(_state(0, 10), RGBW)
        assert command == bytearray([0x31, 0, 0, 0, 255, MASK_WHITE, 0x0F])

    def test_saturated_color_clears_white(self):
        """Test saturated color leaves warm white off."""
        command = protocol.build_color_command(_state(0, 100), RGBW)
        assert command == bytearray([0x31, 255, 0, 0, 0, MASK_COLOR, 0x0F])

    @pytest.mark.parametrize("swatch", [(31, 33), (208, 17), (0, 0)])
    def test_swatches_are_warm_white(self, swatch):
        """Test every white swatch lights the warm white channel."""
        command = protocol.build_color_command(_state(*swatch), RGBW)
        assert command == bytearray([0x31, 0, 0, 0, 255, MASK_WHITE, 0x0F])

    def test_threshold_is_configurable(self):
        """Test a lower threshold keeps low saturation as color."""
        settings = WhiteEffectSettings(color_white_threshold=5)
        command = protocol.build_color_command(_state(0, 10), RGBW, settings)
        assert command[4] == 0
        assert command[5] == MASK_COLOR

    def test_white_scales_with_brightness(self):
        """Test warm white follows brightness."""
        command = protocol.build_color_command(_state(0, 10, brightness=40), RGBW)
        assert command[4] == 102


class TestRgbwwEncoder:
    """Tests for RGB + warm + cold white, color or white."""

    def test_neutral_white(self):
        """Test hue 0, saturation 0 at full brightness."""
        command = protocol.build_color_command(_state(0, 0), RGBWW)
        assert command == bytearray([0x31, 0, 0, 0, 255, 0, MASK_WHITE, 0x0F])

    def test_low_saturation_is_white_only(self):
        """Test low saturation zeroes the color bytes."""
        command = protocol.build_color_command(_state(90, 10), RGBWW)
        assert command == bytearray([0x31, 0, 0, 0, 255, 255, MASK_WHITE, 0x0F])

    def test_warm_swatch(self):
        """Test the warm swatch lights warm white only."""
        command = protocol.build_color_command(_state(31, 33), RGBWW)
        assert command == bytearray([0x31, 0, 0, 0, 255, 0, MASK_WHITE, 0x0F])

    def test_cool_swatch(self):
        """Test the cool swatch lights cold white only."""
        command = protocol.build_color_command(_state(208, 17), RGBWW)
        assert command == bytearray([0x31, 0, 0, 0, 0, 255, MASK_WHITE, 0x0F])

    def test_saturated_color_clears_white(self):
        """Test saturated color leaves both whites off."""
        command = protocol.build_color_command(_state(0, 100), RGBWW)
        assert command == bytearray([0x31, 255, 0, 0, 0, 0, MASK_COLOR, 0x0F])


class TestRgbwwSimultaneousEncoder:
    """Tests for RGB + warm + cold white, color and white together."""

    def test_warm_swatch_ignores_thresholds(self):
        """Test the warm swatch wins over any threshold."""
        for settings in (
            WhiteEffectSettings(),
            WhiteEffectSettings(0, 0, 0, False),
            WhiteEffectSettings(100, 100, 100, True),
        ):
            command = protocol.build_color_command(_state(31, 33), RGBWW_SIM, settings)
            assert command == bytearray([0x31, 0, 0, 0, 255, 0, MASK_WHITE, 0x0F])

    def test_below_off_threshold_is_white_only(self):
        """Test very low saturation turns color off but keeps both masks."""
        command = protocol.build_color_command(_state(0, 2), RGBWW_SIM)
        assert command == bytearray([0x31, 0, 0, 0, 255, 0, MASK_BOTH, 0x0F])

    def test_blend_uses_saturated_color(self):
        """Test mid saturation mixes full color with white."""
        command = protocol.build_color_command(_state(0, 20), RGBWW_SIM)
        assert command == bytearray([0x31, 255, 0, 0, 255, 0, MASK_BOTH, 0x0F])

    def test_blend_disabled(self):
        """Test disabling mixing never blends."""
        settings = WhiteEffectSettings(simultaneous_color_white=False)
        command = protocol.build_color_command(_state(0, 20), RGBWW_SIM, settings)
        assert command[4] == command[5] == 0
        assert command[6] == MASK_BOTH
        assert command[1] > command[2]

        command = protocol.build_color_command(_state(0, 2), RGBWW_SIM, settings)
        assert command[1] == command[2] == command[3] == 0

    def test_saturated_color_clears_white(self):
        """Test high saturation leaves whites off."""
        command = protocol.build_color_command(_state(0, 100), RGBWW_SIM)
        assert command == bytearray([0x31, 255, 0, 0, 0, 0, MASK_BOTH, 0x0F])


class TestRgbwSimultaneousEncoder:
    """Tests for RGB + warm white, color and white together."""

    @pytest.mark.parametrize("swatch", [(31, 33), (208, 17), (0, 0)])
    def test_swatches_are_warm_white(self, swatch):
        """Test white swatches light only the warm white channel."""
        command = protocol.build_color_command(_state(*swatch), RGBW_SIM)
        assert command == bytearray([0x31, 0, 0, 0, 255, MASK_WHITE, 0x0F])

    def test_below_off_threshold(self):
        """Test very low saturation turns color off, white full."""
        command = protocol.build_color_command(_state(10, 2), RGBW_SIM)
        assert command == bytearray([0x31, 0, 0, 0, 255, MASK_BOTH, 0x0F])

    def test_blend(self):
        """Test mid saturation mixes full color with full warm white."""
        command = protocol.build_color_command(_state(0, 20), RGBW_SIM)
        assert command == bytearray([0x31, 255, 0, 0, 255, MASK_BOTH, 0x0F])

    def test_saturated_color_clears_white(self):
        """Test high saturation leaves warm white off."""
        command = protocol.build_color_command(_state(0, 60), RGBW_SIM)
        assert command[4] == 0
        assert command[5] == MASK_BOTH


class TestCommands:
    """Tests for power, pattern and state query commands."""

    def test_power(self):
        """Test power on and off frames."""
        assert protocol.build_power_command(True) == bytearray([0x71, 0x23, 0x0F])
        assert protocol.build_power_command(False) == bytearray([0x71, 0x24, 0x0F])

    @pytest.mark.parametrize(("speed", "delay"), [(0, 31), (50, 16), (100, 1), (150, 1), (-5, 31)])
    def test_speed_to_delay(self, speed, delay):
        """Test speed maps to the inverted delay."""
        assert protocol.speed_to_delay(speed) == delay

    def test_pattern(self):
        """Test the preset pattern frame."""
        assert protocol.build_pattern_command(0x25, 100) == bytearray([0x61, 0x25, 1, 0x0F])

    def test_state_query(self):
        """Test the state query frame."""
        assert protocol.build_state_query() == bytearray([0x81, 0x8A, 0x8B])


class TestStateResponse:
    """Tests for state response parsing."""

    def test_parse(self):
        """Test every field is read from its byte."""
        state = protocol.parse_state_response(
            make_state_response(red=1, green=2, blue=3, warm_white=4, cool_white=5)
        )
        assert state == DeviceState(
            is_on=True,
            red=1,
            green=2,
            blue=3,
            warm_white=4,
            cool_white=5,
            model_num=0x33,
            preset_pattern=0x61,
            mode=0x01,
            speed=0x10,
            light_version=8,
            color_mode=0xF0,
        )

    def test_power_off(self):
        """Test 0x24 reads as off."""
        state = protocol.parse_state_response(make_state_response(power=0x24))
        assert state is not None
        assert state.is_on is False

    def test_bad_checksum(self):
        """Test a corrupted response is rejected."""
        data = bytearray(make_state_response())
        data[-1] ^= 0xFF
        assert protocol.parse_state_response(bytes(data)) is None

    def test_wrong_length_or_header(self):
        """Test short or foreign responses are rejected."""
        assert protocol.parse_state_response(make_state_response()[:-2]) is None
        data = bytearray(make_state_response())
        data[0] = 0x80
        data[-1] = protocol.calculate_checksum(data[:-1])
        assert protocol.parse_state_response(bytes(data)) is None

    def test_sync_updates_hue_saturation_power(self):
        """Test syncing only touches power, hue and saturation."""
        state = LightState(hue=10, saturation=10, luminance=40, brightness=30, on=True)
        device_state = DeviceState(is_on=False, red=0, green=0, blue=255)
        assert protocol.sync_from_device(state, device_state) == (240, 100)
        assert state == LightState(hue=240, saturation=100, luminance=40, brightness=30, on=False)
