"""Constants for the MagicHome integration."""
from typing import Final

DOMAIN: Final = "magichome"
MANUFACTURER: Final = "Magic Home"

# Configuration keys
CONF_LIGHT_VERSION: Final = "light_version"
CONF_MODEL_NUM: Final = "model_num"
CONF_DISCONNECT_DELAY: Final = "disconnect_delay"
CONF_COLOR_WHITE_THRESHOLD: Final = "color_white_threshold"
CONF_COLOR_WHITE_THRESHOLD_SIMULTANEOUS: Final = "color_white_threshold_simultaneous"
CONF_COLOR_OFF_THRESHOLD_SIMULTANEOUS: Final = "color_off_threshold_simultaneous"
CONF_SIMULTANEOUS_COLOR_WHITE: Final = "simultaneous_color_white"

# Default values
DEFAULT_PORT: Final = 5577
DEFAULT_DISCONNECT_DELAY: Final = 30  # seconds, 0 = stay connected
DEFAULT_CONNECT_TIMEOUT: Final = 3.0  # seconds
DEFAULT_STATE_TIMEOUT: Final = 1.0  # seconds
DEFAULT_EFFECT_SPEED: Final = 50  # 0-100

# White mixing thresholds (saturation percent)
DEFAULT_COLOR_WHITE_THRESHOLD: Final = 33
DEFAULT_COLOR_WHITE_THRESHOLD_SIMULTANEOUS: Final = 50
DEFAULT_COLOR_OFF_THRESHOLD_SIMULTANEOUS: Final = 5
DEFAULT_SIMULTANEOUS_COLOR_WHITE: Final = True

# Command bytes
OPCODE_SET_COLOR: Final = 0x31
OPCODE_SET_PATTERN: Final = 0x61
OPCODE_SET_POWER: Final = 0x71
OPCODE_STATE_QUERY: Final = 0x81
POWER_ON: Final = 0x23
POWER_OFF: Final = 0x24
TERMINATOR: Final = 0x0F

# Mask byte: which channel group the controller displays
MASK_COLOR: Final = 0xF0
MASK_WHITE: Final = 0x0F
MASK_BOTH: Final = 0xFF

STATE_RESPONSE_LEN: Final = 14

# Host color picker swatches (hue, saturation)
WARM_WHITE_SWATCH: Final = (31, 33)
COOL_WHITE_SWATCH: Final = (208, 17)
NEUTRAL_SWATCH: Final = (0, 0)

# Built-in preset patterns (0x61 command), ids 37-56
PRESET_PATTERNS: Final = {
    0x25: "Seven color cross fade",
    0x26: "Red gradual change",
    0x27: "Green gradual change",
    0x28: "Blue gradual change",
    0x29: "Yellow gradual change",
    0x2A: "Cyan gradual change",
    0x2B: "Purple gradual change",
    0x2C: "White gradual change",
    0x2D: "Red/green cross fade",
    0x2E: "Red/blue cross fade",
    0x2F: "Green/blue cross fade",
    0x30: "Seven color strobe flash",
    0x31: "Red strobe flash",
    0x32: "Green strobe flash",
    0x33: "Blue strobe flash",
    0x34: "Yellow strobe flash",
    0x35: "Cyan strobe flash",
    0x36: "Purple strobe flash",
    0x37: "White strobe flash",
    0x38: "Seven color jumping change",
}


def get_pattern_id(name: str) -> int | None:
    """Return the preset pattern id for a pattern name."""
    for pattern_id, pattern_name in PRESET_PATTERNS.items():
        if pattern_name == name:
            return pattern_id
    return None
