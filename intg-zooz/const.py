"""
This module implements the Zooz constants for the Remote Two/3 integration driver.
"""

from dataclasses import dataclass, field
from types import MappingProxyType

from zwave_js_server.const import CommandClass

# Date/time formats offered for notifications (strftime patterns).
DATE_FORMAT_OPTIONS = (
    "%b %d, %Y, %I:%M %p",
    "%a, %b %d, %Y, %I:%M %p",
    "%a %d %b %Y, %I:%M %p",
    "%d %b %Y, %I:%M %p",
    "%d %b %Y %H:%M",
    "%a %b %d %H:%M",
    "%Y-%m-%d %H:%M %Z",
)
DEFAULT_TIME_FORMAT = "%b %d, %Y %I:%M %p"
DEFAULT_APP_LABEL = "Device Activity Check"


@dataclass
class ZWaveDevice:
    """Z-Wave controller configuration."""

    identifier: str
    """Unique identifier of the controller."""
    address: str
    """WebSocket URL of Z-Wave JS Server (e.g., ws://localhost:3000)"""
    name: str
    """Name of the controller."""
    model: str
    """Model name of the controller."""
    groups: list[dict] = field(default_factory=list)
    """Activity check device groups (number, node_ids, days, hours, minutes)."""
    notification_time: str | None = None
    """Daily inactivity notification time (HH:MM), None to disable."""
    include_time: bool = True
    """Include last activity time in notifications."""
    time_format: str = DATE_FORMAT_OPTIONS[0]
    """Date/time format for notifications."""
    include_hub_name: bool = False
    use_notification_time_format_for_report: bool = False
    modes: list[str] = field(default_factory=list)
    """Only send notifications when the mode is one of these (empty = always)."""
    time_zone: str | None = None
    label: str = DEFAULT_APP_LABEL
    relay_led_behavior: int | None = None
    """ZEN32 relay LED indicator mode (see RELAY_LED_BEHAVIOR_OPTIONS)."""
    zen32_parameters: dict[str, int] = field(default_factory=dict)
    """ZEN32 configuration parameter preferences keyed by parameter number."""


@dataclass
class Zen32Info:
    device_id: str
    node_id: int
    name: str
    model: str
    switch: str | None = None
    last_button_event: str | None = None


# Z-Wave command class versions supported by the ZEN32
COMMAND_CLASS_VERSIONS = MappingProxyType(
    {
        CommandClass.BASIC: 1,
        CommandClass.SWITCH_BINARY: 1,
        CommandClass.TRANSPORT_SERVICE: 1,
        CommandClass.ASSOCIATION_GRP_INFO: 1,
        CommandClass.CENTRAL_SCENE: 1,
        CommandClass.SUPERVISION: 1,
        CommandClass.CONFIGURATION: 1,
        CommandClass.MANUFACTURER_SPECIFIC: 2,
        CommandClass.ASSOCIATION: 1,
        CommandClass.VERSION: 2,
        CommandClass.INDICATOR: 3,
        CommandClass.MULTI_CHANNEL_ASSOCIATION: 2,
        CommandClass.SECURITY: 1,
        CommandClass.SECURITY_2: 1,
    }
)

# ZEN32 fingerprint
ZEN32_MANUFACTURER_ID = 0x027A
ZEN32_PRODUCT_TYPE = 0x7000
ZEN32_PRODUCT_ID = 0xA008

# "Base" buttons 1-4 are the small buttons, 5 is the relay/large button;
# multi-taps extend the numbering up to 25
RELAY_BUTTON = 5
NUMBER_OF_BUTTONS = 25

# Color name to parameter value mapping
COLOR_NAME_MAP = MappingProxyType(
    {
        0: "white",
        1: "blue",
        2: "green",
        3: "red",
        4: "magenta",
        5: "yellow",
        6: "cyan",
    }
)

# ucapi hue (0-360) of the LED colors; white has no hue
COLOR_HUES = MappingProxyType(
    {
        "red": 0,
        "yellow": 60,
        "green": 120,
        "cyan": 180,
        "blue": 240,
        "magenta": 300,
    }
)

# LED/button number to parameter number mappings
LED_INDICATOR_PARAMS = MappingProxyType({1: 2, 2: 3, 3: 4, 4: 5, 5: 1})
LED_COLOR_PARAMS = MappingProxyType({1: 7, 2: 8, 3: 9, 4: 10, 5: 6})
LED_BRIGHTNESS_PARAMS = MappingProxyType({1: 12, 2: 13, 3: 14, 4: 15, 5: 11})

# LED indicator mode parameter values
LED_MODE_ON_WHEN_OFF = 0
LED_MODE_ON_WHEN_ON = 1
LED_MODE_ALWAYS_OFF = 2
LED_MODE_ALWAYS_ON = 3

LED_MODE_NAMES = MappingProxyType(
    {
        LED_MODE_ON_WHEN_OFF: "on when off",
        LED_MODE_ON_WHEN_ON: "on when on",
        LED_MODE_ALWAYS_OFF: "off",
        LED_MODE_ALWAYS_ON: "on",
    }
)

# LED brightness parameter values
LED_BRIGHTNESS_100 = 0
LED_BRIGHTNESS_60 = 1
LED_BRIGHTNESS_30 = 2

LED_BRIGHTNESS_NAMES = MappingProxyType(
    {
        LED_BRIGHTNESS_100: "100%",
        LED_BRIGHTNESS_60: "60%",
        LED_BRIGHTNESS_30: "30%",
    }
)

# LED number to Indicator command class channel (0 = all LEDs)
INDICATOR_LED_NUMBER_MAP = MappingProxyType(
    {0: 0x50, 5: 0x43, 1: 0x44, 2: 0x45, 3: 0x46, 4: 0x47}
)

# Indicator command class property ids
INDICATOR_PROPERTY_ON_OFF = 0x02
INDICATOR_PROPERTY_ON_OFF_PERIOD = 0x03
INDICATOR_PROPERTY_ON_OFF_CYCLES = 0x04
INDICATOR_PROPERTY_ON_TIME = 0x05

# Relay LED indicator mode preference; 4 lets setLED control the relay LED
RELAY_LED_SET_LED_CONTROL = 4
RELAY_LED_BEHAVIOR_OPTIONS = MappingProxyType(
    {
        0: "On when relay Off (DEFAULT)",
        1: "On when relay On",
        2: "Always Off",
        3: "Always On",
        RELAY_LED_SET_LED_CONTROL: 'Control with "Set LED" command',
    }
)

# Delays (ms) between commands so the mesh is not flooded
DELAY_CONFIGURE_MS = 150
DELAY_UPDATED_MS = 200
DELAY_LED_MS = 300
DELAY_REFRESH_MS = 100


@dataclass(frozen=True)
class ZWaveParameter:
    """A ZEN32 configuration parameter exposed as a preference."""

    number: int
    title: str
    size: int
    default: int
    options: MappingProxyType | None = None
    value_range: range | None = None

    def is_valid(self, value: int) -> bool:
        """Return True if value is inside this parameter's domain."""
        if self.options is not None:
            return value in self.options
        if self.value_range is not None:
            return value in self.value_range
        return True


def _options(values: dict[int, str]) -> MappingProxyType:
    return MappingProxyType(values)


ZWAVE_PARAMETERS = MappingProxyType(
    {
        16: ZWaveParameter(
            16, "Auto-Off Timer for Relay (minutes)", 4, 0, value_range=range(0, 65536)
        ),
        17: ZWaveParameter(
            17, "Auto-On Timer for Relay (minutes)", 4, 0, value_range=range(0, 65536)
        ),
        18: ZWaveParameter(
            18,
            "State After Power Restored",
            1,
            0,
            _options({0: "Previous State (DEFAULT)", 1: "Off", 2: "On"}),
        ),
        19: ZWaveParameter(
            19,
            "Physical and Z-Wave (Smart Bulb Mode)",
            1,
            1,
            _options(
                {
                    0: "Disable physical control, enable Z-Wave",
                    1: "Enable physical and Z-Wave control (DEFAULT)",
                    2: "Disable physical and Z-Wave control",
                }
            ),
        ),
        20: ZWaveParameter(
            20,
            "Behavior if Control is Disabled",
            1,
            1,
            _options(
                {
                    0: "Send on/off reports and change LED",
                    1: "Do not send on/off reports or change LED (DEFAULT)",
                }
            ),
        ),
        21: ZWaveParameter(
            21,
            "3-Way Switch Type",
            1,
            0,
            _options({0: "Regular Mechanical 3-way (DEFAULT)", 1: "Momentary Switch"}),
        ),
        22: ZWaveParameter(
            22,
            "Programming from the Relay Button",
            1,
            0,
            _options({0: "Enabled (DEFAULT)", 1: "Disabled"}),
        ),
        23: ZWaveParameter(
            23,
            "LED Flash when Settings Changed",
            1,
            0,
            _options({0: "Flash Enabled (DEFAULT)", 1: "Flash Disabled"}),
        ),
        24: ZWaveParameter(
            24,
            "Scene Control Events on Relay",
            1,
            0,
            _options({0: "Enabled (DEFAULT)", 1: "Disabled"}),
        ),
        26: ZWaveParameter(
            26,
            "Scene Control Events from 3-way",
            1,
            0,
            _options({0: "Disabled (DEFAULT)", 1: "Enabled"}),
        ),
        25: ZWaveParameter(
            25,
            "Send Status Report to Associations",
            1,
            15,
            _options(
                {
                    0: "None",
                    1: "Physical Tap On ZEN Only",
                    2: "Physical Tap On Connected 3-Way Switch Only",
                    3: "Physical Tap On ZEN / 3-Way Switch",
                    4: "Z-Wave Command From Hub",
                    5: "Physical Tap On ZEN / Z-Wave Command",
                    6: "Physical Tap On 3-Way Switch / Z-Wave Command",
                    7: "Physical Tap On ZEN / 3-Way Switch / Z-Wave Command",
                    8: "Timer Only",
                    9: "Physical Tap On ZEN / Timer",
                    10: "Physical Tap On 3-Way Switch / Timer",
                    11: "Physical Tap On ZEN / 3-Way Switch / Timer",
                    12: "Z-Wave Command From Hub / Timer",
                    13: "Physical Tap On ZEN / Z-Wave Command / Timer",
                    14: "Physical Tap On ZEN / 3-Way Switch / Z-Wave Command / Timer",
                    15: "All Of The Above (DEFAULT)",
                }
            ),
        ),
    }
)

# Set by configure(): LED indicator mode for buttons 1-4 (the relay LED,
# parameter 1, follows the relay LED behavior preference instead)
DEFAULT_ZWAVE_PARAMETERS = MappingProxyType(
    {
        2: (LED_MODE_ALWAYS_ON, 1),
        3: (LED_MODE_ALWAYS_ON, 1),
        4: (LED_MODE_ALWAYS_ON, 1),
        5: (LED_MODE_ALWAYS_ON, 1),
    }
)
