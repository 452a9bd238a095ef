"""
Zooz ZEN32 scene controller protocol adapter.

Translates the controller's command surface (relay, LEDs, indicator,
configuration parameters) into Z-Wave frames, and incoming frames into
switch/button events and cached device state.

Button numbering:

* base buttons: small top left = 1, top right = 2, bottom left = 3,
  bottom right = 4, relay/large button = 5
* single taps, hold and release use the base button number
* multi-taps are reported as pushes of ``base + 5 * (taps - 1)``,
  e.g. button 1 taps 1-5 are buttons 1, 6, 11, 16 and 21
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from const import (
    COLOR_NAME_MAP,
    DEFAULT_ZWAVE_PARAMETERS,
    DELAY_CONFIGURE_MS,
    DELAY_LED_MS,
    DELAY_REFRESH_MS,
    DELAY_UPDATED_MS,
    INDICATOR_LED_NUMBER_MAP,
    INDICATOR_PROPERTY_ON_OFF,
    INDICATOR_PROPERTY_ON_OFF_CYCLES,
    INDICATOR_PROPERTY_ON_OFF_PERIOD,
    INDICATOR_PROPERTY_ON_TIME,
    LED_BRIGHTNESS_100,
    LED_BRIGHTNESS_30,
    LED_BRIGHTNESS_60,
    LED_BRIGHTNESS_NAMES,
    LED_BRIGHTNESS_PARAMS,
    LED_COLOR_PARAMS,
    LED_INDICATOR_PARAMS,
    LED_MODE_ALWAYS_OFF,
    LED_MODE_ALWAYS_ON,
    LED_MODE_NAMES,
    NUMBER_OF_BUTTONS,
    RELAY_BUTTON,
    RELAY_LED_SET_LED_CONTROL,
    ZWAVE_PARAMETERS,
)
from zwave_commands import (
    DEVICE_ID_DATA_FORMAT_BINARY,
    DEVICE_ID_TYPE_SERIAL_NUMBER,
    KEY_HELD_DOWN,
    KEY_PRESSED_2X,
    KEY_RELEASED,
    SUPERVISION_STATUS_SUCCESS,
    BasicGet,
    BasicReport,
    BasicSet,
    CentralSceneNotification,
    ConfigurationGet,
    ConfigurationReport,
    ConfigurationSet,
    DeviceSpecificGet,
    DeviceSpecificReport,
    HubCommand,
    IndicatorReport,
    IndicatorSet,
    IndicatorSupportedGet,
    IndicatorSupportedReport,
    IndicatorValue,
    SupervisionGet,
    SupervisionReport,
    SwitchBinaryReport,
    VersionGet,
    VersionReport,
    ZWaveCommand,
    ZWaveParseError,
    delay_between,
    parse,
    secure_encap,
)

_LOG = logging.getLogger(__name__)

# slot index inside a cached LED entry
SLOT_INDICATOR = 0
SLOT_COLOR = 1
SLOT_BRIGHTNESS = 2

# brightness value used by set_led to mean "turn the LED off"
_LED_OFF = -1


@dataclass(frozen=True)
class DeviceEvent:
    """An event raised by the scene controller (switch or button)."""

    name: str
    value: str | int
    description_text: str | None = None
    is_state_change: bool = False
    type: str | None = None


@dataclass
class Zen32Preferences:
    """User preferences applied by updated()."""

    parameters: dict[int, int] = field(default_factory=dict)
    relay_led_behavior: int | None = None


@dataclass
class Zen32State:
    """Last known device state reported by the controller."""

    switch: str | None = None
    firmware_version: str | None = None
    protocol_version: str | None = None
    hardware_version: str | None = None
    serial_number: str | None = None
    number_of_buttons: int | None = None
    settings_led: dict[int, list[str | None]] = field(default_factory=dict)
    config_params: dict[int, int] = field(default_factory=dict)

    def __post_init__(self):
        if not self.settings_led:
            self.settings_led = _empty_led_settings()

    def clear(self) -> None:
        """Forget everything reported by the device."""
        self.switch = None
        self.firmware_version = None
        self.protocol_version = None
        self.hardware_version = None
        self.serial_number = None
        self.number_of_buttons = None
        self.settings_led = _empty_led_settings()
        self.config_params = {}


def _empty_led_settings() -> dict[int, list[str | None]]:
    return {led: [None, None, None] for led in LED_INDICATOR_PARAMS}


def _find_led(params, parameter_number: int) -> int | None:
    return next(
        (led for led, number in params.items() if number == parameter_number), None
    )


def _indicator_byte(value) -> int:
    """Clamp an indicator property value to a single byte."""
    return max(0, min(0xFF, int(value or 0)))


def brightness_to_level(brightness) -> int | None:
    """
    Map a brightness percentage onto the ZEN32 LED brightness value.

    :return: the parameter value, -1 for "LED off" or None for no change
    """
    if brightness is None:
        return None
    try:
        brightness = int(brightness)
    except (TypeError, ValueError):
        return None
    if brightness == 0:
        return _LED_OFF
    if 1 <= brightness <= 44:
        return LED_BRIGHTNESS_30
    if 45 <= brightness <= 74:
        return LED_BRIGHTNESS_60
    if 75 <= brightness <= 100:
        return LED_BRIGHTNESS_100
    return None


def color_name_to_value(color_name: str | None) -> int | None:
    """Return the ZEN32 color parameter value for a color name (case-insensitive)."""
    if not color_name:
        return None
    return next(
        (
            value
            for value, name in COLOR_NAME_MAP.items()
            if name.lower() == str(color_name).lower()
        ),
        None,
    )


def button_event(scene_number: int, key_attributes: int) -> tuple[int, str]:
    """
    Decode a Central Scene notification into (button number, action).

    Multi-taps are remapped to ``scene + 5 * (taps - 1)``.
    """
    button = scene_number
    action = "pushed"
    if key_attributes == KEY_HELD_DOWN:
        action = "held"
    elif key_attributes == KEY_RELEASED:
        action = "released"
    if key_attributes >= KEY_PRESSED_2X:
        button = scene_number + 5 * (key_attributes - 2)
    return button, action


class Zen32SceneController:
    """Representing a Zooz ZEN32 scene controller."""

    def __init__(
        self,
        display_name: str = "Zooz Scene Controller",
        preferences: Zen32Preferences | None = None,
    ) -> None:
        self.display_name = display_name
        self.preferences = preferences or Zen32Preferences()
        self.state = Zen32State()
        self._listeners: list[Callable[[DeviceEvent], None]] = []

    # ─────────────────────────────────────────────────────────────────
    # Events
    # ─────────────────────────────────────────────────────────────────

    def add_listener(self, listener: Callable[[DeviceEvent], None]) -> None:
        """Register a callback for switch and button events."""
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[DeviceEvent], None]) -> None:
        """Remove a previously registered callback."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _send_event(self, event: DeviceEvent) -> None:
        for listener in self._listeners:
            try:
                listener(event)
            except (TypeError, AttributeError, ValueError) as ex:
                _LOG.error("Error in event listener: %s", ex)

    # ─────────────────────────────────────────────────────────────────
    # Inbound frames
    # ─────────────────────────────────────────────────────────────────

    def parse(self, description: str) -> list[HubCommand]:
        """
        Handle a frame reported by the transport.

        :param description: hex encoded frame
        :return: commands to send back to the device (may be empty)
        """
        _LOG.debug("parse description: %s", description)
        try:
            cmd = parse(description)
        except ZWaveParseError as err:
            _LOG.debug("Ignoring unparsable frame %s: %s", description, err)
            return []
        return self.zwave_event(cmd)

    def zwave_event(self, cmd: ZWaveCommand) -> list[HubCommand]:
        """Dispatch a decoded frame; returns commands to send back."""
        match cmd:
            case SupervisionGet():
                return self._supervision_get(cmd)
            case VersionReport():
                self._version_report(cmd)
            case DeviceSpecificReport():
                self._device_specific_report(cmd)
            case ConfigurationReport():
                self._configuration_report(cmd)
            case BasicReport() | BasicSet() | SwitchBinaryReport():
                self._switch_report(cmd)
            case CentralSceneNotification():
                self._central_scene_notification(cmd)
            case IndicatorReport():
                _LOG.debug("IndicatorReport: %s", cmd)
            case IndicatorSupportedReport():
                return self._indicator_supported_report(cmd)
            case _:
                _LOG.debug("skip: %s", cmd)
        return []

    def _supervision_get(self, cmd: SupervisionGet) -> list[HubCommand]:
        responses: list[HubCommand] = []
        encap_cmd = cmd.encapsulated_command()
        if encap_cmd is not None:
            responses.extend(self.zwave_event(encap_cmd))
        # always acknowledged, whether or not the inner command was understood
        responses.append(
            secure_encap(
                SupervisionReport(
                    session_id=cmd.session_id,
                    more_status_updates=False,
                    status=SUPERVISION_STATUS_SUCCESS,
                    duration=0,
                )
            )
        )
        return responses

    def _version_report(self, cmd: VersionReport) -> None:
        _LOG.debug("VersionReport: %s", cmd)
        self.state.firmware_version = (
            f"{cmd.firmware0_version}.{cmd.firmware0_sub_version:02d}"
        )
        self.state.protocol_version = (
            f"{cmd.z_wave_protocol_version}.{cmd.z_wave_protocol_sub_version}"
        )
        self.state.hardware_version = str(cmd.hardware_version)

    def _device_specific_report(self, cmd: DeviceSpecificReport) -> None:
        _LOG.debug("DeviceSpecificReport v2: %s", cmd)
        if cmd.device_id_type != DEVICE_ID_TYPE_SERIAL_NUMBER:
            return
        if cmd.device_id_data_format == DEVICE_ID_DATA_FORMAT_BINARY:
            serial_number = "".join(f"{b & 0xFF:02X}" for b in cmd.device_id_data)
        else:
            serial_number = "".join(chr(b) for b in cmd.device_id_data)
        _LOG.debug("Device serial number is %s", serial_number)
        self.state.serial_number = serial_number

    def _configuration_report(self, cmd: ConfigurationReport) -> None:
        _LOG.debug("ConfigurationReport: %s", cmd)
        number = cmd.parameter_number
        value = cmd.scaled_configuration_value

        led = _find_led(LED_INDICATOR_PARAMS, number)
        if led is not None:
            slot, text = SLOT_INDICATOR, LED_MODE_NAMES.get(value, str(value))
        elif (led := _find_led(LED_COLOR_PARAMS, number)) is not None:
            slot, text = SLOT_COLOR, COLOR_NAME_MAP.get(value, "unknown")
        elif (led := _find_led(LED_BRIGHTNESS_PARAMS, number)) is not None:
            slot, text = SLOT_BRIGHTNESS, LED_BRIGHTNESS_NAMES.get(value, str(value))

        if led is not None:
            _LOG.info("%s LED #%d set to %s", self.display_name, led, text)
            self.state.settings_led[led][slot] = text
        else:
            _LOG.info(
                "%s parameter '%d', size '%d', is set to '%d'",
                self.display_name,
                number,
                cmd.size,
                value,
            )
            self.set_stored_config_param_value(number, value)

    def _switch_report(self, cmd: BasicReport | BasicSet | SwitchBinaryReport) -> None:
        _LOG.debug("%s: %s", type(cmd).__name__, cmd)
        value = "on" if cmd.value else "off"
        if self.state.switch != value:
            _LOG.info("%s switch is %s", self.display_name, value)
        self.state.switch = value
        self._send_event(DeviceEvent(name="switch", value=value))

    def _central_scene_notification(self, cmd: CentralSceneNotification) -> None:
        _LOG.debug("CentralSceneNotification: %s", cmd)
        base_button = cmd.scene_number or 0
        button, action = button_event(base_button, cmd.key_attributes)
        if not button:
            return
        self._button_event(action, button, "physical")
        if cmd.key_attributes == KEY_PRESSED_2X:
            self._button_event("doubleTapped", base_button, "physical")

    def _button_event(self, action: str, button: int, event_type: str) -> None:
        description_text = f"{self.display_name} button {button} was {action}"
        if event_type == "physical":
            _LOG.info("%s", description_text)
        self._send_event(
            DeviceEvent(
                name=action,
                value=button,
                description_text=description_text,
                is_state_change=True,
                type=event_type,
            )
        )

    def _indicator_supported_report(
        self, cmd: IndicatorSupportedReport
    ) -> list[HubCommand]:
        _LOG.debug("IndicatorSupportedReport: %s", cmd)
        if cmd.next_indicator_id > 0:
            return [
                secure_encap(IndicatorSupportedGet(indicator_id=cmd.next_indicator_id))
            ]
        return []

    # ─────────────────────────────────────────────────────────────────
    # Stored parameters
    # ─────────────────────────────────────────────────────────────────

    def set_stored_config_param_value(self, number: int, value: int) -> None:
        self.state.config_params[number] = value

    def get_stored_config_param_value(self, number: int) -> int | None:
        return self.state.config_params.get(number)

    def _invalidate(self, parameter_number: int) -> None:
        """Drop the cached value of a parameter that is about to change."""
        for slot, params in (
            (SLOT_INDICATOR, LED_INDICATOR_PARAMS),
            (SLOT_COLOR, LED_COLOR_PARAMS),
            (SLOT_BRIGHTNESS, LED_BRIGHTNESS_PARAMS),
        ):
            led = _find_led(params, parameter_number)
            if led is not None:
                self.state.settings_led[led][slot] = None
                return
        self.state.config_params.pop(parameter_number, None)

    # ─────────────────────────────────────────────────────────────────
    # Commands
    # ─────────────────────────────────────────────────────────────────

    def set_parameter(self, number: int, value: int, size: int) -> HubCommand:
        """Build a secure Configuration Set for a parameter."""
        _LOG.debug("setParameter(number: %s, value: %s, size: %s)", number, value, size)
        self._invalidate(int(number))
        return secure_encap(
            ConfigurationSet(
                parameter_number=int(number),
                size=int(size),
                scaled_configuration_value=int(value),
            )
        )

    def set_config_parameter(self, number: int, value: int, size: int) -> HubCommand:
        """Set any configuration parameter (custom command for apps/users)."""
        return self.set_parameter(number, value, size)

    def _set_and_get(self, number: int, value: int) -> list[HubCommand]:
        return [
            self.set_parameter(number, value, 1),
            secure_encap(ConfigurationGet(parameter_number=number)),
        ]

    def _relay_led_controllable(self, led: int) -> bool:
        return (
            led != RELAY_BUTTON
            or self.preferences.relay_led_behavior == RELAY_LED_SET_LED_CONTROL
        )

    def set_led(
        self, led_number, color_name: str | None = None, brightness=None
    ) -> list:
        """
        Set LED color and/or brightness, turning the LED on (or off for brightness 0).

        :param led_number: LED/button number (1-5, 5 = large button)
        :param color_name: color name, None for no change
        :param brightness: 100, 60 or 30 (rounded to the nearest level); 0 for off;
            None turns the LED on only
        :return: commands to send
        """
        _LOG.debug(
            "setLED(Number %s, Color %s, Brightness %s)",
            led_number,
            color_name,
            brightness,
        )
        try:
            led = int(led_number)
        except (TypeError, ValueError):
            led = None
        if led not in LED_INDICATOR_PARAMS:
            _LOG.warning("Invalid LED number %s (no changes made)", led_number)
            return []

        color = color_name_to_value(color_name)
        level = brightness_to_level(brightness)
        _LOG.debug("setLED(Number %s, Color %s, Brightness %s) ADJUSTED", led, color, level)

        cmds: list[HubCommand] = []
        if level == _LED_OFF:
            if self._relay_led_controllable(led):
                cmds += self._set_and_get(LED_INDICATOR_PARAMS[led], LED_MODE_ALWAYS_OFF)
            else:
                _LOG.warning(
                    "Relay LED (#5) not configured to allow turning off from setLED "
                    "(no changes made)"
                )
        else:
            if color is not None:
                cmds += self._set_and_get(LED_COLOR_PARAMS[led], color)
            if level is not None:
                cmds += self._set_and_get(LED_BRIGHTNESS_PARAMS[led], level)
            if self._relay_led_controllable(led):
                cmds += self._set_and_get(LED_INDICATOR_PARAMS[led], LED_MODE_ALWAYS_ON)
        return delay_between(cmds, DELAY_LED_MS) if cmds else []

    def set_indicator(
        self,
        led_number=0,
        mode: str = "on",
        length_of_on_off_periods=None,
        number_of_on_off_periods=None,
        length_of_on_period=None,
    ) -> list:
        """
        Flash or switch an LED with the Indicator command class.

        :param led_number: LED/button number (1-5, 5 = large button, 0 = all)
        :param mode: "flash", "on" or "off"
        :param length_of_on_off_periods: on/off period length in tenths of seconds
        :param number_of_on_off_periods: number of on/off periods, 255 for indefinite
        :param length_of_on_period: on time within a period in tenths of seconds
        """
        _LOG.debug(
            "setIndicator(%s, %s, %s, %s, %s)",
            led_number,
            mode,
            length_of_on_off_periods,
            number_of_on_off_periods,
            length_of_on_period,
        )
        try:
            indicator_id = INDICATOR_LED_NUMBER_MAP.get(int(led_number), 0)
        except (TypeError, ValueError):
            indicator_id = 0

        if str(mode).lower() == "flash":
            on_off_period = _indicator_byte(length_of_on_off_periods)
            on_off_cycles = _indicator_byte(number_of_on_off_periods)
            on_time = _indicator_byte(length_of_on_period)
            values = (
                IndicatorValue(indicator_id, INDICATOR_PROPERTY_ON_OFF_PERIOD, on_off_period),
                IndicatorValue(indicator_id, INDICATOR_PROPERTY_ON_OFF_CYCLES, on_off_cycles),
                IndicatorValue(indicator_id, INDICATOR_PROPERTY_ON_TIME, on_time),
            )
        else:
            on_off = 0xFF if str(mode).lower() == "on" else 0x00
            values = (IndicatorValue(indicator_id, INDICATOR_PROPERTY_ON_OFF, on_off),)

        cmds = [secure_encap(IndicatorSet(value=0xFF, indicator_values=values))]
        return delay_between(cmds, DELAY_LED_MS)

    def refresh(self) -> list:
        _LOG.debug("refresh")
        return delay_between(
            [secure_encap(BasicGet()), secure_encap(VersionGet())], DELAY_REFRESH_MS
        )

    def on(self) -> HubCommand:
        _LOG.debug("on()")
        return secure_encap(BasicSet(value=0xFF))

    def off(self) -> HubCommand:
        _LOG.debug("off()")
        return secure_encap(BasicSet(value=0x00))

    def push(self, button: int) -> None:
        self._button_event("pushed", button, "digital")

    def hold(self, button: int) -> None:
        self._button_event("held", button, "digital")

    def release(self, button: int) -> None:
        self._button_event("released", button, "digital")

    def double_tap(self, button: int) -> None:
        self._button_event("doubleTapped", button, "digital")

    def configure(self) -> list:
        """Bootstrap default parameters and read back LED, version and serial number."""
        _LOG.warning("configure...")
        self.state.number_of_buttons = NUMBER_OF_BUTTONS
        self._send_event(DeviceEvent(name="numberOfButtons", value=NUMBER_OF_BUTTONS))

        cmds: list[HubCommand] = []
        for number, (value, size) in DEFAULT_ZWAVE_PARAMETERS.items():
            _LOG.debug(
                "Default parameter: setting parameter %s (size: %s) to %s",
                number,
                size,
                value,
            )
            cmds.append(self.set_parameter(number, value, size))

        for params in (LED_INDICATOR_PARAMS, LED_COLOR_PARAMS, LED_BRIGHTNESS_PARAMS):
            for number in params.values():
                cmds.append(secure_encap(ConfigurationGet(parameter_number=number)))

        cmds.append(secure_encap(VersionGet()))
        cmds.append(
            secure_encap(DeviceSpecificGet(device_id_type=DEVICE_ID_TYPE_SERIAL_NUMBER))
        )
        return delay_between(cmds, DELAY_CONFIGURE_MS) + self.updated()

    def updated(self) -> list:
        """Apply preference changes, including updating parameters."""
        _LOG.info("updated...")
        cmds: list[HubCommand] = []

        for number, parameter in ZWAVE_PARAMETERS.items():
            value = self.preferences.parameters.get(number)
            if value is None:
                continue
            if not parameter.is_valid(int(value)):
                _LOG.warning(
                    "Preference parameter %s: value %s out of range (skipped)",
                    number,
                    value,
                )
                continue
            _LOG.debug(
                "Preference parameter: setting parameter %s (size: %s) to %s",
                number,
                parameter.size,
                value,
            )
            cmds.append(self.set_parameter(number, value, parameter.size))

        relay_led_behavior = self.preferences.relay_led_behavior
        if relay_led_behavior is not None and int(relay_led_behavior) < RELAY_LED_SET_LED_CONTROL:
            cmds += self._set_and_get(LED_INDICATOR_PARAMS[RELAY_BUTTON], int(relay_led_behavior))

        return delay_between(cmds, DELAY_UPDATED_MS)
