#!/usr/bin/env python3

"""Module that includes all functions needed for the setup and reconfiguration process"""

import asyncio
import logging
import re
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from activity import (
    ActivityCheck,
    DeviceGroup,
    MonitoredDevice,
    build_groups,
    groups_to_config,
)
from bridge import is_zen32
from const import (
    DATE_FORMAT_OPTIONS,
    DEFAULT_APP_LABEL,
    RELAY_LED_BEHAVIOR_OPTIONS,
    ZWAVE_PARAMETERS,
    ZWaveDevice,
)
from ucapi import IntegrationSetupError, RequestUserInput, SetupError
from ucapi_framework import BaseSetupFlow
from zwave_client import ZWaveClient

_LOG = logging.getLogger(__name__)

_TIME_PATTERN = re.compile(r"^([01]?\d|2[0-3]):[0-5]\d$")


def _number_field(field_id: str, label: str, value: int, minimum: int, maximum: int) -> dict:
    return {
        "id": field_id,
        "label": {"en": label},
        "field": {"number": {"value": value, "min": minimum, "max": maximum}},
    }


def _checkbox(field_id: str, label: str, value: bool) -> dict:
    return {"id": field_id, "label": {"en": label}, "field": {"checkbox": {"value": value}}}


def _text(field_id: str, label: str, value: str) -> dict:
    return {"id": field_id, "label": {"en": label}, "field": {"text": {"value": value}}}


def _dropdown(field_id: str, label: str, value: str, items: dict) -> dict:
    return {
        "id": field_id,
        "label": {"en": label},
        "field": {
            "dropdown": {
                "value": value,
                "items": [
                    {"id": str(item_id), "label": {"en": item_label}}
                    for item_id, item_label in items.items()
                ],
            }
        },
    }


def _info(field_id: str, label: str, text: str) -> dict:
    return {
        "id": field_id,
        "label": {"en": label},
        "field": {"label": {"value": {"en": text}}},
    }


_MANUAL_INPUT_SCHEMA = RequestUserInput(
    {"en": "Zooz Setup"},
    [
        _info(
            "info",
            "Setup your Z-Wave JS Server",
            "Please supply the WebSocket URL of your Z-Wave JS Server (e.g., ws://192.168.1.100:3000).",
        ),
        _text("address", "WebSocket URL", "ws://"),
        _info(
            "activity_info",
            "Device Activity Check",
            "Device groups and their inactivity thresholds are set up on the next screens.",
        ),
        _text("label", "Name for the activity check", DEFAULT_APP_LABEL),
        _text("notification_time", "Daily notification time (HH:MM, empty to disable)", ""),
        _checkbox("include_time", "Include last activity time in notifications", True),
        _dropdown(
            "time_format",
            "Date/time format for notifications",
            "0",
            dict(enumerate(DATE_FORMAT_OPTIONS)),
        ),
        _checkbox(
            "use_notification_time_format_for_report",
            "Use the notification date/time format for the report",
            False,
        ),
        _checkbox("include_hub_name", "Include the controller name in notifications", False),
        _text("time_zone", "Time zone (e.g., Europe/Berlin, empty for local time)", ""),
        _text("modes", "Only notify in these modes (comma separated, empty for always)", ""),
        _dropdown(
            "relay_led_behavior", "ZEN32 relay LED behavior", "0", RELAY_LED_BEHAVIOR_OPTIONS
        ),
    ],
)


def _as_int(value: Any, default: int | None = 0) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_bool(value: Any) -> bool:
    return str(value).lower() == "true"


def activity_settings(input_values: dict[str, Any]) -> dict[str, Any] | None:
    """
    Extract the activity check and ZEN32 preferences from the first setup screen.

    :return: ZWaveDevice keyword arguments, or None for an invalid notification time
             or time zone
    """
    notification_time = (input_values.get("notification_time") or "").strip()
    if notification_time and not _TIME_PATTERN.match(notification_time):
        _LOG.error("Invalid notification time %s, expected HH:MM", notification_time)
        return None

    time_zone = (input_values.get("time_zone") or "").strip()
    if time_zone:
        try:
            ZoneInfo(time_zone)
        except (ZoneInfoNotFoundError, ValueError):
            _LOG.error("Unknown time zone %s", time_zone)
            return None

    format_index = _as_int(input_values.get("time_format"))
    if not 0 <= format_index < len(DATE_FORMAT_OPTIONS):
        format_index = 0

    relay_led_behavior = _as_int(input_values.get("relay_led_behavior"))
    if relay_led_behavior not in RELAY_LED_BEHAVIOR_OPTIONS:
        relay_led_behavior = 0

    modes = [mode.strip() for mode in (input_values.get("modes") or "").split(",")]

    return {
        "label": (input_values.get("label") or "").strip() or DEFAULT_APP_LABEL,
        "notification_time": notification_time or None,
        "include_time": _as_bool(input_values.get("include_time", True)),
        "time_format": DATE_FORMAT_OPTIONS[format_index],
        "use_notification_time_format_for_report": _as_bool(
            input_values.get("use_notification_time_format_for_report", False)
        ),
        "include_hub_name": _as_bool(input_values.get("include_hub_name", False)),
        "time_zone": time_zone or None,
        "modes": [mode for mode in modes if mode],
        "relay_led_behavior": relay_led_behavior,
    }


# ─────────────────────────────────────────────────────────────────
# Device groups
# ─────────────────────────────────────────────────────────────────


def group_screen(group: DeviceGroup, nodes: dict[int, str]) -> RequestUserInput:
    """Device selection and inactivity threshold of one group."""
    selected = {device.identifier for device in group.devices}
    fields = [
        _info(
            "group_info",
            f"Group {group.number}",
            "Select the devices of this group. They are considered inactive if they "
            "have had no activity for the time below.",
        )
    ]
    fields += [
        _checkbox(f"node_{node_id}", name, str(node_id) in selected)
        for node_id, name in sorted(nodes.items())
    ]
    fields += [
        _number_field("days", "Days", group.days or 0, 0, 365),
        _number_field("hours", "Hours", group.hours or 0, 0, 23),
        _number_field("minutes", "Minutes", group.minutes or 0, 0, 59),
        _checkbox("add_group", "Add another group", False),
        _checkbox("remove_group", "Remove this group", False),
    ]
    return RequestUserInput({"en": f"Device Activity Check: Group {group.number}"}, fields)


def apply_group_input(
    check: ActivityCheck, number: int, input_values: dict[str, Any], nodes: dict[int, str]
) -> int | None:
    """
    Store the answers of a group screen.

    :return: number of the next group to show, or None after the last group
    """
    group = check.get_group(number)
    index = check.groups.index(group)

    if _as_bool(input_values.get("remove_group")) and len(check.groups) > 1:
        check.remove_group(number)
        following = check.groups[index:]
        return following[0].number if following else None

    group.devices = [
        MonitoredDevice(identifier=str(node_id), display_name=name)
        for node_id, name in sorted(nodes.items())
        if _as_bool(input_values.get(f"node_{node_id}"))
    ]
    group.days = _as_int(input_values.get("days"))
    group.hours = _as_int(input_values.get("hours"))
    group.minutes = _as_int(input_values.get("minutes"))
    _LOG.debug(
        "Group %s: %d device(s), %s", number, len(group.devices), group.threshold_text
    )

    if _as_bool(input_values.get("add_group")):
        check.add_group()
    following = check.groups[index + 1 :]
    return following[0].number if following else None


# ─────────────────────────────────────────────────────────────────
# ZEN32 parameters
# ─────────────────────────────────────────────────────────────────


def parameter_screen(current: dict[str, int] | None = None) -> RequestUserInput:
    """One field per ZEN32 configuration parameter preference."""
    current = current or {}
    fields = []
    for number, parameter in ZWAVE_PARAMETERS.items():
        value = current.get(str(number), parameter.default)
        label = f"{parameter.title} (#{number})"
        if parameter.options is not None:
            fields.append(_dropdown(f"param_{number}", label, str(value), parameter.options))
        else:
            fields.append(
                _number_field(
                    f"param_{number}",
                    label,
                    value,
                    parameter.value_range.start,
                    parameter.value_range.stop - 1,
                )
            )
    return RequestUserInput({"en": "ZEN32 Settings"}, fields)


def zen32_parameters(input_values: dict[str, Any]) -> dict[str, int]:
    """Parameter preferences from the ZEN32 settings screen, keyed by parameter number."""
    parameters = {}
    for number, parameter in ZWAVE_PARAMETERS.items():
        value = _as_int(input_values.get(f"param_{number}"), None)
        if value is None:
            continue
        if not parameter.is_valid(value):
            _LOG.warning("Parameter %s: value %s out of range (skipped)", number, value)
            continue
        parameters[str(number)] = value
    return parameters


class ZWaveSetupFlow(BaseSetupFlow[ZWaveDevice]):
    """
    Setup flow for the Zooz integration.

    Handles Z-Wave JS Server and activity check configuration through manual entry,
    followed by one screen per device group and the ZEN32 settings screen.
    """

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._nodes: dict[int, str] = {}
        self._has_zen32 = False
        self._activity = ActivityCheck()
        self._group_number: int | None = None

    def get_manual_entry_form(self) -> RequestUserInput:
        """
        Get the manual entry form for the Zooz setup.

        :return: RequestUserInput for manual entry
        """
        return _MANUAL_INPUT_SCHEMA

    async def query_device(
        self, input_values: dict[str, Any]
    ) -> ZWaveDevice | RequestUserInput:
        """
        Start driver setup.

        Initiated by Remote Two to set up the driver.

        :param input_values: value(s) of input fields in the first setup screen.
        :return: the setup action on how to continue
        """

        ws_url = input_values.get("address", "")

        if ws_url == "":
            _LOG.info("No WebSocket URL entered")
            return SetupError(IntegrationSetupError.OTHER)

        if not ws_url.startswith(("ws://", "wss://")):
            _LOG.error(
                "The entered WebSocket URL %s is not valid. Must start with ws:// or wss://",
                ws_url,
            )
            return SetupError(IntegrationSetupError.NOT_FOUND)

        settings = activity_settings(input_values)
        if settings is None:
            return SetupError(IntegrationSetupError.OTHER)

        _LOG.info("Entered WebSocket URL: %s", ws_url)

        try:
            zwave_client = ZWaveClient(ws_url)
            try:
                if not await zwave_client.connect():
                    _LOG.error("Failed to connect to Z-Wave JS Server at: %s", ws_url)
                    return SetupError(IntegrationSetupError.CONNECTION_REFUSED)

                controller_info = zwave_client.get_controller_info()
                devices = zwave_client.get_devices()
                _LOG.info("Z-Wave Controller info: %s", controller_info)
                _LOG.debug("Found %d Z-Wave devices", len(devices))
            finally:
                await zwave_client.disconnect()
                # let the server release the WebSocket before the driver reconnects
                await asyncio.sleep(0.3)

        except Exception as ex:  # pylint: disable=broad-exception-caught
            _LOG.error(
                "Unable to connect to Z-Wave JS Server at: %s. Exception: %s",
                ws_url,
                ex,
            )
            _LOG.info(
                "Please check if you entered the correct WebSocket URL and that Z-Wave JS Server is running"
            )
            return SetupError(IntegrationSetupError.CONNECTION_REFUSED)

        self._nodes = {
            node_id: info["name"]
            for node_id, info in devices.items()
            if not info.get("is_controller_node")
        }
        self._has_zen32 = any(is_zen32(info) for info in devices.values())

        previous = self.selected_config_entry
        monitored = {
            node_id: MonitoredDevice(identifier=str(node_id), display_name=name)
            for node_id, name in self._nodes.items()
        }
        if previous is not None and previous.groups:
            groups = build_groups(previous.groups, monitored)
        else:
            groups = [DeviceGroup(number=1, devices=list(monitored.values()), days=1)]
        self._activity = ActivityCheck(groups=groups)

        # Home ID is unique to each Z-Wave network
        home_id = controller_info.get("home_id")
        if home_id:
            controller_id = f"zwave_{home_id:08x}"
        else:
            controller_id = re.sub(r"[:/]", "_", re.sub(r"^wss?://", "", ws_url))
            _LOG.warning(
                "Home ID not available, using URL-based identifier: %s", controller_id
            )

        sdk_version = controller_info.get("sdk_version", "")
        controller_type = controller_info.get("type_name", "Controller")
        controller_name = f"Z-Wave {controller_type}"
        if sdk_version:
            controller_name += f" (SDK {sdk_version})"

        return ZWaveDevice(
            identifier=controller_id,
            address=ws_url,
            name=controller_name,
            model="Z-Wave JS Server",
            zen32_parameters=dict(previous.zen32_parameters) if previous else {},
            **settings,
        )

    async def get_additional_configuration_screen(
        self, device_config: ZWaveDevice, previous_input: dict[str, Any]
    ) -> RequestUserInput | None:
        """Show the first device group screen."""
        first = self._activity.groups[0]
        self._group_number = first.number
        return group_screen(first, self._nodes)

    async def handle_additional_configuration_response(self, msg):
        """Walk through the device group screens, then the ZEN32 settings screen."""
        if self._group_number is not None:
            self._group_number = apply_group_input(
                self._activity, self._group_number, msg.input_values, self._nodes
            )
            if self._group_number is not None:
                return group_screen(
                    self._activity.get_group(self._group_number), self._nodes
                )

            self._pending_device_config.groups = groups_to_config(self._activity.groups)
            if self._has_zen32:
                return parameter_screen(self._pending_device_config.zen32_parameters)
            return None

        self._pending_device_config.zen32_parameters = zen32_parameters(msg.input_values)
        _LOG.debug("ZEN32 parameters: %s", self._pending_device_config.zen32_parameters)
        return None
