"""
This module implements the Z-Wave communication of the Remote Two/3 integration driver.

"""

import asyncio
import logging
from asyncio import AbstractEventLoop
from datetime import datetime, timezone, tzinfo
from functools import partial
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from activity import (
    ActivityCheck,
    ActivitySettings,
    MonitoredDevice,
    build_groups,
    seconds_until,
)
from const import (
    COLOR_HUES,
    ZEN32_MANUFACTURER_ID,
    ZEN32_PRODUCT_ID,
    ZEN32_PRODUCT_TYPE,
    ZWAVE_PARAMETERS,
    Zen32Info,
    ZWaveDevice,
)
from ucapi import EntityTypes
from ucapi.light import Attributes as LightAttr
from ucapi.sensor import Attributes as SensorAttr
from ucapi_framework import DeviceEvents, ExternalClientDevice, create_entity_id
from zen32 import DeviceEvent, Zen32Preferences, Zen32SceneController
from zwave_client import ZWaveClient
from zwave_commands import (
    BasicReport,
    CentralSceneNotification,
    ConfigurationReport,
    SwitchBinaryReport,
    ZWaveCommand,
)
from zwave_js_server.const import CommandClass

_LOG = logging.getLogger(__name__)

INACTIVE_DEVICES_SENSOR = "inactive_devices"
INACTIVITY_REPORT_BUTTON = "inactivity_report"

BUTTON_ACTIONS = ("pushed", "held", "released", "doubleTapped")

# ucapi brightness (0-255) of the ZEN32 LED brightness levels
LED_BRIGHTNESS_VALUES = {"100%": 255, "60%": 153, "30%": 77}


def relay_sub_id(node_id: int) -> str:
    return f"{node_id}_relay"


def led_sub_id(node_id: int, led: int) -> str:
    return f"{node_id}_led{led}"


def button_sensor_sub_id(node_id: int) -> str:
    return f"{node_id}_button"


def configure_sub_id(node_id: int) -> str:
    return f"{node_id}_configure"


def led_attributes(led_settings: list[str | None]) -> dict[str, Any]:
    """Light attributes of a cached ZEN32 LED (indicator mode, color, brightness)."""
    mode, color, brightness = led_settings
    if mode is None:
        state = "UNKNOWN"
    else:
        state = "OFF" if mode == "off" else "ON"
    return {
        LightAttr.STATE: state,
        LightAttr.BRIGHTNESS: LED_BRIGHTNESS_VALUES.get(brightness, 0),
        LightAttr.HUE: COLOR_HUES.get(color, 0),
        LightAttr.SATURATION: 255 if color in COLOR_HUES else 0,
    }


class SmartHub(ExternalClientDevice):
    """Representing a Z-Wave Controller with Zooz scene controllers."""

    def __init__(
        self,
        config: ZWaveDevice,
        loop: AbstractEventLoop | None = None,
        config_manager=None,
        watchdog_interval: int = 30,
        reconnect_delay: int = 5,
        max_reconnect_attempts: int = 3,
    ) -> None:
        """Create instance."""
        super().__init__(
            device_config=config,
            loop=loop,
            config_manager=config_manager,
            watchdog_interval=watchdog_interval,
            reconnect_delay=reconnect_delay,
            max_reconnect_attempts=max_reconnect_attempts,
        )
        self._zen32s: list[Zen32Info] = []
        self._controllers: dict[int, Zen32SceneController] = {}
        self._activity = ActivityCheck(
            settings=self._activity_settings(), notifier=self._on_notification
        )
        self._inactive_devices: list[MonitoredDevice] = []
        self._report_task: asyncio.Task | None = None
        self._pending: set[asyncio.Task] = set()

    # ─────────────────────────────────────────────────────────────────
    # Properties (required by BaseDeviceInterface)
    # ─────────────────────────────────────────────────────────────────

    @property
    def identifier(self) -> str:
        """Return the device identifier."""
        if not self._device_config.identifier:
            raise ValueError("Instance not initialized, no identifier available")
        return self._device_config.identifier

    @property
    def log_id(self) -> str:
        """Return a log identifier."""
        return self._device_config.identifier

    @property
    def name(self) -> str:
        """Return the device name."""
        return self._device_config.name

    @property
    def address(self) -> str | None:
        """Return the optional device address."""
        return self._device_config.address

    # ─────────────────────────────────────────────────────────────────
    # Additional Properties
    # ─────────────────────────────────────────────────────────────────

    @property
    def device_config(self) -> ZWaveDevice:
        """Return the device configuration."""
        return self._device_config

    @property
    def state(self) -> str:
        """Return the device state."""
        return "ON" if self.is_connected else "OFF"

    @property
    def attributes(self) -> dict[str, Any]:
        """Return the device attributes."""
        return {SensorAttr.STATE: self.state}

    @property
    def zen32s(self) -> list[Zen32Info]:
        """Return the discovered ZEN32 scene controllers."""
        return self._zen32s

    @property
    def inactive_devices(self) -> list[MonitoredDevice]:
        """Inactive devices found by the last activity check."""
        return self._inactive_devices

    def controller(self, node_id: int) -> Zen32SceneController | None:
        """Return the scene controller adapter of a ZEN32 node."""
        return self._controllers.get(node_id)

    def get_zen32(self, node_id: int) -> Zen32Info | None:
        return next((info for info in self._zen32s if info.node_id == node_id), None)

    # ─────────────────────────────────────────────────────────────────
    # ExternalClientDevice Implementation
    # ─────────────────────────────────────────────────────────────────

    async def create_client(self) -> ZWaveClient:
        """Create the Z-Wave client instance."""
        return ZWaveClient(self._device_config.address)

    async def connect_client(self) -> None:
        """Connect the Z-Wave client and set up event handlers."""
        success = await self._client.connect()
        if not success:
            raise ConnectionError("Failed to connect to Z-Wave controller")

        self._setup_event_handlers()
        _LOG.info("🏠 BRIDGE [%s]: Connected to Z-Wave controller", self.log_id)

        await self.get_zen32s()
        for info in self._zen32s:
            await self.refresh_controller(info.node_id)
        self._start_report_schedule()

    async def disconnect_client(self) -> None:
        """Disconnect the Z-Wave client and remove event handlers."""
        self._stop_report_schedule()
        self._remove_event_handlers()
        await self._client.disconnect()

    def check_client_connected(self) -> bool:
        """Check if the Z-Wave client is connected."""
        return self._client is not None and self._client.connected

    # ─────────────────────────────────────────────────────────────────
    # Event Handlers
    # ─────────────────────────────────────────────────────────────────

    def _setup_event_handlers(self) -> None:
        """Set up event handlers for Z-Wave events."""
        self._client.add_event_handler("value_updated", self._on_value_updated)
        self._client.add_event_handler(
            "value_notification", self._on_value_notification
        )
        self._client.add_event_handler(
            "node_status_changed", self._on_node_status_changed
        )
        self._client.add_event_handler("command_report", self._on_command_report)

    def _remove_event_handlers(self) -> None:
        """Remove event handlers for Z-Wave events."""
        if self._client:
            self._client.remove_event_handler("value_updated", self._on_value_updated)
            self._client.remove_event_handler(
                "value_notification", self._on_value_notification
            )
            self._client.remove_event_handler(
                "node_status_changed", self._on_node_status_changed
            )
            self._client.remove_event_handler(
                "command_report", self._on_command_report
            )

    def _on_value_updated(self, event_info: dict) -> None:
        """Handle Z-Wave value updated events of ZEN32 nodes."""
        try:
            node_id = event_info.get("node_id")
            if node_id not in self._controllers:
                return

            cmd = value_update_to_command(event_info)
            if cmd is None:
                _LOG.debug(
                    "[%s] Node %s value update not handled: %s",
                    self.log_id,
                    node_id,
                    event_info,
                )
                return

            _LOG.debug("⚡ BRIDGE [%s]: Node %d <- %s", self.log_id, node_id, cmd)
            self._handle_command(node_id, cmd)
        except Exception as ex:  # pylint: disable=broad-exception-caught
            _LOG.error(
                "❌ [%s] Error handling value update: %s",
                self.log_id,
                ex,
                exc_info=True,
            )

    def _on_value_notification(self, event_info: dict) -> None:
        """Handle Z-Wave value notifications (Central Scene) of ZEN32 nodes."""
        try:
            node_id = event_info.get("node_id")
            if node_id not in self._controllers:
                return

            cmd = value_notification_to_command(event_info)
            if cmd is None:
                return

            _LOG.debug("⚡ BRIDGE [%s]: Node %d <- %s", self.log_id, node_id, cmd)
            self._handle_command(node_id, cmd)
        except Exception as ex:  # pylint: disable=broad-exception-caught
            _LOG.error(
                "❌ [%s] Error handling value notification: %s",
                self.log_id,
                ex,
                exc_info=True,
            )

    def _on_command_report(self, event_info: dict) -> None:
        """Handle report frames built from command class API results."""
        node_id = event_info.get("node_id")
        if node_id not in self._controllers:
            return
        try:
            self._handle_command(node_id, event_info["command"])
        except Exception as ex:  # pylint: disable=broad-exception-caught
            _LOG.error(
                "❌ [%s] Error handling command report: %s",
                self.log_id,
                ex,
                exc_info=True,
            )

    def _on_node_status_changed(self, event_info: dict) -> None:
        """Handle Z-Wave node status changed events."""
        _LOG.debug("[%s] Node status changed: %s", self.log_id, event_info)

    def _handle_command(self, node_id: int, cmd: ZWaveCommand) -> None:
        controller = self._controllers[node_id]
        responses = controller.zwave_event(cmd)
        if isinstance(cmd, ConfigurationReport):
            self._emit_led_updates(node_id)
        if responses:
            self._schedule(self.send_commands(node_id, responses))

    def _schedule(self, coro) -> None:
        task = asyncio.ensure_future(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _on_controller_event(self, node_id: int, event: DeviceEvent) -> None:
        """Forward scene controller events to the entities."""
        info = self.get_zen32(node_id)
        if info is None:
            return

        if event.name == "switch":
            info.switch = str(event.value)
            self.events.emit(
                DeviceEvents.UPDATE,
                create_entity_id(
                    EntityTypes.LIGHT, self.identifier, relay_sub_id(node_id)
                ),
                {LightAttr.STATE: "ON" if event.value == "on" else "OFF"},
            )
        elif event.name in BUTTON_ACTIONS:
            info.last_button_event = f"Button {event.value} {event.name}"
            self.events.emit(
                DeviceEvents.UPDATE,
                create_entity_id(
                    EntityTypes.SENSOR, self.identifier, button_sensor_sub_id(node_id)
                ),
                {
                    SensorAttr.STATE: "ON",
                    SensorAttr.VALUE: info.last_button_event,
                },
            )
        else:
            _LOG.debug("[%s] %s: %s", self.log_id, event.name, event.value)

    def _emit_led_updates(self, node_id: int) -> None:
        controller = self._controllers[node_id]
        for led, settings in controller.state.settings_led.items():
            self.events.emit(
                DeviceEvents.UPDATE,
                create_entity_id(
                    EntityTypes.LIGHT, self.identifier, led_sub_id(node_id, led)
                ),
                led_attributes(settings),
            )

    # ─────────────────────────────────────────────────────────────────
    # Controller Info
    # ─────────────────────────────────────────────────────────────────

    def get_controller_info(self) -> dict[str, Any]:
        """Get information about the Z-Wave controller."""
        if not self._client or not self._client.connected:
            return {}

        return self._client.get_controller_info()

    # ─────────────────────────────────────────────────────────────────
    # ZEN32 Scene Controllers
    # ─────────────────────────────────────────────────────────────────

    def _preferences(self) -> Zen32Preferences:
        parameters = {}
        for number, value in (self._device_config.zen32_parameters or {}).items():
            if int(number) in ZWAVE_PARAMETERS:
                parameters[int(number)] = int(value)
        return Zen32Preferences(
            parameters=parameters,
            relay_led_behavior=self._device_config.relay_led_behavior,
        )

    async def get_zen32s(self) -> list[Zen32Info]:
        """Return the ZEN32 scene controllers on the Z-Wave network."""
        if not self._client or not self._client.connected:
            await self.connect()

        devices = self._client.get_devices()
        zen32_list = []
        for node_id, device_info in devices.items():
            if not is_zen32(device_info):
                continue

            info = self.get_zen32(node_id) or Zen32Info(
                device_id=str(node_id),
                node_id=node_id,
                name=device_info.get("name", f"Node {node_id}"),
                model="ZEN32",
            )
            zen32_list.append(info)

            if node_id not in self._controllers:
                controller = Zen32SceneController(info.name, self._preferences())
                controller.add_listener(partial(self._on_controller_event, node_id))
                self._controllers[node_id] = controller

        self._zen32s = zen32_list
        return zen32_list

    async def send_commands(self, node_id: int, commands: list) -> bool:
        """Send adapter commands to a node."""
        try:
            sent = await self._client.send_commands(node_id, commands)
            _LOG.debug(
                "[%s] Sent %d command(s) to node %s", self.log_id, sent, node_id
            )
            return True
        except Exception as err:  # pylint: disable=broad-exception-caught
            _LOG.error(
                "❌ [%s] Error sending commands to node %s: %s",
                self.log_id,
                node_id,
                err,
            )
            return False

    def _require_controller(self, node_id: int) -> Zen32SceneController:
        controller = self._controllers.get(int(node_id))
        if controller is None:
            raise ValueError(f"Node {node_id} is not a ZEN32 scene controller")
        return controller

    async def control_relay(self, node_id: int, on: bool | None = None) -> bool:
        """Switch the relay on/off; None toggles the last known state."""
        controller = self._require_controller(node_id)
        if on is None:
            on = controller.state.switch != "on"
        command = controller.on() if on else controller.off()
        return await self.send_commands(int(node_id), [command])

    async def set_led(
        self, node_id: int, led: int, color: str | None = None, brightness=None
    ) -> bool:
        """Set a ZEN32 LED color and/or brightness (0 turns it off)."""
        controller = self._require_controller(node_id)
        commands = controller.set_led(led, color, brightness)
        if not commands:
            return False
        return await self.send_commands(int(node_id), commands)

    async def configure_controller(self, node_id: int) -> bool:
        """Apply default parameters and preferences, then read back the device state."""
        controller = self._require_controller(node_id)
        controller.preferences = self._preferences()
        return await self.send_commands(int(node_id), controller.configure())

    async def refresh_controller(self, node_id: int) -> bool:
        controller = self._require_controller(node_id)
        return await self.send_commands(int(node_id), controller.refresh())

    # ─────────────────────────────────────────────────────────────────
    # Device Activity Check
    # ─────────────────────────────────────────────────────────────────

    def _time_zone(self) -> tzinfo | None:
        name = self._device_config.time_zone
        if not name:
            return None
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            _LOG.warning("[%s] Unknown time zone %s", self.log_id, name)
            return None

    def _activity_settings(self) -> ActivitySettings:
        config = self._device_config
        return ActivitySettings(
            label=config.label,
            hub_name=config.name,
            include_hub_name=config.include_hub_name,
            include_time=config.include_time,
            time_format=config.time_format,
            use_notification_time_format_for_report=config.use_notification_time_format_for_report,
            modes=list(config.modes or []),
            time_zone=self._time_zone(),
            notification_time=config.notification_time,
        )

    def _monitored_devices(self) -> dict[int, MonitoredDevice]:
        devices = self._client.get_devices() if self._client else {}
        return {
            node_id: MonitoredDevice(
                identifier=str(node_id),
                display_name=info.get("name", f"Node {node_id}"),
                last_activity=info.get("last_seen"),
            )
            for node_id, info in devices.items()
            if not info.get("is_controller_node")
        }

    def refresh_activity(self, now: datetime | None = None) -> list[MonitoredDevice]:
        """Re-evaluate the device groups against the current node activity."""
        now = now or datetime.now(timezone.utc)
        monitored = self._monitored_devices()
        self._activity.settings = self._activity_settings()
        self._activity.groups = build_groups(self._device_config.groups, monitored)
        self._inactive_devices = self._activity.get_inactive_devices(now)
        for name, last_activity in self._activity.report(now):
            _LOG.debug("[%s] Inactive: %s (%s)", self.log_id, name, last_activity)
        _LOG.debug(
            "[%s] %d of %d devices inactive",
            self.log_id,
            len(self._inactive_devices),
            len(monitored),
        )
        self.events.emit(
            DeviceEvents.UPDATE,
            create_entity_id(EntityTypes.SENSOR, self.identifier, INACTIVE_DEVICES_SENSOR),
            self.inactive_sensor_attributes(),
        )
        return self._inactive_devices

    def inactive_sensor_attributes(self) -> dict[str, Any]:
        return {
            SensorAttr.STATE: "ON",
            SensorAttr.VALUE: len(self._inactive_devices),
        }

    def send_inactivity_report(
        self, mode: str | None = None, include_time: bool | None = None
    ) -> str | None:
        """Notify about inactive devices now; returns the text, or None if skipped."""
        now = datetime.now(timezone.utc)
        self.refresh_activity(now)
        return self._activity.send_inactive_notification(
            now, mode=mode, include_time=include_time
        )

    def _on_notification(self, text: str) -> None:
        _LOG.warning("🔔 [%s] %s", self.log_id, text)

    def _start_report_schedule(self) -> None:
        self._stop_report_schedule()
        if self._device_config.notification_time:
            self._report_task = asyncio.ensure_future(self._report_schedule())

    def _stop_report_schedule(self) -> None:
        if self._report_task is not None:
            self._report_task.cancel()
            self._report_task = None

    async def _report_schedule(self) -> None:
        notification_time = self._device_config.notification_time
        while True:
            now = datetime.now(self._time_zone())
            delay = seconds_until(notification_time, now)
            _LOG.debug(
                "[%s] Next inactivity notification in %.0f seconds",
                self.log_id,
                delay,
            )
            await asyncio.sleep(delay)
            try:
                self.send_inactivity_report()
            except Exception as err:  # pylint: disable=broad-exception-caught
                _LOG.error(
                    "❌ [%s] Scheduled inactivity notification failed: %s",
                    self.log_id,
                    err,
                )


# ─────────────────────────────────────────────────────────────────
# Z-Wave JS value events to command class frames
# ─────────────────────────────────────────────────────────────────


def is_zen32(device_info: dict) -> bool:
    """Match the ZEN32 fingerprint."""
    return (
        device_info.get("manufacturer_id") == ZEN32_MANUFACTURER_ID
        and device_info.get("product_type") == ZEN32_PRODUCT_TYPE
        and device_info.get("product_id") == ZEN32_PRODUCT_ID
    )


def value_update_to_command(event_info: dict) -> ZWaveCommand | None:
    """Translate a Z-Wave JS "value updated" event into a report frame."""
    command_class = event_info.get("command_class_id")
    value = event_info.get("new_value")
    if value is None:
        return None

    match command_class:
        case CommandClass.CONFIGURATION:
            number = event_info.get("property")
            if not isinstance(number, int):
                return None
            parameter = ZWAVE_PARAMETERS.get(number)
            return ConfigurationReport(
                parameter_number=number,
                size=parameter.size if parameter else 1,
                scaled_configuration_value=int(value),
            )
        case CommandClass.BASIC if event_info.get("property") == "currentValue":
            return BasicReport(value=0xFF if value else 0x00)
        case CommandClass.SWITCH_BINARY if event_info.get("property") == "currentValue":
            return SwitchBinaryReport(value=0xFF if value else 0x00)
    return None


def value_notification_to_command(event_info: dict) -> ZWaveCommand | None:
    """Translate a Z-Wave JS Central Scene value notification into a frame."""
    if event_info.get("command_class_id") != CommandClass.CENTRAL_SCENE:
        return None
    key_attributes = event_info.get("new_value")
    try:
        scene_number = int(event_info.get("property_key"))
    except (TypeError, ValueError):
        return None
    if key_attributes is None:
        return None
    return CentralSceneNotification(
        key_attributes=int(key_attributes), scene_number=scene_number
    )
