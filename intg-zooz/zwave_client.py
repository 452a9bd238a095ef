"""
Z-Wave JS Server Client

A streamlined client for interacting with Z-Wave JS Server that provides:
- Device discovery and information
- Real-time event monitoring (value updates, value notifications, node status)
- Sending queued scene controller commands through the command class API
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

import aiohttp
from zwave_js_server.client import Client
from zwave_js_server.const import CommandClass

from zwave_commands import Delay, HubCommand

_LOG = logging.getLogger(__name__)

DRIVER_READY_TIMEOUT = 15.0
NODE_STATUS_NAMES = {0: "Unknown", 1: "Asleep", 2: "Awake", 3: "Dead", 4: "Alive"}
NODE_STATUS_EVENTS = ("node alive", "node dead", "node asleep", "node awake")


class ZWaveClient:
    """A clean, reusable Z-Wave JS Server client."""

    def __init__(self, server_url: str):
        """
        Create a client for a Z-Wave JS Server.

        :param server_url: WebSocket URL, e.g. ws://localhost:3000
        """
        self.server_url = server_url
        self.client: Optional[Client] = None
        self.session: Optional[aiohttp.ClientSession] = None
        self.connected = False
        self.event_handlers: Dict[str, List[Callable]] = {}
        self._listen_task: Optional[asyncio.Task] = None

    async def connect(self) -> bool:
        """Open the WebSocket and wait until the Z-Wave JS driver is ready; False on failure."""
        self.session = aiohttp.ClientSession()
        self.client = Client(self.server_url, self.session)
        driver_ready = asyncio.Event()
        try:
            await self.client.connect()
            await self.client.initialize()
            self._listen_task = asyncio.create_task(self.client.listen(driver_ready))
            await asyncio.wait_for(driver_ready.wait(), timeout=DRIVER_READY_TIMEOUT)
        except (ConnectionError, asyncio.TimeoutError, OSError) as e:
            _LOG.error("Connection to %s failed: %s", self.server_url, e)
            await self.disconnect()
            return False

        self._setup_event_monitoring()
        self.connected = True
        return True

    async def disconnect(self):
        """Close the WebSocket and the HTTP session."""
        self.connected = False
        if self.client and self.client.connected:
            await self.client.disconnect()
        if self._listen_task is not None:
            self._listen_task.cancel()
            self._listen_task = None
        if self.session:
            await self.session.close()
            self.session = None

    def _nodes(self) -> Dict[int, Any]:
        if not self.client or not self.client.driver:
            return {}
        return self.client.driver.controller.nodes

    def get_controller_info(self) -> Dict[str, Any]:
        """Get information about the Z-Wave controller.

        Returns:
            Dictionary with home id, own node id and controller product ids
        """
        if not self.client or not self.client.driver:
            return {}

        controller = self.client.driver.controller
        info = {
            "home_id": getattr(controller, "home_id", None),
            "own_node_id": getattr(controller, "own_node_id", None),
            "manufacturer_id": getattr(controller, "manufacturer_id", None),
            "product_type": getattr(controller, "product_type", None),
            "product_id": getattr(controller, "product_id", None),
            "sdk_version": getattr(controller, "sdk_version", None),
            "type": getattr(controller, "type", None),
        }
        info["type_name"] = str(info["type"]) if info["type"] else "Unknown"
        return info

    def get_devices(self) -> Dict[int, Dict[str, Any]]:
        """Snapshot of every node, keyed by node id."""
        devices = {}
        for node_id, node in self._nodes().items():
            devices[node_id] = {
                "id": node_id,
                "name": node.name or f"Node {node_id}",
                "status": NODE_STATUS_NAMES.get(node.status, f"Status {node.status}"),
                "manufacturer_id": getattr(node, "manufacturer_id", None),
                "product_type": getattr(node, "product_type", None),
                "product_id": getattr(node, "product_id", None),
                "firmware_version": getattr(node, "firmware_version", None),
                "device_type": self._get_device_type(node),
                "is_controller_node": getattr(node, "is_controller_node", False),
                "is_alive": node.status == 4,
                "last_seen": getattr(node, "last_seen", None),
            }

        return devices

    # ─────────────────────────────────────────────────────────────────
    # Commands
    # ─────────────────────────────────────────────────────────────────

    async def send_command(self, node_id: int, command: HubCommand) -> bool:
        """Send one queued command to a node through the command class API.

        Security encapsulation is applied by Z-Wave JS, based on the node's
        granted security classes. Report frames built from the results of Get
        calls go to the "command_report" handlers.

        Args:
            node_id: The Z-Wave node ID
            command: Command to send

        Returns:
            True if the command was handed to Z-Wave JS, False otherwise
        """
        node = self._nodes().get(node_id)
        if not node:
            _LOG.warning("Node %s not found, dropping %s", node_id, command.format())
            return False

        api_call = command.command.cc_api()
        if api_call is None:
            _LOG.warning(
                "No command class API for %s, dropping %s",
                type(command.command).__name__,
                command.format(),
            )
            return False

        method, args = api_call
        _LOG.debug("Node %s <- %s (%s%s)", node_id, command.format(), method, args)
        result = await node.async_invoke_cc_api(
            CommandClass(int(command.command.command_class)), method, *args
        )
        report = command.command.api_report(result)
        if report is not None:
            self._dispatch("command_report", {"node_id": node_id, "command": report})
        return True

    async def send_commands(self, node_id: int, commands: Iterable) -> int:
        """Send a command list, honouring the delays queued between commands.

        Args:
            node_id: The Z-Wave node ID
            commands: HubCommand and Delay items, in order

        Returns:
            Number of commands sent
        """
        sent = 0
        for command in commands:
            if isinstance(command, Delay):
                await asyncio.sleep(command.milliseconds / 1000)
            elif await self.send_command(node_id, command):
                sent += 1
        return sent

    # ─────────────────────────────────────────────────────────────────
    # Events
    # ─────────────────────────────────────────────────────────────────

    def add_event_handler(self, event_type: str, handler: Callable):
        """Add an event handler for Z-Wave events.

        Args:
            event_type: Type of event ("value_updated", "value_notification",
                "node_status_changed", "command_report", "all")
            handler: Function to call when event occurs
        """
        self.event_handlers.setdefault(event_type, []).append(handler)

    def remove_event_handler(self, event_type: str, handler: Callable):
        """Remove an event handler.

        Args:
            event_type: Type of event
            handler: Handler function to remove
        """
        handlers = self.event_handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def _setup_event_monitoring(self):
        """Intercept all driver events before the library processes them."""
        if not self.client or not self.client.driver:
            return

        original_receive_event = self.client.driver.receive_event

        def enhanced_receive_event(event):
            self._handle_event(event)
            return original_receive_event(event)

        self.client.driver.receive_event = enhanced_receive_event

    def _handle_event(self, event):
        """Handle incoming Z-Wave events."""
        event_type = getattr(event, "type", "")
        event_data = getattr(event, "data", {})

        if event_type == "value updated":
            self._dispatch("value_updated", self._value_info(event_data, "newValue"))
        elif event_type == "value notification":
            self._dispatch("value_notification", self._value_info(event_data, "value"))
        elif event_type in NODE_STATUS_EVENTS:
            node_id = event_data.get("nodeId") or getattr(event, "nodeId", None)
            if node_id:
                self._dispatch(
                    "node_status_changed",
                    {
                        "node_id": node_id,
                        "node_name": self._get_node_name(node_id),
                        "status": event_type.replace("node ", ""),
                    },
                )

        for handler in self.event_handlers.get("all", []):
            try:
                handler(event_type, event_data)
            except (TypeError, AttributeError) as e:
                _LOG.error("Error in event handler: %s", e)

    def _value_info(self, event_data: dict, value_key: str) -> Optional[Dict[str, Any]]:
        args = event_data.get("args", {})
        node_id = event_data.get("nodeId")
        if not node_id:
            return None
        return {
            "node_id": node_id,
            "node_name": self._get_node_name(node_id),
            "command_class_id": args.get("commandClass"),
            "command_class": args.get("commandClassName", ""),
            "endpoint": args.get("endpoint", 0),
            "property": args.get("property"),
            "property_name": args.get("propertyName", ""),
            "property_key": args.get("propertyKey"),
            "property_key_name": args.get("propertyKeyName", ""),
            "new_value": args.get(value_key),
            "prev_value": args.get("prevValue"),
        }

    def _dispatch(self, event_type: str, event_info: Optional[Dict[str, Any]]):
        if event_info is None:
            return
        for handler in self.event_handlers.get(event_type, []):
            try:
                handler(event_info)
            except (TypeError, AttributeError, ValueError) as e:
                _LOG.error("Error in %s handler: %s", event_type, e)

    def _get_node_name(self, node_id: int) -> str:
        node = self._nodes().get(node_id)
        return node.name if node and node.name else f"Node {node_id}"

    @staticmethod
    def _get_device_type(node) -> str:
        """Generic and specific device class labels."""
        device_class = getattr(node, "device_class", None)
        if device_class and hasattr(device_class, "generic") and hasattr(
            device_class, "specific"
        ):
            return f"{device_class.generic.label} - {device_class.specific.label}"
        return "Unknown"
