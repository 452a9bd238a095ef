from __future__ import annotations

import asyncio
from types import SimpleNamespace

from zwave_js_server.const import CommandClass

import zwave_client
from zen32 import Zen32Preferences, Zen32SceneController
from zwave_client import ZWaveClient
from zwave_commands import (
    ConfigurationGet,
    ConfigurationSet,
    Delay,
    DeviceSpecificGet,
    DeviceSpecificReport,
    HubCommand,
    UnknownCommand,
    VersionGet,
    secure_encap,
)


class FakeNode:
    def __init__(self, name: str = "Hall ZEN32") -> None:
        self.name = name
        self.status = 4
        self.manufacturer_id = 0x027A
        self.product_type = 0x7000
        self.product_id = 0xA008
        self.firmware_version = "1.10"
        self.device_class = None
        self.is_controller_node = False
        self.last_seen = None
        self.calls: list[tuple] = []

    async def async_invoke_cc_api(self, command_class, method_name, *args):
        self.calls.append((command_class, method_name, args))


def _client(nodes: dict) -> ZWaveClient:
    client = ZWaveClient("ws://localhost:3000")
    client.client = SimpleNamespace(
        driver=SimpleNamespace(controller=SimpleNamespace(nodes=nodes))
    )
    client.connected = True
    return client


def test_send_commands_invokes_cc_api_and_sleeps(monkeypatch) -> None:
    node = FakeNode()
    client = _client({7: node})
    sleeps: list[float] = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    monkeypatch.setattr(zwave_client.asyncio, "sleep", fake_sleep)

    commands = [
        secure_encap(ConfigurationSet(parameter_number=9, size=1, scaled_configuration_value=3)),
        Delay(300),
        secure_encap(ConfigurationGet(parameter_number=9)),
    ]
    sent = asyncio.run(client.send_commands(7, commands))

    assert sent == 2
    assert sleeps == [0.3]
    assert node.calls == [
        (CommandClass.CONFIGURATION, "set", ({"parameter": 9, "value": 3, "valueSize": 1},)),
        (CommandClass.CONFIGURATION, "get", (9,)),
    ]


def test_send_command_to_unknown_node() -> None:
    client = _client({})
    command = secure_encap(ConfigurationGet(parameter_number=1))
    assert asyncio.run(client.send_command(3, command)) is False


def test_send_command_without_cc_api_is_dropped() -> None:
    node = FakeNode()
    client = _client({7: node})
    command = HubCommand(UnknownCommand(raw_command_class=0x99, raw_command=1))
    assert asyncio.run(client.send_command(7, command)) is False
    assert node.calls == []


def test_get_devices_reports_fingerprint_and_last_seen() -> None:
    node = FakeNode()
    client = _client({7: node})
    device = client.get_devices()[7]
    assert device["name"] == "Hall ZEN32"
    assert device["product_id"] == 0xA008
    assert device["last_seen"] is None
    assert device["is_alive"] is True


def test_value_notification_routing() -> None:
    client = _client({7: FakeNode()})
    received: list[dict] = []
    client.add_event_handler("value_notification", received.append)

    client._handle_event(
        SimpleNamespace(
            type="value notification",
            data={
                "nodeId": 7,
                "args": {
                    "commandClass": 91,
                    "commandClassName": "Central Scene",
                    "property": "scene",
                    "propertyKey": "001",
                    "value": 3,
                },
            },
        )
    )

    assert len(received) == 1
    assert received[0]["command_class_id"] == 91
    assert received[0]["property_key"] == "001"
    assert received[0]["new_value"] == 3
    assert received[0]["node_name"] == "Hall ZEN32"

    client.remove_event_handler("value_notification", received.append)
    client._handle_event(SimpleNamespace(type="value notification", data={"nodeId": 7}))
    assert len(received) == 1


class ReplyingNode(FakeNode):
    """Answers the Version and Manufacturer Specific gets like Z-Wave JS does."""

    async def async_invoke_cc_api(self, command_class, method_name, *args):
        await super().async_invoke_cc_api(command_class, method_name, *args)
        if command_class == CommandClass.VERSION and method_name == "get":
            return {
                "libraryType": 3,
                "protocolVersion": "7.13",
                "firmwareVersions": ["1.10", "2.1"],
                "hardwareVersion": 2,
            }
        if method_name == "deviceSpecificGet":
            return "ABCD1234"
        return None


def test_get_results_reach_the_scene_controller(monkeypatch) -> None:
    async def no_sleep(seconds):
        return None

    monkeypatch.setattr(zwave_client.asyncio, "sleep", no_sleep)
    client = _client({7: ReplyingNode()})
    controller = Zen32SceneController("Hall ZEN32", Zen32Preferences())
    client.add_event_handler(
        "command_report", lambda info: controller.zwave_event(info["command"])
    )

    asyncio.run(client.send_commands(7, controller.configure()))

    assert controller.state.serial_number == "ABCD1234"
    assert controller.state.firmware_version == "1.10"
    assert controller.state.protocol_version == "7.13"
    assert controller.state.hardware_version == "2"


def test_binary_serial_number_result() -> None:
    report = DeviceSpecificGet().api_report("0x0a1b")
    assert report == DeviceSpecificReport(
        device_id_type=1, device_id_data_format=1, device_id_data=b"\x0a\x1b"
    )
    controller = Zen32SceneController("Hall ZEN32", Zen32Preferences())
    controller.zwave_event(report)
    assert controller.state.serial_number == "0A1B"
    assert DeviceSpecificGet().api_report(None) is None
    assert VersionGet().api_report(None) is None
