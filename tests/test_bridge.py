from __future__ import annotations

from datetime import datetime, timezone

from bridge import (
    is_zen32,
    led_attributes,
    value_notification_to_command,
    value_update_to_command,
)
from activity import MonitoredDevice, build_groups
from ucapi.light import Attributes as LightAttr
from zwave_commands import (
    BasicReport,
    CentralSceneNotification,
    ConfigurationReport,
    SwitchBinaryReport,
)


def test_is_zen32() -> None:
    assert is_zen32({"manufacturer_id": 0x027A, "product_type": 0x7000, "product_id": 0xA008})
    assert not is_zen32({"manufacturer_id": 0x027A, "product_type": 0x7000, "product_id": 0xA001})
    assert not is_zen32({})


def test_configuration_value_update() -> None:
    cmd = value_update_to_command({"command_class_id": 112, "property": 16, "new_value": 30})
    assert cmd == ConfigurationReport(parameter_number=16, size=4, scaled_configuration_value=30)

    cmd = value_update_to_command({"command_class_id": 112, "property": 7, "new_value": 3})
    assert cmd == ConfigurationReport(parameter_number=7, size=1, scaled_configuration_value=3)


def test_switch_value_updates() -> None:
    assert value_update_to_command(
        {"command_class_id": 37, "property": "currentValue", "new_value": True}
    ) == SwitchBinaryReport(value=0xFF)
    assert value_update_to_command(
        {"command_class_id": 32, "property": "currentValue", "new_value": 0}
    ) == BasicReport(value=0)
    assert value_update_to_command(
        {"command_class_id": 37, "property": "targetValue", "new_value": True}
    ) is None
    assert value_update_to_command({"command_class_id": 37, "property": "currentValue"}) is None


def test_central_scene_value_notification() -> None:
    cmd = value_notification_to_command(
        {"command_class_id": 91, "property_key": "003", "new_value": 4}
    )
    assert cmd == CentralSceneNotification(key_attributes=4, scene_number=3)
    assert value_notification_to_command({"command_class_id": 91, "property_key": "x", "new_value": 0}) is None
    assert value_notification_to_command({"command_class_id": 113, "property_key": "1", "new_value": 0}) is None


def test_build_groups() -> None:
    seen = datetime(2024, 3, 5, tzinfo=timezone.utc)
    monitored = {
        2: MonitoredDevice("2", "Porch", seen),
        3: MonitoredDevice("3", "Attic", None),
    }

    groups = build_groups([], monitored)
    assert len(groups) == 1
    assert groups[0].number == 1
    assert groups[0].inactivity_minutes == 0
    assert len(groups[0].devices) == 2

    groups = build_groups(
        [
            {"number": 1, "node_ids": [3, 9], "hours": 2},
            {"node_ids": None, "days": 1},
        ],
        monitored,
    )
    assert [g.number for g in groups] == [1, 2]
    assert [d.display_name for d in groups[0].devices] == ["Attic"]
    assert groups[0].inactivity_minutes == 120
    assert len(groups[1].devices) == 2


def test_led_attributes() -> None:
    attributes = led_attributes(["on", "red", "60%"])
    assert attributes[LightAttr.STATE] == "ON"
    assert attributes[LightAttr.BRIGHTNESS] == 153
    assert attributes[LightAttr.HUE] == 0
    assert attributes[LightAttr.SATURATION] == 255

    attributes = led_attributes(["off", "white", "100%"])
    assert attributes[LightAttr.STATE] == "OFF"
    assert attributes[LightAttr.SATURATION] == 0

    assert led_attributes([None, None, None])[LightAttr.STATE] == "UNKNOWN"
