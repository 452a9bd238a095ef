from __future__ import annotations

import pytest

from const import NUMBER_OF_BUTTONS, RELAY_LED_SET_LED_CONTROL
from zen32 import (
    DeviceEvent,
    Zen32Preferences,
    Zen32SceneController,
    brightness_to_level,
    button_event,
)
from zwave_commands import (
    ConfigurationReport,
    Delay,
    DeviceSpecificGet,
    HubCommand,
    IndicatorSupportedGet,
    SupervisionReport,
)


def _formats(commands: list) -> list[str]:
    return [command.format() for command in commands]


def _controller(**preferences) -> tuple[Zen32SceneController, list[DeviceEvent]]:
    events: list[DeviceEvent] = []
    controller = Zen32SceneController("Hall ZEN32", Zen32Preferences(**preferences))
    controller.add_listener(events.append)
    return controller, events


@pytest.mark.parametrize(
    ("brightness", "level"),
    [
        (None, None),
        (0, -1),
        (1, 2),
        (44, 2),
        (45, 1),
        (60, 1),
        (74, 1),
        (75, 0),
        (100, 0),
        (101, None),
        ("abc", None),
    ],
)
def test_brightness_to_level(brightness, level) -> None:
    assert brightness_to_level(brightness) == level


@pytest.mark.parametrize(
    ("scene", "key", "expected"),
    [
        (1, 0, (1, "pushed")),
        (4, 1, (4, "released")),
        (3, 2, (3, "held")),
        (1, 3, (6, "pushed")),
        (2, 4, (12, "pushed")),
        (1, 6, (21, "pushed")),
        (5, 6, (25, "pushed")),
    ],
)
def test_button_event_multi_tap_numbering(scene, key, expected) -> None:
    assert button_event(scene, key) == expected


def test_set_led_color_brightness_and_mode() -> None:
    controller, _ = _controller()
    commands = controller.set_led(3, "red", 60)

    assert all(isinstance(c, (HubCommand, Delay)) for c in commands)
    assert all(c.secure for c in commands if isinstance(c, HubCommand))
    assert _formats(commands) == [
        "7004090103",
        "delay 300",
        "700509",
        "delay 300",
        "70040E0101",
        "delay 300",
        "70050E",
        "delay 300",
        "7004040103",
        "delay 300",
        "700504",
    ]


def test_set_led_color_is_case_insensitive() -> None:
    controller, _ = _controller()
    assert controller.set_led(1, "Blue")[0].format() == "7004070101"


def test_set_led_invalid_number_is_a_no_op() -> None:
    controller, _ = _controller()
    assert controller.set_led(9, "red", 100) == []
    assert controller.set_led("x", "red", 100) == []


def test_set_led_off() -> None:
    controller, _ = _controller()
    assert _formats(controller.set_led(2, None, 0)) == ["7004030102", "delay 300", "700503"]


def test_relay_led_needs_set_led_control() -> None:
    controller, _ = _controller()
    assert controller.set_led(5, None, 0) == []
    assert "7004010103" not in _formats(controller.set_led(5, "red", 100))

    controller, _ = _controller(relay_led_behavior=RELAY_LED_SET_LED_CONTROL)
    assert _formats(controller.set_led(5, None, 0)) == ["7004010102", "delay 300", "700501"]
    assert "7004010103" in _formats(controller.set_led(5, "red", 100))


def test_central_scene_events() -> None:
    controller, events = _controller()

    assert controller.parse("5B03010202") == []
    assert events[-1] == DeviceEvent(
        name="held",
        value=2,
        description_text="Hall ZEN32 button 2 was held",
        is_state_change=True,
        type="physical",
    )

    events.clear()
    controller.parse("5B03020301")
    assert [(e.name, e.value) for e in events] == [("pushed", 6), ("doubleTapped", 1)]

    events.clear()
    controller.parse("5B03030000")
    assert events == []


def test_unparsable_frame_is_ignored() -> None:
    controller, events = _controller()
    assert controller.parse("5B03") == []
    assert controller.parse("garbage") == []
    assert events == []


def test_supervision_is_always_acknowledged() -> None:
    controller, events = _controller()

    responses = controller.parse("6C0107032003FF")
    assert isinstance(responses[-1].command, SupervisionReport)
    assert responses[-1].command.session_id == 7
    assert responses[-1].secure
    assert events[-1].name == "switch"
    assert events[-1].value == "on"
    assert controller.state.switch == "on"

    responses = controller.parse("6C01080199")
    assert len(responses) == 1
    assert responses[0].command.session_id == 8


def test_switch_events_are_sent_on_every_report() -> None:
    controller, events = _controller()
    controller.parse("250300")
    controller.parse("250300")
    assert [e.value for e in events] == ["off", "off"]


def test_configuration_report_updates_led_cache() -> None:
    controller, _ = _controller()
    controller.zwave_event(ConfigurationReport(parameter_number=7, size=1, scaled_configuration_value=3))
    controller.zwave_event(ConfigurationReport(parameter_number=12, size=1, scaled_configuration_value=1))
    controller.zwave_event(ConfigurationReport(parameter_number=2, size=1, scaled_configuration_value=3))
    assert controller.state.settings_led[1] == ["on", "red", "60%"]

    controller.set_led(1, "blue")
    assert controller.state.settings_led[1][1] is None


def test_set_led_then_report_refills_led_cache() -> None:
    controller, _ = _controller()
    controller.set_led(1, "red")
    assert controller.state.settings_led[1][1] is None
    controller.parse("7006070103")
    assert controller.state.settings_led[1][1] == "red"


def test_configuration_report_stores_other_parameters() -> None:
    controller, _ = _controller()
    controller.parse("700610040000001E")
    assert controller.get_stored_config_param_value(16) == 30

    controller.set_config_parameter(16, 60, 4)
    assert controller.get_stored_config_param_value(16) is None


def test_version_and_serial_number() -> None:
    controller, _ = _controller()
    controller.parse("861203070D010A02010500")
    controller.parse("72070122ABCD")
    assert controller.state.firmware_version == "1.10"
    assert controller.state.protocol_version == "7.13"
    assert controller.state.hardware_version == "2"
    assert controller.state.serial_number == "ABCD"


def test_indicator_supported_report_queries_next_indicator() -> None:
    controller, _ = _controller()
    responses = controller.parse("870544450106")
    assert len(responses) == 1
    assert responses[0].command == IndicatorSupportedGet(indicator_id=0x45)
    assert controller.parse("870545000106") == []


def test_set_indicator_flash() -> None:
    controller, _ = _controller()
    commands = controller.set_indicator(1, "flash", 5, 3, 2)
    assert _formats(commands) == ["8701FF03440305440403440502"]


def test_set_indicator_clamps_period_values() -> None:
    controller, _ = _controller()
    commands = controller.set_indicator(1, "flash", 300, 3, -4)
    assert _formats(commands) == ["8701FF034403FF440403440500"]
    value = commands[0].command.indicator_values[0]
    assert value.value == 0xFF


def test_set_indicator_on_all_leds() -> None:
    controller, _ = _controller()
    assert _formats(controller.set_indicator(0, "on")) == ["8701FF015002FF"]
    assert _formats(controller.set_indicator(0, "off")) == ["8701FF01500200"]


def test_relay_on_off_and_refresh() -> None:
    controller, _ = _controller()
    assert controller.on().format() == "2001FF"
    assert controller.off().format() == "200100"
    assert _formats(controller.refresh()) == ["2002", "delay 100", "8611"]


def test_digital_button_events() -> None:
    controller, events = _controller()
    controller.push(3)
    controller.double_tap(4)
    assert [(e.name, e.value, e.type) for e in events] == [
        ("pushed", 3, "digital"),
        ("doubleTapped", 4, "digital"),
    ]


def test_configure() -> None:
    controller, events = _controller()
    commands = controller.configure()

    assert events[0] == DeviceEvent(name="numberOfButtons", value=NUMBER_OF_BUTTONS)
    sends = [c for c in commands if isinstance(c, HubCommand)]
    delays = [c for c in commands if isinstance(c, Delay)]
    assert len(sends) == 4 + 15 + 2
    assert len(delays) == len(sends) - 1
    assert {d.milliseconds for d in delays} == {150}
    assert _formats(sends[:4]) == ["7004020103", "7004030103", "7004040103", "7004050103"]
    assert isinstance(sends[-1].command, DeviceSpecificGet)


def test_updated_applies_valid_preferences() -> None:
    controller, _ = _controller(parameters={16: 30, 18: 7}, relay_led_behavior=1)
    assert _formats(controller.updated()) == [
        "700410040000001E",
        "delay 200",
        "7004010101",
        "delay 200",
        "700501",
    ]


def test_updated_with_set_led_control_leaves_relay_led_alone() -> None:
    controller, _ = _controller(relay_led_behavior=RELAY_LED_SET_LED_CONTROL)
    assert controller.updated() == []
