from __future__ import annotations

import pytest

from zwave_commands import (
    BasicReport,
    CentralSceneNotification,
    ConfigurationGet,
    ConfigurationReport,
    ConfigurationSet,
    Delay,
    DeviceSpecificReport,
    HubCommand,
    IndicatorSet,
    IndicatorSupportedReport,
    IndicatorValue,
    SupervisionGet,
    SupervisionReport,
    UnknownCommand,
    VersionReport,
    ZWaveParseError,
    decode,
    delay_between,
    encode_value,
    parse,
    secure_encap,
)


def test_configuration_set_layout() -> None:
    assert ConfigurationSet(parameter_number=9, size=1, scaled_configuration_value=3).format() == "7004090103"
    assert (
        ConfigurationSet(parameter_number=16, size=4, scaled_configuration_value=65535).format()
        == "700410040000FFFF"
    )
    assert ConfigurationGet(parameter_number=9).format() == "700509"


def test_configuration_set_rejects_bad_size_and_overflow() -> None:
    with pytest.raises(ValueError):
        ConfigurationSet(parameter_number=1, size=3, scaled_configuration_value=0)
    with pytest.raises(ValueError):
        encode_value(256, 1)


def test_configuration_set_cc_api() -> None:
    method, args = ConfigurationSet(parameter_number=2, size=1, scaled_configuration_value=3).cc_api()
    assert method == "set"
    assert args == ({"parameter": 2, "value": 3, "valueSize": 1},)


def test_parse_configuration_report_is_signed() -> None:
    assert parse("7006020103") == ConfigurationReport(
        parameter_number=2, size=1, scaled_configuration_value=3
    )
    assert parse("70061002FFFF").scaled_configuration_value == -1


def test_parse_rejects_malformed_frames() -> None:
    with pytest.raises(ZWaveParseError):
        parse("7006")
    with pytest.raises(ZWaveParseError):
        parse("not hex")
    with pytest.raises(ZWaveParseError):
        parse("70")


def test_parse_is_case_and_space_insensitive() -> None:
    assert parse("5b 03 05 03 02") == parse("5B03050302")


def test_central_scene_notification() -> None:
    cmd = parse("5B03050302")
    assert cmd == CentralSceneNotification(sequence_number=5, key_attributes=3, scene_number=2)


def test_unknown_command_keeps_raw_bytes() -> None:
    cmd = parse("99010203")
    assert isinstance(cmd, UnknownCommand)
    assert cmd.format() == "99010203"
    assert cmd.cc_api() is None


def test_supervision_get_encapsulated_command() -> None:
    cmd = parse("6C0185032003FF")
    assert isinstance(cmd, SupervisionGet)
    assert cmd.session_id == 5
    assert cmd.status_updates is True
    assert cmd.encapsulated_command() == BasicReport(value=0xFF)


def test_supervision_get_with_malformed_inner_frame() -> None:
    cmd = parse("6C01050199")
    assert cmd.encapsulated_command() is None


def test_supervision_report_layout() -> None:
    report = SupervisionReport(session_id=5)
    assert report.format() == "6C0205FF00"
    method, args = report.cc_api()
    assert method == "sendReport"
    assert args[0]["sessionId"] == 5


def test_version_report_hardware_version_depends_on_version() -> None:
    frame = bytes.fromhex("861203070D010A02010500")
    v2 = decode(frame)
    assert isinstance(v2, VersionReport)
    assert v2.firmware0_version == 1
    assert v2.firmware0_sub_version == 10
    assert v2.hardware_version == 2
    assert v2.firmware_targets == ((5, 0),)

    v1 = decode(frame, {0x86: 1})
    assert v1.hardware_version is None
    assert v1.firmware_targets == ()


def test_device_specific_report() -> None:
    cmd = parse("72070122ABCD")
    assert cmd == DeviceSpecificReport(
        device_id_type=1, device_id_data_format=1, device_id_data=b"\xab\xcd"
    )


def test_indicator_set_layout_and_cc_api() -> None:
    cmd = IndicatorSet(value=0xFF, indicator_values=(IndicatorValue(0x44, 0x02, 0xFF),))
    assert cmd.format() == "8701FF014402FF"
    assert cmd.cc_api() == (
        "set",
        ([{"indicatorId": 0x44, "propertyId": 0x02, "value": 0xFF}],),
    )


def test_indicator_supported_report() -> None:
    cmd = parse("870544450106")
    assert isinstance(cmd, IndicatorSupportedReport)
    assert cmd.next_indicator_id == 0x45
    assert cmd.supported_property_ids == [1, 2]


def test_delay_between() -> None:
    a = secure_encap(ConfigurationGet(parameter_number=1))
    b = secure_encap(ConfigurationGet(parameter_number=2))
    assert delay_between([a, b], 300) == [a, Delay(300), b]
    assert delay_between([a], 300) == [a]
    assert delay_between([], 300) == []
    assert Delay(300).format() == "delay 300"
    assert isinstance(a, HubCommand) and a.secure
