"""
Z-Wave command class frames used by the Zooz scene controller.

Every supported frame is a small frozen dataclass that knows its byte layout.
Outbound frames encode to the hex string handed to the Z-Wave transport and
map onto the Z-Wave JS command class API; inbound frames are decoded from the
hex string reported by the transport with :func:`parse`.

Byte layouts follow the Z-Wave command class definitions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, ClassVar, Iterable, Mapping

from zwave_js_server.const import CommandClass

from const import COMMAND_CLASS_VERSIONS

_LOG = logging.getLogger(__name__)

SUPERVISION_STATUS_SUCCESS = 0xFF
DEVICE_ID_TYPE_SERIAL_NUMBER = 1
DEVICE_ID_DATA_FORMAT_BINARY = 1

_COMMANDS: dict[tuple[int, int], type["ZWaveCommand"]] = {}


class ZWaveParseError(ValueError):
    """Raised when a frame cannot be decoded."""


def _register(cls):
    _COMMANDS[(int(cls.command_class), cls.command)] = cls
    return cls


def _require(payload: bytes, length: int, name: str) -> None:
    if len(payload) < length:
        raise ZWaveParseError(
            f"{name}: expected at least {length} payload bytes, got {len(payload)}"
        )


def encode_value(value: int, size: int) -> bytes:
    """Encode a configuration value as a big-endian integer of the given size."""
    if size not in (1, 2, 4):
        raise ValueError(f"Invalid configuration value size {size}")
    try:
        return int(value).to_bytes(size, "big", signed=True)
    except OverflowError:
        # values such as 0xFF (size 1) or 65535 (size 2) only fit unsigned
        try:
            return int(value).to_bytes(size, "big", signed=False)
        except OverflowError as err:
            raise ValueError(f"Value {value} does not fit in {size} byte(s)") from err


def decode_value(data: bytes) -> int:
    """Decode a scaled (signed, big-endian) configuration value."""
    return int.from_bytes(data, "big", signed=True)


@dataclass(frozen=True)
class ZWaveCommand:
    """Base class for all command class frames."""

    command_class: ClassVar[CommandClass]
    command: ClassVar[int]

    def payload(self) -> bytes:
        """Return the frame bytes following the command class and command."""
        return b""

    def to_bytes(self) -> bytes:
        return bytes([int(self.command_class), self.command]) + self.payload()

    def format(self) -> str:
        """Return the frame as an uppercase hex string."""
        return self.to_bytes().hex().upper()

    def cc_api(self) -> tuple[str, tuple[Any, ...]] | None:
        """Return the Z-Wave JS command class API call (method, args), if any."""
        return None

    def api_report(self, result: Any) -> "ZWaveCommand | None":
        """Build the report frame carried by the command class API result of a Get."""
        return None

    @classmethod
    def from_payload(cls, payload: bytes, version: int) -> "ZWaveCommand":
        """Build the command from the bytes following the command byte."""
        return cls()


@dataclass(frozen=True)
class UnknownCommand(ZWaveCommand):
    """Any frame this driver does not understand."""

    raw_command_class: int = 0
    raw_command: int = 0
    data: bytes = b""

    def to_bytes(self) -> bytes:
        return bytes([self.raw_command_class, self.raw_command]) + self.data


# ─────────────────────────────────────────────────────────────────
# Basic / Binary Switch
# ─────────────────────────────────────────────────────────────────


@_register
@dataclass(frozen=True)
class BasicSet(ZWaveCommand):
    command_class = CommandClass.BASIC
    command = 0x01

    value: int = 0

    def payload(self) -> bytes:
        return bytes([self.value & 0xFF])

    def cc_api(self):
        return "set", (self.value,)

    @classmethod
    def from_payload(cls, payload, version):
        _require(payload, 1, "BasicSet")
        return cls(value=payload[0])


@_register
@dataclass(frozen=True)
class BasicGet(ZWaveCommand):
    command_class = CommandClass.BASIC
    command = 0x02

    def cc_api(self):
        return "get", ()


@_register
@dataclass(frozen=True)
class BasicReport(ZWaveCommand):
    command_class = CommandClass.BASIC
    command = 0x03

    value: int = 0

    def payload(self) -> bytes:
        return bytes([self.value & 0xFF])

    @classmethod
    def from_payload(cls, payload, version):
        _require(payload, 1, "BasicReport")
        return cls(value=payload[0])


@_register
@dataclass(frozen=True)
class SwitchBinaryReport(ZWaveCommand):
    command_class = CommandClass.SWITCH_BINARY
    command = 0x03

    value: int = 0

    def payload(self) -> bytes:
        return bytes([self.value & 0xFF])

    @classmethod
    def from_payload(cls, payload, version):
        _require(payload, 1, "SwitchBinaryReport")
        return cls(value=payload[0])


# ─────────────────────────────────────────────────────────────────
# Central Scene
# ─────────────────────────────────────────────────────────────────

KEY_PRESSED = 0
KEY_RELEASED = 1
KEY_HELD_DOWN = 2
KEY_PRESSED_2X = 3


@_register
@dataclass(frozen=True)
class CentralSceneNotification(ZWaveCommand):
    command_class = CommandClass.CENTRAL_SCENE
    command = 0x03

    sequence_number: int = 0
    key_attributes: int = KEY_PRESSED
    scene_number: int = 0

    def payload(self) -> bytes:
        return bytes(
            [
                self.sequence_number & 0xFF,
                self.key_attributes & 0x07,
                self.scene_number & 0xFF,
            ]
        )

    @classmethod
    def from_payload(cls, payload, version):
        _require(payload, 3, "CentralSceneNotification")
        return cls(
            sequence_number=payload[0],
            key_attributes=payload[1] & 0x07,
            scene_number=payload[2],
        )


# ─────────────────────────────────────────────────────────────────
# Supervision
# ─────────────────────────────────────────────────────────────────


@_register
@dataclass(frozen=True)
class SupervisionGet(ZWaveCommand):
    command_class = CommandClass.SUPERVISION
    command = 0x01

    session_id: int = 0
    status_updates: bool = False
    encapsulated: bytes = b""

    def payload(self) -> bytes:
        flags = (0x80 if self.status_updates else 0) | (self.session_id & 0x3F)
        return bytes([flags, len(self.encapsulated)]) + self.encapsulated

    def encapsulated_command(
        self, versions: Mapping[int, int] = COMMAND_CLASS_VERSIONS
    ) -> ZWaveCommand | None:
        """Decode the encapsulated frame, or None if it is malformed."""
        try:
            return decode(self.encapsulated, versions)
        except ZWaveParseError as err:
            _LOG.debug("Cannot decode supervised command: %s", err)
            return None

    @classmethod
    def from_payload(cls, payload, version):
        _require(payload, 2, "SupervisionGet")
        length = payload[1]
        _require(payload, 2 + length, "SupervisionGet")
        return cls(
            session_id=payload[0] & 0x3F,
            status_updates=bool(payload[0] & 0x80),
            encapsulated=bytes(payload[2 : 2 + length]),
        )


@_register
@dataclass(frozen=True)
class SupervisionReport(ZWaveCommand):
    command_class = CommandClass.SUPERVISION
    command = 0x02

    session_id: int = 0
    more_status_updates: bool = False
    status: int = SUPERVISION_STATUS_SUCCESS
    duration: int = 0

    def payload(self) -> bytes:
        flags = (0x80 if self.more_status_updates else 0) | (self.session_id & 0x3F)
        return bytes([flags, self.status & 0xFF, self.duration & 0xFF])

    def cc_api(self):
        return "sendReport", (
            {
                "sessionId": self.session_id,
                "moreUpdatesFollow": self.more_status_updates,
                "status": self.status,
            },
        )

    @classmethod
    def from_payload(cls, payload, version):
        _require(payload, 3, "SupervisionReport")
        return cls(
            session_id=payload[0] & 0x3F,
            more_status_updates=bool(payload[0] & 0x80),
            status=payload[1],
            duration=payload[2],
        )


# ─────────────────────────────────────────────────────────────────
# Configuration
# ─────────────────────────────────────────────────────────────────


@_register
@dataclass(frozen=True)
class ConfigurationSet(ZWaveCommand):
    command_class = CommandClass.CONFIGURATION
    command = 0x04

    parameter_number: int = 0
    size: int = 1
    scaled_configuration_value: int = 0
    default: bool = False

    def __post_init__(self):
        # validates size and value range
        encode_value(self.scaled_configuration_value, self.size)

    def payload(self) -> bytes:
        level = (0x80 if self.default else 0) | (self.size & 0x07)
        return bytes([self.parameter_number & 0xFF, level]) + encode_value(
            self.scaled_configuration_value, self.size
        )

    def cc_api(self):
        return "set", (
            {
                "parameter": self.parameter_number,
                "value": self.scaled_configuration_value,
                "valueSize": self.size,
            },
        )

    @classmethod
    def from_payload(cls, payload, version):
        _require(payload, 2, "ConfigurationSet")
        size = payload[1] & 0x07
        _require(payload, 2 + size, "ConfigurationSet")
        if size not in (1, 2, 4):
            raise ZWaveParseError(f"ConfigurationSet: invalid size {size}")
        return cls(
            parameter_number=payload[0],
            size=size,
            scaled_configuration_value=decode_value(payload[2 : 2 + size]),
            default=bool(payload[1] & 0x80),
        )


@_register
@dataclass(frozen=True)
class ConfigurationGet(ZWaveCommand):
    command_class = CommandClass.CONFIGURATION
    command = 0x05

    parameter_number: int = 0

    def payload(self) -> bytes:
        return bytes([self.parameter_number & 0xFF])

    def cc_api(self):
        return "get", (self.parameter_number,)

    @classmethod
    def from_payload(cls, payload, version):
        _require(payload, 1, "ConfigurationGet")
        return cls(parameter_number=payload[0])


@_register
@dataclass(frozen=True)
class ConfigurationReport(ZWaveCommand):
    command_class = CommandClass.CONFIGURATION
    command = 0x06

    parameter_number: int = 0
    size: int = 1
    scaled_configuration_value: int = 0

    def payload(self) -> bytes:
        return bytes([self.parameter_number & 0xFF, self.size & 0x07]) + encode_value(
            self.scaled_configuration_value, self.size
        )

    @classmethod
    def from_payload(cls, payload, version):
        _require(payload, 2, "ConfigurationReport")
        size = payload[1] & 0x07
        if size not in (1, 2, 4):
            raise ZWaveParseError(f"ConfigurationReport: invalid size {size}")
        _require(payload, 2 + size, "ConfigurationReport")
        return cls(
            parameter_number=payload[0],
            size=size,
            scaled_configuration_value=decode_value(payload[2 : 2 + size]),
        )


# ─────────────────────────────────────────────────────────────────
# Version / Manufacturer Specific
# ─────────────────────────────────────────────────────────────────


@_register
@dataclass(frozen=True)
class VersionGet(ZWaveCommand):
    command_class = CommandClass.VERSION
    command = 0x11

    def cc_api(self):
        return "get", ()

    def api_report(self, result):
        if not isinstance(result, Mapping):
            return None
        protocol = _split_version(result.get("protocolVersion"))
        firmwares = [_split_version(v) for v in result.get("firmwareVersions") or ()]
        firmware0 = firmwares[0] if firmwares else (0, 0)
        hardware_version = result.get("hardwareVersion")
        return VersionReport(
            z_wave_library_type=int(result.get("libraryType") or 0),
            z_wave_protocol_version=protocol[0],
            z_wave_protocol_sub_version=protocol[1],
            firmware0_version=firmware0[0],
            firmware0_sub_version=firmware0[1],
            hardware_version=None if hardware_version is None else int(hardware_version),
            firmware_targets=tuple(firmwares[1:]),
        )


def _split_version(text: Any) -> tuple[int, int]:
    """Split a "major.minor" version string as reported by Z-Wave JS."""
    major, _, minor = str(text or "").partition(".")
    try:
        return int(major), int(minor.partition(".")[0] or 0)
    except ValueError:
        return 0, 0


@_register
@dataclass(frozen=True)
class VersionReport(ZWaveCommand):
    command_class = CommandClass.VERSION
    command = 0x12

    z_wave_library_type: int = 0
    z_wave_protocol_version: int = 0
    z_wave_protocol_sub_version: int = 0
    firmware0_version: int = 0
    firmware0_sub_version: int = 0
    hardware_version: int | None = None
    firmware_targets: tuple[tuple[int, int], ...] = ()

    def payload(self) -> bytes:
        data = bytes(
            [
                self.z_wave_library_type,
                self.z_wave_protocol_version,
                self.z_wave_protocol_sub_version,
                self.firmware0_version,
                self.firmware0_sub_version,
            ]
        )
        if self.hardware_version is not None:
            data += bytes([self.hardware_version, len(self.firmware_targets)])
            for version, sub_version in self.firmware_targets:
                data += bytes([version, sub_version])
        return data

    @classmethod
    def from_payload(cls, payload, version):
        _require(payload, 5, "VersionReport")
        hardware_version = None
        targets: list[tuple[int, int]] = []
        if version >= 2 and len(payload) >= 7:
            hardware_version = payload[5]
            count = payload[6]
            _require(payload, 7 + 2 * count, "VersionReport")
            for i in range(count):
                offset = 7 + 2 * i
                targets.append((payload[offset], payload[offset + 1]))
        return cls(
            z_wave_library_type=payload[0],
            z_wave_protocol_version=payload[1],
            z_wave_protocol_sub_version=payload[2],
            firmware0_version=payload[3],
            firmware0_sub_version=payload[4],
            hardware_version=hardware_version,
            firmware_targets=tuple(targets),
        )


@_register
@dataclass(frozen=True)
class DeviceSpecificGet(ZWaveCommand):
    command_class = CommandClass.MANUFACTURER_SPECIFIC
    command = 0x06

    device_id_type: int = DEVICE_ID_TYPE_SERIAL_NUMBER

    def payload(self) -> bytes:
        return bytes([self.device_id_type & 0x07])

    def cc_api(self):
        return "deviceSpecificGet", (self.device_id_type,)

    def api_report(self, result):
        # Z-Wave JS returns UTF-8 ids as text and binary ids as "0x..." hex
        if not isinstance(result, str) or not result:
            return None
        if result.lower().startswith("0x"):
            try:
                data = bytes.fromhex(result[2:])
            except ValueError:
                return None
            data_format = DEVICE_ID_DATA_FORMAT_BINARY
        else:
            data, data_format = result.encode(), 0
        return DeviceSpecificReport(
            device_id_type=self.device_id_type,
            device_id_data_format=data_format,
            device_id_data=data,
        )

    @classmethod
    def from_payload(cls, payload, version):
        _require(payload, 1, "DeviceSpecificGet")
        return cls(device_id_type=payload[0] & 0x07)


@_register
@dataclass(frozen=True)
class DeviceSpecificReport(ZWaveCommand):
    command_class = CommandClass.MANUFACTURER_SPECIFIC
    command = 0x07

    device_id_type: int = DEVICE_ID_TYPE_SERIAL_NUMBER
    device_id_data_format: int = 0
    device_id_data: bytes = b""

    def payload(self) -> bytes:
        header = ((self.device_id_data_format & 0x07) << 5) | (
            len(self.device_id_data) & 0x1F
        )
        return bytes([self.device_id_type & 0x07, header]) + self.device_id_data

    @classmethod
    def from_payload(cls, payload, version):
        _require(payload, 2, "DeviceSpecificReport")
        length = payload[1] & 0x1F
        _require(payload, 2 + length, "DeviceSpecificReport")
        return cls(
            device_id_type=payload[0] & 0x07,
            device_id_data_format=(payload[1] >> 5) & 0x07,
            device_id_data=bytes(payload[2 : 2 + length]),
        )


# ─────────────────────────────────────────────────────────────────
# Indicator
# ─────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class IndicatorValue:
    indicator_id: int
    property_id: int
    value: int

    def as_cc_api(self) -> dict[str, int]:
        return {
            "indicatorId": self.indicator_id,
            "propertyId": self.property_id,
            "value": self.value,
        }


def _encode_indicator_objects(values: Iterable[IndicatorValue]) -> bytes:
    values = tuple(values)
    data = bytes([len(values) & 0x1F])
    for item in values:
        data += bytes([item.indicator_id, item.property_id, item.value & 0xFF])
    return data


def _decode_indicator_objects(payload: bytes, name: str) -> tuple[IndicatorValue, ...]:
    if len(payload) < 2:
        return ()
    count = payload[1] & 0x1F
    _require(payload, 2 + 3 * count, name)
    return tuple(
        IndicatorValue(payload[2 + 3 * i], payload[3 + 3 * i], payload[4 + 3 * i])
        for i in range(count)
    )


@_register
@dataclass(frozen=True)
class IndicatorSet(ZWaveCommand):
    command_class = CommandClass.INDICATOR
    command = 0x01

    value: int = 0
    indicator_values: tuple[IndicatorValue, ...] = field(default_factory=tuple)

    def payload(self) -> bytes:
        data = bytes([self.value & 0xFF])
        if self.indicator_values:
            data += _encode_indicator_objects(self.indicator_values)
        return data

    def cc_api(self):
        if not self.indicator_values:
            return "set", (self.value,)
        return "set", ([item.as_cc_api() for item in self.indicator_values],)

    @classmethod
    def from_payload(cls, payload, version):
        _require(payload, 1, "IndicatorSet")
        return cls(
            value=payload[0],
            indicator_values=_decode_indicator_objects(payload, "IndicatorSet"),
        )


@_register
@dataclass(frozen=True)
class IndicatorGet(ZWaveCommand):
    command_class = CommandClass.INDICATOR
    command = 0x02

    indicator_id: int | None = None

    def payload(self) -> bytes:
        return b"" if self.indicator_id is None else bytes([self.indicator_id])

    def cc_api(self):
        return "get", () if self.indicator_id is None else (self.indicator_id,)

    @classmethod
    def from_payload(cls, payload, version):
        return cls(indicator_id=payload[0] if payload else None)


@_register
@dataclass(frozen=True)
class IndicatorReport(ZWaveCommand):
    command_class = CommandClass.INDICATOR
    command = 0x03

    value: int = 0
    indicator_values: tuple[IndicatorValue, ...] = field(default_factory=tuple)

    def payload(self) -> bytes:
        data = bytes([self.value & 0xFF])
        if self.indicator_values:
            data += _encode_indicator_objects(self.indicator_values)
        return data

    @classmethod
    def from_payload(cls, payload, version):
        _require(payload, 1, "IndicatorReport")
        values = ()
        if version >= 2:
            values = _decode_indicator_objects(payload, "IndicatorReport")
        return cls(value=payload[0], indicator_values=values)


@_register
@dataclass(frozen=True)
class IndicatorSupportedGet(ZWaveCommand):
    command_class = CommandClass.INDICATOR
    command = 0x04

    indicator_id: int = 0

    def payload(self) -> bytes:
        return bytes([self.indicator_id & 0xFF])

    def cc_api(self):
        return "getSupported", (self.indicator_id,)

    @classmethod
    def from_payload(cls, payload, version):
        _require(payload, 1, "IndicatorSupportedGet")
        return cls(indicator_id=payload[0])


@_register
@dataclass(frozen=True)
class IndicatorSupportedReport(ZWaveCommand):
    command_class = CommandClass.INDICATOR
    command = 0x05

    indicator_id: int = 0
    next_indicator_id: int = 0
    property_supported_bitmask: bytes = b""

    def payload(self) -> bytes:
        return (
            bytes(
                [
                    self.indicator_id & 0xFF,
                    self.next_indicator_id & 0xFF,
                    len(self.property_supported_bitmask) & 0x1F,
                ]
            )
            + self.property_supported_bitmask
        )

    @property
    def supported_property_ids(self) -> list[int]:
        """Return the property ids flagged in the bitmask."""
        return [
            index * 8 + bit
            for index, mask in enumerate(self.property_supported_bitmask)
            for bit in range(8)
            if mask & (1 << bit)
        ]

    @classmethod
    def from_payload(cls, payload, version):
        _require(payload, 2, "IndicatorSupportedReport")
        length = 0
        if len(payload) > 2:
            length = payload[2] & 0x1F
            _require(payload, 3 + length, "IndicatorSupportedReport")
        return cls(
            indicator_id=payload[0],
            next_indicator_id=payload[1],
            property_supported_bitmask=bytes(payload[3 : 3 + length]),
        )


# ─────────────────────────────────────────────────────────────────
# Decoding / transport helpers
# ─────────────────────────────────────────────────────────────────


def decode(
    frame: bytes, versions: Mapping[int, int] = COMMAND_CLASS_VERSIONS
) -> ZWaveCommand:
    """Decode raw frame bytes into a command."""
    if len(frame) < 2:
        raise ZWaveParseError(f"Frame too short: {frame.hex()}")
    command_class, command = frame[0], frame[1]
    cls = _COMMANDS.get((command_class, command))
    if cls is None:
        return UnknownCommand(
            raw_command_class=command_class, raw_command=command, data=bytes(frame[2:])
        )
    return cls.from_payload(bytes(frame[2:]), versions.get(command_class, 1))


def parse(
    description: str, versions: Mapping[int, int] = COMMAND_CLASS_VERSIONS
) -> ZWaveCommand:
    """Decode a hex encoded frame (as reported by the transport)."""
    try:
        frame = bytes.fromhex(description.strip().replace(" ", ""))
    except (ValueError, AttributeError) as err:
        raise ZWaveParseError(f"Invalid frame description: {description!r}") from err
    return decode(frame, versions)


@dataclass(frozen=True)
class HubCommand:
    """A command queued for the transport."""

    command: ZWaveCommand
    secure: bool = True

    def format(self) -> str:
        return self.command.format()


@dataclass(frozen=True)
class Delay:
    """Pause between two queued commands."""

    milliseconds: int

    def format(self) -> str:
        return f"delay {self.milliseconds}"


def secure_encap(command: ZWaveCommand) -> HubCommand:
    """Mark a command to be sent with the node's network security scheme."""
    return HubCommand(command, secure=True)


def delay_between(commands: list, delay_ms: int) -> list:
    """Interleave a delay between every two commands."""
    result: list = []
    for index, command in enumerate(commands):
        if index:
            result.append(Delay(delay_ms))
        result.append(command)
    return result
