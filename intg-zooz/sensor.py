"""
Sensor entity functions.

:license: Mozilla Public License Version 2.0, see LICENSE for more details.
"""

import logging

from bridge import INACTIVE_DEVICES_SENSOR, SmartHub, button_sensor_sub_id
from const import ZWaveDevice, Zen32Info
from ucapi import EntityTypes
from ucapi.sensor import Attributes, DeviceClasses, Options, Sensor, States
from ucapi_framework import create_entity_id

_LOG = logging.getLogger(__name__)


class Zen32ButtonSensor(Sensor):
    """Last button event (pushed, held, released, double tapped) of a ZEN32."""

    def __init__(self, config: ZWaveDevice, zen32: Zen32Info):
        _LOG.debug("ZEN32 button sensor init")
        self.config = config
        self.zen32 = zen32

        super().__init__(
            create_entity_id(
                entity_type=EntityTypes.SENSOR,
                device_id=config.identifier,
                sub_device_id=button_sensor_sub_id(zen32.node_id),
            ),
            f"{zen32.name} Button",
            [],
            {
                Attributes.STATE: States.ON,
                Attributes.VALUE: zen32.last_button_event or "",
            },
            device_class=DeviceClasses.CUSTOM,
        )


class InactiveDevicesSensor(Sensor):
    """Number of devices without activity inside their group's threshold."""

    def __init__(self, config: ZWaveDevice, device: SmartHub):
        _LOG.debug("Inactive devices sensor init")
        self.config = config
        self.device = device

        super().__init__(
            create_entity_id(
                entity_type=EntityTypes.SENSOR,
                device_id=config.identifier,
                sub_device_id=INACTIVE_DEVICES_SENSOR,
            ),
            f"{config.label} - {config.name}",
            [],
            device.inactive_sensor_attributes(),
            device_class=DeviceClasses.CUSTOM,
            options={Options.CUSTOM_UNIT: "devices"},
        )
