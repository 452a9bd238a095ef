#!/usr/bin/env python3
"""
This module implements a Unfolded Circle integration driver for Zooz ZEN32 scene
controllers and Z-Wave device activity monitoring.

:copyright: (c) 2025 by Jack Powell.
:license: Mozilla Public License Version 2.0, see LICENSE for more details.
"""

import asyncio
import logging
import os

from bridge import INACTIVE_DEVICES_SENSOR, SmartHub, led_attributes
from button import InactivityReportButton, Zen32ConfigureButton
from const import ZWaveDevice
from light import Zen32LedLight, Zen32RelayLight, zen32_lights
from sensor import InactiveDevicesSensor, Zen32ButtonSensor
from setup import ZWaveSetupFlow
from ucapi import EntityTypes
from ucapi.light import Attributes as LightAttr
from ucapi.sensor import Attributes as SensorAttr
from ucapi_framework import BaseDeviceManager, BaseIntegrationDriver, get_config_path

_LOG = logging.getLogger("driver")


class ZoozIntegrationDriver(BaseIntegrationDriver[SmartHub, ZWaveDevice]):
    """Zooz scene controller / device activity integration driver"""

    async def refresh_entity_state(self, entity_id: str) -> None:
        """Refresh the state of a specific entity."""

        device_id = self.device_from_entity_id(entity_id)
        device = self._configured_devices[device_id]
        sub_id = self.entity_from_entity_id(entity_id)
        update = {}

        match self.entity_type_from_entity_id(entity_id):
            case EntityTypes.LIGHT.value:
                node, _, kind = sub_id.partition("_")
                zen32 = device.get_zen32(int(node))
                if zen32 is None:
                    return
                if kind == "relay":
                    update[LightAttr.STATE] = "ON" if zen32.switch == "on" else "OFF"
                elif kind.startswith("led"):
                    controller = device.controller(zen32.node_id)
                    update = led_attributes(controller.state.settings_led[int(kind[3:])])
            case EntityTypes.SENSOR.value:
                if sub_id == INACTIVE_DEVICES_SENSOR:
                    device.refresh_activity()
                    update = device.inactive_sensor_attributes()
                else:
                    node, _, _ = sub_id.partition("_")
                    zen32 = device.get_zen32(int(node))
                    if zen32 is None:
                        return
                    update[SensorAttr.VALUE] = zen32.last_button_event or ""

        if update:
            self.api.configured_entities.update_attributes(entity_id, update)

    async def async_register_available_entities(
        self, device_config: ZWaveDevice, device: SmartHub
    ) -> bool:
        """
        Register entities by querying the Z-Wave hub for ZEN32 scene controllers.

        :param device: The connected SmartHub instance
        :return: True if entities were registered successfully
        """
        _LOG.info(
            "📡 DRIVER: Registering available entities from Z-Wave hub: %s",
            device.identifier,
        )

        try:
            await device.get_zen32s()
            _LOG.info(
                "📡 DRIVER: Found %d ZEN32 scene controllers on Z-Wave network",
                len(device.zen32s),
            )

            entities = [
                InactiveDevicesSensor(device.device_config, device),
                InactivityReportButton(device.device_config, device),
            ]

            for zen32 in device.zen32s:
                _LOG.debug(
                    "⚡ DRIVER: Registering ZEN32: %s (node %d)",
                    zen32.name,
                    zen32.node_id,
                )
                entities.extend(zen32_lights(device.device_config, zen32, device))
                entities.append(Zen32ButtonSensor(device.device_config, zen32))
                entities.append(
                    Zen32ConfigureButton(device.device_config, zen32, device)
                )

            for entity in entities:
                if self.api.available_entities.contains(entity.id):
                    _LOG.debug("⚡ DRIVER: Removing existing entity: %s", entity.id)
                    self.api.available_entities.remove(entity.id)
                _LOG.debug("⚡ DRIVER: Adding entity: %s", entity.id)
                self.api.available_entities.add(entity)
            _LOG.info(
                "✅ DRIVER: Successfully registered %d entities from Z-Wave hub",
                len(entities),
            )
            return True

        except Exception as ex:  # pylint: disable=broad-exception-caught
            _LOG.error("❌ DRIVER: Error registering entities from hub: %s", ex)
            return False


async def main():
    """Start the Remote Two/3 integration driver."""
    logging.basicConfig()

    level = os.getenv("UC_LOG_LEVEL", "DEBUG").upper()
    for logger in (
        "activity",
        "bridge",
        "button",
        "driver",
        "light",
        "sensor",
        "setup",
        "zen32",
        "zwave_client",
        "zwave_commands",
    ):
        logging.getLogger(logger).setLevel(level)

    loop = asyncio.get_running_loop()

    driver = ZoozIntegrationDriver(
        loop=loop,
        device_class=SmartHub,
        entity_classes=[
            Zen32RelayLight,
            Zen32LedLight,
            Zen32ButtonSensor,
            InactiveDevicesSensor,
            Zen32ConfigureButton,
            InactivityReportButton,
        ],
        require_connection_before_registry=True,
    )
    driver.config = BaseDeviceManager(
        get_config_path(driver.api.config_dir_path),
        driver.on_device_added,
        driver.on_device_removed,
        device_class=ZWaveDevice,
    )

    for device_config in list(driver.config.all()):
        await driver.async_add_configured_device(device_config)

    setup_handler = ZWaveSetupFlow.create_handler(driver.config)

    await driver.api.init("driver.json", setup_handler)

    await asyncio.Future()


if __name__ == "__main__":
    asyncio.run(main())
