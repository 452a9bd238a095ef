"""
Button entity functions.

:license: Mozilla Public License Version 2.0, see LICENSE for more details.
"""

import logging
from typing import Any

import ucapi
from bridge import INACTIVITY_REPORT_BUTTON, SmartHub, configure_sub_id
from const import ZWaveDevice, Zen32Info
from ucapi import Button, EntityTypes, button
from ucapi_framework import create_entity_id

_LOG = logging.getLogger(__name__)


class Zen32ConfigureButton(Button):
    """Configure a ZEN32: default parameters, preferences and state read-back."""

    def __init__(self, config: ZWaveDevice, zen32: Zen32Info, device: SmartHub):
        """Initialize the class."""
        _LOG.debug("ZEN32 configure button init")
        self.config = config
        self.zen32 = zen32
        self.device = device

        super().__init__(
            create_entity_id(
                entity_type=EntityTypes.BUTTON,
                device_id=config.identifier,
                sub_device_id=configure_sub_id(zen32.node_id),
            ),
            f"{zen32.name} Configure",
            cmd_handler=self.button_cmd_handler,
        )

    async def button_cmd_handler(
        self, entity: Button, cmd_id: str, params: dict[str, Any] | None
    ) -> ucapi.StatusCodes:
        """
        Button entity command handler.

        :param entity: button entity
        :param cmd_id: command
        :param params: optional command parameters
        :return: status code of the command. StatusCodes.OK if the command succeeded.
        """
        _LOG.info(
            "Got %s command request: %s %s", entity.id, cmd_id, params if params else ""
        )
        if cmd_id != button.Commands.PUSH:
            return ucapi.StatusCodes.NOT_IMPLEMENTED

        try:
            res = await self.device.configure_controller(self.zen32.node_id)
        except Exception as ex:  # pylint: disable=broad-except
            _LOG.error("Error executing command %s: %s", cmd_id, ex)
            return ucapi.StatusCodes.BAD_REQUEST
        return ucapi.StatusCodes.OK if res else ucapi.StatusCodes.SERVER_ERROR


class InactivityReportButton(Button):
    """Send the inactive devices notification now."""

    def __init__(self, config: ZWaveDevice, device: SmartHub):
        """Initialize the class."""
        _LOG.debug("Inactivity report button init")
        self.config = config
        self.device = device

        super().__init__(
            create_entity_id(
                entity_type=EntityTypes.BUTTON,
                device_id=config.identifier,
                sub_device_id=INACTIVITY_REPORT_BUTTON,
            ),
            "Send inactivity report",
            cmd_handler=self.button_cmd_handler,
        )

    async def button_cmd_handler(
        self, entity: Button, cmd_id: str, params: dict[str, Any] | None
    ) -> ucapi.StatusCodes:
        """Button entity command handler."""
        _LOG.info(
            "Got %s command request: %s %s", entity.id, cmd_id, params if params else ""
        )
        if cmd_id != button.Commands.PUSH:
            return ucapi.StatusCodes.NOT_IMPLEMENTED

        try:
            text = self.device.send_inactivity_report()
        except Exception as ex:  # pylint: disable=broad-except
            _LOG.error("Error executing command %s: %s", cmd_id, ex)
            return ucapi.StatusCodes.BAD_REQUEST
        if text is None:
            _LOG.info("No inactive devices, nothing to report")
        return ucapi.StatusCodes.OK
