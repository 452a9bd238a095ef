"""
Light entity functions.

:license: Mozilla Public License Version 2.0, see LICENSE for more details.
"""

import logging
from typing import Any

import ucapi
from bridge import SmartHub, led_attributes, led_sub_id, relay_sub_id
from const import (
    COLOR_HUES,
    COLOR_NAME_MAP,
    LED_INDICATOR_PARAMS,
    ZWaveDevice,
    Zen32Info,
)
from ucapi import EntityTypes, light
from ucapi.light import Attributes, Light, States
from ucapi_framework import create_entity_id

_LOG = logging.getLogger(__name__)

# saturation (0-255) below which a color is treated as white
WHITE_SATURATION = 51


def nearest_color(hue: int | None, saturation: int | None) -> str | None:
    """Map a ucapi hue/saturation onto the nearest ZEN32 LED color name."""
    if hue is None and saturation is None:
        return None
    if saturation is not None and int(saturation) < WHITE_SATURATION:
        return COLOR_NAME_MAP[0]
    if hue is None:
        return None
    hue = int(hue) % 360
    return min(
        COLOR_HUES,
        key=lambda name: min(abs(hue - COLOR_HUES[name]), 360 - abs(hue - COLOR_HUES[name])),
    )


def brightness_to_percent(brightness) -> int:
    """Convert ucapi brightness (0-255) to percent; any non-zero value stays on."""
    brightness = min(255, int(brightness))
    if brightness <= 0:
        return 0
    return max(1, round(brightness * 100 / 255))


class Zen32RelayLight(Light):
    """Representation of the relay (large button) of a ZEN32 scene controller."""

    def __init__(self, config: ZWaveDevice, zen32: Zen32Info, device: SmartHub):
        """Initialize the class."""
        _LOG.debug("ZEN32 relay light init")
        self.config = config
        self.zen32 = zen32
        self.device = device

        super().__init__(
            create_entity_id(
                entity_type=EntityTypes.LIGHT,
                device_id=config.identifier,
                sub_device_id=relay_sub_id(zen32.node_id),
            ),
            zen32.name,
            [light.Features.ON_OFF, light.Features.TOGGLE],
            attributes={
                Attributes.STATE: States.ON if zen32.switch == "on" else States.OFF,
            },
            cmd_handler=self.cmd_handler,
        )

    async def cmd_handler(
        self, entity: Light, cmd_id: str, params: dict[str, Any] | None
    ) -> ucapi.StatusCodes:
        """
        ZEN32 relay command handler.

        :param entity: relay light entity
        :param cmd_id: command
        :param params: optional command parameters
        :return: status code of the command. StatusCodes.OK if the command succeeded.
        """
        _LOG.info(
            "Got %s command request: %s %s", entity.id, cmd_id, params if params else ""
        )

        try:
            match cmd_id:
                case light.Commands.ON:
                    res = await self.device.control_relay(self.zen32.node_id, True)
                case light.Commands.OFF:
                    res = await self.device.control_relay(self.zen32.node_id, False)
                case light.Commands.TOGGLE:
                    res = await self.device.control_relay(self.zen32.node_id)
                case _:
                    return ucapi.StatusCodes.NOT_IMPLEMENTED
        except Exception as ex:  # pylint: disable=broad-except
            _LOG.error("Error executing command %s: %s", cmd_id, ex)
            return ucapi.StatusCodes.BAD_REQUEST
        if not res:
            return ucapi.StatusCodes.SERVER_ERROR
        _LOG.debug("Command %s executed successfully", cmd_id)
        return ucapi.StatusCodes.OK


class Zen32LedLight(Light):
    """Representation of one ZEN32 button LED."""

    def __init__(
        self, config: ZWaveDevice, zen32: Zen32Info, led: int, device: SmartHub
    ):
        """Initialize the class."""
        _LOG.debug("ZEN32 LED %d light init", led)
        self.config = config
        self.zen32 = zen32
        self.led = led
        self.device = device

        controller = device.controller(zen32.node_id) if device else None
        settings = (
            controller.state.settings_led[led] if controller else [None, None, None]
        )
        attributes = led_attributes(settings)

        super().__init__(
            create_entity_id(
                entity_type=EntityTypes.LIGHT,
                device_id=config.identifier,
                sub_device_id=led_sub_id(zen32.node_id, led),
            ),
            f"{zen32.name} LED {led}",
            [light.Features.ON_OFF, light.Features.DIM, light.Features.COLOR],
            attributes=attributes,
            cmd_handler=self.cmd_handler,
        )

    async def cmd_handler(
        self, entity: Light, cmd_id: str, params: dict[str, Any] | None
    ) -> ucapi.StatusCodes:
        """
        ZEN32 LED command handler.

        ON takes optional brightness (0-255), hue and saturation; brightness is
        rounded to the LED's 30/60/100 % levels and the color to the nearest LED color.
        """
        _LOG.info(
            "Got %s command request: %s %s", entity.id, cmd_id, params if params else ""
        )
        params = params or {}

        try:
            match cmd_id:
                case light.Commands.ON:
                    brightness = None
                    if Attributes.BRIGHTNESS in params:
                        brightness = brightness_to_percent(params[Attributes.BRIGHTNESS])
                    color = nearest_color(
                        params.get(Attributes.HUE), params.get(Attributes.SATURATION)
                    )
                    res = await self.device.set_led(
                        self.zen32.node_id, self.led, color, brightness
                    )
                case light.Commands.OFF:
                    res = await self.device.set_led(self.zen32.node_id, self.led, None, 0)
                case _:
                    return ucapi.StatusCodes.NOT_IMPLEMENTED
        except Exception as ex:  # pylint: disable=broad-except
            _LOG.error("Error executing command %s: %s", cmd_id, ex)
            return ucapi.StatusCodes.BAD_REQUEST
        if not res:
            return ucapi.StatusCodes.BAD_REQUEST
        return ucapi.StatusCodes.OK


def zen32_lights(config: ZWaveDevice, zen32: Zen32Info, device: SmartHub) -> list[Light]:
    """All light entities of a ZEN32: the relay and one per LED."""
    return [Zen32RelayLight(config, zen32, device)] + [
        Zen32LedLight(config, zen32, led, device) for led in LED_INDICATOR_PARAMS
    ]
