"""Lights API: listing, lookup and state changes."""

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from .errors import HueError, NotExistError, ResponseError
from .state import Effect, LightState, State

if TYPE_CHECKING:
    from .bridge import Bridge


async def _apply(fn: Callable[[Any], Union[None, Awaitable[None]]], item: Any) -> None:
    """Call ``fn`` on ``item``, awaiting the result when ``fn`` is async."""
    result = fn(item)
    if inspect.isawaitable(result):
        await result


class Light(BaseModel):
    """A light known to the bridge, bound to the bridge it came from."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = ""
    # MAC address plus endpoint id, e.g. AA:BB:CC:DD:EE:FF:00:11-XX
    uid: str = Field(default="", alias="uniqueid")
    sw_version: str = Field(default="", alias="swversion")
    state: LightState = Field(default_factory=LightState)
    type: str = ""
    name: str = ""
    model_id: str = Field(default="", alias="modelid")
    manufacturer_name: str = Field(default="", alias="manufacturername")

    _bridge: Any = PrivateAttr(default=None)

    @classmethod
    def from_api(cls, bridge: "Bridge", light_id: str, data: Dict[str, Any]) -> "Light":
        light = cls.model_validate({**data, "id": light_id})
        light._bridge = bridge
        return light

    @property
    def bridge(self) -> "Bridge":
        if self._bridge is None:
            raise HueError(f"light {self.id!r} is not bound to a bridge")
        return self._bridge

    async def on(self) -> None:
        """Turn the light on."""
        await self.set(State(on=True))

    async def off(self) -> None:
        """Turn the light off."""
        await self.bridge.call("PUT", "lights", self.id, "state", body={"on": False})
        self.state.on = False
        logger.info(f"Turned off light {self.name}")

    async def toggle(self) -> None:
        if self.state.on:
            await self.off()
        else:
            await self.on()

    async def rename(self, name: str) -> None:
        """Change the name the light is addressed by."""
        await self.bridge.call("PUT", "lights", self.id, body={"name": name})
        logger.info(f"Renamed light {self.name} to {name}")
        self.name = name

    async def set(self, state: State) -> None:
        """Apply ``state`` and reload the light from the bridge."""
        await self.bridge.call("PUT", "lights", self.id, "state", body=state.to_payload())
        data = await self.bridge.call("GET", "lights", self.id)
        self._refresh(data)
        logger.info(f"Set light {self.name} to {state.to_payload()}")

    async def set_brightness(self, brightness: int, transition_time: Optional[int] = None) -> None:
        await self.set(State(on=True, brightness=brightness, transition_time=transition_time))

    async def set_color(self, xy: Tuple[float, float], transition_time: Optional[int] = None) -> None:
        await self.set(State(on=True, xy=xy, transition_time=transition_time))

    async def set_effect(self, effect: Effect) -> None:
        await self.set(State(effect=effect))

    def _refresh(self, data: Any) -> None:
        if not isinstance(data, dict):
            raise ResponseError(f"unexpected light payload: {data!r}", response=data)
        updated = type(self).model_validate({**data, "id": self.id})
        for field in type(self).model_fields:
            setattr(self, field, getattr(updated, field))


class LightsService:
    """Access to the lights of one bridge."""

    def __init__(self, bridge: "Bridge") -> None:
        self.bridge = bridge

    async def list(self) -> List[Light]:
        """All lights the bridge knows about."""
        return [*(await self.id_map()).values()]

    async def get(self, name: str) -> Light:
        """Look up a light by name."""
        for light in (await self.id_map()).values():
            if light.name == name:
                return light
        raise NotExistError(f"light {name!r} does not exist")

    async def get_by_id(self, light_id: str) -> Light:
        lights = await self.id_map()
        if light_id not in lights:
            raise NotExistError(f"light {light_id!r} does not exist")
        return lights[light_id]

    async def for_each(self, fn: Callable[[Light], Union[None, Awaitable[None]]]) -> None:
        """Call ``fn`` with every light; ``fn`` may be a coroutine function."""
        for light in (await self.id_map()).values():
            await _apply(fn, light)

    async def on(self) -> None:
        """Turn every light on."""
        await self.for_each(Light.on)

    async def off(self) -> None:
        """Turn every light off."""
        await self.for_each(Light.off)

    async def toggle(self) -> None:
        await self.for_each(Light.toggle)

    async def scan(self) -> None:
        """Ask the bridge to search for new lights."""
        await self.bridge.call("POST", "lights")
        logger.info("Started search for new lights")

    async def id_map(self) -> Dict[str, Light]:
        """Lights keyed by their bridge id."""
        payload = await self.bridge.call("GET", "lights")
        if not isinstance(payload, dict):
            raise ResponseError(f"unexpected lights payload: {payload!r}", response=payload)
        lights = {
            light_id: Light.from_api(self.bridge, light_id, data)
            for light_id, data in payload.items()
        }
        logger.debug(f"Retrieved {len(lights)} lights from bridge")
        return lights
