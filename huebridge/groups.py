"""Groups API: rooms, zones and light groups."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Iterable, List, Optional, Union

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from .errors import HueError, NotExistError, ResponseError
from .lights import Light, LightsService, _apply
from .state import LightState, State

if TYPE_CHECKING:
    from .bridge import Bridge


class Group(BaseModel):
    """A group of lights, bound to the bridge it came from."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = ""
    name: str = ""
    lights: List[str] = Field(default_factory=list)
    type: str = ""
    action: Optional[LightState] = None

    _bridge: Any = PrivateAttr(default=None)

    @classmethod
    def from_api(cls, bridge: "Bridge", group_id: str, data: Dict[str, Any]) -> "Group":
        group = cls.model_validate({**data, "id": group_id})
        group._bridge = bridge
        return group

    @property
    def bridge(self) -> "Bridge":
        if self._bridge is None:
            raise HueError(f"group {self.id!r} is not bound to a bridge")
        return self._bridge

    async def rename(self, name: str) -> None:
        await self.bridge.call("PUT", "groups", self.id, body={"name": name})
        logger.info(f"Renamed group {self.name} to {name}")
        self.name = name

    async def set_lights(self, light_ids: Iterable[str]) -> None:
        """Replace the members of the group."""
        light_ids = [*light_ids]
        await self.bridge.call("PUT", "groups", self.id, body={"lights": light_ids})
        self.lights = light_ids

    async def set(self, state: State) -> None:
        """Apply ``state`` to every light in the group and reload the group."""
        await self.bridge.call("PUT", "groups", self.id, "action", body=state.to_payload())
        data = await self.bridge.call("GET", "groups", self.id)
        if not isinstance(data, dict):
            raise ResponseError(f"unexpected group payload: {data!r}", response=data)
        updated = type(self).model_validate({**data, "id": self.id})
        for field in type(self).model_fields:
            setattr(self, field, getattr(updated, field))
        logger.info(f"Set group {self.name} to {state.to_payload()}")

    async def on(self) -> None:
        await self.set(State(on=True))

    async def off(self) -> None:
        await self.set(State(on=False))

    async def toggle(self) -> None:
        if self.action is not None and self.action.on:
            await self.off()
        else:
            await self.on()

    async def delete(self) -> None:
        await self.bridge.call("DELETE", "groups", self.id)
        logger.info(f"Deleted group {self.name}")

    async def for_each_light(self, fn: Callable[[Light], Union[None, Awaitable[None]]]) -> None:
        """Call ``fn`` with each member light, skipping ids the bridge no longer knows."""
        known = await LightsService(self.bridge).id_map()
        for light_id in self.lights:
            light = known.get(light_id)
            if light is None:
                continue
            await _apply(fn, light)


class GroupsService:
    """Access to the groups of one bridge."""

    def __init__(self, bridge: "Bridge") -> None:
        self.bridge = bridge

    async def list(self) -> List[Group]:
        return [*(await self.id_map()).values()]

    async def get(self, name: str) -> Group:
        """Look up a group by name."""
        for group in (await self.id_map()).values():
            if group.name == name:
                return group
        raise NotExistError(f"group {name!r} does not exist")

    async def get_by_id(self, group_id: str) -> Group:
        groups = await self.id_map()
        if group_id not in groups:
            raise NotExistError(f"group {group_id!r} does not exist")
        return groups[group_id]

    async def create(self, name: str, light_ids: Iterable[str], type: str = "LightGroup") -> Group:
        """Create a group and return it as stored by the bridge."""
        payload = await self.bridge.call(
            "POST", "groups", body={"name": name, "lights": [*light_ids], "type": type}
        )
        try:
            group_id = payload[0]["success"]["id"]
        except (IndexError, KeyError, TypeError) as e:
            raise ResponseError(f"bad response: {payload!r}", response=payload) from e

        logger.info(f"Created group {name} with id {group_id}")
        return await self.get_by_id(str(group_id))

    async def id_map(self) -> Dict[str, Group]:
        """Groups keyed by their bridge id."""
        payload = await self.bridge.call("GET", "groups")
        if not isinstance(payload, dict):
            raise ResponseError(f"unexpected groups payload: {payload!r}", response=payload)
        groups = {
            group_id: Group.from_api(self.bridge, group_id, data)
            for group_id, data in payload.items()
        }
        logger.debug(f"Retrieved {len(groups)} groups from bridge")
        return groups
