"""
Hub resource views.

Read-through snapshots of bridge state. Nothing here is cached; every
instance is built from a fresh hub response. Field aliases give the camelCase
names exposed by both front ends.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class HubResource(BaseModel):
    """Common shape of anything the bridge assigns an identifier to."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str = ""
    type: Optional[str] = None

    def to_public(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class Light(HubResource):
    """A single lamp and its current state (native units)."""

    on: bool = False
    brightness: Optional[int] = None
    color_mode: Optional[str] = Field(default=None, alias="colorMode")
    hue: Optional[int] = None
    saturation: Optional[int] = None
    xy: Optional[List[float]] = None
    color_temp: Optional[int] = Field(default=None, alias="colorTemp")
    reachable: bool = False

    @classmethod
    def from_hub(cls, light_id: str, data: Dict[str, Any]) -> "Light":
        state = data.get("state") or {}
        return cls(
            id=str(light_id),
            name=data.get("name", ""),
            type=data.get("type"),
            on=bool(state.get("on", False)),
            brightness=state.get("bri"),
            color_mode=state.get("colormode"),
            hue=state.get("hue"),
            saturation=state.get("sat"),
            xy=state.get("xy"),
            color_temp=state.get("ct"),
            reachable=bool(state.get("reachable", False)),
        )


class Room(HubResource):
    """A group of lights: Room, Zone, Entertainment area, LightGroup..."""

    lights: List[str] = Field(default_factory=list)
    on: bool = False
    brightness: int = 0

    @classmethod
    def from_hub(cls, group_id: str, data: Dict[str, Any]) -> "Room":
        action = data.get("action") or {}
        return cls(
            id=str(group_id),
            name=data.get("name", ""),
            type=data.get("type"),
            lights=[str(light) for light in data.get("lights") or []],
            on=bool(action.get("on", False)),
            brightness=action.get("bri") or 0,
        )

    @property
    def is_room_or_zone(self) -> bool:
        return self.type in ("Room", "Zone")


class Scene(HubResource):
    """A stored light configuration, optionally bound to a group."""

    group: Optional[str] = None
    lights: List[str] = Field(default_factory=list)

    @classmethod
    def from_hub(cls, scene_id: str, data: Dict[str, Any]) -> "Scene":
        group = data.get("group")
        return cls(
            id=str(scene_id),
            name=data.get("name", ""),
            type=data.get("type"),
            group=str(group) if group is not None else None,
            lights=[str(light) for light in data.get("lights") or []],
        )
