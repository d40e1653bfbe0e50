"""Light state models shared by lights and groups."""

from __future__ import annotations

from typing import Any, Dict, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

COLOR_LOOP = "colorloop"
NO_EFFECT = "none"

Alert = Literal["none", "select", "lselect"]
Effect = Literal["none", "colorloop"]


class LightState(BaseModel):
    """Current state of a light as reported by the bridge."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    on: bool = False
    brightness: int = Field(default=0, alias="bri")
    hue: int = 0
    saturation: int = Field(default=0, alias="sat")
    xy: Tuple[float, float] = (0.0, 0.0)
    color_temp: float = Field(default=0, alias="ct")
    alert: str = "none"
    effect: str = "none"
    color_mode: str = Field(default="", alias="colormode")
    reachable: bool = False


class State(BaseModel):
    """Changes to apply to a light or group. Unset fields are left alone.

    Ranges follow the bridge API: brightness 1-254 (1 is not off), hue is a
    wrapping 0-65535 (0 and 65535 red, 25500 green, 46920 blue), saturation
    0-254, color temperature 153-500 mired, transition time in steps of
    100ms. The ``*_inc`` fields are ignored by the bridge when the matching
    absolute field is also set.
    """

    model_config = ConfigDict(populate_by_name=True)

    on: Optional[bool] = None
    brightness: Optional[int] = Field(default=None, alias="bri", ge=1, le=254)
    hue: Optional[int] = Field(default=None, ge=0, le=65535)
    saturation: Optional[int] = Field(default=None, alias="sat", ge=0, le=254)
    xy: Optional[Tuple[float, float]] = None
    color_temp: Optional[int] = Field(default=None, alias="ct", ge=153, le=500)
    alert: Optional[Alert] = None
    effect: Optional[Effect] = None
    transition_time: Optional[int] = Field(default=None, alias="transitiontime", ge=0, le=65535)
    brightness_inc: Optional[int] = Field(default=None, alias="bri_inc", ge=-254, le=254)
    saturation_inc: Optional[int] = Field(default=None, alias="sat_inc", ge=-254, le=254)
    hue_inc: Optional[int] = Field(default=None, ge=-65534, le=65534)
    color_temp_inc: Optional[int] = Field(default=None, alias="ct_inc", ge=-65534, le=65534)
    xy_inc: Optional[Tuple[float, float]] = None

    def to_payload(self) -> Dict[str, Any]:
        """Request body for the bridge, using its field names."""
        payload = self.model_dump(by_alias=True, exclude_none=True)
        for key in ("xy", "xy_inc"):
            if key in payload:
                payload[key] = list(payload[key])
        return payload
