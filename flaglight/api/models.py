"""
FlagLight API-level models.

This module contains models that belong to the api layer:
- Device, Capabilities (snapshots returned by GET /lights/all)
- Colour, LightState (body of PUT /lights/{selector}/state)
- PulseEffect (body of POST /lights/{selector}/effects/pulse)
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Self

from .types import Const


@dataclass(frozen=True)
class Capabilities:
    """What a device can be told to do"""
    power: bool = True
    color: bool = False
    brightness: bool = True

    @classmethod
    def from_json(cls, data: Optional[dict]) -> Self:
        if not data:
            return cls()
        return cls(color=bool(data.get("has_color", False)))


@dataclass(frozen=True)
class Device:
    """Represents a controllable light. Only ever referenced by id."""
    id: str
    label: str
    capabilities: Capabilities = field(default_factory=Capabilities)
    connected: bool = True
    power: Optional[str] = None
    brightness: Optional[float] = None
    group: Optional[str] = None
    location: Optional[str] = None
    product: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.label or self.id

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> Self:
        if not isinstance(data, dict) or not data.get("id"):
            raise ValueError(f"Device entry has no id: {data!r}")
        product = data.get("product") or {}
        return cls(
            id=str(data["id"]),
            label=str(data.get("label") or data["id"]),
            capabilities=Capabilities.from_json(product.get("capabilities")),
            connected=bool(data.get("connected", True)),
            power=data.get("power"),
            brightness=data.get("brightness"),
            group=(data.get("group") or {}).get("name"),
            location=(data.get("location") or {}).get("name"),
            product=product.get("name"),
        )

    def __repr__(self) -> str:
        return f"Device<{self.id}: {self.label}>"


@dataclass(frozen=True)
class Colour:
    """Represents a HSBK colour"""
    hue: float = 0
    saturation: float = 1.0
    kelvin: int = Const.FLAG_KELVIN
    brightness: Optional[float] = None

    def __post_init__(self):
        if not 0 <= self.hue <= Const.MAX_HUE:
            raise ValueError(f"Hue must be between 0 and {Const.MAX_HUE}, received {self.hue}")
        if not 0 <= self.saturation <= 1:
            raise ValueError(f"Saturation must be between 0 and 1, received {self.saturation}")
        if not Const.MIN_KELVIN <= self.kelvin <= Const.MAX_KELVIN:
            raise ValueError(f"Kelvin must be between {Const.MIN_KELVIN} and {Const.MAX_KELVIN}, received {self.kelvin}")
        if self.brightness is not None and not 0 <= self.brightness <= 1:
            raise ValueError(f"Brightness must be between 0 and 1, received {self.brightness}")

    def with_brightness(self, brightness: Optional[float]) -> Self:
        return Colour(hue=self.hue, saturation=self.saturation, kelvin=self.kelvin, brightness=brightness)

    def to_json(self) -> dict[str, Any]:
        data: dict[str, Any] = {"hue": self.hue, "saturation": self.saturation, "kelvin": self.kelvin}
        if self.brightness is not None:
            data["brightness"] = self.brightness
        return data


@dataclass(frozen=True)
class LightState:
    """A single target state for every device in a selector"""
    power: str = "on"
    color: Optional[Colour] = None
    brightness: Optional[float] = None
    duration: Optional[float] = None # seconds

    def __post_init__(self):
        if self.power not in ("on", "off"):
            raise ValueError(f"Power must be 'on' or 'off', received {self.power!r}")
        if self.brightness is not None and not 0 <= self.brightness <= 1:
            raise ValueError(f"Brightness must be between 0 and 1, received {self.brightness}")
        if self.duration is not None and self.duration < 0:
            raise ValueError(f"Duration must not be negative, received {self.duration}")

    def to_json(self) -> dict[str, Any]:
        data: dict[str, Any] = {"power": self.power}
        if self.color is not None: data["color"] = self.color.to_json()
        if self.brightness is not None: data["brightness"] = self.brightness
        if self.duration is not None: data["duration"] = self.duration
        return data


@dataclass(frozen=True)
class PulseEffect:
    """Pulse between from_color and color, period seconds per cycle"""
    color: Colour
    from_color: Colour
    period: float
    cycles: int
    power_on: bool = True

    def __post_init__(self):
        if self.period <= 0:
            raise ValueError(f"Pulse period must be positive, received {self.period}")
        if self.cycles <= 0:
            raise ValueError(f"Pulse cycles must be positive, received {self.cycles}")

    @property
    def length(self) -> float:
        return self.period * self.cycles

    def to_json(self) -> dict[str, Any]:
        return {
            "color": self.color.to_json(),
            "from_color": self.from_color.to_json(),
            "period": self.period,
            "cycles": self.cycles,
            "power_on": self.power_on,
        }
