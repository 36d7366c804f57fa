"""
API-level type definitions.

This module contains types and enums that belong to the API layer:
- Flag effects and the race-control flag vocabulary
- Connection, monitor and apply outcomes
- Constants used by the API layer
"""

from enum import Enum
from typing import Self


class FlagEffect(Enum):
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"
    SAFETY_CAR = "safety_car"
    CHECKERED = "checkered"

    @classmethod
    def parse(cls, value: "str | FlagEffect") -> Self:
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower().replace("-", "_")
        key = _FLAG_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"Unknown flag {value!r}, expected one of {', '.join(f.value for f in cls)}") from None


_FLAG_ALIASES = {
    "safety": "safety_car",
    "safetycar": "safety_car",
    "sc": "safety_car",
    "chequered": "checkered",
}


class RaceFlag(Enum):
    """Flag vocabulary used by race-control feeds"""
    GREEN = "GREEN"
    YELLOW = "YELLOW"
    RED = "RED"
    SAFETY_CAR = "SAFETY_CAR"
    VIRTUAL_SC = "VIRTUAL_SC"
    CHECKERED = "CHECKERED"
    CLEAR = "CLEAR"

    def effect(self) -> FlagEffect:
        return _RACE_FLAG_EFFECTS[self]


_RACE_FLAG_EFFECTS = {
    RaceFlag.GREEN: FlagEffect.GREEN,
    RaceFlag.YELLOW: FlagEffect.YELLOW,
    RaceFlag.RED: FlagEffect.RED,
    RaceFlag.SAFETY_CAR: FlagEffect.SAFETY_CAR,
    RaceFlag.VIRTUAL_SC: FlagEffect.SAFETY_CAR,
    RaceFlag.CHECKERED: FlagEffect.CHECKERED,
    RaceFlag.CLEAR: FlagEffect.GREEN,
}


def effect_for_race_flag(race_flag: "str | RaceFlag") -> FlagEffect:
    """Map a race-control flag (e.g. "VIRTUAL_SC") onto the light effect that represents it."""
    if isinstance(race_flag, RaceFlag):
        return race_flag.effect()
    key = str(race_flag).strip().upper().replace(" ", "_")
    if key == "CHEQUERED": key = "CHECKERED"
    try:
        return RaceFlag(key).effect()
    except ValueError:
        raise ValueError(f"Unknown race flag {race_flag!r}") from None


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"


class MonitorState(Enum):
    IDLE = "idle"
    MONITORING = "monitoring"
    RECONNECTING = "reconnecting"
    DISCONNECTED = "disconnected"


class DisconnectReason(Enum):
    USER = "user"                              # disconnect() was called
    INVALID_CREDENTIAL = "invalid_credential"  # re-authentication required
    CONNECTION_LOST = "connection_lost"        # monitor gave up reconnecting
    UNREACHABLE = "unreachable"                # initial fetch failed transiently


class ApplyResult(Enum):
    APPLIED = "applied"
    NO_SELECTION = "no_selection"
    DISCONNECTED = "disconnected"
    COALESCED = "coalesced"
    FAILED = "failed"


# API-level constants
class Const:
    """API-level constants"""
    # Colour limits
    MAX_HUE = 360
    MIN_KELVIN = 1500
    MAX_KELVIN = 9000

    # Flag colours
    FLAG_KELVIN = 3500
    GREEN_HUE = 120
    YELLOW_HUE = 60
    RED_HUE = 0
    CHECKERED_WHITE_KELVIN = 9000
    CHECKERED_DARK_KELVIN = 2500

    # Effect timing, in seconds
    SETTLE_HOLD = 3.0
    ALERT_PULSE_PERIOD = 0.5
    ALERT_PULSE_CYCLES = 6
    CHECKERED_PULSE_PERIOD = 0.3
    CHECKERED_PULSE_CYCLES = 10
    PULSE_FROM_BRIGHTNESS = 0.3

    # Connection monitor, in seconds
    CHECK_INTERVAL = 60.0
    RECONNECT_ATTEMPTS = 5
    RECONNECT_BASE_DELAY = 5.0
    RECONNECT_MAX_DELAY = 30.0
