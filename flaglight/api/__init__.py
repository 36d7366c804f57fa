"""
API-level models and protocol implementation.

This module contains models and types that belong to the API layer:
- Device, Capabilities (what the account can control)
- Colour, LightState, PulseEffect (request bodies)
- LightProtocol (implements the LIFX HTTP API calls)
- Types and enums used by the API layer
"""

from .models import Device, Capabilities, Colour, LightState, PulseEffect
from .protocol import LightProtocol
from .types import (
    FlagEffect,
    RaceFlag,
    ConnectionState,
    MonitorState,
    DisconnectReason,
    ApplyResult,
    effect_for_race_flag,
)

__all__ = [
    # API-level models
    "Device",
    "Capabilities",
    "Colour",
    "LightState",
    "PulseEffect",
    "LightProtocol",

    # API-level types
    "FlagEffect",
    "RaceFlag",
    "ConnectionState",
    "MonitorState",
    "DisconnectReason",
    "ApplyResult",
    "effect_for_race_flag",
]
