"""
FlagLight Python Library

A Python library for driving LIFX smart lights from motorsport race-control flags.

This library provides three distinct layers of abstraction:

1. **flaglight.io**: Wire-level HTTP (authenticated requests, response classification, retry)
2. **flaglight.api**: LIFX API calls using flaglight.io (devices, states, pulse effects)
3. **flaglight.interface**: Session facade using flaglight.api (connection monitor, flag sequences)

Example usage:
    import flaglight

    # High-level interface (recommended for most users)
    async with flaglight.FlagControl() as control:
        await control.connect("c0ffee...")
        for device in control.devices:
            control.select_device(device.id)
        await control.apply_flag("green", initial=True)
        await control.apply_race_flag("VIRTUAL_SC")

    # Low-level API access (for advanced users)
    async with flaglight.LightClient(credential="c0ffee...") as client:
        protocol = flaglight.LightProtocol(client)
        await protocol.set_state("d073d5000001", flaglight.LightState(brightness=0.5))
"""

# High-level interface (recommended for most users)
from .interface import FlagControl, ConnectionStatus, DeviceDirectory, ConnectionMonitor, EffectSequencer

# API-level models
from .api import Device, Capabilities, Colour, LightState, PulseEffect, LightProtocol

# Low-level models
from .io import LightClient, Request, Response, ResponseType, RetryPolicy

# Shared types and exceptions
from .api import FlagEffect, RaceFlag, ConnectionState, MonitorState, DisconnectReason, ApplyResult, effect_for_race_flag
from .exceptions import (
    FlagLightError,
    InvalidCredentialError,
    TransientError,
    RateLimitedError,
    ServerError,
    RequestTimeoutError,
    NetworkError,
    RequestRejectedError,
    InvalidResponseError,
    SequenceAbortedError,
    ConfigurationError,
)

# Configuration, storage and utilities
from .config import FlagLightConfig, load_config
from .storage import MemoryCredentialStore, MemorySelectionStore, YamlStore
from .utils import run_with_keyboard_interrupt, setup_logging

__version__ = "0.1.0"

# Public API - these are the main classes users should import
__all__ = [
    # High-level interface (recommended)
    "FlagControl",
    "ConnectionStatus",
    "DeviceDirectory",
    "ConnectionMonitor",
    "EffectSequencer",

    # API-level models (for advanced users)
    "Device",
    "Capabilities",
    "Colour",
    "LightState",
    "PulseEffect",
    "LightProtocol",

    # Low-level models (for advanced users)
    "LightClient",
    "Request",
    "Response",
    "ResponseType",
    "RetryPolicy",

    # Exceptions
    "FlagLightError",
    "InvalidCredentialError",
    "TransientError",
    "RateLimitedError",
    "ServerError",
    "RequestTimeoutError",
    "NetworkError",
    "RequestRejectedError",
    "InvalidResponseError",
    "SequenceAbortedError",
    "ConfigurationError",

    # Types and enums
    "FlagEffect",
    "RaceFlag",
    "ConnectionState",
    "MonitorState",
    "DisconnectReason",
    "ApplyResult",
    "effect_for_race_flag",

    # Configuration, storage and utilities
    "FlagLightConfig",
    "load_config",
    "MemoryCredentialStore",
    "MemorySelectionStore",
    "YamlStore",
    "run_with_keyboard_interrupt",
    "setup_logging",
]
