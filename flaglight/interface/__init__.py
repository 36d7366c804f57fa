"""
High-level interface models and client.

This module contains the pieces that belong to the interface layer:
- FlagControl (the session facade for front ends and auto-mode drivers)
- DeviceDirectory, ConnectionMonitor (connection liveness)
- EffectSequencer and the flag step tables
"""

from .interface import FlagControl, ConnectionStatus
from .directory import DeviceDirectory
from .monitor import ConnectionMonitor
from .sequencer import EffectSequencer, SetState, Pulse, Hold, FLAG_SEQUENCES, INITIAL_SEQUENCES, steps_for

__all__ = [
    # High-level client
    "FlagControl",
    "ConnectionStatus",

    # Components
    "DeviceDirectory",
    "ConnectionMonitor",
    "EffectSequencer",

    # Sequencing
    "SetState",
    "Pulse",
    "Hold",
    "FLAG_SEQUENCES",
    "INITIAL_SEQUENCES",
    "steps_for",
]
