"""
Flag effect sequencing.

Every flag maps, through the FLAG_SEQUENCES table, to a fixed tuple of steps.
The EffectSequencer runs them strictly in order against one selector and waits
for each step to finish before issuing the next one.

Pulses show a transient state (hazard, ceremony). The steady state that follows
shows the persistent flag, so a light that misses later updates still reflects
track status.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from ..api import LightProtocol, Colour, LightState, PulseEffect, FlagEffect
from ..api.types import Const
from ..exceptions import FlagLightError, InvalidCredentialError, SequenceAbortedError


@dataclass(frozen=True)
class SetState:
    state: LightState


@dataclass(frozen=True)
class Pulse:
    effect: PulseEffect


@dataclass(frozen=True)
class Hold:
    seconds: float


Step = SetState | Pulse | Hold


GREEN = Colour(hue=Const.GREEN_HUE, saturation=1.0, kelvin=Const.FLAG_KELVIN)
YELLOW = Colour(hue=Const.YELLOW_HUE, saturation=1.0, kelvin=Const.FLAG_KELVIN)
RED = Colour(hue=Const.RED_HUE, saturation=1.0, kelvin=Const.FLAG_KELVIN)
SAFETY_CAR = YELLOW
CHECKERED_WHITE = Colour(hue=0, saturation=0.0, kelvin=Const.CHECKERED_WHITE_KELVIN, brightness=1.0)
CHECKERED_DARK = Colour(hue=0, saturation=0.0, kelvin=Const.CHECKERED_DARK_KELVIN, brightness=0.0)


def alert_pulse(colour: Colour) -> PulseEffect:
    return PulseEffect(
        color=colour.with_brightness(1.0),
        from_color=colour.with_brightness(Const.PULSE_FROM_BRIGHTNESS),
        period=Const.ALERT_PULSE_PERIOD,
        cycles=Const.ALERT_PULSE_CYCLES,
    )


FLAG_SEQUENCES: dict[FlagEffect, tuple[Step, ...]] = {
    FlagEffect.GREEN: (
        SetState(LightState(color=GREEN, brightness=0.5, duration=1.0)),
    ),
    FlagEffect.YELLOW: (
        SetState(LightState(color=YELLOW, brightness=1.0, duration=0.1)),
    ),
    FlagEffect.RED: (
        Pulse(alert_pulse(RED)),
        Hold(Const.SETTLE_HOLD),
        SetState(LightState(color=RED, brightness=1.0)),
    ),
    FlagEffect.SAFETY_CAR: (
        Pulse(alert_pulse(SAFETY_CAR)),
        Hold(Const.SETTLE_HOLD),
        SetState(LightState(color=SAFETY_CAR, brightness=1.0)),
    ),
    FlagEffect.CHECKERED: (
        Pulse(PulseEffect(
            color=CHECKERED_WHITE,
            from_color=CHECKERED_DARK,
            period=Const.CHECKERED_PULSE_PERIOD,
            cycles=Const.CHECKERED_PULSE_CYCLES,
        )),
        Hold(Const.SETTLE_HOLD),
        # Session over, back to track clear
        SetState(LightState(color=GREEN, brightness=1.0)),
    ),
}

# Used instead of FLAG_SEQUENCES when a session first goes live
INITIAL_SEQUENCES: dict[FlagEffect, tuple[Step, ...]] = {
    FlagEffect.GREEN: (
        SetState(LightState(color=GREEN, brightness=1.0, duration=0.1)),
        Hold(Const.SETTLE_HOLD),
        SetState(LightState(color=GREEN, brightness=0.5, duration=2.0)),
    ),
}


def steps_for(flag: FlagEffect, initial: bool = False) -> tuple[Step, ...]:
    if initial and flag in INITIAL_SEQUENCES:
        return INITIAL_SEQUENCES[flag]
    return FLAG_SEQUENCES[flag]


class EffectSequencer:

    def __init__(self,
                 protocol: LightProtocol,
                 sleep: Optional[Callable[[float], Awaitable[None]]] = None,
                 settle_hold: Optional[float] = None,
                 logger: Optional[logging.Logger] = None):
        self.protocol = protocol
        self.sleep = sleep or asyncio.sleep
        self.settle_hold = settle_hold
        self.logger = logger or logging.getLogger(__name__)

    async def apply_flag(self, selector: str, flag: FlagEffect, initial: bool = False) -> None:
        """
        Run the sequence for flag against selector.

        A failing step stops the sequence; earlier steps are not rolled back.
        InvalidCredentialError propagates unchanged, anything else is wrapped in
        SequenceAbortedError.
        """
        steps = steps_for(flag, initial)
        self.logger.info(f"Applying {flag.value} flag{' (initial)' if initial else ''} to {selector}")
        for index, step in enumerate(steps):
            try:
                await self._run_step(selector, step)
            except InvalidCredentialError:
                raise
            except FlagLightError as e:
                self.logger.error(f"{flag.value} flag stopped at step {index + 1} of {len(steps)}: {e.message}")
                raise SequenceAbortedError(flag, index + 1, e) from e

    async def _run_step(self, selector: str, step: Step) -> None:
        match step:
            case SetState(state=state):
                await self.protocol.set_state(selector, state)
            case Pulse(effect=effect):
                await self.protocol.pulse(selector, effect)
            case Hold(seconds=seconds):
                await self.sleep(self.settle_hold if self.settle_hold is not None else seconds)
            case _:
                raise TypeError(f"Unknown step {step!r}")
