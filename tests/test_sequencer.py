import asyncio

import pytest

from flaglight import EffectSequencer, FlagEffect, InvalidCredentialError, SequenceAbortedError, ServerError
from flaglight.interface import FLAG_SEQUENCES, SetState, Pulse, Hold, steps_for


class RecordingProtocol:
    """Records set_state/pulse calls into a shared log. Failures are scripted by call index."""

    def __init__(self, log: list, failures: dict | None = None):
        self.log = log
        self.failures = failures or {}
        self.pulse_gate: asyncio.Event | None = None
        self.calls = 0

    async def _call(self, name, selector, payload):
        self.calls += 1
        if self.calls in self.failures:
            raise self.failures[self.calls]
        self.log.append((name, selector, payload))

    async def set_state(self, selector, state):
        await self._call("state", selector, state)

    async def pulse(self, selector, effect):
        if self.pulse_gate is not None:
            self.log.append(("pulse-sent", selector, effect))
            await self.pulse_gate.wait()
        await self._call("pulse", selector, effect)


def make_sequencer(failures=None):
    log = []

    async def hold(seconds):
        log.append(("hold", seconds))

    protocol = RecordingProtocol(log, failures)
    return EffectSequencer(protocol, sleep=hold), protocol, log


def test_every_flag_has_a_sequence():
    assert set(FLAG_SEQUENCES) == set(FlagEffect)


@pytest.mark.asyncio
async def test_red_pulses_holds_then_settles():
    sequencer, _, log = make_sequencer()

    await sequencer.apply_flag("A,B", FlagEffect.RED)

    assert [entry[0] for entry in log] == ["pulse", "hold", "state"]
    _, selector, pulse = log[0]
    assert selector == "A,B"
    assert pulse.color.hue == 0 and pulse.color.brightness == 1.0
    assert pulse.from_color.brightness == 0.3
    assert (pulse.period, pulse.cycles) == (0.5, 6)
    assert log[1] == ("hold", 3.0)
    state = log[2][2]
    assert state.color.hue == 0 and state.brightness == 1.0


@pytest.mark.asyncio
async def test_steady_state_waits_for_pulse_to_resolve():
    sequencer, protocol, log = make_sequencer()
    protocol.pulse_gate = asyncio.Event()

    task = asyncio.create_task(sequencer.apply_flag("A,B", FlagEffect.RED))
    for _ in range(5):
        await asyncio.sleep(0)
    assert [entry[0] for entry in log] == ["pulse-sent"]

    protocol.pulse_gate.set()
    await task
    assert [entry[0] for entry in log] == ["pulse-sent", "pulse", "hold", "state"]


@pytest.mark.asyncio
async def test_initial_green():
    sequencer, _, log = make_sequencer()

    await sequencer.apply_flag("A", FlagEffect.GREEN, initial=True)

    assert [entry[0] for entry in log] == ["state", "hold", "state"]
    first, second = log[0][2], log[2][2]
    assert (first.color.hue, first.brightness, first.duration) == (120, 1.0, 0.1)
    assert (second.color.hue, second.brightness, second.duration) == (120, 0.5, 2.0)


@pytest.mark.asyncio
async def test_green_without_initial_goes_straight_to_half_brightness():
    sequencer, _, log = make_sequencer()

    await sequencer.apply_flag("A", FlagEffect.GREEN)

    assert len(log) == 1
    state = log[0][2]
    assert (state.color.hue, state.brightness, state.duration) == (120, 0.5, 1.0)


@pytest.mark.asyncio
async def test_yellow_is_a_fast_steady_state():
    sequencer, _, log = make_sequencer()

    await sequencer.apply_flag("A", FlagEffect.YELLOW, initial=True)

    assert len(log) == 1
    state = log[0][2]
    assert (state.color.hue, state.brightness, state.duration) == (60, 1.0, 0.1)


@pytest.mark.asyncio
async def test_checkered_strobes_white_then_returns_to_green():
    sequencer, _, log = make_sequencer()

    await sequencer.apply_flag("A", FlagEffect.CHECKERED)

    pulse, final = log[0][2], log[2][2]
    assert pulse.color.kelvin == 9000 and pulse.color.saturation == 0
    assert pulse.from_color.brightness == 0
    assert (pulse.period, pulse.cycles) == (0.3, 10)
    assert final.color.hue == 120 and final.brightness == 1.0


@pytest.mark.asyncio
async def test_safety_car_pulses_yellow():
    sequencer, _, log = make_sequencer()

    await sequencer.apply_flag("A", FlagEffect.SAFETY_CAR)

    assert [entry[0] for entry in log] == ["pulse", "hold", "state"]
    assert log[0][2].color.hue == 60
    assert log[2][2].color.hue == 60


@pytest.mark.asyncio
async def test_failed_step_aborts_the_rest():
    cause = ServerError()
    sequencer, _, log = make_sequencer(failures={1: cause})

    with pytest.raises(SequenceAbortedError) as excinfo:
        await sequencer.apply_flag("A", FlagEffect.RED)

    assert excinfo.value.flag == FlagEffect.RED
    assert excinfo.value.step == 1
    assert excinfo.value.cause is cause
    assert log == []


@pytest.mark.asyncio
async def test_failure_after_pulse_keeps_earlier_steps():
    sequencer, _, log = make_sequencer(failures={2: ServerError()})

    with pytest.raises(SequenceAbortedError) as excinfo:
        await sequencer.apply_flag("A", FlagEffect.RED)

    assert excinfo.value.step == 3
    assert [entry[0] for entry in log] == ["pulse", "hold"]


@pytest.mark.asyncio
async def test_invalid_credential_propagates_unwrapped():
    sequencer, _, _ = make_sequencer(failures={1: InvalidCredentialError()})

    with pytest.raises(InvalidCredentialError):
        await sequencer.apply_flag("A", FlagEffect.YELLOW)


@pytest.mark.asyncio
async def test_configured_settle_hold():
    log = []

    async def hold(seconds):
        log.append(("hold", seconds))

    sequencer = EffectSequencer(RecordingProtocol(log), sleep=hold, settle_hold=0.5)
    await sequencer.apply_flag("A", FlagEffect.RED)

    assert ("hold", 0.5) in log


def test_steps_for_falls_back_when_no_initial_variant():
    assert steps_for(FlagEffect.RED, initial=True) == FLAG_SEQUENCES[FlagEffect.RED]
    assert isinstance(steps_for(FlagEffect.GREEN, initial=True)[1], Hold)
    assert isinstance(steps_for(FlagEffect.RED)[0], Pulse)
    assert isinstance(steps_for(FlagEffect.YELLOW)[0], SetState)
