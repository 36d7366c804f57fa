import asyncio

import pytest

from flaglight import ConnectionMonitor, MonitorState, InvalidCredentialError, ServerError, NetworkError


class FakeDirectory:
    """refresh() raises the scripted errors in turn, then succeeds."""

    def __init__(self, *errors):
        self.errors = list(errors)
        self.refreshes = 0

    async def refresh(self):
        self.refreshes += 1
        if self.errors:
            raise self.errors.pop(0)
        return []


class Transitions:

    def __init__(self):
        self.seen = []

    async def __call__(self, state, error):
        self.seen.append((state, error))

    @property
    def states(self):
        return [state for state, _ in self.seen]


def make_monitor(directory, sleeper):
    transitions = Transitions()
    monitor = ConnectionMonitor(directory, on_state_change=transitions, sleep=sleeper)
    monitor.state = MonitorState.MONITORING
    return monitor, transitions


def test_reconnect_delay_is_capped():
    monitor = ConnectionMonitor(FakeDirectory())
    assert [monitor.reconnect_delay(n) for n in range(1, 6)] == [5, 10, 20, 30, 30]


@pytest.mark.asyncio
async def test_healthy_tick(sleeper):
    directory = FakeDirectory()
    monitor, transitions = make_monitor(directory, sleeper)

    assert await monitor.tick() == MonitorState.MONITORING
    assert directory.refreshes == 1
    assert transitions.seen == []


@pytest.mark.asyncio
async def test_gives_up_after_five_reconnect_attempts(sleeper):
    last = NetworkError()
    directory = FakeDirectory(ServerError(), *[ServerError()] * 4, last, ServerError())
    monitor, transitions = make_monitor(directory, sleeper)

    state = await monitor.tick()

    assert state == MonitorState.DISCONNECTED
    # one failed check plus five reconnect attempts, no sixth
    assert directory.refreshes == 6
    assert sleeper.delays == [5, 10, 20, 30]
    assert transitions.states == [MonitorState.RECONNECTING, MonitorState.DISCONNECTED]
    assert transitions.seen[-1][1] is last
    assert not monitor.running


@pytest.mark.asyncio
async def test_reconnect_succeeds_on_third_attempt(sleeper):
    directory = FakeDirectory(ServerError(), ServerError(), ServerError())
    monitor, transitions = make_monitor(directory, sleeper)

    state = await monitor.tick()

    assert state == MonitorState.MONITORING
    assert directory.refreshes == 4
    assert sleeper.delays == [5, 10]
    assert transitions.states == [MonitorState.RECONNECTING, MonitorState.MONITORING]
    assert monitor.attempts == 0


@pytest.mark.asyncio
async def test_invalid_credential_disconnects_immediately(sleeper):
    error = InvalidCredentialError()
    directory = FakeDirectory(error)
    monitor, transitions = make_monitor(directory, sleeper)

    assert await monitor.tick() == MonitorState.DISCONNECTED
    assert directory.refreshes == 1
    assert sleeper.delays == []
    assert transitions.seen == [(MonitorState.DISCONNECTED, error)]


@pytest.mark.asyncio
async def test_invalid_credential_during_reconnect(sleeper):
    directory = FakeDirectory(ServerError(), ServerError(), InvalidCredentialError())
    monitor, transitions = make_monitor(directory, sleeper)

    assert await monitor.tick() == MonitorState.DISCONNECTED
    assert directory.refreshes == 3
    assert transitions.states == [MonitorState.RECONNECTING, MonitorState.DISCONNECTED]


@pytest.mark.asyncio
async def test_tick_is_ignored_while_reconnecting(sleeper):
    sleeper.gate = asyncio.Event()
    directory = FakeDirectory(ServerError(), ServerError())
    monitor, _ = make_monitor(directory, sleeper)

    reconnect = asyncio.create_task(monitor.tick())
    while not sleeper.delays:
        await asyncio.sleep(0)
    assert monitor.reconnecting

    assert await monitor.tick() == MonitorState.RECONNECTING
    assert directory.refreshes == 2

    sleeper.gate.set()
    assert await reconnect == MonitorState.MONITORING


@pytest.mark.asyncio
async def test_tick_does_nothing_when_idle(sleeper):
    directory = FakeDirectory()
    monitor = ConnectionMonitor(directory, sleep=sleeper)

    assert await monitor.tick() == MonitorState.IDLE
    assert directory.refreshes == 0


@pytest.mark.asyncio
async def test_start_and_stop(sleeper):
    monitor = ConnectionMonitor(FakeDirectory(), sleep=sleeper)

    monitor.start()
    assert monitor.running
    await asyncio.sleep(0)

    await monitor.stop()
    assert monitor.state == MonitorState.IDLE
    assert not monitor.running


@pytest.mark.asyncio
async def test_healthy_tick_reports_contact(sleeper):
    checks = []

    async def on_check_ok():
        checks.append(True)

    monitor = ConnectionMonitor(FakeDirectory(ServerError()), on_check_ok=on_check_ok, sleep=sleeper)
    monitor.state = MonitorState.MONITORING

    await monitor.tick()
    assert checks == []

    await monitor.tick()
    assert checks == [True]
