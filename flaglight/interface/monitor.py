"""
Connection liveness monitor.

Periodically asks the DeviceDirectory for the device list. When a check fails
it runs a bounded reconnect procedure with increasing backoff; when that is
exhausted (or the credential is rejected) it stops itself and reports
MonitorState.DISCONNECTED to its owner.

States: IDLE -> MONITORING -> RECONNECTING -> (MONITORING | DISCONNECTED)
"""

import asyncio
import logging
import traceback
from typing import Awaitable, Callable, Optional

from ..api.types import MonitorState, Const
from ..exceptions import FlagLightError, InvalidCredentialError
from .directory import DeviceDirectory

CallbackStateChange = Callable[[MonitorState, Optional[FlagLightError]], Awaitable[None]]
CallbackCheckOk = Callable[[], Awaitable[None]]


class ConnectionMonitor:

    def __init__(self,
                 directory: DeviceDirectory,
                 on_state_change: Optional[CallbackStateChange] = None,
                 on_check_ok: Optional[CallbackCheckOk] = None,
                 check_interval: float = Const.CHECK_INTERVAL,
                 max_attempts: int = Const.RECONNECT_ATTEMPTS,
                 base_delay: float = Const.RECONNECT_BASE_DELAY,
                 max_delay: float = Const.RECONNECT_MAX_DELAY,
                 sleep: Optional[Callable[[float], Awaitable[None]]] = None,
                 logger: Optional[logging.Logger] = None):
        self.directory = directory
        self.on_state_change = on_state_change
        self.on_check_ok = on_check_ok
        self.check_interval = check_interval
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.sleep = sleep or asyncio.sleep
        self.logger = logger or logging.getLogger(__name__)
        self.state: MonitorState = MonitorState.IDLE
        self.attempts: int = 0
        self._task: Optional[asyncio.Task] = None
        self._reconnect_lock = asyncio.Lock()
        self._stopping = False

    def __repr__(self) -> str:
        return f"ConnectionMonitor<{self.state.value}>"

    def reconnect_delay(self, attempt: int) -> float:
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)

    @property
    def running(self) -> bool:
        return self.state in (MonitorState.MONITORING, MonitorState.RECONNECTING)

    @property
    def reconnecting(self) -> bool:
        return self._reconnect_lock.locked()

    # ============================
    # Start / Stop
    # ============================

    def start(self) -> None:
        if self._task and not self._task.done():
            self.logger.debug("Connection monitor already running")
            return
        self._stopping = False
        self.attempts = 0
        self.state = MonitorState.MONITORING
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop monitoring. Safe to call from inside the monitor's own callbacks."""
        self._stopping = True
        if self.state != MonitorState.DISCONNECTED:
            self.state = MonitorState.IDLE
        task, self._task = self._task, None
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        try:
            while not self._stopping:
                await self.sleep(self.check_interval)
                if self._stopping:
                    break
                await self.tick()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.error(f"Connection monitor error: {e}")
            self.logger.error(traceback.format_exc())
            raise

    # ============================
    # Checks
    # ============================

    async def tick(self) -> MonitorState:
        """Run one liveness check. A no-op while a reconnect is in flight."""
        if self.state != MonitorState.MONITORING or self.reconnecting:
            return self.state
        try:
            await self.directory.refresh()
        except InvalidCredentialError as e:
            await self._give_up(e)
        except FlagLightError as e:
            self.logger.warning(f"LIFX connection lost, attempting to reconnect: {e.message}")
            await self._reconnect(e)
        else:
            self.attempts = 0
            if callable(self.on_check_ok):
                await self.on_check_ok()
        return self.state

    async def _reconnect(self, error: FlagLightError) -> None:
        async with self._reconnect_lock:
            await self._set_state(MonitorState.RECONNECTING, error)
            self.attempts = 0
            last_error = error
            while self.attempts < self.max_attempts:
                if self._stopping:
                    return
                self.attempts += 1
                try:
                    await self.directory.refresh()
                except InvalidCredentialError as e:
                    await self._give_up(e)
                    return
                except FlagLightError as e:
                    last_error = e
                    self.logger.warning(f"Reconnect attempt {self.attempts} of {self.max_attempts} failed: {e.message}")
                    if self.attempts < self.max_attempts:
                        await self.sleep(self.reconnect_delay(self.attempts))
                    continue
                self.logger.info("LIFX connection restored")
                self.attempts = 0
                await self._set_state(MonitorState.MONITORING, None)
                return
            self.logger.error(f"Failed to reconnect to LIFX after {self.max_attempts} attempts")
            await self._give_up(last_error)

    async def _give_up(self, error: FlagLightError) -> None:
        self._stopping = True
        await self._set_state(MonitorState.DISCONNECTED, error)

    async def _set_state(self, state: MonitorState, error: Optional[FlagLightError]) -> None:
        if self._stopping and state != MonitorState.DISCONNECTED:
            return
        self.state = state
        if callable(self.on_state_change):
            await self.on_state_change(state, error)
