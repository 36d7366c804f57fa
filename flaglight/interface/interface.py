import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

import httpx

from ..api import LightProtocol, Device, FlagEffect, RaceFlag, ConnectionState, MonitorState, DisconnectReason, ApplyResult, effect_for_race_flag
from ..config import FlagLightConfig
from ..exceptions import FlagLightError, InvalidCredentialError
from ..io import LightClient, RetryPolicy
from ..storage import CredentialStore, SelectionStore, MemoryCredentialStore, MemorySelectionStore
from .directory import DeviceDirectory
from .monitor import ConnectionMonitor
from .sequencer import EffectSequencer

"""
===================================================================================
This module takes the LIFX API and provides a higher level interface intended
for a race-control front end or an auto-mode driver fed by a track-status feed.
===================================================================================

Terms:
LightProtocol = A class which implements the LIFX HTTP API using flaglight.io.
DeviceDirectory = The devices the credential can control.
ConnectionMonitor = Background liveness checks and bounded reconnects.
EffectSequencer = Runs a flag's ordered steps against a selector.
FlagControl = The session: credential, connection state, selection.
"""

CallbackOnConnect = Callable[[], Awaitable[None]]
CallbackOnDisconnect = Callable[[DisconnectReason, Optional[FlagLightError]], Awaitable[None]]
CallbackStateChange = Callable[[ConnectionState], Awaitable[None]]


@dataclass(frozen=True)
class ConnectionStatus:
    """Snapshot of a session's connection"""
    state: ConnectionState
    reason: Optional[DisconnectReason] = None
    error: Optional[FlagLightError] = None
    last_contact: float = 0.0

    @property
    def connected(self) -> bool:
        return self.state in (ConnectionState.CONNECTED, ConnectionState.RECONNECTING)


@dataclass
class Session:
    credential: Optional[str] = None
    state: ConnectionState = ConnectionState.DISCONNECTED
    reason: Optional[DisconnectReason] = None
    last_error: Optional[FlagLightError] = None
    selection: set[str] = field(default_factory=set)


class FlagControl:

    def __init__(self,
                 config: Optional[FlagLightConfig] = None,
                 credential_store: Optional[CredentialStore] = None,
                 selection_store: Optional[SelectionStore] = None,
                 http_client: Optional[httpx.AsyncClient] = None,
                 sleep: Optional[Callable[[float], Awaitable[None]]] = None,
                 print_traffic: bool = False,
                 logger: Optional[logging.Logger] = None):
        self.config = config or FlagLightConfig()
        self.logger = logger or logging.getLogger(__name__)
        self.credential_store: CredentialStore = credential_store or MemoryCredentialStore()
        self.selection_store: SelectionStore = selection_store or MemorySelectionStore()

        self.client = LightClient(
            base_url=self.config.base_url,
            timeout=self.config.timeout,
            http_client=http_client,
            print_traffic=print_traffic,
            logger=self.logger,
        )
        retry = RetryPolicy(max_attempts=self.config.max_attempts, base_delay=self.config.base_delay, sleep=sleep, logger=self.logger)
        self.protocol = LightProtocol(client=self.client, retry=retry, logger=self.logger)
        self.directory = DeviceDirectory(self.protocol, logger=self.logger)
        self.sequencer = EffectSequencer(self.protocol, sleep=sleep, settle_hold=self.config.settle_hold, logger=self.logger)
        self.monitor = ConnectionMonitor(
            self.directory,
            on_state_change=self._monitor_state_change,
            on_check_ok=self._monitor_check_ok,
            check_interval=self.config.check_interval,
            max_attempts=self.config.reconnect_attempts,
            base_delay=self.config.reconnect_base_delay,
            max_delay=self.config.reconnect_max_delay,
            sleep=sleep,
            logger=self.logger,
        )

        self._session = Session(selection=set(self.selection_store.get()))
        self._lock = asyncio.Lock()
        self._applying = False
        self._pending: Optional[tuple[FlagEffect, bool, str]] = None

        self.on_connect: Optional[CallbackOnConnect] = None
        self.on_disconnect: Optional[CallbackOnDisconnect] = None
        self.on_state_change: Optional[CallbackStateChange] = None

    def __repr__(self) -> str:
        return f"FlagControl<{self._session.state.value}, {len(self._session.selection)} selected>"

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self) -> None:
        """Stop background work and release the HTTP client. The stored credential is kept."""
        async with self._lock:
            await self.monitor.stop()
            self._session.credential = None
            self.protocol.credential = None
            await self._set_state(ConnectionState.DISCONNECTED)
            await self.client.close()

    # ============================
    # Session state
    # ============================

    @property
    def state(self) -> ConnectionState:
        return self._session.state

    @property
    def connected(self) -> bool:
        return self._session.state in (ConnectionState.CONNECTED, ConnectionState.RECONNECTING)

    @property
    def status(self) -> ConnectionStatus:
        return ConnectionStatus(
            state=self._session.state,
            reason=self._session.reason,
            error=self._session.last_error,
            last_contact=self.directory.last_successful_contact,
        )

    @property
    def last_error(self) -> Optional[FlagLightError]:
        return self._session.last_error

    @property
    def disconnect_reason(self) -> Optional[DisconnectReason]:
        return self._session.reason

    @property
    def needs_reauthentication(self) -> bool:
        return self._session.state == ConnectionState.DISCONNECTED and self._session.reason == DisconnectReason.INVALID_CREDENTIAL

    @property
    def devices(self) -> list[Device]:
        return list(self.directory.devices)

    @property
    def selection(self) -> frozenset[str]:
        return frozenset(self._session.selection)

    @property
    def selector(self) -> str:
        return ",".join(sorted(self._session.selection))

    async def _set_state(self, state: ConnectionState) -> None:
        if state == self._session.state:
            return
        self.logger.debug(f"Connection state {self._session.state.value} -> {state.value}")
        self._session.state = state
        if callable(self.on_state_change):
            await self.on_state_change(state)

    # ============================
    # Connect / Disconnect
    # ============================

    async def connect(self, credential: str) -> ConnectionStatus:
        """Store credential, confirm the API is reachable, then start monitoring."""
        if not credential or not credential.strip():
            raise ValueError("Credential must not be empty")
        credential = credential.strip()
        async with self._lock:
            await self.monitor.stop()
            self.credential_store.set(credential)
            self._session.credential = credential
            self.protocol.credential = credential
            self._session.reason = None
            await self._set_state(ConnectionState.CONNECTING)
            try:
                await self.directory.refresh()
            except InvalidCredentialError as e:
                await self._drop_session(DisconnectReason.INVALID_CREDENTIAL, e, forget=True)
                return self.status
            except FlagLightError as e:
                self.logger.warning(f"Could not reach LIFX: {e.message}")
                await self._drop_session(DisconnectReason.UNREACHABLE, e, forget=False)
                return self.status
            self._session.last_error = None
            await self._set_state(ConnectionState.CONNECTED)
            self.monitor.start()
            self.logger.info(f"Connected to LIFX, {len(self.directory.devices)} lights available")
        if callable(self.on_connect):
            await self.on_connect()
        return self.status

    async def resume(self) -> ConnectionStatus:
        """Connect with the persisted credential, if there is one."""
        credential = self.credential_store.get()
        if not credential:
            return self.status
        return await self.connect(credential)

    async def disconnect(self) -> None:
        async with self._lock:
            await self._drop_session(DisconnectReason.USER, None, forget=True)
            self._session.selection.clear()
            self.selection_store.set(set())
            self.logger.info("Disconnected from LIFX")

    async def _drop_session(self, reason: DisconnectReason, error: Optional[FlagLightError], forget: bool) -> None:
        """Caller must hold self._lock"""
        await self.monitor.stop()
        self._session.credential = None
        self.protocol.credential = None
        if forget:
            self.credential_store.clear()
        self.directory.clear()
        self._session.reason = reason
        self._session.last_error = error
        await self._set_state(ConnectionState.DISCONNECTED)
        if callable(self.on_disconnect):
            await self.on_disconnect(reason, error)

    async def _invalidate(self, error: InvalidCredentialError) -> None:
        """An expired or revoked credential ends the session, whatever noticed it."""
        self.logger.error(f"Credential rejected, disconnecting: {error.message}")
        async with self._lock:
            if self._session.credential is None:
                return
            await self._drop_session(DisconnectReason.INVALID_CREDENTIAL, error, forget=True)

    async def _monitor_check_ok(self) -> None:
        self._session.last_error = None

    async def _monitor_state_change(self, state: MonitorState, error: Optional[FlagLightError]) -> None:
        match state:
            case MonitorState.MONITORING:
                self._session.last_error = None
                await self._set_state(ConnectionState.CONNECTED)
            case MonitorState.RECONNECTING:
                self._session.last_error = error
                await self._set_state(ConnectionState.RECONNECTING)
            case MonitorState.DISCONNECTED:
                if isinstance(error, InvalidCredentialError):
                    await self._invalidate(error)
                    return
                async with self._lock:
                    if self._session.credential is None:
                        return
                    await self._drop_session(DisconnectReason.CONNECTION_LOST, error, forget=True)

    # ============================
    # Devices
    # ============================

    async def refresh_devices(self) -> list[Device]:
        if not self.connected:
            return []
        try:
            devices = await self.directory.refresh()
        except InvalidCredentialError as e:
            await self._invalidate(e)
            return []
        except FlagLightError as e:
            self._session.last_error = e
            return self.devices
        self._session.last_error = None
        self.monitor.attempts = 0
        return list(devices)

    def select_device(self, id: str) -> frozenset[str]:
        self._session.selection.add(id)
        self.selection_store.set(self._session.selection)
        return self.selection

    def deselect_device(self, id: str) -> frozenset[str]:
        self._session.selection.discard(id)
        self.selection_store.set(self._session.selection)
        return self.selection

    def toggle_device(self, id: str) -> frozenset[str]:
        if id in self._session.selection:
            return self.deselect_device(id)
        return self.select_device(id)

    # ============================
    # Flags
    # ============================

    def _guard(self) -> Optional[ApplyResult]:
        if not self.connected:
            return ApplyResult.DISCONNECTED
        if not self._session.selection:
            return ApplyResult.NO_SELECTION
        return None

    async def apply_flag(self, flag: FlagEffect | str, initial: bool = False) -> ApplyResult:
        """
        Show flag on the selected lights.

        Only one sequence runs at a time. A call made while one is running is
        coalesced: the most recent such call runs once the current sequence
        finishes, and the call itself returns ApplyResult.COALESCED.
        """
        flag = FlagEffect.parse(flag)
        guard = self._guard()
        if guard is not None:
            return guard
        if self._applying:
            self.logger.debug(f"Sequence in flight, queueing {flag.value} flag")
            self._pending = (flag, initial, self.selector)
            return ApplyResult.COALESCED

        self._applying = True
        try:
            result = await self._run_flag(flag, initial, self.selector)
            while self._pending is not None:
                flag, initial, selector = self._pending
                self._pending = None
                # selector was captured when the call was made
                if not self.connected:
                    break
                await self._run_flag(flag, initial, selector)
        finally:
            self._applying = False
            self._pending = None
        return result

    async def apply_race_flag(self, race_flag: RaceFlag | str) -> ApplyResult:
        """Entry point for an auto-mode driver speaking the race-control flag vocabulary."""
        return await self.apply_flag(effect_for_race_flag(race_flag))

    async def _run_flag(self, flag: FlagEffect, initial: bool, selector: str) -> ApplyResult:
        started = time.time()
        try:
            await self.sequencer.apply_flag(selector, flag, initial=initial)
        except InvalidCredentialError as e:
            await self._invalidate(e)
            return ApplyResult.FAILED
        except FlagLightError as e:
            self._session.last_error = e
            return ApplyResult.FAILED
        self._session.last_error = None
        self.logger.debug(f"{flag.value} flag applied in {(time.time() - started) * 1000:.0f}ms")
        return ApplyResult.APPLIED
