import asyncio
import json
from typing import Optional

import httpx
import pytest

from flaglight import FlagControl, FlagLightConfig, LightClient, LightProtocol, RetryPolicy
from flaglight.storage import MemoryCredentialStore, MemorySelectionStore

TOKEN = "c0ffee-token"

DEVICE_A = {
    "id": "d073d5000001",
    "uuid": "8fa5f072-af97-44ed-ae54-e70fd7bd9d20",
    "label": "Left Lamp",
    "connected": True,
    "power": "on",
    "color": {"hue": 250.0, "saturation": 0.5, "kelvin": 3500},
    "brightness": 0.5,
    "group": {"id": "1c8de82b81f445e7cfaafae49b259c71", "name": "Lounge"},
    "location": {"id": "1d6fe8ef0fde4c6d77b0012dc736662c", "name": "Home"},
    "product": {"name": "LIFX Color", "capabilities": {"has_color": True, "has_variable_color_temp": True}},
}

DEVICE_B = {
    "id": "d073d5000002",
    "label": "Right Lamp",
    "connected": False,
    "power": "off",
    "brightness": 1.0,
    "product": {"name": "LIFX White", "capabilities": {"has_color": False}},
}


class FakeLifxApi:
    """
    Stands in for api.lifx.com behind httpx.MockTransport.

    Scripted outcomes are consumed one per request: an int is returned as that
    status, an httpx exception class is raised. With nothing scripted the API
    answers like LIFX does.
    """

    def __init__(self, devices: Optional[list] = None):
        self.devices = devices if devices is not None else [DEVICE_A, DEVICE_B]
        self.requests: list[httpx.Request] = []
        self.scripted: list = []

    def queue(self, *outcomes) -> None:
        self.scripted.extend(outcomes)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.scripted:
            outcome = self.scripted.pop(0)
            if isinstance(outcome, type) and issubclass(outcome, Exception):
                raise outcome("scripted failure", request=request)
            if isinstance(outcome, httpx.Response):
                return outcome
            if outcome != 200:
                return httpx.Response(outcome, json={"error": "scripted failure"})
        if request.method == "GET" and request.url.path.endswith("/lights/all"):
            return httpx.Response(200, json=self.devices)
        return httpx.Response(207, json={"results": [{"id": DEVICE_A["id"], "status": "ok"}]})

    @property
    def calls(self) -> list[tuple[str, str]]:
        return [(r.method, r.url.path) for r in self.requests]

    def json_bodies(self) -> list:
        return [json.loads(r.content) if r.content else None for r in self.requests]


class SleepRecorder:
    """
    Replacement for asyncio.sleep that records delays instead of waiting.

    Delays of at least block_at (the monitor's check interval) never return,
    which keeps a started monitor parked. If gate is set, shorter delays wait
    for it.
    """

    def __init__(self, block_at: float = 60.0):
        self.delays: list[float] = []
        self.block_at = block_at
        self.gate: Optional[asyncio.Event] = None

    async def __call__(self, seconds: float) -> None:
        if seconds >= self.block_at:
            await asyncio.Event().wait()
        self.delays.append(seconds)
        if self.gate is not None:
            await self.gate.wait()
        await asyncio.sleep(0)


@pytest.fixture
def api() -> FakeLifxApi:
    return FakeLifxApi()


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def http(api: FakeLifxApi) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(api.handler))


@pytest.fixture
def client(http: httpx.AsyncClient) -> LightClient:
    return LightClient(credential=TOKEN, http_client=http)


@pytest.fixture
def protocol(client: LightClient, sleeper: SleepRecorder) -> LightProtocol:
    return LightProtocol(client, retry=RetryPolicy(sleep=sleeper))


@pytest.fixture
def credential_store() -> MemoryCredentialStore:
    return MemoryCredentialStore()


@pytest.fixture
def selection_store() -> MemorySelectionStore:
    return MemorySelectionStore()


@pytest.fixture
def control(http, sleeper, credential_store, selection_store) -> FlagControl:
    return FlagControl(
        config=FlagLightConfig(),
        credential_store=credential_store,
        selection_store=selection_store,
        http_client=http,
        sleep=sleeper,
    )
