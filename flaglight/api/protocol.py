import logging
import time
from typing import Any, Optional
from urllib.parse import quote

from ..io import LightClient, Request, Response, ResponseType, RetryPolicy
from .models import Device, LightState, PulseEffect
from ..exceptions import (
    FlagLightError,
    InvalidCredentialError,
    RateLimitedError,
    ServerError,
    RequestTimeoutError,
    NetworkError,
    RequestRejectedError,
    InvalidResponseError,
)

"""
===================================================================================
This module implements the LIFX HTTP API calls using flaglight.io.
===================================================================================
"""


class LightProtocol:

    # Endpoints used by the library
    PATH: dict[str, str] = {
        "LIST_LIGHTS": "/lights/all",                       # List every light on the account
        "SET_STATE": "/lights/{selector}/state",            # Set power, colour, brightness
        "PULSE_EFFECT": "/lights/{selector}/effects/pulse", # Pulse between two colours
    }

    def __init__(self,
                 client: LightClient,
                 retry: Optional[RetryPolicy] = None,
                 logger: Optional[logging.Logger] = None):
        self.client = client
        self.logger = logger or logging.getLogger(__name__)
        self.retry = retry or RetryPolicy(logger=self.logger)
        self.last_successful_contact: float = 0.0

    @property
    def credential(self) -> Optional[str]:
        return self.client.credential

    @credential.setter
    def credential(self, value: Optional[str]) -> None:
        self.client.credential = value

    # ============================
    # REQUESTS
    # ============================

    @staticmethod
    def _selector_path(template: str, selector: str) -> str:
        if not selector:
            raise ValueError("Selector must not be empty")
        return template.format(selector=quote(selector, safe=",:"))

    async def _request(self, method: str, path: str, body: Optional[dict[str, Any]] = None) -> Response:
        description = f"{method} {path}"

        async def attempt() -> Response:
            response = await self.client.send_request(Request(method, path, body))
            self._raise_for_response(response)
            return response

        response = await self.retry.run(attempt, description=description)
        self.last_successful_contact = time.time()
        return response

    def _raise_for_response(self, response: Response) -> None:
        """Turn a classified Response into the matching exception"""
        status = response.status
        match response.response_type:
            case ResponseType.SUCCESS:
                return
            case ResponseType.UNAUTHORIZED:
                self.logger.error("LIFX API rejected the credential")
                raise InvalidCredentialError()
            case ResponseType.RATE_LIMITED:
                raise RateLimitedError(status=status)
            case ResponseType.SERVER_ERROR:
                raise ServerError(status=status)
            case ResponseType.TIMEOUT:
                raise RequestTimeoutError()
            case ResponseType.NETWORK_ERROR:
                raise NetworkError()
            case ResponseType.REJECTED:
                raise RequestRejectedError(f"LIFX API refused the request: {response.detail}", status)
        raise FlagLightError(f"Unhandled response type {response.response_type}", status)

    # ============================
    # API CALLS
    # ============================

    async def list_devices(self) -> list[Device]:
        """Return every light visible to the credential."""
        response = await self._request("GET", self.PATH["LIST_LIGHTS"])
        if not isinstance(response.data, list):
            raise InvalidResponseError(f"Expected a list of lights, got {type(response.data).__name__}", response.status)
        devices = []
        for entry in response.data:
            try:
                devices.append(Device.from_json(entry))
            except ValueError as e:
                raise InvalidResponseError(str(e), response.status) from e
        return devices

    async def set_state(self, selector: str, state: LightState) -> None:
        path = self._selector_path(self.PATH["SET_STATE"], selector)
        await self._request("PUT", path, state.to_json())

    async def pulse(self, selector: str, effect: PulseEffect) -> None:
        path = self._selector_path(self.PATH["PULSE_EFFECT"], selector)
        await self._request("POST", path, effect.to_json())
