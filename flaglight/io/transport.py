"""
FlagLight wire-level HTTP client.

This module implements the request side of the LIFX HTTP API using httpx.
It contains the LightClient class for sending requests and classifying responses.

Terms:
- Request = An HTTP request sent by the Client to the lighting API
- Response = The classified outcome of a Request
- Client = A class which sends Requests and returns Responses

The client never raises for HTTP or network failures. Every outcome is folded
into a ResponseType so that callers decide what is retryable.

Example usage:
async def main():
    async with LightClient(credential="c0ffee...") as client:
        resp = await client.send_request(Request("GET", "/lights/all"))
        if resp.response_type == ResponseType.SUCCESS:
            print("Lights:", resp.data)
        else:
            print("Resp:", resp.response_type.name, resp.status)

asyncio.run(main())
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Self

import httpx
from colorama import Fore, Style


# Constants
class ClientConst:
    """Constants for the LightClient"""
    BASE_URL = "https://api.lifx.com/v1"
    DEFAULT_TIMEOUT = 15.0
    MIN_TIMEOUT = 0.1
    MAX_TIMEOUT = 60.0


@dataclass
class Request:
    """Represents a request to be sent to the lighting API"""
    method: str
    path: str
    body: Optional[dict[str, Any]] = None
    timestamp: float = field(default_factory=time.time)

    def __post_init__(self):
        self.method = self.method.upper()
        if self.method not in ("GET", "PUT", "POST"):
            raise ValueError(f"Unsupported request method {self.method}")
        if not self.path.startswith("/"):
            raise ValueError(f"Request.path must start with '/', got {self.path!r}")


class ResponseType(Enum):
    """Classification of a request outcome"""
    SUCCESS = "success"
    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    TIMEOUT = "timeout"
    NETWORK_ERROR = "network_error"
    REJECTED = "rejected"

    @property
    def retryable(self) -> bool:
        return self in (ResponseType.RATE_LIMITED, ResponseType.SERVER_ERROR, ResponseType.TIMEOUT, ResponseType.NETWORK_ERROR)


@dataclass
class Response:
    response_type: ResponseType
    status: Optional[int] = None
    data: Any = None # parsed JSON, empty for TIMEOUT and NETWORK_ERROR
    detail: Optional[str] = None
    request: Optional[Request] = None
    timestamp: float = field(default_factory=time.time)


class LightClient:
    """
    Sends authenticated requests to the lighting API.
      - Authorization: Bearer <credential> on every request, nothing else carries the credential
      - Fixed per-request timeout (15s unless configured)
      - No retries here, see RetryPolicy
    """

    def __init__(self,
                 credential: Optional[str] = None,
                 base_url: str = ClientConst.BASE_URL,
                 timeout: float = ClientConst.DEFAULT_TIMEOUT,
                 http_client: Optional[httpx.AsyncClient] = None,
                 print_traffic: bool = False,
                 logger: Optional[logging.Logger] = None):
        self.credential = credential
        self.base_url = base_url.rstrip("/")
        self.timeout = max(ClientConst.MIN_TIMEOUT, min(timeout, ClientConst.MAX_TIMEOUT))
        self.print_traffic = print_traffic
        self.logger = logger or logging.getLogger(__name__)
        self._owns_http = http_client is None
        self._http: httpx.AsyncClient = http_client or httpx.AsyncClient(timeout=httpx.Timeout(self.timeout))
        self._closed = False

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.credential}",
            "Content-Type": "application/json",
        }

    async def send_request(self, req: Request) -> Response:
        if self._closed: raise RuntimeError("Client is closed")

        # No credential means nothing to authenticate with, don't bother the API
        if not self.credential:
            return Response(ResponseType.UNAUTHORIZED, detail="LIFX API token not set", request=req)

        url = f"{self.base_url}{req.path}"
        req.timestamp = time.time()
        try:
            http_response = await self._http.request(
                req.method,
                url,
                json=req.body,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            response = Response(ResponseType.TIMEOUT, detail=str(e) or type(e).__name__, request=req)
        except httpx.TransportError as e:
            response = Response(ResponseType.NETWORK_ERROR, detail=str(e) or type(e).__name__, request=req)
        else:
            response = self._classify(http_response, req)

        self._log_traffic(req, response)
        return response

    def _classify(self, http_response: httpx.Response, req: Request) -> Response:
        status = http_response.status_code
        data = None
        if http_response.content:
            try:
                data = http_response.json()
            except ValueError:
                data = None
        match status:
            case 401:
                response_type = ResponseType.UNAUTHORIZED
            case 429:
                response_type = ResponseType.RATE_LIMITED
            case _ if 200 <= status < 300:
                response_type = ResponseType.SUCCESS
            case _ if status >= 500:
                response_type = ResponseType.SERVER_ERROR
            case _:
                response_type = ResponseType.REJECTED
        detail = None
        if response_type != ResponseType.SUCCESS:
            detail = data.get("error") if isinstance(data, dict) else None
            detail = detail or http_response.reason_phrase
        return Response(response_type, status=status, data=data, detail=detail, request=req)

    def _log_traffic(self, req: Request, response: Response) -> None:
        rtt_ms = (response.timestamp - req.timestamp) * 1000
        status = response.status if response.status is not None else "---"
        self.logger.debug(f"{req.method} {req.path} -> {status} {response.response_type.name} in {rtt_ms:.0f}ms")
        if self.print_traffic:
            colour = Fore.CYAN if response.response_type == ResponseType.SUCCESS else Fore.RED
            print(Fore.MAGENTA + f"REQUEST: {req.method} {req.path}  "
                + Fore.WHITE + Style.DIM + f"RTT: {rtt_ms:.0f}ms".ljust(10)
                + Style.BRIGHT + colour + f"  RESPONSE: {status} {response.response_type.name}"
                + Style.RESET_ALL)

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def is_closed(self) -> bool:
        return self._closed

    async def close(self):
        """Close the client. An injected httpx client is left open for its owner."""
        if self._closed:
            return
        self._closed = True
        if self._owns_http:
            await self._http.aclose()
