"""
Wire-level HTTP implementation.

This module contains the lowest-level communication components:
- LightClient - Authenticated HTTP requests with a fixed timeout
- Request, Response, ResponseType - Raw request and classified outcome
- RetryPolicy, RetryContext - Bounded exponential-backoff retry
"""

from .transport import LightClient, Request, Response, ResponseType, ClientConst
from .retry import RetryPolicy, RetryContext, RetryConst

__all__ = [
    "LightClient",
    "Request",
    "Response",
    "ResponseType",
    "ClientConst",
    "RetryPolicy",
    "RetryContext",
    "RetryConst",
]
