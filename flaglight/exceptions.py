"""
FlagLight library exceptions.

This module defines all custom exceptions used throughout the library.

Transient errors (rate limits, server errors, timeouts, network failures) are
retried by the RetryPolicy before they surface. InvalidCredentialError is
permanent and always terminates the session.
"""

from typing import Optional


class FlagLightError(Exception):
    """Base exception for FlagLight errors"""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status


class InvalidCredentialError(FlagLightError):
    """Raised when the API rejects the credential (HTTP 401)"""

    def __init__(self, message: str = "Invalid LIFX API token", status: Optional[int] = 401):
        super().__init__(message, status)


class TransientError(FlagLightError):
    """Base for errors that are worth retrying"""
    pass


class RateLimitedError(TransientError):
    """Raised when the API rate limit has been exceeded (HTTP 429)"""

    def __init__(self, message: str = "Rate limit exceeded. Please try again in a few moments.", status: Optional[int] = 429):
        super().__init__(message, status)


class ServerError(TransientError):
    """Raised when the API answers with a 5xx status"""

    def __init__(self, message: str = "LIFX service is experiencing issues. Please try again later.", status: Optional[int] = 500):
        super().__init__(message, status)


class RequestTimeoutError(TransientError):
    """Raised when a request times out"""

    def __init__(self, message: str = "Connection timeout. Please check your internet connection and try again.", status: Optional[int] = None):
        super().__init__(message, status)


class NetworkError(TransientError):
    """Raised when the API could not be reached at all"""

    def __init__(self, message: str = "Failed to connect to LIFX. Please check your internet connection.", status: Optional[int] = None):
        super().__init__(message, status)


class RequestRejectedError(FlagLightError):
    """Raised when the API refuses a request for a reason other than authentication"""
    pass


class InvalidResponseError(FlagLightError):
    """Raised when receiving an invalid response"""
    pass


class SequenceAbortedError(FlagLightError):
    """Raised when a flag effect stops part way through its sequence"""

    def __init__(self, flag, step: int, cause: FlagLightError):
        super().__init__(f"{flag.value} flag aborted at step {step}: {cause.message}", cause.status)
        self.flag = flag
        self.step = step
        self.cause = cause


class ConfigurationError(FlagLightError):
    """Raised when configuration is invalid"""
    pass
