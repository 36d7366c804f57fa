"""
Bounded exponential-backoff retry for single API operations.

Each call to RetryPolicy.run() creates its own RetryContext, so independent
operations never share an attempt counter or a retry budget.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from ..exceptions import TransientError

T = TypeVar("T")


class RetryConst:
    """Defaults for the RetryPolicy"""
    MAX_ATTEMPTS = 3
    BASE_DELAY = 2.0 # seconds


@dataclass
class RetryContext:
    """Attempt counter and backoff for one logical operation"""
    base_delay: float
    max_attempts: int
    attempt: int = 0
    delay: float = 0.0

    def begin_attempt(self) -> int:
        self.attempt += 1
        return self.attempt

    def exhausted(self) -> bool:
        return self.attempt >= self.max_attempts

    def next_delay(self) -> float:
        self.delay = self.base_delay * (2 ** (self.attempt - 1))
        return self.delay


class RetryPolicy:

    def __init__(self,
                 max_attempts: int = RetryConst.MAX_ATTEMPTS,
                 base_delay: float = RetryConst.BASE_DELAY,
                 sleep: Optional[Callable[[float], Awaitable[None]]] = None,
                 logger: Optional[logging.Logger] = None):
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
        if base_delay < 0:
            raise ValueError(f"base_delay must not be negative, got {base_delay}")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.sleep = sleep or asyncio.sleep
        self.logger = logger or logging.getLogger(__name__)

    def new_context(self) -> RetryContext:
        return RetryContext(base_delay=self.base_delay, max_attempts=self.max_attempts)

    async def run(self, operation: Callable[[], Awaitable[T]], description: str = "request") -> T:
        """Run operation, retrying transient errors. Anything else propagates on the first attempt."""
        ctx = self.new_context()
        while True:
            ctx.begin_attempt()
            try:
                return await operation()
            except TransientError as e:
                if ctx.exhausted():
                    self.logger.warning(f"Giving up on {description} after {ctx.attempt} attempts: {e.message}")
                    raise
                delay = ctx.next_delay()
                self.logger.info(f"Retrying {description} (attempt {ctx.attempt + 1} of {ctx.max_attempts}) after {delay * 1000:.0f}ms: {e.message}")
                await self.sleep(delay)
