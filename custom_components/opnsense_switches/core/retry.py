"""Bounded exponential backoff for remote calls."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, TypeVar

from custom_components.opnsense_switches.const import LOGGER

from .errors import ServerError, TransportError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

_T = TypeVar("_T")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY = 0.25  # seconds, doubled after every failed attempt

RETRIABLE_ERRORS: tuple[type[BaseException], ...] = (
    TransportError,
    ServerError,
    ConnectionResetError,
    TimeoutError,
)


def is_retriable(err: BaseException) -> bool:
    """Return True for errors worth another attempt (no response or 5xx)."""
    return isinstance(err, RETRIABLE_ERRORS)


class RetryExecutor:
    """Run an async operation, retrying transient failures with backoff."""

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base_delay: float = DEFAULT_BASE_DELAY,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        """Initialize the executor."""
        self._max_attempts = max(1, max_attempts)
        self._base_delay = base_delay
        self._sleep = sleep

    @property
    def max_attempts(self) -> int:
        """Return the maximum number of attempts per operation."""
        return self._max_attempts

    async def run(self, operation: Callable[[], Awaitable[_T]]) -> _T:
        """
        Run operation until it succeeds or a fatal error occurs.

        Fatal errors propagate immediately. Once all attempts are used up the
        last retriable error propagates unchanged.
        """
        attempt = 0
        delay = self._base_delay
        while True:
            try:
                return await operation()
            except Exception as err:
                attempt += 1
                if not is_retriable(err) or attempt >= self._max_attempts:
                    raise
                LOGGER.debug(
                    "Attempt %d/%d failed (%s), retrying in %.2fs",
                    attempt,
                    self._max_attempts,
                    err,
                    delay,
                )
                await self._sleep(delay)
                delay *= 2
