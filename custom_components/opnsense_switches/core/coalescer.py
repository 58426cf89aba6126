"""Merge concurrent reads of the same key into one remote request."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable


def _retrieve_exception(task: asyncio.Task[Any]) -> None:
    """Mark the outcome as seen even when every waiter has gone away."""
    if not task.cancelled():
        task.exception()


class RequestCoalescer:
    """
    Keep at most one outstanding producer call per key.

    Callers arriving while a request for the same key is pending await the
    same task, so they all observe the same value or the same exception. The
    pending marker is dropped as soon as the producer settles.
    """

    def __init__(self) -> None:
        """Initialize the coalescer."""
        self._pending: dict[str, asyncio.Task[Any]] = {}

    def in_flight(self, key: str) -> bool:
        """Return True if a request for the key is outstanding."""
        return key in self._pending

    async def run(self, key: str, producer: Callable[[], Awaitable[Any]]) -> Any:
        """Run producer for key, or join the request already in flight."""
        task = self._pending.get(key)
        if task is None:
            task = asyncio.ensure_future(self._run_and_release(key, producer))
            task.add_done_callback(_retrieve_exception)
            self._pending[key] = task
        # Shielded so one cancelled caller does not cancel the shared request
        return await asyncio.shield(task)

    async def _run_and_release(
        self, key: str, producer: Callable[[], Awaitable[Any]]
    ) -> Any:
        try:
            return await producer()
        finally:
            self._pending.pop(key, None)
