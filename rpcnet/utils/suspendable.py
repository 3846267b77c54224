"""An incoming-connection stream that pauses instead of failing on errors."""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_connection_error(error: BaseException) -> bool:
    """Return True if the error concerns a single connection only."""
    return isinstance(error, (ConnectionRefusedError, ConnectionAbortedError, ConnectionResetError))


class SuspendableStream(Generic[T]):
    """Wraps an async iterator of incoming connections.

    Errors concerning a single connection are skipped. Any other ``OSError``
    (such as running out of file descriptors) suspends accepting for a delay
    that doubles on each consecutive error, up to ``max_delay``, and resets
    once an item arrives. The wrapped iterator must stay usable after raising.
    """

    def __init__(self, stream: AsyncIterator[T]) -> None:
        self._stream = stream.__aiter__()
        self.next_delay = 0.02
        self.initial_delay = 0.01
        self.max_delay = 5.0

    def __aiter__(self) -> "SuspendableStream[T]":
        return self

    async def __anext__(self) -> T:
        while True:
            try:
                item = await self._stream.__anext__()
            except StopAsyncIteration:
                raise
            except OSError as err:
                if is_connection_error(err):
                    logger.warning("Connection Error: %r", err)
                    continue
                if self.next_delay < self.max_delay:
                    self.next_delay *= 2
                logger.warning("Error accepting connection: %s", err)
                logger.warning("The server will stop accepting connections for %ss", self.next_delay)
                await asyncio.sleep(self.next_delay)
                continue
            if self.next_delay > self.initial_delay:
                self.next_delay = self.initial_delay
            return item