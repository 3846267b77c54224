"""A one-shot channel that can also be used for rendezvous.

``Sender.send_and_wait`` sends a value and blocks until the receiving end
has consumed it.
"""

from __future__ import annotations

import threading
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


class ChannelClosed(Exception):
    """Raised when the other end of the channel is gone."""


class _Shared:
    __slots__ = ("cond", "value", "has_value", "consumed", "sender_closed", "receiver_closed")

    def __init__(self) -> None:
        self.cond = threading.Condition()
        self.value: Any = None
        self.has_value = False
        self.consumed = False
        self.sender_closed = False
        self.receiver_closed = False


class Sender(Generic[T]):
    """Sending end of a one-shot channel."""

    def __init__(self, shared: _Shared) -> None:
        self._shared = shared

    def send(self, value: T) -> None:
        """Queue the value without blocking.

        Raises ChannelClosed if the receiving end is closed.
        """
        shared = self._shared
        with shared.cond:
            if shared.has_value or shared.sender_closed:
                raise RuntimeError("a value was already sent on this channel")
            shared.sender_closed = True
            if shared.receiver_closed:
                raise ChannelClosed("receiving end is closed")
            shared.value = value
            shared.has_value = True
            shared.cond.notify_all()

    def send_and_wait(self, value: T, timeout: Optional[float] = None) -> None:
        """Send the value and block until the receiver has consumed it.

        Raises ChannelClosed if the receiver goes away before consuming it,
        TimeoutError if the timeout expires first.
        """
        self.send(value)
        shared = self._shared
        with shared.cond:
            done = shared.cond.wait_for(lambda: shared.consumed or shared.receiver_closed, timeout)
            if not done:
                raise TimeoutError("value was not received in time")
            if not shared.consumed:
                raise ChannelClosed("receiving end closed before the value was received")

    def close(self) -> None:
        """Close the sending end; a pending receive without a value fails."""
        shared = self._shared
        with shared.cond:
            shared.sender_closed = True
            shared.cond.notify_all()

    @property
    def closed(self) -> bool:
        with self._shared.cond:
            return self._shared.receiver_closed


class Receiver(Generic[T]):
    """Receiving end of a one-shot channel."""

    def __init__(self, shared: _Shared) -> None:
        self._shared = shared

    def recv(self, timeout: Optional[float] = None) -> T:
        """Block until the value arrives and return it.

        Raises ChannelClosed if the sender closed without sending or the value
        was already taken, TimeoutError if the timeout expires first.
        """
        shared = self._shared
        with shared.cond:
            if shared.consumed or shared.receiver_closed:
                raise ChannelClosed("channel already received or closed")
            ready = shared.cond.wait_for(lambda: shared.has_value or shared.sender_closed, timeout)
            if not ready:
                raise TimeoutError("no value received in time")
            if not shared.has_value:
                raise ChannelClosed("sending end closed without a value")
            value = shared.value
            shared.value = None
            shared.consumed = True
            shared.cond.notify_all()
            return value

    def close(self) -> None:
        """Close the receiving end, discarding any value not yet received."""
        shared = self._shared
        with shared.cond:
            shared.receiver_closed = True
            if not shared.consumed:
                shared.value = None
            shared.cond.notify_all()


def channel() -> tuple[Sender[Any], Receiver[Any]]:
    """Create a connected sender and receiver."""
    shared = _Shared()
    return Sender(shared), Receiver(shared)