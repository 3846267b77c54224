"""Pushing messages from the server to connected TCP peers."""

from __future__ import annotations

import threading
from typing import Any, Callable, Optional

from ..pubsub.types import TransportError

PeerAddr = tuple
"""Address of a connected peer as ``(host, port)``."""

PeerSender = Callable[[str], None]


class PushMessageError(Exception):
    """Raised when a message cannot be pushed to a peer."""


class NoSuchPeer(PushMessageError):
    """Raised when the peer is not connected."""


class Dispatcher:
    """Sends messages to peers connected to a TCP server.

    ``channels`` maps peer addresses to their send functions; it is shared
    with the server, which adds and removes peers as they come and go.
    """

    def __init__(self, channels: Optional[dict[Any, PeerSender]] = None) -> None:
        self._channels: dict[Any, PeerSender] = {} if channels is None else channels
        self._lock = threading.Lock()

    def push_message(self, peer_addr: Any, message: str) -> None:
        """Send a message to the given peer.

        Raises NoSuchPeer if the peer is not connected and PushMessageError
        if the peer's connection cannot take the message.
        """
        with self._lock:
            channel = self._channels.get(peer_addr)
        if channel is None:
            raise NoSuchPeer(f"no such peer: {peer_addr!r}")
        try:
            channel(message)
        except TransportError as exc:
            raise PushMessageError(f"cannot send to peer {peer_addr!r}: {exc}") from exc

    def is_connected(self, peer_addr: Any) -> bool:
        """Return True if the peer is still connected."""
        with self._lock:
            return peer_addr in self._channels

    def peer_count(self) -> int:
        """Return the number of connected peers."""
        with self._lock:
            return len(self._channels)

    def _register(self, peer_addr: Any, sender: PeerSender) -> None:
        with self._lock:
            self._channels[peer_addr] = sender

    def _unregister(self, peer_addr: Any) -> None:
        with self._lock:
            self._channels.pop(peer_addr, None)

    def __repr__(self) -> str:
        return f"Dispatcher(peers={self.peer_count()})"