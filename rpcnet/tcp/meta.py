"""Per-connection metadata for the TCP server."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

from ..pubsub.types import TransportSender


@dataclass(frozen=True)
class RequestContext:
    """What is known about a connection when its metadata is extracted."""

    peer_addr: tuple
    """Peer address as ``(host, port)``."""
    sender: TransportSender
    """Sends a message directly to the peer."""


MetaExtractor = Callable[[RequestContext], Any]
"""Builds the metadata of a session from its request context."""


class NoopExtractor:
    """Extractor that ignores the context and returns default metadata.

    The default is None, or a fresh value from ``factory`` when one is given.
    """

    def __init__(self, factory: Optional[Callable[[], Any]] = None) -> None:
        self._factory = factory

    def __call__(self, context: RequestContext) -> Any:
        return None if self._factory is None else self._factory()

    def __repr__(self) -> str:
        return f"NoopExtractor({self._factory!r})"