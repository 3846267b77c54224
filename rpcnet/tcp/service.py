"""Request handling for one TCP peer."""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


def _resolve_handler(handler: Any) -> Callable[[str, Any], Any]:
    method = getattr(handler, "handle_request", None)
    if callable(method):
        return method
    if callable(handler):
        return handler
    raise TypeError(f"handler must be callable or provide handle_request: {handler!r}")


class Service:
    """Passes a peer's requests, with its metadata, to the RPC handler.

    The handler is called with the request text and the metadata and returns
    the response string, None for no response, or an awaitable of either.
    """

    def __init__(self, peer_addr: Any, handler: Any, meta: Any) -> None:
        self.peer_addr = peer_addr
        self.meta = meta
        self._handle = _resolve_handler(handler)

    async def call(self, request: str) -> Optional[str]:
        """Handle one request and return its response, if any."""
        logger.debug("Accepted request from peer %s: %s", self.peer_addr, request)
        result = self._handle(request, self.meta)
        if inspect.isawaitable(result):
            result = await result
        return result

    def __repr__(self) -> str:
        return f"Service(peer_addr={self.peer_addr!r})"