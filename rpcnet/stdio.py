"""JSON-RPC server over standard input and output.

Requests are read one per line; each response is written on its own line.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import sys
from typing import Any, Callable, Optional, TextIO

logger = logging.getLogger(__name__)


def _resolve_handler(handler: Any) -> Callable[[str], Any]:
    method = getattr(handler, "handle_request", None)
    if callable(method):
        return method
    if callable(handler):
        return handler
    raise TypeError(f"handler must be callable or provide handle_request: {handler!r}")


def _strip_line(raw: str) -> str:
    if raw.endswith("\n"):
        raw = raw[:-1]
    if raw.endswith("\r"):
        raw = raw[:-1]
    return raw


class ServerBuilder:
    """Builds a stdio server around a request handler.

    The handler is called with each request line and returns the response
    string, None for no response, or an awaitable of either.
    """

    def __init__(self, handler: Any) -> None:
        self._handle = _resolve_handler(handler)

    def serve(self, reader: TextIO, writer: TextIO) -> None:
        """Process every line of ``reader`` until EOF, writing responses to ``writer``."""
        loop: Optional[asyncio.AbstractEventLoop] = None
        try:
            for raw in reader:
                line = _strip_line(raw)
                result = self._handle(line)
                if inspect.isawaitable(result):
                    if loop is None:
                        loop = asyncio.new_event_loop()
                    result = loop.run_until_complete(_await(result))
                if result is None:
                    logger.info("JSON RPC request produced no response: %r", line)
                    result = ""
                writer.write(f"{result}\n")
                flush = getattr(writer, "flush", None)
                if callable(flush):
                    flush()
        finally:
            if loop is not None:
                loop.close()

    def build(self) -> None:
        """Serve standard input to standard output, blocking until EOF."""
        self.serve(sys.stdin, sys.stdout)


async def _await(awaitable: Any) -> Any:
    return await awaitable