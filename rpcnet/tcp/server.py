"""JSON-RPC server over TCP."""

from __future__ import annotations

import asyncio
import logging
import threading
from contextlib import suppress
from typing import Any, AsyncIterator, Optional, Union

from ..pubsub.types import TransportError
from ..utils.reactor import Executor, initialize_executor
from .dispatch import Dispatcher
from .meta import MetaExtractor, NoopExtractor, RequestContext
from .service import Service

logger = logging.getLogger(__name__)

Address = Union[str, tuple]

_EOF = object()
_READ_SIZE = 65536


def _parse_address(address: Address) -> tuple[str, int]:
    if isinstance(address, str):
        host, sep, port = address.rpartition(":")
        if not sep:
            raise ValueError(f"address must be host:port, got {address!r}")
        return host.strip("[]"), int(port)
    return str(address[0]), int(address[1])


def _separator(value: Union[str, bytes]) -> bytes:
    data = value.encode("utf-8") if isinstance(value, str) else bytes(value)
    if not data:
        raise ValueError("separator must not be empty")
    return data


def _peer_of(writer: asyncio.StreamWriter) -> tuple:
    peer = writer.get_extra_info("peername")
    if isinstance(peer, tuple):
        return (peer[0], peer[1])
    return (str(peer), 0)


async def _frames(reader: asyncio.StreamReader, separator: bytes) -> AsyncIterator[str]:
    buffer = b""
    while True:
        chunk = await reader.read(_READ_SIZE)
        if not chunk:
            break
        buffer += chunk
        *frames, buffer = buffer.split(separator)
        for frame in frames:
            if frame.strip():
                yield frame.decode("utf-8", errors="replace")
    if buffer.strip():
        yield buffer.decode("utf-8", errors="replace")


class _PeerOutput:
    """Outgoing messages of one connection: responses and pushed messages."""

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self.loop = loop
        self.queue: asyncio.Queue = asyncio.Queue()
        self.open = True

    def send(self, message: str) -> None:
        if not self.open:
            raise TransportError("connection closed")
        try:
            self.loop.call_soon_threadsafe(self.queue.put_nowait, message)
        except RuntimeError as exc:
            raise TransportError("connection closed") from exc


class _Connections:
    def __init__(
        self,
        handler: Any,
        meta_extractor: MetaExtractor,
        dispatcher: Dispatcher,
        incoming: bytes,
        outgoing: bytes,
    ) -> None:
        self._handler = handler
        self._meta_extractor = meta_extractor
        self._dispatcher = dispatcher
        self._incoming = incoming
        self._outgoing = outgoing

    async def handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        peer = _peer_of(writer)
        logger.debug("Accepted incoming connection from %s", peer)
        output = _PeerOutput(asyncio.get_running_loop())
        responder: Optional[asyncio.Task] = None
        try:
            meta = self._meta_extractor(RequestContext(peer, output.send))
            service = Service(peer, self._handler, meta)
            self._dispatcher._register(peer, output.send)
            responder = asyncio.create_task(self._respond(reader, service, output.queue))
            await self._write(writer, output.queue)
        except OSError as exc:
            logger.debug("Peer %s: connection error %r", peer, exc)
        finally:
            logger.debug("Peer %s: service finished", peer)
            output.open = False
            if responder is not None:
                responder.cancel()
            self._dispatcher._unregister(peer)
            writer.close()
            with suppress(Exception):
                await writer.wait_closed()

    async def _respond(self, reader: asyncio.StreamReader, service: Service, queue: asyncio.Queue) -> None:
        try:
            async for request in _frames(reader, self._incoming):
                try:
                    response = await service.call(request)
                except Exception as exc:
                    logger.warning("Error while processing request: %r", exc)
                    response = ""
                if response is None:
                    logger.debug("JSON RPC request produced no response")
                    response = ""
                queue.put_nowait(response)
        except OSError as exc:
            logger.debug("Error reading from peer: %r", exc)
        finally:
            queue.put_nowait(_EOF)

    async def _write(self, writer: asyncio.StreamWriter, queue: asyncio.Queue) -> None:
        while True:
            item = await queue.get()
            if item is _EOF:
                while not queue.empty():
                    pending = queue.get_nowait()
                    if pending is not _EOF:
                        writer.write(pending.encode("utf-8") + self._outgoing)
                await writer.drain()
                return
            writer.write(item.encode("utf-8") + self._outgoing)
            await writer.drain()


class ServerBuilder:
    """Configures and starts a TCP server.

    The handler is called with each request and the session metadata; see
    ``Service``. Requests and responses are separated by newlines by default.
    """

    def __init__(self, handler: Any, meta_extractor: Optional[MetaExtractor] = None) -> None:
        self._handler = handler
        self._meta_extractor: MetaExtractor = meta_extractor if meta_extractor is not None else NoopExtractor()
        self._executor: Any = None
        self._dispatcher = Dispatcher()
        self._incoming = b"\n"
        self._outgoing = b"\n"

    def event_loop_executor(self, executor: Any) -> "ServerBuilder":
        """Run on an existing event loop instead of spawning one."""
        self._executor = executor
        return self

    def session_meta_extractor(self, meta_extractor: MetaExtractor) -> "ServerBuilder":
        """Set the per-session metadata extractor."""
        self._meta_extractor = meta_extractor
        return self

    def request_separators(self, incoming: Union[str, bytes], outgoing: Union[str, bytes]) -> "ServerBuilder":
        """Set the separators between incoming requests and outgoing responses."""
        self._incoming = _separator(incoming)
        self._outgoing = _separator(outgoing)
        return self

    def start(self, address: Address) -> "Server":
        """Start listening on the address; raises OSError if that fails."""
        host, port = _parse_address(address)
        connections = _Connections(
            self._handler, self._meta_extractor, self._dispatcher, self._incoming, self._outgoing
        )
        executor = initialize_executor(self._executor)
        try:
            listener = executor.spawn(asyncio.start_server(connections.handle, host, port)).result()
        except BaseException:
            executor.close()
            raise
        return Server(listener, executor)

    def dispatcher(self) -> Dispatcher:
        """Return the dispatcher that pushes messages to this server's peers."""
        return self._dispatcher


class Server:
    """A running TCP server."""

    def __init__(self, listener: asyncio.AbstractServer, executor: Executor) -> None:
        self._listener = listener
        self._executor = executor
        self._lock = threading.Lock()
        self._closed = False
        sockname = listener.sockets[0].getsockname()
        self.address: tuple = (sockname[0], sockname[1])

    def close(self) -> None:
        """Stop accepting connections and close the event loop, if owned."""
        with self._lock:
            if self._closed:
                return
            self._closed = True

        async def stop_listening() -> None:
            self._listener.close()

        try:
            self._executor.spawn(stop_listening()).result()
        except RuntimeError as exc:
            logger.debug("Event loop already finished: %r", exc)
        self._executor.close()
        self._executor.wait()

    def wait(self) -> None:
        """Block until the server's own event loop has finished."""
        self._executor.wait()

    def __enter__(self) -> "Server":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Server(address={self.address!r})"