"""Event loop executor: spawns a new event loop thread or reuses a shared one."""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import threading
from typing import Any, Coroutine, Optional, Union

logger = logging.getLogger(__name__)

DEFAULT_NAME = "event.loop"


class RpcEventLoop:
    """An asyncio event loop running in its own thread.

    Closing the loop cancels tasks that are still pending.
    """

    def __init__(self, name: Optional[str] = None) -> None:
        self._loop = asyncio.new_event_loop()
        self._lock = threading.Lock()
        self._stop_requested = False
        started = threading.Event()
        self._thread = threading.Thread(target=self._run, args=(started,), name=name, daemon=True)
        self._thread.start()
        started.wait()

    def _run(self, started: threading.Event) -> None:
        loop = self._loop
        asyncio.set_event_loop(loop)
        loop.call_soon(started.set)
        try:
            loop.run_forever()
        finally:
            try:
                pending = asyncio.all_tasks(loop)
                for task in pending:
                    task.cancel()
                if pending:
                    loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
                loop.run_until_complete(loop.shutdown_asyncgens())
            finally:
                asyncio.set_event_loop(None)
                loop.close()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    @property
    def thread(self) -> threading.Thread:
        return self._thread

    def run_coroutine(self, coro: Coroutine[Any, Any, Any]) -> "concurrent.futures.Future[Any]":
        """Schedule a coroutine on the loop and return a future for its result."""
        with self._lock:
            finished = self._stop_requested or self._loop.is_closed()
        if finished:
            coro.close()
            raise RuntimeError("event loop is already finished")
        return asyncio.run_coroutine_threadsafe(coro, self._loop)

    def close(self) -> None:
        """Stop the event loop."""
        with self._lock:
            if self._stop_requested:
                logger.warning("Event Loop is already finished.")
                return
            self._stop_requested = True
        try:
            self._loop.call_soon_threadsafe(self._loop.stop)
        except RuntimeError as exc:
            logger.warning("Event Loop is already finished. %s", exc)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the loop thread has finished; return whether it has."""
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def __enter__(self) -> "RpcEventLoop":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
        self.wait()

    def __repr__(self) -> str:
        return f"RpcEventLoop(thread={self._thread.name!r})"


class Executor:
    """An initialized executor: a shared loop, or a loop spawned and owned by it."""

    def __init__(self, loop: asyncio.AbstractEventLoop, event_loop: Optional[RpcEventLoop] = None) -> None:
        self.loop = loop
        self._event_loop = event_loop

    @property
    def is_spawned(self) -> bool:
        return self._event_loop is not None

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> "concurrent.futures.Future[Any]":
        """Schedule a coroutine on the loop."""
        if self._event_loop is not None:
            return self._event_loop.run_coroutine(coro)
        return asyncio.run_coroutine_threadsafe(coro, self.loop)

    def close(self) -> None:
        """Close the underlying event loop, if it is owned by this executor."""
        if self._event_loop is not None:
            self._event_loop.close()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Wait for the owned event loop to finish; shared loops return at once."""
        if self._event_loop is not None:
            return self._event_loop.wait(timeout)
        return True

    def __repr__(self) -> str:
        kind = "spawned" if self.is_spawned else "shared"
        return f"Executor({kind})"


def initialize_executor(
    shared: Union[Executor, RpcEventLoop, asyncio.AbstractEventLoop, None] = None,
    name: Optional[str] = DEFAULT_NAME,
) -> Executor:
    """Return an executor for ``shared``, or spawn a new named event loop."""
    if shared is None:
        event_loop = RpcEventLoop(name)
        return Executor(event_loop.loop, event_loop)
    if isinstance(shared, Executor):
        return Executor(shared.loop)
    if isinstance(shared, RpcEventLoop):
        return Executor(shared.loop)
    if isinstance(shared, asyncio.AbstractEventLoop):
        return Executor(shared)
    raise TypeError(f"unsupported executor: {shared!r}")