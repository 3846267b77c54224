"""Subscription primitives: sessions, sinks, subscribers and the RPC methods."""

from __future__ import annotations

import json
import logging
import queue
import threading
import weakref
from dataclasses import dataclass
from typing import Any, Callable, Optional

from . import oneshot
from .types import RpcError, SubscriptionId, TransportSender

logger = logging.getLogger(__name__)

SubscribeCallback = Callable[[Any, Any, "Subscriber"], None]
UnsubscribeCallback = Callable[[SubscriptionId, Any], Any]


class Session:
    """An RPC client session.

    Tracks active subscriptions and unsubscribes from them when closed.
    """

    def __init__(self, sender: TransportSender) -> None:
        self._transport = sender
        self._lock = threading.Lock()
        self._active: dict[tuple[SubscriptionId, str], Callable[[SubscriptionId], None]] = {}
        self._on_drop: list[Callable[[], None]] = []

    def sender(self) -> TransportSender:
        """Return the raw transport of this session."""
        return self._transport

    def on_drop(self, callback: Callable[[], None]) -> None:
        """Register a callback to run once when the session is closed."""
        with self._lock:
            self._on_drop.append(callback)

    def add_subscription(
        self, name: str, subscription_id: SubscriptionId, remove: Callable[[SubscriptionId], None]
    ) -> None:
        """Register an active subscription; a colliding one is unsubscribed."""
        key = (subscription_id, name)
        with self._lock:
            previous = self._active.get(key)
            self._active[key] = remove
        if previous is not None:
            logger.warning("SubscriptionId collision. Unsubscribing previous client.")
            previous(subscription_id)

    def remove_subscription(self, name: str, subscription_id: SubscriptionId) -> None:
        """Forget an active subscription without unsubscribing it."""
        with self._lock:
            self._active.pop((subscription_id, name), None)

    def close(self) -> None:
        """Unsubscribe all active subscriptions and run the close callbacks."""
        with self._lock:
            active = list(self._active.items())
            self._active.clear()
            callbacks = list(self._on_drop)
            self._on_drop.clear()
        for (subscription_id, _name), remove in active:
            remove(subscription_id)
        for callback in callbacks:
            callback()

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        with self._lock:
            count = len(self._active)
        return f"Session(active_subscriptions={count}, transport={self._transport!r})"


@dataclass(frozen=True)
class Sink:
    """Sends notifications directly to a subscribed client."""

    notification: str
    transport: TransportSender

    def notify(self, params: Any) -> None:
        """Send a notification with the given params to the client."""
        message = {"jsonrpc": "2.0", "method": self.notification, "params": params}
        self.transport(json.dumps(message, separators=(",", ":"), ensure_ascii=False))


class Subscriber:
    """A subscribing client, to be given an id or rejected exactly once.

    If the subscriber is discarded without an answer the request is rejected.
    """

    def __init__(
        self,
        notification: str,
        transport: TransportSender,
        sender: oneshot.Sender[Any],
    ) -> None:
        self.notification = notification
        self.transport = transport
        self._sender: Optional[oneshot.Sender[Any]] = sender
        weakref.finalize(self, sender.close)

    @classmethod
    def new_test(
        cls, method: str
    ) -> tuple["Subscriber", oneshot.Receiver[Any], "queue.Queue[str]"]:
        """Create a subscriber with its id receiver and a queue of sent messages."""
        sender, id_receiver = oneshot.channel()
        messages: "queue.Queue[str]" = queue.Queue()
        return cls(str(method), messages.put_nowait, sender), id_receiver, messages

    def _take_sender(self) -> oneshot.Sender[Any]:
        sender, self._sender = self._sender, None
        if sender is None:
            raise RuntimeError("subscriber was already answered")
        return sender

    def _sink(self) -> Sink:
        return Sink(self.notification, self.transport)

    def assign_id(self, subscription_id: SubscriptionId) -> Sink:
        """Assign the id and return a sink; raises ChannelClosed if the request ended."""
        self._take_sender().send(subscription_id)
        return self._sink()

    def assign_id_and_wait(self, subscription_id: SubscriptionId, timeout: Optional[float] = None) -> Sink:
        """Assign the id and block until the requestor has received it."""
        self._take_sender().send_and_wait(subscription_id, timeout)
        return self._sink()

    def reject(self, error: RpcError) -> None:
        """Reject the request; raises ChannelClosed if the request ended."""
        self._take_sender().send(error)

    def reject_and_wait(self, error: RpcError, timeout: Optional[float] = None) -> None:
        """Reject the request and block until the rejection was received."""
        self._take_sender().send_and_wait(error, timeout)

    def __repr__(self) -> str:
        return f"Subscriber(notification={self.notification!r})"


def _subscription_rejected() -> RpcError:
    return RpcError(-32091, "Subscription rejected")


def _subscriptions_unavailable() -> RpcError:
    return RpcError(-32090, "Subscriptions are not available on this transport.")


def _session_of(meta: Any) -> Optional[Session]:
    if meta is None:
        return None
    if isinstance(meta, Session):
        return meta
    session = getattr(meta, "session", None)
    return session() if callable(session) else None


class Subscribe:
    """The subscribe RPC method."""

    def __init__(self, notification: str, subscribe: SubscribeCallback, unsubscribe: UnsubscribeCallback) -> None:
        self.notification = notification
        self.subscribe = subscribe
        self.unsubscribe = unsubscribe

    def __call__(self, params: Any, meta: Any) -> Any:
        session = _session_of(meta)
        if session is None:
            raise _subscriptions_unavailable()

        sender, receiver = oneshot.channel()
        self.subscribe(params, meta, Subscriber(self.notification, session.sender(), sender))
        del sender
        try:
            result = receiver.recv()
        except oneshot.ChannelClosed:
            raise _subscription_rejected() from None
        if isinstance(result, RpcError):
            raise result

        unsubscribe = self.unsubscribe

        def remove(subscription_id: SubscriptionId) -> None:
            try:
                unsubscribe(subscription_id, None)
            except RpcError as exc:
                logger.debug("Unsubscribe on session close failed: %r", exc)

        session.add_subscription(self.notification, result, remove)
        return result.to_value()


class Unsubscribe:
    """The unsubscribe RPC method."""

    def __init__(self, notification: str, unsubscribe: UnsubscribeCallback) -> None:
        self.notification = notification
        self.unsubscribe = unsubscribe

    def __call__(self, params: Any, meta: Any) -> Any:
        subscription_id = None
        if isinstance(params, list) and len(params) == 1:
            subscription_id = SubscriptionId.parse_value(params[0])
        session = _session_of(meta)
        if session is None:
            raise _subscriptions_unavailable()
        if subscription_id is None:
            raise RpcError.invalid_params("Expected subscription id.")
        session.remove_subscription(self.notification, subscription_id)
        return self.unsubscribe(subscription_id, meta)


def new_subscription(
    notification: str, subscribe: SubscribeCallback, unsubscribe: UnsubscribeCallback
) -> tuple[Subscribe, Unsubscribe]:
    """Create the subscribe and unsubscribe RPC methods for a notification."""
    return Subscribe(notification, subscribe, unsubscribe), Unsubscribe(notification, unsubscribe)