"""Publish-subscribe wrappers that serialize notification payloads automatically."""

from __future__ import annotations

import dataclasses
import queue
from typing import Any, Generic, Optional, TypeVar

from . import oneshot
from .subscription import Sink, Subscriber
from .types import RpcError, SubscriptionId

T = TypeVar("T")
E = TypeVar("E")


def _to_value(value: Any) -> Any:
    if isinstance(value, RpcError):
        return value.to_dict()
    if isinstance(value, SubscriptionId):
        return value.to_value()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    return value


class TypedSink(Generic[T, E]):
    """Sends results or errors to a subscribed client, tagged with the subscription id."""

    def __init__(self, sink: Sink, subscription_id: SubscriptionId) -> None:
        self._sink = sink
        self.id = subscription_id

    @property
    def notification(self) -> str:
        return self._sink.notification

    def _params(self, key: str, value: Any) -> dict:
        return {key: _to_value(value), "subscription": self.id.to_value()}

    def notify(self, value: T) -> None:
        """Send a successful result to the subscriber."""
        self._sink.notify(self._params("result", value))

    def notify_error(self, error: E) -> None:
        """Send an error to the subscriber."""
        self._sink.notify(self._params("error", error))

    def __repr__(self) -> str:
        return f"TypedSink(notification={self.notification!r}, id={self.id!r})"


class TypedSubscriber(Generic[T, E]):
    """A subscribing client whose sink serializes values automatically."""

    def __init__(self, subscriber: Subscriber) -> None:
        self._subscriber = subscriber

    @classmethod
    def new_test(
        cls, method: str
    ) -> tuple["TypedSubscriber[Any, Any]", oneshot.Receiver[Any], "queue.Queue[str]"]:
        """Create a subscriber with its id receiver and a queue of sent messages."""
        subscriber, id_receiver, messages = Subscriber.new_test(method)
        return cls(subscriber), id_receiver, messages

    def reject(self, error: RpcError) -> None:
        """Reject the subscription; raises ChannelClosed if the request ended."""
        self._subscriber.reject(error)

    def reject_and_wait(self, error: RpcError, timeout: Optional[float] = None) -> None:
        """Reject the subscription and block until the rejection was received."""
        self._subscriber.reject_and_wait(error, timeout)

    def assign_id(self, subscription_id: SubscriptionId) -> TypedSink[T, E]:
        """Assign the id and return a sink; raises ChannelClosed if the request ended."""
        sink = self._subscriber.assign_id(subscription_id)
        return TypedSink(sink, subscription_id)

    def assign_id_and_wait(
        self, subscription_id: SubscriptionId, timeout: Optional[float] = None
    ) -> TypedSink[T, E]:
        """Assign the id and block until the requestor has received it."""
        sink = self._subscriber.assign_id_and_wait(subscription_id, timeout)
        return TypedSink(sink, subscription_id)

    def __repr__(self) -> str:
        return f"TypedSubscriber({self._subscriber!r})"