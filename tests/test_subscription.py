import queue
import threading

import pytest

from rpcnet.pubsub.oneshot import ChannelClosed, channel
from rpcnet.pubsub.subscription import Session, Sink, Subscriber, new_subscription
from rpcnet.pubsub.types import ErrorCode, PubSubMetadata, RpcError, SubscriptionId


def _session():
    messages = queue.Queue()
    return Session(messages.put_nowait), messages


def test_should_unregister_on_drop():
    calls = []
    session, _ = _session()
    session.add_subscription("test", SubscriptionId(1), calls.append)
    session.close()
    assert calls == [SubscriptionId(1)]


def test_should_remove_subscription():
    calls = []
    session, _ = _session()
    session.add_subscription("test", SubscriptionId(1), calls.append)
    session.remove_subscription("test", SubscriptionId(1))
    session.close()
    assert calls == []


def test_should_unregister_in_case_of_collision():
    calls = []
    session, _ = _session()
    session.add_subscription("test", SubscriptionId(1), calls.append)
    session.add_subscription("test", SubscriptionId(1), lambda _id: None)
    assert calls == [SubscriptionId(1)]


def test_on_drop_runs_once():
    calls = []
    with Session(lambda _msg: None) as session:
        session.on_drop(lambda: calls.append("dropped"))
    session.close()
    assert calls == ["dropped"]


def test_should_send_notification_to_the_transport():
    messages = queue.Queue()
    sink = Sink("test", messages.put_nowait)
    sink.notify([10])
    assert messages.get_nowait() == '{"jsonrpc":"2.0","method":"test","params":[10]}'


def test_should_assign_id():
    tx, rx = channel()
    subscriber = Subscriber("test", lambda _msg: None, tx)
    sinks = []
    thread = threading.Thread(
        target=lambda: sinks.append(subscriber.assign_id_and_wait(SubscriptionId(5), timeout=5))
    )
    thread.start()
    assert rx.recv(timeout=5) == SubscriptionId(5)
    thread.join(timeout=5)
    assert sinks[0].notification == "test"


def test_should_reject():
    tx, rx = channel()
    subscriber = Subscriber("test", lambda _msg: None, tx)
    error = RpcError(ErrorCode.INVALID_REQUEST, "Cannot start subscription now.")
    done = []
    thread = threading.Thread(target=lambda: done.append(subscriber.reject_and_wait(error, timeout=5)))
    thread.start()
    assert rx.recv(timeout=5) == error
    thread.join(timeout=5)
    assert done == [None]


def test_subscriber_answers_only_once():
    subscriber, id_rx, _ = Subscriber.new_test("hello")
    subscriber.assign_id(SubscriptionId(1))
    with pytest.raises(RuntimeError):
        subscriber.reject(RpcError(-1, "late"))
    assert id_rx.recv(timeout=1) == SubscriptionId(1)


def test_new_test_delivers_notifications():
    subscriber, id_rx, messages = Subscriber.new_test("hello")
    sink = subscriber.assign_id(SubscriptionId(1))
    assert id_rx.recv(timeout=1) == SubscriptionId(1)
    sink.notify([10])
    assert messages.get_nowait() == '{"jsonrpc":"2.0","method":"hello","params":[10]}'


def test_assign_id_after_request_ended_raises():
    subscriber, id_rx, _ = Subscriber.new_test("hello")
    id_rx.close()
    with pytest.raises(ChannelClosed):
        subscriber.assign_id(SubscriptionId(1))


class _FreshSessionMeta(PubSubMetadata):
    def session(self):
        return Session(lambda _msg: None)


def test_should_subscribe():
    called = []

    def subscribe(params, _meta, _subscriber):
        called.append(params)

    sub, _ = new_subscription("test", subscribe, lambda _id, _meta: True)
    with pytest.raises(RpcError) as info:
        sub(None, _FreshSessionMeta())
    assert called == [None]
    assert info.value == RpcError(-32091, "Subscription rejected")


class _SessionMeta(PubSubMetadata):
    def __init__(self, session):
        self._session = session

    def session(self):
        return self._session


def test_subscription_round_trip_and_unsubscribe_on_close():
    unsubscribed = []
    session, _ = _session()

    def subscribe(params, _meta, subscriber):
        assert params is None
        subscriber.assign_id(SubscriptionId(5))

    def unsubscribe(sub_id, meta):
        unsubscribed.append((sub_id, meta))
        return True

    sub, _ = new_subscription("hello", subscribe, unsubscribe)
    assert sub(None, _SessionMeta(session)) == 5
    session.close()
    assert unsubscribed == [(SubscriptionId(5), None)]


def test_subscribe_with_async_assignment():
    session, _ = _session()

    def subscribe(_params, _meta, subscriber):
        threading.Thread(target=lambda: subscriber.assign_id_and_wait(SubscriptionId("abc"), timeout=5)).start()

    sub, _ = new_subscription("hello", subscribe, lambda _id, _meta: True)
    assert sub(None, session) == "abc"


def test_subscribe_rejection_is_raised():
    error = RpcError(ErrorCode.PARSE_ERROR, "Invalid parameters. Subscription rejected.")
    sub, _ = new_subscription("hello", lambda _p, _m, s: s.reject(error), lambda _id, _meta: True)
    session, _ = _session()
    with pytest.raises(RpcError) as info:
        sub([1], session)
    assert info.value == error


def test_subscribe_without_session_is_unavailable():
    sub, unsub = new_subscription("hello", lambda _p, _m, _s: None, lambda _id, _meta: True)
    with pytest.raises(RpcError) as info:
        sub(None, None)
    assert info.value.code == -32090
    with pytest.raises(RpcError) as info:
        unsub([1], None)
    assert info.value.message == "Subscriptions are not available on this transport."


def test_unsubscribe_removes_and_calls_handler():
    calls = []
    session, _ = _session()
    removed = []
    session.add_subscription("hello", SubscriptionId(3), removed.append)
    _, unsub = new_subscription("hello", lambda _p, _m, _s: None, lambda sid, meta: calls.append(sid) or True)
    assert unsub([3], session) is True
    assert calls == [SubscriptionId(3)]
    session.close()
    assert removed == []


def test_unsubscribe_requires_id():
    session, _ = _session()
    _, unsub = new_subscription("hello", lambda _p, _m, _s: None, lambda _id, _meta: True)
    with pytest.raises(RpcError) as info:
        unsub([], session)
    assert info.value == RpcError.invalid_params("Expected subscription id.")