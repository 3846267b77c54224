# rpcnet

Transports and helpers for serving JSON-RPC, using only the Python standard
library (Python 3.10 and later):

- `rpcnet.tcp` — a TCP server that frames requests and responses with a
  separator (newline by default), and a `Dispatcher` for pushing messages
  to connected peers.
- `rpcnet.stdio` — a server that reads one request per line and writes each
  response on its own line.
- `rpcnet.pubsub` — publish-subscribe sessions: subscribers, sinks that send
  notifications, subscription ids, and a one-shot rendezvous channel.
- `rpcnet.utils` — host and origin matching with wildcards, CORS decisions,
  an event-loop executor, session statistics and an accept loop that backs
  off on errors.

## What the package does not do

- It does not parse JSON-RPC requests or route them to methods. Every server
  takes a handler that you supply: an object with a `handle_request` method,
  or a plain callable, which receives the request text and returns the
  response text, `None` for no response, or an awaitable of either.
- It has no WebSocket server; `rpcnet.ws` holds no modules.
- It installs no command-line programs.

## Validating the Host header

Hosts are parsed leniently: a scheme and a path are dropped, the name is
lower-cased, and a port may be a number or a wildcard pattern. Matching is a
case-insensitive glob.

```python
from rpcnet.utils.hosts import Host, is_host_valid

allowed = [Host.parse("*.web3.site:*")]

is_host_valid("parity.web3.site:8180", allowed)   # True
is_host_valid("example.com", allowed)             # False
is_host_valid(None, allowed)                      # False: header missing
is_host_valid("anything", None)                   # True: validation disabled
```

`DomainsValidation.allow_only([...])` and `DomainsValidation.disabled()`
express the same choice as a value; `to_list()` gives the list or `None`.
`update(hosts, address)` adds a bound address, and its `localhost` alias
when the address is `127.0.0.1`, to a list of hosts.

## CORS

```python
from rpcnet.utils.cors import AccessControlAllowOrigin, get_cors_allow_origin

allowed = [
    AccessControlAllowOrigin.from_string("http://*.io"),
    AccessControlAllowOrigin.from_string("chrome-extension://*"),
]

get_cors_allow_origin("http://parity.io", None, allowed)   # ok, echoes the origin
get_cors_allow_origin("http://parity.iot", None, allowed)  # invalid
get_cors_allow_origin(None, None, allowed)                 # not required
```

`from_string` turns `"*"`, `"any"` and `"all"` into
`AccessControlAllowOrigin.ANY` and `"null"` into `AccessControlAllowOrigin.NULL`.
The result is an `AllowCors` value with `is_ok`, `is_invalid` and
`is_not_required`; `to_optional()` gives the header value, or `None` when
there is none. `get_cors_allow_headers` makes the same kind of decision for
request headers against an `AccessControlAllowHeaders`.

## Publish-subscribe

A `Session` belongs to one client connection. It is built around a function
that sends a text message to that client, remembers the client's active
subscriptions, and unsubscribes from each of them when it is closed.
`new_subscription` builds the pair of RPC methods that start and cancel a
subscription; each is called with the request params and the metadata (a
`Session`, or an object whose `session()` returns one).

```python
from rpcnet.pubsub.subscription import Session, new_subscription
from rpcnet.pubsub.types import SubscriptionId

def subscribe(params, meta, subscriber):
    sink = subscriber.assign_id(SubscriptionId(5))
    sink.notify([10])

def unsubscribe(subscription_id, meta):
    return True

subscribe_method, unsubscribe_method = new_subscription("hello", subscribe, unsubscribe)

sent = []
session = Session(sent.append)
subscribe_method(None, session)      # 5
sent                                  # ['{"jsonrpc":"2.0","method":"hello","params":[10]}']
unsubscribe_method([5], session)     # True
session.close()                       # unsubscribes whatever is still active
```

A subscriber may instead call `reject(error)` with an `RpcError`; if it is
dropped without an answer the request fails with "Subscription rejected".
`assign_id_and_wait` and `reject_and_wait` block until the answer has been
received. `rpcnet.pubsub.typed` offers `TypedSubscriber` and `TypedSink`,
whose notifications carry the subscription id together with a `result`
(`notify`) or an `error` (`notify_error`).

## TCP server

```python
from rpcnet.tcp.server import ServerBuilder

def handler(request, meta):
    return '{"jsonrpc":"2.0","result":"hello","id":1}'

builder = ServerBuilder(handler)
dispatcher = builder.dispatcher()
server = builder.start(("127.0.0.1", 3030))
print(server.address)
# dispatcher.push_message(peer_addr, "ping") sends to a connected peer
server.close()
```

The handler receives each request and the session metadata.
`session_meta_extractor` sets a function that builds that metadata from a
`RequestContext` (the peer address and a function sending directly to the
peer); by default it is `None`. `request_separators` changes the incoming
and outgoing separators, and `event_loop_executor` runs the server on an
existing event loop instead of a thread of its own. The `Dispatcher` also
reports `is_connected(peer_addr)` and `peer_count()`.

## stdio server

```python
from rpcnet.stdio import ServerBuilder

ServerBuilder(lambda line: line.upper()).build()
```

`build()` blocks until standard input reaches end of file.
`serve(reader, writer)` does the same with any text streams. A request that
produces no response is answered with an empty line.

## Utilities

- `rpcnet.utils.reactor`: `RpcEventLoop` runs an asyncio loop in a thread;
  `initialize_executor()` spawns one, or wraps a shared loop, as an
  `Executor` with `spawn`, `close` and `wait`.
- `rpcnet.utils.suspendable`: `SuspendableStream` wraps an async iterator of
  incoming connections, skips per-connection errors and pauses on other
  `OSError`s with a doubling delay of up to five seconds.
- `rpcnet.utils.session`: the `SessionStats` interface with `open_session`
  and `close_session`.