import json
import socket
import threading
import time

import pytest

from rpcnet.tcp.dispatch import NoSuchPeer
from rpcnet.tcp.server import ServerBuilder
from rpcnet.utils.reactor import RpcEventLoop

REQUEST = b'{"jsonrpc": "2.0", "method": "say_hello", "params": [42, 23], "id": 1}\n'
RESPONSE = '{"jsonrpc":"2.0","result":"hello","id":1}\n'


class Handler:
    def __init__(self):
        self.methods = {}

    def add_method(self, name, func):
        self.methods[name] = func

    def handle_request(self, request, meta):
        call = json.loads(request)
        result = self.methods[call["method"]](call.get("params"), meta)
        if "id" not in call:
            return None
        return json.dumps({"jsonrpc": "2.0", "result": result, "id": call["id"]}, separators=(",", ":"))


def casual_builder():
    io = Handler()
    io.add_method("say_hello", lambda params, meta: "hello")
    return ServerBuilder(io)


def wait_until(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def read_to_end(sock):
    chunks = []
    while True:
        chunk = sock.recv(65536)
        if not chunk:
            return b"".join(chunks)
        chunks.append(chunk)


def dummy_request(address, data):
    with socket.create_connection(address, timeout=5) as sock:
        sock.sendall(data)
        sock.shutdown(socket.SHUT_WR)
        return read_to_end(sock).decode("utf-8")


@pytest.fixture
def server():
    running = casual_builder().start(("127.0.0.1", 0))
    yield running
    running.close()


def test_start_and_close():
    running = casual_builder().start(("0.0.0.0", 0))
    port = running.address[1]
    running.close()
    with pytest.raises(OSError):
        socket.create_connection(("127.0.0.1", port), timeout=2)


def test_connect(server):
    with socket.create_connection(server.address, timeout=5) as sock:
        assert sock.getpeername()[1] == server.address[1]


def test_disconnect():
    builder = casual_builder()
    dispatcher = builder.dispatcher()
    with builder.start(("127.0.0.1", 0)) as running:
        sock = socket.create_connection(running.address, timeout=5)
        assert wait_until(lambda: dispatcher.peer_count() == 1)
        assert dispatcher.peer_count() == 1
        sock.close()
        assert wait_until(lambda: dispatcher.peer_count() == 0)
        assert dispatcher.peer_count() == 0


def test_handle_request(server):
    assert dummy_request(server.address, REQUEST) == RESPONSE


def test_parallel_requests(server):
    results = []
    lock = threading.Lock()

    def worker():
        for _ in range(20):
            result = dummy_request(server.address, REQUEST)
            with lock:
                results.append(result)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert len(results) == 80
    assert set(results) == {RESPONSE}
    assert dummy_request(server.address, REQUEST) == RESPONSE


def test_notification_writes_empty_line(server):
    data = b'{"jsonrpc": "2.0", "method": "say_hello", "params": []}\n' + REQUEST
    assert dummy_request(server.address, data) == "\n" + RESPONSE


def test_peer_meta():
    io = Handler()
    io.add_method("say_hello", lambda params, meta: f"hello, {meta[0]}:{meta[1]}")
    builder = ServerBuilder(io).session_meta_extractor(lambda context: context.peer_addr)
    with builder.start(("127.0.0.1", 0)) as running:
        with socket.create_connection(running.address, timeout=5) as sock:
            host, port = sock.getsockname()[:2]
            sock.sendall(REQUEST)
            sock.shutdown(socket.SHUT_WR)
            result = read_to_end(sock).decode("utf-8")
    assert result == f'{{"jsonrpc":"2.0","result":"hello, {host}:{port}","id":1}}\n'


def test_default_meta_is_none():
    seen = []
    io = Handler()
    io.add_method("say_hello", lambda params, meta: seen.append(meta) or "hello")
    with ServerBuilder(io).start(("127.0.0.1", 0)) as running:
        assert dummy_request(running.address, REQUEST) == RESPONSE
    assert seen == [None]


def test_message_dispatch():
    peers = []
    io = Handler()
    io.add_method("say_hello", lambda params, meta: "hello")

    def extractor(context):
        peers.append(context.peer_addr)
        return context.peer_addr

    builder = ServerBuilder(io).session_meta_extractor(extractor)
    dispatcher = builder.dispatcher()
    with builder.start(("127.0.0.1", 0)) as running:
        with socket.create_connection(running.address, timeout=5) as sock:
            assert wait_until(lambda: bool(peers) and dispatcher.is_connected(peers[0]))
            dispatcher.push_message(peers[0], "ping")
            received = b""
            while len(received) < len("ping\n"):
                received += sock.recv(len("ping\n") - len(received))
            assert received.decode("utf-8") == "ping\n"
            sock.sendall(REQUEST)
            sock.shutdown(socket.SHUT_WR)
            assert read_to_end(sock).decode("utf-8") == RESPONSE


def test_push_after_disconnect_fails():
    peers = []
    builder = casual_builder().session_meta_extractor(lambda context: peers.append(context.peer_addr))
    dispatcher = builder.dispatcher()
    with builder.start(("127.0.0.1", 0)) as running:
        sock = socket.create_connection(running.address, timeout=5)
        assert wait_until(lambda: bool(peers) and dispatcher.is_connected(peers[0]))
        sock.close()
        assert wait_until(lambda: not dispatcher.is_connected(peers[0]))
        with pytest.raises(NoSuchPeer):
            dispatcher.push_message(peers[0], "ping")


def test_custom_separators():
    builder = casual_builder().request_separators("|", "\r\n")
    with builder.start("127.0.0.1:0") as running:
        result = dummy_request(running.address, REQUEST.rstrip(b"\n") + b"|")
    assert result == RESPONSE.rstrip("\n") + "\r\n"


def test_empty_separator_rejected():
    with pytest.raises(ValueError):
        casual_builder().request_separators("", "\n")


def test_start_on_invalid_address_fails():
    with pytest.raises(OSError):
        casual_builder().start(("256.0.0.1", 0))


def test_shared_event_loop():
    with RpcEventLoop("shared") as loop:
        running = casual_builder().event_loop_executor(loop).start(("127.0.0.1", 0))
        try:
            assert dummy_request(running.address, REQUEST) == RESPONSE
        finally:
            running.close()
        assert loop.thread.is_alive()