"""Client/server tests over a real Unix socket."""

import errno
import json
import os
import socket
import struct
import threading
import uuid

import pytest

from tnshim.errors import ConnectError, DecodeError, ResultStatus, ShortReadError
from tnshim.ipc.client import MAX_SOCKET_PATH, IPCClient, round_trip
from tnshim.ipc.frame import decode_payload, encode_frame
from tnshim.ipc.messages import ListRequest, RemoveRequest, Result, SendRequest
from tnshim.ipc.server import IPCServer
from tnshim.session.manager import LIST_HEADER

from tests.helpers import make_payload, raw_exchange, split_frame


class FlakyListener:
    """Listening socket whose first accept() fails."""

    def __init__(self, sock):
        self._sock = sock
        self.failed = False

    def accept(self):
        if not self.failed:
            self.failed = True
            raise OSError(errno.EMFILE, "Too many open files")
        return self._sock.accept()

    def close(self):
        self._sock.close()


def one_shot_server(path, respond):
    """Accept a single connection and answer it with respond(conn)."""
    listener = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    listener.bind(str(path))
    listener.listen(1)

    def run():
        conn, _ = listener.accept()
        try:
            respond(conn)
        finally:
            conn.close()
            listener.close()

    thread = threading.Thread(target=run, daemon=True)
    thread.start()
    return thread


class TestScenario:

    def test_send_list_remove_list(self, server):
        client = IPCClient(server.socket_path)

        sent = client.round_trip(SendRequest(payload=make_payload("Hi", group_id="build")))
        assert sent.status == ResultStatus.OK

        listed = client.round_trip(ListRequest(group="build"))
        assert listed.ok
        lines = listed.message.split("\n")
        assert lines[0] == LIST_HEADER
        assert len(lines) == 2
        assert "Hi" in lines[1].split("\t")

        removed = client.round_trip(RemoveRequest(group="build"))
        assert removed.status == ResultStatus.OK

        listed = client.round_trip(ListRequest(group="build"))
        assert listed.message == LIST_HEADER

    def test_correlation_id_echoed(self, server):
        req = ListRequest(group="ALL")
        assert round_trip(server.socket_path, req).correlation_id == req.correlation_id

    def test_group_exclusivity_over_socket(self, server, sink):
        client = IPCClient(server.socket_path)
        client.round_trip(SendRequest(payload=make_payload("one", group_id="g")))
        client.round_trip(SendRequest(payload=make_payload("two", group_id="g")))
        lines = client.round_trip(ListRequest(group="g")).message.split("\n")
        assert len(lines) == 2
        assert lines[1].split("\t")[3] == "two"

    def test_raw_empty_message_rejected(self, server, sink):
        result = IPCClient(server.socket_path).round_trip(SendRequest(payload=make_payload("")))
        assert result.status == ResultStatus.INVALID_PAYLOAD
        assert sink.list_delivered() == []

    def test_untagged_request_from_older_client(self, server):
        cid = uuid.uuid4()
        body = json.dumps({"correlationID": str(cid), "group": "ALL"}).encode()
        response = raw_exchange(server.socket_path, struct.pack(">I", len(body)) + body)
        length, payload = split_frame(response)
        assert length == len(payload)
        result = decode_payload(payload, Result)
        assert result.correlation_id == cid
        assert result.message == LIST_HEADER


class TestServerRobustness:

    def test_undecodable_request_gets_no_response(self, server):
        body = b'{"hello":"world"}'
        assert raw_exchange(server.socket_path, struct.pack(">I", len(body)) + body) == b""
        assert server.get_stats()["protocol_errors"] == 1

    def test_short_request_gets_no_response(self, server):
        assert raw_exchange(server.socket_path, struct.pack(">I", 100) + b"{}") == b""

    def test_oversized_request_is_refused(self, short_tmp, session):
        srv = IPCServer(short_tmp / "s.sock", session.handle, max_request_size=16)
        srv.start()
        try:
            frame = encode_frame(ListRequest(group="x" * 64))
            assert raw_exchange(srv.socket_path, frame, shutdown=False) == b""
        finally:
            srv.stop()

    def test_server_keeps_serving_after_bad_peer(self, server):
        raw_exchange(server.socket_path, b"\x00\x00")
        raw_exchange(server.socket_path, struct.pack(">I", 3) + b"bad")
        assert IPCClient(server.socket_path).round_trip(ListRequest(group="ALL")).ok

    def test_request_split_across_writes(self, server):
        frame = encode_frame(ListRequest(group="ALL"))
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        sock.settimeout(5.0)
        try:
            sock.connect(str(server.socket_path))
            for byte in frame:
                sock.sendall(bytes([byte]))
            response = b""
            while True:
                chunk = sock.recv(4096)
                if not chunk:
                    break
                response += chunk
        finally:
            sock.close()
        _, payload = split_frame(response)
        assert decode_payload(payload, Result).ok

    def test_stale_socket_file_is_replaced(self, short_tmp, session):
        path = short_tmp / "stale.sock"
        path.write_text("leftover")
        srv = IPCServer(path, session.handle)
        srv.start()
        try:
            assert IPCClient(path).round_trip(ListRequest(group="ALL")).ok
            assert oct(os.stat(path).st_mode & 0o777) == oct(0o600)
        finally:
            srv.stop()
        assert not path.exists()

    def test_accept_failure_is_skipped(self, short_tmp, session):
        srv = IPCServer(short_tmp / "flaky.sock", session.handle)
        srv.bind()
        listener = FlakyListener(srv._socket)
        srv._socket = listener
        srv.start()
        try:
            assert IPCClient(srv.socket_path).round_trip(ListRequest(group="ALL")).ok
            assert listener.failed
            stats = srv.get_stats()
            assert stats["accept_errors"] == 1
            assert stats["running"]
        finally:
            srv.stop()

    def test_stats(self, server):
        IPCClient(server.socket_path).round_trip(ListRequest(group="ALL"))
        stats = server.get_stats()
        assert stats["accepted"] == 1
        assert stats["running"]


class TestClientErrors:

    def test_missing_socket(self, short_tmp):
        with pytest.raises(ConnectError):
            IPCClient(short_tmp / "missing.sock").round_trip(ListRequest(group="ALL"))

    def test_path_too_long(self, short_tmp):
        path = str(short_tmp / ("x" * MAX_SOCKET_PATH))
        with pytest.raises(ConnectError) as exc:
            IPCClient(path).round_trip(ListRequest(group="ALL"))
        assert "exceeds" in str(exc.value)

    def test_peer_closes_before_header(self, short_tmp):
        path = short_tmp / "close.sock"

        def respond(conn):
            conn.recv(65536)

        thread = one_shot_server(path, respond)
        with pytest.raises(ShortReadError):
            IPCClient(path).round_trip(ListRequest(group="ALL"))
        thread.join(timeout=5)

    def test_peer_closes_mid_payload(self, short_tmp):
        path = short_tmp / "mid.sock"

        def respond(conn):
            conn.recv(65536)
            conn.sendall(struct.pack(">I", 50) + b'{"status":')

        thread = one_shot_server(path, respond)
        with pytest.raises(ShortReadError) as exc:
            IPCClient(path).round_trip(ListRequest(group="ALL"))
        assert exc.value.expected == 50
        thread.join(timeout=5)

    def test_malformed_result(self, short_tmp):
        path = short_tmp / "bad.sock"

        def respond(conn):
            conn.recv(65536)
            conn.sendall(encode_frame({"nostatus": True}))

        thread = one_shot_server(path, respond)
        with pytest.raises(DecodeError):
            IPCClient(path).round_trip(ListRequest(group="ALL"))
        thread.join(timeout=5)
