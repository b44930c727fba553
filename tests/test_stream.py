from __future__ import annotations

import socket
import threading

import pytest

from vudp.errors import TransportError
from vudp.resolver import Endpoint
from vudp.stream import StreamClient


def tcp_server(chunks: list[bytes]) -> tuple[socket.socket, threading.Thread]:
    srv = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    srv.bind(("127.0.0.1", 0))
    srv.listen(1)
    srv.settimeout(5)

    def run():
        conn, _ = srv.accept()
        with conn:
            for c in chunks:
                conn.sendall(c)

    t = threading.Thread(target=run, daemon=True)
    t.start()
    return srv, t


def test_reads_until_peer_closes():
    srv, t = tcp_server([b"\x1b[2J frame one", b" frame two"])
    host, port = srv.getsockname()
    try:
        with StreamClient(host, port) as client:
            reads = list(client.reads())
    finally:
        t.join(timeout=5)
        srv.close()

    assert b"".join(r.data for r in reads) == b"\x1b[2J frame one frame two"
    assert reads[-1].total_bytes == len(b"\x1b[2J frame one frame two")
    assert all(r.last_read == len(r.data) for r in reads)
    assert all(r.read_duration_s >= 0 for r in reads)
    assert [r.elapsed_s for r in reads] == sorted(r.elapsed_s for r in reads)


def test_connect_skips_unreachable_addresses():
    srv, t = tcp_server([b"ok"])
    _, port = srv.getsockname()
    dead = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    dead.bind(("127.0.0.1", 0))
    dead_port = dead.getsockname()[1]
    dead.close()

    endpoints = [
        Endpoint(socket.AF_INET, socket.SOCK_STREAM, 6, ("127.0.0.1", dead_port)),
        Endpoint(socket.AF_INET, socket.SOCK_STREAM, 6, ("127.0.0.1", port)),
    ]
    client = StreamClient("local", port, resolver=lambda h, s, t: endpoints)
    try:
        assert client.connect() == endpoints[1]
        assert b"".join(r.data for r in client.reads()) == b"ok"
    finally:
        client.close()
        t.join(timeout=5)
        srv.close()


def test_no_reachable_address():
    def no_socket(*a):
        raise OSError(97, "Address family not supported by protocol")

    ep = Endpoint(socket.AF_INET6, socket.SOCK_STREAM, 6, ("2001:db8::1", 2323, 0, 0))
    client = StreamClient("x", 2323, resolver=lambda h, s, t: [ep], socket_factory=no_socket)
    with pytest.raises(TransportError):
        client.connect()
