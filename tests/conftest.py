from __future__ import annotations

import socket
from typing import Any

import pytest

from vudp.resolver import Endpoint


class FakeSocket:
    def __init__(self, net: "FakeNetwork", family: int, socktype: int, proto: int):
        self.net = net
        self.family = family
        self.socktype = socktype
        self.proto = proto
        self.timeout: float | None = None
        self.peer: Any = None
        self.sent: list[bytes] = []
        self.replies: list[Any] = []
        self.closed = False

    def settimeout(self, value: float) -> None:
        self.timeout = value

    def connect(self, address: Any) -> None:
        if address in self.net.unreachable:
            raise ConnectionRefusedError(111, "Connection refused")
        self.peer = address
        self.replies = list(self.net.scripts.get(address, []))

    def send(self, data: bytes) -> int:
        if self.peer in self.net.send_fails:
            raise OSError(101, "Network is unreachable")
        self.sent.append(bytes(data))
        self.net.sends.append((self.peer, bytes(data)))
        return len(data)

    def recv(self, bufsize: int) -> bytes:
        # An exhausted script behaves like a silent peer.
        if not self.replies:
            raise TimeoutError("timed out")
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply[:bufsize]

    def close(self) -> None:
        self.closed = True


class FakeNetwork:
    """Scripted peers keyed by address; each recv() pops the next scripted reply."""

    def __init__(self) -> None:
        self.scripts: dict[Any, list[Any]] = {}
        self.unreachable: set[Any] = set()
        self.send_fails: set[Any] = set()
        self.no_socket: set[int] = set()
        self.sockets: list[FakeSocket] = []
        self.sends: list[tuple[Any, bytes]] = []

    def endpoint(
        self,
        host: str,
        port: int = 5000,
        replies: list[Any] | None = None,
        family: int = socket.AF_INET,
    ) -> Endpoint:
        address = (host, port) if family == socket.AF_INET else (host, port, 0, 0)
        if replies is not None:
            self.scripts[address] = list(replies)
        return Endpoint(family=family, socktype=socket.SOCK_DGRAM, proto=17, address=address)

    def socket_factory(self, family: int, socktype: int, proto: int) -> FakeSocket:
        if family in self.no_socket:
            raise OSError(97, "Address family not supported by protocol")
        sock = FakeSocket(self, family, socktype, proto)
        self.sockets.append(sock)
        return sock

    def sends_to(self, endpoint: Endpoint) -> int:
        return sum(1 for peer, _ in self.sends if peer == endpoint.address)


@pytest.fixture
def net() -> FakeNetwork:
    return FakeNetwork()
