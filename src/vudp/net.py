from __future__ import annotations

import random
import socket
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple

from .constants import RECV_BUFSIZE
from .resolver import Endpoint, resolve

SocketFactory = Callable[[int, int, int], socket.socket]


@dataclass(frozen=True, slots=True)
class Impairment:
    loss_rate: float = 0.0
    delay_ms: int = 0

    def should_drop(self) -> bool:
        return self.loss_rate > 0 and random.random() < self.loss_rate

    def sleep_if_needed(self) -> None:
        if self.delay_ms > 0:
            time.sleep(self.delay_ms / 1000.0)


class DatagramSocket:
    """Thin wrapper over a UDP socket; ``close()`` may be called any number of times."""

    def __init__(self, sock: socket.socket, impairment: Impairment | None = None):
        self.sock: Optional[socket.socket] = sock
        self.impairment = impairment or Impairment()

    @classmethod
    def connected(
        cls,
        endpoint: Endpoint,
        timeout_ms: int,
        socket_factory: SocketFactory = socket.socket,
    ) -> "DatagramSocket":
        """Create a socket bound to ``endpoint`` as its only peer.

        Raises OSError; whatever was created is closed first.
        """
        sock = socket_factory(endpoint.family, endpoint.socktype, endpoint.proto)
        try:
            sock.settimeout(timeout_ms / 1000.0)
            sock.connect(endpoint.address)
        except BaseException:
            sock.close()
            raise
        return cls(sock)

    @classmethod
    def listening(
        cls,
        host: str,
        port: int,
        timeout_ms: int = 0,
        impairment: Impairment | None = None,
    ) -> "DatagramSocket":
        endpoint = resolve(host, port, socket.SOCK_DGRAM, socket.AI_PASSIVE)[0]
        sock = socket.socket(endpoint.family, endpoint.socktype, endpoint.proto)
        try:
            sock.bind(endpoint.address)
            if timeout_ms > 0:
                sock.settimeout(timeout_ms / 1000.0)
        except BaseException:
            sock.close()
            raise
        return cls(sock, impairment)

    @property
    def closed(self) -> bool:
        return self.sock is None

    def _require(self) -> socket.socket:
        if self.sock is None:
            raise OSError("socket is closed")
        return self.sock

    def send(self, data: bytes) -> int:
        return self._require().send(data)

    def recv(self, bufsize: int = RECV_BUFSIZE) -> bytes:
        return self._require().recv(bufsize)

    def sendto(self, data: bytes, addr: Tuple[Any, ...]) -> bool:
        if self.impairment.should_drop():
            return False
        self.impairment.sleep_if_needed()
        self._require().sendto(data, addr)
        return True

    def recvfrom(self, bufsize: int = RECV_BUFSIZE) -> Tuple[bytes, Tuple[Any, ...]]:
        return self._require().recvfrom(bufsize)

    def getsockname(self) -> Tuple[Any, ...]:
        return self._require().getsockname()

    def close(self) -> None:
        sock, self.sock = self.sock, None
        if sock is not None:
            sock.close()

    def __enter__(self) -> "DatagramSocket":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
